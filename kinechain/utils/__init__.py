"""
工具函数 (Utilities)
"""

from .frame_math import (
    quaternion_to_rotation_matrix,
    make_transform,
    translation_matrix,
    invert_transform,
    transform_point,
    transform_direction,
    axis_angle_matrix,
    rotation_about_point,
    normalize,
    basis_frame,
    is_rigid,
    signed_angle_about_axis,
)

__all__ = [
    'quaternion_to_rotation_matrix',
    'make_transform',
    'translation_matrix',
    'invert_transform',
    'transform_point',
    'transform_direction',
    'axis_angle_matrix',
    'rotation_about_point',
    'normalize',
    'basis_frame',
    'is_rigid',
    'signed_angle_about_axis',
]
