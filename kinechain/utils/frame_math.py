"""
位姿/坐标系工具函数
齐次变换的构造、求逆、作用于点和方向，以及绕轴旋转
"""
import numpy as np
from scipy.spatial.transform import Rotation as R
from typing import Union

ArrayLike = Union[np.ndarray, list, tuple]


def quaternion_to_rotation_matrix(quaternion: ArrayLike) -> np.ndarray:
    """
    将四元数转换为旋转矩阵

    :param quaternion: 四元数，格式为 [w, x, y, z] 或 (w, x, y, z)
    :return: 3x3 旋转矩阵
    """
    quaternion = np.asarray(quaternion, dtype=np.float64)

    if quaternion.shape != (4,):
        raise ValueError(f"Quaternion must be a 4-element array, got shape {quaternion.shape}")

    norm = np.linalg.norm(quaternion)
    if norm < 1e-10:
        raise ValueError(f"Quaternion norm too small: {norm}, cannot normalize")
    w, x, y, z = quaternion / norm

    # scipy 使用 [x, y, z, w]
    return R.from_quat([x, y, z, w]).as_matrix()


def make_transform(rotation: ArrayLike = None, translation: ArrayLike = None) -> np.ndarray:
    """
    由旋转矩阵和平移向量组装 4x4 齐次变换

    :param rotation: 3x3 旋转矩阵，None 表示无旋转
    :param translation: 平移 (Vec3)，None 表示无平移
    :return: 4x4 变换矩阵
    """
    transform = np.identity(4, dtype=np.float64)
    if rotation is not None:
        transform[:3, :3] = np.asarray(rotation, dtype=np.float64)
    if translation is not None:
        transform[:3, 3] = np.asarray(translation, dtype=np.float64)
    return transform


def translation_matrix(offset: ArrayLike) -> np.ndarray:
    return make_transform(translation=offset)


def invert_transform(transform: np.ndarray) -> np.ndarray:
    """
    刚体变换求逆: [R | t]^-1 = [R^T | -R^T t]
    """
    rot = transform[:3, :3]
    inverse = np.identity(4, dtype=np.float64)
    inverse[:3, :3] = rot.T
    inverse[:3, 3] = -rot.T @ transform[:3, 3]
    return inverse


def transform_point(transform: np.ndarray, point: ArrayLike) -> np.ndarray:
    """将点从局部坐标系变换到 transform 所在的坐标系"""
    point = np.asarray(point, dtype=np.float64)
    return transform[:3, :3] @ point + transform[:3, 3]


def transform_direction(transform: np.ndarray, direction: ArrayLike) -> np.ndarray:
    """只作用旋转部分（方向向量不受平移影响）"""
    return transform[:3, :3] @ np.asarray(direction, dtype=np.float64)


def axis_angle_matrix(axis: ArrayLike, angle_deg: float) -> np.ndarray:
    """
    绕单位轴 axis 旋转 angle_deg 度的 3x3 旋转矩阵

    :param axis: 旋转轴（调用方保证已归一化）
    :param angle_deg: 旋转角（度）
    """
    rotvec = np.asarray(axis, dtype=np.float64) * np.deg2rad(angle_deg)
    return R.from_rotvec(rotvec).as_matrix()


def rotation_about_point(axis: ArrayLike, angle_deg: float, pivot: ArrayLike) -> np.ndarray:
    """
    绕经过 pivot 的轴旋转: T = Tr(p) · Rot(axis, angle) · Tr(-p)

    :return: 4x4 变换矩阵
    """
    rot = axis_angle_matrix(axis, angle_deg)
    pivot = np.asarray(pivot, dtype=np.float64)
    return make_transform(rot, pivot - rot @ pivot)


def normalize(vector: ArrayLike, eps: float = 1e-9) -> np.ndarray:
    """
    归一化向量；长度小于 eps 时抛出 ValueError（零向量没有方向）
    """
    vector = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if not np.isfinite(norm) or norm < eps:
        raise ValueError(f"Vector is too small to be normalized: {vector}")
    return vector / norm


def basis_frame(origin: ArrayLike, x_axis: ArrayLike, z_axis: ArrayLike) -> np.ndarray:
    """
    用原点与世界坐标系下的 x、z 轴方向构造右手坐标系。
    x 会先对 z 做正交化，y = z × x。

    :raises ValueError: x 或 z 为零向量，或二者平行
    """
    z = normalize(z_axis)
    x = np.asarray(x_axis, dtype=np.float64)
    x = normalize(x - np.dot(x, z) * z)
    y = np.cross(z, x)
    return make_transform(np.column_stack([x, y, z]), origin)


def is_rigid(transform: np.ndarray, tol: float = 1e-6) -> bool:
    """
    检查 4x4 矩阵的旋转块是否为正交且行列式为 +1（无缩放、无镜像、无 NaN）
    """
    transform = np.asarray(transform, dtype=np.float64)
    if transform.shape != (4, 4) or not np.all(np.isfinite(transform)):
        return False
    rot = transform[:3, :3]
    if not np.allclose(rot.T @ rot, np.identity(3), atol=tol):
        return False
    return abs(np.linalg.det(rot) - 1.0) < tol


def signed_angle_about_axis(from_vec: np.ndarray, to_vec: np.ndarray, axis: np.ndarray,
                            eps: float = 1e-9):
    """
    在垂直于 axis 的平面内，把 from_vec 旋转到 to_vec 所需的有符号角（度）。
    两个向量先投影到该平面；任一投影长度小于 eps 时返回 None（方向无定义）。

    :param axis: 单位旋转轴
    :return: 角度（度，范围 (-180, 180]）或 None
    """
    u = from_vec - np.dot(from_vec, axis) * axis
    v = to_vec - np.dot(to_vec, axis) * axis
    if np.linalg.norm(u) < eps or np.linalg.norm(v) < eps:
        return None
    sin_term = np.dot(axis, np.cross(u, v))
    cos_term = np.dot(u, v)
    return float(np.degrees(np.arctan2(sin_term, cos_term)))
