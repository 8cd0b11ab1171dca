"""
连杆 (Link): 名称 + 参考位姿下的世界变换
连杆由宿主场景持有，求解核心只在构建时读取其参考位姿
"""
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from kinechain.utils import (
    make_transform,
    invert_transform,
    transform_point,
    transform_direction,
    quaternion_to_rotation_matrix,
)


@dataclass(frozen=True, eq=False)
class Link:
    name: str
    transform: np.ndarray = field(default_factory=lambda: np.identity(4, dtype=np.float64))

    def __post_init__(self):
        object.__setattr__(self, 'transform', np.array(self.transform, dtype=np.float64))
        self.transform.setflags(write=False)

    @classmethod
    def from_pose(cls, name: str, position, quaternion: Optional[np.ndarray] = None) -> 'Link':
        """
        :param position: 世界坐标 (Vec3)
        :param quaternion: 世界姿态 [w, x, y, z]，None 表示与世界坐标轴对齐
        """
        rot = None if quaternion is None else quaternion_to_rotation_matrix(quaternion)
        return cls(name, make_transform(rot, position))

    @property
    def position(self) -> np.ndarray:
        return self.transform[:3, 3].copy()

    def to_world_point(self, point) -> np.ndarray:
        return transform_point(self.transform, point)

    def to_local_point(self, point) -> np.ndarray:
        return transform_point(invert_transform(self.transform), point)

    def to_local_direction(self, direction) -> np.ndarray:
        return transform_direction(invert_transform(self.transform), direction)
