"""
正向运动学
给定关节链和关节角向量，计算每个连杆和末端执行器的世界位姿。纯函数，不修改链。

对关节 j（父连杆 P、子连杆 C）：
    W_C = W_P · (L_P^-1 · L_C) · Tr(p) · Rot(axis_local, θ) · Tr(-p)
其中 L 为参考位姿，p 为子连杆坐标系下的枢轴。基座连杆的世界位姿即其参考位姿。
CCD 对关节的更新等价于绕同一世界枢轴、同一世界轴旋转相同角度，二者约定一致。
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from kinechain.model.chain import Chain
from kinechain.utils import invert_transform


@dataclass(frozen=True, eq=False)
class ErrorMeasurement:
    error_vector: np.ndarray  # target - 末端位置
    axis_errors: np.ndarray   # |x|, |y|, |z|
    distance: float
    end_effector: np.ndarray
    target: np.ndarray


def link_world_transforms(chain: Chain, angles: Optional[Sequence[float]] = None) -> List[np.ndarray]:
    """
    :param angles: 每个可驱动关节一个值（度），None 表示当前角度
    :return: 每个关节的子连杆世界变换（与 chain 中关节一一对应）
    """
    full = chain.full_angles(angles)
    transforms: List[np.ndarray] = []
    for index, joint in enumerate(chain):
        child_ref = chain.link(joint.child_link).transform
        if index == 0:
            world = child_ref.copy()
        else:
            parent_world = transforms[index - 1]
            parent_ref = chain.link(joint.parent_link).transform
            relative = invert_transform(parent_ref) @ child_ref
            world = parent_world @ relative @ joint.get_local_matrix(full[index])
        transforms.append(world)
    return transforms


def end_effector_pose(chain: Chain, angles: Optional[Sequence[float]] = None) -> np.ndarray:
    """末端执行器世界位姿 (4x4)"""
    return link_world_transforms(chain, angles)[-1] @ chain.end_effector_offset


def end_effector_position(chain: Chain, angles: Optional[Sequence[float]] = None) -> np.ndarray:
    return end_effector_pose(chain, angles)[:3, 3].copy()


def joint_world_pivots_and_axes(chain: Chain, angles: Optional[Sequence[float]] = None
                                ) -> List[Tuple[np.ndarray, np.ndarray]]:
    """每个关节的世界枢轴与世界旋转轴"""
    return [joint.world_pivot_and_axis(world)
            for joint, world in zip(chain, link_world_transforms(chain, angles))]


def measure_error(chain: Chain, target: Sequence[float],
                  angles: Optional[Sequence[float]] = None) -> ErrorMeasurement:
    """末端执行器相对目标的位置误差（误差向量、各轴绝对误差、距离）"""
    target = np.asarray(target, dtype=np.float64)
    ee = end_effector_position(chain, angles)
    error = target - ee
    return ErrorMeasurement(
        error_vector=error,
        axis_errors=np.abs(error),
        distance=float(np.linalg.norm(error)),
        end_effector=ee,
        target=target,
    )
