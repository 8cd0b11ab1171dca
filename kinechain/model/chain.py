"""
关节链 (Chain)
按索引持有关节（基座 -> 末端），以及连杆参考位姿和末端执行器相对最后一个子连杆的固定偏移。
构建后拓扑不变，只有各关节的当前角度会被修改。
"""
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from kinechain.model.joint import JointNode, RevoluteJoint
from kinechain.model.link import Link

logger = logging.getLogger(__name__)


class Chain:

    def __init__(self, joints: Sequence[JointNode], links: Dict[str, Link],
                 end_effector_offset: Optional[np.ndarray] = None):
        self._joints: List[JointNode] = list(joints)
        self._links: Dict[str, Link] = dict(links)
        if end_effector_offset is None:
            end_effector_offset = np.identity(4, dtype=np.float64)
        self.end_effector_offset = np.array(end_effector_offset, dtype=np.float64)
        self.end_effector_offset.setflags(write=False)

        # 只包含 1-DoF 关节的索引，基座 -> 末端
        self._ik_chain: List[int] = []
        for index, joint in enumerate(self._joints):
            joint.append_to_ik_chain(self._ik_chain, index)

    def __len__(self):
        return len(self._joints)

    def __getitem__(self, index: int) -> JointNode:
        return self._joints[index]

    def __iter__(self):
        return iter(self._joints)

    def __repr__(self):
        return f"<Chain: {len(self._joints)} joints, {len(self._ik_chain)} actuated>"

    @property
    def joints(self) -> List[JointNode]:
        return list(self._joints)

    @property
    def links(self) -> Dict[str, Link]:
        return dict(self._links)

    def link(self, name: str) -> Link:
        return self._links[name]

    @property
    def actuated_indices(self) -> List[int]:
        return list(self._ik_chain)

    @property
    def joint_names(self) -> List[str]:
        """可驱动关节的名称，顺序与 angles 一致"""
        return [self._joints[i].name for i in self._ik_chain]

    @property
    def end_link(self) -> str:
        return self._joints[-1].child_link

    @property
    def angles(self) -> np.ndarray:
        """可驱动关节的当前角度（度）"""
        return np.array([self._joints[i].angle for i in self._ik_chain], dtype=np.float64)

    def full_angles(self, angles: Optional[Sequence[float]] = None) -> np.ndarray:
        """
        把按可驱动关节排列的角度向量展开为每个关节一个值（固定关节为 0）

        :param angles: None 表示当前角度
        """
        full = np.zeros(len(self._joints), dtype=np.float64)
        values = self.angles if angles is None else self._check_length(angles)
        for value, index in zip(values, self._ik_chain):
            full[index] = value
        return full

    def set_angles(self, angles: Sequence[float]) -> List[int]:
        """
        设置所有可驱动关节的角度，超出限位的值被截断。

        :return: 被截断的关节索引（链索引）
        """
        values = self._check_length(angles)
        saturated = []
        for value, index in zip(values, self._ik_chain):
            joint: RevoluteJoint = self._joints[index]
            if joint.set_angle(float(value)):
                saturated.append(index)
        if saturated:
            logger.debug("set_angles clamped joints %s to their limits", saturated)
        return saturated

    def jog(self, actuated_index: int, delta: float) -> float:
        """
        对单个可驱动关节施加角度增量（手动点动），结果截断在限位内。

        :param actuated_index: 在 angles 向量中的位置
        :param delta: 增量（度）
        :return: 截断后的新角度
        """
        joint: RevoluteJoint = self._joints[self._ik_chain[actuated_index]]
        joint.apply_delta(delta)
        return joint.angle

    def zero_all(self):
        """所有可驱动关节回零（0 不在限位内时取最近的限位）"""
        for index in self._ik_chain:
            self._joints[index].set_angle(0.0)

    def _check_length(self, angles: Sequence[float]) -> np.ndarray:
        values = np.asarray(angles, dtype=np.float64).reshape(-1)
        if values.shape[0] != len(self._ik_chain):
            raise ValueError(f"Expected {len(self._ik_chain)} joint angles, got {values.shape[0]}")
        return values
