"""
关节类层次结构实现

关节只通过连杆名称引用父/子连杆，不持有对链 (Chain) 的反向引用；
链按索引持有关节。
"""
import numpy as np
from abc import ABC, abstractmethod
from typing_extensions import override
from typing import Optional, Tuple, List

from kinechain.utils import rotation_about_point, transform_point, transform_direction, normalize


class JointNode(ABC):
    """
    所有关节类型的抽象基类，定义求解器接口。
    """

    def __init__(self, name: str, parent_link: Optional[str], child_link: str,
                 pivot_local: np.ndarray, pivot_parent_local: np.ndarray, axis_local: np.ndarray):
        """
        初始化关节节点

        :param name: 关节名称
        :param parent_link: 父连杆名称，链的固定基座为 None
        :param child_link: 子连杆名称
        :param pivot_local: 铰接点在子连杆局部坐标系中的位置 (Vec3)
        :param pivot_parent_local: 铰接点在父连杆局部坐标系中的位置 (Vec3)
        :param axis_local: 旋转轴（子连杆局部坐标系，不能为零向量。程序自动归一化）
        """
        self.name = name
        self.parent_link = parent_link
        self.child_link = child_link
        self.pivot_local: np.ndarray = np.asarray(pivot_local, dtype=np.float64)
        self.pivot_parent_local: np.ndarray = np.asarray(pivot_parent_local, dtype=np.float64)
        try:
            self.axis_local: np.ndarray = normalize(axis_local, eps=1e-6)
        except ValueError:
            raise ValueError(f"Axis vector is too small to be normalized: {axis_local}") from None

    @abstractmethod
    def get_local_matrix(self, angle: Optional[float] = None) -> np.ndarray:
        """
        关节运动在子连杆坐标系中的变换（绕局部枢轴、局部轴旋转）。

        :param angle: 关节角（度），None 表示使用当前角度
        :return: 4x4 局部变换矩阵
        """
        pass

    @abstractmethod
    def apply_delta(self, delta: float) -> Tuple[float, bool]:
        """
        接收求解器增量，更新角度，执行限位检查。

        :param delta: 角度增量（度）
        :return: (截断前请求的新角度, 是否被限位截断)
        """
        pass

    @abstractmethod
    def get_dof(self) -> int:
        """
        返回自由度数量 (0 或 1)。
        """
        pass

    @abstractmethod
    def append_to_ik_chain(self, ik_chain: List[int], index: int):
        """
        将关节在链中的索引添加到IK链列表的末尾

        :param ik_chain: IK链索引列表（引用传递，直接修改）
        :param index: 本关节在链中的索引
        """
        pass

    @property
    def limits(self) -> Tuple[float, float]:
        return (0.0, 0.0)

    @property
    def angle(self) -> float:
        return 0.0

    def world_pivot_and_axis(self, child_world: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        由子连杆当前世界变换计算枢轴的世界位置与旋转轴的世界方向。
        绕 axis_local 的旋转不改变 axis_local 本身，所以任何关节角下结果都一致。
        """
        pivot = transform_point(child_world, self.pivot_local)
        axis = transform_direction(child_world, self.axis_local)
        return pivot, axis / np.linalg.norm(axis)

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name}>"


class RevoluteJoint(JointNode):
    """
    旋转关节 - 绕固定轴旋转的铰链
    """

    def __init__(self, name: str, parent_link: Optional[str], child_link: str,
                 pivot_local: np.ndarray, pivot_parent_local: np.ndarray, axis_local: np.ndarray,
                 limits: Tuple[float, float] = (-180.0, 180.0)):
        """
        :param limits: 约束范围 [min, max]（度），要求 min <= max
        """
        super().__init__(name, parent_link, child_link, pivot_local, pivot_parent_local, axis_local)
        lower, upper = float(limits[0]), float(limits[1])
        if lower > upper:
            raise ValueError(f"Lower limit {lower} is greater than upper limit {upper}")
        self._limits: Tuple[float, float] = (lower, upper)
        self._angle: float = self.clamp(0.0)

    @property
    @override
    def limits(self) -> Tuple[float, float]:
        return self._limits

    @property
    @override
    def angle(self) -> float:
        return self._angle

    def clamp(self, value: float) -> float:
        lower, upper = self._limits
        return float(min(max(value, lower), upper))

    def set_angle(self, value: float) -> bool:
        """
        直接设置角度（外部指令），超出限位时截断。

        :return: 是否被截断
        """
        clamped = self.clamp(value)
        self._angle = clamped
        return clamped != value

    def get_local_matrix(self, angle: Optional[float] = None) -> np.ndarray:
        """生成绕局部枢轴、局部 axis 旋转 angle 的矩阵"""
        if angle is None:
            angle = self._angle
        return rotation_about_point(self.axis_local, angle, self.pivot_local)

    def apply_delta(self, delta: float) -> Tuple[float, bool]:
        """更新角度，执行约束检查"""
        requested = self._angle + delta
        saturated = self.set_angle(requested)
        return requested, saturated

    def get_dof(self) -> int:
        return 1

    def append_to_ik_chain(self, ik_chain: List[int], index: int):
        """RevoluteJoint直接添加到IK链"""
        ik_chain.append(index)


class FixedJoint(JointNode):
    """
    固定关节 - 无变量的结构连接，链的基座总是固定关节
    限位恒为 [0, 0]，不参与IK
    """

    def get_local_matrix(self, angle: Optional[float] = None) -> np.ndarray:
        return np.identity(4, dtype=np.float64)

    def apply_delta(self, delta: float) -> Tuple[float, bool]:
        """无操作（固定关节无变量）"""
        return 0.0, delta != 0.0

    def get_dof(self) -> int:
        return 0

    def append_to_ik_chain(self, ik_chain: List[int], index: int):
        """FixedJoint跳过，不添加到IK链"""
        pass
