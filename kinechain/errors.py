"""
错误与求解事件

- ConfigurationError: 构建期错误，链不会被部分构建
- DegenerateGeometryWarning: 某关节在本次 sweep 中因几何奇异被跳过（可恢复）
- LimitSaturation: 关节新角度被限位截断（仅记录）
- NonConvergenceError: 严格模式下求解未收敛
"""
from dataclasses import dataclass
from typing import Optional


class ConfigurationError(ValueError):
    """
    链构建失败：缺少连杆、轴退化、枢轴不重合、DH 表与连杆数量不符等。
    joint_index 指出出错的关节定义（若与具体关节无关则为 None）。
    """

    def __init__(self, message: str, joint_index: Optional[int] = None):
        self.joint_index = joint_index
        if joint_index is not None:
            message = f"joint[{joint_index}]: {message}"
        super().__init__(message)


class NonConvergenceError(RuntimeError):
    """求解在 max_sweeps 内未达到阈值，或已停滞"""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


@dataclass(frozen=True)
class DegenerateGeometryWarning:
    joint_index: int
    sweep: int
    reason: str  # "pivot_at_end_effector" / "pivot_at_target" / "parallel_to_axis"


@dataclass(frozen=True)
class LimitSaturation:
    joint_index: int
    sweep: int
    requested: float  # 度
    applied: float    # 度，截断后的角度
