"""
CCD核心算法实现
单关节更新与一次完整 sweep（末端 -> 基座）
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from kinechain.errors import DegenerateGeometryWarning, LimitSaturation
from kinechain.model.chain import Chain
from kinechain.model.joint import RevoluteJoint
from kinechain.solver.forward import link_world_transforms, end_effector_position
from kinechain.utils import signed_angle_about_axis

logger = logging.getLogger(__name__)

SolverEvent = Union[DegenerateGeometryWarning, LimitSaturation]


@dataclass
class CCDSettings:
    """
    CCD 求解参数

    max_step_angle: 每个关节每次 sweep 的最大转角（度），限制收敛的角速度
    sweeps_per_tick: 每个 tick 的 sweep 次数，用 CPU 换收敛速度
    position_threshold: 收敛阈值（与连杆位姿同单位），用精度换终止速度
    max_sweeps: 单次求解的 sweep 上限，超过则报告未收敛
    min_step_angle: 小于该角度（度）的修正视为无需转动
    singularity_epsilon: 枢轴到末端/目标的向量短于该值时跳过该关节
    """
    max_step_angle: float = 2.0
    sweeps_per_tick: int = 4
    position_threshold: float = 0.005
    max_sweeps: int = 1000
    min_step_angle: float = 1e-3
    singularity_epsilon: float = 1e-4

    def __post_init__(self):
        if self.max_step_angle <= 0:
            raise ValueError(f"max_step_angle must be positive, got {self.max_step_angle}")
        if self.sweeps_per_tick < 1:
            raise ValueError(f"sweeps_per_tick must be at least 1, got {self.sweeps_per_tick}")
        if self.position_threshold <= 0:
            raise ValueError(f"position_threshold must be positive, got {self.position_threshold}")
        if self.max_sweeps < 1:
            raise ValueError(f"max_sweeps must be at least 1, got {self.max_sweeps}")
        if self.min_step_angle < 0 or self.singularity_epsilon <= 0:
            raise ValueError("min_step_angle must be >= 0 and singularity_epsilon > 0")

    @classmethod
    def from_dict(cls, config: Dict) -> 'CCDSettings':
        """从扁平配置字典读取，缺省项使用默认值"""
        defaults = cls.__dataclass_fields__
        return cls(
            max_step_angle=float(config.get('max_step_angle', defaults['max_step_angle'].default)),
            sweeps_per_tick=int(config.get('sweeps_per_tick', defaults['sweeps_per_tick'].default)),
            position_threshold=float(config.get('position_threshold', defaults['position_threshold'].default)),
            max_sweeps=int(config.get('max_sweeps', defaults['max_sweeps'].default)),
            min_step_angle=float(config.get('min_step_angle', defaults['min_step_angle'].default)),
            singularity_epsilon=float(config.get('singularity_epsilon', defaults['singularity_epsilon'].default)),
        )


@dataclass
class SweepResult:
    sweep: int
    error: float
    max_change: float  # 本次 sweep 中单个关节的最大实际转角（度）
    events: List[SolverEvent] = field(default_factory=list)


def build_ik_chain(chain: Chain) -> List[int]:
    """
    CCD 处理顺序：可驱动关节的链索引，末端 -> 基座
    """
    return list(reversed(chain.actuated_indices))


def ccd_joint_step(chain: Chain, index: int, target: np.ndarray, settings: CCDSettings,
                   sweep: int = 0) -> Tuple[float, Optional[SolverEvent]]:
    """
    对单个关节执行一次 CCD 更新

    :param index: 关节在链中的索引（必须是可驱动关节）
    :param target: 目标点（世界坐标）
    :return: (实际转过的角度, 事件或 None)
    """
    joint: RevoluteJoint = chain[index]
    transforms = link_world_transforms(chain)
    pivot, axis = joint.world_pivot_and_axis(transforms[index])
    ee = transforms[-1] @ chain.end_effector_offset
    to_end = ee[:3, 3] - pivot
    to_target = target - pivot

    eps = settings.singularity_epsilon
    if np.linalg.norm(to_end) < eps:
        return 0.0, DegenerateGeometryWarning(index, sweep, "pivot_at_end_effector")
    if np.linalg.norm(to_target) < eps:
        return 0.0, DegenerateGeometryWarning(index, sweep, "pivot_at_target")

    angle = signed_angle_about_axis(to_end / np.linalg.norm(to_end),
                                    to_target / np.linalg.norm(to_target), axis, eps=eps)
    if angle is None:
        return 0.0, DegenerateGeometryWarning(index, sweep, "parallel_to_axis")
    if abs(angle) < settings.min_step_angle:
        return 0.0, None

    step = float(np.clip(angle, -settings.max_step_angle, settings.max_step_angle))
    before = joint.angle
    requested, saturated = joint.apply_delta(step)
    applied = joint.angle - before
    if saturated:
        return applied, LimitSaturation(index, sweep, requested, joint.angle)
    return applied, None


def ccd_sweep(chain: Chain, target: np.ndarray, settings: CCDSettings, sweep: int = 0,
              ik_chain: Optional[List[int]] = None) -> SweepResult:
    """
    一次完整的 CCD sweep：从最靠近末端的关节开始，逐个向基座处理。
    每个关节都看到前面（更靠近末端）关节已更新后的位形。
    """
    target = np.asarray(target, dtype=np.float64)
    if ik_chain is None:
        ik_chain = build_ik_chain(chain)

    events: List[SolverEvent] = []
    max_change = 0.0
    for index in ik_chain:
        applied, event = ccd_joint_step(chain, index, target, settings, sweep)
        max_change = max(max_change, abs(applied))
        if event is not None:
            logger.debug("sweep %d: %s", sweep, event)
            events.append(event)

    error = float(np.linalg.norm(end_effector_position(chain) - target))
    return SweepResult(sweep=sweep, error=error, max_change=max_change, events=events)


def perturb_joint(chain: Chain, ik_chain: List[int], step: float) -> Optional[int]:
    """
    把最靠近基座、且转动 step 度后仍在限位内的关节转动 step 度（先试正方向）。
    用于离开末端、枢轴与目标共线时所有修正角都为 0 的位形；
    靠末端的关节在下一次 sweep 中先被处理，不会把这次扰动直接抵消。

    :param ik_chain: CCD 处理顺序（末端 -> 基座）
    :return: 被转动的关节索引，没有可转动的关节时为 None
    """
    for index in reversed(ik_chain):
        joint: RevoluteJoint = chain[index]
        lower, upper = joint.limits
        for delta in (step, -step):
            if lower <= joint.angle + delta <= upper:
                joint.apply_delta(delta)
                return index
    return None
