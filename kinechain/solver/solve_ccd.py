"""
CCD求解器实现
按 tick 推进的状态机：IDLE -> SOLVING -> CONVERGED / NON_CONVERGED

每个 tick 最多执行 sweeps_per_tick 次 sweep，每次 sweep 后重新计算末端误差。
选择新目标会直接丢弃当前求解状态（放弃并重新开始）。
"""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from kinechain.errors import NonConvergenceError
from kinechain.model.chain import Chain
from kinechain.solver.ccd_core import CCDSettings, SolverEvent, build_ik_chain, ccd_sweep, perturb_joint
from kinechain.solver.forward import end_effector_position

logger = logging.getLogger(__name__)


class SolverStatus(Enum):
    IDLE = "idle"
    SOLVING = "solving"
    CONVERGED = "converged"
    NON_CONVERGED = "non_converged"

    @property
    def is_active(self) -> bool:
        return self is SolverStatus.SOLVING


@dataclass
class SolverState:
    """单次求解的临时状态，选择新目标时重置"""
    target: np.ndarray
    target_index: Optional[int] = None
    sweeps: int = 0
    error: float = float('inf')
    status: SolverStatus = SolverStatus.SOLVING
    reason: Optional[str] = None  # 未收敛原因: "max_sweeps" / "stalled"
    perturbed: bool = False  # 本次求解是否已用过一次共线扰动


@dataclass
class TickReport:
    status: SolverStatus
    angles: np.ndarray
    error: Optional[float]
    sweeps: int
    target: Optional[np.ndarray] = None
    reason: Optional[str] = None
    events: List[SolverEvent] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status is SolverStatus.CONVERGED


class CCDSolver:
    """
    CCD 逆运动学求解器。链通过构造参数注入；求解器是链上关节角的唯一写入者。

    :param chain: 要驱动的关节链
    :param settings: 求解参数
    :param targets: 可选的预设目标点列表，配合 select_target_index 使用
    """

    def __init__(self, chain: Chain, settings: Optional[CCDSettings] = None,
                 targets: Optional[Sequence[Sequence[float]]] = None):
        self.chain = chain
        self.settings = settings or CCDSettings()
        self.targets: List[np.ndarray] = [np.asarray(t, dtype=np.float64) for t in (targets or [])]
        self.state: Optional[SolverState] = None
        self._ik_chain = build_ik_chain(chain)
        self._lock = threading.RLock()

    @property
    def status(self) -> SolverStatus:
        return SolverStatus.IDLE if self.state is None else self.state.status

    @property
    def error(self) -> Optional[float]:
        return None if self.state is None else self.state.error

    @property
    def current_target_index(self) -> Optional[int]:
        return None if self.state is None else self.state.target_index

    def select_target(self, target: Sequence[float], target_index: Optional[int] = None) -> SolverStatus:
        """
        选择目标点并开始求解（丢弃之前的求解状态）
        """
        target = np.asarray(target, dtype=np.float64).reshape(-1)
        if target.shape != (3,) or not np.all(np.isfinite(target)):
            raise ValueError(f"Target must be a finite 3D point, got {target}")
        with self._lock:
            self.state = SolverState(target=target, target_index=target_index)
            self.state.error = float(np.linalg.norm(end_effector_position(self.chain) - target))
            if self.state.error < self.settings.position_threshold:
                self.state.status = SolverStatus.CONVERGED
            logger.info("Moving toward target %s (error %.4f, %s)",
                        target_index if target_index is not None else np.round(target, 4),
                        self.state.error, self.state.status.value)
            return self.state.status

    def select_target_index(self, index: int) -> SolverStatus:
        """从预设目标列表中选择"""
        if not 0 <= index < len(self.targets):
            raise IndexError(f"Target index {index} out of range (have {len(self.targets)} targets)")
        return self.select_target(self.targets[index], target_index=index)

    def cancel(self):
        with self._lock:
            self.state = None

    def tick(self) -> TickReport:
        """
        推进一个 tick：在 SOLVING 状态下最多执行 sweeps_per_tick 次 sweep。
        非 SOLVING 状态下不修改任何关节角，只返回当前状态。
        """
        with self._lock:
            state = self.state
            if state is None or not state.status.is_active:
                return self._report([])

            events: List[SolverEvent] = []
            for _ in range(self.settings.sweeps_per_tick):
                state.sweeps += 1
                result = ccd_sweep(self.chain, state.target, self.settings, state.sweeps, self._ik_chain)
                events.extend(result.events)
                state.error = result.error

                if result.error < self.settings.position_threshold:
                    state.status = SolverStatus.CONVERGED
                    logger.info("Converged after %d sweeps (error %.5f)", state.sweeps, state.error)
                    break
                if result.max_change == 0.0 and not self._escape_stall(state):
                    self._give_up(state, "stalled")
                    break
                if state.sweeps >= self.settings.max_sweeps:
                    self._give_up(state, "max_sweeps")
                    break
            return self._report(events)

    def solve(self, target: Sequence[float], strict: bool = False) -> TickReport:
        """
        阻塞求解：选择目标后不断 tick，直到离开 SOLVING 状态。
        max_sweeps 保证循环有界。

        :param strict: 为 True 时未收敛抛出 NonConvergenceError
        """
        self.select_target(target)
        events: List[SolverEvent] = []
        report = self.tick()
        events.extend(report.events)
        while report.status.is_active:
            report = self.tick()
            events.extend(report.events)
        report.events = events
        if strict and report.status is SolverStatus.NON_CONVERGED:
            raise NonConvergenceError(
                f"Did not converge ({report.reason}) after {report.sweeps} sweeps, error {report.error:.5f}",
                report)
        return report

    def _escape_stall(self, state: SolverState) -> bool:
        """
        sweep 没有转动任何关节时，每次求解允许扰动一次，以离开共线奇异位形。

        :return: 是否进行了扰动（False 表示应判为停滞）
        """
        if state.perturbed:
            return False
        state.perturbed = True
        index = perturb_joint(self.chain, self._ik_chain, self.settings.max_step_angle)
        if index is None:
            return False
        logger.debug("sweep %d moved no joint, nudged joint %d by %.3f deg",
                     state.sweeps, index, self.settings.max_step_angle)
        return True

    def _give_up(self, state: SolverState, reason: str):
        state.status = SolverStatus.NON_CONVERGED
        state.reason = reason
        logger.warning("Did not converge (%s) after %d sweeps, error %.5f", reason, state.sweeps, state.error)

    def _report(self, events: List[SolverEvent]) -> TickReport:
        state = self.state
        if state is None:
            return TickReport(SolverStatus.IDLE, self.chain.angles, None, 0, events=events)
        return TickReport(
            status=state.status,
            angles=self.chain.angles,
            error=state.error,
            sweeps=state.sweeps,
            target=state.target.copy(),
            reason=state.reason,
            events=events,
        )
