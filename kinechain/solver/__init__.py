"""
求解层 (Solver Layer)
纯数学计算，负责正向运动学、CCD 单关节更新与 sweep、按 tick 推进的求解状态机，以及驱动指令输出
"""

from .forward import (
    ErrorMeasurement,
    link_world_transforms,
    end_effector_pose,
    end_effector_position,
    joint_world_pivots_and_axes,
    measure_error
)
from .ccd_core import (
    CCDSettings,
    SweepResult,
    build_ik_chain,
    ccd_joint_step,
    ccd_sweep,
    perturb_joint
)
from .solve_ccd import CCDSolver, SolverState, SolverStatus, TickReport
from .actuation import DriveSettings, JointCommand, JointDrive, CommandRecorder, build_commands

__all__ = [
    'ErrorMeasurement',
    'link_world_transforms',
    'end_effector_pose',
    'end_effector_position',
    'joint_world_pivots_and_axes',
    'measure_error',
    'CCDSettings',
    'SweepResult',
    'build_ik_chain',
    'ccd_joint_step',
    'ccd_sweep',
    'perturb_joint',
    'CCDSolver',
    'SolverState',
    'SolverStatus',
    'TickReport',
    'DriveSettings',
    'JointCommand',
    'JointDrive',
    'CommandRecorder',
    'build_commands'
]
