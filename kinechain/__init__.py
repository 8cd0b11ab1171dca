"""
kinechain: 由 DH 参数表或关节定义构建串联关节链，并用 CCD 逆运动学驱动末端到达目标点

- model: 连杆、关节、关节链与 DH 解析
- solver: 正向运动学、CCD 求解器、驱动指令
- data_io: JSON 数据交换
"""

from .errors import (
    ConfigurationError,
    NonConvergenceError,
    DegenerateGeometryWarning,
    LimitSaturation
)
from .model import Chain, JointDef, Link, DHParam, build_chain, chain_from_dh, base_frame
from .solver import CCDSettings, CCDSolver, SolverStatus, end_effector_position, measure_error

__version__ = "0.1.0"

__all__ = [
    'ConfigurationError',
    'NonConvergenceError',
    'DegenerateGeometryWarning',
    'LimitSaturation',
    'Chain',
    'JointDef',
    'Link',
    'DHParam',
    'build_chain',
    'chain_from_dh',
    'base_frame',
    'CCDSettings',
    'CCDSolver',
    'SolverStatus',
    'end_effector_position',
    'measure_error'
]
