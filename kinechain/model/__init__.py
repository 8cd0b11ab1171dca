"""
模型层 (Model Layer)
连杆、关节与关节链；负责由 DH 参数表或直接给出的关节定义构建链，并校验结构不变量

导出：
- Link: 连杆参考位姿
- JointNode / FixedJoint / RevoluteJoint: 关节类型
- Chain: 基座 -> 末端的关节链
- JointDef / build_chain: 由关节定义构建链
- DHParam / resolve_dh_chain / chain_from_dh: DH 参数解析
"""

from .link import Link
from .joint import (
    JointNode,
    FixedJoint,
    RevoluteJoint
)
from .chain import Chain
from .builder import JointDef, build_chain
from .dh import (
    DHParam,
    DHResolution,
    FIVE_DOF_ARM_DH,
    FIVE_DOF_ARM_LIMITS,
    dh_transform,
    base_frame,
    dh_frames,
    resolve_dh_chain,
    joint_defs_from_dh,
    links_from_dh,
    chain_from_dh
)

__all__ = [
    'Link',
    'JointNode',
    'FixedJoint',
    'RevoluteJoint',
    'Chain',
    'JointDef',
    'build_chain',
    'DHParam',
    'DHResolution',
    'FIVE_DOF_ARM_DH',
    'FIVE_DOF_ARM_LIMITS',
    'dh_transform',
    'base_frame',
    'dh_frames',
    'resolve_dh_chain',
    'joint_defs_from_dh',
    'links_from_dh',
    'chain_from_dh'
]
