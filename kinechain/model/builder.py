"""
链构建器
由关节定义（世界坐标下的枢轴/轴，或直接给出的局部锚点）生成 Chain，并校验结构不变量。
任何一个关节定义出错都会抛出 ConfigurationError，不会返回部分构建的链。
"""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

import numpy as np

from kinechain.errors import ConfigurationError
from kinechain.model.chain import Chain
from kinechain.model.joint import JointNode, FixedJoint, RevoluteJoint
from kinechain.model.link import Link
from kinechain.utils import is_rigid

logger = logging.getLogger(__name__)

DEFAULT_COLOCATION_TOLERANCE = 1e-3
AXIS_EPSILON = 1e-6


@dataclass
class JointDef:
    """
    一个关节的定义（基座 -> 末端顺序中的一项）

    枢轴给出 pivot_world，或者给出 pivot_local + pivot_parent_local；
    轴给出 axis_world，或者 axis_local（子连杆坐标系）。
    """
    child_link: str
    parent_link: Optional[str] = None
    pivot_world: Optional[Sequence[float]] = None
    axis_world: Optional[Sequence[float]] = (1.0, 0.0, 0.0)
    limits: Tuple[float, float] = (-170.0, 170.0)
    pivot_local: Optional[Sequence[float]] = None
    pivot_parent_local: Optional[Sequence[float]] = None
    axis_local: Optional[Sequence[float]] = None
    name: Optional[str] = None


def build_chain(links: Mapping[str, Link],
                joint_defs: Sequence[JointDef],
                end_effector_offset: Optional[np.ndarray] = None,
                colocation_tolerance: float = DEFAULT_COLOCATION_TOLERANCE) -> Chain:
    """
    :param links: 连杆名称 -> Link（参考位姿）
    :param joint_defs: 关节定义，第一项为固定基座
    :param end_effector_offset: 末端执行器相对最后一个子连杆的 4x4 变换，None 表示重合
    :param colocation_tolerance: 父/子两侧锚点在世界坐标下允许的最大距离
    :return: Chain
    :raises ConfigurationError: 连杆缺失、轴退化、限位非法、锚点不重合、拓扑不是一条路径
    """
    if not joint_defs:
        raise ConfigurationError("Chain needs at least a base joint definition")

    joints = [_build_joint(links, joint_defs, index, colocation_tolerance)
              for index in range(len(joint_defs))]

    if end_effector_offset is not None:
        end_effector_offset = np.asarray(end_effector_offset, dtype=np.float64)
        if not is_rigid(end_effector_offset):
            raise ConfigurationError("End-effector offset is not a rigid transform")

    used = {joint.child_link: links[joint.child_link] for joint in joints}
    for joint in joints:
        if joint.parent_link is not None:
            used[joint.parent_link] = links[joint.parent_link]

    chain = Chain(joints, used, end_effector_offset)
    logger.info("Built chain of %d joints (%d actuated), tip link '%s'",
                len(chain), len(chain.actuated_indices), chain.end_link)
    return chain


def _lookup(links: Mapping[str, Link], name: Optional[str], index: int, role: str) -> Link:
    if name is None or name not in links:
        raise ConfigurationError(f"Missing {role} link '{name}'", joint_index=index)
    link = links[name]
    if not is_rigid(link.transform):
        raise ConfigurationError(f"{role.capitalize()} link '{name}' has a non-rigid reference transform",
                                 joint_index=index)
    return link


def _build_joint(links: Mapping[str, Link], joint_defs: Sequence[JointDef], index: int,
                 tolerance: float) -> JointNode:
    jd = joint_defs[index]
    child = _lookup(links, jd.child_link, index, "child")
    name = jd.name or f"joint_{index}"

    if index == 0:
        # 基座总是固定的，忽略给定的限位和轴
        if jd.parent_link is not None:
            _lookup(links, jd.parent_link, index, "parent")
        pivot_world = child.position if jd.pivot_world is None else np.asarray(jd.pivot_world, dtype=np.float64)
        pivot_local = child.to_local_point(pivot_world)
        pivot_parent_local = (pivot_world if jd.parent_link is None
                              else links[jd.parent_link].to_local_point(pivot_world))
        return FixedJoint(name, jd.parent_link, jd.child_link, pivot_local, pivot_parent_local,
                          np.array([0.0, 0.0, 1.0]))

    if jd.parent_link is None:
        raise ConfigurationError("Only the base joint may have no parent link", joint_index=index)
    parent = _lookup(links, jd.parent_link, index, "parent")
    previous_child = joint_defs[index - 1].child_link
    if jd.parent_link != previous_child:
        raise ConfigurationError(
            f"Parent link '{jd.parent_link}' is not the previous joint's child '{previous_child}'",
            joint_index=index)

    pivot_local, pivot_parent_local = _resolve_anchors(jd, parent, child, index)

    mismatch = float(np.linalg.norm(parent.to_world_point(pivot_parent_local)
                                    - child.to_world_point(pivot_local)))
    if mismatch > tolerance:
        raise ConfigurationError(
            f"Anchor mismatch {mismatch:.4f} exceeds tolerance {tolerance:.4f} "
            f"between '{jd.parent_link}' and '{jd.child_link}'", joint_index=index)

    if jd.axis_local is not None:
        axis_local = np.asarray(jd.axis_local, dtype=np.float64)
    elif jd.axis_world is not None:
        axis_local = child.to_local_direction(jd.axis_world)
    else:
        raise ConfigurationError("Joint axis is not defined", joint_index=index)
    if not np.all(np.isfinite(axis_local)) or np.linalg.norm(axis_local) < AXIS_EPSILON:
        raise ConfigurationError(f"Degenerate joint axis {axis_local}", joint_index=index)

    lower, upper = float(jd.limits[0]), float(jd.limits[1])
    if lower > upper:
        raise ConfigurationError(f"Lower limit {lower} is greater than upper limit {upper}", joint_index=index)
    if lower == 0.0 and upper == 0.0:
        return FixedJoint(name, jd.parent_link, jd.child_link, pivot_local, pivot_parent_local, axis_local)
    return RevoluteJoint(name, jd.parent_link, jd.child_link, pivot_local, pivot_parent_local, axis_local,
                         limits=(lower, upper))


def _resolve_anchors(jd: JointDef, parent: Link, child: Link, index: int):
    if jd.pivot_world is not None:
        pivot_world = np.asarray(jd.pivot_world, dtype=np.float64)
        if not np.all(np.isfinite(pivot_world)):
            raise ConfigurationError(f"Non-finite pivot {pivot_world}", joint_index=index)
        pivot_local = (child.to_local_point(pivot_world) if jd.pivot_local is None
                       else np.asarray(jd.pivot_local, dtype=np.float64))
        pivot_parent_local = (parent.to_local_point(pivot_world) if jd.pivot_parent_local is None
                              else np.asarray(jd.pivot_parent_local, dtype=np.float64))
        return pivot_local, pivot_parent_local

    if jd.pivot_local is None:
        raise ConfigurationError("Joint needs pivot_world or pivot_local", joint_index=index)
    pivot_local = np.asarray(jd.pivot_local, dtype=np.float64)
    if jd.pivot_parent_local is None:
        pivot_parent_local = parent.to_local_point(child.to_world_point(pivot_local))
    else:
        pivot_parent_local = np.asarray(jd.pivot_parent_local, dtype=np.float64)
    return pivot_local, pivot_parent_local
