"""
DH 参数解析
由 DH 参数表和基座参考坐标系，计算零位姿下每个关节在世界坐标系中的枢轴和旋转轴。

约定：表中第 i 行为 (alpha[i-1], a[i-1], d[i], theta[i])，角度单位为度，
    T_i = T_{i-1} · DH(0, d_i, a_{i-1}, alpha_{i-1})
    DH(θ, d, a, α) = Rz(θ) · Tz(d) · Tx(a) · Rx(α)
关节 i 绕 z_{i-1} 旋转：枢轴为 T_{i-1} 的原点，轴为 T_{i-1} 的 z 列。
"""
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from kinechain.errors import ConfigurationError
from kinechain.model.builder import JointDef, build_chain, DEFAULT_COLOCATION_TOLERANCE
from kinechain.model.chain import Chain
from kinechain.model.link import Link
from kinechain.utils import basis_frame, is_rigid


@dataclass(frozen=True)
class DHParam:
    """DH 参数表的一行"""
    alpha: float  # 连杆扭角 alpha[i-1]（度）
    a: float      # 连杆长度 a[i-1]
    d: float      # 连杆偏距 d[i]
    theta: float = 0.0  # 关节角 theta[i]（度），零位姿解析时不使用


@dataclass(frozen=True, eq=False)
class DHResolution:
    """零位姿下的解析结果：基座项 + 每个可驱动关节一项"""
    base_pivot: np.ndarray
    base_axis: np.ndarray
    pivots: Tuple[np.ndarray, ...]
    axes: Tuple[np.ndarray, ...]
    frames: Tuple[np.ndarray, ...]  # T_0 .. T_N

    def __len__(self):
        return len(self.pivots)


# 5 自由度全旋转关节机械臂
FIVE_DOF_ARM_DH: List[DHParam] = [
    DHParam(alpha=0.0,  a=0.0, d=0.0),
    DHParam(alpha=90.0, a=0.0, d=0.0),
    DHParam(alpha=0.0,  a=0.4, d=0.0),
    DHParam(alpha=0.0,  a=0.4, d=0.0),
    DHParam(alpha=90.0, a=0.0, d=0.3),
]

FIVE_DOF_ARM_LIMITS: List[Tuple[float, float]] = [
    (-180.0, 180.0),
    (-120.0, 120.0),
    (-120.0, 120.0),
    (-180.0, 180.0),
    (-180.0, 180.0),
]


def dh_transform(param: DHParam, theta: Optional[float] = None) -> np.ndarray:
    """
    单行 DH 变换 Rz(θ)·Tz(d)·Tx(a)·Rx(α)

    :param theta: 关节角（度），None 表示使用 param.theta
    :return: 4x4 变换矩阵
    """
    th = math.radians(param.theta if theta is None else theta)
    al = math.radians(param.alpha)
    cth, sth = math.cos(th), math.sin(th)
    cal, sal = math.cos(al), math.sin(al)
    return np.array([
        [cth, -sth * cal,  sth * sal, param.a * cth],
        [sth,  cth * cal, -cth * sal, param.a * sth],
        [0.0,        sal,        cal, param.d],
        [0.0,        0.0,        0.0, 1.0],
    ], dtype=np.float64)


def base_frame(origin: Sequence[float] = (0.0, 0.0, 0.0),
               x_axis: Sequence[float] = (1.0, 0.0, 0.0),
               z_axis: Sequence[float] = (0.0, 0.0, 1.0)) -> np.ndarray:
    """
    基座参考坐标系 T_0：宿主自行决定哪一个世界方向是 z0（第一个关节轴）、哪一个是 x0。

    :raises ConfigurationError: 轴为零向量或 x、z 平行
    """
    try:
        return basis_frame(origin, x_axis, z_axis)
    except ValueError as e:
        raise ConfigurationError(f"Degenerate DH base frame: {e}") from e


def dh_frames(table: Sequence[DHParam], base: np.ndarray) -> List[np.ndarray]:
    """
    零位姿下的累积坐标系 T_0 .. T_N

    :raises ConfigurationError: 某一行得到的旋转块不正交或行列式不为 1
    """
    base = np.asarray(base, dtype=np.float64)
    if not is_rigid(base):
        raise ConfigurationError("DH base frame is not a rigid transform")
    frames = [base]
    for i, param in enumerate(table):
        frame = frames[-1] @ dh_transform(param, theta=0.0)
        if not is_rigid(frame):
            raise ConfigurationError(f"DH row {param} yields a degenerate transform", joint_index=i + 1)
        frames.append(frame)
    return frames


def resolve_dh_chain(table: Sequence[DHParam], base: np.ndarray,
                     child_links: Sequence[str]) -> DHResolution:
    """
    :param table: N 行 DH 参数（每个可驱动关节一行）
    :param base: 基座参考坐标系 T_0
    :param child_links: 各关节的子连杆名称，数量必须等于 N
    :return: DHResolution
    """
    if len(table) != len(child_links):
        raise ConfigurationError(
            f"DH table has {len(table)} rows but {len(child_links)} child links were supplied")
    frames = dh_frames(table, base)
    pivots = tuple(frames[i][:3, 3].copy() for i in range(len(table)))
    axes = tuple(frames[i][:3, 2].copy() for i in range(len(table)))
    return DHResolution(
        base_pivot=frames[0][:3, 3].copy(),
        base_axis=frames[0][:3, 2].copy(),
        pivots=pivots,
        axes=axes,
        frames=tuple(frames),
    )


def joint_defs_from_dh(resolution: DHResolution, base_link: str, child_links: Sequence[str],
                       limits: Optional[Sequence[Tuple[float, float]]] = None) -> List[JointDef]:
    """
    把解析结果填入关节定义：1 个固定基座 + N 个旋转关节

    :param limits: 每个关节的限位（度），None 表示全部 [-180, 180]
    """
    if limits is not None and len(limits) != len(child_links):
        raise ConfigurationError(f"Expected {len(child_links)} limit pairs, got {len(limits)}")
    defs = [JointDef(child_link=base_link, parent_link=None,
                     pivot_world=resolution.base_pivot, axis_world=resolution.base_axis,
                     limits=(0.0, 0.0), name="base")]
    parent = base_link
    for i, child in enumerate(child_links):
        defs.append(JointDef(
            child_link=child,
            parent_link=parent,
            pivot_world=resolution.pivots[i],
            axis_world=resolution.axes[i],
            limits=(-180.0, 180.0) if limits is None else tuple(limits[i]),
            name=f"J{i + 1}",
        ))
        parent = child
    return defs


def links_from_dh(table: Sequence[DHParam], base: np.ndarray, base_link: str,
                  child_links: Sequence[str]) -> List[Link]:
    """宿主没有自己的连杆时，把每个连杆放在对应的 DH 坐标系上"""
    if len(table) != len(child_links):
        raise ConfigurationError(
            f"DH table has {len(table)} rows but {len(child_links)} child links were supplied")
    frames = dh_frames(table, base)
    names = [base_link] + list(child_links)
    return [Link(name, frame) for name, frame in zip(names, frames)]


def chain_from_dh(table: Sequence[DHParam], base: np.ndarray,
                  base_link: str = "base", child_links: Optional[Sequence[str]] = None,
                  links: Optional[Sequence[Link]] = None,
                  limits: Optional[Sequence[Tuple[float, float]]] = None,
                  end_effector_offset: Optional[np.ndarray] = None,
                  colocation_tolerance: float = DEFAULT_COLOCATION_TOLERANCE) -> Chain:
    """
    解析 DH 表并直接构建 Chain

    :param child_links: 子连杆名称，None 时自动命名为 link1..linkN
    :param links: 宿主提供的连杆参考位姿，None 时由 links_from_dh 生成
    """
    if child_links is None:
        child_links = [f"link{i + 1}" for i in range(len(table))]
    resolution = resolve_dh_chain(table, base, child_links)
    if links is None:
        links = links_from_dh(table, base, base_link, child_links)
    link_map = {link.name: link for link in links}
    defs = joint_defs_from_dh(resolution, base_link, child_links, limits)
    return build_chain(link_map, defs, end_effector_offset, colocation_tolerance)
