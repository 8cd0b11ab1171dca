"""
数据交换功能实现
关节链定义、目标轨迹的读取，以及求解结果的导出（JSON）
"""
import json
import os
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R

from kinechain.errors import ConfigurationError
from kinechain.model import Chain, JointDef, Link, DHParam, build_chain, base_frame, chain_from_dh
from kinechain.utils import make_transform, quaternion_to_rotation_matrix


def load_chain(json_path: str) -> Chain:
    """
    从chain.json加载关节链定义并构建Chain

    :param json_path: chain.json文件路径
    :return: Chain
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return chain_from_dict(data)


def _link_from_dict(item: Dict) -> Link:
    position = np.array(item.get('position', [0.0, 0.0, 0.0]), dtype=np.float64)
    if item.get('quaternion') is not None:
        return Link.from_pose(item['name'], position, np.array(item['quaternion'], dtype=np.float64))
    if item.get('euler') is not None:
        # 度，XYZ内旋顺序
        rot = R.from_euler('XYZ', item['euler'], degrees=True).as_matrix()
        return Link(item['name'], make_transform(rot, position))
    return Link.from_pose(item['name'], position)


def _end_effector_offset(data: Dict) -> Optional[np.ndarray]:
    ee = data.get('end_effector')
    if ee is None:
        return None
    rot = None
    if ee.get('quaternion') is not None:
        rot = quaternion_to_rotation_matrix(ee['quaternion'])
    return make_transform(rot, ee.get('offset', [0.0, 0.0, 0.0]))


def _optional_vec(item: Dict, key: str) -> Optional[np.ndarray]:
    value = item.get(key)
    return None if value is None else np.array(value, dtype=np.float64)


def chain_from_dict(data: Dict) -> Chain:
    """
    chain.json 结构：
        links: [{name, position, quaternion | euler}]
        joints: [{parent, child, pivot, axis, limits, ...}]  直接给出关节
        或 dh: {base_link, links, base_origin, base_x, base_z, table, limits}
        end_effector: {offset, quaternion}（可选）
    """
    try:
        links = {item['name']: _link_from_dict(item) for item in data.get('links', [])}
        tolerance = float(data.get('colocation_tolerance', 1e-3))
        ee_offset = _end_effector_offset(data)

        if 'dh' in data:
            dh = data['dh']
            table = [DHParam(alpha=float(row['alpha']), a=float(row['a']), d=float(row['d']),
                             theta=float(row.get('theta', 0.0)))
                     for row in dh['table']]
            base = base_frame(dh.get('base_origin', [0.0, 0.0, 0.0]),
                              dh.get('base_x', [1.0, 0.0, 0.0]),
                              dh.get('base_z', [0.0, 0.0, 1.0]))
            limits = dh.get('limits')
            return chain_from_dh(
                table, base,
                base_link=dh.get('base_link', 'base'),
                child_links=dh.get('links'),
                links=list(links.values()) or None,
                limits=None if limits is None else [tuple(pair) for pair in limits],
                end_effector_offset=ee_offset,
                colocation_tolerance=tolerance,
            )

        if 'joints' not in data:
            raise ConfigurationError("Chain definition needs either 'joints' or 'dh'")

        joint_defs = []
        for item in data['joints']:
            joint_defs.append(JointDef(
                child_link=item['child'],
                parent_link=item.get('parent'),
                pivot_world=_optional_vec(item, 'pivot'),
                axis_world=_optional_vec(item, 'axis'),
                limits=tuple(item.get('limits', (-170.0, 170.0))),
                pivot_local=_optional_vec(item, 'pivot_local'),
                pivot_parent_local=_optional_vec(item, 'pivot_parent_local'),
                axis_local=_optional_vec(item, 'axis_local'),
                name=item.get('name'),
            ))
        return build_chain(links, joint_defs, ee_offset, tolerance)
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Malformed chain definition: {e!r}") from e


def load_targets(json_path: str) -> List[Dict]:
    """
    从targets.json加载目标轨迹

    :param json_path: targets.json文件路径
    :return: 关键帧列表，每个元素为 {"frame": int, "pos": [x,y,z]}，按帧号排序
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    keyframes = []
    for item in data:
        keyframes.append({
            'frame': int(item['frame']),
            'pos': np.array(item['pos'], dtype=np.float64),
        })

    if not keyframes:
        raise ValueError(f"No keyframes in {json_path}")
    keyframes.sort(key=lambda kf: kf['frame'])
    return keyframes


def _interpolation_alpha(start_frame: int, end_frame: int, frame: int) -> float:
    if end_frame == start_frame:
        return 0.0
    alpha = (frame - start_frame) / (end_frame - start_frame)
    return max(0.0, min(1.0, alpha))


def interpolate_targets(keyframes: List[Dict], frame: int) -> np.ndarray:
    """
    在关键帧之间对目标位置做线性插值

    :param keyframes: 关键帧列表（已排序）
    :param frame: 当前帧号
    :return: 目标点 (Vec3)
    """
    if frame <= keyframes[0]['frame']:
        return keyframes[0]['pos'].copy()
    if frame >= keyframes[-1]['frame']:
        return keyframes[-1]['pos'].copy()

    start_kf, end_kf = keyframes[0], keyframes[-1]
    for i in range(len(keyframes) - 1):
        if keyframes[i]['frame'] <= frame < keyframes[i + 1]['frame']:
            start_kf, end_kf = keyframes[i], keyframes[i + 1]
            break

    alpha = _interpolation_alpha(start_kf['frame'], end_kf['frame'], frame)
    return (1.0 - alpha) * start_kf['pos'] + alpha * end_kf['pos']


def interpolate_joint_angles(start_frame_data: Dict, end_frame_data: Dict, frame: int) -> Dict:
    """
    在两个已求解的关键帧之间对关节角做线性插值

    :param start_frame_data: {'frame': int, 'joints': {name: angle}}
    :param end_frame_data: 同上
    :return: 插值后的帧数据（error/status 不插值，标记为 interpolated）
    """
    alpha = _interpolation_alpha(start_frame_data['frame'], end_frame_data['frame'], frame)
    joints = {}
    for name, start_angle in start_frame_data['joints'].items():
        end_angle = end_frame_data['joints'].get(name, start_angle)
        joints[name] = (1.0 - alpha) * start_angle + alpha * end_angle
    return {'frame': frame, 'joints': joints, 'status': 'interpolated'}


def frame_record(frame: int, joint_names: Sequence[str], angles: Sequence[float],
                 target: Optional[np.ndarray] = None, error: Optional[float] = None,
                 status: Optional[str] = None) -> Dict:
    """把一帧的求解状态整理为可导出的字典"""
    record = {
        'frame': frame,
        'joints': {name: float(angle) for name, angle in zip(joint_names, angles)},
    }
    if target is not None:
        record['target'] = [float(v) for v in target]
    if error is not None:
        record['error'] = float(error)
    if status is not None:
        record['status'] = status
    return record


def export_result(solved_frames: List[Dict], output_path: str):
    """
    导出动画 JSON: {"frames": [{frame, joints: {name: angle}, target, error, status}]}
    """
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    output = {'frames': solved_frames}
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
