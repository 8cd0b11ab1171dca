"""
无界面 CCD 求解入口

    python -m kinechain.run_solver config.json

config.json:
    chain_path, targets_path, output_path, solve_mode (0: 关键帧求解 + 关节插值, 1: 逐帧 tick),
    max_step_angle, sweeps_per_tick, position_threshold, max_sweeps,
    stiffness, damping, force_limit, log_level, log_file
"""
import json
import logging
import os
import sys
import time
from typing import Dict, List

import numpy as np

from kinechain.errors import ConfigurationError
from kinechain.model import Chain
from kinechain.solver import CCDSettings, CCDSolver, CommandRecorder, DriveSettings, build_commands
from kinechain.data_io import (
    load_chain,
    load_targets,
    interpolate_targets,
    interpolate_joint_angles,
    frame_record,
    export_result
)
from kinechain.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def run_solver(config_path: str = "config.json") -> int:
    # 1. 加载配置
    if not os.path.exists(config_path):
        print(f"❌ 找不到配置文件: {config_path}")
        return 1

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    setup_logging(config.get('log_level', 'WARNING'), config.get('log_file'))

    # 相对路径以配置文件所在目录为基准
    base_dir = os.path.dirname(os.path.abspath(config_path))
    chain_path = os.path.join(base_dir, config.get('chain_path', 'chain.json'))
    targets_path = os.path.join(base_dir, config.get('targets_path', 'targets.json'))
    output_path = os.path.join(base_dir, config.get('output_path', 'animation.json'))
    solve_mode = config.get('solve_mode', 1)  # 默认逐帧

    print("----------- CCD Solver Headless -----------")
    print(f"配置加载: {config_path}")

    try:
        settings = CCDSettings.from_dict(config)
        drive = DriveSettings.from_dict(config)
    except ValueError as e:
        print(f"❌ 求解参数无效: {e}")
        return 1

    # 2. 构建关节链
    print(f"正在加载关节链: {chain_path} ...")
    try:
        chain = load_chain(chain_path)
    except (OSError, ConfigurationError) as e:
        print(f"❌ 关节链构建失败: {e}")
        return 1
    print(f"关节链构建成功，共 {len(chain)} 个关节，其中 {len(chain.actuated_indices)} 个可驱动")

    # 3. 加载目标轨迹
    print(f"正在加载目标轨迹: {targets_path} ...")
    try:
        keyframes = load_targets(targets_path)
    except (OSError, ValueError, KeyError) as e:
        print(f"❌ 目标轨迹加载失败: {e}")
        return 1
    total_frames = keyframes[-1]['frame']
    print(f"轨迹加载成功，共 {len(keyframes)} 个关键帧，总长 {total_frames} 帧")

    # 4. 开始求解
    solver = CCDSolver(chain, settings)
    start_time = time.time()
    if solve_mode == 0:
        print(">>> 模式 0: 关键帧求解 + 关节插值")
        solved_frames = solve_mode_0(solver, keyframes, total_frames)
    else:
        print(">>> 模式 1: 目标插值 + 逐帧 tick")
        solved_frames = solve_mode_1(solver, keyframes, total_frames, CommandRecorder(), drive)
    print(f"求解完成，耗时: {time.time() - start_time:.2f} 秒")

    # 5. 导出结果
    print(f"正在导出到: {output_path} ...")
    export_result(solved_frames, output_path)
    print("✅ 任务完成！")
    return 0


def solve_mode_1(solver: CCDSolver, keyframes: List[Dict], total_frames: int,
                 drive_layer: CommandRecorder, drive: DriveSettings) -> List[Dict]:
    """模式1：逐帧插值目标，每帧一个 tick；目标移动时重新开始求解"""
    chain: Chain = solver.chain
    solved_frames = []
    current_target = None

    for frame in range(total_frames + 1):
        if frame % 10 == 0:
            sys.stdout.write(f"\r进度: {frame}/{total_frames}")
            sys.stdout.flush()

        target = interpolate_targets(keyframes, frame)
        if current_target is None or not np.allclose(target, current_target):
            solver.select_target(target)
            current_target = target

        report = solver.tick()
        drive_layer.apply(build_commands(chain, drive, report.angles))
        solved_frames.append(frame_record(frame, chain.joint_names, report.angles,
                                          target, report.error, report.status.value))

    print()
    return solved_frames


def solve_mode_0(solver: CCDSolver, keyframes: List[Dict], total_frames: int) -> List[Dict]:
    """模式0：关键帧求解（以上一关键帧结果为初值）+ 关节角插值"""
    chain: Chain = solver.chain
    keyframe_results = {}
    keyframe_indices = [kf['frame'] for kf in keyframes]

    # 1. 求解关键帧
    chain.zero_all()
    for kf in keyframes:
        frame = kf['frame']
        sys.stdout.write(f"\r正在求解关键帧: {frame}")
        sys.stdout.flush()

        report = solver.solve(kf['pos'])
        if not report.converged:
            logger.warning("Keyframe %d did not converge (%s), error %.5f", frame, report.reason, report.error)
        keyframe_results[frame] = frame_record(frame, chain.joint_names, report.angles,
                                               kf['pos'], report.error, report.status.value)

    print("\n正在进行插值...")

    # 2. 插值中间帧
    solved_frames = []
    for frame in range(total_frames + 1):
        if frame in keyframe_results:
            solved_frames.append(keyframe_results[frame])
            continue
        if frame < keyframe_indices[0]:
            frame_data = dict(keyframe_results[keyframe_indices[0]], frame=frame)
        elif frame > keyframe_indices[-1]:
            frame_data = dict(keyframe_results[keyframe_indices[-1]], frame=frame)
        else:
            for i in range(len(keyframe_indices) - 1):
                if keyframe_indices[i] < frame < keyframe_indices[i + 1]:
                    frame_data = interpolate_joint_angles(
                        keyframe_results[keyframe_indices[i]],
                        keyframe_results[keyframe_indices[i + 1]],
                        frame)
                    break
        solved_frames.append(frame_data)

    return solved_frames


def main() -> int:
    if len(sys.argv) > 1:
        return run_solver(sys.argv[1])
    return run_solver()


if __name__ == "__main__":
    sys.exit(main())
