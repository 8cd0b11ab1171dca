"""
驱动目标接口（外部协作方边界）
求解器每个 tick 输出关节角向量，由外部驱动层（物理/电机）负责把目标角变成实际运动。
核心只下发指令，从不读取实际达到的角度。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from typing_extensions import override

from kinechain.model.chain import Chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriveSettings:
    """关节驱动的刚度/阻尼/力限，原样传给外部驱动层"""
    stiffness: float = 3000.0
    damping: float = 300.0
    force_limit: float = 1000.0

    @classmethod
    def from_dict(cls, config: Dict) -> 'DriveSettings':
        return cls(
            stiffness=float(config.get('stiffness', cls.stiffness)),
            damping=float(config.get('damping', cls.damping)),
            force_limit=float(config.get('force_limit', cls.force_limit)),
        )


@dataclass(frozen=True)
class JointCommand:
    joint_name: str
    target_angle: float  # 度
    lower: float
    upper: float
    stiffness: float
    damping: float
    force_limit: float


def build_commands(chain: Chain, drive: Optional[DriveSettings] = None,
                   angles: Optional[Sequence[float]] = None) -> List[JointCommand]:
    """
    为每个可驱动关节生成一条驱动指令

    :param angles: None 表示链上当前（指令）角度
    """
    drive = drive or DriveSettings()
    values = chain.angles if angles is None else np.asarray(angles, dtype=np.float64)
    commands = []
    for value, index in zip(values, chain.actuated_indices):
        joint = chain[index]
        lower, upper = joint.limits
        commands.append(JointCommand(
            joint_name=joint.name,
            target_angle=float(min(max(value, lower), upper)),
            lower=lower,
            upper=upper,
            stiffness=drive.stiffness,
            damping=drive.damping,
            force_limit=drive.force_limit,
        ))
    return commands


class JointDrive(ABC):
    """外部驱动层的抽象接口"""

    @abstractmethod
    def apply(self, commands: Sequence[JointCommand]):
        pass


class CommandRecorder(JointDrive):
    """
    纯运动学驱动：记录下发的指令，并认为实际角度等于指令角度。
    用于无物理引擎的离线求解和测试。
    """

    def __init__(self):
        self.history: List[List[JointCommand]] = []

    @override
    def apply(self, commands: Sequence[JointCommand]):
        self.history.append(list(commands))
        logger.debug("Recorded %d joint commands", len(commands))

    @property
    def last(self) -> Dict[str, float]:
        if not self.history:
            return {}
        return {cmd.joint_name: cmd.target_angle for cmd in self.history[-1]}
