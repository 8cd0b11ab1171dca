"""
测试共用的关节链
"""
import numpy as np
import pytest

from kinechain.model import JointDef, Link, build_chain, base_frame, chain_from_dh, FIVE_DOF_ARM_DH
from kinechain.utils import translation_matrix


def make_planar_chain(shoulder_limits=(-180.0, 180.0), elbow_limits=(-180.0, 180.0), tip=1.0):
    """
    平面两连杆：两个关节都绕 z 轴，连杆长度均为 1，末端在零位时位于 (1 + tip, 0, 0)
    """
    links = {
        'base': Link.from_pose('base', [0.0, 0.0, 0.0]),
        'upper': Link.from_pose('upper', [0.0, 0.0, 0.0]),
        'fore': Link.from_pose('fore', [1.0, 0.0, 0.0]),
    }
    defs = [
        JointDef(child_link='base', name='base'),
        JointDef(child_link='upper', parent_link='base', pivot_world=(0.0, 0.0, 0.0),
                 axis_world=(0.0, 0.0, 1.0), limits=shoulder_limits, name='shoulder'),
        JointDef(child_link='fore', parent_link='upper', pivot_world=(1.0, 0.0, 0.0),
                 axis_world=(0.0, 0.0, 1.0), limits=elbow_limits, name='elbow'),
    ]
    offset = translation_matrix([tip, 0.0, 0.0]) if tip else None
    return build_chain(links, defs, offset)


@pytest.fixture
def planar_chain():
    return make_planar_chain()


@pytest.fixture
def five_dof_chain():
    return chain_from_dh(FIVE_DOF_ARM_DH, base_frame())


@pytest.fixture
def planar_chain_dict():
    return {
        'links': [
            {'name': 'base', 'position': [0.0, 0.0, 0.0]},
            {'name': 'upper', 'position': [0.0, 0.0, 0.0]},
            {'name': 'fore', 'position': [1.0, 0.0, 0.0]},
        ],
        'joints': [
            {'name': 'base', 'child': 'base'},
            {'name': 'shoulder', 'parent': 'base', 'child': 'upper',
             'pivot': [0.0, 0.0, 0.0], 'axis': [0.0, 0.0, 1.0], 'limits': [-180, 180]},
            {'name': 'elbow', 'parent': 'upper', 'child': 'fore',
             'pivot': [1.0, 0.0, 0.0], 'axis': [0.0, 0.0, 1.0], 'limits': [-150, 150]},
        ],
        'end_effector': {'offset': [1.0, 0.0, 0.0]},
    }


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def make_planar():
    return make_planar_chain
