"""Tests for DH table resolution and DH-built chains."""

import numpy as np
import pytest

from kinechain.errors import ConfigurationError
from kinechain.model import (
    DHParam,
    FIVE_DOF_ARM_DH,
    FIVE_DOF_ARM_LIMITS,
    FixedJoint,
    RevoluteJoint,
    base_frame,
    chain_from_dh,
    dh_frames,
    dh_transform,
    joint_defs_from_dh,
    resolve_dh_chain,
)
from kinechain.solver import end_effector_pose, end_effector_position, joint_world_pivots_and_axes


class TestDHTransform:
    def test_zero_row_is_identity(self):
        np.testing.assert_array_almost_equal(dh_transform(DHParam(0.0, 0.0, 0.0)), np.eye(4))

    def test_link_length_and_offset(self):
        T = dh_transform(DHParam(alpha=0.0, a=0.4, d=0.3))
        np.testing.assert_array_almost_equal(T[:3, 3], [0.4, 0.0, 0.3])

    def test_twist_rotates_z_about_x(self):
        T = dh_transform(DHParam(alpha=90.0, a=0.0, d=0.0))
        np.testing.assert_array_almost_equal(T[:3, 2], [0.0, -1.0, 0.0])

    def test_theta_override(self):
        T = dh_transform(DHParam(alpha=0.0, a=1.0, d=0.0, theta=45.0), theta=90.0)
        np.testing.assert_array_almost_equal(T[:3, 3], [0.0, 1.0, 0.0])

    def test_row_is_frozen(self):
        row = DHParam(0.0, 0.0, 0.0)
        with pytest.raises(AttributeError):
            row.a = 1.0


class TestResolution:
    def test_twisted_row_makes_next_axis_orthogonal(self):
        table = [DHParam(0.0, 0.0, 0.0), DHParam(90.0, 0.0, 0.0), DHParam(0.0, 0.4, 0.0)]
        resolution = resolve_dh_chain(table, base_frame(), ['l1', 'l2', 'l3'])
        np.testing.assert_array_almost_equal(resolution.axes[0], [0, 0, 1])
        np.testing.assert_array_almost_equal(resolution.axes[1], [0, 0, 1])
        assert abs(np.dot(resolution.axes[1], resolution.axes[2])) < 1e-9
        np.testing.assert_array_almost_equal(resolution.axes[2], [0, -1, 0])

    def test_pivots_follow_frame_origins(self):
        resolution = resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), [f"l{i}" for i in range(5)])
        np.testing.assert_array_almost_equal(resolution.pivots[3], [0.4, 0.0, 0.0])
        np.testing.assert_array_almost_equal(resolution.pivots[4], [0.8, 0.0, 0.0])
        assert len(resolution) == 5
        assert len(resolution.frames) == 6

    def test_base_frame_is_respected(self):
        # z0 沿世界 y（y 轴朝上的场景）
        base = base_frame([0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])
        resolution = resolve_dh_chain(FIVE_DOF_ARM_DH[:1], base, ['l1'])
        np.testing.assert_array_almost_equal(resolution.base_pivot, [0.0, 1.0, 0.0])
        np.testing.assert_array_almost_equal(resolution.axes[0], [0.0, 1.0, 0.0])

    def test_resolution_is_repeatable(self):
        names = [f"l{i}" for i in range(5)]
        first = resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), names)
        second = resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), names)
        for a, b in zip(first.pivots + first.axes, second.pivots + second.axes):
            np.testing.assert_array_equal(a, b)

    def test_row_count_mismatch(self):
        with pytest.raises(ConfigurationError):
            resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), ['only_one'])

    def test_degenerate_base_frame(self):
        with pytest.raises(ConfigurationError):
            base_frame([0, 0, 0], [0, 0, 1], [0, 0, 1])

    def test_non_rigid_base(self):
        base = np.eye(4)
        base[1, 1] = 3.0
        with pytest.raises(ConfigurationError):
            dh_frames(FIVE_DOF_ARM_DH, base)

    def test_limit_count_mismatch(self):
        resolution = resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), [f"l{i}" for i in range(5)])
        with pytest.raises(ConfigurationError):
            joint_defs_from_dh(resolution, 'base', [f"l{i}" for i in range(5)], limits=[(-10, 10)])


class TestChainFromDH:
    def test_structure(self, five_dof_chain):
        assert len(five_dof_chain) == 6
        assert isinstance(five_dof_chain[0], FixedJoint)
        assert all(isinstance(j, RevoluteJoint) for j in five_dof_chain.joints[1:])
        assert five_dof_chain.joint_names == ['J1', 'J2', 'J3', 'J4', 'J5']
        assert five_dof_chain.end_link == 'link5'
        assert five_dof_chain[1].limits == (-180.0, 180.0)

    def test_zero_pose_end_effector(self, five_dof_chain):
        np.testing.assert_array_almost_equal(end_effector_position(five_dof_chain), [0.8, -0.3, 0.0])

    def test_world_axes_match_resolution(self, five_dof_chain):
        resolution = resolve_dh_chain(FIVE_DOF_ARM_DH, base_frame(), [f"link{i + 1}" for i in range(5)])
        pivots_axes = joint_world_pivots_and_axes(five_dof_chain)
        for i in range(5):
            pivot, axis = pivots_axes[i + 1]
            np.testing.assert_array_almost_equal(pivot, resolution.pivots[i])
            np.testing.assert_array_almost_equal(axis, resolution.axes[i])

    def test_forward_kinematics_matches_dh_product(self, five_dof_chain, rng):
        for _ in range(10):
            angles = rng.uniform(-100.0, 100.0, size=5)
            expected = base_frame()
            for row, theta in zip(FIVE_DOF_ARM_DH, angles):
                expected = expected @ dh_transform(row, theta=theta)
            np.testing.assert_array_almost_equal(end_effector_pose(five_dof_chain, angles), expected)

    def test_custom_limits_and_names(self):
        chain = chain_from_dh(FIVE_DOF_ARM_DH, base_frame(), base_link='root',
                              child_links=['a', 'b', 'c', 'd', 'e'], limits=FIVE_DOF_ARM_LIMITS)
        assert chain[0].child_link == 'root'
        assert chain[2].limits == (-120.0, 120.0)
        assert chain[2].parent_link == 'a'
        assert chain.end_link == 'e'

    def test_anchors_coincide_for_every_joint(self):
        table = [DHParam(0.0, 0.0, 0.0), DHParam(90.0, 0.0, 0.0), DHParam(0.0, 0.4, 0.0)]
        for rows in (table, FIVE_DOF_ARM_DH):
            chain = chain_from_dh(rows, base_frame([0.1, 0.2, 0.3], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]))
            for joint in chain.joints[1:]:
                parent_side = chain.link(joint.parent_link).to_world_point(joint.pivot_parent_local)
                child_side = chain.link(joint.child_link).to_world_point(joint.pivot_local)
                np.testing.assert_allclose(parent_side, child_side, atol=1e-9)

    def test_construction_is_repeatable(self):
        first = chain_from_dh(FIVE_DOF_ARM_DH, base_frame(), limits=FIVE_DOF_ARM_LIMITS)
        second = chain_from_dh(FIVE_DOF_ARM_DH, base_frame(), limits=FIVE_DOF_ARM_LIMITS)
        assert len(first) == len(second)
        for a, b in zip(first, second):
            assert (a.name, a.parent_link, a.child_link, a.limits) == (b.name, b.parent_link, b.child_link, b.limits)
            np.testing.assert_array_equal(a.pivot_local, b.pivot_local)
            np.testing.assert_array_equal(a.pivot_parent_local, b.pivot_parent_local)
            np.testing.assert_array_equal(a.axis_local, b.axis_local)
