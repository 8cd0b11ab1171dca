"""Tests for frame/transform helpers."""

import numpy as np
import pytest

from kinechain.utils import (
    quaternion_to_rotation_matrix,
    make_transform,
    invert_transform,
    transform_point,
    transform_direction,
    axis_angle_matrix,
    rotation_about_point,
    normalize,
    basis_frame,
    is_rigid,
    signed_angle_about_axis,
)


class TestQuaternion:
    def test_identity(self):
        np.testing.assert_array_almost_equal(quaternion_to_rotation_matrix([1, 0, 0, 0]), np.eye(3))

    def test_unnormalized_input(self):
        # 绕 z 轴 90 度，未归一化
        rot = quaternion_to_rotation_matrix([2.0, 0.0, 0.0, 2.0])
        np.testing.assert_array_almost_equal(rot @ [1, 0, 0], [0, 1, 0])

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            quaternion_to_rotation_matrix([1, 0, 0])

    def test_zero_norm(self):
        with pytest.raises(ValueError):
            quaternion_to_rotation_matrix([0, 0, 0, 0])


class TestTransforms:
    def test_inverse_roundtrip(self):
        T = make_transform(axis_angle_matrix([0, 0, 1], 30.0), [1.0, 2.0, 3.0])
        np.testing.assert_array_almost_equal(T @ invert_transform(T), np.eye(4))

    def test_point_vs_direction(self):
        T = make_transform(None, [1.0, 0.0, 0.0])
        np.testing.assert_array_almost_equal(transform_point(T, [0, 1, 0]), [1, 1, 0])
        np.testing.assert_array_almost_equal(transform_direction(T, [0, 1, 0]), [0, 1, 0])

    def test_rotation_about_point_keeps_pivot(self):
        pivot = np.array([1.0, 2.0, 0.0])
        T = rotation_about_point([0, 0, 1], 90.0, pivot)
        np.testing.assert_array_almost_equal(transform_point(T, pivot), pivot)
        np.testing.assert_array_almost_equal(transform_point(T, [2.0, 2.0, 0.0]), [1.0, 3.0, 0.0])


class TestNormalizeAndBasis:
    def test_normalize_zero(self):
        with pytest.raises(ValueError):
            normalize([0.0, 0.0, 0.0])

    def test_basis_frame_orthogonalizes_x(self):
        T = basis_frame([0, 0, 1], [1.0, 0.0, 0.5], [0.0, 0.0, 2.0])
        np.testing.assert_array_almost_equal(T[:3, 0], [1, 0, 0])
        np.testing.assert_array_almost_equal(T[:3, 1], [0, 1, 0])
        np.testing.assert_array_almost_equal(T[:3, 3], [0, 0, 1])
        assert is_rigid(T)

    def test_basis_frame_parallel_axes(self):
        with pytest.raises(ValueError):
            basis_frame([0, 0, 0], [0, 0, 1], [0, 0, 1])


class TestIsRigid:
    def test_identity(self):
        assert is_rigid(np.eye(4))

    def test_scaled(self):
        T = np.eye(4)
        T[0, 0] = 2.0
        assert not is_rigid(T)

    def test_mirror(self):
        T = np.eye(4)
        T[2, 2] = -1.0
        assert not is_rigid(T)

    def test_nan(self):
        T = np.eye(4)
        T[0, 3] = np.nan
        assert not is_rigid(T)

    def test_wrong_shape(self):
        assert not is_rigid(np.eye(3))


class TestSignedAngle:
    def test_quarter_turn(self):
        z = np.array([0.0, 0.0, 1.0])
        assert signed_angle_about_axis(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]), z) == pytest.approx(90.0)
        assert signed_angle_about_axis(np.array([0, 1.0, 0]), np.array([1.0, 0, 0]), z) == pytest.approx(-90.0)

    def test_out_of_plane_components_ignored(self):
        z = np.array([0.0, 0.0, 1.0])
        angle = signed_angle_about_axis(np.array([1.0, 0, 5.0]), np.array([0, 1.0, -3.0]), z)
        assert angle == pytest.approx(90.0)

    def test_parallel_to_axis(self):
        z = np.array([0.0, 0.0, 1.0])
        assert signed_angle_about_axis(np.array([0, 0, 1.0]), np.array([1.0, 0, 0]), z) is None
