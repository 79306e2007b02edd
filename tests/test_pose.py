"""Tests for SE3 poses and rotation helpers."""

import math

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from pose_extrapolator.geometry import SE3, UNIT_Z, exp_so3, log_so3, rotation_between


class TestSE3:
    """Test suite for SE3 class."""

    def test_identity(self):
        """Test identity transform leaves points unchanged."""
        pose = SE3.identity()
        points = np.array([[1.0, 2.0, 3.0], [-1.0, 0.0, 4.0]])

        np.testing.assert_allclose(pose.transform_points(points), points)
        np.testing.assert_allclose(pose.quaternion, [1.0, 0.0, 0.0, 0.0])

    def test_invalid_translation_shape(self):
        """Test that a non-3D translation is rejected."""
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=Rotation.identity(), translation=np.zeros(4))

    def test_invalid_rotation_type(self):
        """Test that a raw matrix is not accepted as rotation."""
        with pytest.raises(TypeError):
            SE3(rotation=np.eye(3), translation=np.zeros(3))

    def test_from_quaternion_wxyz(self):
        """Test quaternion order is (w, x, y, z)."""
        half = math.sqrt(0.5)
        pose = SE3.from_quaternion(
            qw=half, qx=0.0, qy=0.0, qz=half, translation=np.array([1.0, 0.0, 0.0])
        )

        np.testing.assert_allclose(
            pose.rotation.as_rotvec(), [0.0, 0.0, math.pi / 2], atol=1e-12
        )
        np.testing.assert_allclose(pose.quaternion, [half, 0.0, 0.0, half])

    def test_compose_and_inverse(self):
        """Test that T @ T^-1 is the identity."""
        pose = SE3(
            rotation=Rotation.from_rotvec([0.1, -0.2, 0.3]),
            translation=np.array([1.0, 2.0, 3.0]),
        )

        assert (pose @ pose.inverse()).is_close(SE3.identity(), atol=1e-12)
        assert (pose.inverse() @ pose).is_close(SE3.identity(), atol=1e-12)

    def test_compose_applies_rotation_to_translation(self):
        """Test composition order T_A_C = T_A_B @ T_B_C."""
        T_a_b = SE3(
            rotation=Rotation.from_rotvec([0.0, 0.0, math.pi / 2]),
            translation=np.array([1.0, 0.0, 0.0]),
        )
        T_b_c = SE3.from_translation(np.array([1.0, 0.0, 0.0]))

        T_a_c = T_a_b @ T_b_c

        np.testing.assert_allclose(T_a_c.translation, [1.0, 1.0, 0.0], atol=1e-12)

    def test_matrix_round_trip(self):
        """Test conversion to and from a 4x4 matrix."""
        pose = SE3(
            rotation=Rotation.from_rotvec([0.3, 0.2, 0.1]),
            translation=np.array([4.0, 5.0, 6.0]),
        )

        assert SE3.from_matrix(pose.to_matrix()).is_close(pose, atol=1e-12)

    def test_position_is_a_copy(self):
        """Test that mutating position does not change the pose."""
        pose = SE3.from_translation(np.array([1.0, 2.0, 3.0]))
        position = pose.position
        position[0] = 100.0

        assert pose.translation[0] == 1.0


class TestRotationHelpers:
    """Test suite for exp/log maps and rotation_between."""

    def test_exp_log_round_trip(self):
        """Test exp and log are inverse for angles below pi."""
        omega = np.array([0.2, -0.5, 0.7])

        np.testing.assert_allclose(log_so3(exp_so3(omega)), omega, atol=1e-12)

    def test_exp_of_zero_is_identity(self):
        """Test zero rotation vector."""
        assert exp_so3(np.zeros(3)).magnitude() == pytest.approx(0.0)

    def test_rotation_between_maps_direction(self):
        """Test rotation_between maps the source onto the target direction."""
        source = np.array([1.0, 2.0, 3.0])

        rotation = rotation_between(source, UNIT_Z)

        np.testing.assert_allclose(
            rotation.apply(source / np.linalg.norm(source)), UNIT_Z, atol=1e-12
        )

    def test_rotation_between_parallel(self):
        """Test parallel vectors give the identity."""
        rotation = rotation_between(np.array([0.0, 0.0, 9.8]), UNIT_Z)

        assert rotation.magnitude() == pytest.approx(0.0, abs=1e-12)

    def test_rotation_between_antiparallel(self):
        """Test antiparallel vectors give a half turn."""
        rotation = rotation_between(-UNIT_Z, UNIT_Z)

        assert rotation.magnitude() == pytest.approx(math.pi)
        np.testing.assert_allclose(rotation.apply(-UNIT_Z), UNIT_Z, atol=1e-12)

    def test_rotation_between_zero_vector(self):
        """Test degenerate input gives the identity."""
        rotation = rotation_between(np.zeros(3), UNIT_Z)

        assert rotation.magnitude() == pytest.approx(0.0)
