"""
Tests for the 7-parameter 3D similarity transform.

These tests verify:
    - Rotation matrix construction and angle extraction (x-y-z convention)
    - Exact recovery from minimal and redundant point sets
    - Inverse with 1/scale
    - Rejection of collinear control points
"""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from geotransform.transform import Helmert3D, angles_from_rotation_matrix, rotation_matrix_xyz
from geotransform.transform.helmert3d import similarity_closed_form, validate_rotation_matrix
from geotransform.types import Point3D


@pytest.fixture
def cloud():
    rng = np.random.default_rng(11)
    return rng.uniform(-10.0, 10.0, size=(12, 3))


class TestRotationMatrix:
    """Tests for the omega/phi/kappa rotation matrix."""

    def test_identity(self):
        assert_allclose(rotation_matrix_xyz(0, 0, 0), np.eye(3), atol=1e-15)

    def test_pure_kappa(self):
        R = rotation_matrix_xyz(0, 0, math.pi / 2)
        assert_allclose(R @ [1, 0, 0], [0, 1, 0], atol=1e-12)

    def test_order_is_x_then_y_then_z(self):
        o, p, k = 0.1, -0.2, 0.3
        Rx = rotation_matrix_xyz(o, 0, 0)
        Ry = rotation_matrix_xyz(0, p, 0)
        Rz = rotation_matrix_xyz(0, 0, k)
        assert_allclose(rotation_matrix_xyz(o, p, k), Rx @ Ry @ Rz, atol=1e-15)

    def test_is_valid_rotation(self):
        assert validate_rotation_matrix(rotation_matrix_xyz(0.4, 1.1, -2.0))

    @pytest.mark.parametrize("angles", [(0.1, -0.2, 0.3), (-2.5, 0.7, 3.0), (1.0, -1.2, -0.4)])
    def test_angle_round_trip(self, angles):
        R = rotation_matrix_xyz(*angles)
        assert_allclose(angles_from_rotation_matrix(R), angles, atol=1e-12)

    def test_gimbal_lock(self):
        """phi = pi/2: kappa is set to 0, the rebuilt matrix is unchanged."""
        R = rotation_matrix_xyz(0.3, math.pi / 2, 0.2)
        omega, phi, kappa = angles_from_rotation_matrix(R)
        assert phi == pytest.approx(math.pi / 2)
        assert kappa == 0.0
        assert_allclose(rotation_matrix_xyz(omega, phi, kappa), R, atol=1e-7)


class TestHelmert3D:
    """Tests for the Helmert 3D model."""

    def test_forward_equation(self):
        trf = Helmert3D(1.0, 2.0, 3.0, 2.0, 0.0, 0.0, math.pi / 2)
        p = trf.transform((1.0, 0.0, 0.0))
        assert isinstance(p, Point3D)
        assert_allclose(p, [1.0, 4.0, 3.0], atol=1e-12)

    def test_recover_parameters(self, cloud):
        true = Helmert3D(10.0, -5.0, 3.0, 1.5, 0.1, -0.2, 0.3)
        trf = Helmert3D()
        assert trf.compute(cloud, true.transform_points(cloud))
        assert_allclose(
            list(trf.parameters().values()),
            list(true.parameters().values()),
            atol=1e-9,
        )

    def test_recover_large_rotation(self, cloud):
        true = Helmert3D(-100.0, 40.0, 7.0, 0.75, 2.0, 0.5, -2.8)
        trf = Helmert3D()
        assert trf.compute(cloud, true.transform_points(cloud))
        assert_allclose(trf.transform_points(cloud), true.transform_points(cloud), atol=1e-8)
        assert trf.scale == pytest.approx(0.75)

    def test_minimum_three_points(self):
        src = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        true = Helmert3D(1.0, 1.0, 1.0, 2.0, 0.2, 0.1, -0.3)
        trf = Helmert3D()
        assert trf.minimum_points() == 3
        assert not trf.compute(src[:2], true.transform_points(src[:2]))
        assert trf.compute(src, true.transform_points(src))
        assert_allclose(trf.rotation_matrix(), true.rotation_matrix(), atol=1e-9)

    def test_collinear_rejected(self):
        src = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [2.0, 2.0, 2.0], [3.0, 3.0, 3.0]])
        trf = Helmert3D()
        assert not trf.compute(src, src + 1.0)
        assert trf.is_identity()

    def test_noise_is_absorbed(self, cloud):
        rng = np.random.default_rng(5)
        true = Helmert3D(1.0, 2.0, 3.0, 1.01, 0.05, 0.02, -0.1)
        dst = true.transform_points(cloud) + rng.normal(0.0, 1e-3, size=cloud.shape)
        trf = Helmert3D()
        assert trf.compute(cloud, dst)
        assert trf.scale == pytest.approx(1.01, abs=1e-3)
        assert trf.kappa == pytest.approx(-0.1, abs=1e-3)

    def test_round_trip(self, cloud):
        trf = Helmert3D(5.0, 6.0, 7.0, 3.0, 0.3, -0.4, 1.0)
        back = trf.transform_points(trf.transform_points(cloud), direct=False)
        assert_allclose(back, cloud, atol=1e-9)

    def test_inverse_uses_reciprocal_scale(self, cloud):
        trf = Helmert3D(5.0, 6.0, 7.0, 4.0, 0.3, -0.4, 1.0)
        inv = trf.inverse()
        assert inv.scale == pytest.approx(0.25)
        assert_allclose(inv.transform_points(trf.transform_points(cloud)), cloud, atol=1e-9)

    def test_from_rotation_matrix(self):
        R = rotation_matrix_xyz(0.2, 0.3, 0.4)
        trf = Helmert3D.from_rotation_matrix(R, (1.0, 2.0, 3.0), 2.0)
        assert_allclose(trf.rotation_matrix(), R, atol=1e-12)
        assert_allclose(trf.translation(), [1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            Helmert3D.from_rotation_matrix(2.0 * R)

    def test_matrix_4x4(self):
        trf = Helmert3D(1.0, 2.0, 3.0, 2.0, 0.1, 0.2, 0.3)
        T = trf.matrix()
        p = np.array([1.0, -1.0, 0.5])
        assert_allclose((T @ np.append(p, 1.0))[:3], trf.transform(p), atol=1e-12)

    def test_wrong_dimension_rejected(self):
        trf = Helmert3D()
        assert not trf.compute([(0, 0), (1, 0), (0, 1)], [(0, 0), (1, 0), (0, 1)])
        with pytest.raises(ValueError):
            trf.transform_points(np.zeros((3, 2)))

    def test_closed_form_guards_reflection(self, cloud):
        mirrored = cloud * np.array([1.0, 1.0, -1.0])
        scale, R, _ = similarity_closed_form(cloud, mirrored)
        assert np.linalg.det(R) == pytest.approx(1.0)
