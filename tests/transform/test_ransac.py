"""
Tests for the generic RANSAC loop.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from geotransform.config import GeoTransformConfig, RansacConfig, ransac_kwargs
from geotransform.transform import Affine2D, Helmert3D, Translation, ransac
from geotransform.transform.ransac import _required_iter_for_confidence
from geotransform.types import RansacResult


def _synthetic(model, n_in=120, n_out=40, noise=0.3, seed=0):
    rng = np.random.default_rng(seed)
    pts0 = rng.uniform([0, 0], [640, 480], size=(n_in, 2))
    pts1 = model.transform_points(pts0) + rng.normal(0.0, noise, size=pts0.shape)
    o0 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))
    o1 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))
    return np.vstack([pts0, o0]), np.vstack([pts1, o1])


class TestIterationBound:
    def test_all_inliers(self):
        assert _required_iter_for_confidence(p_all_inliers=0.99, inlier_ratio=1.0, sample_size=3) == 1

    def test_no_inliers(self):
        assert _required_iter_for_confidence(p_all_inliers=0.99, inlier_ratio=0.0, sample_size=3) >= 10**9

    def test_half_inliers(self):
        # log(0.01) / log(1 - 0.5**3) = 34.5
        assert _required_iter_for_confidence(p_all_inliers=0.99, inlier_ratio=0.5, sample_size=3) == 35

    def test_invalid_sample_size(self):
        with pytest.raises(ValueError):
            _required_iter_for_confidence(p_all_inliers=0.99, inlier_ratio=0.5, sample_size=0)


class TestRansac:
    """RANSAC recovers a model when outliers are present."""

    def test_affine_with_outliers(self):
        true = Affine2D.from_coefficients(1.05, 0.02, -0.01, 0.98, 15.0, -8.0)
        src, dst = _synthetic(true)

        res = ransac(Affine2D, src, dst, tau=3.0, seed=42)
        assert isinstance(res, RansacResult)
        assert res.inliers.shape == (160,)
        assert res.inliers[:120].sum() >= 110
        assert res.inliers[120:].sum() <= 2
        assert res.num_inliers == int(res.inliers.sum())
        assert res.rms_error < 1.0
        assert res.threshold == 3.0
        assert_allclose(res.model.coefficients()[:4], true.coefficients()[:4], atol=1e-2)
        assert_allclose(res.model.coefficients()[4:], true.coefficients()[4:], atol=1.0)

    def test_adaptive_stop(self):
        true = Translation(4.0, -2.0)
        src, dst = _synthetic(true, n_in=100, n_out=10)
        res = ransac(Translation, src, dst, tau=2.0, max_iters=500, seed=1)
        assert res is not None
        assert res.iterations < 500
        assert res.model.tx == pytest.approx(4.0, abs=0.1)

    def test_deterministic_with_seed(self):
        true = Affine2D(3.0, 1.0, 1.1, 0.9, 0.1)
        src, dst = _synthetic(true, seed=3)
        a = ransac(Affine2D, src, dst, seed=7)
        b = ransac(Affine2D, src, dst, seed=7)
        assert np.array_equal(a.inliers, b.inliers)
        assert a.iterations == b.iterations

    def test_factory_with_options(self):
        true = Affine2D(3.0, 1.0, 1.1, 0.9, 0.1)
        src, dst = _synthetic(true, seed=4)
        res = ransac(lambda: Affine2D(strict=True), src, dst, seed=0)
        assert res is not None
        assert res.model.strict

    def test_3d_model(self):
        rng = np.random.default_rng(9)
        true = Helmert3D(10.0, -4.0, 2.0, 1.2, 0.1, -0.3, 0.5)
        src = rng.uniform(-50, 50, size=(40, 3))
        dst = true.transform_points(src)
        dst[:5] += 25.0
        res = ransac(Helmert3D, src, dst, tau=0.5, seed=2)
        assert res is not None
        assert not res.inliers[:5].any()
        assert res.inliers[5:].all()
        assert res.model.scale == pytest.approx(1.2)

    def test_too_few_points(self):
        assert ransac(Affine2D, [(0, 0), (1, 1)], [(0, 0), (1, 1)]) is None

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            ransac(Affine2D, np.zeros((5, 2)), np.zeros((4, 2)))

    def test_invalid_confidence(self):
        with pytest.raises(ValueError):
            ransac(Affine2D, np.zeros((5, 2)), np.zeros((5, 2)), confidence=1.0)

    def test_seed_from_config(self):
        true = Affine2D(3.0, 1.0, 1.1, 0.9, 0.1)
        src, dst = _synthetic(true, seed=5)
        config = GeoTransformConfig(ransac=RansacConfig(tau=2.0, seed=13))
        a = ransac(Affine2D, src, dst, **ransac_kwargs(config))
        b = ransac(Affine2D, src, dst, **ransac_kwargs(config))
        assert a.threshold == 2.0
        assert np.array_equal(a.inliers, b.inliers)
