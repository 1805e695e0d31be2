"""
Tests for fit evaluation (residuals and RMSE).
"""

import logging
import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from geotransform.exceptions import FitError
from geotransform.transform import (
    Affine2D, FitEvaluator, FitReport, Helmert2D, Helmert3D, Rotation, Translation, residuals, rmse,
)
from geotransform.transform.evaluate import root_mean_square_error


class TestFitEvaluator:
    """Tests for FitEvaluator / TransformModel.rmse."""

    def test_hand_computed_rmse(self):
        """Translation over 3 points: sum of squares 0.02 over 2*(3-1) coordinates."""
        src = [(0, 0), (1, 0), (0, 1)]
        dst = [(1.1, 1.0), (1.9, 1.0), (1.0, 2.0)]
        report = FitEvaluator(Translation()).evaluate(src, dst)
        assert isinstance(report, FitReport)
        assert report.n_points == 3
        assert report.degrees_of_freedom == 4
        assert_allclose(report.residuals, [0.01, 0.01, 0.0], atol=1e-12)
        assert report.rmse == pytest.approx(math.sqrt(0.02 / 4))

    def test_model_rmse_delegates(self):
        src = [(0, 0), (1, 0), (0, 1)]
        dst = [(1.1, 1.0), (1.9, 1.0), (1.0, 2.0)]
        report = Translation().rmse(src, dst)
        assert report.rmse == pytest.approx(math.sqrt(0.005))

    def test_failed_compute_returns_none(self):
        assert FitEvaluator(Helmert2D()).evaluate([(0, 0)], [(1, 1)]) is None

    def test_exact_minimal_fit_is_zero(self):
        """n == minimum_points with an exact fit: rmse is 0, no division by zero."""
        report = FitEvaluator(Helmert2D()).evaluate([(0, 0), (1, 0)], [(3, 4), (3, 6)])
        assert report.degrees_of_freedom == 0
        assert report.rmse == 0.0

    def test_inexact_minimal_fit_warns(self, caplog):
        """Rotation cannot absorb a length change: residual left with no redundancy."""
        with caplog.at_level(logging.WARNING, logger="geotransform"):
            report = FitEvaluator(Rotation()).evaluate([(1, 0)], [(2, 0)])
        assert report.rmse == pytest.approx(math.sqrt(1.0 / 2.0))
        assert "No redundancy" in caplog.text

    def test_rmse_tracks_noise_level(self):
        rng = np.random.default_rng(0)
        src = rng.uniform(-100, 100, size=(400, 2))
        true = Helmert2D(5.0, -3.0, 1.2, 0.4)
        sigma = 0.05
        dst = true.transform_points(src) + rng.normal(0.0, sigma, size=src.shape)
        report = FitEvaluator(Helmert2D()).evaluate(src, dst)
        assert report.rmse == pytest.approx(sigma, rel=0.15)

    @pytest.mark.parametrize("true", [
        Translation(1.0, 2.0),
        Helmert2D(1.0, 2.0, 1.1, 0.2),
        Affine2D(1.0, 2.0, 1.1, 0.9, 0.2),
    ], ids=lambda m: type(m).__name__)
    def test_rmse_scales_with_noise(self, true):
        """Linear least squares: doubling the noise doubles the RMSE."""
        rng = np.random.default_rng(1)
        src = rng.uniform(-10, 10, size=(30, 2))
        noise = rng.normal(0.0, 0.01, size=src.shape)
        clean = true.transform_points(src)

        r1 = FitEvaluator(type(true)()).evaluate(src, clean + noise).rmse
        r2 = FitEvaluator(type(true)()).evaluate(src, clean + 2.0 * noise).rmse
        assert r2 == pytest.approx(2.0 * r1, rel=1e-6)

    def test_3d_dimension(self):
        rng = np.random.default_rng(2)
        src = rng.uniform(-10, 10, size=(10, 3))
        dst = Helmert3D(1.0, 2.0, 3.0, 1.0, 0.1, 0.2, 0.3).transform_points(src)
        report = FitEvaluator(Helmert3D()).evaluate(src, dst)
        assert report.degrees_of_freedom == 3 * (10 - 3)
        assert report.rmse == pytest.approx(0.0, abs=1e-9)


class TestHelpers:
    def test_rmse_tuple(self):
        value, res = rmse(Translation(), [(0, 0), (1, 1)], [(1, 1), (2, 2)])
        assert value == pytest.approx(0.0, abs=1e-12)
        assert res.shape == (2,)

    def test_rmse_raises_on_failed_fit(self):
        with pytest.raises(FitError):
            rmse(Affine2D(), [(0, 0)], [(0, 0)])

    def test_residuals_do_not_refit(self):
        model = Translation(1.0, 0.0)
        res = residuals(model, [(0, 0), (1, 1)], [(1, 0), (3, 1)])
        assert_allclose(res, [0.0, 1.0])
        assert model.tx == 1.0

    def test_residuals_shape_mismatch(self):
        with pytest.raises(ValueError):
            residuals(Translation(), [(0, 0)], [(0, 0), (1, 1)])

    def test_root_mean_square_error_zero_points(self):
        assert root_mean_square_error(np.zeros(0), 2, 1) == 0.0
