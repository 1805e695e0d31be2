"""
Tests for configuration loading, saving and validation.
"""

import dataclasses
import logging

import pytest
import yaml

from geotransform.config import (
    EstimationConfig,
    GeoTransformConfig,
    RansacConfig,
    SolverConfig,
    make_solver,
    model_kwargs,
    ransac_kwargs,
    setup_logging,
)
from geotransform.exceptions import ConfigError


class TestDefaults:
    def test_default_values(self):
        config = GeoTransformConfig()
        assert config.solver.method == "svd"
        assert config.solver.rcond is None
        assert config.estimation.strict is False
        assert config.estimation.max_condition == 1e12
        assert config.ransac.tau == 3.0
        assert config.log_level == "WARNING"

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            GeoTransformConfig().log_level = "DEBUG"  # type: ignore[misc]


class TestYaml:
    """YAML round trip and partial files."""

    def test_round_trip(self, tmp_path):
        config = GeoTransformConfig(
            solver=SolverConfig(method="cholesky", rcond=1e-10),
            estimation=EstimationConfig(strict=True, max_condition=1e8, helmert3d_tolerance=1e-10),
            ransac=RansacConfig(tau=1.5, max_iters=100, confidence=0.995, seed=None),
            log_level="DEBUG",
        )
        path = tmp_path / "geotransform.yaml"
        config.to_yaml(path)
        assert GeoTransformConfig.from_yaml(path) == config

    def test_partial_file(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"solver": {"method": "qr"}}))
        config = GeoTransformConfig.from_yaml(path)
        assert config.solver.method == "qr"
        assert config.ransac == RansacConfig()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert GeoTransformConfig.from_yaml(path) == GeoTransformConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GeoTransformConfig.from_yaml(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("solver: [unclosed")
        with pytest.raises(ConfigError):
            GeoTransformConfig.from_yaml(path)


class TestValidation:
    """Invalid values raise ConfigError (a ValueError)."""

    @pytest.mark.parametrize("data", [
        {"solver": {"method": "gauss"}},
        {"solver": {"rcond": -1.0}},
        {"estimation": {"max_condition": 0.5}},
        {"estimation": {"helmert3d_max_iterations": -1}},
        {"ransac": {"tau": 0.0}},
        {"ransac": {"confidence": 1.0}},
        {"ransac": {"max_iters": 0}},
        {"log_level": "LOUD"},
        {"unknown_section": {}},
        {"solver": {"colour": "red"}},
    ])
    def test_invalid(self, data):
        with pytest.raises(ConfigError):
            GeoTransformConfig.from_dict(data)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            SolverConfig(method="gauss")

    def test_non_mapping(self):
        with pytest.raises(ConfigError):
            GeoTransformConfig.from_dict(["svd"])  # type: ignore[arg-type]


class TestHelpers:
    def test_make_solver(self):
        solver = make_solver(GeoTransformConfig(solver=SolverConfig(method="lu", rcond=1e-8)))
        assert solver.method == "lu"
        assert solver.rcond == 1e-8

    def test_model_kwargs(self):
        kwargs = model_kwargs(GeoTransformConfig(estimation=EstimationConfig(strict=True, max_condition=1e6)))
        assert kwargs["strict"] is True
        assert kwargs["max_condition"] == 1e6
        assert kwargs["solver"].method == "svd"

    def test_setup_logging_idempotent(self):
        logger = setup_logging("debug")
        n_handlers = len(logger.handlers)
        assert setup_logging(logging.INFO) is logger
        assert len(logger.handlers) == n_handlers
        assert logger.level == logging.INFO

    def test_ransac_kwargs(self):
        config = GeoTransformConfig(ransac=RansacConfig(tau=1.5, max_iters=50, confidence=0.9, seed=11))
        assert ransac_kwargs(config) == {"tau": 1.5, "max_iters": 50, "confidence": 0.9, "seed": 11}

    def test_zero_rcond_matches_solver(self):
        """rcond == 0 is accepted by both the config and the solver."""
        config = GeoTransformConfig(solver=SolverConfig(rcond=0.0))
        assert make_solver(config).rcond == 0.0
