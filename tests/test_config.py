"""
Tests for configuration models and YAML loading.
"""

import logging
from pathlib import Path

import numpy as np
import pytest
from pydantic import ValidationError

from ccr_core.config import (
    CorrelationConfig,
    FXConfig,
    GridConfig,
    JumpConfig,
    LoggingConfig,
    ShortRateConfig,
    SimulationConfig,
    configure_logging,
    create_default_simulation_config,
    load_config,
    load_simulation_config,
)

FOREIGN = {
    "foreign_rate": {"theta": 0.01, "initial_rate": 0.01},
    "fx": {"currency": "EUR", "initial_spot": 1.1},
}


class TestModels:
    """Tests for field validation."""

    def test_defaults(self) -> None:
        config = create_default_simulation_config()
        assert config.n_paths == 1000
        assert config.domestic_currency == "USD"
        assert not config.has_foreign
        assert np.isclose(config.credit.hazard_rate, 0.012)
        assert config.exposure.precision == "double"
        assert config.logging.level == "INFO"

    def test_quarterly_grid(self) -> None:
        grid = GridConfig(horizon_years=5.0)
        assert grid.n_steps == 21
        assert grid.dates[0] == 0.0
        assert np.isclose(grid.dates[-1], 5.0)

    def test_monthly_grid(self) -> None:
        grid = GridConfig(horizon_years=5.0, time_step="monthly")
        assert grid.n_steps == 61
        assert np.allclose(np.diff(grid.dates), 1 / 12)

    def test_aggressive_mean_reversion_warns(self) -> None:
        with pytest.warns(UserWarning, match="aggressive"):
            ShortRateConfig(kappa=1.5)

    def test_fx_currency_code(self) -> None:
        with pytest.raises(ValidationError):
            FXConfig(currency="EURO")

    def test_correlation_not_psd(self) -> None:
        with pytest.raises(ValidationError, match="positive semi-definite"):
            CorrelationConfig(domestic_foreign=0.9, domestic_fx=0.9, foreign_fx=-0.9)

    def test_relative_fx_jump_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="must be positive"):
            JumpConfig(target="fx", kind="relative", value=-0.5)
        JumpConfig(target="credit", kind="relative", value=-0.5)


class TestSimulationConfig:
    """Tests for cross-field validation."""

    def test_foreign_leg(self) -> None:
        config = SimulationConfig(**FOREIGN)
        assert config.has_foreign
        assert config.fx.currency == "EUR"

    def test_foreign_rate_without_fx(self) -> None:
        with pytest.raises(ValidationError, match="configured together"):
            SimulationConfig(foreign_rate=ShortRateConfig())

    def test_fx_currency_is_domestic(self) -> None:
        with pytest.raises(ValidationError, match="domestic currency"):
            SimulationConfig(foreign_rate=ShortRateConfig(), fx=FXConfig(currency="USD"))

    def test_jump_beyond_simulated_objects(self) -> None:
        with pytest.raises(ValidationError, match="only 0 fx"):
            SimulationConfig(jumps=[{"target": "fx", "kind": "relative", "value": 0.8}])
        with pytest.raises(ValidationError, match="only 1 discount"):
            SimulationConfig(jumps=[{"target": "discount", "index": 1, "kind": "absolute", "value": 0.01}])

    def test_jumps_on_simulated_objects(self) -> None:
        config = SimulationConfig(
            **FOREIGN,
            spots=[{"name": "GOLD", "initial_spot": 2000.0}],
            jumps=[
                {"target": "discount", "index": 1, "kind": "absolute", "value": 0.01},
                {"target": "fx", "kind": "relative", "value": 0.8},
                {"target": "spot", "kind": "specified", "value": 1500.0},
            ],
        )
        assert [j.target for j in config.jumps] == ["discount", "fx", "spot"]


class TestLoader:
    """Tests for YAML configuration files."""

    def test_nested_simulation_key(self, tmp_path: Path) -> None:
        path = tmp_path / "simulation.yaml"
        path.write_text(
            "simulation:\n"
            "  n_paths: 250\n"
            "  seed: 7\n"
            "  grid:\n"
            "    horizon_years: 2.0\n"
            "    time_step: monthly\n"
            "  credit:\n"
            "    hazard_rate_bps: 200\n"
        )
        config = load_simulation_config(path)
        assert config.n_paths == 250
        assert config.grid.n_steps == 25
        assert np.isclose(config.credit.hazard_rate, 0.02)

    def test_flat_file(self, tmp_path: Path) -> None:
        path = tmp_path / "simulation.yaml"
        path.write_text("n_paths: 10\nexposure:\n  max_workers: 2\n")
        config = load_simulation_config(str(path))
        assert config.n_paths == 10
        assert config.exposure.max_workers == 2

    def test_load_config_logging_section(self, tmp_path: Path) -> None:
        path = tmp_path / "run.yaml"
        path.write_text(
            "simulation:\n"
            "  n_paths: 5\n"
            "logging:\n"
            "  level: DEBUG\n"
        )
        config = load_config(path)
        assert config["simulation"].n_paths == 5
        assert config["logging"].level == "DEBUG"

    def test_load_config_falls_back_to_simulation_logging(self, tmp_path: Path) -> None:
        path = tmp_path / "run.yaml"
        path.write_text("n_paths: 5\nlogging:\n  level: WARNING\n")
        config = load_config(path)
        assert config["logging"].level == "WARNING"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_simulation_config(path).n_paths == 1000

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_simulation_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_simulation_config(tmp_path / "missing.yaml")

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("n_paths: 0\n")
        with pytest.raises(ValidationError):
            load_simulation_config(path)


class TestConfigureLogging:
    """Tests for the application logging hook."""

    def test_passes_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict] = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        configure_logging(LoggingConfig(level="DEBUG", format="%(message)s", force=True))
        assert calls == [{"level": logging.DEBUG, "format": "%(message)s", "force": True}]

    def test_default_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict] = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        configure_logging()
        assert calls[0]["level"] == logging.INFO
        assert calls[0]["force"] is False
