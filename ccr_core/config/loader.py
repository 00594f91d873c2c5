"""
YAML configuration loading utilities.

Provides functions to load and validate configuration from YAML files,
returning properly typed Pydantic model instances.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from ccr_core.config.models import (
    CreditConfig,
    ExposureConfig,
    GridConfig,
    LoggingConfig,
    ShortRateConfig,
    SimulationConfig,
)


def _load_yaml(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dictionary.

    Parameters
    ----------
    path : Path
        Path to the YAML file

    Returns
    -------
    dict[str, Any]
        Parsed YAML contents (empty for an empty file)

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    yaml.YAMLError
        If the file contains invalid YAML
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def load_simulation_config(path: Path | str) -> SimulationConfig:
    """
    Load simulation configuration from a YAML file.

    Parameters
    ----------
    path : Path | str
        Path to the configuration YAML file

    Returns
    -------
    SimulationConfig
        Validated simulation configuration

    Example
    -------
    >>> config = load_simulation_config("data/simulation.yaml")
    >>> print(config.n_paths)
    1000
    """
    path = Path(path)
    data = _load_yaml(path)

    # Handle nested 'simulation' key if present
    if "simulation" in data:
        data = data["simulation"]

    return SimulationConfig(**data)


def load_config(path: Path | str) -> dict[str, Any]:
    """
    Load a configuration file holding a simulation and logging section.

    Parameters
    ----------
    path : Path | str
        Path to the configuration YAML file

    Returns
    -------
    dict[str, Any]
        Dictionary containing:
        - 'simulation': SimulationConfig
        - 'logging': LoggingConfig (top-level section if present, otherwise
          the simulation's own)

    Example
    -------
    >>> config = load_config("data/simulation.yaml")
    >>> configure_logging(config["logging"])
    """
    path = Path(path)
    data = _load_yaml(path)

    if "simulation" not in data:
        simulation = SimulationConfig(**data)
        return {"simulation": simulation, "logging": simulation.logging}

    simulation = SimulationConfig(**data["simulation"])
    if "logging" in data:
        logging_config = LoggingConfig(**data["logging"])
    else:
        logging_config = simulation.logging
    return {"simulation": simulation, "logging": logging_config}


def configure_logging(config: LoggingConfig | None = None) -> None:
    """
    Configure the root logger for an application driving the core.

    The library itself only creates module loggers; handlers are installed
    here, by the application.

    Parameters
    ----------
    config : LoggingConfig | None
        Logging setup (defaults to INFO with the standard format)
    """
    config = config or LoggingConfig()
    logging.basicConfig(
        level=getattr(logging, config.level),
        format=config.format,
        force=config.force,
    )


def create_default_simulation_config() -> SimulationConfig:
    """
    Create a default simulation configuration with typical values.

    Returns
    -------
    SimulationConfig
        Single-currency configuration suitable for testing
    """
    return SimulationConfig(
        n_paths=1000,
        seed=42,
        domestic_currency="USD",
        grid=GridConfig(horizon_years=5.0, time_step="quarterly"),
        domestic_rate=ShortRateConfig(
            kappa=0.10,
            theta=0.02,
            sigma=0.01,
            initial_rate=0.02,
        ),
        credit=CreditConfig(hazard_rate_bps=120, recovery_rate=0.40),
        exposure=ExposureConfig(precision="double", max_workers=4),
    )
