"""
Configuration module for the exposure simulation core.

Provides Pydantic-validated configuration models, YAML loading utilities
and the logging setup used by applications.
"""

from ccr_core.config.loader import (
    configure_logging,
    create_default_simulation_config,
    load_config,
    load_simulation_config,
)
from ccr_core.config.models import (
    CorrelationConfig,
    CreditConfig,
    ExposureConfig,
    FXConfig,
    GridConfig,
    JumpConfig,
    LoggingConfig,
    ShortRateConfig,
    SimulationConfig,
    SpotConfig,
)

__all__ = [
    # Models
    "GridConfig",
    "ShortRateConfig",
    "FXConfig",
    "SpotConfig",
    "CorrelationConfig",
    "CreditConfig",
    "ExposureConfig",
    "JumpConfig",
    "LoggingConfig",
    "SimulationConfig",
    # Loaders
    "load_config",
    "load_simulation_config",
    "create_default_simulation_config",
    "configure_logging",
]
