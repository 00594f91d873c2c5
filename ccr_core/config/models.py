"""
Pydantic configuration models for the exposure simulation core.

These models provide validation and type-safe configuration for:
- The simulation date grid and Monte Carlo settings
- Reference short-rate, FX and credit dynamics
- Exposure storage and evaluation options
- Jumps applied on counterparty default
- Logging
"""

import warnings
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from ccr_core._types import FloatArray


class GridConfig(BaseModel):
    """
    Simulation date grid.

    Attributes
    ----------
    horizon_years : float
        Last grid date in years
    time_step : str
        Grid spacing ('monthly' or 'quarterly')
    """

    horizon_years: float = Field(ge=0.25, le=50, default=5.0)
    time_step: Literal["monthly", "quarterly"] = "quarterly"

    @property
    def dt(self) -> float:
        """Time step in years."""
        return 1 / 12 if self.time_step == "monthly" else 0.25

    @property
    def n_steps(self) -> int:
        """Number of grid dates including t=0."""
        return int(round(self.horizon_years / self.dt)) + 1

    @property
    def dates(self) -> FloatArray:
        """Grid dates in years, starting at 0."""
        return np.linspace(0.0, (self.n_steps - 1) * self.dt, self.n_steps)


class ShortRateConfig(BaseModel):
    """
    Vasicek short-rate model parameters.

    The short rate follows: dr = kappa * (theta - r) * dt + sigma * dW

    Attributes
    ----------
    kappa : float
        Mean reversion speed (typically 0.01 to 1.0)
    theta : float
        Long-term mean rate (e.g., 0.02 for 2%)
    sigma : float
        Volatility (e.g., 0.01 for 100bps)
    initial_rate : float
        Starting short rate

    Example
    -------
    >>> config = ShortRateConfig(kappa=0.1, theta=0.02, sigma=0.01, initial_rate=0.02)
    """

    kappa: float = Field(gt=0, le=2.0, default=0.1, description="Mean reversion speed")
    theta: float = Field(ge=-0.02, le=0.20, default=0.02, description="Long-term mean rate")
    sigma: float = Field(ge=0, le=0.10, default=0.01, description="Volatility")
    initial_rate: float = Field(ge=-0.02, le=0.20, default=0.02, description="Starting short rate")

    @field_validator("kappa")
    @classmethod
    def kappa_realistic(cls, v: float) -> float:
        """Warn on aggressive mean reversion."""
        if v > 1.0:
            warnings.warn(
                f"Mean reversion speed {v} > 1.0 is aggressive; "
                "typical values are 0.01-0.5",
                UserWarning,
                stacklevel=2,
            )
        return v


class FXConfig(BaseModel):
    """
    FX factor driving the foreign currency.

    Attributes
    ----------
    currency : str
        Foreign currency code
    initial_spot : float
        Starting FX rate (domestic per foreign)
    volatility : float
        FX volatility (e.g., 0.12 for 12%)
    """

    currency: str = Field(min_length=3, max_length=3, default="EUR")
    initial_spot: float = Field(gt=0, default=1.10, description="Initial FX spot rate")
    volatility: float = Field(ge=0, le=1.0, default=0.12, description="FX volatility")


class SpotConfig(BaseModel):
    """
    Spot asset simulated as geometric Brownian motion.

    Attributes
    ----------
    name : str
        Asset identifier
    initial_spot : float
        Spot level at t=0
    volatility : float
        Lognormal volatility
    carry_rate : float
        Continuous dividend/convenience yield
    """

    name: str = Field(min_length=1)
    initial_spot: float = Field(gt=0)
    volatility: float = Field(ge=0, le=2.0, default=0.2)
    carry_rate: float = Field(ge=-0.2, le=0.5, default=0.0)


class CorrelationConfig(BaseModel):
    """
    Correlation between domestic rate, foreign rate and FX drivers.

    Attributes
    ----------
    domestic_foreign : float
        Correlation between domestic and foreign rates
    domestic_fx : float
        Correlation between domestic rate and FX
    foreign_fx : float
        Correlation between foreign rate and FX
    """

    domestic_foreign: float = Field(ge=-1, le=1, default=0.7)
    domestic_fx: float = Field(ge=-1, le=1, default=-0.3)
    foreign_fx: float = Field(ge=-1, le=1, default=0.4)

    @model_validator(mode="after")
    def validate_positive_definite(self) -> "CorrelationConfig":
        """Ensure correlation matrix is positive semi-definite."""
        corr_matrix = np.array(
            [
                [1.0, self.domestic_foreign, self.domestic_fx],
                [self.domestic_foreign, 1.0, self.foreign_fx],
                [self.domestic_fx, self.foreign_fx, 1.0],
            ]
        )
        eigenvalues = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvalues < -1e-10):
            raise ValueError(
                f"Correlation matrix is not positive semi-definite. "
                f"Eigenvalues: {eigenvalues}"
            )
        return self


class CreditConfig(BaseModel):
    """
    Counterparty credit parameters.

    Attributes
    ----------
    hazard_rate_bps : float
        Flat counterparty hazard rate in basis points (per annum)
    recovery_rate : float
        Recovery rate on default (0-1)
    simulate_default : bool
        Draw a default time per path
    """

    hazard_rate_bps: float = Field(ge=0, le=5000, default=120)
    recovery_rate: float = Field(ge=0, le=1, default=0.40)
    simulate_default: bool = True

    @property
    def hazard_rate(self) -> float:
        """Hazard rate as decimal."""
        return self.hazard_rate_bps / 10000


class ExposureConfig(BaseModel):
    """
    Exposure storage and evaluation options.

    Attributes
    ----------
    precision : str
        Storage width of exposure cells ('single' or 'double')
    record_discount_factors : bool
        Also store the domestic discount factor per cell
    max_workers : int
        Threads used to evaluate paths
    apply_jumps_on_default : bool
        Apply default jumps on paths where the counterparty defaulted
    """

    precision: Literal["single", "double"] = "double"
    record_discount_factors: bool = False
    max_workers: int = Field(ge=1, le=256, default=4)
    apply_jumps_on_default: bool = True


class JumpConfig(BaseModel):
    """
    Jump applied to one market object on counterparty default.

    Attributes
    ----------
    target : str
        Risk-factor class of the object
    index : int
        Position of the object within its class
    kind : str
        'absolute' adds, 'relative' multiplies, 'specified' overwrites
    value : float
        Jump magnitude
    """

    target: Literal["discount", "credit", "forward", "fx", "spot"]
    index: int = Field(ge=0, default=0)
    kind: Literal["absolute", "relative", "specified"]
    value: float

    @model_validator(mode="after")
    def relative_is_positive_for_levels(self) -> "JumpConfig":
        """Relative jumps on FX quotes and spots must keep them positive."""
        if self.kind == "relative" and self.target in ("fx", "spot") and self.value <= 0:
            raise ValueError(
                f"Relative {self.target} jump must be positive, got {self.value}"
            )
        return self


class LoggingConfig(BaseModel):
    """
    Logging setup for applications driving the core.

    Attributes
    ----------
    level : str
        Root log level
    format : str
        Record format passed to logging.basicConfig
    force : bool
        Replace handlers already installed on the root logger
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    force: bool = False


class SimulationConfig(BaseModel):
    """
    Complete exposure simulation configuration.

    Attributes
    ----------
    n_paths : int
        Number of Monte Carlo paths
    seed : int | None
        Random seed for reproducibility
    domestic_currency : str
        Currency of the domestic discount curve
    grid : GridConfig
        Simulation date grid
    domestic_rate : ShortRateConfig
        Domestic short-rate dynamics
    foreign_rate : ShortRateConfig | None
        Foreign short-rate dynamics (requires fx)
    fx : FXConfig | None
        FX dynamics for the foreign currency (requires foreign_rate)
    correlations : CorrelationConfig
        Driver correlations
    credit : CreditConfig
        Counterparty credit
    exposure : ExposureConfig
        Exposure storage options
    spots : list[SpotConfig]
        Spot assets driving spot-based forward price curves
    forward_tenor : float
        Accrual period of the simulated domestic forward-rate curve
    jumps : list[JumpConfig]
        Jumps on default
    logging : LoggingConfig
        Logging setup
    """

    n_paths: int = Field(ge=1, le=1_000_000, default=1000)
    seed: int | None = Field(default=42)
    domestic_currency: str = Field(min_length=3, max_length=3, default="USD")
    grid: GridConfig = Field(default_factory=GridConfig)
    domestic_rate: ShortRateConfig = Field(default_factory=ShortRateConfig)
    foreign_rate: ShortRateConfig | None = None
    fx: FXConfig | None = None
    correlations: CorrelationConfig = Field(default_factory=CorrelationConfig)
    credit: CreditConfig = Field(default_factory=CreditConfig)
    exposure: ExposureConfig = Field(default_factory=ExposureConfig)
    spots: list[SpotConfig] = Field(default_factory=list)
    forward_tenor: float = Field(gt=0, le=1.0, default=0.25)
    jumps: list[JumpConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def foreign_leg_complete(self) -> "SimulationConfig":
        """Foreign rate and FX dynamics come together."""
        if (self.foreign_rate is None) != (self.fx is None):
            raise ValueError("foreign_rate and fx must be configured together")
        if self.fx is not None and self.fx.currency == self.domestic_currency:
            raise ValueError(
                f"FX currency {self.fx.currency} equals the domestic currency"
            )
        return self

    @model_validator(mode="after")
    def jumps_target_simulated_objects(self) -> "SimulationConfig":
        """Jump indices must refer to objects the generator simulates."""
        available = {
            "discount": 2 if self.foreign_rate is not None else 1,
            "fx": 1 if self.fx is not None else 0,
            "credit": 1,
            "forward": 1,
            "spot": len(self.spots),
        }
        for jump in self.jumps:
            if jump.index >= available[jump.target]:
                raise ValueError(
                    f"Jump targets {jump.target} #{jump.index} but only "
                    f"{available[jump.target]} {jump.target} object(s) are simulated"
                )
        return self

    @property
    def has_foreign(self) -> bool:
        """True if a foreign currency is simulated."""
        return self.foreign_rate is not None
