"""
Counterparty Exposure Simulation Core.

Computes the mark-to-market exposure of every trade of a portfolio along
Monte Carlo simulated market scenarios: evolution of market objects from
simulated paths, compact exposure storage, a per-path evaluation contract
driving pricers across dates, and default-contingent jumps of market state.

Example
-------
>>> from ccr_core import (
...     ExposureRunner, ExposureSet, SwapPricer, VasicekPathGenerator,
...     create_default_simulation_config, get_evaluator,
... )
>>> config = create_default_simulation_config()
>>> generator = VasicekPathGenerator.from_config(config)
>>> paths = generator.generate(config.n_paths, seed=config.seed)
>>> market = generator.market_environment_from_config(config)
>>> swap = SwapPricer(notional=1e7, fixed_rate=0.03, maturity=5.0)
>>> dates = generator.grid.dates[1:]
>>> exposure_set = ExposureSet.allocate(config.n_paths, dates)
>>> evaluator = get_evaluator(market, [swap], [dates], generator.grid)
>>> result = ExposureRunner(evaluator).run(paths, exposure_set, max_workers=4)
"""

__version__ = "1.0.0"

# Core types
from ccr_core._types import ExposureMatrix, FloatArray, IntArray, Year

# Errors
from ccr_core.errors import (
    CCRError,
    DateOutOfRange,
    IndexOutOfRange,
    InvalidCurveIdentifier,
    PerCellValuationFailure,
    UnsupportedCalibrationInput,
)

# Configuration
from ccr_core.config import (
    SimulationConfig,
    configure_logging,
    create_default_simulation_config,
    load_config,
    load_simulation_config,
)

# Market objects
from ccr_core.market import (
    DayCount,
    DiscountCurve,
    ForwardCurve,
    ForwardPriceCurve,
    FxRate,
    MarketEnvironment,
    MarketState,
    SpotPrice,
    SurvivalCurve,
)

# Simulation
from ccr_core.simulation import SimulatedPath, SimulationDateGrid, VasicekPathGenerator

# Jumps
from ccr_core.jumps import JumpKind, constant, create_jump

# Exposure
from ccr_core.exposure import (
    FAILED,
    AnnuityPricer,
    CashflowPricer,
    ExposureProfile,
    ExposureRunner,
    ExposureSet,
    FxForwardPricer,
    IncrementalExposureSet,
    MultiTradeExposureSet,
    Precision,
    SwapPricer,
    get_evaluator,
)

# Calibration
from ccr_core.calibration import CalibrationModel, CalibrationResult

# Reporting
from ccr_core.reporting import exposure_set_to_frame, write_exposure_report

__all__ = [
    # Version
    "__version__",
    # Types
    "FloatArray",
    "IntArray",
    "ExposureMatrix",
    "Year",
    # Errors
    "CCRError",
    "InvalidCurveIdentifier",
    "DateOutOfRange",
    "IndexOutOfRange",
    "UnsupportedCalibrationInput",
    "PerCellValuationFailure",
    # Config
    "SimulationConfig",
    "load_config",
    "load_simulation_config",
    "create_default_simulation_config",
    "configure_logging",
    # Market
    "DayCount",
    "DiscountCurve",
    "ForwardCurve",
    "SurvivalCurve",
    "FxRate",
    "SpotPrice",
    "ForwardPriceCurve",
    "MarketEnvironment",
    "MarketState",
    # Simulation
    "SimulationDateGrid",
    "SimulatedPath",
    "VasicekPathGenerator",
    # Jumps
    "JumpKind",
    "constant",
    "create_jump",
    # Exposure
    "FAILED",
    "Precision",
    "ExposureSet",
    "IncrementalExposureSet",
    "MultiTradeExposureSet",
    "SwapPricer",
    "AnnuityPricer",
    "FxForwardPricer",
    "CashflowPricer",
    "get_evaluator",
    "ExposureRunner",
    "ExposureProfile",
    # Calibration
    "CalibrationModel",
    "CalibrationResult",
    # Reporting
    "exposure_set_to_frame",
    "write_exposure_report",
]
