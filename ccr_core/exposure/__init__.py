"""
Exposure evaluation module.

Provides exposure storage, the simulation pricers, reset-driven cash flows,
the per-path evaluator, the concurrent run driver and exposure statistics.
"""

from ccr_core.exposure.cashflows import (
    CashflowNode,
    CashflowPricer,
    CompoundedRateCashflow,
    RangeAccrualCashflow,
    ResetNode,
)
from ccr_core.exposure.evaluator import (
    DateMajorEvaluator,
    ExposurePathEvaluator,
    PathEvaluationResult,
    ResetAwareEvaluator,
    get_evaluator,
)
from ccr_core.exposure.metrics import (
    ExposureProfile,
    calculate_effective_epe,
    calculate_ene,
    calculate_epe,
    calculate_expected_exposure,
    calculate_pfe,
    netted_exposures,
)
from ccr_core.exposure.pricers import (
    AnnuityPricer,
    CommodityForwardPricer,
    FxForwardPricer,
    PricerType,
    SimulationPricer,
    SwapPricer,
)
from ccr_core.exposure.runner import ExposureRunner, RunResult
from ccr_core.exposure.sets import (
    FAILED,
    BaseExposureSet,
    ExposureSet,
    IncrementalExposureSet,
    MultiTradeExposureSet,
    Precision,
    is_failed,
)

__all__ = [
    # Storage
    "FAILED",
    "is_failed",
    "Precision",
    "BaseExposureSet",
    "ExposureSet",
    "IncrementalExposureSet",
    "MultiTradeExposureSet",
    # Pricers
    "PricerType",
    "SimulationPricer",
    "SwapPricer",
    "AnnuityPricer",
    "FxForwardPricer",
    "CommodityForwardPricer",
    # Cash flows
    "ResetNode",
    "CashflowNode",
    "CompoundedRateCashflow",
    "RangeAccrualCashflow",
    "CashflowPricer",
    # Evaluation
    "PathEvaluationResult",
    "ExposurePathEvaluator",
    "DateMajorEvaluator",
    "ResetAwareEvaluator",
    "get_evaluator",
    "ExposureRunner",
    "RunResult",
    # Metrics
    "ExposureProfile",
    "calculate_epe",
    "calculate_ene",
    "calculate_pfe",
    "calculate_expected_exposure",
    "calculate_effective_epe",
    "netted_exposures",
]
