"""
Market objects evolved by simulated paths.

This module provides:
- Discount, survival and forward curves with a construction-time style tag
- FX quotes and spot-based forward price curves
- The market environment that evolves all of them from one path
- Vasicek short-rate dynamics and Cholesky correlation for path generation
"""

from ccr_core.market.correlation import CholeskyCorrelation
from ccr_core.market.curve import Curve, CurveStyle, DayCount, DiscountCurve, ForwardCurve
from ccr_core.market.environment import MarketEnvironment, MarketState
from ccr_core.market.fx import FxRate
from ccr_core.market.hazard import SurvivalCurve
from ccr_core.market.ir_model import VasicekModel
from ccr_core.market.spot import ForwardPriceCurve, SpotPrice

__all__ = [
    "Curve",
    "CurveStyle",
    "DayCount",
    "DiscountCurve",
    "ForwardCurve",
    "SurvivalCurve",
    "FxRate",
    "SpotPrice",
    "ForwardPriceCurve",
    "MarketEnvironment",
    "MarketState",
    "VasicekModel",
    "CholeskyCorrelation",
]
