"""
Calibration module.

Adapts an external volatility fit to the simulation: validated inputs,
volatilities with (n_factors, n_tenors) loadings, and factor-loading
utilities.
"""

from ccr_core.calibration.model import (
    PROCESS_PARAMETERS,
    CalibrationInputs,
    CalibrationModel,
    CalibrationResult,
    choose_factor_dimension,
    factor_dimension_error,
    factorize_correlation,
    interpolate_factor_loadings,
)

__all__ = [
    "PROCESS_PARAMETERS",
    "CalibrationInputs",
    "CalibrationResult",
    "CalibrationModel",
    "interpolate_factor_loadings",
    "choose_factor_dimension",
    "factor_dimension_error",
    "factorize_correlation",
]
