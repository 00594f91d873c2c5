"""
Simulation module.

Provides the simulation date grid with its signed index encoding, the
simulated path store with Brownian-bridge projection, and the reference
Vasicek path generator.
"""

from ccr_core.simulation.generator import (
    ForeignLeg,
    SpotDynamics,
    VasicekPathGenerator,
    default_curve_tenors,
)
from ccr_core.simulation.grid import (
    DATE_TOLERANCE,
    BetweenIndices,
    ExactIndex,
    SimulationDateGrid,
    decode_date_index,
    encode_date_index,
)
from ccr_core.simulation.path import RiskFactor, SimulatedPath, bridge

__all__ = [
    "DATE_TOLERANCE",
    "ExactIndex",
    "BetweenIndices",
    "encode_date_index",
    "decode_date_index",
    "SimulationDateGrid",
    "RiskFactor",
    "SimulatedPath",
    "bridge",
    "SpotDynamics",
    "ForeignLeg",
    "VasicekPathGenerator",
    "default_curve_tenors",
]
