"""
Pytest fixtures for exposure simulation testing.

Provides reusable fixtures for grids, deterministic paths and market
environments, the reference generator and sample exposure matrices.
"""

import numpy as np
import pytest

from ccr_core.market import DiscountCurve, MarketEnvironment, VasicekModel
from ccr_core.simulation import (
    ForeignLeg,
    SimulatedPath,
    SimulationDateGrid,
    SpotDynamics,
    VasicekPathGenerator,
)

RATE = 0.03
"""Flat domestic rate of the deterministic fixtures."""


def flat_rows(grid: SimulationDateGrid, tenors: np.ndarray, rate: float) -> np.ndarray:
    """Deflated bond prices D(t) P(t, T) of a flat curve at every grid date."""
    return np.exp(-rate * np.maximum(tenors[None, :], grid.dates[:, None]))


@pytest.fixture
def grid() -> SimulationDateGrid:
    """Semi-annual 2-year grid."""
    return SimulationDateGrid([0.0, 0.5, 1.0, 1.5, 2.0])


@pytest.fixture
def tenors() -> np.ndarray:
    """Term points of the deterministic curves."""
    return np.array([0.5, 1.0, 1.5, 2.0, 3.0, 5.0])


@pytest.fixture
def make_path(grid: SimulationDateGrid, tenors: np.ndarray):
    """Factory of paths carrying a flat domestic discount curve."""

    def _make(index: int = 0, default_date: float | None = None, rate: float = RATE) -> SimulatedPath:
        path = SimulatedPath(grid, index=index, default_date=default_date)
        path.add_discount(0, flat_rows(grid, tenors, rate))
        return path

    return _make


@pytest.fixture
def flat_market(tenors: np.ndarray) -> MarketEnvironment:
    """Single-currency environment with a flat 3% curve."""
    return MarketEnvironment(
        discount_curves=[DiscountCurve.flat(RATE, tenors, name="USD.discount")],
        currencies=["USD"],
    )


@pytest.fixture
def generator() -> VasicekPathGenerator:
    """Two-currency generator with one spot asset on a quarterly 2-year grid."""
    return VasicekPathGenerator(
        grid=SimulationDateGrid(np.linspace(0.0, 2.0, 9)),
        domestic=VasicekModel(kappa=0.1, theta=0.02, sigma=0.01, r0=0.02),
        foreign=ForeignLeg(
            currency="EUR",
            rate_model=VasicekModel(kappa=0.08, theta=0.015, sigma=0.012, r0=0.015),
            initial_fx=1.10,
            fx_volatility=0.12,
        ),
        hazard_rate=0.2,
        spots=[SpotDynamics("GOLD", 2000.0, volatility=0.15)],
    )


@pytest.fixture
def sample_exposure() -> np.ndarray:
    """Sample exposure matrix that starts near zero and fans out."""
    rng = np.random.default_rng(42)
    n_paths, n_dates = 1000, 21
    t = np.linspace(0, 5, n_dates)
    base = np.sin(t) * 1e6
    noise = rng.standard_normal((n_paths, n_dates)) * 5e5
    return base + noise
