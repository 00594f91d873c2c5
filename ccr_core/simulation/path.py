"""
One Monte Carlo realization of the market risk factors.

A SimulatedPath stores, for every registered curve and spot, the simulated
state at each date of the simulation grid. Evolution calls project that
state to an arbitrary date inside the grid and write it into a curve owned
by the caller. Stored snapshots are frozen arrays: the path can be queried
any number of times, from any number of threads, without changing.

Between two grid dates the state is projected with the mean of a Brownian
bridge pinned at both snapshots. Strictly positive quantities (discount
factors, survival probabilities, forward prices, spots, numeraire) are
bridged in log space, which keeps discount and survival curves positive
and monotone in tenor. Quantities that can be zero or negative are bridged
arithmetically.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from ccr_core._types import FloatArray, SnapshotArray, Year
from ccr_core.errors import InvalidCurveIdentifier
from ccr_core.market.curve import Curve
from ccr_core.simulation.grid import ExactIndex, SimulationDateGrid

logger = logging.getLogger(__name__)


class RiskFactor(Enum):
    """Risk-factor classes a path can carry."""

    DISCOUNT = "discount curve"
    CREDIT = "credit curve"
    FORWARD = "forward curve"
    SPOT = "spot"


@dataclass(frozen=True)
class _DiscountState:
    """Snapshots of one discount curve with its FX factor and numeraire."""

    curve: SnapshotArray
    fx_factor: FloatArray
    numeraire: FloatArray


def _freeze(values: FloatArray | list, shape: tuple[int, ...], label: str) -> FloatArray:
    """Copy values into a read-only float64 array of the expected shape."""
    arr = np.array(values, dtype=np.float64)
    if arr.shape != shape:
        raise ValueError(f"{label} must have shape {shape}, got {arr.shape}")
    arr.setflags(write=False)
    return arr


def bridge(lower: FloatArray | float, upper: FloatArray | float, weight: float) -> FloatArray:
    """
    Brownian-bridge mean between two snapshots.

    Parameters
    ----------
    lower : FloatArray | float
        State at the grid date before the target
    upper : FloatArray | float
        State at the grid date after the target
    weight : float
        (target - t_lower) / (t_upper - t_lower), in [0, 1]

    Returns
    -------
    FloatArray
        Projected state, geometric where both endpoints are strictly
        positive and arithmetic elsewhere, element by element

    Example
    -------
    >>> float(bridge(1.0, 4.0, 0.5))
    2.0
    """
    lo = np.asarray(lower, dtype=np.float64)
    hi = np.asarray(upper, dtype=np.float64)
    if weight <= 0.0:
        return lo.copy()
    if weight >= 1.0:
        return hi.copy()
    positive = (lo > 0) & (hi > 0)
    arithmetic = (1.0 - weight) * lo + weight * hi
    log_lo = np.log(np.where(positive, lo, 1.0))
    log_hi = np.log(np.where(positive, hi, 1.0))
    return np.where(positive, np.exp((1.0 - weight) * log_lo + weight * log_hi), arithmetic)


class SimulatedPath:
    """
    Simulated state of all registered risk factors along one path.

    Parameters
    ----------
    grid : SimulationDateGrid
        Simulation dates shared by every path of the run
    index : int
        Row of this path in the exposure matrices
    weight : float
        Path weight for aggregation (default 1.0)
    default_date : float | None
        Counterparty default time realized on this path, or None

    Example
    -------
    >>> grid = SimulationDateGrid([0.0, 1.0])
    >>> path = SimulatedPath(grid, index=0)
    >>> path.add_discount(0, [[0.98, 0.95], [0.975, 0.94]])
    >>> curve = DiscountCurve(tenors=[1.0, 2.0], values=[0.98, 0.95])
    >>> fx, numeraire = path.evolve_discount(0, 0.5, grid.locate(0.5), curve)
    """

    def __init__(
        self,
        grid: SimulationDateGrid,
        index: int,
        weight: float = 1.0,
        default_date: Year | None = None,
    ) -> None:
        if index < 0:
            raise ValueError(f"Path index must be non-negative, got {index}")
        self.grid = grid
        self.index = index
        self.weight = weight
        self.default_date = default_date
        self._discount: dict[int, _DiscountState] = {}
        self._credit: dict[int, SnapshotArray] = {}
        self._forward: dict[int, SnapshotArray] = {}
        self._spot: dict[int, FloatArray] = {}

    # ------------------------------------------------------------------
    # Registration (driver side)
    # ------------------------------------------------------------------

    def _curve_shape(self, snapshots: FloatArray | list) -> tuple[int, int]:
        arr = np.asarray(snapshots)
        if arr.ndim != 2:
            raise ValueError(
                f"Curve snapshots must be 2D (n_grid_dates, n_points), got {arr.ndim}D"
            )
        return (len(self.grid), arr.shape[1])

    def add_discount(
        self,
        curve_id: int,
        snapshots: SnapshotArray | list,
        fx_factors: FloatArray | list | None = None,
        numeraires: FloatArray | list | None = None,
    ) -> None:
        """
        Register simulated discount factors for one discount curve.

        Parameters
        ----------
        curve_id : int
            Identifier assigned by the driver
        snapshots : SnapshotArray
            Discount factors P(0, T_j) realized on this path, shape
            (n_grid_dates, n_points)
        fx_factors : FloatArray | None
            FX martingale factor per grid date (default all 1.0)
        numeraires : FloatArray | None
            Numeraire realization per grid date (default all 1.0)
        """
        n = len(self.grid)
        curve = _freeze(snapshots, self._curve_shape(snapshots), "Discount snapshots")
        fx = _freeze(
            np.ones(n) if fx_factors is None else fx_factors, (n,), "FX factors"
        )
        numeraire = _freeze(
            np.ones(n) if numeraires is None else numeraires, (n,), "Numeraires"
        )
        self._discount[curve_id] = _DiscountState(curve, fx, numeraire)

    def add_credit(self, curve_id: int, snapshots: SnapshotArray | list) -> None:
        """Register simulated survival probabilities for one credit curve."""
        self._credit[curve_id] = _freeze(
            snapshots, self._curve_shape(snapshots), "Credit snapshots"
        )

    def add_forward(self, curve_id: int, snapshots: SnapshotArray | list) -> None:
        """Register simulated forward levels for one forward curve."""
        self._forward[curve_id] = _freeze(
            snapshots, self._curve_shape(snapshots), "Forward snapshots"
        )

    def add_spot(self, spot_id: int, values: FloatArray | list) -> None:
        """Register simulated spot prices (one per grid date)."""
        self._spot[spot_id] = _freeze(values, (len(self.grid),), "Spot values")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def registered(self, factor: RiskFactor) -> list[int]:
        """Sorted identifiers registered for a risk-factor class."""
        return sorted(self._store(factor))

    def snapshot(self, factor: RiskFactor, curve_id: int, grid_index: int) -> FloatArray:
        """
        Stored state at one grid date (read-only view).

        Parameters
        ----------
        factor : RiskFactor
            Risk-factor class
        curve_id : int
            Curve or spot identifier
        grid_index : int
            Grid date index

        Returns
        -------
        FloatArray
            Curve values, or a 0D array for a spot
        """
        store = self._store(factor)
        if curve_id not in store:
            raise InvalidCurveIdentifier(factor.value, curve_id)
        data = store[curve_id]
        if isinstance(data, _DiscountState):
            data = data.curve
        return data[grid_index]

    def _store(self, factor: RiskFactor) -> dict:
        return {
            RiskFactor.DISCOUNT: self._discount,
            RiskFactor.CREDIT: self._credit,
            RiskFactor.FORWARD: self._forward,
            RiskFactor.SPOT: self._spot,
        }[factor]

    # ------------------------------------------------------------------
    # Evolution protocol
    # ------------------------------------------------------------------

    def _project(self, series: FloatArray, date: Year, encoded: int) -> FloatArray:
        """Project a per-grid-date series (1D or 2D) to date."""
        position, weight = self.grid.bracket(date, encoded)
        if isinstance(position, ExactIndex):
            return series[position.index]
        return bridge(series[position.lower], series[position.upper], weight)

    def evolve_discount(
        self, curve_id: int, date: Year, encoded: int, curve: Curve
    ) -> tuple[float, float]:
        """
        Write the discount curve realized at date into curve.

        Parameters
        ----------
        curve_id : int
            Discount curve identifier
        date : float
            Target date in years
        encoded : int
            Grid index or complement of the insertion point
        curve : Curve
            Caller-owned curve receiving the state

        Returns
        -------
        tuple[float, float]
            (FX martingale factor, numeraire) at date

        Raises
        ------
        InvalidCurveIdentifier
            If curve_id is not registered
        DateOutOfRange
            If date is outside the grid or inconsistent with encoded
        """
        state = self._discount.get(curve_id)
        if state is None:
            raise InvalidCurveIdentifier(RiskFactor.DISCOUNT.value, curve_id)
        curve.set_values(self._project(state.curve, date, encoded))
        fx_factor = float(self._project(state.fx_factor, date, encoded))
        numeraire = float(self._project(state.numeraire, date, encoded))
        return fx_factor, numeraire

    def evolve_credit(self, curve_id: int, date: Year, encoded: int, curve: Curve) -> None:
        """Write the survival curve realized at date into curve."""
        snapshots = self._credit.get(curve_id)
        if snapshots is None:
            raise InvalidCurveIdentifier(RiskFactor.CREDIT.value, curve_id)
        curve.set_values(self._project(snapshots, date, encoded))

    def evolve_forward(self, curve_id: int, date: Year, encoded: int, curve: Curve) -> None:
        """Write the forward curve realized at date into curve."""
        snapshots = self._forward.get(curve_id)
        if snapshots is None:
            raise InvalidCurveIdentifier(RiskFactor.FORWARD.value, curve_id)
        curve.set_values(self._project(snapshots, date, encoded))

    def evolve_spot(self, spot_id: int, date: Year, encoded: int) -> float:
        """
        Spot price realized at date.

        Spots are immutable scalars, so the value is returned and the
        caller stores it in its own quote object.
        """
        values = self._spot.get(spot_id)
        if values is None:
            raise InvalidCurveIdentifier(RiskFactor.SPOT.value, spot_id)
        return float(self._project(values, date, encoded))

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"SimulatedPath(index={self.index}, n_dates={len(self.grid)}, "
            f"discount={len(self._discount)}, credit={len(self._credit)}, "
            f"forward={len(self._forward)}, spot={len(self._spot)})"
        )
