"""
Evaluation of every trade's exposures along one simulated path.

An evaluator walks the union of the portfolio's exposure dates in
increasing order. At each date it evolves the market environment from the
path, prices every trade observed at that date and writes the values into
the row ``path.index`` of the exposure set. A pricer failure only affects
its own cell, which receives the :data:`FAILED` sentinel. A failed reset
observation fails the remaining cells of its own trade on that path.

Two variants exist: :class:`DateMajorEvaluator` for portfolios without
path-dependent state and :class:`ResetAwareEvaluator`, which also visits the
reset dates of cash flows and applies their observations in date order
before any valuation at the same or a later date. :func:`get_evaluator`
picks the variant from the pricers.
"""

import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ccr_core._types import FloatArray, ProgressCallback, Year
from ccr_core.errors import (
    DateOutOfRange,
    IndexOutOfRange,
    InvalidCurveIdentifier,
    PerCellValuationFailure,
)
from ccr_core.exposure.cashflows import ResetNode
from ccr_core.exposure.pricers import SimulationPricer
from ccr_core.exposure.sets import FAILED, BaseExposureSet
from ccr_core.market.environment import MarketEnvironment, MarketState
from ccr_core.simulation.grid import DATE_TOLERANCE, SimulationDateGrid
from ccr_core.simulation.path import SimulatedPath

logger = logging.getLogger(__name__)

CONTRACT_ERRORS = (InvalidCurveIdentifier, DateOutOfRange, IndexOutOfRange)
"""Errors that signal a driver bug and always propagate."""


@dataclass
class PathEvaluationResult:
    """
    Outcome of evaluating one path.

    Attributes
    ----------
    path_index : int
        Row written in the exposure set
    dates_completed : int
        Exposure dates fully processed
    defaulted : bool
        True if default jumps were applied on this path
    failures : list[PerCellValuationFailure]
        Cells whose valuation failed
    """

    path_index: int
    dates_completed: int = 0
    defaulted: bool = False
    failures: list[PerCellValuationFailure] = field(default_factory=list)

    @property
    def n_failed(self) -> int:
        """Number of failed cells."""
        return len(self.failures)

    @property
    def ok(self) -> bool:
        """True if every cell was valued."""
        return not self.failures


@dataclass
class _Event:
    """One date visited on every path."""

    date: Year
    encoded: int
    exposure_index: int | None = None
    cells: list[tuple[int, int]] = field(default_factory=list)
    resets: list[tuple[int, ResetNode]] = field(default_factory=list)


def _merge_dates(dates: Sequence[float]) -> FloatArray:
    """Sorted distinct dates, treating dates within tolerance as equal."""
    merged: list[float] = []
    for d in sorted(dates):
        if not merged or d - merged[-1] > DATE_TOLERANCE:
            merged.append(float(d))
    return np.asarray(merged, dtype=np.float64)


def _position(merged: FloatArray, date: float) -> int:
    return int(np.searchsorted(merged, date - DATE_TOLERANCE, side="left"))


class ExposurePathEvaluator:
    """
    Drives one pricer per trade across the exposure dates of a path.

    Parameters
    ----------
    market : MarketEnvironment
        Environment mutated by evolution; owned by this evaluator
    pricers : Sequence[SimulationPricer]
        One pricer per trade
    exposure_dates : Sequence[array-like]
        Exposure dates of each trade, strictly increasing
    grid : SimulationDateGrid
        Simulation grid shared by the paths
    apply_jumps_on_default : bool
        Apply the environment's jumps once a path's default date has passed

    Raises
    ------
    DateOutOfRange
        If an exposure or reset date lies outside the grid
    """

    def __init__(
        self,
        market: MarketEnvironment,
        pricers: Sequence[SimulationPricer],
        exposure_dates: Sequence[FloatArray | Sequence[float]],
        grid: SimulationDateGrid,
        apply_jumps_on_default: bool = True,
    ) -> None:
        if len(pricers) == 0:
            raise ValueError("Evaluator needs at least one pricer")
        if len(pricers) != len(exposure_dates):
            raise ValueError(
                f"Need exposure dates for each of {len(pricers)} pricer(s), "
                f"got {len(exposure_dates)}"
            )
        self.market = market
        self.pricers = list(pricers)
        self.exposure_dates = [np.array(d, dtype=np.float64) for d in exposure_dates]
        for k, dates in enumerate(self.exposure_dates):
            if dates.ndim != 1 or (len(dates) > 1 and not np.all(np.diff(dates) > 0)):
                raise ValueError(f"Exposure dates of trade {k} must be strictly increasing")
        self.grid = grid
        self.apply_jumps_on_default = apply_jumps_on_default
        self._events = self._build_events()
        self.n_exposure_dates = sum(e.exposure_index is not None for e in self._events)
        logger.debug(
            "%s built for %d trade(s), %d event date(s)",
            self.__class__.__name__,
            len(self.pricers),
            len(self._events),
        )

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def _reset_dates(self) -> list[float]:
        return []

    def _build_events(self) -> list[_Event]:
        exposure_merged = _merge_dates(np.concatenate(self.exposure_dates))
        merged = _merge_dates(list(exposure_merged) + self._reset_dates())
        events = [_Event(float(d), self.grid.locate(float(d))) for d in merged]

        for i, d in enumerate(exposure_merged):
            events[_position(merged, d)].exposure_index = i
        for k, dates in enumerate(self.exposure_dates):
            for j, d in enumerate(dates):
                events[_position(merged, d)].cells.append((k, j))
        self._attach_resets(events, merged)
        return events

    def _attach_resets(self, events: list[_Event], merged: FloatArray) -> None:
        """Hook for variants that observe reset nodes."""

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _check_set(self, path: SimulatedPath, exposure_set: BaseExposureSet) -> None:
        exposure_set.check_path(path.index)
        if exposure_set.trade_count != len(self.pricers):
            raise ValueError(
                f"Exposure set '{exposure_set.id}' holds {exposure_set.trade_count} "
                f"trade(s), evaluator prices {len(self.pricers)}"
            )
        for k, dates in enumerate(self.exposure_dates):
            held = exposure_set.get_exposure_dates(k)
            if len(held) != len(dates):
                raise ValueError(
                    f"Exposure set '{exposure_set.id}' has {len(held)} date(s) for "
                    f"trade {k}, evaluator has {len(dates)}"
                )

    def evaluate_path(
        self,
        path: SimulatedPath,
        exposure_set: BaseExposureSet,
        progress: ProgressCallback | None = None,
    ) -> PathEvaluationResult:
        """
        Evaluate every (trade, date) exposure on one path.

        Parameters
        ----------
        path : SimulatedPath
            Path to evaluate; its index selects the row written
        exposure_set : BaseExposureSet
            Destination sized for this portfolio
        progress : Callable[[int, int], None] | None
            Called with (path index, exposure date index) once per
            completed exposure date

        Returns
        -------
        PathEvaluationResult
            Completed dates and per-cell failures

        Raises
        ------
        IndexOutOfRange
            If path.index is not a row of the exposure set
        InvalidCurveIdentifier, DateOutOfRange
            If the path and the environment disagree
        """
        self._check_set(path, exposure_set)
        result = PathEvaluationResult(path_index=path.index)
        matrices = [exposure_set.get_exposures(k) for k in range(len(self.pricers))]
        discount_factors = exposure_set.get_discount_factors()

        # Trades whose reset observation failed on this path
        broken: dict[int, Exception] = {}

        for pricer in self.pricers:
            pricer.reset_state()

        for event in self._events:
            state = self.market.evolve(
                path, event.date, event.encoded, apply_jumps=self.apply_jumps_on_default
            )
            result.defaulted = result.defaulted or state.defaulted

            for k, node in event.resets:
                if k not in broken:
                    self._apply_reset(k, node, path, broken)

            for k, j in event.cells:
                if k in broken:
                    failure = PerCellValuationFailure(k, path.index, j, state.date, broken[k])
                    result.failures.append(failure)
                    matrices[k][path.index, j] = FAILED
                else:
                    matrices[k][path.index, j] = self._price_cell(
                        k, j, path, state, result
                    )
                if k == 0 and discount_factors is not None:
                    discount_factors[path.index, j] = state.discount_factor

            if event.exposure_index is not None:
                result.dates_completed += 1
                if progress is not None:
                    progress(path.index, event.exposure_index)

        logger.debug(
            "Path %d evaluated: %d date(s), %d failed cell(s)%s",
            path.index,
            result.dates_completed,
            result.n_failed,
            ", defaulted" if result.defaulted else "",
        )
        return result

    def _apply_reset(
        self,
        trade_index: int,
        node: ResetNode,
        path: SimulatedPath,
        broken: dict[int, Exception],
    ) -> None:
        """Apply one observation; a failure fails the trade's later cells only."""
        try:
            node.update(self.market)
        except CONTRACT_ERRORS:
            raise
        except Exception as exc:
            logger.warning(
                "Reset at %.4fY failed for trade %d on path %d: %r",
                node.date,
                trade_index,
                path.index,
                exc,
            )
            broken[trade_index] = exc

    def _price_cell(
        self,
        trade_index: int,
        date_index: int,
        path: SimulatedPath,
        state: MarketState,
        result: PathEvaluationResult,
    ) -> float:
        try:
            return self.pricers[trade_index].price(self.market, state)
        except CONTRACT_ERRORS:
            raise
        except Exception as exc:
            failure = PerCellValuationFailure(
                trade_index, path.index, date_index, state.date, exc
            )
            logger.warning("%s", failure)
            result.failures.append(failure)
            return FAILED

    def clone(self) -> "ExposurePathEvaluator":
        """
        Independent evaluator for another thread.

        The market environment and the pricers (with their reset state) are
        deep-copied; the grid and exposure dates are shared read-only.
        """
        return type(self)(
            self.market.clone(),
            copy.deepcopy(self.pricers),
            self.exposure_dates,
            self.grid,
            self.apply_jumps_on_default,
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}(trades={len(self.pricers)}, "
            f"dates={self.n_exposure_dates}, events={len(self._events)})"
        )


class DateMajorEvaluator(ExposurePathEvaluator):
    """
    Evaluator for portfolios without path-dependent state.

    The market is evolved once per exposure date and shared by every trade
    observed at that date.
    """


class ResetAwareEvaluator(ExposurePathEvaluator):
    """
    Evaluator for portfolios holding reset-driven cash flows.

    Reset dates are merged with the exposure dates. At each reset date the
    market is evolved to that date and the due observations are applied, in
    date order, before any valuation at the same or a later date.
    """

    def _reset_dates(self) -> list[float]:
        return [node.date for pricer in self.pricers for node in pricer.reset_nodes()]

    def _attach_resets(self, events: list[_Event], merged: FloatArray) -> None:
        for k, pricer in enumerate(self.pricers):
            for node in pricer.reset_nodes():
                events[_position(merged, node.date)].resets.append((k, node))


def get_evaluator(
    market: MarketEnvironment,
    pricers: Sequence[SimulationPricer],
    exposure_dates: Sequence[FloatArray | Sequence[float]],
    grid: SimulationDateGrid,
    apply_jumps_on_default: bool = True,
) -> ExposurePathEvaluator:
    """
    Select the evaluator variant for a portfolio.

    Returns
    -------
    ExposurePathEvaluator
        ResetAwareEvaluator if any pricer exposes reset nodes,
        DateMajorEvaluator otherwise
    """
    if any(pricer.reset_nodes() for pricer in pricers):
        cls: type[ExposurePathEvaluator] = ResetAwareEvaluator
    else:
        cls = DateMajorEvaluator
    return cls(market, pricers, exposure_dates, grid, apply_jumps_on_default)
