"""
Tests for per-path exposure evaluation.
"""

import logging

import numpy as np
import pytest

from ccr_core.errors import DateOutOfRange, IndexOutOfRange, InvalidCurveIdentifier
from ccr_core.exposure import (
    DateMajorEvaluator,
    ExposureSet,
    MultiTradeExposureSet,
    Precision,
    ResetAwareEvaluator,
    SimulationPricer,
    SwapPricer,
    get_evaluator,
)
from ccr_core.exposure.cashflows import CashflowPricer, CompoundedRateCashflow
from ccr_core.exposure.pricers import PricerType
from ccr_core.jumps import JumpKind, constant, create_jump
from ccr_core.market import DiscountCurve, MarketEnvironment, MarketState, SurvivalCurve

from conftest import RATE


class DatePricer(SimulationPricer):
    """Values a trade at its evaluation date and records every call."""

    maturity = 10.0
    pricer_type = PricerType.SWAP

    def __init__(self) -> None:
        self.seen: list[float] = []

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        self.seen.append(state.date)
        return 100.0 + state.date


class FailingPricer(DatePricer):
    """Raises at one date, values normally elsewhere."""

    def __init__(self, fail_at: float, error: Exception) -> None:
        super().__init__()
        self.fail_at = fail_at
        self.error = error

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        if state.date == self.fail_at:
            raise self.error
        return super().price(market, state)


class SurvivalPricer(DatePricer):
    """Reads the 2Y survival probability of the first credit curve."""

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        return float(market.credit_curves[0].survival_probability(2.0))


DATES = [0.5, 1.0, 1.5]


class TestConstruction:
    """Tests for evaluator validation."""

    def test_requires_pricers(self, flat_market, grid) -> None:
        with pytest.raises(ValueError, match="at least one pricer"):
            DateMajorEvaluator(flat_market, [], [], grid)

    def test_dates_per_pricer(self, flat_market, grid) -> None:
        with pytest.raises(ValueError, match="exposure dates"):
            DateMajorEvaluator(flat_market, [DatePricer()], [DATES, DATES], grid)

    def test_increasing_dates(self, flat_market, grid) -> None:
        with pytest.raises(ValueError, match="strictly increasing"):
            DateMajorEvaluator(flat_market, [DatePricer()], [[1.0, 0.5]], grid)

    def test_date_outside_grid(self, flat_market, grid) -> None:
        with pytest.raises(DateOutOfRange):
            DateMajorEvaluator(flat_market, [DatePricer()], [[1.0, 2.5]], grid)

    def test_variant_selection(self, flat_market, grid) -> None:
        plain = get_evaluator(flat_market, [DatePricer()], [DATES], grid)
        assert type(plain) is DateMajorEvaluator
        coupon = CashflowPricer(CompoundedRateCashflow([0.0, 0.5], 1.0, 1e6))
        reset_aware = get_evaluator(flat_market, [DatePricer(), coupon], [DATES, [0.5]], grid)
        assert type(reset_aware) is ResetAwareEvaluator

    def test_union_of_dates(self, flat_market, grid) -> None:
        evaluator = DateMajorEvaluator(
            flat_market, [DatePricer(), DatePricer()], [[0.5, 1.0], [1.0, 1.5]], grid
        )
        assert evaluator.n_exposure_dates == 3


class TestEvaluatePath:
    """Tests for writing one path's row."""

    def test_writes_only_its_row(self, flat_market, grid, make_path) -> None:
        exposure_set = ExposureSet.allocate(3, DATES)
        evaluator = DateMajorEvaluator(flat_market, [DatePricer()], [DATES], grid)
        result = evaluator.evaluate_path(make_path(index=1), exposure_set)
        exposures = exposure_set.get_exposures(0)
        assert np.allclose(exposures[1], [100.5, 101.0, 101.5])
        assert np.all(exposures[[0, 2]] == 0.0)
        assert result.path_index == 1
        assert result.dates_completed == 3
        assert result.ok

    def test_swap_on_deterministic_path(self, flat_market, grid, make_path) -> None:
        swap = SwapPricer(notional=1e6, fixed_rate=0.02, maturity=2.0)
        exposure_set = ExposureSet.allocate(1, [1.0])
        DateMajorEvaluator(flat_market, [swap], [[1.0]], grid).evaluate_path(
            make_path(), exposure_set
        )
        annuity = 0.5 * (np.exp(-RATE * 0.5) + np.exp(-RATE * 1.0))
        expected = 1e6 * (1.0 - np.exp(-RATE)) - 1e6 * 0.02 * annuity
        assert np.isclose(exposure_set.get_exposures(0)[0, 0], expected)

    def test_each_trade_sees_its_dates(self, flat_market, grid, make_path) -> None:
        first, second = DatePricer(), DatePricer()
        dates = [[0.5, 1.0], [1.0, 1.5]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 1, dates)
        exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 1, dates)
        DateMajorEvaluator(flat_market, [first, second], dates, grid).evaluate_path(
            make_path(), exposure_set
        )
        assert first.seen == [0.5, 1.0]
        assert second.seen == [1.0, 1.5]
        assert np.allclose(exposure_set.get_exposures(1)[0], [101.0, 101.5])

    def test_off_grid_date(self, flat_market, grid, make_path) -> None:
        exposure_set = ExposureSet.allocate(1, [0.75])
        pricer = DatePricer()
        DateMajorEvaluator(flat_market, [pricer], [[0.75]], grid).evaluate_path(
            make_path(), exposure_set
        )
        assert pricer.seen == [0.75]

    def test_discount_factors_recorded(self, flat_market, grid, make_path) -> None:
        exposure_set = ExposureSet.allocate(1, DATES, record_discount_factors=True)
        DateMajorEvaluator(flat_market, [DatePricer()], [DATES], grid).evaluate_path(
            make_path(), exposure_set
        )
        assert np.allclose(
            exposure_set.get_discount_factors()[0], np.exp(-RATE * np.array(DATES))
        )

    def test_multi_trade_discount_factors(self, flat_market, grid, make_path) -> None:
        """Discount factors follow the dates of trade 0 only."""
        dates = [[0.5, 1.5], [1.0]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 1, dates)
        exposure_set = MultiTradeExposureSet(
            Precision.DOUBLE, buffer, 1, dates, discount_factors=np.zeros((1, 2))
        )
        DateMajorEvaluator(flat_market, [DatePricer(), DatePricer()], dates, grid).evaluate_path(
            make_path(), exposure_set
        )
        assert np.allclose(
            exposure_set.get_discount_factors()[0], np.exp(-RATE * np.array([0.5, 1.5]))
        )

    def test_progress_once_per_date(self, flat_market, grid, make_path) -> None:
        calls: list[tuple[int, int]] = []
        evaluator = DateMajorEvaluator(
            flat_market, [DatePricer(), DatePricer()], [[0.5, 1.0], [1.0, 1.5]], grid
        )
        dates = [[0.5, 1.0], [1.0, 1.5]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.SINGLE, 4, dates)
        exposure_set = MultiTradeExposureSet(Precision.SINGLE, buffer, 4, dates)
        evaluator.evaluate_path(make_path(index=2), exposure_set, progress=lambda p, d: calls.append((p, d)))
        assert calls == [(2, 0), (2, 1), (2, 2)]

    def test_path_index_out_of_range(self, flat_market, grid, make_path) -> None:
        exposure_set = ExposureSet.allocate(2, DATES)
        evaluator = DateMajorEvaluator(flat_market, [DatePricer()], [DATES], grid)
        with pytest.raises(IndexOutOfRange):
            evaluator.evaluate_path(make_path(index=2), exposure_set)

    def test_set_mismatch(self, flat_market, grid, make_path) -> None:
        evaluator = DateMajorEvaluator(flat_market, [DatePricer()], [DATES], grid)
        with pytest.raises(ValueError, match="date"):
            evaluator.evaluate_path(make_path(), ExposureSet.allocate(1, [0.5]))


class TestFailureIsolation:
    """Tests for per-cell valuation failures."""

    def test_failed_cell_only(self, flat_market, grid, make_path, caplog) -> None:
        dates = [DATES, DATES]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 1, dates)
        exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 1, dates)
        pricers = [DatePricer(), FailingPricer(1.0, RuntimeError("no convergence"))]
        evaluator = DateMajorEvaluator(flat_market, pricers, dates, grid)

        with caplog.at_level(logging.WARNING):
            result = evaluator.evaluate_path(make_path(), exposure_set)

        assert np.allclose(exposure_set.get_exposures(0)[0], [100.5, 101.0, 101.5])
        failed_row = exposure_set.get_exposures(1)[0]
        assert failed_row[0] == 100.5
        assert np.isnan(failed_row[1])
        assert failed_row[2] == 101.5
        assert exposure_set.failed_cells(1).sum() == 1

        assert result.n_failed == 1
        assert result.dates_completed == 3
        failure = result.failures[0]
        assert (failure.trade_index, failure.path_index, failure.date_index) == (1, 0, 1)
        assert failure.date == 1.0
        assert isinstance(failure.cause, RuntimeError)
        assert "no convergence" in caplog.text

    def test_contract_errors_propagate(self, flat_market, grid, make_path) -> None:
        pricer = FailingPricer(1.0, InvalidCurveIdentifier("credit curve", 3))
        evaluator = DateMajorEvaluator(flat_market, [pricer], [DATES], grid)
        with pytest.raises(InvalidCurveIdentifier):
            evaluator.evaluate_path(make_path(), ExposureSet.allocate(1, DATES))


class TestJumpsOnDefault:
    """Tests for default-contingent state seen by the pricers."""

    @pytest.fixture
    def credit_market(self, tenors) -> MarketEnvironment:
        credit = SurvivalCurve.flat(0.01, tenors)
        return MarketEnvironment(
            [DiscountCurve.flat(RATE, tenors)],
            ["USD"],
            credit_curves=[credit],
            jumps_on_default=[create_jump(credit, JumpKind.SPECIFIED, constant(0.5))],
        )

    @pytest.fixture
    def defaulting_path(self, grid, tenors, make_path):
        path = make_path(default_date=0.75)
        path.add_credit(0, np.tile(np.exp(-0.01 * tenors), (len(grid), 1)))
        return path

    def test_values_change_after_default(self, credit_market, grid, defaulting_path) -> None:
        exposure_set = ExposureSet.allocate(1, DATES)
        evaluator = DateMajorEvaluator(credit_market, [SurvivalPricer()], [DATES], grid)
        result = evaluator.evaluate_path(defaulting_path, exposure_set)
        row = exposure_set.get_exposures(0)[0]
        assert np.isclose(row[0], np.exp(-0.02))
        assert np.allclose(row[1:], np.exp(-1.0))
        assert result.defaulted

    def test_jumps_disabled(self, credit_market, grid, defaulting_path) -> None:
        exposure_set = ExposureSet.allocate(1, DATES)
        evaluator = DateMajorEvaluator(
            credit_market, [SurvivalPricer()], [DATES], grid, apply_jumps_on_default=False
        )
        result = evaluator.evaluate_path(defaulting_path, exposure_set)
        assert np.allclose(exposure_set.get_exposures(0)[0], np.exp(-0.02))
        assert not result.defaulted


class TestClone:
    """Tests for per-thread evaluator copies."""

    def test_clone_owns_market_and_pricers(self, flat_market, grid) -> None:
        pricer = DatePricer()
        evaluator = DateMajorEvaluator(flat_market, [pricer], [DATES], grid)
        clone = evaluator.clone()
        assert type(clone) is DateMajorEvaluator
        assert clone.market is not evaluator.market
        assert clone.pricers[0] is not pricer
        assert clone.grid is evaluator.grid

    def test_clone_evaluates_identically(self, flat_market, grid, make_path) -> None:
        swap = SwapPricer(notional=1e6, fixed_rate=0.02, maturity=2.0)
        evaluator = DateMajorEvaluator(flat_market, [swap], [DATES], grid)
        first = ExposureSet.allocate(1, DATES)
        second = ExposureSet.allocate(1, DATES)
        evaluator.evaluate_path(make_path(), first)
        evaluator.clone().evaluate_path(make_path(), second)
        assert np.array_equal(first.get_exposures(0), second.get_exposures(0))
