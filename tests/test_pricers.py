"""
Tests for pricers valued against a market environment.
"""

import numpy as np
import pytest

from ccr_core.exposure import (
    AnnuityPricer,
    CommodityForwardPricer,
    FxForwardPricer,
    SwapPricer,
)
from ccr_core.exposure.pricers import payment_schedule
from ccr_core.market import (
    DiscountCurve,
    ForwardPriceCurve,
    FxRate,
    MarketEnvironment,
    MarketState,
    SpotPrice,
)

from conftest import RATE

TODAY = MarketState(date=0.0, numeraire=1.0, discount_factor=1.0)


@pytest.fixture
def fx_market(tenors: np.ndarray) -> MarketEnvironment:
    """USD domestic with an EUR leg at 1.10."""
    return MarketEnvironment(
        discount_curves=[DiscountCurve.flat(RATE, tenors), DiscountCurve.flat(0.01, tenors)],
        currencies=["USD", "EUR"],
        fx_rates=[FxRate("EUR", "USD", 1.10)],
    )


class TestPaymentSchedule:
    """Tests for regular payment dates."""

    def test_regular(self) -> None:
        assert np.allclose(payment_schedule(0.0, 1.0, 0.25), [0.25, 0.5, 0.75, 1.0])

    def test_forward_start(self) -> None:
        assert np.allclose(payment_schedule(1.0, 2.0, 0.5), [1.5, 2.0])

    def test_short_stub(self) -> None:
        assert np.allclose(payment_schedule(0.0, 1.1, 0.5), [0.5, 1.0, 1.1])


class TestSwapPricer:
    """Tests for the interest rate swap."""

    def test_par_swap_is_worth_zero(self, flat_market: MarketEnvironment) -> None:
        dates = np.array([0.5, 1.0, 1.5, 2.0])
        annuity = 0.5 * np.sum(np.exp(-RATE * dates))
        par = (1.0 - np.exp(-RATE * 2.0)) / annuity
        swap = SwapPricer(notional=1e6, fixed_rate=par, maturity=2.0)
        assert np.isclose(swap.annuity(flat_market, 0.0), annuity)
        assert np.isclose(swap.price(flat_market, TODAY), 0.0, atol=1e-6)

    def test_payer_gains_when_rates_exceed_coupon(self, flat_market: MarketEnvironment) -> None:
        payer = SwapPricer(notional=1e6, fixed_rate=0.01, maturity=2.0)
        receiver = SwapPricer(notional=1e6, fixed_rate=0.01, maturity=2.0, pay_fixed=False)
        value = payer.price(flat_market, TODAY)
        assert value > 0
        assert np.isclose(receiver.price(flat_market, TODAY), -value)

    def test_expired(self, flat_market: MarketEnvironment) -> None:
        swap = SwapPricer(notional=1e6, fixed_rate=0.03, maturity=2.0)
        state = MarketState(date=2.0, numeraire=1.0, discount_factor=1.0)
        assert swap.price(flat_market, state) == 0.0
        assert swap.is_expired(2.0)
        assert not swap.is_expired(1.99)

    def test_validation(self) -> None:
        with pytest.raises(ValueError, match="Notional"):
            SwapPricer(notional=0.0, fixed_rate=0.03, maturity=2.0)
        with pytest.raises(ValueError, match="frequency"):
            SwapPricer(notional=1e6, fixed_rate=0.03, maturity=2.0, payment_freq=1.5)
        with pytest.raises(ValueError, match="before maturity"):
            SwapPricer(notional=1e6, fixed_rate=0.03, maturity=2.0, start=2.0)

    def test_to_dict(self) -> None:
        terms = SwapPricer(notional=1e6, fixed_rate=0.03, maturity=2.0).to_dict()
        assert terms["type"] == "interest_rate_swap"
        assert terms["maturity"] == 2.0
        assert terms["pay_fixed"] is True


class TestAnnuityPricer:
    """Tests for the coupon-01 shadow of a swap."""

    def test_matches_coupon_bump(self, flat_market: MarketEnvironment) -> None:
        swap = SwapPricer(notional=1e6, fixed_rate=0.02, maturity=2.0)
        bumped = SwapPricer(notional=1e6, fixed_rate=0.0201, maturity=2.0)
        shift = AnnuityPricer(swap)
        expected = bumped.price(flat_market, TODAY) - swap.price(flat_market, TODAY)
        assert np.isclose(shift.price(flat_market, TODAY), expected)
        assert shift.maturity == 2.0

    def test_receiver_sign(self, flat_market: MarketEnvironment) -> None:
        swap = SwapPricer(notional=1e6, fixed_rate=0.02, maturity=2.0, pay_fixed=False)
        assert AnnuityPricer(swap).price(flat_market, TODAY) > 0


class TestFxForwardPricer:
    """Tests for the FX forward."""

    def test_value(self, fx_market: MarketEnvironment) -> None:
        forward = FxForwardPricer(notional_foreign=1e6, strike=1.12, maturity=1.0, currency="EUR")
        expected = 1e6 * (1.10 * np.exp(-0.01) - 1.12 * np.exp(-RATE))
        assert np.isclose(forward.price(fx_market, TODAY), expected)

    def test_sell_foreign(self, fx_market: MarketEnvironment) -> None:
        buy = FxForwardPricer(1e6, 1.12, 1.0, "EUR")
        sell = FxForwardPricer(1e6, 1.12, 1.0, "EUR", buy_foreign=False)
        assert np.isclose(sell.price(fx_market, TODAY), -buy.price(fx_market, TODAY))

    def test_unknown_currency(self, fx_market: MarketEnvironment) -> None:
        forward = FxForwardPricer(1e6, 150.0, 1.0, "JPY")
        with pytest.raises(KeyError):
            forward.price(fx_market, TODAY)

    def test_validation(self) -> None:
        with pytest.raises(ValueError, match="Strike"):
            FxForwardPricer(1e6, 0.0, 1.0, "EUR")


class TestCommodityForwardPricer:
    """Tests for the spot-based forward purchase."""

    def test_value(self, tenors: np.ndarray) -> None:
        domestic = DiscountCurve.flat(RATE, tenors)
        market = MarketEnvironment(
            [domestic],
            ["USD"],
            spot_curves=[ForwardPriceCurve(SpotPrice("GOLD", 2000.0), domestic)],
        )
        forward = CommodityForwardPricer(curve_index=0, quantity=10.0, strike=2050.0, maturity=1.0)
        expected = 10.0 * (2000.0 - 2050.0 * np.exp(-RATE))
        assert np.isclose(forward.price(market, TODAY), expected)
