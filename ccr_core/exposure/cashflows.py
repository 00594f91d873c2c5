"""
Path-dependent cash flows driven by scheduled market observations.

A cash flow whose amount depends on several observations (compounding,
range accrual) owns an ordered list of reset nodes. On every path the
evaluator advances the market to each reset date in turn and calls the
node's ``update``; only once all resets have run can the realized amount
be read. Resets applied out of order are rejected.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ccr_core._types import FloatArray, Year
from ccr_core.exposure.pricers import PricerType, SimulationPricer
from ccr_core.market.environment import MarketEnvironment, MarketState


class ResetNode:
    """
    One scheduled observation of a cash flow.

    Parameters
    ----------
    cashflow : CashflowNode
        Cash flow owning the state the observation updates
    position : int
        Order of the observation within the cash flow
    date : float
        Observation date in years
    """

    def __init__(self, cashflow: "CashflowNode", position: int, date: Year) -> None:
        self.cashflow = cashflow
        self.position = position
        self.date = date

    def update(self, market: MarketEnvironment) -> None:
        """Observe the market (evolved to ``date``) into the cash flow's state."""
        self.cashflow.apply_reset(self.position, market)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"ResetNode(position={self.position}, date={self.date:.4f}Y)"


class CashflowNode(ABC):
    """
    Cash flow paid once, with an amount fixed by ordered resets.

    Parameters
    ----------
    reset_dates : array-like
        Strictly increasing observation dates
    payment_date : float
        Payment date, after the last reset
    notional : float
        Notional amount
    """

    def __init__(
        self,
        reset_dates: FloatArray | Sequence[float],
        payment_date: Year,
        notional: float,
    ) -> None:
        dates = np.array(reset_dates, dtype=np.float64)
        if dates.ndim != 1 or len(dates) == 0:
            raise ValueError("Cash flow needs at least one reset date")
        if not np.all(np.diff(dates) > 0):
            raise ValueError("Reset dates must be strictly increasing")
        if payment_date <= dates[-1]:
            raise ValueError(
                f"Payment date {payment_date} must follow the last reset {dates[-1]}"
            )
        dates.setflags(write=False)
        self.reset_dates = dates
        self.payment_date = payment_date
        self.notional = notional
        self._nodes = [ResetNode(self, i, float(d)) for i, d in enumerate(dates)]
        self._next = 0

    @property
    def reset_nodes(self) -> list[ResetNode]:
        """Reset nodes in observation order."""
        return list(self._nodes)

    @property
    def resets_done(self) -> int:
        """Number of resets applied on the current path."""
        return self._next

    @property
    def is_fixed(self) -> bool:
        """True once every reset has been applied."""
        return self._next == len(self._nodes)

    def reset_state(self) -> None:
        """Forget all observations before a new path."""
        self._next = 0
        self._clear()

    def apply_reset(self, position: int, market: MarketEnvironment) -> None:
        """
        Apply reset ``position`` from the current market state.

        Raises
        ------
        RuntimeError
            If position is not the next reset expected
        """
        if position != self._next:
            raise RuntimeError(
                f"Reset {position} applied out of order on {self!r}; "
                f"expected reset {self._next}"
            )
        self._observe(position, market)
        self._next += 1

    def realized_amount(self) -> float:
        """
        Amount paid, once all resets have run.

        Raises
        ------
        RuntimeError
            If some reset has not been applied yet
        """
        if not self.is_fixed:
            raise RuntimeError(
                f"Amount of {self!r} read after {self._next} of "
                f"{len(self._nodes)} resets"
            )
        return self._amount()

    @abstractmethod
    def _clear(self) -> None:
        """Reset observation state."""

    @abstractmethod
    def _observe(self, position: int, market: MarketEnvironment) -> None:
        """Record observation ``position``."""

    @abstractmethod
    def _amount(self) -> float:
        """Amount from a complete set of observations."""

    @abstractmethod
    def projected_amount(self, market: MarketEnvironment, date: Year) -> float:
        """Expected amount at date, given the resets applied so far."""

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}(resets={len(self._nodes)}, "
            f"payment={self.payment_date:.4f}Y, notional={self.notional:,.0f})"
        )


class CompoundedRateCashflow(CashflowNode):
    """
    Compounded floating-rate coupon.

    Reset i fixes the simple rate of the period [dᵢ, dᵢ₊₁] (the last period
    ends on the payment date) from the domestic curve. The amount paid is

        N × [Π (1 + rᵢ τᵢ) - 1]

    Example
    -------
    >>> coupon = CompoundedRateCashflow([0.0, 0.25, 0.5, 0.75], payment_date=1.0, notional=1e6)
    >>> len(coupon.reset_nodes)
    4
    """

    def __init__(
        self,
        reset_dates: FloatArray | Sequence[float],
        payment_date: Year,
        notional: float,
    ) -> None:
        super().__init__(reset_dates, payment_date, notional)
        self.period_ends = np.append(self.reset_dates[1:], payment_date)
        self.accruals = self.period_ends - self.reset_dates
        self._growth = 1.0

    def _clear(self) -> None:
        self._growth = 1.0

    def _observe(self, position: int, market: MarketEnvironment) -> None:
        start = self.reset_dates[position]
        df = float(market.domestic_curve.discount_factor(self.period_ends[position], start))
        rate = (1.0 / df - 1.0) / self.accruals[position]
        self._growth *= 1.0 + rate * self.accruals[position]

    def _amount(self) -> float:
        return self.notional * (self._growth - 1.0)

    def projected_amount(self, market: MarketEnvironment, date: Year) -> float:
        if self.is_fixed:
            return self._amount()
        next_reset = max(float(self.reset_dates[self._next]), date)
        curve = market.domestic_curve
        remaining = float(
            curve.discount_factor(next_reset, date)
            / curve.discount_factor(self.payment_date, date)
        )
        return self.notional * (self._growth * remaining - 1.0)


class RangeAccrualCashflow(CashflowNode):
    """
    Coupon accruing only while a forward rate stays inside a range.

    Each reset observes the rate of a forward curve at the reset date. The
    amount paid is

        N × c × τ × (observations in [lower, upper]) / (number of resets)

    Parameters
    ----------
    reset_dates : array-like
        Observation dates
    payment_date : float
        Payment date
    notional : float
        Notional amount
    coupon : float
        Annual coupon rate
    lower : float
        Lower bound of the range (inclusive)
    upper : float
        Upper bound of the range (inclusive)
    forward_index : int
        Position of the observed forward curve in the environment
    """

    def __init__(
        self,
        reset_dates: FloatArray | Sequence[float],
        payment_date: Year,
        notional: float,
        coupon: float,
        lower: float,
        upper: float,
        forward_index: int = 0,
    ) -> None:
        super().__init__(reset_dates, payment_date, notional)
        if lower > upper:
            raise ValueError(f"Range lower bound {lower} exceeds upper bound {upper}")
        self.coupon = coupon
        self.lower = lower
        self.upper = upper
        self.forward_index = forward_index
        self.accrual = payment_date - float(self.reset_dates[0])
        self._in_range = 0

    def _clear(self) -> None:
        self._in_range = 0

    def _inside(self, rate: float) -> bool:
        return self.lower <= rate <= self.upper

    def _observe(self, position: int, market: MarketEnvironment) -> None:
        curve = market.forward_curves[self.forward_index]
        if self._inside(float(curve.forward(self.reset_dates[position]))):
            self._in_range += 1

    def _coupon_for(self, count: float) -> float:
        return self.notional * self.coupon * self.accrual * count / len(self.reset_dates)

    def _amount(self) -> float:
        return self._coupon_for(self._in_range)

    def projected_amount(self, market: MarketEnvironment, date: Year) -> float:
        curve = market.forward_curves[self.forward_index]
        pending = self.reset_dates[self._next :]
        projected = sum(self._inside(float(curve.forward(d))) for d in pending)
        return self._coupon_for(self._in_range + projected)


@dataclass
class CashflowPricer(SimulationPricer):
    """
    Values one reset-driven cash flow.

    Before payment the value is the realized amount (all resets done) or
    the projected amount, discounted to the evaluation date; from the
    payment date on it is zero.

    Attributes
    ----------
    cashflow : CashflowNode
        Cash flow to value
    """

    cashflow: CashflowNode
    pricer_type: PricerType = field(default=PricerType.CASHFLOW, init=False, repr=False)

    @property
    def maturity(self) -> float:  # type: ignore[override]
        return self.cashflow.payment_date

    def reset_nodes(self) -> list[ResetNode]:
        return self.cashflow.reset_nodes

    def reset_state(self) -> None:
        self.cashflow.reset_state()

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        t = state.date
        if self.is_expired(t):
            return 0.0
        if self.cashflow.is_fixed:
            amount = self.cashflow.realized_amount()
        else:
            amount = self.cashflow.projected_amount(market, t)
        df = float(market.domestic_curve.discount_factor(self.cashflow.payment_date, t))
        return amount * df
