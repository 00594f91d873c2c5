"""
Pricers valuing trades against an evolved market environment.

The path evaluator only relies on :class:`SimulationPricer`: ``price``
returns the trade's value at the evolution date, in domestic currency,
from the state the environment currently holds. Pricers with path-dependent
state additionally expose reset nodes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from ccr_core._types import FloatArray, Year
from ccr_core.market.environment import MarketEnvironment, MarketState

if TYPE_CHECKING:
    from ccr_core.exposure.cashflows import ResetNode

ONE_BP = 1e-4


class PricerType(Enum):
    """Enumeration of shipped pricer types."""

    SWAP = "interest_rate_swap"
    ANNUITY = "annuity"
    FX_FORWARD = "fx_forward"
    COMMODITY_FORWARD = "commodity_forward"
    CASHFLOW = "cashflow"


class SimulationPricer(ABC):
    """
    Abstract base class for everything the path evaluator can price.

    Attributes
    ----------
    maturity : float
        Last date with a cash flow, in years
    pricer_type : PricerType
        Type of pricer for classification
    """

    maturity: float
    pricer_type: PricerType

    @abstractmethod
    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        """
        Value of the trade at ``state.date``.

        Parameters
        ----------
        market : MarketEnvironment
            Environment evolved to ``state.date``
        state : MarketState
            Path-level quantities of the evolution call

        Returns
        -------
        float
            Value in domestic currency (positive = asset for us)
        """

    def reset_nodes(self) -> list["ResetNode"]:
        """Scheduled observations updating path-dependent state (none by default)."""
        return []

    def reset_state(self) -> None:
        """Clear path-dependent state before a new path."""

    def is_expired(self, t: Year) -> bool:
        """True if t >= maturity."""
        return t >= self.maturity

    def to_dict(self) -> dict[str, Any]:
        """Dictionary of the pricer's terms."""
        return {"type": self.pricer_type.value, "maturity": self.maturity}

    def __repr__(self) -> str:
        """Return string representation."""
        return f"{self.__class__.__name__}(maturity={self.maturity:.2f}Y)"


def payment_schedule(start: Year, maturity: Year, frequency: float) -> FloatArray:
    """
    Regular payment dates from start to maturity.

    Example
    -------
    >>> payment_schedule(0.0, 1.0, 0.25)
    array([0.25, 0.5 , 0.75, 1.  ])
    """
    n_payments = int(round((maturity - start) / frequency))
    dates = start + np.arange(1, n_payments + 1) * frequency
    if len(dates) == 0 or dates[-1] < maturity - 1e-12:
        dates = np.append(dates, maturity)
    dates[-1] = maturity
    return dates


@dataclass
class SwapPricer(SimulationPricer):
    """
    Fixed-for-floating interest rate swap on the domestic curve.

    The fixed leg pays N × K × τ at each payment date; the floating leg
    is replicated by the notional exchange N × [P(t, S) - P(t, T)] with
    S = max(start, t):

        V_payer(t) = N × [P(t, S) - P(t, T)] - N × K × Σ τᵢ × P(t, Tᵢ)

    Attributes
    ----------
    notional : float
        Notional amount
    fixed_rate : float
        Fixed coupon rate (decimal)
    maturity : float
        Swap maturity in years
    pay_fixed : bool
        True for payer swap (pay fixed, receive float)
    payment_freq : float
        Payment frequency in years (0.5 = semi-annual)
    start : float
        Swap start date in years

    Example
    -------
    >>> swap = SwapPricer(notional=10_000_000, fixed_rate=0.02, maturity=5.0)
    >>> value = swap.price(market, state)
    """

    notional: float
    fixed_rate: float
    maturity: float
    pay_fixed: bool = True
    payment_freq: float = 0.5
    start: float = 0.0
    pricer_type: PricerType = field(default=PricerType.SWAP, init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate swap parameters."""
        if self.notional <= 0:
            raise ValueError(f"Notional must be positive, got {self.notional}")
        if self.maturity <= 0:
            raise ValueError(f"Maturity must be positive, got {self.maturity}")
        if self.payment_freq <= 0 or self.payment_freq > 1:
            raise ValueError(
                f"Payment frequency must be in (0, 1], got {self.payment_freq}"
            )
        if self.start < 0:
            raise ValueError(f"Start date must be non-negative, got {self.start}")
        if self.start >= self.maturity:
            raise ValueError(
                f"Start ({self.start}) must be before maturity ({self.maturity})"
            )
        self._dates = payment_schedule(self.start, self.maturity, self.payment_freq)

    def get_cash_flow_dates(self) -> FloatArray:
        """Fixed-leg payment dates."""
        return self._dates.copy()

    def annuity(self, market: MarketEnvironment, t: Year) -> float:
        """Σ τᵢ P(t, Tᵢ) over the payments after t."""
        remaining = self._dates[self._dates > t]
        if len(remaining) == 0:
            return 0.0
        curve = market.domestic_curve
        return float(self.payment_freq * np.sum(curve.discount_factor(remaining, t)))

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        t = state.date
        if self.is_expired(t):
            return 0.0
        curve = market.domestic_curve
        float_start = max(self.start, t)
        pv_float = self.notional * float(
            curve.discount_factor(float_start, t) - curve.discount_factor(self.maturity, t)
        )
        pv_fixed = self.notional * self.fixed_rate * self.annuity(market, t)
        return pv_float - pv_fixed if self.pay_fixed else pv_fixed - pv_float

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.pricer_type.value,
            "notional": self.notional,
            "fixed_rate": self.fixed_rate,
            "maturity": self.maturity,
            "pay_fixed": self.pay_fixed,
            "payment_freq": self.payment_freq,
            "start": self.start,
        }

    def __repr__(self) -> str:
        """Return string representation."""
        direction = "payer" if self.pay_fixed else "receiver"
        return (
            f"SwapPricer({direction}, notional={self.notional:,.0f}, "
            f"K={self.fixed_rate:.4%}, maturity={self.maturity:.2f}Y)"
        )


@dataclass
class AnnuityPricer(SimulationPricer):
    """
    Value of a +1bp shift of a swap's fixed coupon.

    Priced alongside the swap it shadows, it yields the coupon-01 exposures
    of an incremental exposure set.

    Attributes
    ----------
    swap : SwapPricer
        Swap whose fixed leg is shifted
    shift : float
        Coupon shift (default 1bp)
    """

    swap: SwapPricer
    shift: float = ONE_BP
    pricer_type: PricerType = field(default=PricerType.ANNUITY, init=False, repr=False)

    @property
    def maturity(self) -> float:  # type: ignore[override]
        return self.swap.maturity

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        t = state.date
        if self.is_expired(t):
            return 0.0
        value = self.swap.notional * self.shift * self.swap.annuity(market, t)
        return -value if self.swap.pay_fixed else value


@dataclass
class FxForwardPricer(SimulationPricer):
    """
    FX forward against the domestic currency.

    PV at time t (in domestic currency):
        V(t) = N_f × X(t) × P_f(t,T) - K × N_f × P_d(t,T)

    Attributes
    ----------
    notional_foreign : float
        Notional in foreign currency
    strike : float
        Forward strike (domestic per foreign)
    maturity : float
        Settlement date in years
    currency : str
        Foreign currency
    buy_foreign : bool
        True if we receive foreign currency and pay domestic
    """

    notional_foreign: float
    strike: float
    maturity: float
    currency: str
    buy_foreign: bool = True
    pricer_type: PricerType = field(default=PricerType.FX_FORWARD, init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate forward parameters."""
        if self.notional_foreign <= 0:
            raise ValueError(
                f"Foreign notional must be positive, got {self.notional_foreign}"
            )
        if self.strike <= 0:
            raise ValueError(f"Strike must be positive, got {self.strike}")
        if self.maturity <= 0:
            raise ValueError(f"Maturity must be positive, got {self.maturity}")

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        t = state.date
        if self.is_expired(t):
            return 0.0
        domestic = market.domestic_currency
        fx = market.fx_rate(self.currency, domestic)
        df_foreign = market.discount_curve(self.currency).discount_factor(self.maturity, t)
        df_domestic = market.domestic_curve.discount_factor(self.maturity, t)
        value = self.notional_foreign * (fx * df_foreign - self.strike * df_domestic)
        return float(value if self.buy_foreign else -value)


@dataclass
class CommodityForwardPricer(SimulationPricer):
    """
    Forward purchase of a spot asset.

    PV at time t: q × [F(t, T) - K] × P(t, T), with F read from a spot-based
    forward price curve of the environment.

    Attributes
    ----------
    curve_index : int
        Position of the spot-based curve in the environment
    quantity : float
        Units bought (negative to sell)
    strike : float
        Delivery price
    maturity : float
        Delivery date in years
    """

    curve_index: int
    quantity: float
    strike: float
    maturity: float
    pricer_type: PricerType = field(
        default=PricerType.COMMODITY_FORWARD, init=False, repr=False
    )

    def price(self, market: MarketEnvironment, state: MarketState) -> float:
        t = state.date
        if self.is_expired(t):
            return 0.0
        curve = market.spot_curves[self.curve_index]
        forward = curve.forward(self.maturity)
        df = curve.discount_curve.discount_factor(self.maturity, t)
        return float(self.quantity * (forward - self.strike) * df)
