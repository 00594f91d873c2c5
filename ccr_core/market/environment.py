"""
Market environment evolved along simulated paths.

The environment owns every market object the pricers read: discount curves
(the first is the domestic curve), FX quotes, credit curves, forward curves
and spot-based forward price curves. Evolving it to a date overwrites all of
them from one simulated path, in a fixed order:

1. domestic discount curve, FX factor and numeraire;
2. foreign discount curves and their FX quotes against the domestic currency;
3. cross FX quotes, triangulated through the domestic currency;
4. credit curves;
5. forward curves;
6. spot-based curves (deflated spot divided by the curve's discount factor).

Default jumps registered on an object are applied right after that object is
evolved, once the path's default date has passed.
"""

import copy
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ccr_core._types import Year
from ccr_core.market.curve import DiscountCurve, ForwardCurve
from ccr_core.market.fx import FxRate
from ccr_core.market.hazard import SurvivalCurve
from ccr_core.market.spot import ForwardPriceCurve

if TYPE_CHECKING:
    from ccr_core.jumps.specs import JumpSpecification
    from ccr_core.simulation.path import SimulatedPath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketState:
    """
    Path-level quantities produced by one evolution call.

    Attributes
    ----------
    date : float
        Evolution date in years
    numeraire : float
        Undiscounted numeraire (path numeraire divided by discount factor)
    discount_factor : float
        Domestic discount factor from the as-of date to ``date``
    defaulted : bool
        True if default jumps were applied
    """

    date: Year
    numeraire: float
    discount_factor: float
    defaulted: bool = False


class MarketEnvironment:
    """
    Container of all market objects mutated by path evolution.

    Parameters
    ----------
    discount_curves : Sequence[DiscountCurve]
        Discount curves; the first is the domestic curve
    currencies : Sequence[str]
        Currency of each discount curve, same order
    fx_rates : Sequence[FxRate]
        One quote per foreign discount curve (``fx_rates[i - 1]`` pairs
        ``currencies[i]`` with the domestic currency), followed by any cross
        quotes between foreign currencies
    credit_curves : Sequence[SurvivalCurve]
        Survival curves
    forward_curves : Sequence[ForwardCurve]
        Forward curves
    spot_curves : Sequence[ForwardPriceCurve]
        Spot-based forward price curves
    jumps_on_default : Sequence[JumpSpecification]
        Jumps applied once the counterparty has defaulted; each must target
        one of the objects above
    as_of : float
        Valuation date in years

    Example
    -------
    >>> env = MarketEnvironment(
    ...     discount_curves=[DiscountCurve.flat(0.02, [1.0, 5.0])],
    ...     currencies=["USD"],
    ... )
    >>> env.domestic_currency
    'USD'
    """

    def __init__(
        self,
        discount_curves: Sequence[DiscountCurve],
        currencies: Sequence[str],
        fx_rates: Sequence[FxRate] = (),
        credit_curves: Sequence[SurvivalCurve] = (),
        forward_curves: Sequence[ForwardCurve] = (),
        spot_curves: Sequence[ForwardPriceCurve] = (),
        jumps_on_default: Sequence["JumpSpecification"] = (),
        as_of: Year = 0.0,
    ) -> None:
        if len(discount_curves) == 0:
            raise ValueError("Market environment needs at least one discount curve")
        if len(currencies) != len(discount_curves):
            raise ValueError(
                f"Need one currency per discount curve, got {len(currencies)} "
                f"currencies for {len(discount_curves)} curves"
            )
        if len(set(currencies)) != len(currencies):
            raise ValueError(f"Discount curve currencies must be distinct, got {list(currencies)}")

        self.discount_curves = list(discount_curves)
        self.currencies = list(currencies)
        self.fx_rates = list(fx_rates)
        self.credit_curves = list(credit_curves)
        self.forward_curves = list(forward_curves)
        self.spot_curves = list(spot_curves)
        self.as_of = as_of

        self._validate_fx()
        self._jumps = self._index_jumps(jumps_on_default)

        logger.debug(
            "Built %r with %d jump target(s)", self, len(self._jumps)
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @property
    def domestic_currency(self) -> str:
        """Currency of the first discount curve."""
        return self.currencies[0]

    @property
    def domestic_curve(self) -> DiscountCurve:
        """Domestic discount curve."""
        return self.discount_curves[0]

    @property
    def n_foreign(self) -> int:
        """Number of foreign discount curves."""
        return len(self.discount_curves) - 1

    def _validate_fx(self) -> None:
        if len(self.fx_rates) < self.n_foreign:
            raise ValueError(
                f"Need an FX quote for each of {self.n_foreign} foreign "
                f"curve(s), got {len(self.fx_rates)}"
            )
        domestic = self.domestic_currency
        for i in range(1, len(self.discount_curves)):
            fx = self.fx_rates[i - 1]
            if not (fx.involves(self.currencies[i]) and fx.involves(domestic)):
                raise ValueError(
                    f"FX quote {i - 1} ({fx.from_ccy}/{fx.to_ccy}) must pair "
                    f"{self.currencies[i]} with {domestic}"
                )
        for fx in self.fx_rates[self.n_foreign:]:
            for ccy in (fx.from_ccy, fx.to_ccy):
                if ccy == domestic or ccy not in self.currencies:
                    raise ValueError(
                        f"Cross FX quote {fx.from_ccy}/{fx.to_ccy} must pair two "
                        f"foreign currencies of {self.currencies}"
                    )

    def _groups(self) -> dict[str, list]:
        return {
            "discount": self.discount_curves,
            "fx": self.fx_rates,
            "credit": self.credit_curves,
            "forward": self.forward_curves,
            "spot": self.spot_curves,
        }

    def _index_jumps(
        self, jumps: Sequence["JumpSpecification"]
    ) -> dict[tuple[str, int], list["JumpSpecification"]]:
        """Key each jump by the (group, position) of the object it targets."""
        index: dict[tuple[str, int], list] = {}
        for jump in jumps:
            key = self._locate(jump.target)
            if key is None:
                raise ValueError(f"Jump target {jump.target!r} is not part of the environment")
            index.setdefault(key, []).append(jump)
        return index

    def _locate(self, market_object: object) -> tuple[str, int] | None:
        for group, objects in self._groups().items():
            for i, obj in enumerate(objects):
                if obj is market_object:
                    return group, i
        return None

    def jumps_for(self, market_object: object) -> list["JumpSpecification"]:
        """Jumps registered on a market object (empty if none)."""
        key = self._locate(market_object)
        if key is None:
            return []
        return list(self._jumps.get(key, []))

    @property
    def has_jumps(self) -> bool:
        """True if any jump on default is registered."""
        return bool(self._jumps)

    # ------------------------------------------------------------------
    # Evolution
    # ------------------------------------------------------------------

    def _apply_jumps(self, group: str, position: int, default_date: Year | None) -> None:
        if default_date is None:
            return
        for jump in self._jumps.get((group, position), ()):
            jump.apply_jump(default_date)

    def evolve(
        self,
        path: "SimulatedPath",
        date: Year,
        encoded: int,
        apply_jumps: bool = True,
    ) -> MarketState:
        """
        Overwrite every market object with the path's state at date.

        Parameters
        ----------
        path : SimulatedPath
            Path supplying the state
        date : float
            Evolution date in years
        encoded : int
            Signed grid index encoding of date
        apply_jumps : bool
            Apply jumps on default when the path's default date is at or
            before date

        Returns
        -------
        MarketState
            Numeraire and domestic discount factor at date
        """
        default_date = path.default_date
        defaulted = apply_jumps and default_date is not None and default_date <= date
        jump_date = default_date if defaulted else None

        domestic = self.domestic_curve
        _, numeraire = path.evolve_discount(0, date, encoded, domestic)
        self._apply_jumps("discount", 0, jump_date)
        ddf = float(domestic.discount_factor(date))

        for i in range(1, len(self.discount_curves)):
            curve = self.discount_curves[i]
            fx_factor, _ = path.evolve_discount(i, date, encoded, curve)
            self._apply_jumps("discount", i, jump_date)
            fdf = float(curve.discount_factor(date))
            self.fx_rates[i - 1].update(
                date, self.currencies[i], self.domestic_currency, fx_factor * fdf / ddf
            )
            self._apply_jumps("fx", i - 1, jump_date)

        self._triangulate(date, jump_date)

        for i, curve in enumerate(self.credit_curves):
            path.evolve_credit(i, date, encoded, curve)
            self._apply_jumps("credit", i, jump_date)

        for i, curve in enumerate(self.forward_curves):
            path.evolve_forward(i, date, encoded, curve)
            self._apply_jumps("forward", i, jump_date)

        for i, curve in enumerate(self.spot_curves):
            df = float(curve.discount_curve.discount_factor(date))
            curve.spot.update(date, path.evolve_spot(i, date, encoded) / df)
            self._apply_jumps("spot", i, jump_date)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Path %d evolved to %.4fY: DF=%.6f numeraire=%.6f%s",
                path.index,
                date,
                ddf,
                numeraire / ddf,
                " (defaulted)" if defaulted else "",
            )
        return MarketState(
            date=date, numeraire=numeraire / ddf, discount_factor=ddf, defaulted=defaulted
        )

    def _triangulate(self, date: Year, jump_date: Year | None) -> None:
        """Update foreign/foreign quotes through the domestic currency."""
        domestic = self.domestic_currency
        for k in range(self.n_foreign, len(self.fx_rates)):
            cross = self.fx_rates[k]
            first_leg = self._domestic_quote(cross.from_ccy).get_rate(cross.from_ccy, domestic)
            second_leg = self._domestic_quote(cross.to_ccy).get_rate(domestic, cross.to_ccy)
            cross.update(date, cross.from_ccy, cross.to_ccy, first_leg * second_leg)
            self._apply_jumps("fx", k, jump_date)

    def _domestic_quote(self, ccy: str) -> FxRate:
        return self.fx_rates[self.currencies.index(ccy) - 1]

    def fx_rate(self, from_ccy: str, to_ccy: str) -> float:
        """
        Current rate converting from_ccy into to_ccy.

        Raises
        ------
        KeyError
            If no quote connects the two currencies
        """
        if from_ccy == to_ccy:
            return 1.0
        for fx in self.fx_rates:
            if fx.involves(from_ccy) and fx.involves(to_ccy):
                return fx.get_rate(from_ccy, to_ccy)
        raise KeyError(f"No FX quote between {from_ccy} and {to_ccy}")

    def discount_curve(self, ccy: str) -> DiscountCurve:
        """Discount curve of a currency."""
        try:
            return self.discount_curves[self.currencies.index(ccy)]
        except ValueError:
            raise KeyError(f"No discount curve for currency {ccy}") from None

    def clone(self) -> "MarketEnvironment":
        """Deep copy of the environment, jumps rebound to the copied objects."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"MarketEnvironment(ccy={self.currencies}, fx={len(self.fx_rates)}, "
            f"credit={len(self.credit_curves)}, forward={len(self.forward_curves)}, "
            f"spot={len(self.spot_curves)})"
        )
