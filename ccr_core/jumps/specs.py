"""
Default-triggered jumps applied to market objects.

A jump specification binds one market object, a jump kind and a value
function. When the counterparty defaults on a path, ``apply_jump`` is called
with the default date and shifts the object's state from that date on.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

import numpy as np

from ccr_core._types import ValueFunction, Year
from ccr_core.market.curve import Curve, CurveStyle
from ccr_core.market.fx import FxRate
from ccr_core.market.spot import ForwardPriceCurve

logger = logging.getLogger(__name__)


class JumpKind(Enum):
    """How a jump magnitude combines with the pre-jump value."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"
    SPECIFIED = "specified"

    def apply(self, value: float | np.ndarray, jump: float) -> float | np.ndarray:
        """
        Combine a pre-jump value with a jump magnitude.

        Example
        -------
        >>> JumpKind.ABSOLUTE.apply(100.0, 5.0)
        105.0
        """
        if self is JumpKind.ABSOLUTE:
            return value + jump
        if self is JumpKind.RELATIVE:
            return value * jump
        if isinstance(value, np.ndarray):
            return np.full_like(value, jump)
        return jump


def constant(value: float) -> ValueFunction:
    """Value function returning the same magnitude at every date."""

    def _fn(date: Year) -> float:
        return value

    return _fn


class JumpSpecification(ABC):
    """
    Single-use default jump on one market object.

    Parameters
    ----------
    target : object
        Market object mutated by the jump
    kind : JumpKind
        ABSOLUTE adds, RELATIVE multiplies, SPECIFIED overwrites
    value_fn : Callable[[float], float]
        Maps the jump date to the jump magnitude
    """

    def __init__(self, target: object, kind: JumpKind, value_fn: ValueFunction) -> None:
        self.target = target
        self.kind = kind
        self.value_fn = value_fn

    def apply_jump(self, date: Year) -> None:
        """
        Apply the jump at date.

        The value function is evaluated once per call.
        """
        jump = float(self.value_fn(date))
        logger.debug("Applying %s jump %.6g to %r at %.4fY", self.kind.value, jump, self.target, date)
        self._apply(date, jump)

    @abstractmethod
    def _apply(self, date: Year, jump: float) -> None:
        """Mutate the target with an evaluated jump magnitude."""

    def __repr__(self) -> str:
        """Return string representation."""
        return f"{self.__class__.__name__}(target={self.target!r}, kind={self.kind.value})"


class CurveRateJumpSpec(JumpSpecification):
    """
    Jump on a rate-style curve.

    Each point is converted to its continuously compounded zero rate over
    the curve's day-count fraction, jumped, and converted back. Points with
    ``tenor <= date`` are left unchanged.
    """

    target: Curve

    def _apply(self, date: Year, jump: float) -> None:
        curve = self.target
        for i, tenor in enumerate(curve.tenors):
            if tenor <= date:
                continue
            tau = curve.day_count.fraction(curve.as_of, tenor)
            if tau <= 0:
                continue
            rate = -np.log(curve.values[i]) / tau
            curve.values[i] = np.exp(-self.kind.apply(rate, jump) * tau)


class CurveValueJumpSpec(JumpSpecification):
    """
    Jump on a value-style curve.

    Stored values are jumped directly. Points with ``tenor < date`` are
    left unchanged.
    """

    target: Curve

    def _apply(self, date: Year, jump: float) -> None:
        curve = self.target
        mask = curve.tenors >= date
        curve.values[mask] = self.kind.apply(curve.values[mask], jump)


class FxJumpSpec(JumpSpecification):
    """Jump on an FX quote (units of to_ccy per from_ccy)."""

    target: FxRate

    def _apply(self, date: Year, jump: float) -> None:
        fx = self.target
        fx.update(date, fx.from_ccy, fx.to_ccy, self.kind.apply(fx.rate, jump))


class SpotBasedJumpSpec(JumpSpecification):
    """Jump on the spot of a spot-based forward price curve."""

    target: ForwardPriceCurve

    def _apply(self, date: Year, jump: float) -> None:
        spot = self.target.spot
        spot.update(spot.spot, self.kind.apply(spot.value, jump))


def create_curve_jump(curve: Curve, kind: JumpKind, value_fn: ValueFunction) -> JumpSpecification:
    """
    Build the jump variant matching a curve's style.

    Parameters
    ----------
    curve : Curve
        Curve to jump; its construction-time style selects the variant
    kind : JumpKind
        Jump kind
    value_fn : Callable[[float], float]
        Jump magnitude as a function of the jump date

    Returns
    -------
    JumpSpecification
        CurveValueJumpSpec for value-style curves, CurveRateJumpSpec otherwise

    Example
    -------
    >>> curve = ForwardCurve(tenors=[1.0, 2.0], values=[100.0, 100.0])
    >>> jump = create_curve_jump(curve, JumpKind.ABSOLUTE, constant(5.0))
    >>> jump.apply_jump(0.5)
    >>> curve.values
    array([105., 105.])
    """
    if curve.style is CurveStyle.VALUE:
        return CurveValueJumpSpec(curve, kind, value_fn)
    return CurveRateJumpSpec(curve, kind, value_fn)


_JUMP_FACTORIES: list[tuple[type, Callable[..., JumpSpecification]]] = [
    (Curve, create_curve_jump),
    (FxRate, FxJumpSpec),
    (ForwardPriceCurve, SpotBasedJumpSpec),
]


def create_jump(
    market_object: Curve | FxRate | ForwardPriceCurve,
    kind: JumpKind,
    value_fn: ValueFunction,
) -> JumpSpecification:
    """
    Build the jump variant for any supported market object.

    Raises
    ------
    TypeError
        If the object type has no jump variant
    """
    for cls, factory in _JUMP_FACTORIES:
        if isinstance(market_object, cls):
            return factory(market_object, kind, value_fn)
    raise TypeError(f"No jump variant for market object of type {type(market_object).__name__}")
