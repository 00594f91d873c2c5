"""
Spot prices and spot-based forward price curves.

A spot-based curve derives forward prices from a spot quote, a discount
curve and a flat carry, so simulating the spot moves the whole term
structure.
"""

from dataclasses import dataclass

import numpy as np

from ccr_core._types import FloatArray, Year
from ccr_core.market.curve import DiscountCurve


@dataclass(eq=False)
class SpotPrice:
    """
    Spot quote of an asset.

    Attributes
    ----------
    name : str
        Asset identifier
    value : float
        Spot level
    spot : float
        Date of the quote in years
    """

    name: str
    value: float
    spot: Year = 0.0

    def update(self, date: Year, value: float) -> None:
        """Set the spot level observed at date."""
        self.spot = date
        self.value = value


@dataclass(eq=False)
class ForwardPriceCurve:
    """
    Forward price term structure implied by spot and discounting.

    F(t, T) = S(t) * exp(-q (T - t)) / P(t, T)

    Attributes
    ----------
    spot : SpotPrice
        Underlying spot quote
    discount_curve : DiscountCurve
        Curve funding the asset
    carry_rate : float
        Continuous dividend/convenience yield q
    name : str
        Curve name

    Example
    -------
    >>> curve = ForwardPriceCurve(
    ...     spot=SpotPrice("GOLD", 2000.0),
    ...     discount_curve=DiscountCurve.flat(0.03, [1.0, 5.0]),
    ... )
    >>> round(curve.forward(1.0), 2)
    2060.91
    """

    spot: SpotPrice
    discount_curve: DiscountCurve
    carry_rate: float = 0.0
    name: str = ""

    def forward(self, t: Year | FloatArray) -> float | FloatArray:
        """
        Forward price for delivery at t.

        Parameters
        ----------
        t : float | FloatArray
            Delivery time(s) in years

        Returns
        -------
        float | FloatArray
            Forward price(s)
        """
        t0 = self.spot.spot
        t_arr = np.maximum(np.asarray(t, dtype=np.float64), t0)
        df = self.discount_curve.discount_factor(t_arr, t0)
        carry = np.exp(-self.carry_rate * (t_arr - t0))
        result = self.spot.value * carry / df
        if np.ndim(result) == 0:
            return float(result)
        return result
