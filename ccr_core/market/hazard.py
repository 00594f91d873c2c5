"""
Survival curves for credit modeling.

Provides survival and default probability calculations on curves whose
points are evolved by the simulation like any other term structure.
"""

import numpy as np

from ccr_core._types import FloatArray, Year
from ccr_core.market.curve import DayCount, _UnitAnchoredCurve


class SurvivalCurve(_UnitAnchoredCurve):
    """
    Survival probability curve.

    The hazard rate λ(t) determines the instantaneous probability of default.
    Survival probability is S(t) = exp(-∫₀ᵗ λ(u) du); the curve stores S at
    its term points and interpolates log-linearly (piecewise flat hazard).

    Attributes
    ----------
    recovery_rate : float
        Recovery rate in case of default (0-1)

    Example
    -------
    >>> curve = SurvivalCurve.flat(hazard_rate=0.012, tenors=[1.0, 5.0])
    >>> surv_prob = curve.survival_probability(5.0)
    >>> print(f"5Y survival: {surv_prob:.2%}")
    5Y survival: 94.18%
    """

    def __init__(
        self,
        tenors: FloatArray,
        values: FloatArray,
        name: str = "",
        day_count: DayCount = DayCount.ACT365F,
        as_of: Year = 0.0,
        recovery_rate: float = 0.4,
    ) -> None:
        super().__init__(
            tenors=tenors, values=values, name=name, day_count=day_count, as_of=as_of
        )
        if not 0 <= recovery_rate <= 1:
            raise ValueError(f"Recovery rate must be in [0, 1], got {recovery_rate}")
        self.recovery_rate = recovery_rate

    @classmethod
    def flat(
        cls,
        hazard_rate: float,
        tenors: FloatArray | list[float],
        name: str = "",
        recovery_rate: float = 0.4,
    ) -> "SurvivalCurve":
        """
        Create a flat hazard rate curve.

        Parameters
        ----------
        hazard_rate : float
            Constant hazard rate (per annum)
        tenors : array-like
            Term points in years
        name : str
            Curve name
        recovery_rate : float
            Recovery rate assumption

        Returns
        -------
        SurvivalCurve
            Curve with values exp(-hazard_rate * tenor)
        """
        if hazard_rate < 0:
            raise ValueError(f"Hazard rate must be non-negative, got {hazard_rate}")
        t = np.asarray(tenors, dtype=np.float64)
        return cls(
            tenors=t,
            values=np.exp(-hazard_rate * t),
            name=name,
            recovery_rate=recovery_rate,
        )

    @property
    def lgd(self) -> float:
        """Loss given default (1 - recovery rate)."""
        return 1.0 - self.recovery_rate

    def survival_probability(self, t: Year | FloatArray) -> float | FloatArray:
        """
        Calculate survival probability to time t.

        Parameters
        ----------
        t : float | FloatArray
            Time(s) in years

        Returns
        -------
        float | FloatArray
            Survival probability S(t)
        """
        return self.interpolate(t)

    def default_probability(self, t1: Year, t2: Year | None = None) -> float:
        """
        Calculate probability of default in interval [t1, t2].

        If t2 is None, calculates probability of default in [as_of, t1].

        Parameters
        ----------
        t1 : float
            Start time (or end time if t2 is None)
        t2 : float | None
            End time

        Returns
        -------
        float
            Probability of default PD(t1, t2) = S(t1) - S(t2)
        """
        if t2 is None:
            return float(1.0 - self.survival_probability(t1))

        s1 = self.survival_probability(t1)
        s2 = self.survival_probability(t2)
        return float(s1 - s2)

    def implied_spread(self, t: Year) -> float:
        """
        Approximate CDS spread to t (average hazard rate times LGD).

        Parameters
        ----------
        t : float
            Maturity in years

        Returns
        -------
        float
            Approximate spread in decimal form
        """
        span = t - self.as_of
        if span <= 0:
            return 0.0
        hazard = -np.log(self.survival_probability(t)) / span
        return float(hazard * self.lgd)
