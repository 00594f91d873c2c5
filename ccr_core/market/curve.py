"""
Term-structure objects evolved along simulated paths.

A curve is a set of term points (tenors in years from the as-of date) and
values. Simulation overwrites the values in place on every evolution call,
so curves are identity-hashed mutable objects rather than value types.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from ccr_core._types import FloatArray, Year


class DayCount(Enum):
    """Day-count conventions for converting tenors into accrual fractions."""

    NONE = "none"
    ACT365F = "act365f"
    ACT360 = "act360"

    def fraction(self, start: Year, end: Year) -> float:
        """
        Accrual fraction between two dates.

        Parameters
        ----------
        start : float
            Start date in years
        end : float
            End date in years

        Returns
        -------
        float
            Year fraction under this convention
        """
        if self is DayCount.ACT360:
            return (end - start) * 365.0 / 360.0
        return end - start


class CurveStyle(Enum):
    """
    How a curve expresses its points, fixed when the curve is built.

    RATE curves carry a day count and their points are read as rates for
    the purposes of default jumps. VALUE curves store levels directly.
    """

    RATE = "rate"
    VALUE = "value"


@dataclass(eq=False)
class Curve:
    """
    Generic term structure of values at fixed tenors.

    Attributes
    ----------
    tenors : FloatArray
        Term points in years, strictly increasing
    values : FloatArray
        Value at each term point
    name : str
        Identifier used in log records
    day_count : DayCount
        Day-count convention; ``DayCount.NONE`` makes the curve value-style
    as_of : float
        Valuation date in years (0 for today's curve)
    style : CurveStyle
        RATE or VALUE, derived from the day count at construction

    Example
    -------
    >>> curve = Curve(tenors=[1.0, 2.0], values=[100.0, 101.0], day_count=DayCount.NONE)
    >>> curve.style
    <CurveStyle.VALUE: 'value'>
    """

    tenors: FloatArray
    values: FloatArray
    name: str = ""
    day_count: DayCount = DayCount.ACT365F
    as_of: Year = 0.0
    style: CurveStyle = field(init=False)

    def __post_init__(self) -> None:
        """Validate term points and fix the curve style."""
        self.tenors = np.array(self.tenors, dtype=np.float64)
        self.values = np.array(self.values, dtype=np.float64)
        if self.tenors.ndim != 1 or len(self.tenors) == 0:
            raise ValueError("Tenors must be a non-empty 1D sequence")
        if len(self.tenors) != len(self.values):
            raise ValueError(
                f"Tenors and values must have same length, "
                f"got {len(self.tenors)} and {len(self.values)}"
            )
        if not np.all(np.diff(self.tenors) > 0):
            raise ValueError("Tenors must be strictly increasing")
        self.style = (
            CurveStyle.VALUE if self.day_count is DayCount.NONE else CurveStyle.RATE
        )

    @property
    def n_points(self) -> int:
        """Number of term points."""
        return len(self.tenors)

    @property
    def points(self) -> list[tuple[float, float]]:
        """Term points as (tenor, value) pairs."""
        return [(float(t), float(v)) for t, v in zip(self.tenors, self.values)]

    def set_values(self, values: FloatArray) -> None:
        """
        Overwrite all point values in place.

        Parameters
        ----------
        values : FloatArray
            New values, one per term point

        Raises
        ------
        ValueError
            If the number of values does not match the number of points
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.shape != self.values.shape:
            raise ValueError(
                f"Curve '{self.name}' has {self.n_points} points, "
                f"got values of shape {arr.shape}"
            )
        self.values[:] = arr

    def interpolate(self, t: Year | FloatArray) -> float | FloatArray:
        """
        Value at time t with linear interpolation and flat extrapolation.

        Parameters
        ----------
        t : float | FloatArray
            Time(s) in years

        Returns
        -------
        float | FloatArray
            Interpolated value(s)
        """
        return np.interp(t, self.tenors, self.values)  # type: ignore[return-value]

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}(name='{self.name}', "
            f"n_points={self.n_points}, style={self.style.value})"
        )


class _UnitAnchoredCurve(Curve):
    """Curve of positive factors equal to 1 at the as-of date."""

    def interpolate(self, t: Year | FloatArray) -> float | FloatArray:
        """
        Log-linear interpolation anchored at (as_of, 1.0).

        Beyond the last point the last zero rate is held constant.
        """
        t_arr = np.asarray(t, dtype=np.float64)
        last_t = self.tenors[-1]
        last_v = self.values[-1]
        knots_t = np.concatenate(([self.as_of], self.tenors))
        knots_log = np.concatenate(([0.0], np.log(self.values)))
        inside = np.interp(np.minimum(t_arr, last_t), knots_t, knots_log)
        span = last_t - self.as_of
        zero = -np.log(last_v) / span if span > 0 else 0.0
        beyond = np.log(last_v) - zero * (t_arr - last_t)
        log_v = np.where(t_arr > last_t, beyond, inside)
        log_v = np.where(t_arr <= self.as_of, 0.0, log_v)
        result = np.exp(log_v)
        if result.ndim == 0:
            return float(result)
        return result


class DiscountCurve(_UnitAnchoredCurve):
    """
    Discount curve holding discount factors from the as-of date.

    After path evolution the values are the path-conditional discount
    factors P(0, T) so that the ratio of two interpolated values gives the
    simulated forward discount factor.

    Example
    -------
    >>> curve = DiscountCurve.flat(0.02, tenors=[1.0, 2.0, 5.0])
    >>> df = curve.discount_factor(1.0)
    >>> print(f"1Y DF: {df:.4f}")
    1Y DF: 0.9802
    """

    @classmethod
    def flat(
        cls,
        rate: float,
        tenors: FloatArray | list[float],
        name: str = "",
        day_count: DayCount = DayCount.ACT365F,
    ) -> "DiscountCurve":
        """
        Build a flat continuously compounded curve.

        Parameters
        ----------
        rate : float
            Flat zero rate
        tenors : array-like
            Term points in years
        name : str
            Curve name
        day_count : DayCount
            Day-count convention

        Returns
        -------
        DiscountCurve
            Curve with values exp(-rate * tenor)
        """
        t = np.asarray(tenors, dtype=np.float64)
        return cls(tenors=t, values=np.exp(-rate * t), name=name, day_count=day_count)

    def discount_factor(
        self, t: Year | FloatArray, t_start: Year | None = None
    ) -> float | FloatArray:
        """
        Calculate discount factor from t_start to t.

        Parameters
        ----------
        t : float | FloatArray
            End time(s) in years
        t_start : float | None
            Start time in years (default: the as-of date)

        Returns
        -------
        float | FloatArray
            Discount factor(s) P(t_start, t)
        """
        df = self.interpolate(t)
        if t_start is None:
            return df
        return df / self.interpolate(t_start)

    def forward_rate(self, t1: Year, t2: Year) -> float:
        """
        Calculate continuously compounded forward rate.

        Parameters
        ----------
        t1 : float
            Start time in years
        t2 : float
            End time in years

        Returns
        -------
        float
            Forward rate f(t1, t2)
        """
        if t2 <= t1:
            raise ValueError(f"t2 ({t2}) must be greater than t1 ({t1})")

        df1 = self.discount_factor(t1)
        df2 = self.discount_factor(t2)

        return float(-np.log(df2 / df1) / (t2 - t1))

    def zero_rate(self, t: Year) -> float:
        """
        Calculate zero rate to time t.

        Parameters
        ----------
        t : float
            Time in years

        Returns
        -------
        float
            Zero rate z(t) such that DF(t) = exp(-z(t) * (t - as_of))
        """
        span = t - self.as_of
        if span <= 0:
            return self.forward_rate(self.as_of, self.tenors[0])
        return float(-np.log(self.discount_factor(t)) / span)


class ForwardCurve(Curve):
    """
    Forward price or forward rate term structure.

    Defaults to a value-style curve (no day count): forward levels are
    stored and jumped directly.
    """

    def __init__(
        self,
        tenors: FloatArray,
        values: FloatArray,
        name: str = "",
        day_count: DayCount = DayCount.NONE,
        as_of: Year = 0.0,
    ) -> None:
        super().__init__(
            tenors=tenors, values=values, name=name, day_count=day_count, as_of=as_of
        )

    def forward(self, t: Year | FloatArray) -> float | FloatArray:
        """Forward level for delivery at t."""
        return self.interpolate(t)
