"""
Simulation date grid and the date-index encoding used by path evolution.

A path holds exact simulated state only at the grid dates. Every evolution
call carries a signed integer telling the path where the target date sits:

- ``i >= 0``: the target is grid date ``i``; the stored state is used as is.
- ``v < 0``: the target lies strictly between two grid dates and ``~v`` is
  the index of the first grid date after it.

The signed form is what drivers pass around. Internally the path decodes it
once into :class:`ExactIndex` or :class:`BetweenIndices`.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeAlias

import numpy as np

from ccr_core._types import FloatArray, Year
from ccr_core.errors import DateOutOfRange

DATE_TOLERANCE = 1e-10
"""Absolute tolerance (years) for matching a date to a grid date."""


@dataclass(frozen=True)
class ExactIndex:
    """Target date coincides with grid date ``index``."""

    index: int


@dataclass(frozen=True)
class BetweenIndices:
    """
    Target date lies strictly between grid dates ``upper - 1`` and ``upper``.

    Attributes
    ----------
    upper : int
        Insertion point: index of the first grid date after the target
    """

    upper: int

    @property
    def lower(self) -> int:
        """Index of the last grid date before the target."""
        return self.upper - 1


DateIndex: TypeAlias = ExactIndex | BetweenIndices


def encode_date_index(position: DateIndex) -> int:
    """
    Convert a decoded position into the signed integer encoding.

    Example
    -------
    >>> encode_date_index(BetweenIndices(upper=3))
    -4
    """
    if isinstance(position, ExactIndex):
        return position.index
    return ~position.upper


def decode_date_index(encoded: int) -> DateIndex:
    """
    Convert a signed integer encoding into its decoded position.

    Example
    -------
    >>> decode_date_index(-4)
    BetweenIndices(upper=3)
    """
    encoded = int(encoded)
    if encoded >= 0:
        return ExactIndex(encoded)
    return BetweenIndices(~encoded)


class SimulationDateGrid:
    """
    Ordered, strictly increasing dates at which paths hold simulated state.

    Parameters
    ----------
    dates : Sequence[float]
        Grid dates in years

    Example
    -------
    >>> grid = SimulationDateGrid([0.0, 0.5, 1.0])
    >>> grid.locate(0.5)
    1
    >>> grid.locate(0.75)
    -3
    """

    def __init__(self, dates: Sequence[float] | FloatArray) -> None:
        arr = np.array(dates, dtype=np.float64)
        if arr.ndim != 1 or len(arr) == 0:
            raise ValueError("Simulation grid must be a non-empty 1D sequence")
        if not np.all(np.diff(arr) > 0):
            raise ValueError("Simulation grid dates must be strictly increasing")
        arr.setflags(write=False)
        self._dates = arr

    @property
    def dates(self) -> FloatArray:
        """Grid dates (read-only array)."""
        return self._dates

    @property
    def first(self) -> Year:
        """First grid date."""
        return float(self._dates[0])

    @property
    def last(self) -> Year:
        """Last grid date."""
        return float(self._dates[-1])

    def __len__(self) -> int:
        return len(self._dates)

    def __getitem__(self, index: int) -> Year:
        return float(self._dates[index])

    def contains(self, date: Year) -> bool:
        """True if date lies within [first, last] up to tolerance."""
        return (
            self.first - DATE_TOLERANCE <= date <= self.last + DATE_TOLERANCE
        )

    def locate(self, date: Year) -> int:
        """
        Signed index encoding of date relative to the grid.

        Parameters
        ----------
        date : float
            Target date in years

        Returns
        -------
        int
            Grid index if date is a grid date, otherwise the bitwise
            complement of the index of the first grid date after it

        Raises
        ------
        DateOutOfRange
            If date precedes the first or follows the last grid date
        """
        if not self.contains(date):
            raise DateOutOfRange(
                f"Date {date:.6f}Y outside simulation grid "
                f"[{self.first:.6f}Y, {self.last:.6f}Y]"
            )
        upper = int(np.searchsorted(self._dates, date, side="left"))
        if upper < len(self._dates) and abs(self._dates[upper] - date) <= DATE_TOLERANCE:
            return upper
        if upper > 0 and abs(self._dates[upper - 1] - date) <= DATE_TOLERANCE:
            return upper - 1
        return ~upper

    def resolve(self, date: Year) -> DateIndex:
        """Decoded position of date on the grid."""
        return decode_date_index(self.locate(date))

    def bracket(self, date: Year, encoded: int) -> tuple[DateIndex, float]:
        """
        Decode an encoding supplied with date and check they agree.

        Parameters
        ----------
        date : float
            Target date in years
        encoded : int
            Signed index encoding supplied by the caller

        Returns
        -------
        tuple[DateIndex, float]
            Decoded position and the bridge weight of the upper grid date
            (0.0 for an exact index)

        Raises
        ------
        DateOutOfRange
            If the encoding points outside the grid or does not bracket date
        """
        position = decode_date_index(encoded)
        n = len(self._dates)
        if isinstance(position, ExactIndex):
            if position.index >= n:
                raise DateOutOfRange(
                    f"Grid index {position.index} beyond grid of {n} dates"
                )
            if abs(self._dates[position.index] - date) > DATE_TOLERANCE:
                raise DateOutOfRange(
                    f"Date {date:.6f}Y does not match grid date "
                    f"{self._dates[position.index]:.6f}Y at index {position.index}"
                )
            return position, 0.0

        if position.upper <= 0 or position.upper >= n:
            raise DateOutOfRange(
                f"Date {date:.6f}Y with insertion point {position.upper} is not "
                f"between two dates of a grid of {n} dates"
            )
        t_lo = self._dates[position.lower]
        t_hi = self._dates[position.upper]
        if not t_lo <= date <= t_hi:
            raise DateOutOfRange(
                f"Date {date:.6f}Y not between grid dates "
                f"{t_lo:.6f}Y and {t_hi:.6f}Y"
            )
        return position, float((date - t_lo) / (t_hi - t_lo))

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"SimulationDateGrid(n_dates={len(self)}, "
            f"first={self.first:.4f}Y, last={self.last:.4f}Y)"
        )
