"""
Exposure storage for one evaluation run.

An exposure set maps a trade index to a matrix of exposures indexed by
(path, exposure date). Every trade in a set shares the path count; each
trade has its own exposure dates. Three layouts are provided:

- :class:`ExposureSet`: a single trade, optionally with discount factors;
- :class:`IncrementalExposureSet`: a base trade and its exposures under a
  +1bp coupon shift, sharing exposure dates;
- :class:`MultiTradeExposureSet`: many trades packed row-major into one
  caller-owned buffer, at 32-bit or 64-bit precision.

Cells whose valuation failed hold :data:`FAILED` (NaN), which is never
confused with a genuine zero exposure.
"""

import itertools
import logging
import mmap
from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from functools import cached_property

import numpy as np

from ccr_core._types import ExposureMatrix, FloatArray, IntArray
from ccr_core.errors import IndexOutOfRange

logger = logging.getLogger(__name__)

FAILED = float("nan")
"""Sentinel stored in a cell whose valuation failed."""

_set_ids = itertools.count()


def is_failed(values: ExposureMatrix | float) -> np.ndarray:
    """Boolean mask of cells holding the failure sentinel."""
    return np.isnan(values)


class Precision(Enum):
    """Storage width of exposure cells."""

    SINGLE = "single"
    DOUBLE = "double"

    @property
    def dtype(self) -> np.dtype:
        """Numpy element type."""
        return np.dtype(np.float32) if self is Precision.SINGLE else np.dtype(np.float64)

    @property
    def element_size(self) -> int:
        """Bytes per cell."""
        return self.dtype.itemsize

    @classmethod
    def of(cls, dtype: np.dtype | type) -> "Precision":
        """Precision matching a floating dtype."""
        dtype = np.dtype(dtype)
        if dtype == np.float32:
            return cls.SINGLE
        if dtype == np.float64:
            return cls.DOUBLE
        raise TypeError(f"Exposure cells must be float32 or float64, got {dtype}")


def _as_dates(dates: FloatArray | Sequence[float], label: str) -> FloatArray:
    arr = np.array(dates, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"{label} must be 1D, got {arr.ndim}D")
    if len(arr) > 1 and not np.all(np.diff(arr) > 0):
        raise ValueError(f"{label} must be strictly increasing")
    arr.setflags(write=False)
    return arr


class BaseExposureSet(ABC):
    """
    Common interface of all exposure set layouts.

    Attributes
    ----------
    id : str
        Identifier of the set, used in log records and exports
    """

    id: str

    @property
    @abstractmethod
    def path_count(self) -> int:
        """Number of rows of every trade's matrix."""

    @property
    @abstractmethod
    def trade_count(self) -> int:
        """Number of trades held."""

    @property
    @abstractmethod
    def precision(self) -> Precision:
        """Storage precision of exposure cells."""

    @abstractmethod
    def _exposures(self, trade_index: int) -> ExposureMatrix:
        """Matrix of a validated trade index."""

    @abstractmethod
    def _dates(self, trade_index: int) -> FloatArray:
        """Exposure dates of a validated trade index."""

    def _check_trade(self, trade_index: int) -> None:
        if not 0 <= trade_index < self.trade_count:
            raise IndexOutOfRange(
                f"Trade index {trade_index} out of range for exposure set "
                f"'{self.id}' with {self.trade_count} trade(s)"
            )

    def check_path(self, path_index: int) -> None:
        """
        Validate a path row.

        Raises
        ------
        IndexOutOfRange
            If path_index is not a row of this set
        """
        if not 0 <= path_index < self.path_count:
            raise IndexOutOfRange(
                f"Path index {path_index} out of range for exposure set "
                f"'{self.id}' with {self.path_count} path(s)"
            )

    def get_exposures(self, trade_index: int) -> ExposureMatrix:
        """
        Exposure matrix of one trade.

        Parameters
        ----------
        trade_index : int
            Trade position in the set

        Returns
        -------
        ExposureMatrix
            Writable view of shape (path_count, date_count), typed with the
            set's precision

        Raises
        ------
        IndexOutOfRange
            If trade_index is negative or not below trade_count
        """
        self._check_trade(trade_index)
        return self._exposures(trade_index)

    def get_exposure_dates(self, trade_index: int) -> FloatArray:
        """Ordered exposure dates of one trade (read-only)."""
        self._check_trade(trade_index)
        return self._dates(trade_index)

    def get_discount_factors(self) -> ExposureMatrix | None:
        """Discount factors per (path, date), or None when not recorded."""
        return None

    def failed_cells(self, trade_index: int) -> np.ndarray:
        """Boolean mask of the cells of one trade whose valuation failed."""
        return is_failed(self.get_exposures(trade_index))

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"{self.__class__.__name__}(id='{self.id}', trades={self.trade_count}, "
            f"paths={self.path_count}, precision={self.precision.value})"
        )


class ExposureSet(BaseExposureSet):
    """
    Exposures of a single trade.

    Parameters
    ----------
    exposure_dates : array-like
        Ordered exposure dates
    exposures : ExposureMatrix
        Pre-sized matrix (path_count, date_count), float32 or float64
    discount_factors : ExposureMatrix | None
        Optional matrix of the same shape receiving domestic discount factors
    id : str
        Identifier (generated when empty)

    Example
    -------
    >>> exposure_set = ExposureSet.allocate(100, [0.5, 1.0], record_discount_factors=True)
    >>> exposure_set.get_exposures(0).shape
    (100, 2)
    """

    def __init__(
        self,
        exposure_dates: FloatArray | Sequence[float],
        exposures: ExposureMatrix,
        discount_factors: ExposureMatrix | None = None,
        id: str = "",
    ) -> None:
        self.id = id or f"exposure-set-{next(_set_ids)}"
        self.exposure_dates = _as_dates(exposure_dates, "Exposure dates")
        self._precision = Precision.of(exposures.dtype)
        self._check_matrix(exposures, "Exposures")
        self.exposures = exposures
        if discount_factors is not None:
            self._check_matrix(discount_factors, "Discount factors")
        self.discount_factors = discount_factors

    def _check_matrix(self, matrix: ExposureMatrix, label: str) -> None:
        if matrix.ndim != 2 or matrix.shape[1] != len(self.exposure_dates):
            raise ValueError(
                f"{label} must have shape (path_count, {len(self.exposure_dates)}), "
                f"got {matrix.shape}"
            )
        if hasattr(self, "exposures") and matrix.shape[0] != self.exposures.shape[0]:
            raise ValueError(
                f"{label} have {matrix.shape[0]} rows, expected {self.exposures.shape[0]}"
            )

    @classmethod
    def allocate(
        cls,
        path_count: int,
        exposure_dates: FloatArray | Sequence[float],
        record_discount_factors: bool = False,
        precision: Precision = Precision.DOUBLE,
        id: str = "",
    ) -> "ExposureSet":
        """
        Create a set with zero-initialized storage.

        Parameters
        ----------
        path_count : int
            Number of paths
        exposure_dates : array-like
            Ordered exposure dates
        record_discount_factors : bool
            Also allocate the discount-factor matrix
        precision : Precision
            Storage precision
        id : str
            Identifier

        Returns
        -------
        ExposureSet
            Set ready to be populated
        """
        if path_count < 1:
            raise ValueError(f"path_count must be positive, got {path_count}")
        shape = (path_count, len(exposure_dates))
        dfs = np.zeros(shape, dtype=precision.dtype) if record_discount_factors else None
        return cls(
            exposure_dates,
            np.zeros(shape, dtype=precision.dtype),
            discount_factors=dfs,
            id=id,
        )

    @property
    def path_count(self) -> int:
        return self.exposures.shape[0]

    @property
    def trade_count(self) -> int:
        return 1

    @property
    def precision(self) -> Precision:
        return self._precision

    def _exposures(self, trade_index: int) -> ExposureMatrix:
        return self.exposures

    def _dates(self, trade_index: int) -> FloatArray:
        return self.exposure_dates

    def get_discount_factors(self) -> ExposureMatrix | None:
        return self.discount_factors


class IncrementalExposureSet(ExposureSet):
    """
    Base exposures and exposures under a +1bp coupon shift.

    Trade 0 is the base trade and trade 1 its coupon-01 counterpart; both
    share the exposure dates.

    Parameters
    ----------
    exposure_dates : array-like
        Ordered exposure dates
    exposures : ExposureMatrix
        Base exposures (path_count, date_count)
    coupon01_exposures : ExposureMatrix
        Exposures under the coupon shift, same shape and dtype
    discount_factors : ExposureMatrix | None
        Optional discount factors, same shape
    id : str
        Identifier
    """

    def __init__(
        self,
        exposure_dates: FloatArray | Sequence[float],
        exposures: ExposureMatrix,
        coupon01_exposures: ExposureMatrix,
        discount_factors: ExposureMatrix | None = None,
        id: str = "",
    ) -> None:
        super().__init__(exposure_dates, exposures, discount_factors, id)
        if coupon01_exposures.dtype != exposures.dtype:
            raise TypeError(
                f"Coupon-01 exposures must be {exposures.dtype}, got {coupon01_exposures.dtype}"
            )
        self._check_matrix(coupon01_exposures, "Coupon-01 exposures")
        self.coupon01_exposures = coupon01_exposures

    @classmethod
    def allocate(
        cls,
        path_count: int,
        exposure_dates: FloatArray | Sequence[float],
        record_discount_factors: bool = False,
        precision: Precision = Precision.DOUBLE,
        id: str = "",
    ) -> "IncrementalExposureSet":
        """Create an incremental set with zero-initialized storage."""
        if path_count < 1:
            raise ValueError(f"path_count must be positive, got {path_count}")
        shape = (path_count, len(exposure_dates))
        dfs = np.zeros(shape, dtype=precision.dtype) if record_discount_factors else None
        return cls(
            exposure_dates,
            np.zeros(shape, dtype=precision.dtype),
            np.zeros(shape, dtype=precision.dtype),
            discount_factors=dfs,
            id=id,
        )

    @property
    def trade_count(self) -> int:
        return 2

    def _exposures(self, trade_index: int) -> ExposureMatrix:
        return self.exposures if trade_index == 0 else self.coupon01_exposures


class MultiTradeExposureSet(BaseExposureSet):
    """
    Many trades packed into one caller-owned buffer.

    Trades are laid out row-major one after the other: trade k occupies
    ``path_count * date_count(k)`` consecutive cells starting at
    :meth:`element_offset`. A typed view of the buffer is created once at
    construction; the buffer itself is never copied, allocated or freed.

    Parameters
    ----------
    precision : Precision
        Width of the cells, fixed for the life of the set
    buffer : bytearray | memoryview | mmap.mmap | np.ndarray
        Writable, contiguous storage owned by the caller; a numpy array must
        hold raw bytes or elements of the matching width
    path_count : int
        Rows of every trade's matrix
    exposure_dates : Sequence[array-like]
        Exposure dates of each trade
    id : str
        Identifier
    discount_factors : ExposureMatrix | None
        Optional (path_count, date_count(0)) matrix receiving domestic
        discount factors at the exposure dates of trade 0

    Example
    -------
    >>> dates = [[0.5, 1.0], [0.25, 0.5, 0.75]]
    >>> buffer = MultiTradeExposureSet.allocate_buffer(Precision.SINGLE, 10, dates)
    >>> exposure_set = MultiTradeExposureSet(Precision.SINGLE, buffer, 10, dates)
    >>> exposure_set.offset(1)
    80
    """

    def __init__(
        self,
        precision: Precision,
        buffer: bytearray | memoryview | mmap.mmap | np.ndarray,
        path_count: int,
        exposure_dates: Sequence[FloatArray | Sequence[float]],
        id: str = "",
        discount_factors: ExposureMatrix | None = None,
    ) -> None:
        if path_count < 1:
            raise ValueError(f"path_count must be positive, got {path_count}")
        if len(exposure_dates) == 0:
            raise ValueError("Multi-trade exposure set needs at least one trade")
        self.id = id or f"exposure-set-{next(_set_ids)}"
        self._precision = precision
        self._path_count = path_count
        self._exposure_dates = [
            _as_dates(d, f"Exposure dates of trade {k}") for k, d in enumerate(exposure_dates)
        ]
        self._date_counts = np.array([len(d) for d in self._exposure_dates], dtype=np.int64)
        self._buffer = buffer
        self._view = self._typed_view(buffer)
        if discount_factors is not None:
            expected = (path_count, len(self._exposure_dates[0]))
            if discount_factors.shape != expected:
                raise ValueError(
                    f"Discount factors must have shape {expected} (trade 0 dates), "
                    f"got {discount_factors.shape}"
                )
        self.discount_factors = discount_factors
        logger.debug(
            "Created %r over %d-byte buffer", self, self.required_bytes(precision, path_count, exposure_dates)
        )

    @staticmethod
    def required_bytes(
        precision: Precision,
        path_count: int,
        exposure_dates: Sequence[FloatArray | Sequence[float]],
    ) -> int:
        """Bytes needed to hold every trade at the given precision."""
        cells = sum(path_count * len(d) for d in exposure_dates)
        return cells * precision.element_size

    @staticmethod
    def allocate_buffer(
        precision: Precision,
        path_count: int,
        exposure_dates: Sequence[FloatArray | Sequence[float]],
    ) -> bytearray:
        """Zero-filled buffer sized for a set; owned by the caller."""
        return bytearray(
            MultiTradeExposureSet.required_bytes(precision, path_count, exposure_dates)
        )

    def _typed_view(self, buffer: bytearray | memoryview | mmap.mmap | np.ndarray) -> np.ndarray:
        dtype = self._precision.dtype
        if isinstance(buffer, np.ndarray):
            raw = buffer.dtype in (np.dtype(np.uint8), np.dtype(np.int8))
            if not raw and buffer.dtype != dtype:
                raise TypeError(
                    f"Buffer of {buffer.dtype} cannot back a {self._precision.value}-precision "
                    f"exposure set ({dtype})"
                )
            if not buffer.flags.c_contiguous:
                raise ValueError("Exposure buffer must be C-contiguous")

        n_cells = int(self._date_counts.sum()) * self._path_count
        needed = n_cells * dtype.itemsize
        available = memoryview(buffer).nbytes
        if available < needed:
            raise ValueError(
                f"Exposure buffer holds {available} bytes, {needed} required for "
                f"{len(self._exposure_dates)} trade(s) x {self._path_count} path(s)"
            )
        view = np.frombuffer(buffer, dtype=dtype, count=n_cells)
        if not view.flags.writeable:
            raise ValueError("Exposure buffer must be writable")
        return view

    @cached_property
    def _element_offsets(self) -> IntArray:
        """Cell offset of each trade's first element (computed on first use)."""
        sizes = self._path_count * self._date_counts
        return np.concatenate(([0], np.cumsum(sizes)[:-1])).astype(np.int64)

    @property
    def path_count(self) -> int:
        return self._path_count

    @property
    def trade_count(self) -> int:
        return len(self._exposure_dates)

    @property
    def precision(self) -> Precision:
        return self._precision

    @property
    def buffer(self) -> bytearray | memoryview | mmap.mmap | np.ndarray:
        """The caller-owned storage."""
        return self._buffer

    def element_offset(self, trade_index: int) -> int:
        """
        Offset of trade ``trade_index`` in cells.

        Equals the sum of ``path_count * date_count(j)`` over all j < trade_index.
        """
        self._check_trade(trade_index)
        return int(self._element_offsets[trade_index])

    def offset(self, trade_index: int) -> int:
        """Offset of trade ``trade_index`` in bytes."""
        return self.element_offset(trade_index) * self._precision.element_size

    def _exposures(self, trade_index: int) -> ExposureMatrix:
        start = int(self._element_offsets[trade_index])
        n_dates = int(self._date_counts[trade_index])
        return self._view[start : start + self._path_count * n_dates].reshape(
            self._path_count, n_dates
        )

    def _dates(self, trade_index: int) -> FloatArray:
        return self._exposure_dates[trade_index]

    def get_discount_factors(self) -> ExposureMatrix | None:
        """Discount factors at the exposure dates of trade 0, when supplied."""
        return self.discount_factors
