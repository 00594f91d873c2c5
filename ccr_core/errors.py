"""
Exception hierarchy for the exposure simulation core.

Identifier, index and range errors signal that the driver and the core
disagree about the shape of the run and are raised immediately. Per-cell
valuation failures are caught by the path evaluator and recorded against
the (trade, date) cell instead of aborting the path.
"""


class CCRError(Exception):
    """Base class for all errors raised by ccr_core."""


class InvalidCurveIdentifier(CCRError, LookupError):
    """A curve or spot identifier is not registered on the simulated path."""

    def __init__(self, kind: str, curve_id: int) -> None:
        self.kind = kind
        self.curve_id = curve_id
        super().__init__(f"No {kind} registered with id {curve_id}")


class DateOutOfRange(CCRError, ValueError):
    """A target date lies outside the supported simulation grid."""


class IndexOutOfRange(CCRError, IndexError):
    """A trade or path index is beyond the bounds of an exposure set."""


class UnsupportedCalibrationInput(CCRError, ValueError):
    """Calibration inputs request a process the model does not recognize."""


class PerCellValuationFailure(CCRError):
    """
    Valuation of a single (trade, date) cell on one path failed.

    Attributes
    ----------
    trade_index : int
        Index of the trade whose pricer failed
    path_index : int
        Row of the path being evaluated
    date_index : int
        Index into the trade's exposure dates
    date : float
        Exposure date in years
    cause : BaseException
        Exception raised by the pricer
    """

    def __init__(
        self,
        trade_index: int,
        path_index: int,
        date_index: int,
        date: float,
        cause: BaseException,
    ) -> None:
        self.trade_index = trade_index
        self.path_index = path_index
        self.date_index = date_index
        self.date = date
        self.cause = cause
        super().__init__(
            f"Valuation failed for trade {trade_index} on path {path_index} "
            f"at date {date:.4f}Y (index {date_index}): {cause!r}"
        )
