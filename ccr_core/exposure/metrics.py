"""
Exposure profile statistics over simulated paths.

Provides functions to compute, per exposure date:
- EPE (Expected Positive Exposure)
- ENE (Expected Negative Exposure)
- PFE (Potential Future Exposure)
- EE (Expected Exposure)

Cells holding the failure sentinel are left out of every statistic: a
date's average is taken over the paths valued at that date only.
"""

import warnings
from dataclasses import dataclass

import numpy as np

from ccr_core._types import ExposureMatrix, FloatArray
from ccr_core.exposure.sets import BaseExposureSet, is_failed


def _valid_mean(values: ExposureMatrix) -> FloatArray:
    """Column means over non-failed cells; NaN where a column has none."""
    values = np.asarray(values, dtype=np.float64)
    valid = ~is_failed(values)
    counts = valid.sum(axis=0)
    sums = np.where(valid, values, 0.0).sum(axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(counts > 0, sums / np.maximum(counts, 1), np.nan)


def calculate_epe(exposures: ExposureMatrix) -> FloatArray:
    """
    Expected Positive Exposure at each date.

    EPE(t) = E[max(V(t), 0)]

    Parameters
    ----------
    exposures : ExposureMatrix
        Values of shape (n_paths, n_dates); failed cells are skipped

    Returns
    -------
    FloatArray
        EPE at each date, shape (n_dates,)
    """
    exposures = np.asarray(exposures, dtype=np.float64)
    return _valid_mean(np.where(is_failed(exposures), np.nan, np.maximum(exposures, 0.0)))


def calculate_ene(exposures: ExposureMatrix) -> FloatArray:
    """
    Expected Negative Exposure at each date.

    ENE(t) = E[max(-V(t), 0)], the counterparty's exposure to us.
    """
    exposures = np.asarray(exposures, dtype=np.float64)
    return _valid_mean(np.where(is_failed(exposures), np.nan, np.maximum(-exposures, 0.0)))


def calculate_pfe(exposures: ExposureMatrix, quantile: float = 0.95) -> FloatArray:
    """
    Potential Future Exposure at each date.

    PFE(t, α) = Quantile_α(max(V(t), 0))

    Parameters
    ----------
    exposures : ExposureMatrix
        Values of shape (n_paths, n_dates)
    quantile : float
        Quantile level (default 0.95)

    Returns
    -------
    FloatArray
        PFE at each date; NaN where every path failed
    """
    if not 0 < quantile < 1:
        raise ValueError(f"Quantile must be in (0, 1), got {quantile}")
    exposures = np.asarray(exposures, dtype=np.float64)
    positive = np.where(is_failed(exposures), np.nan, np.maximum(exposures, 0.0))
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        return np.nanquantile(positive, quantile, axis=0)


def calculate_expected_exposure(exposures: ExposureMatrix) -> FloatArray:
    """EE(t) = E[|V(t)|]."""
    return _valid_mean(np.abs(np.asarray(exposures, dtype=np.float64)))


def calculate_effective_epe(epe: FloatArray) -> FloatArray:
    """
    Non-decreasing EPE profile.

    Effective EPE at t is the running maximum of EPE up to t; dates with no
    valued path do not lower it.
    """
    return np.fmax.accumulate(np.asarray(epe, dtype=np.float64))


@dataclass
class ExposureProfile:
    """
    Exposure statistics of one trade of an exposure set.

    Attributes
    ----------
    exposure_dates : FloatArray
        Dates in years
    epe : FloatArray
        Expected positive exposure at each date
    ene : FloatArray
        Expected negative exposure at each date
    pfe_95 : FloatArray
        95% PFE at each date
    pfe_99 : FloatArray
        99% PFE at each date
    expected_exposure : FloatArray
        Expected unsigned exposure at each date
    valid_paths : np.ndarray
        Number of paths valued at each date
    peak_epe : float
        Maximum EPE over the dates
    average_epe : float
        Time-weighted average EPE
    """

    exposure_dates: FloatArray
    epe: FloatArray
    ene: FloatArray
    pfe_95: FloatArray
    pfe_99: FloatArray
    expected_exposure: FloatArray
    valid_paths: np.ndarray
    peak_epe: float
    average_epe: float

    @classmethod
    def from_exposures(
        cls, exposures: ExposureMatrix, exposure_dates: FloatArray
    ) -> "ExposureProfile":
        """
        Compute every statistic from an exposure matrix.

        Parameters
        ----------
        exposures : ExposureMatrix
            Values of shape (n_paths, n_dates)
        exposure_dates : FloatArray
            Dates in years, one per column

        Returns
        -------
        ExposureProfile
            Profile of the matrix
        """
        exposure_dates = np.asarray(exposure_dates, dtype=np.float64)
        exposures = np.asarray(exposures, dtype=np.float64)
        if exposures.ndim != 2 or exposures.shape[1] != len(exposure_dates):
            raise ValueError(
                f"Exposures of shape {exposures.shape} do not match "
                f"{len(exposure_dates)} exposure date(s)"
            )
        epe = calculate_epe(exposures)
        valued = epe[~np.isnan(epe)]

        # Time-weighted average over the dates with at least one valued path
        dt = np.diff(exposure_dates, prepend=0.0)
        mask = ~np.isnan(epe)
        horizon = float(dt[mask].sum())
        average_epe = float(np.sum(epe[mask] * dt[mask]) / horizon) if horizon > 0 else 0.0

        return cls(
            exposure_dates=exposure_dates,
            epe=epe,
            ene=calculate_ene(exposures),
            pfe_95=calculate_pfe(exposures, 0.95),
            pfe_99=calculate_pfe(exposures, 0.99),
            expected_exposure=calculate_expected_exposure(exposures),
            valid_paths=(~is_failed(exposures)).sum(axis=0),
            peak_epe=float(valued.max()) if len(valued) else float("nan"),
            average_epe=average_epe,
        )

    @classmethod
    def from_exposure_set(
        cls, exposure_set: BaseExposureSet, trade_index: int = 0
    ) -> "ExposureProfile":
        """Profile of one trade of an exposure set."""
        return cls.from_exposures(
            exposure_set.get_exposures(trade_index),
            exposure_set.get_exposure_dates(trade_index),
        )


def netted_exposures(exposure_set: BaseExposureSet) -> ExposureMatrix:
    """
    Sum of all trades' exposures, path by path.

    Every trade must share the same exposure dates. A cell of the sum is
    failed when any trade failed in that cell.

    Raises
    ------
    ValueError
        If the trades' exposure dates differ
    """
    dates = exposure_set.get_exposure_dates(0)
    total = np.array(exposure_set.get_exposures(0), dtype=np.float64)
    for k in range(1, exposure_set.trade_count):
        other = exposure_set.get_exposure_dates(k)
        if len(other) != len(dates) or not np.allclose(other, dates):
            raise ValueError(
                f"Trade {k} of exposure set '{exposure_set.id}' has different "
                "exposure dates; netting needs a shared date list"
            )
        total += exposure_set.get_exposures(k)
    return total
