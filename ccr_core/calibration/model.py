"""
Calibration adapter producing volatilities and factor loadings.

The fit itself (Hull-White, swaption or any other volatility calibration)
is an injected callable. This module validates what goes in and what comes
out, and provides the factor-loading utilities shared by every fit:

- interpolation of loadings across tenors on spherical coordinates;
- choice of the factor dimension from correlation eigenvalues;
- factorization of a correlation matrix into unit-norm loadings.

Factor loadings are always shaped (n_factors, n_tenors): one row per
driver, one column per tenor.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import numpy as np

from ccr_core._types import FloatArray
from ccr_core.errors import UnsupportedCalibrationInput

logger = logging.getLogger(__name__)

PROCESS_PARAMETERS: dict[str, frozenset[str]] = {
    "vasicek": frozenset({"kappa", "theta", "sigma"}),
    "hull_white": frozenset({"mean_reversion", "sigma"}),
    "black_karasinski": frozenset({"mean_reversion", "sigma"}),
    "lognormal_spot": frozenset({"sigma"}),
    "lognormal_fx": frozenset({"sigma"}),
    "credit_intensity": frozenset({"mean_reversion", "sigma"}),
}
"""Model parameters each calibrated process recognises."""


@dataclass
class CalibrationInputs:
    """
    Market inputs of one calibration.

    Attributes
    ----------
    process : str
        Name of the calibrated process (key of PROCESS_PARAMETERS)
    tenors : FloatArray
        Calibration tenors in years
    market_volatilities : FloatArray
        Quoted volatilities, one per tenor
    correlation : FloatArray | None
        Correlation between tenors, used when the fit returns no loadings
    n_factors : int | None
        Requested factor count (None lets the correlation decide)
    model_parameters : dict[str, float]
        Extra parameters for the fit
    """

    process: str
    tenors: FloatArray
    market_volatilities: FloatArray
    correlation: FloatArray | None = None
    n_factors: int | None = None
    model_parameters: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate array shapes."""
        self.tenors = np.asarray(self.tenors, dtype=np.float64)
        self.market_volatilities = np.asarray(self.market_volatilities, dtype=np.float64)
        if self.tenors.ndim != 1 or len(self.tenors) == 0:
            raise ValueError("Calibration tenors must be a non-empty 1D sequence")
        if not np.all(np.diff(self.tenors) > 0):
            raise ValueError("Calibration tenors must be strictly increasing")
        if self.market_volatilities.shape != self.tenors.shape:
            raise ValueError(
                f"Need one volatility quote per tenor, got {self.market_volatilities.shape} "
                f"for {len(self.tenors)} tenors"
            )
        if self.correlation is not None:
            self.correlation = np.asarray(self.correlation, dtype=np.float64)
            n = len(self.tenors)
            if self.correlation.shape != (n, n):
                raise ValueError(
                    f"Tenor correlation must be {n}x{n}, got {self.correlation.shape}"
                )


@dataclass
class CalibrationResult:
    """
    Volatility term structure with its factor loadings.

    Attributes
    ----------
    tenors : FloatArray
        Tenors in years
    volatilities : FloatArray
        Volatility at each tenor, shape (n_tenors,)
    factor_loadings : FloatArray
        Loadings of shape (n_factors, n_tenors)
    """

    tenors: FloatArray
    volatilities: FloatArray
    factor_loadings: FloatArray

    def __post_init__(self) -> None:
        """Validate shapes and values."""
        self.tenors = np.asarray(self.tenors, dtype=np.float64)
        self.volatilities = np.asarray(self.volatilities, dtype=np.float64)
        self.factor_loadings = np.atleast_2d(np.asarray(self.factor_loadings, dtype=np.float64))
        n = len(self.tenors)
        if self.volatilities.shape != (n,):
            raise ValueError(
                f"Volatilities must have shape ({n},), got {self.volatilities.shape}"
            )
        if self.factor_loadings.ndim != 2 or self.factor_loadings.shape[1] != n:
            raise ValueError(
                f"Factor loadings must have shape (n_factors, {n}), "
                f"got {self.factor_loadings.shape}"
            )
        if np.any(self.volatilities < 0):
            raise ValueError("Volatilities must be non-negative")

    @property
    def n_factors(self) -> int:
        """Number of factors (rows of the loadings)."""
        return self.factor_loadings.shape[0]

    @property
    def n_tenors(self) -> int:
        """Number of tenors (columns of the loadings)."""
        return len(self.tenors)

    def interpolate(self, tenors: FloatArray | Iterable[float]) -> "CalibrationResult":
        """
        Result on other tenors.

        Volatilities are interpolated linearly and loadings on spherical
        coordinates, both flat outside the calibrated tenors.
        """
        new_tenors = np.asarray(list(tenors), dtype=np.float64)
        return CalibrationResult(
            tenors=new_tenors,
            volatilities=np.interp(new_tenors, self.tenors, self.volatilities),
            factor_loadings=interpolate_factor_loadings(
                self.factor_loadings, self.tenors, new_tenors
            ),
        )


Fitter = Callable[[CalibrationInputs], tuple[FloatArray, FloatArray | None]]
"""Fit returning (volatilities, factor loadings or None)."""


class CalibrationModel:
    """
    Adapter between market inputs and an external volatility fit.

    Parameters
    ----------
    fitter : Callable[[CalibrationInputs], tuple]
        Fit returning volatilities per tenor and factor loadings
        (n_factors, n_tenors), or None for the loadings to be derived from
        the inputs' correlation
    supported_processes : Iterable[str]
        Processes the fitter recognises

    Example
    -------
    >>> model = CalibrationModel(lambda inputs: (inputs.market_volatilities, None), ["hull_white"])
    >>> result = model.calibrate(CalibrationInputs("hull_white", [1.0, 2.0], [0.01, 0.012]))
    >>> result.factor_loadings.shape
    (1, 2)
    """

    def __init__(self, fitter: Fitter, supported_processes: Iterable[str]) -> None:
        self.fitter = fitter
        self.supported_processes = frozenset(supported_processes)
        unknown = self.supported_processes - PROCESS_PARAMETERS.keys()
        if unknown:
            raise UnsupportedCalibrationInput(
                f"Unknown process(es) {sorted(unknown)}; known: {sorted(PROCESS_PARAMETERS)}"
            )

    def _check_inputs(self, inputs: CalibrationInputs) -> None:
        if inputs.process not in self.supported_processes:
            raise UnsupportedCalibrationInput(
                f"Process '{inputs.process}' is not supported by this calibration "
                f"model; supported: {sorted(self.supported_processes)}"
            )
        unexpected = set(inputs.model_parameters) - PROCESS_PARAMETERS[inputs.process]
        if unexpected:
            raise UnsupportedCalibrationInput(
                f"Parameters {sorted(unexpected)} are not recognised for process "
                f"'{inputs.process}'"
            )
        if inputs.n_factors is not None and not 1 <= inputs.n_factors <= len(inputs.tenors):
            raise UnsupportedCalibrationInput(
                f"Cannot calibrate {inputs.n_factors} factor(s) on {len(inputs.tenors)} tenor(s)"
            )

    def calibrate(self, inputs: CalibrationInputs) -> CalibrationResult:
        """
        Run the fit and shape its output.

        Parameters
        ----------
        inputs : CalibrationInputs
            Market inputs

        Returns
        -------
        CalibrationResult
            Volatilities and factor loadings on the input tenors

        Raises
        ------
        UnsupportedCalibrationInput
            If the process or a model parameter is not recognised
        ValueError
            If the fit returns arrays of the wrong shape
        """
        self._check_inputs(inputs)
        volatilities, loadings = self.fitter(inputs)

        if loadings is None:
            if inputs.correlation is None:
                loadings = np.ones((1, len(inputs.tenors)))
            else:
                loadings = factorize_correlation(inputs.correlation, inputs.n_factors)

        result = CalibrationResult(inputs.tenors, volatilities, loadings)
        logger.debug(
            "Calibrated '%s' on %d tenor(s) with %d factor(s)",
            inputs.process,
            result.n_tenors,
            result.n_factors,
        )
        return result


def _to_spherical(vectors: FloatArray) -> tuple[FloatArray, FloatArray]:
    """Radii and angles of column vectors (n_dims, n_points)."""
    n_dims = vectors.shape[0]
    radii = np.linalg.norm(vectors, axis=0)
    angles = np.empty((n_dims - 1, vectors.shape[1]))
    for k in range(n_dims - 1):
        tail = np.linalg.norm(vectors[k + 1 :], axis=0)
        angles[k] = np.arctan2(tail, vectors[k])
    # Last angle carries the sign of the last coordinate
    angles[-1] = np.arctan2(vectors[-1], vectors[-2])
    return radii, angles


def _from_spherical(radii: FloatArray, angles: FloatArray) -> FloatArray:
    n_dims = angles.shape[0] + 1
    vectors = np.empty((n_dims, len(radii)))
    sines = np.ones(len(radii))
    for k in range(n_dims - 1):
        vectors[k] = radii * sines * np.cos(angles[k])
        sines = sines * np.sin(angles[k])
    vectors[-1] = radii * sines
    return vectors


def interpolate_factor_loadings(
    factor_loadings: FloatArray,
    tenors: FloatArray | Iterable[float],
    new_tenors: FloatArray | Iterable[float],
) -> FloatArray:
    """
    Interpolate factor loadings linearly on spherical coordinates.

    Each tenor's column of loadings is a vector in factor space. Its norm
    and its angles are interpolated separately, so unit-norm loadings stay
    unit-norm. Outside the given tenors the nearest column is used.

    Parameters
    ----------
    factor_loadings : FloatArray
        Loadings of shape (n_factors, n_tenors)
    tenors : array-like
        Tenors of the columns, strictly increasing
    new_tenors : array-like
        Tenors to interpolate at

    Returns
    -------
    FloatArray
        Loadings of shape (n_factors, len(new_tenors))
    """
    loadings = np.atleast_2d(np.asarray(factor_loadings, dtype=np.float64))
    tenors = np.asarray(list(tenors), dtype=np.float64)
    new_tenors = np.asarray(list(new_tenors), dtype=np.float64)
    if loadings.shape[1] != len(tenors):
        raise ValueError(
            f"Factor loadings have {loadings.shape[1]} column(s), expected {len(tenors)}"
        )
    if len(tenors) == 1:
        return np.repeat(loadings, len(new_tenors), axis=1)
    if loadings.shape[0] == 1:
        return np.interp(new_tenors, tenors, loadings[0])[np.newaxis, :]

    radii, angles = _to_spherical(loadings)
    angles[-1] = np.unwrap(angles[-1])
    new_radii = np.interp(new_tenors, tenors, radii)
    new_angles = np.vstack([np.interp(new_tenors, tenors, a) for a in angles])
    return _from_spherical(new_radii, new_angles)


def _sorted_eigenvalues(correlation: FloatArray) -> FloatArray:
    matrix = np.asarray(correlation, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Correlation matrix must be square, got shape {matrix.shape}")
    return np.clip(np.linalg.eigvalsh(matrix)[::-1], 0.0, None)


def factor_dimension_error(correlation: FloatArray, n_factors: int) -> float:
    """Share of total variance left unexplained by the first n_factors."""
    eigenvalues = _sorted_eigenvalues(correlation)
    if not 1 <= n_factors <= len(eigenvalues):
        raise ValueError(f"n_factors must be in [1, {len(eigenvalues)}], got {n_factors}")
    return float(1.0 - eigenvalues[:n_factors].sum() / eigenvalues.sum())


def choose_factor_dimension(correlation: FloatArray, error: float) -> int:
    """
    Smallest number of factors explaining 1 - error of the variance.

    Parameters
    ----------
    correlation : FloatArray
        Correlation matrix
    error : float
        Tolerated unexplained share of variance, in [0, 1)

    Returns
    -------
    int
        Factor count between 1 and the matrix dimension

    Example
    -------
    >>> choose_factor_dimension(np.eye(4), error=0.5)
    2
    """
    if not 0 <= error < 1:
        raise ValueError(f"Error must be in [0, 1), got {error}")
    eigenvalues = _sorted_eigenvalues(correlation)
    explained = np.cumsum(eigenvalues) / eigenvalues.sum()
    return int(min(np.searchsorted(explained, 1.0 - error - 1e-12) + 1, len(eigenvalues)))


def factorize_correlation(correlation: FloatArray, n_factors: int | None = None) -> FloatArray:
    """
    Unit-norm factor loadings reproducing a correlation matrix.

    The leading eigenvectors scaled by the square roots of their
    eigenvalues are truncated to n_factors and each variable's loadings are
    rescaled to unit norm, so the implied correlation has a unit diagonal.

    Parameters
    ----------
    correlation : FloatArray
        Positive semi-definite correlation matrix (n x n)
    n_factors : int | None
        Number of factors (default: rank of the matrix)

    Returns
    -------
    FloatArray
        Loadings of shape (n_factors, n)
    """
    matrix = np.asarray(correlation, dtype=np.float64)
    eigenvalues, eigenvectors = np.linalg.eigh(matrix)
    order = np.argsort(eigenvalues)[::-1]
    eigenvalues = np.clip(eigenvalues[order], 0.0, None)
    eigenvectors = eigenvectors[:, order]

    if n_factors is None:
        n_factors = max(int(np.sum(eigenvalues > 1e-10 * eigenvalues[0])), 1)
    if not 1 <= n_factors <= len(eigenvalues):
        raise ValueError(f"n_factors must be in [1, {len(eigenvalues)}], got {n_factors}")

    loadings = eigenvectors[:, :n_factors] * np.sqrt(eigenvalues[:n_factors])
    norms = np.linalg.norm(loadings, axis=1, keepdims=True)
    loadings = np.divide(loadings, norms, out=np.zeros_like(loadings), where=norms > 0)
    return loadings.T
