"""
Correlated normal draws for joint simulation of several risk factors.

The reference generator drives the domestic short rate, the foreign short
rate and the FX factor from one set of correlated Brownian increments.
"""

from collections.abc import Sequence

import numpy as np

from ccr_core._types import FloatArray


class CholeskyCorrelation:
    """
    Correlation structure of n risk-factor drivers.

    Uses Cholesky decomposition to transform independent standard normal
    random variables into correlated ones: Z_correlated = L @ Z_independent.

    Parameters
    ----------
    matrix : array-like
        Symmetric positive semi-definite correlation matrix (n, n)
    labels : Sequence[str] | None
        Factor names, used in error messages

    Example
    -------
    >>> corr = CholeskyCorrelation.three_factor(rho_df=0.7, rho_dx=-0.3, rho_fx=0.4)
    >>> z = corr.sample(1000, 20, np.random.default_rng(42))
    >>> z.shape
    (3, 1000, 20)
    """

    def __init__(
        self,
        matrix: FloatArray | Sequence[Sequence[float]],
        labels: Sequence[str] | None = None,
    ) -> None:
        corr = np.array(matrix, dtype=np.float64)
        if corr.ndim != 2 or corr.shape[0] != corr.shape[1]:
            raise ValueError(f"Correlation matrix must be square, got shape {corr.shape}")
        if not np.allclose(corr, corr.T):
            raise ValueError("Correlation matrix must be symmetric")
        if not np.allclose(np.diag(corr), 1.0):
            raise ValueError("Correlation matrix must have a unit diagonal")
        if np.any(np.abs(corr) > 1.0):
            raise ValueError("Correlations must be in [-1, 1]")

        eigenvalues = np.linalg.eigvalsh(corr)
        if np.any(eigenvalues < -1e-10):
            raise ValueError(
                f"Correlation matrix is not positive semi-definite. "
                f"Eigenvalues: {eigenvalues}. "
                f"Check that correlations are consistent."
            )

        self.labels = list(labels) if labels is not None else [f"z{i}" for i in range(len(corr))]
        if len(self.labels) != len(corr):
            raise ValueError(f"Need {len(corr)} labels, got {len(self.labels)}")
        self._corr_matrix = corr
        # Jitter keeps the factorization defined for singular matrices.
        self._cholesky = np.linalg.cholesky(corr + 1e-12 * np.eye(len(corr)))

    @classmethod
    def three_factor(
        cls, rho_df: float = 0.7, rho_dx: float = -0.3, rho_fx: float = 0.4
    ) -> "CholeskyCorrelation":
        """
        Domestic rate, foreign rate and FX correlation.

        Parameters
        ----------
        rho_df : float
            Correlation between domestic and foreign rates
        rho_dx : float
            Correlation between domestic rate and FX
        rho_fx : float
            Correlation between foreign rate and FX
        """
        return cls(
            [
                [1.0, rho_df, rho_dx],
                [rho_df, 1.0, rho_fx],
                [rho_dx, rho_fx, 1.0],
            ],
            labels=["domestic", "foreign", "fx"],
        )

    @property
    def n_factors(self) -> int:
        """Number of correlated drivers."""
        return len(self._corr_matrix)

    @property
    def correlation_matrix(self) -> FloatArray:
        """Return the correlation matrix."""
        return self._corr_matrix.copy()

    def correlate(self, z_independent: FloatArray) -> FloatArray:
        """
        Transform independent normals to correlated normals.

        Parameters
        ----------
        z_independent : FloatArray
            Array of shape (n_samples, n_factors)

        Returns
        -------
        FloatArray
            Correlated normals, same shape
        """
        if z_independent.shape[-1] != self.n_factors:
            raise ValueError(
                f"Expected {self.n_factors} columns for {self.labels}, "
                f"got {z_independent.shape[-1]}"
            )
        return z_independent @ self._cholesky.T

    def sample(self, n_paths: int, n_steps: int, rng: np.random.Generator) -> FloatArray:
        """
        Draw correlated normals for a simulation.

        Parameters
        ----------
        n_paths : int
            Number of Monte Carlo paths
        n_steps : int
            Number of time steps (excluding t=0)
        rng : np.random.Generator
            Random source

        Returns
        -------
        FloatArray
            Array of shape (n_factors, n_paths, n_steps)
        """
        z_ind = rng.standard_normal((n_paths, n_steps, self.n_factors))
        return np.moveaxis(self.correlate(z_ind), -1, 0)

    @classmethod
    def from_config(cls, config: "CorrelationConfig") -> "CholeskyCorrelation":  # noqa: F821
        """Create the three-factor structure from configuration."""
        return cls.three_factor(
            rho_df=config.domestic_foreign,
            rho_dx=config.domestic_fx,
            rho_fx=config.foreign_fx,
        )
