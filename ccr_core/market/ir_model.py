"""
Vasicek (Ornstein-Uhlenbeck) short-rate model.

Supplies exact transition sampling and closed-form zero-coupon bond prices,
which the reference path generator turns into discount curve snapshots.
"""

from dataclasses import dataclass

import numpy as np

from ccr_core._types import FloatArray, Year


@dataclass
class VasicekModel:
    """
    Vasicek short-rate model.

    The short rate follows the SDE:
        dr = κ(θ - r) dt + σ dW

    where:
        κ = mean reversion speed
        θ = long-term mean rate
        σ = volatility
        r₀ = initial rate

    Attributes
    ----------
    kappa : float
        Mean reversion speed (higher = faster reversion)
    theta : float
        Long-term mean rate
    sigma : float
        Volatility of the short rate
    r0 : float
        Initial short rate at t=0

    Example
    -------
    >>> model = VasicekModel(kappa=0.1, theta=0.02, sigma=0.01, r0=0.02)
    >>> round(model.bond_price(0.0, 1.0, 0.02), 4)
    0.9802
    """

    kappa: float = 0.1
    theta: float = 0.02
    sigma: float = 0.01
    r0: float = 0.02

    def __post_init__(self) -> None:
        """Validate model parameters."""
        if self.kappa <= 0:
            raise ValueError(f"kappa must be positive, got {self.kappa}")
        if self.sigma < 0:
            raise ValueError(f"sigma must be non-negative, got {self.sigma}")

    def variance(self, t: Year) -> float:
        """
        Calculate variance of rate at time t.

        Returns
        -------
        float
            Var[r(t)] = (σ² / 2κ) * (1 - exp(-2κt))
        """
        return (self.sigma**2 / (2 * self.kappa)) * (1 - np.exp(-2 * self.kappa * t))

    def _b(self, tau: FloatArray) -> FloatArray:
        return (1.0 - np.exp(-self.kappa * tau)) / self.kappa

    def bond_price(
        self, t: Year, maturity: Year | FloatArray, r_t: float | FloatArray
    ) -> float | FloatArray:
        """
        Closed-form zero-coupon bond price P(t, T) given r(t).

        Parameters
        ----------
        t : float
            Observation time in years
        maturity : float | FloatArray
            Bond maturity (or maturities) T >= t
        r_t : float | FloatArray
            Short rate at t; an array broadcasts against maturity

        Returns
        -------
        float | FloatArray
            P(t, T) = A(τ) exp(-B(τ) r(t)) with τ = T - t

        Notes
        -----
        B(τ) = (1 - exp(-κτ)) / κ
        ln A(τ) = (θ - σ²/2κ²)(B(τ) - τ) - σ² B(τ)² / 4κ
        """
        tau = np.maximum(np.asarray(maturity, dtype=np.float64) - t, 0.0)
        b = self._b(tau)
        log_a = (self.theta - self.sigma**2 / (2 * self.kappa**2)) * (b - tau) - (
            self.sigma**2 * b**2 / (4 * self.kappa)
        )
        price = np.exp(log_a - b * np.asarray(r_t, dtype=np.float64))
        if np.ndim(price) == 0:
            return float(price)
        return price

    def simulate_exact(
        self,
        time_grid: FloatArray,
        z: FloatArray,
    ) -> FloatArray:
        """
        Simulate short rates with the exact Gaussian transition density.

        Parameters
        ----------
        time_grid : FloatArray
            Time points in years, starting at 0
        z : FloatArray
            Standard normals of shape (n_paths, len(time_grid) - 1)

        Returns
        -------
        FloatArray
            Rate paths of shape (n_paths, len(time_grid))

        Notes
        -----
        r(t+dt) | r(t) ~ N(μ, s²) where:
            μ = θ + (r(t) - θ) * exp(-κ*dt)
            s² = (σ² / 2κ) * (1 - exp(-2κ*dt))
        """
        n_paths = z.shape[0]
        n_steps = len(time_grid)
        if z.shape[1] != n_steps - 1:
            raise ValueError(
                f"Need {n_steps - 1} normals per path, got {z.shape[1]}"
            )

        paths = np.zeros((n_paths, n_steps))
        paths[:, 0] = self.r0

        for i in range(n_steps - 1):
            dt = time_grid[i + 1] - time_grid[i]
            exp_kdt = np.exp(-self.kappa * dt)
            mean = self.theta + (paths[:, i] - self.theta) * exp_kdt
            std = np.sqrt(self.variance(dt))
            paths[:, i + 1] = mean + std * z[:, i]

        return paths

    @classmethod
    def from_config(cls, config: "ShortRateConfig") -> "VasicekModel":  # type: ignore[name-defined]  # noqa: F821
        """
        Create model from configuration object.

        Parameters
        ----------
        config : ShortRateConfig
            Configuration with model parameters

        Returns
        -------
        VasicekModel
            Initialized model
        """
        return cls(
            kappa=config.kappa,
            theta=config.theta,
            sigma=config.sigma,
            r0=config.initial_rate,
        )
