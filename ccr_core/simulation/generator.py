"""
Reference path generator driving the exposure core end to end.

Simulates Vasicek short rates (domestic and optionally foreign), a lognormal
FX factor, lognormal spot assets and exponential counterparty default times,
and records them on :class:`SimulatedPath` instances in the form the market
environment expects:

- discount curves hold deflated bond prices D(t) P(t, T), so the curve's
  discount factor at the evolution date is the path deflator;
- the foreign curve carries the FX factor X(t) D_d(t) / D_f(t);
- spots are stored deflated, S(t) D(t);
- the forward curve holds simply compounded domestic forward rates.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ccr_core._types import FloatArray
from ccr_core.config.models import SimulationConfig
from ccr_core.jumps.specs import JumpKind, constant, create_jump
from ccr_core.market.correlation import CholeskyCorrelation
from ccr_core.market.curve import DiscountCurve, ForwardCurve
from ccr_core.market.environment import MarketEnvironment
from ccr_core.market.fx import FxRate
from ccr_core.market.hazard import SurvivalCurve
from ccr_core.market.ir_model import VasicekModel
from ccr_core.market.spot import ForwardPriceCurve, SpotPrice
from ccr_core.simulation.grid import SimulationDateGrid
from ccr_core.simulation.path import SimulatedPath

logger = logging.getLogger(__name__)

_TAIL_TENORS = (1.0, 2.0, 5.0, 10.0)


@dataclass
class SpotDynamics:
    """
    Lognormal spot asset.

    Attributes
    ----------
    name : str
        Asset identifier
    initial_spot : float
        Spot at t=0
    volatility : float
        Lognormal volatility
    carry_rate : float
        Continuous dividend/convenience yield
    """

    name: str
    initial_spot: float
    volatility: float = 0.2
    carry_rate: float = 0.0


@dataclass
class ForeignLeg:
    """
    Foreign currency dynamics.

    Attributes
    ----------
    currency : str
        Foreign currency code
    rate_model : VasicekModel
        Foreign short-rate model
    initial_fx : float
        FX rate at t=0 (domestic per foreign)
    fx_volatility : float
        Lognormal FX volatility
    """

    currency: str
    rate_model: VasicekModel
    initial_fx: float
    fx_volatility: float


def default_curve_tenors(grid: SimulationDateGrid) -> FloatArray:
    """Grid dates after t=0 plus a tail beyond the horizon."""
    inner = grid.dates[grid.dates > 0]
    tail = grid.last + np.asarray(_TAIL_TENORS)
    return np.unique(np.concatenate((inner, tail)))


class VasicekPathGenerator:
    """
    Monte Carlo generator of simulated market paths.

    Parameters
    ----------
    grid : SimulationDateGrid
        Simulation dates; must start at 0
    domestic : VasicekModel
        Domestic short-rate model
    domestic_currency : str
        Domestic currency code
    curve_tenors : array-like | None
        Term points of every simulated curve (default: grid dates plus a tail)
    foreign : ForeignLeg | None
        Foreign currency and FX dynamics
    correlation : CholeskyCorrelation | None
        Three-factor correlation of domestic, foreign and FX drivers
    hazard_rate : float
        Flat counterparty hazard rate
    recovery_rate : float
        Counterparty recovery rate
    simulate_default : bool
        Draw an exponential default time per path
    spots : Sequence[SpotDynamics]
        Spot assets
    forward_tenor : float
        Accrual period of the domestic forward-rate curve

    Example
    -------
    >>> grid = SimulationDateGrid(np.linspace(0.0, 2.0, 9))
    >>> generator = VasicekPathGenerator(grid, VasicekModel())
    >>> paths = generator.generate(n_paths=100, seed=7)
    >>> market = generator.market_environment()
    """

    def __init__(
        self,
        grid: SimulationDateGrid,
        domestic: VasicekModel,
        domestic_currency: str = "USD",
        curve_tenors: FloatArray | Sequence[float] | None = None,
        foreign: ForeignLeg | None = None,
        correlation: CholeskyCorrelation | None = None,
        hazard_rate: float = 0.0,
        recovery_rate: float = 0.4,
        simulate_default: bool = True,
        spots: Sequence[SpotDynamics] = (),
        forward_tenor: float = 0.25,
    ) -> None:
        if abs(grid.first) > 1e-12:
            raise ValueError(f"Generator grid must start at 0, got {grid.first}")
        if len(grid) < 2:
            raise ValueError("Generator grid needs at least two dates")
        if hazard_rate < 0:
            raise ValueError(f"Hazard rate must be non-negative, got {hazard_rate}")
        if forward_tenor <= 0:
            raise ValueError(f"Forward tenor must be positive, got {forward_tenor}")

        self.grid = grid
        self.domestic = domestic
        self.domestic_currency = domestic_currency
        tenors = default_curve_tenors(grid) if curve_tenors is None else curve_tenors
        self.curve_tenors = np.array(tenors, dtype=np.float64)
        if np.any(self.curve_tenors <= 0):
            raise ValueError("Curve tenors must be positive")
        self.foreign = foreign
        self.correlation = correlation or CholeskyCorrelation.three_factor()
        self.hazard_rate = hazard_rate
        self.recovery_rate = recovery_rate
        self.simulate_default = simulate_default
        self.spots = list(spots)
        self.forward_tenor = forward_tenor

    @classmethod
    def from_config(
        cls,
        config: SimulationConfig,
        curve_tenors: FloatArray | Sequence[float] | None = None,
    ) -> "VasicekPathGenerator":
        """
        Create generator from configuration.

        Parameters
        ----------
        config : SimulationConfig
            Simulation configuration
        curve_tenors : array-like | None
            Term points of the simulated curves

        Returns
        -------
        VasicekPathGenerator
            Configured generator
        """
        foreign = None
        if config.foreign_rate is not None and config.fx is not None:
            foreign = ForeignLeg(
                currency=config.fx.currency,
                rate_model=VasicekModel.from_config(config.foreign_rate),
                initial_fx=config.fx.initial_spot,
                fx_volatility=config.fx.volatility,
            )
        return cls(
            grid=SimulationDateGrid(config.grid.dates),
            domestic=VasicekModel.from_config(config.domestic_rate),
            domestic_currency=config.domestic_currency,
            curve_tenors=curve_tenors,
            foreign=foreign,
            correlation=CholeskyCorrelation.from_config(config.correlations),
            hazard_rate=config.credit.hazard_rate,
            recovery_rate=config.credit.recovery_rate,
            simulate_default=config.credit.simulate_default,
            spots=[
                SpotDynamics(s.name, s.initial_spot, s.volatility, s.carry_rate)
                for s in config.spots
            ],
            forward_tenor=config.forward_tenor,
        )

    # ------------------------------------------------------------------
    # Curve snapshots
    # ------------------------------------------------------------------

    def _deflators(self, rates: FloatArray) -> FloatArray:
        """exp(-∫r dt) by the trapezoid rule, shape (n_paths, n_dates)."""
        dt = np.diff(self.grid.dates)
        increments = 0.5 * (rates[:, :-1] + rates[:, 1:]) * dt
        integral = np.concatenate(
            (np.zeros((rates.shape[0], 1)), np.cumsum(increments, axis=1)), axis=1
        )
        return np.exp(-integral)

    def _bond_prices(self, model: VasicekModel, rates: FloatArray, offset: float = 0.0) -> FloatArray:
        """P(t_i, max(T_j + offset, t_i)) for every path, shape (n_paths, n_dates, n_tenors)."""
        n_paths, n_dates = rates.shape
        out = np.empty((n_paths, n_dates, len(self.curve_tenors)))
        for i, t in enumerate(self.grid.dates):
            maturities = np.maximum(self.curve_tenors + offset, t)
            out[:, i, :] = model.bond_price(t, maturities, rates[:, i : i + 1])
        return out

    def _discount_snapshots(self, model: VasicekModel, rates: FloatArray) -> tuple[FloatArray, FloatArray]:
        deflators = self._deflators(rates)
        return deflators[:, :, None] * self._bond_prices(model, rates), deflators

    def _forward_snapshots(self, rates: FloatArray) -> FloatArray:
        start = self._bond_prices(self.domestic, rates)
        end = self._bond_prices(self.domestic, rates, offset=self.forward_tenor)
        # Fully expired periods have start == end.
        period = np.maximum(
            np.maximum(self.curve_tenors + self.forward_tenor, self.grid.dates[:, None])
            - np.maximum(self.curve_tenors, self.grid.dates[:, None]),
            1e-12,
        )
        return (start / end - 1.0) / period[None, :, :]

    def _survival_snapshots(self) -> FloatArray:
        survival = np.exp(-self.hazard_rate * self.curve_tenors)
        return np.tile(survival, (len(self.grid), 1))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, n_paths: int, seed: int | None = None) -> list[SimulatedPath]:
        """
        Simulate n_paths independent paths.

        Parameters
        ----------
        n_paths : int
            Number of Monte Carlo paths
        seed : int | None
            Random seed for reproducibility

        Returns
        -------
        list[SimulatedPath]
            Paths with indices 0..n_paths-1
        """
        if n_paths < 1:
            raise ValueError(f"n_paths must be positive, got {n_paths}")

        rng = np.random.default_rng(seed)
        dates = self.grid.dates
        n_steps = len(dates) - 1
        dt = np.diff(dates)

        z = self.correlation.sample(n_paths, n_steps, rng)
        r_dom = self.domestic.simulate_exact(dates, z[0])
        dom_curves, dom_deflators = self._discount_snapshots(self.domestic, r_dom)
        forwards = self._forward_snapshots(r_dom)
        survival = self._survival_snapshots()

        foreign_curves = fx_factors = None
        if self.foreign is not None:
            leg = self.foreign
            r_for = leg.rate_model.simulate_exact(dates, z[1])
            foreign_curves, for_deflators = self._discount_snapshots(leg.rate_model, r_for)
            log_fx = np.zeros((n_paths, len(dates)))
            log_fx[:, 1:] = np.cumsum(
                (r_dom[:, :-1] - r_for[:, :-1] - 0.5 * leg.fx_volatility**2) * dt
                + leg.fx_volatility * np.sqrt(dt) * z[2],
                axis=1,
            )
            fx = leg.initial_fx * np.exp(log_fx)
            fx_factors = fx * dom_deflators / for_deflators

        spot_values = []
        for spot in self.spots:
            w = np.zeros((n_paths, len(dates)))
            w[:, 1:] = np.cumsum(np.sqrt(dt) * rng.standard_normal((n_paths, n_steps)), axis=1)
            spot_values.append(
                spot.initial_spot
                * np.exp(
                    -(spot.carry_rate + 0.5 * spot.volatility**2) * dates
                    + spot.volatility * w
                )
            )

        default_dates = self._draw_default_dates(n_paths, rng)

        paths = []
        for p in range(n_paths):
            path = SimulatedPath(self.grid, index=p, default_date=default_dates[p])
            path.add_discount(0, dom_curves[p])
            if foreign_curves is not None:
                path.add_discount(1, foreign_curves[p], fx_factors=fx_factors[p])
            path.add_credit(0, survival)
            path.add_forward(0, forwards[p])
            for k, values in enumerate(spot_values):
                path.add_spot(k, values[p])
            paths.append(path)

        n_defaults = sum(d is not None for d in default_dates)
        logger.info(
            "Generated %d paths on %r (%d default(s) within horizon)",
            n_paths,
            self.grid,
            n_defaults,
        )
        return paths

    def _draw_default_dates(self, n_paths: int, rng: np.random.Generator) -> list[float | None]:
        if not self.simulate_default or self.hazard_rate == 0:
            return [None] * n_paths
        taus = rng.exponential(1.0 / self.hazard_rate, size=n_paths)
        return [float(t) if t <= self.grid.last else None for t in taus]

    # ------------------------------------------------------------------
    # Matching market environment
    # ------------------------------------------------------------------

    def market_environment(
        self, jumps: Sequence[tuple[str, int, str, float]] = ()
    ) -> MarketEnvironment:
        """
        Build the market environment evolved by this generator's paths.

        Parameters
        ----------
        jumps : Sequence[tuple[str, int, str, float]]
            (target class, index, kind, value) of each jump on default,
            e.g. ``("credit", 0, "relative", 0.5)``

        Returns
        -------
        MarketEnvironment
            Environment whose object positions match the path identifiers
        """
        tenors = self.curve_tenors
        r0 = self.domestic.r0
        domestic = DiscountCurve(
            tenors=tenors,
            values=self.domestic.bond_price(0.0, tenors, r0),
            name=f"{self.domestic_currency}.discount",
        )
        discount_curves = [domestic]
        currencies = [self.domestic_currency]
        fx_rates = []
        if self.foreign is not None:
            leg = self.foreign
            discount_curves.append(
                DiscountCurve(
                    tenors=tenors,
                    values=leg.rate_model.bond_price(0.0, tenors, leg.rate_model.r0),
                    name=f"{leg.currency}.discount",
                )
            )
            currencies.append(leg.currency)
            fx_rates.append(FxRate(leg.currency, self.domestic_currency, leg.initial_fx))

        credit = SurvivalCurve(
            tenors=tenors,
            values=np.exp(-self.hazard_rate * tenors),
            name="counterparty",
            recovery_rate=self.recovery_rate,
        )
        start = self.domestic.bond_price(0.0, tenors, r0)
        end = self.domestic.bond_price(0.0, tenors + self.forward_tenor, r0)
        forward = ForwardCurve(
            tenors=tenors,
            values=(start / end - 1.0) / self.forward_tenor,
            name=f"{self.domestic_currency}.forward",
        )
        spot_curves = [
            ForwardPriceCurve(
                spot=SpotPrice(s.name, s.initial_spot),
                discount_curve=domestic,
                carry_rate=s.carry_rate,
                name=s.name,
            )
            for s in self.spots
        ]

        groups = {
            "discount": discount_curves,
            "fx": fx_rates,
            "credit": [credit],
            "forward": [forward],
            "spot": spot_curves,
        }
        jump_specs = []
        for target, index, kind, value in jumps:
            objects = groups[target]
            if index >= len(objects):
                raise ValueError(
                    f"Jump targets {target} #{index} but only {len(objects)} exist"
                )
            jump_specs.append(create_jump(objects[index], JumpKind(kind), constant(value)))

        return MarketEnvironment(
            discount_curves=discount_curves,
            currencies=currencies,
            fx_rates=fx_rates,
            credit_curves=[credit],
            forward_curves=[forward],
            spot_curves=spot_curves,
            jumps_on_default=jump_specs,
        )

    def market_environment_from_config(self, config: SimulationConfig) -> MarketEnvironment:
        """Market environment with the jumps listed in a configuration."""
        return self.market_environment(
            [(j.target, j.index, j.kind, j.value) for j in config.jumps]
        )
