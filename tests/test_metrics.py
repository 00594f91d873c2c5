"""
Tests for exposure profile statistics.
"""

import numpy as np
import pytest

from ccr_core.exposure import (
    FAILED,
    ExposureProfile,
    ExposureSet,
    MultiTradeExposureSet,
    Precision,
    calculate_effective_epe,
    calculate_ene,
    calculate_epe,
    calculate_expected_exposure,
    calculate_pfe,
    netted_exposures,
)


class TestExposureMetrics:
    """Tests for exposure metric calculations."""

    def test_epe_positive(self, sample_exposure: np.ndarray) -> None:
        """EPE should be non-negative."""
        assert np.all(calculate_epe(sample_exposure) >= 0)

    def test_ene_positive(self, sample_exposure: np.ndarray) -> None:
        """ENE should be non-negative."""
        assert np.all(calculate_ene(sample_exposure) >= 0)

    def test_epe_plus_ene_is_expected_exposure(self, sample_exposure: np.ndarray) -> None:
        total = calculate_epe(sample_exposure) + calculate_ene(sample_exposure)
        assert np.allclose(total, calculate_expected_exposure(sample_exposure))

    def test_pfe_non_negative(self, sample_exposure: np.ndarray) -> None:
        """PFE is floored at zero, even where most paths are out of the money."""
        assert np.all(calculate_pfe(sample_exposure, quantile=0.95) >= 0)

    def test_pfe_above_epe_for_positive_exposures(self) -> None:
        """With only positive exposures the 95% quantile sits above the mean."""
        exposures = np.tile(np.arange(1.0, 101.0)[:, None], (1, 3))
        epe = calculate_epe(exposures)
        pfe = calculate_pfe(exposures, quantile=0.95)
        assert np.allclose(epe, 50.5)
        assert np.all(pfe >= epe)

    def test_pfe_99_higher_than_95(self, sample_exposure: np.ndarray) -> None:
        pfe_95 = calculate_pfe(sample_exposure, quantile=0.95)
        pfe_99 = calculate_pfe(sample_exposure, quantile=0.99)
        assert np.all(pfe_99 >= pfe_95)

    @pytest.mark.parametrize("quantile", [0.0, 1.0, 1.5])
    def test_pfe_quantile_bounds(self, sample_exposure: np.ndarray, quantile: float) -> None:
        with pytest.raises(ValueError, match="Quantile"):
            calculate_pfe(sample_exposure, quantile=quantile)

    def test_effective_epe_non_decreasing(self, sample_exposure: np.ndarray) -> None:
        effective = calculate_effective_epe(calculate_epe(sample_exposure))
        assert np.all(np.diff(effective) >= 0)

    def test_effective_epe_ignores_failed_dates(self) -> None:
        effective = calculate_effective_epe(np.array([1.0, 3.0, np.nan, 2.0]))
        assert np.allclose(effective, [1.0, 3.0, 3.0, 3.0])


class TestFailedCells:
    """Tests for statistics in the presence of failed valuations."""

    def test_failed_cells_skipped(self) -> None:
        exposures = np.array([[1.0, FAILED], [3.0, 2.0]])
        assert np.allclose(calculate_epe(exposures), [2.0, 2.0])
        assert np.allclose(calculate_ene(exposures), [0.0, 0.0])
        assert np.allclose(calculate_pfe(exposures, 0.5), [2.0, 2.0])

    def test_all_failed_column(self) -> None:
        exposures = np.array([[1.0, FAILED], [-3.0, FAILED]])
        epe = calculate_epe(exposures)
        assert epe[0] == 0.5
        assert np.isnan(epe[1])
        assert np.isnan(calculate_pfe(exposures)[1])

    def test_profile_counts_valid_paths(self) -> None:
        exposures = np.array([[1.0, FAILED], [3.0, 2.0]])
        profile = ExposureProfile.from_exposures(exposures, [0.5, 1.0])
        assert list(profile.valid_paths) == [2, 1]
        assert profile.peak_epe == 2.0
        assert np.isclose(profile.average_epe, 2.0)

    def test_profile_every_cell_failed(self) -> None:
        exposures = np.full((3, 2), FAILED)
        profile = ExposureProfile.from_exposures(exposures, [0.5, 1.0])
        assert np.isnan(profile.peak_epe)
        assert profile.average_epe == 0.0


class TestExposureProfile:
    """Tests for the per-trade profile."""

    def test_from_exposures(self, sample_exposure: np.ndarray) -> None:
        dates = np.linspace(0, 5, sample_exposure.shape[1])
        profile = ExposureProfile.from_exposures(sample_exposure, dates)

        assert len(profile.epe) == len(dates)
        assert len(profile.ene) == len(dates)
        assert profile.peak_epe == pytest.approx(np.max(profile.epe))
        assert 0 <= profile.average_epe <= profile.peak_epe
        assert np.all(profile.valid_paths == sample_exposure.shape[0])

    def test_time_weighted_average(self) -> None:
        exposures = np.array([[1.0, 4.0]])
        profile = ExposureProfile.from_exposures(exposures, [1.0, 2.0])
        assert np.isclose(profile.average_epe, 2.5)

    def test_shape_mismatch(self) -> None:
        with pytest.raises(ValueError, match="do not match"):
            ExposureProfile.from_exposures(np.zeros((2, 3)), [0.5, 1.0])

    def test_from_exposure_set(self) -> None:
        dates = [[0.5, 1.0], [1.0]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 2, dates)
        exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 2, dates)
        exposure_set.get_exposures(1)[:, 0] = [10.0, -4.0]

        profile = ExposureProfile.from_exposure_set(exposure_set, 1)
        assert np.allclose(profile.exposure_dates, [1.0])
        assert np.allclose(profile.epe, [5.0])
        assert np.allclose(profile.ene, [2.0])


class TestNetting:
    """Tests for summing trades into one netting-set exposure."""

    def test_netted_sum(self) -> None:
        dates = [[0.5, 1.0], [0.5, 1.0]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 2, dates)
        exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 2, dates)
        exposure_set.get_exposures(0)[:] = [[1.0, 2.0], [3.0, 4.0]]
        exposure_set.get_exposures(1)[:] = [[-1.0, 1.0], [FAILED, 1.0]]

        netted = netted_exposures(exposure_set)
        assert netted.shape == (2, 2)
        assert np.allclose(netted[0], [0.0, 3.0])
        assert np.isnan(netted[1, 0])
        assert netted[1, 1] == 5.0

    def test_different_dates(self) -> None:
        dates = [[0.5, 1.0], [1.0]]
        buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 1, dates)
        exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 1, dates)
        with pytest.raises(ValueError, match="different exposure dates"):
            netted_exposures(exposure_set)

    def test_single_trade_is_a_copy(self) -> None:
        exposure_set = ExposureSet.allocate(2, [0.5])
        netted = netted_exposures(exposure_set)
        netted[0, 0] = 7.0
        assert exposure_set.get_exposures(0)[0, 0] == 0.0
