"""
Tests for exporting exposure sets and run summaries.
"""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from ccr_core.errors import PerCellValuationFailure
from ccr_core.exposure import (
    FAILED,
    ExposureProfile,
    ExposureSet,
    MultiTradeExposureSet,
    PathEvaluationResult,
    Precision,
    RunResult,
)
from ccr_core.reporting import (
    create_exposure_profile_table,
    create_failure_table,
    export_to_csv,
    export_to_json,
    exposure_set_to_frame,
    write_exposure_report,
)


@pytest.fixture
def populated_set() -> MultiTradeExposureSet:
    """Two paths, two trades, one failed cell."""
    dates = [[0.5, 1.0], [1.0]]
    buffer = MultiTradeExposureSet.allocate_buffer(Precision.DOUBLE, 2, dates)
    exposure_set = MultiTradeExposureSet(Precision.DOUBLE, buffer, 2, dates, id="book")
    exposure_set.get_exposures(0)[:] = [[10.0, 20.0], [-5.0, FAILED]]
    exposure_set.get_exposures(1)[:, 0] = [1.0, 2.0]
    return exposure_set


@pytest.fixture
def run_result() -> RunResult:
    failure = PerCellValuationFailure(0, 1, 1, 1.0, RuntimeError("no convergence"))
    return RunResult(
        exposure_set_id="book",
        completed=[0, 1],
        path_results={
            0: PathEvaluationResult(path_index=0, dates_completed=2),
            1: PathEvaluationResult(
                path_index=1, dates_completed=2, defaulted=True, failures=[failure]
            ),
        },
        elapsed=0.5,
    )


class TestFrames:
    """Tests for DataFrame construction."""

    def test_exposure_cells(self, populated_set: MultiTradeExposureSet) -> None:
        df = exposure_set_to_frame(populated_set)
        assert list(df.columns) == ["Trade", "Path", "Date Index", "Date", "Exposure", "Failed"]
        assert len(df) == 6
        first_trade = df[df["Trade"] == 0]
        assert list(first_trade["Date"]) == [0.5, 1.0, 0.5, 1.0]
        assert list(first_trade["Failed"]) == [False, False, False, True]

    def test_single_trade(self, populated_set: MultiTradeExposureSet) -> None:
        df = exposure_set_to_frame(populated_set, trade_index=1)
        assert list(df["Trade"]) == [1, 1]
        assert list(df["Exposure"]) == [1.0, 2.0]

    def test_discount_factor_column(self) -> None:
        exposure_set = ExposureSet.allocate(
            2, [0.5], record_discount_factors=True, precision=Precision.SINGLE
        )
        exposure_set.get_discount_factors()[:, 0] = 0.99
        df = exposure_set_to_frame(exposure_set)
        assert "Discount Factor" in df.columns
        assert np.allclose(df["Discount Factor"], 0.99)
        assert df["Exposure"].dtype == np.float64

    def test_profile_table(self, populated_set: MultiTradeExposureSet) -> None:
        profile = ExposureProfile.from_exposure_set(populated_set, 0)
        df = create_exposure_profile_table(profile)
        assert list(df.columns) == [
            "Date", "EPE", "ENE", "PFE 95%", "PFE 99%", "EE", "Valid Paths"
        ]
        assert list(df["Valid Paths"]) == [2, 1]
        assert list(df["EPE"]) == [5.0, 20.0]

    def test_failure_table(self, run_result: RunResult) -> None:
        df = create_failure_table(run_result)
        assert len(df) == 1
        row = df.iloc[0]
        assert row["Error"] == "RuntimeError"
        assert row["Message"] == "no convergence"
        assert row["Path"] == 1

    def test_empty_failure_table(self) -> None:
        df = create_failure_table(RunResult(exposure_set_id="empty"))
        assert df.empty
        assert "Message" in df.columns


class TestFiles:
    """Tests for CSV and JSON output."""

    def test_csv_creates_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "out.csv"
        export_to_csv(pd.DataFrame({"A": [1.0, 2.0]}), path)
        assert pd.read_csv(path)["A"].tolist() == [1.0, 2.0]

    def test_json_nan_is_null(self, tmp_path: Path) -> None:
        path = tmp_path / "out.json"
        export_to_json({"values": np.array([1.0, np.nan]), "count": np.int64(3)}, path)
        assert json.loads(path.read_text()) == {"values": [1.0, None], "count": 3}

    def test_report(
        self, tmp_path: Path, populated_set: MultiTradeExposureSet, run_result: RunResult
    ) -> None:
        created = write_exposure_report(populated_set, tmp_path, run_result, prefix="book")
        assert set(created) == {"cells", "profile_0", "profile_1", "failures", "summary"}
        assert all(path.exists() for path in created.values())
        assert created["profile_1"].name == "book_trade1_profile.csv"

        summary = json.loads(created["summary"].read_text())
        assert summary["exposure_set"] == "book"
        assert summary["paths"] == 2
        assert summary["precision"] == "double"
        assert summary["profiles"]["trade_0"]["peak_epe"] == 20.0
        assert summary["run"]["failed_cells"] == 1
        assert summary["run"]["defaulted_paths"] == 1

    def test_report_without_run(self, tmp_path: Path, populated_set) -> None:
        created = write_exposure_report(populated_set, tmp_path)
        assert "failures" not in created
        summary = json.loads(created["summary"].read_text())
        assert "run" not in summary
