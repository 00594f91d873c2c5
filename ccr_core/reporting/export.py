"""
Export utilities for exposure runs.

Turns exposure sets, exposure profiles and run summaries into pandas
DataFrames and writes them as CSV or JSON.
"""

import json
import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ccr_core.exposure.metrics import ExposureProfile
from ccr_core.exposure.runner import RunResult
from ccr_core.exposure.sets import BaseExposureSet, is_failed


def exposure_set_to_frame(
    exposure_set: BaseExposureSet,
    trade_index: int | None = None,
) -> pd.DataFrame:
    """
    Long-format table of exposure cells.

    Parameters
    ----------
    exposure_set : BaseExposureSet
        Populated exposure set
    trade_index : int | None
        Single trade to export (default: every trade)

    Returns
    -------
    pd.DataFrame
        One row per (trade, path, date) with columns Trade, Path, Date Index,
        Date, Exposure and Failed; a Discount Factor column is added for
        trade 0 when the set records them
    """
    trades = range(exposure_set.trade_count) if trade_index is None else [trade_index]
    discount_factors = exposure_set.get_discount_factors()
    frames = []
    for k in trades:
        exposures = exposure_set.get_exposures(k)
        dates = exposure_set.get_exposure_dates(k)
        paths, columns = np.meshgrid(
            np.arange(exposure_set.path_count), np.arange(len(dates)), indexing="ij"
        )
        data = {
            "Trade": np.full(exposures.size, k),
            "Path": paths.ravel(),
            "Date Index": columns.ravel(),
            "Date": dates[columns.ravel()],
            "Exposure": exposures.ravel().astype(np.float64),
            "Failed": is_failed(exposures).ravel(),
        }
        if discount_factors is not None:
            data["Discount Factor"] = (
                discount_factors.ravel().astype(np.float64)
                if k == 0
                else np.full(exposures.size, np.nan)
            )
        frames.append(pd.DataFrame(data))
    return pd.concat(frames, ignore_index=True)


def create_exposure_profile_table(profile: ExposureProfile) -> pd.DataFrame:
    """
    Exposure profile table by date.

    Parameters
    ----------
    profile : ExposureProfile
        Statistics of one trade

    Returns
    -------
    pd.DataFrame
        Columns Date, EPE, ENE, PFE 95%, PFE 99%, EE and Valid Paths
    """
    return pd.DataFrame(
        {
            "Date": profile.exposure_dates,
            "EPE": profile.epe,
            "ENE": profile.ene,
            "PFE 95%": profile.pfe_95,
            "PFE 99%": profile.pfe_99,
            "EE": profile.expected_exposure,
            "Valid Paths": profile.valid_paths,
        }
    )


def create_failure_table(run_result: RunResult) -> pd.DataFrame:
    """One row per failed cell of a run."""
    rows = [
        {
            "Trade": f.trade_index,
            "Path": f.path_index,
            "Date Index": f.date_index,
            "Date": f.date,
            "Error": type(f.cause).__name__,
            "Message": str(f.cause),
        }
        for f in run_result.failures
    ]
    columns = ["Trade", "Path", "Date Index", "Date", "Error", "Message"]
    return pd.DataFrame(rows, columns=columns)


def export_to_csv(
    df: pd.DataFrame,
    path: str | Path,
    float_format: str = "%.6f",
) -> None:
    """
    Export DataFrame to CSV.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to export
    path : str | Path
        Output file path
    float_format : str
        Format string for floats
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False, float_format=float_format)


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, np.ndarray):
        return [_jsonable(v) for v in obj.tolist()]
    if isinstance(obj, (float, np.floating)):
        return None if math.isnan(obj) else float(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def export_to_json(data: dict[str, Any], path: str | Path, indent: int = 2) -> None:
    """
    Export dictionary to JSON.

    Numpy arrays become lists and NaN becomes null.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(_jsonable(data), f, indent=indent)


def write_exposure_report(
    exposure_set: BaseExposureSet,
    output_dir: str | Path,
    run_result: RunResult | None = None,
    prefix: str = "exposure",
) -> dict[str, Path]:
    """
    Write cells, per-trade profiles and a run summary.

    Parameters
    ----------
    exposure_set : BaseExposureSet
        Populated exposure set
    output_dir : str | Path
        Output directory
    run_result : RunResult | None
        Run that populated the set; adds failures and the summary
    prefix : str
        File name prefix

    Returns
    -------
    dict[str, Path]
        Created files keyed by content
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    created: dict[str, Path] = {}

    cells_path = output_dir / f"{prefix}_cells.csv"
    export_to_csv(exposure_set_to_frame(exposure_set), cells_path)
    created["cells"] = cells_path

    profiles = {}
    for k in range(exposure_set.trade_count):
        profile = ExposureProfile.from_exposure_set(exposure_set, k)
        profile_path = output_dir / f"{prefix}_trade{k}_profile.csv"
        export_to_csv(create_exposure_profile_table(profile), profile_path)
        created[f"profile_{k}"] = profile_path
        profiles[f"trade_{k}"] = {
            "peak_epe": profile.peak_epe,
            "average_epe": profile.average_epe,
        }

    summary: dict[str, Any] = {
        "exposure_set": exposure_set.id,
        "paths": exposure_set.path_count,
        "trades": exposure_set.trade_count,
        "precision": exposure_set.precision.value,
        "profiles": profiles,
    }
    if run_result is not None:
        summary["run"] = run_result.summary()
        failures_path = output_dir / f"{prefix}_failures.csv"
        export_to_csv(create_failure_table(run_result), failures_path)
        created["failures"] = failures_path

    summary_path = output_dir / f"{prefix}_summary.json"
    export_to_json(summary, summary_path)
    created["summary"] = summary_path
    return created
