"""
Reporting module.

Exports exposure sets, exposure profiles and run summaries to pandas
DataFrames, CSV and JSON.
"""

from ccr_core.reporting.export import (
    create_exposure_profile_table,
    create_failure_table,
    export_to_csv,
    export_to_json,
    exposure_set_to_frame,
    write_exposure_report,
)

__all__ = [
    "exposure_set_to_frame",
    "create_exposure_profile_table",
    "create_failure_table",
    "export_to_csv",
    "export_to_json",
    "write_exposure_report",
]
