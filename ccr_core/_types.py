"""
Common type aliases used throughout the exposure simulation core.

This module defines type aliases for numpy arrays and other common types
to improve code readability and enable better static type checking.
"""

from collections.abc import Callable
from typing import TypeAlias

import numpy as np
import numpy.typing as npt

# Array type aliases
FloatArray: TypeAlias = npt.NDArray[np.float64]
"""1D or 2D array of 64-bit floats."""

IntArray: TypeAlias = npt.NDArray[np.int64]
"""1D or 2D array of 64-bit integers."""

SnapshotArray: TypeAlias = npt.NDArray[np.float64]
"""
2D array of shape (n_grid_dates, n_points) holding simulated curve state.

Each row is the state of one curve at one simulation grid date.
"""

ExposureMatrix: TypeAlias = npt.NDArray[np.floating]
"""
2D array of shape (n_paths, n_exposure_dates) with exposure values.

The element type is float32 or float64 depending on the storage precision.
"""

# Scalar type aliases
Year: TypeAlias = float
"""Time measured in years from the valuation date (e.g., 0.25 for 3M)."""

Notional: TypeAlias = float
"""Notional amount in trade currency units."""

ValueFunction: TypeAlias = Callable[[float], float]
"""Function mapping a date (in years) to a jump magnitude."""

ProgressCallback: TypeAlias = Callable[[int, int], None]
"""Callback receiving (path_index, exposure_date_index) after each date."""
