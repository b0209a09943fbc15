# utils.py
"""
Utility functions for the scramble analysis.
"""

import math
from datetime import datetime

import numpy as np


def ps_to_ns(time_ps):
    """Convert trajectory time from picoseconds (MDAnalysis) to nanoseconds."""
    return np.asarray(time_ps, dtype=float) / 1000.0


def interval_to_ps(dt_ns: float) -> int:
    """
    Convert an analysis interval in ns to a whole number of picoseconds.

    Raises:
        ValueError: if the interval is not positive or rounds to zero ps.
    """
    if dt_ns is None or dt_ns <= 0:
        raise ValueError(f"Analysis interval must be positive, got {dt_ns} ns.")
    dt_ps = int(round(dt_ns * 1000))
    if dt_ps < 1:
        raise ValueError(f"Analysis interval {dt_ns} ns is shorter than 1 ps.")
    return dt_ps


def is_analysis_frame(time_ps: float, dt_ps: int) -> bool:
    """
    Decide whether a frame is analyzed: its time, rounded to whole ps,
    must be a multiple of the analysis interval.
    """
    return int(round(time_ps)) % dt_ps == 0


def box_length(dimensions, axis: int = 2) -> float:
    """
    Box length along one axis from MDAnalysis dimensions ([lx, ly, lz, a, b, g]).
    Returns 0.0 when the frame carries no box.
    """
    if dimensions is None:
        return 0.0
    length = float(dimensions[axis])
    return length if np.isfinite(length) else 0.0


def clean_json_data(data):
    """Recursively cleans data structure for JSON serialization.
       Converts NaN/Infinity to None, numpy types to Python types.
    """
    if isinstance(data, dict):
        return {str(k): clean_json_data(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [clean_json_data(item) for item in data]
    elif isinstance(data, np.integer):
        return int(data)
    elif isinstance(data, np.floating):
        return None if not np.isfinite(data) else float(data)
    elif isinstance(data, np.ndarray):
        return [clean_json_data(item) for item in data.tolist()]
    elif isinstance(data, np.bool_):
        return bool(data)
    elif isinstance(data, float):
        return None if math.isnan(data) or math.isinf(data) else data
    elif isinstance(data, datetime):
        return data.isoformat()
    return data
