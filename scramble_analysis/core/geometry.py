# filename: scramble_analysis/core/geometry.py
"""
Geometry helpers: periodic 1D distances and the membrane center.
"""

import numpy as np

from scramble_analysis.core.config import MEMBRANE_NORMAL_AXIS


def periodic_distance_1d(a, b, box_length: float):
    """
    Signed minimum-image difference ``a - b`` along one box axis.

    The difference is folded through at most one period into (-L/2, L/2].
    Atoms are assumed not to travel more than half a box length between
    analyzed frames, so a single fold is sufficient.

    Parameters:
    -----------
    a, b : float or numpy.ndarray
        Coordinates along the axis (broadcastable against each other).
    box_length : float
        Box length along the axis. Non-positive values disable wrapping.

    Returns:
    --------
    float or numpy.ndarray
        Wrapped difference, same shape as the broadcast inputs.
    """
    d = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    if box_length is None or box_length <= 0:
        return d if d.ndim else float(d)

    half = 0.5 * box_length
    d = np.where(d > half, d - box_length, d)
    d = np.where(d <= -half, d + box_length, d)
    return d if d.ndim else float(d)


def membrane_center(positions, axis: int = MEMBRANE_NORMAL_AXIS) -> float:
    """
    Unweighted geometric center of lipid atoms along the bilayer normal.

    The positions are treated as one periodic image. A bilayer split across the
    periodic boundary gives a valid number that is not the midplane; callers are
    expected to provide whole, centered membranes.

    ``positions`` is an (n, 3) array, or a 1D array already holding the
    normal-axis coordinates.

    Raises:
        ValueError: if no positions are given.
    """
    positions = np.asarray(positions, dtype=float)
    if positions.size == 0:
        raise ValueError("Cannot compute membrane center of an empty atom set.")
    if positions.ndim == 1:
        return float(np.mean(positions))
    return float(np.mean(positions[:, axis]))
