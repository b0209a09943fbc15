# filename: scramble_analysis/modules/leaflets/classification.py
"""
Per-frame leaflet classification of lipid head groups relative to the membrane center.

Two views are provided:
- a binary view (upper if the signed distance is positive, lower otherwise),
  used for composition counting and for scrambling references;
- a zone view that splits each leaflet into a core and an intermediate region
  at the spatial limit, used by the flip-flop tracker.
"""

import logging
from enum import IntEnum
from typing import Dict, Mapping

import numpy as np

from scramble_analysis.core.config import ALL_LIPIDS_LABEL
from scramble_analysis.core.geometry import periodic_distance_1d

logger = logging.getLogger(__name__)


class Zone(IntEnum):
    """Position of a head group relative to the membrane center."""
    LOWER_CORE = -2
    LOWER_INTERMEDIATE = -1
    UNDEFINED = 0  # exactly at the membrane center
    UPPER_INTERMEDIATE = 1
    UPPER_CORE = 2


def signed_distances(head_z, center_z: float, box_z: float) -> np.ndarray:
    """Signed minimum-image distances of head groups from the membrane center."""
    return np.atleast_1d(periodic_distance_1d(head_z, center_z, box_z))


def classify_zones(distances, spatial_limit: float) -> np.ndarray:
    """
    Map signed distances to Zone values.

    d > S is UPPER_CORE, 0 < d <= S is UPPER_INTERMEDIATE, d < -S is LOWER_CORE,
    -S <= d < 0 is LOWER_INTERMEDIATE and d == 0 is UNDEFINED.
    """
    d = np.atleast_1d(np.asarray(distances, dtype=float))
    return np.select(
        [d > spatial_limit, d > 0, d < -spatial_limit, d < 0],
        [Zone.UPPER_CORE, Zone.UPPER_INTERMEDIATE, Zone.LOWER_CORE, Zone.LOWER_INTERMEDIATE],
        default=Zone.UNDEFINED,
    ).astype(int)


def assign_leaflets(head_z, center_z: float, box_z: float) -> np.ndarray:
    """Binary leaflet assignment: True for the upper leaflet, False for the lower one."""
    return signed_distances(head_z, center_z, box_z) > 0


def count_leaflets(
    head_z_by_type: Mapping[str, np.ndarray],
    center_z: float,
    box_z: float
) -> Dict[str, Dict[str, int]]:
    """
    Count lipids of each type in the upper and lower leaflet.

    Returns:
        {lipid_type: {'upper': n, 'lower': n, 'total': n}} in input order, plus an
        aggregate ALL_LIPIDS_LABEL entry when two or more types are present.
    """
    counts: Dict[str, Dict[str, int]] = {}
    total_upper, total_lower = 0, 0
    for name, head_z in head_z_by_type.items():
        upper_mask = assign_leaflets(head_z, center_z, box_z)
        upper = int(np.count_nonzero(upper_mask))
        lower = int(upper_mask.size - upper)
        counts[name] = {'upper': upper, 'lower': lower, 'total': upper + lower}
        total_upper += upper
        total_lower += lower

    if len(counts) > 1:
        counts[ALL_LIPIDS_LABEL] = {
            'upper': total_upper, 'lower': total_lower, 'total': total_upper + total_lower
        }
    return counts
