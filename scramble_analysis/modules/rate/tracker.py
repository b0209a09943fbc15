# filename: scramble_analysis/modules/rate/tracker.py
"""
Scrambling rate: the share of lipids currently sitting in the opposite leaflet
from the one they occupied in the first analyzed frame.
"""

import logging
from typing import Dict, Mapping, Optional

import numpy as np

from scramble_analysis.core.config import ALL_LIPIDS_LABEL
from scramble_analysis.modules.leaflets.classification import assign_leaflets

logger = logging.getLogger(__name__)


class ScramblingRateTracker:
    """
    Compares each frame's binary leaflet assignment with a reference assignment.

    The reference is taken from the first frame passed to ``update`` and is
    kept unchanged for the rest of the run. No hysteresis is applied.
    """

    def __init__(self, lipid_types):
        self.lipid_types = tuple(lipid_types)
        if not self.lipid_types:
            raise ValueError("At least one lipid type is required.")
        self.reference: Optional[Dict[str, np.ndarray]] = None

    @property
    def has_reference(self) -> bool:
        return self.reference is not None

    def _record_reference(self, head_z, center_z, box_z):
        self.reference = {}
        for name in self.lipid_types:
            side = assign_leaflets(head_z[name], center_z, box_z)
            side.setflags(write=False)
            self.reference[name] = side
        logger.info("Reference leaflet assignment recorded: " + ", ".join(
            f"{name} {int(side.sum())} upper / {int(side.size - side.sum())} lower"
            for name, side in self.reference.items()
        ))

    def update(self, head_z: Mapping[str, np.ndarray], center_z: float,
               box_z: float) -> Dict[str, float]:
        """
        Process one analyzed frame.

        Returns:
            Percentage of scrambled lipids per type, plus ALL_LIPIDS_LABEL when
            two or more types are present. The reference frame reports 0.0.
        """
        if self.reference is None:
            self._record_reference(head_z, center_z, box_z)

        rates: Dict[str, float] = {}
        total_scrambled, total_lipids = 0, 0
        for name in self.lipid_types:
            reference = self.reference[name]
            current = assign_leaflets(head_z[name], center_z, box_z)
            if current.shape != reference.shape:
                raise ValueError(
                    f"Expected {reference.size} head positions for {name}, got {current.size}."
                )
            scrambled = int(np.count_nonzero(current != reference))
            rates[name] = 100.0 * scrambled / reference.size if reference.size else 0.0
            total_scrambled += scrambled
            total_lipids += reference.size

        if len(self.lipid_types) > 1:
            rates[ALL_LIPIDS_LABEL] = 100.0 * total_scrambled / total_lipids if total_lipids else 0.0
        return rates
