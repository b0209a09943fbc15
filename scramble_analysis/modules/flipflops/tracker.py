# filename: scramble_analysis/modules/flipflops/tracker.py
"""
Hysteresis tracker for lipid flip-flops.

Every head atom carries one signed integer counter ``c`` for the whole run:
the sign is the leaflet currently credited (positive = upper, negative = lower,
zero = not yet observed) and the magnitude is the number of consecutive frames
spent progressing toward that leaflet. With temporal limit T:

- ``|c| > T``: the atom is confirmed in that leaflet (counter frozen at T + 1).
- ``1 <= |c| <= T``: the atom is crossing toward that leaflet.

A flip-flop is counted on the frame the counter of a crossing atom reaches
exactly +T (lower -> upper) or -T (upper -> lower). Confirmations that do not
come from a crossing (first observation, return from an unconfirmed excursion)
jump straight to T + 1 and are never counted.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

import numpy as np

from scramble_analysis.core.config import (
    ALL_LIPIDS_LABEL, FLIPFLOP_MAX_FRAME_SPACING_PS
)
from scramble_analysis.modules.leaflets.classification import Zone, classify_zones, signed_distances

logger = logging.getLogger(__name__)

UPPER_TO_LOWER = "U->L"
LOWER_TO_UPPER = "L->U"


@dataclass
class FlipFlopEvent:
    """A single confirmed flip-flop."""
    time_ps: float
    lipid_type: str
    head_index: int
    direction: str


def update_counters(counters: np.ndarray, zones: np.ndarray, temporal_limit: int) -> np.ndarray:
    """
    Apply one frame of the hysteresis transition table.

    Parameters:
    -----------
    counters : numpy.ndarray of int
        Counters before this frame.
    zones : numpy.ndarray of int
        Zone of the same atoms in this frame, as returned by ``classify_zones``.
    temporal_limit : int
        T.

    Returns:
    --------
    numpy.ndarray
        New counters. Atoms exactly at the center (Zone.UNDEFINED) keep their counter.
    """
    c = counters
    T = temporal_limit
    new = c.copy()

    upper = zones > Zone.UNDEFINED
    lower = zones < Zone.UNDEFINED
    upper_core = zones == Zone.UPPER_CORE
    lower_core = zones == Zone.LOWER_CORE

    # upper side
    new[upper & (c > 0) & (c <= T)] += 1
    new[upper_core & (c <= -T)] = 1
    new[upper & (c > -T) & (c <= 0)] = T + 1

    # lower side
    new[lower & (c < 0) & (c >= -T)] -= 1
    new[lower_core & (c >= T)] = -1
    new[lower & (c < T) & (c >= 0)] = -(T + 1)

    return new


class FlipFlopTracker:
    """
    Counts flip-flops of lipid head groups over an ordered stream of frames.

    One counter array is kept per lipid type, sized to that type's number of
    head atoms. Frames must arrive in strictly increasing time with a spacing no
    larger than ``max_frame_spacing_ps``; consecutive-frame counting is
    meaningless otherwise and the run has to be aborted.
    """

    def __init__(self, head_counts: Mapping[str, int], spatial_limit: float,
                 temporal_limit: int,
                 max_frame_spacing_ps: float = FLIPFLOP_MAX_FRAME_SPACING_PS):
        if spatial_limit is None or spatial_limit <= 0:
            raise ValueError(f"Spatial limit must be positive, got {spatial_limit}.")
        if temporal_limit is None or int(temporal_limit) != temporal_limit or temporal_limit < 1:
            raise ValueError(f"Temporal limit must be an integer of at least 1, got {temporal_limit}.")
        if not head_counts:
            raise ValueError("At least one lipid type is required.")

        self.spatial_limit = float(spatial_limit)
        self.temporal_limit = int(temporal_limit)
        self.max_frame_spacing_ps = float(max_frame_spacing_ps)
        self.lipid_types = tuple(head_counts.keys())

        self._counters = {name: np.zeros(int(n), dtype=np.int64) for name, n in head_counts.items()}
        self._upper_lower = {name: 0 for name in self.lipid_types}
        self._lower_upper = {name: 0 for name in self.lipid_types}
        self.events: List[FlipFlopEvent] = []
        self.previous_time_ps: Optional[float] = None
        self.n_frames = 0

    def check_time(self, time_ps: float):
        """
        Raises:
            ValueError: if the frame is not later than the previous one or the
                gap exceeds the allowed spacing.
        """
        if self.previous_time_ps is None:
            return
        gap = time_ps - self.previous_time_ps
        if gap <= 0:
            raise ValueError(
                f"Frames must be strictly ordered in time. "
                f"Times of concern: {time_ps} ps (current), {self.previous_time_ps} ps (previous)."
            )
        if gap > self.max_frame_spacing_ps:
            raise ValueError(
                f"Flip-flop analysis expects a trajectory time step of at most "
                f"{self.max_frame_spacing_ps:g} ps between analyzed frames. "
                f"Times of concern: {time_ps} ps (current), {self.previous_time_ps} ps (previous)."
            )

    def update(self, time_ps: float, head_z: Mapping[str, np.ndarray],
               center_z: float, box_z: float) -> List[FlipFlopEvent]:
        """
        Process one analyzed frame.

        Args:
            time_ps: Frame time.
            head_z: Head coordinates along the membrane normal, per lipid type,
                in the same atom order for every frame.
            center_z: Membrane center along the normal.
            box_z: Box length along the normal.

        Returns:
            Flip-flop events detected in this frame.
        """
        self.check_time(time_ps)

        for name in self.lipid_types:
            n_expected = self._counters[name].size
            if np.shape(head_z[name]) != (n_expected,):
                raise ValueError(
                    f"Expected {n_expected} head positions for {name}, got {np.size(head_z[name])}."
                )

        T = self.temporal_limit
        frame_events: List[FlipFlopEvent] = []
        updated: Dict[str, np.ndarray] = {}
        for name in self.lipid_types:
            d = signed_distances(np.asarray(head_z[name]), center_z, box_z)
            zones = classify_zones(d, self.spatial_limit)
            new = update_counters(self._counters[name], zones, T)
            updated[name] = new

            for idx in np.flatnonzero((new == T) & (zones > Zone.UNDEFINED)):
                frame_events.append(FlipFlopEvent(float(time_ps), name, int(idx), LOWER_TO_UPPER))
            for idx in np.flatnonzero((new == -T) & (zones < Zone.UNDEFINED)):
                frame_events.append(FlipFlopEvent(float(time_ps), name, int(idx), UPPER_TO_LOWER))

        self._counters.update(updated)

        for event in frame_events:
            if event.direction == LOWER_TO_UPPER:
                self._lower_upper[event.lipid_type] += 1
            else:
                self._upper_lower[event.lipid_type] += 1
            logger.debug(f"Flip-flop {event.direction} of {event.lipid_type} head {event.head_index} at {time_ps} ps")

        self.events.extend(frame_events)
        self.previous_time_ps = float(time_ps)
        self.n_frames += 1
        return frame_events

    def counters(self, lipid_type: str) -> np.ndarray:
        """Copy of the current counters of one lipid type."""
        return self._counters[lipid_type].copy()

    def counts(self) -> Dict[str, Dict[str, int]]:
        """
        Flip-flop counts per lipid type: {'upper_lower', 'lower_upper', 'total'},
        plus an aggregate ALL_LIPIDS_LABEL entry when two or more types are tracked.
        """
        result: Dict[str, Dict[str, int]] = {}
        for name in self.lipid_types:
            ul, lu = self._upper_lower[name], self._lower_upper[name]
            result[name] = {'upper_lower': ul, 'lower_upper': lu, 'total': ul + lu}
        if len(self.lipid_types) > 1:
            ul = sum(self._upper_lower.values())
            lu = sum(self._lower_upper.values())
            result[ALL_LIPIDS_LABEL] = {'upper_lower': ul, 'lower_upper': lu, 'total': ul + lu}
        return result
