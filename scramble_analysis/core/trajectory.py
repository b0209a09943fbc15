# filename: scramble_analysis/core/trajectory.py
"""
Loading of structure/trajectory files and selection of analyzed frames.
"""

import os
import logging
from typing import Iterator, Optional

import MDAnalysis as mda
from tqdm import tqdm

from scramble_analysis.core.utils import is_analysis_frame

logger = logging.getLogger(__name__)


def load_universe(structure_file: str, trajectory_file: Optional[str] = None) -> mda.Universe:
    """
    Load a Universe from a structure file and an optional trajectory.

    Raises:
        FileNotFoundError: if an input file does not exist.
        ValueError: if the structure and the trajectory do not describe the
            same number of atoms (raised by MDAnalysis).
    """
    if not structure_file or not os.path.exists(structure_file):
        raise FileNotFoundError(f"Structure file not found: {structure_file}")
    if trajectory_file is None:
        universe = mda.Universe(structure_file)
        logger.info(f"Loaded structure {structure_file}: {universe.atoms.n_atoms} atoms")
        return universe

    if not os.path.exists(trajectory_file):
        raise FileNotFoundError(f"Trajectory file not found: {trajectory_file}")
    universe = mda.Universe(structure_file, trajectory_file)
    logger.info(
        f"Loaded trajectory {trajectory_file}: {universe.atoms.n_atoms} atoms, "
        f"{len(universe.trajectory)} frames"
    )
    return universe


def iter_analysis_frames(universe: mda.Universe, dt_ps: int, desc: str = "Frames") -> Iterator:
    """
    Iterate over the trajectory, yielding only frames whose time is a multiple
    of ``dt_ps``. A tqdm progress bar is shown while INFO logging is enabled.
    """
    progress = tqdm(
        universe.trajectory, desc=desc, unit="frame",
        disable=not logger.isEnabledFor(logging.INFO)
    )
    for ts in progress:
        if not is_analysis_frame(ts.time, dt_ps):
            continue
        yield ts
