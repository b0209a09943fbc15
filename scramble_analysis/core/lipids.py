# filename: scramble_analysis/core/lipids.py
"""
Resolution of the lipid composition of a membrane system.

Finds which known lipid residue types are present in an MDAnalysis Universe,
selects one head-group atom per lipid for each type, and collects all lipid
atoms (used for the membrane center). The result is built once per run.
"""

import os
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import MDAnalysis as mda

from scramble_analysis.core.config import (
    DEFAULT_LIPID_NAMES, USER_LIPIDS_FILE, MEMBRANE_NORMAL_AXIS
)

logger = logging.getLogger(__name__)

# (lipid type, head selection) pairs already reported as having no head atoms
_reported_headless = set()


@dataclass(frozen=True)
class LipidComposition:
    """Lipid types present in a system, with their head atoms and all lipid atoms."""
    lipid_types: Tuple[str, ...]
    heads: Dict[str, mda.AtomGroup]
    all_lipid_atoms: mda.AtomGroup

    @property
    def n_lipid_types(self) -> int:
        return len(self.lipid_types)

    def head_counts(self) -> Dict[str, int]:
        """Number of head atoms (= lipids) per type, in type order."""
        return {name: self.heads[name].n_atoms for name in self.lipid_types}

    def head_coordinates(self, axis: int = MEMBRANE_NORMAL_AXIS) -> Dict[str, np.ndarray]:
        """Head coordinates along one axis for the current frame, per type."""
        return {name: self.heads[name].positions[:, axis] for name in self.lipid_types}


def reset_headless_reports():
    """Forget which headless lipid types were reported, so the next workflow reports them again."""
    _reported_headless.clear()


def read_lipid_names(user_file: Optional[str] = USER_LIPIDS_FILE) -> List[str]:
    """
    Lipid residue names: the default Martini set extended with names from a user file.

    The user file holds one residue name per line; text after '#' is ignored.
    Names already in the default set are reported and skipped. A missing
    user file is not an error.
    """
    lipid_names = list(DEFAULT_LIPID_NAMES)
    if not user_file or not os.path.isfile(user_file):
        return lipid_names

    known = set(lipid_names)
    with open(user_file, 'r', encoding='utf-8') as f:
        for line in f:
            name = line.split('#', 1)[0].strip()
            if not name:
                continue
            if name in known:
                logger.warning(f"Lipid type {name} from {user_file} already exists in the lipid set.")
                continue
            lipid_names.append(name)
            known.add(name)
    logger.info(f"Loaded {len(lipid_names) - len(DEFAULT_LIPID_NAMES)} user-defined lipid names from {user_file}")
    return lipid_names


def read_ndx(ndx_file: str) -> Dict[str, np.ndarray]:
    """
    Parse a GROMACS index file into group name -> 0-based atom indices.

    Raises:
        ValueError: if atom numbers appear before any group header or are not integers.
    """
    groups: Dict[str, List[int]] = {}
    current = None
    with open(ndx_file, 'r', encoding='utf-8') as f:
        for line_number, line in enumerate(f, start=1):
            stripped = line.split(';', 1)[0].strip()
            if not stripped:
                continue
            if stripped.startswith('[') and stripped.endswith(']'):
                current = stripped[1:-1].strip()
                groups.setdefault(current, [])
                continue
            if current is None:
                raise ValueError(f"{ndx_file}:{line_number}: atom numbers found before any group header.")
            try:
                groups[current].extend(int(token) - 1 for token in stripped.split())
            except ValueError:
                raise ValueError(f"{ndx_file}:{line_number}: could not parse atom numbers '{stripped}'.")
    return {name: np.asarray(indices, dtype=int) for name, indices in groups.items()}


def select_heads(
    universe: mda.Universe,
    head_selection: str,
    ndx_groups: Optional[Dict[str, np.ndarray]] = None
) -> mda.AtomGroup:
    """
    Select lipid head identifiers either as a named index group or as an
    MDAnalysis selection string.
    """
    if ndx_groups and head_selection in ndx_groups:
        indices = ndx_groups[head_selection]
        if indices.size and (indices.min() < 0 or indices.max() >= universe.atoms.n_atoms):
            raise ValueError(f"Index group '{head_selection}' refers to atoms outside the system.")
        logger.debug(f"Head identifiers taken from index group '{head_selection}'")
        return universe.atoms[np.unique(indices)]
    return universe.select_atoms(head_selection)


def resolve_lipid_composition(
    universe: mda.Universe,
    head_selection: str,
    ndx_groups: Optional[Dict[str, np.ndarray]] = None,
    lipid_names: Optional[Sequence[str]] = None
) -> LipidComposition:
    """
    Identify lipid types present in the system and their head atoms.

    Lipid types whose residues contain no head identifier are excluded with a
    warning (their atoms still count toward the membrane center).

    Raises:
        ValueError: if no lipid type with head atoms is found.
    """
    if lipid_names is None:
        lipid_names = read_lipid_names()

    heads = select_heads(universe, head_selection, ndx_groups)
    resnames = universe.atoms.resnames
    head_resnames = heads.resnames

    lipid_types: List[str] = []
    type_heads: Dict[str, mda.AtomGroup] = {}
    present: List[str] = []

    for name in lipid_names:
        n_lipid_atoms = int(np.count_nonzero(resnames == name))
        if n_lipid_atoms == 0:
            continue
        present.append(name)

        selected = heads[head_resnames == name]
        if selected.n_atoms == 0:
            key = (name, head_selection)
            log = logger.debug if key in _reported_headless else logger.warning
            _reported_headless.add(key)
            log(
                f"{n_lipid_atoms} atoms were found for {name} lipids but none of these atoms "
                f"is a lipid head identifier ('{head_selection}'). "
                f"Lipids of type {name} will not be included in the analysis."
            )
            continue
        lipid_types.append(name)
        type_heads[name] = selected

    if not lipid_types:
        raise ValueError("No usable lipids detected.")

    all_lipid_atoms = universe.atoms[np.isin(resnames, present)]
    logger.info(
        "Lipid composition: " + ", ".join(f"{name}={type_heads[name].n_atoms}" for name in lipid_types)
        + f" ({all_lipid_atoms.n_atoms} lipid atoms in total)"
    )
    return LipidComposition(tuple(lipid_types), type_heads, all_lipid_atoms)


def load_lipid_composition(
    universe: mda.Universe,
    head_selection: str,
    ndx_file: Optional[str] = None,
    lipids_file: Optional[str] = USER_LIPIDS_FILE
) -> LipidComposition:
    """
    Read the optional index and user lipid files, then resolve the composition.
    A missing index file is logged and ignored.
    """
    ndx_groups = None
    if ndx_file:
        if os.path.isfile(ndx_file):
            ndx_groups = read_ndx(ndx_file)
            logger.info(f"Read {len(ndx_groups)} index groups from {ndx_file}")
        else:
            logger.info(f"Index file {ndx_file} not found; head selection is used as a selection string.")
    return resolve_lipid_composition(
        universe, head_selection, ndx_groups=ndx_groups,
        lipid_names=read_lipid_names(lipids_file)
    )
