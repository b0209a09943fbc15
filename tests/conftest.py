import logging

import numpy as np
import pytest

import MDAnalysis as mda
from MDAnalysis.coordinates.memory import MemoryReader

from scramble_analysis.core.database import init_db
from scramble_analysis.core.lipids import reset_headless_reports

BOX = 100.0  # cubic box edge (Angstrom); the lipid center always sits at BOX / 2


def build_membrane(resnames, head_z, extra=None, dt=1000.0, box=BOX):
    """
    In-memory Universe of two-bead lipids plus optional extra residues.

    Each lipid has a PO4 head at ``head_z[frame, lipid]`` and a C1A tail at
    ``box - head_z`` so that the mean z of all lipid atoms is box / 2 in every
    frame. ``extra`` is a list of (resname, [(atom_name, z), ...]) residues
    with fixed positions.

    Returns:
        (universe, coordinates, dimensions)
    """
    head_z = np.atleast_2d(np.asarray(head_z, dtype=float))
    n_frames, n_lipids = head_z.shape
    extra = extra or []

    names, atom_resindex, res_names = [], [], []
    for i, resname in enumerate(resnames):
        names += ["PO4", "C1A"]
        atom_resindex += [i, i]
        res_names.append(resname)
    for j, (resname, atoms) in enumerate(extra):
        for atom_name, _ in atoms:
            names.append(atom_name)
            atom_resindex.append(n_lipids + j)
        res_names.append(resname)

    n_atoms = len(names)
    coordinates = np.zeros((n_frames, n_atoms, 3), dtype=np.float32)
    for frame in range(n_frames):
        for i in range(n_lipids):
            x, y = 5.0 + 10.0 * (i % 9), 5.0 + 10.0 * (i // 9)
            coordinates[frame, 2 * i] = (x, y, head_z[frame, i])
            coordinates[frame, 2 * i + 1] = (x, y, box - head_z[frame, i])
        k = 2 * n_lipids
        for j, (_, atoms) in enumerate(extra):
            for _, z in atoms:
                coordinates[frame, k] = (95.0, 95.0 - 5.0 * j, z)
                k += 1

    universe = mda.Universe.empty(n_atoms, n_residues=len(res_names),
                                  atom_resindex=atom_resindex, trajectory=True)
    universe.add_TopologyAttr('name', names)
    universe.add_TopologyAttr('resname', res_names)
    universe.add_TopologyAttr('resid', list(range(1, len(res_names) + 1)))

    dimensions = np.array([box, box, box, 90.0, 90.0, 90.0], dtype=np.float32)
    universe.load_new(coordinates, format=MemoryReader, dt=dt, dimensions=dimensions)
    return universe, coordinates, dimensions


def write_membrane_files(directory, resnames, head_z, extra=None, dt=1000.0, box=BOX):
    """Write the membrane built by ``build_membrane`` as a gro file and an xtc trajectory."""
    universe, _, _ = build_membrane(resnames, head_z, extra=extra, dt=dt, box=box)
    gro_path = directory / "system.gro"
    xtc_path = directory / "traj.xtc"

    universe.trajectory[0]
    universe.atoms.write(str(gro_path))
    with mda.Writer(str(xtc_path), universe.atoms.n_atoms) as W:
        for _ in universe.trajectory:
            W.write(universe.atoms)
    return str(gro_path), str(xtc_path)


# Six lipids over eight 1 ns frames: POPC head 0 crosses from the upper to
# the lower leaflet core at frame 3; POPE head 0 makes a short excursion to
# the lower intermediate zone at frame 3 and returns.
SCENARIO_RESNAMES = ["POPC", "POPC", "POPC", "POPC", "POPE", "POPE"]


def scenario_head_z(n_frames=8):
    head_z = np.tile([75.0, 72.0, 28.0, 25.0, 70.0, 30.0], (n_frames, 1))
    if n_frames > 3:
        head_z[3:, 0] = 25.0
        head_z[3, 4] = 45.0
    return head_z


# Cholesterol has no PO4 bead: it is excluded from the lipid types but its
# atoms still enter the membrane center (placed symmetrically around it).
SCENARIO_EXTRA = [
    ("CHOL", [("ROH", 60.0), ("C1", 40.0)]),
    ("W", [("W", 10.0)]),
]


@pytest.fixture
def run_dir(tmp_path):
    directory = tmp_path / "membrane_run"
    directory.mkdir()
    return directory


@pytest.fixture
def db_conn(run_dir):
    conn = init_db(str(run_dir))
    yield conn
    conn.close()


@pytest.fixture
def scenario_universe():
    universe, _, _ = build_membrane(SCENARIO_RESNAMES, scenario_head_z(), extra=SCENARIO_EXTRA)
    return universe


@pytest.fixture
def scenario_files(run_dir):
    return write_membrane_files(run_dir, SCENARIO_RESNAMES, scenario_head_z(), extra=SCENARIO_EXTRA)


@pytest.fixture(autouse=True)
def quiet_root_logger():
    """Keep analysis log files out of the test run directories."""
    root = logging.getLogger()
    handler = logging.NullHandler()
    root.addHandler(handler)
    yield
    root.removeHandler(handler)


@pytest.fixture(autouse=True)
def fresh_headless_reports():
    reset_headless_reports()
