# filename: scramble_analysis/modules/flipflops/computation.py
"""
Computation functions for the flip-flop analysis.

Runs the hysteresis tracker over every 1 ns frame of a trajectory, saves the
per-type counts and the individual events, and stores counts as metrics.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, List, Optional

import pandas as pd

from scramble_analysis.core.config import (
    DEFAULT_HEAD_SELECTION, FLIPFLOP_DT_NS, FLIPFLOP_SPATIAL_LIMIT, FLIPFLOP_TEMPORAL_LIMIT,
    FLIPFLOP_MAX_FRAME_SPACING_PS, USER_LIPIDS_FILE, MEMBRANE_NORMAL_AXIS
)
from scramble_analysis.core.database import (
    register_module, update_module_status, register_product, store_metric
)
from scramble_analysis.core.geometry import membrane_center
from scramble_analysis.core.lipids import LipidComposition, load_lipid_composition
from scramble_analysis.core.logging import setup_system_logger
from scramble_analysis.core.trajectory import load_universe, iter_analysis_frames
from scramble_analysis.core.utils import box_length, interval_to_ps, ps_to_ns
from .tracker import FlipFlopTracker, UPPER_TO_LOWER, LOWER_TO_UPPER

logger = logging.getLogger(__name__)

COUNT_COLUMNS = {'upper_lower': UPPER_TO_LOWER, 'lower_upper': LOWER_TO_UPPER, 'total': 'All'}


def track_flipflops(
    universe,
    composition: LipidComposition,
    spatial_limit: float = FLIPFLOP_SPATIAL_LIMIT,
    temporal_limit: int = FLIPFLOP_TEMPORAL_LIMIT,
    dt_ns: float = FLIPFLOP_DT_NS
) -> FlipFlopTracker:
    """
    Feed every analyzed frame of the trajectory to a new FlipFlopTracker.

    Raises:
        ValueError: if analyzed frames are more than 1 ns apart or out of order.
    """
    tracker = FlipFlopTracker(composition.head_counts(), spatial_limit, temporal_limit,
                              max_frame_spacing_ps=FLIPFLOP_MAX_FRAME_SPACING_PS)
    for ts in iter_analysis_frames(universe, interval_to_ps(dt_ns), desc="Flip-flops"):
        center_z = membrane_center(composition.all_lipid_atoms.positions, axis=MEMBRANE_NORMAL_AXIS)
        tracker.update(ts.time, composition.head_coordinates(MEMBRANE_NORMAL_AXIS), center_z,
                       box_length(ts.dimensions, axis=MEMBRANE_NORMAL_AXIS))
    return tracker


def counts_table(counts: Dict[str, Dict[str, int]]) -> pd.DataFrame:
    """Flip-flop counts as a table with columns Lipid, U->L, L->U, All."""
    rows = []
    for name, lipid_counts in counts.items():
        row: Dict[str, Any] = {'Lipid': name}
        for key, column in COUNT_COLUMNS.items():
            row[column] = lipid_counts[key]
        rows.append(row)
    return pd.DataFrame(rows, columns=['Lipid'] + list(COUNT_COLUMNS.values()))


def events_table(tracker: FlipFlopTracker, composition: LipidComposition) -> pd.DataFrame:
    """One row per flip-flop with the residue and atom it concerns."""
    rows: List[Dict[str, Any]] = []
    for event in tracker.events:
        atom = composition.heads[event.lipid_type][event.head_index]
        rows.append({
            'time_ns': float(ps_to_ns(event.time_ps)),
            'lipid': event.lipid_type,
            'resid': int(atom.resid),
            'atom_index': int(atom.index),
            'direction': event.direction,
        })
    return pd.DataFrame(rows, columns=['time_ns', 'lipid', 'resid', 'atom_index', 'direction'])


def run_flipflop_analysis(
    run_dir: str,
    gro_file: str,
    xtc_file: Optional[str],
    db_conn: sqlite3.Connection,
    head_selection: str = DEFAULT_HEAD_SELECTION,
    spatial_limit: float = FLIPFLOP_SPATIAL_LIMIT,
    temporal_limit: int = FLIPFLOP_TEMPORAL_LIMIT,
    ndx_file: Optional[str] = None,
    lipids_file: Optional[str] = USER_LIPIDS_FILE
) -> Dict[str, Any]:
    """
    Count lipid flip-flops along a trajectory.

    Frames are analyzed every 1 ns. A trajectory whose analyzed frames are more
    than 1 ns apart is rejected and the module is marked failed.

    Args:
        run_dir: Path to the run directory.
        gro_file: Structure file.
        xtc_file: Trajectory file (required).
        db_conn: Active database connection.
        head_selection: Index group name or MDAnalysis selection for lipid heads.
        spatial_limit: Distance from the membrane center (Å) beyond which a
            head group is in the leaflet core.
        temporal_limit: Number of consecutive frames needed to confirm a flip-flop.
        ndx_file: Optional GROMACS index file.
        lipids_file: Optional file with additional lipid residue names.

    Returns:
        Dictionary containing status, error message if applicable and the counts.
    """
    module_name = "flipflop_analysis"
    start_time = time.time()
    register_module(db_conn, module_name, status='running',
                    parameters={'head_selection': head_selection,
                                'spatial_limit': spatial_limit,
                                'temporal_limit': temporal_limit})
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'error': None, 'counts': {}}
    output_dir = os.path.join(run_dir, module_name)
    os.makedirs(output_dir, exist_ok=True)

    if not xtc_file:
        results['error'] = "Flip-flop analysis requires a trajectory file."
        logger_local.error(results['error'])
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    try:
        universe = load_universe(gro_file, xtc_file)
        composition = load_lipid_composition(universe, head_selection, ndx_file, lipids_file)
        logger_local.info(
            f"Tracking flip-flops (spatial limit {spatial_limit:g} Å, "
            f"temporal limit {temporal_limit} frames of {FLIPFLOP_DT_NS:g} ns)..."
        )
        tracker = track_flipflops(universe, composition, spatial_limit, temporal_limit)
    except (OSError, ValueError) as e:
        results['error'] = f"Flip-flop analysis aborted: {e}"
        logger_local.error(results['error'])
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    try:
        if tracker.n_frames == 0:
            raise ValueError(f"No trajectory frame falls on the {FLIPFLOP_DT_NS:g} ns analysis interval.")
        counts = tracker.counts()
        results['counts'] = counts

        counts_df = counts_table(counts)
        counts_path = os.path.join(output_dir, "flipflop_counts.csv")
        counts_df.to_csv(counts_path, index=False)
        logger_local.info(f"Flip-flops after {tracker.n_frames} frames:\n{counts_df.to_string(index=False)}")
        register_product(db_conn, module_name, "csv", "data",
                         os.path.relpath(counts_path, run_dir),
                         subcategory="flipflop_counts",
                         description="Number of flip-flops per lipid type and direction.")

        events_df = events_table(tracker, composition)
        events_path = os.path.join(output_dir, "flipflop_events.csv")
        events_df.to_csv(events_path, index=False, float_format='%.3f')
        logger_local.info(f"Saved {len(events_df)} flip-flop events to {events_path}")
        register_product(db_conn, module_name, "csv", "data",
                         os.path.relpath(events_path, run_dir),
                         subcategory="flipflop_events",
                         description="Time, lipid and direction of every flip-flop.")

        for name, lipid_counts in counts.items():
            store_metric(db_conn, module_name, f"FlipFlop_{name}_UpperLower",
                         lipid_counts['upper_lower'], 'count', f"{name} flip-flops from upper to lower leaflet")
            store_metric(db_conn, module_name, f"FlipFlop_{name}_LowerUpper",
                         lipid_counts['lower_upper'], 'count', f"{name} flip-flops from lower to upper leaflet")
            store_metric(db_conn, module_name, f"FlipFlop_{name}_Total",
                         lipid_counts['total'], 'count', f"{name} flip-flops in both directions")
        store_metric(db_conn, module_name, "FlipFlop_Frames_Analyzed", tracker.n_frames, 'frames',
                     "Number of analyzed frames")
        results['status'] = 'success'

    except Exception as e_main:
        results['error'] = f"Error during flip-flop analysis: {e_main}"
        logger_local.error(results['error'], exc_info=True)
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    exec_time = time.time() - start_time
    update_module_status(db_conn, module_name, results['status'], execution_time=exec_time)
    logger_local.info(f"--- Flip-flop analysis finished in {exec_time:.2f} seconds (Status: {results['status']}) ---")
    return results
