# filename: scramble_analysis/modules/rate/computation.py
"""
Computation functions for the scrambling rate analysis.

Records the leaflet of every lipid in the first analyzed frame and reports,
for each later analyzed frame, the percentage of lipids found in the other
leaflet.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, List, Optional

import pandas as pd

from scramble_analysis.core.config import (
    DEFAULT_HEAD_SELECTION, RATE_DT_NS, USER_LIPIDS_FILE, MEMBRANE_NORMAL_AXIS
)
from scramble_analysis.core.database import (
    register_module, update_module_status, register_product, store_metric
)
from scramble_analysis.core.geometry import membrane_center
from scramble_analysis.core.lipids import LipidComposition, load_lipid_composition
from scramble_analysis.core.logging import setup_system_logger
from scramble_analysis.core.trajectory import load_universe, iter_analysis_frames
from scramble_analysis.core.utils import box_length, interval_to_ps, ps_to_ns
from .tracker import ScramblingRateTracker

logger = logging.getLogger(__name__)


def collect_scrambling_rates(universe, composition: LipidComposition, dt_ps: int) -> pd.DataFrame:
    """
    Percentage of scrambled lipids per analyzed frame.

    Returns:
        DataFrame with a 'Time (ns)' column and one percentage column per lipid
        label. The first row is the reference frame.
    """
    tracker = ScramblingRateTracker(composition.lipid_types)
    rows: List[Dict[str, Any]] = []
    for ts in iter_analysis_frames(universe, dt_ps, desc="Scrambling rate"):
        center_z = membrane_center(composition.all_lipid_atoms.positions, axis=MEMBRANE_NORMAL_AXIS)
        rates = tracker.update(
            composition.head_coordinates(MEMBRANE_NORMAL_AXIS), center_z,
            box_length(ts.dimensions, axis=MEMBRANE_NORMAL_AXIS)
        )
        row: Dict[str, Any] = {'Time (ns)': float(ps_to_ns(ts.time))}
        row.update(rates)
        rows.append(row)
    return pd.DataFrame(rows)


def run_rate_analysis(
    run_dir: str,
    gro_file: str,
    xtc_file: Optional[str],
    db_conn: sqlite3.Connection,
    head_selection: str = DEFAULT_HEAD_SELECTION,
    dt_ns: float = RATE_DT_NS,
    ndx_file: Optional[str] = None,
    lipids_file: Optional[str] = USER_LIPIDS_FILE
) -> Dict[str, Any]:
    """
    Track the scrambling rate along a trajectory.

    Args:
        run_dir: Path to the run directory.
        gro_file: Structure file.
        xtc_file: Trajectory file (required).
        db_conn: Active database connection.
        head_selection: Index group name or MDAnalysis selection for lipid heads.
        dt_ns: Interval between analyzed frames.
        ndx_file: Optional GROMACS index file.
        lipids_file: Optional file with additional lipid residue names.

    Returns:
        Dictionary containing status, error message if applicable and the
        final percentage per lipid label.
    """
    module_name = "rate_analysis"
    start_time = time.time()
    register_module(db_conn, module_name, status='running',
                    parameters={'head_selection': head_selection, 'dt_ns': dt_ns})
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'error': None, 'final_rates': {}}
    output_dir = os.path.join(run_dir, module_name)
    os.makedirs(output_dir, exist_ok=True)

    if not xtc_file:
        results['error'] = "Scrambling rate analysis requires a trajectory file."
        logger_local.error(results['error'])
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    try:
        dt_ps = interval_to_ps(dt_ns)
        universe = load_universe(gro_file, xtc_file)
        composition = load_lipid_composition(universe, head_selection, ndx_file, lipids_file)
    except (OSError, ValueError) as e:
        results['error'] = f"Error preparing scrambling rate analysis: {e}"
        logger_local.error(results['error'])
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    try:
        logger_local.info(f"Calculating scrambling rate every {dt_ns:g} ns...")
        df = collect_scrambling_rates(universe, composition, dt_ps)
        if df.empty:
            raise ValueError(f"No trajectory frame falls on the {dt_ns:g} ns analysis interval.")

        csv_path = os.path.join(output_dir, "scrambling_rate.csv")
        df.to_csv(csv_path, index=False, float_format='%.4f')
        logger_local.info(f"Saved scrambling rate data ({len(df)} frames) to {csv_path}")
        register_product(db_conn, module_name, "csv", "data",
                         os.path.relpath(csv_path, run_dir),
                         subcategory="scrambling_rate",
                         description="Percentage of lipids in the opposite leaflet from the first analyzed frame.")

        final = df.iloc[-1]
        for label in df.columns:
            if label == 'Time (ns)':
                continue
            value = float(final[label])
            results['final_rates'][label] = value
            store_metric(db_conn, module_name, f"Scrambling_{label}_Final", value, '%',
                         f"Scrambled {label} lipids at {final['Time (ns)']:g} ns")
        store_metric(db_conn, module_name, "Scrambling_Frames_Analyzed", len(df), 'frames',
                     "Number of analyzed frames")
        logger_local.info("Final scrambling rates: " + ", ".join(
            f"{label} {value:.2f}%" for label, value in results['final_rates'].items()))
        results['status'] = 'success'

    except Exception as e_main:
        results['error'] = f"Error during scrambling rate analysis: {e_main}"
        logger_local.error(results['error'], exc_info=True)
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    exec_time = time.time() - start_time
    update_module_status(db_conn, module_name, results['status'], execution_time=exec_time)
    logger_local.info(f"--- Scrambling rate analysis finished in {exec_time:.2f} seconds (Status: {results['status']}) ---")
    return results
