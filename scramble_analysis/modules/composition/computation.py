# filename: scramble_analysis/modules/composition/computation.py
"""
Computation functions for the leaflet composition analysis.

Counts lipids of each type in the upper and lower leaflet, either for a single
structure or for every analyzed trajectory frame, saves the table to CSV and
stores summary metrics in the database.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from scramble_analysis.core.config import (
    ALL_LIPIDS_LABEL, DEFAULT_HEAD_SELECTION, COMPOSITION_DT_NS, USER_LIPIDS_FILE,
    MEMBRANE_NORMAL_AXIS
)
from scramble_analysis.core.database import (
    register_module, update_module_status, register_product, store_metric
)
from scramble_analysis.core.geometry import membrane_center
from scramble_analysis.core.lipids import LipidComposition, load_lipid_composition
from scramble_analysis.core.logging import setup_system_logger
from scramble_analysis.core.trajectory import load_universe, iter_analysis_frames
from scramble_analysis.core.utils import box_length, interval_to_ps, ps_to_ns
from scramble_analysis.modules.leaflets.classification import count_leaflets

logger = logging.getLogger(__name__)


def _frame_counts(composition: LipidComposition, dimensions) -> Dict[str, Dict[str, int]]:
    """Leaflet counts for the frame currently loaded in the universe."""
    center_z = membrane_center(composition.all_lipid_atoms.positions, axis=MEMBRANE_NORMAL_AXIS)
    box_z = box_length(dimensions, axis=MEMBRANE_NORMAL_AXIS)
    return count_leaflets(composition.head_coordinates(MEMBRANE_NORMAL_AXIS), center_z, box_z)


def _composition_row(time_ns: float, counts: Dict[str, Dict[str, int]]) -> Dict[str, Any]:
    row: Dict[str, Any] = {'Time (ns)': time_ns}
    for name, leaflet_counts in counts.items():
        row[f"{name}_upper"] = leaflet_counts['upper']
        row[f"{name}_lower"] = leaflet_counts['lower']
        row[f"{name}_full"] = leaflet_counts['total']
    return row


def format_composition_table(counts: Dict[str, Dict[str, int]]) -> str:
    """Plain text table of leaflet counts, one line per lipid type."""
    lines = [f"{'':<8}{'Upper':>10}{'Lower':>10}{'Full':>10}"]
    for name, leaflet_counts in counts.items():
        lines.append(
            f"{name:<8}{leaflet_counts['upper']:>10d}{leaflet_counts['lower']:>10d}"
            f"{leaflet_counts['total']:>10d}"
        )
    return "\n".join(lines)


def collect_composition(universe, composition: LipidComposition, dt_ps: int) -> pd.DataFrame:
    """
    Leaflet composition for every analyzed trajectory frame.

    Returns:
        DataFrame with a 'Time (ns)' column and <type>_upper/_lower/_full columns.
    """
    rows: List[Dict[str, Any]] = []
    for ts in iter_analysis_frames(universe, dt_ps, desc="Leaflet composition"):
        counts = _frame_counts(composition, ts.dimensions)
        rows.append(_composition_row(float(ps_to_ns(ts.time)), counts))
        logger.debug(f"Composition at {ts.time:.0f} ps: {counts}")
    return pd.DataFrame(rows)


def _store_composition_metrics(db_conn: sqlite3.Connection, module_name: str,
                               df: pd.DataFrame, labels) -> int:
    stored = 0
    for name in labels:
        for leaflet in ('upper', 'lower'):
            column = f"{name}_{leaflet}"
            if column not in df.columns or df.empty:
                continue
            values = df[column].to_numpy(dtype=float)
            if store_metric(db_conn, module_name, f"Composition_{name}_{leaflet.capitalize()}_Mean",
                            float(np.mean(values)), 'count',
                            f"Mean number of {name} lipids in the {leaflet} leaflet"):
                stored += 1
        full = f"{name}_full"
        if full in df.columns and not df.empty:
            if store_metric(db_conn, module_name, f"Composition_{name}_Total",
                            int(df[full].iloc[0]), 'count', f"Number of {name} lipids"):
                stored += 1
    return stored


def run_composition_analysis(
    run_dir: str,
    gro_file: str,
    xtc_file: Optional[str],
    db_conn: sqlite3.Connection,
    head_selection: str = DEFAULT_HEAD_SELECTION,
    dt_ns: float = COMPOSITION_DT_NS,
    ndx_file: Optional[str] = None,
    lipids_file: Optional[str] = USER_LIPIDS_FILE
) -> Dict[str, Any]:
    """
    Count lipids of each type in each leaflet.

    Without a trajectory only the structure is analyzed. Results are saved to
    ``<run_dir>/composition_analysis/`` and metrics stored in the database.

    Args:
        run_dir: Path to the run directory (output and database location).
        gro_file: Structure file.
        xtc_file: Trajectory file or None.
        db_conn: Active database connection.
        head_selection: Index group name or MDAnalysis selection for lipid heads.
        dt_ns: Interval between analyzed trajectory frames.
        ndx_file: Optional GROMACS index file.
        lipids_file: Optional file with additional lipid residue names.

    Returns:
        Dictionary containing status, error message if applicable and the
        path to the saved table.
    """
    module_name = "composition_analysis"
    start_time = time.time()
    register_module(db_conn, module_name, status='running',
                    parameters={'head_selection': head_selection, 'dt_ns': dt_ns})
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'error': None, 'table': None}
    output_dir = os.path.join(run_dir, module_name)
    os.makedirs(output_dir, exist_ok=True)

    try:
        dt_ps = interval_to_ps(dt_ns)
        universe = load_universe(gro_file, xtc_file)
        composition = load_lipid_composition(universe, head_selection, ndx_file, lipids_file)
    except (OSError, ValueError) as e:
        results['error'] = f"Error preparing composition analysis: {e}"
        logger_local.error(results['error'])
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    try:
        labels = list(composition.lipid_types)
        if composition.n_lipid_types > 1:
            labels.append(ALL_LIPIDS_LABEL)

        if xtc_file is None:
            counts = _frame_counts(composition, universe.dimensions)
            logger_local.info(f"Leaflet composition of {os.path.basename(gro_file)}:\n"
                              f"{format_composition_table(counts)}")
            df = pd.DataFrame([_composition_row(float(ps_to_ns(universe.trajectory.ts.time)), counts)])
            csv_path = os.path.join(output_dir, "composition_structure.csv")
            subcategory = "composition_structure"
            description = "Leaflet composition of the input structure."
        else:
            logger_local.info(f"Calculating leaflet composition every {dt_ns:g} ns...")
            df = collect_composition(universe, composition, dt_ps)
            if df.empty:
                raise ValueError(f"No trajectory frame falls on the {dt_ns:g} ns analysis interval.")
            csv_path = os.path.join(output_dir, "composition_timeseries.csv")
            subcategory = "composition_timeseries"
            description = "Time series of the number of lipids of each type per leaflet."

        df.to_csv(csv_path, index=False, float_format='%.4f')
        logger_local.info(f"Saved composition data ({len(df)} frames) to {csv_path}")
        rel_path = os.path.relpath(csv_path, run_dir)
        register_product(db_conn, module_name, "csv", "data", rel_path,
                         subcategory=subcategory, description=description)
        results['table'] = rel_path

        n_metrics = _store_composition_metrics(db_conn, module_name, df, labels)
        store_metric(db_conn, module_name, "Composition_Frames_Analyzed", len(df), 'frames',
                     "Number of analyzed frames")
        logger_local.info(f"Stored {n_metrics + 1} composition metrics in the database.")
        results['status'] = 'success'

    except Exception as e_main:
        results['error'] = f"Error during composition analysis: {e_main}"
        logger_local.error(results['error'], exc_info=True)
        update_module_status(db_conn, module_name, 'failed', error_message=results['error'])
        return results

    exec_time = time.time() - start_time
    update_module_status(db_conn, module_name, results['status'], execution_time=exec_time)
    logger_local.info(f"--- Composition analysis finished in {exec_time:.2f} seconds (Status: {results['status']}) ---")
    return results
