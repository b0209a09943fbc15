# filename: scramble_analysis/main.py
"""
Main orchestration module for the scramble analysis.

Coordinates the composition, scrambling rate and flip-flop analyses of a single
run folder, tracking products, metrics and module status in the run database.
"""

import os
import sys
import logging
import argparse
import time
import json
import traceback
import sqlite3
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from scramble_analysis.core import config as core_config_module
from scramble_analysis.core.config import (
    Analysis_version, DEFAULT_HEAD_SELECTION, USER_LIPIDS_FILE,
    COMPOSITION_DT_NS, RATE_DT_NS, FLIPFLOP_SPATIAL_LIMIT, FLIPFLOP_TEMPORAL_LIMIT
)
from scramble_analysis.core.logging import setup_analysis_logger
from scramble_analysis.core.database import (
    init_db, set_simulation_metadata, store_config_parameters
)
from scramble_analysis.core.utils import clean_json_data, interval_to_ps
from scramble_analysis.core.lipids import reset_headless_reports
from scramble_analysis.modules.composition import (
    run_composition_analysis, generate_composition_plots
)
from scramble_analysis.modules.rate import run_rate_analysis, generate_rate_plots
from scramble_analysis.modules.flipflops import run_flipflop_analysis, generate_flipflop_plots
from scramble_analysis.summary import generate_summary_from_database, save_summary

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description=f"Lipid Scrambling Analysis v{Analysis_version}. Processes a SINGLE run folder.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    # --- Input/Output Flags ---
    parser.add_argument("--folder", required=True, help="Run folder for outputs, log and database (required).")
    parser.add_argument("--gro", required=True, help="Structure file (gro). Relative paths are also looked up in the run folder.")
    parser.add_argument("--xtc", default=None, help="Trajectory file (xtc). Without it only the structure is analyzed.")
    parser.add_argument("--ndx", default=None, help="GROMACS index file; --heads may then name one of its groups.")
    parser.add_argument("--lipids", default=USER_LIPIDS_FILE, help=f"File with additional lipid residue names (default: {USER_LIPIDS_FILE}).")
    parser.add_argument("--heads", default=DEFAULT_HEAD_SELECTION, help=f"Lipid head identifiers: index group name or MDAnalysis selection (default: '{DEFAULT_HEAD_SELECTION}').")
    parser.add_argument("--reinit-db", action="store_true", help="Reinitialize database (will lose previous analysis tracking)")

    # --- Analysis Selection Flags ---
    analysis_group = parser.add_argument_group('Selective Analysis Flags (run ONLY specified modules)')
    analysis_group.add_argument("--composition", action="store_true", help="Count lipids per leaflet.")
    analysis_group.add_argument("--rate", action="store_true", help="Track the scrambling rate (requires --xtc).")
    analysis_group.add_argument("--flipflops", action="store_true", help="Count lipid flip-flops (requires --xtc).")

    # --- Analysis Parameters ---
    param_group = parser.add_argument_group('Analysis Parameters')
    param_group.add_argument("--composition-dt", type=float, default=COMPOSITION_DT_NS, help=f"Interval (ns) between frames for the composition analysis (default: {COMPOSITION_DT_NS}).")
    param_group.add_argument("--rate-dt", type=float, default=RATE_DT_NS, help=f"Interval (ns) between frames for the scrambling rate (default: {RATE_DT_NS}).")
    param_group.add_argument("--spatial-limit", type=float, default=FLIPFLOP_SPATIAL_LIMIT, help=f"Flip-flop spatial limit in Angstrom (default: {FLIPFLOP_SPATIAL_LIMIT}).")
    param_group.add_argument("--temporal-limit", type=int, default=FLIPFLOP_TEMPORAL_LIMIT, help=f"Flip-flop temporal limit in 1 ns frames (default: {FLIPFLOP_TEMPORAL_LIMIT}).")

    # --- Other Options ---
    other_group = parser.add_argument_group('Other Options')
    other_group.add_argument("--log_level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Set the logging level.")
    other_group.add_argument("--no-plots", action="store_true", help="Skip generating plots for selected analyses.")

    return parser.parse_args(argv)


def validate_parameters(args: argparse.Namespace) -> List[str]:
    """
    Check analysis parameters before anything is processed.

    Returns:
        List of error messages; empty if all parameters are usable.
    """
    errors = []
    if args.spatial_limit <= 0:
        errors.append(f"Spatial limit must be positive, got {args.spatial_limit}.")
    if args.temporal_limit < 1:
        errors.append(f"Temporal limit must be at least 1, got {args.temporal_limit}.")
    for flag, value in (("--composition-dt", args.composition_dt), ("--rate-dt", args.rate_dt)):
        try:
            interval_to_ps(value)
        except ValueError as e:
            errors.append(f"{flag}: {e}")
    if not args.xtc:
        for flag, requested in (("--rate", args.rate), ("--flipflops", args.flipflops)):
            if requested:
                errors.append(f"{flag} requires a trajectory (--xtc).")
    return errors


def _resolve_input(run_dir: str, path: Optional[str]) -> Optional[str]:
    """Return ``path`` as given if it exists, else the same name inside the run folder if that exists."""
    if not path or os.path.exists(path) or os.path.isabs(path):
        return path
    candidate = os.path.join(run_dir, path)
    return candidate if os.path.exists(candidate) else path


def _save_error_summary(run_dir, run_name, error_message):
    """Helper to save a minimal summary JSON when a critical error occurs."""
    summary_file_path = os.path.join(run_dir, 'analysis_summary.json')
    error_summary = {
        'RunName': run_name,
        'RunPath': run_dir,
        'AnalysisStatus': f'FAILED: {str(error_message)[:150]}',
        'AnalysisScriptVersion': Analysis_version,
        'AnalysisTimestamp': datetime.now().isoformat()
    }
    try:
        with open(summary_file_path, 'w') as f_json:
            json.dump(clean_json_data(error_summary), f_json, indent=4)
        logger.info(f"Saved error status to {summary_file_path}")
    except OSError as e_save:
        logger.error(f"Failed to save error summary JSON to {summary_file_path}: {e_save}")


def _run_visualization_step(module_name: str, gen_plots_func: Callable, run_dir: str,
                            db_conn: sqlite3.Connection):
    """Plot failures are logged but never fail the workflow."""
    logger.info(f"Generating {module_name} plots...")
    start_viz = time.time()
    viz_results = gen_plots_func(run_dir, db_conn=db_conn)
    if viz_results.get('status') != 'success':
        logger.error(f"{module_name} visualization failed: {viz_results.get('error', 'Unknown')}")
    logger.info(f"{module_name} visualization finished in {time.time() - start_viz:.2f} sec.")


def _run_analysis_workflow(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """
    Run the selected analyses for one run folder.

    Returns:
        The summary dictionary on success, None if an analysis failed or a
        critical error occurred.
    """
    run_dir = os.path.abspath(args.folder)
    if not os.path.isdir(run_dir):
        logger.error(f"Run directory does not exist: {run_dir}")
        return None

    gro_file = _resolve_input(run_dir, args.gro)
    xtc_file = _resolve_input(run_dir, args.xtc)
    ndx_file = _resolve_input(run_dir, args.ndx)
    lipids_file = _resolve_input(run_dir, args.lipids)

    for label, path in (("Structure", gro_file), ("Trajectory", xtc_file), ("Index", ndx_file)):
        if path and not os.path.exists(path):
            logger.error(f"{label} file not found: {path}")
            return None

    db_conn: Optional[sqlite3.Connection] = None
    summary: Optional[Dict[str, Any]] = {}
    final_status_for_db = "failed"
    run_name = os.path.basename(run_dir)

    try:
        reset_headless_reports()
        db_conn = init_db(run_dir, force_recreate=args.reinit_db)
        if db_conn is None:
            return None

        set_simulation_metadata(db_conn, "run_name", run_name)
        set_simulation_metadata(db_conn, "analysis_start_time", datetime.now().isoformat())
        set_simulation_metadata(db_conn, "gro_file", os.path.basename(gro_file))
        set_simulation_metadata(db_conn, "xtc_file", os.path.basename(xtc_file) if xtc_file else "")
        set_simulation_metadata(db_conn, "head_selection", args.heads)
        set_simulation_metadata(db_conn, "analysis_version", Analysis_version)
        set_simulation_metadata(db_conn, "analysis_status", "running")
        db_conn.commit()

        n_params = store_config_parameters(db_conn, core_config_module)
        logger.info(f"Stored {n_params} configuration parameters in database.")

        # --- Determine which modules to run ---
        specific_flags_set = args.composition or args.rate or args.flipflops
        run_all_initially = not specific_flags_set
        run_composition = args.composition or run_all_initially
        run_rate = (args.rate or run_all_initially) and xtc_file is not None
        run_flipflops = (args.flipflops or run_all_initially) and xtc_file is not None
        if run_all_initially and xtc_file is None:
            logger.info("No trajectory given: only the structure composition is analyzed.")
        generate_plots = not args.no_plots

        logger.info(f"Analysis Plan: Composition={run_composition}, Rate={run_rate}, FlipFlops={run_flipflops}")
        logger.info(f"Generate Plots: {generate_plots}")

        common = dict(head_selection=args.heads, ndx_file=ndx_file, lipids_file=lipids_file)
        steps = []
        if run_composition:
            steps.append(("composition_analysis", run_composition_analysis,
                          dict(common, dt_ns=args.composition_dt), generate_composition_plots))
        if run_rate:
            steps.append(("rate_analysis", run_rate_analysis,
                          dict(common, dt_ns=args.rate_dt), generate_rate_plots))
        if run_flipflops:
            steps.append(("flipflop_analysis", run_flipflop_analysis,
                          dict(common, spatial_limit=args.spatial_limit,
                               temporal_limit=args.temporal_limit),
                          generate_flipflop_plots))

        for module_name, run_func, kwargs, gen_plots_func in steps:
            logger.info(f"Running {module_name} computation...")
            start_comp = time.time()
            comp_results = run_func(run_dir, gro_file, xtc_file, db_conn=db_conn, **kwargs)
            step_done = comp_results.get('status') == 'success'
            logger.info(f"{module_name} computation finished in {time.time() - start_comp:.2f} sec. Success: {step_done}")
            if not step_done:
                raise RuntimeError(f"{module_name} computation failed: {comp_results.get('error', 'Unknown')}")
            if generate_plots:
                _run_visualization_step(f"{module_name}_visualization", gen_plots_func, run_dir, db_conn)

        final_status_for_db = 'success'
        set_simulation_metadata(db_conn, "analysis_status", final_status_for_db)
        set_simulation_metadata(db_conn, "analysis_end_time", datetime.now().isoformat())
        db_conn.commit()
        logger.info(f"Overall analysis status for this run set to: {final_status_for_db}")

        logger.info("Generating final analysis summary...")
        summary = generate_summary_from_database(run_dir, db_conn)
        if summary:
            save_summary(run_dir, summary, db_conn)
        else:
            logger.warning("Analysis summary generation returned empty result")

    except Exception as e:
        error_message = f"Workflow Error: {e}"
        logger.critical(f"{error_message}\n{traceback.format_exc()}")
        final_status_for_db = "failed"
        if db_conn:
            try:
                set_simulation_metadata(db_conn, "analysis_status", "failed")
                set_simulation_metadata(db_conn, "analysis_error", error_message[:200])
                set_simulation_metadata(db_conn, "analysis_end_time", datetime.now().isoformat())
                db_conn.commit()
            except sqlite3.Error as db_e:
                logger.error(f"Failed to update DB status to failed during critical error handling: {db_e}")
        _save_error_summary(run_dir, run_name, error_message)
        summary = None

    finally:
        if db_conn:
            try:
                db_conn.commit()
                db_conn.close()
                logger.info("Database connection closed.")
            except sqlite3.Error as db_e:
                logger.error(f"Error closing database connection: {db_e}")

    if final_status_for_db != 'success':
        logger.error("Workflow failed during computation steps. Returning None.")
        return None
    return summary or {}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_arguments(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    abs_run_dir = os.path.abspath(args.folder)
    run_name = os.path.basename(abs_run_dir)
    log_file = setup_analysis_logger(abs_run_dir, run_name, log_level)
    if log_file:
        logger.info(f"Logging to: {log_file}")
    else:
        print(f"Warning: Failed to create log file in {abs_run_dir}", file=sys.stderr)

    errors = validate_parameters(args)
    if errors:
        for error in errors:
            logger.error(f"Invalid parameter: {error}")
            if not log_file:
                print(f"Error: {error}", file=sys.stderr)
        return 1

    logger.info(f"--- Analysis started for {abs_run_dir} at {datetime.now()} ---")
    logger.info(f"Command line arguments: {vars(args)}")
    start_run_time = time.time()

    results = _run_analysis_workflow(args)

    logger.info(f"--- Analysis finished for {abs_run_dir} at {datetime.now()} (Duration: {time.time() - start_run_time:.2f} sec) ---")
    if results is None:
        logger.error("Workflow failed.")
        return 1
    if not results:
        logger.error("Workflow computation finished, but summary generation failed or returned empty.")
        return 1
    logger.info("Workflow completed successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
