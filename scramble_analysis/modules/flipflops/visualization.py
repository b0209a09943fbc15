# filename: scramble_analysis/modules/flipflops/visualization.py
"""
Visualization functions for the flip-flop analysis.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from scramble_analysis.core.plotting_style import STYLE, setup_style, save_plot
from scramble_analysis.core.database import (
    register_module, update_module_status, get_product_path, register_product,
    get_module_status
)
from scramble_analysis.core.logging import setup_system_logger
from .tracker import UPPER_TO_LOWER, LOWER_TO_UPPER

logger = logging.getLogger(__name__)

setup_style()


def _plot_flipflop_counts(
    csv_path: str,
    output_dir: str,
    run_dir: str,
    db_conn: sqlite3.Connection,
    module_name: str
) -> Optional[str]:
    """Grouped bar chart of flip-flop counts per lipid and direction."""
    try:
        df = pd.read_csv(csv_path)
        missing = {'Lipid', UPPER_TO_LOWER, LOWER_TO_UPPER} - set(df.columns)
        if missing:
            raise ValueError(f"Missing columns in flip-flop counts CSV: {sorted(missing)}")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load flip-flop counts from {csv_path}: {e}")
        return None

    x = np.arange(len(df))
    width = 0.38
    fig, ax = plt.subplots(figsize=(max(5, 1.5 * len(df)), 4))
    for offset, direction in ((-width / 2, UPPER_TO_LOWER), (width / 2, LOWER_TO_UPPER)):
        bars = ax.bar(x + offset, df[direction], width,
                      color=STYLE['direction_colors'][direction], label=direction)
        ax.bar_label(bars, fontsize=STYLE['font_sizes']['annotation'])
    ax.set_xticks(x)
    ax.set_xticklabels(df['Lipid'].astype(str))
    ax.set_ylabel('Flip-flops')
    ax.set_ylim(bottom=0)
    ax.legend(loc='best')
    fig.tight_layout()

    plot_path = os.path.join(output_dir, "flipflop_counts.png")
    if not save_plot(fig, plot_path, logger):
        return None
    rel_path = os.path.relpath(plot_path, run_dir)
    register_product(db_conn, module_name, "png", "plot", rel_path,
                     subcategory="flipflop_counts",
                     description="Number of flip-flops per lipid type and direction.")
    return rel_path


def generate_flipflop_plots(run_dir: str, db_conn: sqlite3.Connection) -> Dict[str, Any]:
    """Generates the flip-flop count bar chart from the registered CSV."""
    module_name = "flipflop_analysis_visualization"
    start_time = time.time()
    register_module(db_conn, module_name, status='running')
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'plots': {}}
    output_dir = os.path.join(run_dir, "flipflop_analysis")
    os.makedirs(output_dir, exist_ok=True)

    comp_status = get_module_status(db_conn, "flipflop_analysis")
    if comp_status != 'success':
        results['status'] = 'skipped'
        results['error'] = f"Skipping visualization: Computation status was '{comp_status}'."
        logger_local.warning(results['error'])
        update_module_status(db_conn, module_name, 'skipped', error_message=results['error'])
        return results

    counts_rel = get_product_path(db_conn, 'csv', 'data', 'flipflop_counts', 'flipflop_analysis')
    plot_path = None
    if counts_rel:
        plot_path = _plot_flipflop_counts(os.path.join(run_dir, counts_rel), output_dir,
                                          run_dir, db_conn, module_name)
    else:
        logger_local.warning("Skipping flip-flop plot: counts data path not found.")

    exec_time = time.time() - start_time
    if plot_path:
        results['plots']['flipflop_counts'] = plot_path
        final_status = 'success'
    else:
        final_status = 'failed'
        results['error'] = "Flip-flop plot failed to generate."
    update_module_status(db_conn, module_name, final_status, execution_time=exec_time,
                         error_message=results.get('error'))
    logger_local.info(f"--- Flip-flop visualization finished in {exec_time:.2f} seconds (Status: {final_status}) ---")
    results['status'] = final_status
    return results
