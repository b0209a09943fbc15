# filename: scramble_analysis/modules/rate/visualization.py
"""
Visualization functions for the scrambling rate analysis.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, Optional

import pandas as pd
import matplotlib.pyplot as plt

from scramble_analysis.core.config import ALL_LIPIDS_LABEL
from scramble_analysis.core.plotting_style import STYLE, setup_style, save_plot, lipid_colors
from scramble_analysis.core.database import (
    register_module, update_module_status, get_product_path, register_product,
    get_module_status
)
from scramble_analysis.core.logging import setup_system_logger

logger = logging.getLogger(__name__)

setup_style()


def _plot_scrambling_rate(
    csv_path: str,
    output_dir: str,
    run_dir: str,
    db_conn: sqlite3.Connection,
    module_name: str
) -> Optional[str]:
    """Scrambled percentage over time, one line per lipid type (aggregate in black)."""
    try:
        df = pd.read_csv(csv_path)
        if 'Time (ns)' not in df.columns:
            raise ValueError("Missing 'Time (ns)' column in scrambling rate CSV.")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load scrambling rate data from {csv_path}: {e}")
        return None

    labels = [col for col in df.columns if col != 'Time (ns)']
    types = [label for label in labels if label != ALL_LIPIDS_LABEL]
    colors = lipid_colors(types)

    fig, ax = plt.subplots(figsize=(10, 5))
    for label in labels:
        if label == ALL_LIPIDS_LABEL:
            ax.plot(df['Time (ns)'], df[label], color='black', linestyle='--', label='All lipids')
        else:
            ax.plot(df['Time (ns)'], df[label], color=colors[label], label=label)
    ax.set_xlabel('Time (ns)')
    ax.set_ylabel('Scrambled lipids (%)')
    ax.set_ylim(bottom=0)
    ax.grid(True, linestyle=STYLE['grid']['linestyle'], alpha=STYLE['grid']['alpha'],
            color=STYLE['grid']['color'])
    ax.legend(loc='best')
    fig.tight_layout()

    plot_path = os.path.join(output_dir, "scrambling_rate.png")
    if not save_plot(fig, plot_path, logger):
        return None
    rel_path = os.path.relpath(plot_path, run_dir)
    register_product(db_conn, module_name, "png", "plot", rel_path,
                     subcategory="scrambling_rate",
                     description="Percentage of scrambled lipids over time.")
    return rel_path


def generate_rate_plots(run_dir: str, db_conn: sqlite3.Connection) -> Dict[str, Any]:
    """Generates the scrambling rate plot from the registered CSV."""
    module_name = "rate_analysis_visualization"
    start_time = time.time()
    register_module(db_conn, module_name, status='running')
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'plots': {}}
    output_dir = os.path.join(run_dir, "rate_analysis")
    os.makedirs(output_dir, exist_ok=True)

    comp_status = get_module_status(db_conn, "rate_analysis")
    if comp_status != 'success':
        results['status'] = 'skipped'
        results['error'] = f"Skipping visualization: Computation status was '{comp_status}'."
        logger_local.warning(results['error'])
        update_module_status(db_conn, module_name, 'skipped', error_message=results['error'])
        return results

    rate_rel = get_product_path(db_conn, 'csv', 'data', 'scrambling_rate', 'rate_analysis')
    plot_path = None
    if rate_rel:
        plot_path = _plot_scrambling_rate(os.path.join(run_dir, rate_rel), output_dir,
                                          run_dir, db_conn, module_name)
    else:
        logger_local.warning("Skipping scrambling rate plot: data path not found.")

    exec_time = time.time() - start_time
    if plot_path:
        results['plots']['scrambling_rate'] = plot_path
        final_status = 'success'
    else:
        final_status = 'failed'
        results['error'] = "Scrambling rate plot failed to generate."
    update_module_status(db_conn, module_name, final_status, execution_time=exec_time,
                         error_message=results.get('error'))
    logger_local.info(f"--- Scrambling rate visualization finished in {exec_time:.2f} seconds (Status: {final_status}) ---")
    results['status'] = final_status
    return results
