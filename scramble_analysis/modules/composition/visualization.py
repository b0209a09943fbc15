# filename: scramble_analysis/modules/composition/visualization.py
"""
Visualization functions for the leaflet composition analysis.
Generates plots based on data files registered in the database.
"""

import os
import logging
import time
import sqlite3
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from scramble_analysis.core.plotting_style import STYLE, setup_style, save_plot
from scramble_analysis.core.database import (
    register_module, update_module_status, get_product_path, register_product,
    get_module_status
)
from scramble_analysis.core.logging import setup_system_logger

logger = logging.getLogger(__name__)

setup_style()


def _lipid_labels(df: pd.DataFrame) -> List[str]:
    """Lipid labels in column order, taken from the '<type>_upper' columns."""
    return [col[:-len('_upper')] for col in df.columns if col.endswith('_upper')]


def _plot_composition_timeseries(
    csv_path: str,
    output_dir: str,
    run_dir: str,
    db_conn: sqlite3.Connection,
    module_name: str
) -> Optional[str]:
    """
    One stacked panel per lipid label with the number of lipids in the upper
    and lower leaflet over time.
    """
    try:
        df = pd.read_csv(csv_path)
        if 'Time (ns)' not in df.columns:
            raise ValueError("Missing 'Time (ns)' column in composition CSV.")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load composition data from {csv_path}: {e}")
        return None

    labels = _lipid_labels(df)
    if not labels:
        logger.warning(f"No leaflet columns found in {csv_path}. Skipping plot.")
        return None

    time_points = df['Time (ns)'].to_numpy()
    fig, axes = plt.subplots(len(labels), 1, figsize=(10, 2.5 * len(labels)), sharex=True)
    axes = np.atleast_1d(axes)

    for ax, name in zip(axes, labels):
        for leaflet in ('upper', 'lower'):
            ax.plot(time_points, df[f"{name}_{leaflet}"].to_numpy(),
                    color=STYLE['leaflet_colors'][leaflet],
                    label=leaflet.capitalize())
        ax.set_ylabel(f"{name}\nLipids", fontsize=STYLE['font_sizes']['axis_label'] * 0.9)
        ax.spines['right'].set_visible(False)
        ax.spines['top'].set_visible(False)

    axes[0].legend(loc='best')
    axes[-1].set_xlabel('Time (ns)')
    fig.tight_layout()

    plot_path = os.path.join(output_dir, "composition_timeseries.png")
    if not save_plot(fig, plot_path, logger):
        return None
    rel_path = os.path.relpath(plot_path, run_dir)
    register_product(db_conn, module_name, "png", "plot", rel_path,
                     subcategory="composition_timeseries",
                     description="Number of lipids of each type per leaflet over time.")
    return rel_path


def _plot_composition_structure(
    csv_path: str,
    output_dir: str,
    run_dir: str,
    db_conn: sqlite3.Connection,
    module_name: str
) -> Optional[str]:
    """Grouped bar chart of upper/lower counts for a single structure."""
    try:
        df = pd.read_csv(csv_path)
    except OSError as e:
        logger.error(f"Failed to load composition data from {csv_path}: {e}")
        return None

    labels = _lipid_labels(df)
    if df.empty or not labels:
        logger.warning(f"No leaflet data found in {csv_path}. Skipping plot.")
        return None

    row = df.iloc[0]
    x = np.arange(len(labels))
    width = 0.38
    fig, ax = plt.subplots(figsize=(max(5, 1.5 * len(labels)), 4))
    for offset, leaflet in ((-width / 2, 'upper'), (width / 2, 'lower')):
        ax.bar(x + offset, [row[f"{name}_{leaflet}"] for name in labels], width,
               color=STYLE['leaflet_colors'][leaflet], label=leaflet.capitalize())
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_ylabel('Number of lipids')
    ax.legend(loc='best')
    fig.tight_layout()

    plot_path = os.path.join(output_dir, "composition_structure.png")
    if not save_plot(fig, plot_path, logger):
        return None
    rel_path = os.path.relpath(plot_path, run_dir)
    register_product(db_conn, module_name, "png", "plot", rel_path,
                     subcategory="composition_structure",
                     description="Number of lipids of each type per leaflet in the structure.")
    return rel_path


def generate_composition_plots(run_dir: str, db_conn: sqlite3.Connection) -> Dict[str, Any]:
    """
    Generates the composition plot for whichever table the computation produced.

    Returns:
        Dictionary containing status and paths to generated plots.
    """
    module_name = "composition_analysis_visualization"
    start_time = time.time()
    register_module(db_conn, module_name, status='running')
    logger_local = setup_system_logger(run_dir)

    results: Dict[str, Any] = {'status': 'failed', 'plots': {}}
    output_dir = os.path.join(run_dir, "composition_analysis")
    os.makedirs(output_dir, exist_ok=True)

    comp_status = get_module_status(db_conn, "composition_analysis")
    if comp_status != 'success':
        results['status'] = 'skipped'
        results['error'] = f"Skipping visualization: Computation status was '{comp_status}'."
        logger_local.warning(results['error'])
        update_module_status(db_conn, module_name, 'skipped', error_message=results['error'])
        return results

    plotters = (
        ('composition_timeseries', _plot_composition_timeseries),
        ('composition_structure', _plot_composition_structure),
    )
    plots_failed = 0
    for subcategory, plotter in plotters:
        rel = get_product_path(db_conn, 'csv', 'data', subcategory, 'composition_analysis')
        if not rel:
            continue
        plot_path = plotter(os.path.join(run_dir, rel), output_dir, run_dir, db_conn, module_name)
        if plot_path:
            results['plots'][subcategory] = plot_path
        else:
            plots_failed += 1

    exec_time = time.time() - start_time
    if plots_failed:
        final_status = 'failed'
        results['error'] = f"{plots_failed} plot(s) failed to generate."
    else:
        final_status = 'success' if results['plots'] else 'skipped'
    update_module_status(db_conn, module_name, final_status, execution_time=exec_time,
                         error_message=results.get('error'))
    logger_local.info(f"--- Composition visualization finished in {exec_time:.2f} seconds (Status: {final_status}) ---")
    results['status'] = final_status
    return results
