# filename: scramble_analysis/summary.py
"""
Summary generation for scramble analysis results.

Consolidates simulation metadata, module statuses, metrics and the paths of
registered plots and tables from the run database into one JSON document.
"""

import os
import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, Optional

from scramble_analysis.core.database import (
    list_modules, get_all_metrics, get_all_products, register_product
)
from scramble_analysis.core.utils import clean_json_data

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "analysis_summary.json"


def generate_summary_from_database(run_dir: str, db_conn: sqlite3.Connection) -> Dict[str, Any]:
    """
    Generate a summary of analysis results directly from the database connection.
    Does not save the summary to a file.

    Args:
        run_dir (str): Path to the run directory.
        db_conn (sqlite3.Connection): Active database connection.

    Returns:
        dict: Summary dictionary, or empty dict on error.
    """
    logger.info(f"Generating summary from database for {run_dir}")
    if db_conn is None:
        logger.error(f"Invalid database connection provided for {run_dir}")
        return {}

    summary: Dict[str, Any] = {
        'run_dir': run_dir,
        'run_name': os.path.basename(os.path.abspath(run_dir)),
        'analysis_timestamp': datetime.now().isoformat(),
        'module_status': {},
        'metrics': {},
        'products': {},
        'metadata': {},
    }

    try:
        for row in db_conn.execute("SELECT key, value FROM simulation_metadata").fetchall():
            summary['metadata'][row['key']] = row['value']
        summary['run_name'] = summary['metadata'].get('run_name', summary['run_name'])

        for module in list_modules(db_conn):
            summary['module_status'][module['module_name']] = module['status']

        for metric_name, entry in get_all_metrics(db_conn).items():
            summary['metrics'][metric_name] = {'value': entry['value'], 'units': entry['units'] or ''}

        for product in get_all_products(db_conn):
            key = product['subcategory'] or os.path.basename(product['relative_path'])
            summary['products'].setdefault(product['module_name'], {})[
                f"{key}.{product['product_type']}"] = product['relative_path']
    except sqlite3.Error as e:
        logger.error(f"Error generating summary from database for {run_dir}: {e}", exc_info=True)
        return {}

    if not summary['module_status']:
        logger.warning("Summary generation found no registered analysis modules.")
    return summary


def save_summary(run_dir: str, summary: Dict[str, Any],
                 db_conn: Optional[sqlite3.Connection] = None) -> Optional[str]:
    """
    Write the summary to <run_dir>/analysis_summary.json and register it.

    Returns:
        Path of the written file, or None if it could not be written.
    """
    summary_file = os.path.join(run_dir, SUMMARY_FILENAME)
    try:
        with open(summary_file, 'w') as f:
            json.dump(clean_json_data(summary), f, indent=4, sort_keys=True)
    except (OSError, TypeError) as e:
        logger.error(f"Failed to save analysis summary to {summary_file}: {e}")
        return None
    logger.info(f"Saved analysis summary to {summary_file}")

    if db_conn is not None:
        register_product(db_conn, "summary_generation", "json", "summary",
                         SUMMARY_FILENAME, subcategory="analysis_summary",
                         description="Analysis summary JSON file")
    return summary_file


def get_summary(run_dir: str) -> Dict[str, Any]:
    """Load a previously saved summary; empty dict if missing or unreadable."""
    summary_file = os.path.join(run_dir, SUMMARY_FILENAME)
    if not os.path.exists(summary_file):
        logger.warning(f"Summary file not found: {summary_file}")
        return {}
    try:
        with open(summary_file, 'r') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load summary file {summary_file}: {e}")
        return {}
