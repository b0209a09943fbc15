# filename: scramble_analysis/core/logging.py
"""
Functions for setting up logging for the scramble analysis.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional

# Define standard log format
LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s] - %(message)s'


def setup_analysis_logger(run_dir, run_name, log_level=logging.INFO):
    """
    Configures the root logger to write to the console and to a log file within
    the run directory.

    Removes any existing handlers from the root logger and sets up a new
    FileHandler pointing to '<run_dir>/<run_name>_analysis.log'.

    Args:
        run_dir (str): Path to the run directory where the log file will be saved.
        run_name (str): The name of the run (used for the log filename).
        log_level (int): The logging level (e.g., logging.INFO, logging.DEBUG).

    Returns:
        str | None: The path to the analysis log file created, or None on error.
    """
    if not run_dir or not os.path.isdir(run_dir):
        print(f"ERROR: Invalid run directory provided for logger setup: {run_dir}", file=sys.stderr)
        return None
    if not run_name:
        print("ERROR: Invalid run_name provided for logger setup.", file=sys.stderr)
        return None

    log_file_path = os.path.join(run_dir, f"{run_name}_analysis.log")

    root_logger = logging.getLogger()

    # Remove existing handlers so repeated setup does not duplicate messages
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    try:
        file_handler = logging.FileHandler(log_file_path, mode='w')
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(log_level)
    except OSError as e:
        print(f"ERROR: Failed to create log file handler at {log_file_path}: {e}", file=sys.stderr)
        return None

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler.setLevel(log_level)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.setLevel(log_level)

    root_logger.info(f"Logger configured. Level: {logging.getLevelName(log_level)}")
    root_logger.info(f"Logging to Console and File: {log_file_path}")
    root_logger.info(f"Python version: {sys.version}")
    root_logger.info(f"Script execution started at: {datetime.now().isoformat()}")

    return log_file_path


def setup_system_logger(run_dir: str, name: Optional[str] = None) -> logging.Logger:
    """
    Returns a logger for a single analysis module.

    If the root logger has no handlers yet (module called outside of main),
    a file handler writing '<run_dir>/<basename>_analysis.log' is attached so
    that standalone runs still leave a log behind.
    """
    module_logger = logging.getLogger(name or "scramble_analysis")
    root_logger = logging.getLogger()
    if root_logger.hasHandlers() or module_logger.handlers:
        return module_logger

    if run_dir and os.path.isdir(run_dir):
        run_name = os.path.basename(os.path.abspath(run_dir))
        log_file_path = os.path.join(run_dir, f"{run_name}_analysis.log")
        try:
            handler = logging.FileHandler(log_file_path, mode='a')
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            module_logger.addHandler(handler)
            module_logger.setLevel(logging.INFO)
        except OSError as e:
            print(f"Warning: could not attach log file {log_file_path}: {e}", file=sys.stderr)
    return module_logger
