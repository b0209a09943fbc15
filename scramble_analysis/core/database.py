# scramble_analysis/core/database.py
"""
SQLite registry for a single analysis run.

Tracks which analysis modules ran (and how they ended), the files they produced,
the scalar metrics they computed and the configuration they used. The database
lives next to the trajectory in '<run_dir>/analysis_registry.db'.
"""

import os
import re
import json
import sqlite3
import logging
import numpy as np
from datetime import datetime
from typing import Dict, List, Any, Optional, Union

logger = logging.getLogger(__name__)

# Database schema version
DB_SCHEMA_VERSION = "1.0.0"

_SCHEMA = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS simulation_metadata (
    metadata_id INTEGER PRIMARY KEY,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);

CREATE TABLE IF NOT EXISTS analysis_modules (
    module_id INTEGER PRIMARY KEY,
    module_name TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL,
    execution_time REAL,
    start_timestamp TEXT,
    end_timestamp TEXT,
    parameters TEXT, -- JSON
    error_message TEXT
);

CREATE TABLE IF NOT EXISTS analysis_products (
    product_id INTEGER PRIMARY KEY,
    module_id INTEGER NOT NULL,
    product_type TEXT NOT NULL,
    category TEXT NOT NULL,
    subcategory TEXT,
    relative_path TEXT NOT NULL UNIQUE,
    description TEXT,
    generation_timestamp TEXT,
    FOREIGN KEY(module_id) REFERENCES analysis_modules(module_id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS metrics (
    metric_id INTEGER PRIMARY KEY,
    module_id INTEGER NOT NULL,
    metric_name TEXT NOT NULL,
    value REAL,
    units TEXT,
    description TEXT,
    FOREIGN KEY(module_id) REFERENCES analysis_modules(module_id) ON DELETE CASCADE,
    UNIQUE(module_id, metric_name)
);

CREATE TABLE IF NOT EXISTS config_parameters (
    param_id INTEGER PRIMARY KEY,
    param_name TEXT NOT NULL UNIQUE,
    param_value TEXT,
    param_type TEXT,
    param_description TEXT
);

CREATE INDEX IF NOT EXISTS idx_products_by_module ON analysis_products(module_id);
CREATE INDEX IF NOT EXISTS idx_products_by_type ON analysis_products(product_type, category, subcategory);
CREATE INDEX IF NOT EXISTS idx_metrics_by_module ON metrics(module_id);
"""


def dict_factory(cursor, row):
    """Row factory returning each SQLite row as a column-name dictionary."""
    if cursor.description:
        return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}
    return {}


def get_db_path(run_dir: str) -> str:
    """Get the path to the SQLite database file for a run."""
    return os.path.join(run_dir, "analysis_registry.db")


def connect_db(run_dir: str) -> Optional[sqlite3.Connection]:
    """Connect to the SQLite database for a run."""
    db_path = get_db_path(run_dir)
    try:
        conn = sqlite3.connect(db_path, timeout=10)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn
    except sqlite3.Error as e:
        logger.error(f"Failed to connect to database at {db_path}: {e}")
        return None


def init_db(run_dir: str, force_recreate: bool = False) -> Optional[sqlite3.Connection]:
    """
    Initialize the database for a run. Creates tables if they don't exist.

    Args:
        run_dir: The run directory path
        force_recreate: If True, delete the existing database file first

    Returns:
        SQLite connection object or None on failure.
    """
    db_path = get_db_path(run_dir)

    if os.path.exists(db_path) and force_recreate:
        logger.warning(f"Recreating database at {db_path}")
        try:
            os.remove(db_path)
        except OSError as e:
            logger.error(f"Failed to remove existing database: {e}")

    existed = os.path.exists(db_path)
    conn = connect_db(run_dir)
    if conn is None:
        return None

    try:
        conn.executescript(_SCHEMA)
        if existed:
            stored = get_simulation_metadata(conn, "schema_version")
            if stored is None:
                logger.warning("Schema version not found in existing database.")
            elif stored != DB_SCHEMA_VERSION:
                logger.warning(f"Database schema version mismatch. Expected {DB_SCHEMA_VERSION}, found {stored}.")
            logger.info(f"Connected to existing database at {db_path}")
        else:
            conn.execute(
                "INSERT OR REPLACE INTO simulation_metadata (key, value) VALUES (?, ?)",
                ("schema_version", DB_SCHEMA_VERSION)
            )
            conn.execute(
                "INSERT OR REPLACE INTO simulation_metadata (key, value) VALUES (?, ?)",
                ("db_init_timestamp", datetime.now().isoformat())
            )
            logger.info(f"Initialized database at {db_path} with schema version {DB_SCHEMA_VERSION}")
        conn.commit()
        return conn
    except sqlite3.Error as e:
        logger.error(f"Failed to execute schema script: {e}")
        conn.rollback()
        conn.close()
        return None


# --- Config Parameter Handling ---

def store_config_parameters(conn: sqlite3.Connection, config_module: Any) -> int:
    """
    Parses the config module's source file and stores every UPPER_CASE
    parameter together with the comment line directly above it.

    Returns:
        Number of parameters stored.
    """
    config_filepath = getattr(config_module, '__file__', None)
    if not config_filepath or not os.path.exists(config_filepath):
        logger.error(f"Cannot parse config module: source file not found ({config_filepath}).")
        return 0

    assignment_re = re.compile(r"^([A-Z_][A-Z0-9_]*)\s*[:=]")
    comment_re = re.compile(r"^#\s*(.*)")
    params_to_store = []
    last_comment = None

    with open(config_filepath, 'r', encoding='utf-8') as f:
        for line in f:
            stripped_line = line.strip()
            if not stripped_line:
                continue
            comment_match = comment_re.match(stripped_line)
            assignment_match = assignment_re.match(stripped_line)
            if comment_match:
                last_comment = comment_match.group(1).strip()
            elif assignment_match and not line[0].isspace():
                param_name = assignment_match.group(1)
                if hasattr(config_module, param_name):
                    param_value = getattr(config_module, param_name)
                    if isinstance(param_value, (list, dict, tuple)):
                        param_value_str = json.dumps(param_value)
                    else:
                        param_value_str = str(param_value)
                    params_to_store.append({
                        'name': param_name,
                        'value': param_value_str,
                        'type': type(param_value).__name__,
                        'description': last_comment or 'No description found',
                    })
                last_comment = None
            elif not line[0].isspace():
                last_comment = None

    if not params_to_store:
        logger.warning("No parameters extracted from config file to store.")
        return 0

    try:
        conn.executemany(
            """
            INSERT OR REPLACE INTO config_parameters
            (param_name, param_value, param_type, param_description)
            VALUES (:name, :value, :type, :description)
            """,
            params_to_store
        )
        conn.commit()
        logger.info(f"Stored/Replaced {len(params_to_store)} parsed config parameters.")
        return len(params_to_store)
    except sqlite3.Error as e_db:
        logger.error(f"Database error storing config parameters: {e_db}")
        conn.rollback()
        return 0


def get_config_parameters(conn: sqlite3.Connection) -> Dict[str, Dict[str, str]]:
    """Retrieves stored configuration parameters as name -> {value, type, description}."""
    params: Dict[str, Dict[str, str]] = {}
    try:
        rows = conn.execute(
            "SELECT param_name, param_value, param_type, param_description FROM config_parameters"
        ).fetchall()
    except sqlite3.Error as e_db:
        logger.error(f"Database error retrieving config parameters: {e_db}")
        return params
    for row in rows:
        params[row['param_name']] = {
            'value': row['param_value'],
            'type': row['param_type'],
            'description': row['param_description'],
        }
    return params


# --- Metadata Handling ---

def set_simulation_metadata(conn: sqlite3.Connection, key: str, value: Any) -> bool:
    """Set a metadata value for the run."""
    try:
        conn.execute(
            "INSERT OR REPLACE INTO simulation_metadata (key, value) VALUES (?, ?)",
            (key, str(value))
        )
        conn.commit()
        return True
    except sqlite3.Error as e:
        logger.error(f"Failed to set simulation metadata '{key}': {e}")
        conn.rollback()
        return False


def get_simulation_metadata(conn: sqlite3.Connection, key: str) -> Optional[str]:
    """Get a metadata value for the run."""
    try:
        result = conn.execute("SELECT value FROM simulation_metadata WHERE key = ?", (key,)).fetchone()
        return result['value'] if result else None
    except sqlite3.Error as e:
        logger.error(f"Failed to get simulation metadata '{key}': {e}")
        return None


# --- Module Status Handling ---

def _get_module_id(conn: sqlite3.Connection, module_name: str) -> Optional[int]:
    result = conn.execute(
        "SELECT module_id FROM analysis_modules WHERE module_name = ?", (module_name,)
    ).fetchone()
    return result['module_id'] if result else None


def register_module(
    conn: sqlite3.Connection,
    module_name: str,
    status: str = "pending",
    parameters: Optional[Dict[str, Any]] = None
) -> Optional[int]:
    """Register or update an analysis module entry."""
    try:
        param_json = json.dumps(parameters) if parameters else None
        now = datetime.now().isoformat()
        module_id = _get_module_id(conn, module_name)

        if module_id is not None:
            if status in ('running', 'pending'):
                conn.execute(
                    """
                    UPDATE analysis_modules
                    SET status = ?, start_timestamp = ?, parameters = ?, end_timestamp = NULL,
                        error_message = NULL, execution_time = NULL
                    WHERE module_id = ?
                    """,
                    (status, now, param_json, module_id)
                )
            else:
                conn.execute("UPDATE analysis_modules SET status = ? WHERE module_id = ?", (status, module_id))
        else:
            cursor = conn.execute(
                """
                INSERT INTO analysis_modules (module_name, status, start_timestamp, parameters)
                VALUES (?, ?, ?, ?)
                """,
                (module_name, status, now, param_json)
            )
            module_id = cursor.lastrowid

        conn.commit()
        return module_id
    except sqlite3.Error as e:
        logger.error(f"Failed to register/update module '{module_name}': {e}")
        conn.rollback()
        return None


def update_module_status(
    conn: sqlite3.Connection,
    module_name: str,
    status: str,
    execution_time: Optional[float] = None,
    error_message: Optional[str] = None
) -> bool:
    """Update the status, end time, and execution time of an analysis module."""
    try:
        module_id = _get_module_id(conn, module_name)
        if module_id is None:
            logger.warning(f"Module '{module_name}' not found for status update. Registering first.")
            module_id = register_module(conn, module_name, status=status)
            if module_id is None:
                return False

        update_params: Dict[str, Any] = {'status': status}
        if status in ('success', 'failed', 'skipped'):
            update_params['end_timestamp'] = datetime.now().isoformat()
        if execution_time is not None:
            update_params['execution_time'] = execution_time
        if error_message is not None:
            update_params['error_message'] = error_message
        elif status in ('success', 'skipped'):
            update_params['error_message'] = None

        set_clauses = ", ".join(f"{key} = ?" for key in update_params)
        values = list(update_params.values()) + [module_id]
        conn.execute(f"UPDATE analysis_modules SET {set_clauses} WHERE module_id = ?", tuple(values))
        conn.commit()
        return True
    except sqlite3.Error as e:
        logger.error(f"Failed to update module status for '{module_name}': {e}")
        conn.rollback()
        return False


def get_module_status(conn: sqlite3.Connection, module_name: str) -> Optional[str]:
    """Get the status of an analysis module."""
    try:
        result = conn.execute(
            "SELECT status FROM analysis_modules WHERE module_name = ?", (module_name,)
        ).fetchone()
        return result['status'] if result else None
    except sqlite3.Error as e:
        logger.error(f"Failed to get status for module '{module_name}': {e}")
        return None


def list_modules(conn: sqlite3.Connection, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """List modules, optionally filtered by status."""
    try:
        if status:
            rows = conn.execute("SELECT * FROM analysis_modules WHERE status = ? ORDER BY module_id", (status,)).fetchall()
        else:
            rows = conn.execute("SELECT * FROM analysis_modules ORDER BY module_id").fetchall()
    except sqlite3.Error as e:
        logger.error(f"Failed to list modules: {e}")
        return []
    modules = []
    for row in rows:
        module_data = dict(row)
        if module_data.get('parameters'):
            try:
                module_data['parameters'] = json.loads(module_data['parameters'])
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Could not decode parameters JSON for module {module_data.get('module_name')}")
        modules.append(module_data)
    return modules


# --- Product Handling ---

def register_product(
    conn: sqlite3.Connection,
    module_name: str,
    product_type: str,
    category: str,
    relative_path: str,
    subcategory: Optional[str] = None,
    description: Optional[str] = None
) -> Optional[int]:
    """Register or update an analysis product (a file relative to the run directory)."""
    try:
        module_id = _get_module_id(conn, module_name)
        if module_id is None:
            logger.warning(f"Module '{module_name}' not found for product registration. Registering module.")
            module_id = register_module(conn, module_name, status="success")
            if module_id is None:
                return None

        cursor = conn.execute(
            """
            INSERT OR REPLACE INTO analysis_products
            (module_id, product_type, category, subcategory, relative_path, description, generation_timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (module_id, product_type, category, subcategory, relative_path,
             description, datetime.now().isoformat())
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.Error as e:
        logger.error(f"Failed to register product '{relative_path}': {e}")
        conn.rollback()
        return None


def get_product_path(
    conn: sqlite3.Connection,
    product_type: Optional[str] = None,
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    module_name: Optional[str] = None
) -> Optional[str]:
    """Get the relative path to the newest product matching the criteria."""
    query = "SELECT p.relative_path FROM analysis_products p"
    params: List[Any] = []
    conditions = []

    if module_name:
        query += " JOIN analysis_modules m ON p.module_id = m.module_id"
        conditions.append("m.module_name = ?")
        params.append(module_name)
    for column, value in (("p.product_type", product_type),
                          ("p.category", category),
                          ("p.subcategory", subcategory)):
        if value:
            conditions.append(f"{column} = ?")
            params.append(value)

    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY p.generation_timestamp DESC, p.product_id DESC LIMIT 1"

    try:
        result = conn.execute(query, tuple(params)).fetchone()
    except sqlite3.Error as e:
        logger.error(f"Failed to get product path: {e}")
        return None

    if result:
        return result['relative_path']
    logger.debug(f"No product found matching type={product_type}, cat={category}, subcat={subcategory}, mod={module_name}")
    return None


def get_all_products(conn: sqlite3.Connection, module_name: Optional[str] = None) -> List[Dict[str, Any]]:
    """Get all products, optionally restricted to one module."""
    query = ("SELECT p.*, m.module_name FROM analysis_products p "
             "JOIN analysis_modules m ON p.module_id = m.module_id")
    params: tuple = ()
    if module_name:
        query += " WHERE m.module_name = ?"
        params = (module_name,)
    query += " ORDER BY p.product_id"
    try:
        return [dict(row) for row in conn.execute(query, params).fetchall()]
    except sqlite3.Error as e:
        logger.error(f"Failed to get products: {e}")
        return []


# --- Metric Handling ---

def store_metric(
    conn: sqlite3.Connection,
    module_name: str,
    metric_name: str,
    value: Optional[Union[float, int]],
    units: Optional[str] = None,
    description: Optional[str] = None
) -> bool:
    """Store or update a numerical metric. NaN/Inf and non-numeric values are stored as NULL."""
    try:
        module_id = _get_module_id(conn, module_name)
        if module_id is None:
            logger.warning(f"Module '{module_name}' not found for metric storage. Registering module.")
            module_id = register_module(conn, module_name, status="success")
            if module_id is None:
                return False

        numeric_value = None
        if value is not None:
            try:
                numeric_value = float(value)
            except (ValueError, TypeError):
                logger.warning(f"Metric '{metric_name}' has non-numeric value: '{value}'. Storing as NULL.")
            else:
                if not np.isfinite(numeric_value):
                    numeric_value = None

        conn.execute(
            """
            INSERT OR REPLACE INTO metrics (module_id, metric_name, value, units, description)
            VALUES (?, ?, ?, ?, ?)
            """,
            (module_id, metric_name, numeric_value, units or '', description)
        )
        conn.commit()
        return True
    except sqlite3.Error as e:
        logger.error(f"Failed to store metric '{metric_name}': {e}")
        conn.rollback()
        return False


def get_metric_value(
    conn: sqlite3.Connection,
    metric_name: str,
    module_name: Optional[str] = None
) -> Optional[float]:
    """Get the value of a metric (the newest one if module_name is not given)."""
    try:
        if module_name:
            result = conn.execute(
                """
                SELECT m.value FROM metrics m
                JOIN analysis_modules mod ON m.module_id = mod.module_id
                WHERE m.metric_name = ? AND mod.module_name = ?
                """,
                (metric_name, module_name)
            ).fetchone()
        else:
            result = conn.execute(
                "SELECT value FROM metrics WHERE metric_name = ? ORDER BY metric_id DESC LIMIT 1",
                (metric_name,)
            ).fetchone()
        return result['value'] if result else None
    except sqlite3.Error as e:
        logger.error(f"Failed to get metric value for '{metric_name}': {e}")
        return None


def get_all_metrics(conn: sqlite3.Connection, module_name: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """Get all metrics for a module, or all metrics if module_name is None."""
    query = """
        SELECT m.metric_name, m.value, m.units, m.description, mod.module_name
        FROM metrics m
        JOIN analysis_modules mod ON m.module_id = mod.module_id
    """
    params: tuple = ()
    if module_name:
        query += " WHERE mod.module_name = ?"
        params = (module_name,)
    query += " ORDER BY mod.module_name, m.metric_name"

    metrics_dict: Dict[str, Dict[str, Any]] = {}
    try:
        rows = conn.execute(query, params).fetchall()
    except sqlite3.Error as e:
        logger.error(f"Failed to get metrics: {e}")
        return metrics_dict
    for row in rows:
        metrics_dict[row['metric_name']] = {
            'value': row['value'],
            'units': row['units'] or '',
            'description': row['description'],
            'module_name': row['module_name'],
        }
    return metrics_dict
