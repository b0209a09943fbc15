import json
import os

import pytest

from scramble_analysis.core.database import (
    register_module, register_product, store_metric, set_simulation_metadata, get_product_path
)
from scramble_analysis.summary import generate_summary_from_database, save_summary, get_summary


@pytest.fixture
def populated_db(db_conn):
    set_simulation_metadata(db_conn, "run_name", "bilayer_run")
    register_module(db_conn, "composition_analysis", status='success')
    register_module(db_conn, "flipflop_analysis", status='failed')
    register_product(db_conn, "composition_analysis", "csv", "data",
                     "composition_analysis/composition_timeseries.csv",
                     subcategory="composition_timeseries")
    store_metric(db_conn, "composition_analysis", "Composition_POPC_Total", 128, 'count')
    store_metric(db_conn, "composition_analysis", "Composition_Undefined", float('nan'), 'count')
    return db_conn


def test_generate_summary_from_database(run_dir, populated_db):
    summary = generate_summary_from_database(str(run_dir), populated_db)
    assert summary['run_name'] == "bilayer_run"
    assert summary['module_status'] == {
        'composition_analysis': 'success',
        'flipflop_analysis': 'failed',
    }
    assert summary['metrics']['Composition_POPC_Total'] == {'value': 128.0, 'units': 'count'}
    assert summary['metrics']['Composition_Undefined']['value'] is None
    assert summary['products']['composition_analysis'] == {
        'composition_timeseries.csv': 'composition_analysis/composition_timeseries.csv'
    }
    assert summary['metadata']['schema_version'] == "1.0.0"


def test_generate_summary_without_connection(run_dir):
    assert generate_summary_from_database(str(run_dir), None) == {}


def test_save_and_load_summary(run_dir, populated_db):
    summary = generate_summary_from_database(str(run_dir), populated_db)
    path = save_summary(str(run_dir), summary, populated_db)
    assert path == os.path.join(str(run_dir), "analysis_summary.json")
    with open(path) as f:
        assert json.load(f)['run_name'] == "bilayer_run"
    assert get_summary(str(run_dir))['module_status']['flipflop_analysis'] == 'failed'
    assert get_product_path(populated_db, 'json', 'summary', 'analysis_summary') == "analysis_summary.json"


def test_get_summary_missing(run_dir):
    assert get_summary(str(run_dir)) == {}
