import os

import pandas as pd
import pytest

from scramble_analysis.core.database import (
    get_module_status, get_product_path, get_metric_value
)
from scramble_analysis.core.lipids import resolve_lipid_composition
from scramble_analysis.modules.composition import (
    run_composition_analysis, generate_composition_plots
)
from scramble_analysis.modules.composition.computation import (
    collect_composition, format_composition_table
)


def test_collect_composition_in_memory(scenario_universe):
    composition = resolve_lipid_composition(scenario_universe, "name PO4")
    df = collect_composition(scenario_universe, composition, dt_ps=1000)
    assert list(df.columns) == [
        'Time (ns)',
        'POPC_upper', 'POPC_lower', 'POPC_full',
        'POPE_upper', 'POPE_lower', 'POPE_full',
        'TOTAL_upper', 'TOTAL_lower', 'TOTAL_full',
    ]
    assert df['Time (ns)'].tolist() == pytest.approx([0, 1, 2, 3, 4, 5, 6, 7])
    assert df['POPC_upper'].tolist() == [2, 2, 2, 1, 1, 1, 1, 1]
    assert df['POPE_upper'].tolist() == [1, 1, 1, 0, 1, 1, 1, 1]
    assert (df['TOTAL_full'] == 6).all()


def test_collect_composition_interval(scenario_universe):
    composition = resolve_lipid_composition(scenario_universe, "name PO4")
    df = collect_composition(scenario_universe, composition, dt_ps=3000)
    assert df['Time (ns)'].tolist() == pytest.approx([0, 3, 6])


def test_format_composition_table():
    table = format_composition_table({'POPC': {'upper': 2, 'lower': 3, 'total': 5}})
    lines = table.splitlines()
    assert lines[0].split() == ['Upper', 'Lower', 'Full']
    assert lines[1].split() == ['POPC', '2', '3', '5']


def test_run_composition_trajectory(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    results = run_composition_analysis(str(run_dir), gro, xtc, db_conn, lipids_file=None)
    assert results['status'] == 'success', results['error']
    assert get_module_status(db_conn, "composition_analysis") == 'success'

    rel = get_product_path(db_conn, 'csv', 'data', 'composition_timeseries', 'composition_analysis')
    assert rel == os.path.join("composition_analysis", "composition_timeseries.csv")
    df = pd.read_csv(run_dir / rel)
    assert len(df) == 8
    last = df.iloc[-1]
    assert (last['POPC_upper'], last['POPC_lower'], last['POPC_full']) == (1, 3, 4)
    assert (last['TOTAL_upper'], last['TOTAL_lower']) == (2, 4)

    assert get_metric_value(db_conn, "Composition_POPC_Upper_Mean") == pytest.approx(1.375)
    assert get_metric_value(db_conn, "Composition_TOTAL_Total") == 6


def test_run_composition_structure_only(run_dir, db_conn, scenario_files):
    gro, _ = scenario_files
    results = run_composition_analysis(str(run_dir), gro, None, db_conn, lipids_file=None)
    assert results['status'] == 'success', results['error']
    df = pd.read_csv(run_dir / "composition_analysis" / "composition_structure.csv")
    assert len(df) == 1
    assert df.loc[0, 'POPC_upper'] == 2
    assert df.loc[0, 'POPE_lower'] == 1


def test_run_composition_custom_interval(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    results = run_composition_analysis(str(run_dir), gro, xtc, db_conn, dt_ns=0.3,
                                       lipids_file=None)
    assert results['status'] == 'success'
    df = pd.read_csv(run_dir / "composition_analysis" / "composition_timeseries.csv")
    assert df['Time (ns)'].tolist() == pytest.approx([0, 3, 6])


def test_run_composition_missing_structure(run_dir, db_conn):
    results = run_composition_analysis(str(run_dir), str(run_dir / "missing.gro"), None, db_conn)
    assert results['status'] == 'failed'
    assert "not found" in results['error']
    assert get_module_status(db_conn, "composition_analysis") == 'failed'


def test_run_composition_no_lipids(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    results = run_composition_analysis(str(run_dir), gro, xtc, db_conn,
                                       head_selection="name NOPE", lipids_file=None)
    assert results['status'] == 'failed'
    assert "No usable lipids detected" in results['error']


def test_composition_plots(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    run_composition_analysis(str(run_dir), gro, xtc, db_conn, lipids_file=None)
    plots = generate_composition_plots(str(run_dir), db_conn)
    assert plots['status'] == 'success'
    assert os.path.exists(run_dir / plots['plots']['composition_timeseries'])


def test_composition_plots_skipped_without_computation(run_dir, db_conn):
    plots = generate_composition_plots(str(run_dir), db_conn)
    assert plots['status'] == 'skipped'
