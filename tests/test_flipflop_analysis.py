import os

import pandas as pd
import pytest

from scramble_analysis.core.database import get_module_status, get_metric_value
from scramble_analysis.core.lipids import resolve_lipid_composition
from scramble_analysis.modules.flipflops import run_flipflop_analysis, generate_flipflop_plots
from scramble_analysis.modules.flipflops.computation import (
    track_flipflops, counts_table, events_table
)
from conftest import write_membrane_files, SCENARIO_RESNAMES, scenario_head_z


def test_track_flipflops_in_memory(scenario_universe):
    composition = resolve_lipid_composition(scenario_universe, "name PO4")
    tracker = track_flipflops(scenario_universe, composition, spatial_limit=15.0, temporal_limit=3)
    assert tracker.n_frames == 8
    counts = tracker.counts()
    assert counts['POPC'] == {'upper_lower': 1, 'lower_upper': 0, 'total': 1}
    assert counts['POPE']['total'] == 0
    assert counts['TOTAL']['total'] == 1

    table = counts_table(counts)
    assert list(table.columns) == ['Lipid', 'U->L', 'L->U', 'All']
    assert table['Lipid'].tolist() == ['POPC', 'POPE', 'TOTAL']

    events = events_table(tracker, composition)
    assert len(events) == 1
    event = events.iloc[0]
    assert event['time_ns'] == pytest.approx(5.0)
    assert event['lipid'] == 'POPC'
    assert event['resid'] == 1
    assert event['atom_index'] == 0
    assert event['direction'] == 'U->L'


def test_track_flipflops_short_trajectory_has_no_events(scenario_universe):
    composition = resolve_lipid_composition(scenario_universe, "name PO4")
    tracker = track_flipflops(scenario_universe, composition, spatial_limit=15.0, temporal_limit=10)
    assert tracker.counts()['TOTAL']['total'] == 0


def test_run_flipflop_analysis(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    results = run_flipflop_analysis(str(run_dir), gro, xtc, db_conn, spatial_limit=15.0,
                                    temporal_limit=3, lipids_file=None)
    assert results['status'] == 'success', results['error']
    assert get_module_status(db_conn, "flipflop_analysis") == 'success'

    counts = pd.read_csv(run_dir / "flipflop_analysis" / "flipflop_counts.csv")
    assert counts.set_index('Lipid').loc['POPC'].tolist() == [1, 0, 1]
    assert counts.set_index('Lipid').loc['TOTAL'].tolist() == [1, 0, 1]
    events = pd.read_csv(run_dir / "flipflop_analysis" / "flipflop_events.csv")
    assert events['time_ns'].tolist() == pytest.approx([5.0])

    assert get_metric_value(db_conn, "FlipFlop_POPC_UpperLower", "flipflop_analysis") == 1
    assert get_metric_value(db_conn, "FlipFlop_TOTAL_Total", "flipflop_analysis") == 1
    assert get_metric_value(db_conn, "FlipFlop_Frames_Analyzed", "flipflop_analysis") == 8


def test_run_flipflop_rejects_sparse_trajectory(run_dir, db_conn):
    gro, xtc = write_membrane_files(run_dir, SCENARIO_RESNAMES, scenario_head_z(), dt=2000.0)
    results = run_flipflop_analysis(str(run_dir), gro, xtc, db_conn, lipids_file=None)
    assert results['status'] == 'failed'
    assert "time step" in results['error']
    assert get_module_status(db_conn, "flipflop_analysis") == 'failed'
    assert not os.path.exists(run_dir / "flipflop_analysis" / "flipflop_counts.csv")


def test_run_flipflop_atom_count_mismatch(run_dir, db_conn, tmp_path, scenario_files):
    gro, _ = scenario_files
    other = tmp_path / "other"
    other.mkdir()
    _, other_xtc = write_membrane_files(other, ["POPC"], [[70.0], [70.0]])
    results = run_flipflop_analysis(str(run_dir), gro, other_xtc, db_conn, lipids_file=None)
    assert results['status'] == 'failed'
    assert get_module_status(db_conn, "flipflop_analysis") == 'failed'


def test_run_flipflop_requires_trajectory(run_dir, db_conn, scenario_files):
    gro, _ = scenario_files
    results = run_flipflop_analysis(str(run_dir), gro, None, db_conn)
    assert results['status'] == 'failed'
    assert "requires a trajectory" in results['error']


def test_flipflop_plots(run_dir, db_conn, scenario_files):
    gro, xtc = scenario_files
    run_flipflop_analysis(str(run_dir), gro, xtc, db_conn, spatial_limit=15.0, temporal_limit=3,
                          lipids_file=None)
    plots = generate_flipflop_plots(str(run_dir), db_conn)
    assert plots['status'] == 'success'
    assert os.path.exists(run_dir / plots['plots']['flipflop_counts'])
