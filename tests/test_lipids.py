import logging

import numpy as np
import pytest

from scramble_analysis.core.config import DEFAULT_LIPID_NAMES
from scramble_analysis.core.lipids import (
    read_lipid_names, read_ndx, select_heads, resolve_lipid_composition, load_lipid_composition,
    reset_headless_reports
)
from conftest import build_membrane, SCENARIO_EXTRA, SCENARIO_RESNAMES, scenario_head_z


def test_read_lipid_names_without_user_file(tmp_path):
    names = read_lipid_names(str(tmp_path / "missing.txt"))
    assert names == DEFAULT_LIPID_NAMES
    assert names is not DEFAULT_LIPID_NAMES


def test_read_lipid_names_with_user_file(tmp_path, caplog):
    user_file = tmp_path / "lipids.txt"
    user_file.write_text("XLIP\n\n# comment only\nPOPC  # already known\nYLIP # custom\nXLIP\n")
    with caplog.at_level(logging.WARNING):
        names = read_lipid_names(str(user_file))
    assert names[-2:] == ["XLIP", "YLIP"]
    assert names.count("POPC") == 1
    assert len(names) == len(DEFAULT_LIPID_NAMES) + 2
    assert "POPC" in caplog.text


def test_read_ndx(tmp_path):
    ndx = tmp_path / "index.ndx"
    ndx.write_text("[ System ]\n1 2 3\n4\n\n[ Heads ]\n   1   3 ; comment\n5\n")
    groups = read_ndx(str(ndx))
    assert list(groups) == ["System", "Heads"]
    np.testing.assert_array_equal(groups["System"], [0, 1, 2, 3])
    np.testing.assert_array_equal(groups["Heads"], [0, 2, 4])


def test_read_ndx_rejects_orphan_numbers(tmp_path):
    ndx = tmp_path / "bad.ndx"
    ndx.write_text("1 2 3\n[ Heads ]\n1\n")
    with pytest.raises(ValueError, match="before any group header"):
        read_ndx(str(ndx))


def test_read_ndx_rejects_garbage(tmp_path):
    ndx = tmp_path / "bad.ndx"
    ndx.write_text("[ Heads ]\n1 two 3\n")
    with pytest.raises(ValueError, match="could not parse"):
        read_ndx(str(ndx))


def test_select_heads_from_index_group(scenario_universe):
    heads = select_heads(scenario_universe, "Heads", {"Heads": np.array([2, 0, 2])})
    assert heads.indices.tolist() == [0, 2]


def test_select_heads_out_of_range(scenario_universe):
    with pytest.raises(ValueError, match="outside the system"):
        select_heads(scenario_universe, "Heads", {"Heads": np.array([0, 10_000])})


def test_select_heads_falls_back_to_selection(scenario_universe):
    heads = select_heads(scenario_universe, "name PO4", {"Other": np.array([0])})
    assert heads.n_atoms == 6


def test_resolve_composition(scenario_universe, caplog):
    with caplog.at_level(logging.WARNING):
        composition = resolve_lipid_composition(scenario_universe, "name PO4",
                                                lipid_names=DEFAULT_LIPID_NAMES)
    # Types follow the order of the lipid name list
    assert composition.lipid_types == ("POPC", "POPE")
    assert composition.head_counts() == {"POPC": 4, "POPE": 2}
    # CHOL atoms count toward the center although CHOL has no PO4 head
    assert composition.all_lipid_atoms.n_atoms == 12 + 2
    assert "CHOL" in caplog.text
    np.testing.assert_allclose(composition.head_coordinates()["POPE"], [70.0, 30.0])


def test_resolve_composition_without_heads():
    universe, _, _ = build_membrane(["POPC", "POPC"], [[70.0, 30.0]])
    with pytest.raises(ValueError, match="No usable lipids detected"):
        resolve_lipid_composition(universe, "name ROH", lipid_names=DEFAULT_LIPID_NAMES)


def test_resolve_composition_without_lipids():
    universe, _, _ = build_membrane(["XXXX"], [[60.0]])
    with pytest.raises(ValueError, match="No usable lipids detected"):
        resolve_lipid_composition(universe, "name PO4", lipid_names=DEFAULT_LIPID_NAMES)


def test_load_composition_with_user_lipids_and_index(tmp_path):
    universe, _, _ = build_membrane(["XLIP", "POPC"], [[70.0, 30.0]])
    lipids_file = tmp_path / "lipids.txt"
    lipids_file.write_text("XLIP\n")
    ndx = tmp_path / "index.ndx"
    ndx.write_text("[ Heads ]\n1 3\n")
    composition = load_lipid_composition(universe, "Heads", str(ndx), str(lipids_file))
    assert composition.lipid_types == ("POPC", "XLIP")
    assert composition.head_counts() == {"POPC": 1, "XLIP": 1}


def test_load_composition_missing_index_uses_selection(tmp_path):
    universe, _, _ = build_membrane(SCENARIO_RESNAMES, scenario_head_z(1), extra=SCENARIO_EXTRA)
    composition = load_lipid_composition(universe, "name PO4", str(tmp_path / "none.ndx"),
                                         str(tmp_path / "none.txt"))
    assert composition.n_lipid_types == 2


def test_headless_type_reported_once_per_workflow(scenario_universe, caplog):
    with caplog.at_level(logging.DEBUG):
        for _ in range(3):
            resolve_lipid_composition(scenario_universe, "name PO4", lipid_names=DEFAULT_LIPID_NAMES)
    chol = [r for r in caplog.records if "Lipids of type CHOL" in r.getMessage()]
    assert [r.levelno for r in chol] == [logging.WARNING, logging.DEBUG, logging.DEBUG]

    caplog.clear()
    reset_headless_reports()
    with caplog.at_level(logging.WARNING):
        resolve_lipid_composition(scenario_universe, "name PO4", lipid_names=DEFAULT_LIPID_NAMES)
    assert "Lipids of type CHOL" in caplog.text
