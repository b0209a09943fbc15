import numpy as np
import pytest

from scramble_analysis.modules.rate import ScramblingRateTracker

CENTER = 50.0
BOX = 100.0


def test_reference_frame_reports_zero():
    tracker = ScramblingRateTracker(['POPC', 'POPE'])
    assert not tracker.has_reference
    rates = tracker.update({'POPC': np.array([70.0, 30.0]), 'POPE': np.array([80.0])}, CENTER, BOX)
    assert rates == {'POPC': 0.0, 'POPE': 0.0, 'TOTAL': 0.0}
    assert tracker.has_reference


def test_rates_relative_to_reference():
    tracker = ScramblingRateTracker(['POPC', 'POPE'])
    tracker.update({'POPC': np.array([70.0, 30.0, 75.0, 25.0]), 'POPE': np.array([80.0, 20.0])},
                   CENTER, BOX)
    rates = tracker.update({'POPC': np.array([30.0, 30.0, 75.0, 25.0]), 'POPE': np.array([80.0, 20.0])},
                           CENTER, BOX)
    assert rates['POPC'] == pytest.approx(25.0)
    assert rates['POPE'] == pytest.approx(0.0)
    assert rates['TOTAL'] == pytest.approx(100.0 / 6)


def test_no_hysteresis():
    tracker = ScramblingRateTracker(['DPPC'])
    tracker.update({'DPPC': np.array([70.0, 30.0])}, CENTER, BOX)
    # one frame on the other side counts fully, and returning restores 0
    assert tracker.update({'DPPC': np.array([49.0, 30.0])}, CENTER, BOX) == {'DPPC': 50.0}
    assert tracker.update({'DPPC': np.array([70.0, 30.0])}, CENTER, BOX) == {'DPPC': 0.0}


def test_reference_is_read_only():
    tracker = ScramblingRateTracker(['DPPC'])
    tracker.update({'DPPC': np.array([70.0])}, CENTER, BOX)
    with pytest.raises(ValueError):
        tracker.reference['DPPC'][0] = False


def test_shape_mismatch():
    tracker = ScramblingRateTracker(['DPPC'])
    tracker.update({'DPPC': np.array([70.0, 30.0])}, CENTER, BOX)
    with pytest.raises(ValueError, match="Expected 2 head positions"):
        tracker.update({'DPPC': np.array([70.0])}, CENTER, BOX)


def test_requires_lipid_types():
    with pytest.raises(ValueError):
        ScramblingRateTracker([])
