import numpy as np
import pytest

from scramble_analysis.core.geometry import periodic_distance_1d, membrane_center


def test_periodic_distance_within_half_box():
    assert periodic_distance_1d(60.0, 50.0, 100.0) == pytest.approx(10.0)
    assert periodic_distance_1d(40.0, 50.0, 100.0) == pytest.approx(-10.0)


def test_periodic_distance_folds_one_period():
    # 95 - 5 = 90 is more than half a box: nearest image is -10
    assert periodic_distance_1d(95.0, 5.0, 100.0) == pytest.approx(-10.0)
    assert periodic_distance_1d(5.0, 95.0, 100.0) == pytest.approx(10.0)


def test_periodic_distance_half_box_boundary():
    # The interval is (-L/2, L/2]: +L/2 is kept, -L/2 becomes +L/2
    assert periodic_distance_1d(100.0, 50.0, 100.0) == pytest.approx(50.0)
    assert periodic_distance_1d(0.0, 50.0, 100.0) == pytest.approx(50.0)


def test_periodic_distance_without_box():
    assert periodic_distance_1d(95.0, 5.0, 0.0) == pytest.approx(90.0)
    assert periodic_distance_1d(95.0, 5.0, None) == pytest.approx(90.0)


def test_periodic_distance_returns_float_for_scalars():
    assert isinstance(periodic_distance_1d(1.0, 2.0, 10.0), float)


def test_periodic_distance_vectorized():
    d = periodic_distance_1d(np.array([10.0, 60.0, 99.0]), 50.0, 100.0)
    np.testing.assert_allclose(d, [-40.0, 10.0, 49.0])


def test_membrane_center_is_unweighted_mean_of_normal_axis():
    positions = np.array([[0.0, 0.0, 40.0], [100.0, 3.0, 60.0], [7.0, 7.0, 56.0]])
    assert membrane_center(positions) == pytest.approx(52.0)
    assert membrane_center(positions, axis=0) == pytest.approx(107.0 / 3)


def test_membrane_center_accepts_axis_coordinates():
    assert membrane_center(np.array([10.0, 20.0])) == pytest.approx(15.0)


def test_membrane_center_empty():
    with pytest.raises(ValueError, match="empty"):
        membrane_center(np.empty((0, 3)))
