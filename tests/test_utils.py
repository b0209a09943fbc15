import math
from datetime import datetime

import numpy as np
import pytest

from scramble_analysis.core.utils import (
    ps_to_ns, interval_to_ps, is_analysis_frame, box_length, clean_json_data
)


def test_ps_to_ns():
    assert float(ps_to_ns(2500.0)) == pytest.approx(2.5)
    np.testing.assert_allclose(ps_to_ns([0, 1000, 10000]), [0.0, 1.0, 10.0])


def test_interval_to_ps():
    assert interval_to_ps(1.0) == 1000
    assert interval_to_ps(0.25) == 250
    assert interval_to_ps(10) == 10000


@pytest.mark.parametrize("dt_ns", [0.0, -1.0, 0.0001, None])
def test_interval_to_ps_invalid(dt_ns):
    with pytest.raises(ValueError):
        interval_to_ps(dt_ns)


def test_is_analysis_frame():
    assert is_analysis_frame(0.0, 1000)
    assert is_analysis_frame(3000.0, 1000)
    assert not is_analysis_frame(3500.0, 1000)
    assert not is_analysis_frame(3000.0, 10000)
    # float32 trajectory times just below a boundary are still analyzed
    assert is_analysis_frame(np.float32(2999.9998), 1000)


def test_box_length():
    assert box_length(np.array([50.0, 60.0, 70.0, 90.0, 90.0, 90.0])) == 70.0
    assert box_length([50.0, 60.0, 70.0, 90.0, 90.0, 90.0], axis=0) == 50.0
    assert box_length(None) == 0.0
    assert box_length([np.nan] * 6) == 0.0


def test_clean_json_data():
    stamp = datetime(2024, 1, 2, 3, 4, 5)
    data = {
        'a': np.int64(3),
        'b': np.float32(1.5),
        'c': float('nan'),
        'd': [np.inf, np.bool_(True)],
        'e': np.array([1, 2]),
        1: stamp,
    }
    cleaned = clean_json_data(data)
    assert cleaned == {'a': 3, 'b': 1.5, 'c': None, 'd': [None, True], 'e': [1, 2],
                       '1': stamp.isoformat()}
    assert not any(isinstance(v, float) and math.isnan(v) for v in cleaned.values())
