import math

import numpy as np
import pytest

from gpsreceiver.dsp import (
    calc_loop_coef,
    convolve,
    custom_fft,
    custom_ifft,
    fast_sin,
    get_pseudo_ranges,
    linspace,
)


@pytest.mark.parametrize("x", [0.3, 1.0, 2.5, -4.0, 7.7, 20.0, -13.1])
def test_fast_sin_close_to_sin(x):
    assert fast_sin(x) == pytest.approx(math.sin(x), abs=1e-3)


def test_fast_sin_is_odd():
    for x in (0.1, 1.3, 3.0, 9.4):
        assert fast_sin(-x) == -fast_sin(x)
    assert fast_sin(0.0) == 0.0


def test_loop_coef_scaling():
    c1, c2 = calc_loop_coef(25, 0.7, 0.25, 0.001)
    c1b, c2b = calc_loop_coef(25, 0.7, 0.25, 0.002)
    assert c1b == pytest.approx(c1)
    assert c2b == pytest.approx(2 * c2)
    c1g, c2g = calc_loop_coef(25, 0.7, 0.5, 0.001)
    assert c1g == pytest.approx(c1 / 2)
    assert c2g == pytest.approx(c2 / 2)


def test_linspace_shape_and_spacing():
    values = linspace(-2.0, 3.0, 11)
    assert len(values) == 11
    assert values[0] == -2.0
    assert values[-1] == 3.0
    steps = np.diff(values)
    assert np.allclose(steps, steps[0])


def test_linspace_edge_cases():
    assert linspace(1.0, 5.0, 0) == []
    assert linspace(1.0, 5.0, 1) == [1.0]
    with pytest.raises(ValueError):
        linspace(1.0, 5.0, -1)


def test_convolve_small_example():
    assert convolve([1, 2], [1, 1]) == [1, 3, 2]


def test_convolve_properties():
    x = [3, -1, 4, 1, -5]
    y = [2, 7, -1]
    result = convolve(x, y)
    assert len(result) == len(x) + len(y) - 1
    assert result == convolve(y, x)
    assert convolve(x, [1]) == x
    assert sum(result) == sum(x) * sum(y)
    assert convolve([], y) == []


def test_custom_fft_matches_numpy():
    rng = np.random.default_rng(1)
    x = rng.normal(size=16) + 1j * rng.normal(size=16)
    assert np.allclose(custom_fft(x), np.fft.fft(x))


def test_custom_ifft_round_trip():
    rng = np.random.default_rng(2)
    x = rng.normal(size=32) + 1j * rng.normal(size=32)
    assert np.allclose(custom_ifft(custom_fft(x)), x)
    assert np.allclose(custom_ifft(x), np.fft.ifft(x))


def test_custom_fft_single_value_unchanged():
    assert custom_fft([2 + 3j]).tolist() == [2 + 3j]


def test_pseudo_ranges_relations():
    times = [70.25, 72.5, 71.0, 70.9]
    c = 299792458
    ranges = get_pseudo_ranges(times, 68.802, c)
    assert len(ranges) == len(times)
    for a, ra in zip(times, ranges):
        for b, rb in zip(times, ranges):
            assert ra - rb == pytest.approx((a - b) * c / 1000.0)
    smallest = min(ranges)
    assert 68.802 * c / 1000.0 <= smallest < 69.802 * c / 1000.0


def test_pseudo_ranges_empty_raises():
    with pytest.raises(ValueError):
        get_pseudo_ranges([], 0.0, 1)