"""Numeric helpers: fast sine, loop filter coefficients, convolution, FFT and pseudoranges."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np


def fast_sin(x: float) -> float:
    """Polynomial sine approximation after reduction by the nearest multiple of pi."""
    k = round(x * 0.3183098861837907)
    x -= k * 3.1415926535897932
    y = x * x
    z = (0.0073524681968701 * y - 0.1652891139701474) * y + 0.9996919862959676
    x *= z
    return -x if k & 1 else x


def calc_loop_coef(
    loop_noise_bandwidth: float, zeta: float, loop_gain: float, pdi: float
) -> tuple[float, float]:
    """Return the loop filter coefficients (tau2/tau1, pdi/tau1)."""
    wn = loop_noise_bandwidth * 8 * zeta / (4 * zeta * zeta + 1)
    tau1 = loop_gain / (wn * wn)
    tau2 = 2.0 * zeta / wn
    return tau2 / tau1, pdi / tau1


def linspace(start: float, end: float, num: int) -> list[float]:
    """``num`` evenly spaced values from ``start`` to exactly ``end``."""
    if num < 0:
        raise ValueError("number of points must not be negative")
    if num == 0:
        return []
    if num == 1:
        return [start]
    delta = (end - start) / (num - 1)
    return [start + delta * i for i in range(num - 1)] + [end]


def convolve(x: Sequence[int], y: Sequence[int]) -> list[int]:
    """Full integer convolution; the result has len(x) + len(y) - 1 entries."""
    if len(x) == 0 or len(y) == 0:
        return []
    return np.convolve(np.asarray(x, dtype=np.int64), np.asarray(y, dtype=np.int64)).tolist()


def custom_fft(x: Sequence[complex]) -> np.ndarray:
    """Recursive radix-2 decimation-in-time FFT."""
    data = np.array(x, dtype=np.complex128)
    n = data.size
    if n <= 1:
        return data
    half = n // 2
    even = custom_fft(data[0 : 2 * half : 2])
    odd = custom_fft(data[1 : 2 * half : 2])
    twiddled = np.exp(-2j * np.pi * np.arange(half) / n) * odd
    data[:half] = even + twiddled
    data[half : 2 * half] = even - twiddled
    return data


def custom_ifft(x: Sequence[complex]) -> np.ndarray:
    """Inverse of :func:`custom_fft`, scaled by 1/N."""
    data = np.conj(np.array(x, dtype=np.complex128))
    if data.size == 0:
        return data
    return np.conj(custom_fft(data)) / data.size


def get_pseudo_ranges(
    travel_time: Sequence[float], start_offset: float, c: float
) -> list[float]:
    """Convert travel times in ms to pseudoranges relative to the earliest whole ms."""
    times = list(travel_time)
    if not times:
        raise ValueError("no travel times given")
    minimum = math.floor(min(times))
    return [(t - minimum + start_offset) * c / 1000.0 for t in times]