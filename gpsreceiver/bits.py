"""Navigation bit utilities: parity, binary conversion, field selection, preamble search."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from gpsreceiver.dsp import convolve

# Bit positions (in a 33-entry word with a dummy at index 0) feeding each parity bit.
_PARITY_TAPS = (
    (1, 3, 4, 5, 7, 8, 12, 13, 14, 15, 16, 19, 20, 22, 25),
    (2, 4, 5, 6, 8, 9, 13, 14, 15, 16, 17, 20, 21, 23, 26),
    (1, 3, 5, 6, 7, 9, 10, 14, 15, 16, 17, 18, 21, 22, 24),
    (2, 4, 6, 7, 8, 10, 11, 15, 16, 17, 18, 19, 22, 23, 25),
    (2, 3, 5, 7, 8, 9, 11, 12, 16, 17, 18, 19, 20, 23, 24, 26),
    (1, 5, 7, 8, 10, 11, 12, 13, 15, 17, 21, 24, 25, 26),
)

# Preamble 10001011, reversed and spread over 20 samples per bit.
_REVERSE_PREAMBLE = np.repeat([1, 1, -1, 1, -1, -1, -1, 1], 20)

_SAMPLES_PER_BIT = 20
_SUBFRAME_SAMPLES = 6000


def parity_check(bits: Sequence[int]) -> int:
    """Check a word given as [dummy, D29*, D30*, d1..d24, D25..D30] in +1/-1 form.

    Returns -D30* when parity holds and 0 otherwise.
    """
    if len(bits) != 33:
        raise ValueError(f"parity check needs 33 entries, got {len(bits)}")
    word = list(bits)
    if word[2] != 1:
        word[3:27] = [-b for b in word[3:27]]
    parity = [math.prod(word[i] for i in taps) for taps in _PARITY_TAPS]
    return -word[2] if parity == word[27:33] else 0


def bin2dec(bits: Sequence[int]) -> int:
    """Unsigned value of a bit sequence, MSB first; any positive entry counts as 1."""
    value = 0
    for bit in bits:
        value = value * 2 + (1 if bit > 0 else 0)
    return value


def twos_comp2dec(bits: Sequence[int]) -> int:
    """Signed value of a two's complement 0/1 sequence, MSB first."""
    if not bits:
        raise ValueError("empty bit sequence")
    if bits[0] == 1:
        return -(bin2dec([1 if b == 0 else 0 for b in bits]) + 1)
    return bin2dec(bits)


def vec_selector(
    source: Sequence[int],
    start: int,
    end: int,
    start1: int | None = None,
    end1: int | None = None,
) -> list[int]:
    """Select 1-based inclusive range(s) [start, end] (and [start1, end1]) of ``source``."""
    if (start1 is None) != (end1 is None):
        raise TypeError("start1 and end1 must be given together")
    ranges = [(start, end)]
    if start1 is not None:
        ranges.append((start1, end1))
    for first, last in ranges:
        if first < 1 or first >= last or last > len(source):
            raise ValueError(f"invalid range [{first}, {last}] for {len(source)} entries")
    return [value for first, last in ranges for value in source[first - 1 : last]]


def _decode_candidate(samples: np.ndarray, index: int) -> tuple[int, int] | None:
    window = samples[index - 2 * _SAMPLES_PER_BIT : index + 60 * _SAMPLES_PER_BIT]
    sums = window.reshape(-1, _SAMPLES_PER_BIT).sum(axis=1)
    bits = np.where(sums > 0, 1, -1).tolist()
    low = [-10, *bits[:32]]
    high = [-10, *bits[30:]]
    if parity_check(low) == 0 or parity_check(high) == 0:
        return None
    tow_bits = vec_selector(bits, 33, 49)
    if bits[1] == 1:
        tow_bits = [0 if b > 0 else 1 for b in tow_bits]
    return index, bin2dec(tow_bits) * 6


def find_subframe_start(buffer: Sequence[int]) -> tuple[int, int]:
    """Locate a verified subframe start in a 1 kHz bit-sample buffer.

    Returns (start index, time of week in seconds), or (0, 0) if none is found.
    """
    samples = np.asarray(buffer, dtype=np.int64)
    size = samples.size
    if size == 0:
        return 0, 0
    correlation = np.asarray(convolve(samples, _REVERSE_PREAMBLE))
    hits = np.flatnonzero(np.abs(correlation) > 153)
    indices = [int(p) - 159 for p in hits if p >= 1] + [size]

    seen: set[int] = set()
    for index in indices:
        earlier = index - _SUBFRAME_SAMPLES
        if (
            earlier in seen
            and earlier - 2 * _SAMPLES_PER_BIT >= 0
            and earlier + 60 * _SAMPLES_PER_BIT < size
        ):
            found = _decode_candidate(samples, earlier)
            if found is not None:
                return found
        seen.add(index)
    return 0, 0