"""GPS L1 C/A (and SBAS) spreading code generation and sampled code tables."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

CODE_LENGTH = 1023

# G2 delays per PRN: GPS 1..32, then SBAS 120..138.
_G2_DELAYS = (
    5, 6, 7, 8, 17, 18, 139, 140, 141, 251, 252,
    254, 255, 256, 257, 258, 469, 470, 471, 472, 473, 474,
    509, 512, 513, 514, 515, 516, 859, 860, 861, 862, 145,
    175, 52, 21, 237, 235, 886, 657, 634, 762, 355, 1012,
    176, 603, 130, 359, 595, 68, 386,
)


@lru_cache(maxsize=1)
def _g_sequences() -> tuple[tuple[bool, ...], tuple[bool, ...]]:
    reg1 = [True] * 10
    reg2 = [True] * 10
    g1: list[bool] = []
    g2: list[bool] = []
    for _ in range(CODE_LENGTH):
        g1.append(reg1[0])
        g2.append(reg2[0])
        feedback1 = reg1[7] ^ reg1[0]
        feedback2 = reg2[8] ^ reg2[7] ^ reg2[4] ^ reg2[2] ^ reg2[1] ^ reg2[0]
        reg1 = reg1[1:] + [feedback1]
        reg2 = reg2[1:] + [feedback2]
    return tuple(g1), tuple(g2)


@lru_cache(maxsize=None)
def _code(prn: int, chip_shift: int) -> tuple[int, ...]:
    prn_idx = prn - 88 if 120 <= prn <= 138 else prn - 1
    if not 0 <= prn_idx < len(_G2_DELAYS):
        return (0,) * CODE_LENGTH
    g1, g2 = _g_sequences()
    delay = (CODE_LENGTH - _G2_DELAYS[prn_idx] + chip_shift) % CODE_LENGTH
    return tuple(
        1 if g1[(chip + chip_shift) % CODE_LENGTH] ^ g2[(delay + chip) % CODE_LENGTH] else -1
        for chip in range(CODE_LENGTH)
    )


def generate_ca(prn: int, chip_shift: int = 0) -> list[int]:
    """Return the 1023-chip code of ``prn`` as +1/-1 values; all zeros for an unknown PRN."""
    return list(_code(prn, chip_shift))


def make_padded_ca_table() -> list[list[int]]:
    """Codes for PRN 0..32, each wrapped with its last chip in front and first chip at the end."""
    table = [[0] * (CODE_LENGTH + 2)]
    for prn in range(1, 33):
        code = generate_ca(prn)
        table.append([code[-1], *code, code[0]])
    return table


def _sample_indices(samples_per_code: int) -> np.ndarray:
    step = np.float32(CODE_LENGTH / samples_per_code)
    positions = step * np.arange(1, samples_per_code + 1, dtype=np.float32)
    return np.ceil(positions).astype(np.int64) - 1


def make_ca_table(samples_per_code: int) -> np.ndarray:
    """Codes of PRN 1..32 resampled to ``samples_per_code`` samples, shape (32, n)."""
    indices = _sample_indices(samples_per_code)
    codes = np.array([generate_ca(prn) for prn in range(1, 33)], dtype=np.float32)
    return codes[:, indices]


def make_complex_ca_table(samples_per_code: int) -> np.ndarray:
    """Complex version of :func:`make_ca_table` (zero imaginary part)."""
    return make_ca_table(samples_per_code).astype(np.complex64)


def make_complex_ca_vector(samples_per_code: int, prn: int) -> np.ndarray:
    """The code of one PRN resampled to ``samples_per_code`` complex samples."""
    code = np.array(generate_ca(prn), dtype=np.float32)
    return code[_sample_indices(samples_per_code)].astype(np.complex64)