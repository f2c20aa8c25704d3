"""Parallel code phase search and single-PRN signal acquisition."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from gpsreceiver.acq_results import AcqResults
from gpsreceiver.ca_code import CODE_LENGTH, generate_ca

CODE_FREQ_BASIS = 1023000.0
DOPPLER_SHIFT = 12000
FREQUENCY_STEP = 250
ACQUISITION_THRESHOLD = 2.5


def _samples_per_code(ts: float) -> int:
    return math.floor(1.0 / float(np.float32(ts) * np.float32(1000)))


def _sample_freq(ts: float) -> float:
    return float(np.float32(1.0 / float(np.float32(ts))))


def _as_signal(long_signal: Sequence[complex], needed: int) -> np.ndarray:
    signal = np.asarray(long_signal, dtype=np.complex64)
    if signal.size < needed:
        raise ValueError(f"signal needs at least {needed} samples, got {signal.size}")
    return signal


def do_parallel_code_phase_search(
    ts: float,
    intermediate_freq: float,
    ca_code_vector: Sequence[complex],
    long_signal: Sequence[complex],
) -> tuple[int, float]:
    """Search code phase and Doppler over two 1 ms blocks.

    Returns the code phase of the strongest correlation peak and the ratio of
    that peak to the largest value outside one chip around it.
    """
    samples_per_code = _samples_per_code(ts)
    if samples_per_code < 1:
        raise ValueError("sample period too long for a 1 ms code period")
    code = np.asarray(ca_code_vector, dtype=np.complex64)
    if code.size < samples_per_code:
        raise ValueError(
            f"code vector needs {samples_per_code} samples, got {code.size}"
        )
    signal = _as_signal(long_signal, 2 * samples_per_code)
    sample_freq = _sample_freq(ts)

    number_of_bins = DOPPLER_SHIFT * 2 // FREQUENCY_STEP + 1
    bin_index = np.arange(number_of_bins)
    freq_bins = np.trunc(
        float(intermediate_freq) - DOPPLER_SHIFT + FREQUENCY_STEP * bin_index
    ).astype(np.int64)

    code_spectrum = np.fft.fft(code[:samples_per_code])
    # The reference spectrum is conjugated anew for every frequency bin,
    # so even bins correlate and odd bins convolve.
    reference = np.where(
        (bin_index % 2 == 0)[:, None], np.conj(code_spectrum)[None, :], code_spectrum[None, :]
    )

    k = np.arange(samples_per_code)
    phase = k[None, :] * 2 * np.pi * float(ts) * freq_bins[:, None]
    sin_carr = np.sin(phase).astype(np.float32)
    cos_carr = np.cos(phase).astype(np.float32)

    first = signal[:samples_per_code]
    second = signal[samples_per_code : 2 * samples_per_code]
    is_complex = (first.imag != 0)[None, :]

    def mix(block: np.ndarray) -> np.ndarray:
        full = (sin_carr + cos_carr) * block[None, :]
        real_only = sin_carr * block.real[None, :] + 1j * cos_carr * block.real[None, :]
        return np.where(is_complex, full, real_only)

    def correlate(block: np.ndarray) -> np.ndarray:
        spectrum = np.fft.fft(mix(block), axis=1) * reference
        return np.abs(np.fft.ifft(spectrum, axis=1)) ** 2

    acq1 = correlate(first)
    acq2 = correlate(second)
    use_first = acq1.max(axis=1) > acq2.max(axis=1)
    results = np.where(use_first[:, None], acq1, acq2)

    row_max = results.max(axis=1)
    peak_size = 0.0
    frequency_bin = 0
    code_phase = 0
    if row_max.max() > 0:
        frequency_bin = int(np.argmax(row_max))
        peak_size = float(row_max[frequency_bin])
        code_phase = int(np.argmax(results[frequency_bin]))

    samples_per_chip = math.floor(sample_freq / CODE_FREQ_BASIS + 0.5)
    exclude1 = code_phase - samples_per_chip
    exclude2 = code_phase + samples_per_chip
    if exclude1 < 1:
        range_start, range_end, inclusive = exclude2, samples_per_code + exclude1, True
    elif exclude2 >= samples_per_code:
        range_start, range_end, inclusive = exclude2 - samples_per_code, exclude1, True
    else:
        range_start, range_end, inclusive = exclude1, exclude2, False

    if inclusive:
        mask = ((k >= range_start) & (k < range_end)) | (k > range_end)
    else:
        mask = (k < range_start) | (k > range_end)
    candidates = results[frequency_bin][mask]
    second_peak = max(0.0, float(candidates.max())) if candidates.size else 0.0

    if second_peak == 0:
        ratio = math.inf if peak_size > 0 else math.nan
    else:
        ratio = peak_size / second_peak
    return code_phase, ratio


def perform_acquisition(
    prn: int,
    ts: float,
    intermediate_freq: float,
    ca_code_vector: Sequence[complex],
    long_signal: Sequence[complex],
) -> AcqResults:
    """Acquire one PRN and refine its carrier frequency over 10 ms of signal.

    Returns an empty result when the signal is too weak.
    """
    code_phase, strength = do_parallel_code_phase_search(
        ts, intermediate_freq, ca_code_vector, long_signal
    )
    if not strength > ACQUISITION_THRESHOLD:
        return AcqResults()

    samples_per_code = _samples_per_code(ts)
    sample_freq = _sample_freq(ts)
    count = samples_per_code * 10
    signal = _as_signal(long_signal, count + code_phase)

    ca_code = np.array(generate_ca(prn), dtype=np.float64)
    mean_real = float(signal.real.astype(np.float64).mean())
    chip_index = np.floor(
        np.float32(ts) * np.arange(count, dtype=np.float32) * np.float32(CODE_FREQ_BASIS)
    ).astype(np.int64) % CODE_LENGTH
    carrier = (signal.real[code_phase : code_phase + count] - mean_real) * ca_code[chip_index]

    fft_points = 8 * 2 ** math.ceil(math.log2(count))
    spectrum = np.abs(np.fft.fft(carrier, fft_points))
    unique_points = (fft_points + 1) // 2
    max_index = int(np.argmax(spectrum[: unique_points - 5]))
    carr_freq = (max_index - 3) * sample_freq / fft_points
    return AcqResults(prn, float(carr_freq), code_phase, strength)


def check_if_channel_present(
    prn: int,
    ts: float,
    intermediate_freq: float,
    ca_code_vector: Sequence[complex],
    long_signal: Sequence[complex],
) -> AcqResults:
    """Report whether ``prn`` is visible; the peak metric is always filled in."""
    code_phase, strength = do_parallel_code_phase_search(
        ts, intermediate_freq, ca_code_vector, long_signal
    )
    if strength > ACQUISITION_THRESHOLD:
        return AcqResults(prn, 0.0, code_phase, strength)
    return AcqResults(0, 0.0, 0, strength)