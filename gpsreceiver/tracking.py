"""Code and carrier tracking of one satellite channel."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from gpsreceiver.acq_results import AcqResults
from gpsreceiver.blockbase import Block, Tag
from gpsreceiver.ca_code import make_padded_ca_table
from gpsreceiver.dsp import calc_loop_coef

logger = logging.getLogger(__name__)

CODE_FREQ_BASIS = 1023000.0
CHIPPING_RATE = 1023000.0
CODE_LENGTH = 1023
MAX_PRN = 32
PDI = 0.001
EARLY_LATE_SPC = 0.5
PLL_DAMPING_RATIO = 0.7
DLL_DAMPING_RATIO = 0.7
LOOP_GAIN_CARR = 0.25
LOOP_GAIN_CODE = 1.0
MS_FOR_QUALITY_CHECK = 1000
MS_TO_STABILIZE = 2000
SNAPSHOT_MS = 11
TWO_PI = 2 * math.pi


def _f32(value: float) -> float:
    return float(np.float32(value))


def _divide(num: float, den: float) -> float:
    """IEEE division: infinities and NaN instead of exceptions."""
    with np.errstate(all="ignore"):
        return float(np.float64(num) / np.float64(den))


def _atan_ratio(num: float, den: float) -> float:
    with np.errstate(all="ignore"):
        return float(np.arctan(np.float64(num) / np.float64(den)))


def _ceil_block(value: float) -> int:
    # A non-finite block size leaves the loop stalled until reacquisition.
    return math.ceil(value) if math.isfinite(value) else 0


def _chip(code: list[int], position: float) -> int:
    if not math.isfinite(position):
        raise IndexError(f"code position {position} is not finite")
    index = math.ceil(position)
    if not 0 <= index < len(code):
        raise IndexError(f"code index {index} outside 0..{len(code) - 1}")
    return code[index]


def _signbit(value: float) -> bool:
    return math.copysign(1.0, value) < 0


def _loop_coefficients(bandwidth: float, zeta: float, gain: float) -> tuple[float, float]:
    whole_hz = int(bandwidth)
    if whole_hz < 1:
        raise ValueError(f"loop noise bandwidth must be at least 1 Hz, got {bandwidth}")
    return calc_loop_coef(whole_hz, zeta, gain, PDI)


class Tracking(Block):
    """Tracks the code (DLL) and carrier (PLL) of the PRN assigned to one channel.

    Output is the prompt correlation once per millisecond, but only while the
    channel passes its quality check; every other item is 0.  A snapshot of
    ``11`` ms of signal is published on ``data_vector`` as ``(prn, samples)``
    whenever the channel needs (re)acquisition.
    """

    def __init__(self, channel_num: int, sample_freq: float, pll_nbw: float, dll_nbw: float) -> None:
        if sample_freq <= 0:
            raise ValueError("sample frequency must be positive")
        super().__init__("tracking_ff", in_ports=("acquisition",), out_ports=("data_vector",))
        self.channel_num = int(channel_num)
        self.sample_freq = float(sample_freq)
        self.sample_period = _f32(1.0 / _f32(sample_freq))
        self.pll_noise_bandwidth = float(pll_nbw)
        self.dll_noise_bandwidth = float(dll_nbw)
        self._carr_coeffs = _loop_coefficients(pll_nbw, PLL_DAMPING_RATIO, LOOP_GAIN_CARR)
        self._code_coeffs = _loop_coefficients(dll_nbw, DLL_DAMPING_RATIO, LOOP_GAIN_CODE)

        self.prn = 0
        self.total_samples = 0
        self.do_tracking = False
        self.restart_acquisition = False
        self.collect_samples = False
        self.tracking_locked = False

        self.ms_count = 0
        self.bit_transition_count = 0
        self.positive_corr_count = 0
        self.negative_corr_count = 0

        self.iterator = 0
        self.code_phase = 0
        self.received_code_phase = 0
        self.carr_freq = 0.0
        self.carr_freq_basis = 0.0
        self.code_freq = CODE_FREQ_BASIS
        self.rem_carr_phase = 0.0
        self.rem_code_phase = 0.0
        self.output = 0.0

        self._old_carr_nco = 0.0
        self._old_carr_error = 0.0
        self._old_code_nco = 0.0
        self._old_code_error = 0.0
        self._sina = self._cosa = 0.0
        self._res_sin = self._res_cos = 0.0
        self._prev_output = 0j
        self._clear_correlators()

        self._padded_table = make_padded_ca_table()
        self.code_phase_step = _f32(self.code_freq * self.sample_period)
        self.samples_per_code = math.floor(_f32(_f32(sample_freq) / 1000.0) + 0.5)
        self._long_signal: list[complex] = []
        self.blksize = _ceil_block((CODE_LENGTH - self.rem_code_phase) / self.code_phase_step)

    def _clear_correlators(self) -> None:
        self._i_e = self._q_e = 0j
        self._i_p = self._q_p = 0j
        self._i_l = self._q_l = 0j

    def _set_prn(self, prn: int) -> None:
        if not 0 <= prn <= MAX_PRN:
            raise ValueError(f"PRN must be within 0..{MAX_PRN}, got {prn}")
        self.prn = prn

    def handle_acquisition(self, key: str, result: AcqResults) -> None:
        """React to ``acq_result`` for this channel and ``acq_start`` for the tracked PRN."""
        if key == "acq_result" and result.channel_number == self.channel_num:
            self._set_prn(result.prn)
            self._start_reacquisition()
        elif key == "acq_start" and self.prn == result.prn:
            if result.peak_metric > 0:
                self._handle_acq_start(result)
            else:
                self._start_reacquisition()

    def _handle_acq_start(self, result: AcqResults) -> None:
        self.code_freq = CODE_FREQ_BASIS
        self.code_phase_step = _f32(self.code_freq * self.sample_period)
        self.blksize = _ceil_block(CODE_LENGTH / self.code_phase_step)
        from_start = int(self.total_samples - result.code_phase)
        self.restart_acquisition = False
        self.received_code_phase = self.blksize - from_start % self.blksize
        self.code_phase = self.received_code_phase
        self.carr_freq = float(result.carr_freq)
        self.carr_freq_basis = float(result.carr_freq)
        self._set_prn(result.prn)

    def _start_reacquisition(self) -> None:
        self.restart_acquisition = True
        self.collect_samples = True
        self.do_tracking = False
        self.total_samples = 0

    def reset(self) -> None:
        """Clear loop filters, phases and correlators before tracking starts."""
        self.ms_count = 0
        self.bit_transition_count = 0
        self.rem_code_phase = 0.0
        self.rem_carr_phase = 0.0
        self._old_carr_nco = 0.0
        self._old_carr_error = 0.0
        self._old_code_nco = 0.0
        self._old_code_error = 0.0
        self.carr_freq = 0.0
        self.code_freq = CODE_FREQ_BASIS
        self.iterator = 0
        self._clear_correlators()

    def _quality_check(self) -> None:
        if self.ms_count < MS_FOR_QUALITY_CHECK + MS_TO_STABILIZE:
            return
        pos, neg = self.positive_corr_count, self.negative_corr_count
        ratio = _divide(pos, neg) if pos > neg else _divide(neg, pos)
        if (
            self.bit_transition_count > MS_FOR_QUALITY_CHECK // 20 + 5
            or self.bit_transition_count < 10
            or ratio > 3
        ):
            logger.info(
                "PRN %d quality check failed: %d transitions, ratio %s",
                self.prn,
                self.bit_transition_count,
                ratio,
            )
            self._start_reacquisition()
            self.tracking_locked = False
        else:
            self.tracking_locked = True
        self.ms_count = 0
        self.bit_transition_count = 0
        self.positive_corr_count = 0
        self.negative_corr_count = 0

    def work(self, samples: Sequence[complex]) -> np.ndarray:
        """Track a chunk of complex samples and return one float per input sample."""
        data = np.asarray(samples, dtype=np.complex64)
        out = np.zeros(data.size, dtype=np.float32)
        self._quality_check()

        t_start_early = self.rem_code_phase - EARLY_LATE_SPC
        t_start_late = self.rem_code_phase + EARLY_LATE_SPC
        t_start_prompt = self.rem_code_phase
        t_end_prompt = _f32(self.blksize * self.code_phase_step + self.rem_code_phase)
        snapshot_len = SNAPSHOT_MS * self.samples_per_code

        for i, sample in enumerate(data.tolist()):
            if self.restart_acquisition:
                self.total_samples += 1
            if self.collect_samples:
                if len(self._long_signal) < snapshot_len:
                    self._long_signal.append(sample)
                else:
                    snapshot = np.array(self._long_signal, dtype=np.complex64)
                    self.publish("data_vector", self.prn, snapshot)
                    self._long_signal = []
                    self.collect_samples = False

            if not self.do_tracking and self.prn != 0 and not self.restart_acquisition:
                if self.code_phase > 0:
                    self.code_phase -= 1
                if self.code_phase == 0:
                    self.reset()
                    self.do_tracking = True

            if self.do_tracking:
                iterator_step = _f32(self.code_phase_step * self.iterator)
                if math.isnan(iterator_step):
                    continue
                code = self._padded_table[self.prn]
                early = _chip(code, t_start_early + iterator_step)
                late = _chip(code, t_start_late + iterator_step)
                prompt = _chip(code, t_start_prompt + iterator_step)

                if self.iterator == 0:
                    a = self.carr_freq * TWO_PI * self.sample_period
                    self._sina, self._cosa = math.sin(a), math.cos(a)
                    self._res_sin = math.sin(self.rem_carr_phase)
                    self._res_cos = math.cos(self.rem_carr_phase)
                self._res_cos, self._res_sin = (
                    self._cosa * self._res_cos - self._sina * self._res_sin,
                    self._sina * self._res_cos + self._cosa * self._res_sin,
                )

                q_signal = sample * self._res_cos
                i_signal = sample * self._res_sin
                self._q_e += early * q_signal
                self._i_e += early * i_signal
                self._q_p += prompt * q_signal
                self._i_p += prompt * i_signal
                self._q_l += late * q_signal
                self._i_l += late * i_signal

                if self.iterator == self.blksize - 1:
                    self._close_millisecond(i, t_end_prompt)
                else:
                    self.iterator += 1

            out[i] = self.output if self.output and self.tracking_locked else 0.0
            self.output = 0.0

        self.items_read += data.size
        self.items_written += data.size
        return out

    def _close_millisecond(self, i: int, t_end_prompt: float) -> None:
        current = self._i_p + self._q_p
        complex_signal = current.imag != 0

        if (
            _signbit(self._prev_output.real) != _signbit(self._i_p.real)
            and self.ms_count > MS_TO_STABILIZE
        ):
            self.bit_transition_count += 1
        reference = current.real if complex_signal else self._i_p.real
        if reference > 0:
            self.positive_corr_count += 1
        else:
            self.negative_corr_count += 1
        self._prev_output = self._i_p
        self.output = reference

        self.rem_carr_phase = math.fmod(
            self.carr_freq * TWO_PI * (self.blksize * self.sample_period) + self.rem_carr_phase,
            TWO_PI,
        )
        self.rem_code_phase = _f32(t_end_prompt - float(CODE_LENGTH))
        self.output_tags.append(Tag(self.items_written + i, str(self.prn)))

        if complex_signal:
            carr_error = _atan_ratio(current.imag, current.real) / TWO_PI
        else:
            carr_error = _atan_ratio(self._q_p.real, self._i_p.real) / TWO_PI
        coeff1, coeff2 = self._carr_coeffs
        carr_nco = (
            self._old_carr_nco + coeff1 * (carr_error - self._old_carr_error) + carr_error * coeff2
        )
        self._old_carr_nco = carr_nco
        self._old_carr_error = carr_error
        self.carr_freq = self.carr_freq_basis + carr_nco

        sqrt_early = abs(self._i_e + self._q_e)
        sqrt_late = abs(self._i_l + self._q_l)
        code_error = _divide(sqrt_early - sqrt_late, sqrt_early + sqrt_late)
        coeff1, coeff2 = self._code_coeffs
        code_nco = (
            self._old_code_nco + coeff1 * (code_error - self._old_code_error) + code_error * coeff2
        )
        self._old_code_nco = code_nco
        self._old_code_error = code_error

        self.code_freq = _f32(CHIPPING_RATE - code_nco)
        self.code_phase_step = _f32(self.code_freq * self.sample_period)
        self.blksize = _ceil_block(
            _divide(CODE_LENGTH - self.rem_code_phase, self.code_phase_step)
        )

        self._clear_correlators()
        self.iterator = 0
        self.ms_count += 1