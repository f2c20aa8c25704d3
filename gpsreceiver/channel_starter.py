"""Warm start of a tracking channel: acquire a known PRN or ask for reacquisition."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from gpsreceiver.acq_results import AcqResults
from gpsreceiver.blockbase import Block
from gpsreceiver.ca_code import make_complex_ca_vector
from gpsreceiver.search import perform_acquisition

logger = logging.getLogger(__name__)

CODE_FREQ_BASIS = 1023000.0
CODE_LENGTH = 1023.0
MAX_PRN = 32


class ChannelStarter(Block):
    """Acquires the PRN a channel asks for, with a limited number of failed attempts.

    Publishes ``("acq_start", AcqResults)`` after every attempt and
    ``("acq_restart", AcqResults)`` once the attempts are used up or no PRN is given.
    """

    def __init__(self, sample_freq: float, im_freq: float, attempts: int) -> None:
        if sample_freq <= 0:
            raise ValueError("sample frequency must be positive")
        super().__init__(
            "channel_starter", in_ports=("data_vector",), out_ports=("acquisition",)
        )
        self.sample_freq = float(sample_freq)
        self.intermediate_freq = float(im_freq)
        self.attempts = int(attempts)
        self.samples_per_code = round(self.sample_freq / (CODE_FREQ_BASIS / CODE_LENGTH))
        self.ts = float(np.float32(1.0 / self.sample_freq))
        self.attempts_left = [self.attempts] * (MAX_PRN + 1)
        self.prn = 0
        self._ca_vector: np.ndarray | None = None

    def handle_data_vector(self, prn: int, samples: Sequence[complex]) -> None:
        """Try to acquire ``prn`` in ``samples`` (at least 11 ms of signal)."""
        if not 0 <= prn <= MAX_PRN:
            raise ValueError(f"PRN must be within 0..{MAX_PRN}, got {prn}")
        if self.prn != prn:
            self.prn = prn
            if prn != 0:
                self._ca_vector = make_complex_ca_vector(self.samples_per_code, prn)

        if self.attempts_left[prn] > 0 and prn != 0:
            needed = 11 * self.samples_per_code
            signal = np.asarray(samples, dtype=np.complex64)
            if signal.size < needed:
                raise ValueError(f"channel start needs {needed} samples, got {signal.size}")
            result = perform_acquisition(
                prn, self.ts, self.intermediate_freq, self._ca_vector, signal[:needed]
            )
            result.prn = prn
            self.publish("acquisition", "acq_start", result)
            if result.peak_metric == 0:
                self.attempts_left[prn] -= 1
            logger.info(
                "Starter for PRN %d: attempts left %d, peak metric %s, freq %s, phase %s",
                prn,
                self.attempts_left[prn],
                result.peak_metric,
                result.carr_freq,
                result.code_phase,
            )
        else:
            logger.info("Channel starter requested reacquisition for PRN %d", prn)
            self.publish("acquisition", "acq_restart", AcqResults(prn, 0.0, 0.0, 0.0))
            self.attempts_left[prn] = self.attempts