"""Cold-start acquisition: search all PRNs and hand the strongest to a free channel."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

import numpy as np

from gpsreceiver.acq_results import AcqResults
from gpsreceiver.blockbase import Block
from gpsreceiver.ca_code import make_complex_ca_table
from gpsreceiver.search import check_if_channel_present

logger = logging.getLogger(__name__)

CODE_FREQ_BASIS = 1023000.0
CODE_LENGTH = 1023.0
NUMBER_OF_PRNS = 32


class Acquisition(Block):
    """Searches every PRN not yet tracked and assigns the best one to the requesting channel.

    Results are published on the ``acquisition`` port as ``("acq_result", AcqResults)``;
    when nothing could be assigned an empty result and ``("acq_restart", ...)`` follow.
    """

    def __init__(self, sample_freq: float, im_freq: float, channel_num: int) -> None:
        if sample_freq <= 0:
            raise ValueError("sample frequency must be positive")
        if channel_num < 0:
            raise ValueError("number of channels must not be negative")
        super().__init__("acquisition", in_ports=("data_vector",), out_ports=("acquisition",))
        self.sample_freq = float(sample_freq)
        self.intermediate_freq = float(im_freq)
        self.channel_num = int(channel_num)
        self.samples_per_code = round(self.sample_freq / (CODE_FREQ_BASIS / CODE_LENGTH))
        self.ts = 1.0 / self.sample_freq
        self._channels = [0] * self.channel_num
        self._ca_table = make_complex_ca_table(self.samples_per_code)

    @property
    def channels(self) -> tuple[int, ...]:
        """PRN assigned to each channel, 0 for a free channel."""
        return tuple(self._channels)

    def handle_data_vector(self, prn: int, samples: Sequence[complex]) -> None:
        """Run a cold start for the channel currently holding ``prn``."""
        needed = 2 * self.samples_per_code
        signal = np.asarray(samples, dtype=np.complex64)
        if signal.size < needed:
            raise ValueError(f"acquisition needs {needed} samples, got {signal.size}")
        signal = signal[:needed]

        found: list[AcqResults] = []
        report: list[str] = []
        for candidate in range(1, NUMBER_OF_PRNS + 1):
            if candidate in self._channels:
                continue
            result = check_if_channel_present(
                candidate,
                self.ts,
                self.intermediate_freq,
                self._ca_table[candidate - 1],
                signal,
            )
            if result.prn:
                found.append(result)
                report.append(f"{candidate} [ {result.peak_metric:.1f} ]")
            else:
                report.append(".")
        logger.info("Acquisition cold start: ( %s )", "  ".join(report))

        acquired = False
        if found:
            found.sort(key=lambda r: r.peak_metric)
            for index, assigned in enumerate(self._channels):
                if assigned != prn:
                    continue
                if not found:
                    acquired = False
                    break
                best = found.pop()
                best.channel_number = index
                self._channels[index] = best.prn
                self.publish("acquisition", "acq_result", best)
                acquired = True
                logger.info(
                    "Assigned channel %d (%d) new PRN value %d", index, prn, best.prn
                )

        if not acquired:
            empty = AcqResults(prn=prn)
            self.publish("acquisition", "acq_result", empty)
            self.publish("acquisition", "acq_restart", dataclasses.replace(empty))