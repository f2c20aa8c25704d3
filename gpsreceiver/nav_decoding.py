"""Collects five navigation subframes of a tracked channel and publishes their bits."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import numpy as np

from gpsreceiver.bits import find_subframe_start
from gpsreceiver.blockbase import Block, Tag

logger = logging.getLogger(__name__)

SAMPLES_PER_BIT = 20
NAV_DATA_SAMPLES = 1500 * SAMPLES_PER_BIT
SAMPLES_FOR_PREAMBLE = 14000

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_prn(key: str) -> int:
    match = _LEADING_INT.match(str(key))
    if match is None:
        logger.warning("bad PRN received from tag: %r", key)
        return 0
    return int(match.group(1))


class NavDecoder(Block):
    """Passes 1 kHz bit samples through and extracts navigation bits.

    Once a PRN tag appears, the block looks for a subframe start in the first
    14000 samples and then publishes 1501 bits (0/1) on ``nav_bits`` as
    ``(channel, bits)``.
    """

    def __init__(self, channel_num: int, sample_freq: float) -> None:
        super().__init__("nav_decoding", out_ports=("nav_bits",))
        self.channel = int(channel_num)
        self.sample_freq = float(sample_freq)
        self.samples_for_preamble = SAMPLES_FOR_PREAMBLE
        self.prn = 0
        self.iterator = 0
        self.subframe_start = 0
        self.gather_nav_bits = False
        self._buffer: list[int] = []

    def _restart(self) -> None:
        self.iterator = 0
        self.subframe_start = 0

    def _store(self, index: int, value: int) -> None:
        if index < len(self._buffer):
            self._buffer[index] = value
        else:
            self._buffer.extend([0] * (index - len(self._buffer)))
            self._buffer.append(value)

    def _nav_bits(self) -> list[int]:
        first = self.subframe_start - SAMPLES_PER_BIT
        last = self.subframe_start + NAV_DATA_SAMPLES
        values = self._buffer[first:last]
        values += [0] * (last - first - len(values))
        return [
            1 if sum(values[k : k + SAMPLES_PER_BIT]) > 0 else 0
            for k in range(0, len(values), SAMPLES_PER_BIT)
        ]

    def work(self, samples: Sequence[float], tags: Sequence[Tag] | None = None) -> np.ndarray:
        """Process a chunk; ``tags`` carry the PRN of each input item when present."""
        data = np.asarray(samples, dtype=np.float32)
        in_tags = list(tags or ())
        tagged = len(in_tags) == data.size
        for i, value in enumerate(data):
            if tagged:
                received = _parse_prn(in_tags[i].key)
                if received != 0 and received != self.prn and value != 0:
                    self._restart()
                    self.prn = received
                    self.gather_nav_bits = True

            if not self.gather_nav_bits:
                continue
            if value == 0:
                self._restart()
                continue

            if self.iterator < self.subframe_start + NAV_DATA_SAMPLES - 1:
                self._store(self.iterator, int(value))
                if self.iterator == self.samples_for_preamble - 1:
                    start, _ = find_subframe_start(self._buffer[: self.samples_for_preamble])
                    self.subframe_start = start
                    if start == 0:
                        self._restart()

            if self.iterator == self.subframe_start + NAV_DATA_SAMPLES - 1:
                self.publish("nav_bits", self.channel, self._nav_bits())
                logger.info("Nav bits for PRN %d sent to nav_solution", self.prn)
                self.gather_nav_bits = False

            if self.gather_nav_bits:
                self.iterator += 1

        self.output_tags.extend(Tag(t.offset, t.key, t.value) for t in in_tags)
        self.items_read += data.size
        self.items_written += data.size
        return data.copy()