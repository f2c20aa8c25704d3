"""Decimates tracking output to one navigation bit sign per millisecond."""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Sequence

import numpy as np

from gpsreceiver.blockbase import Block, Tag


class Decimator(Block):
    """Reduces a sample-rate stream of bit values to 1 kHz.

    Every non-zero input becomes a +1/-1 output in order of arrival; each output
    carries a tag whose value is the 1-based stream position of that input.
    """

    def __init__(self, sample_freq: float) -> None:
        if sample_freq <= 0:
            raise ValueError("sample frequency must be positive")
        super().__init__("decimator")
        self.sample_freq = float(sample_freq)
        self.decimation = math.ceil(self.sample_freq / 1000)
        self._signs: deque[int] = deque()
        self._bit_samples: deque[int] = deque()

    def work(self, samples: Sequence[float], tags: Sequence[Tag] | None = None) -> np.ndarray:
        """Decimate ``samples``; ``tags`` are the input tags of this chunk."""
        data = np.asarray(samples, dtype=np.float32)
        if data.size % self.decimation:
            raise ValueError(
                f"input length {data.size} is not a multiple of the decimation {self.decimation}"
            )
        n_out = data.size // self.decimation
        in_tags = list(tags or ())
        out = np.zeros(n_out, dtype=np.float32)
        for j, block in enumerate(data.reshape(n_out, self.decimation)):
            for i in np.flatnonzero(block):
                self._bit_samples.append(self.items_read + j * self.decimation + int(i) + 1)
                self._signs.append(1 if block[i] > 0 else -1)
            key = in_tags[j].key if len(in_tags) == n_out else "0"
            value = self._bit_samples.popleft() if self._bit_samples else 0
            self.output_tags.append(Tag(self.items_written + j, key, value))
            out[j] = self._signs.popleft() if self._signs else 0
        self.items_read += data.size
        self.items_written += n_out
        return out