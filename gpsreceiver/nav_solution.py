"""Navigation solution: subframe alignment across channels and position fixes."""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Sequence

import numpy as np

from gpsreceiver.bits import find_subframe_start
from gpsreceiver.blockbase import Block, Tag
from gpsreceiver.dsp import get_pseudo_ranges
from gpsreceiver.ephemeris import Ephemeris
from gpsreceiver.geo import cart2geo, least_square_pos
from gpsreceiver.sat_position import SatPosition

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT = 299792458  # m/s
START_OFFSET = 68.802  # ms
SAMPLES_PER_BIT = 20
SAMPLES_FOR_SUBFRAME_START = 14000
NAV_DATA_SAMPLES = 1500 * SAMPLES_PER_BIT
MIN_SATELLITES = 4

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_prn(key: str) -> int:
    match = _LEADING_INT.match(str(key))
    if match is None:
        logger.warning("could not extract PRN from tag: %r", key)
        return 0
    return int(match.group(1))


class NavSolution(Block):
    """Aligns the channels on a common subframe and computes position fixes.

    ``work`` takes one 1 kHz bit stream per channel with one tag per item (PRN
    as key, stream position as value).  Every fix is appended to ``fixes`` as
    ``(latitude, longitude, height, time_of_week)``.
    """

    def __init__(self, sample_freq: float, update_rate: int) -> None:
        if sample_freq <= 0:
            raise ValueError("sample frequency must be positive")
        if not 0 < update_rate <= 1000:
            raise ValueError("update rate must be within 1..1000")
        super().__init__("nav_solution", in_ports=("ephemeris",))
        self.sample_freq = float(sample_freq)
        self.decimation = 1000 // int(update_rate)
        self.samples_for_subframe_start = SAMPLES_FOR_SUBFRAME_START
        self.c = SPEED_OF_LIGHT
        self.start_offset = START_OFFSET
        self.number_of_channels = 0
        self.ephemerides: list[Ephemeris] = []
        self.nav_bits: list[deque[int]] = []
        self.gather_nav_bits: list[bool] = []
        self.iterator: list[int] = []
        self.subframe_start: list[int] = []
        self.live_subframe_start: list[int] = []
        self.received_time: list[float] = []
        self.prn: list[int] = []
        self.live_tow = 0.0
        self.temp_tow = 0.0
        self.pseudo_ranges: list[float] = []
        self.fixes: list[tuple[float, float, float, float]] = []
        self._first_run = True

    def handle_ephemeris(self, eph: Ephemeris) -> None:
        """Store the ephemeris of its channel; ephemerides without a channel are ignored."""
        if eph.channel_number == -1:
            return
        if not 0 <= eph.channel_number < len(self.ephemerides):
            raise ValueError(f"no channel {eph.channel_number} to store the ephemeris for")
        self.ephemerides[eph.channel_number] = eph

    def restart_subframe_start_search(self) -> None:
        """Drop collected bits on all channels and search for subframe starts again."""
        n = self.number_of_channels
        self.nav_bits = [deque() for _ in range(n)]
        self.subframe_start = [0] * n
        self.iterator = [0] * n
        self.gather_nav_bits = [True] * n
        self.temp_tow = 0.0

    def gather_bits(self) -> bool:
        """True when every channel is still collecting bits."""
        return all(self.gather_nav_bits)

    def get_ephemeris_bits(self, start_ind: int, source: Sequence[int]) -> list[int]:
        """Five subframes of 0/1 bits starting one bit before ``start_ind``; empty if unavailable."""
        if len(source) < start_ind + NAV_DATA_SAMPLES or start_ind < SAMPLES_PER_BIT:
            return []
        values = list(source)[start_ind - SAMPLES_PER_BIT : start_ind + NAV_DATA_SAMPLES]
        return [
            1 if sum(values[k : k + SAMPLES_PER_BIT]) > 0 else 0
            for k in range(0, len(values), SAMPLES_PER_BIT)
        ]

    def _initialise(self, channels: int) -> None:
        self.number_of_channels = channels
        self.ephemerides = [Ephemeris() for _ in range(channels)]
        self.nav_bits = [deque() for _ in range(channels)]
        self.gather_nav_bits = [False] * channels
        self.iterator = [0] * channels
        self.subframe_start = [0] * channels
        self.live_subframe_start = [0] * channels
        self.received_time = [0.0] * channels
        self.prn = [0] * channels
        self._first_run = False

    def _time_of(self, tag: Tag) -> float:
        return int(tag.value) / (self.sample_freq / 1000.0)

    def work(
        self, inputs: Sequence[Sequence[float]], tags: Sequence[Sequence[Tag]]
    ) -> np.ndarray:
        """Process one chunk per channel and return one zero output per decimated item."""
        streams = [np.asarray(x, dtype=np.float32) for x in inputs]
        if not streams:
            raise ValueError("at least one input channel is needed")
        if self._first_run:
            self._initialise(len(streams))
        elif len(streams) != self.number_of_channels:
            raise ValueError(
                f"expected {self.number_of_channels} channels, got {len(streams)}"
            )
        n_in = streams[0].size
        if any(s.size != n_in for s in streams):
            raise ValueError("all channels must have the same number of items")
        if n_in % self.decimation:
            raise ValueError(
                f"input length {n_in} is not a multiple of the decimation {self.decimation}"
            )
        channel_tags = [list(t) for t in tags]
        if len(channel_tags) != len(streams) or any(len(t) < n_in for t in channel_tags):
            raise ValueError("every channel needs one tag per input item")

        n_out = n_in // self.decimation
        for j in range(n_out):
            if self.live_tow != 0:
                self.live_tow += 0.5

            for p in range(self.number_of_channels):
                if self.live_subframe_start[p] != 0:
                    tag = channel_tags[p][j * self.decimation + self.live_subframe_start[p]]
                    self.received_time[p] = self._time_of(tag)

            for i in range(j * self.decimation, (j + 1) * self.decimation):
                self._process_item(i, streams, channel_tags)

            self._navigate()

        self.items_read += n_in
        self.items_written += n_out
        return np.zeros(n_out, dtype=np.float32)

    def _process_item(
        self, i: int, streams: list[np.ndarray], channel_tags: list[list[Tag]]
    ) -> None:
        for p, stream in enumerate(streams):
            received = _parse_prn(channel_tags[p][i].key)
            if received != 0 and self.prn[p] != received:
                logger.info(
                    "Subframe start search restarted, old PRN %d new PRN %d",
                    self.prn[p],
                    received,
                )
                self.prn[p] = received
                self.restart_subframe_start_search()
                break

            if not self.gather_nav_bits[p]:
                continue

            value = stream[i]
            if value == 0 and self.iterator[p] < self.samples_for_subframe_start - 1:
                self.restart_subframe_start_search()
                break
            self.nav_bits[p].append(int(value))

            if self.iterator[p] == self.samples_for_subframe_start - 1:
                start, tow = find_subframe_start(list(self.nav_bits[p]))
                if start != 0 and tow != 0:
                    if self.temp_tow == 0:
                        self.temp_tow = tow
                    if self.temp_tow == tow:
                        self.subframe_start[p] = start
                    else:
                        self.subframe_start[p] = int(start + (self.temp_tow - tow) * 1000)
                    logger.info(
                        "PRN %d subframe start %d TOW %d iterator %d",
                        self.prn[p],
                        start,
                        tow,
                        self.iterator[p],
                    )
                else:
                    logger.info("No subframe start found, search restarted")
                    self.restart_subframe_start_search()
                    break

            if self.iterator[p] == self.subframe_start[p] + 900 * SAMPLES_PER_BIT - 1:
                self.live_subframe_start[p] = i % self.decimation
                self.live_tow = self.temp_tow + 12
                self.received_time[p] = self._time_of(channel_tags[p][i])
                self.gather_nav_bits[p] = False
            self.iterator[p] += 1

    def _navigate(self) -> None:
        active = [
            (self.received_time[p], self.ephemerides[p])
            for p in range(self.number_of_channels)
            if self.ephemerides[p].channel_number != -1 and self.received_time[p] != 0
        ]
        if len(active) < MIN_SATELLITES:
            return
        times = [t for t, _ in active]
        pseudo_ranges = get_pseudo_ranges(times, self.start_offset, self.c)
        sat_positions = [SatPosition.from_ephemeris(self.live_tow, eph) for _, eph in active]
        pseudo_ranges = [
            pr + sat.sat_clk_corr * self.c for pr, sat in zip(pseudo_ranges, sat_positions)
        ]
        self.pseudo_ranges = pseudo_ranges
        xyzdt, _, _, _ = least_square_pos(sat_positions, pseudo_ranges, self.c)
        latitude, longitude, height = cart2geo(xyzdt[0], xyzdt[1], xyzdt[2], 5)
        logger.info(
            "latitude: %s longitude: %s height: %s TOW: %s",
            latitude,
            longitude,
            height,
            self.live_tow,
        )
        self.fixes.append((latitude, longitude, height, self.live_tow))