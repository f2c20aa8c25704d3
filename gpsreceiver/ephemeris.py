"""Decoding of satellite ephemeris from five navigation subframes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gpsreceiver.bits import bin2dec, twos_comp2dec, vec_selector

GPS_PI = 3.1415926535898
SUBFRAME_BITS = 300
WORD_BITS = 30
NAV_BITS = 1 + 5 * SUBFRAME_BITS


@dataclass
class Ephemeris:
    """Clock and orbit parameters broadcast in subframes 1 to 3."""

    channel_number: int = -1
    week_number: int = 0
    accuracy: int = 0
    health: int = 0
    t_gd: float = 0.0
    iodc: float = 0.0
    t_oc: int = 0
    a_f2: float = 0.0
    a_f1: float = 0.0
    a_f0: float = 0.0

    iode_sf2: int = 0
    c_rs: float = 0.0
    deltan: float = 0.0
    m_0: float = 0.0
    c_uc: float = 0.0
    e: float = 0.0
    c_us: float = 0.0
    sqrt_a: float = 0.0
    t_oe: int = 0

    c_ic: float = 0.0
    omega_0: float = 0.0
    c_is: float = 0.0
    i_0: float = 0.0
    c_rc: float = 0.0
    omega: float = 0.0
    omega_dot: float = 0.0
    iode_sf3: int = 0
    i_dot: float = 0.0

    tow: int = 0

    @classmethod
    def from_nav_bits(cls, nav_bits: Sequence[int], channel: int) -> Ephemeris:
        """Decode 0/1 bits: the D30 bit before the data, then five 300-bit subframes."""
        bits = list(nav_bits)
        if len(bits) < NAV_BITS:
            raise ValueError(f"need {NAV_BITS} navigation bits, got {len(bits)}")
        eph = cls(channel_number=channel)
        d30_star = bits[0]
        for number in range(1, 6):
            start = 1 + SUBFRAME_BITS * (number - 1)
            subframe = bits[start : start + SUBFRAME_BITS]
            for base in range(0, SUBFRAME_BITS, WORD_BITS):
                if d30_star == 1:
                    subframe[base : base + 24] = [
                        1 if b == 0 else 0 for b in subframe[base : base + 24]
                    ]
                d30_star = subframe[base + WORD_BITS - 1]
            eph._apply_subframe(subframe)
            if number == 5:
                eph.tow = bin2dec(vec_selector(subframe, 31, 47)) * 6
        return eph

    def _apply_subframe(self, sf: list[int]) -> None:
        def unsigned(*ranges: int) -> int:
            return bin2dec(vec_selector(sf, *ranges))

        def signed(*ranges: int) -> int:
            return twos_comp2dec(vec_selector(sf, *ranges))

        subframe_id = unsigned(50, 52)
        if subframe_id == 1:
            self.week_number = unsigned(61, 70) + 1024
            self.accuracy = unsigned(73, 76)
            self.health = unsigned(77, 82)
            self.t_gd = signed(197, 204) * 2.0**-31
            self.iodc = float(unsigned(83, 84, 211, 218))
            self.t_oc = unsigned(219, 234) * 16
            self.a_f2 = signed(241, 248) * 2.0**-55
            self.a_f1 = signed(249, 264) * 2.0**-43
            self.a_f0 = signed(271, 292) * 2.0**-31
        elif subframe_id == 2:
            self.iode_sf2 = unsigned(61, 68)
            self.c_rs = signed(69, 84) * 2.0**-5
            self.deltan = signed(91, 106) * 2.0**-43 * GPS_PI
            self.m_0 = signed(107, 114, 121, 144) * 2.0**-31 * GPS_PI
            self.c_uc = signed(151, 166) * 2.0**-29
            self.e = unsigned(167, 174, 181, 204) * 2.0**-33
            self.c_us = signed(211, 226) * 2.0**-29
            self.sqrt_a = unsigned(227, 234, 241, 264) * 2.0**-19
            self.t_oe = unsigned(271, 286) * 16
        elif subframe_id == 3:
            self.c_ic = signed(61, 76) * 2.0**-29
            self.omega_0 = signed(77, 84, 91, 114) * 2.0**-31 * GPS_PI
            self.c_is = signed(121, 136) * 2.0**-29
            self.i_0 = signed(137, 144, 151, 174) * 2.0**-31 * GPS_PI
            self.c_rc = signed(181, 196) * 2.0**-5
            self.omega = signed(197, 204, 211, 234) * 2.0**-31 * GPS_PI
            self.omega_dot = signed(241, 264) * 2.0**-43 * GPS_PI
            self.iode_sf3 = unsigned(271, 278)
            self.i_dot = signed(279, 292) * 2.0**-43 * GPS_PI

    def describe(self) -> str:
        """Human-readable listing of all parameters, one per line."""
        sections = (
            (
                ("channelNumber", self.channel_number),
                ("weekNumber", self.week_number),
                ("accuracy", self.accuracy),
                ("health", self.health),
                ("T_GD", self.t_gd),
                ("IODC", self.iodc),
                ("t_oc", self.t_oc),
                ("a_f2", self.a_f2),
                ("a_f1", self.a_f1),
                ("a_f0", self.a_f0),
            ),
            (
                ("IODE_sf2", self.iode_sf2),
                ("C_rs", self.c_rs),
                ("deltan", self.deltan),
                ("M_0", self.m_0),
                ("C_uc", self.c_uc),
                ("e", self.e),
                ("C_us", self.c_us),
                ("sqrtA", self.sqrt_a),
                ("t_oe", self.t_oe),
            ),
            (
                ("C_ic", self.c_ic),
                ("omega_0", self.omega_0),
                ("C_is", self.c_is),
                ("i_0", self.i_0),
                ("C_rc", self.c_rc),
                ("omega", self.omega),
                ("omegaDot", self.omega_dot),
                ("IODE_sf3", self.iode_sf3),
                ("iDot", self.i_dot),
                ("TOW", self.tow),
            ),
        )
        lines: list[str] = []
        for number, fields in enumerate(sections, start=1):
            if number > 1:
                lines.append(f"=========================== case {number} ================")
            lines.extend(f"{name} : {value}" for name, value in fields)
        return "\n".join(lines)