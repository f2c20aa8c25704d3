"""Satellite ECEF position and clock correction from broadcast ephemeris."""

from __future__ import annotations

import math
from dataclasses import dataclass

from gpsreceiver.ephemeris import GPS_PI, Ephemeris
from gpsreceiver.geo import check_t

OMEGAE_DOT = 7.2921151467e-5  # Earth rotation rate, rad/s
GM = 3.986005e14  # Earth gravitational constant, m^3/s^2
F_REL = -4.442807633e-10  # relativistic constant, s/m^(1/2)


@dataclass
class SatPosition:
    """ECEF satellite position in metres and satellite clock correction in seconds."""

    pos1: float = 0.0
    pos2: float = 0.0
    pos3: float = 0.0
    sat_clk_corr: float = 0.0
    is_active: bool = False

    @classmethod
    def from_ephemeris(cls, transmit_time: float, eph: Ephemeris) -> SatPosition:
        """Compute the position at ``transmit_time``; inactive if the ephemeris has no channel."""
        if eph.channel_number == -1:
            return cls()

        two_pi = 2 * GPS_PI
        dt = check_t(transmit_time - eph.t_oc)
        clock = (eph.a_f2 * dt + eph.a_f1) * dt + eph.a_f0 - eph.t_gd
        time = transmit_time - clock

        a = eph.sqrt_a * eph.sqrt_a
        tk = check_t(time - eph.t_oe)
        n0 = math.sqrt(GM / a**3)
        n = n0 + eph.deltan

        mean_anomaly = math.fmod(eph.m_0 + n * tk + two_pi, two_pi)

        ecc_anomaly = mean_anomaly
        for _ in range(10):
            previous = ecc_anomaly
            ecc_anomaly = mean_anomaly + eph.e * math.sin(ecc_anomaly)
            if abs(math.fmod(ecc_anomaly - previous, two_pi)) < 1.0e-12:
                break
        ecc_anomaly = math.fmod(ecc_anomaly + two_pi, two_pi)

        dtr = F_REL * eph.e * eph.sqrt_a * math.sin(ecc_anomaly)
        nu = math.atan2(
            math.sqrt(1 - eph.e**2) * math.sin(ecc_anomaly), math.cos(ecc_anomaly) - eph.e
        )

        phi = math.fmod(nu + eph.omega, two_pi)
        cos2, sin2 = math.cos(2 * phi), math.sin(2 * phi)
        u = phi + eph.c_uc * cos2 + eph.c_us * sin2
        r = a * (1 - eph.e * math.cos(ecc_anomaly)) + eph.c_rc * cos2 + eph.c_rs * sin2
        i = eph.i_0 + eph.i_dot * tk + eph.c_ic * cos2 + eph.c_is * sin2

        node = eph.omega_0 + (eph.omega_dot - OMEGAE_DOT) * tk - OMEGAE_DOT * eph.t_oe
        node = math.fmod(node + two_pi, two_pi)

        return cls(
            pos1=math.cos(u) * r * math.cos(node) - math.sin(u) * r * math.cos(i) * math.sin(node),
            pos2=math.cos(u) * r * math.sin(node) + math.sin(u) * r * math.cos(i) * math.cos(node),
            pos3=math.sin(u) * r * math.sin(i),
            sat_clk_corr=(eph.a_f2 * dt + eph.a_f1) * dt + eph.a_f0 - eph.t_gd + dtr,
            is_active=True,
        )