"""Geodetic helpers: time wrap, Earth rotation, coordinate transforms, troposphere, positioning."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from gpsreceiver.sat_position import SatPosition

logger = logging.getLogger(__name__)

HALF_WEEK = 302400
EARTH_ROTATION_RATE = 7.292115147e-5  # rad/s
WGS84_A = 6378137.0
WGS84_FINV = 298.257223563

# Semi-major axis and flattening of the selectable reference ellipsoids:
# International 1924, International 1967, WGS 72, GRS 80, WGS 84.
# The 1924 entry carries a zero flattening.
_ELLIPSOIDS = (
    (6378388.0, 0.0),
    (6378160.0, 1 / 298.247),
    (6378135.0, 1 / 298.26),
    (6378137.0, 1 / 298.257222101),
    (6378137.0, 1 / 298.257223563),
)


def check_t(time: float) -> float:
    """Wrap a GPS time difference into [-half week, half week]."""
    if time > HALF_WEEK:
        return time - 2 * HALF_WEEK
    if time < -HALF_WEEK:
        return time + 2 * HALF_WEEK
    return time


def e_r_corr(travel_time: float, x_sat: Sequence[float]) -> np.ndarray:
    """Rotate a satellite ECEF position by the Earth rotation during ``travel_time``."""
    omegatau = EARTH_ROTATION_RATE * travel_time
    cos_t, sin_t = math.cos(omegatau), math.sin(omegatau)
    r3 = np.array([[cos_t, sin_t, 0.0], [-sin_t, cos_t, 0.0], [0.0, 0.0, 1.0]])
    return r3 @ np.asarray(x_sat, dtype=float)


def togeod(a: float, finv: float, x: float, y: float, z: float) -> tuple[float, float, float]:
    """Cartesian to geodetic coordinates on an ellipsoid (a, 1/f).

    Returns latitude and longitude in degrees (longitude in [0, 360)) and height
    in the units of ``a``.
    """
    h = 0.0
    tolsq = 1.0e-10
    maxit = 10
    rtd = 180 / math.pi

    esq = 0.0 if finv < 1.0e-20 else (2 - 1 / finv) / finv
    oneesq = 1 - esq

    p = math.sqrt(x * x + y * y)
    dlambda = math.atan2(y, x) * rtd if p > 1.0e-20 else 0.0
    if dlambda < 0:
        dlambda += 360

    r = math.sqrt(p * p + z * z)
    sinphi = z / r if r > 1.0e-20 else 0.0
    dphi = math.asin(sinphi)
    if r < 1.0e-20:
        return dphi, dlambda, h

    h = r - a * (1 - sinphi * sinphi / finv)

    for iteration in range(1, maxit + 1):
        sinphi = math.sin(dphi)
        cosphi = math.cos(dphi)
        n_phi = a / math.sqrt(1 - esq * sinphi * sinphi)
        d_p = p - (n_phi + h) * cosphi
        d_z = z - (n_phi * oneesq + h) * sinphi
        h = h + (sinphi * d_z + cosphi * d_p)
        dphi = dphi + (cosphi * d_z - sinphi * d_p) / (n_phi + h)
        if d_p * d_p + d_z * d_z < tolsq:
            break
        if iteration == maxit:
            logger.warning("togeod did not converge")

    return dphi * rtd, dlambda, h


def topocent(x: Sequence[float], dx: Sequence[float]) -> tuple[float, float, float]:
    """Azimuth and elevation (degrees) and length of ``dx`` seen from ECEF origin ``x``."""
    dtr = math.pi / 180
    origin = np.asarray(x, dtype=float)
    vector = np.asarray(dx, dtype=float)
    phi, lam, _ = togeod(WGS84_A, WGS84_FINV, origin[0], origin[1], origin[2])

    cl = math.cos(lam * dtr)
    sl = math.sin(lam * dtr)
    cb = math.cos(phi * dtr)
    sb = math.sin(phi * dtr)

    f = np.array(
        [
            [-sl, -sb * cl, cb * cl],
            [cl, -sb * sl, cb * sl],
            [0.0, cb, sb],
        ]
    )
    east, north, up = f.T @ vector

    hor_dis = math.sqrt(east * east + north * north)
    if hor_dis < 1.0e-20:
        az, el = 0.0, 90.0
    else:
        az = math.atan2(east, north) / dtr
        el = math.atan2(up, hor_dis) / dtr
    if az < 0:
        az += 360

    distance = math.sqrt(float(vector[0] ** 2 + vector[1] ** 2 + vector[2] ** 2))
    return az, el, distance


def tropo(
    sinel: float,
    hsta: float,
    p: float,
    tkel: float,
    hum: float,
    hp: float,
    htkel: float,
    hhum: float,
) -> float:
    """Tropospheric range correction in metres, to be subtracted from pseudoranges.

    ``sinel`` is the sine of the elevation, heights are in km, pressure in mb,
    temperature in kelvin and humidity in percent.
    """
    a_e = 6378.137
    b0 = 7.839257e-5
    tlapse = -6.5
    tkhum = tkel + tlapse * (hhum - htkel)
    atkel = 7.5 * (tkhum - 273.15) / (237.3 + tkhum - 273.15)
    e0 = 0.0611 * hum * 10**atkel
    tksea = tkel - tlapse * htkel
    em = -978.77 / (2.8704e6 * tlapse * 1.0e-5)
    tkelh = tksea + tlapse * hhum
    e0sea = e0 * (tksea / tkelh) ** (4 * em)
    tkelp = tksea + tlapse * hp
    psea = p * (tksea / tkelp) ** em

    sinel = max(sinel, 0.0)

    total = 0.0
    refsea = 77.624e-6 / tksea
    htop = 1.1385e-5 / refsea
    refsea = refsea * psea
    ref = refsea * ((htop - hsta) / htop) ** 4

    for wet in (False, True):
        if wet:
            refsea = (371900.0e-6 / tksea - 12.92e-6) / tksea
            htop = 1.1385e-5 * (1255 / tksea + 0.05) / refsea
            ref = refsea * e0sea * ((htop - hsta) / htop) ** 4

        rtop = (a_e + htop) ** 2 - (a_e + hsta) ** 2 * (1 - sinel**2)
        rtop = max(rtop, 0.0)
        rtop = math.sqrt(rtop) - (a_e + hsta) * sinel

        a = -sinel / (htop - hsta)
        b = -b0 * (1 - sinel**2) / (htop - hsta)
        rn = [rtop ** (i + 1) for i in range(1, 9)]
        alpha = [
            2 * a,
            2 * a**2 + 4 * b / 3,
            a * (a**2 + 3 * b),
            a**4 / 5 + 2.4 * a**2 * b + 1.2 * b**2,
            2 * a * b * (a**2 + 3 * b) / 3,
            b**2 * (6 * a**2 + 4 * b) * 1.428571e-1,
            0.0,
            0.0,
        ]
        if b**2 > 1.0e-35:
            alpha[6] = a * b**3 / 2
            alpha[7] = b**4 / 9

        dr = rtop + sum(al * r for al, r in zip(alpha, rn))
        total += dr * ref * 1000
    return total


def least_square_pos(
    satpos: Sequence[SatPosition], obs: Sequence[float], c: float
) -> tuple[np.ndarray, list[float], list[float], list[float]]:
    """Least-squares receiver position from satellite positions and pseudoranges.

    Returns (x, y, z, clock bias in metres), elevations and azimuths in degrees,
    and the dilutions of precision (GDOP, PDOP, HDOP, VDOP, TDOP).
    """
    sats = list(satpos)
    observations = [float(o) for o in obs]
    count = len(sats)
    if count != len(observations):
        raise ValueError(
            f"{count} satellite positions but {len(observations)} observations"
        )
    if count < 4:
        raise ValueError(f"at least 4 satellites are needed, got {count}")

    dtr = math.pi / 180
    pos = np.zeros(4)
    design = np.zeros((count, 4))
    omc = np.zeros(count)
    el = [0.0] * count
    az = [0.0] * count

    for iteration in range(7):
        for i, sat in enumerate(sats):
            x = np.array([sat.pos1, sat.pos2, sat.pos3], dtype=float)
            if iteration == 0:
                trop = 2.0
                rot_x = x
            else:
                rho2 = float(np.sum((x - pos[:3]) ** 2))
                travel_time = math.sqrt(rho2) / c
                rot_x = e_r_corr(travel_time, x)
                az[i], el[i], _ = topocent(pos[:3], rot_x - pos[:3])
                trop = tropo(math.sin(el[i] * dtr), 0.0, 1013.0, 293.0, 50.0, 0.0, 0.0, 0.0)
            delta = rot_x - pos[:3]
            omc[i] = observations[i] - float(np.linalg.norm(delta)) - pos[3] - trop
            design[i, :3] = -delta / observations[i]
            design[i, 3] = 1.0
        correction, *_ = np.linalg.lstsq(design, omc, rcond=None)
        pos = pos + correction

    q = np.linalg.inv(design.T @ design)
    diagonal_sum = float(q[0, 0] + q[1, 1] + q[2, 2] + q[3, 3])
    dop = [
        math.sqrt(diagonal_sum),
        math.sqrt(q[0, 0] + q[1, 1] + q[2, 2]),
        math.sqrt(q[0, 0] + q[1, 1]),
        math.sqrt(q[2, 2]),
        math.sqrt(q[3, 3]),
    ]
    return pos, el, az, dop


def cart2geo(x: float, y: float, z: float, index: int) -> tuple[float, float, float]:
    """Cartesian to geographic (lat, lon in degrees, height) on ellipsoid 1..5.

    1: International 1924, 2: International 1967, 3: WGS 72, 4: GRS 80, 5: WGS 84.
    """
    if not 1 <= index <= len(_ELLIPSOIDS):
        raise ValueError(f"ellipsoid index must be 1..{len(_ELLIPSOIDS)}, got {index}")
    a_val, f_val = _ELLIPSOIDS[index - 1]
    a = np.float64(a_val)
    f = np.float64(f_val)
    xf, yf, zf = np.float64(x), np.float64(y), np.float64(z)

    with np.errstate(all="ignore"):
        lam = np.arctan2(yf, xf)
        ex2 = (2 - f) * f / (1 - f) ** 2
        c = a * np.sqrt(1 + ex2)
        p = np.sqrt(xf * xf + yf * yf)
        phi = np.arctan(zf / (p * (1 - (2 - f)) * f))

        h = np.float64(0.1)
        oldh = np.float64(0.0)
        iterations = 0
        while abs(h - oldh) > 1.0e-12:
            oldh = h
            n = c / np.sqrt(1 + ex2 * np.cos(phi) ** 2)
            phi = np.arctan(zf / (p * (1 - (2 - f) * f * n / (n + h))))
            h = p / np.cos(phi) - n
            iterations += 1
            if iterations > 100:
                logger.warning("failed to approximate h with desired precision")
                break

    return float(phi * 180 / math.pi), float(lam * 180 / math.pi), float(h)


def find_utm_zone(latitude: float, longitude: float) -> int:
    """UTM zone number for a position given in degrees."""
    if longitude > 180 or longitude < -180:
        raise ValueError("longitude value exceeds limits (-180:180)")
    if latitude > 84 or latitude < -80:
        raise ValueError("latitude value exceeds limits (-80:84)")

    zone = math.trunc((180 + longitude) / 6) + 1

    if latitude > 72:
        if 0 <= longitude < 9:
            zone = 31
        elif 9 <= longitude < 21:
            zone = 33
        elif 21 <= longitude < 33:
            zone = 35
        elif 33 <= longitude < 42:
            zone = 37
    elif 56 <= latitude < 64:
        if 3 <= longitude < 12:
            zone = 32
    return zone