import pytest

from gpsreceiver.ephemeris import GPS_PI, Ephemeris


def _put(subframe, ranges, value):
    width = sum(end - start + 1 for start, end in ranges)
    raw = value & ((1 << width) - 1)
    bits = iter((raw >> (width - 1 - i)) & 1 for i in range(width))
    for start, end in ranges:
        for position in range(start, end + 1):
            subframe[position - 1] = next(bits)


def _subframe(subframe_id, fields):
    subframe = [0] * 300
    _put(subframe, [(50, 52)], subframe_id)
    for ranges, value in fields:
        _put(subframe, ranges, value)
    return subframe


SF1 = [
    ([(61, 70)], 100),
    ([(73, 76)], 3),
    ([(77, 82)], 5),
    ([(197, 204)], -6),
    ([(83, 84), (211, 218)], 677),
    ([(219, 234)], 1000),
    ([(241, 248)], -2),
    ([(249, 264)], -300),
    ([(271, 292)], 12345),
]
SF2 = [
    ([(61, 68)], 45),
    ([(69, 84)], -100),
    ([(91, 106)], 1000),
    ([(107, 114), (121, 144)], -123456789),
    ([(151, 166)], -50),
    ([(167, 174), (181, 204)], 10485760),
    ([(211, 226)], 70),
    ([(227, 234), (241, 264)], 2702 * 2**19 + 12345),
    ([(271, 286)], 2000),
]
SF3 = [
    ([(61, 76)], -3),
    ([(77, 84), (91, 114)], 100000000),
    ([(121, 136)], 4),
    ([(137, 144), (151, 174)], 600000000),
    ([(181, 196)], 7000),
    ([(197, 204), (211, 234)], -900000000),
    ([(241, 264)], -20000),
    ([(271, 278)], 46),
    ([(279, 292)], -100),
]
SF5 = [([(31, 47)], 50000)]


def _nav_bits():
    return (
        [0]
        + _subframe(1, SF1)
        + _subframe(2, SF2)
        + _subframe(3, SF3)
        + _subframe(4, [])
        + _subframe(5, SF5)
    )


def test_subframe_one_fields():
    eph = Ephemeris.from_nav_bits(_nav_bits(), 2)
    assert eph.channel_number == 2
    assert eph.week_number == 100 + 1024
    assert eph.accuracy == 3
    assert eph.health == 5
    assert eph.t_gd == pytest.approx(-6 * 2.0**-31)
    assert eph.iodc == 677
    assert eph.t_oc == 1000 * 16
    assert eph.a_f2 == pytest.approx(-2 * 2.0**-55)
    assert eph.a_f1 == pytest.approx(-300 * 2.0**-43)
    assert eph.a_f0 == pytest.approx(12345 * 2.0**-31)


def test_subframe_two_fields():
    eph = Ephemeris.from_nav_bits(_nav_bits(), 0)
    assert eph.iode_sf2 == 45
    assert eph.c_rs == pytest.approx(-100 * 2.0**-5)
    assert eph.deltan == pytest.approx(1000 * 2.0**-43 * GPS_PI)
    assert eph.m_0 == pytest.approx(-123456789 * 2.0**-31 * GPS_PI)
    assert eph.c_uc == pytest.approx(-50 * 2.0**-29)
    assert eph.e == pytest.approx(10485760 * 2.0**-33)
    assert eph.c_us == pytest.approx(70 * 2.0**-29)
    assert eph.sqrt_a == pytest.approx((2702 * 2**19 + 12345) * 2.0**-19)
    assert eph.t_oe == 2000 * 16


def test_subframe_three_fields():
    eph = Ephemeris.from_nav_bits(_nav_bits(), 0)
    assert eph.c_ic == pytest.approx(-3 * 2.0**-29)
    assert eph.omega_0 == pytest.approx(100000000 * 2.0**-31 * GPS_PI)
    assert eph.c_is == pytest.approx(4 * 2.0**-29)
    assert eph.i_0 == pytest.approx(600000000 * 2.0**-31 * GPS_PI)
    assert eph.c_rc == pytest.approx(7000 * 2.0**-5)
    assert eph.omega == pytest.approx(-900000000 * 2.0**-31 * GPS_PI)
    assert eph.omega_dot == pytest.approx(-20000 * 2.0**-43 * GPS_PI)
    assert eph.iode_sf3 == 46
    assert eph.i_dot == pytest.approx(-100 * 2.0**-43 * GPS_PI)


def test_time_of_week_from_last_subframe():
    eph = Ephemeris.from_nav_bits(_nav_bits(), 0)
    assert eph.tow == 50000 * 6


def test_polarity_correction_after_d30_set():
    plain = Ephemeris.from_nav_bits(_nav_bits(), 1)
    bits = _nav_bits()
    # Word 2 of subframe 1 ends in a one, so word 3 arrives inverted.
    bits[1 + 59] = 1
    for position in range(1 + 60, 1 + 84):
        bits[position] = 1 - bits[position]
    corrected = Ephemeris.from_nav_bits(bits, 1)
    assert corrected == plain


def test_uncorrected_inversion_changes_fields():
    plain = Ephemeris.from_nav_bits(_nav_bits(), 1)
    bits = _nav_bits()
    for position in range(1 + 60, 1 + 84):
        bits[position] = 1 - bits[position]
    assert Ephemeris.from_nav_bits(bits, 1).week_number != plain.week_number


def test_input_not_modified():
    bits = _nav_bits()
    copy = list(bits)
    Ephemeris.from_nav_bits(bits, 0)
    assert bits == copy


def test_too_few_bits_raise():
    with pytest.raises(ValueError):
        Ephemeris.from_nav_bits(_nav_bits()[:-1], 0)


def test_describe_lists_values():
    eph = Ephemeris.from_nav_bits(_nav_bits(), 4)
    text = eph.describe()
    assert f"weekNumber : {100 + 1024}" in text.splitlines()
    assert "channelNumber : 4" in text.splitlines()
    assert f"TOW : {eph.tow}" in text.splitlines()