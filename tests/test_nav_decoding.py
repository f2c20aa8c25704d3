import math

import numpy as np

from gpsreceiver.blockbase import Tag
from gpsreceiver.nav_decoding import NavDecoder

_TAPS = (
    (1, 3, 4, 5, 7, 8, 12, 13, 14, 15, 16, 19, 20, 22, 25),
    (2, 4, 5, 6, 8, 9, 13, 14, 15, 16, 17, 20, 21, 23, 26),
    (1, 3, 5, 6, 7, 9, 10, 14, 15, 16, 17, 18, 21, 22, 24),
    (2, 4, 6, 7, 8, 10, 11, 15, 16, 17, 18, 19, 22, 23, 25),
    (2, 3, 5, 7, 8, 9, 11, 12, 16, 17, 18, 19, 20, 23, 24, 26),
    (1, 5, 7, 8, 10, 11, 12, 13, 15, 17, 21, 24, 25, 26),
)
_PREAMBLE = (1, -1, -1, -1, 1, -1, 1, 1)


def _encode_word(d29, d30, data):
    ext = (0, d29, d30, *data)
    parity = [math.prod(ext[i] for i in taps) for taps in _TAPS]
    sent = list(data) if d30 == 1 else [-b for b in data]
    return sent + parity


def _nav_bit_stream(subframes=5):
    bits = [1, 1]
    for sf in range(subframes):
        for w in range(10):
            if w == 0:
                data = [*_PREAMBLE] + [1] * 16
            elif w == 1:
                data = [1 if k % 2 else -1 for k in range(24)]
            else:
                data = [1 if (k * 5 + w + sf) % 3 else -1 for k in range(24)]
            bits += _encode_word(bits[-2], bits[-1], data)
    return bits


def _samples(bits):
    return [b for b in bits for _ in range(20)]


def _collect(decoder):
    received = []
    decoder.subscribe("nav_bits", lambda key, value: received.append((key, value)))
    return received


def test_publishes_nav_bits_of_five_subframes():
    bits = _nav_bit_stream()
    samples = _samples(bits)
    decoder = NavDecoder(4, 4e6)
    received = _collect(decoder)
    out = decoder.work(samples, [Tag(i, "5") for i in range(len(samples))])
    assert np.array_equal(out, np.asarray(samples, dtype=np.float32))
    assert len(received) == 1
    channel, nav_bits = received[0]
    assert channel == 4
    assert len(nav_bits) == 1501
    assert nav_bits == [1 if b > 0 else 0 for b in bits[1:]]
    assert decoder.prn == 5
    assert decoder.gather_nav_bits is False


def test_chunked_input_gives_same_bits():
    samples = _samples(_nav_bit_stream())
    tags = [Tag(i, "5") for i in range(len(samples))]

    whole = NavDecoder(0, 4e6)
    whole_received = _collect(whole)
    whole.work(samples, tags)

    chunked = NavDecoder(0, 4e6)
    chunked_received = _collect(chunked)
    for start in range(0, len(samples), 7000):
        chunked.work(samples[start : start + 7000], tags[start : start + 7000])
    assert chunked_received == whole_received
    assert chunked.items_read == len(samples)


def test_no_tags_means_no_gathering():
    samples = _samples(_nav_bit_stream())
    decoder = NavDecoder(0, 4e6)
    received = _collect(decoder)
    out = decoder.work(samples)
    assert received == []
    assert decoder.gather_nav_bits is False
    assert out.size == len(samples)


def test_zero_sample_restarts_extraction():
    samples = _samples(_nav_bit_stream())
    samples[20000] = 0
    decoder = NavDecoder(0, 4e6)
    received = _collect(decoder)
    decoder.work(samples, [Tag(i, "5") for i in range(len(samples))])
    assert received == []
    assert decoder.gather_nav_bits is True


def test_stream_without_preamble_publishes_nothing():
    samples = [1.0] * 30040
    decoder = NavDecoder(0, 4e6)
    received = _collect(decoder)
    decoder.work(samples, [Tag(i, "5") for i in range(len(samples))])
    assert received == []
    assert decoder.subframe_start == 0


def test_unparsable_tag_is_treated_as_no_prn():
    samples = [1.0] * 100
    decoder = NavDecoder(0, 4e6)
    decoder.work(samples, [Tag(i, "abc") for i in range(len(samples))])
    assert decoder.prn == 0
    assert decoder.gather_nav_bits is False


def test_tags_are_propagated():
    decoder = NavDecoder(0, 4e6)
    tags = [Tag(i, "0", i) for i in range(10)]
    decoder.work([1.0] * 10, tags)
    assert decoder.output_tags == tags