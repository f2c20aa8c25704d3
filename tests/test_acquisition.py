import numpy as np
import pytest

from gpsreceiver.acq_results import AcqResults
from gpsreceiver.acquisition import Acquisition
from gpsreceiver.ca_code import make_complex_ca_vector

SAMPLE_FREQ = 1.0e6


def _collect(block):
    messages = []
    block.subscribe("acquisition", lambda key, value: messages.append((key, value)))
    return messages


@pytest.fixture(scope="module")
def strong_prn5():
    code = make_complex_ca_vector(1000, 5).real
    signal = np.tile(code, 3).astype(np.complex64)
    block = Acquisition(SAMPLE_FREQ, 0.0, 1)
    messages = _collect(block)
    block.handle_data_vector(0, signal)
    return block, messages


def test_strong_signal_is_assigned_to_free_channel(strong_prn5):
    block, messages = strong_prn5
    keys = [key for key, _ in messages]
    assert keys == ["acq_result"]
    result = messages[0][1]
    assert result.prn == 5
    assert result.channel_number == 0
    assert result.peak_metric > 2.5


def test_channels_record_assigned_prn(strong_prn5):
    block, _ = strong_prn5
    assert block.channels == (5,)


def test_unknown_requesting_prn_triggers_restart():
    block = Acquisition(SAMPLE_FREQ, 0.0, 1)
    messages = _collect(block)
    block.handle_data_vector(7, np.zeros(2000, dtype=np.complex64))
    assert [key for key, _ in messages] == ["acq_result", "acq_restart"]
    for _, value in messages:
        assert value == AcqResults(prn=7)
    assert block.channels == (0,)


def test_silent_signal_assigns_nothing():
    block = Acquisition(SAMPLE_FREQ, 0.0, 2)
    messages = _collect(block)
    block.handle_data_vector(0, np.zeros(2000, dtype=np.complex64))
    assert [key for key, _ in messages] == ["acq_result", "acq_restart"]
    assert messages[0][1].prn == 0
    assert messages[0][1].channel_number == -1
    assert block.channels == (0, 0)


def test_short_signal_rejected():
    block = Acquisition(SAMPLE_FREQ, 0.0, 1)
    with pytest.raises(ValueError):
        block.handle_data_vector(0, np.zeros(10, dtype=np.complex64))


def test_invalid_construction():
    with pytest.raises(ValueError):
        Acquisition(0.0, 0.0, 1)
    with pytest.raises(ValueError):
        Acquisition(SAMPLE_FREQ, 0.0, -1)


def test_samples_per_code_matches_one_millisecond():
    block = Acquisition(SAMPLE_FREQ, 0.0, 1)
    assert block.samples_per_code * 1000 == SAMPLE_FREQ