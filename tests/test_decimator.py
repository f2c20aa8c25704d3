import numpy as np
import pytest

from gpsreceiver.blockbase import Tag
from gpsreceiver.decimator import Decimator


def test_output_length_follows_decimation():
    block = Decimator(4000.0)
    out = block.work(np.zeros(12))
    assert len(out) * block.decimation == 12
    assert block.items_read == 12
    assert block.items_written == len(out)


def test_signs_and_positions_without_decimation():
    block = Decimator(1000.0)
    out = block.work([2.0, 0.0, -3.0])
    assert out.tolist() == [1.0, 0.0, -1.0]
    assert [tag.value for tag in block.output_tags] == [1, 0, 3]
    assert [tag.key for tag in block.output_tags] == ["0", "0", "0"]


def test_outputs_are_only_unit_signs():
    block = Decimator(3000.0)
    rng = np.random.default_rng(1)
    out = block.work(rng.normal(size=300))
    assert set(out.tolist()) <= {-1.0, 0.0, 1.0}


def test_extra_bits_are_queued_for_later_outputs():
    block = Decimator(2000.0)
    first = block.work([5.0, -5.0, 0.0, 0.0])
    assert first.tolist() == [1.0, -1.0]
    assert [tag.value for tag in block.output_tags] == [1, 2]


def test_tag_keys_passed_through_when_counts_match():
    block = Decimator(2000.0)
    tags = [Tag(0, "7"), Tag(2, "7")]
    block.work([1.0, 0.0, 1.0, 0.0], tags)
    assert [tag.key for tag in block.output_tags] == ["7", "7"]


def test_offsets_continue_across_calls():
    block = Decimator(1000.0)
    block.work([1.0, 1.0])
    block.work([1.0])
    assert [tag.offset for tag in block.output_tags] == [0, 1, 2]
    assert block.output_tags[2].value == block.items_read


def test_bad_length_rejected():
    block = Decimator(4000.0)
    with pytest.raises(ValueError):
        block.work(np.zeros(5))


def test_bad_sample_freq_rejected():
    with pytest.raises(ValueError):
        Decimator(0.0)