import pytest

from gpsreceiver.blockbase import Block, Tag


def test_publish_reaches_subscribers_in_order():
    block = Block("demo", out_ports=["out"])
    received = []
    block.subscribe("out", lambda k, v: received.append(("first", k, v)))
    block.subscribe("out", lambda k, v: received.append(("second", k, v)))
    block.publish("out", "acq_result", 7)
    assert received == [("first", "acq_result", 7), ("second", "acq_result", 7)]


def test_publish_without_subscribers_delivers_nothing():
    block = Block("demo", out_ports=["out", "other"])
    received = []
    block.subscribe("other", lambda k, v: received.append(v))
    block.publish("out", "key", 1)
    assert received == []


def test_unknown_port_raises():
    block = Block("demo", out_ports=["out"])
    with pytest.raises(ValueError):
        block.subscribe("missing", lambda k, v: None)
    with pytest.raises(ValueError):
        block.publish("missing", "key", 1)


def test_block_starts_with_empty_state():
    block = Block("demo", in_ports=["in"], out_ports=["out"])
    assert block.out_ports == ("out",)
    assert block.in_ports == ("in",)
    assert block.output_tags == []
    assert (block.items_read, block.items_written) == (0, 0)


def test_tag_fields_and_equality():
    tag = Tag(offset=3, key="5", value=42)
    assert tag == Tag(3, "5", 42)
    assert Tag(1, "0").value == 0