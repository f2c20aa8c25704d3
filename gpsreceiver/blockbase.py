"""Minimal message-passing block infrastructure shared by the receiver blocks."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

MessageHandler = Callable[[Any, Any], None]


@dataclass
class Tag:
    """A key/value annotation attached to one item of a sample stream."""

    offset: int
    key: str
    value: int = 0


class Block:
    """Base for processing blocks: named output ports that deliver (key, value) messages."""

    def __init__(
        self,
        name: str,
        in_ports: Iterable[str] = (),
        out_ports: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.in_ports = tuple(in_ports)
        self._subscribers: dict[str, list[MessageHandler]] = {port: [] for port in out_ports}
        self.output_tags: list[Tag] = []
        self.items_read = 0
        self.items_written = 0

    @property
    def out_ports(self) -> tuple[str, ...]:
        return tuple(self._subscribers)

    def _check_port(self, port: str) -> list[MessageHandler]:
        try:
            return self._subscribers[port]
        except KeyError:
            raise ValueError(f"block {self.name!r} has no output port {port!r}") from None

    def subscribe(self, port: str, callback: MessageHandler) -> None:
        """Register a callback that receives every message published on ``port``."""
        self._check_port(port).append(callback)

    def publish(self, port: str, key: Any, value: Any) -> None:
        """Deliver a (key, value) message to all subscribers of ``port``, in order."""
        for callback in list(self._check_port(port)):
            callback(key, value)