"""Block that turns navigation bits of a channel into decoded ephemeris."""

from __future__ import annotations

from collections.abc import Sequence

from gpsreceiver.blockbase import Block
from gpsreceiver.ephemeris import NAV_BITS, Ephemeris


class EphemeridesDecoder(Block):
    """Decodes the 1501 navigation bits of a channel and publishes the ephemeris.

    Messages on the ``ephemeris`` port are ``(channel, Ephemeris)``.
    """

    def __init__(self) -> None:
        super().__init__("ephemerides", in_ports=("nav_bits",), out_ports=("ephemeris",))

    def handle_nav_bits(self, channel: int, bits: Sequence[int]) -> Ephemeris:
        """Decode ``bits`` (0/1, D30 bit first) for ``channel``, publish and return the result."""
        eph = Ephemeris.from_nav_bits(list(bits)[:NAV_BITS], channel)
        self.publish("ephemeris", channel, eph)
        return eph