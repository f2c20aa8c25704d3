"""Result of acquiring one satellite signal."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class AcqResults:
    """Acquisition outcome: PRN, carrier frequency, code phase and peak metric."""

    prn: int = 0
    carr_freq: float = 0.0
    code_phase: float = 0.0
    peak_metric: float = 0.0
    channel_number: int = -1