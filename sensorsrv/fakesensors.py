"""Simulated sensor readings used when no measurement device is present."""

from __future__ import annotations

import math
import random
from typing import Optional

SINE_PERIOD = 1024


class SimulatedBackend:
    """Produces plausible readings: noisy temperature, sine/cosine ADC, counters."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._counter = 0

    @property
    def counter(self) -> int:
        """Position in the simulated waveform, advanced by each ADC read."""
        return self._counter

    def read_temp(self) -> int:
        """Return a raw RTD value near room temperature."""
        return 800 + self._rng.randrange(10)

    def read_adc(self) -> tuple[int, int]:
        """Return the next (sine, cosine) pair on a 12-bit scale."""
        angle = 2.0 * math.pi * self._counter / SINE_PERIOD
        a0 = int(2048 + 2047 * math.sin(angle))
        a1 = int(2048 + 2047 * math.cos(angle))
        self._counter = (self._counter + 1) % SINE_PERIOD
        return a0, a1

    def read_switches(self) -> int:
        """Return a slowly toggling switch bank."""
        return (self._counter >> 4) & 0xFF

    def read_buttons(self) -> int:
        """Return a momentary press once per thousand waveform steps."""
        return 0x01 if self._counter % 1000 == 0 else 0x00