"""Thread-safe bounded sample queue that overwrites its oldest entries."""

from __future__ import annotations

import threading
from collections import deque
from typing import Optional

from sensorsrv.models import SensorSample

RING_BUF_SIZE = 2048


class RingBuffer:
    """FIFO of samples; when full, adding drops the oldest sample."""

    def __init__(self, capacity: int = RING_BUF_SIZE) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._lock = threading.Lock()
        self._samples: deque[SensorSample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def add(self, sample: SensorSample) -> None:
        """Append a sample, discarding the oldest one if the buffer is full."""
        with self._lock:
            self._samples.append(sample)

    def pop(self) -> SensorSample:
        """Remove and return the oldest sample; raise IndexError when empty."""
        with self._lock:
            if not self._samples:
                raise IndexError("pop from empty ring buffer")
            return self._samples.popleft()

    def drain(self, limit: Optional[int] = None) -> list[SensorSample]:
        """Remove and return up to ``limit`` oldest samples (all if None)."""
        with self._lock:
            count = len(self._samples) if limit is None else min(limit, len(self._samples))
            return [self._samples.popleft() for _ in range(max(count, 0))]

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)