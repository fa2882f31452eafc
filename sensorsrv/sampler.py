"""Periodic sampling of every sensor channel into the shared ring buffer."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol

from sensorsrv.device import DeviceError, MeasDevice
from sensorsrv.fakesensors import SimulatedBackend
from sensorsrv.models import SensorId, SensorSample, SystemMode
from sensorsrv.ringbuffer import RingBuffer

log = logging.getLogger(__name__)

DEFAULT_RATE_HZ = 300
_US_PER_SECOND = 1_000_000
_IDLE_SLEEP_SECONDS = 50e-6


class Clock(Protocol):
    def elapsed_us(self) -> int: ...


@dataclass
class SensorConfig:
    """Sampling schedule of one sensor; guard changes with ``lock``."""

    sensor_id: SensorId
    rate_hz: int
    period_us: int
    next_deadline: int
    lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )


class SensorConfigTable:
    """The sampling schedule of all sensors, shared by sampler and server."""

    def __init__(self, clock: Clock, default_rate: int = DEFAULT_RATE_HZ) -> None:
        if default_rate <= 0:
            raise ValueError("sampling rate must be positive")
        self._clock = clock
        now = clock.elapsed_us()
        self._configs = [
            SensorConfig(sid, default_rate, _US_PER_SECOND // default_rate, now)
            for sid in SensorId
        ]

    def __getitem__(self, sensor_id: int) -> SensorConfig:
        return self._configs[SensorId(sensor_id)]

    def __iter__(self) -> Iterator[SensorConfig]:
        return iter(self._configs)

    def __len__(self) -> int:
        return len(self._configs)

    def configure(self, sensor_id: int, rate_hz: int) -> None:
        """Change a sensor's rate; its next sample is due one new period from now."""
        if rate_hz <= 0:
            raise ValueError("sampling rate must be positive")
        config = self[sensor_id]
        with config.lock:
            config.rate_hz = rate_hz
            config.period_us = _US_PER_SECOND // rate_hz
            config.next_deadline = self._clock.elapsed_us() + config.period_us

    def rates(self) -> list[tuple[SensorId, int]]:
        """Return (sensor id, rate in Hz) for every sensor, in id order."""
        result = []
        for config in self._configs:
            with config.lock:
                result.append((config.sensor_id, config.rate_hz))
        return result


class SensorSampler:
    """Reads each sensor when its deadline passes and queues the sample."""

    def __init__(
        self,
        buffer: RingBuffer,
        table: SensorConfigTable,
        clock: Clock,
        backend: Optional[SimulatedBackend] = None,
        device: Optional[MeasDevice] = None,
    ) -> None:
        self._buffer = buffer
        self._table = table
        self._clock = clock
        self._backend = backend if backend is not None else SimulatedBackend()
        self._device = device
        self.mode = SystemMode.REAL if device is not None else SystemMode.SIM
        self._last_adc_time = 0
        self._adc_cache = (0, 0)

    @property
    def _source(self):
        return self._device if self.mode is SystemMode.REAL else self._backend

    def _read(self, sensor_id: SensorId, now: int) -> int:
        source = self._source
        if sensor_id is SensorId.TEMP:
            return source.read_temp()
        if sensor_id in (SensorId.ADC0, SensorId.ADC1):
            # Both channels come from one conversion per time step.
            if self._last_adc_time != now:
                self._adc_cache = source.read_adc()
                self._last_adc_time = now
            return self._adc_cache[0 if sensor_id is SensorId.ADC0 else 1]
        if sensor_id is SensorId.SW:
            return source.read_switches()
        return source.read_buttons()

    def poll(self) -> list[SensorSample]:
        """Sample every sensor whose deadline has passed; return the new samples."""
        now = self._clock.elapsed_us()
        produced = []
        for config in self._table:
            with config.lock:
                if now < config.next_deadline:
                    continue
                try:
                    value = self._read(config.sensor_id, now)
                except DeviceError as exc:
                    log.warning("reading %s failed: %s", config.sensor_id.name, exc)
                else:
                    sample = SensorSample(config.sensor_id, value, now)
                    self._buffer.add(sample)
                    produced.append(sample)
                config.next_deadline += config.period_us
        return produced

    def run(self, running: threading.Event) -> None:
        """Poll until ``running`` is cleared, then power the device down."""
        log.info("Sensor thread initialized correctly...")
        if self.mode is SystemMode.REAL:
            self._device.init_temp_sensor()
            log.info("MAX31865 initialized in continuous mode...")
        try:
            while running.is_set():
                self.poll()
                time.sleep(_IDLE_SLEEP_SECONDS)
        finally:
            if self.mode is SystemMode.REAL:
                self._device.power_down()
                self._device.close()
            log.info("Sensor thread finished...")