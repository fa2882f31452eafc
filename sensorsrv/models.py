"""Core data types shared by the sampler and the network server."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import ClassVar

DEFAULT_PORT = 50012


class SensorId(IntEnum):
    """Identifiers of the sampled channels, in wire order."""

    TEMP = 0
    ADC0 = 1
    ADC1 = 2
    SW = 3
    PB = 4


SENSOR_COUNT = len(SensorId)


class SystemMode(Enum):
    """Whether samples come from the measurement device or the simulator."""

    REAL = "real"
    SIM = "sim"


_SAMPLE_STRUCT = struct.Struct("<IIQ")

_NAMES = {
    "TEMP": SensorId.TEMP,
    "ADC0": SensorId.ADC0,
    "ADC1": SensorId.ADC1,
    "SW": SensorId.SW,
    "PB": SensorId.PB,
}


@dataclass(frozen=True)
class SensorSample:
    """One reading of one sensor, timestamped in microseconds."""

    sensor_id: SensorId
    value: int
    timestamp: int

    SIZE: ClassVar[int] = _SAMPLE_STRUCT.size

    def pack(self) -> bytes:
        """Encode as the 16-byte wire record: id, value (u32) and timestamp (u64)."""
        return _SAMPLE_STRUCT.pack(
            int(self.sensor_id),
            self.value & 0xFFFFFFFF,
            self.timestamp & 0xFFFFFFFFFFFFFFFF,
        )

    @classmethod
    def unpack(cls, data: bytes) -> SensorSample:
        """Decode one wire record produced by :meth:`pack`."""
        if len(data) != _SAMPLE_STRUCT.size:
            raise ValueError(
                f"sample record must be {_SAMPLE_STRUCT.size} bytes, got {len(data)}"
            )
        sensor_id, value, timestamp = _SAMPLE_STRUCT.unpack(data)
        return cls(SensorId(sensor_id), value, timestamp)


def sensor_from_name(name: str) -> SensorId:
    """Map a protocol sensor name such as ``ADC0`` to its identifier."""
    try:
        return _NAMES[name]
    except KeyError:
        raise ValueError(f"unknown sensor name: {name!r}") from None