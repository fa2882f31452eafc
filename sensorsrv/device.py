"""Access to the measurement device: register I/O, RTD sensor, ADC and GPIO."""

from __future__ import annotations

import struct
import time
from typing import BinaryIO

REGNUM_ID = 0x0FF
NREGS = 8
TIMER100MS = 0x009896FF
MBINT_ENABLE = 0x80000000
MBINT_ACKN = 0x40000000

MAX31865_REG_CONFIG = 0x00
MAX31865_REG_RTD_MSB = 0x01
MAX31865_REG_RTD_LSB = 0x02

MAX31865_CFG_CONT_50HZ = 0xC2
MAX31865_CFG_CONT_60HZ = 0xC0
MAX31865_CFG_SHUTDOWN = 0x00

_MEAS_OBJ = struct.Struct("=II")
_SPI_POLL_LIMIT = 1000
_ADC_POLL_LIMIT = 10_000_000
_SETTLE_SECONDS = 0.010


class DeviceError(Exception):
    """The device returned an incomplete response."""


class DeviceTimeoutError(DeviceError, TimeoutError):
    """The SPI interface never reported ready."""


class MonotonicClock:
    """Microseconds elapsed since construction or the last reset."""

    def __init__(self) -> None:
        self._start_us = 0
        self.reset()

    @staticmethod
    def _now_us() -> int:
        return time.monotonic_ns() // 1000

    def reset(self) -> None:
        self._start_us = self._now_us()

    def elapsed_us(self) -> int:
        return self._now_us() - self._start_us


class MeasDevice:
    """Register-level driver over a binary stream of (rnum, rvalue) records."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    @classmethod
    def open(cls, path: str) -> MeasDevice:
        return cls(open(path, "r+b", buffering=0))

    def __enter__(self) -> MeasDevice:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._stream.close()

    def write_register(self, rnum: int, rvalue: int) -> None:
        self._stream.write(_MEAS_OBJ.pack(rnum & 0xFFFFFFFF, rvalue & 0xFFFFFFFF))

    def read_register(self) -> int:
        """Read one response record and return its value."""
        data = self._stream.read(_MEAS_OBJ.size)
        if data is None or len(data) != _MEAS_OBJ.size:
            raise DeviceError("short read from measurement device")
        return _MEAS_OBJ.unpack(data)[1]

    def _wait_spi_ready(self, operation: str) -> None:
        for _ in range(_SPI_POLL_LIMIT):
            self.write_register(REGNUM_ID, 1)
            if self.read_register() & 0x01:
                return
        raise DeviceTimeoutError(f"{operation} timeout")

    def read_max(self, mreg: int) -> int:
        """Read one 8-bit register of the RTD converter over SPI."""
        self.write_register(1, mreg << 8)
        self._wait_spi_ready("MaxRead")
        self.write_register(REGNUM_ID, 2)
        return self.read_register() & 0x0FF

    def write_max(self, mreg: int, value: int) -> None:
        """Write one 8-bit register of the RTD converter over SPI."""
        self.write_register(1, ((mreg | 0x080) << 8) | (value & 0x0FF))
        self._wait_spi_ready("MaxWrite")

    def init_temp_sensor(self) -> None:
        """Configure the RTD converter for continuous 50 Hz conversion."""
        self.write_register(0, 0x022)
        self.write_max(MAX31865_REG_CONFIG, MAX31865_CFG_CONT_50HZ)
        time.sleep(_SETTLE_SECONDS)

    def read_temp(self) -> int:
        """Return the raw 15-bit RTD value with the fault bit stripped."""
        msb = self.read_max(MAX31865_REG_RTD_MSB)
        lsb = self.read_max(MAX31865_REG_RTD_LSB)
        return (((msb << 8) | lsb) & 0xFFFF) >> 1

    def power_down(self) -> None:
        self.write_max(MAX31865_REG_CONFIG, MAX31865_CFG_SHUTDOWN)

    def read_adc(self) -> tuple[int, int]:
        """Run a conversion and return both 12-bit channel values."""
        self.write_register(4, 0)
        for _ in range(_ADC_POLL_LIMIT):
            if self.read_register() != 0:
                break
        self.write_register(REGNUM_ID, 5)
        raw = self.read_register()
        return raw & 0x0FFF, raw >> 16

    def read_switches(self) -> int:
        self.write_register(REGNUM_ID, 0)
        return self.read_register() & 0xFF

    def read_buttons(self) -> int:
        self.write_register(REGNUM_ID, 0)
        return (self.read_register() >> 8) & 0x1F