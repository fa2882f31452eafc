import struct
from collections import deque

import pytest

from sensorsrv.device import (
    MAX31865_CFG_CONT_50HZ,
    MAX31865_CFG_SHUTDOWN,
    REGNUM_ID,
    DeviceError,
    DeviceTimeoutError,
    MeasDevice,
    MonotonicClock,
)


class FakeStream:
    def __init__(self, values=()):
        self.values = deque(values)
        self.writes = []
        self.closed = False

    def write(self, data):
        self.writes.append(struct.unpack("=II", data))
        return len(data)

    def read(self, size):
        if not self.values:
            return b""
        return struct.pack("=II", 0, self.values.popleft())

    def close(self):
        self.closed = True


def test_clock_is_monotonic_and_resets():
    clock = MonotonicClock()
    first = clock.elapsed_us()
    second = clock.elapsed_us()
    assert 0 <= first <= second
    clock.reset()
    assert clock.elapsed_us() <= second + 1_000_000


def test_read_switches():
    stream = FakeStream([0xAB])
    assert MeasDevice(stream).read_switches() == 0xAB
    assert stream.writes == [(REGNUM_ID, 0)]


def test_read_buttons():
    stream = FakeStream([(0x1F << 8) | 0xFF | (0x3 << 13)])
    assert MeasDevice(stream).read_buttons() == 0x1F


def test_read_max_polls_until_ready():
    stream = FakeStream([0, 0, 1, 0x15A])
    assert MeasDevice(stream).read_max(0x01) == 0x5A
    assert stream.writes[0] == (1, 0x01 << 8)
    assert stream.writes[1:4] == [(REGNUM_ID, 1)] * 3
    assert stream.writes[-1] == (REGNUM_ID, 2)


def test_read_max_timeout():
    stream = FakeStream([0] * 1000)
    with pytest.raises(DeviceTimeoutError):
        MeasDevice(stream).read_max(0x01)


def test_write_max_sets_write_bit():
    stream = FakeStream([1])
    MeasDevice(stream).write_max(0x00, 0x1C2)
    assert stream.writes[0] == (1, (0x80 << 8) | 0xC2)


def test_write_max_timeout():
    with pytest.raises(TimeoutError):
        MeasDevice(FakeStream([0] * 1000)).write_max(0x00, 0x00)


def test_read_temp_strips_fault_bit():
    stream = FakeStream([1, 0x40, 1, 0x02])
    assert MeasDevice(stream).read_temp() == 0x2001


def test_init_and_power_down():
    stream = FakeStream([1, 1])
    device = MeasDevice(stream)
    device.init_temp_sensor()
    device.power_down()
    assert stream.writes[0] == (0, 0x022)
    assert stream.writes[1] == (1, (0x80 << 8) | MAX31865_CFG_CONT_50HZ)
    assert stream.writes[-2] == (1, (0x80 << 8) | MAX31865_CFG_SHUTDOWN)


def test_read_adc():
    stream = FakeStream([0, 0, 7, 0x0ABC | (0x0DEF << 16)])
    assert MeasDevice(stream).read_adc() == (0x0ABC, 0x0DEF)
    assert stream.writes == [(4, 0), (REGNUM_ID, 5)]


def test_short_read_raises():
    with pytest.raises(DeviceError):
        MeasDevice(FakeStream()).read_switches()


def test_context_manager_closes():
    stream = FakeStream([3])
    with MeasDevice(stream) as device:
        assert device.read_switches() == 3
    assert stream.closed is True


def test_open_writes_records_to_file(tmp_path):
    path = tmp_path / "meas"
    path.write_bytes(b"")
    with MeasDevice.open(str(path)) as device:
        device.write_register(1, 2)
    assert path.read_bytes() == struct.pack("=II", 1, 2)