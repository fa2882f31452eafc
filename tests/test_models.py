import struct

import pytest

from sensorsrv.models import (
    SENSOR_COUNT,
    SensorId,
    SensorSample,
    sensor_from_name,
)


def test_sensor_ids_follow_wire_order():
    names = ["TEMP", "ADC0", "ADC1", "SW", "PB"]
    assert [int(sensor_from_name(name)) for name in names] == [0, 1, 2, 3, 4]
    assert SENSOR_COUNT == len(names)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("TEMP", SensorId.TEMP),
        ("ADC0", SensorId.ADC0),
        ("ADC1", SensorId.ADC1),
        ("SW", SensorId.SW),
        ("PB", SensorId.PB),
    ],
)
def test_sensor_from_name(name, expected):
    assert sensor_from_name(name) is expected


@pytest.mark.parametrize("name", ["temp", "ADC2", "", "TEMP "])
def test_sensor_from_name_rejects_unknown(name):
    with pytest.raises(ValueError):
        sensor_from_name(name)


def test_pack_layout():
    sample = SensorSample(SensorId.ADC1, 7, 1)
    assert sample.pack() == struct.pack("<IIQ", 2, 7, 1)
    assert len(sample.pack()) == SensorSample.SIZE == 16


def test_round_trip():
    sample = SensorSample(SensorId.PB, 4095, 123456789012)
    assert SensorSample.unpack(sample.pack()) == sample


def test_unpack_returns_enum_member():
    sample = SensorSample.unpack(SensorSample(SensorId.SW, 3, 9).pack())
    assert sample.sensor_id is SensorId.SW


def test_unpack_wrong_length():
    with pytest.raises(ValueError):
        SensorSample.unpack(b"\x00" * 15)


def test_unpack_unknown_sensor():
    with pytest.raises(ValueError):
        SensorSample.unpack(struct.pack("<IIQ", 9, 0, 0))