"""Tests for aggregate reading statistics."""

import pytest

from safewatt.registry.models import DeviceType
from safewatt.storage.models import ReadingEntry
from safewatt.telemetry.readings import shape_reading
from safewatt.telemetry.stats import compute_stats, summarize


def _entry(device_type: DeviceType, payload: dict) -> ReadingEntry:
    body = shape_reading(device_type, payload).model_dump(by_alias=True, mode="json")
    return ReadingEntry(device_id="D", device_type=device_type.value, payload=body)


def test_summarize_skips_missing_values():
    assert summarize([1.0, None, 3.0]) == {"min": 1.0, "max": 3.0, "avg": 2.0}
    assert summarize([None]) is None


def test_no_readings():
    assert compute_stats([]) == {"vaulter": None, "cirquitiq": None}


def test_vaulter_stats():
    stats = compute_stats(
        [
            _entry(DeviceType.vaulter, {"voltage": 218, "power": 100}),
            _entry(DeviceType.vaulter, {"voltage": 222, "power": "bad"}),
        ]
    )
    assert stats["cirquitiq"] is None
    vaulter = stats["vaulter"]
    assert vaulter["totalReadings"] == 2
    assert vaulter["voltage"] == {"min": 218.0, "max": 222.0, "avg": 220.0}
    assert vaulter["power"] == {"min": 100.0, "max": 100.0, "avg": 100.0}
    assert vaulter["current"] is None


def test_cirquitiq_stats():
    stats = compute_stats(
        [
            _entry(
                DeviceType.cirquitiq,
                {
                    "voltage": 220,
                    "channel1": {"current": 1.0, "power": 200, "energy": 1.5},
                    "totalPower": 200,
                },
            ),
            _entry(
                DeviceType.cirquitiq,
                {
                    "voltage": 220,
                    "channel1": {"current": 2.0, "power": 400, "energy": 0.5},
                    "totalPower": 400,
                },
            ),
        ]
    )
    assert stats["vaulter"] is None
    ciq = stats["cirquitiq"]
    assert ciq["totalReadings"] == 2
    assert ciq["totalPower"]["avg"] == 300.0
    assert ciq["channel1"]["avgCurrent"] == pytest.approx(1.5)
    assert ciq["channel1"]["totalEnergy"] == pytest.approx(2.0)
    assert ciq["channel2"]["current"] is None
    assert ciq["channel2"]["avgPower"] == 0.0


def test_mixed_types_partitioned():
    stats = compute_stats(
        [
            _entry(DeviceType.vaulter, {"voltage": 220}),
            _entry(DeviceType.cirquitiq, {"channel2": {"power": 10}}),
            _entry(DeviceType.vaulter, {"voltage": 230}),
        ]
    )
    assert stats["vaulter"]["totalReadings"] == 2
    assert stats["cirquitiq"]["totalReadings"] == 1
