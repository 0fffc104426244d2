"""Tests for simulated telemetry."""

from unittest.mock import MagicMock

import pytest

from safewatt.registry.models import DeviceType
from safewatt.telemetry.readings import detect_type
from safewatt.telemetry.simulator import (
    SimulatedFleet,
    generate_cirquitiq_payload,
    generate_payload,
    generate_vaulter_payload,
)


def test_vaulter_payload_ranges():
    for _ in range(50):
        payload = generate_vaulter_payload()
        assert 215 <= payload["voltage"] <= 225
        assert 0.5 <= payload["current"] <= 2.5
        assert payload["state"] == "MONITOR"
        assert isinstance(payload["ssrState"], bool)
        assert detect_type(payload, payload["deviceType"]) == DeviceType.vaulter


def test_cirquitiq_payload_shape():
    payload = generate_cirquitiq_payload()
    assert set(payload["channel1"]) == {"current", "power", "energy", "cost", "relayState"}
    assert payload["totalPower"] == pytest.approx(
        payload["channel1"]["power"] + payload["channel2"]["power"], abs=0.1
    )
    assert detect_type(payload) == DeviceType.cirquitiq


def test_generate_payload_dispatch():
    assert generate_payload(DeviceType.cirquitiq)["deviceType"] == "CIRQUITIQ"
    assert generate_payload(DeviceType.vaulter)["deviceType"] == "VAULTER"


def test_fleet_tick_feeds_pipeline():
    pipeline = MagicMock()
    fleet = SimulatedFleet(pipeline, [("A", "VAULTER"), ("B", "CIRQUITIQ")], interval=5)

    assert fleet.tick() == 2
    pipeline.ingest_simulated.assert_any_call("A", "VAULTER", count=1)
    pipeline.ingest_simulated.assert_any_call("B", "CIRQUITIQ", count=1)


def test_fleet_registers_simulated_devices(pipeline, registry):
    fleet = SimulatedFleet(pipeline, [("SIM_V", "VAULTER"), ("SIM_C", "CIRQUITIQ")])
    fleet.tick()
    assert registry.get("SIM_V").is_simulated is True
    assert registry.get("SIM_C").device_type == DeviceType.cirquitiq


@pytest.mark.asyncio
async def test_fleet_start_stop():
    fleet = SimulatedFleet(MagicMock(), [], interval=1)
    await fleet.start()
    await fleet.stop()
    assert fleet._running is False
