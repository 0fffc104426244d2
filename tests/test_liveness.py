"""Tests for the liveness monitor."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from safewatt.live.hub import DEVICE_DISCONNECTED
from safewatt.monitor.liveness import LivenessMonitor
from safewatt.registry.models import DeviceType

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def monitor(registry, store, hub) -> LivenessMonitor:
    return LivenessMonitor(registry, store, hub, timeout=60, interval=30)


def _connect(registry, store, device_id: str, seen_at: datetime) -> None:
    registry.upsert(device_id, DeviceType.vaulter, "10.0.0.5", seen_at=seen_at)
    store.open_session(device_id, "VAULTER", "10.0.0.5", start_time=seen_at)


def test_interval_must_be_shorter_than_timeout(registry, store, hub):
    with pytest.raises(ValueError):
        LivenessMonitor(registry, store, hub, timeout=30, interval=30)


def test_silent_device_expired(monitor, registry, store, events):
    _connect(registry, store, "D1", T0)
    now = T0 + timedelta(seconds=61)

    expired = monitor.sweep(now=now)

    assert [d.device_id for d in expired] == ["D1"]
    assert "D1" not in registry
    [session] = store.query_sessions(device_id="D1")
    assert session.active is False
    assert session.end_time == now
    assert events == [
        {"event": DEVICE_DISCONNECTED, "data": {"deviceId": "D1", "deviceType": "VAULTER"}}
    ]


def test_recent_device_kept(monitor, registry, store, events):
    _connect(registry, store, "D1", T0)
    assert monitor.sweep(now=T0 + timedelta(seconds=60)) == []
    assert "D1" in registry
    assert events == []


def test_only_silent_devices_expired(monitor, registry, store):
    _connect(registry, store, "old", T0)
    _connect(registry, store, "fresh", T0 + timedelta(seconds=45))
    expired = monitor.sweep(now=T0 + timedelta(seconds=90))
    assert [d.device_id for d in expired] == ["old"]
    assert [s.device_id for s in store.query_sessions(active=True)] == ["fresh"]


def test_config_kept_after_expiry(monitor, registry, store):
    _connect(registry, store, "D1", T0)
    registry.set_config("D1", "rate", 0.12)
    monitor.sweep(now=T0 + timedelta(minutes=5))
    assert registry.get_config("D1").values == {"rate": 0.12}


def test_notify_without_webhook_is_noop(monitor, registry, store):
    _connect(registry, store, "D1", T0)
    expired = monitor.sweep(now=T0 + timedelta(minutes=5))
    with patch("safewatt.monitor.liveness.dispatch_webhooks") as dispatch:
        monitor.notify(expired)
    dispatch.assert_not_called()


def test_notify_posts_offline_payloads(registry, store, hub):
    monitor = LivenessMonitor(
        registry, store, hub, timeout=60, interval=30, webhook_url="https://example.com/hook"
    )
    _connect(registry, store, "D1", T0)
    expired = monitor.sweep(now=T0 + timedelta(minutes=5))

    with patch("safewatt.monitor.liveness.dispatch_webhooks") as dispatch:
        monitor.notify(expired)

    url, payloads = dispatch.call_args.args
    assert url == "https://example.com/hook"
    assert payloads[0]["device"] == {
        "deviceId": "D1",
        "deviceType": "VAULTER",
        "lastSeen": T0.isoformat(),
    }


@pytest.mark.asyncio
async def test_start_stop(monitor):
    await monitor.start()
    assert monitor._task is not None
    await monitor.stop()
    assert monitor._task.cancelled()
