"""Aggregate statistics over stored readings, partitioned by device type."""

from collections.abc import Iterable
from typing import Any

from safewatt.registry.models import DeviceType
from safewatt.storage.models import ReadingEntry
from safewatt.telemetry.readings import CirquitIQReading, VaulterReading, load_reading


def summarize(values: Iterable[float | None]) -> dict[str, float] | None:
    """min/max/avg over the present values, or None if there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return {
        "min": min(present),
        "max": max(present),
        "avg": sum(present) / len(present),
    }


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _vaulter_stats(readings: list[VaulterReading]) -> dict[str, Any] | None:
    if not readings:
        return None
    return {
        "totalReadings": len(readings),
        "voltage": summarize(r.voltage for r in readings),
        "current": summarize(r.current for r in readings),
        "power": summarize(r.power for r in readings),
        "energy": summarize(r.energy for r in readings),
    }


def _channel_stats(readings: list[CirquitIQReading], name: str) -> dict[str, Any]:
    channels = [getattr(r, name) for r in readings]
    return {
        "current": summarize(c.current for c in channels),
        "power": summarize(c.power for c in channels),
        "avgCurrent": _mean([c.current or 0.0 for c in channels]),
        "avgPower": _mean([c.power or 0.0 for c in channels]),
        "totalEnergy": sum(c.energy or 0.0 for c in channels),
    }


def _cirquitiq_stats(readings: list[CirquitIQReading]) -> dict[str, Any] | None:
    if not readings:
        return None
    return {
        "totalReadings": len(readings),
        "voltage": summarize(r.voltage for r in readings),
        "totalPower": summarize(r.total_power for r in readings),
        "channel1": _channel_stats(readings, "channel1"),
        "channel2": _channel_stats(readings, "channel2"),
    }


def compute_stats(entries: Iterable[ReadingEntry]) -> dict[str, Any]:
    vaulter: list[VaulterReading] = []
    cirquitiq: list[CirquitIQReading] = []
    for entry in entries:
        reading = load_reading(entry.device_type, entry.payload)
        if isinstance(reading, CirquitIQReading):
            cirquitiq.append(reading)
        else:
            vaulter.append(reading)
    return {
        DeviceType.vaulter.name: _vaulter_stats(vaulter),
        DeviceType.cirquitiq.name: _cirquitiq_stats(cirquitiq),
    }
