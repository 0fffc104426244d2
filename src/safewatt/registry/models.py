"""Device type enum and in-memory device state."""

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class DeviceType(enum.StrEnum):
    vaulter = "VAULTER"  # single channel, one SSR
    cirquitiq = "CIRQUITIQ"  # dual channel, two relays

    @classmethod
    def from_declared(cls, declared: object) -> "DeviceType":
        """Map a caller-declared label onto a known type (single-channel by default)."""
        if isinstance(declared, str) and declared.strip().upper() == cls.cirquitiq.value:
            return cls.cirquitiq
        return cls.vaulter


SUPPORTED_DEVICE_TYPES = [t.value for t in DeviceType]


@dataclass
class DeviceRecord:
    """A currently-online device. Volatile: lost on restart."""

    device_id: str
    device_type: DeviceType
    origin_address: str
    connected_at: datetime
    last_seen: datetime
    is_simulated: bool = False


@dataclass
class LiveReading:
    """Most recent reading payload for a device."""

    payload: dict[str, Any]
    timestamp: datetime


@dataclass
class DeviceConfig:
    """Last-set value of each configuration parameter sent to a device."""

    values: dict[str, Any] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    def as_dict(self) -> dict[str, Any]:
        return {**self.values, "lastUpdated": self.last_updated.isoformat()}
