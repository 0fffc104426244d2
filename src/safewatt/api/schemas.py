"""camelCase response models shared by the REST routes."""

from datetime import datetime
from typing import Any

from safewatt.registry.models import DeviceRecord
from safewatt.registry.store import DeviceRegistry
from safewatt.wire import WireModel


class DeviceOut(WireModel):
    device_id: str
    device_type: str
    origin_address: str
    connected_at: datetime
    last_seen: datetime
    is_simulated: bool
    current_data: dict[str, Any] | None = None
    config: dict[str, Any] | None = None

    @classmethod
    def from_registry(cls, registry: DeviceRegistry, device: DeviceRecord) -> "DeviceOut":
        live = registry.live_reading(device.device_id)
        config = registry.get_config(device.device_id)
        return cls(
            device_id=device.device_id,
            device_type=device.device_type.value,
            origin_address=device.origin_address,
            connected_at=device.connected_at,
            last_seen=device.last_seen,
            is_simulated=device.is_simulated,
            current_data=(
                {**live.payload, "timestamp": live.timestamp.isoformat()} if live else None
            ),
            config=config.as_dict() if config else None,
        )


class SessionOut(WireModel):
    device_id: str
    device_type: str
    origin_address: str
    start_time: datetime
    end_time: datetime | None
    active: bool


class CommandOut(WireModel):
    device_id: str
    command: str
    source: str
    success: bool
    timestamp: datetime


class CommandAck(WireModel):
    success: bool = True
    device_id: str
    device_type: str
    command: str
    action: str | None = None
    timestamp: datetime
