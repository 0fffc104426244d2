"""In-memory registry of online devices, their live readings and configuration.

All three tables are guarded by one re-entrant lock. Components that need a
multi-step read-modify-write (ingestion, command routing, the liveness
sweep) hold ``registry.lock`` for the whole step.
"""

import logging
import threading
from datetime import UTC, datetime, timedelta
from typing import Any

from safewatt.registry.models import DeviceConfig, DeviceRecord, DeviceType, LiveReading

logger = logging.getLogger(__name__)


class DeviceRegistry:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._devices: dict[str, DeviceRecord] = {}
        self._live: dict[str, LiveReading] = {}
        self._configs: dict[str, DeviceConfig] = {}

    # --- Devices ---

    def upsert(
        self,
        device_id: str,
        device_type: DeviceType,
        origin_address: str,
        is_simulated: bool = False,
        seen_at: datetime | None = None,
    ) -> tuple[DeviceRecord, bool]:
        """Create or refresh a device. Returns (record, is_new)."""
        now = seen_at or datetime.now(UTC)
        with self.lock:
            device = self._devices.get(device_id)
            if device is None:
                device = DeviceRecord(
                    device_id=device_id,
                    device_type=device_type,
                    origin_address=origin_address,
                    connected_at=now,
                    last_seen=now,
                    is_simulated=is_simulated,
                )
                self._devices[device_id] = device
                logger.debug(
                    "Registered device %s (%s) from %s", device_id, device_type, origin_address
                )
                return device, True

            # Type is re-detected on every message
            device.last_seen = now
            device.device_type = device_type
            return device, False

    def touch(self, device_id: str, seen_at: datetime | None = None) -> bool:
        with self.lock:
            device = self._devices.get(device_id)
            if device is None:
                return False
            device.last_seen = seen_at or datetime.now(UTC)
            return True

    def get(self, device_id: str) -> DeviceRecord | None:
        with self.lock:
            return self._devices.get(device_id)

    def remove(self, device_id: str) -> DeviceRecord | None:
        with self.lock:
            device = self._devices.pop(device_id, None)
        if device is not None:
            logger.debug("Removed device %s", device_id)
        return device

    def list_all(self) -> list[DeviceRecord]:
        with self.lock:
            return list(self._devices.values())

    def list_by_type(self, device_type: DeviceType | str) -> list[DeviceRecord]:
        wanted = str(device_type).upper()
        with self.lock:
            return [d for d in self._devices.values() if d.device_type == wanted]

    def expired(self, now: datetime, timeout_seconds: float) -> list[DeviceRecord]:
        """Devices whose last telemetry is older than the timeout."""
        limit = timedelta(seconds=timeout_seconds)
        with self.lock:
            return [d for d in self._devices.values() if now - d.last_seen > limit]

    def __len__(self) -> int:
        with self.lock:
            return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        with self.lock:
            return device_id in self._devices

    # --- Live cache ---

    def cache_reading(self, device_id: str, payload: dict[str, Any], timestamp: datetime) -> None:
        with self.lock:
            self._live[device_id] = LiveReading(payload=payload, timestamp=timestamp)

    def live_reading(self, device_id: str) -> LiveReading | None:
        with self.lock:
            return self._live.get(device_id)

    def live_items(self) -> list[tuple[str, LiveReading]]:
        with self.lock:
            return list(self._live.items())

    # --- Configuration ---

    def set_config(
        self, device_id: str, parameter: str, value: Any, updated_at: datetime | None = None
    ) -> DeviceConfig:
        with self.lock:
            config = self._configs.setdefault(device_id, DeviceConfig())
            config.values[parameter] = value
            config.last_updated = updated_at or datetime.now(UTC)
            return config

    def get_config(self, device_id: str) -> DeviceConfig | None:
        # Entries survive removal of the device record
        with self.lock:
            return self._configs.get(device_id)
