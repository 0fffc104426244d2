"""Ingestion pipeline: classify, shape, register, persist, cache and broadcast."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from safewatt.errors import InvalidRequestError
from safewatt.live.hub import SENSOR_DATA, BroadcastHub
from safewatt.registry.models import DeviceType
from safewatt.registry.store import DeviceRegistry
from safewatt.storage.log import LogStore
from safewatt.storage.models import ReadingEntry
from safewatt.telemetry.readings import detect_type, shape_reading
from safewatt.telemetry.simulator import generate_payload

if TYPE_CHECKING:
    from safewatt.commands.router import CommandRouter

logger = logging.getLogger(__name__)


class IngestionPipeline:
    def __init__(
        self,
        registry: DeviceRegistry,
        store: LogStore,
        hub: BroadcastHub,
        router: "CommandRouter | None" = None,
        reapply_config: bool = False,
    ) -> None:
        self.registry = registry
        self.store = store
        self.hub = hub
        self.router = router
        self.reapply_config = reapply_config

    def ingest(
        self,
        device_id: str | None,
        payload: dict[str, Any],
        declared_type: str | None = None,
        origin_address: str = "unknown",
        is_simulated: bool = False,
    ) -> ReadingEntry:
        """Store one reading and return it with its server-assigned timestamp."""
        if not device_id or not str(device_id).strip():
            raise InvalidRequestError("Device ID required")
        device_id = str(device_id)

        device_type = detect_type(payload, declared_type)
        reading = shape_reading(device_type, payload)
        body = reading.model_dump(by_alias=True, mode="json")

        # One critical section so events leave in commit order
        with self.registry.lock:
            now = datetime.now(UTC)
            _, is_new = self.registry.upsert(
                device_id, device_type, origin_address, is_simulated=is_simulated, seen_at=now
            )
            if is_new:
                self.store.open_session(
                    device_id, device_type.value, origin_address, start_time=now
                )
                logger.info(
                    "New device connected: %s (%s) from %s", device_id, device_type, origin_address
                )

            entry = self.store.append_reading(device_id, device_type.value, body, timestamp=now)
            self.registry.cache_reading(device_id, body, now)
            self.hub.publish(SENSOR_DATA, entry.to_wire())

            if is_new and self.reapply_config and self.router is not None:
                self.router.reapply_config(device_id)

        return entry

    def ingest_simulated(
        self, device_id: str, device_type: str | None = None, count: int = 1
    ) -> list[ReadingEntry]:
        """Run the pipeline ``count`` times with generated values."""
        wanted = DeviceType.from_declared(device_type)
        return [
            self.ingest(
                device_id,
                generate_payload(wanted),
                declared_type=wanted,
                origin_address="mock",
                is_simulated=True,
            )
            for _ in range(count)
        ]
