"""Liveness monitor: expire devices that stopped sending telemetry.

This is the only component that removes devices from the registry.
A device is Online from its first reading until a sweep finds it silent
for longer than the timeout; it is then removed, its session is closed
and a ``deviceDisconnected`` event goes out.
"""

import asyncio
import logging
from datetime import UTC, datetime

from safewatt.alerts.webhook import build_offline_payload, dispatch_webhooks
from safewatt.live.hub import DEVICE_DISCONNECTED, BroadcastHub
from safewatt.registry.models import DeviceRecord
from safewatt.registry.store import DeviceRegistry
from safewatt.storage.log import LogStore

logger = logging.getLogger(__name__)


class LivenessMonitor:
    def __init__(
        self,
        registry: DeviceRegistry,
        store: LogStore,
        hub: BroadcastHub,
        timeout: int = 60,
        interval: int = 30,
        webhook_url: str | None = None,
    ) -> None:
        if interval >= timeout:
            raise ValueError("sweep interval must be shorter than the device timeout")
        self.registry = registry
        self.store = store
        self.hub = hub
        self.timeout = timeout
        self.interval = interval
        self.webhook_url = webhook_url
        self._running = False
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        logger.info(
            "Starting liveness monitor (timeout=%ds, interval=%ds)", self.timeout, self.interval
        )
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        logger.info("Stopping liveness monitor")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def sweep(self, now: datetime | None = None) -> list[DeviceRecord]:
        """Expire every device silent for longer than the timeout."""
        now = now or datetime.now(UTC)
        expired: list[DeviceRecord] = []
        with self.registry.lock:
            for device in self.registry.expired(now, self.timeout):
                self.registry.remove(device.device_id)
                self.store.close_active_sessions(device.device_id, end_time=now)
                self.hub.publish(
                    DEVICE_DISCONNECTED,
                    {"deviceId": device.device_id, "deviceType": device.device_type.value},
                )
                logger.warning(
                    "Device %s (%s) timed out (no data for %ds)",
                    device.device_id,
                    device.device_type,
                    self.timeout,
                )
                expired.append(device)
        return expired

    def notify(self, expired: list[DeviceRecord]) -> None:
        if not self.webhook_url or not expired:
            return
        payloads = [
            build_offline_payload(d.device_id, d.device_type.value, d.last_seen) for d in expired
        ]
        dispatch_webhooks(self.webhook_url, payloads)

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                expired = await asyncio.to_thread(self.sweep)
                await asyncio.to_thread(self.notify, expired)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Liveness sweep error")
