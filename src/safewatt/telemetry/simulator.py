"""Synthetic telemetry for development and testing without hardware.

Payload generators produce plausible mains readings (220 V +/- 5,
0.5-2.5 A, power factor 0.95) in the same raw shape a device posts.
``SimulatedFleet`` feeds such readings through the ingestion pipeline on
a timer.
"""

import asyncio
import logging
import random
from typing import TYPE_CHECKING, Any

from safewatt.registry.models import DeviceType

if TYPE_CHECKING:
    from safewatt.telemetry.ingest import IngestionPipeline

logger = logging.getLogger(__name__)

_POWER_FACTOR = 0.95


def _base_voltage() -> float:
    return 220 + (random.random() - 0.5) * 10


def _base_current() -> float:
    return 0.5 + random.random() * 2


def generate_vaulter_payload() -> dict[str, Any]:
    voltage = _base_voltage()
    current = _base_current()
    return {
        "deviceType": DeviceType.vaulter.value,
        "voltage": round(voltage, 1),
        "current": round(current, 3),
        "power": round(voltage * current * _POWER_FACTOR, 1),
        "energy": round(random.random() * 100, 3),
        "ssrState": random.random() > 0.1,
        "state": "MONITOR",
        "sensors": "valid",
    }


def _generate_channel(voltage: float) -> dict[str, Any]:
    current = _base_current()
    return {
        "current": round(current, 3),
        "power": round(voltage * current * _POWER_FACTOR, 1),
        "energy": round(random.random() * 100, 3),
        "cost": round(random.random() * 10, 2),
        "relayState": random.random() > 0.1,
    }


def generate_cirquitiq_payload() -> dict[str, Any]:
    voltage = _base_voltage()
    channel1 = _generate_channel(voltage)
    channel2 = _generate_channel(voltage)
    return {
        "deviceType": DeviceType.cirquitiq.value,
        "voltage": round(voltage, 1),
        "state": "MONITOR",
        "sensors": "valid",
        "channel1": channel1,
        "channel2": channel2,
        "totalPower": round(channel1["power"] + channel2["power"], 1),
        "totalEnergy": round(random.random() * 200, 3),
        "totalCost": round(random.random() * 20, 2),
    }


def generate_payload(device_type: DeviceType) -> dict[str, Any]:
    if device_type == DeviceType.cirquitiq:
        return generate_cirquitiq_payload()
    return generate_vaulter_payload()


class SimulatedFleet:
    """Posts one simulated reading per configured device every interval."""

    def __init__(
        self,
        pipeline: "IngestionPipeline",
        devices: list[tuple[str, str]],
        interval: int = 5,
    ) -> None:
        self.pipeline = pipeline
        self.devices = devices
        self.interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        logger.info(
            "Starting simulated fleet: %d device(s), interval=%ds", len(self.devices), self.interval
        )
        self._running = True
        self._task = asyncio.create_task(self._feed_loop())

    async def stop(self) -> None:
        logger.info("Stopping simulated fleet")
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def tick(self) -> int:
        """Ingest one reading for every device. Returns the number ingested."""
        for device_id, device_type in self.devices:
            self.pipeline.ingest_simulated(device_id, device_type, count=1)
        return len(self.devices)

    async def _feed_loop(self) -> None:
        while self._running:
            try:
                await asyncio.to_thread(self.tick)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Simulated fleet error")

            await asyncio.sleep(self.interval)
