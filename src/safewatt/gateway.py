"""Gateway container: one instance of every core component, wired together."""

import time
from dataclasses import dataclass, field

from fastapi.requests import HTTPConnection
from sqlalchemy.engine import Engine

from safewatt.commands.router import CommandRouter
from safewatt.config import Settings
from safewatt.live.hub import BroadcastHub
from safewatt.monitor.liveness import LivenessMonitor
from safewatt.registry.store import DeviceRegistry
from safewatt.storage.log import LogStore
from safewatt.telemetry.ingest import IngestionPipeline
from safewatt.telemetry.simulator import SimulatedFleet


@dataclass
class Gateway:
    registry: DeviceRegistry
    store: LogStore
    hub: BroadcastHub
    commands: CommandRouter
    pipeline: IngestionPipeline
    monitor: LivenessMonitor
    fleet: SimulatedFleet | None = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    async def start(self) -> None:
        await self.monitor.start()
        if self.fleet:
            await self.fleet.start()

    async def stop(self) -> None:
        if self.fleet:
            await self.fleet.stop()
        await self.monitor.stop()
        with self.registry.lock:
            for device in self.registry.list_all():
                self.store.close_active_sessions(device.device_id)


def build_gateway(cfg: Settings, telemetry_engine: Engine, command_engine: Engine) -> Gateway:
    registry = DeviceRegistry()
    store = LogStore(
        telemetry_engine,
        command_engine,
        reading_retention=cfg.reading_retention,
        command_retention=cfg.command_retention,
    )
    hub = BroadcastHub()
    commands = CommandRouter(registry, store, hub)
    pipeline = IngestionPipeline(
        registry, store, hub, router=commands, reapply_config=cfg.reapply_config_on_reconnect
    )
    monitor = LivenessMonitor(
        registry,
        store,
        hub,
        timeout=cfg.device_timeout,
        interval=cfg.sweep_interval,
        webhook_url=cfg.webhook_url,
    )
    fleet = None
    simulated = cfg.get_simulated_devices()
    if simulated:
        fleet = SimulatedFleet(pipeline, simulated, interval=cfg.simulation_interval)
    return Gateway(
        registry=registry,
        store=store,
        hub=hub,
        commands=commands,
        pipeline=pipeline,
        monitor=monitor,
        fleet=fleet,
    )


def get_gateway(conn: HTTPConnection) -> Gateway:
    """FastAPI dependency: the gateway built in the app lifespan."""
    return conn.app.state.gateway
