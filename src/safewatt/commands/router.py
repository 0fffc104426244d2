"""Command routing: validate, audit, and broadcast commands to online devices.

Commands are fire-and-forget. The audit entry records that a transmission
was attempted; delivery is never confirmed. Commands are only routed to
devices present in the registry and are never queued for offline ones.
"""

import logging
from dataclasses import dataclass
from typing import Any

from safewatt.commands.catalog import (
    CHANNEL_SELECTORS,
    CONFIG_PARAMETERS,
    SYSTEM_ACTIONS,
    TOGGLE_SETTINGS,
)
from safewatt.errors import DeviceNotFoundError, InvalidRequestError
from safewatt.live.hub import COMMAND, BroadcastHub
from safewatt.registry.models import DeviceConfig, DeviceRecord, DeviceType
from safewatt.registry.store import DeviceRegistry
from safewatt.storage.log import LogStore
from safewatt.storage.models import CommandAuditEntry, CommandSource

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    device_id: str
    device_type: DeviceType
    command: str
    entry: CommandAuditEntry


@dataclass
class BatchOutcome:
    device_id: str
    success: bool
    device_type: DeviceType | None = None
    error: str | None = None


def format_value(value: Any) -> str:
    """Render a parameter value the way devices parse it (2.0 -> "2")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def compose_command(command: str, parameters: Any = None) -> str:
    if parameters is None or parameters == "":
        return command
    return f"{command} {format_value(parameters)}"


def relay_command(device_type: DeviceType, on: bool, channel: str | None = None) -> str:
    """Resolve a relay action to the device's own vocabulary."""
    verb = "on" if on else "off"
    if device_type != DeviceType.cirquitiq:
        return verb
    if channel in ("1", "2"):
        return f"{verb} {channel}"
    return f"{verb} all"


class CommandRouter:
    def __init__(self, registry: DeviceRegistry, store: LogStore, hub: BroadcastHub) -> None:
        self.registry = registry
        self.store = store
        self.hub = hub

    def _require_device(self, device_id: str) -> DeviceRecord:
        device = self.registry.get(device_id) if device_id else None
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    def _dispatch(
        self, device: DeviceRecord, command: str, source: CommandSource
    ) -> CommandResult:
        entry = self.store.append_command(device.device_id, command, source=source, success=True)
        self.hub.publish(COMMAND, {"deviceId": device.device_id, "command": command})
        logger.info(
            "Command %s -> %s (%s): %s", source, device.device_id, device.device_type, command
        )
        return CommandResult(
            device_id=device.device_id,
            device_type=device.device_type,
            command=command,
            entry=entry,
        )

    def send_command(
        self,
        device_id: str,
        command: str,
        source: CommandSource = CommandSource.admin,
        parameters: Any = None,
    ) -> CommandResult:
        with self.registry.lock:
            device = self._require_device(device_id)
            if not command or not command.strip():
                raise InvalidRequestError("Command required")
            return self._dispatch(device, compose_command(command.strip(), parameters), source)

    def relay(self, device_id: str, on: bool, channel: str | None = None) -> CommandResult:
        with self.registry.lock:
            device = self._require_device(device_id)
            if channel is not None and channel not in CHANNEL_SELECTORS:
                raise InvalidRequestError("Invalid channel", valid=CHANNEL_SELECTORS)
            command = relay_command(device.device_type, on, channel)
            return self._dispatch(device, command, CommandSource.admin)

    def system(self, device_id: str, action: str) -> CommandResult:
        with self.registry.lock:
            device = self._require_device(device_id)
            if action not in SYSTEM_ACTIONS:
                raise InvalidRequestError("Invalid system action", valid=SYSTEM_ACTIONS)
            return self._dispatch(device, action, CommandSource.admin)

    def calibrate(self, device_id: str) -> CommandResult:
        return self.send_command(device_id, "calibrate")

    def diagnostics(self, device_id: str) -> CommandResult:
        return self.send_command(device_id, "diag")

    def set_config(
        self, device_id: str, parameter: str | None, value: Any
    ) -> tuple[CommandResult, DeviceConfig]:
        """Send ``"<parameter> <value>"`` and remember the value for the device."""
        with self.registry.lock:
            device = self._require_device(device_id)
            if not parameter or value is None or value == "":
                raise InvalidRequestError("Parameter and value required")
            if parameter not in CONFIG_PARAMETERS:
                raise InvalidRequestError("Invalid parameter", valid=CONFIG_PARAMETERS)
            result = self._dispatch(device, compose_command(parameter, value), CommandSource.admin)
            config = self.registry.set_config(
                device_id, parameter, value, updated_at=result.entry.timestamp
            )
            return result, config

    def toggle(self, device_id: str, setting: str) -> CommandResult:
        with self.registry.lock:
            device = self._require_device(device_id)
            if setting not in TOGGLE_SETTINGS:
                raise InvalidRequestError("Invalid setting", valid=TOGGLE_SETTINGS)
            return self._dispatch(device, setting, CommandSource.admin)

    def batch(
        self, device_ids: list[str], command: str, parameters: Any = None
    ) -> tuple[str, list[BatchOutcome]]:
        """Send one command to many devices; unknown ids fail individually."""
        if not device_ids:
            raise InvalidRequestError("deviceIds array required")
        if not command or not command.strip():
            raise InvalidRequestError("Command required")

        full_command = compose_command(command.strip(), parameters)
        outcomes: list[BatchOutcome] = []
        with self.registry.lock:
            for device_id in device_ids:
                device = self.registry.get(device_id)
                if device is None:
                    outcomes.append(
                        BatchOutcome(device_id=device_id, success=False, error="Device not found")
                    )
                    continue
                self._dispatch(device, full_command, CommandSource.admin)
                outcomes.append(
                    BatchOutcome(device_id=device_id, success=True, device_type=device.device_type)
                )
        logger.info("Batch command to %d device(s): %s", len(device_ids), full_command)
        return full_command, outcomes

    def send_from_viewer(self, device_id: Any, command: Any) -> CommandResult | None:
        """Web-client path: anything that cannot be routed is dropped silently."""
        if not isinstance(device_id, str) or not isinstance(command, str):
            logger.debug("Ignoring malformed viewer command: %r %r", device_id, command)
            return None
        try:
            return self.send_command(device_id, command, source=CommandSource.websocket)
        except (DeviceNotFoundError, InvalidRequestError) as e:
            logger.debug("Dropping viewer command for %s: %s", device_id, e)
            return None

    def reapply_config(self, device_id: str) -> list[CommandResult]:
        """Re-send every stored configuration value to a device that came back."""
        with self.registry.lock:
            device = self.registry.get(device_id)
            config = self.registry.get_config(device_id)
            if device is None or config is None:
                return []
            return [
                self._dispatch(device, compose_command(parameter, value), CommandSource.automatic)
                for parameter, value in config.values.items()
            ]
