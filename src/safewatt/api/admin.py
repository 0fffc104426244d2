"""Admin API: command history, command catalog and device control.

Everything under /api/admin except the catalog sits behind HTTP Basic
auth (see BasicAuthMiddleware in main).
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import Field

from safewatt.api.schemas import CommandAck, CommandOut
from safewatt.commands.catalog import available_commands
from safewatt.commands.router import CommandResult
from safewatt.gateway import Gateway, get_gateway
from safewatt.wire import WireModel

router = APIRouter(prefix="/api/admin")


# Request models
class CommandRequest(WireModel):
    command: str | None = None
    parameters: str | float | None = None


class BatchCommandRequest(WireModel):
    device_ids: list[str] = Field(default_factory=list)
    command: str | None = None
    parameters: str | float | None = None


class ConfigRequest(WireModel):
    parameter: str | None = None
    value: float | str | None = None


def _ack(result: CommandResult, action: str | None = None) -> CommandAck:
    return CommandAck(
        device_id=result.device_id,
        device_type=result.device_type.value,
        command=result.command,
        action=action,
        timestamp=result.entry.timestamp,
    )


# --- Command history and catalog ---


@router.get("/commands")
def command_history(
    device_id: str | None = Query(None, alias="deviceId"),
    limit: int = Query(100, ge=1),
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    total, entries = gateway.store.query_commands(device_id=device_id, limit=limit)
    return {
        "total": total,
        "commands": [
            CommandOut.model_validate(e).model_dump(by_alias=True, mode="json") for e in entries
        ],
    }


@router.get("/commands/available")
def list_available_commands(
    device_type: str = Query("VAULTER", alias="deviceType"),
) -> dict[str, list[dict[str, Any]]]:
    return {"commands": available_commands(device_type)}


# --- Generic commands ---


# Literal path must come before {device_id} parametric path
@router.post("/command/batch")
def batch_command(
    request: BatchCommandRequest,
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    command, outcomes = gateway.commands.batch(
        request.device_ids, request.command or "", request.parameters
    )
    results = []
    for outcome in outcomes:
        if outcome.success and outcome.device_type is not None:
            results.append(
                {
                    "deviceId": outcome.device_id,
                    "deviceType": outcome.device_type.value,
                    "success": True,
                }
            )
        else:
            results.append(
                {"deviceId": outcome.device_id, "success": False, "error": outcome.error}
            )
    return {
        "success": True,
        "command": command,
        "results": results,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.post("/command/{device_id}")
def send_command(
    device_id: str,
    request: CommandRequest,
    gateway: Gateway = Depends(get_gateway),
) -> CommandAck:
    result = gateway.commands.send_command(
        device_id, request.command or "", parameters=request.parameters
    )
    return _ack(result)


# --- Relay / SSR ---


@router.post("/relay/{device_id}/on")
def relay_on(
    device_id: str,
    channel: str | None = None,
    gateway: Gateway = Depends(get_gateway),
) -> CommandAck:
    result = gateway.commands.relay(device_id, on=True, channel=channel)
    return _ack(result, action=f"Relay turned ON: {result.command}")


@router.post("/relay/{device_id}/off")
def relay_off(
    device_id: str,
    channel: str | None = None,
    gateway: Gateway = Depends(get_gateway),
) -> CommandAck:
    result = gateway.commands.relay(device_id, on=False, channel=channel)
    return _ack(result, action=f"Relay turned OFF: {result.command}")


# --- System and calibration ---


@router.post("/system/{device_id}/reset")
def system_reset(device_id: str, gateway: Gateway = Depends(get_gateway)) -> CommandAck:
    return _ack(gateway.commands.system(device_id, "reset"), action="System reset initiated")


@router.post("/system/{device_id}/restart")
def system_restart(device_id: str, gateway: Gateway = Depends(get_gateway)) -> CommandAck:
    return _ack(gateway.commands.system(device_id, "restart"), action="ESP32 restart initiated")


@router.post("/calibration/{device_id}/start")
def start_calibration(device_id: str, gateway: Gateway = Depends(get_gateway)) -> CommandAck:
    return _ack(gateway.commands.calibrate(device_id), action="Calibration started")


@router.get("/diagnostics/{device_id}")
def request_diagnostics(device_id: str, gateway: Gateway = Depends(get_gateway)) -> CommandAck:
    return _ack(
        gateway.commands.diagnostics(device_id),
        action="Diagnostics requested - check device serial output",
    )


# --- Settings ---


@router.post("/config/{device_id}")
def set_config(
    device_id: str,
    request: ConfigRequest,
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    result, config = gateway.commands.set_config(device_id, request.parameter, request.value)
    return {
        "success": True,
        "deviceId": result.device_id,
        "deviceType": result.device_type.value,
        "parameter": request.parameter,
        "value": request.value,
        "command": result.command,
        "config": config.as_dict(),
        "timestamp": result.entry.timestamp.isoformat(),
    }


@router.post("/toggle/{device_id}/{setting}")
def toggle_setting(
    device_id: str,
    setting: str,
    gateway: Gateway = Depends(get_gateway),
) -> CommandAck:
    return _ack(gateway.commands.toggle(device_id, setting), action=f"{setting} toggled")
