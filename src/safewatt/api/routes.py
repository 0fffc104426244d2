"""REST API: telemetry ingestion and read-only queries."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request

from safewatt.api.schemas import DeviceOut, SessionOut
from safewatt.gateway import Gateway, get_gateway
from safewatt.registry.models import DeviceType
from safewatt.telemetry.stats import compute_stats

router = APIRouter(prefix="/api")


# --- Ingestion ---


@router.post("/data")
def receive_data(
    request: Request,
    payload: dict[str, Any] = Body(...),
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    origin = request.client.host if request.client else "unknown"
    entry = gateway.pipeline.ingest(
        payload.get("deviceId"),
        payload,
        declared_type=payload.get("deviceType"),
        origin_address=origin,
    )
    return {
        "success": True,
        "timestamp": entry.timestamp.isoformat(),
        "message": "Data received",
        "deviceType": entry.device_type,
    }


@router.post("/mock/data/{device_id}")
def generate_mock_data(
    device_id: str,
    device_type: str = Query(DeviceType.vaulter.value, alias="type"),
    count: int = Query(1, ge=1, le=1000),
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    # Unknown labels fall back to the single-channel generator
    wanted = DeviceType.from_declared(device_type)
    entries = gateway.pipeline.ingest_simulated(device_id, wanted, count=count)
    return {
        "success": True,
        "message": f"Generated {count} mock reading(s) for {wanted.value}",
        "readings": [e.to_wire() for e in entries],
    }


# --- Devices ---


@router.get("/devices")
def list_devices(gateway: Gateway = Depends(get_gateway)) -> list[DeviceOut]:
    registry = gateway.registry
    return [DeviceOut.from_registry(registry, d) for d in registry.list_all()]


# Literal path must come before {device_id} parametric path
@router.get("/devices/type/{device_type}")
def list_devices_by_type(
    device_type: str,
    gateway: Gateway = Depends(get_gateway),
) -> list[DeviceOut]:
    registry = gateway.registry
    return [DeviceOut.from_registry(registry, d) for d in registry.list_by_type(device_type)]


@router.get("/devices/{device_id}")
def device_detail(
    device_id: str,
    gateway: Gateway = Depends(get_gateway),
) -> DeviceOut:
    device = gateway.registry.get(device_id)
    if device is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return DeviceOut.from_registry(gateway.registry, device)


@router.get("/devices/{device_id}/readings")
def device_readings(
    device_id: str,
    limit: int = Query(100, ge=1),
    gateway: Gateway = Depends(get_gateway),
) -> list[dict[str, Any]]:
    return [e.to_wire() for e in gateway.store.latest_readings(device_id, limit=limit)]


# --- History ---


@router.get("/readings")
def list_readings(
    device_id: str | None = Query(None, alias="deviceId"),
    device_type: str | None = Query(None, alias="deviceType"),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    total, entries = gateway.store.query_readings(
        device_id=device_id, device_type=device_type, offset=offset, limit=limit
    )
    return {
        "total": total,
        "offset": offset,
        "limit": limit,
        "readings": [e.to_wire() for e in entries],
    }


@router.get("/sessions")
def list_sessions(
    device_id: str | None = Query(None, alias="deviceId"),
    device_type: str | None = Query(None, alias="deviceType"),
    active: bool | None = None,
    gateway: Gateway = Depends(get_gateway),
) -> list[SessionOut]:
    sessions = gateway.store.query_sessions(
        device_id=device_id, device_type=device_type, active=active
    )
    return [SessionOut.model_validate(s) for s in sessions]


@router.get("/stats")
def statistics(
    device_id: str | None = Query(None, alias="deviceId"),
    gateway: Gateway = Depends(get_gateway),
) -> dict[str, Any]:
    return compute_stats(gateway.store.all_readings(device_id=device_id))
