"""Webhook notification when a device goes offline."""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

logger = logging.getLogger(__name__)


def build_offline_payload(device_id: str, device_type: str, last_seen: datetime) -> dict[str, Any]:
    return {
        "event": "deviceDisconnected",
        "timestamp": datetime.now(UTC).isoformat(),
        "device": {
            "deviceId": device_id,
            "deviceType": device_type,
            "lastSeen": last_seen.isoformat(),
        },
    }


def dispatch_webhooks(url: str, payloads: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """POST every offline notice of one sweep to ``url`` over a single client.

    Each device gets its own result; delivery failures are logged and
    reported there, never raised.
    """
    results: list[dict[str, Any]] = []
    if not payloads:
        return results

    with httpx.Client(timeout=10.0) as client:
        for payload in payloads:
            device_id = payload["device"]["deviceId"]
            try:
                response = client.post(url, json=payload)
            except httpx.HTTPError as e:
                logger.error("Offline webhook for %s not delivered to %s: %s", device_id, url, e)
                results.append(
                    {"deviceId": device_id, "status_code": None, "success": False, "error": str(e)}
                )
                continue

            if response.is_success:
                logger.info(
                    "Offline webhook for %s delivered (HTTP %d)", device_id, response.status_code
                )
            else:
                logger.warning(
                    "Offline webhook for %s rejected by %s (HTTP %d)",
                    device_id,
                    url,
                    response.status_code,
                )
            results.append(
                {
                    "deviceId": device_id,
                    "status_code": response.status_code,
                    "success": response.is_success,
                }
            )

    return results
