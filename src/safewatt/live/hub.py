"""Live broadcast channel: every viewer receives every event.

There is no topic filtering. Devices pick out the ``command`` events
addressed to their own id.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from safewatt.registry.store import DeviceRegistry

logger = logging.getLogger(__name__)

SENSOR_DATA = "sensorData"
COMMAND = "command"
DEVICE_DISCONNECTED = "deviceDisconnected"
ACTIVE_DEVICES = "activeDevices"
SEND_COMMAND = "sendCommand"  # inbound, viewer -> gateway

Message = dict[str, Any]


def make_message(event: str, data: Any) -> Message:
    return {"event": event, "data": data}


class BroadcastHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, Callable[[Message], None]] = {}
        self._next_id = 0

    def subscribe(self, callback: Callable[[Message], None]) -> Callable[[], None]:
        """Register a callback for every event. Returns an unsubscribe function."""
        with self._lock:
            subscriber_id = self._next_id
            self._next_id += 1
            self._subscribers[subscriber_id] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(subscriber_id, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, data: Any) -> None:
        """Deliver an event to all subscribers, in subscription order."""
        message = make_message(event, data)
        with self._lock:
            subscribers = list(self._subscribers.items())
        for subscriber_id, callback in subscribers:
            try:
                callback(message)
            except Exception:
                logger.exception("Dropping subscriber %d after delivery failure", subscriber_id)
                with self._lock:
                    self._subscribers.pop(subscriber_id, None)


def bootstrap_messages(registry: DeviceRegistry) -> list[Message]:
    """State a late-joining viewer needs: the device list and one snapshot per device."""
    with registry.lock:
        devices = registry.list_all()
        messages = [
            make_message(
                ACTIVE_DEVICES,
                [{"deviceId": d.device_id, "deviceType": d.device_type.value} for d in devices],
            )
        ]
        for device_id, live in registry.live_items():
            device = registry.get(device_id)
            device_type = device.device_type.value if device else live.payload.get("deviceType")
            snapshot = {
                "deviceId": device_id,
                **live.payload,
                "deviceType": device_type,
                "timestamp": live.timestamp.isoformat(),
            }
            messages.append(make_message(SENSOR_DATA, snapshot))
    return messages
