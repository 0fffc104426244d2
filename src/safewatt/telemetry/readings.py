"""Reading payload variants and the permissive field coercion used at ingestion.

A reading is a tagged union keyed by ``deviceType``: single-channel Vaulter
readings and dual-channel CirquitIQ readings share one endpoint but have
incompatible shapes.
"""

import math
from typing import Any, Literal

from safewatt.registry.models import DeviceType
from safewatt.wire import WireModel

CHANNEL_FIELDS = ("channel1", "channel2")


def to_float(value: Any) -> float | None:
    """Parse a numeric field. Anything unparsable or non-finite becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_bool(value: Any) -> bool:
    """Only the literal true, the string "true" or the numeral 1 count as on."""
    return value is True or value == 1 or value == "true"


def _channel_present(value: Any) -> bool:
    """null, false, 0, NaN and the empty string do not count as a channel."""
    if value is None or value is False or value == "":
        return False
    if isinstance(value, int | float):
        return value != 0 and not math.isnan(value)
    return True


def has_channels(payload: dict[str, Any]) -> bool:
    return any(_channel_present(payload.get(name)) for name in CHANNEL_FIELDS)


class ChannelReading(WireModel):
    current: float | None = None
    power: float | None = None
    energy: float | None = None
    cost: float | None = None
    relay_state: bool = False

    @classmethod
    def parse(cls, raw: Any) -> "ChannelReading":
        if not isinstance(raw, dict):
            raw = {}
        return cls(
            current=to_float(raw.get("current")),
            power=to_float(raw.get("power")),
            energy=to_float(raw.get("energy")),
            cost=to_float(raw.get("cost")),
            relay_state=to_bool(raw.get("relayState")),
        )


class VaulterReading(WireModel):
    device_type: Literal["VAULTER"] = "VAULTER"
    voltage: float | None = None
    current: float | None = None
    power: float | None = None
    energy: float | None = None
    ssr_state: bool = False
    state: str = "unknown"
    sensors: str = "unknown"

    @classmethod
    def parse(cls, raw: dict[str, Any]) -> "VaulterReading":
        return cls(
            voltage=to_float(raw.get("voltage")),
            current=to_float(raw.get("current")),
            power=to_float(raw.get("power")),
            energy=to_float(raw.get("energy")),
            ssr_state=to_bool(raw.get("ssrState")),
            state=str(raw.get("state") or "unknown"),
            sensors=str(raw.get("sensors") or "unknown"),
        )


class CirquitIQReading(WireModel):
    device_type: Literal["CIRQUITIQ"] = "CIRQUITIQ"
    voltage: float | None = None
    state: str = "unknown"
    sensors: str = "unknown"
    channel1: ChannelReading = ChannelReading()
    channel2: ChannelReading = ChannelReading()
    total_power: float = 0.0
    total_energy: float = 0.0
    total_cost: float = 0.0

    @classmethod
    def parse(cls, raw: dict[str, Any]) -> "CirquitIQReading":
        return cls(
            voltage=to_float(raw.get("voltage")),
            state=str(raw.get("state") or "unknown"),
            sensors=str(raw.get("sensors") or "unknown"),
            channel1=ChannelReading.parse(raw.get("channel1")),
            channel2=ChannelReading.parse(raw.get("channel2")),
            total_power=to_float(raw.get("totalPower")) or 0.0,
            total_energy=to_float(raw.get("totalEnergy")) or 0.0,
            total_cost=to_float(raw.get("totalCost")) or 0.0,
        )


Reading = VaulterReading | CirquitIQReading


def detect_type(payload: dict[str, Any], declared: str | None = None) -> DeviceType:
    """Structural shape wins over the declared label."""
    if has_channels(payload):
        return DeviceType.cirquitiq
    return DeviceType.from_declared(declared)


def shape_reading(device_type: DeviceType, payload: dict[str, Any]) -> Reading:
    if device_type == DeviceType.cirquitiq:
        return CirquitIQReading.parse(payload)
    return VaulterReading.parse(payload)


def load_reading(device_type: str, payload: dict[str, Any]) -> Reading:
    """Rebuild a stored payload into its variant model."""
    if device_type == DeviceType.cirquitiq:
        return CirquitIQReading.model_validate(payload)
    return VaulterReading.model_validate(payload)
