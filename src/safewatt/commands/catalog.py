"""Static command vocabulary, annotated by device type, for UI discovery."""

from typing import Any

from safewatt.registry.models import DeviceType

CONFIG_PARAMETERS = ["power_factor", "voltage_cal", "current_cal", "ch1_cal", "ch2_cal", "rate"]
TOGGLE_SETTINGS = ["manual", "safety", "buzzer", "display"]
SYSTEM_ACTIONS = ["reset", "restart"]
CHANNEL_SELECTORS = ["1", "2", "all"]

ALL_TYPES = "ALL"


def _command(
    name: str, description: str, category: str, device_type: str, parameters: str | None = None
) -> dict[str, Any]:
    return {
        "name": name,
        "description": description,
        "category": category,
        "deviceType": device_type,
        "parameters": parameters,
    }


VAULTER_COMMANDS = [
    _command("on", "Turn SSR ON (normal operation)", "SSR Control", DeviceType.vaulter.value),
    _command("off", "Turn SSR OFF (manual disable)", "SSR Control", DeviceType.vaulter.value),
    _command("enable", "Enable SSR (alias for on)", "SSR Control", DeviceType.vaulter.value),
    _command("disable", "Disable SSR (alias for off)", "SSR Control", DeviceType.vaulter.value),
]

CIRQUITIQ_COMMANDS = [
    _command("on 1", "Turn Relay 1 ON", "Relay Control", DeviceType.cirquitiq.value),
    _command("on 2", "Turn Relay 2 ON", "Relay Control", DeviceType.cirquitiq.value),
    _command("on all", "Turn Both Relays ON", "Relay Control", DeviceType.cirquitiq.value),
    _command("off 1", "Turn Relay 1 OFF", "Relay Control", DeviceType.cirquitiq.value),
    _command("off 2", "Turn Relay 2 OFF", "Relay Control", DeviceType.cirquitiq.value),
    _command("off all", "Turn Both Relays OFF", "Relay Control", DeviceType.cirquitiq.value),
]

COMMON_COMMANDS = [
    _command("reset", "Emergency reset system", "System Control", ALL_TYPES),
    _command("restart", "Restart ESP32", "System Control", ALL_TYPES),
    _command("calibrate", "Start manual calibration", "Calibration", ALL_TYPES),
    _command("cal_voltage", "Start voltage calibration wizard", "Calibration", ALL_TYPES),
    _command(
        "voltage_cal",
        "Set voltage calibration factor",
        "Calibration",
        ALL_TYPES,
        "number (0.01-1000)",
    ),
    _command(
        "current_cal",
        "Set current calibration factor",
        "Calibration",
        ALL_TYPES,
        "number (0.001-100)",
    ),
    _command("power_factor", "Set power factor", "Settings", ALL_TYPES, "number (0.1-1.0)"),
    _command("status", "Get current status", "Information", ALL_TYPES),
    _command("test", "Test sensors", "Diagnostics", ALL_TYPES),
    _command("diag", "Full diagnostics", "Diagnostics", ALL_TYPES),
    _command("stats", "Show statistics", "Information", ALL_TYPES),
    _command("manual", "Toggle manual mode", "Settings", ALL_TYPES),
    _command("safety", "Toggle safety checks", "Settings", ALL_TYPES),
    _command("buzzer", "Toggle buzzer", "Settings", ALL_TYPES),
    _command("clear", "Clear statistics", "Settings", ALL_TYPES),
]


def available_commands(device_type: str | None = None) -> list[dict[str, Any]]:
    """Type-specific commands first, then the common set.

    An unknown or missing type lists both relay vocabularies.
    """
    wanted = (device_type or "").upper()
    if wanted == DeviceType.vaulter:
        specific = VAULTER_COMMANDS
    elif wanted == DeviceType.cirquitiq:
        specific = CIRQUITIQ_COMMANDS
    else:
        specific = VAULTER_COMMANDS + CIRQUITIQ_COMMANDS
    return [dict(c) for c in specific + COMMON_COMMANDS]
