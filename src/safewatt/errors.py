"""Errors raised by the gateway core and mapped to HTTP responses in main."""


class InvalidRequestError(ValueError):
    """Rejected input: nothing was mutated."""

    def __init__(self, message: str, valid: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.valid = valid


class DeviceNotFoundError(LookupError):
    """The target device is not currently registered (offline or unknown)."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device not found or offline: {device_id}")
        self.device_id = device_id
