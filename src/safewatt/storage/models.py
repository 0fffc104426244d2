"""Persisted log models: readings, sessions and the command audit trail."""

import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from safewatt.database import UTCDateTime


class CommandSource(enum.StrEnum):
    admin = "admin"  # operator REST API
    websocket = "websocket"  # web client over the live channel
    automatic = "automatic"  # issued by the gateway itself


class ReadingEntry(SQLModel, table=True):
    """One timestamped measurement snapshot. Never updated after insert."""

    id: int | None = Field(default=None, primary_key=True)
    device_id: str = Field(index=True)
    device_type: str = Field(index=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime)
    payload: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)

    def to_wire(self) -> dict[str, Any]:
        """Flattened camelCase form used by the REST API and the live channel."""
        return {
            "deviceId": self.device_id,
            "deviceType": self.device_type,
            **self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


class SessionRecord(SQLModel, table=True):
    """A contiguous online interval for one device."""

    id: int | None = Field(default=None, primary_key=True)
    device_id: str = Field(index=True)
    device_type: str
    origin_address: str
    start_time: datetime = Field(default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime)
    end_time: datetime | None = Field(default=None, sa_type=UTCDateTime)
    active: bool = Field(default=True, index=True)


class CommandAuditEntry(SQLModel, table=True):
    """A command transmission attempt. Delivery is never confirmed."""

    id: int | None = Field(default=None, primary_key=True)
    device_id: str = Field(index=True)
    command: str
    source: CommandSource = CommandSource.admin
    success: bool = True
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime)
