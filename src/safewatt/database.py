"""Database engines and table setup.

Telemetry (sessions + readings) and the command log live in two separate
SQLite files so that writes to one never contend with the other.
"""

from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, create_engine

from safewatt.config import settings


class UTCDateTime(TypeDecorator):
    """Store datetimes as naive UTC, load them back timezone-aware.

    SQLite has no timezone support and strips tzinfo on the way in.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        return value.replace(tzinfo=UTC)


def make_engine(url: str) -> Engine:
    return create_engine(url, echo=False, connect_args={"check_same_thread": False})


telemetry_engine = make_engine(f"sqlite:///{settings.telemetry_db_path}")
command_engine = make_engine(f"sqlite:///{settings.command_db_path}")


def init_db(telemetry: Engine, commands: Engine) -> None:
    """Create the telemetry tables and the command log table in their own files."""
    from safewatt.storage.models import CommandAuditEntry, ReadingEntry, SessionRecord

    for engine in (telemetry, commands):
        database = engine.url.database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    SQLModel.metadata.create_all(
        telemetry, tables=[SessionRecord.__table__, ReadingEntry.__table__]  # type: ignore[attr-defined]
    )
    SQLModel.metadata.create_all(commands, tables=[CommandAuditEntry.__table__])  # type: ignore[attr-defined]
