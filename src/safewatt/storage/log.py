"""Append-only log store for readings, sessions and command audit entries.

Readings and commands are bounded ring buffers: after each append the
oldest rows beyond the retention limit are deleted. Sessions are kept
without a cap.

Storage failures never propagate. They are logged and the call degrades:
queries return empty results, appends hand back the unpersisted entry.
"""

import logging
import threading
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from safewatt.storage.models import CommandAuditEntry, CommandSource, ReadingEntry, SessionRecord

logger = logging.getLogger(__name__)

READING_RETENTION = 10000
COMMAND_RETENTION = 1000


def _evict_oldest(session: Session, model: type[SQLModel], keep: int) -> int:
    """Delete all but the newest ``keep`` rows of ``model`` (by insertion id)."""
    cutoff = session.exec(
        select(model.id).order_by(model.id.desc()).offset(keep).limit(1)  # type: ignore[attr-defined]
    ).first()
    if cutoff is None:
        return 0
    result = session.exec(delete(model).where(model.id <= cutoff))  # type: ignore[call-overload, attr-defined]
    return result.rowcount or 0


class LogStore:
    def __init__(
        self,
        telemetry_engine: Engine,
        command_engine: Engine,
        reading_retention: int = READING_RETENTION,
        command_retention: int = COMMAND_RETENTION,
    ) -> None:
        self._telemetry = telemetry_engine
        self._commands = command_engine
        self.reading_retention = reading_retention
        self.command_retention = command_retention
        # One writer per database file
        self._telemetry_lock = threading.Lock()
        self._command_lock = threading.Lock()

    # --- Readings ---

    def append_reading(
        self,
        device_id: str,
        device_type: str,
        payload: dict[str, Any],
        timestamp: datetime | None = None,
    ) -> ReadingEntry:
        entry = ReadingEntry(
            device_id=device_id,
            device_type=device_type,
            payload=payload,
            timestamp=timestamp or datetime.now(UTC),
        )
        try:
            with self._telemetry_lock, Session(self._telemetry, expire_on_commit=False) as session:
                session.add(entry)
                session.flush()
                evicted = _evict_oldest(session, ReadingEntry, self.reading_retention)
                session.commit()
            if evicted:
                logger.debug("Evicted %d old reading(s)", evicted)
        except SQLAlchemyError:
            logger.exception("Error saving reading for %s", device_id)
        return entry

    def query_readings(
        self,
        device_id: str | None = None,
        device_type: str | None = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[int, list[ReadingEntry]]:
        """Readings oldest first, with the total count before pagination."""
        stmt = select(ReadingEntry)
        count_stmt = select(func.count()).select_from(ReadingEntry)
        if device_id:
            stmt = stmt.where(ReadingEntry.device_id == device_id)
            count_stmt = count_stmt.where(ReadingEntry.device_id == device_id)
        if device_type:
            stmt = stmt.where(ReadingEntry.device_type == device_type.upper())
            count_stmt = count_stmt.where(ReadingEntry.device_type == device_type.upper())
        stmt = stmt.order_by(ReadingEntry.id).offset(offset).limit(limit)  # type: ignore[arg-type]
        try:
            with Session(self._telemetry) as session:
                total = session.exec(count_stmt).one()
                return total, list(session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("Error loading readings")
            return 0, []

    def latest_readings(self, device_id: str, limit: int = 100) -> list[ReadingEntry]:
        """The newest ``limit`` readings of one device, oldest first."""
        stmt = (
            select(ReadingEntry)
            .where(ReadingEntry.device_id == device_id)
            .order_by(ReadingEntry.id.desc())  # type: ignore[union-attr]
            .limit(limit)
        )
        try:
            with Session(self._telemetry) as session:
                rows = list(session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("Error loading readings for %s", device_id)
            return []
        rows.reverse()
        return rows

    def all_readings(self, device_id: str | None = None) -> list[ReadingEntry]:
        stmt = select(ReadingEntry)
        if device_id:
            stmt = stmt.where(ReadingEntry.device_id == device_id)
        stmt = stmt.order_by(ReadingEntry.id)  # type: ignore[arg-type]
        try:
            with Session(self._telemetry) as session:
                return list(session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("Error loading readings")
            return []

    # --- Sessions ---

    def open_session(
        self,
        device_id: str,
        device_type: str,
        origin_address: str,
        start_time: datetime | None = None,
    ) -> SessionRecord:
        """Start a session, closing any session still marked active for the device."""
        now = start_time or datetime.now(UTC)
        record = SessionRecord(
            device_id=device_id,
            device_type=device_type,
            origin_address=origin_address,
            start_time=now,
        )
        try:
            with self._telemetry_lock, Session(self._telemetry, expire_on_commit=False) as session:
                self._close_sessions(session, device_id, now)
                session.add(record)
                session.commit()
        except SQLAlchemyError:
            logger.exception("Error creating session for %s", device_id)
        return record

    def close_active_sessions(self, device_id: str, end_time: datetime | None = None) -> int:
        try:
            with self._telemetry_lock, Session(self._telemetry) as session:
                closed = self._close_sessions(session, device_id, end_time or datetime.now(UTC))
                session.commit()
                return closed
        except SQLAlchemyError:
            logger.exception("Error ending session for %s", device_id)
            return 0

    def close_all_active_sessions(self, end_time: datetime | None = None) -> int:
        try:
            with self._telemetry_lock, Session(self._telemetry) as session:
                closed = self._close_sessions(session, None, end_time or datetime.now(UTC))
                session.commit()
                return closed
        except SQLAlchemyError:
            logger.exception("Error ending active sessions")
            return 0

    @staticmethod
    def _close_sessions(session: Session, device_id: str | None, end_time: datetime) -> int:
        stmt = select(SessionRecord).where(SessionRecord.active == True)  # noqa: E712
        if device_id is not None:
            stmt = stmt.where(SessionRecord.device_id == device_id)
        records = session.exec(stmt).all()
        for record in records:
            record.end_time = end_time
            record.active = False
            session.add(record)
        return len(records)

    def query_sessions(
        self,
        device_id: str | None = None,
        device_type: str | None = None,
        active: bool | None = None,
    ) -> list[SessionRecord]:
        stmt = select(SessionRecord)
        if device_id:
            stmt = stmt.where(SessionRecord.device_id == device_id)
        if device_type:
            stmt = stmt.where(SessionRecord.device_type == device_type.upper())
        if active is not None:
            stmt = stmt.where(SessionRecord.active == active)
        stmt = stmt.order_by(SessionRecord.id)  # type: ignore[arg-type]
        try:
            with Session(self._telemetry) as session:
                return list(session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("Error loading sessions")
            return []

    # --- Command audit ---

    def append_command(
        self,
        device_id: str,
        command: str,
        source: CommandSource = CommandSource.admin,
        success: bool = True,
    ) -> CommandAuditEntry:
        entry = CommandAuditEntry(
            device_id=device_id,
            command=command,
            source=source,
            success=success,
        )
        try:
            with self._command_lock, Session(self._commands, expire_on_commit=False) as session:
                session.add(entry)
                session.flush()
                _evict_oldest(session, CommandAuditEntry, self.command_retention)
                session.commit()
        except SQLAlchemyError:
            logger.exception("Error saving command log entry for %s", device_id)
        return entry

    def query_commands(
        self, device_id: str | None = None, limit: int = 100
    ) -> tuple[int, list[CommandAuditEntry]]:
        """The newest ``limit`` commands (oldest first) and the total matching count."""
        stmt = select(CommandAuditEntry)
        count_stmt = select(func.count()).select_from(CommandAuditEntry)
        if device_id:
            stmt = stmt.where(CommandAuditEntry.device_id == device_id)
            count_stmt = count_stmt.where(CommandAuditEntry.device_id == device_id)
        stmt = stmt.order_by(CommandAuditEntry.id.desc()).limit(limit)  # type: ignore[union-attr]
        try:
            with Session(self._commands) as session:
                total = session.exec(count_stmt).one()
                rows = list(session.exec(stmt).all())
        except SQLAlchemyError:
            logger.exception("Error loading command log")
            return 0, []
        rows.reverse()
        return total, rows
