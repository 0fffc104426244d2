"""Shared test fixtures."""

import base64
from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

import safewatt.database as db_module
from safewatt.commands.router import CommandRouter
from safewatt.config import settings
from safewatt.database import init_db
from safewatt.live.hub import BroadcastHub
from safewatt.main import app
from safewatt.registry.store import DeviceRegistry
from safewatt.storage.log import LogStore
from safewatt.telemetry.ingest import IngestionPipeline


def _memory_engine():
    """In-memory SQLite engine.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def engines():
    telemetry, commands = _memory_engine(), _memory_engine()
    init_db(telemetry, commands)
    return telemetry, commands


@pytest.fixture
def store(engines) -> LogStore:
    telemetry, commands = engines
    return LogStore(telemetry, commands)


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def events(hub) -> list[dict[str, Any]]:
    """Every message published on the hub, in order."""
    received: list[dict[str, Any]] = []
    hub.subscribe(received.append)
    return received


@pytest.fixture
def router(registry, store, hub) -> CommandRouter:
    return CommandRouter(registry, store, hub)


@pytest.fixture
def pipeline(registry, store, hub, router) -> IngestionPipeline:
    return IngestionPipeline(registry, store, hub, router=router)


@pytest.fixture
def client(engines) -> Generator[TestClient, None, None]:
    """FastAPI TestClient whose lifespan builds the gateway on the test engines."""
    # Patch the module-level engines so lifespan's init_db() and
    # build_gateway() both use the in-memory databases.
    original = db_module.telemetry_engine, db_module.command_engine
    db_module.telemetry_engine, db_module.command_engine = engines

    with TestClient(app) as c:
        yield c

    db_module.telemetry_engine, db_module.command_engine = original


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = f"{settings.auth_username}:{settings.auth_password}".encode()
    return {"Authorization": f"Basic {base64.b64encode(token).decode('utf-8')}"}
