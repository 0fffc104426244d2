"""SafeWatt application entrypoint."""

import base64
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

import safewatt.database as db_module
from safewatt.config import settings
from safewatt.errors import DeviceNotFoundError, InvalidRequestError
from safewatt.gateway import build_gateway
from safewatt.registry.models import SUPPORTED_DEVICE_TYPES

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

VERSION = "3.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    db_module.init_db(db_module.telemetry_engine, db_module.command_engine)
    logger.info("Database initialized")

    gateway = build_gateway(settings, db_module.telemetry_engine, db_module.command_engine)
    # No device survives a restart, so neither does an active session
    stale = gateway.store.close_all_active_sessions()
    if stale:
        logger.info("Closed %d session(s) left active by a previous run", stale)

    app.state.gateway = gateway
    await gateway.start()

    yield

    await gateway.stop()
    logger.info("Gateway stopped, active sessions closed")


app = FastAPI(
    title="SafeWatt",
    description="Telemetry and control gateway for electrical safety monitors",
    version=VERSION,
    lifespan=lifespan,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def credentials_match(username: str, password: str, expected_user: str, expected_pass: str) -> bool:
    """Timing-safe comparison of a username/password pair."""
    username_match = secrets.compare_digest(username.encode(), expected_user.encode())
    password_match = secrets.compare_digest(password.encode(), expected_pass.encode())
    return username_match and password_match


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """HTTP Basic Authentication middleware.

    Protects admin routes (``/api/admin``) except the public command
    catalog. Requires valid username/password provided via Authorization
    header.
    """

    protected_prefix = "/api/admin"
    exempt_paths = {"/api/admin/commands/available"}

    def __init__(self, app, username: str, password: str):
        super().__init__(app)
        self.username = username
        self.password = password

    async def dispatch(self, request, call_next):
        path = request.url.path
        if not path.startswith(self.protected_prefix) or path in self.exempt_paths:
            return await call_next(request)

        # Check Authorization header
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Basic "):
            return self._unauthorized_response()

        # Decode credentials
        try:
            encoded = auth_header[6:]  # Strip "Basic "
            decoded = base64.b64decode(encoded).decode("utf-8")
            provided_username, provided_password = decoded.split(":", 1)
        except Exception:
            return self._unauthorized_response()

        if not credentials_match(
            provided_username, provided_password, self.username, self.password
        ):
            return self._unauthorized_response()

        return await call_next(request)

    def _unauthorized_response(self) -> Response:
        return Response(
            content="Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": 'Basic realm="SafeWatt Admin"'},
        )


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    BasicAuthMiddleware, username=settings.auth_username, password=settings.auth_password
)


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    content: dict[str, object] = {"detail": exc.message}
    if exc.valid:
        content["valid"] = exc.valid
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(DeviceNotFoundError)
async def device_not_found_handler(request: Request, exc: DeviceNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Device not found or offline"})


# Register routers
from safewatt.api.admin import router as admin_router  # noqa: E402
from safewatt.api.routes import router as api_router  # noqa: E402
from safewatt.live.routes import router as live_router  # noqa: E402

app.include_router(api_router)
app.include_router(admin_router)
app.include_router(live_router)


@app.get("/api/health")
def health(request: Request) -> dict[str, object]:
    gateway = request.app.state.gateway
    return {
        "status": "ok",
        "uptime": gateway.uptime,
        "timestamp": datetime.now(UTC).isoformat(),
        "activeDevices": len(gateway.registry),
        "version": VERSION,
        "supportedDevices": SUPPORTED_DEVICE_TYPES,
    }


def main() -> None:
    import uvicorn

    logger.info("Starting SafeWatt on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
