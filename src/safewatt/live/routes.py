"""WebSocket endpoint for the live broadcast channel."""

import asyncio
import json
import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from safewatt.gateway import Gateway, get_gateway
from safewatt.live.hub import SEND_COMMAND, Message, bootstrap_messages

logger = logging.getLogger(__name__)

router = APIRouter()


def _join(
    gateway: Gateway, deliver: Callable[[Message], None]
) -> tuple[list[Message], Callable[[], None]]:
    """Snapshot and subscribe atomically: nothing published in between is lost."""
    with gateway.registry.lock:
        return bootstrap_messages(gateway.registry), gateway.hub.subscribe(deliver)


async def _forward(websocket: WebSocket, queue: "asyncio.Queue[Message]") -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def live_channel(websocket: WebSocket, gateway: Gateway = Depends(get_gateway)) -> None:
    await websocket.accept()
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "?"
    logger.info("Web client connected: %s", client)

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Message] = asyncio.Queue()

    def deliver(message: Message) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, message)

    # The registry lock is held by worker threads across commits
    bootstrap, unsubscribe = await run_in_threadpool(_join, gateway, deliver)

    forward_task: asyncio.Task[None] | None = None
    try:
        for message in bootstrap:
            await websocket.send_json(message)
        forward_task = asyncio.create_task(_forward(websocket, queue))

        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except ValueError:
                continue
            if not isinstance(message, dict) or message.get("event") != SEND_COMMAND:
                continue
            data = message.get("data")
            if not isinstance(data, dict):
                continue
            await run_in_threadpool(
                gateway.commands.send_from_viewer, data.get("deviceId"), data.get("command")
            )
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if forward_task:
            forward_task.cancel()
            try:
                await forward_task
            except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                pass
        logger.info("Web client disconnected: %s", client)
