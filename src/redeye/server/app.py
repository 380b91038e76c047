"""FastAPI transport for the RedEye control plane.

One WebSocket endpoint at ``/`` carries command/response envelopes and
unsolicited event broadcasts over the same connection.  A few read-only
REST helpers expose the configuration for quick inspection.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from redeye.core.bus import EventBus
from redeye.core.config import ConfigurationStore
from redeye.core.defaults import APP_NAME
from redeye.ipc.router import CommandRouter
from redeye.server.broadcast import ClientBroadcaster

logger = logging.getLogger(__name__)


def create_app(
    store: ConfigurationStore,
    bus: EventBus,
    *,
    router: CommandRouter | None = None,
    broadcaster: ClientBroadcaster | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        store: Shared configuration store.
        bus: Event bus whose events are broadcast to every connected client.
        router: Command router; defaults to a :class:`CommandRouter` over *store*.
        broadcaster: Bus-to-client adapter; one is created if omitted.
    """
    router = router or CommandRouter(store)
    broadcaster = broadcaster or ClientBroadcaster()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):  # type: ignore[no-untyped-def]
        broadcaster.bind_loop(asyncio.get_running_loop())
        broadcaster.attach(bus)
        try:
            yield
        finally:
            broadcaster.detach()

    app = FastAPI(
        title=APP_NAME,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.broadcaster = broadcaster

    # -- REST -----------------------------------------------------------------

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "app": APP_NAME, "clients": broadcaster.client_count}

    @app.get("/api/config")
    def get_config() -> dict[str, Any]:
        return store.get_current_config().to_wire()

    @app.get("/api/capabilities")
    def get_capabilities() -> dict[str, Any]:
        return store.get_capabilities()

    # -- WebSocket ------------------------------------------------------------

    @app.websocket("/")
    async def ws_commands(websocket: WebSocket) -> None:
        await websocket.accept()
        client_id = uuid.uuid4()
        send_lock = asyncio.Lock()
        logger.info("Client %s connected", client_id)

        async def send(text: str) -> None:
            async with send_lock:
                await websocket.send_text(text)

        async with broadcaster.register(client_id) as queue:

            async def pump_events() -> None:
                try:
                    while True:
                        await send(await queue.get())
                except Exception:
                    logger.debug("Broadcast to client %s stopped", client_id, exc_info=True)

            pump = asyncio.create_task(pump_events())
            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        break
                    raw = message.get("text")
                    if raw is None:
                        raw = message.get("bytes")
                    if raw is None:
                        continue
                    reply = await asyncio.to_thread(router.handle, raw, client_id)
                    if reply is not None:
                        await send(reply)
            except WebSocketDisconnect:
                pass
            except Exception:
                logger.exception("WebSocket error for client %s", client_id)
            finally:
                pump.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await pump
                logger.info("Client %s disconnected", client_id)

    return app
