from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from contextlib import asynccontextmanager
from typing import Optional
import asyncio
import json
import os

import httpx

from constants import FRONTEND_DIST, GEMINI_API_KEY, KEEPALIVE_INTERVAL_MS, PING_URL, PISTON_API_URL, REAP_EMPTY_ROOMS
from dispatcher import Broadcaster
from events import CODE_CHANGE, COMPILE_CODE, GET_AI_REVIEW, JOIN, LANGUAGE_CHANGE, LEAVE_ROOM, TYPING
from logging_config import get_logger, setup_logging
from registry import RoomRegistry
from routers.rooms import health_router, rooms_router
from schemas.events import (
    CodeChangePayload, CompileCodePayload, Envelope, JoinPayload, LanguageChangePayload, ReviewPayload, TypingPayload,
)
from services.execution import ExecutionGateway
from services.keepalive import keep_alive
from services.review import ReviewGateway
from session import Connection, SessionManager

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)


async def handle_join(state, connection: Connection, data):
    payload = JoinPayload.model_validate(data or {})
    await state.sessions.join(connection, payload.room_id, payload.user_name)


async def handle_leave(state, connection: Connection, data):
    await state.sessions.leave(connection)


async def handle_code_change(state, connection: Connection, data):
    payload = CodeChangePayload.model_validate(data or {})
    await state.sessions.update_code(connection, payload.room_id, payload.code)


async def handle_language_change(state, connection: Connection, data):
    payload = LanguageChangePayload.model_validate(data or {})
    await state.sessions.update_language(connection, payload.room_id, payload.language)


async def handle_typing(state, connection: Connection, data):
    # Sent positionally as [roomId, userName]
    if isinstance(data, (list, tuple)):
        data = dict(zip(("roomId", "userName"), data))
    payload = TypingPayload.model_validate(data or {})
    await state.sessions.notify_typing(connection, payload.room_id)


async def handle_compile(state, connection: Connection, data):
    payload = CompileCodePayload.model_validate(data or {})
    spawn(state, state.execution.compile_code(
        connection, payload.code, payload.room_id, payload.language, payload.version, payload.stdin,
    ))


async def handle_review(state, connection: Connection, data):
    payload = ReviewPayload.model_validate(data or {})
    if not state.sessions.is_bound_to(connection, payload.room_id):
        logger.warning(f"Dropping getAIReview from {connection.connection_id}: not bound to room {payload.room_id}")
        return
    spawn(state, state.review.review(payload.room_id, payload.code))


EVENT_HANDLERS = {
    JOIN: handle_join,
    LEAVE_ROOM: handle_leave,
    CODE_CHANGE: handle_code_change,
    LANGUAGE_CHANGE: handle_language_change,
    TYPING: handle_typing,
    COMPILE_CODE: handle_compile,
    GET_AI_REVIEW: handle_review,
}


def spawn(state, coro):
    """Run an external call without blocking the connection's receive loop."""
    task = asyncio.create_task(coro)
    state.background_tasks.add(task)
    task.add_done_callback(state.background_tasks.discard)
    return task


async def dispatch_event(state, connection: Connection, raw: str):
    try:
        envelope = Envelope.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug(f"Dropping malformed frame from connection {connection.connection_id}: {e}")
        return

    handler = EVENT_HANDLERS.get(envelope.event)
    if handler is None:
        logger.debug(f"Ignoring unknown event {envelope.event!r} from connection {connection.connection_id}")
        return

    try:
        await handler(state, connection, envelope.data)
    except ValidationError as e:
        logger.debug(f"Dropping {envelope.event} from connection {connection.connection_id}: invalid payload: {e}")


async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint carrying all room events for one client.

    Frames are JSON objects of the form {"event": name, "data": payload}.
    """
    state = websocket.app.state
    await websocket.accept()
    connection = Connection(websocket)
    logger.info(f"WebSocket connection accepted: {connection.connection_id}")

    message_count = 0
    try:
        while True:
            data = await websocket.receive_text()
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection.connection_id}")
            try:
                await dispatch_event(state, connection, data)
            except Exception as e:
                logger.error(f"Error handling message from connection {connection.connection_id}: {e}", exc_info=True)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection.connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.connection_id}: {e}", exc_info=True)
    finally:
        # Disconnect is an implicit leave; the server may already be cancelling this task
        await asyncio.shield(state.sessions.leave(connection))


def create_app(transport: Optional[httpx.AsyncBaseTransport] = None,
               reap_empty_rooms: bool = REAP_EMPTY_ROOMS,
               gemini_api_key: Optional[str] = GEMINI_API_KEY,
               ping_url: Optional[str] = PING_URL,
               keepalive_interval_ms: int = KEEPALIVE_INTERVAL_MS,
               frontend_dist: Optional[str] = FRONTEND_DIST) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(transport=transport)
        app.state.execution = ExecutionGateway(app.state.registry, app.state.broadcaster, client, api_url=PISTON_API_URL)
        app.state.review = ReviewGateway(app.state.broadcaster, client, api_key=gemini_api_key)

        keepalive_task = None
        if ping_url:
            keepalive_task = asyncio.create_task(keep_alive(client, ping_url, keepalive_interval_ms))
        app.state.keepalive_task = keepalive_task
        logger.info("Application startup complete")
        try:
            yield
        finally:
            # Stop everything still using the client before closing it
            pending = list(app.state.background_tasks)
            if keepalive_task:
                pending.append(keepalive_task)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                logger.info(f"Cancelled {len(pending)} background tasks")
            await client.aclose()
            logger.info("Application shutdown complete")

    app = FastAPI(title="CodeRoom", lifespan=lifespan)

    # Configure CORS to allow all origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins
        allow_credentials=True,
        allow_methods=["*"],  # Allow all HTTP methods
        allow_headers=["*"],  # Allow all headers
    )

    # Single in-memory authority, shared by every component
    app.state.registry = RoomRegistry(reap_empty_rooms=reap_empty_rooms)
    app.state.broadcaster = Broadcaster()
    app.state.sessions = SessionManager(app.state.registry, app.state.broadcaster)
    app.state.background_tasks = set()

    app.include_router(health_router)
    app.include_router(rooms_router)
    app.add_api_websocket_route("/ws", websocket_endpoint)

    # Must come last: it catches every remaining path
    if frontend_dist and os.path.isdir(frontend_dist):
        app.mount("/", StaticFiles(directory=frontend_dist, html=True), name="frontend")
        logger.info(f"Serving frontend from {frontend_dist}")

    logger.info("FastAPI application initialized")
    return app


app = create_app()
