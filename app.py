from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PayloadValidationError
from routers.rooms import rooms_router
from routers.messages import messages_router
from backend import RedisBackend, get_redis_backend
from dependencies import get_room_manager
from services.rooms import RoomLifecycleManager
from schemas.events import RoomDestroyedEvent, parse_room_event
from exceptions import AuthError, RoomNotFound
import redis
import uuid
import json
import asyncio
from typing import Dict, Optional
from datetime import datetime, timezone
from logging_config import get_logger, setup_logging
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

app = FastAPI(
    title="BurnRoom API",
    description="Self-destructing chat rooms",
)

# Configure CORS to allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)
app.include_router(messages_router)

logger.info("FastAPI application initialized")

# In-memory connection tracking per room
# Format: {room_id: {connection_id: websocket}}
# Each instance tracks only its own WebSocket connections; Redis pub/sub fans events out
# to every instance, and each instance forwards them to its local connections.
room_connections: Dict[str, Dict[str, WebSocket]] = {}

# Background tasks for Redis pub/sub listeners per room
# Format: {room_id: task}
room_pubsub_tasks: Dict[str, asyncio.Task] = {}


async def broadcast_to_room(room_id: str, payload: dict):
    """Send a payload to every local connection of a room, dropping the ones that fail."""
    connections = room_connections.get(room_id, {})
    if not connections:
        return
    data = json.dumps(payload)
    conn_ids = list(connections.keys())
    results = await asyncio.gather(
        *(connections[conn_id].send_text(data) for conn_id in conn_ids),
        return_exceptions=True,
    )
    for conn_id, result in zip(conn_ids, results):
        if isinstance(result, Exception):
            logger.warning(f"Error sending to connection {conn_id} in room {room_id}: {result}")
            connections.pop(conn_id, None)
    logger.debug(f"Broadcasted {payload.get('type')} to {len(conn_ids)} connections in room {room_id}")


async def close_room_connections(room_id: str):
    connections = room_connections.get(room_id, {})
    for conn_id, ws in list(connections.items()):
        try:
            await ws.close(code=1000, reason="Room destroyed")
        except Exception as e:
            logger.debug(f"Error closing connection {conn_id} in room {room_id}: {e}")


async def listen_to_redis_channel(room_id: str, backend: RedisBackend):
    """Background task relaying room events from Redis pub/sub to local connections."""
    logger.info(f"Starting Redis pub/sub listener for room: {room_id}")
    pubsub = None
    try:
        pubsub = backend.subscribe_to_room(room_id)
        loop = asyncio.get_running_loop()

        def get_message():
            """Blocking call to get next message from Redis pub/sub with timeout."""
            try:
                return pubsub.get_message(timeout=1.0, ignore_subscribe_messages=True)
            except Exception as e:
                logger.error(f"Error in pubsub.get_message() for room {room_id}: {e}", exc_info=True)
                return None

        while room_connections.get(room_id):
            message = await loop.run_in_executor(None, get_message)
            if message is None or message.get("type") != "message":
                continue

            try:
                event = parse_room_event(message["data"])
            except PayloadValidationError as e:
                logger.error(f"Dropping malformed event on room {room_id} channel: {e}")
                continue

            await broadcast_to_room(room_id, event.model_dump(mode="json"))
            if isinstance(event, RoomDestroyedEvent):
                logger.info(f"Room {room_id} destroyed, closing local connections")
                await close_room_connections(room_id)
                break

        logger.info(f"No more connections in room {room_id}, stopping listener")
    except asyncio.CancelledError:
        logger.info(f"Redis listener task cancelled for room: {room_id}")
    except Exception as e:
        logger.error(f"Error in Redis listener for room {room_id}: {e}", exc_info=True)
    finally:
        if pubsub:
            try:
                pubsub.close()
                logger.debug(f"Closed pub/sub connection for room: {room_id}")
            except Exception as e:
                logger.error(f"Error closing pub/sub for room {room_id}: {e}")
        if room_pubsub_tasks.get(room_id) is asyncio.current_task():
            del room_pubsub_tasks[room_id]


@app.websocket("/rooms/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = None,
    backend: RedisBackend = Depends(get_redis_backend),
    rooms: RoomLifecycleManager = Depends(get_room_manager),
):
    """Stream a room's events (message-appended, room-destroyed) to the client.

    Query parameters:
    - token: the room's capability token
    """
    try:
        room_id = rooms.require_room(token)
    except AuthError as e:
        logger.warning(f"WebSocket connection rejected: {e}")
        await websocket.close(code=1008, reason="Invalid token")
        return
    except RoomNotFound as e:
        logger.info(f"WebSocket connection rejected: Room {e.room_id} not found")
        await websocket.close(code=1008, reason="Room not found")
        return
    except redis.RedisError as e:
        logger.error(f"WebSocket connection failed, store unavailable: {e}", exc_info=True)
        await websocket.close(code=1011, reason="Store unavailable")
        return

    await websocket.accept()
    connection_id = str(uuid.uuid4())
    room_connections.setdefault(room_id, {})[connection_id] = websocket
    logger.info(f"WebSocket connection {connection_id} accepted for room: {room_id}")

    # Listener must be subscribed before the client starts acting on the room
    if room_id not in room_pubsub_tasks or room_pubsub_tasks[room_id].done():
        room_pubsub_tasks[room_id] = asyncio.create_task(listen_to_redis_channel(room_id, backend))
        await asyncio.sleep(0.1)

    try:
        await websocket.send_text(json.dumps({
            "type": "system",
            "message": "Connected to room",
            "room_id": room_id,
            "connection_id": connection_id,
            "ttl_seconds": rooms.get_remaining_lifetime(token),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
        # Clients only listen; posting goes through POST /messages/
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection_id} in room {room_id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id} in room {room_id}: {e}", exc_info=True)
    finally:
        connections = room_connections.get(room_id)
        if connections is not None:
            connections.pop(connection_id, None)
            if not connections:
                del room_connections[room_id]
                logger.info(f"No more local connections in room {room_id}, cleaning up")
                task = room_pubsub_tasks.pop(room_id, None)
                if task and not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass


@app.get("/health")
async def health(backend: RedisBackend = Depends(get_redis_backend)):
    try:
        backend.ping()
    except redis.RedisError as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Redis unavailable")
    return {"status": "ok"}
