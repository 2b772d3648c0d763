from fastapi import APIRouter, Depends, HTTPException, Request, status
from typing import Optional
import redis
from schemas.rooms import CreateRoomResponse, Room, RemainingLifetimeResponse, AckResponse
from services.rooms import RoomLifecycleManager
from dependencies import get_room_manager, get_room_token
from exceptions import AuthError, RoomNotFound
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def build_ws_url(request: Request, token: str) -> str:
    # Replace http/https with ws/wss
    base_url = str(request.base_url).rstrip('/')
    ws_base = base_url.replace("http://", "ws://").replace("https://", "wss://")
    return f"{ws_base}/rooms/ws?token={token}"


@rooms_router.post("/", response_model=CreateRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(request: Request, rooms: RoomLifecycleManager = Depends(get_room_manager)):
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room creation request from {client_host}")
    try:
        room, token = rooms.create_room()
    except redis.RedisError as e:
        logger.error(f"Error creating room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create room")

    return CreateRoomResponse(
        room_id=room.room_id,
        token=token,
        ws_url=build_ws_url(request, token),
        expires_at=room.expires_at,
        ttl_seconds=room.ttl_seconds,
    )


@rooms_router.get("/", response_model=Room)
async def get_room_details(
    token: Optional[str] = Depends(get_room_token),
    rooms: RoomLifecycleManager = Depends(get_room_manager),
):
    """
    Get details of the room the token is bound to.

    Returns:
    - room_id: Unique room identifier
    - created_at: Room creation timestamp
    - expires_at: Room expiration timestamp
    - ttl_seconds: Seconds left before the room self-destructs
    """
    try:
        room = rooms.get_room(token)
    except AuthError as e:
        logger.warning(f"Room details failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except RoomNotFound as e:
        logger.warning(f"Room details failed: Room {e.room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    except redis.RedisError as e:
        logger.error(f"Error fetching room details: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch room")

    return room


@rooms_router.get("/ttl", response_model=RemainingLifetimeResponse)
async def get_remaining_lifetime(
    token: Optional[str] = Depends(get_room_token),
    rooms: RoomLifecycleManager = Depends(get_room_manager),
):
    # 0 means the room expired or was destroyed; clients redirect on it
    try:
        seconds = rooms.get_remaining_lifetime(token)
    except AuthError as e:
        logger.warning(f"TTL request failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except redis.RedisError as e:
        logger.error(f"Error reading room TTL: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to read room lifetime")

    return RemainingLifetimeResponse(seconds=seconds)


@rooms_router.delete("/", response_model=AckResponse)
async def destroy_room(
    token: Optional[str] = Depends(get_room_token),
    rooms: RoomLifecycleManager = Depends(get_room_manager),
):
    # DELETE /rooms/
    # - room-destroyed is published on the room channel first
    # - meta, messages and token keys are then deleted together
    # - repeating the call on a gone room is a no-op
    try:
        destroyed = rooms.destroy_room(token)
    except AuthError as e:
        logger.warning(f"Destroy room failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except redis.RedisError as e:
        logger.error(f"Error destroying room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to destroy room")

    if destroyed:
        return AckResponse(message="Room destroyed")
    return AckResponse(message="Room already gone")
