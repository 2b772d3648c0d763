from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
import redis
from schemas.messages import PostMessageRequest, ListMessagesResponse
from schemas.rooms import AckResponse
from services.messages import MessageLogCoordinator
from dependencies import get_message_coordinator, get_room_token
from exceptions import AuthError, RoomNotFound, ValidationError
from logging_config import get_logger

logger = get_logger(__name__)

messages_router = APIRouter(prefix="/messages", tags=["messages"])


@messages_router.post("/", response_model=AckResponse, status_code=status.HTTP_201_CREATED)
async def post_message(
    body: PostMessageRequest,
    token: Optional[str] = Depends(get_room_token),
    messages: MessageLogCoordinator = Depends(get_message_coordinator),
):
    try:
        messages.post_message(token, body.sender, body.text)
    except ValidationError as e:
        logger.warning(f"Post message rejected: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except AuthError as e:
        logger.warning(f"Post message failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except RoomNotFound as e:
        logger.info(f"Post message failed: Room {e.room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    except redis.RedisError as e:
        logger.error(f"Error posting message: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to post message")

    return AckResponse(message="Message posted")


@messages_router.get("/", response_model=ListMessagesResponse)
async def list_messages(
    token: Optional[str] = Depends(get_room_token),
    messages: MessageLogCoordinator = Depends(get_message_coordinator),
):
    try:
        views = messages.list_messages(token)
    except AuthError as e:
        logger.warning(f"List messages failed: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except RoomNotFound as e:
        logger.info(f"List messages failed: Room {e.room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")
    except redis.RedisError as e:
        logger.error(f"Error listing messages: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list messages")

    return ListMessagesResponse(messages=views)
