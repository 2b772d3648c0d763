from typing import Optional

from fastapi import Depends, Header

from backend import RedisBackend, get_redis_backend
from constants import TOKEN_HEADER
from services.messages import MessageLogCoordinator
from services.rooms import RoomLifecycleManager
from services.tokens import TokenIssuer

_token_issuer = TokenIssuer()


def get_token_issuer() -> TokenIssuer:
    return _token_issuer


def get_room_manager(
    backend: RedisBackend = Depends(get_redis_backend),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> RoomLifecycleManager:
    return RoomLifecycleManager(backend, issuer)


def get_message_coordinator(
    backend: RedisBackend = Depends(get_redis_backend),
    rooms: RoomLifecycleManager = Depends(get_room_manager),
) -> MessageLogCoordinator:
    return MessageLogCoordinator(backend, rooms)


def get_room_token(x_auth_token: Optional[str] = Header(None, alias=TOKEN_HEADER)) -> Optional[str]:
    return x_auth_token
