import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from backend import RedisBackend
from constants import ROOM_TTL_SECONDS
from exceptions import RoomNotFound
from logging_config import get_logger
from schemas.rooms import Room
from services.notifications import NotificationRelay
from services.tokens import TokenIssuer

logger = get_logger(__name__)


class RoomLifecycleManager:
    """Creates rooms, reports their remaining lifetime and tears them down.

    A room exists exactly as long as its meta key does. Expiry is left to Redis;
    explicit destruction deletes the keys. Afterwards the two cases look the same.
    """

    def __init__(
        self,
        backend: RedisBackend,
        issuer: TokenIssuer,
        notifier: Optional[NotificationRelay] = None,
        lifetime_seconds: int = ROOM_TTL_SECONDS,
    ):
        self.backend = backend
        self.issuer = issuer
        self.notifier = notifier or NotificationRelay(backend)
        self.lifetime_seconds = lifetime_seconds

    def create_room(self) -> tuple[Room, str]:
        room_id = uuid.uuid4().hex
        created_at = datetime.now(timezone.utc)
        expires_at = created_at + timedelta(seconds=self.lifetime_seconds)

        self.backend.create_room(room_id, {
            "created_at": created_at.isoformat(),
            "expires_at": expires_at.isoformat(),
            "lifetime_seconds": self.lifetime_seconds,
        }, ttl=self.lifetime_seconds)
        token, token_id = self.issuer.issue(room_id)
        self.backend.store_token(room_id, token_id, ttl=self.lifetime_seconds)

        logger.info(f"Room {room_id} created, expires_at={expires_at.isoformat()}")
        room = Room(
            room_id=room_id,
            created_at=created_at.isoformat(),
            expires_at=expires_at.isoformat(),
            ttl_seconds=self.lifetime_seconds,
        )
        return room, token

    def require_room(self, token: Optional[str]) -> str:
        """Validate ``token`` and confirm its room still exists. Returns the room id."""
        room_id = self.issuer.validate(token)
        if not self.backend.room_exists(room_id):
            raise RoomNotFound(room_id)
        return room_id

    def get_room(self, token: Optional[str]) -> Room:
        room_id = self.issuer.validate(token)
        meta = self.backend.get_room(room_id)
        if not meta:
            raise RoomNotFound(room_id)
        return Room(
            room_id=room_id,
            created_at=meta.get("created_at", ""),
            expires_at=meta.get("expires_at", ""),
            ttl_seconds=max(self.backend.get_room_ttl(room_id), 0),
        )

    def get_remaining_lifetime(self, token: Optional[str]) -> int:
        """Seconds left before the room self-destructs; 0 once it is gone."""
        room_id = self.issuer.validate(token)
        ttl = self.backend.get_room_ttl(room_id)
        return ttl if ttl > 0 else 0

    def destroy_room(self, token: Optional[str]) -> bool:
        """Destroy the room. Returns False when it was already gone."""
        room_id = self.issuer.validate(token)
        if not self.backend.room_exists(room_id):
            logger.info(f"Destroy requested for room {room_id}, already gone")
            return False

        # Subscribers hear about it before the records disappear
        self.notifier.notify_destroyed(room_id)
        self.backend.delete_room(room_id)
        logger.info(f"Room {room_id} destroyed")
        return True
