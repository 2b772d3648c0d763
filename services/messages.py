import uuid
from datetime import datetime, timezone
from typing import Optional

import redis

from backend import RedisBackend
from constants import MAX_SENDER_LENGTH, MAX_TEXT_LENGTH
from exceptions import RoomNotFound, ValidationError
from logging_config import get_logger
from schemas.messages import Message, MessageView, StoredMessage
from services.notifications import NotificationRelay
from services.rooms import RoomLifecycleManager
from services.tokens import hash_token

logger = get_logger(__name__)


def validate_message_input(sender: str, text: str):
    if len(sender) > MAX_SENDER_LENGTH:
        raise ValidationError(f"sender must be at most {MAX_SENDER_LENGTH} characters")
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"text must be at most {MAX_TEXT_LENGTH} characters")


class MessageLogCoordinator:
    """Appends to and reads a room's message log.

    The log is a Redis list next to the room's meta key. Its expiry is pulled in line
    with the meta key's remaining TTL on every append so it cannot outlive the room.
    Reads flag each message with `is_own` by comparing token fingerprints; the raw
    token is never stored with a message.
    """

    def __init__(
        self,
        backend: RedisBackend,
        rooms: RoomLifecycleManager,
        notifier: Optional[NotificationRelay] = None,
    ):
        self.backend = backend
        self.rooms = rooms
        self.notifier = notifier or rooms.notifier

    def post_message(self, token: Optional[str], sender: str, text: str) -> Message:
        validate_message_input(sender, text)
        room_id = self.rooms.require_room(token)

        message = Message(
            id=uuid.uuid4().hex,
            sender=sender,
            text=text,
            timestamp=datetime.now(timezone.utc),
            room_id=room_id,
        )
        stored = StoredMessage(**message.model_dump(), token_hash=hash_token(token))
        self.backend.append_message(room_id, stored.model_dump(mode="json"))

        remaining = self.backend.get_room_ttl(room_id)
        if remaining == -2:
            # Room expired or was destroyed between the existence check and the append
            logger.warning(f"Room {room_id} vanished while posting message {message.id}, discarding log")
            self.backend.delete_room(room_id)
            raise RoomNotFound(room_id)
        if remaining > 0:
            self.backend.sync_room_ttl(room_id, remaining)

        try:
            self.notifier.notify_message(room_id, message)
        except redis.RedisError as e:
            # The message is in the log; subscribers recover it on their next read
            logger.error(f"Failed to publish message {message.id} for room {room_id}: {e}", exc_info=True)

        logger.info(f"Message {message.id} posted to room {room_id}")
        return message

    def list_messages(self, token: Optional[str]) -> list[MessageView]:
        room_id = self.rooms.require_room(token)
        caller_hash = hash_token(token)

        views = []
        for entry in self.backend.get_messages(room_id):
            owner_hash = entry.pop("token_hash", None)
            # Entries must belong to this room
            if entry.get("room_id") != room_id:
                logger.warning(f"Skipping message {entry.get('id')} not belonging to room {room_id}")
                continue
            views.append(MessageView(**entry, is_own=owner_hash == caller_hash))
        logger.debug(f"Listed {len(views)} messages for room {room_id}")
        return views
