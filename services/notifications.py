from backend import RedisBackend
from logging_config import get_logger
from schemas.events import MessageAppendedEvent, RoomDestroyedEvent
from schemas.messages import Message

logger = get_logger(__name__)


class NotificationRelay:
    """Publishes room events on the room's pub/sub channel.

    Delivery is best effort: subscribers that are not connected at publish time never
    see the event and must re-read the TTL and message log instead.
    """

    def __init__(self, backend: RedisBackend):
        self.backend = backend

    def notify_message(self, room_id: str, message: Message) -> int:
        event = MessageAppendedEvent(message=message)
        receivers = self.backend.publish_message(room_id, event.model_dump(mode="json"))
        logger.debug(f"message-appended {message.id} sent to {receivers} subscribers of room {room_id}")
        return receivers

    def notify_destroyed(self, room_id: str) -> int:
        receivers = self.backend.publish_message(room_id, RoomDestroyedEvent().model_dump(mode="json"))
        logger.info(f"room-destroyed sent to {receivers} subscribers of room {room_id}")
        return receivers
