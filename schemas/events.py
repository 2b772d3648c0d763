"""Events published on a room's broadcast channel.

Exactly two kinds exist, told apart by ``type``. Subscribers parse every payload
through :func:`parse_room_event`, so anything else on the channel is rejected.
"""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from schemas.messages import Message

MESSAGE_APPENDED = "message-appended"
ROOM_DESTROYED = "room-destroyed"


class MessageAppendedEvent(BaseModel):
    type: Literal["message-appended"] = MESSAGE_APPENDED
    message: Message


class RoomDestroyedEvent(BaseModel):
    type: Literal["room-destroyed"] = ROOM_DESTROYED
    is_destroyed: bool = True


RoomEvent = Annotated[Union[MessageAppendedEvent, RoomDestroyedEvent], Field(discriminator="type")]

_room_event_adapter = TypeAdapter(RoomEvent)


def parse_room_event(raw: Union[str, bytes, dict]) -> Union[MessageAppendedEvent, RoomDestroyedEvent]:
    """Validate a channel payload. Raises ``pydantic.ValidationError`` for unknown shapes."""
    if isinstance(raw, dict):
        return _room_event_adapter.validate_python(raw)
    return _room_event_adapter.validate_json(raw)
