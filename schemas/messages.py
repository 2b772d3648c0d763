from datetime import datetime
from pydantic import BaseModel


class PostMessageRequest(BaseModel):
    # Bounds are enforced by MessageLogCoordinator so every caller gets the same ValidationError
    sender: str
    text: str

class Message(BaseModel):
    id: str
    sender: str
    text: str
    timestamp: datetime
    room_id: str

class StoredMessage(Message):
    """Log entry as persisted in Redis. ``token_hash`` never leaves the server."""
    token_hash: str

class MessageView(Message):
    # Compares the posting token with the caller's. Everyone in a room shares the one
    # token issued at creation, so this tells tokens apart, not participants.
    is_own: bool = False

class ListMessagesResponse(BaseModel):
    messages: list[MessageView]
