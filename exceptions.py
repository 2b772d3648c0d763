class BurnRoomError(Exception):
    """Base class for errors raised by the room services."""


class ValidationError(BurnRoomError):
    """Input outside the declared bounds. Raised before touching the store."""


class AuthError(BurnRoomError):
    """Capability token missing, malformed, or not signed by us."""


class RoomNotFound(BurnRoomError):
    """The room's metadata record is gone: it expired or was destroyed."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")
