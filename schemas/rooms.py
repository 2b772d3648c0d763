from pydantic import BaseModel


class Room(BaseModel):
    room_id: str
    created_at: str
    expires_at: str
    ttl_seconds: int

class CreateRoomResponse(BaseModel):
    room_id: str
    token: str
    ws_url: str
    expires_at: str
    ttl_seconds: int

class RemainingLifetimeResponse(BaseModel):
    seconds: int

class AckResponse(BaseModel):
    message: str
