from pydantic import BaseModel
from typing import Optional


class CreateRoomResponse(BaseModel):
    room_id: str
    ws_url: str

class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: str
    members: list[str]
    online_users_count: int
    language: str
    has_code: bool

class HealthResponse(BaseModel):
    status: str
    rooms: int
    connections: Optional[int] = None
