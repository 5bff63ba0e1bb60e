from fastapi import APIRouter, HTTPException, Request
from schemas.rooms import CreateRoomResponse, RoomDetailsResponse, HealthResponse
import uuid
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])
health_router = APIRouter(tags=["health"])


@rooms_router.post("/", response_model=CreateRoomResponse)
async def create_room(request: Request):
    # Rooms are created lazily on first join; this only hands out a fresh id
    room_id = uuid.uuid4().hex

    # Construct WebSocket URL using request's base URL
    base_url = str(request.base_url).rstrip('/')
    ws_base = base_url.replace("http://", "ws://").replace("https://", "wss://")
    ws_url = f"{ws_base}/ws"

    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Generated room id {room_id} for {client_host}")
    return CreateRoomResponse(room_id=room_id, ws_url=ws_url)


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get room details.

    Returns:
    - room_id: Room identifier
    - created_at: When the room was first joined
    - members: Display names currently in the room
    - online_users_count: Number of members
    - language: Current document language (default until someone picks one)
    - has_code: Whether any code has been shared yet
    """
    registry = request.app.state.registry
    room = registry.get(room_id)
    if not room:
        logger.warning(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    members = registry.members(room_id)
    logger.info(f"Room details retrieved for {room_id}: {len(members)} members")
    return RoomDetailsResponse(
        room_id=room.room_id,
        created_at=room.created_at,
        members=members,
        online_users_count=len(members),
        language=room.effective_language,
        has_code=room.code is not None,
    )


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    broadcaster = request.app.state.broadcaster
    return HealthResponse(
        status="ok",
        rooms=len(request.app.state.registry.rooms()),
        connections=sum(len(subs) for subs in broadcaster.room_connections.values()),
    )
