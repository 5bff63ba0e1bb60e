from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from constants import DEFAULT_LANGUAGE
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Room:
    room_id: str
    # display name -> connection id holding that name, in join order
    members: Dict[str, str] = field(default_factory=dict)
    code: Optional[str] = None
    language: Optional[str] = None
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def effective_language(self) -> str:
        return self.language or DEFAULT_LANGUAGE

    @property
    def has_document(self) -> bool:
        return self.code is not None or self.language is not None

    def holder_of(self, user_name: str) -> Optional[str]:
        """Connection id holding ``user_name`` in this room (case-insensitive)."""
        wanted = user_name.lower()
        for name, connection_id in self.members.items():
            if name.lower() == wanted:
                return connection_id
        return None


class RoomRegistry:
    """In-memory authority for room membership and the shared document.

    Room state is only mutated through these methods.
    """

    def __init__(self, reap_empty_rooms: bool = True):
        self._rooms: Dict[str, Room] = {}
        self.reap_empty_rooms = reap_empty_rooms
        logger.info(f"Initializing RoomRegistry (reap_empty_rooms={reap_empty_rooms})")

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def add_member(self, room_id: str, user_name: str, connection_id: str) -> Room:
        room = self.get_or_create(room_id)
        if user_name in room.members:
            logger.debug(f"User {user_name} already exists in room {room_id}")
        room.members[user_name] = connection_id
        logger.debug(f"Room {room_id} has {len(room.members)} members")
        return room

    def remove_member(self, room_id: str, user_name: str, reap: bool = True):
        """Remove ``user_name`` from the room; unknown room or member is a no-op.

        With ``reap`` the room is dropped once empty, if reaping is enabled
        and nobody has shared code or picked a language in it yet.
        """
        room = self._rooms.get(room_id)
        if room is None:
            logger.debug(f"remove_member: room {room_id} not found")
            return
        removed = room.members.pop(user_name, None)
        logger.debug(f"User {user_name} removed from room {room_id}: removed={removed is not None}")
        if reap and self.reap_empty_rooms and not room.members:
            self.reap(room_id)

    def reap(self, room_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None or room.members or room.has_document:
            return False
        del self._rooms[room_id]
        logger.info(f"Reaped empty room {room_id}")
        return True

    def set_document_code(self, room_id: str, code: str):
        self.get_or_create(room_id).code = code
        logger.debug(f"Room {room_id} code updated ({len(code)} chars)")

    def set_document_language(self, room_id: str, language: str):
        self.get_or_create(room_id).language = language
        logger.debug(f"Room {room_id} language set to {language}")

    def members(self, room_id: str) -> List[str]:
        room = self._rooms.get(room_id)
        if room is None:
            return []
        return list(room.members)

    def is_active(self, room_id: str) -> bool:
        room = self._rooms.get(room_id)
        return room is not None and len(room.members) > 0
