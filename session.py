import json
import uuid
from typing import Any, Optional

from fastapi import WebSocket

from constants import SUPPORTED_LANGUAGES
from dispatcher import Broadcaster
from events import CODE_UPDATE, JOIN_ERROR, LANGUAGE_UPDATE, USER_JOINED, USER_TYPING
from logging_config import get_logger
from registry import RoomRegistry

logger = get_logger(__name__)


class Connection:
    """One live WebSocket plus the (room, user) it is currently bound to."""

    def __init__(self, websocket: Optional[WebSocket] = None, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or str(uuid.uuid4())
        self.bound_room: Optional[str] = None
        self.bound_user: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self.bound_room is not None

    async def send(self, event: str, data: Any = None):
        await self.websocket.send_text(json.dumps({"event": event, "data": data}))

    def __repr__(self):
        return f"Connection({self.connection_id[:8]}, room={self.bound_room}, user={self.bound_user})"


class SessionManager:
    """Join/leave/edit transitions for connections against the room registry.

    A connection is either unbound or bound to exactly one (room, user) pair.
    Binding to a new room first performs the leave cleanup for the old one.
    """

    def __init__(self, registry: RoomRegistry, broadcaster: Broadcaster):
        self.registry = registry
        self.broadcaster = broadcaster

    def is_bound_to(self, connection: Connection, room_id: Optional[str]) -> bool:
        return bool(room_id) and connection.bound_room == room_id

    async def join(self, connection: Connection, room_id: Optional[str], user_name: Optional[str]) -> bool:
        user_name = user_name.strip() if isinstance(user_name, str) else ""
        if not isinstance(room_id, str) or not room_id.strip() or not user_name:
            logger.debug(f"Dropping join from {connection.connection_id}: missing room id or user name")
            return False

        room = self.registry.get(room_id)
        holder = room.holder_of(user_name) if room else None
        if holder is not None and holder != connection.connection_id:
            logger.warning(f"Join rejected: display name '{user_name}' already taken in room {room_id}")
            await self.broadcaster.to_sender_only(connection, JOIN_ERROR, {
                "message": f"Display name '{user_name}' is already taken. Please choose a different name.",
                "roomId": room_id,
            })
            return False

        # Every state change happens before the first await so a concurrent
        # join cannot claim the same name in between
        old_room = None
        if connection.is_bound:
            # Rejoining the same room must not reap its document
            old_room = self._detach(connection, reap=connection.bound_room != room_id)

        room = self.registry.add_member(room_id, user_name, connection.connection_id)
        self.broadcaster.subscribe(room_id, connection)
        connection.bound_room = room_id
        connection.bound_user = user_name
        logger.info(f"User {user_name} ({connection.connection_id}) joined room {room_id}")

        if old_room is not None and old_room != room_id:
            await self.broadcaster.to_room(old_room, USER_JOINED, self.registry.members(old_room))
        await self.broadcaster.to_room(room_id, USER_JOINED, self.registry.members(room_id))

        # Late joiners get the current document, not the edit history
        if room.code is not None:
            await self.broadcaster.to_sender_only(connection, CODE_UPDATE, room.code)
        if room.language is not None:
            await self.broadcaster.to_sender_only(connection, LANGUAGE_UPDATE, room.language)
        return True

    async def leave(self, connection: Connection) -> bool:
        if not connection.is_bound:
            return False
        room_id = self._detach(connection, reap=True)
        await self.broadcaster.to_room(room_id, USER_JOINED, self.registry.members(room_id))
        return True

    def _detach(self, connection: Connection, reap: bool) -> str:
        """Drop the current binding without notifying anyone. Returns the old room id."""
        room_id, user_name = connection.bound_room, connection.bound_user
        self.broadcaster.unsubscribe(room_id, connection)

        room = self.registry.get(room_id)
        if room is not None and room.members.get(user_name) == connection.connection_id:
            self.registry.remove_member(room_id, user_name, reap=reap)

        connection.bound_room = None
        connection.bound_user = None
        logger.info(f"User {user_name} ({connection.connection_id}) left room {room_id}")
        return room_id

    async def update_code(self, connection: Connection, room_id: Optional[str], code: str) -> bool:
        if not self.is_bound_to(connection, room_id):
            logger.warning(f"Dropping codeChange from {connection.connection_id}: not bound to room {room_id}")
            return False
        self.registry.set_document_code(room_id, code)
        await self.broadcaster.to_room_except_sender(room_id, connection, CODE_UPDATE, code)
        return True

    async def update_language(self, connection: Connection, room_id: Optional[str], language: Optional[str]) -> bool:
        if not self.is_bound_to(connection, room_id):
            logger.warning(f"Dropping languageChange from {connection.connection_id}: not bound to room {room_id}")
            return False
        if language not in SUPPORTED_LANGUAGES:
            logger.debug(f"Dropping languageChange in room {room_id}: unsupported language {language!r}")
            return False
        self.registry.set_document_language(room_id, language)
        await self.broadcaster.to_room(room_id, LANGUAGE_UPDATE, language)
        return True

    async def notify_typing(self, connection: Connection, room_id: Optional[str]) -> bool:
        """Presence pulse to everyone else in the room. Receivers expire it themselves."""
        if not self.is_bound_to(connection, room_id):
            logger.debug(f"Dropping typing from {connection.connection_id}: not bound to room {room_id}")
            return False
        await self.broadcaster.to_room_except_sender(room_id, connection, USER_TYPING, connection.bound_user)
        return True
