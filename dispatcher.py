import asyncio
from typing import Any, Dict

from logging_config import get_logger

logger = get_logger(__name__)


class Broadcaster:
    """Fire-and-forget delivery of events to room subscription groups.

    Each room id maps to the live connections subscribed to it. Delivery is
    at-most-once; a send that fails is logged and otherwise ignored.
    """

    def __init__(self):
        # Format: {room_id: {connection_id: connection}}
        self.room_connections: Dict[str, Dict[str, Any]] = {}

    def subscribe(self, room_id: str, connection):
        if room_id not in self.room_connections:
            self.room_connections[room_id] = {}
        self.room_connections[room_id][connection.connection_id] = connection
        logger.debug(f"Added connection {connection.connection_id} to room {room_id} (subscribers: {len(self.room_connections[room_id])})")

    def unsubscribe(self, room_id: str, connection):
        subscribers = self.room_connections.get(room_id)
        if not subscribers or connection.connection_id not in subscribers:
            return
        del subscribers[connection.connection_id]
        logger.debug(f"Removed connection {connection.connection_id} from room {room_id}")
        if not subscribers:
            del self.room_connections[room_id]
            logger.debug(f"No more subscribers in room {room_id}")

    def subscribers(self, room_id: str):
        return list(self.room_connections.get(room_id, {}).values())

    async def to_room(self, room_id: str, event: str, data: Any = None):
        """Deliver to every subscriber of the room, sender included."""
        await self._deliver(room_id, self.subscribers(room_id), event, data)

    async def to_room_except_sender(self, room_id: str, sender, event: str, data: Any = None):
        targets = [c for c in self.subscribers(room_id) if c.connection_id != sender.connection_id]
        await self._deliver(room_id, targets, event, data)

    async def to_sender_only(self, sender, event: str, data: Any = None):
        await self._deliver(None, [sender], event, data)

    async def _deliver(self, room_id, targets, event: str, data: Any):
        if not targets:
            logger.debug(f"No recipients for {event} in room {room_id}")
            return
        results = await asyncio.gather(*(c.send(event, data) for c in targets), return_exceptions=True)
        for connection, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(f"Error sending {event} to connection {connection.connection_id} in room {room_id}: {result}")
        logger.debug(f"Broadcasted {event} to {len(targets)} connections in room {room_id}")
