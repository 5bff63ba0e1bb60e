import asyncio
import json

import pytest

from dispatcher import Broadcaster
from registry import RoomRegistry
from session import Connection, SessionManager


class FakeWebSocket:
    """Records every frame sent to it."""

    def __init__(self, fail=False, yielding=False):
        self.sent = []
        self.fail = fail
        self.yielding = yielding

    async def send_text(self, text):
        if self.yielding:
            # Let other tasks run mid-send, like a real socket write
            await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


def make_connection(name=None, fail=False, yielding=False):
    return Connection(FakeWebSocket(fail=fail, yielding=yielding), connection_id=name)


def events_of(connection, event=None):
    """(event, data) pairs received by ``connection``, optionally filtered by name."""
    frames = [(f["event"], f["data"]) for f in connection.websocket.sent]
    if event is None:
        return frames
    return [data for name, data in frames if name == event]


@pytest.fixture
def registry():
    return RoomRegistry(reap_empty_rooms=True)


@pytest.fixture
def broadcaster():
    return Broadcaster()


@pytest.fixture
def sessions(registry, broadcaster):
    return SessionManager(registry, broadcaster)
