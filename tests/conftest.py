import asyncio
import json

import pytest

from dogfight.app import RelayService
from dogfight.game.config import ServerConfig


class FakeTransport:
    """Stands in for a WebSocketResponse; records every frame sent to it."""

    def __init__(self):
        self.closed = False
        self.fail_sends = False
        self.close_calls = 0
        # Seconds each send stalls, and an optional event sends wait on.
        self.delay = 0.0
        self.gate: asyncio.Event | None = None
        self.sent: list[dict] = []

    async def send_str(self, text: str) -> None:
        if self.closed or self.fail_sends:
            raise ConnectionResetError("Cannot write to closing transport")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.gate is not None:
            await self.gate.wait()
        self.sent.append(json.loads(text))

    async def close(self) -> bool:
        self.close_calls += 1
        self.closed = True
        return True

    def of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def config():
    return ServerConfig(idle_timeout_sec=30.0, reap_interval_sec=10.0, respawn_resend_sec=0.01)


@pytest.fixture
def svc(config):
    return RelayService(config)


@pytest.fixture
def connect(svc):
    async def _connect(callsign: str | None = None):
        transport = FakeTransport()
        session = await svc.hub.accept(transport)
        if callsign is not None:
            await svc.hub.dispatch(session, json.dumps({"type": "init", "callsign": callsign}))
        return session, transport

    return _connect


def send(svc, session, msg_type: str, **fields):
    return svc.hub.dispatch(session, json.dumps({"type": msg_type, **fields}))
