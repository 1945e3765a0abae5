"""Fan-out delivery: exclude-sender broadcast, broadcast-to-all, unicast."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from dogfight.game import protocol
from dogfight.game.registry import SessionRegistry
from dogfight.game.session import Session

logger = logging.getLogger(__name__)

# Per-tick traffic; logging it at DEBUG would still drown everything else.
_QUIET_TYPES = {"update", "fire", "hit_effect"}


class Synchronizer:
    def __init__(self, registry: SessionRegistry, *, send_timeout: float = 0.5):
        self.registry = registry
        self.send_timeout = send_timeout

    async def _send(self, session: Session, text: str) -> bool:
        ws = session.transport
        if ws.closed:
            return False
        try:
            await asyncio.wait_for(ws.send_str(text), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("delivery to %s timed out after %.2fs", session.session_id, self.send_timeout)
            return False
        except Exception as e:
            # Left registered; the reaper evicts it once it goes quiet.
            logger.warning("delivery to %s failed: %r", session.session_id, e)
            return False
        return True

    async def _fan_out(self, recipients: Iterable[Session], msg_type: str, data: dict[str, Any]) -> int:
        text = protocol.dumps(msg_type, data)
        results = await asyncio.gather(*(self._send(s, text) for s in recipients))
        return sum(1 for ok in results if ok)

    async def broadcast_excluding(self, msg_type: str, data: dict[str, Any], sender_id: str) -> int:
        recipients = [s for s in self.registry.snapshot() if s.session_id != sender_id]
        sent = await self._fan_out(recipients, msg_type, data)
        if msg_type not in _QUIET_TYPES:
            logger.debug("broadcast %s to %d clients (excluding %s)", msg_type, sent, sender_id)
        return sent

    async def broadcast_to_all(self, msg_type: str, data: dict[str, Any]) -> int:
        sent = await self._fan_out(self.registry.snapshot(), msg_type, data)
        if msg_type not in _QUIET_TYPES:
            logger.debug("broadcast %s to all %d clients", msg_type, sent)
        return sent

    async def unicast(self, target_id: str, msg_type: str, data: dict[str, Any]) -> bool:
        session = self.registry.get(target_id)
        if session is None:
            logger.warning("unicast %s to unknown session %s dropped", msg_type, target_id)
            return False
        return await self._send(session, protocol.dumps(msg_type, data))

    async def notify(self, target_id: str, message: str, severity: str = "info", duration_ms: int = 3000) -> bool:
        return await self.unicast(target_id, "notification", notification(message, severity, duration_ms))


def notification(message: str, severity: str = "info", duration_ms: int = 3000) -> dict[str, Any]:
    return {"message": message, "severity": severity, "duration": duration_ms}
