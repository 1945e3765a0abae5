"""Connected-session registry."""

from __future__ import annotations

import logging
from typing import Iterator

from dogfight.game.session import Session, new_session_id

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns the id -> Session map.

    All mutation runs on the event loop between awaits, so each operation is
    atomic with respect to other connections and the reaper. Iteration always
    goes through a copied list, so broadcasts survive removals mid-send.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def register(self, session: Session) -> Session:
        while session.session_id in self._sessions:
            logger.warning("session id collision on %s, regenerating", session.session_id)
            session.session_id = new_session_id()
        self._sessions[session.session_id] = session
        return session

    def unregister(self, session_id: str) -> Session | None:
        return self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def snapshot(self) -> list[Session]:
        return list(self._sessions.values())

    def size(self) -> int:
        return len(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(self.snapshot())
