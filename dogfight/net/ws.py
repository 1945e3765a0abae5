"""WebSocket handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from aiohttp import WSMsgType, web

from dogfight.game import protocol
from dogfight.game.callsign import sanitize_callsign
from dogfight.game.session import Session, new_session_id
from dogfight.game.systems.scoring import build_leaderboard
from dogfight.game.world import Vec3
from dogfight.net.sync import notification

logger = logging.getLogger(__name__)


class WsHub:
    def __init__(self, svc):
        self.svc = svc
        self.registry = svc.registry
        self.sync = svc.sync
        self.arbiter = svc.arbiter
        self._resend_tasks: set[asyncio.Task] = set()
        self._departures: set[asyncio.Task] = set()

    def _origin_allowed(self, origin: str | None) -> bool:
        cfg = self.svc.config
        if cfg.cors_allow_all:
            return True
        if not origin:
            return False
        return origin in cfg.cors_allowed_origins

    async def handle(self, request: web.Request) -> web.StreamResponse:
        if not self._origin_allowed(request.headers.get("Origin")):
            raise web.HTTPForbidden(text="origin not allowed")

        cfg = self.svc.config
        ws = web.WebSocketResponse(heartbeat=cfg.heartbeat_sec, max_msg_size=cfg.max_msg_size)
        await ws.prepare(request)

        session = await self.accept(ws)
        try:
            async for msg in ws:
                if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                    await self.dispatch(session, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("socket error on %s: %r", session.session_id, ws.exception())
                    break
        finally:
            await self.depart(session.session_id, reason="closed")
        return ws

    async def accept(self, transport: Any) -> Session:
        """Register a fresh session right away so broadcasts and the reaper see it before `init`."""
        session = Session(
            session_id=new_session_id(),
            transport=transport,
            position=Vec3.of(self.svc.config.spawn_position),
        )
        self.registry.register(session)
        logger.info("client connected: %s (total %d)", session.session_id, self.registry.size())

        await self._send_init_ack(session)
        return session

    async def _send_init_ack(self, session: Session) -> None:
        sid = session.session_id
        others = [s.public_state() for s in self.registry.snapshot() if s.session_id != sid]
        # "clientId" is what the browser client reads.
        await self.sync.unicast(sid, "init_ack", {"id": sid, "clientId": sid, "players": others})

    async def dispatch(self, session: Session, text: str | bytes) -> None:
        sid = session.session_id
        try:
            msg_type, msg = protocol.parse(text)
        except protocol.UnknownMessageType as e:
            logger.info("ignoring message from %s: %s", sid, e)
            return
        except protocol.ProtocolError as e:
            logger.warning("dropping malformed frame from %s: %s", sid, e)
            return

        if self.registry.get(sid) is not session:
            # Evicted while this frame was in flight.
            logger.info("dropping %s from evicted session %s", msg_type, sid)
            return

        session.touch()
        logger.debug("received %s from %s", msg_type, sid)

        handler = getattr(self, f"_on_{msg_type}")
        try:
            await handler(session, msg)
        except Exception:
            logger.exception("handler %s failed for %s", msg_type, sid)

    async def _on_init(self, session: Session, msg: protocol.Init) -> None:
        cfg = self.svc.config
        callsign, substituted = sanitize_callsign(msg.callsign, cfg.callsign_max_len)
        session.callsign = callsign
        session.apply_report(position=msg.position, rotation=msg.rotation, health=msg.health)
        logger.info("%s is flying as %r", session.session_id, callsign)

        await self._send_init_ack(session)
        if substituted:
            await self.sync.notify(
                session.session_id,
                f"Your callsign was not allowed and has been changed to {callsign}",
                "warning",
                5000,
            )

        await self.sync.broadcast_excluding("player_joined", {"player": session.public_state()}, session.session_id)
        await self.sync.broadcast_excluding(
            "notification", notification(f"{callsign} joined the battle"), session.session_id
        )
        await self.sync.broadcast_to_all("player_count", {"count": self.registry.size()})

    async def _on_update(self, session: Session, msg: protocol.Update) -> None:
        session.apply_report(
            position=msg.position,
            rotation=msg.rotation,
            velocity=msg.velocity,
            speed=msg.speed,
            health=msg.health,
            is_destroyed=msg.isDestroyed,
        )
        await self.sync.broadcast_excluding("update", {"players": [session.public_state()]}, session.session_id)

    async def _on_fire(self, session: Session, msg: protocol.Fire) -> None:
        # No cooldown or ammo checks; weapons are the client's call.
        await self.sync.broadcast_excluding(
            "fire",
            {
                "playerId": session.session_id,
                "position": msg.position.to_wire(),
                "rotation": msg.rotation.to_wire() if msg.rotation else None,
                "direction": msg.direction.to_wire() if msg.direction else None,
                "velocity": (msg.velocity or Vec3()).to_wire(),
            },
            session.session_id,
        )

    async def _on_damage(self, session: Session, msg: protocol.Damage) -> None:
        amount = self.svc.config.default_damage if msg.amount is None else msg.amount
        await self.arbiter.apply_damage(session.session_id, msg.targetId, amount, msg.position)

    async def _on_respawn(self, session: Session, msg: protocol.Respawn) -> None:
        session.respawn(position=msg.position, rotation=msg.rotation)
        logger.info("%s respawned", session.session_id)
        await self._send_respawn(session)

        # At-least-once: a second copy after a short delay covers clients that
        # apply a stale update after the first one.
        task = asyncio.create_task(self._resend_respawn(session.session_id))
        self._resend_tasks.add(task)
        task.add_done_callback(self._resend_tasks.discard)

    async def _send_respawn(self, session: Session) -> None:
        await self.sync.broadcast_to_all("player_respawn", {"player": session.public_state(), "isRespawned": True})

    async def _resend_respawn(self, session_id: str) -> None:
        await asyncio.sleep(self.svc.config.respawn_resend_sec)
        session = self.registry.get(session_id)
        if session is None or session.is_destroyed:
            return
        await self._send_respawn(session)

    async def _on_hit_effect(self, session: Session, msg: protocol.HitEffect) -> None:
        await self.sync.broadcast_excluding(
            "hit_effect",
            {"playerId": session.session_id, "position": msg.position.to_wire(), "playSound": msg.playSound},
            session.session_id,
        )

    async def _on_leaderboard(self, session: Session, msg: protocol.LeaderboardRequest) -> None:
        await self.sync.unicast(session.session_id, "leaderboard", {"data": build_leaderboard(self.registry.snapshot())})

    async def disconnect(self, session_id: str, *, reason: str) -> bool:
        """Idempotent: only the caller that actually unregisters announces the departure."""
        session = self.registry.unregister(session_id)
        if session is None:
            return False
        logger.info("client %s (%s) left: %s (total %d)", session_id, session.display_name, reason, self.registry.size())

        await self.sync.broadcast_to_all("player_left", {"playerId": session_id, "callsign": session.display_name})
        await self.sync.broadcast_to_all("notification", notification(f"{session.display_name} left the battle"))
        await self.sync.broadcast_to_all("player_count", {"count": self.registry.size()})

        if not session.transport.closed:
            try:
                await session.transport.close()
            except Exception as e:
                logger.debug("closing %s raised %r", session_id, e)
        return True

    async def depart(self, session_id: str, *, reason: str) -> None:
        """Run `disconnect` in its own task so cancelling the caller cannot cut off the announcement.

        aiohttp cancels a handler whose peer dropped; the departure still has to reach everyone else.
        """
        task = asyncio.create_task(self.disconnect(session_id, reason=reason))
        self._departures.add(task)
        task.add_done_callback(self._departures.discard)
        await asyncio.shield(task)

    async def cancel_pending(self) -> None:
        tasks = list(self._resend_tasks)
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def close_all(self) -> None:
        await self.cancel_pending()
        await asyncio.gather(*list(self._departures), return_exceptions=True)
        await asyncio.gather(
            *(self.disconnect(s.session_id, reason="server shutdown") for s in self.registry.snapshot())
        )

    def idle_sessions(self, now: float, timeout: float) -> list[Session]:
        return [s for s in self.registry.snapshot() if now - s.last_activity > timeout]
