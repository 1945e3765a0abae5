"""HTTP + WebSocket entrypoint (state relay + combat arbitration).

This server intentionally does NOT serve the web client. Host the client separately.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from aiohttp import web

from dogfight.game.config import ServerConfig
from dogfight.game.registry import SessionRegistry
from dogfight.game.systems.damage import CombatArbiter
from dogfight.game.systems.scoring import build_leaderboard
from dogfight.net.reaper import IdleReaper
from dogfight.net.sync import Synchronizer
from dogfight.net.ws import WsHub

logger = logging.getLogger(__name__)


class RelayService:
    def __init__(self, config: ServerConfig):
        self.config = config
        self.server_id = str(uuid.uuid4())
        self.start_time = time.time()

        self.registry = SessionRegistry()
        self.sync = Synchronizer(self.registry, send_timeout=config.send_timeout_sec)
        self.arbiter = CombatArbiter(self.registry, self.sync, max_damage=config.max_damage)
        self.hub = WsHub(self)
        self.reaper = IdleReaper(
            self.hub,
            timeout_sec=config.idle_timeout_sec,
            interval_sec=config.reap_interval_sec,
        )

    async def start(self) -> None:
        self.reaper.start()
        logger.info(
            "relay started (idle timeout %.0fs, sweep every %.0fs)",
            self.config.idle_timeout_sec,
            self.config.reap_interval_sec,
        )

    async def stop(self) -> None:
        logger.info("relay shutting down, closing %d sessions", self.registry.size())
        await self.reaper.stop()
        await self.hub.close_all()

    def version_payload(self) -> dict[str, Any]:
        return {
            "serverId": self.server_id,
            "serverVersion": self.config.server_version,
            "protocolVersion": self.config.protocol_version,
        }


def _cors_headers(config: ServerConfig, origin: str | None) -> dict[str, str]:
    if not origin:
        return {}
    if config.cors_allow_all or origin in config.cors_allowed_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    resp = await handler(request)

    # aiohttp finalizes WS headers during `prepare()`.
    if isinstance(resp, web.WebSocketResponse):
        return resp

    for k, v in _cors_headers(request.app["config"], request.headers.get("Origin")).items():
        resp.headers[k] = v
    return resp


def create_app(config: ServerConfig) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    svc = RelayService(config)

    app["config"] = config
    app["svc"] = svc

    async def on_startup(_: web.Application):
        await svc.start()

    # Open websockets must be closed before aiohttp waits on in-flight handlers.
    async def on_shutdown(_: web.Application):
        await svc.stop()

    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)

    async def root(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "service": "dogfight-relay",
                **svc.version_payload(),
                "endpoints": {"health": "/health", "leaderboard": "/leaderboard", "ws": "/ws"},
            }
        )

    async def health(_: web.Request):
        return web.json_response(
            {
                "ok": True,
                "uptimeSec": time.time() - svc.start_time,
                "players": svc.registry.size(),
                **svc.version_payload(),
            }
        )

    async def leaderboard(_: web.Request):
        return web.json_response({"leaderboard": build_leaderboard(svc.registry.snapshot())})

    async def ws_handler(request: web.Request):
        return await svc.hub.handle(request)

    app.router.add_get("/", root)
    app.router.add_get("/health", health)
    app.router.add_get("/leaderboard", leaderboard)
    app.router.add_get("/ws", ws_handler)

    return app


def main() -> None:
    config = ServerConfig.from_env()
    logging.basicConfig(level=config.log_level, format=config.log_format)
    app = create_app(config)
    # run_app traps SIGINT/SIGTERM and runs on_shutdown, which drains every session.
    web.run_app(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
