"""Ports, timeouts, combat caps."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class ServerConfig:
    # Versions
    server_version: str = "0.1.0"
    protocol_version: int = 1

    # Network
    host: str = "0.0.0.0"
    port: int = 8080
    cors_allow_all: bool = True
    cors_allowed_origins: list[str] = field(default_factory=list)
    heartbeat_sec: float = 10.0
    # Per-recipient bound so one stalled socket cannot hold up a fan-out.
    send_timeout_sec: float = 0.5
    max_msg_size: int = 64 * 1024

    # Sessions
    idle_timeout_sec: float = 30.0
    # Must stay shorter than idle_timeout_sec.
    reap_interval_sec: float = 10.0
    respawn_resend_sec: float = 1.0
    callsign_max_len: int = 20

    # Combat
    max_damage: int = 100
    default_damage: int = 10
    spawn_position: tuple[float, float, float] = (0.0, 100.0, 0.0)

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(levelname)s %(asctime)s [%(name)s:%(lineno)d] %(message)s"

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_float(v: str | None, default: float) -> float:
        if not v:
            return default
        try:
            return float(v)
        except ValueError:
            return default

    @classmethod
    def from_env(cls) -> "ServerConfig":
        cfg = cls()
        cfg.host = os.environ.get("DOGFIGHT_HOST", cfg.host)
        port = os.environ.get("DOGFIGHT_PORT") or os.environ.get("PORT")
        if port:
            try:
                cfg.port = int(port)
            except ValueError:
                pass
        cfg.cors_allow_all = cls._parse_bool(os.environ.get("DOGFIGHT_CORS_ALLOW_ALL"), cfg.cors_allow_all)
        origins = os.environ.get("DOGFIGHT_CORS_ORIGINS")
        if origins:
            cfg.cors_allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]

        cfg.idle_timeout_sec = cls._parse_float(os.environ.get("DOGFIGHT_IDLE_TIMEOUT"), cfg.idle_timeout_sec)
        cfg.reap_interval_sec = cls._parse_float(os.environ.get("DOGFIGHT_REAP_INTERVAL"), cfg.reap_interval_sec)
        cfg.respawn_resend_sec = cls._parse_float(os.environ.get("DOGFIGHT_RESPAWN_RESEND"), cfg.respawn_resend_sec)
        cfg.send_timeout_sec = cls._parse_float(os.environ.get("DOGFIGHT_SEND_TIMEOUT"), cfg.send_timeout_sec)

        cfg.log_level = (os.environ.get("DOGFIGHT_LOG_LEVEL") or cfg.log_level).upper()
        return cfg
