"""Message schemas + validation.

Wire format (one JSON object per message, tag inline):
  {"type": "damage", "targetId": "...", "amount": 40, "position": {"x": 0, "y": 0, "z": 0}}
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Union

from dogfight.game.world import Vec3


class ProtocolError(Exception):
    pass


class UnknownMessageType(ProtocolError):
    def __init__(self, msg_type: str):
        super().__init__(f"unknown message type: {msg_type!r}")
        self.msg_type = msg_type


def dumps(msg_type: str, data: dict[str, Any]) -> str:
    return json.dumps({**data, "type": msg_type}, separators=(",", ":"))


def loads(text: str | bytes) -> tuple[str, dict[str, Any]]:
    try:
        obj = json.loads(text)
    except (TypeError, ValueError, RecursionError) as e:
        raise ProtocolError(f"invalid json: {e}")

    if not isinstance(obj, dict):
        raise ProtocolError("message must be object")
    t = obj.pop("type", None)
    if not isinstance(t, str) or not t:
        raise ProtocolError("missing type")
    return t, obj


def _vec(data: dict[str, Any], key: str, *, required: bool = False) -> Vec3 | None:
    v = data.get(key)
    if v is None:
        if required:
            raise ProtocolError(f"{key} required")
        return None
    try:
        return Vec3.from_wire(v)
    except ValueError as e:
        raise ProtocolError(f"{key}: {e}")


def _num(data: dict[str, Any], key: str, *, allow_inf: bool = False) -> float | None:
    v = data.get(key)
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ProtocolError(f"{key} must be a number")
    try:
        f = float(v)
    except OverflowError:
        f = math.inf if v > 0 else -math.inf
    if math.isnan(f) or (math.isinf(f) and not allow_inf):
        raise ProtocolError(f"{key} must be finite")
    return f


def _int(data: dict[str, Any], key: str) -> int | None:
    v = _num(data, key)
    return None if v is None else int(round(v))


def _flag(data: dict[str, Any], key: str) -> bool | None:
    v = data.get(key)
    if v is None:
        return None
    if not isinstance(v, bool):
        raise ProtocolError(f"{key} must be a boolean")
    return v


@dataclass
class Init:
    callsign: str | None
    position: Vec3 | None = None
    rotation: Vec3 | None = None
    health: int | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "Init":
        callsign = data.get("callsign")
        if not isinstance(callsign, str):
            callsign = None
        return cls(
            callsign=callsign,
            position=_vec(data, "position"),
            rotation=_vec(data, "rotation"),
            health=_int(data, "health"),
        )


@dataclass
class Update:
    position: Vec3 | None = None
    rotation: Vec3 | None = None
    velocity: Vec3 | None = None
    speed: float | None = None
    health: int | None = None
    isDestroyed: bool | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "Update":
        # The browser client nests its state under "player".
        player = data.get("player")
        if player is not None:
            if not isinstance(player, dict):
                raise ProtocolError("update.player must be object")
            data = player
        return cls(
            position=_vec(data, "position"),
            rotation=_vec(data, "rotation"),
            velocity=_vec(data, "velocity"),
            speed=_num(data, "speed"),
            health=_int(data, "health"),
            isDestroyed=_flag(data, "isDestroyed"),
        )


@dataclass
class Fire:
    position: Vec3
    rotation: Vec3 | None = None
    direction: Vec3 | None = None
    velocity: Vec3 | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "Fire":
        return cls(
            position=_vec(data, "position", required=True),
            rotation=_vec(data, "rotation"),
            direction=_vec(data, "direction"),
            velocity=_vec(data, "velocity"),
        )


@dataclass
class Damage:
    targetId: str
    amount: float | None = None
    position: Vec3 | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "Damage":
        target_id = data.get("targetId")
        if not isinstance(target_id, str) or not target_id:
            raise ProtocolError("damage.targetId required")
        # An overflowing amount is still a claim; the arbiter clamps it.
        return cls(targetId=target_id, amount=_num(data, "amount", allow_inf=True), position=_vec(data, "position"))


@dataclass
class Respawn:
    position: Vec3 | None = None
    rotation: Vec3 | None = None

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "Respawn":
        return cls(position=_vec(data, "position"), rotation=_vec(data, "rotation"))


@dataclass
class HitEffect:
    position: Vec3
    playSound: bool = False

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "HitEffect":
        return cls(position=_vec(data, "position", required=True), playSound=bool(data.get("playSound", False)))


@dataclass
class LeaderboardRequest:
    @classmethod
    def parse(cls, data: dict[str, Any]) -> "LeaderboardRequest":
        return cls()


Message = Union[Init, Update, Fire, Damage, Respawn, HitEffect, LeaderboardRequest]

C2S = {
    "init": Init,
    "update": Update,
    "fire": Fire,
    "damage": Damage,
    "respawn": Respawn,
    "hit_effect": HitEffect,
    "leaderboard": LeaderboardRequest,
}


def parse(text: str | bytes) -> tuple[str, Message]:
    """Decode one inbound frame into its typed message.

    Raises UnknownMessageType for a well-formed frame with an unrecognised tag,
    ProtocolError for everything else that fails validation.
    """
    msg_type, data = loads(text)
    cls = C2S.get(msg_type)
    if cls is None:
        raise UnknownMessageType(msg_type)
    return msg_type, cls.parse(data)
