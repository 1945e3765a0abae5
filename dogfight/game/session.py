"""Per-client session state and its combat state machine."""

from __future__ import annotations

import enum
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from dogfight.game.world import Vec3, clamp

MAX_HEALTH = 100


class CombatState(enum.Enum):
    ALIVE = "alive"
    DESTROYED = "destroyed"


@dataclass
class PlayerStats:
    join_time: float
    kills: int = 0
    deaths: int = 0


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Session:
    session_id: str
    # Anything with `closed`, `send_str()` and `close()`; a WebSocketResponse in production.
    transport: Any
    position: Vec3
    join_time: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.monotonic)

    callsign: str | None = None
    rotation: Vec3 = field(default_factory=Vec3)
    velocity: Vec3 = field(default_factory=Vec3)
    speed: float = 0.0
    health: int = MAX_HEALTH
    state: CombatState = CombatState.ALIVE
    stats: PlayerStats = field(init=False)

    def __post_init__(self):
        self.stats = PlayerStats(join_time=self.join_time)

    @property
    def is_destroyed(self) -> bool:
        return self.state is CombatState.DESTROYED

    @property
    def display_name(self) -> str:
        return self.callsign or f"Pilot-{self.session_id[:6]}"

    def touch(self, now: float | None = None) -> None:
        self.last_activity = time.monotonic() if now is None else now

    def set_health(self, health: int) -> None:
        """Clamp into [0, MAX_HEALTH]. Reaching zero forces DESTROYED; it never revives."""
        self.health = int(clamp(int(health), 0, MAX_HEALTH))
        if self.health == 0:
            self.state = CombatState.DESTROYED

    def apply_report(
        self,
        *,
        position: Vec3 | None = None,
        rotation: Vec3 | None = None,
        velocity: Vec3 | None = None,
        speed: float | None = None,
        health: int | None = None,
        is_destroyed: bool | None = None,
    ) -> None:
        """Sparse merge of client-reported state; absent fields stay unchanged.

        Kinematics are trusted as-is. Health and the destroyed flag may only move
        the session towards DESTROYED (a self-reported crash, no kill credit);
        reviving takes a respawn.
        """
        if position is not None:
            self.position = position
        if rotation is not None:
            self.rotation = rotation
        if velocity is not None:
            self.velocity = velocity
        if speed is not None:
            self.speed = speed

        if self.is_destroyed:
            return
        if health is not None:
            self.set_health(health)
        if is_destroyed:
            self.mark_destroyed()

    def mark_destroyed(self) -> bool:
        """ALIVE -> DESTROYED. Returns False if already destroyed."""
        if self.state is CombatState.DESTROYED:
            return False
        self.state = CombatState.DESTROYED
        self.health = 0
        return True

    def respawn(self, position: Vec3 | None = None, rotation: Vec3 | None = None) -> None:
        """DESTROYED (or ALIVE) -> ALIVE with full health."""
        self.health = MAX_HEALTH
        self.state = CombatState.ALIVE
        if position is not None:
            self.position = position
        if rotation is not None:
            self.rotation = rotation

    def public_state(self) -> dict[str, Any]:
        return {
            "id": self.session_id,
            "callsign": self.display_name,
            "position": self.position.to_wire(),
            "rotation": self.rotation.to_wire(),
            "velocity": self.velocity.to_wire(),
            "speed": self.speed,
            "health": self.health,
            "isDestroyed": self.is_destroyed,
            "kills": self.stats.kills,
            "deaths": self.stats.deaths,
        }
