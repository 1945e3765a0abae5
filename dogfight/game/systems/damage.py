"""Server-authoritative damage, destruction and kill/death accounting."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from dogfight.game.registry import SessionRegistry
from dogfight.game.systems.scoring import build_leaderboard
from dogfight.game.world import Vec3, clamp
from dogfight.net.sync import Synchronizer, notification

logger = logging.getLogger(__name__)


@dataclass
class DamageOutcome:
    target_id: str
    applied: float
    old_health: int
    new_health: int
    destroyed: bool


class CombatArbiter:
    """The only writer of health and combat state as a result of gameplay.

    Combat state per session: ALIVE -> (health hits 0) -> DESTROYED -> (respawn) -> ALIVE.
    Damage against a DESTROYED target is accepted but never re-credits a kill.
    """

    def __init__(self, registry: SessionRegistry, sync: Synchronizer, *, max_damage: int = 100):
        self.registry = registry
        self.sync = sync
        self.max_damage = max_damage

    async def apply_damage(
        self,
        source_id: str,
        target_id: str,
        amount: float,
        impact_position: Vec3 | None = None,
    ) -> DamageOutcome | None:
        target = self.registry.get(target_id)
        if target is None:
            logger.warning("damage from %s names unknown target %s, ignored", source_id, target_id)
            return None

        applied = clamp(float(amount), 0.0, float(self.max_damage))
        if applied != amount:
            logger.info("damage from %s clamped %s -> %s", source_id, amount, applied)

        old_health = target.health
        new_health = max(0, math.ceil(old_health - applied))
        # Every write to health or combat state between here and the first await
        # is atomic with respect to other connections.
        target.health = new_health

        destroyed = False
        if old_health > 0 and new_health == 0:
            destroyed = target.mark_destroyed()

        source = self.registry.get(source_id)
        if destroyed:
            target.stats.deaths += 1
            if source is not None and source is not target:
                source.stats.kills += 1
            logger.info("%s destroyed by %s", target_id, source_id)

        pos = impact_position.to_wire() if impact_position else None

        if destroyed:
            await self.sync.broadcast_to_all(
                "destroyed",
                {"playerId": target_id, "sourceId": source_id, "position": pos},
            )
            shooter = source.display_name if source is not None else "Unknown pilot"
            await self.sync.broadcast_to_all(
                "notification",
                notification(f"{shooter} shot down {target.display_name}!", "success"),
            )
            await self.sync.broadcast_to_all("leaderboard", {"data": build_leaderboard(self.registry.snapshot())})

        await self.sync.broadcast_to_all("update", {"players": [target.public_state()]})
        await self.sync.unicast(
            target_id,
            "damage",
            {"amount": applied, "sourceId": source_id, "targetId": target_id, "position": pos},
        )
        await self.sync.notify(target_id, f"You were hit! Health: {target.health}%", "warning", 2000)

        return DamageOutcome(
            target_id=target_id,
            applied=applied,
            old_health=old_health,
            new_health=new_health,
            destroyed=destroyed,
        )
