"""Kill/death ratio, leaderboard ranking."""

from __future__ import annotations

import math
import time
from typing import Any, Iterable

from dogfight.game.session import Session


def kd_ratio(kills: int, deaths: int) -> float:
    return kills / deaths if deaths > 0 else kills


def build_leaderboard(sessions: Iterable[Session], now: float | None = None) -> list[dict[str, Any]]:
    """Rank sessions by kills, descending.

    `sorted` is stable, so players tied on kills keep registry order.
    """
    now = time.time() if now is None else now
    rows = []
    for s in sessions:
        st = s.stats
        rows.append(
            {
                "id": s.session_id,
                "callsign": s.display_name,
                "kills": st.kills,
                "deaths": st.deaths,
                "kdRatio": kd_ratio(st.kills, st.deaths),
                "minutesOnServer": max(0, math.floor((now - st.join_time) / 60.0)),
            }
        )
    return sorted(rows, key=lambda r: r["kills"], reverse=True)
