"""Vector type shared by sessions and the wire protocol."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


@dataclass
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_wire(cls, v: Any) -> "Vec3":
        """Accept `{"x","y","z"}` (what the client sends) or a 3-element list.

        Raises ValueError on anything else, including non-finite components.
        """
        if isinstance(v, dict):
            parts = [v.get("x"), v.get("y"), v.get("z")]
        elif isinstance(v, (list, tuple)) and len(v) == 3:
            parts = list(v)
        else:
            raise ValueError("vector must be {x,y,z} or [x,y,z]")

        out = []
        for p in parts:
            if isinstance(p, bool) or not isinstance(p, (int, float)):
                raise ValueError("vector component must be a number")
            try:
                f = float(p)
            except OverflowError:
                f = math.inf
            if not math.isfinite(f):
                raise ValueError("vector component must be finite")
            out.append(f)
        return cls(out[0], out[1], out[2])

    @classmethod
    def of(cls, t: tuple[float, float, float]) -> "Vec3":
        return cls(float(t[0]), float(t[1]), float(t[2]))

    def to_wire(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z}
