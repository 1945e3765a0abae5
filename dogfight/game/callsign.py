"""Callsign sanitization."""

from __future__ import annotations

import random
import re
import unicodedata

BANNED_TOKENS = (
    "fuck",
    "shit",
    "cunt",
    "bitch",
    "whore",
    "slut",
    "nigger",
    "nigga",
    "faggot",
    "retard",
    "rape",
    "nazi",
    "hitler",
    "penis",
    "vagina",
    "asshole",
    "dick",
    "cock",
    "pussy",
    "wank",
)

_LEET = str.maketrans({"0": "o", "1": "i", "3": "e", "4": "a", "5": "s", "7": "t", "@": "a", "$": "s", "!": "i"})
_NON_ALPHA = re.compile(r"[^a-z]+")


def generate_callsign(rng: random.Random | None = None) -> str:
    r = rng or random
    return f"Pilot{r.randint(1000, 9999)}"


def _fold(text: str) -> str:
    return _NON_ALPHA.sub("", text.lower().translate(_LEET))


def is_banned(text: str) -> bool:
    folded = _fold(text)
    return any(tok in folded for tok in BANNED_TOKENS)


def sanitize_callsign(raw: str | None, max_len: int = 20, rng: random.Random | None = None) -> tuple[str, bool]:
    """Return (callsign, substituted).

    `substituted` is True only when the requested name was rejected by policy;
    an empty name gets a generated one without that flag.
    """
    if not raw:
        return generate_callsign(rng), False

    cleaned = "".join(ch for ch in raw if unicodedata.category(ch)[0] != "C")
    cleaned = " ".join(cleaned.split())[:max_len].strip()
    if not cleaned:
        return generate_callsign(rng), False

    if is_banned(cleaned) or is_banned(raw):
        return generate_callsign(rng), True
    return cleaned, False
