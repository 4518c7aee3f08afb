"""
Entity extraction from embed field values.

Upstream notifications describe players in a handful of textual conventions.
``extract_player`` recognises them in a fixed order and returns ``None`` when
nothing usable is present. Callers handle that case explicitly: the kill
normalizer drops the event and the player-event path skips it.

Examples:
    "[sloppywet](https://steamcommunity.com/profiles/76561199090623011)"
        -> PlayerRef("sloppywet", "76561199090623011")
    "sloppywet\\n[76561199090623011]\\n[Steam Profile](...)"
        -> PlayerRef("sloppywet", "76561199090623011")
    "sloppywet" -> PlayerRef("sloppywet", None)
    "" -> None
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

UNKNOWN_NAME = "Unknown"

PROFILE_LINK_RE = re.compile(
    r"\[([^\]]+)\]\(https://steamcommunity\.com/profiles/(\d+)\)"
)
BRACKETED_ID_RE = re.compile(r"\[(\d+)\]")
STEAM_ID_RE = re.compile(r"^76561\d{12}$")

# tried in order, first match wins
WEAPON_PATTERNS = [
    re.compile(r"with\s+\[([^\]]+)\]", re.IGNORECASE),
    re.compile(r"Weapon:\s*([A-Za-z0-9\- ]+)", re.IGNORECASE),
]
DISTANCE_PATTERNS = [
    re.compile(r"from\s+\[(\d+\.?\d*)\]\s*meters?", re.IGNORECASE),
    re.compile(r"Distance:\s*(\d+\.?\d*)\s*m?", re.IGNORECASE),
    re.compile(r"at\s+(\d+\.?\d*)\s*m?", re.IGNORECASE),
]
NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class PlayerRef:
    name: str
    steam_id: Optional[str] = None


def extract_player(value: Optional[str]) -> Optional[PlayerRef]:
    if not value or not value.strip():
        return None

    # 1) [name](https://steamcommunity.com/profiles/<id>); anchored, the
    # bracketed form below may end with a "[Steam Profile](...)" link
    link = PROFILE_LINK_RE.match(value.strip())
    if link:
        label = link.group(1)
        if not label.strip():
            return None
        return PlayerRef(label, link.group(2))

    # 2) name on the first line, [<id>] somewhere below
    if "[" in value and "]" in value:
        bracketed = BRACKETED_ID_RE.search(value)
        if bracketed:
            name = value.split("\n")[0].strip()
            if not name:
                return None
            return PlayerRef(name, bracketed.group(1))

    # 3) plain text
    return PlayerRef(value.strip())


def is_steam_id(value: Optional[str]) -> bool:
    return bool(value) and STEAM_ID_RE.match(value) is not None


def round_meters(value: float) -> int:
    # half-up, not banker's rounding
    return int(math.floor(value + 0.5))


def format_meters(value: float) -> str:
    return f"{round_meters(value)}m"


def parse_weapon(details: Optional[str]) -> Optional[str]:
    """Weapon named in a free-text Details blob, e.g. "with [M200 CheyTac]"."""
    if not details:
        return None
    for pattern in WEAPON_PATTERNS:
        match = pattern.search(details)
        if match:
            weapon = match.group(1).strip()
            if weapon:
                return weapon
    return None


def parse_distance(details: Optional[str]) -> Optional[str]:
    """Distance in a free-text Details blob as "<n>m", e.g. "from [41.42] meters"."""
    if not details:
        return None
    for pattern in DISTANCE_PATTERNS:
        match = pattern.search(details)
        if match:
            return format_meters(float(match.group(1)))
    return None


def normalize_distance(value: Optional[str]) -> Optional[str]:
    """Coerce an explicit distance value ("150m", "41.4", "Suicide") to storage form."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.lower() == "suicide":
        return "Suicide"
    if text.lower() == "unknown":
        return "Unknown"
    number = NUMBER_RE.search(text)
    if number:
        return format_meters(float(number.group(1)))
    return None


def distance_meters(distance: Optional[str]) -> Optional[int]:
    """Whole meters of a stored distance, None for the sentinels."""
    if not distance:
        return None
    match = re.match(r"^(\d+)", distance)
    if not match:
        return None
    return int(match.group(1))
