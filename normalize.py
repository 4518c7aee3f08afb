"""
Kill event normalization.

Turns a classified kill report (embed fields or the flat ``kill_any_player``
shape) into a ``KillCandidate``: both parties identified, the "Suicide"
sentinel killer attributed to the victim, weapon and distance pulled out of
the Details text, and defaults applied when nothing could be parsed.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from extract import (
    UNKNOWN_NAME,
    PlayerRef,
    extract_player,
    normalize_distance,
    parse_distance,
    parse_weapon,
)
from models import utcnow
from schemas import KillAnyPlayerWebhook

logger = logging.getLogger(__name__)

SUICIDE_KILLER = "Suicide"
SELF_INFLICTED_WEAPON = "Self-inflicted"
SUICIDE_DISTANCE = "Suicide"
UNKNOWN_WEAPON = "Unknown"
UNKNOWN_DISTANCE = "0m"

# case-insensitive substrings of a weapon that mark a self-inflicted death
SUICIDE_MARKERS = ("suicide", "fall", "environment", "self-inflicted")

KILLER_FIELDS = ("Killer", "Killer:", "Admin")
VICTIM_FIELDS = ("Victim", "Victim:", "Player")
DETAILS_FIELDS = ("Details", "Details:")
WEAPON_FIELDS = ("Weapon", "Weapon:")
DISTANCE_FIELDS = ("Distance", "Distance:")


def is_self_inflicted(
    killer: str,
    victim: str,
    killer_steam_id: Optional[str],
    victim_steam_id: Optional[str],
    weapon: Optional[str],
) -> bool:
    """The one predicate every suicide filter uses."""
    # a sentinel killer left in place because the victim had no Steam ID
    if killer == victim or killer == SUICIDE_KILLER:
        return True
    if killer_steam_id and victim_steam_id and killer_steam_id == victim_steam_id:
        return True
    lowered = (weapon or "").lower()
    return any(marker in lowered for marker in SUICIDE_MARKERS)


@dataclass
class KillCandidate:
    killer_name: str
    victim_name: str
    weapon: str
    distance: str
    killer_steam_id: Optional[str]
    victim_steam_id: Optional[str]
    occurred_at: datetime.datetime

    @property
    def self_inflicted(self) -> bool:
        return is_self_inflicted(
            self.killer_name,
            self.victim_name,
            self.killer_steam_id,
            self.victim_steam_id,
            self.weapon,
        )


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """ISO-8601 -> naive UTC; None when missing or unparseable."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Unparseable timestamp %r, using arrival time", value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


def given_steam_id(value: Optional[str]) -> Optional[str]:
    # older senders fill missing ids with the literal "Unknown"
    value = (value or "").strip()
    if not value or value == UNKNOWN_NAME:
        return None
    return value


def first_field(fields: Mapping[str, str], names) -> Optional[str]:
    for name in names:
        if name in fields:
            return fields[name]
    return None


def build_kill(
    killer: Optional[PlayerRef],
    victim: Optional[PlayerRef],
    weapon: Optional[str],
    distance: Optional[str],
    occurred_at: Optional[datetime.datetime] = None,
) -> Optional[KillCandidate]:
    """Assemble a candidate, or None when a party is unidentified."""
    if killer is None or victim is None:
        logger.info(
            "Kill dropped, unidentified party: killer=%r victim=%r", killer, victim
        )
        return None
    if UNKNOWN_NAME in (killer.name, victim.name):
        logger.info(
            "Kill dropped, unknown party: killer=%r victim=%r",
            killer.name,
            victim.name,
        )
        return None

    # the notifier reports self-deaths with a sentinel killer
    if killer.name == SUICIDE_KILLER and victim.steam_id:
        killer = victim

    self_inflicted = is_self_inflicted(
        killer.name, victim.name, killer.steam_id, victim.steam_id, None
    )
    if not weapon:
        weapon = SELF_INFLICTED_WEAPON if self_inflicted else UNKNOWN_WEAPON
    if not distance:
        distance = SUICIDE_DISTANCE if self_inflicted else UNKNOWN_DISTANCE

    return KillCandidate(
        killer_name=killer.name,
        victim_name=victim.name,
        weapon=weapon,
        distance=distance,
        killer_steam_id=killer.steam_id,
        victim_steam_id=victim.steam_id,
        occurred_at=occurred_at or utcnow(),
    )


def normalize_embed_kill(
    fields: Mapping[str, str], occurred_at: Optional[datetime.datetime] = None
) -> Optional[KillCandidate]:
    killer = extract_player(first_field(fields, KILLER_FIELDS))
    victim = extract_player(first_field(fields, VICTIM_FIELDS))
    details = first_field(fields, DETAILS_FIELDS)

    weapon_field = (first_field(fields, WEAPON_FIELDS) or "").strip()
    weapon = weapon_field or parse_weapon(details)
    distance = normalize_distance(first_field(fields, DISTANCE_FIELDS))
    if distance is None:
        distance = parse_distance(details)

    return build_kill(killer, victim, weapon, distance, occurred_at)


def normalize_flat_kill(
    payload: KillAnyPlayerWebhook,
    occurred_at: Optional[datetime.datetime] = None,
) -> Optional[KillCandidate]:
    killer = extract_player(payload.killer)
    victim = extract_player(payload.victim)
    # explicit ids in the payload win over ids embedded in the names
    killer_id = given_steam_id(payload.killerSteamId)
    victim_id = given_steam_id(payload.victimSteamId)
    if killer and killer_id:
        killer = PlayerRef(killer.name, killer_id)
    if victim and victim_id:
        victim = PlayerRef(victim.name, victim_id)

    weapon = (payload.weapon or "").strip() or None
    distance = normalize_distance(payload.distance)
    return build_kill(killer, victim, weapon, distance, occurred_at)
