"""
Leaderboard aggregation over the kills of the current wipe.

Every category works on ``ResolvedKill`` rows whose names are already the
canonical (consolidated) spelling. Kill-side categories drop self-inflicted
deaths; death-side categories keep them. ``mr_respawn`` counts exactly the
rows that ``most_kills`` drops.
"""

import datetime
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from extract import distance_meters, round_meters
from normalize import is_self_inflicted


@dataclass(frozen=True)
class ResolvedKill:
    killer: str
    victim: str
    killer_steam_id: Optional[str]
    victim_steam_id: Optional[str]
    weapon: str
    distance: str
    occurred_at: datetime.datetime

    @property
    def self_inflicted(self) -> bool:
        return is_self_inflicted(
            self.killer,
            self.victim,
            self.killer_steam_id,
            self.victim_steam_id,
            self.weapon,
        )

    @property
    def meters(self) -> Optional[int]:
        return distance_meters(self.distance)


def qualifying(kills: Iterable[ResolvedKill]) -> List[ResolvedKill]:
    return [k for k in kills if not k.self_inflicted]


def self_inflicted(kills: Iterable[ResolvedKill]) -> List[ResolvedKill]:
    return [k for k in kills if k.self_inflicted]


def _mode(values: Iterable[str]) -> Optional[str]:
    counts = Counter(values)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _last(kills: Iterable[ResolvedKill]) -> Optional[str]:
    latest = max((k.occurred_at for k in kills), default=None)
    return latest.isoformat() if latest else None


def _group(kills: Iterable[ResolvedKill], key) -> Dict[str, List[ResolvedKill]]:
    groups: Dict[str, List[ResolvedKill]] = defaultdict(list)
    for k in kills:
        groups[key(k)].append(k)
    return groups


def _ranked(rows: List[dict], limit: Optional[int]) -> List[dict]:
    if limit is not None:
        rows = rows[:limit]
    for index, row in enumerate(rows):
        row["rank"] = index + 1
    return rows


def most_kills(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    groups = _group(qualifying(kills), lambda k: k.killer)
    ordered = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)
    rows = []
    for name, theirs in ordered:
        longest = max((k.meters or 0 for k in theirs), default=0)
        rows.append(
            {
                "playerName": name,
                "value": len(theirs),
                "secondaryValue": f"{longest}m shot",
                "details": _mode(k.weapon for k in theirs) or "Unknown",
                "lastActivity": _last(theirs),
                "category": "Most Kills",
            }
        )
    return _ranked(rows, limit)


def longest_shots(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    measured = [k for k in qualifying(kills) if k.meters is not None]
    best = {}
    for name, theirs in _group(measured, lambda k: k.killer).items():
        # first kill at the maximum distance names the weapon
        shot = max(theirs, key=lambda k: k.meters)
        if shot.meters > 0:
            best[name] = (shot, theirs)

    ordered = sorted(best.items(), key=lambda item: item[1][0].meters, reverse=True)
    rows = []
    for name, (shot, theirs) in ordered:
        rows.append(
            {
                "playerName": name,
                "value": f"{shot.meters}m",
                "secondaryValue": shot.weapon or "Unknown",
                "details": f"{shot.meters}m shot",
                "lastActivity": _last(theirs),
                "category": "Longest Shots",
            }
        )
    return _ranked(rows, limit)


def most_deaths(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    # suicides count, a death is a death
    groups = _group(kills, lambda k: k.victim)
    ordered = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)
    rows = []
    for name, theirs in ordered:
        rows.append(
            {
                "playerName": name,
                "value": len(theirs),
                "secondaryValue": "deaths",
                "details": _mode(k.killer for k in theirs) or "Unknown",
                "lastActivity": _last(theirs),
                "category": "Most Deaths",
            }
        )
    return _ranked(rows, limit)


def kd_ratio_value(kills: int, deaths: int) -> float:
    """K/D rounded to three places; the raw kill count when there are no deaths."""
    if deaths == 0:
        return float(kills)
    return round(kills / deaths, 3)


def _kd_tier(ratio: float) -> str:
    if ratio >= 2:
        return "Elite PvP"
    if ratio >= 1:
        return "Positive"
    return "Learning"


def kd_ratio(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    scored = _group(qualifying(kills), lambda k: k.killer)
    died = _group(kills, lambda k: k.victim)

    names = list(scored)
    names.extend(n for n in died if n not in scored)

    stats = []
    for name in names:
        k = len(scored.get(name, []))
        d = len(died.get(name, []))
        ratio = kd_ratio_value(k, d)
        stats.append((name, k, d, ratio, scored.get(name, []) + died.get(name, [])))
    stats.sort(key=lambda s: s[3], reverse=True)

    rows = []
    for name, k, d, ratio, theirs in stats:
        rows.append(
            {
                "playerName": name,
                "value": round(ratio, 2),
                "secondaryValue": f"{k}K/{d}D",
                "details": _kd_tier(ratio),
                "lastActivity": _last(theirs),
                "category": "K/D Ratio",
            }
        )
    return _ranked(rows, limit)


def mr_respawn(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    groups = _group(self_inflicted(kills), lambda k: k.victim)
    ordered = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)
    rows = []
    for name, theirs in ordered:
        rows.append(
            {
                "playerName": name,
                "value": len(theirs),
                "secondaryValue": "suicides",
                "details": _mode(k.weapon for k in theirs) or "Self-harm specialist",
                "lastActivity": _last(theirs),
                "category": "Mr. Respawn",
            }
        )
    return _ranked(rows, limit)


def weapon_meta(kills: List[ResolvedKill], limit: Optional[int] = None) -> List[dict]:
    stats: Dict[str, dict] = {}
    for k in qualifying(kills):
        entry = stats.setdefault(
            k.weapon,
            {"kills": 0, "measured": 0, "avg": 0.0, "users": set(), "kills_list": []},
        )
        entry["kills"] += 1
        entry["users"].add(k.killer)
        entry["kills_list"].append(k)
        if k.meters is not None:
            # running mean
            entry["measured"] += 1
            entry["avg"] += (k.meters - entry["avg"]) / entry["measured"]

    ordered = sorted(stats.items(), key=lambda item: item[1]["kills"], reverse=True)
    rows = []
    for weapon, entry in ordered:
        users = len(entry["users"])
        rows.append(
            {
                "playerName": weapon,
                "value": entry["kills"],
                "secondaryValue": f"{round_meters(entry['avg'])}m avg",
                "details": f"{users} user" + ("" if users == 1 else "s"),
                "lastActivity": _last(entry["kills_list"]),
                "category": "Weapon Meta",
            }
        )
    return _ranked(rows, limit)


CATEGORIES: Dict[str, Callable[[List[ResolvedKill], Optional[int]], List[dict]]] = {
    "most_kills": most_kills,
    "longest_shots": longest_shots,
    "most_deaths": most_deaths,
    "kd_ratio": kd_ratio,
    "mr_respawn": mr_respawn,
    "weapon_meta": weapon_meta,
}


def query(
    category: str, kills: List[ResolvedKill], limit: Optional[int] = None
) -> List[dict]:
    """Ranked entries for ``category``; an unknown category has no entries."""
    build = CATEGORIES.get(category)
    if build is None:
        return []
    return build(kills, limit)


def player_statistics(mine_killed: List[ResolvedKill], mine_died: List[ResolvedKill]) -> dict:
    """Aggregate stats for one player from the kills they made and the deaths they had."""
    scored = qualifying(mine_killed)
    kills = len(scored)
    deaths = len(mine_died)
    ratio = kills / deaths if deaths else kills
    return {
        "totalKills": kills,
        "totalDeaths": deaths,
        "kdRatio": round(ratio, 2),
        "longestShot": max((k.meters or 0 for k in scored), default=0),
        "favoriteWeapon": _mode(k.weapon for k in scored) or "None",
    }
