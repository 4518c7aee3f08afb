from typing import List, Optional

from identity import IdentityResolver
from leaderboard import ResolvedKill, player_statistics
from models import SteamPlayerModel
from store import EventStore


def _latest(kills: List[ResolvedKill], fallback=None):
    return max((k.occurred_at for k in kills), default=fallback)


def identity_profile(player: SteamPlayerModel, kills: List[ResolvedKill]) -> dict:
    killed = [k for k in kills if k.killer_steam_id == player.steam_id]
    died = [k for k in kills if k.victim_steam_id == player.steam_id]
    return {
        "steamId": player.steam_id,
        "currentName": player.current_name,
        "previousNames": list(player.previous_names or []),
        "firstSeen": player.first_seen,
        "lastSeen": _latest(killed + died, player.last_seen),
        "statistics": player_statistics(killed, died),
    }


def name_profile(name: str, kills: List[ResolvedKill]) -> Optional[dict]:
    """Profile of a player seen without a Steam ID, by exact canonical name."""
    killed = [k for k in kills if k.killer == name and not k.killer_steam_id]
    died = [k for k in kills if k.victim == name and not k.victim_steam_id]
    if not killed and not died:
        return None
    seen = [k.occurred_at for k in killed + died]
    return {
        "steamId": None,
        "currentName": name,
        "previousNames": [],
        "firstSeen": min(seen),
        "lastSeen": max(seen),
        "statistics": player_statistics(killed, died),
    }


def search_by_steam_id(
    resolver: IdentityResolver, store: EventStore, steam_id: str
) -> List[dict]:
    player = resolver.get(steam_id)
    if player is None:
        return []
    return [identity_profile(player, store.resolved_kills())]


def search_by_name(
    resolver: IdentityResolver, store: EventStore, name: str
) -> List[dict]:
    kills = store.resolved_kills()
    matches = resolver.find_by_name(name)
    if matches:
        return [identity_profile(p, kills) for p in matches]
    profile = name_profile(name.strip(), kills)
    return [profile] if profile else []
