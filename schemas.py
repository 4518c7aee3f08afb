import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, field_validator


def _as_text(value: Any) -> Any:
    # upstream sends numbers for some text fields
    if value is None or isinstance(value, str):
        return value
    return str(value)


# ─── Inbound: Discord-style embeds
class EmbedField(BaseModel):
    name: str = ""
    value: str = ""

    @field_validator("name", "value", mode="before")
    @classmethod
    def _text(cls, v):
        return "" if v is None else _as_text(v)


class Embed(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    timestamp: Optional[str] = None
    fields: List[EmbedField] = []

    @field_validator("title", "description", "timestamp", mode="before")
    @classmethod
    def _text(cls, v):
        return _as_text(v)

    def field_map(self) -> Dict[str, str]:
        """Field name -> value; the first occurrence of a name wins."""
        out: Dict[str, str] = {}
        for f in self.fields:
            out.setdefault(f.name.strip(), f.value)
        return out


class DiscordWebhook(BaseModel):
    embeds: List[Embed]


# ─── Inbound: flat event shapes
class KillAnyPlayerWebhook(BaseModel):
    event: Literal["kill_any_player"] = "kill_any_player"
    killer: Optional[str] = None
    victim: Optional[str] = None
    weapon: Optional[str] = None
    distance: Optional[str] = None
    killerSteamId: Optional[str] = None
    victimSteamId: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator(
        "killer",
        "victim",
        "weapon",
        "distance",
        "killerSteamId",
        "victimSteamId",
        "timestamp",
        mode="before",
    )
    @classmethod
    def _text(cls, v):
        return _as_text(v)


class PlayerWebhook(BaseModel):
    event: Literal["player_joined", "player_left"]
    player: Optional[str] = None
    steamId: Optional[str] = None
    playerCount: Optional[int] = None
    timestamp: Optional[str] = None

    @field_validator("player", "steamId", "timestamp", mode="before")
    @classmethod
    def _text(cls, v):
        return _as_text(v)


class ServerStatusWebhook(BaseModel):
    event: Literal["status_startup", "status_shutdown", "status_fps", "server_restart"]
    fps: Optional[float] = None
    playerCount: Optional[int] = None
    uptime: Optional[str] = None
    serverStatus: Optional[str] = None
    timestamp: Optional[str] = None


# ─── Outbound
class KillFeedEntry(BaseModel):
    id: int
    killer: str
    victim: str
    weapon: str
    distance: str
    killerSteamId: Optional[str] = None
    victimSteamId: Optional[str] = None
    wipeId: str
    timestamp: datetime.datetime


class LeaderboardEntry(BaseModel):
    rank: int
    playerName: str
    value: Union[int, float, str]
    secondaryValue: str
    details: str
    lastActivity: Optional[str] = None
    category: str


class PlayerStatistics(BaseModel):
    totalKills: int
    totalDeaths: int
    kdRatio: float
    longestShot: int
    favoriteWeapon: str


class PlayerProfile(BaseModel):
    steamId: Optional[str] = None
    currentName: str
    previousNames: List[str] = []
    firstSeen: Optional[datetime.datetime] = None
    lastSeen: Optional[datetime.datetime] = None
    statistics: PlayerStatistics


class SuicideStat(BaseModel):
    playerName: str
    steamId: Optional[str] = None
    suicideCount: int
    lastSuicide: datetime.datetime
    wipeId: str
