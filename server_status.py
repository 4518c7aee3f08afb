import datetime
import logging
from dataclasses import dataclass, replace
from typing import Literal, Optional

from models import utcnow

logger = logging.getLogger(__name__)

Status = Literal["online", "offline", "restarting"]


@dataclass(frozen=True)
class ServerStatusSnapshot:
    players_online: int
    max_players: int
    status: Status
    last_activity: datetime.datetime
    started_at: datetime.datetime


class ServerStatusCell:
    """
    Latest known server state, owned by the application and handed to the
    webhook pipeline and the stats route. Last writer wins.
    """

    def __init__(self, max_players: int, stale_after_seconds: int):
        now = utcnow()
        self.stale_after = datetime.timedelta(seconds=stale_after_seconds)
        self._snapshot = ServerStatusSnapshot(
            players_online=0,
            max_players=max_players,
            status="online",
            last_activity=now,
            started_at=now,
        )

    def update(
        self,
        players_online: Optional[int] = None,
        max_players: Optional[int] = None,
        status: Optional[Status] = None,
        last_activity: Optional[datetime.datetime] = None,
    ) -> ServerStatusSnapshot:
        changes = {"last_activity": last_activity or utcnow()}
        if players_online is not None:
            changes["players_online"] = max(0, int(players_online))
        if max_players is not None:
            changes["max_players"] = int(max_players)
        if status is not None:
            changes["status"] = status
            if status == "online" and self._snapshot.status != "online":
                changes["started_at"] = changes["last_activity"]
        self._snapshot = replace(self._snapshot, **changes)
        logger.info(
            "Server status: %s, %d/%d players",
            self._snapshot.status,
            self._snapshot.players_online,
            self._snapshot.max_players,
        )
        return self._snapshot

    def snapshot(self) -> ServerStatusSnapshot:
        return self._snapshot

    def effective_status(self, now: Optional[datetime.datetime] = None) -> Status:
        """Recorded status, or offline once nothing has been heard for too long."""
        now = now or utcnow()
        if now - self._snapshot.last_activity >= self.stale_after:
            return "offline"
        return self._snapshot.status

    def as_dict(self, now: Optional[datetime.datetime] = None) -> dict:
        now = now or utcnow()
        snap = self._snapshot
        return {
            "players": {"online": snap.players_online, "max": snap.max_players},
            "server": {
                "status": self.effective_status(now),
                "uptime": int((now - snap.started_at).total_seconds()),
                "lastActivity": snap.last_activity.isoformat(),
            },
        }
