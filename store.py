import json
import logging
from collections import Counter
from typing import Dict, List, Optional

from leaderboard import ResolvedKill
from models import (
    KillFeedModel,
    PlayerEventModel,
    ServerEventModel,
    SteamPlayerModel,
    SuicideTrackerModel,
    utcnow,
)
from normalize import (
    SELF_INFLICTED_WEAPON,
    SUICIDE_DISTANCE,
    UNKNOWN_DISTANCE,
    UNKNOWN_WEAPON,
    KillCandidate,
)

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


def find_duplicate(db, candidate: KillCandidate, wipe_id: str) -> Optional[int]:
    """
    Id of an already stored kill matching the candidate, if any.

    The notifier delivers the same event to the primary and backup endpoints
    and carries no event id, so a kill is the same kill when killer, victim,
    weapon, distance and timestamp all match within the wipe. Two distinct
    kills identical in all five are collapsed into one.
    """
    row = (
        db.query(KillFeedModel.id)
        .filter_by(
            killer=candidate.killer_name,
            victim=candidate.victim_name,
            weapon=candidate.weapon,
            distance=candidate.distance,
            timestamp=candidate.occurred_at,
            wipe_id=wipe_id,
        )
        .first()
    )
    return row[0] if row else None


class EventStore:
    def __init__(self, session_factory, wipe_id: str):
        self.session_factory = session_factory
        self.wipe_id = wipe_id

    # ─── writes
    def record_kill(self, candidate: KillCandidate) -> Optional[int]:
        """Insert the kill unless it is a duplicate; returns the new id or None."""
        db = self.session_factory()
        try:
            existing = find_duplicate(db, candidate, self.wipe_id)
            if existing is not None:
                logger.info(
                    "⚠️ Duplicate kill event skipped: %s -> %s (matches #%d)",
                    candidate.killer_name,
                    candidate.victim_name,
                    existing,
                )
                return None

            row = KillFeedModel(
                killer=candidate.killer_name,
                victim=candidate.victim_name,
                weapon=candidate.weapon,
                distance=candidate.distance,
                killer_steam_id=candidate.killer_steam_id,
                victim_steam_id=candidate.victim_steam_id,
                wipe_id=self.wipe_id,
                timestamp=candidate.occurred_at,
            )
            db.add(row)
            if candidate.self_inflicted:
                self._track_suicide(
                    db,
                    candidate.victim_name,
                    candidate.victim_steam_id,
                    candidate.occurred_at,
                )
            db.commit()

            if candidate.self_inflicted:
                logger.info(
                    "✅ Suicide recorded: %s (%s)",
                    candidate.victim_name,
                    candidate.weapon,
                )
            else:
                logger.info(
                    "✅ Kill recorded: %s eliminated %s with %s at %s",
                    candidate.killer_name,
                    candidate.victim_name,
                    candidate.weapon,
                    candidate.distance,
                )
            return row.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _track_suicide(self, db, player_name, steam_id, occurred_at) -> None:
        query = db.query(SuicideTrackerModel).filter_by(wipe_id=self.wipe_id)
        if steam_id:
            record = query.filter_by(steam_id=steam_id).first()
        else:
            record = query.filter_by(player_name=player_name, steam_id=None).first()

        if record is None:
            db.add(
                SuicideTrackerModel(
                    player_name=player_name,
                    steam_id=steam_id,
                    suicide_count=1,
                    last_suicide=occurred_at,
                    wipe_id=self.wipe_id,
                )
            )
            logger.info("Mr. Respawn: first suicide tracked for %s", player_name)
            return

        record.suicide_count += 1
        record.player_name = player_name
        record.last_suicide = max(record.last_suicide, occurred_at)
        logger.info(
            "Mr. Respawn: %s suicide #%d", player_name, record.suicide_count
        )

    def record_player_event(
        self, player_name: str, steam_id: Optional[str], event_type: str, timestamp
    ) -> int:
        db = self.session_factory()
        try:
            row = PlayerEventModel(
                player_name=player_name,
                steam_id=steam_id,
                event_type=event_type,
                timestamp=timestamp,
            )
            db.add(row)
            db.commit()
            return row.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def record_server_event(self, event_type: str, data: dict, timestamp) -> int:
        db = self.session_factory()
        try:
            row = ServerEventModel(
                event_type=event_type,
                data=json.dumps(data),
                timestamp=timestamp,
            )
            db.add(row)
            db.commit()
            return row.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ─── reads
    def _canonical_names(self, db) -> Dict[str, str]:
        rows = (
            db.query(SteamPlayerModel.steam_id, SteamPlayerModel.current_name)
            .filter_by(wipe_id=self.wipe_id)
            .all()
        )
        return {steam_id: name for steam_id, name in rows}

    def kill_feed(self, limit: int = 50) -> List[dict]:
        db = self.session_factory()
        try:
            names = self._canonical_names(db)
            rows = (
                db.query(KillFeedModel)
                .filter_by(wipe_id=self.wipe_id)
                .order_by(KillFeedModel.timestamp.desc(), KillFeedModel.id.desc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "id": r.id,
                    "killer": names.get(r.killer_steam_id, r.killer),
                    "victim": names.get(r.victim_steam_id, r.victim),
                    "weapon": r.weapon,
                    "distance": r.distance,
                    "killerSteamId": r.killer_steam_id,
                    "victimSteamId": r.victim_steam_id,
                    "wipeId": r.wipe_id,
                    "timestamp": r.timestamp,
                }
                for r in rows
            ]
        finally:
            db.close()

    def resolved_kills(self) -> List[ResolvedKill]:
        """Every kill of the wipe with both names mapped to their canonical spelling."""
        db = self.session_factory()
        try:
            names = self._canonical_names(db)
            rows = (
                db.query(KillFeedModel)
                .filter_by(wipe_id=self.wipe_id)
                .order_by(KillFeedModel.id)
                .all()
            )
            return [
                ResolvedKill(
                    killer=names.get(r.killer_steam_id, r.killer),
                    victim=names.get(r.victim_steam_id, r.victim),
                    killer_steam_id=r.killer_steam_id,
                    victim_steam_id=r.victim_steam_id,
                    weapon=r.weapon,
                    distance=r.distance,
                    occurred_at=r.timestamp,
                )
                for r in rows
            ]
        finally:
            db.close()

    def suicide_stats(self, player_name: Optional[str] = None) -> List[dict]:
        db = self.session_factory()
        try:
            query = db.query(SuicideTrackerModel).filter_by(wipe_id=self.wipe_id)
            if player_name:
                query = query.filter_by(player_name=player_name)
            rows = (
                query.order_by(SuicideTrackerModel.suicide_count.desc())
                .limit(50)
                .all()
            )
            return [
                {
                    "playerName": r.player_name,
                    "steamId": r.steam_id,
                    "suicideCount": r.suicide_count,
                    "lastSuicide": r.last_suicide,
                    "wipeId": r.wipe_id,
                }
                for r in rows
            ]
        finally:
            db.close()

    # ─── admin
    def reset_wipe(self) -> dict:
        db = self.session_factory()
        try:
            kills = (
                db.query(KillFeedModel)
                .filter_by(wipe_id=self.wipe_id)
                .delete(synchronize_session=False)
            )
            players = (
                db.query(SteamPlayerModel)
                .filter_by(wipe_id=self.wipe_id)
                .delete(synchronize_session=False)
            )
            suicides = (
                db.query(SuicideTrackerModel)
                .filter_by(wipe_id=self.wipe_id)
                .delete(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.warning(
            "🗑️ Wipe reset %s: %d kills, %d steam players, %d suicide entries",
            self.wipe_id,
            kills,
            players,
            suicides,
        )
        return {
            "success": True,
            "deletedEntries": kills + players + suicides,
            "details": {
                "killFeed": kills,
                "steamPlayers": players,
                "suicides": suicides,
            },
        }

    def cleanup_invalid(self) -> dict:
        db = self.session_factory()
        try:
            in_wipe = db.query(KillFeedModel).filter_by(wipe_id=self.wipe_id)
            deleted = in_wipe.filter(
                (KillFeedModel.killer == UNKNOWN) | (KillFeedModel.victim == UNKNOWN)
            ).delete(synchronize_session=False)
            deleted += in_wipe.filter(
                (KillFeedModel.killer_steam_id == UNKNOWN)
                | (KillFeedModel.victim_steam_id == UNKNOWN)
            ).delete(synchronize_session=False)
            fixed = in_wipe.filter(
                KillFeedModel.killer == KillFeedModel.victim,
                KillFeedModel.weapon == UNKNOWN_WEAPON,
                KillFeedModel.distance == UNKNOWN_DISTANCE,
            ).update(
                {
                    KillFeedModel.weapon: SELF_INFLICTED_WEAPON,
                    KillFeedModel.distance: SUICIDE_DISTANCE,
                },
                synchronize_session=False,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if deleted or fixed:
            logger.info(
                "🧹 Cleanup: removed %d invalid entries, fixed %d suicides",
                deleted,
                fixed,
            )
        return {"success": True, "deletedEntries": deleted, "fixedEntries": fixed}

    def consolidate_players(self) -> dict:
        # consolidation already happens on every webhook; report its state
        db = self.session_factory()
        try:
            count = db.query(SteamPlayerModel).filter_by(wipe_id=self.wipe_id).count()
        finally:
            db.close()
        return {"success": True, "updatedEntries": count}

    def verify_integrity(self) -> dict:
        issues: List[str] = []
        db = self.session_factory()
        try:
            rows = db.query(KillFeedModel).filter_by(wipe_id=self.wipe_id).all()
            players = db.query(SteamPlayerModel).filter_by(wipe_id=self.wipe_id).all()
        finally:
            db.close()

        known_names = set()
        for p in players:
            known_names.add(p.current_name)
            known_names.update(p.previous_names or [])

        unconsolidated = {
            r.killer
            for r in rows
            if r.killer_steam_id is None and r.killer in known_names
        }
        if unconsolidated:
            issues.append(
                f"Found {len(unconsolidated)} killers without Steam ID consolidation"
            )

        tuples = Counter(
            (r.killer, r.victim, r.weapon, r.distance, r.timestamp) for r in rows
        )
        duplicates = [t for t, n in tuples.items() if n > 1]
        if duplicates:
            issues.append(f"Found {len(duplicates)} duplicate kill events")

        return {"consistent": not issues, "issues": issues}
