"""
Steam ID consolidation.

Display names are free text the player controls; the Steam ID is the only
stable key. Every sighting of a (steam_id, name) pair moves the identity's
current name to the latest spelling and keeps the superseded names, so kills
recorded under an old name still aggregate under one player.
"""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import SteamPlayerModel, utcnow

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(self, session_factory, wipe_id: str):
        self.session_factory = session_factory
        self.wipe_id = wipe_id

    def _query(self, db, steam_id: str):
        return db.query(SteamPlayerModel).filter_by(
            steam_id=steam_id, wipe_id=self.wipe_id
        )

    def record_sighting(self, steam_id: Optional[str], observed_name: str) -> None:
        if not steam_id:
            return
        db = self.session_factory()
        try:
            try:
                self._apply_sighting(db, steam_id, observed_name)
                db.commit()
            except IntegrityError:
                # a concurrent delivery registered the same id first
                db.rollback()
                self._apply_sighting(db, steam_id, observed_name)
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _apply_sighting(self, db, steam_id: str, observed_name: str) -> None:
        now = utcnow()
        player = self._query(db, steam_id).first()
        if player is None:
            db.add(
                SteamPlayerModel(
                    steam_id=steam_id,
                    current_name=observed_name,
                    previous_names=[],
                    first_seen=now,
                    last_seen=now,
                    wipe_id=self.wipe_id,
                )
            )
            db.flush()
            logger.info(
                "Steam ID consolidation: new player %s (%s)", observed_name, steam_id
            )
            return

        previous = list(player.previous_names or [])
        old_name = player.current_name
        if old_name != observed_name:
            if old_name not in previous:
                previous.append(old_name)
            logger.info(
                "Steam ID consolidation: %s renamed %r -> %r",
                steam_id,
                old_name,
                observed_name,
            )
        player.previous_names = previous
        player.current_name = observed_name
        player.last_seen = now

    def resolve(self, steam_id: Optional[str], observed_name: str) -> str:
        """Canonical name for a party; the observed name when there is no id."""
        if not steam_id:
            return observed_name
        db = self.session_factory()
        try:
            player = self._query(db, steam_id).first()
            return player.current_name if player else observed_name
        finally:
            db.close()

    def get(self, steam_id: str) -> Optional[SteamPlayerModel]:
        db = self.session_factory()
        try:
            return self._query(db, steam_id).first()
        finally:
            db.close()

    def find_by_name(self, name: str) -> List[SteamPlayerModel]:
        """Identities whose current or any prior name equals ``name``, ignoring case."""
        wanted = name.strip().lower()
        db = self.session_factory()
        try:
            players = (
                db.query(SteamPlayerModel)
                .filter_by(wipe_id=self.wipe_id)
                .order_by(func.lower(SteamPlayerModel.current_name))
                .all()
            )
        finally:
            db.close()
        return [
            p
            for p in players
            if p.current_name.lower() == wanted
            or any(prev.lower() == wanted for prev in (p.previous_names or []))
        ]
