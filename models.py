# models.py
import datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime.datetime:
    """Naive UTC now; every timestamp column is stored naive UTC."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class KillFeedModel(Base):
    __tablename__ = "kill_feed"
    id = Column(Integer, primary_key=True, index=True)
    killer = Column(String, nullable=False)
    victim = Column(String, nullable=False)
    weapon = Column(String, nullable=False)
    # "<n>m", "Suicide" or "Unknown"
    distance = Column(String, nullable=False)
    killer_steam_id = Column(String, nullable=True, index=True)
    victim_steam_id = Column(String, nullable=True, index=True)
    wipe_id = Column(String, nullable=False, default="wipe_1", index=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class SteamPlayerModel(Base):
    __tablename__ = "steam_players"
    __table_args__ = (UniqueConstraint("steam_id", "wipe_id"),)
    id = Column(Integer, primary_key=True, index=True)
    steam_id = Column(String, nullable=False, index=True)
    current_name = Column(String, nullable=False)
    previous_names = Column(JSON, nullable=False, default=list)
    first_seen = Column(DateTime, default=utcnow)
    last_seen = Column(DateTime, default=utcnow)
    wipe_id = Column(String, nullable=False, default="wipe_1")


class SuicideTrackerModel(Base):
    __tablename__ = "suicide_tracker"
    id = Column(Integer, primary_key=True, index=True)
    player_name = Column(String, nullable=False)
    steam_id = Column(String, nullable=True)
    suicide_count = Column(Integer, nullable=False, default=0)
    last_suicide = Column(DateTime, nullable=False, default=utcnow)
    wipe_id = Column(String, nullable=False, default="wipe_1")


class PlayerEventModel(Base):
    __tablename__ = "player_events"
    id = Column(Integer, primary_key=True, index=True)
    player_name = Column(String, nullable=False)
    steam_id = Column(String, nullable=True)
    event_type = Column(String, nullable=False)  # "join" | "leave"
    timestamp = Column(DateTime, nullable=False, default=utcnow)


class ServerEventModel(Base):
    __tablename__ = "server_events"
    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String, nullable=False)
    data = Column(Text, nullable=False)  # JSON blob
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)
