"""kill feed, identity, suicide and server event tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "kill_feed",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("killer", sa.String, nullable=False),
        sa.Column("victim", sa.String, nullable=False),
        sa.Column("weapon", sa.String, nullable=False),
        sa.Column("distance", sa.String, nullable=False),
        sa.Column("killer_steam_id", sa.String, nullable=True),
        sa.Column("victim_steam_id", sa.String, nullable=True),
        sa.Column("wipe_id", sa.String, nullable=False),
        sa.Column("timestamp", sa.DateTime, nullable=False),
    )
    op.create_index("ix_kill_feed_id", "kill_feed", ["id"])
    op.create_index("ix_kill_feed_killer_steam_id", "kill_feed", ["killer_steam_id"])
    op.create_index("ix_kill_feed_victim_steam_id", "kill_feed", ["victim_steam_id"])
    op.create_index("ix_kill_feed_wipe_id", "kill_feed", ["wipe_id"])

    op.create_table(
        "steam_players",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("steam_id", sa.String, nullable=False),
        sa.Column("current_name", sa.String, nullable=False),
        sa.Column("previous_names", sa.JSON, nullable=False),
        sa.Column("first_seen", sa.DateTime),
        sa.Column("last_seen", sa.DateTime),
        sa.Column("wipe_id", sa.String, nullable=False),
        sa.UniqueConstraint("steam_id", "wipe_id"),
    )
    op.create_index("ix_steam_players_id", "steam_players", ["id"])
    op.create_index("ix_steam_players_steam_id", "steam_players", ["steam_id"])

    op.create_table(
        "suicide_tracker",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("player_name", sa.String, nullable=False),
        sa.Column("steam_id", sa.String, nullable=True),
        sa.Column("suicide_count", sa.Integer, nullable=False),
        sa.Column("last_suicide", sa.DateTime, nullable=False),
        sa.Column("wipe_id", sa.String, nullable=False),
    )
    op.create_index("ix_suicide_tracker_id", "suicide_tracker", ["id"])

    op.create_table(
        "player_events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("player_name", sa.String, nullable=False),
        sa.Column("steam_id", sa.String, nullable=True),
        sa.Column("event_type", sa.String, nullable=False),
        sa.Column("timestamp", sa.DateTime, nullable=False),
    )
    op.create_index("ix_player_events_id", "player_events", ["id"])

    op.create_table(
        "server_events",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("event_type", sa.String, nullable=False),
        sa.Column("data", sa.Text, nullable=False),
        sa.Column("timestamp", sa.DateTime, nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_server_events_id", "server_events", ["id"])


def downgrade() -> None:
    op.drop_table("server_events")
    op.drop_table("player_events")
    op.drop_table("suicide_tracker")
    op.drop_table("steam_players")
    op.drop_table("kill_feed")
