import logging
from typing import List

import gspread
from google.oauth2.service_account import Credentials

from database import SessionLocal
from models import KillFeedModel, SteamPlayerModel
from settings import (
    CURRENT_WIPE_ID,
    GOOGLE_CREDENTIALS_FILE,
    SHEET_NAME,
    SPREADSHEET_ID,
)

logger = logging.getLogger(__name__)

# ─── Google Sheets Setup ────────────────────────────────────────
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

HEADERS = [
    "Type",
    "ID",
    "Killer/Player",
    "Victim",
    "Time",
    "Weapon",
    "Distance",
    "Killer Steam ID",
    "Victim Steam ID",
    "Previous Names",
    "Wipe",
]


def build_rows(db, wipe_id: str = CURRENT_WIPE_ID) -> List[list]:
    """Header plus one row per kill and one per known Steam identity."""
    rows = [HEADERS]

    kills = (
        db.query(KillFeedModel)
        .filter_by(wipe_id=wipe_id)
        .order_by(KillFeedModel.timestamp)
        .all()
    )
    for k in kills:
        rows.append(
            [
                "Kill",
                k.id,
                k.killer,
                k.victim,
                k.timestamp.isoformat(),
                k.weapon,
                k.distance,
                k.killer_steam_id or "",
                k.victim_steam_id or "",
                "",
                k.wipe_id,
            ]
        )

    players = (
        db.query(SteamPlayerModel)
        .filter_by(wipe_id=wipe_id)
        .order_by(SteamPlayerModel.current_name)
        .all()
    )
    for p in players:
        rows.append(
            [
                "Player",
                p.id,
                p.current_name,
                "",
                p.last_seen.isoformat() if p.last_seen else "",
                "",
                "",
                p.steam_id,
                "",
                ", ".join(p.previous_names or []),
                p.wipe_id,
            ]
        )
    return rows


def open_sheet():
    if not SPREADSHEET_ID:
        raise RuntimeError("SPREADSHEET_ID environment variable not set")
    creds = Credentials.from_service_account_file(GOOGLE_CREDENTIALS_FILE, scopes=SCOPES)
    client = gspread.authorize(creds)
    return client.open_by_key(SPREADSHEET_ID).worksheet(SHEET_NAME)


def main() -> None:
    db = SessionLocal()
    try:
        rows = build_rows(db)
    finally:
        db.close()

    # ─── Clear sheet and push everything in one write
    sheet = open_sheet()
    sheet.clear()
    sheet.update(values=rows, range_name="A1")
    logger.info("✅ Synced %d rows to %s", len(rows) - 1, SHEET_NAME)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
