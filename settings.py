import os
from pathlib import Path

from dotenv import load_dotenv

# ─── Load .env.local if present
env_path = Path(__file__).parent / ".env.local"
if env_path.exists():
    load_dotenv(env_path)

DATABASE_URL = os.environ["DATABASE_URL"]

# every row written is tagged with this, every read is scoped to it
CURRENT_WIPE_ID = os.getenv("CURRENT_WIPE_ID", "wipe_1")

# shared secret for /api/admin/*; unset means admin is locked
ADMIN_TOKEN = os.getenv("ADMIN_TOKEN")

MAX_PLAYERS = int(os.getenv("MAX_PLAYERS", "30"))
STATUS_STALE_SECONDS = int(os.getenv("STATUS_STALE_SECONDS", "300"))
KILL_FEED_MAX = int(os.getenv("KILL_FEED_MAX", "200"))
LEADERBOARD_MAX = int(os.getenv("LEADERBOARD_MAX", "10"))

# ─── Google Sheets export
GOOGLE_CREDENTIALS_FILE = os.getenv("GOOGLE_CREDENTIALS_FILE", "gcp-creds.json")
SPREADSHEET_ID = os.getenv("SPREADSHEET_ID")
SHEET_NAME = os.getenv("SHEET_NAME", "KillFeed")
