from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import List, Optional
import asyncio
import hmac
import logging

from sqlalchemy.exc import SQLAlchemyError

import leaderboard
import profiles
from database import SessionLocal, init_db
from extract import is_steam_id
from identity import IdentityResolver
from schemas import KillFeedEntry, LeaderboardEntry, PlayerProfile, SuicideStat
from server_status import ServerStatusCell
from settings import (
    ADMIN_TOKEN,
    CURRENT_WIPE_ID,
    KILL_FEED_MAX,
    LEADERBOARD_MAX,
    MAX_PLAYERS,
    STATUS_STALE_SECONDS,
)
from store import EventStore
from webhook import WebhookProcessor, router as webhook_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Create tables on startup (with retry)
@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db)
    logger.info("🔍 Serving wipe %s", CURRENT_WIPE_ID)
    yield


# ─── FastAPI + CORS
app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── Pipeline wiring; the status cell has exactly one owner, the app
app.state.store = EventStore(SessionLocal, CURRENT_WIPE_ID)
app.state.resolver = IdentityResolver(SessionLocal, CURRENT_WIPE_ID)
app.state.server_status = ServerStatusCell(MAX_PLAYERS, STATUS_STALE_SECONDS)
app.state.processor = WebhookProcessor(
    app.state.store, app.state.resolver, app.state.server_status
)
app.include_router(webhook_router)


def get_store(request: Request) -> EventStore:
    return request.app.state.store


def get_resolver(request: Request) -> IdentityResolver:
    return request.app.state.resolver


def get_server_status(request: Request) -> ServerStatusCell:
    return request.app.state.server_status


# ─── Admin auth dependency
def require_admin(authorization: Optional[str] = Header(None, alias="Authorization")):
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(401, "Unauthorized - Admin access required")
    if not ADMIN_TOKEN or not hmac.compare_digest(token, ADMIN_TOKEN):
        raise HTTPException(401, "Unauthorized - Admin access required")


# ─── Health
@app.get("/", tags=["Health"])
def health_check():
    return {"status": "up"}


@app.get("/healthz", tags=["Health"])
def healthz():
    return {"status": "ok"}


# ─── Kill feed ───────────────────────────────────────────────────────────────
@app.get("/api/killfeed", response_model=List[KillFeedEntry], tags=["Kills"])
def kill_feed(limit: int = 50, store: EventStore = Depends(get_store)):
    limit = max(1, min(limit, KILL_FEED_MAX))
    try:
        return store.kill_feed(limit)
    except SQLAlchemyError as e:
        logger.exception("Kill feed error")
        raise HTTPException(500, f"Failed to fetch kill feed: {e}")


# ─── Leaderboard ─────────────────────────────────────────────────────────────
@app.get("/api/leaderboard", response_model=List[LeaderboardEntry], tags=["Kills"])
def get_leaderboard(
    category: str = "most_kills",
    limit: int = LEADERBOARD_MAX,
    store: EventStore = Depends(get_store),
):
    limit = max(1, min(limit, LEADERBOARD_MAX))
    if category not in leaderboard.CATEGORIES:
        return []
    try:
        kills = store.resolved_kills()
    except SQLAlchemyError as e:
        logger.exception("Leaderboard error")
        raise HTTPException(500, f"Failed to fetch leaderboard: {e}")
    rows = leaderboard.query(category, kills, limit)
    logger.info("📊 Leaderboard %s: %d entries", category, len(rows))
    return rows


# ─── Players ─────────────────────────────────────────────────────────────────
@app.get("/api/player/search", response_model=List[PlayerProfile], tags=["Players"])
def player_search(
    query: Optional[str] = None,
    type: str = "name",
    store: EventStore = Depends(get_store),
    resolver: IdentityResolver = Depends(get_resolver),
):
    if not query or not query.strip():
        raise HTTPException(400, "Search query required")
    query = query.strip()
    try:
        if type == "steamid":
            if not is_steam_id(query):
                raise HTTPException(400, "Invalid Steam ID format")
            return profiles.search_by_steam_id(resolver, store, query)
        return profiles.search_by_name(resolver, store, query)
    except SQLAlchemyError as e:
        logger.exception("Player search error")
        raise HTTPException(500, f"Search failed: {e}")


@app.get("/api/suicides", response_model=List[SuicideStat], tags=["Players"])
def suicide_stats(player: Optional[str] = None, store: EventStore = Depends(get_store)):
    try:
        return store.suicide_stats(player)
    except SQLAlchemyError as e:
        logger.exception("Suicide stats error")
        raise HTTPException(500, f"Failed to fetch suicide stats: {e}")


# ─── Server ──────────────────────────────────────────────────────────────────
@app.get("/api/server/stats", tags=["Server"])
def server_stats(status: ServerStatusCell = Depends(get_server_status)):
    return status.as_dict()


# ─── Admin ───────────────────────────────────────────────────────────────────
@app.post("/api/admin/wipe-reset", tags=["Admin"], dependencies=[Depends(require_admin)])
def wipe_reset(store: EventStore = Depends(get_store)):
    try:
        return store.reset_wipe()
    except SQLAlchemyError as e:
        logger.exception("Wipe reset error")
        raise HTTPException(500, f"Failed to reset wipe data: {e}")


@app.post("/api/admin/cleanup-invalid", tags=["Admin"], dependencies=[Depends(require_admin)])
def cleanup_invalid(store: EventStore = Depends(get_store)):
    try:
        return store.cleanup_invalid()
    except SQLAlchemyError as e:
        logger.exception("Cleanup error")
        raise HTTPException(500, f"Failed to cleanup invalid entries: {e}")


@app.post(
    "/api/admin/consolidate-players", tags=["Admin"], dependencies=[Depends(require_admin)]
)
def consolidate_players(store: EventStore = Depends(get_store)):
    try:
        return store.consolidate_players()
    except SQLAlchemyError as e:
        logger.exception("Consolidation error")
        raise HTTPException(500, f"Failed to consolidate players: {e}")


@app.get("/api/admin/data-integrity", tags=["Admin"], dependencies=[Depends(require_admin)])
def data_integrity(store: EventStore = Depends(get_store)):
    try:
        return store.verify_integrity()
    except SQLAlchemyError as e:
        logger.exception("Integrity check error")
        raise HTTPException(500, f"Failed to verify data integrity: {e}")
