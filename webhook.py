"""
Webhook ingestion.

Every inbound notification takes the same path: classify, extract, normalize,
consolidate Steam identities, de-duplicate, store. Anything the pipeline can
not use is dropped with a log line and still answered with 200, since the
notifier has no useful retry behaviour. Only unreadable bodies (400) and
storage failures (500) reach the sender as errors.
"""

import asyncio
import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from classify import STATUS_KINDS, EventKind, classify_flat, classify_title
from extract import PlayerRef, extract_player
from identity import IdentityResolver
from models import utcnow
from normalize import (
    KillCandidate,
    given_steam_id,
    normalize_embed_kill,
    normalize_flat_kill,
    parse_timestamp,
)
from schemas import (
    DiscordWebhook,
    Embed,
    KillAnyPlayerWebhook,
    PlayerWebhook,
    ServerStatusWebhook,
)
from server_status import ServerStatusCell
from store import EventStore

logger = logging.getLogger(__name__)

PLAYER_FIELDS = ("Player", "Player:", "Name")
PLAYER_COUNT_FIELDS = ("Players", "Online", "Current Players")
FPS_FIELDS = ("Average", "FPS")
COUNT_RE = re.compile(r"(\d+)(?:\s*/\s*(\d+))?")
PLAYERS_IN_TEXT_RE = re.compile(r"(\d+)/(\d+)\s*players?", re.IGNORECASE)

BACKUP_KEYWORDS = ("kill", "death", "eliminated", "player")
PLAYER_KEYWORDS = (
    "player",
    "joined",
    "left",
    "disconnected",
    "kill",
    "death",
    "eliminated",
    "report",
)


class Outcome(str, enum.Enum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    UNATTRIBUTED = "unattributed"
    ADMIN_KILL = "admin_kill"
    IGNORED = "ignored"
    NOT_RELEVANT = "not_relevant"
    PROCESSED = "processed"


MESSAGES = {
    Outcome.STORED: "Kill recorded",
    Outcome.DUPLICATE: "Duplicate kill event skipped",
    Outcome.UNATTRIBUTED: "Event could not be attributed to a player",
    Outcome.ADMIN_KILL: "Admin kill event ignored",
    Outcome.IGNORED: "Event ignored",
    Outcome.NOT_RELEVANT: "Event ignored - not relevant",
    Outcome.PROCESSED: "Webhook processed successfully",
}


@dataclass
class IngestResult:
    outcome: Outcome
    kind: Optional[EventKind] = None
    kill_id: Optional[int] = None

    def as_response(self) -> dict:
        return {"success": True, "message": MESSAGES[self.outcome]}


def first_embed(body: dict) -> Optional[Embed]:
    embeds = body.get("embeds")
    if not isinstance(embeds, list) or not embeds:
        return None
    return DiscordWebhook.model_validate({"embeds": embeds[:1]}).embeds[0]


def parse_count(value: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """ "12/30" -> (12, 30), "12" -> (12, None)."""
    if not value:
        return None, None
    match = COUNT_RE.search(value)
    if not match:
        return None, None
    total = int(match.group(2)) if match.group(2) else None
    return int(match.group(1)), total


def uptime_online(uptime: Optional[str]) -> bool:
    # any non-zero figure in the uptime means the server is up
    return bool(uptime) and re.search(r"[1-9]", uptime) is not None


def passes_prefilter(
    body: dict, keywords: Iterable[str], exact_titles: Iterable[str] = ()
) -> bool:
    embeds = body.get("embeds")
    if not isinstance(embeds, list) or not embeds or not isinstance(embeds[0], dict):
        return False
    title = str(embeds[0].get("title") or "").lower()
    return title in exact_titles or any(k in title for k in keywords)


class WebhookProcessor:
    def __init__(
        self,
        store: EventStore,
        resolver: IdentityResolver,
        server_status: ServerStatusCell,
    ):
        self.store = store
        self.resolver = resolver
        self.server_status = server_status

    def process(self, body: dict) -> IngestResult:
        embed = first_embed(body)
        if embed is not None:
            fields = embed.field_map()
            kind = classify_title(embed.title, fields.keys())
            logger.info("Embed %r classified as %s", embed.title, kind.value)
            return self._handle_embed(kind, embed, fields)

        kind = classify_flat(body.get("event"))
        logger.info("Flat event %r classified as %s", body.get("event"), kind.value)
        return self._handle_flat(kind, body)

    # ─── embeds
    def _handle_embed(self, kind: EventKind, embed: Embed, fields: dict) -> IngestResult:
        occurred_at = parse_timestamp(embed.timestamp) or utcnow()

        if kind is EventKind.ADMIN_KILL_IGNORED:
            logger.info("🚫 Skipping admin kill event %r", embed.title)
            return IngestResult(Outcome.ADMIN_KILL, kind)
        if kind is EventKind.UNRECOGNIZED:
            logger.info("Unrecognized webhook title %r, fields=%r", embed.title, fields)
            return IngestResult(Outcome.IGNORED, kind)
        if kind is EventKind.KILL_REPORT:
            return self._record_kill(kind, normalize_embed_kill(fields, occurred_at))
        if kind in (EventKind.PLAYER_JOINED, EventKind.PLAYER_LEFT):
            value = next((fields[n] for n in PLAYER_FIELDS if n in fields), None)
            online, total = parse_count(
                next((fields[n] for n in PLAYER_COUNT_FIELDS if n in fields), None)
            )
            return self._record_player(kind, extract_player(value), online, total, occurred_at)
        if kind in STATUS_KINDS:
            fps, _ = parse_count(next((fields[n] for n in FPS_FIELDS if n in fields), None))
            players, _ = parse_count(fields.get("Players"))
            uptime = fields.get("Uptime")
            status = None
            if kind is EventKind.SERVER_FPS:
                status = "online" if uptime_online(uptime) else "offline"
            return self._record_status(kind, fps, players, uptime, status, occurred_at)
        raise AssertionError(f"unhandled event kind {kind}")

    # ─── flat payloads
    def _handle_flat(self, kind: EventKind, body: dict) -> IngestResult:
        if kind is EventKind.UNRECOGNIZED:
            logger.info("Unrecognized flat event %r", body.get("event"))
            return IngestResult(Outcome.IGNORED, kind)
        if kind is EventKind.KILL_REPORT:
            payload = KillAnyPlayerWebhook.model_validate(body)
            occurred_at = parse_timestamp(payload.timestamp) or utcnow()
            return self._record_kill(kind, normalize_flat_kill(payload, occurred_at))
        if kind in (EventKind.PLAYER_JOINED, EventKind.PLAYER_LEFT):
            payload = PlayerWebhook.model_validate(body)
            occurred_at = parse_timestamp(payload.timestamp) or utcnow()
            player = extract_player(payload.player)
            steam_id = given_steam_id(payload.steamId)
            if player and steam_id:
                player = PlayerRef(player.name, steam_id)
            return self._record_player(kind, player, payload.playerCount, None, occurred_at)
        if kind in STATUS_KINDS:
            payload = ServerStatusWebhook.model_validate(body)
            occurred_at = parse_timestamp(payload.timestamp) or utcnow()
            status = None
            if kind is EventKind.SERVER_FPS:
                if payload.serverStatus in ("online", "offline"):
                    status = payload.serverStatus
                elif payload.uptime is not None:
                    status = "online" if uptime_online(payload.uptime) else "offline"
                else:
                    status = "online"
            fps = int(payload.fps) if payload.fps is not None else None
            return self._record_status(
                kind, fps, payload.playerCount, payload.uptime, status, occurred_at
            )
        raise AssertionError(f"unhandled event kind {kind}")

    # ─── sinks
    def _consolidate(self, steam_id: Optional[str], name: str) -> str:
        self.resolver.record_sighting(steam_id, name)
        return self.resolver.resolve(steam_id, name)

    def _record_kill(
        self, kind: EventKind, candidate: Optional[KillCandidate]
    ) -> IngestResult:
        if candidate is None:
            return IngestResult(Outcome.UNATTRIBUTED, kind)

        candidate.killer_name = self._consolidate(
            candidate.killer_steam_id, candidate.killer_name
        )
        candidate.victim_name = self._consolidate(
            candidate.victim_steam_id, candidate.victim_name
        )

        kill_id = self.store.record_kill(candidate)
        if kill_id is None:
            return IngestResult(Outcome.DUPLICATE, kind)
        return IngestResult(Outcome.STORED, kind, kill_id)

    def _record_player(self, kind, player, online, total, occurred_at) -> IngestResult:
        if player is None:
            logger.info("Player event without a player name dropped")
            return IngestResult(Outcome.UNATTRIBUTED, kind)

        name = self._consolidate(player.steam_id, player.name)
        event_type = "join" if kind is EventKind.PLAYER_JOINED else "leave"
        self.store.record_player_event(name, player.steam_id, event_type, occurred_at)
        logger.info("Player %s: %s", event_type, name)

        if online is not None:
            self.server_status.update(
                players_online=online, max_players=total, status="online"
            )
        else:
            self.server_status.update(status="online")
        return IngestResult(Outcome.PROCESSED, kind)

    def _record_status(
        self, kind, fps, players, uptime, status, occurred_at
    ) -> IngestResult:
        self.store.record_server_event(
            kind.value,
            {"fps": fps, "playerCount": players, "uptime": uptime},
            occurred_at,
        )

        if kind is EventKind.SERVER_SHUTDOWN:
            self.server_status.update(players_online=0, status="offline")
        elif kind is EventKind.SERVER_RESTART:
            self.server_status.update(players_online=players, status="restarting")
        elif kind is EventKind.SERVER_STARTUP:
            self.server_status.update(players_online=players, status="online")
        else:
            self.server_status.update(players_online=players, status=status)
        return IngestResult(Outcome.PROCESSED, kind)

    # ─── server info webhook
    def process_server_info(self, body: dict) -> dict:
        snap = self.server_status.snapshot()
        players = snap.players_online
        max_players = snap.max_players
        status = "online"

        if body.get("players") is not None:
            players, _ = parse_count(str(body["players"]))
            players = players or 0
        if body.get("maxPlayers") is not None:
            total, _ = parse_count(str(body["maxPlayers"]))
            max_players = total or max_players
        if body.get("status") in ("online", "offline", "restarting"):
            status = body["status"]

        embed = first_embed(body)
        if embed is not None:
            text = f"{embed.title or ''} {embed.description or ''}"
            match = PLAYERS_IN_TEXT_RE.search(text)
            if match:
                players, max_players = int(match.group(1)), int(match.group(2))
            for f in embed.fields:
                name, value = f.name.lower(), f.value.lower()
                if "players" in name or "online" in name:
                    count, _ = parse_count(value)
                    if count is not None:
                        players = count
                if "status" in name:
                    if "online" in value:
                        status = "online"
                    elif "offline" in value:
                        status = "offline"
                    elif "restart" in value:
                        status = "restarting"

        self.server_status.update(
            players_online=players, max_players=max_players, status=status
        )
        return {"playersOnline": players, "maxPlayers": max_players, "serverStatus": status}


# ─── Routes
router = APIRouter(prefix="/api/webhook", tags=["Webhooks"])


async def _read_body(request: Request):
    try:
        body = await request.json()
    except ValueError as e:
        return None, JSONResponse(
            status_code=400,
            content={"error": "Malformed JSON body", "details": str(e)},
        )
    if not isinstance(body, dict):
        return None, JSONResponse(
            status_code=400,
            content={"error": "Webhook body must be a JSON object"},
        )
    return body, None


async def _ingest(request: Request, body: dict) -> JSONResponse:
    processor: WebhookProcessor = request.app.state.processor
    try:
        # blocking DB work runs off the event loop
        result = await asyncio.to_thread(processor.process, body)
    except ValidationError as e:
        logger.warning("Invalid webhook payload: %s", e)
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid event payload", "details": str(e)},
        )
    except SQLAlchemyError as e:
        logger.exception("Webhook storage error")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )
    return JSONResponse(content=result.as_response())


@router.post("/dayz")
async def webhook_primary(request: Request):
    body, error = await _read_body(request)
    if error is not None:
        return error
    return await _ingest(request, body)


@router.post("/dayz-alt1")
async def webhook_backup(request: Request):
    """Backup endpoint for kill/death events that miss the primary one."""
    body, error = await _read_body(request)
    if error is not None:
        return error
    if not passes_prefilter(body, BACKUP_KEYWORDS, exact_titles=("error",)):
        return {"success": True, "message": MESSAGES[Outcome.NOT_RELEVANT]}
    return await _ingest(request, body)


@router.post("/dayz-players")
async def webhook_players(request: Request):
    body, error = await _read_body(request)
    if error is not None:
        return error
    if not passes_prefilter(body, PLAYER_KEYWORDS):
        return {"success": True, "message": MESSAGES[Outcome.NOT_RELEVANT]}
    return await _ingest(request, body)


@router.post("/server")
async def webhook_server_info(request: Request):
    body, error = await _read_body(request)
    if error is not None:
        return error
    processor: WebhookProcessor = request.app.state.processor
    try:
        data = await asyncio.to_thread(processor.process_server_info, body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid server info payload", "details": str(e)},
        )
    return {"success": True, "message": "Server info updated successfully", "data": data}


@router.get("/test")
def webhook_test():
    return {
        "message": "Webhook endpoints are active",
        "timestamp": utcnow().isoformat(),
        "endpoints": [
            "/api/webhook/dayz",
            "/api/webhook/dayz-alt1",
            "/api/webhook/dayz-players",
            "/api/webhook/server",
        ],
        "supportedEvents": [kind.value for kind in EventKind],
    }
