import enum
import logging
from typing import Callable, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    KILL_REPORT = "kill_report"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    SERVER_FPS = "server_fps"
    SERVER_RESTART = "server_restart"
    SERVER_SHUTDOWN = "server_shutdown"
    SERVER_STARTUP = "server_startup"
    ADMIN_KILL_IGNORED = "admin_kill_ignored"
    UNRECOGNIZED = "unrecognized"


STATUS_KINDS = frozenset(
    {
        EventKind.SERVER_FPS,
        EventKind.SERVER_RESTART,
        EventKind.SERVER_SHUTDOWN,
        EventKind.SERVER_STARTUP,
    }
)


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda title: any(needle in title for needle in needles)


# Evaluated top to bottom against the lower-cased title. Several keywords can
# appear in one title ("Killed Player" also contains "kill"), so order matters.
TITLE_RULES: List[Tuple[Callable[[str], bool], EventKind]] = [
    (_contains("killed player"), EventKind.ADMIN_KILL_IGNORED),
    (_contains("joined"), EventKind.PLAYER_JOINED),
    (_contains("player left", "left the server", "disconnected"), EventKind.PLAYER_LEFT),
    (_contains("server fps"), EventKind.SERVER_FPS),
    (_contains("restart"), EventKind.SERVER_RESTART),
    (_contains("shutdown"), EventKind.SERVER_SHUTDOWN),
    (_contains("startup"), EventKind.SERVER_STARTUP),
    (_contains("kill", "eliminated", "death report"), EventKind.KILL_REPORT),
]

# "event" values of the flat payload shape
FLAT_EVENTS = {
    "kill_any_player": EventKind.KILL_REPORT,
    "player_joined": EventKind.PLAYER_JOINED,
    "player_left": EventKind.PLAYER_LEFT,
    "status_fps": EventKind.SERVER_FPS,
    "server_restart": EventKind.SERVER_RESTART,
    "status_shutdown": EventKind.SERVER_SHUTDOWN,
    "status_startup": EventKind.SERVER_STARTUP,
}


def classify_title(
    title: Optional[str], field_names: Iterable[str] = ()
) -> EventKind:
    text = (title or "").lower()
    for matches, kind in TITLE_RULES:
        if matches(text):
            return kind

    field_names = list(field_names)
    names = [name.lower() for name in field_names]
    has_killer = any("killer" in name for name in names)
    has_victim = any("victim" in name or "player" in name for name in names)
    if has_killer and has_victim:
        logger.warning(
            "⚠️ Potential missed kill/death event, title=%r fields=%r",
            title,
            field_names,
        )
    return EventKind.UNRECOGNIZED


def classify_flat(event: Optional[str]) -> EventKind:
    return FLAT_EVENTS.get(str(event or "").strip(), EventKind.UNRECOGNIZED)
