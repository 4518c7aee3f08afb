import logging

import pytest

from classify import EventKind, classify_flat, classify_title


@pytest.mark.parametrize(
    "title,kind",
    [
        ("Kill / Death Report:", EventKind.KILL_REPORT),
        ("Player Eliminated", EventKind.KILL_REPORT),
        ("Death Report", EventKind.KILL_REPORT),
        ("Killed Player", EventKind.ADMIN_KILL_IGNORED),
        ("Player Joined", EventKind.PLAYER_JOINED),
        ("Player disconnected", EventKind.PLAYER_LEFT),
        ("Server FPS", EventKind.SERVER_FPS),
        ("Server Restart in 5 minutes", EventKind.SERVER_RESTART),
        ("Server Shutdown", EventKind.SERVER_SHUTDOWN),
        ("Server Startup", EventKind.SERVER_STARTUP),
        ("Weather changed", EventKind.UNRECOGNIZED),
        ("", EventKind.UNRECOGNIZED),
        (None, EventKind.UNRECOGNIZED),
    ],
)
def test_classify_title(title, kind):
    assert classify_title(title) is kind


def test_admin_kill_beats_generic_kill_keywords():
    # "killed player" also contains "kill"
    assert classify_title("ADMIN KILLED PLAYER") is EventKind.ADMIN_KILL_IGNORED


def test_precedence_order():
    assert classify_title("Player joined right after a kill") is EventKind.PLAYER_JOINED
    assert classify_title("Server FPS before restart") is EventKind.SERVER_FPS
    assert classify_title("Restart after shutdown") is EventKind.SERVER_RESTART
    assert classify_title("Shutdown, startup pending") is EventKind.SERVER_SHUTDOWN


def test_unrecognized_kill_like_fields_are_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="classify"):
        kind = classify_title("Something new", ["Killer", "Victim", "Details"])
    assert kind is EventKind.UNRECOGNIZED
    assert "Potential missed kill" in caplog.text


@pytest.mark.parametrize(
    "event,kind",
    [
        ("kill_any_player", EventKind.KILL_REPORT),
        ("player_joined", EventKind.PLAYER_JOINED),
        ("player_left", EventKind.PLAYER_LEFT),
        ("status_fps", EventKind.SERVER_FPS),
        ("status_startup", EventKind.SERVER_STARTUP),
        ("status_shutdown", EventKind.SERVER_SHUTDOWN),
        ("server_restart", EventKind.SERVER_RESTART),
        ("weather_changed", EventKind.UNRECOGNIZED),
        (None, EventKind.UNRECOGNIZED),
        (42, EventKind.UNRECOGNIZED),
    ],
)
def test_classify_flat(event, kind):
    assert classify_flat(event) is kind
