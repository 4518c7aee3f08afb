import datetime

import pytest

from extract import PlayerRef
from normalize import (
    build_kill,
    is_self_inflicted,
    normalize_embed_kill,
    normalize_flat_kill,
    parse_timestamp,
)
from schemas import KillAnyPlayerWebhook

ALICE_ID = "76561198000000002"
BOB_ID = "76561198000000001"
WHEN = datetime.datetime(2026, 10, 1, 12, 0, 0)


def test_kill_report_fields():
    fields = {
        "Victim:": f"Bob\n[{BOB_ID}]",
        "Killer:": f"Alice\n[{ALICE_ID}]",
        "Details:": "Alice killed Bob with [AKM] from [350] meters",
    }
    kill = normalize_embed_kill(fields, WHEN)
    assert kill.killer_name == "Alice"
    assert kill.victim_name == "Bob"
    assert kill.killer_steam_id == ALICE_ID
    assert kill.victim_steam_id == BOB_ID
    assert kill.weapon == "AKM"
    assert kill.distance == "350m"
    assert kill.occurred_at == WHEN
    assert not kill.self_inflicted


def test_suicide_sentinel_attributed_to_victim():
    fields = {"Killer": "Suicide", "Victim": f"Bob\n[{BOB_ID}]", "Details": "???"}
    kill = normalize_embed_kill(fields, WHEN)
    assert kill.killer_name == kill.victim_name == "Bob"
    assert kill.killer_steam_id == BOB_ID
    assert kill.weapon == "Self-inflicted"
    assert kill.distance == "Suicide"
    assert kill.self_inflicted


def test_suicide_sentinel_without_victim_id_keeps_killer():
    kill = normalize_embed_kill({"Killer": "Suicide", "Victim": "Bob"}, WHEN)
    assert kill.killer_name == "Suicide"
    assert kill.victim_name == "Bob"
    assert kill.weapon == "Self-inflicted"
    assert kill.distance == "Suicide"
    assert kill.self_inflicted


def test_suicide_sentinel_with_named_weapon_is_still_self_inflicted():
    fields = {"Killer": "Suicide", "Victim": "Bob", "Details": "with [M4A1] from [2] meters"}
    kill = normalize_embed_kill(fields, WHEN)
    assert (kill.killer_name, kill.weapon, kill.distance) == ("Suicide", "M4A1", "2m")
    assert kill.self_inflicted


def test_defaults_for_unparsed_pvp_kill():
    kill = normalize_embed_kill({"Killer": "Alice", "Victim": "Bob"}, WHEN)
    assert kill.weapon == "Unknown"
    assert kill.distance == "0m"


def test_explicit_weapon_and_distance_fields_win():
    fields = {
        "Killer": "Alice",
        "Victim": "Bob",
        "Weapon": "Mosin 91/30",
        "Distance": "212.7m",
        "Details": "with [AKM] from [10] meters",
    }
    kill = normalize_embed_kill(fields, WHEN)
    assert kill.weapon == "Mosin 91/30"
    assert kill.distance == "213m"


def test_admin_and_player_field_variants():
    kill = normalize_embed_kill({"Admin": "Alice", "Player": "Bob"}, WHEN)
    assert (kill.killer_name, kill.victim_name) == ("Alice", "Bob")


@pytest.mark.parametrize(
    "fields",
    [
        {"Victim": "Bob"},
        {"Killer": "Alice"},
        {"Killer": "", "Victim": "Bob"},
        {"Killer": "Unknown", "Victim": "Bob"},
        {"Killer": "Alice", "Victim": "Unknown"},
    ],
)
def test_unattributed_kills_are_dropped(fields):
    assert normalize_embed_kill(fields, WHEN) is None


def test_build_kill_defaults_to_now():
    kill = build_kill(PlayerRef("Alice"), PlayerRef("Bob"), "AKM", "10m")
    assert kill.occurred_at is not None
    assert kill.occurred_at.tzinfo is None


def test_flat_kill_explicit_ids():
    payload = KillAnyPlayerWebhook.model_validate(
        {
            "event": "kill_any_player",
            "killer": "Alice",
            "victim": "Bob",
            "weapon": "SVD",
            "distance": 420.2,
            "killerSteamId": ALICE_ID,
            "victimSteamId": "Unknown",
        }
    )
    kill = normalize_flat_kill(payload, WHEN)
    assert kill.killer_steam_id == ALICE_ID
    assert kill.victim_steam_id is None
    assert kill.weapon == "SVD"
    assert kill.distance == "420m"


def test_flat_kill_profile_links():
    payload = KillAnyPlayerWebhook.model_validate(
        {
            "killer": f"[Alice](https://steamcommunity.com/profiles/{ALICE_ID})",
            "victim": f"[Bob](https://steamcommunity.com/profiles/{BOB_ID})",
        }
    )
    kill = normalize_flat_kill(payload, WHEN)
    assert (kill.killer_name, kill.killer_steam_id) == ("Alice", ALICE_ID)
    assert (kill.victim_name, kill.victim_steam_id) == ("Bob", BOB_ID)
    assert kill.weapon == "Unknown"


def test_is_self_inflicted():
    assert is_self_inflicted("Bob", "Bob", None, None, "AKM")
    assert is_self_inflicted("Bob", "Robert", BOB_ID, BOB_ID, "AKM")
    assert is_self_inflicted("Alice", "Bob", None, None, "Fall damage")
    assert is_self_inflicted("Alice", "Bob", None, None, "Environment")
    assert is_self_inflicted("Suicide", "Bob", None, None, "M4A1")
    assert not is_self_inflicted("Alice", "Bob", ALICE_ID, BOB_ID, "AKM")
    assert not is_self_inflicted("Alice", "Bob", None, None, None)


def test_parse_timestamp():
    assert parse_timestamp("2026-10-01T12:00:00Z") == WHEN
    assert parse_timestamp("2026-10-01T14:00:00+02:00") == WHEN
    assert parse_timestamp("2026-10-01T12:00:00") == WHEN
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
