import datetime
import json

from database import SessionLocal
from models import KillFeedModel, PlayerEventModel, ServerEventModel, SteamPlayerModel
from normalize import KillCandidate
from store import EventStore

T0 = datetime.datetime(2026, 10, 1, 12, 0, 0)
ALICE_ID = "76561198000000002"
BOB_ID = "76561198000000001"


def candidate(killer="Alice", victim="Bob", weapon="AKM", distance="350m", **kw):
    return KillCandidate(
        killer_name=killer,
        victim_name=victim,
        weapon=weapon,
        distance=distance,
        killer_steam_id=kw.get("ksid"),
        victim_steam_id=kw.get("vsid"),
        occurred_at=kw.get("at", T0),
    )


def test_record_kill_and_feed(store):
    kill_id = store.record_kill(candidate(ksid=ALICE_ID, vsid=BOB_ID))
    assert kill_id is not None

    feed = store.kill_feed()
    assert len(feed) == 1
    assert feed[0]["id"] == kill_id
    assert feed[0]["killer"] == "Alice"
    assert feed[0]["killerSteamId"] == ALICE_ID
    assert feed[0]["wipeId"] == "wipe_1"


def test_duplicate_kill_is_skipped(store):
    assert store.record_kill(candidate()) is not None
    assert store.record_kill(candidate()) is None
    assert store.record_kill(candidate(at=T0 + datetime.timedelta(seconds=1))) is not None
    assert len(store.kill_feed()) == 2


def test_duplicates_are_scoped_to_the_wipe(store):
    store.record_kill(candidate())
    other = EventStore(SessionLocal, "wipe_2")
    assert other.record_kill(candidate()) is not None


def test_kill_feed_newest_first_and_limited(store):
    for minute in range(5):
        store.record_kill(candidate(at=T0 + datetime.timedelta(minutes=minute)))
    feed = store.kill_feed(limit=3)
    assert [f["timestamp"] for f in feed] == [
        T0 + datetime.timedelta(minutes=m) for m in (4, 3, 2)
    ]


def test_feed_shows_canonical_names(store, db):
    store.record_kill(candidate(ksid=ALICE_ID))
    db.add(
        SteamPlayerModel(
            steam_id=ALICE_ID, current_name="Alicia", previous_names=["Alice"], wipe_id="wipe_1"
        )
    )
    db.commit()
    assert store.kill_feed()[0]["killer"] == "Alicia"
    assert store.resolved_kills()[0].killer == "Alicia"


def test_suicides_are_counted(store):
    for minute in range(3):
        store.record_kill(
            candidate(
                killer="Bob",
                victim="Bob",
                weapon="Self-inflicted",
                distance="Suicide",
                ksid=BOB_ID,
                vsid=BOB_ID,
                at=T0 + datetime.timedelta(minutes=minute),
            )
        )
    store.record_kill(candidate(killer="Carl", victim="Carl", weapon="Fall", distance="Suicide"))
    store.record_kill(candidate())

    stats = {s["playerName"]: s for s in store.suicide_stats()}
    assert stats["Bob"]["suicideCount"] == 3
    assert stats["Bob"]["steamId"] == BOB_ID
    assert stats["Bob"]["lastSuicide"] == T0 + datetime.timedelta(minutes=2)
    assert stats["Carl"]["suicideCount"] == 1
    assert "Alice" not in stats
    assert [s["playerName"] for s in store.suicide_stats("Carl")] == ["Carl"]


def test_player_and_server_events(store, db):
    store.record_player_event("Bob", BOB_ID, "join", T0)
    store.record_server_event("status_fps", {"fps": 45, "playerCount": 3}, T0)

    [event] = db.query(PlayerEventModel).all()
    assert (event.player_name, event.event_type) == ("Bob", "join")
    [server] = db.query(ServerEventModel).all()
    assert server.event_type == "status_fps"
    assert json.loads(server.data) == {"fps": 45, "playerCount": 3}


def test_reset_wipe_only_touches_current_wipe(store, resolver, db):
    store.record_kill(candidate())
    store.record_kill(candidate(killer="Bob", victim="Bob", weapon="Fall", distance="Suicide"))
    resolver.record_sighting(ALICE_ID, "Alice")
    EventStore(SessionLocal, "wipe_0").record_kill(candidate())

    result = store.reset_wipe()
    assert result == {
        "success": True,
        "deletedEntries": 4,
        "details": {"killFeed": 2, "steamPlayers": 1, "suicides": 1},
    }
    assert store.kill_feed() == []
    assert db.query(KillFeedModel).filter_by(wipe_id="wipe_0").count() == 1


def test_cleanup_invalid(store, db):
    db.add_all(
        [
            KillFeedModel(killer="Unknown", victim="Bob", weapon="AKM", distance="1m", wipe_id="wipe_1", timestamp=T0),
            KillFeedModel(killer="Alice", victim="Bob", weapon="AKM", distance="1m", killer_steam_id="Unknown", wipe_id="wipe_1", timestamp=T0),
            KillFeedModel(killer="Bob", victim="Bob", weapon="Unknown", distance="0m", wipe_id="wipe_1", timestamp=T0),
            KillFeedModel(killer="Alice", victim="Carl", weapon="AKM", distance="5m", wipe_id="wipe_1", timestamp=T0),
        ]
    )
    db.commit()

    assert store.cleanup_invalid() == {
        "success": True,
        "deletedEntries": 2,
        "fixedEntries": 1,
    }
    feed = {(f["killer"], f["victim"]): f for f in store.kill_feed()}
    assert set(feed) == {("Bob", "Bob"), ("Alice", "Carl")}
    assert feed[("Bob", "Bob")]["weapon"] == "Self-inflicted"
    assert feed[("Bob", "Bob")]["distance"] == "Suicide"


def test_consolidate_players_reports_identities(store, resolver):
    resolver.record_sighting(ALICE_ID, "Alice")
    resolver.record_sighting(BOB_ID, "Bob")
    assert store.consolidate_players() == {"success": True, "updatedEntries": 2}


def test_verify_integrity(store, resolver, db):
    assert store.verify_integrity() == {"consistent": True, "issues": []}

    resolver.record_sighting(ALICE_ID, "Alice")
    store.record_kill(candidate())
    # bypasses the dedup gate
    db.add(
        KillFeedModel(
            killer="Alice", victim="Bob", weapon="AKM", distance="350m", wipe_id="wipe_1", timestamp=T0
        )
    )
    db.commit()

    report = store.verify_integrity()
    assert report["consistent"] is False
    assert "Found 1 killers without Steam ID consolidation" in report["issues"]
    assert "Found 1 duplicate kill events" in report["issues"]
