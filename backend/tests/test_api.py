"""
API integration tests — mocks all DB calls at the levelsys.main import level.
Runs without a live Supabase connection.
"""
import threading
import uuid
from unittest.mock import MagicMock, patch
import pytest
from fastapi.testclient import TestClient

from levelsys.db import StoreError
from levelsys.engine.character import default_character


class FakeStore:
    """In-memory CharacterStore: loads hand out copies, every save is counted."""

    def __init__(self, state=None):
        self.state = state or default_character()
        self.saves = 0
        self.removed = False
        self.fail_reads = False

    def load(self, device_id):
        if self.fail_reads:
            raise StoreError("connection refused")
        return self.state.model_copy(deep=True)

    def load_or_default(self, device_id, character_name="Hero"):
        return self.state.model_copy(deep=True)

    def save(self, device_id, state):
        self.state = state
        self.saves += 1

    def remove(self, device_id):
        self.removed = True


@pytest.fixture
def app_client():
    """
    Patches every DB function imported by levelsys.main so no real Supabase
    calls are made. Yields a dict with the TestClient and key mock handles.
    """
    store = FakeStore()
    patches = {
        "get_client": patch("levelsys.main.get_client"),
        "get_device": patch("levelsys.main.get_device"),
        "get_store": patch("levelsys.main.get_store"),
    }
    started = {k: p.start() for k, p in patches.items()}

    started["get_device"].return_value = None
    started["get_client"].return_value = MagicMock()
    started["get_store"].side_effect = lambda: store

    from levelsys.main import app
    with TestClient(app, raise_server_exceptions=False) as c:
        yield {"client": c, "store": store, **started}

    for p in patches.values():
        p.stop()


def _make_device(device_id=None):
    return {
        "device_id": device_id or str(uuid.uuid4()),
        "character_name": "TestHero",
        "created_at": "2026-01-01T00:00:00",
    }


def _auth(app_client):
    device_id = str(uuid.uuid4())
    app_client["get_device"].return_value = _make_device(device_id)
    return {"Authorization": f"Bearer {device_id}"}


# ── Health ────────────────────────────────────────────────────────────────────

class TestHealth:
    def test_health_ok(self, app_client):
        res = app_client["client"].get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"


# ── Device registration ───────────────────────────────────────────────────────

class TestDeviceRegistration:
    def test_register_new_device(self, app_client):
        c = app_client["client"]
        res = c.post("/api/devices", json={"device_id": str(uuid.uuid4()), "character_name": "Hero"})
        assert res.status_code == 201
        assert res.json()["status"] == "registered"
        assert app_client["store"].saves == 1

    def test_register_already_registered(self, app_client):
        c = app_client["client"]
        device_id = str(uuid.uuid4())
        app_client["get_device"].return_value = _make_device(device_id)
        res = c.post("/api/devices", json={"device_id": device_id, "character_name": "Hero"})
        assert res.status_code == 201
        assert res.json()["status"] == "already_registered"

    def test_invalid_uuid_rejected(self, app_client):
        res = app_client["client"].post("/api/devices", json={"device_id": "not-a-uuid", "character_name": "Hero"})
        assert res.status_code == 422

    def test_name_too_long_rejected(self, app_client):
        res = app_client["client"].post(
            "/api/devices", json={"device_id": str(uuid.uuid4()), "character_name": "x" * 31}
        )
        assert res.status_code == 422


# ── Auth ──────────────────────────────────────────────────────────────────────

class TestAuth:
    def test_requires_bearer(self, app_client):
        res = app_client["client"].get("/api/character")
        assert res.status_code == 422  # Header missing

    def test_malformed_header(self, app_client):
        res = app_client["client"].get("/api/character", headers={"Authorization": "Token abc"})
        assert res.status_code == 401

    def test_unknown_device(self, app_client):
        res = app_client["client"].get(
            "/api/character", headers={"Authorization": f"Bearer {uuid.uuid4()}"}
        )
        assert res.status_code == 404


# ── Character ─────────────────────────────────────────────────────────────────

class TestCharacter:
    def test_get_character_includes_tiers(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].get("/api/character", headers=headers)
        assert res.status_code == 200
        body = res.json()
        assert body["character"]["level"] == 1
        assert body["character"]["tiers"]["STRENGTH"]["tier"] == "D-"
        assert body["notifications"] == []

    def test_rename_character(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].patch("/api/character", json={"character_name": "Aria"}, headers=headers)
        assert res.status_code == 200
        assert app_client["store"].state.character_name == "Aria"


# ── Quests ────────────────────────────────────────────────────────────────────

class TestQuestFlow:
    def _create(self, app_client, headers, **body):
        payload = {"name": "Lift", "experience_reward": 20, "difficulty": "Hard",
                   "stat_boosts": {"STRENGTH": 2}, "day": "Monday", **body}
        res = app_client["client"].post("/api/quests", json=payload, headers=headers)
        assert res.status_code == 201
        return res.json()["quest"]["id"]

    def test_complete_applies_rewards_and_notifies(self, app_client):
        headers = _auth(app_client)
        quest_id = self._create(app_client, headers)

        res = app_client["client"].post(f"/api/quests/{quest_id}/complete", headers=headers)

        assert res.status_code == 200
        body = res.json()
        assert body["changed"] is True
        assert body["character"]["experience"] == 30
        assert body["character"]["currency"] == 7
        assert body["character"]["stats"]["STRENGTH"] == 3
        assert {"kind": "achievement", "id": "first_steps"}.items() <= body["notifications"][0].items()

    def test_second_complete_is_noop(self, app_client):
        headers = _auth(app_client)
        quest_id = self._create(app_client, headers)
        c = app_client["client"]
        c.post(f"/api/quests/{quest_id}/complete", headers=headers)
        res = c.post(f"/api/quests/{quest_id}/complete", headers=headers)
        assert res.json()["changed"] is False
        assert res.json()["character"]["experience"] == 30

    def test_redo_keeps_rewards(self, app_client):
        headers = _auth(app_client)
        quest_id = self._create(app_client, headers)
        c = app_client["client"]
        c.post(f"/api/quests/{quest_id}/complete", headers=headers)
        res = c.post(f"/api/quests/{quest_id}/redo", headers=headers)
        assert res.json()["changed"] is True
        assert res.json()["character"]["experience"] == 30

    def test_mega_gated(self, app_client):
        headers = _auth(app_client)
        quest_id = self._create(app_client, headers, difficulty="Mega")
        res = app_client["client"].post(f"/api/quests/{quest_id}/complete", headers=headers)
        assert res.status_code == 403
        assert app_client["store"].state.experience == 0

    def test_unknown_quest_404(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].post("/api/quests/nope/complete", headers=headers)
        assert res.status_code == 404

    def test_blank_name_rejected(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].post("/api/quests", json={"name": "   "}, headers=headers)
        assert res.status_code == 422

    def test_list_by_day(self, app_client):
        headers = _auth(app_client)
        self._create(app_client, headers, name="Tue", day="Tuesday")
        res = app_client["client"].get("/api/quests", params={"day": "Tuesday"}, headers=headers)
        assert [q["name"] for q in res.json()["quests"]] == ["Tue"]

    def test_delete(self, app_client):
        headers = _auth(app_client)
        quest_id = self._create(app_client, headers)
        res = app_client["client"].delete(f"/api/quests/{quest_id}", headers=headers)
        assert res.status_code == 200
        assert app_client["store"].state.quests == []


# ── Stats & skills ────────────────────────────────────────────────────────────

class TestStats:
    def test_add_duplicate_409(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].post("/api/stats", json={"name": "strength"}, headers=headers)
        assert res.status_code == 409

    def test_delete_last_stat_409(self, app_client):
        headers = _auth(app_client)
        app_client["store"].state.stats = {"FOCUS": 3}
        res = app_client["client"].delete("/api/stats/FOCUS", headers=headers)
        assert res.status_code == 409
        assert app_client["store"].state.stats == {"FOCUS": 3}

    def test_rename(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].patch("/api/stats/strength", json={"name": "power"}, headers=headers)
        assert res.status_code == 200
        assert res.json()["stat"] == "POWER"

    def test_upgrade_skill(self, app_client):
        headers = _auth(app_client)
        app_client["store"].state.skill_points = 1
        res = app_client["client"].post("/api/skills/Scholar/upgrade", headers=headers)
        assert res.json()["changed"] is True
        assert res.json()["character"]["skills"]["Scholar"]["level"] == 2


# ── Challenges ────────────────────────────────────────────────────────────────

class TestChallenges:
    def test_generate_and_complete_weekly(self, app_client):
        headers = _auth(app_client)
        c = app_client["client"]
        challenge = c.post("/api/challenges/weekly", headers=headers).json()["challenge"]
        res = c.post(f"/api/quests/{challenge['id']}/complete", headers=headers)
        assert res.status_code == 200
        assert res.json()["character"]["weekly_challenge"]["completed"] is True

    def test_custom_crud(self, app_client):
        headers = _auth(app_client)
        c = app_client["client"]
        created = c.post("/api/challenges", json={"name": "Read 3 books"}, headers=headers).json()["challenge"]
        c.patch(f"/api/challenges/{created['id']}", json={"name": "Read 4 books"}, headers=headers)
        listed = c.get("/api/challenges", headers=headers).json()["challenges"]
        assert [ch["name"] for ch in listed] == ["Read 4 books"]
        c.delete(f"/api/challenges/{created['id']}", headers=headers)
        assert c.get("/api/challenges", headers=headers).json()["challenges"] == []


# ── Cosmetics ─────────────────────────────────────────────────────────────────

class TestCosmetics:
    def test_buy_and_equip(self, app_client):
        headers = _auth(app_client)
        app_client["store"].state.currency = 300
        c = app_client["client"]
        assert c.post("/api/cosmetics/sword/buy", headers=headers).json()["changed"] is True
        res = c.put("/api/cosmetics/weapon", json={"item_id": "sword"}, headers=headers)
        assert res.json()["character"]["cosmetics"]["weapon"] == "sword"
        res = c.delete("/api/cosmetics/weapon", headers=headers)
        assert res.json()["character"]["cosmetics"]["weapon"] is None

    def test_equip_unowned_rejected(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].put("/api/cosmetics/hat", json={"item_id": "crown"}, headers=headers)
        assert res.status_code == 422


# ── Read-only views ───────────────────────────────────────────────────────────

class TestViews:
    def test_achievements(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].get("/api/achievements", headers=headers)
        assert len(res.json()["achievements"]) == 59

    def test_analytics(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].get("/api/analytics", headers=headers)
        assert res.json()["analytics"]["completion_rate"] == 0

    def test_export(self, app_client):
        headers = _auth(app_client)
        res = app_client["client"].get("/api/export", headers=headers)
        assert res.status_code == 200
        assert "level-system-backup-" in res.headers["content-disposition"]
        assert res.json()["character_name"] == "Hero"


# ── Reset ─────────────────────────────────────────────────────────────────────

class TestReset:
    def test_reset_restores_defaults(self, app_client):
        headers = _auth(app_client)
        app_client["store"].state.currency = 999
        res = app_client["client"].delete("/api/me", headers=headers)
        assert res.status_code == 200
        assert app_client["store"].removed is True
        assert app_client["store"].state.currency == 0


# ── Store failures & persistence ──────────────────────────────────────────────

class TestPersistence:
    def test_failed_read_serves_defaults_without_saving(self, app_client):
        headers = _auth(app_client)
        store = app_client["store"]
        store.state.experience = 500
        store.fail_reads = True

        res = app_client["client"].get("/api/character", headers=headers)

        assert res.status_code == 200
        assert res.json()["character"]["experience"] == 0
        assert store.saves == 0
        assert store.state.experience == 500

    def test_failed_read_discards_mutation(self, app_client):
        headers = _auth(app_client)
        store = app_client["store"]
        store.state.currency = 80
        store.fail_reads = True

        res = app_client["client"].post("/api/quests", json={"name": "Walk"}, headers=headers)

        assert res.status_code == 201
        assert store.saves == 0
        assert store.state.currency == 80
        assert store.state.quests == []

    def test_plain_read_does_not_save(self, app_client):
        headers = _auth(app_client)
        c = app_client["client"]
        c.get("/api/character", headers=headers)   # first touch of the day runs the reset
        saves = app_client["store"].saves

        c.get("/api/character", headers=headers)
        c.get("/api/quests", headers=headers)
        c.get("/api/analytics", headers=headers)

        assert app_client["store"].saves == saves

    def test_reset_on_read_is_saved(self, app_client):
        headers = _auth(app_client)
        app_client["store"].state.last_midnight_reset = None
        app_client["client"].get("/api/achievements", headers=headers)
        assert app_client["store"].saves == 1
        assert app_client["store"].state.last_midnight_reset is not None


# ── Per-device serialization ──────────────────────────────────────────────────

class TestDeviceLock:
    def test_same_device_shares_lock(self):
        from levelsys.main import device_lock
        assert device_lock("dev-a") is device_lock("dev-a")
        assert device_lock("dev-a") is not device_lock("dev-b")

    def test_lock_released_after_engine_error(self, app_client):
        from levelsys.main import device_lock
        headers = _auth(app_client)
        device_id = headers["Authorization"].removeprefix("Bearer ")
        res = app_client["client"].post("/api/quests/nope/complete", headers=headers)
        assert res.status_code == 404
        assert not device_lock(device_id).locked()

    def test_overlapping_sessions_both_land(self, app_client):
        from levelsys.main import Session
        headers = _auth(app_client)
        device_id = headers["Authorization"].removeprefix("Bearer ")
        c = app_client["client"]
        ids = [
            c.post("/api/quests", json={"name": name}, headers=headers).json()["quest"]["id"]
            for name in ("A", "B")
        ]
        inside = threading.Event()
        release = threading.Event()

        def first():
            with Session(device_id) as session:
                inside.set()
                release.wait(5)
                session.engine.complete(ids[0])
                session.commit()

        def second():
            with Session(device_id) as session:
                session.engine.complete(ids[1])
                session.commit()

        t1 = threading.Thread(target=first)
        t1.start()
        assert inside.wait(5)
        t2 = threading.Thread(target=second)
        t2.start()
        t2.join(0.2)
        assert t2.is_alive()   # waiting on the device lock

        release.set()
        t1.join(5)
        t2.join(5)

        state = app_client["store"].state
        assert sorted(q.name for q in state.quests if q.completed) == ["A", "B"]
        assert state.experience == 20
