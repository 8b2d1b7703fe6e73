"""Tests for the Timer Deck web API."""

import json

import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from timerdeck.core.settings import Settings
from timerdeck.core.snapshot import SNAPSHOT_KEY
from timerdeck.core.store import MemoryStore
from timerdeck.web.server import create_app, create_store


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "timers.json"


@pytest.fixture
def client(data_file):
    app = create_app(Settings(data_file=data_file))
    with TestClient(app) as client:
        yield client


def add(client, name="Tea", duration=5, category="Kitchen"):
    response = client.post(
        "/api/timers", json={"name": name, "duration": duration, "category": category}
    )
    assert response.status_code == 201
    return response.json()


class TestTimersAPI:
    def test_empty_list(self, client):
        response = client.get("/api/timers")
        assert response.status_code == 200
        assert response.json() == {"timers": [], "completedTimers": []}

    def test_add_timer(self, client):
        timer = add(client)
        assert timer["name"] == "Tea"
        assert timer["remaining"] == 5
        assert timer["status"] == "Paused"
        assert timer["id"]

        listed = client.get("/api/timers").json()["timers"]
        assert [t["id"] for t in listed] == [timer["id"]]

    def test_add_timer_string_duration(self, client):
        timer = add(client, duration="90")
        assert timer["duration"] == 90

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "", "duration": 5, "category": "Kitchen"},
            {"name": "Tea", "duration": "abc", "category": "Kitchen"},
            {"name": "Tea", "duration": 0, "category": "Kitchen"},
            {"name": "Tea", "duration": 5},
            {"name": "Tea", "duration": True, "category": "Kitchen"},
            {"name": "Tea", "duration": 2.5, "category": "Kitchen"},
        ],
    )
    def test_add_timer_invalid(self, client, body):
        response = client.post("/api/timers", json=body)
        assert response.status_code == 400
        assert client.get("/api/timers").json()["timers"] == []

    def test_get_timer(self, client):
        timer = add(client)
        response = client.get(f"/api/timers/{timer['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Tea"

    def test_get_unknown_timer(self, client):
        assert client.get("/api/timers/nope").status_code == 404

    def test_start_and_pause(self, client):
        timer = add(client, duration=60)

        response = client.post(f"/api/timers/{timer['id']}/start")
        assert response.status_code == 200
        assert response.json()["status"] == "Running"
        assert client.get("/api/health").json()["ticking"] == 1

        response = client.post(f"/api/timers/{timer['id']}/pause")
        assert response.json()["status"] == "Paused"
        assert client.get("/api/health").json()["ticking"] == 0

    def test_put_status_with_remaining(self, client):
        timer = add(client, duration=60)
        response = client.put(
            f"/api/timers/{timer['id']}/status",
            json={"status": "Paused", "remaining": 10},
        )
        assert response.status_code == 200
        assert response.json()["remaining"] == 10

    def test_put_status_invalid(self, client):
        timer = add(client)
        response = client.put(
            f"/api/timers/{timer['id']}/status", json={"status": "Stopped"}
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("remaining", [True, "10", 2.5])
    def test_put_status_rejects_non_integer_remaining(self, client, remaining):
        timer = add(client, duration=60)
        response = client.put(
            f"/api/timers/{timer['id']}/status",
            json={"status": "Paused", "remaining": remaining},
        )
        assert response.status_code == 400
        assert client.get(f"/api/timers/{timer['id']}").json()["remaining"] == 60

    def test_status_unknown_timer(self, client):
        assert client.post("/api/timers/nope/start").status_code == 404
        response = client.put("/api/timers/nope/status", json={"status": "Paused"})
        assert response.status_code == 404

    def test_reset(self, client):
        timer = add(client, duration=60)
        client.put(
            f"/api/timers/{timer['id']}/status",
            json={"status": "Paused", "remaining": 10},
        )
        response = client.post(f"/api/timers/{timer['id']}/reset")
        assert response.status_code == 200
        assert response.json()["remaining"] == 60
        assert client.post("/api/timers/nope/reset").status_code == 404

    def test_complete(self, client):
        timer = add(client)
        client.put(
            f"/api/timers/{timer['id']}/status",
            json={"status": "Paused", "remaining": 0},
        )

        response = client.post(f"/api/timers/{timer['id']}/complete")
        assert response.status_code == 200
        assert response.json()["remaining"] == 0

        state = client.get("/api/timers").json()
        assert state["timers"] == []
        assert [c["id"] for c in state["completedTimers"]] == [timer["id"]]
        completed = client.get("/api/timers/completed").json()
        assert completed[0]["name"] == "Tea"

        # Second completion: no longer active
        assert client.post(f"/api/timers/{timer['id']}/complete").status_code == 404

    def test_complete_with_time_left(self, client):
        timer = add(client)
        response = client.post(f"/api/timers/{timer['id']}/complete")
        assert response.status_code == 400
        assert len(client.get("/api/timers").json()["timers"]) == 1

    def test_health(self, client):
        add(client)
        assert client.get("/api/health").json() == {
            "status": "ok",
            "timers": 1,
            "completed": 0,
            "ticking": 0,
        }


class TestPersistence:
    def test_state_survives_restart(self, data_file):
        with TestClient(create_app(Settings(data_file=data_file))) as client:
            timer = add(client, duration=60)
            client.put(
                f"/api/timers/{timer['id']}/status",
                json={"status": "Paused", "remaining": 42},
            )

        stored = json.loads(json.loads(data_file.read_text())[SNAPSHOT_KEY])
        assert stored["timers"][0]["remaining"] == 42

        with TestClient(create_app(Settings(data_file=data_file))) as client:
            [restored] = client.get("/api/timers").json()["timers"]
            assert restored["id"] == timer["id"]
            assert restored["remaining"] == 42

    def test_explicit_store(self):
        store = MemoryStore()
        with TestClient(create_app(store=store)) as client:
            add(client)
        assert SNAPSHOT_KEY in store.dump()

    def test_create_store_in_memory(self, data_file):
        assert isinstance(create_store(Settings(in_memory=True)), MemoryStore)


class TestWebSocket:
    def test_initial_state(self, client):
        add(client)
        with client.websocket_connect("/ws/events") as websocket:
            message = websocket.receive_json()
            assert message["type"] == "timers_state"
            assert message["data"]["timers"][0]["name"] == "Tea"

    def test_changes_are_broadcast(self, client):
        with client.websocket_connect("/ws/events") as websocket:
            assert websocket.receive_json()["data"]["timers"] == []

            timer = add(client)
            message = websocket.receive_json()
            assert message["type"] == "timers_changed"
            assert message["data"]["timers"][0]["id"] == timer["id"]

    def test_client_messages_ignored(self, client):
        with client.websocket_connect("/ws/events") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "unknown_type", "data": {}})

            # Socket still serves updates afterwards
            add(client)
            assert websocket.receive_json()["type"] == "timers_changed"
