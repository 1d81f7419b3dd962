import asyncio

import pytest
from fastapi import FastAPI, Response
from fastapi.testclient import TestClient

import homesim.main as main
from homesim.core.config import settings
from homesim.storage.sqlite_store import SQLiteStateStore


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "api.db")


@pytest.fixture
def client(db_path, monkeypatch):
    monkeypatch.setattr(settings, "sqlite_path", db_path)
    monkeypatch.setattr(settings, "log_file", "")
    monkeypatch.setattr(settings, "tick_seconds", 3600)
    # Zero drift keeps the startup tick from moving the seed values
    monkeypatch.setattr(settings, "temperature_step", 0.0)
    monkeypatch.setattr(settings, "humidity_step", 0.0)
    with TestClient(main.app) as c:
        yield c


def test_banner(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "/current" in r.text


def test_current_default_state(client):
    r = client.get("/current")
    assert r.status_code == 200
    assert r.json() == {
        "lights": {str(i): False for i in range(1, 7)},
        "motionSensorStatic": False,
        "gasSensor": False,
        "motionSensorDynamic": False,
        "temperature": 22.0,
        "humidity": 50.0,
    }


def test_update_light_on(client):
    r = client.post("/update-light", json={"lightId": 1, "state": True})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["lightId"] == 1
    assert body["newState"] is True
    assert len(body["history"]) == 1
    assert body["history"][0]["state"] is True
    assert isinstance(body["history"][0]["timestamp"], int)

    assert client.get("/current").json()["lights"]["1"] is True


def test_update_light_is_idempotent(client):
    client.post("/update-light", json={"lightId": "2", "state": True})
    r = client.post("/update-light", json={"lightId": "2", "state": True})
    assert r.json()["lightId"] == "2"
    assert len(r.json()["history"]) == 1


def test_update_light_off_records_duration(client):
    client.post("/update-light", json={"lightId": 3, "state": True})
    r = client.post("/update-light", json={"lightId": 3, "state": False})
    history = r.json()["history"]
    assert [sorted(e) for e in history] == [
        ["state", "timestamp"],
        ["duration", "timestamp"],
        ["state", "timestamp"],
    ]
    assert history[1]["duration"] >= 0
    assert history[2]["state"] is False

    full = client.get("/history").json()
    assert full["lights"]["3"] == history


def test_update_unknown_light_is_404(client):
    r = client.post("/update-light", json={"lightId": 99, "state": True})
    assert r.status_code == 404
    assert "99" in r.json()["error"]


def test_update_light_unexpected_failure_is_generic_500(client, monkeypatch):
    class Broken:
        def set_light(self, *args, **kwargs):
            raise RuntimeError("secret internals")

    monkeypatch.setattr(main, "lights", Broken())
    r = client.post("/update-light", json={"lightId": 1, "state": True})
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "secret" not in r.text


def test_update_light_rejects_bad_body(client):
    r = client.post("/update-light", json={"lightId": 1})
    assert r.status_code == 422


@pytest.mark.parametrize(
    "body",
    [
        {"lightId": True, "state": True},
        {"lightId": 1.0, "state": True},
        {"lightId": 1, "state": "yes"},
        {"lightId": 1, "state": 1},
    ],
)
def test_update_light_does_not_coerce_types(client, body):
    r = client.post("/update-light", json=body)
    assert r.status_code in (404, 422)
    assert client.get("/current").json()["lights"]["1"] is False
    assert client.get("/history").json()["lights"]["1"] == []


def test_history_shape(client):
    body = client.get("/history").json()
    assert set(body) == {
        "lights",
        "motionSensorStatic",
        "gasSensor",
        "motionSensorDynamic",
        "temperature",
        "humidity",
    }
    assert body["lights"] == {str(i): [] for i in range(1, 7)}


def test_generate_twice_arms_one_burst(client):
    first = client.post("/generate")
    second = client.post("/generate")
    assert first.status_code == 200
    assert set(second.json()["lights"]) == {str(i) for i in range(1, 7)}
    assert second.json()["temperature"] == {"current": 22.0, "history": []}

    status = client.get("/status").json()
    assert status["motion"]["phase"] == "armed"
    assert status["ticks"] == 3
    assert main.motion.maybe_arm() is False


def test_corrupt_document_is_served_as_defaults(db_path, monkeypatch):
    async def corrupt():
        store = SQLiteStateStore(db_path)
        await store.init()
        await store.save_raw("][")

    asyncio.run(corrupt())

    monkeypatch.setattr(settings, "sqlite_path", db_path)
    monkeypatch.setattr(settings, "log_file", "")
    monkeypatch.setattr(settings, "temperature_step", 0.0)
    monkeypatch.setattr(settings, "humidity_step", 0.0)
    with TestClient(main.app) as c:
        assert c.get("/current").json()["temperature"] == 22.0


def test_identifying_headers_are_stripped():
    probe = FastAPI()
    probe.middleware("http")(main.strip_identifying_headers)

    @probe.get("/probe")
    async def probe_route():
        return Response("ok", headers={"X-Powered-By": "Express", "Server": "probe"})

    r = TestClient(probe).get("/probe")
    assert r.status_code == 200
    assert "x-powered-by" not in r.headers
    assert "server" not in r.headers
