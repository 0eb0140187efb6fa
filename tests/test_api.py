"""
Tests for the HTTP control surface
"""

import time

from fastapi.testclient import TestClient

from diceautobet.adapters.vision.mock_vision import ScriptedVision
from diceautobet.orchestrator import errors
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.session import SessionController
from diceautobet.services.api import create_app
from diceautobet.services.status_store import StatusStore

from conftest import FakeTable, make_config


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestSessionEndpoints:

    def setup_method(self):
        self.status = StatusStore()
        self.table = FakeTable()
        self.controller = SessionController(self.table, ScriptedVision(self.status, seed=3), self.table,
                                            self.status, base_config=make_config())
        self.client = TestClient(create_app(controller=self.controller))

    def teardown_method(self):
        self.controller.stop(wait_s=5)

    def started(self):
        return wait_for(lambda: any(e.kind == "state_changed" for e in self.status.events))

    def test_start_stop(self):
        r = self.client.post("/session/start")
        assert r.status_code == 200
        assert r.json()["ok"] is True
        assert r.json()["status"] == "running"

        r = self.client.post("/session/stop", params={"wait_s": 5})
        assert r.json() == {"ok": True, "status": "stopped", "error_code": None, "reason": None}

    def test_start_while_running(self):
        self.client.post("/session/start")
        r = self.client.post("/session/start")
        assert r.json()["ok"] is False
        assert r.json()["error_code"] == errors.ERR_BUSY

    def test_start_with_overrides(self):
        body = {"mode": "dual", "base_stake": 50, "start_side": "orange",
                "regions": {"A": {"left": 0, "top": 0, "width": 80, "height": 40},
                            "B": {"left": 100, "top": 0, "width": 80, "height": 40}}}
        r = self.client.post("/session/start", json=body)
        assert r.json()["ok"] is True
        cfg = self.controller.config
        assert (cfg.mode, cfg.base_stake, cfg.start_side.value) == ("dual", 50, "orange")

    def test_start_with_invalid_stake(self):
        r = self.client.post("/session/start", json={"base_stake": 15})
        body = r.json()
        assert body["ok"] is False
        assert body["error_code"] == errors.ERR_CONFIG
        assert "15" in body["reason"]
        assert not self.controller.running

    def test_start_with_malformed_body(self):
        r = self.client.post("/session/start", json={"mode": "triple"})
        assert r.status_code == 422

    def test_pause_resume(self):
        self.client.post("/session/start")
        assert self.started()
        r = self.client.post("/session/pause")
        assert r.json()["ok"] is True
        assert r.json()["status"] == "paused"
        assert self.client.get("/status").json()["status"] == "paused"
        r = self.client.post("/session/resume")
        assert r.json()["status"] == "running"

    def test_controls_without_session(self):
        assert self.client.post("/session/stop").json()["reason"] == "no session running"
        assert self.client.post("/session/pause").json()["ok"] is False
        assert self.client.post("/session/resume").json()["ok"] is False

    def test_status(self):
        body = self.client.get("/status").json()
        assert body["status"] == "idle"
        assert body["busy"] is False
        assert body["mode"] == "single"
        assert body["state"] == {}

        self.client.post("/session/start")
        assert wait_for(lambda: self.status.snapshot is not None)
        body = self.client.get("/status").json()
        assert body["busy"] is True
        assert "stake" in body["state"]
        assert any("session start" in line for line in body["logs"])

    def test_events_since(self):
        self.client.post("/session/start")
        assert self.started()
        first = self.client.get("/events").json()
        assert first["events"][0]["kind"] == "state_changed"
        assert first["last_seq"] == first["events"][-1]["seq"]
        self.client.post("/session/stop", params={"wait_s": 5})
        rest = self.client.get("/events", params={"since": first["last_seq"]}).json()
        assert all(e["seq"] > first["last_seq"] for e in rest["events"])
        assert rest["events"][-1]["kind"] == "session_ended"


class TestHealth:

    def make(self, base_config):
        status = StatusStore()
        table = FakeTable()
        controller = SessionController(table, ScriptedVision(status), table, status, base_config=base_config)
        return TestClient(create_app(controller=controller))

    def test_all_ok(self):
        body = self.make(make_config()).get("/health").json()
        assert body["clicker_reachable"] is True
        assert body["config_ok"] is True
        assert body["all_ok"] is True
        assert body["sampler"] == "FakeTable"

    def test_missing_region(self):
        body = self.make(SessionConfig()).get("/health").json()
        assert body["config_ok"] is False
        assert body["config_error_code"] == errors.ERR_CONFIG
        assert body["all_ok"] is False
