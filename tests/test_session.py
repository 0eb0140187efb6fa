"""
Tests for the session controller and pause / stop signalling
"""

import threading
import time

import pytest

from diceautobet.adapters.vision.mock_vision import ScriptedVision
from diceautobet.orchestrator import errors
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.contracts import RoundResult, SessionStatus
from diceautobet.orchestrator.control import SessionControl
from diceautobet.orchestrator.errors import ConfigError, SessionCancelled
from diceautobet.orchestrator.session import SessionController, describe
from diceautobet.orchestrator.strategy import AlternatingStrategy, MartingaleStrategy
from diceautobet.services.status_store import StatusStore

from conftest import FakeTable, make_config

RED_WINS = RoundResult(5, 2, 0.9)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestSessionControl:

    def setup_method(self):
        self.control = SessionControl()

    def test_checkpoint_passes_while_running(self):
        assert self.control.checkpoint() is False

    def test_cancel_raises_at_checkpoint(self):
        self.control.cancel()
        assert self.control.cancelled
        with pytest.raises(SessionCancelled):
            self.control.checkpoint()

    def test_pause_and_resume(self):
        assert self.control.pause()
        assert self.control.paused
        assert not self.control.pause()
        assert self.control.resume()
        assert not self.control.paused
        assert self.control.generation == 1
        assert not self.control.resume()

    def test_checkpoint_blocks_until_resumed(self):
        self.control.pause()
        threading.Timer(0.05, self.control.resume).start()
        assert self.control.checkpoint() is True

    def test_cancel_releases_paused_worker(self):
        self.control.pause()
        threading.Timer(0.05, self.control.cancel).start()
        with pytest.raises(SessionCancelled):
            self.control.checkpoint()

    def test_cannot_pause_after_cancel(self):
        self.control.cancel()
        assert not self.control.pause()

    def test_finish_refuses_pause_and_resume(self):
        self.control.finish()
        assert self.control.finished
        assert not self.control.pause()
        assert not self.control.paused
        assert not self.control.resume()
        assert self.control.checkpoint() is False

    def test_finish_releases_paused_worker(self):
        self.control.pause()
        self.control.finish()
        assert not self.control.paused
        assert not self.control.resume()

    def test_sleep_wakes_on_cancel(self):
        threading.Timer(0.05, self.control.cancel).start()
        t0 = time.monotonic()
        with pytest.raises(SessionCancelled):
            self.control.sleep(10)
        assert time.monotonic() - t0 < 5


class TestSessionController:

    def setup_method(self):
        self.status = StatusStore()
        self.table = FakeTable()
        self.vision = ScriptedVision(self.status, seed=7)
        self.controller = SessionController(self.table, self.vision, self.table, self.status,
                                            base_config=make_config())

    def started(self):
        return wait_for(lambda: any(e.kind == "state_changed" for e in self.status.events))

    def teardown_method(self):
        self.controller.stop(wait_s=5)

    def test_start_and_stop(self):
        rr = self.controller.start()
        assert rr.ok
        assert rr.status is SessionStatus.RUNNING
        assert self.controller.running
        assert self.status.busy

        assert self.controller.stop(wait_s=5)
        assert not self.controller.running
        assert self.status.status is SessionStatus.STOPPED
        assert self.controller.last_run.reason == "stopped"

    def test_second_start_is_refused(self):
        self.controller.start()
        rr = self.controller.start()
        assert not rr.ok
        assert rr.error_code == errors.ERR_BUSY

    def test_session_runs_to_completion(self):
        self.vision.push(RED_WINS)
        self.controller.start(max_rounds=1)
        rr = self.controller.join(10)
        assert rr is not None and rr.ok
        assert rr.rounds == 1
        assert self.status.status is SessionStatus.STOPPED
        assert self.table.targets() == ["chip:10", "side:red", "side:red"]

    def test_pause_resume(self):
        self.controller.start()
        assert self.started()
        assert self.controller.pause()
        assert self.status.status is SessionStatus.PAUSED
        assert not self.controller.pause()
        assert self.controller.resume()
        assert self.status.status is SessionStatus.RUNNING
        kinds = [e.data.get("status") for e in self.controller.events() if e.kind == "state_changed"]
        assert kinds[-2:] == ["paused", "running"]

    def test_stop_while_paused(self):
        self.controller.start()
        assert self.started()
        self.controller.pause()
        assert self.controller.stop(wait_s=5)
        assert self.status.status is SessionStatus.STOPPED

    def test_pause_from_session_ended_listener_is_refused(self):
        answers = []

        def on_event(ev):
            if ev.kind == "session_ended":
                answers.append(self.controller.pause())

        self.status.subscribe(on_event)
        self.vision.push(RED_WINS)
        self.controller.start(max_rounds=1)
        rr = self.controller.join(10)
        assert rr is not None and rr.ok
        assert answers == [False]
        assert self.status.status is SessionStatus.STOPPED
        assert not self.status.busy
        assert self.controller.start(max_rounds=1).ok

    def test_controls_without_session(self):
        assert not self.controller.stop()
        assert not self.controller.pause()
        assert not self.controller.resume()

    def test_invalid_override_is_not_started(self):
        with pytest.raises(ConfigError):
            self.controller.start(base_stake=15)
        assert not self.controller.running
        assert self.status.last_error == errors.ERR_CONFIG
        assert self.status.status is SessionStatus.IDLE

    def test_current_state(self):
        self.controller.start()
        assert wait_for(lambda: self.status.snapshot is not None)
        cur = self.controller.current_state()
        assert cur["status"] == "running"
        assert cur["busy"]
        assert cur["mode"] == "single"
        assert cur["state"]["side"] in ("red", "orange")
        assert cur["started_at"] is not None

    def test_restart_after_stop(self):
        self.controller.start()
        self.controller.stop(wait_s=5)
        rr = self.controller.start(mode="dual")
        assert rr.ok
        assert self.controller.config.mode == "dual"


class TestDescribe:

    def test_single(self):
        state = MartingaleStrategy(SessionConfig()).initial_state()
        out = describe(state)
        assert out["stake"] == 20
        assert out["side"] == "red"
        assert out["last_result"] is None
        assert "instances" not in out

    def test_dual(self):
        strategy = AlternatingStrategy(SessionConfig(mode="dual"))
        state, _ = strategy.apply(strategy.initial_state(), RED_WINS, "A")
        state, _ = strategy.apply(state, RED_WINS, "A")
        out = describe(state)
        assert out["first_result_discarded"]
        assert out["active_instance"] == "B"
        assert out["instances"]["A"]["profit"] == 20
        assert out["instances"]["A"]["last_result"] == {"left": 5, "right": 2, "confidence": 0.9}

    def test_none(self):
        assert describe(None) == {}


class TestStatusStore:

    def setup_method(self):
        self.status = StatusStore()

    def test_events_are_sequenced(self):
        self.status.emit("state_changed", status="running")
        self.status.emit("round_started", turn=0)
        self.status.emit("round_result", turn=0)
        assert [e.seq for e in self.status.events] == [1, 2, 3]
        assert [e.kind for e in self.status.events_since(1)] == ["round_started", "round_result"]

    def test_subscribers_see_every_event(self):
        seen = []
        self.status.subscribe(seen.append)
        ev = self.status.emit("round_failed", error_code=errors.ERR_TIMEOUT)
        assert seen == [ev]
        assert ev.data == {"error_code": errors.ERR_TIMEOUT}

    def test_log_ring_is_bounded(self):
        for i in range(250):
            self.status.log(f"line {i}")
        assert len(self.status.logs) == 200
        assert self.status.logs[-1] == "line 249"

    def test_busy(self):
        assert not self.status.busy
        self.status.set_status(SessionStatus.PAUSED)
        assert self.status.busy
