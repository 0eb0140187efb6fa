import threading
import time
from typing import List, Optional

from diceautobet.orchestrator import errors
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.contracts import (
    DualInstanceState, RoundEvent, RoundResult, RunResult, SessionStatus,
)
from diceautobet.orchestrator.control import SessionControl
from diceautobet.orchestrator.errors import ConfigError
from diceautobet.orchestrator.state_machine import Orchestrator


def _result(r: Optional[RoundResult]) -> Optional[dict]:
    if r is None:
        return None
    return {"left": r.left, "right": r.right, "confidence": r.confidence}


def describe(state) -> dict:
    """Strategy state -> plain dict for the status endpoint."""
    if state is None:
        return {}
    out = {
        "stake": state.stake,
        "side": state.side.value,
        "losses_on_side": state.losses_on_side,
        "loss_streak": state.loss_streak,
        "games": state.games,
        "wins": state.wins,
        "losses": state.losses,
        "draws": state.draws,
        "profit": state.profit,
        "win_rate": round(state.win_rate, 1),
        "last_result": _result(state.last_result),
    }
    if isinstance(state, DualInstanceState):
        out.update(
            previous_side=state.previous_side.value if state.previous_side else None,
            active_instance=state.active_instance,
            turn_index=state.turn_index,
            turn_type=state.turn_type.value,
            first_result_discarded=state.first_result_discarded,
            observed=state.observed,
            instances={
                k: {
                    "last_result": _result(v.last_result),
                    "consecutive_losses": v.consecutive_losses,
                    "profit": v.profit,
                    "wagers": v.wagers,
                }
                for k, v in state.instances.items()
            },
        )
    return out


class SessionController:
    """
    The one entry point for callers (HTTP handlers, scripts). Owns at most one
    running session: its worker thread, its SessionControl and its
    Orchestrator.
    """

    def __init__(self, sampler, classifier, clicker, status_store,
                 base_config: Optional[SessionConfig] = None, **orchestrator_kw):
        self.sampler = sampler
        self.classifier = classifier
        self.clicker = clicker
        self.status = status_store
        self.base_config = base_config or SessionConfig()
        self.orchestrator_kw = orchestrator_kw
        self.config: Optional[SessionConfig] = None
        self.last_run: Optional[RunResult] = None
        self._orchestrator: Optional[Orchestrator] = None
        self._control: Optional[SessionControl] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, config: Optional[SessionConfig] = None, **overrides) -> RunResult:
        """Starts a session in the background. Raises ConfigError for an invalid configuration."""
        with self._lock:
            if self.running or self.status.busy:
                self.status.log("session: start refused, a session is already running")
                return RunResult(ok=False, status=self.status.status, rounds=0, duration_ms=0,
                                 error_code=errors.ERR_BUSY, reason="session already running")
            cfg = config or self.base_config
            if overrides:
                cfg = cfg.with_overrides(**overrides)
            control = SessionControl()
            try:
                orch = Orchestrator(self.sampler, self.classifier, self.clicker, self.status, cfg,
                                    control=control, **self.orchestrator_kw)
            except ConfigError as e:
                self.status.last_error = e.code
                self.status.last_reason = e.reason
                self.status.warn(f"session: config error {e.reason}")
                raise

            self.config = cfg
            self._control = control
            self._orchestrator = orch
            self.status.set_status(SessionStatus.RUNNING)
            self._thread = threading.Thread(target=self._run, args=(orch,), name="diceautobet-session", daemon=True)
            self._thread.start()
            return RunResult(ok=True, status=SessionStatus.RUNNING, rounds=0, duration_ms=0)

    def _run(self, orch: Orchestrator):
        self.last_run = orch.run()

    def stop(self, wait_s: float = 0.0) -> bool:
        if not self.running:
            return False
        self.status.log("session: stop requested")
        self._control.cancel()
        if wait_s > 0:
            self._thread.join(wait_s)
        return True

    def pause(self) -> bool:
        if not self.running:
            return False
        with self._control.lock:
            if not self._control.pause():
                return False
            self.status.set_status(SessionStatus.PAUSED)
        self.status.log("session: paused")
        self.status.emit("state_changed", status=SessionStatus.PAUSED.value)
        return True

    def resume(self) -> bool:
        if not self.running:
            return False
        with self._control.lock:
            if not self._control.resume():
                return False
            self.status.set_status(SessionStatus.RUNNING)
        self.status.log("session: resumed")
        self.status.emit("state_changed", status=SessionStatus.RUNNING.value)
        return True

    def join(self, timeout: Optional[float] = None) -> Optional[RunResult]:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.last_run

    def current_state(self) -> dict:
        s = self.status
        end = s.finished_at or time.time()
        return {
            "status": s.status.value,
            "busy": s.busy,
            "mode": self.config.mode if self.config else self.base_config.mode,
            "error_code": s.last_error,
            "reason": s.last_reason,
            "started_at": s.started_at,
            "duration_s": round(end - s.started_at, 1) if s.started_at else 0.0,
            "state": describe(s.snapshot),
        }

    def events(self, since: int = 0) -> List[RoundEvent]:
        return self.status.events_since(since)
