import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Optional

from diceautobet.orchestrator import errors
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.contracts import (
    DetectionPhase, InstanceId, Outcome, RoundResult, RunResult, ScreenSample, SessionStatus, Turn, Wager,
)
from diceautobet.orchestrator.control import SessionControl
from diceautobet.orchestrator.decomposer import decompose, with_side
from diceautobet.orchestrator.errors import AutobetError, DetectionError, DispatchError, SessionCancelled
from diceautobet.orchestrator.fingerprint import fingerprint
from diceautobet.orchestrator.overlay import OverlayFilter
from diceautobet.orchestrator.stability import StabilityDetector
from diceautobet.orchestrator.strategy import build_strategy
from diceautobet.orchestrator.turns import TurnCoordinator
from diceautobet.orchestrator.validator import ResultValidator

WAIT_SLICE_S = 0.05


def stop_reason(state, config: SessionConfig) -> Optional[str]:
    if config.max_rounds is not None and state.games >= config.max_rounds:
        return f"max rounds {config.max_rounds} reached"
    if config.target_profit is not None and state.profit >= config.target_profit:
        return f"target profit {config.target_profit} reached (profit {state.profit})"
    if config.stop_at_cap and state.loss_streak > 0 and state.stake >= config.stake_cap:
        return f"stake reached cap {config.stake_cap} after {state.loss_streak} losses"
    return None


class Orchestrator:
    """
    Round loop for one session: plan -> taps -> detection cycle -> classify ->
    validate -> strategy update. Runs on the session worker thread; sampling
    and classification go through a small thread pool and are awaited with
    bounded timeouts so pause and stop stay responsive.
    """

    def __init__(self, sampler, classifier, clicker, status_store, config: SessionConfig,
                 control: Optional[SessionControl] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Optional[Callable[[float], object]] = None):
        self.sampler = sampler
        self.classifier = classifier
        self.clicker = clicker
        self.status = status_store
        self.config = config.validate()
        self.control = control or SessionControl()
        self.clock = clock
        self._sleep = sleep or self.control.sleep

        self.turns = TurnCoordinator(build_strategy(config))
        self.validator = ResultValidator(status_store, config.min_confidence, config.history_size)
        self.overlay = OverlayFilter() if config.overlay_filter else None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._failures = 0
        self._results = 0
        self._last_result: Optional[RoundResult] = None
        self._last_result_at = 0.0

    @property
    def state(self):
        return self.turns.state

    def run(self) -> RunResult:
        cfg = self.config
        t0 = time.time()
        self.status.started_at = t0
        self.status.finished_at = None
        self.status.last_error = None
        self.status.last_reason = None
        self.status.snapshot = self.turns.state
        with self.control.lock:
            started = SessionStatus.PAUSED if self.control.paused else SessionStatus.RUNNING
            self.status.set_status(started)
        self.status.log(
            f"session start mode={cfg.mode} strategy={self.turns.strategy.name} base={cfg.base_stake} "
            f"cap={cfg.stake_cap} threshold={cfg.loss_threshold} side={cfg.start_side.value}"
        )
        self.status.emit("state_changed", status=started.value)

        status, code, reason = SessionStatus.STOPPED, None, None
        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="diceautobet-io")
        try:
            while True:
                self.control.checkpoint()
                reason = stop_reason(self.turns.state, cfg)
                if reason:
                    break
                self.play_round()
        except SessionCancelled:
            reason = "stopped"
        except AutobetError as e:
            status, code, reason = SessionStatus.FAILED, e.code, e.reason
        except Exception as e:
            status, code, reason = SessionStatus.FAILED, errors.ERR_UNKNOWN, f"{type(e).__name__}: {e}"
            self.status.log(f"orchestrator: error {reason}", logging.ERROR)
        finally:
            self._pool.shutdown(wait=False, cancel_futures=True)

        dt = int((time.time() - t0) * 1000)
        state = self.turns.state
        self.status.snapshot = state
        self.status.last_error = code
        self.status.last_reason = reason
        with self.control.lock:
            self.control.finish()
            self.status.finished_at = time.time()
            self.status.set_status(status)
        self.status.log(
            f"session end status={status.value} games={state.games} profit={state.profit} "
            f"reason={reason} dt={dt}ms"
        )
        self.status.emit(
            "session_ended", status=status.value, error_code=code, reason=reason,
            games=state.games, profit=state.profit, duration_ms=dt,
        )
        return RunResult(ok=status is SessionStatus.STOPPED, status=status, rounds=state.games,
                         duration_ms=dt, error_code=code, reason=reason)

    def play_round(self) -> Optional[Outcome]:
        cfg = self.config
        turn = self.turns.commit()
        before = self.turns.state
        wager = turn.wager
        self.status.emit(
            "round_started", turn=turn.index, instance=turn.instance, turn_type=turn.turn_type.value,
            stake=wager.stake if wager else None, side=wager.side.value if wager else None,
        )
        try:
            if wager is not None:
                self.place_wager(wager)
            result = self.detect(turn.instance, require_change=wager is not None or self._results > 0)
        except AutobetError as e:
            self.turns.abandon(turn)
            if e.code not in errors.TRANSIENT:
                raise
            self._round_failed(turn, e)
            return None
        except SessionCancelled:
            self.turns.abandon(turn)
            raise

        self._failures = 0
        self._results += 1
        self._last_result, self._last_result_at = result, self.clock()
        outcome = self.turns.complete(turn, result)
        state = self.turns.state
        self.status.snapshot = state
        self._report(turn, result, outcome, before, state)
        if cfg.round_delay_s > 0:
            self._sleep(cfg.round_delay_s)
        return outcome

    def place_wager(self, wager: Wager):
        dec = decompose(wager.stake, self.config.denominations, self.status)
        taps = with_side(dec, wager.side.value)
        self.status.log(
            f"orchestrator: wager {wager.stake} on {wager.side.value} @{wager.instance} "
            + " ".join(f"{a.target}x{a.repeat}" for a in taps)
        )
        for action in taps:
            for _ in range(action.repeat):
                self.control.checkpoint()
                if not self.clicker.dispatch(action, wager.instance):
                    raise DispatchError(f"tap {action.target} on {wager.instance} failed")
                self._sleep(self.config.tap_delay_s)
        self.status.emit(
            "wager_placed", instance=wager.instance, stake=wager.stake, side=wager.side.value,
            placed=dec.amount, exact=dec.exact, taps=sum(a.repeat for a in taps),
        )

    def detect(self, instance: InstanceId, require_change: bool = True) -> RoundResult:
        """One detection cycle on `instance` up to an accepted result; raises DetectionError."""
        cfg = self.config
        region = cfg.regions.get(instance)
        det = StabilityDetector(
            cfg.stability_window_s, cfg.detection_timeout_s, require_change=require_change,
            overlay_filter=self.overlay, fast_poll_s=cfg.fast_poll_s, slow_poll_s=cfg.slow_poll_s,
            status_store=self.status,
        )
        det.reset(self.clock())
        generation = self.control.generation
        sampled = False
        while True:
            self.control.checkpoint()
            if self.control.generation != generation:
                generation = self.control.generation
                self.status.log(f"orchestrator: resumed, restarting detection on {instance}")
                det.reset(self.clock())

            sample = self._sample(region)
            now = self.clock()
            if sample is None:
                phase = det.check_timeout(now)
            else:
                sampled = True
                phase = det.feed(now, fingerprint(sample), sample)

            if phase is DetectionPhase.TIMED_OUT:
                if not sampled:
                    raise DetectionError(f"no screen sample from {instance} in {cfg.detection_timeout_s:g}s",
                                         errors.ERR_NO_SAMPLE)
                raise DetectionError(f"no stable result on {instance} in {cfg.detection_timeout_s:g}s")

            if phase is DetectionPhase.STABLE:
                result = self._classify(det.stable_sample)
                if self._is_duplicate(result, now):
                    self.status.log(f"orchestrator: duplicate {result} within {cfg.duplicate_window_s:g}s, ignored")
                    det.rearm()
                    continue
                verdict = self.validator.validate(result)
                if not verdict:
                    raise DetectionError(f"result {result} rejected: {verdict.reason}", errors.ERR_REJECTED)
                return result

            self._sleep(det.poll_interval)

    def _await(self, future: Future, timeout_s: float):
        # wall clock: future.result blocks in real seconds, which self.clock need not track
        deadline = time.monotonic() + timeout_s
        while True:
            self.control.checkpoint()
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                future.cancel()
                raise TimeoutError(f"no answer in {timeout_s:g}s")
            try:
                return future.result(timeout=min(WAIT_SLICE_S, remaining))
            except FutureTimeout:
                continue

    def _sample(self, region) -> Optional[ScreenSample]:
        try:
            return self._await(self._pool.submit(self.sampler.sample, region), self.config.sample_timeout_s)
        except SessionCancelled:
            raise
        except Exception as e:
            self.status.warn(f"orchestrator: sample failed {type(e).__name__}: {e}")
            return None

    def _classify(self, sample: ScreenSample) -> RoundResult:
        try:
            result = self._await(self._pool.submit(self.classifier.classify, sample), self.config.classify_timeout_s)
        except SessionCancelled:
            raise
        except TimeoutError as e:
            raise DetectionError(f"classifier timed out: {e}", errors.ERR_TIMEOUT) from e
        except Exception as e:
            raise DetectionError(f"classifier error {type(e).__name__}: {e}", errors.ERR_UNRECOGNIZED) from e
        if result is None:
            raise DetectionError("classifier could not read the dice", errors.ERR_UNRECOGNIZED)
        return result

    def _is_duplicate(self, result: RoundResult, now: float) -> bool:
        return (
            self._last_result is not None
            and result.same_dice(self._last_result)
            and now - self._last_result_at < self.config.duplicate_window_s
        )

    def _round_failed(self, turn: Turn, e: AutobetError):
        limit = self.config.max_consecutive_failures
        self._failures += 1
        self.status.last_error = e.code
        self.status.last_reason = e.reason
        self.status.warn(f"orchestrator: turn {turn.index} failed {e.code}: {e.reason} ({self._failures}/{limit})")
        self.status.emit(
            "round_failed", turn=turn.index, instance=turn.instance, error_code=e.code,
            reason=e.reason, failures=self._failures,
        )
        if self._failures >= limit:
            raise AutobetError(f"{self._failures} consecutive failed rounds, last: {e.reason}", errors.ERR_EXHAUSTED)
        self._sleep(self.config.retry_backoff_s)

    def _report(self, turn: Turn, result: RoundResult, outcome: Optional[Outcome], before, after):
        if outcome is None:
            why = "observed" if getattr(before, "first_result_discarded", True) else "first result discarded"
            self.status.log(f"round {turn.index} @{turn.instance} result={result} conf={result.confidence:.2f} {why}")
        else:
            self.status.log(
                f"round {turn.index} @{turn.instance} result={result} conf={result.confidence:.2f} "
                f"{before.side.value} {before.stake} -> {outcome.value} | next {after.side.value} {after.stake} "
                f"profit={after.profit} winrate={after.win_rate:.1f}%"
            )
        self.status.emit(
            "round_result", turn=turn.index, instance=turn.instance, turn_type=turn.turn_type.value,
            left=result.left, right=result.right, confidence=result.confidence,
            outcome=outcome.value if outcome else None,
            stake=turn.wager.stake if turn.wager else None,
            side=turn.wager.side.value if turn.wager else None,
            next_stake=after.stake, next_side=after.side.value, profit=after.profit, games=after.games,
        )
