from typing import Callable, Optional

from diceautobet.orchestrator.contracts import DetectionPhase, ScreenSample
from diceautobet.orchestrator.fingerprint import Fingerprint, short

AWAITING = DetectionPhase.AWAITING_CHANGE
STABILIZING = DetectionPhase.STABILIZING
STABLE = DetectionPhase.STABLE
TIMED_OUT = DetectionPhase.TIMED_OUT


class StabilityDetector:
    """
    Debounces a stream of region fingerprints into one detection cycle.

    AWAITING_CHANGE -> STABILIZING once two consecutive fingerprints match,
    STABILIZING -> STABLE once the match has held for `window_s`. Any mismatch
    drops back to AWAITING_CHANGE. STABLE and TIMED_OUT are terminal until
    reset().

    require_change: do not start stabilizing until the fingerprint has changed
    at least once in this cycle (the previous result is still on screen right
    after a wager).
    overlay_filter: predicate over the stable sample; True discards the
    reading (countdown / banner) and restarts the cycle.
    """

    def __init__(
        self,
        window_s: float,
        timeout_s: float,
        require_change: bool = False,
        overlay_filter: Optional[Callable[[ScreenSample], bool]] = None,
        fast_poll_s: float = 0.02,
        slow_poll_s: float = 0.08,
        status_store=None,
    ):
        self.window_s = window_s
        self.timeout_s = timeout_s
        self.require_change = require_change
        self.overlay_filter = overlay_filter
        self.fast_poll_s = fast_poll_s
        self.slow_poll_s = slow_poll_s
        self.status = status_store
        self.reset(0.0)

    def reset(self, now: float):
        self.phase = AWAITING
        self.last: Optional[Fingerprint] = None
        self.stable_since: Optional[float] = None
        self.cycle_start = now
        self.seen_change = False
        self.stable_sample: Optional[ScreenSample] = None
        self.discarded = 0

    @property
    def poll_interval(self) -> float:
        return self.slow_poll_s if self.phase is STABILIZING else self.fast_poll_s

    @property
    def done(self) -> bool:
        return self.phase in (STABLE, TIMED_OUT)

    def _log(self, msg: str):
        if self.status is not None:
            self.status.log(f"stability: {msg}")

    def feed(self, now: float, fp: Fingerprint, sample: Optional[ScreenSample] = None) -> DetectionPhase:
        if self.done:
            return self.phase

        if self.last is None:
            self.last = fp
        elif fp != self.last:
            if self.phase is STABILIZING:
                self._log(f"broken {short(self.last)} -> {short(fp)}")
            self.phase = AWAITING
            self.last = fp
            self.stable_since = None
            self.seen_change = True
        elif self.phase is AWAITING:
            if self.seen_change or not self.require_change:
                self.phase = STABILIZING
                self.stable_since = now
        elif self.phase is STABILIZING and now - self.stable_since >= self.window_s:
            if self.overlay_filter is not None and sample is not None and self.overlay_filter(sample):
                self._log(f"discarded overlay {short(fp)}, restarting cycle")
                self.discarded += 1
                self.phase = AWAITING
                self.last = None
                self.stable_since = None
                self.seen_change = False
            else:
                self.phase = STABLE
                self.stable_sample = sample
                self._log(f"stable {short(fp)} after {now - self.stable_since:.3f}s")
                return self.phase

        if now - self.cycle_start >= self.timeout_s:
            self._log(f"timed out after {now - self.cycle_start:.1f}s phase={self.phase.value}")
            self.phase = TIMED_OUT
        return self.phase

    def rearm(self):
        """Back to AWAITING_CHANGE within the same cycle; the screen must change before the next reading."""
        self.phase = AWAITING
        self.stable_since = None
        self.stable_sample = None
        self.seen_change = False
        self.require_change = True

    def check_timeout(self, now: float) -> DetectionPhase:
        """Advance to TIMED_OUT when no sample arrives before the deadline."""
        if not self.done and now - self.cycle_start >= self.timeout_s:
            self._log(f"timed out without sample after {now - self.cycle_start:.1f}s")
            self.phase = TIMED_OUT
        return self.phase
