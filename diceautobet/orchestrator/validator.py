from collections import deque
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from diceautobet.orchestrator.contracts import RoundResult

DIE_FACES = (1, 6)

REJECT_PIP_RANGE = "pip_out_of_range"
REJECT_CONFIDENCE = "low_confidence"
REJECT_SUM_RANGE = "sum_out_of_range"


@dataclass(frozen=True)
class Verdict:
    accepted: bool
    reason: Optional[str] = None
    warnings: tuple = ()

    def __bool__(self):
        return self.accepted


def _max_repeat_run(results: Sequence[RoundResult]) -> int:
    best = run = 0
    prev = None
    for r in results:
        run = run + 1 if r.same_dice(prev) else 1
        best = max(best, run)
        prev = r
    return best


def validate(
    result: RoundResult,
    history: Iterable[RoundResult] = (),
    *,
    min_confidence: float = 0.25,
    die_faces: tuple[int, int] = DIE_FACES,
    max_sum_jump: int = 8,
    max_repeats: int = 8,
    min_mean_confidence: float = 0.3,
) -> Verdict:
    """
    Hard structural checks reject; checks against recent history only warn.

    Identical or abrupt results do happen in the real game, so they never
    block a result on their own.
    """
    lo, hi = die_faces
    if not (lo <= result.left <= hi and lo <= result.right <= hi):
        return Verdict(False, REJECT_PIP_RANGE)
    if not (0.0 <= result.confidence <= 1.0) or result.confidence < min_confidence:
        return Verdict(False, REJECT_CONFIDENCE)
    if not (2 * lo <= result.total <= 2 * hi):
        return Verdict(False, REJECT_SUM_RANGE)

    history = list(history)
    warnings = []
    if history:
        last = history[-1]
        if abs(result.total - last.total) >= max_sum_jump:
            warnings.append(f"abrupt jump {last} -> {result}")
        run = _max_repeat_run(history + [result])
        if run > max_repeats:
            warnings.append(f"{run} identical results in a row ({result})")
        window = history + [result]
        mean_conf = sum(r.confidence for r in window) / len(window)
        if mean_conf < min_mean_confidence:
            warnings.append(f"low mean confidence {mean_conf:.2f}")
    return Verdict(True, None, tuple(warnings))


class ResultValidator:
    """validate() bound to a bounded sliding window of accepted results."""

    def __init__(self, status_store, min_confidence: float = 0.25, history_size: int = 50,
                 die_faces: tuple[int, int] = DIE_FACES):
        self.status = status_store
        self.min_confidence = min_confidence
        self.die_faces = die_faces
        self.history: deque[RoundResult] = deque(maxlen=history_size)

    def validate(self, result: RoundResult) -> Verdict:
        verdict = validate(result, self.history, min_confidence=self.min_confidence, die_faces=self.die_faces)
        if not verdict.accepted:
            self.status.log(f"validator: rejected {result} conf={result.confidence:.2f} reason={verdict.reason}")
            return verdict
        for w in verdict.warnings:
            self.status.warn(f"validator: {w}")
        self.history.append(result)
        return verdict

    @property
    def last(self) -> Optional[RoundResult]:
        return self.history[-1] if self.history else None

    def clear(self):
        self.history.clear()
