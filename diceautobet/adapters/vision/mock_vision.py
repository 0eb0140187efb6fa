import random
import threading
from collections import deque
from typing import Iterable

from diceautobet.adapters.vision.base import VisionAdapter
from diceautobet.orchestrator.contracts import RoundResult, ScreenSample


class ScriptedVision(VisionAdapter):
    """
    Returns queued results in order (None entries model unreadable frames).
    Once the queue is empty it rolls random dice, so dry runs keep going.
    """

    def __init__(self, status_store=None, results: Iterable[RoundResult | None] = (), seed: int | None = None):
        self.status = status_store
        self._results = deque(results)
        self._rng = random.Random(seed)
        self._lock = threading.Lock()
        self.calls = 0

    def push(self, *results: RoundResult | None):
        with self._lock:
            self._results.extend(results)

    def classify(self, sample: ScreenSample) -> RoundResult | None:
        with self._lock:
            self.calls += 1
            if self._results:
                result = self._results.popleft()
            else:
                result = RoundResult(self._rng.randint(1, 6), self._rng.randint(1, 6), confidence=0.9)
        if self.status is not None:
            self.status.log(f"mock_vision: {result}")
        return result
