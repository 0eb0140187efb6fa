"""Scripted sampler: replays queued frames, repeating the last one once the queue runs dry."""
import threading
import time
from collections import deque
from typing import Iterable

import numpy as np

from diceautobet.adapters.screen.base import ScreenSampler
from diceautobet.orchestrator.contracts import Region, ScreenSample


def solid_frame(value: int, size: tuple[int, int] = (40, 80)) -> np.ndarray:
    """Uniform gray RGB frame; distinct values give distinct fingerprints."""
    return np.full((size[0], size[1], 3), value, dtype=np.uint8)


class ScriptedSampler(ScreenSampler):
    def __init__(self, status_store=None, frames: Iterable[np.ndarray | None] = ()):
        self.status = status_store
        self._frames = deque(frames)
        self._last: np.ndarray | None = None
        self._lock = threading.Lock()
        self.calls = 0

    def push(self, *frames: np.ndarray | None):
        with self._lock:
            self._frames.extend(frames)

    def hold(self, frame: np.ndarray, times: int):
        self.push(*([frame] * times))

    def sample(self, region: Region | None) -> ScreenSample | None:
        with self._lock:
            self.calls += 1
            if self._frames:
                frame = self._frames.popleft()
                if frame is None:
                    return None
                self._last = frame
            frame = self._last
        if frame is None:
            return None
        return ScreenSample(pixels=frame.copy(), timestamp=time.time(), region=region)
