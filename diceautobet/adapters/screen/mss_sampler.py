"""
Desktop screen capture via mss.
MSS_MONITOR env var (default 1) selects the monitor used when no region is set.
"""
import os
import threading
import time

import mss
from mss.exception import ScreenShotError
import numpy as np

from diceautobet.adapters.screen.base import ScreenSampler
from diceautobet.orchestrator.contracts import Region, ScreenSample


class MssSampler(ScreenSampler):
    def __init__(self, status_store, monitor: int | None = None):
        self.status = status_store
        self._monitor = monitor if monitor is not None else int(os.getenv("MSS_MONITOR", "1"))
        self._local = threading.local()   # mss handles are not shareable across threads

    def _sct(self):
        sct = getattr(self._local, "sct", None)
        if sct is None:
            sct = mss.mss()
            self._local.sct = sct
        return sct

    def sample(self, region: Region | None) -> ScreenSample | None:
        sct = self._sct()
        if region is None:
            box = sct.monitors[self._monitor]
        else:
            box = {"left": region.left, "top": region.top, "width": region.width, "height": region.height}
        try:
            shot = sct.grab(box)
        except ScreenShotError as e:
            self.status.log(f"mss_sampler: grab failed {e}")
            return None
        bgra = np.asarray(shot)
        rgb = np.ascontiguousarray(bgra[:, :, 2::-1])   # BGRA -> RGB
        return ScreenSample(pixels=rgb, timestamp=time.time(), region=region)

