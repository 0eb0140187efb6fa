"""
False-stable filter for the dice region.

Between rounds the dice region shows a countdown (green digits, turning red
for the last seconds) or a bright "waiting for round" banner. Both settle into
a perfectly stable image, so the stability detector would report them as a
result. These checks look at the central square of the region:

  countdown: >3% green or red digit pixels and no die-blue pixels (>2%)
  banner:    >20% of pixels brighter than 200 (mean RGB)
"""
from dataclasses import dataclass

import numpy as np

from diceautobet.orchestrator.contracts import ScreenSample


def _center(pixels: np.ndarray) -> np.ndarray:
    h, w = pixels.shape[:2]
    r = max(1, min(h, w) // 4)
    cy, cx = h // 2, w // 2
    return pixels[max(0, cy - r):cy + r, max(0, cx - r):cx + r]


def color_shares(pixels: np.ndarray) -> dict:
    """Percent of green / red / blue dominant pixels in the region center."""
    c = _center(pixels).astype(np.int16)
    if c.size == 0:
        return {"green": 0.0, "red": 0.0, "blue": 0.0}
    r, g, b = c[..., 0], c[..., 1], c[..., 2]
    n = float(r.size)
    green = (g > r + 40) & (g > b + 40) & (g > 120)
    red = (r > g + 40) & (r > b + 40) & (r > 100)
    blue = (b > r + 40) & (b > g + 40) & (b > 100)
    return {
        "green": green.sum() * 100.0 / n,
        "red": red.sum() * 100.0 / n,
        "blue": blue.sum() * 100.0 / n,
    }


def bright_share(pixels: np.ndarray, level: int = 200) -> float:
    c = _center(pixels)
    if c.size == 0:
        return 0.0
    brightness = c.astype(np.uint16).sum(axis=2) / 3
    return float((brightness > level).sum()) * 100.0 / brightness.size


@dataclass(frozen=True)
class OverlayFilter:
    timer_pct: float = 3.0
    die_pct: float = 2.0
    bright_pct: float = 20.0
    bright_level: int = 200
    check_banner: bool = True

    def is_countdown(self, pixels: np.ndarray) -> bool:
        s = color_shares(pixels)
        has_timer = s["green"] > self.timer_pct or s["red"] > self.timer_pct
        return has_timer and not s["blue"] > self.die_pct

    def is_banner(self, pixels: np.ndarray) -> bool:
        return bright_share(pixels, self.bright_level) > self.bright_pct

    def __call__(self, sample: ScreenSample) -> bool:
        px = sample.pixels
        if px.ndim != 3 or px.shape[2] < 3:
            return False
        return self.is_countdown(px) or (self.check_banner and self.is_banner(px))
