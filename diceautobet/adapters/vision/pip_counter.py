"""
Local pip counter (no network, no calibration).

White pips are segmented with an HSV mask, cleaned up with a small
median blur / dilate / erode, and kept when their contour looks like a dot
(area 8..200 px, circularity >= 0.25). Dots left of the vertical midline
belong to the red die, the rest to the orange die.

Two dots on one horizontal line is the table's loading animation, not a
result, and is reported as unreadable.
"""
import math
from dataclasses import dataclass

import cv2
import numpy as np

from diceautobet.adapters.vision.base import VisionAdapter
from diceautobet.orchestrator.contracts import RoundResult, ScreenSample

WHITE_LO = (0, 0, 100)
WHITE_HI = (180, 120, 255)
MIN_AREA = 8
MAX_AREA = 200
MIN_CIRCULARITY = 0.25
MAX_DOTS = 12


@dataclass(frozen=True)
class Dot:
    x: float
    y: float
    area: float
    confidence: float


def dot_confidence(area: float, circularity: float) -> float:
    if area < 10:
        area_score = 0.4
    elif area < 30:
        area_score = 0.8
    elif area < 80:
        area_score = 0.9
    elif area < 150:
        area_score = 0.7
    else:
        area_score = 0.4

    if circularity < 0.3:
        circ_score = 0.3
    elif circularity < 0.5:
        circ_score = 0.7
    elif circularity < 0.7:
        circ_score = 0.9
    else:
        circ_score = 1.0

    bonus = 0.1 if 10 <= area <= 80 else 0.0
    return min(1.0, (area_score + circ_score) / 2 + bonus)


def white_mask(rgb: np.ndarray) -> np.ndarray:
    hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
    mask = cv2.inRange(hsv, np.array(WHITE_LO, np.uint8), np.array(WHITE_HI, np.uint8))
    mask = cv2.medianBlur(mask, 3)
    mask = cv2.dilate(mask, cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (3, 3)))
    mask = cv2.erode(mask, cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2, 2)))
    return mask


def find_dots(rgb: np.ndarray) -> list[Dot]:
    h, w = rgb.shape[:2]
    contours, _ = cv2.findContours(white_mask(rgb), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    dots = []
    for c in contours:
        area = cv2.contourArea(c)
        if area < MIN_AREA or area > MAX_AREA:
            continue
        peri = cv2.arcLength(c, True)
        circ = 4 * math.pi * area / (peri * peri + 1e-5)
        if circ < MIN_CIRCULARITY:
            continue
        m = cv2.moments(c)
        if m["m00"] == 0:
            continue
        cx, cy = m["m10"] / m["m00"], m["m01"] / m["m00"]
        if not (0 <= cx < w and 0 <= cy < h):
            continue
        dots.append(Dot(cx, cy, area, dot_confidence(area, circ)))
    return dots


def is_loading_animation(dots: list[Dot]) -> bool:
    if len(dots) != 2:
        return False
    a, b = dots
    avg_y = (a.y + b.y) / 2
    if avg_y <= 0:
        return True
    return abs(a.y - b.y) / (avg_y * 4) < 0.15


def split_dots(dots: list[Dot], width: int) -> RoundResult:
    if len(dots) > MAX_DOTS:
        dots = sorted(dots, key=lambda d: d.confidence, reverse=True)[:MAX_DOTS]
    mid = width / 2
    left = sum(1 for d in dots if d.x < mid)
    right = len(dots) - left
    mean_conf = sum(d.confidence for d in dots) / len(dots)
    separation = 0.9 if left and right else 0.6
    return RoundResult(left=left, right=right, confidence=round(mean_conf * separation, 3))


class PipCounterVision(VisionAdapter):
    def __init__(self, status_store):
        self.status = status_store

    def classify(self, sample: ScreenSample) -> RoundResult | None:
        px = sample.pixels
        if px.ndim != 3 or px.shape[2] < 3:
            self.status.log(f"pip_counter: unexpected sample shape {px.shape}")
            return None
        dots = find_dots(np.ascontiguousarray(px[:, :, :3]))
        if not dots:
            self.status.log("pip_counter: no pips found")
            return None
        if is_loading_animation(dots):
            self.status.log("pip_counter: loading animation (2 dots in a row)")
            return None
        result = split_dots(dots, px.shape[1])
        self.status.log(f"pip_counter: {len(dots)} dots -> {result} conf={result.confidence:.2f}")
        return result
