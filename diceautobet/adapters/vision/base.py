import json
import re

import cv2

from diceautobet.orchestrator.contracts import RoundResult, ScreenSample

_JSON_OBJECT = re.compile(r"\{.*?\}", re.S)


class VisionAdapter:
    def classify(self, sample: ScreenSample) -> RoundResult | None:
        """Read both dice from a stable dice-region sample. None if unreadable."""
        raise NotImplementedError


def encode_jpeg(sample: ScreenSample, quality: int = 85) -> bytes | None:
    bgr = cv2.cvtColor(sample.pixels, cv2.COLOR_RGB2BGR)
    ok, buf = cv2.imencode(".jpg", bgr, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        return None
    return bytes(buf)


def parse_reply(raw: str, default_confidence: float = 0.9) -> RoundResult | None:
    """
    Parses a model reply of the form {"left": 3, "right": 5, "confidence": 0.9}.
    Also accepts a bare "3:5" / "3 5". Range checks are left to the validator.
    """
    m = _JSON_OBJECT.search(raw)
    if m:
        try:
            data = json.loads(m.group(0))
            return RoundResult(
                left=int(data["left"]),
                right=int(data["right"]),
                confidence=float(data.get("confidence", default_confidence)),
            )
        except (ValueError, KeyError, TypeError):
            return None
    digits = re.findall(r"\d+", raw)
    if len(digits) == 2:
        return RoundResult(left=int(digits[0]), right=int(digits[1]), confidence=default_confidence)
    return None
