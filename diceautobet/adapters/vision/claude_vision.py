"""
Claude Vision dice reader (zero-shot, no calibration needed).

Sends the dice region to Claude via the Anthropic API and asks for the pip
count of each die as JSON.

Requires ANTHROPIC_API_KEY in environment (.env or system env).
Returns None (unreadable) if the key is missing or the call fails; the round
loop treats that as a failed detection.
"""
import base64
import os

import anthropic

from diceautobet.adapters.vision.base import VisionAdapter, encode_jpeg, parse_reply
from diceautobet.orchestrator.contracts import RoundResult, ScreenSample

CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-haiku-4-5-20251001")

PROMPT = (
    "You are reading the result of a two-dice game from a screenshot.\n"
    "The LEFT die is red, the RIGHT die is orange. Count the white pips on each.\n"
    "If the dice are not clearly visible (countdown, banner, animation), answer "
    '{"left": 0, "right": 0, "confidence": 0}.\n\n'
    'Reply with ONLY a JSON object: {"left": <1-6>, "right": <1-6>, "confidence": <0..1>}'
)


class ClaudeVision(VisionAdapter):
    def __init__(self, status_store, api_key: str | None = None):
        self.status = status_store
        self._client = None
        key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not key:
            self.status.log("claude_vision: ANTHROPIC_API_KEY not set, every frame will be unreadable")
            return
        self._client = anthropic.Anthropic(api_key=key)
        self.status.log(f"claude_vision: ready ({CLAUDE_MODEL})")

    @property
    def ready(self) -> bool:
        return self._client is not None

    def classify(self, sample: ScreenSample) -> RoundResult | None:
        if not self.ready:
            return None
        jpeg = encode_jpeg(sample)
        if jpeg is None:
            self.status.log("claude_vision: jpeg encode failed")
            return None

        b64 = base64.standard_b64encode(jpeg).decode("utf-8")
        try:
            message = self._client.messages.create(
                model=CLAUDE_MODEL,
                max_tokens=64,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/jpeg",
                                    "data": b64,
                                },
                            },
                            {"type": "text", "text": PROMPT},
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            self.status.log(f"claude_vision: API error: {e}")
            return None

        raw = message.content[0].text.strip()
        self.status.log(f"claude_vision: raw response = '{raw}'")
        result = parse_reply(raw)
        if result is None:
            self.status.log(f"claude_vision: unexpected response '{raw}'")
        return result
