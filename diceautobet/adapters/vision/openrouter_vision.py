"""
Dice reader over any OpenAI-compatible chat completions endpoint with image
input (OpenRouter by default).
Requires OPENROUTER_API_KEY; OPENROUTER_URL / OPENROUTER_MODEL override the
endpoint and model.

No extra dependencies, uses httpx.
"""
import base64
import os

import httpx

from diceautobet.adapters.vision.base import VisionAdapter, encode_jpeg, parse_reply
from diceautobet.adapters.vision.claude_vision import PROMPT
from diceautobet.orchestrator.contracts import RoundResult, ScreenSample

OPENROUTER_URL = os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "google/gemini-2.5-flash")


class OpenRouterVision(VisionAdapter):
    def __init__(self, status_store, api_key: str | None = None, timeout: float = 15.0,
                 transport: httpx.BaseTransport | None = None):
        self.status = status_store
        self._api_key = api_key or os.getenv("OPENROUTER_API_KEY")
        self._client = httpx.Client(timeout=timeout, transport=transport)
        if self.ready:
            self.status.log(f"openrouter_vision: ready (model={OPENROUTER_MODEL})")
        else:
            self.status.log("openrouter_vision: OPENROUTER_API_KEY not set")

    @property
    def ready(self) -> bool:
        return bool(self._api_key)

    def classify(self, sample: ScreenSample) -> RoundResult | None:
        if not self.ready:
            return None
        jpeg = encode_jpeg(sample)
        if jpeg is None:
            return None

        b64 = base64.standard_b64encode(jpeg).decode("utf-8")
        payload = {
            "model": OPENROUTER_MODEL,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{b64}"},
                        },
                        {"type": "text", "text": PROMPT},
                    ],
                }
            ],
            "max_tokens": 64,
            "temperature": 0,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            resp = self._client.post(OPENROUTER_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            self.status.log(f"openrouter_vision: request error: {e}")
            return None
        if not resp.is_success:
            self.status.log(f"openrouter_vision: HTTP {resp.status_code} {resp.text[:300]}")
            return None
        try:
            raw = resp.json()["choices"][0]["message"]["content"].strip()
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            self.status.log(f"openrouter_vision: malformed response: {e}")
            return None

        self.status.log(f"openrouter_vision: raw='{raw}'")
        result = parse_reply(raw)
        if result is None:
            self.status.log(f"openrouter_vision: unexpected response '{raw}'")
        return result
