"""
HTTP adapter for the tap bridge service (e.g. an ADB input relay next to the
emulator / phone).

Contract:
  Request:  POST /tap  {"instance": "A", "target": "chip:500"}
  Response: {"ok": true}    (or {"ok": false, "error": "..."})
"""

import httpx

from diceautobet.adapters.clicker.base import ClickExecutor
from diceautobet.orchestrator.decomposer import StakeAction


class HttpClicker(ClickExecutor):
    def __init__(self, status_store, base_url: str = "http://127.0.0.1:9000", timeout: float = 5.0,
                 transport: httpx.BaseTransport | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def _post(self, path: str, payload: dict | None = None) -> dict:
        resp = self._client.post(path, json=payload or {})
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok", True):
            raise RuntimeError(f"tap bridge error on {path}: {data.get('error', 'unknown')}")
        return data

    def _get(self, path: str) -> dict:
        resp = self._client.get(path)
        resp.raise_for_status()
        return resp.json()

    def dispatch(self, action: StakeAction, instance: str) -> bool:
        try:
            self._post("/tap", {"instance": instance, "target": action.target})
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            self.status.log(f"http_clicker: tap {action.target}@{instance} failed: {e}")
            return False
        self.status.log(f"http_clicker: tap {action.target}@{instance}")
        return True

    def get_status(self) -> dict:
        return self._get("/status")

    def close(self):
        self._client.close()
