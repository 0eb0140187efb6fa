"""
Integration smoke test against a running API server.

Usage:
    # Dry run (scripted screen + random dice + recorded taps):
    SAMPLER_ADAPTER=mock VISION_ADAPTER=mock \
        DICEAUTOBET_REGION_A=0,0,80,40 DICEAUTOBET_REGION_B=100,0,80,40 \
        uvicorn diceautobet.services.api:app --port 8000
    python -m diceautobet.scripts.integration_test

    # HTTP clicker mode (run fake_tap_server first):
    python -m diceautobet.scripts.fake_tap_server          (terminal 1)
    CLICKER_ADAPTER=http SAMPLER_ADAPTER=mock VISION_ADAPTER=mock ... uvicorn ...  (terminal 2)
    python -m diceautobet.scripts.integration_test          (terminal 3)

The scripted sampler never changes the screen, so a started session ends
with ERR_EXHAUSTED after its failure limit; the test only checks the
control surface and the event stream.
"""

import sys
import time

import httpx

BASE = "http://localhost:8000"
TIMEOUT = 30.0
passed = 0
failed = 0


def test(name: str, method: str, path: str, body: dict | None = None, checks: dict | None = None) -> dict:
    global passed, failed
    url = f"{BASE}{path}"
    checks = checks or {}
    try:
        if method == "GET":
            r = httpx.get(url, timeout=TIMEOUT)
        else:
            r = httpx.post(url, json=body, timeout=TIMEOUT)

        if r.status_code != 200:
            print(f"  FAIL  {name} — HTTP {r.status_code}")
            failed += 1
            return {}

        data = r.json()
        for key, expected in checks.items():
            actual = data.get(key)
            if actual != expected:
                print(f"  FAIL  {name} — {key}: expected {expected!r}, got {actual!r}")
                failed += 1
                return data

        print(f"  OK    {name}")
        passed += 1
        return data

    except httpx.ConnectError:
        print(f"  FAIL  {name} — connection refused (is the server running?)")
        failed += 1
    except httpx.HTTPError as e:
        print(f"  FAIL  {name} — {type(e).__name__}: {e}")
        failed += 1
    return {}


def expect(name: str, ok: bool):
    global passed, failed
    print(f"  {'OK  ' if ok else 'FAIL'}  {name}")
    if ok:
        passed += 1
    else:
        failed += 1


def main():
    print(f"\nIntegration tests against {BASE}\n")
    print("--- Health & Status ---")
    test("GET /health", "GET", "/health", None, {"api": True})
    test("GET /status", "GET", "/status")

    print("\n--- Config errors ---")
    test("POST /session/start (bad stake)", "POST", "/session/start",
         {"base_stake": 15}, {"ok": False, "error_code": "ERR_CONFIG"})

    print("\n--- Session control ---")
    test("POST /session/start", "POST", "/session/start",
         {"mode": "single", "base_stake": 20, "detection_timeout_s": 1.0,
          "retry_backoff_s": 0.2, "tap_delay_s": 0.01},
         {"ok": True, "status": "running"})
    test("POST /session/start (busy)", "POST", "/session/start", {}, {"ok": False, "error_code": "ERR_BUSY"})
    test("POST /session/pause", "POST", "/session/pause", None, {"ok": True, "status": "paused"})
    test("POST /session/resume", "POST", "/session/resume", None, {"ok": True, "status": "running"})

    print("\n--- Events ---")
    time.sleep(1.5)
    data = test("GET /events", "GET", "/events?since=0")
    kinds = {e["kind"] for e in data.get("events", [])}
    for kind in ("state_changed", "round_started", "wager_placed"):
        expect(f"event {kind}", kind in kinds)

    print("\n--- Stop ---")
    test("POST /session/stop", "POST", "/session/stop?wait_s=5", None)
    test("GET /status (final)", "GET", "/status", None, {"busy": False})

    # Summary
    total = passed + failed
    print(f"\n{'='*40}")
    print(f"  {passed}/{total} passed, {failed} failed")
    print(f"{'='*40}\n")

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
