"""
Fake tap bridge for testing HttpClicker without a phone / emulator.

Simulates the tap relay's HTTP service on port 9000.
Every tap is printed, counted per instance, and answered with {"ok": true}.
Set FAIL_TARGETS=side:red,chip:10 to make those taps report failure.

Usage:
    python -m diceautobet.scripts.fake_tap_server
"""

import os
import time
from collections import Counter

import uvicorn
from fastapi import FastAPI, Request

app = FastAPI(title="fake-tap-server")

TAP_DELAY_S = float(os.getenv("TAP_DELAY_S", "0.05"))
FAIL_TARGETS = {t.strip() for t in os.getenv("FAIL_TARGETS", "").split(",") if t.strip()}
taps: Counter = Counter()


@app.post("/tap")
async def tap(request: Request):
    body = await request.json()
    instance = body.get("instance", "A")
    target = body.get("target", "?")
    if target in FAIL_TARGETS:
        print(f"[tap] {instance} {target} -> FAIL")
        return {"ok": False, "error": f"target {target} not found on screen"}
    time.sleep(TAP_DELAY_S)
    taps[instance] += 1
    print(f"[tap] {instance} {target} (#{taps[instance]})")
    return {"ok": True}


@app.get("/status")
async def status():
    return {"ok": True, "taps": dict(taps)}


if __name__ == "__main__":
    print("Fake tap server starting on http://localhost:9000")
    uvicorn.run(app, host="0.0.0.0", port=9000)
