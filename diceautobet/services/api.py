import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from diceautobet.orchestrator import errors
from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.errors import ConfigError
from diceautobet.orchestrator.session import SessionController
from diceautobet.services.models import (
    EventOut, EventsResponse, SessionResponse, StartSessionRequest, StatusResponse,
)
from diceautobet.services.status_store import StatusStore

load_dotenv(dotenv_path=os.getenv("DICEAUTOBET_ENV_FILE", ".env"), override=False)
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper(), format="%(asctime)s %(levelname)s %(message)s")


def build_adapters(status: StatusStore):
    """Picks sampler / classifier / clicker from SAMPLER_ADAPTER, VISION_ADAPTER, CLICKER_ADAPTER."""
    sampler_adapter = os.getenv("SAMPLER_ADAPTER", "mss").lower()
    if sampler_adapter == "mss":
        from diceautobet.adapters.screen.mss_sampler import MssSampler
        sampler = MssSampler(status)
    else:
        from diceautobet.adapters.screen.mock_sampler import ScriptedSampler
        sampler = ScriptedSampler(status)
    status.log(f"sampler adapter: {type(sampler).__name__}")

    clicker_adapter = os.getenv("CLICKER_ADAPTER", "mock").lower()
    if clicker_adapter == "http":
        from diceautobet.adapters.clicker.http_clicker import HttpClicker
        tap_url = os.getenv("TAP_HTTP_BASE_URL", "http://127.0.0.1:9000")
        clicker = HttpClicker(status, base_url=tap_url)
        status.log(f"clicker adapter: http -> {tap_url}")
    else:
        from diceautobet.adapters.clicker.mock_clicker import MockClicker
        clicker = MockClicker(status)
        status.log("clicker adapter: mock")

    # Values: pips | claude | openrouter | mock  (default: pips)
    vision_adapter = os.getenv("VISION_ADAPTER", "pips").lower()
    if vision_adapter == "claude":
        from diceautobet.adapters.vision.claude_vision import ClaudeVision
        vision = ClaudeVision(status)
    elif vision_adapter == "openrouter":
        from diceautobet.adapters.vision.openrouter_vision import OpenRouterVision
        vision = OpenRouterVision(status)
    elif vision_adapter == "mock":
        from diceautobet.adapters.vision.mock_vision import ScriptedVision
        vision = ScriptedVision(status)
    else:
        from diceautobet.adapters.vision.pip_counter import PipCounterVision
        vision = PipCounterVision(status)
    status.log(f"vision adapter: {type(vision).__name__}")
    return sampler, vision, clicker


def create_app(controller: Optional[SessionController] = None, status: Optional[StatusStore] = None) -> FastAPI:
    app = FastAPI(title="diceautobet")

    if controller is None:
        status = status or StatusStore()
        sampler, vision, clicker = build_adapters(status)
        try:
            base = SessionConfig.from_env()
        except ConfigError as e:
            status.warn(f"config: {e.reason}, using defaults")
            base = SessionConfig()
        controller = SessionController(sampler, vision, clicker, status, base_config=base)
    status = controller.status
    app.state.controller = controller

    @app.post("/session/start", response_model=SessionResponse)
    def session_start(req: Optional[StartSessionRequest] = None):
        overrides = req.model_dump(exclude_none=True) if req else {}
        try:
            rr = controller.start(**overrides)
        except ConfigError as e:
            return SessionResponse(ok=False, status=status.status.value, error_code=e.code, reason=e.reason)
        return SessionResponse(ok=rr.ok, status=rr.status.value, error_code=rr.error_code, reason=rr.reason)

    @app.post("/session/stop", response_model=SessionResponse)
    def session_stop(wait_s: float = 0.0):
        ok = controller.stop(wait_s=wait_s)
        return SessionResponse(ok=ok, status=status.status.value,
                               reason=None if ok else "no session running")

    @app.post("/session/pause", response_model=SessionResponse)
    def session_pause():
        ok = controller.pause()
        return SessionResponse(ok=ok, status=status.status.value,
                               reason=None if ok else "no running session to pause")

    @app.post("/session/resume", response_model=SessionResponse)
    def session_resume():
        ok = controller.resume()
        return SessionResponse(ok=ok, status=status.status.value,
                               reason=None if ok else "no paused session to resume")

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        return StatusResponse(**controller.current_state(), logs=list(status.logs))

    @app.get("/events", response_model=EventsResponse)
    def get_events(since: int = 0):
        events = controller.events(since)
        return EventsResponse(
            events=[EventOut(seq=e.seq, kind=e.kind, ts=e.ts, data=e.data) for e in events],
            last_seq=events[-1].seq if events else since,
        )

    @app.get("/health")
    def health():
        """Check connectivity to all subsystems."""
        checks = {
            "api": True,
            "sampler": type(controller.sampler).__name__,
            "vision": type(controller.classifier).__name__,
            "clicker": type(controller.clicker).__name__,
        }
        if hasattr(controller.clicker, "get_status"):
            try:
                controller.clicker.get_status()
                checks["clicker_reachable"] = True
            except Exception as e:
                checks["clicker_reachable"] = False
                checks["clicker_error"] = str(e)
        else:
            checks["clicker_reachable"] = True   # mock is always "reachable"
        if hasattr(controller.classifier, "ready"):
            checks["vision_ready"] = bool(controller.classifier.ready)
        try:
            controller.base_config.validate()
            checks["config_ok"] = True
        except ConfigError as e:
            checks["config_ok"] = False
            checks["config_error"] = e.reason
            checks["config_error_code"] = errors.ERR_CONFIG
        checks["all_ok"] = checks["api"] and checks["clicker_reachable"] and checks["config_ok"]
        return checks

    return app


app = create_app()
