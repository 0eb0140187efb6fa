from pydantic import BaseModel, Field
from typing import Literal, Optional


class RegionIn(BaseModel):
    left: int
    top: int
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class StartSessionRequest(BaseModel):
    # every field overrides the env-derived SessionConfig; omitted -> keep
    mode: Optional[Literal["single", "dual"]] = None
    base_stake: Optional[int] = None
    stake_cap: Optional[int] = None
    loss_threshold: Optional[int] = None
    start_side: Optional[Literal["red", "orange"]] = None
    denominations: Optional[list[int]] = None
    alternate_turns: Optional[bool] = None
    switch_instance: Optional[bool] = None
    stability_window_s: Optional[float] = None
    detection_timeout_s: Optional[float] = None
    tap_delay_s: Optional[float] = None
    round_delay_s: Optional[float] = None
    max_consecutive_failures: Optional[int] = None
    retry_backoff_s: Optional[float] = None
    min_confidence: Optional[float] = None
    overlay_filter: Optional[bool] = None
    max_rounds: Optional[int] = None
    target_profit: Optional[int] = None
    stop_at_cap: Optional[bool] = None
    regions: Optional[dict[Literal["A", "B"], RegionIn]] = None


class SessionResponse(BaseModel):
    ok: bool
    status: str
    error_code: Optional[str] = None
    reason: Optional[str] = None


class StatusResponse(BaseModel):
    status: str
    busy: bool
    mode: str
    error_code: Optional[str] = None
    reason: Optional[str] = None
    started_at: Optional[float] = None
    duration_s: float = 0.0
    state: dict = {}            # stake / side / counters, see session.describe()
    logs: list[str]


class EventOut(BaseModel):
    seq: int
    kind: str
    ts: float
    data: dict


class EventsResponse(BaseModel):
    events: list[EventOut]
    last_seq: int
