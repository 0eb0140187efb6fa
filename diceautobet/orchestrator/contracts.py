from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

import numpy as np

InstanceId = Literal["A", "B"]
INSTANCES: tuple[InstanceId, ...] = ("A", "B")


class Side(str, Enum):
    RED = "red"        # left die
    ORANGE = "orange"  # right die

    def opposite(self) -> "Side":
        return Side.ORANGE if self is Side.RED else Side.RED


class Outcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"


class DetectionPhase(str, Enum):
    AWAITING_CHANGE = "awaiting_change"
    STABILIZING = "stabilizing"
    STABLE = "stable"
    TIMED_OUT = "timed_out"


class TurnType(str, Enum):
    ACTIVE = "active"
    PASSIVE = "passive"


class SessionStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    FAILED = "failed"


def other_instance(instance: InstanceId) -> InstanceId:
    return "B" if instance == "A" else "A"


@dataclass(frozen=True)
class Region:
    left: int
    top: int
    width: int
    height: int

    @classmethod
    def parse(cls, text: str) -> "Region":
        """'left,top,width,height' -> Region"""
        parts = [int(p.strip()) for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"region needs 4 integers, got {text!r}")
        return cls(*parts)


@dataclass(frozen=True)
class ScreenSample:
    pixels: np.ndarray          # H x W x 3, uint8, RGB
    timestamp: float
    region: Optional[Region] = None

    def __post_init__(self):
        self.pixels.setflags(write=False)


@dataclass(frozen=True)
class RoundResult:
    left: int                  # pips on the red die
    right: int                 # pips on the orange die
    confidence: float = 0.0

    @property
    def is_draw(self) -> bool:
        return self.left == self.right

    @property
    def total(self) -> int:
        return self.left + self.right

    @property
    def winner(self) -> Optional[Side]:
        if self.is_draw:
            return None
        return Side.RED if self.left > self.right else Side.ORANGE

    def outcome_for(self, side: Side) -> Outcome:
        if self.is_draw:
            return Outcome.DRAW
        return Outcome.WIN if self.winner is side else Outcome.LOSS

    def same_dice(self, other: Optional["RoundResult"]) -> bool:
        return other is not None and other.left == self.left and other.right == self.right

    def __str__(self) -> str:
        return f"{self.left}:{self.right}"


@dataclass(frozen=True)
class Wager:
    stake: int
    side: Side
    instance: InstanceId = "A"


@dataclass(frozen=True)
class BettingState:
    stake: int
    side: Side
    losses_on_side: int = 0
    loss_streak: int = 0
    games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    profit: int = 0
    last_result: Optional[RoundResult] = None

    @property
    def win_rate(self) -> float:
        return self.wins / self.games * 100.0 if self.games else 0.0


@dataclass(frozen=True)
class InstanceState:
    last_result: Optional[RoundResult] = None
    consecutive_losses: int = 0
    profit: int = 0
    wagers: int = 0


@dataclass(frozen=True)
class DualInstanceState:
    stake: int
    side: Side
    previous_side: Optional[Side] = None
    losses_on_side: int = 0
    loss_streak: int = 0
    active_instance: InstanceId = "A"
    turn_index: int = 0
    turn_type: TurnType = TurnType.ACTIVE
    first_result_discarded: bool = False
    instances: dict = field(default_factory=lambda: {i: InstanceState() for i in INSTANCES})
    games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    observed: int = 0
    profit: int = 0
    last_result: Optional[RoundResult] = None

    @property
    def win_rate(self) -> float:
        return self.wins / self.games * 100.0 if self.games else 0.0


@dataclass(frozen=True)
class Turn:
    """One committed turn of the alternation sequence."""
    index: int
    instance: InstanceId
    turn_type: TurnType
    wager: Optional[Wager]      # None -> observe only


@dataclass
class RoundEvent:
    seq: int
    kind: str                   # round_started | wager_placed | round_result | round_failed | state_changed | session_ended
    ts: float
    data: dict = field(default_factory=dict)


@dataclass
class RunResult:
    ok: bool
    status: SessionStatus
    rounds: int
    duration_ms: int
    error_code: Optional[str] = None
    reason: Optional[str] = None
