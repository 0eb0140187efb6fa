import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from diceautobet.orchestrator.contracts import RoundEvent, SessionStatus

_logger = logging.getLogger("diceautobet")

MAX_LOGS = 200
MAX_EVENTS = 500


@dataclass
class StatusStore:
    status: SessionStatus = SessionStatus.IDLE
    last_error: Optional[str] = None
    last_reason: Optional[str] = None
    snapshot: Optional[object] = None     # BettingState | DualInstanceState
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    logs: List[str] = field(default_factory=list)
    events: List[RoundEvent] = field(default_factory=list)
    _seq: int = 0
    _subscribers: List[Callable[[RoundEvent], None]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def busy(self) -> bool:
        return self.status in (SessionStatus.RUNNING, SessionStatus.PAUSED)

    def set_status(self, v: SessionStatus):
        self.status = v

    def log(self, msg: str, level: int = logging.INFO):
        _logger.log(level, msg)
        with self._lock:
            self.logs.append(msg)
            if len(self.logs) > MAX_LOGS:
                self.logs = self.logs[-MAX_LOGS:]

    def warn(self, msg: str):
        self.log(msg, logging.WARNING)

    def subscribe(self, fn: Callable[[RoundEvent], None]):
        self._subscribers.append(fn)

    def emit(self, kind: str, **data) -> RoundEvent:
        with self._lock:
            self._seq += 1
            ev = RoundEvent(seq=self._seq, kind=kind, ts=time.time(), data=data)
            self.events.append(ev)
            if len(self.events) > MAX_EVENTS:
                self.events = self.events[-MAX_EVENTS:]
        for fn in list(self._subscribers):
            fn(ev)
        return ev

    def events_since(self, seq: int = 0) -> List[RoundEvent]:
        with self._lock:
            return [e for e in self.events if e.seq > seq]
