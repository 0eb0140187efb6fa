import threading
from typing import Optional

from diceautobet.orchestrator.contracts import Outcome, RoundResult, Turn
from diceautobet.orchestrator.errors import TurnInFlightError
from diceautobet.orchestrator.strategy import StakeStrategy


class TurnCoordinator:
    """
    Owns the strategy state and hands out one turn at a time.

    commit() -> (wager taps, detection) -> complete() or abandon(). A second
    commit while a turn is in flight raises TurnInFlightError; the alternation
    sequence can only be advanced by completing the turn that was committed.
    """

    def __init__(self, strategy: StakeStrategy, state=None):
        self.strategy = strategy
        self._state = strategy.initial_state() if state is None else state
        self._in_flight: Optional[Turn] = None
        self._committed = 0
        self._lock = threading.Lock()

    @property
    def state(self):
        with self._lock:
            return self._state

    @property
    def in_flight(self) -> Optional[Turn]:
        with self._lock:
            return self._in_flight

    def commit(self) -> Turn:
        with self._lock:
            if self._in_flight is not None:
                raise TurnInFlightError(f"turn {self._in_flight.index} is still in flight")
            state = self._state
            wager = self.strategy.plan(state)
            turn = Turn(
                index=self._committed,
                instance=wager.instance if wager is not None else self.strategy.observe_instance(state),
                turn_type=self.strategy.turn_type(state),
                wager=wager,
            )
            self._committed += 1
            self._in_flight = turn
            return turn

    def complete(self, turn: Turn, result: RoundResult) -> Optional[Outcome]:
        with self._lock:
            if self._in_flight is not turn:
                raise TurnInFlightError(f"turn {turn.index} is not the turn in flight")
            self._state, outcome = self.strategy.apply(self._state, result, turn.instance)
            self._in_flight = None
            return outcome

    def abandon(self, turn: Turn) -> bool:
        """Drop the in-flight turn without touching the state; the next commit replans it."""
        with self._lock:
            if self._in_flight is not turn:
                return False
            self._in_flight = None
            return True
