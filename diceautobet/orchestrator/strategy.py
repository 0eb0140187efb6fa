"""
Stake strategies.

Both variants share the Martingale core: a win resets the stake to base, a
loss or draw doubles it up to a hard cap, and `loss_threshold` consecutive
losses on one side move the wager to another side. They differ in which side
comes next and in how turns rotate between game instances.

States are immutable; plan() and apply() are pure functions of their inputs.
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from diceautobet.orchestrator.config import SessionConfig
from diceautobet.orchestrator.contracts import (
    BettingState, DualInstanceState, InstanceId, Outcome, RoundResult, Side, TurnType, Wager, other_instance,
)


def next_stake(outcome: Outcome, current: int, base: int, cap: int) -> int:
    if outcome is Outcome.WIN:
        return base
    return min(current * 2, cap)


def stake_delta(outcome: Outcome, stake: int) -> int:
    return stake if outcome is Outcome.WIN else -stake


class StakeStrategy(ABC):
    name = "base"

    def __init__(self, config: SessionConfig):
        self.base = config.base_stake
        self.cap = config.stake_cap
        self.threshold = config.loss_threshold
        self.start_side = config.start_side

    @abstractmethod
    def initial_state(self):
        ...

    @abstractmethod
    def plan(self, state) -> Optional[Wager]:
        """Next wager, or None when this turn only observes."""

    @abstractmethod
    def apply(self, state, result: RoundResult, instance: InstanceId = "A") -> tuple[object, Optional[Outcome]]:
        """Fold one round result into the state. Outcome is None if the result placed no wager."""

    def observe_instance(self, state) -> InstanceId:
        return "A"

    def turn_type(self, state) -> TurnType:
        return TurnType.ACTIVE

    def _switch_side(self, side: Side, previous: Optional[Side]) -> tuple[Side, Optional[Side]]:
        return side.opposite(), side

    def _progress(self, stake: int, side: Side, losses_on_side: int, previous: Optional[Side], outcome: Outcome):
        """Shared doubling/reset core -> (stake, side, losses_on_side, previous_side)."""
        stake = next_stake(outcome, stake, self.base, self.cap)
        if outcome is Outcome.WIN:
            return stake, side, 0, previous
        losses_on_side += 1
        if losses_on_side >= self.threshold:
            side, previous = self._switch_side(side, previous)
            losses_on_side = 0
        return stake, side, losses_on_side, previous

    @staticmethod
    def _tally(state, outcome: Outcome) -> dict:
        return {
            "games": state.games + 1,
            "wins": state.wins + (outcome is Outcome.WIN),
            "losses": state.losses + (outcome is Outcome.LOSS),
            "draws": state.draws + (outcome is Outcome.DRAW),
            "profit": state.profit + stake_delta(outcome, state.stake),
            "loss_streak": 0 if outcome is Outcome.WIN else state.loss_streak + 1,
        }


class MartingaleStrategy(StakeStrategy):
    """Single game instance; side flips to the opposite after the threshold."""
    name = "martingale"

    def initial_state(self) -> BettingState:
        return BettingState(stake=self.base, side=self.start_side)

    def plan(self, state: BettingState) -> Wager:
        return Wager(stake=state.stake, side=state.side, instance="A")

    def apply(self, state: BettingState, result: RoundResult, instance: InstanceId = "A"):
        outcome = result.outcome_for(state.side)
        stake, side, losses_on_side, _ = self._progress(state.stake, state.side, state.losses_on_side, None, outcome)
        new = replace(
            state,
            stake=stake,
            side=side,
            losses_on_side=losses_on_side,
            last_result=result,
            **self._tally(state, outcome),
        )
        return new, outcome


class AlternatingStrategy(StakeStrategy):
    """
    Two game instances played in turn.

    The wager target ping-pongs A, B, A, ... With alternate_turns only every
    other turn wagers; the PASSIVE turn in between watches the instance that
    takes the next wager and leaves stake and side alone. Side switching
    toggles between the current and the previously played side. The first result seen after start is left
    over from before the session and is dropped.
    """
    name = "alternating"

    def __init__(self, config: SessionConfig):
        super().__init__(config)
        self.alternate_turns = config.alternate_turns
        self.switch_instance = config.switch_instance

    def initial_state(self) -> DualInstanceState:
        return DualInstanceState(stake=self.base, side=self.start_side)

    def plan(self, state: DualInstanceState) -> Optional[Wager]:
        if not state.first_result_discarded or state.turn_type is TurnType.PASSIVE:
            return None
        return Wager(stake=state.stake, side=state.side, instance=state.active_instance)

    def observe_instance(self, state: DualInstanceState) -> InstanceId:
        return state.active_instance

    def turn_type(self, state: DualInstanceState) -> TurnType:
        return state.turn_type

    def _switch_side(self, side: Side, previous: Optional[Side]) -> tuple[Side, Optional[Side]]:
        if previous is not None and previous is not side:
            return previous, side
        return side.opposite(), side

    def _advance(self, state: DualInstanceState) -> dict:
        if self.alternate_turns:
            turn_type = TurnType.PASSIVE if state.turn_type is TurnType.ACTIVE else TurnType.ACTIVE
        else:
            turn_type = TurnType.ACTIVE
        instance = state.active_instance
        # only a wagering turn hands over, so real wagers keep alternating
        if self.switch_instance and state.turn_type is TurnType.ACTIVE:
            instance = other_instance(instance)
        return {
            "turn_index": state.turn_index + 1,
            "active_instance": instance,
            "turn_type": turn_type,
        }

    def apply(self, state: DualInstanceState, result: RoundResult, instance: InstanceId = "A"):
        if not state.first_result_discarded:
            return replace(state, first_result_discarded=True), None

        inst = state.instances[instance]
        if state.turn_type is TurnType.PASSIVE:
            instances = {**state.instances, instance: replace(inst, last_result=result)}
            new = replace(state, instances=instances, observed=state.observed + 1,
                          last_result=result, **self._advance(state))
            return new, None

        outcome = result.outcome_for(state.side)
        stake, side, losses_on_side, previous = self._progress(
            state.stake, state.side, state.losses_on_side, state.previous_side, outcome
        )
        instances = {
            **state.instances,
            instance: replace(
                inst,
                last_result=result,
                consecutive_losses=0 if outcome is Outcome.WIN else inst.consecutive_losses + 1,
                profit=inst.profit + stake_delta(outcome, state.stake),
                wagers=inst.wagers + 1,
            ),
        }
        new = replace(
            state,
            stake=stake,
            side=side,
            previous_side=previous,
            losses_on_side=losses_on_side,
            instances=instances,
            last_result=result,
            **self._tally(state, outcome),
            **self._advance(state),
        )
        return new, outcome


def build_strategy(config: SessionConfig) -> StakeStrategy:
    if config.mode == "dual":
        return AlternatingStrategy(config)
    return MartingaleStrategy(config)
