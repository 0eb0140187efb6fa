from abc import ABC, abstractmethod

from diceautobet.orchestrator.decomposer import StakeAction


class ClickExecutor(ABC):
    @abstractmethod
    def dispatch(self, action: StakeAction, instance: str) -> bool:
        """Perform one tap on `action.target` of game instance `instance`. False on failure."""
        ...
