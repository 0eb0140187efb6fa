import threading

from diceautobet.adapters.clicker.base import ClickExecutor
from diceautobet.orchestrator.decomposer import StakeAction


class MockClicker(ClickExecutor):
    """Records taps instead of performing them. `fail_on` targets report failure."""

    def __init__(self, status_store=None, fail_on: set[str] | None = None):
        self.status = status_store
        self.fail_on = set(fail_on or ())
        self.taps: list[tuple[str, str]] = []     # (instance, target)
        self._lock = threading.Lock()

    def dispatch(self, action: StakeAction, instance: str) -> bool:
        if action.target in self.fail_on:
            if self.status is not None:
                self.status.log(f"mock_clicker: tap {action.target}@{instance} failed")
            return False
        with self._lock:
            self.taps.append((instance, action.target))
        if self.status is not None:
            self.status.log(f"mock_clicker: tap {action.target}@{instance}")
        return True

    def targets(self, instance: str | None = None) -> list[str]:
        with self._lock:
            return [t for i, t in self.taps if instance is None or i == instance]

    def clear(self):
        with self._lock:
            self.taps.clear()
