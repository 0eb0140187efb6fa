from abc import ABC, abstractmethod

from diceautobet.orchestrator.contracts import Region, ScreenSample


class ScreenSampler(ABC):
    @abstractmethod
    def sample(self, region: Region | None) -> ScreenSample | None:
        """Capture one RGB frame of `region` (whole screen if None). None on failure."""
        ...
