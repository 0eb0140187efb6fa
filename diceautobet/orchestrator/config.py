import os
from dataclasses import dataclass, field, fields, replace
from typing import Literal, Mapping, Optional

from diceautobet.orchestrator.contracts import INSTANCES, Region, Side
from diceautobet.orchestrator.decomposer import DEFAULT_DENOMINATIONS, is_expressible, normalize
from diceautobet.orchestrator.errors import ConfigError

ENV_PREFIX = "DICEAUTOBET_"

ModeName = Literal["single", "dual"]


@dataclass(frozen=True)
class SessionConfig:
    mode: ModeName = "single"

    # stake progression
    base_stake: int = 20
    stake_cap: int = 30000
    loss_threshold: int = 2
    start_side: Side = Side.RED
    denominations: tuple[int, ...] = DEFAULT_DENOMINATIONS

    # dual mode
    alternate_turns: bool = False       # ACTIVE / PASSIVE turns
    switch_instance: bool = True        # target swaps every turn

    # detection timing (seconds)
    stability_window_s: float = 0.3
    detection_timeout_s: float = 35.0
    fast_poll_s: float = 0.02
    slow_poll_s: float = 0.08
    sample_timeout_s: float = 2.0
    classify_timeout_s: float = 15.0
    overlay_filter: bool = True
    duplicate_window_s: float = 3.0

    # dispatch
    tap_delay_s: float = 0.3
    round_delay_s: float = 0.0

    # failure policy
    max_consecutive_failures: int = 3
    retry_backoff_s: float = 5.0

    # validation
    min_confidence: float = 0.25
    history_size: int = 50

    # stop conditions
    max_rounds: Optional[int] = None
    target_profit: Optional[int] = None
    stop_at_cap: bool = False

    regions: dict = field(default_factory=dict)   # instance id -> Region

    @property
    def instances(self) -> tuple[str, ...]:
        return INSTANCES if self.mode == "dual" else ("A",)

    def validate(self) -> "SessionConfig":
        if self.mode not in ("single", "dual"):
            raise ConfigError(f"unknown mode {self.mode!r}")
        if self.base_stake <= 0:
            raise ConfigError(f"base stake must be positive, got {self.base_stake}")
        if self.stake_cap < self.base_stake:
            raise ConfigError(f"stake cap {self.stake_cap} is below base stake {self.base_stake}")
        if self.loss_threshold < 1:
            raise ConfigError(f"loss threshold must be >= 1, got {self.loss_threshold}")
        if not self.denominations or any(d <= 0 for d in self.denominations):
            raise ConfigError(f"invalid denominations {list(self.denominations)}")
        if not is_expressible(self.base_stake, self.denominations):
            raise ConfigError(
                f"base stake {self.base_stake} cannot be built from denominations {list(normalize(self.denominations))}"
            )
        for name in ("stability_window_s", "round_delay_s", "retry_backoff_s", "tap_delay_s"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        for name in ("detection_timeout_s", "fast_poll_s", "slow_poll_s", "sample_timeout_s", "classify_timeout_s"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.max_consecutive_failures < 1:
            raise ConfigError("max_consecutive_failures must be >= 1")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        missing = [i for i in self.instances if i not in self.regions]
        if missing:
            raise ConfigError(f"no screen region configured for instance(s) {', '.join(missing)}")
        return self

    def with_overrides(self, **overrides) -> "SessionConfig":
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown config field(s): {', '.join(sorted(unknown))}")
        return replace(self, **{k: _coerce(k, v) for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "SessionConfig":
        """Reads DICEAUTOBET_<FIELD> variables; regions from DICEAUTOBET_REGION_A / _B."""
        env = os.environ if env is None else env
        values = {}
        for f in fields(cls):
            if f.name == "regions":
                continue
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is not None and raw != "":
                values[f.name] = _coerce(f.name, raw)
        regions = {}
        for inst in INSTANCES:
            raw = env.get(f"{ENV_PREFIX}REGION_{inst}")
            if raw:
                try:
                    regions[inst] = Region.parse(raw)
                except ValueError as e:
                    raise ConfigError(str(e)) from e
        values["regions"] = regions
        return cls(**values)


_INT_FIELDS = {"base_stake", "stake_cap", "loss_threshold", "max_consecutive_failures",
               "history_size", "max_rounds", "target_profit"}
_BOOL_FIELDS = {"alternate_turns", "switch_instance", "overlay_filter", "stop_at_cap"}


def _coerce(name: str, value):
    try:
        if name == "start_side":
            return value if isinstance(value, Side) else Side(str(value).lower())
        if name == "denominations":
            if isinstance(value, str):
                value = [v for v in value.split(",") if v.strip()]
            return normalize(value)
        if name == "regions":
            return {k: (v if isinstance(v, Region) else Region.parse(v) if isinstance(v, str) else Region(**v))
                    for k, v in dict(value).items()}
        if not isinstance(value, str):
            return value
        if name in _BOOL_FIELDS:
            return value.strip().lower() in ("1", "true", "yes", "on")
        if name in _INT_FIELDS:
            return int(value)
        if name == "mode":
            return value.strip().lower()
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"bad value for {name}: {value!r}") from e
