"""
Stake decomposition: target amount -> ordered chip selections and side taps.

The table offers a fixed set of chip buttons and an x2 button that doubles the
amount already placed. Amounts are built greedily from the largest chip down.
Amounts the chips cannot express exactly fall back to the smallest chip plus
x2 presses, which may overshoot; that case is flagged (exact=False) and
logged, never silently clamped.
"""
from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

DEFAULT_DENOMINATIONS = (2500, 500, 100, 50, 10)

ActionKind = Literal["chip", "side", "multiplier"]


@dataclass(frozen=True)
class StakeAction:
    kind: ActionKind
    value: int | str = 0        # chip amount, side name, or unused for multiplier
    repeat: int = 1

    @property
    def target(self) -> str:
        if self.kind == "chip":
            return f"chip:{self.value}"
        if self.kind == "side":
            return f"side:{self.value}"
        return "multiplier"


@dataclass(frozen=True)
class Decomposition:
    target: int
    actions: tuple[StakeAction, ...]
    amount: int

    @property
    def exact(self) -> bool:
        return self.amount == self.target

    @property
    def taps(self) -> int:
        return sum(a.repeat for a in self.actions)

    def pairs(self) -> list[tuple[int, int]]:
        """[(denomination, repeat), ...] for the chip part."""
        return [(int(a.value), a.repeat) for a in self.actions if a.kind == "chip"]

    def multiplier_presses(self) -> int:
        return sum(a.repeat for a in self.actions if a.kind == "multiplier")


def normalize(denominations: Iterable[int]) -> tuple[int, ...]:
    return tuple(sorted(set(int(d) for d in denominations), reverse=True))


def greedy(target: int, denominations: Sequence[int]) -> tuple[list[tuple[int, int]], int]:
    """Returns ([(denomination, count)], residual)."""
    remaining = target
    out = []
    for d in normalize(denominations):
        if d <= 0:
            continue
        n, remaining = divmod(remaining, d)
        if n:
            out.append((d, n))
    return out, remaining


def decompose(target: int, denominations: Sequence[int] = DEFAULT_DENOMINATIONS,
              status_store=None) -> Decomposition:
    if target <= 0:
        raise ValueError(f"stake must be positive, got {target}")
    denoms = normalize(denominations)
    if not denoms or denoms[-1] <= 0:
        raise ValueError(f"invalid denominations {denominations!r}")

    pairs, residual = greedy(target, denoms)
    if residual == 0:
        actions = tuple(StakeAction("chip", d, n) for d, n in pairs)
        return Decomposition(target, actions, target)

    unit = denoms[-1]
    amount, presses = unit, 0
    while amount < target:
        amount *= 2
        presses += 1
    actions = [StakeAction("chip", unit, 1)]
    if presses:
        actions.append(StakeAction("multiplier", 0, presses))
    dec = Decomposition(target, tuple(actions), amount)
    if status_store is not None and not dec.exact:
        status_store.warn(
            f"decomposer: {target} not expressible with {list(denoms)}; "
            f"placing {unit} x2^{presses} = {amount}"
        )
    return dec


def recompose(actions: Iterable[StakeAction]) -> int:
    total = 0
    doublings = 0
    for a in actions:
        if a.kind == "chip":
            total += int(a.value) * a.repeat
        elif a.kind == "multiplier":
            doublings += a.repeat
    return total * (2 ** doublings)


def is_expressible(target: int, denominations: Sequence[int] = DEFAULT_DENOMINATIONS) -> bool:
    return target > 0 and greedy(target, denominations)[1] == 0


def with_side(dec: Decomposition, side: Optional[str]) -> tuple[StakeAction, ...]:
    """
    Tap order on the table. A chip button only selects a value; each tap on
    the side places one chip of the selected value. So every chip is selected
    once and followed by `repeat` side taps, and x2 presses come last.
    Without a side only the chip selections are returned.
    """
    mult = [a for a in dec.actions if a.kind == "multiplier"]
    out = []
    for a in dec.actions:
        if a.kind != "chip":
            continue
        if not side:
            out.append(a)
            continue
        out.append(StakeAction("chip", a.value, 1))
        out.append(StakeAction("side", side, a.repeat))
    return tuple(out + mult)


def placed(taps: Iterable[StakeAction]) -> int:
    """Amount a tap sequence leaves on the table: side taps place the selected chip, x2 doubles."""
    selected = 0
    total = 0
    for a in taps:
        if a.kind == "chip":
            selected = int(a.value)
        elif a.kind == "side":
            total += selected * a.repeat
        elif a.kind == "multiplier":
            total *= 2 ** a.repeat
    return total
