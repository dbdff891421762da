"""Scene attribute effects: absolute assignments and signed deltas."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Mapping, Tuple

if TYPE_CHECKING:
    from .player import Player

logger = logging.getLogger(__name__)


class EffectError(ValueError):
    """Raised when an effect payload is not an integer."""


class EffectMode(Enum):
    ABSOLUTE = "absolute"
    DELTA = "delta"


@dataclass(frozen=True)
class AttributeEffect:
    key: str
    mode: EffectMode
    amount: int

    def apply(self, current: int) -> int:
        if self.mode is EffectMode.DELTA:
            return current + self.amount
        return self.amount

    def __str__(self) -> str:
        if self.mode is EffectMode.DELTA:
            return f"{self.key}:{self.amount:+d}"
        return f"{self.key}:{self.amount}"


def parse_effect(key: str, value: object) -> AttributeEffect:
    if isinstance(value, bool):
        raise EffectError(f"Effect for '{key}' must be an integer, got {value!r}.")
    if isinstance(value, int):
        return AttributeEffect(key, EffectMode.ABSOLUTE, value)
    if not isinstance(value, str):
        raise EffectError(f"Effect for '{key}' must be a string, got {value!r}.")
    raw = value.strip()
    sign = raw[:1]
    payload = raw[1:] if sign in {"+", "-"} else raw
    try:
        amount = int(payload)
    except ValueError as exc:
        raise EffectError(f"Effect for '{key}' has a non-integer value {value!r}.") from exc
    if sign == "+":
        return AttributeEffect(key, EffectMode.DELTA, amount)
    if sign == "-":
        return AttributeEffect(key, EffectMode.DELTA, -amount)
    return AttributeEffect(key, EffectMode.ABSOLUTE, amount)


def parse_effects(attributes: Mapping[str, object]) -> Tuple[Tuple[AttributeEffect, ...], Tuple[str, ...]]:
    """Parse every entry, keeping the failures instead of raising."""
    effects: List[AttributeEffect] = []
    errors: List[str] = []
    for key, value in attributes.items():
        try:
            effects.append(parse_effect(key, value))
        except EffectError as exc:
            errors.append(str(exc))
    return tuple(effects), tuple(errors)


def apply_effects(
    effects: Iterable[AttributeEffect],
    player: "Player",
    errors: Iterable[str] = (),
) -> List[str]:
    """Apply parsed effects to ``player``; malformed entries are logged and skipped."""
    skipped = list(errors)
    for message in skipped:
        logger.warning("Skipping attribute effect: %s", message)
    for effect in effects:
        player.set_attribute(effect.key, effect.apply(player.get_attribute(effect.key)))
    return skipped


def apply_attribute_map(attributes: Mapping[str, object], player: "Player") -> List[str]:
    effects, errors = parse_effects(attributes)
    return apply_effects(effects, player, errors)
