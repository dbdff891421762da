"""Option guard conditions: ``<attribute> <operator> <integer>``."""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Mapping, Optional, Union

if TYPE_CHECKING:
    from .model import Option, Scene
    from .player import Player

logger = logging.getLogger(__name__)

AttributeLookup = Callable[[str], int]

OPERATORS: Mapping[str, Callable[[int, int], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


@dataclass(frozen=True)
class Condition:
    attribute: str
    operator: str
    value: int

    def evaluate(self, lookup: AttributeLookup) -> bool:
        compare = OPERATORS.get(self.operator)
        if compare is None:
            return False
        return compare(lookup(self.attribute), self.value)

    def __str__(self) -> str:
        return f"{self.attribute} {self.operator} {self.value}"


def parse_condition(text: object) -> Optional[Condition]:
    """Parse a condition string, returning ``None`` when it is malformed."""
    if not isinstance(text, str):
        return None
    parts = text.split()
    if len(parts) != 3:
        logger.debug("Condition %r does not have three tokens.", text)
        return None
    attribute, op, raw_value = parts
    if op not in OPERATORS:
        logger.debug("Condition %r uses unknown operator %r.", text, op)
        return None
    try:
        value = int(raw_value)
    except ValueError:
        logger.debug("Condition %r has a non-integer value %r.", text, raw_value)
        return None
    return Condition(attribute=attribute, operator=op, value=value)


def is_blank_condition(condition: object) -> bool:
    return condition is None or (isinstance(condition, str) and not condition.strip())


def is_satisfied(condition: Union[Condition, str, None], lookup: AttributeLookup) -> bool:
    if is_blank_condition(condition):
        return True
    if isinstance(condition, str):
        condition = parse_condition(condition)
    if condition is None:
        return False
    return condition.evaluate(lookup)


def option_available(option: "Option", player: "Player") -> bool:
    if not option.has_condition:
        return True
    if option.condition is None:
        # Failed to parse at load time.
        return False
    return option.condition.evaluate(player.get_attribute)


def valid_options(scene: "Scene", player: "Player") -> List["Option"]:
    return [option for option in scene.options if option_available(option, player)]
