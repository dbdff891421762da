import pytest

from arcana.conditions import Condition, is_satisfied, parse_condition, valid_options
from arcana.localization import LocalizedText
from arcana.model import Option, Scene
from arcana.player import Player


def lookup_from(values: dict):
    return lambda key: values.get(key, 0)


@pytest.mark.parametrize(
    ("condition", "gold", "expected"),
    [
        ("gold >= 10", 10, True),
        ("gold >= 10", 9, False),
        ("gold > 10", 10, False),
        ("gold < 10", 9, True),
        ("gold <= 10", 10, True),
        ("gold == 10", 10, True),
        ("gold != 10", 10, False),
        ("gold >= -5", 0, True),
    ],
)
def test_comparisons(condition: str, gold: int, expected: bool) -> None:
    assert is_satisfied(condition, lookup_from({"gold": gold})) is expected


@pytest.mark.parametrize("condition", [None, "", "   "])
def test_blank_condition_is_always_satisfied(condition) -> None:
    assert is_satisfied(condition, lookup_from({}))


@pytest.mark.parametrize(
    "condition",
    ["gold >= ten", "gold >=10", "gold => 10", "gold >= 10 extra", "gold"],
)
def test_malformed_condition_is_not_satisfied(condition: str) -> None:
    assert parse_condition(condition) is None
    assert is_satisfied(condition, lookup_from({"gold": 100})) is False


def test_missing_attribute_compares_as_zero() -> None:
    assert is_satisfied("keys == 0", lookup_from({}))


def test_parse_condition_builds_triple() -> None:
    assert parse_condition("gold >= 10") == Condition("gold", ">=", 10)


def test_valid_options_filters_in_order() -> None:
    scene = Scene(
        id="s",
        text=LocalizedText.single("Pick"),
        options=(
            Option(LocalizedText.single("Rich"), "a", "gold >= 10"),
            Option(LocalizedText.single("Free"), "b"),
            Option(LocalizedText.single("Broken"), "c", "gold >= ten"),
            Option(LocalizedText.single("Poor"), "d", "gold < 10"),
        ),
    )
    player = Player()
    player.set_attribute("gold", 3)

    labels = [option.text.get_text() for option in valid_options(scene, player)]

    assert labels == ["Free", "Poor"]
