"""Validation for declarative game documents."""

from __future__ import annotations

import json
from collections import Counter
from typing import Any, Iterable, List, Mapping, Sequence

from .conditions import is_blank_condition, parse_condition
from .effects import EffectError, parse_effect
from .localization import Language


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f"{path_str}[{json.dumps(part, ensure_ascii=False)}]"
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))

    def warn(self, context: str, path_str: str, message: str) -> None:
        self.warnings.append(format_validation_message(path_str, context, message))

    def extend(self, messages: Iterable[str]) -> None:
        self.errors.extend(messages)

    def ok(self) -> bool:
        return not self.errors


def validate_localized(
    value: Any,
    context: str,
    path_parts: Sequence[object],
    ctx: ValidationContext,
    *,
    required: bool = True,
) -> None:
    if value is None:
        if required:
            ctx.add(context, path(*path_parts), "requires localized text.")
        return
    if isinstance(value, str):
        return
    if not isinstance(value, Mapping):
        ctx.add(context, path(*path_parts), "must map language codes to text.")
        return
    if required and not value:
        ctx.add(context, path(*path_parts), "must contain at least one language.")
    for code, text in value.items():
        if Language.from_code(code) is None:
            ctx.add(context, path(*path_parts, code), f"unknown language code '{code}'.")
        if not isinstance(text, str):
            ctx.add(context, path(*path_parts, code), "text must be a string.")


def validate_effects(
    attributes: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    if attributes is None:
        return
    if not isinstance(attributes, Mapping):
        ctx.add(context, path(*path_parts), "'attributes' must be an object.")
        return
    for key, value in attributes.items():
        if not is_non_empty_str(key):
            ctx.add(context, path(*path_parts), "attribute names must be non-empty strings.")
            continue
        try:
            parse_effect(key, value)
        except EffectError as exc:
            ctx.warn(context, path(*path_parts, key), str(exc))


def validate_option(
    option: Any,
    scene_id: str,
    index: int,
    scene_ids: Iterable[str],
    path_parts: Sequence[object],
    ctx: ValidationContext,
) -> None:
    context = f"Option {index} in scene '{scene_id}'"
    if not isinstance(option, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return

    validate_localized(option.get("text"), context, (*path_parts, "text"), ctx)

    target = option.get("nextSceneId")
    if target is None:
        ctx.add(context, path(*path_parts, "nextSceneId"), "is missing a 'nextSceneId'.")
    elif not is_non_empty_str(target):
        ctx.add(context, path(*path_parts, "nextSceneId"), "must be a non-empty string.")
    elif target not in scene_ids:
        ctx.add(
            context,
            path(*path_parts, "nextSceneId"),
            f"targets unknown scene '{target}'.",
        )

    condition = option.get("condition")
    if is_blank_condition(condition):
        return
    if not isinstance(condition, str):
        ctx.warn(context, path(*path_parts, "condition"), "condition must be a string or null.")
    elif parse_condition(condition) is None:
        ctx.warn(
            context,
            path(*path_parts, "condition"),
            f"condition '{condition}' must look like '<attribute> <op> <integer>'.",
        )


def validate_game(game: Any) -> List[str]:
    return check_game(game).errors


def check_game(game: Any) -> ValidationContext:
    """Collect blocking errors and recoverable warnings for one game document."""
    ctx = ValidationContext()
    if not isinstance(game, Mapping):
        ctx.add("Game data", "$", "must be a JSON object.")
        return ctx

    if not is_non_empty_str(game.get("id")):
        ctx.add("Game data", path("id"), "must include a non-empty 'id'.")

    default_language = game.get("defaultLanguage")
    if default_language is not None and Language.from_code(default_language) is None:
        ctx.add("Game data", path("defaultLanguage"), f"unknown language code '{default_language}'.")

    localizations = game.get("localizations")
    if localizations is not None:
        if not isinstance(localizations, Mapping):
            ctx.add("Game data", path("localizations"), "must map language codes to title blocks.")
        else:
            for code, block in localizations.items():
                if Language.from_code(code) is None:
                    ctx.add("Localizations", path("localizations", code), f"unknown language code '{code}'.")
                if not isinstance(block, Mapping):
                    ctx.add("Localizations", path("localizations", code), "must be an object.")

    initial = game.get("initialAttributes")
    if initial is not None:
        if not isinstance(initial, Mapping):
            ctx.add("Game data", path("initialAttributes"), "must be an object.")
        else:
            for key, value in initial.items():
                if not isinstance(value, int) or isinstance(value, bool):
                    ctx.add(
                        "Game data",
                        path("initialAttributes", key),
                        "initial attribute values must be integers.",
                    )

    game_attributes = game.get("gameAttributes")
    if game_attributes is not None and not isinstance(game_attributes, Mapping):
        ctx.add("Game data", path("gameAttributes"), "must be an object.")

    scenes = game.get("scenes")
    if not is_list(scenes):
        ctx.add("Game data", path("scenes"), "must include a 'scenes' list.")
        scenes = []

    scene_ids: List[str] = []
    for idx, scene in enumerate(scenes):
        if not isinstance(scene, Mapping):
            ctx.add(f"Scene entry {idx + 1}", path("scenes", idx), "must be an object.")
            continue
        scene_id = scene.get("id")
        if not is_non_empty_str(scene_id):
            ctx.add(f"Scene entry {idx + 1}", path("scenes", idx, "id"), "is missing a valid 'id'.")
            continue
        scene_ids.append(scene_id)

    duplicates = [scene_id for scene_id, count in Counter(scene_ids).items() if count > 1]
    if duplicates:
        ctx.add("Scenes", path("scenes"), f"duplicate scene IDs found: {', '.join(sorted(duplicates))}.")

    start = game.get("startSceneId")
    if not is_non_empty_str(start):
        ctx.add("Game data", path("startSceneId"), "must include a non-empty 'startSceneId'.")
    elif start not in scene_ids:
        ctx.add("Game data", path("startSceneId"), f"references unknown scene '{start}'.")

    known = set(scene_ids)
    for idx, scene in enumerate(scenes):
        if not isinstance(scene, Mapping) or not is_non_empty_str(scene.get("id")):
            continue
        scene_id = scene["id"]
        context = f"Scene '{scene_id}'"
        validate_localized(scene.get("text"), context, ("scenes", idx, "text"), ctx)
        validate_effects(scene.get("attributes"), context, ("scenes", idx, "attributes"), ctx)

        options = scene.get("options")
        if options is None:
            options = []
        if not is_list(options):
            ctx.add(context, path("scenes", idx, "options"), "options must be provided as a list.")
            continue
        is_end = scene.get("isEnd", False)
        if not isinstance(is_end, bool):
            ctx.add(context, path("scenes", idx, "isEnd"), "'isEnd' must be a boolean.")
        elif is_end and options:
            ctx.warn(context, path("scenes", idx, "options"), "end scenes must not have options.")
        for opt_idx, option in enumerate(options):
            validate_option(
                option,
                scene_id,
                opt_idx + 1,
                known,
                ("scenes", idx, "options", opt_idx),
                ctx,
            )

    return ctx
