"""Output channels the engine talks to: console and queue-backed chat."""

from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .localization import Language

DEFAULT_CHOICE_TIMEOUT = 3600.0

InputFunc = Callable[[str], "str | Awaitable[str]"]
PrintFunc = Callable[[str], None]

INVALID_CHOICE_TEXT = {
    Language.EN: "Pick a valid number.",
    Language.RU: "Выберите правильный номер.",
}
STATUS_HEADING_TEXT = {
    Language.EN: "Status",
    Language.RU: "Состояние",
}


class ChannelError(Exception):
    """Raised when a channel cannot deliver a choice."""


class ChoiceTimeout(ChannelError):
    """Raised when no reply arrives within the channel's bounded wait."""


@runtime_checkable
class OutputChannel(Protocol):
    def send_message(self, text: str) -> None: ...

    async def send_options_message(self, text: str, options: Sequence[str]) -> int: ...

    def get_current_language(self) -> Language: ...

    def set_current_language(self, language: Language) -> None: ...

    def display_player_status(self, attributes: Mapping[str, int]) -> None: ...


async def read_input(prompt: str = "") -> str:
    return await asyncio.to_thread(input, prompt)


async def _resolve_input(input_func: InputFunc, prompt: str) -> str:
    result = input_func(prompt)
    if inspect.isawaitable(result):
        return await result
    return result


def localized_chrome(table: Mapping[Language, str], language: Language) -> str:
    return table.get(language) or table[Language.EN]


def format_attributes(attributes: Mapping[str, int], *, empty: str = "—") -> str:
    if not attributes:
        return empty
    return ", ".join(f"{key}: {value}" for key, value in sorted(attributes.items()))


def parse_choice(raw: str, options: Sequence[str]) -> Optional[int]:
    """Map a 1-based number or an exact option label to a zero-based index."""
    choice = (raw or "").strip()
    if choice.isdigit():
        index = int(choice)
        if 1 <= index <= len(options):
            return index - 1
        return None
    for index, label in enumerate(options):
        if choice and choice == label.strip():
            return index
    return None


def render_options(text: str, options: Sequence[str]) -> List[str]:
    lines = [text] if text else []
    lines.extend(f"  {idx}. {label}" for idx, label in enumerate(options, start=1))
    return lines


class ConsoleChannel:
    """Line-oriented terminal channel; re-prompts on invalid input."""

    def __init__(
        self,
        *,
        input_func: InputFunc = read_input,
        print_func: PrintFunc = print,
        language: Language = Language.EN,
    ) -> None:
        self.input_func = input_func
        self.print = print_func
        self._language = language

    def send_message(self, text: str) -> None:
        if text:
            self.print(text)

    async def send_options_message(self, text: str, options: Sequence[str]) -> int:
        if not options:
            raise ChannelError("No options to choose from.")
        for line in render_options(text, options):
            self.print(line)
        while True:
            try:
                raw = await _resolve_input(self.input_func, "> ")
            except EOFError as exc:
                raise ChannelError("Input stream closed.") from exc
            index = parse_choice(raw, options)
            if index is not None:
                return index
            self.print(localized_chrome(INVALID_CHOICE_TEXT, self._language))

    def get_current_language(self) -> Language:
        return self._language

    def set_current_language(self, language: Language) -> None:
        self._language = language

    def display_player_status(self, attributes: Mapping[str, int]) -> None:
        heading = localized_chrome(STATUS_HEADING_TEXT, self._language)
        self.print(f"[{heading}] {format_attributes(attributes)}")


class QueueChannel:
    """Chat-style channel: replies arrive asynchronously and waits are bounded."""

    def __init__(
        self,
        *,
        timeout: float | None = DEFAULT_CHOICE_TIMEOUT,
        send_func: Optional[PrintFunc] = None,
        language: Language = Language.EN,
    ) -> None:
        self.timeout = timeout
        self.outbox: List[str] = []
        self._send_func = send_func
        self._language = language
        self._replies: asyncio.Queue[str] = asyncio.Queue()

    def submit_reply(self, text: str) -> None:
        self._replies.put_nowait(text)

    def send_message(self, text: str) -> None:
        if text:
            self._emit(text)

    async def send_options_message(self, text: str, options: Sequence[str]) -> int:
        if not options:
            raise ChannelError("No options to choose from.")
        self._emit("\n".join(render_options(text, options)))
        while True:
            try:
                reply = await asyncio.wait_for(self._replies.get(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                raise ChoiceTimeout(f"No reply within {self.timeout} seconds.") from exc
            index = parse_choice(reply, options)
            if index is not None:
                return index
            self._emit(localized_chrome(INVALID_CHOICE_TEXT, self._language))

    def get_current_language(self) -> Language:
        return self._language

    def set_current_language(self, language: Language) -> None:
        self._language = language

    def display_player_status(self, attributes: Mapping[str, int]) -> None:
        heading = localized_chrome(STATUS_HEADING_TEXT, self._language)
        self._emit(f"{heading}:\n" + "\n".join(
            f"{key}: {value}" for key, value in sorted(attributes.items())
        ))

    def _emit(self, text: str) -> None:
        self.outbox.append(text)
        if self._send_func is not None:
            self._send_func(text)
