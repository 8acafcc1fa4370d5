"""Interactive prompt adapter.

Plugins describe a question with PromptSpec; the adapter answers with
{spec.name: answer}. Only used when the run is interactive (not CI).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Literal, Protocol

from .console import ConsoleProtocol, Style

__all__ = [
    "MockPrompt",
    "PromptChoice",
    "PromptProtocol",
    "PromptSpec",
    "TyperPrompt",
]

PromptType = Literal["confirm", "input", "list"]


@dataclass(frozen=True, slots=True)
class PromptChoice:
    name: str
    value: object


@dataclass(frozen=True, slots=True)
class PromptSpec:
    """A single question.

    Attributes:
        type: confirm (yes/no), input (free text) or list (pick one choice)
        name: Key of the answer in the returned mapping
        message: Question shown to the operator
        default: Default answer
        choices: Choices for list prompts
        validate: Returns an error message for invalid input, None when valid
    """

    type: PromptType
    name: str
    message: str
    default: object = None
    choices: tuple[PromptChoice, ...] = ()
    validate: Callable[[str], str | None] | None = None


class PromptProtocol(Protocol):
    def show(self, spec: PromptSpec) -> dict[str, object]: ...


class TyperPrompt:
    """Terminal prompts via typer."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def show(self, spec: PromptSpec) -> dict[str, object]:
        import typer

        match spec.type:
            case "confirm":
                answer: object = typer.confirm(spec.message, default=bool(spec.default))
            case "input":
                answer = self._input(spec)
            case "list":
                answer = self._select(spec)
        return {spec.name: answer}

    def _input(self, spec: PromptSpec) -> str:
        import typer

        default = spec.default if isinstance(spec.default, str) else None
        while True:
            value = str(typer.prompt(spec.message, default=default)).strip()
            problem = spec.validate(value) if spec.validate else None
            if problem is None:
                return value
            self._console.warning(problem)

    def _select(self, spec: PromptSpec) -> object:
        import typer

        self._console.print(spec.message, Style.BOLD)
        for index, choice in enumerate(spec.choices, start=1):
            self._console.print(f"  {index}) {choice.name}")
        while True:
            picked = typer.prompt("Select", default=1, type=int)
            if 1 <= picked <= len(spec.choices):
                return spec.choices[picked - 1].value
            self._console.warning(f"pick a number between 1 and {len(spec.choices)}")


def _no_answers() -> dict[str, object]:
    return {}


def _no_specs() -> list[PromptSpec]:
    return []


@dataclass
class MockPrompt:
    """Scripted prompt for tests.

    Answers are looked up by prompt name; a callable answer receives the PromptSpec.
    Without a scripted answer: confirm -> True, list -> first choice,
    input -> the default.
    """

    answers: Mapping[str, object] = field(default_factory=_no_answers)
    shown: list[PromptSpec] = field(default_factory=_no_specs)

    def show(self, spec: PromptSpec) -> dict[str, object]:
        self.shown.append(spec)
        if spec.name in self.answers:
            answer = self.answers[spec.name]
            if callable(answer):
                answer = answer(spec)
            return {spec.name: answer}
        match spec.type:
            case "confirm":
                return {spec.name: True}
            case "list":
                return {spec.name: spec.choices[0].value if spec.choices else None}
            case "input":
                return {spec.name: spec.default}

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self.shown]
