"""Output abstraction layer (console, prompts)."""

from .console import (
    ConsoleProtocol,
    MockConsole,
    RichConsole,
    Style,
)
from .prompt import MockPrompt, PromptChoice, PromptProtocol, PromptSpec, TyperPrompt

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "MockPrompt",
    "PromptChoice",
    "PromptProtocol",
    "PromptSpec",
    "RichConsole",
    "Style",
    "TyperPrompt",
]
