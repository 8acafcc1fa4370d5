"""Process execution and the templated shell adapter."""

from .process import ProcessError, run
from .shell import MockShell, Shell, ShellCall, ShellError, ShellProtocol

__all__ = [
    "MockShell",
    "ProcessError",
    "Shell",
    "ShellCall",
    "ShellError",
    "ShellProtocol",
    "run",
]
