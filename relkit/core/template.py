"""`${name}` template rendering for commit messages, tag names and hooks.

Placeholders may use dotted paths into nested context
(`${repo.project}`, `${git.tagName}`). Unknown or empty placeholders are
left as-is.
"""

from __future__ import annotations

import string
from collections.abc import Iterator, Mapping

from .context import get_path

__all__ = ["render"]

_MISSING = object()


class _DottedTemplate(string.Template):
    idpattern = r"(?a:[_a-z][_a-z0-9]*(?:\.[_a-z0-9]+)*)"


class _PathLookup(Mapping[str, object]):
    def __init__(self, context: Mapping[str, object]) -> None:
        self._context = context

    def __getitem__(self, key: str) -> object:
        value = get_path(self._context, key, _MISSING)
        if value is _MISSING or value is None:
            raise KeyError(key)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self._context)

    def __len__(self) -> int:
        return len(self._context)


def render(template: str, context: Mapping[str, object]) -> str:
    """Render a template string against a (nested) context."""
    if "$" not in template:
        return template
    return _DottedTemplate(template).safe_substitute(_PathLookup(context))
