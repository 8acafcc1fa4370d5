"""Increment recommendation from conventional commit messages.

An increment of the form `conventional[:<preset>]` asks for the release
type to be derived from the commits since the latest tag:
- a `!` after the type or a BREAKING CHANGE footer recommends major
- a `feat` commit recommends minor
- any other commit recommends patch
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from relkit.release.semver import ReleaseType

__all__ = ["DEFAULT_PRESET", "RECOMMENDATION_SYSTEM", "recommend_increment", "recommendation_preset"]

RECOMMENDATION_SYSTEM = "conventional"
DEFAULT_PRESET = "angular"

_HEADER = re.compile(r"^(?P<type>[A-Za-z]+)(?:\([^)]*\))?(?P<breaking>!)?:\s")
_BREAKING_NOTE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

# Most significant first.
_LEVELS: tuple[ReleaseType, ...] = ("major", "minor", "patch")


def recommendation_preset(increment: object) -> str | None:
    """Preset named by a `conventional[:<preset>]` increment, None for any other value."""
    if not isinstance(increment, str):
        return None
    system, _, preset = increment.partition(":")
    if system != RECOMMENDATION_SYSTEM:
        return None
    return preset or DEFAULT_PRESET


def _level(message: str) -> int:
    header = _HEADER.match(message)
    if (header and header.group("breaking")) or _BREAKING_NOTE.search(message):
        return 0
    if header and header.group("type").lower() == "feat":
        return 1
    return 2


def recommend_increment(messages: Iterable[str]) -> ReleaseType | None:
    """Release type for a batch of commit messages, None when there are none."""
    level: int | None = None
    for message in messages:
        text = message.strip()
        if not text:
            continue
        level = _level(text) if level is None else min(level, _level(text))
        if level == 0:
            break
    return None if level is None else _LEVELS[level]
