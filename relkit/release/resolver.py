"""Next-version resolution.

`resolve` is a pure function: given the latest version and the requested
increment it returns the next version, or None when the operator has to be
asked (interactive) or the run must fail (CI).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from relkit.release.semver import (
    ALL_RELEASE_TYPES,
    CONTINUATION_TYPES,
    PRERELEASE_TYPES,
    RELEASE_TYPES,
    ReleaseType,
    SemVer,
    coerce,
)

__all__ = ["IncrementChoice", "increment_choices", "resolve"]

Increment = str | bool | None

_PRE_TYPE_OF: dict[ReleaseType, ReleaseType] = {
    "patch": "prepatch",
    "minor": "preminor",
    "major": "premajor",
}


def _as_release_type(increment: Increment) -> ReleaseType | None:
    for kind in ALL_RELEASE_TYPES:
        if increment == kind:
            return kind
    return None


def resolve(
    latest_version: str,
    increment: Increment,
    *,
    is_ci: bool = False,
    is_pre_release: bool = False,
    pre_release_id: str | None = None,
    pre_release_base: str | None = None,
    warn: Callable[[str], None] | None = None,
) -> str | None:
    """Compute the next version.

    Args:
        latest_version: Latest released version (callers default it to "0.0.0").
        increment: Release type, explicit version, False for "no bump", or None.
        is_ci: Unattended mode; a missing increment defaults to patch.
        is_pre_release: Pre-release mode requested.
        pre_release_id: Pre-release identifier ("beta").
        pre_release_base: First pre-release counter value ("0" or "1").
        warn: Called once when the increment had to be coerced.

    Returns:
        The next version, or None when it cannot be determined.
    """
    if increment is False:
        return latest_version

    latest = SemVer.parse(latest_version)
    if latest is None:
        return None

    explicit = SemVer.parse(increment) if isinstance(increment, str) else None
    if explicit is not None and explicit > latest:
        return str(explicit)

    kind = _as_release_type(increment)
    pre_mode = is_pre_release or (kind is not None and kind.startswith("pre"))

    no_increment = increment is None or increment == ""
    if pre_mode and latest.is_prerelease and (no_increment or kind in CONTINUATION_TYPES):
        return str(latest.inc("prerelease", pre_release_id, pre_release_base))

    if no_increment:
        if not is_ci:
            return None
        kind = "prepatch" if is_pre_release else "patch"

    if kind is not None and is_pre_release:
        kind = _PRE_TYPE_OF.get(kind, kind)

    if kind is not None:
        if kind in CONTINUATION_TYPES or kind in PRERELEASE_TYPES:
            return str(latest.inc(kind, pre_release_id, pre_release_base))
        return str(latest.inc(kind))

    if explicit is None and isinstance(increment, str):
        coerced = coerce(increment)
        if coerced is not None:
            if warn is not None:
                warn(f'Coerced invalid semver version "{increment}" into "{coerced}".')
            return str(coerced)

    return None


@dataclass(frozen=True, slots=True)
class IncrementChoice:
    label: str
    increment: ReleaseType | None  # None: "Other", ask for an explicit version


def increment_choices(
    latest_version: str,
    *,
    is_pre_release: bool = False,
    pre_release_id: str | None = None,
    pre_release_base: str | None = None,
) -> list[IncrementChoice]:
    """Choices for the interactive increment list."""
    latest = SemVer.parse(latest_version) or SemVer(0, 0, 0)
    if latest.is_prerelease:
        kinds: tuple[ReleaseType, ...] = (*RELEASE_TYPES, "prerelease")
    elif is_pre_release:
        kinds = PRERELEASE_TYPES
    else:
        kinds = (*RELEASE_TYPES, *PRERELEASE_TYPES)

    choices: list[IncrementChoice] = []
    for kind in kinds:
        if kind in RELEASE_TYPES:
            next_version = latest.inc(kind)
        else:
            next_version = latest.inc(kind, pre_release_id, pre_release_base)
        choices.append(IncrementChoice(label=f"{kind} ({next_version})", increment=kind))
    choices.append(IncrementChoice(label="Other, please specify...", increment=None))
    return choices
