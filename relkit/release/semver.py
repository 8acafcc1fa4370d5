"""Semantic versions with full SemVer 2.0.0 precedence.

Increment rules follow the de-facto npm `semver` behavior, which is what
release tooling users expect (e.g. `1.0.0-rc.1` + patch = `1.0.0`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Literal

__all__ = [
    "ALL_RELEASE_TYPES",
    "CONTINUATION_TYPES",
    "PRERELEASE_TYPES",
    "RELEASE_TYPES",
    "ReleaseType",
    "SemVer",
    "coerce",
]

ReleaseType = Literal["major", "minor", "patch", "premajor", "preminor", "prepatch", "prerelease", "pre"]

RELEASE_TYPES: tuple[ReleaseType, ...] = ("patch", "minor", "major")
PRERELEASE_TYPES: tuple[ReleaseType, ...] = ("prepatch", "preminor", "premajor")
CONTINUATION_TYPES: tuple[ReleaseType, ...] = ("prerelease", "pre")
ALL_RELEASE_TYPES: tuple[ReleaseType, ...] = (*RELEASE_TYPES, *PRERELEASE_TYPES, *CONTINUATION_TYPES)

_IDENT = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_COERCE_RE = re.compile(r"(?<!\d)(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?!\d)")

Identifier = int | str


def _parse_identifier(raw: str) -> Identifier:
    return int(raw) if raw.isdigit() else raw


def _identifier_key(ident: Identifier) -> tuple[int, int, str]:
    # Numeric identifiers sort before alphanumeric ones.
    if isinstance(ident, int):
        return (0, ident, "")
    return (1, 0, ident)


@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    @classmethod
    def parse(cls, raw: str | None) -> SemVer | None:
        """Parse a strict semantic version (a leading "v" is tolerated)."""
        if not raw:
            return None
        m = _SEMVER_RE.match(raw.strip())
        if m is None:
            return None
        pre = tuple(_parse_identifier(p) for p in m.group(4).split(".")) if m.group(4) else ()
        build = tuple(m.group(5).split(".")) if m.group(5) else ()
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre, build)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def prerelease_id(self) -> str | None:
        """Leading non-numeric pre-release identifier ("beta" in 2.0.0-beta.3)."""
        if self.prerelease and isinstance(self.prerelease[0], str):
            return self.prerelease[0]
        return None

    def _key(self) -> tuple[object, ...]:
        pre = tuple(_identifier_key(i) for i in self.prerelease)
        # A version without pre-release has higher precedence than any with one.
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __lt__(self, other: SemVer) -> bool:
        return self._key() < other._key()

    def __le__(self, other: SemVer) -> bool:
        return self._key() <= other._key()

    def __gt__(self, other: SemVer) -> bool:
        return self._key() > other._key()

    def __ge__(self, other: SemVer) -> bool:
        return self._key() >= other._key()

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            out += "-" + ".".join(str(i) for i in self.prerelease)
        return out

    def inc(self, kind: ReleaseType, identifier: str | None = None, base: str | None = None) -> SemVer:
        """Return the next version for a release type.

        Args:
            kind: One of ALL_RELEASE_TYPES.
            identifier: Pre-release identifier ("alpha", "rc").
            base: First pre-release counter value, "0" (default) or "1".
        """
        match kind:
            case "major":
                if self.minor == 0 and self.patch == 0 and self.prerelease:
                    return SemVer(self.major, 0, 0)
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                if self.patch == 0 and self.prerelease:
                    return SemVer(self.major, self.minor, 0)
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                if self.prerelease:
                    return SemVer(self.major, self.minor, self.patch)
                return SemVer(self.major, self.minor, self.patch + 1)
            case "premajor":
                return SemVer(self.major + 1, 0, 0)._pre(identifier, base)
            case "preminor":
                return SemVer(self.major, self.minor + 1, 0)._pre(identifier, base)
            case "prepatch":
                return SemVer(self.major, self.minor, self.patch).inc("patch")._pre(identifier, base)
            case "prerelease":
                start = self if self.prerelease else self.inc("patch")
                return start._pre(identifier, base)
            case "pre":
                return self._pre(identifier, base)
            case _:
                raise AssertionError(f"unexpected release type: {kind}")

    def _pre(self, identifier: str | None, base: str | None) -> SemVer:
        first = 1 if base == "1" else 0
        if not self.prerelease:
            pre: list[Identifier] = [first]
        else:
            pre = list(self.prerelease)
            for i in range(len(pre) - 1, -1, -1):
                ident = pre[i]
                if isinstance(ident, int):
                    pre[i] = ident + 1
                    break
            else:
                pre.append(first)

        if identifier:
            same_id = pre[0] == identifier
            if not same_id or len(pre) < 2 or not isinstance(pre[1], int):
                pre = [identifier, first]

        return replace(self, prerelease=tuple(pre), build=())


def coerce(raw: str | None) -> SemVer | None:
    """Leniently coerce text into a version ("1.2" -> 1.2.0, "v3" -> 3.0.0)."""
    if not raw:
        return None
    m = _COERCE_RE.search(raw)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2) or 0), int(m.group(3) or 0))
