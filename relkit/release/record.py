"""Outcome of a release cycle."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from relkit.core.structured import get_str

__all__ = ["ReleaseRecord", "TargetResult"]


@dataclass(frozen=True, slots=True)
class TargetResult:
    is_released: bool = False
    release_url: str | None = None


def _no_targets() -> dict[str, TargetResult]:
    return {}


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """What was released.

    Attributes:
        name: Project name
        latest_version: Version before the release
        version: Released version
        is_pre_release: Whether version carries a pre-release component
        pre_release_id: Pre-release identifier ("beta"), if any
        tag_name: Git tag created for the release
        changelog: Changelog text shown and used for release notes
        targets: Per remote namespace, whether it released and where
    """

    name: str | None
    latest_version: str
    version: str
    is_pre_release: bool = False
    pre_release_id: str | None = None
    tag_name: str | None = None
    changelog: str | None = None
    targets: dict[str, TargetResult] = field(default_factory=_no_targets)

    @property
    def is_update(self) -> bool:
        return self.version == self.latest_version

    @classmethod
    def from_context(
        cls,
        root: Mapping[str, object],
        *,
        tag_name: str | None = None,
        targets: Mapping[str, Mapping[str, object]] | None = None,
    ) -> ReleaseRecord:
        """Build from the shared context root and the remote targets' plugin views."""
        results = {
            ns: TargetResult(
                is_released=view.get("isReleased") is True,
                release_url=get_str(view, "releaseUrl"),
            )
            for ns, view in (targets or {}).items()
        }
        return cls(
            name=get_str(root, "name"),
            latest_version=get_str(root, "latestVersion") or "0.0.0",
            version=get_str(root, "version") or "0.0.0",
            is_pre_release=root.get("isPreRelease") is True,
            pre_release_id=get_str(root, "preReleaseId"),
            tag_name=tag_name,
            changelog=get_str(root, "changelog"),
            targets=results,
        )
