"""Hierarchical, mergeable run state shared by all plugins.

The store keeps one shared root plus a private overlay per plugin
namespace. Plugins write only to their overlay; the orchestrator promotes
run-level facts (version, changelog, ...) into the root.

Reads never cache: every read rebuilds the merged view, so a value written
by one plugin is visible to the next reader immediately.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping

from .structured import StrDict, as_str_dict

__all__ = [
    "ContextStore",
    "deep_merge",
    "get_path",
]


def deep_merge(*sources: Mapping[str, object] | None) -> StrDict:
    """Merge mappings left to right into a new dict.

    Nested mappings merge recursively; any other value from a later source
    replaces the earlier one (lists included). Inputs are not mutated.
    """
    out: StrDict = {}
    for source in sources:
        if not source:
            continue
        for key, value in source.items():
            if isinstance(value, Mapping):
                nested = {str(k): v for k, v in value.items()}
                out[key] = deep_merge(as_str_dict(out.get(key)), nested)
            else:
                out[key] = copy.deepcopy(value)
    return out


def get_path(data: Mapping[str, object], path: str, default: object = None) -> object:
    """Look up a dotted path ("repo.project") in nested mappings."""
    current: object = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


class ContextStore:
    """Shared root plus per-namespace private overlays."""

    def __init__(self, root: Mapping[str, object] | None = None) -> None:
        self._root: StrDict = deep_merge(root)
        self._overlays: dict[str, StrDict] = {}

    def get(self, path: str | None = None) -> object:
        """Read the shared root, or a dotted path inside it."""
        if path is None:
            return deep_merge(self._root)
        return copy.deepcopy(get_path(self._root, path))

    def root(self) -> StrDict:
        return deep_merge(self._root)

    def set(self, partial: Mapping[str, object]) -> None:
        """Deep-merge into the shared root (last writer wins)."""
        self._root = deep_merge(self._root, partial)

    def overlay(self, namespace: str) -> StrDict:
        return deep_merge(self._overlays.get(namespace))

    def set_overlay(self, namespace: str, partial: Mapping[str, object]) -> None:
        self._overlays[namespace] = deep_merge(self._overlays.get(namespace), partial)

    def namespaces(self) -> tuple[str, ...]:
        return tuple(self._overlays)

    def view(self, views: Mapping[str, Mapping[str, object]] | None = None) -> StrDict:
        """Template view: shared root with each plugin's merged view under its namespace.

        Args:
            views: namespace -> plugin view (frozen options merged with overlay).
                Namespaces without an entry fall back to their bare overlay.
        """
        scoped: StrDict = {ns: overlay for ns, overlay in self._overlays.items()}
        if views:
            scoped.update({ns: dict(v) for ns, v in views.items()})
        return deep_merge(self._root, scoped)
