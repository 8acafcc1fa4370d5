"""Release plugins: contract, built-ins and loading."""

from .base import AssetUploads, Container, IncrementRequest, Plugin, ReleaseNotes
from .registry import BUILTIN_PLUGINS, get_plugins, load_plugin_class

__all__ = [
    "AssetUploads",
    "BUILTIN_PLUGINS",
    "Container",
    "IncrementRequest",
    "Plugin",
    "ReleaseNotes",
    "get_plugins",
    "load_plugin_class",
]
