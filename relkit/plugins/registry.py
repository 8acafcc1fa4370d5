"""Plugin discovery and instantiation.

External plugins come from the `plugins` table:

    [plugins]
    "my_pkg.release:MyPlugin" = { foo = 1 }          # namespace "release"
    "./tools/notify.py" = ["notify", { url = "..." }] # explicit namespace

A reference is `module:Class`, a module (its single Plugin subclass is
used), or a path to a .py file relative to the project directory.
External plugins run first, in configuration order, then the built-ins.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
from collections.abc import Mapping
from pathlib import Path
from types import ModuleType

from relkit.core.config import Config
from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_obj_list, as_str_dict
from relkit.release.errors import ReleaseError

from .base import Container, Plugin
from .git import GitPlugin
from .github import GitHubPlugin
from .gitlab import GitLabPlugin
from .npm import NpmPlugin
from .version import VersionPlugin

__all__ = ["BUILTIN_PLUGINS", "get_plugins", "load_plugin_class"]

BUILTIN_PLUGINS: dict[str, type[Plugin]] = {
    cls.namespace_name: cls for cls in (VersionPlugin, GitPlugin, GitHubPlugin, GitLabPlugin, NpmPlugin)
}


def _load_error(reference: str, message: str) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="plugin_load", message=f"Cannot load plugin {reference}: {message}"))


def _import_module(reference: str, *, cwd: Path) -> Result[ModuleType, ReleaseError]:
    if reference.endswith(".py"):
        path = Path(reference)
        path = path if path.is_absolute() else cwd / path
        if not path.is_file():
            return _load_error(reference, f"{path} not found")
        spec = importlib.util.spec_from_file_location(f"relkit_plugin_{path.stem}", path)
        if spec is None or spec.loader is None:
            return _load_error(reference, "not a python module")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:  # noqa: BLE001
            return _load_error(reference, str(e))
        return Ok(module)

    try:
        return Ok(importlib.import_module(reference))
    except Exception as e:  # noqa: BLE001
        return _load_error(reference, str(e))


def _default_namespace(reference: str) -> str:
    module_ref = reference.split(":", 1)[0]
    if module_ref.endswith(".py"):
        return Path(module_ref).stem
    return module_ref.rsplit(".", 1)[-1]


def load_plugin_class(reference: str, *, cwd: Path) -> Result[type[Plugin], ReleaseError]:
    """Resolve a plugin reference to a Plugin subclass."""
    module_ref, _, class_name = reference.partition(":")
    module = _import_module(module_ref, cwd=cwd)
    if isinstance(module, Err):
        return module

    if class_name:
        candidate = getattr(module.value, class_name, None)
        if not (inspect.isclass(candidate) and issubclass(candidate, Plugin)):
            return _load_error(reference, f"{class_name} is not a Plugin subclass")
        return Ok(candidate)

    found = [
        obj
        for obj in vars(module.value).values()
        if inspect.isclass(obj)
        and issubclass(obj, Plugin)
        and obj.__module__ == module.value.__name__
    ]
    if len(found) != 1:
        return _load_error(reference, f"expected exactly one Plugin subclass, found {len(found)}")
    return Ok(found[0])


def _plugin_entry(reference: str, value: object) -> tuple[str, dict[str, object]]:
    """Split a `plugins` table entry into (namespace, options)."""
    pair = as_obj_list(value)
    if pair is not None and len(pair) == 2 and isinstance(pair[0], str):
        return pair[0], as_str_dict(pair[1]) or {}
    return _default_namespace(reference), as_str_dict(value) or {}


def get_plugins(config: Config, container: Container) -> Result[list[Plugin], ReleaseError]:
    """Instantiate enabled plugins: external ones first, then built-ins in registration order."""
    external: list[Plugin] = []
    disabled: set[str] = set()

    for reference, value in config.plugins.items():
        loaded = load_plugin_class(reference, cwd=container.cwd)
        if isinstance(loaded, Err):
            return loaded
        plugin_cls = loaded.value
        namespace, options = _plugin_entry(reference, value)
        config.set_context({namespace: options})
        try:
            if not plugin_cls.is_enabled(options, cwd=container.cwd):
                continue
            external.append(plugin_cls(namespace, options, container))
            replaced = plugin_cls.disable_plugins()
        except Exception as e:  # noqa: BLE001
            return _load_error(reference, str(e))
        disabled.update(ns for ns in replaced if ns in BUILTIN_PLUGINS)

    builtins: list[Plugin] = []
    for namespace, plugin_cls in BUILTIN_PLUGINS.items():
        if namespace in disabled:
            continue
        builtin_options: Mapping[str, object] | None = config.namespace_options(namespace)
        if plugin_cls.is_enabled(builtin_options, cwd=container.cwd):
            builtins.append(plugin_cls(namespace, builtin_options or {}, container))

    return Ok(external + builtins)
