"""Release configuration: defaults, local TOML file, explicit options.

Precedence (lowest first): built-in defaults < local config file <
explicit options (CLI flags or programmatic). The merged result seeds the
shared ContextStore; runtime values written during the cycle sit on top.

Local config is looked up in this order:
- the path given with --config (must exist),
- .relkit.toml in the working directory,
- [tool.relkit] in pyproject.toml.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .context import ContextStore, deep_merge
from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, as_str_list, get_bool, get_table

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULT_CONFIG",
    "LOCAL_CONFIG_FILE",
    "load_config",
    "load_local_config",
]

LOCAL_CONFIG_FILE = ".relkit.toml"
PYPROJECT_FILE = "pyproject.toml"

DEFAULT_CONFIG: StrDict = {
    "hooks": {},
    "plugins": {},
    "increment": None,
    "preRelease": False,
    "preReleaseId": None,
    "preReleaseBase": None,
    "dryRun": False,
    "verbose": False,
    "releaseVersion": False,
    "git": {
        "changelog": 'git log --pretty=format:"* %s (%h)" ${from}...${to}',
        "requireCleanWorkingDir": True,
        "requireBranch": False,
        "requireUpstream": True,
        "requireCommits": False,
        "addUntrackedFiles": False,
        "commit": True,
        "commitMessage": "Release ${version}",
        "commitArgs": [],
        "tag": True,
        "tagName": "${version}",
        "tagMatch": None,
        "tagAnnotation": "Release ${version}",
        "tagArgs": [],
        "push": True,
        "pushArgs": ["--follow-tags"],
        "pushRepo": "",
    },
    "github": {
        "release": False,
        "releaseName": "Release ${version}",
        "releaseNotes": None,
        "preRelease": False,
        "draft": False,
        "update": False,
        "tokenRef": "GITHUB_TOKEN",
        "assets": None,
        "host": None,
        "timeout": 30,
        "retries": 2,
        "retryMinTimeout": 1.0,
        "skipChecks": False,
    },
    "gitlab": {
        "release": False,
        "releaseName": "Release ${version}",
        "releaseNotes": None,
        "tokenRef": "GITLAB_TOKEN",
        "tokenHeader": "Private-Token",
        "assets": None,
        "origin": None,
        "timeout": 30,
        "retries": 2,
        "retryMinTimeout": 1.0,
        "skipChecks": False,
    },
    "npm": {
        "publish": True,
        "publishPath": ".",
        "tag": None,
        "otp": None,
        "access": None,
        "skipChecks": False,
        "timeout": 10,
    },
    "version": {},
}

# Namespaces whose value may be `false` to switch a built-in plugin off.
_DISABLEABLE = ("git", "github", "gitlab", "npm")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is structurally invalid."""

    message: str
    path: Path | None = None


def _is_tty() -> bool:
    return bool(sys.stdin.isatty() and sys.stdout.isatty())


class Config:
    """Merged configuration for one release run.

    Attributes:
        context: The run's ContextStore, seeded with the merged options.
    """

    def __init__(
        self,
        options: Mapping[str, object] | None = None,
        *,
        local: Mapping[str, object] | None = None,
        interactive_terminal: bool | None = None,
    ) -> None:
        merged = deep_merge(DEFAULT_CONFIG, local, options)
        merged["version"] = deep_merge(get_table(merged, "version"), self._version_options(merged))
        self._options = merged
        self._tty = _is_tty() if interactive_terminal is None else interactive_terminal
        self.context = ContextStore(merged)

    @staticmethod
    def _version_options(options: StrDict) -> StrDict:
        """Expand the preRelease shorthand (`--preRelease=beta`) into the version namespace."""
        pre_release = options.get("preRelease")
        pre_release_id = options.get("preReleaseId")
        if isinstance(pre_release, str) and pre_release:
            pre_release_id = pre_release
        return {
            "increment": options.get("increment"),
            "isPreRelease": bool(pre_release),
            "preReleaseId": pre_release_id,
            "preReleaseBase": options.get("preReleaseBase"),
        }

    @property
    def options(self) -> StrDict:
        """Copy of the merged options (without runtime values)."""
        return deep_merge(self._options)

    def namespace_options(self, namespace: str) -> StrDict | None:
        """Options subtree for a plugin; None when the namespace is set to false."""
        value = self._options.get(namespace)
        if value is False:
            return None
        return deep_merge(as_str_dict(value))

    def get_context(self, path: str | None = None) -> object:
        return self.context.get(path)

    def set_context(self, partial: Mapping[str, object]) -> None:
        self.context.set(partial)

    @property
    def hooks(self) -> dict[str, list[str]]:
        table = get_table(self._options, "hooks") or {}
        return {key: as_str_list(value) for key, value in table.items()}

    @property
    def plugins(self) -> StrDict:
        return deep_merge(get_table(self._options, "plugins"))

    @property
    def is_ci(self) -> bool:
        ci = self._options.get("ci")
        if isinstance(ci, bool):
            return ci
        if os.environ.get("CI"):
            return True
        return not self._tty

    @property
    def is_interactive(self) -> bool:
        return not self.is_ci

    @property
    def is_dry_run(self) -> bool:
        return get_bool(self._options, "dryRun")

    @property
    def is_verbose(self) -> bool:
        return get_bool(self._options, "verbose")

    @property
    def is_increment(self) -> bool:
        return self._options.get("increment") is not False

    @property
    def is_release_version(self) -> bool:
        return get_bool(self._options, "releaseVersion")


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def _validate(data: StrDict, path: Path | None) -> Result[StrDict, ConfigError]:
    hooks = data.get("hooks")
    if hooks is not None:
        table = as_str_dict(hooks)
        if table is None:
            return Err(ConfigError("`hooks` must be a table", path=path))
        for key, value in table.items():
            if not key.startswith(("before:", "after:")):
                return Err(ConfigError(f"Invalid hook name: {key}", path=path))
            if not isinstance(value, str | list):
                return Err(ConfigError(f"Hook {key} must be a string or a list", path=path))

    plugins = data.get("plugins")
    if plugins is not None and as_str_dict(plugins) is None:
        return Err(ConfigError("`plugins` must be a table", path=path))

    for namespace in _DISABLEABLE:
        value = data.get(namespace)
        if value is not None and value is not False and as_str_dict(value) is None:
            return Err(ConfigError(f"`{namespace}` must be a table or false", path=path))

    return Ok(data)


def load_local_config(path: Path | None, *, cwd: Path) -> Result[StrDict, ConfigError]:
    """Load the local configuration file.

    Args:
        path: Explicit config path; an error if it does not exist.
        cwd: Directory searched for .relkit.toml / pyproject.toml.

    Returns:
        Ok(table) (empty when no local config exists), Err(ConfigError) otherwise.
    """
    if path is not None:
        parsed = _parse_toml(path if path.is_absolute() else cwd / path)
        if isinstance(parsed, Err):
            return parsed
        return _validate(parsed.value, path)

    local = cwd / LOCAL_CONFIG_FILE
    if local.is_file():
        parsed = _parse_toml(local)
        if isinstance(parsed, Err):
            return parsed
        return _validate(parsed.value, local)

    pyproject = cwd / PYPROJECT_FILE
    if pyproject.is_file():
        parsed = _parse_toml(pyproject)
        if isinstance(parsed, Err):
            return parsed
        tool = get_table(parsed.value, "tool") or {}
        return _validate(get_table(tool, "relkit") or {}, pyproject)

    return Ok({})


def load_config(
    options: Mapping[str, object] | None = None,
    *,
    cwd: Path,
    config_path: Path | None = None,
) -> Result[Config, ConfigError]:
    """Build the run configuration from local config plus explicit options."""
    local = load_local_config(config_path, cwd=cwd)
    if isinstance(local, Err):
        return local

    explicit = deep_merge(options)
    validated = _validate(explicit, None)
    if isinstance(validated, Err):
        return validated

    return Ok(Config(explicit, local=local.value))
