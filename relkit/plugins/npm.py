"""Built-in npm plugin: registry checks, `npm version`, `npm publish`."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import as_str_dict, get_bool, get_str
from relkit.output.prompt import PromptSpec
from relkit.release.errors import ReleaseError
from relkit.release.semver import SemVer

from .base import Plugin

__all__ = ["NpmPlugin"]

MANIFEST_FILE = "package.json"
DEFAULT_TAG = "latest"
DEFAULT_TAG_PRERELEASE = "next"
NPM_BASE_URL = "https://www.npmjs.com"
NPM_DEFAULT_REGISTRY = "https://registry.npmjs.org"


class NpmPlugin(Plugin):
    namespace_name = "npm"
    is_remote_target = True

    @classmethod
    def is_enabled(cls, options: Mapping[str, object] | None, *, cwd: Path) -> bool:
        return options is not None and (cwd / MANIFEST_FILE).is_file()

    def _read_manifest(self) -> Result[dict[str, object], ReleaseError]:
        path = self.container.cwd / MANIFEST_FILE
        try:
            data = as_str_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError) as e:
            return Err(ReleaseError(kind="config", message=f"Cannot read {path}: {e}"))
        if data is None:
            return Err(ReleaseError(kind="config", message=f"{path} must contain a JSON object"))
        return Ok(data)

    def init(self) -> Result[None, ReleaseError]:
        manifest = self._read_manifest()
        if isinstance(manifest, Err):
            return manifest
        pkg = manifest.value
        self.set_context(
            {
                "name": pkg.get("name"),
                "latestVersion": pkg.get("version"),
                "private": bool(pkg.get("private")),
                "publishConfig": as_str_dict(pkg.get("publishConfig")) or {},
            }
        )

        if get_bool(self.options, "skipChecks"):
            return Ok(None)

        if not self._registry_check("ping"):
            return Err(
                ReleaseError(
                    kind="precondition",
                    message=f"Unable to reach npm registry ({self.registry}).",
                    hint="check the network or set npm.skipChecks = true",
                )
            )
        if not self._registry_check("whoami"):
            return Err(
                ReleaseError(
                    kind="precondition",
                    message="Not authenticated with npm.",
                    hint="run `npm login` and try again",
                )
            )

        latest = self.get_latest_version()
        in_registry = self.latest_registry_version()
        if in_registry is None:
            self.console.warning("No version found in npm registry. Assuming new package.")
        elif latest is not None and SemVer.parse(in_registry) != SemVer.parse(latest):
            self.console.warning(
                f"Latest version in registry ({in_registry}) does not match {MANIFEST_FILE} ({latest})."
            )
        return Ok(None)

    def get_name(self) -> str | None:
        name = self.get_context("name")
        return name if isinstance(name, str) else None

    def get_latest_version(self) -> str | None:
        version = self.get_context("latestVersion")
        return version if isinstance(version, str) else None

    def bump(self, version: str) -> Result[bool, ReleaseError]:
        self.set_context({"version": version})
        result = self.exec(["npm", "version", version, "--no-git-tag-version"])
        if isinstance(result, Err):
            if "Version not changed" in result.error.message:
                self.console.warning(f"Did not update version in {MANIFEST_FILE} etc. (already at {version}).")
                return Ok(True)
            return result
        return Ok(True)

    def release(self) -> Result[bool, ReleaseError]:
        if not get_bool(self.options, "publish", True):
            return Ok(False)

        tag = self.resolve_tag()
        suffix = "" if tag == DEFAULT_TAG else f"@{tag}"
        return self.step(
            lambda: self.publish(get_str(self.options, "otp")),
            label="npm publish",
            prompt="publish",
            message=f"Publish {self.get_name()}{suffix} to npm?",
        )

    def after_release(self) -> Result[bool, ReleaseError]:
        if not self.get_context("isReleased"):
            return Ok(False)
        self.console.success(f"npm package: {self.get_context('releaseUrl')}")
        return Ok(True)

    # Registry

    @property
    def registry(self) -> str:
        registry = self.get_context("publishConfig.registry")
        return registry if isinstance(registry, str) and registry else NPM_DEFAULT_REGISTRY

    def _registry_args(self) -> list[str]:
        return [] if self.registry == NPM_DEFAULT_REGISTRY else ["--registry", self.registry]

    def _registry_check(self, command: str) -> bool:
        result = self.exec(["npm", command, *self._registry_args()], write=False)
        # Registries without the endpoint answer E404; that is not a failure.
        return isinstance(result, Ok) or "code E404" in result.error.message

    def latest_registry_version(self) -> str | None:
        result = self.exec(["npm", "show", f"{self.get_name()}@{self.resolve_tag()}", "version"], write=False)
        if isinstance(result, Err):
            return None
        return result.value or None

    def registry_pre_release_tags(self) -> list[str]:
        result = self.exec(["npm", "view", str(self.get_name()), "dist-tags", "--json"], write=False)
        if isinstance(result, Err):
            return []
        try:
            tags = as_str_dict(json.loads(result.value or "{}")) or {}
        except json.JSONDecodeError:
            self.console.warning("Unable to get pre-release tag(s) from npm registry.")
            return []
        return [tag for tag in tags if tag != DEFAULT_TAG]

    def resolve_tag(self) -> str:
        configured = get_str(self.options, "tag")
        if configured:
            return configured
        raw = self.get_context("version") or self.get_latest_version()
        version = SemVer.parse(raw if isinstance(raw, str) else None)
        if version is None or not version.is_prerelease:
            return DEFAULT_TAG
        if version.prerelease_id:
            return version.prerelease_id
        tags = self.registry_pre_release_tags()
        return tags[0] if tags else DEFAULT_TAG_PRERELEASE

    def package_url(self) -> str:
        base = NPM_BASE_URL if self.registry == NPM_DEFAULT_REGISTRY else self.registry.rstrip("/")
        return f"{base}/package/{self.get_name()}"

    # Publish

    def publish(self, otp: str | None = None) -> Result[bool, ReleaseError]:
        if self.get_context("private"):
            self.console.warning("Skip publish: package is private.")
            return Ok(False)

        name = self.get_name() or ""
        args = ["npm", "publish", get_str(self.options, "publishPath") or ".", "--tag", self.resolve_tag()]
        access = get_str(self.options, "access")
        if name.startswith("@") and access:
            args += ["--access", access]
        if otp:
            args += ["--otp", otp]
        if self.is_dry_run:
            args.append("--dry-run")

        # Runs in dry-run too: npm itself honors --dry-run.
        result = self.exec(args, write=False, kind="remote_failed")
        if isinstance(result, Ok):
            self.set_context({"isReleased": True, "releaseUrl": self.package_url()})
            return Ok(True)

        if "one-time pass" in result.error.message:
            if otp is not None:
                self.console.warning("The provided OTP is incorrect or has expired.")
            if self.config.is_interactive:
                answer = self.prompt.show(PromptSpec(type="input", name="otp", message="Please enter OTP for npm:"))
                entered = answer.get("otp")
                if isinstance(entered, str) and entered:
                    return self.publish(entered)
        return result
