"""Built-in GitHub plugin: create (or update) a release and upload assets."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import quote

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import get_bool, get_str
from relkit.release.errors import ReleaseError
from relkit.release.semver import SemVer
from relkit.remote.http import HttpResponse

from .git_release import GitReleasePlugin

__all__ = ["GitHubPlugin"]

_URI_TEMPLATE = re.compile(r"\{[^}]*\}$")


class GitHubPlugin(GitReleasePlugin):
    namespace_name = "github"
    service = "GitHub"

    @property
    def api_base(self) -> str:
        host = get_str(self.options, "host") or str(self.get_context("repo.host") or "github.com")
        if host == "github.com":
            return "https://api.github.com"
        return f"https://{host}/api/v3"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }

    def _repo_path(self) -> str:
        return f"/repos/{self.get_context('repo.owner')}/{self.get_context('repo.project')}"

    def release(self) -> Result[bool, ReleaseError]:
        has_assets = bool(self.assets.patterns)
        if self.config.is_interactive:

            def create_and_upload() -> Result[object, ReleaseError]:
                created = self.create_release()
                if isinstance(created, Err):
                    return created
                return self.upload_assets()

            kind = "pre-release" if self._is_pre_release() else "release"
            return self.step(
                create_and_upload,
                label="GitHub release",
                prompt="release",
                message=f"Create a {kind} on GitHub ({self.release_name})?",
            )

        created = self.step(self.create_release, label="GitHub release")
        if isinstance(created, Err):
            return created
        uploaded = self.step(self.upload_assets, label="GitHub upload assets", enabled=has_assets)
        if isinstance(uploaded, Err):
            return uploaded
        return created

    def _is_pre_release(self) -> bool:
        version = SemVer.parse(str(self.get_context("version") or ""))
        return get_bool(self.options, "preRelease") or bool(version and version.is_prerelease)

    def release_url_fallback(self, tag_name: str) -> str:
        return f"https://{self.get_context('repo.host')}/{self.get_context('repo.repository')}/releases/tag/{tag_name}"

    def create_release(self) -> Result[bool, ReleaseError]:
        name = self.release_name
        tag_name = str(self.get_context("tagName"))
        update = get_bool(self.options, "update")
        self.echo(f'github releases#{"updateRelease" if update else "createRelease"} "{name}" ({tag_name})')

        if self.is_dry_run:
            self.mark_released(self.release_url_fallback(tag_name))
            return Ok(True)

        body = {
            "tag_name": tag_name,
            "name": name,
            "body": self.get_context("releaseNotes") or "",
            "prerelease": self._is_pre_release(),
            "draft": get_bool(self.options, "draft"),
        }

        existing_id = self._existing_release_id(tag_name) if update else None
        if existing_id is not None:
            url = f"{self.api_base}{self._repo_path()}/releases/{existing_id}"
            result = self.call(
                lambda: self.http.request_json("PATCH", url, headers=self.headers, body=body),
                action="github updateRelease",
            )
        else:
            url = f"{self.api_base}{self._repo_path()}/releases"
            result = self.call(
                lambda: self.http.request_json("POST", url, headers=self.headers, body=body),
                action="github createRelease",
            )
        if isinstance(result, Err):
            return result

        data = result.value.json_object()
        self.set_context({"uploadUrl": data.get("upload_url"), "releaseId": data.get("id")})
        self.mark_released(str(data.get("html_url") or self.release_url_fallback(tag_name)))
        return Ok(True)

    def _existing_release_id(self, tag_name: str) -> object:
        url = f"{self.api_base}{self._repo_path()}/releases/tags/{quote(tag_name, safe='')}"
        result = self.http.request_json("GET", url, headers=self.headers)
        if isinstance(result, Err):
            return None
        return result.value.json_object().get("id")

    def upload_assets(self) -> Result[bool, ReleaseError]:
        patterns = self.assets.patterns
        self.echo(f"github releases#uploadAssets {' '.join(patterns)}")
        if not patterns or not self.get_context("isReleased") or self.is_dry_run:
            return Ok(True)

        uploaded = self.assets.upload_all(self.upload_asset, label="github releases#uploadAssets")
        if isinstance(uploaded, Err):
            return uploaded
        return Ok(True)

    def upload_asset(self, path: Path) -> Result[HttpResponse, ReleaseError]:
        upload_url = self.get_context("uploadUrl")
        if not isinstance(upload_url, str) or not upload_url:
            return Err(ReleaseError(kind="remote_failed", message="No upload URL for the release."))
        url = f"{_URI_TEMPLATE.sub('', upload_url)}?name={quote(path.name)}"

        result = self.call(
            lambda: self.http.upload(url, path, headers=self.headers),
            action="github uploadAsset",
        )
        if isinstance(result, Ok) and self.config.is_verbose:
            download = result.value.json_object().get("browser_download_url")
            self.console.info(f"github releases#uploadAsset: done ({download})")
        return result
