"""Built-in GitLab plugin: upload assets, then create a release linking them.

Instances without the releases API answer 404; the release notes are then
attached to the tag instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from urllib.parse import quote

from relkit.core.result import Err, Ok, Result
from relkit.core.structured import get_str
from relkit.release.errors import ReleaseError

from .base import Container
from .git_release import GitReleasePlugin

__all__ = ["GitLabPlugin"]


class GitLabPlugin(GitReleasePlugin):
    namespace_name = "gitlab"
    service = "GitLab"

    def __init__(self, namespace: str, options: Mapping[str, object], container: Container) -> None:
        super().__init__(namespace, options, container)
        self._asset_links: list[dict[str, str]] = []

    def init(self) -> Result[None, ReleaseError]:
        base = super().init()
        if isinstance(base, Err):
            return base
        origin = get_str(self.options, "origin") or f"https://{self.get_context('repo.host')}"
        self.set_context(
            {
                "origin": origin,
                "baseUrl": f"{origin}/api/v4",
                "projectId": quote(str(self.get_context("repo.repository")), safe=""),
            }
        )
        return Ok(None)

    @property
    def headers(self) -> dict[str, str]:
        header = get_str(self.options, "tokenHeader") or "Private-Token"
        return {header: self.token or ""}

    def _endpoint(self, path: str) -> str:
        return f"{self.get_context('baseUrl')}/projects/{self.get_context('projectId')}{path}"

    def _web_url(self, path: str) -> str:
        return f"{self.get_context('origin')}/{self.get_context('repo.repository')}{path}"

    def release(self) -> Result[bool, ReleaseError]:
        has_assets = bool(self.assets.patterns)
        if self.config.is_interactive:

            def upload_and_create() -> Result[object, ReleaseError]:
                uploaded = self.upload_assets()
                if isinstance(uploaded, Err):
                    return uploaded
                return self.create_release()

            return self.step(
                upload_and_create,
                label="GitLab release",
                prompt="release",
                message=f"Create a release on GitLab ({self.release_name})?",
            )

        uploaded = self.step(self.upload_assets, label="GitLab upload assets", enabled=has_assets)
        if isinstance(uploaded, Err):
            return uploaded
        return self.step(self.create_release, label="GitLab release")

    def create_release(self) -> Result[bool, ReleaseError]:
        name = self.release_name
        tag_name = str(self.get_context("tagName"))
        self.echo(f'gitlab releases#createRelease "{name}" ({tag_name})')

        if self.is_dry_run:
            self.mark_released(self._web_url("/releases"))
            return Ok(True)

        body: dict[str, object] = {
            "name": name,
            "tag_name": tag_name,
            "description": self.get_context("releaseNotes") or "-",
        }
        if self._asset_links:
            body["assets"] = {"links": list(self._asset_links)}

        url = self._endpoint("/releases")
        result = self.call(
            lambda: self.http.request_json("POST", url, headers=self.headers, body=body),
            action="gitlab createRelease",
        )
        if isinstance(result, Err):
            if result.error.status == 404:
                return self.add_release_notes_to_tag()
            return result

        self.mark_released(self._web_url("/releases"))
        return Ok(True)

    def add_release_notes_to_tag(self) -> Result[bool, ReleaseError]:
        tag_name = str(self.get_context("tagName"))
        self.echo(f'gitlab releases#addReleaseNotesToTag "{self.release_name}" ({tag_name})')

        url = self._endpoint(f"/repository/tags/{quote(tag_name, safe='')}/release")
        body = {"description": self.get_context("releaseNotes") or "-"}
        result = self.call(
            lambda: self.http.request_json("POST", url, headers=self.headers, body=body),
            action="gitlab addReleaseNotesToTag",
        )
        if isinstance(result, Err):
            return result

        self.mark_released(self._web_url(f"/tags/{tag_name}"))
        return Ok(True)

    def upload_assets(self) -> Result[bool, ReleaseError]:
        patterns = self.assets.patterns
        self.echo(f"gitlab releases#uploadAssets {' '.join(patterns)}")
        if not patterns or self.is_dry_run:
            return Ok(True)

        uploaded = self.assets.upload_all(self.upload_asset, label="gitlab releases#uploadAssets")
        if isinstance(uploaded, Err):
            return uploaded
        return Ok(True)

    def upload_asset(self, path: Path) -> Result[str, ReleaseError]:
        url = self._endpoint("/uploads")
        result = self.call(
            lambda: self.http.upload(url, path, headers=self.headers, multipart_field="file"),
            action="gitlab uploadAsset",
        )
        if isinstance(result, Err):
            return result

        asset_url = self._web_url(str(result.value.json_object().get("url") or ""))
        self._asset_links.append({"name": path.name, "url": asset_url})
        if self.config.is_verbose:
            self.console.info(f"gitlab releases#uploadAsset: done ({asset_url})")
        return Ok(asset_url)
