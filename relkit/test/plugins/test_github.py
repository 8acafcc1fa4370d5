"""Tests for plugins/github.py - releases through the GitHub REST API."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from relkit.core.result import Err, Ok
from relkit.output.console import MockConsole
from relkit.output.prompt import MockPrompt
from relkit.platform.shell import MockShell
from relkit.plugins.base import Container
from relkit.plugins.github import GitHubPlugin
from relkit.remote.http import MockHttpClient

ContainerFactory = Callable[..., Container]

API = "https://api.github.com/repos/acme/widget"
UPLOAD_URL = "https://uploads.github.com/repos/acme/widget/releases/1/assets"
CREATED = {
    "id": 1,
    "html_url": "https://github.com/acme/widget/releases/tag/1.1.0",
    "upload_url": UPLOAD_URL + "{?name,label}",
}


@pytest.fixture
def token(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
    return "ghp_test"


def _plugin(
    make_container: ContainerFactory,
    shell: MockShell,
    http: MockHttpClient,
    github: Mapping[str, object] | None = None,
    *,
    version: str = "1.1.0",
    top: Mapping[str, object] | None = None,
    **kwargs: object,
) -> GitHubPlugin:
    """A GitHub plugin that went through init, bump and beforeRelease."""
    options = {**(top or {}), "github": {"release": True, "retryMinTimeout": 0, **(github or {})}}
    container = make_container(options, shell=shell, http=http, **kwargs)
    plugin = GitHubPlugin("github", container.config.namespace_options("github") or {}, container)
    assert plugin.init() == Ok(None)
    container.config.set_context({"version": version, "changelog": "* Add feature (abc1234)"})
    assert plugin.bump(version) == Ok(True)
    assert plugin.before_release() == Ok(True)
    return plugin


def test_enabled_only_when_release_is_on(tmp_path: Path) -> None:
    assert GitHubPlugin.is_enabled({"release": False}, cwd=tmp_path) is False
    assert GitHubPlugin.is_enabled({"release": True}, cwd=tmp_path) is True
    assert GitHubPlugin.is_enabled(None, cwd=tmp_path) is False


def test_missing_token(
    make_container: ContainerFactory, git_shell: MockShell, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    container = make_container({"github": {"release": True}}, shell=git_shell)
    plugin = GitHubPlugin("github", container.config.namespace_options("github") or {}, container)

    result = plugin.init()

    assert isinstance(result, Err)
    assert result.error.kind == "precondition"
    assert "GITHUB_TOKEN" in result.error.message


def test_custom_token_ref(
    make_container: ContainerFactory, git_shell: MockShell, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("RELEASE_TOKEN", "abc")
    container = make_container({"github": {"release": True, "tokenRef": "RELEASE_TOKEN"}}, shell=git_shell)
    plugin = GitHubPlugin("github", container.config.namespace_options("github") or {}, container)
    assert plugin.init() == Ok(None)
    assert plugin.headers["Authorization"] == "token abc"


def test_create_release(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED, status=201)
    plugin = _plugin(make_container, git_shell, http)

    assert plugin.release() == Ok(True)

    [request] = http.calls("POST")
    assert request.url == f"{API}/releases"
    assert request.headers["Authorization"] == f"token {token}"
    assert request.body == {
        "tag_name": "1.1.0",
        "name": "Release 1.1.0",
        "body": "* Add feature (abc1234)",
        "prerelease": False,
        "draft": False,
    }
    assert plugin.get_context("isReleased") is True
    assert plugin.get_context("releaseUrl") == CREATED["html_url"]


def test_pre_release_flag_follows_version(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http, version="1.1.0-beta.0")

    plugin.release()

    body = http.calls("POST")[0].body
    assert isinstance(body, dict)
    assert body["prerelease"] is True
    assert body["tag_name"] == "1.1.0-beta.0"


def test_release_notes_script(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    git_shell.set_output("git log -1 --format=%B", "Hand-written notes")
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http, {"releaseNotes": "git log -1 --format=%B"})

    plugin.release()

    body = http.calls("POST")[0].body
    assert isinstance(body, dict)
    assert body["body"] == "Hand-written notes"


def test_terminal_error_bails(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_error("POST", f"{API}/releases", 401, "Bad credentials")
    plugin = _plugin(make_container, git_shell, http)

    result = plugin.release()

    assert isinstance(result, Err)
    assert result.error.kind == "remote_terminal"
    assert result.error.message == "401 (Bad credentials)"
    assert len(http.calls("POST")) == 1
    assert plugin.get_context("isReleased") is None


def test_transient_errors_are_retried(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_error("POST", f"{API}/releases", 502, "Bad Gateway")
    http.set_error("POST", f"{API}/releases", 503, "Service Unavailable")
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http)

    assert plugin.release() == Ok(True)
    assert len(http.calls("POST")) == 3


def test_retries_exhausted(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_error("POST", f"{API}/releases", 500, "Server Error")
    plugin = _plugin(make_container, git_shell, http, {"retries": 1})

    result = plugin.release()

    assert isinstance(result, Err)
    assert result.error.kind == "remote_failed"
    assert len(http.calls("POST")) == 2


def test_upload_assets(
    make_container: ContainerFactory, git_shell: MockShell, token: str, tmp_path: Path
) -> None:
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "widget-1.1.0.zip").write_bytes(b"zip")
    (tmp_path / "dist" / "notes.txt").write_text("skip me", encoding="utf-8")
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    http.set_json("POST", f"{UPLOAD_URL}?name=widget-1.1.0.zip", {"browser_download_url": "https://x/widget.zip"})
    plugin = _plugin(make_container, git_shell, http, {"assets": ["dist/*.zip"]})

    assert plugin.release() == Ok(True)

    uploads = [r for r in http.calls("POST") if r.path is not None]
    assert [r.url for r in uploads] == [f"{UPLOAD_URL}?name=widget-1.1.0.zip"]
    assert uploads[0].path == tmp_path / "dist" / "widget-1.1.0.zip"


def test_missing_assets_warn(
    make_container: ContainerFactory, git_shell: MockShell, token: str
) -> None:
    console = MockConsole()
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http, {"assets": "build/*.tgz"}, console=console)

    assert plugin.release() == Ok(True)
    assert console.find('could not find "build/*.tgz"')


def test_update_existing_release(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    http = MockHttpClient()
    http.set_json("GET", f"{API}/releases/tags/1.1.0", {"id": 7})
    http.set_json("PATCH", f"{API}/releases/7", {**CREATED, "id": 7})
    plugin = _plugin(make_container, git_shell, http, {"update": True})

    assert plugin.release() == Ok(True)

    assert [r.method for r in http.requests] == ["GET", "PATCH"]
    assert plugin.get_context("releaseId") == 7


def test_update_without_existing_release_creates(
    make_container: ContainerFactory, git_shell: MockShell, token: str
) -> None:
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http, {"update": True})

    assert plugin.release() == Ok(True)
    assert [r.method for r in http.requests] == ["GET", "POST"]


def test_dry_run_makes_no_requests(
    make_container: ContainerFactory, git_shell: MockShell, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    console = MockConsole()
    http = MockHttpClient()
    plugin = _plugin(make_container, git_shell, http, top={"dryRun": True}, console=console)

    assert plugin.release() == Ok(True)

    assert http.requests == []
    assert plugin.get_context("releaseUrl") == "https://github.com/acme/widget/releases/tag/1.1.0"
    assert console.find('(dry-run) $ github releases#createRelease "Release 1.1.0" (1.1.0)')


def test_enterprise_host(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    git_shell.set_output("git config --get remote.origin.url", "git@git.acme.dev:acme/widget.git")
    plugin = _plugin(make_container, git_shell, MockHttpClient())
    assert plugin.api_base == "https://git.acme.dev/api/v3"


def test_interactive_confirmation(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    prompt = MockPrompt(answers={"release": False})
    http = MockHttpClient()
    plugin = _plugin(make_container, git_shell, http, prompt=prompt, interactive=True)

    assert plugin.release() == Ok(False)

    assert prompt.shown[0].message == "Create a release on GitHub (Release 1.1.0)?"
    assert http.requests == []


def test_after_release_reports_url(make_container: ContainerFactory, git_shell: MockShell, token: str) -> None:
    console = MockConsole()
    http = MockHttpClient()
    http.set_json("POST", f"{API}/releases", CREATED)
    plugin = _plugin(make_container, git_shell, http, console=console)

    plugin.release()
    plugin.after_release()

    assert console.find(f"GitHub release: {CREATED['html_url']}")
