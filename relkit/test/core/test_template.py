"""Tests for core/template.py."""

from __future__ import annotations

from relkit.core.template import render


def test_render_simple_placeholder() -> None:
    assert render("Release ${version}", {"version": "1.2.0"}) == "Release 1.2.0"


def test_render_dotted_placeholder() -> None:
    context = {"repo": {"owner": "acme", "project": "widget"}}
    assert render("${repo.owner}/${repo.project}", context) == "acme/widget"


def test_unknown_placeholder_is_left_verbatim() -> None:
    assert render("v${versoin}", {"version": "1.2.0"}) == "v${versoin}"


def test_none_value_is_left_verbatim() -> None:
    assert render("${latestTag}", {"latestTag": None}) == "${latestTag}"


def test_text_without_placeholders_is_unchanged() -> None:
    assert render('git log --pretty=format:"* %s (%h)"', {}) == 'git log --pretty=format:"* %s (%h)"'


def test_non_string_values_are_stringified() -> None:
    assert render("released=${isReleased} n=${count}", {"isReleased": True, "count": 3}) == "released=True n=3"
