from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import typer

from relkit import __version__
from relkit.core.errors import ErrorCode
from relkit.core.result import Err
from relkit.output.console import RichConsole
from relkit.release.errors import exit_code_for
from relkit.release.orchestrator import run_release


app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    rich_markup_mode="rich",
)

_PRE_RELEASE_FLAGS = ("--preRelease", "--pre-release")


def _exit(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def build_options(
    *,
    increment: str | None,
    ci: bool | None,
    dry_run: bool,
    verbose: bool,
    pre_release: str | None,
    pre_release_base: str | None,
    no_increment: bool,
    release_version: bool,
) -> dict[str, object]:
    """Map CLI flags onto configuration keys; unset flags leave config untouched."""
    options: dict[str, object] = {}
    if no_increment:
        options["increment"] = False
    elif increment:
        options["increment"] = increment
    if ci is not None:
        options["ci"] = ci
    if dry_run:
        options["dryRun"] = True
    if verbose:
        options["verbose"] = True
    if pre_release is not None:
        # Bare --preRelease arrives as "" (see normalize_argv).
        options["preRelease"] = pre_release or True
    if pre_release_base is not None:
        options["preReleaseBase"] = pre_release_base
    if release_version:
        options["releaseVersion"] = True
        options.setdefault("ci", True)
    return options


@app.command()
def release(
    increment: str | None = typer.Argument(
        None,
        help="Release type (patch, minor, major, prepatch, preminor, premajor, prerelease), a version,"
        " or conventional[:preset] to derive it from the commits.",
    ),
    ci: bool | None = typer.Option(None, "--ci/--no-ci", help="No prompts (default: on when not a TTY or $CI is set)."),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show what would happen without mutating anything."),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Print every command and its output."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file (default: .relkit.toml or pyproject.toml)."),
    pre_release: str | None = typer.Option(
        None,
        *_PRE_RELEASE_FLAGS,
        help="Pre-release mode, optionally with an id: --preRelease=beta.",
    ),
    pre_release_base: str | None = typer.Option(
        None,
        "--preReleaseBase",
        "--pre-release-base",
        help="First pre-release counter value (0 or 1).",
    ),
    no_increment: bool = typer.Option(False, "--no-increment", help="Release the current version again (update cycle)."),
    release_version: bool = typer.Option(False, "--release-version", help="Print the next version and exit."),
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
) -> None:
    """Bump, tag, push and publish a release."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if pre_release_base is not None and pre_release_base not in ("0", "1"):
        _exit(f"invalid --preReleaseBase: {pre_release_base} (expected 0 or 1)", code=ErrorCode.USER_ERROR)

    options = build_options(
        increment=increment,
        ci=ci,
        dry_run=dry_run,
        verbose=verbose,
        pre_release=pre_release,
        pre_release_base=pre_release_base,
        no_increment=no_increment,
        release_version=release_version,
    )

    # Keep stdout clean for --release-version.
    console = RichConsole(stderr=release_version)
    try:
        result = run_release(options, cwd=Path.cwd(), console=console, config_path=config)
    except KeyboardInterrupt:
        _exit("interrupted", code=ErrorCode.USER_ERROR)

    if isinstance(result, Err):
        console.error(result.error.pretty())
        raise typer.Exit(code=int(exit_code_for(result.error)))

    if release_version:
        typer.echo(result.value.version)


def normalize_argv(argv: list[str]) -> list[str]:
    """Give a bare --preRelease an empty value so it can stand alone as a flag."""
    return [f"{arg}=" if arg in _PRE_RELEASE_FLAGS else arg for arg in argv]


def main() -> None:
    app(args=normalize_argv(sys.argv[1:]), prog_name="relkit")
