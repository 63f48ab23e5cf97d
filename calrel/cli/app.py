from __future__ import annotations

import os
from datetime import date
from pathlib import Path

import typer

from calrel import __version__
from calrel.cli.commands.passthrough import build, clean, lint, test
from calrel.cli.commands.release_cmd import next_version, release, status, version_bump
from calrel.cli.context import REPO_ENV, detect_repo_root
from calrel.core.errors import ErrorCode
from calrel.core.result import Ok
from calrel.git.repository import Repository
from calrel.release.version import resolve


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


_USAGE = (
    ("release", "Auto-version and release (recommended)"),
    ("release -V 20250601.0.0", "Release with a specific version"),
    ("release --resume-from publish -V ...", "Finish an interrupted release"),
    ("version-bump", "Only cut release/v<version> with the bump commit"),
    ("next-version", "Print the next version"),
    ("status", "Show manifest version and today's tags"),
    ("build", "Build release artifacts"),
    ("test", "Run tests"),
    ("lint", "Run the linter"),
    ("clean", "Clean build artifacts"),
)


def help_cmd() -> None:
    """List commands and the next version."""
    typer.echo("calrel - date-based releases")
    typer.echo("")
    typer.echo("Usage:")
    width = max(len(cmd) for cmd, _ in _USAGE)
    for cmd, text in _USAGE:
        typer.echo(f"  calrel {cmd.ljust(width)}  - {text}")

    root = detect_repo_root()
    if isinstance(root, Ok):
        tags = Repository(root.value).list_tags()
        if isinstance(tags, Ok):
            typer.echo("")
            typer.echo(f"Next version will be: {resolve(date.today(), tags.value).version}")


app.command("version-bump")(version_bump)
app.command()(release)
app.command("next-version")(next_version)
app.command()(status)
app.command()(build)
app.command()(test)
app.command()(lint)
app.command()(clean)
app.command("help")(help_cmd)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Repository root (overrides auto detection)",
    ),
) -> None:
    if repo is None:
        return

    try:
        root = repo.expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --repo: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not (root / ".git").exists():
        typer.echo(f"error: --repo '{root}' is not a git repository", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    os.environ[REPO_ENV] = str(root)


def main() -> None:
    app()
