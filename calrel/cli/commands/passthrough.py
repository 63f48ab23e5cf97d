"""Build, test, lint and clean passthroughs.

These run the project's own toolchain commands from ``[commands]`` in the
repository root, streaming their output.
"""

from __future__ import annotations

import typer

from calrel.cli.context import build_context
from calrel.core.errors import ErrorCode
from calrel.core.result import Err
from calrel.output.console import Style
from calrel.platform.process import run_silent


def run_configured(name: str) -> None:
    ctx = build_context()
    cmd = ctx.config.commands.get(name)
    if cmd is None:
        ctx.console.error(f"no {name} command configured (see [commands] in calrel.toml)")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    ctx.console.print(" ".join(cmd), Style.DIM)
    result = run_silent(list(cmd), cwd=ctx.repo.root)
    if isinstance(result, Err):
        ctx.console.error(f"{name} failed: {result.error}")
        raise typer.Exit(code=int(ErrorCode.BUILD_ERROR))


def build() -> None:
    """Build release artifacts."""
    run_configured("build")


def test() -> None:
    """Run the test suite."""
    run_configured("test")


def lint() -> None:
    """Run the linter."""
    run_configured("lint")


def clean() -> None:
    """Remove build artifacts."""
    run_configured("clean")
