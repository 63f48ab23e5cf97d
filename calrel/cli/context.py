from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from calrel.core.config import Config, load_config
from calrel.core.errors import ErrorCode
from calrel.core.result import Err, Ok, Result
from calrel.git.repository import Repository, find_repo_root
from calrel.output.console import ConsoleProtocol, RichConsole
from calrel.release.registry import CommandLockRegenerator, CommandRegistry
from calrel.release.service import ReleaseContext

REPO_ENV = "CALREL_REPO_ROOT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo: Repository
    config: Config
    console: ConsoleProtocol

    def release_context(self) -> ReleaseContext:
        root = self.repo.root
        lock_command = self.config.manifest.lock_command
        return ReleaseContext(
            vcs=self.repo,
            registry=CommandRegistry(command=self.config.publish.command, cwd=root),
            lock=CommandLockRegenerator(command=lock_command, cwd=root) if lock_command else None,
            config=self.config,
            console=self.console,
        )


def detect_repo_root() -> Result[Path, str]:
    """Repository root from ``CALREL_REPO_ROOT``, else the nearest ``.git``."""
    env = os.environ.get(REPO_ENV)
    if env:
        p = Path(env).expanduser().resolve()
        if not (p / ".git").exists():
            return Err(f"{REPO_ENV}={env} is not a git repository")
        return Ok(p)

    root = find_repo_root(Path.cwd().resolve())
    if root is None:
        return Err("not inside a git repository (use --repo)")
    return Ok(root)


def build_context() -> CLIContext:
    root = detect_repo_root()
    if isinstance(root, Err):
        typer.echo(f"error: {root.error}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    config = load_config(root.value)
    if isinstance(config, Err):
        typer.echo(f"error: {config.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        repo=Repository(root.value),
        config=config.value,
        console=RichConsole(),
    )
