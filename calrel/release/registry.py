"""Command-backed registry and lock collaborators.

Publishing and lock regeneration are whatever the project's toolchain does
(``cargo publish``, ``uv publish``, ``cargo check``, ``uv lock``...), so both
are configured as command lines and run in the repository root.
"""

from __future__ import annotations

from pathlib import Path

from calrel.core.result import Err, Ok, Result
from calrel.platform.process import run as run_process
from calrel.release.ports import CollaboratorError
from calrel.release.timeouts import LOCK_TIMEOUT_SECONDS, PUBLISH_TIMEOUT_SECONDS
from calrel.release.version import Version

__all__ = ["CommandLockRegenerator", "CommandRegistry", "render_command"]


def render_command(command: tuple[str, ...], version: Version) -> list[str]:
    """Substitute ``{version}`` and ``{tag}`` placeholders in each argument."""
    values = {"version": str(version), "tag": version.to_tag()}
    return [arg.format_map(values) if "{" in arg else arg for arg in command]


class CommandRegistry:
    """Publishes by running the configured command.

    A ``None`` command disables publishing: the step succeeds without doing
    anything.
    """

    def __init__(
        self,
        *,
        command: tuple[str, ...] | None,
        cwd: Path,
        timeout: float = PUBLISH_TIMEOUT_SECONDS,
    ) -> None:
        self.command = command
        self.cwd = cwd
        self.timeout = timeout

    def publish(self, version: Version) -> Result[None, CollaboratorError]:
        if self.command is None:
            return Ok(None)

        try:
            cmd = render_command(self.command, version)
        except (KeyError, ValueError) as e:
            return Err(CollaboratorError(message=f"invalid publish command: {e}"))

        result = run_process(cmd, cwd=self.cwd, timeout=self.timeout)
        if isinstance(result, Err):
            return Err(
                CollaboratorError(
                    message=str(result.error),
                    hint=result.error.detail,
                )
            )
        return Ok(None)


class CommandLockRegenerator:
    """Regenerates the lock artifact by running the configured command."""

    def __init__(
        self,
        *,
        command: tuple[str, ...],
        cwd: Path,
        timeout: float = LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self.command = command
        self.cwd = cwd
        self.timeout = timeout

    def regenerate(self) -> Result[None, CollaboratorError]:
        result = run_process(list(self.command), cwd=self.cwd, timeout=self.timeout)
        if isinstance(result, Err):
            return Err(CollaboratorError(message=str(result.error), hint=result.error.detail))
        return Ok(None)
