"""Git repository abstraction.

``Repository`` runs the git CLI against one working tree and implements the
``VersionControl`` protocol the release pipeline depends on. Every method
that can fail returns a Result.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.list_tags():
        case Ok(tags):
            print(f"{len(tags)} tags")
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from calrel.core.result import Err, Ok, Result
from calrel.platform.process import ProcessError
from calrel.platform.process import run as run_process
from calrel.release.ports import VcsError

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "Repository",
    "VcsError",
    "find_repo_root",
]


def find_repo_root(start: Path) -> Path | None:
    """Nearest ancestor of ``start`` (inclusive) holding a ``.git`` entry."""
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


class Repository:
    """Git working tree driven through the git CLI.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def root(self) -> Path:
        return self.path

    def is_clean(self) -> bool:
        """Check if working tree is clean (no changes).

        Returns False if status cannot be determined.
        """
        result = self._run(["status", "--porcelain"])
        match result:
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def current_branch(self) -> str | None:
        """Get current branch name, None on detached HEAD or error."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def list_tags(self) -> Result[tuple[str, ...], VcsError]:
        result = self._git(["tag", "--list"], label="tag --list")
        if isinstance(result, Err):
            return result
        return Ok(tuple(line.strip() for line in result.value.splitlines() if line.strip()))

    def branch_exists(self, name: str) -> Result[bool, VcsError]:
        return self._ref_exists(f"refs/heads/{name}")

    def tag_exists(self, name: str) -> Result[bool, VcsError]:
        return self._ref_exists(f"refs/tags/{name}")

    def create_branch(self, name: str) -> Result[None, VcsError]:
        result = self._git(["checkout", "-b", name], label="checkout -b")
        return result.map(lambda _: None)

    def checkout(self, name: str) -> Result[None, VcsError]:
        result = self._git(["checkout", name], label="checkout")
        return result.map(lambda _: None)

    def stage(self, paths: Sequence[Path]) -> Result[None, VcsError]:
        if not paths:
            return Ok(None)
        rels = [self._relative(p) for p in paths]
        result = self._git(["add", "--", *rels], label="add")
        return result.map(lambda _: None)

    def is_ignored(self, path: Path) -> Result[bool, VcsError]:
        # check-ignore exits 1 when nothing matches; tracked paths never match.
        result = self._run(["check-ignore", "-q", "--", self._relative(path)])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(_git_error("check-ignore", e))

    def has_staged_changes(self, paths: Sequence[Path]) -> Result[bool, VcsError]:
        if not paths:
            return Ok(False)
        rels = [self._relative(p) for p in paths]
        # diff --quiet exits 1 when there are differences.
        result = self._run(["diff", "--cached", "--quiet", "--", *rels])
        match result:
            case Ok(_):
                return Ok(False)
            case Err(e) if e.returncode == 1:
                return Ok(True)
            case Err(e):
                return Err(_git_error("diff --cached", e))

    def commit(self, message: str, paths: Sequence[Path]) -> Result[str, VcsError]:
        rels = [self._relative(p) for p in paths]
        result = self._git(["commit", "--only", "-m", message, "--", *rels], label="commit")
        if isinstance(result, Err):
            return result
        return self.head_sha()

    def merge_no_ff(self, branch: str, message: str) -> Result[str, VcsError]:
        args = ["merge", "--no-ff", "--no-edit", "-m", message, branch]
        result = self._git(args, label="merge --no-ff")
        if isinstance(result, Err):
            return result
        return self.head_sha()

    def create_annotated_tag(self, name: str, message: str) -> Result[None, VcsError]:
        result = self._git(["tag", "-a", name, "-m", message], label="tag -a")
        return result.map(lambda _: None)

    def push(self, remote: str, ref: str) -> Result[None, VcsError]:
        result = self._git(["push", remote, ref], label="push")
        return result.map(lambda _: None)

    def head_sha(self) -> Result[str, VcsError]:
        result = self._git(["rev-parse", "HEAD"], label="rev-parse HEAD")
        if isinstance(result, Err):
            return result
        return Ok(result.value.strip())

    def _ref_exists(self, ref: str) -> Result[bool, VcsError]:
        # --verify --quiet exits 1 (no output) when the ref is missing.
        result = self._run(["rev-parse", "--verify", "--quiet", ref])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(_git_error("rev-parse --verify", e))

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.path))
        except ValueError:
            return str(path)

    def _git(self, args: list[str], *, label: str) -> Result[str, VcsError]:
        result = self._run(args)
        if isinstance(result, Err):
            return Err(_git_error(label, result.error))
        return result

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def _git_error(command: str, error: ProcessError) -> VcsError:
    return VcsError(
        command=command,
        message=error.stderr.strip() or error.stdout.strip() or f"git {command} failed",
        returncode=error.returncode,
    )
