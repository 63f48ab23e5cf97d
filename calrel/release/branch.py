from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from calrel.core.config import Config
from calrel.core.result import Err, Ok, Result
from calrel.output.console import ConsoleProtocol
from calrel.release.errors import PipelineError, ReleaseError, StepFailure
from calrel.release.manifest import apply_version
from calrel.release.pipeline import Step, StepRecord, run_steps
from calrel.release.ports import LockRegenerator, VersionControl
from calrel.release.version import Version

BRANCH_STEPS = ("create-branch", "bump-manifest", "stage", "commit")


@dataclass(frozen=True, slots=True)
class BranchRef:
    """A release branch holding its version bump commit.

    ``commit`` is None when the branch was only planned (dry run) or is
    referenced by name when resuming an interrupted release.
    """

    name: str
    version: Version
    commit: str | None = None
    steps: tuple[StepRecord, ...] = ()


def commit_message(version: Version) -> str:
    return f"chore: bump version to {version}"


@dataclass
class _Cut:
    paths: tuple[Path, ...] = field(default_factory=tuple)
    commit: str | None = None


def cut_release_branch(
    vcs: VersionControl,
    version: Version,
    *,
    config: Config,
    lock: LockRegenerator | None,
    console: ConsoleProtocol,
    dry_run: bool = False,
) -> Result[BranchRef, StepFailure]:
    """Create ``release/v<version>`` holding a single manifest bump commit.

    The branch must not exist yet: an existing branch means a previous run
    got at least this far, and it is never reused or overwritten. On success
    the working tree is left on the new branch.
    """
    name = version.branch_name(config.release.branch_prefix)
    manifest_path = vcs.root / config.manifest.path
    lock_path = vcs.root / config.manifest.lock if config.manifest.lock else None
    cut = _Cut()

    def create_branch() -> Result[str | None, PipelineError]:
        exists = vcs.branch_exists(name)
        if isinstance(exists, Err):
            return Err(_vcs_failed("failed to list branches", exists.error.message))
        if exists.value:
            return Err(_branch_exists(name))

        created = vcs.create_branch(name)
        if isinstance(created, Err):
            if "already exists" in created.error.message:
                return Err(_branch_exists(name))
            return Err(_vcs_failed(f"failed to create branch: {name}", created.error.message))
        return Ok(name)

    def bump_manifest() -> Result[str | None, PipelineError]:
        updated = apply_version(
            manifest_path,
            version,
            settings=config.manifest,
            lock_path=lock_path,
            regenerator=lock,
            console=console,
        )
        if isinstance(updated, Err):
            return updated
        cut.paths = updated.value.paths
        return Ok(f"{updated.value.previous} -> {version}")

    def stage() -> Result[str | None, PipelineError]:
        paths: list[Path] = []
        for path in cut.paths:
            if path != manifest_path:
                ignored = vcs.is_ignored(path)
                if isinstance(ignored, Err):
                    return Err(_vcs_failed("failed to read ignore rules", ignored.error.message))
                if ignored.value:
                    console.warning(f"{path.name} is ignored by git, not staged")
                    continue
            paths.append(path)
        cut.paths = tuple(paths)

        staged = vcs.stage(cut.paths)
        if isinstance(staged, Err):
            return Err(_vcs_failed("failed to stage files", staged.error.message))
        return Ok(", ".join(p.name for p in cut.paths))

    def commit() -> Result[str | None, PipelineError]:
        pending = vcs.has_staged_changes(cut.paths)
        if isinstance(pending, Err):
            return Err(_vcs_failed("failed to inspect index", pending.error.message))
        if not pending.value:
            return Err(
                ReleaseError(
                    kind="empty_commit",
                    message=f"nothing staged for {version}",
                    hint=f"{manifest_path.name} may already declare {version}",
                )
            )

        committed = vcs.commit(commit_message(version), cut.paths)
        if isinstance(committed, Err):
            return Err(
                ReleaseError(
                    kind="empty_commit",
                    message="version bump commit failed",
                    hint=committed.error.message or "Configure git user.name and user.email",
                )
            )
        cut.commit = committed.value
        return Ok(committed.value)

    steps = (
        Step("create-branch", f"create branch {name}", create_branch),
        Step("bump-manifest", f"bump {config.manifest.path} to {version}", bump_manifest),
        Step("stage", "stage manifest and lock", stage),
        Step("commit", f"commit: {commit_message(version)}", commit),
    )
    ran = run_steps(steps, console=console, dry_run=dry_run)
    if isinstance(ran, Err):
        return ran

    return Ok(BranchRef(name=name, version=version, commit=cut.commit, steps=ran.value))


def _branch_exists(name: str) -> ReleaseError:
    return ReleaseError(
        kind="branch_exists",
        message=f"branch already exists: {name}",
        hint="A previous run may have stopped midway; inspect the branch, then delete it or resume",
    )


def _vcs_failed(message: str, detail: str) -> ReleaseError:
    return ReleaseError(kind="vcs_failed", message=message, hint=detail or None)
