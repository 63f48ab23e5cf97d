"""Release use cases: resolve the version, cut the branch, integrate.

Each stage is a precondition for the next. Today's date and the explicit
version override are parameters; nothing in here reads the clock or the
environment.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date

from calrel.core.config import Config
from calrel.core.result import Err, Ok, Result
from calrel.output.console import ConsoleProtocol
from calrel.release.branch import BranchRef, cut_release_branch
from calrel.release.errors import ReleaseError, StepFailure
from calrel.release.integrate import ReleaseReport, integrate
from calrel.release.pipeline import completed_names
from calrel.release.ports import LockRegenerator, PackageRegistry, VersionControl
from calrel.release.version import Resolution, Version, parse_version, resolve

RESOLVE_STEP = "resolve-version"


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    """Collaborators a release runs against."""

    vcs: VersionControl
    registry: PackageRegistry
    lock: LockRegenerator | None
    config: Config
    console: ConsoleProtocol


def resolve_from_repo(
    vcs: VersionControl,
    *,
    today: date,
    console: ConsoleProtocol,
) -> Result[Resolution, StepFailure]:
    """Resolve the next version from the repository's tags."""
    tags = vcs.list_tags()
    if isinstance(tags, Err):
        return Err(
            StepFailure(
                step=RESOLVE_STEP,
                error=ReleaseError(
                    kind="vcs_failed",
                    message="failed to list tags",
                    hint=tags.error.message,
                ),
            )
        )

    resolution = resolve(today, tags.value)
    for tag in resolution.skipped:
        console.warning(f"ignoring malformed release tag: {tag}")
    return Ok(resolution)


def plan_version(
    vcs: VersionControl,
    *,
    today: date,
    override: str | None,
    console: ConsoleProtocol,
) -> Result[Version, StepFailure]:
    """The version to release: the override as-is, else the resolved one."""
    if override is not None:
        parsed = parse_version(override)
        if isinstance(parsed, Err):
            return Err(StepFailure(step=RESOLVE_STEP, error=parsed.error))
        console.info(f"using explicit version {parsed.value}")
        return Ok(parsed.value)

    resolved = resolve_from_repo(vcs, today=today, console=console)
    if isinstance(resolved, Err):
        return resolved
    console.info(f"next version: {resolved.value.version}")
    return Ok(resolved.value.version)


def version_bump(
    ctx: ReleaseContext,
    *,
    today: date,
    override: str | None = None,
    dry_run: bool = False,
) -> Result[BranchRef, StepFailure]:
    """Resolve the version and cut its release branch."""
    version = plan_version(ctx.vcs, today=today, override=override, console=ctx.console)
    if isinstance(version, Err):
        return version

    if not dry_run and not ctx.vcs.is_clean():
        ctx.console.warning(
            "working tree has uncommitted changes; only the manifest and lock are staged"
        )

    cut = cut_release_branch(
        ctx.vcs,
        version.value,
        config=ctx.config,
        lock=ctx.lock,
        console=ctx.console,
        dry_run=dry_run,
    )
    if isinstance(cut, Err):
        return Err(replace(cut.error, version=version.value))
    return cut


def release(
    ctx: ReleaseContext,
    *,
    today: date,
    override: str | None = None,
    resume_from: str | None = None,
    dry_run: bool = False,
) -> Result[ReleaseReport, StepFailure]:
    """Run the full pipeline, or resume its integration part.

    Resuming never re-cuts the branch: it needs the version that was being
    released (``override``) and continues with the integration steps from
    ``resume_from`` onward.
    """
    if resume_from is not None:
        if override is None:
            return Err(
                StepFailure(
                    step=RESOLVE_STEP,
                    error=ReleaseError(
                        kind="invalid_input",
                        message="resuming requires the version being released",
                        hint="Pass --version-override together with --resume-from",
                    ),
                )
            )
        parsed = parse_version(override)
        if isinstance(parsed, Err):
            return Err(StepFailure(step=RESOLVE_STEP, error=parsed.error))
        version = parsed.value
        name = version.branch_name(ctx.config.release.branch_prefix)
        branch = BranchRef(name=name, version=version)
    else:
        cut = version_bump(ctx, today=today, override=override, dry_run=dry_run)
        if isinstance(cut, Err):
            return cut
        branch = cut.value
        version = branch.version

    report = integrate(
        ctx.vcs,
        ctx.registry,
        branch,
        version,
        config=ctx.config,
        console=ctx.console,
        resume_from=resume_from,
        dry_run=dry_run,
    )
    if isinstance(report, Err):
        failure = report.error
        return Err(
            replace(
                failure,
                completed=completed_names(branch.steps) + failure.completed,
                version=version,
            )
        )

    return Ok(replace(report.value, steps=branch.steps + report.value.steps))
