from __future__ import annotations

from dataclasses import dataclass

from calrel.core.config import Config
from calrel.core.result import Err, Ok, Result
from calrel.output.console import ConsoleProtocol
from calrel.release.branch import BranchRef
from calrel.release.errors import PipelineError, ReleaseError, ReleaseErrorKind, StepFailure
from calrel.release.pipeline import Step, StepRecord, completed_names, run_steps
from calrel.release.ports import PackageRegistry, VersionControl
from calrel.release.version import Version

INTEGRATE_STEPS = ("checkout-trunk", "merge", "tag", "push", "publish")


@dataclass(frozen=True, slots=True)
class ReleaseReport:
    """Outcome of a release; the tag is what the next resolution reads."""

    version: Version
    branch: str
    tag: str
    steps: tuple[StepRecord, ...]

    @property
    def completed(self) -> tuple[str, ...]:
        return completed_names(self.steps)

    @property
    def is_dry_run(self) -> bool:
        return any(s.status == "planned" for s in self.steps)


def merge_message(branch: str) -> str:
    return f"Merge branch '{branch}'"


def tag_message(version: Version) -> str:
    return f"Release {version.to_tag()}"


def integrate(
    vcs: VersionControl,
    registry: PackageRegistry,
    branch: BranchRef,
    version: Version,
    *,
    config: Config,
    console: ConsoleProtocol,
    resume_from: str | None = None,
    dry_run: bool = False,
) -> Result[ReleaseReport, StepFailure]:
    """Merge the release branch into trunk, tag, push and publish.

    Steps run strictly in order and the first failure stops the run. Steps
    already done stay done: a pushed tag survives a rejected publish. Pass
    ``resume_from`` to pick up at a later step after a human has looked at
    the failure.
    """
    trunk = config.release.trunk
    remote = config.release.remote
    tag = version.to_tag()

    def checkout_trunk() -> Result[str | None, PipelineError]:
        result = vcs.checkout(trunk)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="vcs_failed",
                    message=f"failed to switch to {trunk}",
                    hint=result.error.message,
                )
            )
        return Ok(trunk)

    def merge() -> Result[str | None, PipelineError]:
        result = vcs.merge_no_ff(branch.name, merge_message(branch.name))
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="merge_conflict",
                    message=f"failed to merge {branch.name} into {trunk}",
                    hint=result.error.message,
                )
            )
        return Ok(result.value)

    def create_tag() -> Result[str | None, PipelineError]:
        exists = vcs.tag_exists(tag)
        if isinstance(exists, Err):
            return Err(
                ReleaseError(
                    kind="vcs_failed",
                    message="failed to look up tags",
                    hint=exists.error.message,
                )
            )
        if exists.value:
            return Err(
                ReleaseError(
                    kind="tag_exists",
                    message=f"tag already exists: {tag}",
                    hint="Tags are immutable; release a new version instead",
                )
            )

        result = vcs.create_annotated_tag(tag, tag_message(version))
        if isinstance(result, Err):
            kind: ReleaseErrorKind = (
                "tag_exists" if "already exists" in result.error.message else "vcs_failed"
            )
            return Err(
                ReleaseError(
                    kind=kind,
                    message=f"failed to create tag {tag}",
                    hint=result.error.message,
                )
            )
        return Ok(tag)

    def push() -> Result[str | None, PipelineError]:
        for ref, label in ((trunk, trunk), (f"refs/tags/{tag}", tag)):
            result = vcs.push(remote, ref)
            if isinstance(result, Err):
                return Err(
                    ReleaseError(
                        kind="push_rejected",
                        message=f"push of {label} to {remote} rejected",
                        hint=result.error.message,
                    )
                )
        return Ok(f"{trunk}, {tag} -> {remote}")

    def publish() -> Result[str | None, PipelineError]:
        result = registry.publish(version)
        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="publish_rejected",
                    message=f"registry rejected {version}: {result.error.message}",
                    hint=result.error.hint,
                )
            )
        return Ok(str(version))

    steps = (
        Step("checkout-trunk", f"switch to {trunk}", checkout_trunk),
        Step("merge", f"merge --no-ff {branch.name} into {trunk}", merge),
        Step("tag", f"tag {tag} (annotated)", create_tag),
        Step("push", f"push {trunk} and {tag} to {remote}", push),
        Step("publish", f"publish {version} to the registry", publish),
    )
    ran = run_steps(steps, console=console, start_at=resume_from, dry_run=dry_run)
    if isinstance(ran, Err):
        return ran

    return Ok(ReleaseReport(version=version, branch=branch.name, tag=tag, steps=ran.value))
