from __future__ import annotations

from datetime import date
from typing import NoReturn

import typer

from calrel.cli.context import CLIContext, build_context
from calrel.core.errors import ErrorCode
from calrel.core.result import Err
from calrel.output.console import ConsoleProtocol, Style
from calrel.release.errors import ManifestError, ResolutionError, StepFailure
from calrel.release.integrate import INTEGRATE_STEPS, ReleaseReport
from calrel.release.manifest import read_version
from calrel.release.pipeline import StepRecord
from calrel.release.service import release as run_release
from calrel.release.service import resolve_from_repo
from calrel.release.service import version_bump as run_version_bump
from calrel.release.version import TAG_PREFIX, Version, parse_date


def _exit(console: ConsoleProtocol, message: str, *, code: ErrorCode) -> NoReturn:
    console.error(message)
    raise typer.Exit(code=int(code))


def exit_code_for(failure: StepFailure) -> ErrorCode:
    error = failure.error
    if isinstance(error, ResolutionError):
        return ErrorCode.USER_ERROR
    if isinstance(error, ManifestError):
        return ErrorCode.IO_ERROR
    match error.kind:
        case "push_rejected" | "publish_rejected":
            return ErrorCode.NETWORK_ERROR
        case "invalid_input":
            return ErrorCode.USER_ERROR
        case _:
            return ErrorCode.RELEASE_ERROR


def _today(ctx: CLIContext, date_override: str | None) -> date:
    if date_override is None:
        return date.today()
    parsed = parse_date(date_override)
    if isinstance(parsed, Err):
        _exit(ctx.console, parsed.error.pretty(), code=ErrorCode.USER_ERROR)
    return parsed.value


def _print_steps(console: ConsoleProtocol, steps: tuple[StepRecord, ...]) -> None:
    for record in steps:
        detail = f" ({record.detail})" if record.detail else ""
        match record.status:
            case "done":
                console.success(f"{record.name}{detail}")
            case "skipped":
                console.print(f"  skipped {record.name}", Style.DIM)
            case "planned":
                console.print(f"  would run {record.name}", Style.DIM)


def report_failure(console: ConsoleProtocol, failure: StepFailure) -> NoReturn:
    """Say what completed, what failed and how to continue, then exit."""
    console.newline()
    if failure.completed:
        console.print(f"completed: {', '.join(failure.completed)}", Style.DIM)
    else:
        console.print("completed: nothing", Style.DIM)

    if failure.version is not None and failure.step in INTEGRATE_STEPS:
        console.info(
            "nothing was rolled back; once fixed, continue with: "
            f"calrel release --version-override {failure.version} --resume-from {failure.step}"
        )
    _exit(console, failure.pretty(), code=exit_code_for(failure))


def _print_report(console: ConsoleProtocol, report: ReleaseReport) -> None:
    console.header(f"Release {report.tag}")
    _print_steps(console, report.steps)
    console.newline()
    if report.is_dry_run:
        console.info(f"dry run: {report.tag} was not released")
        return
    console.success(f"Released {report.tag}")
    console.print(f"  - merged {report.branch}")
    console.print(f"  - tagged {report.tag}")
    console.print("  - pushed trunk and tag")
    console.print("  - published")


def version_bump(
    version: str | None = typer.Option(
        None, "--version-override", "-V", help="Release this exact version (YYYYMMDD.0.N)."
    ),
    date_override: str | None = typer.Option(
        None, "--date", help="Resolve as if today were this date (YYYYMMDD)."
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print planned steps only."),
) -> None:
    """Create release/v<version> with a manifest version bump commit."""
    ctx = build_context()
    today = _today(ctx, date_override)

    result = run_version_bump(
        ctx.release_context(),
        today=today,
        override=version,
        dry_run=dry_run,
    )
    if isinstance(result, Err):
        report_failure(ctx.console, result.error)

    branch = result.value
    _print_steps(ctx.console, branch.steps)
    if dry_run:
        ctx.console.info(f"dry run: {branch.name} was not created")
        return
    ctx.console.success(f"Created branch {branch.name}")


def release(
    version: str | None = typer.Option(
        None, "--version-override", "-V", help="Release this exact version (YYYYMMDD.0.N)."
    ),
    date_override: str | None = typer.Option(
        None, "--date", help="Resolve as if today were this date (YYYYMMDD)."
    ),
    resume_from: str | None = typer.Option(
        None,
        "--resume-from",
        help=f"Continue an interrupted release at: {', '.join(INTEGRATE_STEPS)}.",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print planned steps only."),
) -> None:
    """Cut, merge, tag, push and publish the next release."""
    ctx = build_context()
    today = _today(ctx, date_override)

    if resume_from is not None and resume_from not in INTEGRATE_STEPS:
        _exit(
            ctx.console,
            f"cannot resume from {resume_from!r}; expected one of: {', '.join(INTEGRATE_STEPS)}",
            code=ErrorCode.USER_ERROR,
        )

    result = run_release(
        ctx.release_context(),
        today=today,
        override=version,
        resume_from=resume_from,
        dry_run=dry_run,
    )
    if isinstance(result, Err):
        report_failure(ctx.console, result.error)

    _print_report(ctx.console, result.value)


def next_version(
    date_override: str | None = typer.Option(
        None, "--date", help="Resolve as if today were this date (YYYYMMDD)."
    ),
) -> None:
    """Print the version the next release would get."""
    ctx = build_context()
    today = _today(ctx, date_override)

    result = resolve_from_repo(ctx.repo, today=today, console=ctx.console)
    if isinstance(result, Err):
        report_failure(ctx.console, result.error)
    typer.echo(str(result.value.version))


def status(
    date_override: str | None = typer.Option(
        None, "--date", help="Resolve as if today were this date (YYYYMMDD)."
    ),
) -> None:
    """Show the manifest version, today's release tags and the next version."""
    ctx = build_context()
    today = _today(ctx, date_override)
    console = ctx.console
    manifest = ctx.config.manifest

    console.header("calrel status")
    console.print(f"repository: {ctx.repo.root}")
    console.print(f"branch:     {ctx.repo.current_branch() or '(detached)'}")
    console.print(f"trunk:      {ctx.config.release.trunk} -> {ctx.config.release.remote}")

    current = read_version(ctx.repo.root / manifest.path, settings=manifest)
    if isinstance(current, Err):
        console.warning(current.error.pretty())
    else:
        console.print(f"manifest:   {manifest.path} = {current.value}")

    resolved = resolve_from_repo(ctx.repo, today=today, console=console)
    if isinstance(resolved, Err):
        report_failure(console, resolved.error)

    resolution = resolved.value
    prefix = f"{TAG_PREFIX}{resolution.version.stamp}."
    if resolution.latest is None:
        console.print(f"today:      no release tags matching {prefix}*")
    else:
        latest = Version(resolution.version.date, resolution.latest)
        console.print(f"today:      latest {latest.to_tag()}")
    console.print(f"next:       {resolution.version}", Style.BOLD)
