from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest
import typer

from calrel.cli.context import CLIContext
from calrel.core.config import Config
from calrel.core.errors import ErrorCode
from calrel.core.result import Err, Ok, Result
from calrel.git.repository import Repository
from calrel.output.console import MockConsole
from calrel.release.errors import (
    ManifestError,
    PipelineError,
    ReleaseError,
    ResolutionError,
    StepFailure,
)
from calrel.release.integrate import ReleaseReport
from calrel.release.service import ReleaseContext
from calrel.release.version import Version
from calrel.test.gitutil import add_remote, git, init_repo, requires_git

VERSION = Version(date(2025, 6, 1), 2)
CARGO = '[package]\nname = "noggin"\nversion = "0.0.0"\n'


def _config() -> Config:
    return Config.from_dict(
        {
            "manifest": {"lock": ""},
            "publish": {"command": [sys.executable, "-c", "pass"]},
        }
    )


def _install(
    monkeypatch: pytest.MonkeyPatch, path: Path, config: Config | None = None
) -> CLIContext:
    import calrel.cli.commands.release_cmd as release_cmd

    ctx = CLIContext(repo=Repository(path), config=config or _config(), console=MockConsole())

    def fake_build_context() -> CLIContext:
        return ctx

    monkeypatch.setattr(release_cmd, "build_context", fake_build_context)
    return ctx


def _fail_release_with(
    monkeypatch: pytest.MonkeyPatch, failure: StepFailure
) -> list[dict[str, object]]:
    import calrel.cli.commands.release_cmd as release_cmd

    calls: list[dict[str, object]] = []

    def fake_release(
        ctx: ReleaseContext,
        *,
        today: date,
        override: str | None = None,
        resume_from: str | None = None,
        dry_run: bool = False,
    ) -> Result[ReleaseReport, StepFailure]:
        calls.append({"today": today, "override": override, "resume_from": resume_from})
        return Err(failure)

    monkeypatch.setattr(release_cmd, "run_release", fake_release)
    return calls


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ResolutionError(kind="invalid_version", message="x"), ErrorCode.USER_ERROR),
        (ManifestError(kind="not_found", message="x"), ErrorCode.IO_ERROR),
        (ReleaseError(kind="branch_exists", message="x"), ErrorCode.RELEASE_ERROR),
        (ReleaseError(kind="merge_conflict", message="x"), ErrorCode.RELEASE_ERROR),
        (ReleaseError(kind="push_rejected", message="x"), ErrorCode.NETWORK_ERROR),
        (ReleaseError(kind="publish_rejected", message="x"), ErrorCode.NETWORK_ERROR),
        (ReleaseError(kind="invalid_input", message="x"), ErrorCode.USER_ERROR),
    ],
)
def test_exit_code_for(error: PipelineError, code: ErrorCode) -> None:
    from calrel.cli.commands.release_cmd import exit_code_for

    assert exit_code_for(StepFailure(step="s", error=error)) == code


def test_publish_failure_prints_resume_command(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    import calrel.cli.commands.release_cmd as release_cmd

    ctx = _install(monkeypatch, tmp_path)
    failure = StepFailure(
        step="publish",
        error=ReleaseError(kind="publish_rejected", message="registry rejected 20250601.0.2"),
        completed=("create-branch", "bump-manifest", "stage", "commit", "push"),
        version=VERSION,
    )
    calls = _fail_release_with(monkeypatch, failure)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(version=None, date_override="20250601", resume_from=None, dry_run=False)

    assert exc.value.exit_code == int(ErrorCode.NETWORK_ERROR)
    assert calls == [{"today": date(2025, 6, 1), "override": None, "resume_from": None}]
    console = ctx.console
    assert isinstance(console, MockConsole)
    assert console.find("completed: create-branch, bump-manifest")
    assert console.find("--version-override 20250601.0.2 --resume-from publish")
    assert console.has_error()


def test_branch_exists_has_no_resume_hint(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    import calrel.cli.commands.release_cmd as release_cmd

    ctx = _install(monkeypatch, tmp_path)
    failure = StepFailure(
        step="create-branch",
        error=ReleaseError(kind="branch_exists", message="branch already exists"),
        version=VERSION,
    )
    _fail_release_with(monkeypatch, failure)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(version=None, date_override=None, resume_from=None, dry_run=False)

    assert exc.value.exit_code == int(ErrorCode.RELEASE_ERROR)
    console = ctx.console
    assert isinstance(console, MockConsole)
    assert console.find("completed: nothing")
    assert not console.find("--resume-from")


def test_unknown_resume_step_is_user_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    import calrel.cli.commands.release_cmd as release_cmd

    _install(monkeypatch, tmp_path)
    calls = _fail_release_with(
        monkeypatch, StepFailure(step="x", error=ReleaseError(kind="vcs_failed", message="x"))
    )

    with pytest.raises(typer.Exit) as exc:
        release_cmd.release(
            version="20250601.0.2", date_override=None, resume_from="commit", dry_run=False
        )

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert calls == []


def test_bad_date_is_user_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import calrel.cli.commands.release_cmd as release_cmd

    _install(monkeypatch, tmp_path)

    with pytest.raises(typer.Exit) as exc:
        release_cmd.next_version(date_override="June 1st")

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


@requires_git
class TestAgainstGit:
    @pytest.fixture
    def repo(self, tmp_path: Path) -> Path:
        path = init_repo(tmp_path / "work", files={"Cargo.toml": CARGO})
        add_remote(path, tmp_path / "origin.git")
        git(path, "tag", "-a", "v20250601.0.0", "-m", "r")
        git(path, "tag", "-a", "v20250601.0.1", "-m", "r")
        return path

    def test_next_version(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        import calrel.cli.commands.release_cmd as release_cmd

        _install(monkeypatch, repo)

        release_cmd.next_version(date_override="2025-06-01")

        assert capsys.readouterr().out == "20250601.0.2\n"

    def test_release(self, repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import calrel.cli.commands.release_cmd as release_cmd

        ctx = _install(monkeypatch, repo)

        release_cmd.release(version=None, date_override="20250601", resume_from=None, dry_run=False)

        console = ctx.console
        assert isinstance(console, MockConsole)
        assert console.find("Released v20250601.0.2")
        assert git(repo, "tag", "--list", "v20250601.0.2") == "v20250601.0.2"

    def test_version_bump_only_cuts_branch(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import calrel.cli.commands.release_cmd as release_cmd

        ctx = _install(monkeypatch, repo)

        release_cmd.version_bump(version=None, date_override="20250601", dry_run=False)

        assert git(repo, "rev-parse", "--abbrev-ref", "HEAD") == "release/v20250601.0.2"
        assert git(repo, "tag", "--list", "v20250601.0.2") == ""
        console = ctx.console
        assert isinstance(console, MockConsole)
        assert console.find("Created branch release/v20250601.0.2")

    def test_dry_run_changes_nothing(self, repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import calrel.cli.commands.release_cmd as release_cmd

        ctx = _install(monkeypatch, repo)
        head = git(repo, "rev-parse", "HEAD")

        release_cmd.release(version=None, date_override="20250601", resume_from=None, dry_run=True)

        assert git(repo, "rev-parse", "HEAD") == head
        assert git(repo, "branch", "--list", "release/*") == ""
        console = ctx.console
        assert isinstance(console, MockConsole)
        assert console.find("dry run: v20250601.0.2 was not released")

    def test_status(self, repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import calrel.cli.commands.release_cmd as release_cmd

        ctx = _install(monkeypatch, repo)

        release_cmd.status(date_override="20250601")

        console = ctx.console
        assert isinstance(console, MockConsole)
        assert console.find("manifest:   Cargo.toml = 0.0.0")
        assert console.find("latest v20250601.0.1")
        assert console.find("next:       20250601.0.2")


def test_release_success_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    import calrel.cli.commands.release_cmd as release_cmd
    from calrel.release.pipeline import StepRecord

    ctx = _install(monkeypatch, tmp_path)
    report = ReleaseReport(
        version=VERSION,
        branch="release/v20250601.0.2",
        tag="v20250601.0.2",
        steps=(StepRecord("publish", "done", "20250601.0.2"),),
    )

    def fake_release(ctx: ReleaseContext, **_: object) -> Result[ReleaseReport, StepFailure]:
        return Ok(report)

    monkeypatch.setattr(release_cmd, "run_release", fake_release)

    release_cmd.release(version=None, date_override=None, resume_from=None, dry_run=False)

    console = ctx.console
    assert isinstance(console, MockConsole)
    assert console.find("OK publish (20250601.0.2)")
    assert console.find("Released v20250601.0.2")
    assert not console.has_error()
