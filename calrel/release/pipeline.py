"""Ordered, fail-fast step execution.

A release is a list of named steps. ``run_steps`` executes them in order and
stops at the first failure; nothing already done is undone. The result
records which steps ran, which were skipped (when resuming) and which were
only planned (dry run).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal

from calrel.core.result import Err, Ok, Result
from calrel.output.console import ConsoleProtocol, Style
from calrel.release.errors import PipelineError, ReleaseError, StepFailure

StepStatus = Literal["done", "skipped", "planned"]
StepAction = Callable[[], Result[str | None, PipelineError]]


@dataclass(frozen=True, slots=True)
class Step:
    """A named unit of work.

    Attributes:
        name: Stable identifier, also accepted by ``--resume-from``.
        description: What the step does, echoed before it runs.
        action: Performs the step; Ok carries an optional detail line.
    """

    name: str
    description: str
    action: StepAction


@dataclass(frozen=True, slots=True)
class StepRecord:
    name: str
    status: StepStatus
    detail: str | None = None


def completed_names(records: Sequence[StepRecord]) -> tuple[str, ...]:
    return tuple(r.name for r in records if r.status == "done")


def run_steps(
    steps: Sequence[Step],
    *,
    console: ConsoleProtocol,
    start_at: str | None = None,
    dry_run: bool = False,
) -> Result[tuple[StepRecord, ...], StepFailure]:
    """Run ``steps`` in order, halting on the first failure.

    Args:
        steps: Steps to run.
        console: Where step descriptions are echoed.
        start_at: Skip every step before this one.
        dry_run: Echo steps without running them.

    Returns:
        Ok(records) when every step succeeded (or was skipped/planned),
        Err(StepFailure) naming the failed step and what completed before it.
    """
    names = [s.name for s in steps]
    if start_at is not None and start_at not in names:
        return Err(
            StepFailure(
                step=start_at,
                error=ReleaseError(
                    kind="invalid_input",
                    message=f"unknown step: {start_at}",
                    hint=f"Expected one of: {', '.join(names)}",
                ),
            )
        )

    records: list[StepRecord] = []
    started = start_at is None
    for step in steps:
        if not started and step.name == start_at:
            started = True
        if not started:
            console.print(f"skip {step.name}", Style.DIM)
            records.append(StepRecord(step.name, "skipped"))
            continue

        console.print(step.description, Style.DIM)
        if dry_run:
            records.append(StepRecord(step.name, "planned"))
            continue

        outcome = step.action()
        if isinstance(outcome, Err):
            return Err(
                StepFailure(
                    step=step.name,
                    error=outcome.error,
                    completed=completed_names(records),
                )
            )
        records.append(StepRecord(step.name, "done", outcome.value))

    return Ok(tuple(records))
