"""
Build runner: executes grouped build steps against a fresh output tree.

A run copies the source tree into the output directory, then walks the step
groups in ascending order. Steps inside a group run concurrently and all of
them finish even when one fails; a group with failures ends the run.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from esite.build.context import BuildContext
from esite.build.steps import BuildStep
from esite.build.workspace import prepare_output
from esite.core.errors import EsiteError
from esite.core.utils import format_duration, log


class BuildMode(str, Enum):
    DEV = "dev"
    PROD = "prod"


@dataclass(frozen=True)
class StepFailure:
    """A step that raised, with the exception it raised."""

    step: BuildStep
    error: BaseException

    def __str__(self) -> str:
        return f"{self.step.name}: {self.error}"


class BuildError(EsiteError):
    """Raised by BuildOutcome.raise_for_failures(); keeps every failure."""

    def __init__(self, failures: list[StepFailure]):
        self.failures = list(failures)
        lines = "\n".join(f"  - {failure}" for failure in self.failures)
        super().__init__(f"Build failed with {len(self.failures)} error(s):\n{lines}")


@dataclass
class BuildOutcome:
    """Result of one run. Failures is empty on success."""

    mode: BuildMode
    failures: list[StepFailure] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def errors(self) -> list[BaseException]:
        return [failure.error for failure in self.failures]

    def raise_for_failures(self) -> None:
        if self.failures:
            raise BuildError(self.failures)


async def _invoke(step: BuildStep, context: BuildContext) -> None:
    if inspect.iscoroutinefunction(step.action):
        await step.action(context)
        return
    result = await asyncio.to_thread(step.action, context)
    if inspect.isawaitable(result):
        await result


class BuildRunner:
    """Runs the registered build steps of a BuildContext."""

    def __init__(self, context: BuildContext):
        self.context = context

    async def run(self, mode: Union[BuildMode, str] = BuildMode.PROD) -> BuildOutcome:
        """Rebuild the output tree from scratch.

        Step failures are returned in the outcome, never raised. A
        WorkspaceError (output directory cannot be prepared) propagates.
        """
        mode = BuildMode(mode)
        dev = mode is BuildMode.DEV
        config = self.context.config
        outcome = BuildOutcome(mode)
        start = time.time()

        log.header(f"Building ({mode.value})")
        self.context.encrypted_paths.clear()

        await prepare_output(config.source_path, config.build_path)
        outcome.timings["workspace"] = round(time.time() - start, 3)

        for group in self.context.steps.groups:
            steps = group.for_mode(dev)
            if not steps:
                continue

            group_start = time.time()
            log.dim(f"[{group.order}] {', '.join(step.name for step in steps)}")
            results = await asyncio.gather(
                *(_invoke(step, self.context) for step in steps),
                return_exceptions=True,
            )
            outcome.timings[f"group {group.order}"] = round(time.time() - group_start, 3)

            for step, result in zip(steps, results):
                if isinstance(result, Exception):
                    outcome.failures.append(StepFailure(step, result))
                elif isinstance(result, BaseException):
                    raise result

            if outcome.failures:
                break

        outcome.timings["total"] = round(time.time() - start, 3)
        if outcome.ok:
            log.success(f"Build finished in {format_duration(outcome.timings['total'])}")
        else:
            for failure in outcome.failures:
                log.error(str(failure))
        return outcome
