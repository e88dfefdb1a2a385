"""
Step registry for plugin-contributed build steps.

Plugins register BuildStep descriptors in any order. Once every plugin has
registered, the registry sorts them by `order` and splits them into groups;
steps inside a group run concurrently, groups run one after another.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

if TYPE_CHECKING:
    from esite.build.context import BuildContext

StepAction = Callable[["BuildContext"], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class BuildStep:
    """A unit of work contributed by a plugin that mutates the output tree."""

    name: str
    """Name of the contributing plugin; carried into failures."""

    order: int
    """Scheduling position. Equal values run concurrently."""

    dev_required: bool
    """Whether the step also runs for development builds."""

    action: StepAction
    """Coroutine function or plain function taking the BuildContext."""


@dataclass(frozen=True)
class StepGroup:
    """Steps sharing one `order` value."""

    order: int
    steps: tuple[BuildStep, ...]

    def for_mode(self, dev: bool) -> tuple[BuildStep, ...]:
        """Steps to execute; development builds keep dev-required steps only."""
        if not dev:
            return self.steps
        return tuple(step for step in self.steps if step.dev_required)


class StepRegistry:
    """Accumulates build steps and derives their execution groups.

    Groups are computed on first access and frozen afterwards; registering
    a step once the groups exist is an error.
    """

    def __init__(self) -> None:
        self._steps: list[BuildStep] = []
        self._groups: Optional[tuple[StepGroup, ...]] = None

    def register(self, *steps: BuildStep) -> None:
        """Register one or more build steps.

        Raises:
            TypeError: If an argument is not a BuildStep.
            RuntimeError: If the groups have already been derived.
        """
        if self._groups is not None:
            raise RuntimeError("Cannot register build steps after they have been grouped")
        for step in steps:
            if not isinstance(step, BuildStep):
                raise TypeError(f"Expected a BuildStep, got {type(step).__name__}")
            self._steps.append(step)

    @property
    def frozen(self) -> bool:
        return self._groups is not None

    @property
    def groups(self) -> tuple[StepGroup, ...]:
        """Registered steps grouped by `order`, ascending.

        The sort is stable, so steps keep registration order inside a group.
        """
        if self._groups is None:
            ordered = sorted(self._steps, key=lambda step: step.order)
            self._groups = tuple(
                StepGroup(order, tuple(steps))
                for order, steps in groupby(ordered, key=lambda step: step.order)
            )
        return self._groups

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self):
        return iter(self._steps)
