from dataclasses import dataclass, field
from enum import Flag, auto
from typing import Any, Awaitable, Callable, Iterable

from planner.dialog.session import DialogKind
from planner.dialog.step import StepContext, StepResult

type StepHandler = Callable[[StepContext], Awaitable[StepResult]]


class GraphDefinitionError(Exception):
    pass


class Modality(Flag):
    CALLBACK = auto()
    TEXT = auto()
    BOTH = CALLBACK | TEXT


@dataclass(frozen=True)
class StepSpec:
    modality: Modality
    handler: StepHandler
    accepts: tuple[type, ...] = ()
    targets: frozenset[Any] = field(default_factory=frozenset)
    allow_back: bool = True

    def accepts_text(self):
        return Modality.TEXT in self.modality

    def accepts_action(self, action: Any):
        return Modality.CALLBACK in self.modality and isinstance(action, self.accepts)


# actions honoured at several steps without a step of their own
@dataclass(frozen=True)
class SubFlow:
    accepts: tuple[type, ...]
    handler: StepHandler
    steps: frozenset[Any]
    targets: frozenset[Any] = field(default_factory=frozenset)


class StepGraph:
    """Static step table of one dialog kind, validated on construction"""

    def __init__(
        self,
        kind: DialogKind,
        start: Any,
        terminal: Any,
        steps: dict[Any, StepSpec],
        subflows: Iterable[SubFlow] = (),
    ):
        self.kind = kind
        self.start = start
        self.terminal = terminal
        self.steps = dict(steps)
        self.subflows = tuple(subflows)
        self._validate()

    def spec(self, step) -> StepSpec:
        return self.steps[step]

    def subflow_for(self, step, action: Any) -> SubFlow | None:
        return next(
            (
                s
                for s in self.subflows
                if step in s.steps and isinstance(action, s.accepts)
            ),
            None,
        )

    def exits(self, step) -> frozenset[Any]:
        targets = set(self.steps[step].targets)
        for subflow in self.subflows:
            if step in subflow.steps:
                targets |= subflow.targets
        return frozenset(targets)

    def _validate(self):
        def fail(message: str):
            raise GraphDefinitionError(f"{self.kind}: {message}")

        if self.start not in self.steps:
            fail(f"start step {self.start} is not defined")
        if self.terminal not in self.steps:
            fail(f"terminal step {self.terminal} is not defined")
        if self.steps[self.start].allow_back:
            fail("start step cannot allow back")

        known = set(self.steps)
        for step, spec in self.steps.items():
            if unknown := spec.targets - known:
                fail(f"step {step} targets unknown steps {unknown}")
            if Modality.CALLBACK in spec.modality and not spec.accepts:
                fail(f"callback step {step} accepts no actions")
            if step != self.terminal and not spec.targets:
                if not any(step in s.steps and s.targets for s in self.subflows):
                    fail(f"step {step} has no forward exit")

        for subflow in self.subflows:
            if unknown := (subflow.steps | subflow.targets) - known:
                fail(f"sub-flow refers to unknown steps {unknown}")

        reachable = self._reachable_from(self.start)
        if unreachable := known - reachable:
            fail(f"steps {unreachable} are unreachable")

        for step in self.steps:
            if self.terminal not in self._reachable_from(step):
                fail(f"terminal step is unreachable from {step}")

    def _reachable_from(self, step) -> set[Any]:
        seen = {step}
        pending = [step]
        while pending:
            for target in self.exits(pending.pop()):
                if target not in seen:
                    seen.add(target)
                    pending.append(target)
        return seen
