from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from planner.dialog.events import Inbound, TextEvent
from planner.dialog.outbound import OutboundDirective
from planner.dialog.session import Session


class Outcome(Enum):
    ADVANCE = auto()
    STAY = auto()
    RESTART = auto()
    TERMINATE = auto()


@dataclass
class StepResult:
    outcome: Outcome
    step: Any = None
    directive: OutboundDirective | None = None
    committed: bool = False


def advance(step, directive: OutboundDirective | None = None):
    return StepResult(Outcome.ADVANCE, step, directive)


def stay(directive: OutboundDirective | None = None):
    return StepResult(Outcome.STAY, directive=directive)


def restart(step, directive: OutboundDirective | None = None):
    return StepResult(Outcome.RESTART, step, directive)


def terminate(directive: OutboundDirective | None = None, committed: bool = False):
    return StepResult(Outcome.TERMINATE, directive=directive, committed=committed)


@dataclass
class StepContext:
    # working copy, the stored session changes only after the step succeeded
    session: Session
    event: Inbound
    action: Any | None = None

    @property
    def payload(self) -> Any:
        return self.session.payload

    @property
    def language(self):
        return self.event.language

    @property
    def text(self) -> str | None:
        if isinstance(self.event, TextEvent):
            return self.event.text.strip()
        return None
