import re
from dataclasses import dataclass, field
from typing import Any

from planner.dialog.actions import Back, Cancel, decode_action, dialog_of
from planner.dialog.events import CallbackEvent, Inbound, TextEvent
from planner.dialog.graph import StepGraph, StepHandler
from planner.dialog.session import DialogKind, Session

CANCEL_COMMAND = re.compile(r"^/(cancel|stop)(@\w+)?$", re.IGNORECASE)


@dataclass(frozen=True)
class CancelRoute:
    name = "cancel"


# not for the dialog engine, outer handlers take it
@dataclass(frozen=True)
class OutsideRoute:
    action: Any = None
    name = "outside"


@dataclass(frozen=True)
class StepRoute:
    handler: StepHandler
    action: Any = None
    targets: frozenset[Any] = field(default_factory=frozenset)
    name = "step"


@dataclass(frozen=True)
class BackRoute:
    name = "back"


@dataclass(frozen=True)
class MissRoute:
    reason: str
    name = "miss"


type Route = CancelRoute | OutsideRoute | StepRoute | BackRoute | MissRoute


class InputClassifier:
    def __init__(self, graphs: dict[DialogKind, StepGraph]):
        self._graphs = graphs

    def classify(self, event: Inbound, session: Session | None) -> Route:
        if isinstance(event, TextEvent):
            if session is None:
                return OutsideRoute()
            if CANCEL_COMMAND.match(event.text.strip()):
                return CancelRoute()
            if event.text.startswith("/"):
                return OutsideRoute()
            return self._classify_text(session)

        assert isinstance(event, CallbackEvent)
        action = decode_action(event.token)

        if isinstance(action, Cancel):
            if session is not None and session.kind == action.dialog:
                return CancelRoute()
            return OutsideRoute(action)

        if session is None:
            return OutsideRoute(action)
        if action is None:
            return MissRoute("unknown_button")

        kind = dialog_of(action)
        if kind is None or kind != session.kind:
            return OutsideRoute(action)

        graph = self._graphs[session.kind]
        spec = graph.spec(session.step)

        if isinstance(action, Back):
            if spec.allow_back and session.history:
                return BackRoute()
            return MissRoute("stale_button")

        if spec.accepts_action(action):
            return StepRoute(spec.handler, action, spec.targets)

        if subflow := graph.subflow_for(session.step, action):
            return StepRoute(subflow.handler, action, subflow.targets)

        return MissRoute("stale_button")

    def _classify_text(self, session: Session) -> Route:
        spec = self._graphs[session.kind].spec(session.step)
        if spec.accepts_text():
            return StepRoute(spec.handler, None, spec.targets)
        return MissRoute("use_buttons")
