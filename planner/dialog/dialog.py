from abc import ABC, abstractmethod

from planner.data.repository import Repository
from planner.dialog.actions import Back, Cancel
from planner.dialog.graph import StepGraph
from planner.dialog.outbound import Button, KeyboardLine, OutboundDirective
from planner.dialog.session import DialogKind, Payload, Session
from planner.dialog.step import StepContext, StepResult, stay
from planner.localization import Localization


class CommitError(Exception):
    """Raised by a terminal step when its side effect could not be applied"""

    def __init__(self, message_key: str):
        super().__init__(message_key)
        self.message_key = message_key


class Dialog(ABC):
    kind: DialogKind
    # command to restart the dialog after its session has expired
    entry_command: str

    def __init__(self, repository: Repository, texts: Localization):
        self.repository = repository
        self.texts = texts
        self.graph = self.build_graph()

    @abstractmethod
    def build_graph(self) -> StepGraph: ...

    def new_payload(self) -> Payload:
        raise ValueError(f"{self.kind} dialog needs an explicit payload")

    @abstractmethod
    def render(self, session: Session, language: str) -> OutboundDirective:
        """Prompt of the session's current step"""

    def t(self, key: str, language: str, /, **kwargs):
        return self.texts.get(key, language, **kwargs)

    def reprompt(self, ctx: StepContext, error_key: str, **kwargs) -> StepResult:
        directive = self.render(ctx.session, ctx.language)
        error = self.t(error_key, ctx.language, **kwargs)
        directive.text = f"{error}\n\n{directive.text}" if directive.text else error
        return stay(directive)

    def nav_line(self, session: Session, language: str) -> KeyboardLine:
        line: KeyboardLine = []
        if self.graph.spec(session.step).allow_back and session.history:
            line.append(Button(self.t("button_back", language), Back(self.kind)))
        line.append(Button(self.t("button_cancel", language), Cancel(self.kind)))
        return line
