import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass

from planner.dialog.classifier import (
    BackRoute,
    CancelRoute,
    InputClassifier,
    MissRoute,
    OutsideRoute,
    StepRoute,
)
from planner.dialog.dialog import Dialog
from planner.dialog.events import Inbound
from planner.dialog.outbound import OutboundDirective, Renderer
from planner.dialog.session import DialogKind, Payload, Session
from planner.dialog.session_store import SessionStore
from planner.dialog.step import Outcome, StepContext, StepResult
from planner.localization import Localization
from planner.metrics import MetricsEngine, NoopMetricsEngine

logger = logging.getLogger(__name__)


class InvalidTransitionError(Exception):
    pass


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    users: int = 0


class OwnerLocks:
    """One FIFO lock per owner, dropped when nobody holds or waits for it"""

    def __init__(self):
        self._locks: dict[int, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, owner_id: int):
        entry = self._locks.get(owner_id)
        if entry is None:
            entry = self._locks[owner_id] = _LockEntry(asyncio.Lock())

        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[owner_id]

    def __len__(self):
        return len(self._locks)


class DialogCoordinator:
    def __init__(
        self,
        store: SessionStore,
        dialogs: list[Dialog],
        renderer: Renderer,
        texts: Localization,
        metrics: MetricsEngine | None = None,
    ):
        self.store = store
        self.dialogs = {dialog.kind: dialog for dialog in dialogs}
        self.renderer = renderer
        self.texts = texts
        self.metrics = metrics or NoopMetricsEngine()
        self.classifier = InputClassifier(
            {kind: dialog.graph for kind, dialog in self.dialogs.items()}
        )
        self._locks = OwnerLocks()

    def active_kind(self, owner_id: int) -> DialogKind | None:
        session = self.store.get(owner_id)
        return session.kind if session else None

    async def start(
        self,
        event: Inbound,
        kind: DialogKind,
        payload: Payload | None = None,
    ) -> Session:
        """Starts a dialog for the event's owner, replacing any active one"""
        dialog = self.dialogs[kind]
        async with self._locks.hold(event.owner_id):
            if previous := self.store.get(event.owner_id):
                logger.info(
                    f"Dialog {previous.kind} of {event.owner_id} replaced by {kind}"
                )
                self._finished(previous.kind, "replaced")

            session = self.store.set(
                event.owner_id,
                kind,
                payload if payload is not None else dialog.new_payload(),
                dialog.graph.start,
            )
            self.metrics.inc("dialog_started_total", {"kind": kind})
            await self._deliver(event, dialog.render(session, event.language))
        return session

    async def handle(self, event: Inbound) -> bool:
        """Routes one event through the active dialog of its owner.

        Returns False when the event is not for the dialog engine."""
        async with self._locks.hold(event.owner_id):
            session = self.store.get(event.owner_id)
            route = self.classifier.classify(event, session)

            self.metrics.inc(
                "dialog_events_total",
                {"kind": session.kind if session else "none", "route": route.name},
            )
            logger.debug(f"Event of {event.owner_id} routed to {route}")

            match route:
                case OutsideRoute():
                    return False
                case CancelRoute():
                    assert session is not None
                    await self._cancel(event, session)
                case MissRoute(reason=reason):
                    await self._deliver(
                        event,
                        OutboundDirective(
                            notice=self.texts.get(f"miss_{reason}", event.language)
                        ),
                    )
                case BackRoute():
                    assert session is not None
                    await self._back(event, session)
                case StepRoute():
                    assert session is not None
                    await self._run_step(event, session, route)
            return True

    async def _cancel(self, event: Inbound, session: Session):
        self.store.clear(event.owner_id)
        self._finished(session.kind, "cancelled")
        logger.info(f"Dialog {session.kind} of {event.owner_id} cancelled")

        await self._deliver(
            event,
            OutboundDirective(text=self.texts.get("cancelled", event.language)),
        )

    async def _back(self, event: Inbound, session: Session):
        dialog = self.dialogs[session.kind]
        *history, previous = session.history
        restored = self.store.set(
            event.owner_id,
            session.kind,
            session.copy().payload,
            previous,
            history,
        )
        await self._deliver(event, dialog.render(restored, event.language))

    async def _run_step(self, event: Inbound, session: Session, route: StepRoute):
        dialog = self.dialogs[session.kind]
        context = StepContext(session.copy(), event, route.action)

        started = time.monotonic()
        try:
            result = await route.handler(context)
            stored = self._apply(dialog, session, context.session, route, result)
        except InvalidTransitionError as e:
            logger.error(f"Invalid transition in {session.kind}: {e}")
            await self._deliver(event, self._error_directive(event))
            return
        except Exception as e:
            logger.exception(e)
            await self._deliver(event, self._error_directive(event))
            return
        finally:
            self.metrics.observe(
                "dialog_step_seconds",
                {"kind": session.kind, "step": str(session.step)},
                time.monotonic() - started,
            )

        directive = result.directive
        if directive is None:
            directive = (
                dialog.render(stored, event.language)
                if stored is not None
                else OutboundDirective(text=self.texts.get("done", event.language))
            )
        await self._deliver(event, directive)

    def _apply(
        self,
        dialog: Dialog,
        session: Session,
        working: Session,
        route: StepRoute,
        result: StepResult,
    ) -> Session | None:
        owner_id = session.owner_id

        match result.outcome:
            case Outcome.ADVANCE:
                if result.step not in route.targets:
                    raise InvalidTransitionError(
                        f"{session.step} -> {result.step} is not declared"
                    )
                return self.store.set(
                    owner_id,
                    session.kind,
                    working.payload,
                    result.step,
                    [*session.history, session.step],
                )
            case Outcome.STAY:
                # refreshed timestamp, expiry measures inactivity
                return self.store.set(
                    owner_id,
                    session.kind,
                    working.payload,
                    session.step,
                    session.history,
                )
            case Outcome.RESTART:
                if result.step != dialog.graph.start:
                    raise InvalidTransitionError(
                        f"restart must go to {dialog.graph.start}, not {result.step}"
                    )
                return self.store.set(
                    owner_id,
                    session.kind,
                    working.payload,
                    result.step,
                )
            case Outcome.TERMINATE:
                if result.committed and session.step != dialog.graph.terminal:
                    raise InvalidTransitionError(
                        f"commit from non terminal step {session.step}"
                    )
                self.store.clear(owner_id)
                self._finished(
                    session.kind, "committed" if result.committed else "abandoned"
                )
                return None

    def _finished(self, kind: DialogKind, result: str):
        self.metrics.inc("dialog_finished_total", {"kind": kind, "result": result})

    def _error_directive(self, event: Inbound):
        return OutboundDirective(
            notice=self.texts.get("error_generic", event.language),
        )

    async def _deliver(self, event: Inbound, directive: OutboundDirective):
        try:
            await self.renderer.render(event, directive)
        except Exception as e:
            logger.exception(f"Failed to deliver response to {event.owner_id}: {e}")
