import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from planner.dialog.session import DialogKind, Payload, Session

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(minutes=10)

type Clock = Callable[[], datetime]


def utc_now():
    return datetime.now(timezone.utc)


class SessionStore:
    """Owner keyed sessions with lazy expiry.

    Lookups never block and never take a global lock; per owner ordering is
    the coordinator's job."""

    def __init__(self, ttl: timedelta = SESSION_TTL, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[int, Session] = {}

    def set(
        self,
        owner_id: int,
        kind: DialogKind,
        payload: Payload,
        step,
        history: Iterable = (),
    ) -> Session:
        session = Session(
            owner_id=owner_id,
            kind=kind,
            step=step,
            payload=payload,
            created_at=self._clock(),
            history=list(history),
        )
        self._sessions[owner_id] = session
        return session

    def get(self, owner_id: int) -> Session | None:
        session = self._sessions.get(owner_id)
        if session is None:
            return None

        if self._is_expired(session, self._clock()):
            # another set() may have replaced it in between
            if self._sessions.get(owner_id) is session:
                del self._sessions[owner_id]
            logger.debug(f"Session of {owner_id} ({session.kind}) expired")
            return None

        return session

    def clear(self, owner_id: int):
        self._sessions.pop(owner_id, None)

    def sweep(self) -> int:
        now = self._clock()
        expired = [
            owner_id
            for owner_id, session in list(self._sessions.items())
            if self._is_expired(session, now)
        ]
        for owner_id in expired:
            self._sessions.pop(owner_id, None)
        return len(expired)

    def __len__(self):
        return len(self._sessions)

    def _is_expired(self, session: Session, now: datetime):
        return now - session.created_at > self.ttl


class SessionSweeper:
    def __init__(self, store: SessionStore, interval: timedelta):
        self._store = store
        self._interval = interval

    async def start(self):
        while True:
            await asyncio.sleep(self._interval.total_seconds())
            removed = self._store.sweep()
            if removed:
                logger.info(f"Evicted {removed} expired sessions")
