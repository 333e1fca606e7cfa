"""Agent activity monitor.

Tracks each session's agent status and decides when the session needs
the user's attention:

    IDLE/ERROR ──> WORKING          record working_start_time
    WORKING ──> IDLE (>= dwell)     mark unread
    WORKING ──> IDLE (< dwell)      nothing; a notification blip
    IDLE ──> IDLE                   nothing

None of this state is persisted.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from .models import SessionStatus

if TYPE_CHECKING:
    from .store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_DWELL_SECONDS = 3.0


class AgentActivityMonitor:
    def __init__(
        self,
        store: SessionStore,
        *,
        clock: Callable[[], float] = time.time,
        dwell_seconds: float = DEFAULT_DWELL_SECONDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self.dwell_seconds = dwell_seconds

    def update(
        self,
        session_id: str,
        *,
        status: SessionStatus | None = None,
        last_message: str | None = None,
    ) -> None:
        session = self._store.get(session_id)
        if session is None:
            return
        now = self._clock()

        if last_message is not None:
            session.last_message = last_message
            session.last_message_time = now

        if status is None or status == session.status:
            return

        previous = session.status
        session.status = status

        if status == SessionStatus.WORKING:
            session.working_start_time = now
            return

        if previous == SessionStatus.WORKING:
            started = session.working_start_time
            session.working_start_time = None
            if (
                status == SessionStatus.IDLE
                and started is not None
                and now - started >= self.dwell_seconds
            ):
                session.is_unread = True
                logger.debug(
                    "Session %s finished after %.1fs; marked unread",
                    session_id, now - started,
                )

    def mark_read(self, session_id: str) -> None:
        session = self._store.get(session_id)
        if session is not None:
            session.is_unread = False

    def unread_sessions(self) -> list[str]:
        return [s.id for s in self._store.sessions if s.is_unread]
