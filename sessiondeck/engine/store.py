"""In-memory session collection shared by every engine component.

All mutation happens synchronously on one event loop, so the store needs
no locking; only persistence is deferred.
"""
from __future__ import annotations

from sessiondeck.shared.models.session import Session

from .errors import SessionNotFoundError
from .panels import DEFAULT_TOOLBAR_PANELS, SETTINGS, SIDEBAR

DEFAULT_SIDEBAR_WIDTH = 224


class SessionStore:
    """Holds the sessions, the active selection, and global UI settings."""

    def __init__(self) -> None:
        self.sessions: list[Session] = []
        self.active_session_id: str | None = None
        self.is_loading = True
        self.global_panel_visibility: dict[str, bool] = {
            SIDEBAR: True,
            SETTINGS: False,
        }
        self.sidebar_width = DEFAULT_SIDEBAR_WIDTH
        self.toolbar_panels: list[str] = list(DEFAULT_TOOLBAR_PANELS)

    def get(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return None
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    def require(self, session_id: str) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def __contains__(self, session_id: object) -> bool:
        return any(s.id == session_id for s in self.sessions)

    def __len__(self) -> int:
        return len(self.sessions)

    @property
    def active_session(self) -> Session | None:
        return self.get(self.active_session_id)

    @property
    def show_sidebar(self) -> bool:
        return self.global_panel_visibility.get(SIDEBAR, True)

    def first_non_archived(self) -> Session | None:
        return next((s for s in self.sessions if not s.is_archived), None)

    def unarchived(self) -> list[Session]:
        return [s for s in self.sessions if not s.is_archived]

    def archived(self) -> list[Session]:
        return [s for s in self.sessions if s.is_archived]
