"""Per-session user-terminal tabs.

Tabs are an ordered, never-empty list. Every mutation except changing
the active tab schedules a save; the active tab is runtime state.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sessiondeck.shared.models.session import TerminalTab, TerminalTabsState, make_id

if TYPE_CHECKING:
    from sessiondeck.shared.models.session import Session

    from .persistence import PersistenceGateway
    from .store import SessionStore

logger = logging.getLogger(__name__)


class TerminalTabManager:
    def __init__(self, store: SessionStore, gateway: PersistenceGateway) -> None:
        self._store = store
        self._gateway = gateway

    def _tabs(self, session_id: str) -> TerminalTabsState | None:
        session: Session | None = self._store.get(session_id)
        if session is None:
            logger.debug("Terminal tab op on unknown session %s ignored", session_id)
            return None
        return session.terminal_tabs

    def add_tab(self, session_id: str, name: str | None = None) -> str:
        """Append a tab, make it active, and return its id."""
        tab_id = make_id("tab")
        state = self._tabs(session_id)
        if state is None:
            return tab_id
        tab_name = name or f"Terminal {len(state.tabs) + 1}"
        state.tabs = [*state.tabs, TerminalTab(id=tab_id, name=tab_name)]
        state.active_tab_id = tab_id
        self._gateway.schedule_save()
        return tab_id

    def remove_tab(self, session_id: str, tab_id: str) -> None:
        state = self._tabs(session_id)
        if state is None:
            return
        index = state.index_of(tab_id)
        if index == -1:
            return
        remaining = [t for t in state.tabs if t.id != tab_id]
        if not remaining:
            return  # the last tab stays

        if state.active_tab_id == tab_id:
            # Prefer the tab now in the same slot; fall back left at the end.
            state.active_tab_id = remaining[min(index, len(remaining) - 1)].id
        state.tabs = remaining
        self._gateway.schedule_save()

    def rename_tab(self, session_id: str, tab_id: str, name: str) -> None:
        state = self._tabs(session_id)
        if state is None:
            return
        index = state.index_of(tab_id)
        if index == -1:
            return
        state.tabs[index] = TerminalTab(id=tab_id, name=name)
        self._gateway.schedule_save()

    def reorder_tabs(self, session_id: str, tabs: list[TerminalTab]) -> None:
        """Replace the tab order with a caller-supplied full ordering."""
        state = self._tabs(session_id)
        if state is None or not tabs:
            return
        state.tabs = list(tabs)
        if state.index_of(state.active_tab_id) == -1:
            state.active_tab_id = state.tabs[0].id
        self._gateway.schedule_save()

    def set_active_tab(self, session_id: str, tab_id: str) -> None:
        state = self._tabs(session_id)
        if state is None or state.index_of(tab_id) == -1:
            return
        state.active_tab_id = tab_id

    def close_others(self, session_id: str, tab_id: str) -> None:
        state = self._tabs(session_id)
        if state is None:
            return
        index = state.index_of(tab_id)
        if index == -1:
            return
        state.tabs = [state.tabs[index]]
        state.active_tab_id = tab_id
        self._gateway.schedule_save()

    def close_to_right(self, session_id: str, tab_id: str) -> None:
        state = self._tabs(session_id)
        if state is None:
            return
        index = state.index_of(tab_id)
        if index == -1:
            return
        active_index = (
            state.index_of(state.active_tab_id) if state.active_tab_id else -1
        )
        state.tabs = state.tabs[: index + 1]
        if active_index > index:
            state.active_tab_id = tab_id
        self._gateway.schedule_save()
