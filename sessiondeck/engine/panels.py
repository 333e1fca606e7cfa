"""Panel registry and visibility management.

Each panel is either global (process-wide, like the sidebar or the
settings overlay) or per-session (stored in ``Session.panel_visibility``).
Which scope applies is a property of the panel definition, never of
the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sessiondeck.shared.models.session import Session

    from .persistence import PersistenceGateway
    from .store import SessionStore

logger = logging.getLogger(__name__)


class PanelPosition(str, Enum):
    SIDEBAR = "sidebar"
    LEFT = "left"
    CENTER_TOP = "center-top"
    CENTER_LEFT = "center-left"
    CENTER_MAIN = "center-main"
    CENTER_BOTTOM = "center-bottom"
    OVERLAY = "overlay"


# Panel ids are plain strings so custom panels can be registered.
SIDEBAR = "sidebar"
EXPLORER = "explorer"
FILE_VIEWER = "fileViewer"
REVIEW = "review"
AGENT_TERMINAL = "agentTerminal"
USER_TERMINAL = "userTerminal"
SETTINGS = "settings"

DEFAULT_TOOLBAR_PANELS: list[str] = [
    SIDEBAR,
    EXPLORER,
    FILE_VIEWER,
    REVIEW,
    AGENT_TERMINAL,
    USER_TERMINAL,
    SETTINGS,
]

DEFAULT_PANEL_VISIBILITY: dict[str, bool] = {
    AGENT_TERMINAL: True,
    USER_TERMINAL: True,
    EXPLORER: True,
    FILE_VIEWER: False,
}

REVIEW_PANEL_VISIBILITY: dict[str, bool] = {
    AGENT_TERMINAL: True,
    USER_TERMINAL: False,
    EXPLORER: False,
    FILE_VIEWER: False,
    REVIEW: True,
}


@dataclass(frozen=True)
class PanelDefinition:
    id: str
    name: str
    position: tuple[PanelPosition, ...]
    default_visible: bool = False
    default_in_toolbar: bool = True
    is_global: bool = False
    resizable: bool = False
    min_size: int | None = None
    max_size: int | None = None


BUILTIN_PANELS: tuple[PanelDefinition, ...] = (
    PanelDefinition(
        id=SIDEBAR, name="Sessions", position=(PanelPosition.SIDEBAR,),
        default_visible=True, is_global=True,
    ),
    PanelDefinition(
        id=EXPLORER, name="Explorer", position=(PanelPosition.LEFT,),
        resizable=True, min_size=150, max_size=500,
    ),
    PanelDefinition(
        id=FILE_VIEWER, name="File",
        position=(PanelPosition.CENTER_TOP, PanelPosition.CENTER_LEFT),
        resizable=True,
    ),
    PanelDefinition(
        id=REVIEW, name="Review", position=(PanelPosition.CENTER_LEFT,),
        resizable=True, min_size=250, max_size=600,
    ),
    PanelDefinition(
        id=AGENT_TERMINAL, name="Agent", position=(PanelPosition.CENTER_MAIN,),
        default_visible=True,
    ),
    PanelDefinition(
        id=USER_TERMINAL, name="Terminal", position=(PanelPosition.CENTER_BOTTOM,),
        resizable=True, min_size=100, max_size=500,
    ),
    PanelDefinition(
        id=SETTINGS, name="Settings", position=(PanelPosition.OVERLAY,),
        is_global=True,
    ),
)


class PanelRegistry:
    """Lookup of panel definitions by id, position, or default state."""

    def __init__(self) -> None:
        self._panels: dict[str, PanelDefinition] = {}

    def register(self, panel: PanelDefinition) -> None:
        self._panels[panel.id] = panel

    def register_all(self, panels) -> None:
        for panel in panels:
            self.register(panel)

    def get(self, panel_id: str) -> PanelDefinition | None:
        return self._panels.get(panel_id)

    def has(self, panel_id: str) -> bool:
        return panel_id in self._panels

    def all(self) -> list[PanelDefinition]:
        return list(self._panels.values())

    def by_position(self, position: PanelPosition) -> list[PanelDefinition]:
        return [p for p in self._panels.values() if position in p.position]

    def default_visible(self) -> list[str]:
        return [p.id for p in self._panels.values() if p.default_visible]

    def default_toolbar_panels(self) -> list[str]:
        return [p.id for p in self._panels.values() if p.default_in_toolbar]

    def __len__(self) -> int:
        return len(self._panels)


def default_registry() -> PanelRegistry:
    """Return a fresh registry holding the built-in panels."""
    registry = PanelRegistry()
    registry.register_all(BUILTIN_PANELS)
    return registry


class PanelVisibilityManager:
    """Reads and writes panel visibility in the scope the panel declares.

    Per-session calls without an explicit ``session_id`` act on the
    active session. Every write schedules a save.
    """

    def __init__(
        self,
        store: SessionStore,
        gateway: PersistenceGateway,
        registry: PanelRegistry | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self.registry = registry or default_registry()

    def _session(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return self._store.active_session
        return self._store.get(session_id)

    def is_visible(self, panel_id: str, session_id: str | None = None) -> bool:
        panel = self.registry.get(panel_id)
        if panel is None:
            return False
        if panel.is_global:
            return self._store.global_panel_visibility.get(panel_id, panel.default_visible)
        session = self._session(session_id)
        if session is None:
            return panel.default_visible
        return session.panel_visibility.get(panel_id, panel.default_visible)

    def toggle(self, panel_id: str, session_id: str | None = None) -> bool | None:
        """Flip a panel. Returns the new visibility, or None for a no-op."""
        if not self.registry.has(panel_id):
            logger.debug("toggle: unknown panel %s ignored", panel_id)
            return None
        return self.set_visibility(
            panel_id, not self.is_visible(panel_id, session_id), session_id
        )

    def set_visibility(
        self,
        panel_id: str,
        visible: bool,
        session_id: str | None = None,
    ) -> bool | None:
        panel = self.registry.get(panel_id)
        if panel is None:
            logger.debug("set_visibility: unknown panel %s ignored", panel_id)
            return None

        if panel.is_global:
            self._store.global_panel_visibility = {
                **self._store.global_panel_visibility,
                panel_id: visible,
            }
        else:
            session = self._session(session_id)
            if session is None:
                logger.debug(
                    "set_visibility: no session for panel %s (session_id=%s)",
                    panel_id, session_id,
                )
                return None
            session.panel_visibility = {**session.panel_visibility, panel_id: visible}

        self._gateway.schedule_save()
        return visible

    def toggle_sidebar(self) -> bool | None:
        return self.toggle(SIDEBAR)

    @property
    def show_sidebar(self) -> bool:
        return self.is_visible(SIDEBAR)

    @property
    def show_settings(self) -> bool:
        return self.is_visible(SETTINGS)

    def set_toolbar_panels(self, panels: list[str]) -> None:
        self._store.toolbar_panels = list(panels)
        self._gateway.schedule_save()

    def set_sidebar_width(self, width: int) -> None:
        self._store.sidebar_width = int(width)
        self._gateway.schedule_save()
