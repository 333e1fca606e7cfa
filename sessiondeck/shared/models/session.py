"""Session state: a git working tree, its agent binding and UI state."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from sessiondeck.engine.models import (
    BranchStatus,
    ExplorerFilter,
    FileViewerPosition,
    PrState,
    SessionStatus,
    SessionType,
)

UNKNOWN_BRANCH = "unknown"
DEFAULT_TAB_NAME = "Terminal"


def make_id(prefix: str) -> str:
    """Return ``<prefix>-<epoch ms>-<9 random chars>``."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass
class TerminalTab:
    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass
class TerminalTabsState:
    """Ordered user-terminal tabs. ``tabs`` is never empty once created."""
    tabs: list[TerminalTab] = field(default_factory=list)
    active_tab_id: Optional[str] = None

    @classmethod
    def default(cls) -> TerminalTabsState:
        tab = TerminalTab(id=make_id("tab"), name=DEFAULT_TAB_NAME)
        return cls(tabs=[tab], active_tab_id=tab.id)

    @classmethod
    def from_dict(cls, data: Any) -> TerminalTabsState:
        """Rebuild from persisted data, falling back to a single default tab.

        The active tab is runtime state and is not read back; the first
        tab becomes active after a restart.
        """
        if not isinstance(data, dict):
            return cls.default()
        tabs: list[TerminalTab] = []
        for raw in data.get("tabs") or []:
            if isinstance(raw, dict) and raw.get("id"):
                tabs.append(TerminalTab(id=str(raw["id"]), name=str(raw.get("name") or DEFAULT_TAB_NAME)))
        if not tabs:
            return cls.default()
        return cls(tabs=tabs, active_tab_id=tabs[0].id)

    def index_of(self, tab_id: str) -> int:
        for i, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return i
        return -1

    def to_dict(self) -> dict[str, Any]:
        return {"tabs": [t.to_dict() for t in self.tabs]}


@dataclass
class LayoutSizes:
    """Pixel sizes of resizable regions, remembered per session."""
    explorer_width: int = 256
    file_viewer_size: int = 300
    user_terminal_height: int = 192
    diff_panel_width: int = 320
    review_panel_width: int = 320

    # Persisted camelCase key -> attribute name
    _KEYS = {
        "explorerWidth": "explorer_width",
        "fileViewerSize": "file_viewer_size",
        "userTerminalHeight": "user_terminal_height",
        "diffPanelWidth": "diff_panel_width",
        "reviewPanelWidth": "review_panel_width",
    }

    @classmethod
    def attribute_for(cls, key: str) -> str | None:
        """Map a camelCase or snake_case key to the attribute name."""
        if key in cls._KEYS:
            return cls._KEYS[key]
        if key in {f.name for f in fields(cls)}:
            return key
        return None

    @classmethod
    def from_dict(cls, data: Any) -> LayoutSizes:
        sizes = cls()
        if isinstance(data, dict):
            for key, value in data.items():
                attr = cls.attribute_for(key)
                if attr is not None and isinstance(value, (int, float)):
                    setattr(sizes, attr, int(value))
        return sizes

    def to_dict(self) -> dict[str, int]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class Session:
    """A unit of work: a git working tree, an optional agent, and UI state.

    Fields split into persisted state (serialized by the persistence
    gateway) and runtime-only state (status, monitoring, selection,
    recent files, derived branch status) that is rebuilt each process.
    """

    id: str = field(default_factory=lambda: make_id("session"))
    name: str = ""
    directory: str = ""
    branch: str = UNKNOWN_BRANCH
    status: SessionStatus = SessionStatus.IDLE
    agent_id: str | None = None

    # Repo / issue linkage
    repo_id: str | None = None
    issue_number: int | None = None
    issue_title: str | None = None

    # Review sessions
    session_type: SessionType = SessionType.DEFAULT
    pr_number: int | None = None
    pr_title: str | None = None
    pr_url: str | None = None
    pr_base_branch: str | None = None

    # UI layout
    panel_visibility: dict[str, bool] = field(default_factory=dict)
    show_diff: bool = False
    file_viewer_position: FileViewerPosition = FileViewerPosition.TOP
    layout_sizes: LayoutSizes = field(default_factory=LayoutSizes)
    explorer_filter: ExplorerFilter = ExplorerFilter.FILES
    terminal_tabs: TerminalTabsState = field(default_factory=TerminalTabsState.default)

    # Runtime-only UI state
    selected_file_path: str | None = None
    plan_file_path: str | None = None
    recent_files: list[str] = field(default_factory=list)

    # Agent monitoring (runtime-only)
    last_message: str | None = None
    last_message_time: float | None = None
    is_unread: bool = False
    working_start_time: float | None = None

    # Push-to-main tracking
    pushed_to_main_at: int | None = None  # epoch ms
    pushed_to_main_commit: str | None = None

    # Branch lifecycle
    has_had_commits: bool = False  # sticky, never cleared
    branch_status: BranchStatus = BranchStatus.IN_PROGRESS
    last_known_pr_state: PrState | None = None
    last_known_pr_number: int | None = None
    last_known_pr_url: str | None = None

    is_archived: bool = False

    @property
    def is_review(self) -> bool:
        return self.session_type == SessionType.REVIEW
