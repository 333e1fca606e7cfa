"""Persistence gateway: debounced, guarded saves of the session set.

Writes are coalesced: every mutation calls ``schedule_save()`` and only
the last one inside the debounce window produces a write. Writes run one at a
time, and each serializes the store as it is after the config re-read,
so dropping intermediate states is safe.

Before writing, the gateway re-reads the stored config and keeps every
field it does not own (agents, repos, clone dir, ...).

Legacy boolean panel fields (``showExplorer`` etc.) exist only at this
boundary: they are derived from ``panel_visibility`` when serializing and
used to rebuild it when an old record has no map.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from sessiondeck.shared.models.session import (
    UNKNOWN_BRANCH,
    LayoutSizes,
    Session,
    TerminalTabsState,
)

from .interfaces import ConfigBackend
from .models import (
    BranchStatus,
    ExplorerFilter,
    FileViewerPosition,
    SessionStatus,
    SessionType,
    parse_pr_state,
)
from .panels import (
    AGENT_TERMINAL,
    DEFAULT_TOOLBAR_PANELS,
    EXPLORER,
    FILE_VIEWER,
    SETTINGS,
    SIDEBAR,
    USER_TERMINAL,
)
from .scheduler import LoopScheduler, Scheduler, TimerHandle
from .store import DEFAULT_SIDEBAR_WIDTH, SessionStore

logger = logging.getLogger(__name__)

# Legacy record key -> (panel id, default when absent)
LEGACY_PANEL_FIELDS: dict[str, tuple[str, bool]] = {
    "showAgentTerminal": (AGENT_TERMINAL, True),
    "showUserTerminal": (USER_TERMINAL, False),
    "showExplorer": (EXPLORER, False),
    "showFileViewer": (FILE_VIEWER, False),
}

_LEGACY_EXPLORER_FILTERS = {
    "all": ExplorerFilter.FILES,
    "changed": ExplorerFilter.SOURCE_CONTROL,
}


# ── record translation ─────────────────────────────────────────────


def legacy_panel_fields(panel_visibility: dict[str, bool]) -> dict[str, bool]:
    """Derive the backward-compatible boolean fields from a visibility map."""
    return {
        key: panel_visibility.get(panel_id, default)
        for key, (panel_id, default) in LEGACY_PANEL_FIELDS.items()
    }


def panel_visibility_from_record(record: dict[str, Any]) -> dict[str, bool]:
    """Use the stored map when present, else rebuild it from legacy booleans."""
    stored = record.get("panelVisibility")
    if isinstance(stored, dict):
        return {str(k): bool(v) for k, v in stored.items()}
    visibility: dict[str, bool] = {}
    for key, (panel_id, default) in LEGACY_PANEL_FIELDS.items():
        value = record.get(key)
        visibility[panel_id] = default if value is None else bool(value)
    return visibility


def migrate_explorer_filter(value: Any) -> ExplorerFilter:
    if value in _LEGACY_EXPLORER_FILTERS:
        return _LEGACY_EXPLORER_FILTERS[value]
    try:
        return ExplorerFilter(value)
    except ValueError:
        return ExplorerFilter.FILES


def migrate_toolbar_panels(saved: list[str] | None) -> list[str]:
    """Ensure a saved toolbar order includes every default panel.

    Panels added in later versions are inserted before ``settings`` so the
    settings button stays last.
    """
    if not saved:
        return list(DEFAULT_TOOLBAR_PANELS)
    missing = [p for p in DEFAULT_TOOLBAR_PANELS if p not in saved]
    if not missing:
        return list(saved)
    result = list(saved)
    for panel_id in missing:
        if SETTINGS in result:
            result.insert(result.index(SETTINGS), panel_id)
        else:
            result.append(panel_id)
    return result


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def session_to_record(session: Session) -> dict[str, Any]:
    """Serialize the persisted subset of a session.

    Runtime-only fields (status, monitoring, selection, recent files,
    active tab, derived branch status) are never written.
    """
    record: dict[str, Any] = {
        "id": session.id,
        "name": session.name,
        "directory": session.directory,
        "agentId": session.agent_id,
        "repoId": session.repo_id,
        "issueNumber": session.issue_number,
        "issueTitle": session.issue_title,
        "panelVisibility": dict(session.panel_visibility),
        "sessionType": session.session_type.value,
        "prNumber": session.pr_number,
        "prTitle": session.pr_title,
        "prUrl": session.pr_url,
        "prBaseBranch": session.pr_base_branch,
        **legacy_panel_fields(session.panel_visibility),
        "showDiff": session.show_diff,
        "fileViewerPosition": session.file_viewer_position.value,
        "layoutSizes": session.layout_sizes.to_dict(),
        "explorerFilter": session.explorer_filter.value,
        "terminalTabs": session.terminal_tabs.to_dict(),
        "pushedToMainAt": session.pushed_to_main_at,
        "pushedToMainCommit": session.pushed_to_main_commit,
        "hasHadCommits": session.has_had_commits or None,
        "lastKnownPrState": (
            session.last_known_pr_state.value if session.last_known_pr_state else None
        ),
        "lastKnownPrNumber": session.last_known_pr_number,
        "lastKnownPrUrl": session.last_known_pr_url,
        "isArchived": session.is_archived or None,
    }
    return {k: v for k, v in record.items() if v is not None}


def record_to_session(record: dict[str, Any], branch: str = UNKNOWN_BRANCH) -> Session:
    """Hydrate a persisted record. Runtime fields start from defaults."""
    return Session(
        id=str(record["id"]),
        name=str(record.get("name") or ""),
        directory=str(record["directory"]),
        branch=branch,
        status=SessionStatus.IDLE,
        agent_id=record.get("agentId"),
        repo_id=record.get("repoId"),
        issue_number=record.get("issueNumber"),
        issue_title=record.get("issueTitle"),
        session_type=_enum_or_default(
            SessionType, record.get("sessionType") or "default", SessionType.DEFAULT
        ),
        pr_number=record.get("prNumber"),
        pr_title=record.get("prTitle"),
        pr_url=record.get("prUrl"),
        pr_base_branch=record.get("prBaseBranch"),
        panel_visibility=panel_visibility_from_record(record),
        show_diff=bool(record.get("showDiff", False)),
        file_viewer_position=_enum_or_default(
            FileViewerPosition, record.get("fileViewerPosition") or "top",
            FileViewerPosition.TOP,
        ),
        layout_sizes=LayoutSizes.from_dict(record.get("layoutSizes")),
        explorer_filter=migrate_explorer_filter(record.get("explorerFilter")),
        terminal_tabs=TerminalTabsState.from_dict(record.get("terminalTabs")),
        pushed_to_main_at=record.get("pushedToMainAt"),
        pushed_to_main_commit=record.get("pushedToMainCommit"),
        has_had_commits=bool(record.get("hasHadCommits", False)),
        branch_status=BranchStatus.IN_PROGRESS,
        last_known_pr_state=parse_pr_state(record.get("lastKnownPrState")),
        last_known_pr_number=record.get("lastKnownPrNumber"),
        last_known_pr_url=record.get("lastKnownPrUrl"),
        is_archived=bool(record.get("isArchived", False)),
    )


def apply_global_settings(store: SessionStore, config: dict[str, Any]) -> None:
    """Copy persisted global UI settings into the store."""
    show_sidebar = config.get("showSidebar")
    show_sidebar = True if show_sidebar is None else bool(show_sidebar)
    store.global_panel_visibility = {SIDEBAR: show_sidebar, SETTINGS: False}
    store.sidebar_width = int(config.get("sidebarWidth") or DEFAULT_SIDEBAR_WIDTH)
    store.toolbar_panels = migrate_toolbar_panels(config.get("toolbarPanels"))


# ── gateway ────────────────────────────────────────────────────────


class PersistenceGateway:
    """Debounced writer for the store, with a data-loss save guard.

    Attributes:
        profile_id: Profile to read and write; ``None`` is the legacy file.
        loaded_session_count: Session count from the last *successful*
            load. A failed reload leaves it untouched, so the guard keeps
            protecting data that is still on disk.
        write_count: Completed writes, for observers and tests.
    """

    def __init__(
        self,
        store: SessionStore,
        backend: ConfigBackend,
        *,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = 0.5,
        profile_id: str | None = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._scheduler = scheduler or LoopScheduler()
        self._debounce_seconds = debounce_seconds
        self._handle: TimerHandle | None = None
        self._dirty = False
        self._writing = False
        self._lock = asyncio.Lock()
        self.profile_id = profile_id
        self.loaded_session_count = 0
        self.write_count = 0

    @property
    def pending(self) -> bool:
        """True between ``schedule_save()`` and the write it leads to.

        Also True while a write is in flight.
        """
        return self._dirty or self._writing

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    async def load_config(self) -> dict[str, Any]:
        return await self._backend.load(self.profile_id)

    def record_loaded(self, count: int) -> None:
        self.loaded_session_count = count

    def schedule_save(self) -> None:
        self._dirty = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        try:
            self._handle = self._scheduler.call_later(
                self._debounce_seconds, self._on_timer
            )
        except RuntimeError:
            # LoopScheduler outside a running loop; the next flush() writes.
            logger.warning("No running event loop; save deferred until flush()")

    async def _on_timer(self) -> None:
        self._handle = None
        async with self._lock:
            if self._dirty:
                await self._write()

    async def flush(self) -> bool:
        """Write now if a save is pending. Returns True on write.

        Waits for a write already in progress before deciding.
        """
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        async with self._lock:
            if not self._dirty:
                return False
            return await self._write()

    async def save_now(self) -> bool:
        """Write immediately regardless of pending state."""
        self._dirty = True
        return await self.flush()

    async def _write(self) -> bool:
        # Caller holds self._lock.
        self._writing = True
        try:
            try:
                current = await self._backend.load(self.profile_id)
            except Exception:
                self._dirty = False
                logger.warning(
                    "Could not read current config for profile %s; skipping save",
                    self.profile_id, exc_info=True,
                )
                return False

            # Snapshot only after the read-back; a schedule_save() from here
            # on marks the gateway dirty again and leads to another write.
            self._dirty = False
            sessions = list(self._store.sessions)

            if not sessions and self.loaded_session_count > 0:
                logger.warning(
                    "Save guard: refusing to save empty sessions list "
                    "(%d sessions were loaded from disk)",
                    self.loaded_session_count,
                )
                return False

            document = dict(current)
            document.update({
                "profileId": self.profile_id,
                "agents": current.get("agents"),
                "sessions": [session_to_record(s) for s in sessions],
                "showSidebar": self._store.show_sidebar,
                "sidebarWidth": self._store.sidebar_width,
                "toolbarPanels": list(self._store.toolbar_panels),
            })
            try:
                await self._backend.save(document)
            except Exception:
                logger.error(
                    "Failed to save %d sessions for profile %s",
                    len(sessions), self.profile_id, exc_info=True,
                )
                return False
        finally:
            self._writing = False

        self.write_count += 1
        logger.debug(
            "Saved %d sessions (profile=%s)", len(sessions), self.profile_id
        )
        return True
