"""Session lifecycle manager.

Owns the session collection (through ``SessionStore``) and composes the
terminal-tab manager, the agent activity monitor and the panel
visibility manager. Every command mutates the store synchronously and
then asks the persistence gateway for a debounced save; git and PR
queries are awaited concurrently with per-item failure isolation.

Lifecycle of one session:

    create ──> (active) ──> archive ──> unarchive ──> remove
                  │
                  └── refresh_branch_status / refresh_pr_state (polling)
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from sessiondeck.shared.models.session import UNKNOWN_BRANCH, LayoutSizes, Session

from .activity import AgentActivityMonitor
from .branch_status import BranchStatusInput, compute_branch_status
from .config import EngineConfig, fire_event
from .errors import NotAGitRepositoryError
from .interfaces import ConfigBackend, GitQuery, PrQuery
from .models import (
    BranchStatus,
    ExplorerFilter,
    FileViewerPosition,
    PrState,
    SessionStatus,
    SessionType,
    parse_pr_state,
)
from .panels import (
    DEFAULT_PANEL_VISIBILITY,
    FILE_VIEWER,
    REVIEW,
    REVIEW_PANEL_VISIBILITY,
    SETTINGS,
    PanelRegistry,
    PanelVisibilityManager,
)
from .persistence import PersistenceGateway, apply_global_settings, record_to_session
from .scheduler import Scheduler
from .store import SessionStore
from .terminal_tabs import TerminalTabManager

logger = logging.getLogger(__name__)

# Called with the new session once it is active and saved.
SessionCreatedHook = Callable[[Session], "Awaitable[None] | None"]


def repo_name_from_remote(url: str | None) -> str | None:
    """Derive a display name from a remote URL.

    ``git@github.com:acme/demo-project.git`` and
    ``https://github.com/acme/demo-project`` both give ``demo-project``.
    """
    if not url:
        return None
    stripped = re.sub(r"\.git$", "", url.strip().rstrip("/"))
    last = re.split(r"[/:]", stripped)[-1]
    name = re.sub(r"[^a-zA-Z0-9._-]", "", last)
    return name or None


class SessionManager:
    """Creates, hydrates, mutates and persists sessions."""

    def __init__(
        self,
        store: SessionStore,
        gateway: PersistenceGateway,
        git: GitQuery,
        pr: PrQuery | None = None,
        *,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.time,
        registry: PanelRegistry | None = None,
        on_session_created: SessionCreatedHook | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.config = config or EngineConfig()
        self._git = git
        self._pr = pr
        self._clock = clock
        self._on_session_created = on_session_created

        self.tabs = TerminalTabManager(store, gateway)
        self.activity = AgentActivityMonitor(
            store, clock=clock, dwell_seconds=self.config.unread_dwell_seconds
        )
        self.panels = PanelVisibilityManager(store, gateway, registry)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        *,
        backend: ConfigBackend | None = None,
        git: GitQuery | None = None,
        pr: PrQuery | None = None,
        scheduler: Scheduler | None = None,
        on_session_created: SessionCreatedHook | None = None,
    ) -> SessionManager:
        """Wire a manager with the JSON config store and the git/gh CLIs."""
        from sessiondeck.adapters.git import GitClient
        from sessiondeck.adapters.github import GhClient
        from sessiondeck.shared.services.config_store import ConfigStore

        store = SessionStore()
        gateway = PersistenceGateway(
            store,
            backend or ConfigStore(config.config_dir),
            scheduler=scheduler,
            debounce_seconds=config.save_debounce_seconds,
            profile_id=config.profile_id,
        )
        return cls(
            store,
            gateway,
            git or GitClient(timeout=config.git_timeout_seconds),
            pr or GhClient(timeout=config.git_timeout_seconds),
            config=config,
            on_session_created=on_session_created,
        )

    # ── accessors ──────────────────────────────────────────────────

    @property
    def sessions(self) -> list[Session]:
        return self.store.sessions

    @property
    def active_session(self) -> Session | None:
        return self.store.active_session

    def get(self, session_id: str) -> Session | None:
        return self.store.get(session_id)

    def _session(self, session_id: str, op: str) -> Session | None:
        session = self.store.get(session_id)
        if session is None:
            logger.debug("%s: unknown session %s ignored", op, session_id)
        return session

    # ── load / create / remove ─────────────────────────────────────

    async def load(self, profile_id: str | None = None) -> list[Session]:
        """Hydrate the store from persisted config.

        Branch names are re-queried concurrently; a failed lookup yields
        ``"unknown"`` for that session only. If the config itself cannot
        be read the store ends up empty, and the gateway's loaded count is
        left as it was so the save guard keeps protecting the file.
        """
        if profile_id is not None:
            self.gateway.profile_id = profile_id
        self.store.is_loading = True
        try:
            config = await self.gateway.load_config()
            records = [
                r for r in config.get("sessions") or []
                if isinstance(r, dict) and r.get("id") and r.get("directory")
            ]
            branches = await asyncio.gather(
                *(self._git.get_branch(r["directory"]) for r in records),
                return_exceptions=True,
            )
            sessions: list[Session] = []
            for record, branch in zip(records, branches):
                if isinstance(branch, BaseException):
                    logger.debug(
                        "Branch lookup failed for %s: %s", record["directory"], branch
                    )
                    branch = UNKNOWN_BRANCH
                sessions.append(record_to_session(record, branch or UNKNOWN_BRANCH))

            apply_global_settings(self.store, config)
            self.store.sessions = sessions
            first = self.store.first_non_archived() or (sessions[0] if sessions else None)
            self.store.active_session_id = first.id if first else None
            self.gateway.record_loaded(len(sessions))
            logger.info(
                "Loaded %d sessions (profile=%s)", len(sessions), self.gateway.profile_id
            )
        except Exception:
            logger.error(
                "Failed to load sessions (profile=%s)", self.gateway.profile_id,
                exc_info=True,
            )
            self.store.sessions = []
            self.store.active_session_id = None
        finally:
            self.store.is_loading = False

        await fire_event(self.config.event_callback, {
            "event": "sessions_loaded",
            "count": len(self.store.sessions),
        })
        return self.store.sessions

    async def create(
        self,
        directory: str,
        agent_id: str | None = None,
        *,
        name: str | None = None,
        repo_id: str | None = None,
        issue_number: int | None = None,
        issue_title: str | None = None,
        session_type: SessionType | str = SessionType.DEFAULT,
        pr_number: int | None = None,
        pr_title: str | None = None,
        pr_url: str | None = None,
        pr_base_branch: str | None = None,
    ) -> Session:
        """Create a session for ``directory`` and make it active.

        Raises:
            NotAGitRepositoryError: ``directory`` is not a git work tree.
                Nothing is added in that case.
        """
        try:
            is_repo = await self._git.is_repository(directory)
        except Exception as exc:
            raise NotAGitRepositoryError(directory) from exc
        if not is_repo:
            raise NotAGitRepositoryError(directory)

        try:
            branch = await self._git.get_branch(directory) or UNKNOWN_BRANCH
        except Exception:
            logger.warning("Could not read branch for %s", directory, exc_info=True)
            branch = UNKNOWN_BRANCH

        display_name = name
        if not display_name:
            try:
                remote = await self._git.get_remote_url(directory)
            except Exception:
                logger.debug("No remote for %s", directory, exc_info=True)
                remote = None
            display_name = (
                repo_name_from_remote(remote) or Path(directory).name or directory
            )

        session_type = SessionType(session_type)
        is_review = session_type == SessionType.REVIEW
        session = Session(
            name=display_name,
            directory=directory,
            branch=branch,
            status=SessionStatus.IDLE,
            agent_id=agent_id,
            repo_id=repo_id,
            issue_number=issue_number,
            issue_title=issue_title,
            session_type=session_type,
            pr_number=pr_number,
            pr_title=pr_title,
            pr_url=pr_url,
            pr_base_branch=pr_base_branch,
            panel_visibility=dict(
                REVIEW_PANEL_VISIBILITY if is_review else DEFAULT_PANEL_VISIBILITY
            ),
        )

        if is_review and REVIEW not in self.store.toolbar_panels:
            toolbar = list(self.store.toolbar_panels)
            if SETTINGS in toolbar:
                toolbar.insert(toolbar.index(SETTINGS), REVIEW)
            else:
                toolbar.append(REVIEW)
            self.store.toolbar_panels = toolbar

        self.store.sessions = [*self.store.sessions, session]
        self.store.active_session_id = session.id
        self.gateway.schedule_save()
        logger.info(
            "Created session %s (%s) on %s in %s",
            session.id, session.name, branch, directory,
        )

        await fire_event(self.config.event_callback, {
            "event": "session_created",
            "session_id": session.id,
            "directory": directory,
        })
        await self._run_created_hook(session)
        return session

    async def _run_created_hook(self, session: Session) -> None:
        if self._on_session_created is None:
            return
        try:
            result = self._on_session_created(session)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.warning(
                "Post-create hook failed for session %s", session.id, exc_info=True
            )

    def remove(self, session_id: str) -> bool:
        """Delete a session. Returns False if it did not exist."""
        if session_id not in self.store:
            return False
        remaining = [s for s in self.store.sessions if s.id != session_id]
        self.store.sessions = remaining
        if self.store.active_session_id == session_id:
            self.store.active_session_id = remaining[0].id if remaining else None
        self.gateway.schedule_save()
        logger.info("Removed session %s", session_id)
        return True

    def archive(self, session_id: str) -> None:
        session = self._session(session_id, "archive")
        if session is None:
            return
        session.is_archived = True
        if self.store.active_session_id == session_id:
            nxt = self.store.first_non_archived()
            self.store.active_session_id = nxt.id if nxt else None
        self.gateway.schedule_save()

    def unarchive(self, session_id: str) -> None:
        session = self._session(session_id, "unarchive")
        if session is None:
            return
        session.is_archived = False
        self.gateway.schedule_save()

    def set_active(self, session_id: str | None) -> None:
        """Select a session (or none). Selecting marks it read.

        Raises:
            SessionNotFoundError: ``session_id`` is not in the collection.
        """
        if session_id is None:
            self.store.active_session_id = None
            return
        self.store.require(session_id)
        self.store.active_session_id = session_id
        self.activity.mark_read(session_id)

    # ── branches ───────────────────────────────────────────────────

    async def refresh_all_branches(self) -> list[str]:
        """Re-query every session's branch. Returns ids whose branch changed."""
        snapshot = [(s.id, s.directory) for s in self.store.sessions]
        results = await asyncio.gather(
            *(self._git.get_branch(directory) for _, directory in snapshot),
            return_exceptions=True,
        )
        changed: list[str] = []
        for (session_id, directory), branch in zip(snapshot, results):
            if isinstance(branch, BaseException):
                logger.debug("Branch refresh failed for %s: %s", directory, branch)
                continue
            session = self.store.get(session_id)
            if session is None or not branch or branch == session.branch:
                continue
            logger.debug(
                "Session %s branch %s -> %s", session_id, session.branch, branch
            )
            session.branch = branch
            changed.append(session_id)
        return changed

    def record_push_to_main(self, session_id: str, commit: str) -> None:
        session = self._session(session_id, "record_push_to_main")
        if session is None:
            return
        session.pushed_to_main_at = int(self._clock() * 1000)
        session.pushed_to_main_commit = commit
        self.gateway.schedule_save()

    def clear_push_to_main(self, session_id: str) -> None:
        session = self._session(session_id, "clear_push_to_main")
        if session is None:
            return
        session.pushed_to_main_at = None
        session.pushed_to_main_commit = None
        self.gateway.schedule_save()

    def mark_has_had_commits(self, session_id: str) -> None:
        session = self._session(session_id, "mark_has_had_commits")
        if session is None or session.has_had_commits:
            return
        session.has_had_commits = True
        self.gateway.schedule_save()

    def update_branch_status(self, session_id: str, status: BranchStatus) -> None:
        session = self._session(session_id, "update_branch_status")
        if session is not None:
            session.branch_status = BranchStatus(status)

    def update_pr_state(
        self,
        session_id: str,
        state: PrState | str | None,
        number: int | None = None,
        url: str | None = None,
    ) -> None:
        """Record the last seen PR. Number and url keep their old values when omitted."""
        session = self._session(session_id, "update_pr_state")
        if session is None:
            return
        session.last_known_pr_state = parse_pr_state(state)
        if number is not None:
            session.last_known_pr_number = number
        if url is not None:
            session.last_known_pr_url = url
        self.gateway.schedule_save()

    async def refresh_branch_status(self, session_id: str) -> BranchStatus | None:
        """Poll git for one session and recompute its branch status.

        Returns None when the session is unknown, was removed while git
        was running, or ``git status`` failed.
        """
        session = self._session(session_id, "refresh_branch_status")
        if session is None:
            return None
        directory = session.directory
        try:
            status = await self._git.status(directory)
        except Exception as exc:
            logger.debug("git status failed for %s: %s", directory, exc)
            return None

        main_names = self.config.main_branch_names
        on_main = (status.current or session.branch) in main_names
        merged = False
        has_commits = False
        if not on_main:
            try:
                default = await self._git.default_branch(directory)
            except Exception:
                default = main_names[0]
            merged_result, commits_result = await asyncio.gather(
                self._git.is_merged_into(directory, default),
                self._git.has_branch_commits(directory, default),
                return_exceptions=True,
            )
            merged = merged_result is True
            has_commits = commits_result is True

        session = self.store.get(session_id)
        if session is None:
            logger.debug("Session %s removed during refresh; result dropped", session_id)
            return None

        if status.current and status.current != session.branch:
            session.branch = status.current
        if status.ahead > 0 or has_commits:
            self.mark_has_had_commits(session_id)

        result = compute_branch_status(BranchStatusInput(
            uncommitted_files=len(status.files),
            ahead=status.ahead,
            has_tracking_branch=bool(status.tracking),
            is_on_main_branch=on_main,
            is_merged_to_main=merged,
            has_had_commits=session.has_had_commits,
            last_known_pr_state=session.last_known_pr_state,
        ))
        self.update_branch_status(session_id, result)
        return result

    async def refresh_pr_state(self, session_id: str) -> PrState | None:
        """Ask the PR collaborator about one session's branch.

        "No PR" and query failures keep the last known state.
        """
        if self._pr is None:
            return None
        session = self._session(session_id, "refresh_pr_state")
        if session is None:
            return None
        try:
            pr = await self._pr.status(session.directory)
        except Exception as exc:
            logger.debug("PR query failed for %s: %s", session.directory, exc)
            pr = None

        session = self.store.get(session_id)
        if session is None:
            return None
        if pr is None:
            return session.last_known_pr_state
        if (
            pr.state != session.last_known_pr_state
            or pr.number != session.last_known_pr_number
            or pr.url != session.last_known_pr_url
        ):
            self.update_pr_state(session_id, pr.state, pr.number, pr.url)
        return pr.state

    async def refresh_all_branch_statuses(self) -> dict[str, BranchStatus]:
        """Refresh PR state then branch status for every session."""
        async def refresh_one(session_id: str) -> BranchStatus | None:
            await self.refresh_pr_state(session_id)
            return await self.refresh_branch_status(session_id)

        ids = [s.id for s in self.store.sessions]
        results = await asyncio.gather(
            *(refresh_one(session_id) for session_id in ids),
            return_exceptions=True,
        )
        statuses: dict[str, BranchStatus] = {}
        for session_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                logger.warning("Status refresh failed for %s: %s", session_id, result)
            elif result is not None:
                statuses[session_id] = result
        return statuses

    # ── UI state ───────────────────────────────────────────────────

    def select_file(self, session_id: str, path: str) -> None:
        """Open ``path`` in the file viewer and push it onto recent files."""
        session = self._session(session_id, "select_file")
        if session is None:
            return
        session.selected_file_path = path
        session.panel_visibility = {**session.panel_visibility, FILE_VIEWER: True}
        recent = [path, *(p for p in session.recent_files if p != path)]
        session.recent_files = recent[: self.config.max_recent_files]
        self.gateway.schedule_save()

    def set_plan_file(self, session_id: str, path: str | None) -> None:
        session = self._session(session_id, "set_plan_file")
        if session is not None:
            session.plan_file_path = path

    def set_file_viewer_position(
        self, session_id: str, position: FileViewerPosition | str
    ) -> None:
        session = self._session(session_id, "set_file_viewer_position")
        if session is None:
            return
        session.file_viewer_position = FileViewerPosition(position)
        self.gateway.schedule_save()

    def update_layout_size(self, session_id: str, key: str, value: int) -> None:
        """Set one layout size; ``key`` may be camelCase or snake_case."""
        session = self._session(session_id, "update_layout_size")
        if session is None:
            return
        attr = LayoutSizes.attribute_for(key)
        if attr is None:
            logger.debug("update_layout_size: unknown key %s ignored", key)
            return
        setattr(session.layout_sizes, attr, int(value))
        self.gateway.schedule_save()

    def set_explorer_filter(
        self, session_id: str, explorer_filter: ExplorerFilter | str
    ) -> None:
        session = self._session(session_id, "set_explorer_filter")
        if session is None:
            return
        session.explorer_filter = ExplorerFilter(explorer_filter)
        self.gateway.schedule_save()

    def toggle_diff(self, session_id: str) -> bool | None:
        session = self._session(session_id, "toggle_diff")
        if session is None:
            return None
        session.show_diff = not session.show_diff
        self.gateway.schedule_save()
        return session.show_diff

    def rename_session(self, session_id: str, name: str) -> None:
        session = self._session(session_id, "rename_session")
        if session is None:
            return
        session.name = name
        self.gateway.schedule_save()

    # ── agent binding / monitoring ─────────────────────────────────

    def attach_agent(self, session_id: str, agent_id: str) -> None:
        session = self._session(session_id, "attach_agent")
        if session is None:
            return
        session.agent_id = agent_id
        self.gateway.schedule_save()

    def detach_agent(self, session_id: str) -> None:
        session = self._session(session_id, "detach_agent")
        if session is None:
            return
        session.agent_id = None
        self.gateway.schedule_save()

    def update_agent_monitor(
        self,
        session_id: str,
        *,
        status: SessionStatus | None = None,
        last_message: str | None = None,
    ) -> None:
        self.activity.update(session_id, status=status, last_message=last_message)

    def mark_read(self, session_id: str) -> None:
        self.activity.mark_read(session_id)

    async def flush(self) -> bool:
        return await self.gateway.flush()

    def summary(self) -> dict[str, Any]:
        return {
            "sessions": len(self.store.sessions),
            "archived": len(self.store.archived()),
            "active": self.store.active_session_id,
            "unread": self.activity.unread_sessions(),
            "save_pending": self.gateway.pending,
        }
