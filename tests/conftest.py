"""Shared in-memory collaborators for engine tests."""
from __future__ import annotations

import asyncio
import copy
from typing import Any

import pytest

from sessiondeck.engine.config import EngineConfig
from sessiondeck.engine.errors import GitCommandError
from sessiondeck.engine.models import GitStatus, PrStatus
from sessiondeck.engine.persistence import PersistenceGateway
from sessiondeck.engine.scheduler import ManualScheduler
from sessiondeck.engine.session_manager import SessionManager
from sessiondeck.engine.store import SessionStore


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGit:
    """Scriptable GitQuery. Directories in ``failing`` raise on every query."""

    def __init__(self) -> None:
        self.repos: set[str] = set()
        self.branches: dict[str, str] = {}
        self.remotes: dict[str, str] = {}
        self.statuses: dict[str, GitStatus] = {}
        self.merged: dict[str, bool] = {}
        self.branch_commits: dict[str, bool] = {}
        self.failing: set[str] = set()
        self.default = "main"
        self.status_gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str]] = []

    def add_repo(self, directory: str, branch: str = "main", remote: str | None = None) -> None:
        self.repos.add(directory)
        self.branches[directory] = branch
        if remote:
            self.remotes[directory] = remote

    def _check(self, op: str, directory: str) -> None:
        self.calls.append((op, directory))
        if directory in self.failing:
            raise GitCommandError(["git", op], directory, "simulated failure")

    async def is_repository(self, directory: str) -> bool:
        return directory in self.repos

    async def get_branch(self, directory: str) -> str:
        self._check("get_branch", directory)
        if directory not in self.branches:
            raise GitCommandError(["git", "rev-parse"], directory, "not a repo")
        return self.branches[directory]

    async def get_remote_url(self, directory: str) -> str | None:
        return self.remotes.get(directory)

    async def status(self, directory: str) -> GitStatus:
        self._check("status", directory)
        if self.status_gate is not None:
            await self.status_gate.wait()
        return self.statuses.get(
            directory, GitStatus(current=self.branches.get(directory))
        )

    async def default_branch(self, directory: str) -> str:
        return self.default

    async def is_merged_into(self, directory: str, ref: str) -> bool:
        return self.merged.get(directory, False)

    async def has_branch_commits(self, directory: str, ref: str) -> bool:
        return self.branch_commits.get(directory, False)

    async def head_commit(self, directory: str) -> str | None:
        return "abc1234"


class FakePr:
    def __init__(self) -> None:
        self.results: dict[str, PrStatus | None] = {}
        self.failing: set[str] = set()

    async def status(self, directory: str) -> PrStatus | None:
        if directory in self.failing:
            raise RuntimeError("gh unavailable")
        return self.results.get(directory)


class MemoryBackend:
    """ConfigBackend keeping one document per profile id."""

    def __init__(self, documents: dict[str | None, dict[str, Any]] | None = None) -> None:
        self.documents: dict[str | None, dict[str, Any]] = documents or {}
        self.saves: list[dict[str, Any]] = []
        self.fail_load = False
        self.fail_save = False

    async def load(self, profile_id: str | None = None) -> dict[str, Any]:
        if self.fail_load:
            raise OSError("disk unavailable")
        doc = self.documents.get(profile_id) or {"agents": [], "sessions": []}
        return copy.deepcopy(doc)

    async def save(self, config: dict[str, Any]) -> None:
        if self.fail_save:
            raise OSError("disk full")
        doc = copy.deepcopy(config)
        profile_id = doc.pop("profileId", None)
        self.documents[profile_id] = doc
        self.saves.append(doc)


@pytest.fixture
def git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def pr() -> FakePr:
    return FakePr()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def gateway(store, backend, scheduler) -> PersistenceGateway:
    return PersistenceGateway(store, backend, scheduler=scheduler, debounce_seconds=0.5)


@pytest.fixture
def manager(store, gateway, git, pr, clock) -> SessionManager:
    return SessionManager(store, gateway, git, pr, config=EngineConfig(), clock=clock)
