"""Collaborator contracts consumed by the engine.

Concrete implementations live in ``sessiondeck.adapters`` (git, gh) and
``sessiondeck.shared.services.config_store`` (JSON files). Tests swap in
in-memory fakes.
"""
from __future__ import annotations

from typing import Any, Protocol

from .models import GitStatus, PrStatus


class GitQuery(Protocol):
    async def is_repository(self, directory: str) -> bool: ...

    async def get_branch(self, directory: str) -> str: ...

    async def get_remote_url(self, directory: str) -> str | None: ...

    async def status(self, directory: str) -> GitStatus: ...

    async def default_branch(self, directory: str) -> str: ...

    async def is_merged_into(self, directory: str, ref: str) -> bool: ...

    async def has_branch_commits(self, directory: str, ref: str) -> bool: ...

    async def head_commit(self, directory: str) -> str | None: ...


class PrQuery(Protocol):
    async def status(self, directory: str) -> PrStatus | None: ...


class ConfigBackend(Protocol):
    """Whole-document config store.

    ``load`` returns a dict with at least ``sessions`` and ``agents``.
    ``save`` receives the full document; a ``profileId`` key selects the
    target profile.
    """

    async def load(self, profile_id: str | None = None) -> dict[str, Any]: ...

    async def save(self, config: dict[str, Any]) -> None: ...
