"""Core enums and value types for the session engine.

Kept free of engine imports so every module (store, persistence,
adapters) can depend on it without cycles.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SessionStatus(str, Enum):
    """Agent activity state for a session. See activity.py for transitions."""
    WORKING = "working"
    IDLE = "idle"
    ERROR = "error"


class BranchStatus(str, Enum):
    """Derived lifecycle label for a session's branch."""
    EMPTY = "empty"
    IN_PROGRESS = "in-progress"
    PUSHED = "pushed"
    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


class PrState(str, Enum):
    """Last observed pull request state, as reported by ``gh``."""
    OPEN = "OPEN"
    MERGED = "MERGED"
    CLOSED = "CLOSED"


class SessionType(str, Enum):
    DEFAULT = "default"
    REVIEW = "review"


class ExplorerFilter(str, Enum):
    FILES = "files"
    SOURCE_CONTROL = "source-control"
    SEARCH = "search"
    RECENT = "recent"
    PR = "pr"


class FileViewerPosition(str, Enum):
    TOP = "top"
    LEFT = "left"


@dataclass
class GitStatus:
    """Working tree snapshot as reported by ``git status``."""
    files: list[str] = field(default_factory=list)
    ahead: int = 0
    behind: int = 0
    tracking: str | None = None  # e.g. "origin/feature/x"
    current: str | None = None  # None on detached HEAD


@dataclass
class PrStatus:
    """Pull request attached to the current branch."""
    state: PrState
    number: int
    url: str
    title: str = ""
    head_ref: str | None = None
    base_ref: str | None = None


def parse_pr_state(value: object) -> PrState | None:
    """Coerce a persisted/remote PR state into a PrState (or None)."""
    if value is None or value == "":
        return None
    if isinstance(value, PrState):
        return value
    try:
        return PrState(str(value).upper())
    except ValueError:
        return None
