"""Branch lifecycle resolver.

Maps raw git and PR signals to a single BranchStatus. Pure and total:
every input combination yields exactly one status. Rules are checked in
order and the first match wins.

    on trunk branch ─────────────────────────────> IN_PROGRESS
    uncommitted files or commits ahead ──────────> IN_PROGRESS
    no tracking branch (never pushed) ───────────> IN_PROGRESS
    PR OPEN / MERGED / CLOSED ───────────────────> OPEN / MERGED / CLOSED
    merged into trunk, has had commits ──────────> MERGED
    merged into trunk, never had commits ────────> EMPTY
    otherwise ───────────────────────────────────> PUSHED

Typical progression for one branch:

    EMPTY -> IN_PROGRESS (edit) -> IN_PROGRESS (commit) -> PUSHED
          -> OPEN (PR created) -> MERGED (PR merged)
"""
from __future__ import annotations

from dataclasses import dataclass

from .models import BranchStatus, PrState

_PR_STATUS = {
    PrState.OPEN: BranchStatus.OPEN,
    PrState.MERGED: BranchStatus.MERGED,
    PrState.CLOSED: BranchStatus.CLOSED,
}


@dataclass(frozen=True)
class BranchStatusInput:
    uncommitted_files: int = 0
    ahead: int = 0
    has_tracking_branch: bool = False
    is_on_main_branch: bool = False
    # Git-native merge detection (covers squash merges with no PR record)
    is_merged_to_main: bool = False
    # Sticky flag; a fresh pushed branch and a consumed one look the same
    # under a zero-commits-ahead comparison otherwise.
    has_had_commits: bool = False
    last_known_pr_state: PrState | None = None


def compute_branch_status(signals: BranchStatusInput) -> BranchStatus:
    if signals.is_on_main_branch:
        return BranchStatus.IN_PROGRESS

    # Local work overrides everything, including a merged PR.
    if signals.uncommitted_files > 0 or signals.ahead > 0:
        return BranchStatus.IN_PROGRESS

    if not signals.has_tracking_branch:
        return BranchStatus.IN_PROGRESS

    if signals.last_known_pr_state is not None:
        return _PR_STATUS[signals.last_known_pr_state]

    if signals.is_merged_to_main:
        if signals.has_had_commits:
            return BranchStatus.MERGED
        return BranchStatus.EMPTY

    return BranchStatus.PUSHED
