from __future__ import annotations

import itertools

import pytest

from sessiondeck.engine.branch_status import BranchStatusInput, compute_branch_status
from sessiondeck.engine.models import BranchStatus, PrState


def _pushed(**overrides) -> BranchStatusInput:
    base = dict(has_tracking_branch=True)
    base.update(overrides)
    return BranchStatusInput(**base)


def test_trunk_branch_is_always_in_progress():
    signals = _pushed(
        is_on_main_branch=True,
        is_merged_to_main=True,
        has_had_commits=True,
        last_known_pr_state=PrState.MERGED,
    )
    assert compute_branch_status(signals) == BranchStatus.IN_PROGRESS


@pytest.mark.parametrize("uncommitted, ahead", [(1, 0), (0, 2), (3, 1)])
def test_local_work_overrides_pr_state(uncommitted, ahead):
    signals = _pushed(
        uncommitted_files=uncommitted,
        ahead=ahead,
        last_known_pr_state=PrState.MERGED,
    )
    assert compute_branch_status(signals) == BranchStatus.IN_PROGRESS


def test_never_pushed_branch_is_in_progress():
    signals = BranchStatusInput(has_tracking_branch=False, is_merged_to_main=True)
    assert compute_branch_status(signals) == BranchStatus.IN_PROGRESS


@pytest.mark.parametrize(
    "pr_state, expected",
    [
        (PrState.OPEN, BranchStatus.OPEN),
        (PrState.MERGED, BranchStatus.MERGED),
        (PrState.CLOSED, BranchStatus.CLOSED),
    ],
)
def test_pr_state_wins_over_git_merge_detection(pr_state, expected):
    signals = _pushed(last_known_pr_state=pr_state, is_merged_to_main=True)
    assert compute_branch_status(signals) == expected


def test_merged_without_pr_uses_commit_history():
    assert compute_branch_status(
        _pushed(is_merged_to_main=True, has_had_commits=True)
    ) == BranchStatus.MERGED
    assert compute_branch_status(
        _pushed(is_merged_to_main=True, has_had_commits=False)
    ) == BranchStatus.EMPTY


def test_clean_pushed_branch():
    assert compute_branch_status(_pushed()) == BranchStatus.PUSHED


def test_every_combination_resolves_to_a_status():
    pr_states = [None, PrState.OPEN, PrState.MERGED, PrState.CLOSED]
    for combo in itertools.product(
        [0, 1], [0, 1], [False, True], [False, True], [False, True], [False, True], pr_states
    ):
        signals = BranchStatusInput(*combo)
        assert isinstance(compute_branch_status(signals), BranchStatus)
