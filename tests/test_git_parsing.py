from __future__ import annotations

import asyncio
import json

import pytest

from sessiondeck.adapters.git import GitClient, parse_status_porcelain
from sessiondeck.adapters.github import GhClient, parse_pr_view
from sessiondeck.engine.errors import GitCommandError
from sessiondeck.engine.models import PrState


def test_status_with_tracking_and_counts():
    output = (
        "## feature/x...origin/feature/x [ahead 2, behind 1]\n"
        " M src/app.py\n"
        "?? notes.txt\n"
        "R  old.py -> new.py\n"
    )
    status = parse_status_porcelain(output)
    assert status.current == "feature/x"
    assert status.tracking == "origin/feature/x"
    assert status.ahead == 2
    assert status.behind == 1
    assert status.files == ["src/app.py", "notes.txt", "new.py"]


def test_status_without_upstream():
    status = parse_status_porcelain("## feature/local\n")
    assert status.current == "feature/local"
    assert status.tracking is None
    assert status.ahead == 0
    assert status.files == []


def test_status_fresh_repo_and_detached_head():
    assert parse_status_porcelain("## No commits yet on main\n").current == "main"
    assert parse_status_porcelain("## HEAD (no branch)\n").current is None


def test_status_only_behind():
    status = parse_status_porcelain("## main...origin/main [behind 4]\n")
    assert status.ahead == 0
    assert status.behind == 4


def test_pr_view_parsing():
    payload = json.dumps({
        "number": 17,
        "title": "Add review sessions",
        "state": "MERGED",
        "url": "https://github.com/acme/demo/pull/17",
        "headRefName": "feature/review",
        "baseRefName": "main",
    })
    pr = parse_pr_view(payload)
    assert pr.state == PrState.MERGED
    assert pr.number == 17
    assert pr.base_ref == "main"


def test_pr_view_rejects_garbage():
    assert parse_pr_view("not json") is None
    assert parse_pr_view("[]") is None
    assert parse_pr_view(json.dumps({"number": 1, "state": "DRAFTY"})) is None


class ExitedProcess:
    """Subprocess that hangs on output and has already exited when killed."""

    returncode = None

    async def communicate(self):
        await asyncio.sleep(60)

    def kill(self) -> None:
        raise ProcessLookupError

    async def wait(self) -> int:
        self.returncode = -9
        return -9


@pytest.fixture
def exited_process(monkeypatch):
    async def spawn(*args, **kwargs):
        return ExitedProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", spawn)


@pytest.mark.asyncio
async def test_git_timeout_survives_process_already_gone(exited_process):
    client = GitClient(timeout=0.01)
    with pytest.raises(GitCommandError, match="timed out"):
        await client.get_branch("/tmp")


@pytest.mark.asyncio
async def test_gh_timeout_survives_process_already_gone(exited_process):
    client = GhClient(timeout=0.01)
    assert await client.status("/tmp") is None
