"""Git adapter: async ``git`` subprocess calls for one working tree.

Commands run with argument arrays (no shell) and a per-call timeout.
Query helpers that only answer yes/no degrade to ``False``/``None`` on
failure; ``get_branch`` and ``status`` raise GitCommandError so callers
can decide their own fallback.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from pathlib import Path

from sessiondeck.engine.errors import GitCommandError
from sessiondeck.engine.models import GitStatus

logger = logging.getLogger(__name__)

_AHEAD_RE = re.compile(r"ahead (\d+)")
_BEHIND_RE = re.compile(r"behind (\d+)")


def parse_status_porcelain(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 --branch`` output.

    The first line carries branch/tracking info, e.g.
    ``## feature/x...origin/feature/x [ahead 2, behind 1]``; every other
    non-empty line is one changed or untracked path.
    """
    status = GitStatus()
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith("## "):
            header = line[3:]
            bracket = ""
            if " [" in header and header.endswith("]"):
                header, bracket = header.split(" [", 1)
            if header.startswith("No commits yet on "):
                status.current = header[len("No commits yet on "):]
            elif header.startswith("HEAD (no branch)"):
                status.current = None
            elif "..." in header:
                current, tracking = header.split("...", 1)
                status.current = current
                status.tracking = tracking
            else:
                status.current = header
            if bracket:
                ahead = _AHEAD_RE.search(bracket)
                behind = _BEHIND_RE.search(bracket)
                status.ahead = int(ahead.group(1)) if ahead else 0
                status.behind = int(behind.group(1)) if behind else 0
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        status.files.append(path)
    return status


class GitClient:
    """Implements the engine's GitQuery contract on top of the git CLI."""

    def __init__(self, *, timeout: float = 15.0, git: str = "git") -> None:
        self._timeout = timeout
        self._git = git

    async def _run(self, args: list[str], cwd: str) -> str:
        cmd = [self._git, *args]
        workdir = str(Path(cwd).expanduser())
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            raise GitCommandError(cmd, workdir, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise GitCommandError(
                cmd, workdir, f"timed out after {self._timeout}s"
            ) from exc

        if proc.returncode != 0:
            raise GitCommandError(
                cmd, workdir,
                stderr.decode("utf-8", errors="replace").strip()
                or f"exit code {proc.returncode}",
            )
        return stdout.decode("utf-8", errors="replace")

    async def is_repository(self, directory: str) -> bool:
        try:
            out = await self._run(["rev-parse", "--is-inside-work-tree"], directory)
        except GitCommandError:
            return False
        return out.strip() == "true"

    async def get_branch(self, directory: str) -> str:
        out = await self._run(["rev-parse", "--abbrev-ref", "HEAD"], directory)
        return out.strip()

    async def get_remote_url(self, directory: str) -> str | None:
        try:
            out = await self._run(["remote", "get-url", "origin"], directory)
        except GitCommandError:
            return None
        return out.strip() or None

    async def status(self, directory: str) -> GitStatus:
        out = await self._run(
            ["status", "--porcelain=v1", "--branch", "-uall"], directory
        )
        return parse_status_porcelain(out)

    async def default_branch(self, directory: str) -> str:
        """origin/HEAD's target, else ``main``/``master`` if present, else ``main``."""
        try:
            ref = await self._run(["symbolic-ref", "refs/remotes/origin/HEAD"], directory)
            return ref.strip().replace("refs/remotes/origin/", "")
        except GitCommandError:
            pass
        for candidate in ("main", "master"):
            try:
                await self._run(["rev-parse", "--verify", candidate], directory)
                return candidate
            except GitCommandError:
                continue
        return "main"

    async def is_merged_into(self, directory: str, ref: str) -> bool:
        """True when HEAD's changes are already on ``origin/<ref>``.

        Catches regular merges (no commits outside the target) and squash
        merges (every file this branch touched matches the target).
        """
        try:
            count = await self._run(
                ["rev-list", "--count", "HEAD", f"^origin/{ref}"], directory
            )
            if int(count.strip() or "0") == 0:
                return True
            merge_base = (
                await self._run(["merge-base", f"origin/{ref}", "HEAD"], directory)
            ).strip()
            changed = (
                await self._run(["diff", "--name-only", merge_base, "HEAD"], directory)
            ).strip()
            if not changed:
                return True
            files = changed.splitlines()
            remaining = (
                await self._run(
                    ["diff", "--name-only", f"origin/{ref}", "HEAD", "--", *files],
                    directory,
                )
            ).strip()
            return not remaining
        except (GitCommandError, ValueError):
            return False

    async def has_branch_commits(self, directory: str, ref: str) -> bool:
        """True when HEAD has commits since it forked from ``origin/<ref>``."""
        try:
            merge_base = (
                await self._run(["merge-base", f"origin/{ref}", "HEAD"], directory)
            ).strip()
            count = await self._run(
                ["rev-list", "--count", f"{merge_base}..HEAD"], directory
            )
            return int(count.strip() or "0") > 0
        except (GitCommandError, ValueError):
            return False

    async def head_commit(self, directory: str) -> str | None:
        try:
            return (await self._run(["rev-parse", "HEAD"], directory)).strip() or None
        except GitCommandError:
            return None
