"""GitHub adapter: PR status for a working tree via the ``gh`` CLI."""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from pathlib import Path

from sessiondeck.engine.models import PrStatus, parse_pr_state

logger = logging.getLogger(__name__)

_PR_FIELDS = "number,title,state,url,headRefName,baseRefName"


def parse_pr_view(payload: str) -> PrStatus | None:
    """Parse ``gh pr view --json ...`` output; None if unusable."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    state = parse_pr_state(data.get("state"))
    if state is None or data.get("number") is None:
        return None
    return PrStatus(
        state=state,
        number=int(data["number"]),
        url=str(data.get("url") or ""),
        title=str(data.get("title") or ""),
        head_ref=data.get("headRefName"),
        base_ref=data.get("baseRefName"),
    )


class GhClient:
    """Implements the engine's PrQuery contract.

    ``gh pr view`` exits non-zero when the branch has no PR; that and any
    other failure reads as "no PR".
    """

    def __init__(self, *, timeout: float = 15.0, gh: str = "gh") -> None:
        self._timeout = timeout
        self._gh = gh

    async def status(self, directory: str) -> PrStatus | None:
        cmd = [self._gh, "pr", "view", "--json", _PR_FIELDS]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(Path(directory).expanduser()),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await asyncio.wait_for(
                proc.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.debug("gh pr view timed out in %s", directory)
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            return None
        except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
            logger.debug("gh pr view could not start in %s: %s", directory, exc)
            return None

        if proc.returncode != 0:
            return None
        return parse_pr_view(stdout.decode("utf-8", errors="replace"))
