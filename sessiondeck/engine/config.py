"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via SESSIONDECK_* env vars
or a YAML file (see yaml_config.py).
"""
from __future__ import annotations

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


# Optional async callback for lifecycle event observation.
# Signature: async def callback(event: dict[str, Any]) -> None
# Events look like {"event": "session_created", "session_id": "..."}
EventCallback = Callable[[dict[str, Any]], Awaitable[None]]


def _default_config_dir() -> str:
    return str(Path.home() / ".sessiondeck")


async def fire_event(
    callback: EventCallback | None,
    event: dict[str, Any],
) -> None:
    """Fire an event callback if set, logging and swallowing errors."""
    if callback is None:
        return
    try:
        await callback(event)
    except Exception:
        logger.debug(
            "Event callback failed for %s", event.get("event"), exc_info=True
        )


def _parse_branch_names(raw: str) -> tuple[str, ...]:
    names = tuple(part.strip() for part in raw.split(",") if part.strip())
    return names or EngineConfig.main_branch_names


@dataclass
class EngineConfig:
    """Session engine configuration."""

    # Root of the on-disk config store (profiles, logs).
    config_dir: str = field(default_factory=_default_config_dir)
    # Profile to load/save; None uses the legacy flat config file.
    profile_id: str | None = None

    # Persistence debounce window. Rapid UI mutations inside this
    # window collapse into a single write.
    save_debounce_seconds: float = 0.5

    # Minimum time an agent must stay "working" before going idle
    # marks the session unread.
    unread_dwell_seconds: float = 3.0

    max_recent_files: int = 10

    # Branches treated as trunk; work on them is never "done".
    main_branch_names: tuple[str, ...] = ("main", "master")

    # Per-call timeout for git/gh subprocesses.
    git_timeout_seconds: float = 15.0

    # Logging
    log_level: str = "INFO"

    event_callback: EventCallback | None = field(default=None, repr=False)

    @property
    def logs_dir(self) -> Path:
        return Path(self.config_dir).expanduser() / "logs"

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Load configuration from SESSIONDECK_* environment variables."""
        env_vars = {
            k: v for k, v in os.environ.items() if k.startswith("SESSIONDECK_")
        }
        if env_vars:
            logger.info(
                "EngineConfig.from_env: SESSIONDECK_* overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(env_vars.items())),
            )
        else:
            logger.debug("EngineConfig.from_env: no overrides, using defaults")

        config = cls(
            config_dir=os.getenv("SESSIONDECK_CONFIG_DIR") or _default_config_dir(),
            profile_id=os.getenv("SESSIONDECK_PROFILE") or None,
            save_debounce_seconds=float(os.getenv(
                "SESSIONDECK_SAVE_DEBOUNCE", str(cls.save_debounce_seconds)
            )),
            unread_dwell_seconds=float(os.getenv(
                "SESSIONDECK_UNREAD_DWELL", str(cls.unread_dwell_seconds)
            )),
            max_recent_files=int(os.getenv(
                "SESSIONDECK_MAX_RECENT_FILES", str(cls.max_recent_files)
            )),
            main_branch_names=_parse_branch_names(
                os.getenv("SESSIONDECK_MAIN_BRANCHES", "")
            ),
            git_timeout_seconds=float(os.getenv(
                "SESSIONDECK_GIT_TIMEOUT", str(cls.git_timeout_seconds)
            )),
            log_level=os.getenv("SESSIONDECK_LOG_LEVEL", cls.log_level).upper(),
        )
        logger.debug(
            "EngineConfig.from_env: config_dir=%s profile=%s debounce=%.2fs",
            config.config_dir, config.profile_id, config.save_debounce_seconds,
        )
        return config
