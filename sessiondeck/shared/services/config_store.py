"""JSON config store: profiles and their session/agent configuration.

Layout under the config dir (``~/.sessiondeck`` by default)::

    config.json                       legacy single-profile config
    profiles.json                     {"profiles": [...], "lastProfileId": ...}
    profiles/<id>/config.json         one profile's config

Writes go to a temp file in the same directory and are renamed into
place, so a crash mid-write leaves the previous file intact.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from sessiondeck.engine.errors import ConfigLoadError, ConfigSaveError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
PROFILES_FILENAME = "profiles.json"

DEFAULT_AGENTS: list[dict[str, str]] = [
    {"id": "claude", "name": "Claude Code", "command": "claude", "color": "#D97757"},
    {"id": "codex", "name": "Codex", "command": "codex", "color": "#10A37F"},
    {"id": "gemini", "name": "Gemini CLI", "command": "gemini", "color": "#4285F4"},
]

DEFAULT_PROFILES: dict[str, Any] = {
    "profiles": [{"id": "default", "name": "Default", "color": "#3b82f6"}],
    "lastProfileId": "default",
}


def _write_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def merge_default_agents(agents: Any) -> list[dict[str, Any]]:
    """Return ``agents`` with any missing default agent appended."""
    if not isinstance(agents, list) or not agents:
        return copy.deepcopy(DEFAULT_AGENTS)
    merged = list(agents)
    known = {a.get("id") for a in merged if isinstance(a, dict)}
    for agent in DEFAULT_AGENTS:
        if agent["id"] not in known:
            merged.append(dict(agent))
    return merged


class ConfigStore:
    """File-backed ``ConfigBackend``.

    ``load`` never invents sessions: a missing file reads as no sessions
    and the default agents. A file that exists but cannot be parsed
    raises ConfigLoadError so callers do not mistake it for "empty".
    """

    def __init__(self, config_dir: str | Path | None = None) -> None:
        self.config_dir = Path(config_dir or Path.home() / ".sessiondeck").expanduser()

    @property
    def profiles_dir(self) -> Path:
        return self.config_dir / "profiles"

    @property
    def profiles_file(self) -> Path:
        return self.config_dir / PROFILES_FILENAME

    @property
    def legacy_config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    def config_file(self, profile_id: str | None = None) -> Path:
        if profile_id:
            return self.profiles_dir / profile_id / CONFIG_FILENAME
        return self.legacy_config_file

    # ── config documents ───────────────────────────────────────────

    def read(self, profile_id: str | None = None) -> dict[str, Any]:
        path = self.config_file(profile_id)
        if not path.exists():
            logger.debug("No config at %s; using defaults", path)
            return {"agents": copy.deepcopy(DEFAULT_AGENTS), "sessions": []}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigLoadError(str(path), str(exc)) from exc
        if not isinstance(data, dict):
            raise ConfigLoadError(str(path), "top-level value is not an object")

        data["agents"] = merge_default_agents(data.get("agents"))
        if not isinstance(data.get("sessions"), list):
            data["sessions"] = []
        return data

    def write(self, config: dict[str, Any]) -> None:
        """Write ``config`` to the file its ``profileId`` selects.

        Keys already in the file but absent from ``config`` are kept.
        """
        profile_id = config.get("profileId")
        path = self.config_file(profile_id)
        existing: dict[str, Any] = {}
        if path.exists():
            try:
                loaded = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    existing = loaded
            except (OSError, json.JSONDecodeError):
                logger.warning("Existing config at %s unreadable; overwriting", path)

        document = {**existing, **{k: v for k, v in config.items() if k != "profileId"}}
        if not document.get("agents"):
            document["agents"] = copy.deepcopy(DEFAULT_AGENTS)
        try:
            _write_json_atomic(path, document)
        except OSError as exc:
            raise ConfigSaveError(str(path), str(exc)) from exc
        logger.debug(
            "Wrote %d sessions to %s", len(document.get("sessions") or []), path
        )

    async def load(self, profile_id: str | None = None) -> dict[str, Any]:
        return self.read(profile_id)

    async def save(self, config: dict[str, Any]) -> None:
        self.write(config)

    # ── profiles ───────────────────────────────────────────────────

    def list_profiles(self) -> dict[str, Any]:
        try:
            if self.profiles_file.exists():
                data = json.loads(self.profiles_file.read_text(encoding="utf-8"))
                if isinstance(data, dict) and isinstance(data.get("profiles"), list):
                    return data
        except (OSError, json.JSONDecodeError):
            logger.warning("Could not read %s; using default profile", self.profiles_file)
        return copy.deepcopy(DEFAULT_PROFILES)

    def save_profiles(self, data: dict[str, Any]) -> None:
        try:
            _write_json_atomic(self.profiles_file, data)
        except OSError as exc:
            raise ConfigSaveError(str(self.profiles_file), str(exc)) from exc

    def migrate_to_profiles(self) -> bool:
        """Copy a legacy ``config.json`` into the ``default`` profile, once.

        Returns True if a migration ran. Having a profiles file means it
        already happened.
        """
        if self.profiles_file.exists():
            return False
        default_dir = self.profiles_dir / "default"
        default_dir.mkdir(parents=True, exist_ok=True)
        if self.legacy_config_file.exists():
            shutil.copyfile(self.legacy_config_file, default_dir / CONFIG_FILENAME)
            logger.info("Migrated %s to profile 'default'", self.legacy_config_file)
        self.save_profiles(copy.deepcopy(DEFAULT_PROFILES))
        return True
