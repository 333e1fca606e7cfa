"""YAML configuration loader.

Loads an optional YAML file layered on top of the env-derived
EngineConfig. When no YAML is found, env vars work exactly as before.

Example YAML:
    engine:
      config_dir: ~/.sessiondeck
      save_debounce_seconds: 0.5
      unread_dwell_seconds: 3
      max_recent_files: 10
      main_branch_names: [main, master, trunk]
      git_timeout_seconds: 15
      log_level: INFO

    defaults:
      profile: work
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

import yaml

from .config import EngineConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "sessiondeck.yaml"


def discover_config_path(cwd: Path | None = None) -> Path | None:
    """Find ``.sessiondeck/sessiondeck.yaml`` (preferred) or ``sessiondeck.yaml``."""
    cwd = cwd or Path.cwd()
    for candidate in (cwd / ".sessiondeck" / CONFIG_FILENAME, cwd / CONFIG_FILENAME):
        if candidate.exists():
            logger.info("Auto-discovered config: %s", candidate)
            return candidate
    logger.debug("No %s found under %s; using defaults", CONFIG_FILENAME, cwd)
    return None


def load_yaml_config(
    path: str | Path,
    base: EngineConfig | None = None,
) -> EngineConfig:
    """Load a YAML file and apply its ``engine``/``defaults`` sections.

    Values absent from the file keep the value from *base* (or from
    ``EngineConfig.from_env()`` when no base is given).
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path)
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    base = base or EngineConfig.from_env()
    engine_raw = raw.get("engine") or {}
    defaults_raw = raw.get("defaults") or {}

    overrides: dict = {}
    if "config_dir" in engine_raw:
        overrides["config_dir"] = str(Path(str(engine_raw["config_dir"])).expanduser())
    if "save_debounce_seconds" in engine_raw:
        overrides["save_debounce_seconds"] = float(engine_raw["save_debounce_seconds"])
    if "unread_dwell_seconds" in engine_raw:
        overrides["unread_dwell_seconds"] = float(engine_raw["unread_dwell_seconds"])
    if "max_recent_files" in engine_raw:
        overrides["max_recent_files"] = int(engine_raw["max_recent_files"])
    if "git_timeout_seconds" in engine_raw:
        overrides["git_timeout_seconds"] = float(engine_raw["git_timeout_seconds"])
    if "log_level" in engine_raw:
        overrides["log_level"] = str(engine_raw["log_level"]).upper()
    if engine_raw.get("main_branch_names"):
        names = engine_raw["main_branch_names"]
        if isinstance(names, str):
            names = [names]
        overrides["main_branch_names"] = tuple(str(n) for n in names)
    if defaults_raw.get("profile"):
        overrides["profile_id"] = str(defaults_raw["profile"])

    logger.info(
        "Parsed YAML config %s: overriding %s",
        path.name, ", ".join(sorted(overrides)) or "(nothing)",
    )
    return replace(base, **overrides)
