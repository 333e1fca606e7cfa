from __future__ import annotations

import json

import pytest

from sessiondeck.engine.errors import ConfigLoadError
from sessiondeck.shared.services.config_store import (
    DEFAULT_AGENTS,
    ConfigStore,
    merge_default_agents,
)


def test_missing_file_reads_as_defaults(tmp_path):
    store = ConfigStore(tmp_path)
    config = store.read()
    assert config["sessions"] == []
    assert [a["id"] for a in config["agents"]] == ["claude", "codex", "gemini"]


def test_corrupt_file_raises(tmp_path):
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigLoadError):
        ConfigStore(tmp_path).read()


def test_new_default_agents_are_merged(tmp_path):
    (tmp_path / "config.json").write_text(
        json.dumps({"agents": [{"id": "claude", "name": "Mine", "command": "claude --x"}], "sessions": []}),
        encoding="utf-8",
    )
    agents = ConfigStore(tmp_path).read()["agents"]
    assert agents[0]["name"] == "Mine"
    assert [a["id"] for a in agents] == ["claude", "codex", "gemini"]


def test_merge_default_agents_on_empty():
    assert merge_default_agents([]) == DEFAULT_AGENTS
    assert merge_default_agents(None) is not DEFAULT_AGENTS


def test_write_targets_profile_and_keeps_existing_keys(tmp_path):
    store = ConfigStore(tmp_path)
    path = tmp_path / "profiles" / "work" / "config.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"repos": [{"id": "r1"}], "sessions": []}), encoding="utf-8")

    store.write({"profileId": "work", "sessions": [{"id": "s1", "directory": "/w"}]})

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["repos"] == [{"id": "r1"}]
    assert saved["sessions"] == [{"id": "s1", "directory": "/w"}]
    assert "profileId" not in saved
    assert saved["agents"]
    assert not list(path.parent.glob("*.tmp"))


@pytest.mark.asyncio
async def test_async_round_trip(tmp_path):
    store = ConfigStore(tmp_path)
    await store.save({"profileId": None, "sessions": [{"id": "s1", "directory": "/w"}]})
    config = await store.load()
    assert config["sessions"][0]["id"] == "s1"


def test_profiles_default_and_migration(tmp_path):
    store = ConfigStore(tmp_path)
    (tmp_path / "config.json").write_text(json.dumps({"sessions": [{"id": "old"}]}), encoding="utf-8")

    assert store.list_profiles()["profiles"][0]["id"] == "default"
    assert store.migrate_to_profiles() is True
    assert store.read("default")["sessions"] == [{"id": "old"}]
    assert store.migrate_to_profiles() is False
    assert store.list_profiles()["lastProfileId"] == "default"
