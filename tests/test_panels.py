from __future__ import annotations

import pytest

from sessiondeck.engine.panels import (
    DEFAULT_TOOLBAR_PANELS,
    PanelDefinition,
    PanelPosition,
    PanelVisibilityManager,
    default_registry,
)
from sessiondeck.shared.models.session import Session


@pytest.fixture
def panels(store, gateway) -> PanelVisibilityManager:
    store.sessions = [
        Session(id="s1", directory="/w/1", panel_visibility={"explorer": True}),
        Session(id="s2", directory="/w/2", panel_visibility={"explorer": False}),
    ]
    store.active_session_id = "s1"
    return PanelVisibilityManager(store, gateway)


def test_builtin_registry():
    registry = default_registry()
    assert len(registry) == 7
    assert registry.get("sidebar").is_global
    assert registry.get("settings").is_global
    assert not registry.get("explorer").is_global
    assert set(registry.default_visible()) == {"sidebar", "agentTerminal"}
    assert registry.default_toolbar_panels() == DEFAULT_TOOLBAR_PANELS
    assert [p.id for p in registry.by_position(PanelPosition.CENTER_LEFT)] == ["fileViewer", "review"]


def test_custom_panel_registration():
    registry = default_registry()
    registry.register(PanelDefinition(id="notes", name="Notes", position=(PanelPosition.LEFT,)))
    assert registry.has("notes")
    assert len(registry.all()) == 8


def test_toggle_session_panel_uses_active_session(store, gateway, panels):
    assert panels.toggle("explorer") is False
    assert store.get("s1").panel_visibility["explorer"] is False
    assert store.get("s2").panel_visibility["explorer"] is False
    assert gateway.pending


def test_toggle_session_panel_for_explicit_session(store, panels):
    assert panels.toggle("explorer", "s2") is True
    assert store.get("s2").panel_visibility["explorer"] is True
    assert store.get("s1").panel_visibility["explorer"] is True


def test_global_panel_ignores_session(store, panels):
    assert panels.toggle_sidebar() is False
    assert store.global_panel_visibility["sidebar"] is False
    assert "sidebar" not in store.get("s1").panel_visibility
    assert panels.show_sidebar is False


def test_settings_overlay_is_global(store, panels):
    panels.set_visibility("settings", True, "s2")
    assert panels.show_settings
    assert "settings" not in store.get("s2").panel_visibility


def test_unknown_panel_is_noop(gateway, panels):
    assert panels.toggle("nope") is None
    assert panels.set_visibility("nope", True) is None
    assert not panels.is_visible("nope")
    assert not gateway.pending


def test_session_panel_without_active_session_is_noop(store, gateway, panels):
    store.active_session_id = None
    assert panels.toggle("explorer") is None
    assert not gateway.pending


def test_missing_key_falls_back_to_panel_default(panels):
    assert panels.is_visible("agentTerminal", "s1") is True
    assert panels.is_visible("userTerminal", "s1") is False


def test_global_settings_persist(store, gateway, panels):
    panels.set_toolbar_panels(["sidebar", "settings"])
    panels.set_sidebar_width(280)
    assert store.toolbar_panels == ["sidebar", "settings"]
    assert store.sidebar_width == 280
    assert gateway.pending
