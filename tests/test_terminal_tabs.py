from __future__ import annotations

import pytest

from sessiondeck.engine.terminal_tabs import TerminalTabManager
from sessiondeck.shared.models.session import Session, TerminalTab, TerminalTabsState


def _session_with_tabs(store, names: list[str]) -> Session:
    tabs = [TerminalTab(id=f"t{i}", name=name) for i, name in enumerate(names)]
    session = Session(
        id="s1",
        name="demo",
        directory="/work/demo",
        terminal_tabs=TerminalTabsState(tabs=tabs, active_tab_id=tabs[0].id),
    )
    store.sessions = [session]
    return session


@pytest.fixture
def tabs(store, gateway) -> TerminalTabManager:
    return TerminalTabManager(store, gateway)


def test_new_session_has_one_default_tab():
    session = Session()
    assert [t.name for t in session.terminal_tabs.tabs] == ["Terminal"]
    assert session.terminal_tabs.active_tab_id == session.terminal_tabs.tabs[0].id


def test_add_tab_appends_numbered_tab_and_activates_it(store, gateway, tabs):
    session = _session_with_tabs(store, ["Terminal"])

    tab_id = tabs.add_tab("s1")

    assert [t.name for t in session.terminal_tabs.tabs] == ["Terminal", "Terminal 2"]
    assert session.terminal_tabs.active_tab_id == tab_id
    assert gateway.pending


def test_add_tab_uses_given_name(store, tabs):
    session = _session_with_tabs(store, ["Terminal"])
    tabs.add_tab("s1", "server")
    assert session.terminal_tabs.tabs[-1].name == "server"


def test_add_tab_for_unknown_session_still_returns_an_id(store, gateway, tabs):
    tab_id = tabs.add_tab("missing")
    assert tab_id.startswith("tab-")
    assert not gateway.pending


def test_last_tab_cannot_be_removed(store, gateway, tabs):
    session = _session_with_tabs(store, ["only"])
    tabs.remove_tab("s1", "t0")
    assert [t.id for t in session.terminal_tabs.tabs] == ["t0"]
    assert not gateway.pending


def test_removing_active_tab_selects_tab_in_same_slot(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    tabs.set_active_tab("s1", "t1")

    tabs.remove_tab("s1", "t1")

    assert [t.id for t in session.terminal_tabs.tabs] == ["t0", "t2"]
    assert session.terminal_tabs.active_tab_id == "t2"


def test_removing_active_last_tab_selects_left_neighbour(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    tabs.set_active_tab("s1", "t2")

    tabs.remove_tab("s1", "t2")

    assert session.terminal_tabs.active_tab_id == "t1"


def test_removing_inactive_tab_keeps_selection(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    tabs.remove_tab("s1", "t2")
    assert session.terminal_tabs.active_tab_id == "t0"


def test_set_active_tab_does_not_schedule_save(store, gateway, tabs):
    session = _session_with_tabs(store, ["a", "b"])
    tabs.set_active_tab("s1", "t1")
    assert session.terminal_tabs.active_tab_id == "t1"
    assert not gateway.pending


def test_rename_and_reorder(store, tabs):
    session = _session_with_tabs(store, ["a", "b"])
    tabs.rename_tab("s1", "t1", "logs")
    tabs.reorder_tabs("s1", list(reversed(session.terminal_tabs.tabs)))
    assert [(t.id, t.name) for t in session.terminal_tabs.tabs] == [
        ("t1", "logs"), ("t0", "a"),
    ]


def test_reorder_without_active_tab_selects_first(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    kept = session.terminal_tabs.tabs[1:]

    tabs.reorder_tabs("s1", list(reversed(kept)))

    assert [t.id for t in session.terminal_tabs.tabs] == ["t2", "t1"]
    assert session.terminal_tabs.active_tab_id == "t2"


def test_close_others_keeps_only_target(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    tabs.close_others("s1", "t1")
    assert [t.id for t in session.terminal_tabs.tabs] == ["t1"]
    assert session.terminal_tabs.active_tab_id == "t1"


def test_close_others_with_unknown_tab_is_noop(store, gateway, tabs):
    session = _session_with_tabs(store, ["a", "b"])
    tabs.close_others("s1", "nope")
    assert len(session.terminal_tabs.tabs) == 2
    assert not gateway.pending


def test_close_to_right_moves_selection_when_active_tab_closed(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c", "d"])
    tabs.set_active_tab("s1", "t3")

    tabs.close_to_right("s1", "t1")

    assert [t.id for t in session.terminal_tabs.tabs] == ["t0", "t1"]
    assert session.terminal_tabs.active_tab_id == "t1"


def test_close_to_right_keeps_selection_left_of_target(store, tabs):
    session = _session_with_tabs(store, ["a", "b", "c"])
    tabs.close_to_right("s1", "t1")
    assert session.terminal_tabs.active_tab_id == "t0"
