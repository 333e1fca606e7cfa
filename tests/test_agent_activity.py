from __future__ import annotations

import pytest

from sessiondeck.engine.activity import AgentActivityMonitor
from sessiondeck.engine.models import SessionStatus
from sessiondeck.shared.models.session import Session


@pytest.fixture
def monitor(store, clock) -> AgentActivityMonitor:
    store.sessions = [Session(id="s1", directory="/work/a")]
    return AgentActivityMonitor(store, clock=clock, dwell_seconds=3.0)


def test_long_working_run_marks_unread(store, clock, monitor):
    monitor.update("s1", status=SessionStatus.WORKING)
    assert store.get("s1").working_start_time == clock.now

    clock.advance(5)
    monitor.update("s1", status=SessionStatus.IDLE)

    session = store.get("s1")
    assert session.is_unread
    assert session.working_start_time is None
    assert monitor.unread_sessions() == ["s1"]


def test_brief_blip_does_not_mark_unread(store, clock, monitor):
    monitor.update("s1", status=SessionStatus.WORKING)
    clock.advance(1.5)
    monitor.update("s1", status=SessionStatus.IDLE)
    assert not store.get("s1").is_unread


def test_exact_dwell_threshold_counts(store, clock, monitor):
    monitor.update("s1", status=SessionStatus.WORKING)
    clock.advance(3.0)
    monitor.update("s1", status=SessionStatus.IDLE)
    assert store.get("s1").is_unread


def test_idle_to_idle_leaves_flag_alone(store, monitor):
    monitor.update("s1", status=SessionStatus.IDLE)
    assert not store.get("s1").is_unread


def test_working_to_error_clears_start_without_unread(store, clock, monitor):
    monitor.update("s1", status=SessionStatus.WORKING)
    clock.advance(10)
    monitor.update("s1", status=SessionStatus.ERROR)
    session = store.get("s1")
    assert not session.is_unread
    assert session.working_start_time is None


def test_last_message_is_timestamped(store, clock, monitor):
    monitor.update("s1", last_message="Running tests")
    session = store.get("s1")
    assert session.last_message == "Running tests"
    assert session.last_message_time == clock.now


def test_mark_read_clears_flag(store, clock, monitor):
    monitor.update("s1", status=SessionStatus.WORKING)
    clock.advance(4)
    monitor.update("s1", status=SessionStatus.IDLE)
    monitor.mark_read("s1")
    assert not store.get("s1").is_unread


def test_unknown_session_is_ignored(monitor):
    monitor.update("ghost", status=SessionStatus.WORKING)
    monitor.mark_read("ghost")
