# tests/test_tracker.py

import random
from unittest.mock import Mock

import pytest

from activebreak.notifier import QueueNotifier
from activebreak.posture_core import Keypoint
from activebreak.scoring import BreakCompletion
from activebreak.tracker import PostureSession, SessionSettings


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    store = Mock()
    store.add_session_totals.return_value = True
    store.record_break_completion.return_value = {"xp_gained": 110}
    return store


@pytest.fixture
def notifier():
    return QueueNotifier()


def make_session(store, notifier, clock, **overrides):
    settings = SessionSettings(
        sensitivity=5,
        notifications_enabled=overrides.pop("notifications_enabled", True),
        alert_threshold_seconds=overrides.pop("alert_threshold_seconds", 3),
        break_interval_minutes=overrides.pop("break_interval_minutes", 1),
    )
    session = PostureSession(
        user_id=7,
        settings=settings,
        store=store,
        notifier=notifier,
        clock=clock,
        rng=random.Random(0),
    )
    session.start()
    return session


def logged_types(store):
    return [c.args[2] for c in store.record_posture_event.call_args_list]


class TestLifecycle:
    """start / pause / resume / end"""

    def test_start_logs_session_start(self, store, notifier, clock):
        clock.now = 1_000
        session = make_session(store, notifier, clock)
        store.record_posture_event.assert_called_once_with(7, 1_000, "session_start")
        assert session.active

    def test_paused_session_ignores_input(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        session.pause()
        session.on_tick()
        session.on_verdict("incorrect")
        assert session.elapsed_seconds == 0
        assert logged_types(store) == ["session_start"]

        session.resume()
        session.on_tick()
        assert session.elapsed_seconds == 1

    def test_end_flushes_totals_once(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        for _ in range(3):
            session.on_tick()
        session.on_verdict("incorrect")
        session.on_tick()

        totals = session.end()
        session.end()

        store.add_session_totals.assert_called_once_with(7, 3, 1, 0)
        assert totals == {
            "elapsed_seconds": 4,
            "correct_seconds": 3,
            "incorrect_seconds": 1,
            "alerts_count": 0,
        }
        assert logged_types(store)[-1] == "session_end"
        assert not session.active

    def test_failed_flush_still_returns_totals(self, store, notifier, clock):
        store.add_session_totals.return_value = None
        session = make_session(store, notifier, clock)
        session.on_tick()
        assert session.end()["correct_seconds"] == 1


class TestPostureEvents:
    """Only changes of verdict reach the log"""

    def test_events_match_changes(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        for verdict in ["correct", "correct", "incorrect", "incorrect", "correct", "incorrect"]:
            clock.now += 100
            session.on_verdict(verdict)

        assert logged_types(store) == ["session_start", "incorrect", "correct", "incorrect"]

    def test_unknown_verdict(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        with pytest.raises(ValueError):
            session.on_verdict("slouching")

    def test_low_confidence_frame_keeps_state(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        session.on_verdict("incorrect")
        weak = [
            Keypoint("nose", 0.5, 0.3, 0.01),
            Keypoint("left_shoulder", 0.4, 0.5, 0.01),
            Keypoint("right_shoulder", 0.6, 0.5, 0.01),
        ]
        assert session.on_frame(weak) is None
        assert session.last_verdict == "incorrect"

    def test_frame_is_classified(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        off_center = [
            Keypoint("nose", 0.55, 0.3, 0.9),
            Keypoint("left_shoulder", 0.4, 0.5, 0.9),
            Keypoint("right_shoulder", 0.6, 0.5, 0.9),
        ]
        verdict = session.on_frame(off_center)
        assert verdict.posture == "incorrect"
        assert session.last_reason == "head_not_centered"
        assert logged_types(store) == ["session_start", "incorrect"]


class TestAlerts:
    """One alert per continuous run of bad posture"""

    def test_alert_after_threshold(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        clock.now = 1_000
        session.on_verdict("incorrect")
        clock.now = 4_000
        session.on_verdict("incorrect")
        assert session.alerts_count == 0

        clock.now = 8_001
        session.on_verdict("incorrect")
        assert session.alerts_count == 1
        store.record_alert_event.assert_called_once_with(7, 8_001)

        clock.now = 12_000
        session.on_verdict("incorrect")
        assert session.alerts_count == 1

        notes = notifier.drain()
        assert len(notes) == 1
        assert notes[0]["title"] == "Posture alert!"
        assert "3s" in notes[0]["body"]

    def test_alert_fires_once_before_recovery(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        clock.now = 4_000
        session.on_verdict("incorrect")
        clock.now = 7_000
        session.on_tick()
        assert session.alerts_count == 0

        clock.now = 7_001
        session.on_tick()
        assert session.alerts_count == 1

        clock.now = 8_000
        session.on_verdict("correct")
        session.on_tick()
        assert session.alerts_count == 1
        assert store.record_alert_event.call_count == 1

    def test_correct_posture_rearms_alert(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        session.on_verdict("incorrect")
        clock.now = 3_001
        session.on_verdict("incorrect")
        session.on_verdict("correct")
        clock.now = 10_000
        session.on_verdict("incorrect")
        clock.now = 13_001
        session.on_tick()
        assert session.alerts_count == 2

    def test_tick_can_raise_alert(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        session.on_verdict("incorrect")
        clock.now = 3_500
        session.on_tick()
        assert session.alerts_count == 1

    def test_disabled_notifications_still_count(self, store, notifier, clock):
        session = make_session(store, notifier, clock, notifications_enabled=False)
        session.on_verdict("incorrect")
        clock.now = 5_000
        session.on_verdict("incorrect")
        assert session.alerts_count == 1
        assert notifier.drain() == []


class TestBreaks:
    """Break reminders every interval of active time"""

    def test_break_triggers_on_interval(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        for _ in range(59):
            session.on_tick()
        assert session.pending_break is None
        assert session.seconds_to_next_break() == 1

        clock.now = 60_000
        session.on_tick()
        assert session.pending_break["due_at"] == 60_000
        assert session.pending_break["trigger_reason"] == "interval"
        notes = notifier.drain()
        assert notes[-1]["title"] == "Time for a break! (Exercise)"
        assert session.pending_break["exercise"]["name"] in notes[-1]["body"]

    def test_paused_time_does_not_count(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        for _ in range(30):
            session.on_tick()
        session.pause()
        for _ in range(100):
            session.on_tick()
        session.resume()
        assert session.pending_break is None
        assert session.seconds_to_next_break() == 30

    def test_complete_break_derives_response_time(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        clock.now = 60_000
        for _ in range(60):
            session.on_tick()

        completion = BreakCompletion(
            completed=True, quality_factor=0.8, started_at_ms=64_000, ended_at_ms=120_000
        )
        result = session.complete_break(completion)

        assert result == {"xp_gained": 110}
        sent = store.record_break_completion.call_args.args[1]
        assert sent.response_time_seconds == 4.0
        assert session.pending_break is None

    def test_explicit_response_time_is_kept(self, store, notifier, clock):
        session = make_session(store, notifier, clock)
        completion = BreakCompletion(
            completed=True,
            quality_factor=1.0,
            started_at_ms=0,
            ended_at_ms=1_000,
            response_time_seconds=12.0,
        )
        session.complete_break(completion)
        assert store.record_break_completion.call_args.args[1].response_time_seconds == 12.0
