# tests/test_statistics.py

from datetime import date, timedelta

import pytest

from activebreak import db, storage
from activebreak.models.user import User
from activebreak.statistics import (
    build_statistics,
    chart_series,
    day_end_ms,
    day_start_ms,
    export_events_csv,
    percentage_change,
    posture_durations,
    previous_period,
)


class TestPercentageChange:

    def test_zero_previous(self):
        assert percentage_change(0, 0) == "0.0%"
        assert percentage_change(5, 0) == "+100.0%"

    def test_signs(self):
        assert percentage_change(150, 100) == "+50.0%"
        assert percentage_change(50, 100) == "-50.0%"
        assert percentage_change(100, 100) == "0.0%"


class TestPostureDurations:
    """Splitting an event log into correct / incorrect time"""

    def test_segments_belong_to_earlier_event(self):
        events = [(0, "session_start"), (10_000, "incorrect"), (25_000, "correct")]
        result = posture_durations(events, window_end_ms=40_000)
        assert result["correct"] == 25
        assert result["incorrect"] == 15
        assert [r["duration_seconds"] for r in result["rows"]] == [10, 15, 15]
        assert result["rows"][1]["duration"] == "00:00:15"

    def test_time_after_session_end_counts_as_incorrect(self):
        events = [(0, "session_start"), (10_000, "session_end"), (50_000, "session_start")]
        result = posture_durations(events, window_end_ms=60_000)
        assert result["correct"] == 20
        assert result["incorrect"] == 40
        assert result["correct"] + result["incorrect"] == 60

    def test_window_start_without_prior_event_defaults_to_correct(self):
        result = posture_durations(
            [(3_600_000, "incorrect")], window_end_ms=7_200_000, window_start_ms=0
        )
        assert result["correct"] == 3600
        assert result["incorrect"] == 3600

    def test_prior_event_state_carries_into_window(self):
        result = posture_durations(
            [], window_end_ms=11_000, window_start_ms=1_000, prior_event_type="incorrect"
        )
        assert result["incorrect"] == 10
        assert result["correct"] == 0

    def test_empty_log(self):
        result = posture_durations([], window_end_ms=60_000)
        assert result == {"correct": 0, "incorrect": 0, "rows": []}

    def test_totals_cover_whole_window(self):
        events = [(0, "session_start"), (4_000, "incorrect"), (9_000, "correct"), (12_000, "incorrect")]
        result = posture_durations(events, window_end_ms=30_000)
        assert result["correct"] + result["incorrect"] == 30
        assert result["incorrect"] == 5 + 18

    def test_totals_never_exceed_window(self):
        events = [(0, "session_start"), (1_500, "incorrect"), (2_700, "correct"), (9_999, "incorrect")]
        result = posture_durations(events, window_end_ms=20_000)
        assert result["correct"] + result["incorrect"] <= 20


class TestChartAndPeriods:

    def test_chart_groups_by_day(self):
        d = date(2025, 3, 10)
        base = day_start_ms(d)
        rows = [
            {"timestamp": base, "type": "session_start", "duration_seconds": 600},
            {"timestamp": base + 600_000, "type": "incorrect", "duration_seconds": 120},
            {"timestamp": base + 720_000, "type": "session_end", "duration_seconds": 60},
        ]
        chart = chart_series(rows)
        assert chart == {
            "labels": ["2025-03-10"],
            "correct_minutes": [10],
            # session_end time is not correct posture
            "incorrect_minutes": [3],
        }

    def test_previous_period_has_equal_length(self):
        assert previous_period(date(2025, 1, 8), date(2025, 1, 14)) == (
            date(2025, 1, 1),
            date(2025, 1, 7),
        )

    def test_day_bounds(self):
        d = date(2025, 3, 10)
        assert day_end_ms(d) + 1 == day_start_ms(d + timedelta(days=1))


class TestBuildStatistics:
    """Statistics over the stored event log"""

    def _user(self):
        user = User(email="stats@example.com", role="client")
        user.set_password("secret123")
        db.session.add(user)
        db.session.commit()
        return user

    def test_single_day_with_trend(self, app):
        user = self._user()
        d = date(2025, 6, 10)
        t0 = day_start_ms(d) + 3_600_000
        storage.record_posture_event(user.id, t0, "session_start")
        storage.record_posture_event(user.id, t0 + 10_000, "incorrect")
        storage.record_posture_event(user.id, t0 + 30_000, "session_end")
        storage.record_alert_event(user.id, t0 + 14_000)

        summary = build_statistics(user.id, d, d, now_ms=t0 + 60_000)

        # midnight to t0 defaults to correct, then 10 s correct
        assert summary["correct_seconds"] == 3610
        assert summary["incorrect_seconds"] == 20 + 30
        assert summary["correct_time"] == "01:00:10"
        assert summary["alerts_count"] == 1
        # newest first
        assert [e["type"] for e in summary["events"]] == ["session_end", "incorrect", "session_start"]
        assert summary["events"][0]["date"] == "2025-06-10"

        prev = d - timedelta(days=1)
        trend = summary["trend"]
        assert trend["previous_start_date"] == "2025-06-09"
        # an empty previous day is correct from start to end
        assert trend["previous_correct_seconds"] == int((day_end_ms(prev) - day_start_ms(prev)) / 1000)
        assert trend["previous_incorrect_seconds"] == 0
        assert trend["correct"].startswith("-")
        assert trend["incorrect"] == "+100.0%"

    def test_empty_window_defaults_to_correct(self, app):
        user = self._user()
        d = date(2025, 6, 10)
        one_am = day_start_ms(d) + 3_600_000
        storage.record_posture_event(user.id, one_am, "incorrect")

        summary = build_statistics(user.id, d, d, now_ms=one_am + 3_600_000)
        assert summary["correct_seconds"] == 3600
        assert summary["incorrect_seconds"] == 3600

    def test_state_before_window_is_used(self, app):
        user = self._user()
        d = date(2025, 6, 10)
        start = day_start_ms(d)
        storage.record_posture_event(user.id, start - 10_000, "session_start")
        storage.record_posture_event(user.id, start + 5_000, "session_end")

        summary = build_statistics(user.id, d, d, now_ms=start + 65_000)
        assert summary["correct_seconds"] == 5
        assert summary["incorrect_seconds"] == 60

    def test_totals_span_history_with_session_end(self, app):
        user = self._user()
        t0 = day_start_ms(date(2025, 6, 10)) + 7_200_000
        for offset, kind in (
            (0, "session_start"),
            (20_000, "incorrect"),
            (35_000, "session_end"),
            (95_000, "session_start"),
        ):
            storage.record_posture_event(user.id, t0 + offset, kind)

        summary = build_statistics(user.id, now_ms=t0 + 125_000)
        assert summary["correct_seconds"] + summary["incorrect_seconds"] == 125
        assert summary["correct_seconds"] == 20 + 30

    def test_no_dates_has_no_trend(self, app):
        user = self._user()
        summary = build_statistics(user.id)
        assert summary["trend"] is None
        assert summary["correct_seconds"] == 0
        assert summary["events"] == []

    def test_inverted_range_raises(self, app):
        user = self._user()
        d = date(2025, 3, 10)
        with pytest.raises(ValueError):
            build_statistics(user.id, d, d - timedelta(days=1))


class TestExportCsv:
    """Posture history as CSV"""

    def test_rows_in_range_oldest_first(self, app):
        user = User(email="csv@example.com", role="client")
        user.set_password("secret123")
        db.session.add(user)
        db.session.commit()

        d = date(2025, 6, 10)
        t0 = day_start_ms(d) + 3_600_000
        storage.record_posture_event(user.id, day_start_ms(d) - 1, "session_start")
        storage.record_posture_event(user.id, t0 + 10_000, "incorrect")
        storage.record_posture_event(user.id, t0, "session_start")

        lines = export_events_csv(user.id, d, d).splitlines()
        assert lines[0] == '"timestamp","local_time","event"'
        assert lines[1] == f'"{t0}","2025-06-10 01:00:00","session_start"'
        assert lines[2] == f'"{t0 + 10_000}","2025-06-10 01:00:10","incorrect"'
        assert len(lines) == 3

    def test_inverted_range_raises(self, app):
        d = date(2025, 6, 10)
        with pytest.raises(ValueError):
            export_events_csv(1, d, d - timedelta(days=1))
