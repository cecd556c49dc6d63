# activebreak/tracker.py
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

from .exercises import pick_exercise
from .messages import msg
from .models.posture import (
    EVENT_CORRECT,
    EVENT_INCORRECT,
    EVENT_SESSION_START,
    EVENT_SESSION_END,
)
from .notifier import LogNotifier
from .posture_core import CORRECT, INCORRECT, PostureVerdict, classify_posture
from .scoring import BreakCompletion

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SessionSettings:
    sensitivity: int = 5
    notifications_enabled: bool = True
    alert_threshold_seconds: int = 3
    break_interval_minutes: int = 30

    @classmethod
    def from_model(cls, settings) -> "SessionSettings":
        return cls(
            sensitivity=int(settings.sensitivity),
            notifications_enabled=bool(settings.notifications_enabled),
            alert_threshold_seconds=int(settings.alert_threshold_seconds),
            break_interval_minutes=int(settings.break_interval_minutes),
        )


class PostureSession:
    """
    State of one monitoring session for one user.

    Frames (or verdicts) and 1 Hz ticks go in; posture events, alerts,
    break triggers and the final stats flush go out through `store`.

    store must provide:
        record_posture_event(user_id, timestamp_ms, event_type)
        record_alert_event(user_id, timestamp_ms)
        add_session_totals(user_id, correct_seconds, incorrect_seconds, alerts_count)
        record_break_completion(user_id, completion) -> dict | None
    """

    def __init__(
        self,
        user_id: int,
        settings: SessionSettings,
        store,
        notifier=None,
        clock: Callable[[], int] = _wall_clock_ms,
        rng: Optional[random.Random] = None,
    ):
        self.user_id = user_id
        self.settings = settings
        self.store = store
        self.notifier = notifier or LogNotifier()
        self.clock = clock
        self.rng = rng

        self.running = False
        self.paused = False
        self.ended = False
        self.started_at_ms: Optional[int] = None

        # posture state
        self.last_verdict = CORRECT
        self.last_reason: Optional[str] = None
        self.bad_run_started_ms: Optional[int] = None
        self.alert_sent = False

        # counters flushed on end()
        self.elapsed_seconds = 0
        self.correct_seconds = 0
        self.incorrect_seconds = 0
        self.alerts_count = 0

        # breaks
        self.last_break_trigger_second = 0
        self.pending_break: Optional[dict] = None

    # ------------------------------
    # lifecycle
    # ------------------------------
    @property
    def active(self) -> bool:
        return self.running and not self.paused

    def start(self) -> None:
        if self.running or self.ended:
            return
        self.running = True
        self.paused = False
        self.started_at_ms = self.clock()
        self.store.record_posture_event(self.user_id, self.started_at_ms, EVENT_SESSION_START)
        logger.info("session started for user %s", self.user_id)

    def pause(self) -> None:
        if self.running:
            self.paused = True

    def resume(self) -> None:
        if self.running:
            self.paused = False

    def end(self) -> dict:
        """Log SessionEnd and add this session's counters to the user's totals."""
        if not self.running:
            return self.totals()

        self.running = False
        self.paused = False
        self.ended = True
        self.store.record_posture_event(self.user_id, self.clock(), EVENT_SESSION_END)

        flushed = self.store.add_session_totals(
            self.user_id, self.correct_seconds, self.incorrect_seconds, self.alerts_count
        )
        if not flushed:
            logger.warning("session totals for user %s were not saved", self.user_id)

        logger.info(
            "session ended for user %s: %ss correct, %ss incorrect, %s alerts",
            self.user_id, self.correct_seconds, self.incorrect_seconds, self.alerts_count,
        )
        return self.totals()

    # ------------------------------
    # per frame
    # ------------------------------
    def on_frame(self, keypoints) -> Optional[PostureVerdict]:
        """
        Classify one frame and feed the verdict in. Low-confidence frames
        return None and leave the state untouched.
        """
        if not self.active:
            return None
        verdict = classify_posture(keypoints, self.settings.sensitivity)
        if verdict is not None:
            self.on_verdict(verdict)
        return verdict

    def on_verdict(self, verdict: Union[PostureVerdict, str]) -> None:
        if not self.active:
            return

        if isinstance(verdict, PostureVerdict):
            posture, reason = verdict.posture, verdict.reason
        else:
            posture, reason = verdict, None
        if posture not in (CORRECT, INCORRECT):
            raise ValueError(f"unknown posture verdict: {posture!r}")

        now = self.clock()
        self.last_reason = reason

        if posture != self.last_verdict:
            event_type = EVENT_CORRECT if posture == CORRECT else EVENT_INCORRECT
            self.store.record_posture_event(self.user_id, now, event_type)
            self.last_verdict = posture

        if posture == CORRECT:
            self.bad_run_started_ms = None
            self.alert_sent = False
        else:
            if self.bad_run_started_ms is None:
                self.bad_run_started_ms = now
            self._check_alert(now)

    # ------------------------------
    # 1 Hz
    # ------------------------------
    def on_tick(self) -> None:
        if not self.active:
            return

        now = self.clock()
        self.elapsed_seconds += 1
        if self.bad_run_started_ms is not None:
            self.incorrect_seconds += 1
        else:
            self.correct_seconds += 1

        self._check_alert(now)

        interval = self.settings.break_interval_minutes * 60
        if (
            interval > 0
            and self.elapsed_seconds % interval == 0
            and self.elapsed_seconds != self.last_break_trigger_second
        ):
            self._trigger_break(now)

    def _check_alert(self, now: int) -> None:
        if self.bad_run_started_ms is None or self.alert_sent:
            return
        if now - self.bad_run_started_ms <= self.settings.alert_threshold_seconds * 1000:
            return

        self.alert_sent = True
        self.alerts_count += 1
        self.store.record_alert_event(self.user_id, now)
        logger.info("posture alert for user %s", self.user_id)

        if self.settings.notifications_enabled:
            self.notifier.notify(
                msg("alert_title"),
                msg("alert_body", seconds=self.settings.alert_threshold_seconds),
            )

    def _trigger_break(self, now: int) -> None:
        self.last_break_trigger_second = self.elapsed_seconds
        exercise = pick_exercise(self.rng)
        self.pending_break = {
            "due_at": now,
            "trigger_reason": "interval",
            "exercise": exercise,
        }
        logger.info("break due for user %s at %ss", self.user_id, self.elapsed_seconds)

        if self.settings.notifications_enabled:
            self.notifier.notify(
                msg("break_title"),
                msg("break_body", name=exercise["name"], desc=exercise["desc"]),
            )

    # ------------------------------
    # breaks
    # ------------------------------
    def complete_break(self, completion: BreakCompletion) -> Optional[dict]:
        """
        Record a finished guided break. When the client did not measure the
        response time, it is taken from the moment this session asked for the break.
        """
        if completion.response_time_seconds is None and self.pending_break is not None:
            waited = (completion.started_at_ms - self.pending_break["due_at"]) / 1000.0
            completion = replace(
                completion,
                response_time_seconds=max(0.0, waited),
                trigger_reason=self.pending_break["trigger_reason"],
            )
        self.pending_break = None
        return self.store.record_break_completion(self.user_id, completion)

    def seconds_to_next_break(self) -> Optional[int]:
        interval = self.settings.break_interval_minutes * 60
        if not self.active or interval <= 0:
            return None
        return interval - (self.elapsed_seconds % interval)

    # ------------------------------
    # reporting
    # ------------------------------
    def totals(self) -> dict:
        return {
            "elapsed_seconds": self.elapsed_seconds,
            "correct_seconds": self.correct_seconds,
            "incorrect_seconds": self.incorrect_seconds,
            "alerts_count": self.alerts_count,
        }

    def snapshot(self) -> dict:
        return {
            "user_id": self.user_id,
            "running": self.running,
            "paused": self.paused,
            "started_at": self.started_at_ms,
            "posture": self.last_verdict,
            "reason": self.last_reason,
            "bad_posture_since": self.bad_run_started_ms,
            "seconds_to_next_break": self.seconds_to_next_break(),
            "pending_break": self.pending_break,
            **self.totals(),
        }
