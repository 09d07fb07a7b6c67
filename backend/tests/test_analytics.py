"""
Tests for analytics event tracking.
"""
import logging
from datetime import timedelta
from unittest.mock import patch

from assessment.core.analytics import AnalyticsTracker, EventType
from assessment.models.models import AttemptStatus
from assessment.services import attempt_service

ANALYTICS_LOGGER = "assessment.core.analytics"


def analytics_events(caplog):
    return [r.event_data for r in caplog.records if r.name == ANALYTICS_LOGGER]


class TestTrackEvent:
    """Tests for AnalyticsTracker.track_event."""

    def test_event_logged_with_structured_data(self, caplog):
        with caplog.at_level(logging.INFO, logger=ANALYTICS_LOGGER):
            AnalyticsTracker.track_event(
                EventType.ATTEMPT_SUBMITTED,
                student_id=42,
                properties={"attempt_id": 7},
            )

        (event,) = analytics_events(caplog)
        assert event["event"] == "attempt.submitted"
        assert event["student_id"] == 42
        assert event["properties"] == {"attempt_id": 7}
        assert "timestamp" in event

    def test_disabled_analytics_logs_nothing(self, caplog):
        with patch("assessment.core.analytics.settings") as mock_settings:
            mock_settings.ANALYTICS_ENABLED = False
            with caplog.at_level(logging.INFO, logger=ANALYTICS_LOGGER):
                AnalyticsTracker.track_test_published(1, 3)

        assert analytics_events(caplog) == []

    def test_helper_properties(self, caplog):
        with caplog.at_level(logging.INFO, logger=ANALYTICS_LOGGER):
            AnalyticsTracker.track_test_duplicated(3, 9)

        (event,) = analytics_events(caplog)
        assert event["event"] == "test.duplicated"
        assert event["properties"] == {"source_test_id": 3, "new_test_id": 9}


class TestLifecycleEvents:
    """Tests for events emitted by the attempt service."""

    def test_attempt_events_in_order(self, db_session, make_test, now, caplog):
        test = make_test()
        question = test.active_questions[0]

        with caplog.at_level(logging.INFO, logger=ANALYTICS_LOGGER):
            attempt = attempt_service.start_attempt(db_session, test.id, 5, now=now)
            attempt_service.record_answer(
                db_session, attempt, question.id,
                {"type": "multiple_choice", "option_ids": [question.active_options[0].id]},
                now=now,
            )
            attempt_service.submit_attempt(db_session, attempt, now=now + timedelta(minutes=2))

        names = [event["event"] for event in analytics_events(caplog)]
        assert names == [
            EventType.ATTEMPT_STARTED.value,
            EventType.ATTEMPT_ANSWER_RECORDED.value,
            EventType.ATTEMPT_SUBMITTED.value,
            EventType.ATTEMPT_GRADED.value,
        ]
        graded = analytics_events(caplog)[-1]
        assert graded["properties"]["percentage"] == 100.0
        assert graded["properties"]["passed"] is None

    def test_tracking_failure_does_not_block_submit(self, db_session, make_test, now):
        test = make_test()
        attempt = attempt_service.start_attempt(db_session, test.id, 5, now=now)

        with patch.object(
            AnalyticsTracker,
            "track_attempt_submitted",
            side_effect=RuntimeError("sink unavailable"),
        ):
            attempt_service.submit_attempt(db_session, attempt, now=now)

        assert attempt.status == AttemptStatus.GRADED
