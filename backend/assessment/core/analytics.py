"""
Analytics event tracking for attempt and test lifecycle events.

Events are written as structured log records to this module's logger. An
embedding application can route that logger to an external analytics sink.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from assessment.core.config import settings

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Analytics event types."""

    # Attempt events
    ATTEMPT_STARTED = "attempt.started"
    ATTEMPT_ANSWER_RECORDED = "attempt.answer_recorded"
    ATTEMPT_SUBMITTED = "attempt.submitted"
    ATTEMPT_GRADED = "attempt.graded"
    ATTEMPT_ABANDONED = "attempt.abandoned"

    # Grading events
    ANSWER_MANUALLY_GRADED = "answer.manually_graded"

    # Test management events
    TEST_PUBLISHED = "test.published"
    TEST_UNPUBLISHED = "test.unpublished"
    TEST_DUPLICATED = "test.duplicated"


class AnalyticsTracker:
    """
    Analytics event tracker for attempt and test events.
    """

    @staticmethod
    def track_event(
        event_type: EventType,
        student_id: Optional[int] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Track an analytics event.

        Args:
            event_type: Type of event being tracked
            student_id: Optional student associated with the event
            properties: Optional dictionary of event properties

        Example:
            AnalyticsTracker.track_event(
                EventType.ATTEMPT_SUBMITTED,
                student_id=123,
                properties={"attempt_id": 7, "duration_seconds": 1200}
            )
        """
        if not settings.ANALYTICS_ENABLED:
            return

        event_data = {
            "event": event_type.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "student_id": student_id,
            "properties": properties or {},
            "environment": settings.ENV,
        }

        logger.info(
            f"Analytics Event: {event_type.value}",
            extra={
                "event_data": event_data,
                "student_id": student_id,
            },
        )

    @staticmethod
    def track_attempt_started(
        student_id: int, attempt_id: int, test_id: int, attempt_number: int
    ) -> None:
        """Track attempt start."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_STARTED,
            student_id=student_id,
            properties={
                "attempt_id": attempt_id,
                "test_id": test_id,
                "attempt_number": attempt_number,
            },
        )

    @staticmethod
    def track_answer_recorded(
        student_id: int, attempt_id: int, question_id: int
    ) -> None:
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_ANSWER_RECORDED,
            student_id=student_id,
            properties={"attempt_id": attempt_id, "question_id": question_id},
        )

    @staticmethod
    def track_attempt_submitted(
        student_id: int,
        attempt_id: int,
        duration_seconds: Optional[int] = None,
        answered_count: int = 0,
    ) -> None:
        """Track attempt submission."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_SUBMITTED,
            student_id=student_id,
            properties={
                "attempt_id": attempt_id,
                "duration_seconds": duration_seconds,
                "answered_count": answered_count,
            },
        )

    @staticmethod
    def track_attempt_graded(
        student_id: int,
        attempt_id: int,
        percentage: Optional[float],
        passed: Optional[bool],
    ) -> None:
        """Track an attempt reaching the graded status."""
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_GRADED,
            student_id=student_id,
            properties={
                "attempt_id": attempt_id,
                "percentage": percentage,
                "passed": passed,
            },
        )

    @staticmethod
    def track_attempt_abandoned(
        student_id: int, attempt_id: int, answered_count: int
    ) -> None:
        AnalyticsTracker.track_event(
            EventType.ATTEMPT_ABANDONED,
            student_id=student_id,
            properties={"attempt_id": attempt_id, "answered_count": answered_count},
        )

    @staticmethod
    def track_answer_manually_graded(
        answer_id: int, attempt_id: int, grader_id: int, points_earned: float
    ) -> None:
        AnalyticsTracker.track_event(
            EventType.ANSWER_MANUALLY_GRADED,
            properties={
                "answer_id": answer_id,
                "attempt_id": attempt_id,
                "grader_id": grader_id,
                "points_earned": points_earned,
            },
        )

    @staticmethod
    def track_test_published(test_id: int, question_count: int) -> None:
        AnalyticsTracker.track_event(
            EventType.TEST_PUBLISHED,
            properties={"test_id": test_id, "question_count": question_count},
        )

    @staticmethod
    def track_test_unpublished(test_id: int) -> None:
        AnalyticsTracker.track_event(
            EventType.TEST_UNPUBLISHED,
            properties={"test_id": test_id},
        )

    @staticmethod
    def track_test_duplicated(source_test_id: int, new_test_id: int) -> None:
        AnalyticsTracker.track_event(
            EventType.TEST_DUPLICATED,
            properties={"source_test_id": source_test_id, "new_test_id": new_test_id},
        )
