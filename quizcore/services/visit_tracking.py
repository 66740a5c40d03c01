"""
Visit notification sink

Best-effort activity events for the analytics module. Nothing here may
raise into the caller: Redis being absent, slow or failing only costs
the event.
"""
import json
import logging
from typing import Optional
from uuid import UUID

from quizcore.config import settings
from quizcore.utils.cache import connect_redis
from quizcore.utils.time import utcnow

logger = logging.getLogger(__name__)


class VisitTracker:
    """Pushes visit events onto a Redis list consumed by analytics"""

    QUIZ_START = "QUIZ_START"
    QUIZ_COMPLETION = "QUIZ_COMPLETION"

    def __init__(self, redis_client=None, events_key: str = None):
        self.redis_client = redis_client
        self.events_key = events_key or settings.VISIT_EVENTS_KEY

    def record_quiz_start(self, user_id: UUID, course_id: UUID, quiz_id: UUID) -> bool:
        return self._publish(self.QUIZ_START, user_id, course_id, quiz_id)

    def record_quiz_completion(
        self,
        user_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        duration_seconds: Optional[int]
    ) -> bool:
        return self._publish(self.QUIZ_COMPLETION, user_id, course_id, quiz_id, duration_seconds)

    def _publish(
        self,
        event_kind: str,
        user_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        duration_seconds: Optional[int] = None
    ) -> bool:
        if not self.redis_client:
            logger.debug(f"Visit tracking disabled, dropping {event_kind} for user {user_id}")
            return False

        event = {
            "user_id": str(user_id),
            "course_id": str(course_id) if course_id else None,
            "quiz_id": str(quiz_id),
            "event_kind": event_kind,
            "duration_seconds": duration_seconds,
            "occurred_at": utcnow().isoformat()
        }

        try:
            self.redis_client.lpush(self.events_key, json.dumps(event))
            return True
        except Exception as e:
            logger.warning(f"Failed to record {event_kind} for user {user_id}: {str(e)}")
            return False


# Global instance
visit_tracker = VisitTracker(connect_redis())
