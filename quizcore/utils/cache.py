"""
Redis cache utility for quiz statistics
"""
import redis
import json
import logging
from typing import Any, Callable, Dict, Optional
from quizcore.config import settings

logger = logging.getLogger(__name__)


def connect_redis(url: str = None) -> Optional[redis.Redis]:
    """
    Open a Redis client, or return None when Redis is unreachable

    Callers treat None as "feature disabled" rather than an error.
    """
    try:
        client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )
        # Test connection
        client.ping()
        logger.info("Redis connection established")
        return client
    except Exception as e:
        logger.warning(f"Redis connection failed: {str(e)}. Redis-backed features disabled.")
        return None


class CacheService:
    """
    Read-through cache for per-quiz result statistics

    Entries are advisory: the database stays the source of truth, and
    every write of a TestResult drops the statistics of its quiz. With
    no Redis client every lookup misses and every write is a no-op.
    """

    KEY_PREFIX = "quiz_stats"

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client

    def quiz_stats_key(self, quiz_id) -> str:
        return f"{self.KEY_PREFIX}:{quiz_id}"

    def get_quiz_stats(self, quiz_id) -> Optional[Dict[str, Any]]:
        """Cached statistics for a quiz, or None on a miss or Redis error"""
        raw = self._run("read", quiz_id, lambda client, key: client.get(key))
        if not raw:
            return None
        logger.debug(f"Quiz statistics cache hit for quiz {quiz_id}")
        return json.loads(raw)

    def store_quiz_stats(self, quiz_id, statistics: Dict[str, Any], ttl: int = None) -> bool:
        """
        Cache statistics for a quiz

        Args:
            quiz_id: Quiz the statistics belong to
            statistics: JSON-serializable statistics dict
            ttl: Seconds to keep the entry (STATS_CACHE_TTL when omitted)
        """
        ttl = ttl or settings.STATS_CACHE_TTL
        payload = json.dumps(statistics)
        return self._run(
            "store", quiz_id, lambda client, key: client.setex(key, ttl, payload)
        ) is not None

    def invalidate_quiz_stats(self, quiz_id) -> bool:
        return self._run("invalidate", quiz_id, lambda client, key: client.delete(key)) is not None

    def _run(self, action: str, quiz_id, operation: Callable[[redis.Redis, str], Any]) -> Optional[Any]:
        # None means disabled or failed; callers fall back to the database
        if not self.redis_client:
            return None

        try:
            return operation(self.redis_client, self.quiz_stats_key(quiz_id))
        except redis.RedisError as e:
            logger.error(f"Quiz statistics cache {action} failed for quiz {quiz_id}: {str(e)}")
            return None


# Global instance
cache_service = CacheService(connect_redis())
