"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str
    
    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    
    # Application
    APP_NAME: str = "Quiz Attempt & Test Result Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    
    # Attempt lifecycle
    RECORD_UNANSWERED_QUESTIONS: bool = False  # write zero-point rows for skipped questions
    START_ATTEMPT_MAX_RETRIES: int = 3
    
    # Result calculation
    DEFAULT_PASSING_SCORE: float = 70.0
    
    # Circuit breaker (count-based sliding window)
    BREAKER_WINDOW_SIZE: int = 10
    BREAKER_FAILURE_RATE_THRESHOLD: float = 50.0  # percent
    BREAKER_MINIMUM_CALLS: int = 5
    BREAKER_OPEN_SECONDS: float = 30.0
    BREAKER_HALF_OPEN_CALLS: int = 3
    
    # Retry
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_WAIT_MULTIPLIER: float = 0.5  # seconds
    RETRY_MAX_WAIT: float = 5.0
    
    # Timeout reconciliation
    SCHEDULER_ENABLED: bool = True
    RESULT_CLEANUP_INTERVAL_MINUTES: int = 15
    RESULT_TIMEOUT_MINUTES: int = 30
    
    # Cache / visit events
    STATS_CACHE_TTL: int = 300  # 5 minutes
    VISIT_EVENTS_KEY: str = "visit_events"
    VISIT_NOTIFICATION_WORKERS: int = 2
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
