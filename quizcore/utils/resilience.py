"""
Resilience primitives for the result calculation path

- CircuitBreaker: count-based sliding window, CLOSED -> OPEN -> HALF_OPEN
- Bulkhead: non-blocking concurrency cap (skip, don't queue)
- ResiliencePolicy: retry (tenacity) around the breaker, with a fallback
"""
import enum
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Optional, Tuple, Type

from sqlalchemy import exc as sa_exc
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from quizcore.config import settings
from quizcore.exceptions import InvalidStateError, NotFoundError

logger = logging.getLogger(__name__)

# Store and network hiccups worth another try
TRANSIENT_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    sa_exc.OperationalError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
    ConnectionError,
    TimeoutError,
)

# Caller mistakes: never retried, never counted, never sent to fallback
IGNORED_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    NotFoundError,
    InvalidStateError,
)


class CircuitState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"
    FORCED_OPEN = "FORCED_OPEN"


class CircuitOpenError(Exception):
    """Raised instead of calling the protected function while the circuit is open"""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker '{name}' is open")
        self.name = name


class CircuitBreaker:
    """
    Thread-safe circuit breaker

    The last `window_size` call outcomes are kept. Once at least
    `minimum_calls` are recorded and the failure rate reaches
    `failure_rate_threshold` percent, the circuit opens for
    `open_seconds`. After that, `half_open_calls` trial calls decide
    whether it closes again or re-opens.
    """

    def __init__(
        self,
        name: str,
        window_size: int = 10,
        failure_rate_threshold: float = 50.0,
        minimum_calls: int = 5,
        open_seconds: float = 30.0,
        half_open_calls: int = 3,
        ignored_exceptions: Tuple[Type[BaseException], ...] = IGNORED_EXCEPTIONS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.name = name
        self.window_size = window_size
        self.failure_rate_threshold = failure_rate_threshold
        self.minimum_calls = minimum_calls
        self.open_seconds = open_seconds
        self.half_open_calls = half_open_calls
        self.ignored_exceptions = ignored_exceptions
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._outcomes: Deque[bool] = deque(maxlen=window_size)  # True = failure
        self._opened_at: Optional[float] = None
        self._half_open_in_flight = 0
        self._half_open_outcomes: list = []

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def force_open(self) -> None:
        """Hold the circuit open until reset() is called"""
        with self._lock:
            self._transition(CircuitState.FORCED_OPEN)

    def reset(self) -> None:
        with self._lock:
            self._transition(CircuitState.CLOSED)

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        self._acquire_permission()

        try:
            result = func(*args, **kwargs)
        except self.ignored_exceptions:
            self._release()
            raise
        except Exception:
            self._record(failed=True)
            raise

        self._record(failed=False)
        return result

    def _acquire_permission(self) -> None:
        with self._lock:
            self._maybe_half_open()

            if self._state in (CircuitState.OPEN, CircuitState.FORCED_OPEN):
                raise CircuitOpenError(self.name)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_in_flight + len(self._half_open_outcomes) >= self.half_open_calls:
                    raise CircuitOpenError(self.name)
                self._half_open_in_flight += 1

    def _release(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_in_flight > 0:
                self._half_open_in_flight -= 1

    def _record(self, failed: bool) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._half_open_in_flight = max(self._half_open_in_flight - 1, 0)
                self._half_open_outcomes.append(failed)

                if len(self._half_open_outcomes) >= self.half_open_calls:
                    if self._failure_rate(self._half_open_outcomes) >= self.failure_rate_threshold:
                        self._transition(CircuitState.OPEN)
                    else:
                        self._transition(CircuitState.CLOSED)
                return

            if self._state != CircuitState.CLOSED:
                return

            self._outcomes.append(failed)
            if (
                len(self._outcomes) >= self.minimum_calls
                and self._failure_rate(self._outcomes) >= self.failure_rate_threshold
            ):
                self._transition(CircuitState.OPEN)

    def _maybe_half_open(self) -> None:
        # caller holds the lock
        if (
            self._state == CircuitState.OPEN
            and self._opened_at is not None
            and self._clock() - self._opened_at >= self.open_seconds
        ):
            self._transition(CircuitState.HALF_OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        # caller holds the lock
        if new_state == self._state:
            return

        logger.warning(f"Circuit breaker '{self.name}': {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._half_open_in_flight = 0
        self._half_open_outcomes = []

        if new_state in (CircuitState.OPEN, CircuitState.FORCED_OPEN):
            self._opened_at = self._clock()
        else:
            self._opened_at = None

        if new_state == CircuitState.CLOSED:
            self._outcomes.clear()

    @staticmethod
    def _failure_rate(outcomes) -> float:
        if not outcomes:
            return 0.0
        return sum(1 for failed in outcomes if failed) * 100.0 / len(outcomes)


class Bulkhead:
    """
    Concurrency cap that rejects instead of queueing

    Usage:
        if not bulkhead.try_acquire():
            return  # skip, a run is already in progress
        try:
            ...
        finally:
            bulkhead.release()
    """

    def __init__(self, name: str, max_concurrent: int = 1):
        self.name = name
        self._semaphore = threading.BoundedSemaphore(max_concurrent)

    def try_acquire(self) -> bool:
        acquired = self._semaphore.acquire(blocking=False)
        if not acquired:
            logger.info(f"Bulkhead '{self.name}' is full, skipping")
        return acquired

    def release(self) -> None:
        self._semaphore.release()


class ResiliencePolicy:
    """
    Retry around a circuit breaker, with a fallback

    Transient failures are retried while the breaker lets calls through.
    An open circuit, an exhausted retry budget or any other unexpected
    error is handed to the fallback. NotFound/InvalidState propagate.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        max_attempts: int = 3,
        wait_multiplier: float = 0.5,
        max_wait: float = 5.0,
        transient_exceptions: Tuple[Type[BaseException], ...] = TRANSIENT_EXCEPTIONS
    ):
        self.breaker = breaker
        self.max_attempts = max_attempts
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=wait_multiplier, max=max_wait),
            retry=retry_if_exception_type(transient_exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )

    def execute(
        self,
        func: Callable[[], Any],
        fallback: Callable[[Exception], Any]
    ) -> Any:
        try:
            return self._retrying.copy()(self.breaker.call, func)
        except self.breaker.ignored_exceptions:
            raise
        except Exception as e:
            return fallback(e)

    @classmethod
    def from_settings(cls, name: str) -> "ResiliencePolicy":
        breaker = CircuitBreaker(
            name=name,
            window_size=settings.BREAKER_WINDOW_SIZE,
            failure_rate_threshold=settings.BREAKER_FAILURE_RATE_THRESHOLD,
            minimum_calls=settings.BREAKER_MINIMUM_CALLS,
            open_seconds=settings.BREAKER_OPEN_SECONDS,
            half_open_calls=settings.BREAKER_HALF_OPEN_CALLS
        )
        return cls(
            breaker=breaker,
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            wait_multiplier=settings.RETRY_WAIT_MULTIPLIER,
            max_wait=settings.RETRY_MAX_WAIT
        )
