"""Retry policy for store and network calls of the import pipeline."""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.utils.config import ImportSettings
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

T = TypeVar("T")

TRANSIENT_MARKERS = ("fetch", "network")


def error_message(error: BaseException) -> str:
    """Human-readable message of an error, preferring a .message attribute."""
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error)


class RetryPolicy:
    """
    Retry transient failures with exponential backoff.

    A failure is transient when its message mentions one of the transient
    markers; anything else is raised on the first attempt. With the defaults
    an operation runs at most 3 times, waiting 1s then 2s.
    """

    def __init__(
        self,
        max_retries: int = 2,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        transient_markers: Sequence[str] = TRANSIENT_MARKERS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.transient_markers = tuple(marker.lower() for marker in transient_markers)
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: ImportSettings, **kwargs) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.retry_initial_delay_ms / 1000,
            backoff_factor=settings.retry_backoff_factor,
            **kwargs,
        )

    def is_transient(self, error: BaseException) -> bool:
        message = error_message(error).lower()
        return any(marker in message for marker in self.transient_markers)

    def _log_retry(self, operation: Optional[str]) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                "Transient failure, retrying",
                operation=operation,
                attempt=retry_state.attempt_number,
                retries_remaining=self.max_retries - retry_state.attempt_number + 1,
                delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
                error=error_message(error) if error else None,
            )
        return before_sleep

    async def run(self, fn: Callable[[], Awaitable[T]], operation: Optional[str] = None) -> T:
        """Await fn(), retrying per policy; the last error is re-raised unchanged."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.initial_delay, exp_base=self.backoff_factor),
            retry=retry_if_exception(self.is_transient),
            before_sleep=self._log_retry(operation),
            sleep=self.sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn()
