from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, TypeVar

import httpx

T = TypeVar("T")

RetryDecision = tuple[bool, float | None, str | None]


@dataclass(frozen=True)
class RetryConfig:
    """
    Backoff policy shared by the webmention.io API and source page fetches.

    max_attempts includes the first try. The n-th failure waits
    base_delay_seconds * 2**(n-1), capped at max_delay_seconds, unless the
    server asked for longer via Retry-After (itself capped by
    retry_after_cap_seconds, 0 meaning uncapped). The wait is then scaled by a
    random factor in [1 - jitter_ratio, 1 + jitter_ratio].
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 15.0
    jitter_ratio: float = 0.25
    retry_after_cap_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if not (0.0 <= self.jitter_ratio <= 1.0):
            raise ValueError("jitter_ratio must be between 0 and 1")
        if self.retry_after_cap_seconds < 0:
            raise ValueError("retry_after_cap_seconds must be >= 0")

    def delay_for(
        self,
        failure_attempt: int,
        retry_after: float | None = None,
        *,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> float:
        delay = min(self.max_delay_seconds, self.base_delay_seconds * 2 ** max(0, failure_attempt - 1))

        if retry_after is not None and retry_after >= 0:
            if self.retry_after_cap_seconds > 0:
                retry_after = min(retry_after, self.retry_after_cap_seconds)
            delay = max(delay, retry_after)

        if delay > 0 and self.jitter_ratio > 0:
            delay *= uniform(1.0 - self.jitter_ratio, 1.0 + self.jitter_ratio)
        return max(0.0, float(delay))


@dataclass(frozen=True)
class RetryEvent:
    operation: str
    failure_attempt: int
    max_attempts: int
    delay_seconds: float
    reason: str | None
    error_type: str
    context_url: str | None


IsRetryableFn = Callable[[BaseException], RetryDecision]
OnRetryFn = Callable[[RetryEvent], None]
SleepFn = Callable[[float], None]


def retry_after_seconds(value: str | None, *, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header given either as seconds or as an HTTP date."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        return max(0.0, float(text))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    return max(0.0, (when - current).total_seconds())


def is_retryable_http_error(exc: BaseException) -> RetryDecision:
    """
    Timeouts, connection failures, 429 and 5xx are retried; other HTTP
    statuses and malformed URLs are not.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        retryable = code == 429 or code >= 500
        wait = retry_after_seconds(exc.response.headers.get("Retry-After")) if retryable else None
        return retryable, wait, f"http_{code}"

    if isinstance(exc, httpx.UnsupportedProtocol):
        return False, None, "unsupported_protocol"
    if isinstance(exc, httpx.TimeoutException):
        return True, None, "timeout"
    if isinstance(exc, httpx.TransportError):
        return True, None, "network_error"
    return False, None, None


def call_with_retries(
    fn: Callable[[], T],
    *,
    cfg: RetryConfig,
    is_retryable: IsRetryableFn = is_retryable_http_error,
    operation: str,
    on_retry: OnRetryFn | None = None,
    sleep_fn: SleepFn | None = None,
    context_url: str | None = None,
) -> T:
    """
    Call fn() until it succeeds, the error is not retryable, or attempts run out.

    The last failure is re-raised unchanged.
    """
    op = (operation or "").strip() or "operation"
    sleeper = sleep_fn or time.sleep
    attempt = 1

    while True:
        try:
            return fn()
        except Exception as exc:
            retryable, retry_after, reason = is_retryable(exc)
            if not retryable or attempt >= cfg.max_attempts:
                raise

            delay = cfg.delay_for(attempt, retry_after)
            if on_retry is not None:
                on_retry(
                    RetryEvent(
                        operation=op,
                        failure_attempt=attempt,
                        max_attempts=cfg.max_attempts,
                        delay_seconds=delay,
                        reason=reason,
                        error_type=type(exc).__name__,
                        context_url=context_url,
                    )
                )
            if delay > 0:
                sleeper(delay)
            attempt += 1
