"""
================================================================================
Call Delegates
================================================================================

Observers consulted by the request pipeline at fixed checkpoints of every
API call. A delegate can watch progress, substitute a bearer token when
the authenticator fails, and decide whether a failed attempt is retried.

    - Delegate / DefaultDelegate: no-op observer, never retries
    - LoggingDelegate: reports every checkpoint through Loguru
    - BackoffDelegate: bounded retry with exponential backoff and
      Retry-After handling for transient failures

The pipeline itself has no retry cap. A delegate that always answers
``Retry.after(...)`` keeps a call looping forever; budgets belong here.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, FrozenSet, Optional, Union

import httpx
from loguru import logger

from .config_loader import ConfigLoader


# Maximum error body length included in log records
MAX_LOGGED_BODY = 3000

# Default retry settings
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF = 0.5
DEFAULT_RETRY_MAX_WAIT = 5.0

RETRYABLE_STATUSES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})

SENSITIVE_BODY_KEYS = ("password", "secret", "token", "api_key", "authorization", "session")


@dataclass(frozen=True)
class MethodInfo:
    """Identifies the API method an invocation is for."""

    id: str
    http_method: str


@dataclass(frozen=True)
class Retry:
    """
    A delegate's answer to a failed attempt.

    ``delay`` is None to abort, or the number of seconds to sleep before
    the next attempt.
    """

    delay: Optional[float] = None

    @classmethod
    def abort(cls) -> "Retry":
        return cls(None)

    @classmethod
    def after(cls, delay: Union[float, timedelta]) -> "Retry":
        if isinstance(delay, timedelta):
            delay = delay.total_seconds()
        if not math.isfinite(delay) or delay < 0:
            raise ValueError("retry delay must be a finite, non-negative number")
        return cls(float(delay))

    @property
    def should_retry(self) -> bool:
        return self.delay is not None


class Delegate:
    """
    Base observer for API calls. Every hook is a no-op by default.

    Subclasses override the hooks they care about. A delegate instance may
    be reused across calls; the pipeline only invokes its methods.
    """

    def begin(self, info: MethodInfo) -> None:
        """Called once at the start of a call, before any validation or I/O."""

    def pre_request(self) -> None:
        """Called right before each attempt is sent."""

    def token_failure(self, error: Exception) -> Optional[str]:
        """
        Called when the authenticator fails.

        Returns:
            A substitute bearer token, or None to abort with MissingToken.
        """
        return None

    def transport_failure(self, error: httpx.RequestError) -> Retry:
        """Called when an attempt fails before a usable response (connect, timeout, decoding)."""
        return Retry.abort()

    def http_failure(self, response: httpx.Response, value: Optional[Any]) -> Retry:
        """
        Called for a non-success status.

        Args:
            response: The response, with its body already read.
            value: The body parsed as JSON, or None if it was not JSON.
        """
        return Retry.abort()

    def decode_failure(self, body: str, error: Exception) -> None:
        """Called when a success response does not match the expected schema."""

    def finished(self, is_success: bool) -> None:
        """Called exactly once when the call completes, successfully or not."""


class DefaultDelegate(Delegate):
    """Delegate used when the caller supplies none: observe nothing, never retry."""


class LoggingDelegate(Delegate):
    """
    Delegate reporting every checkpoint of a call through Loguru.

    Keeps per-call progress (attempt number, start time) on the instance,
    so one instance should serve one call at a time.
    """

    def __init__(self) -> None:
        self._info: Optional[MethodInfo] = None
        self._attempt = 0
        self._started_at = 0.0

    @property
    def attempt(self) -> int:
        return self._attempt

    def begin(self, info: MethodInfo) -> None:
        self._info = info
        self._attempt = 0
        self._started_at = time.monotonic()
        logger.debug(f"{info.http_method} {info.id}: call started")

    def pre_request(self) -> None:
        self._attempt += 1
        logger.debug(f"{self._label()}: sending attempt {self._attempt}")

    def token_failure(self, error: Exception) -> Optional[str]:
        logger.error(f"{self._label()}: token retrieval failed: {error}")
        return None

    def transport_failure(self, error: httpx.RequestError) -> Retry:
        logger.warning(
            f"{self._label()}: transport error on attempt {self._attempt}: "
            f"{type(error).__name__}: {error}"
        )
        return Retry.abort()

    def http_failure(self, response: httpx.Response, value: Optional[Any]) -> Retry:
        logger.warning(
            f"{self._label()}: HTTP {response.status_code} on attempt {self._attempt}: "
            f"{self._describe_body(response, value)}"
        )
        return Retry.abort()

    def decode_failure(self, body: str, error: Exception) -> None:
        logger.error(
            f"{self._label()}: response did not match schema: {error}. "
            f"Body: {self._truncate(body)}"
        )

    def finished(self, is_success: bool) -> None:
        elapsed = time.monotonic() - self._started_at
        outcome = "succeeded" if is_success else "failed"
        message = (
            f"{self._label()}: {outcome} after {self._attempt} attempt(s) in {elapsed:.3f}s"
        )
        if is_success:
            logger.info(message)
        else:
            logger.error(message)

    def _label(self) -> str:
        if self._info is None:
            return "<unknown call>"
        return f"{self._info.http_method} {self._info.id}"

    def _describe_body(self, response: httpx.Response, value: Optional[Any]) -> str:
        if value is None:
            return self._truncate(response.text or "<empty>")
        return self._truncate(
            json.dumps(self._redact_body(value), ensure_ascii=False)
        )

    @staticmethod
    def _truncate(text: str) -> str:
        if len(text) > MAX_LOGGED_BODY:
            return (
                f"{text[:MAX_LOGGED_BODY]} "
                f"... [Truncated, full length: {len(text)} chars]"
            )
        return text

    def _redact_body(self, payload: Any) -> Any:
        """Recursively mask sensitive fields before logging."""
        if isinstance(payload, dict):
            redacted: Dict[str, Any] = {}
            for key, value in payload.items():
                if any(token in str(key).lower() for token in SENSITIVE_BODY_KEYS):
                    redacted[key] = "***MASKED***"
                else:
                    redacted[key] = self._redact_body(value)
            return redacted
        if isinstance(payload, list):
            return [self._redact_body(item) for item in payload]
        return payload


class BackoffDelegate(LoggingDelegate):
    """
    Delegate retrying transient failures with exponential backoff.

    Retries:
        - Request errors (connection, timeout, protocol, decoding)
        - Responses whose status is in ``retry_statuses``
          (429 and 5xx gateway/availability errors by default)

    The wait before retry ``n`` (0-based) is ``backoff * 2 ** n`` capped at
    ``max_wait``. For 429 and 503 a numeric Retry-After header takes
    precedence, also capped at ``max_wait``. At most ``max_retries``
    retries are granted per call; the budget resets on ``begin``.

    Usage:
        >>> delegate = BackoffDelegate(max_retries=5)
        >>> hub.projects().test_matrices_get("p", "m").delegate(delegate).doit()
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = DEFAULT_RETRY_BACKOFF,
        max_wait: float = DEFAULT_RETRY_MAX_WAIT,
        retry_statuses: FrozenSet[int] = RETRYABLE_STATUSES,
    ) -> None:
        super().__init__()
        if max_retries < 0:
            raise ValueError("max_retries must not be negative")
        self.max_retries = max_retries
        self.backoff = backoff
        self.max_wait = max_wait
        self.retry_statuses = frozenset(retry_statuses)
        self._retries = 0

    @classmethod
    def from_config(cls, config: Optional[ConfigLoader] = None) -> "BackoffDelegate":
        """Build a delegate from the retry.* configuration keys."""
        if config is None:
            config = ConfigLoader()
        return cls(
            max_retries=int(config.get("retry.max_retries", DEFAULT_MAX_RETRIES)),
            backoff=float(config.get("retry.backoff", DEFAULT_RETRY_BACKOFF)),
            max_wait=float(config.get("retry.max_wait", DEFAULT_RETRY_MAX_WAIT)),
        )

    @property
    def retries(self) -> int:
        return self._retries

    def begin(self, info: MethodInfo) -> None:
        super().begin(info)
        self._retries = 0

    def transport_failure(self, error: httpx.RequestError) -> Retry:
        super().transport_failure(error)
        return self._schedule(self._calculate_backoff(self._retries))

    def http_failure(self, response: httpx.Response, value: Optional[Any]) -> Retry:
        super().http_failure(response, value)
        if response.status_code not in self.retry_statuses:
            return Retry.abort()

        if response.status_code in (429, 503):
            wait_time = self._parse_retry_after(response)
        else:
            wait_time = self._calculate_backoff(self._retries)
        return self._schedule(wait_time)

    def _schedule(self, wait_time: float) -> Retry:
        if self._retries >= self.max_retries:
            logger.error(
                f"{self._label()}: all {self.max_retries} retries exhausted"
            )
            return Retry.abort()

        self._retries += 1
        logger.warning(
            f"{self._label()}: retrying in {wait_time}s "
            f"(retry {self._retries}/{self.max_retries})"
        )
        return Retry.after(wait_time)

    def _parse_retry_after(self, response: httpx.Response) -> float:
        """
        Parse the Retry-After header as seconds.

        Falls back to the exponential backoff when the header is missing
        or not a finite number (HTTP dates are not honoured).
        """
        retry_after = response.headers.get("Retry-After", "")
        try:
            wait_time = float(retry_after)
        except ValueError:
            return self._calculate_backoff(self._retries)
        if not math.isfinite(wait_time):
            return self._calculate_backoff(self._retries)
        return min(max(wait_time, 0.0), self.max_wait)

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Calculate exponential backoff wait time.

        Formula: base * (2 ^ attempt), capped at max_wait
        """
        wait_time = self.backoff * (2 ** attempt)
        return min(wait_time, self.max_wait)


__all__ = [
    "MethodInfo",
    "Retry",
    "Delegate",
    "DefaultDelegate",
    "LoggingDelegate",
    "BackoffDelegate",
    "RETRYABLE_STATUSES",
]
