"""
Test doubles shared by the unit tests.

    - CountingAuthenticator: numbered tokens, optional leading failures
    - RecordingDelegate: records every pipeline checkpoint
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import httpx

from testing_api import Delegate, MethodInfo, Retry, TokenError


class CountingAuthenticator:
    """Returns "token-<n>" for the n-th request; fails while ``failures`` > 0."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: List[List[str]] = []

    def token(self, scopes: Sequence[str]) -> str:
        self.calls.append(list(scopes))
        if self.failures > 0:
            self.failures -= 1
            raise TokenError("token endpoint unavailable")
        return f"token-{len(self.calls)}"


class RecordingDelegate(Delegate):
    """
    Delegate recording each checkpoint as (hook, detail) events.

    ``transport_retries`` / ``http_retries`` are the number of failures
    answered with ``Retry.after(delay)`` before aborting.
    """

    def __init__(
        self,
        transport_retries: int = 0,
        http_retries: int = 0,
        delay: float = 0.25,
        substitute_token: Optional[str] = None,
    ) -> None:
        self.transport_retries = transport_retries
        self.http_retries = http_retries
        self.delay = delay
        self.substitute_token = substitute_token
        self.events: List[tuple] = []

    def hooks(self, name: str) -> List[tuple]:
        return [event for event in self.events if event[0] == name]

    def begin(self, info: MethodInfo) -> None:
        self.events.append(("begin", info))

    def pre_request(self) -> None:
        self.events.append(("pre_request", None))

    def token_failure(self, error: Exception) -> Optional[str]:
        self.events.append(("token_failure", error))
        return self.substitute_token

    def transport_failure(self, error: httpx.RequestError) -> Retry:
        self.events.append(("transport_failure", error))
        if self.transport_retries > 0:
            self.transport_retries -= 1
            return Retry.after(self.delay)
        return Retry.abort()

    def http_failure(self, response: httpx.Response, value: Optional[Any]) -> Retry:
        self.events.append(("http_failure", (response.status_code, value)))
        if self.http_retries > 0:
            self.http_retries -= 1
            return Retry.after(self.delay)
        return Retry.abort()

    def decode_failure(self, body: str, error: Exception) -> None:
        self.events.append(("decode_failure", body))

    def finished(self, is_success: bool) -> None:
        self.events.append(("finished", is_success))
