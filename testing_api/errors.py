"""
================================================================================
Error Taxonomy
================================================================================

Every failure of an API call surfaces as one of the exceptions below.

    - FieldClash: an additional parameter collides with a reserved one
    - MissingToken: no bearer token could be obtained
    - HttpError: request-level failure (connection, timeout, protocol, decoding)
    - BadRequest: non-success status with a JSON error body
    - Failure: non-success status without a parseable body
    - JsonDecodeError: success status but the body did not match the schema

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any

import httpx


class TestingApiError(Exception):
    """Base exception for all API call errors."""

    __test__ = False


class FieldClash(TestingApiError):
    """Raised when an additional parameter shadows a reserved parameter."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(
            f"The custom parameter '{field}' is already provided natively by the call builder"
        )


class MissingToken(TestingApiError):
    """Raised when the authenticator failed and no substitute token was given."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(f"Token retrieval failed: {error}")


class HttpError(TestingApiError):
    """Raised when sending a request failed and the delegate did not retry."""

    def __init__(self, error: httpx.RequestError) -> None:
        self.error = error
        super().__init__(f"HTTP transport error: {error}")


class BadRequest(TestingApiError):
    """Raised for a non-success status whose body is valid JSON."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Bad Request: {value}")


class Failure(TestingApiError):
    """Raised for a non-success status whose body could not be parsed."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"Http status indicates failure: {response.status_code}")


class JsonDecodeError(TestingApiError):
    """Raised when a success response does not decode into the expected schema."""

    def __init__(self, body: str, error: Exception) -> None:
        self.body = body
        self.error = error
        super().__init__(f"JSON decoding failed: {error}")


__all__ = [
    "TestingApiError",
    "FieldClash",
    "MissingToken",
    "HttpError",
    "BadRequest",
    "Failure",
    "JsonDecodeError",
]
