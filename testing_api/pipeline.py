"""
================================================================================
Request Execution Pipeline
================================================================================

The single routine every API call goes through:

    1. Validate additional parameters against reserved names
    2. Build the request URL (path substitution, query string, alt=json)
    3. Serialize the JSON body once
    4. Loop: fetch token -> send -> classify -> retry or return

Each attempt re-fetches the bearer token so an expired token is refreshed
before a retried attempt. Whether an attempt is retried is decided by the
call's delegate only; the loop has no cap of its own.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Type, TypeVar

import httpx
from loguru import logger

from .auth import TokenError
from .delegate import DefaultDelegate, Delegate, MethodInfo
from .errors import BadRequest, Failure, FieldClash, HttpError, JsonDecodeError, MissingToken
from .schemas import Schema, Scope

if TYPE_CHECKING:
    from .hub import Testing


T = TypeVar("T", bound=Schema)

JSON_MIME_TYPE = "application/json"

# Parameters every call sets itself
ALWAYS_RESERVED = ("alt",)


@dataclass(frozen=True)
class CallDescriptor:
    """
    Everything needed to perform one API invocation.

    Attributes:
        id: Method identifier, e.g. "testing.projects.testMatrices.get"
        http_method: HTTP verb
        path: URL path relative to the hub base URL; may contain
              "{name}" placeholders filled from ``params``
        params: The call's own parameters, in order. Parameters consumed
                by a path placeholder are not sent in the query string.
        reserved: Names of all parameters the call defines itself,
                  whether or not they are set
        additional_params: Caller-supplied extra query parameters
        scopes: OAuth2 scopes; the default scope is used when empty
        request: Request value sent as the JSON body, if any
    """

    id: str
    http_method: str
    path: str
    params: Tuple[Tuple[str, str], ...] = ()
    reserved: Tuple[str, ...] = ()
    additional_params: Tuple[Tuple[str, str], ...] = ()
    scopes: Tuple[str, ...] = ()
    request: Optional[Schema] = None

    @property
    def method_info(self) -> MethodInfo:
        return MethodInfo(id=self.id, http_method=self.http_method)

    def clashing_field(self) -> Optional[str]:
        """Return the first reserved name also given as an additional parameter."""
        additional = {name for name, _ in self.additional_params}
        for field in ALWAYS_RESERVED + self.reserved:
            if field in additional:
                return field
        return None

    def effective_scopes(self) -> List[str]:
        if self.scopes:
            return sorted(set(self.scopes))
        return [Scope.default().value]


def build_url(base_url: str, descriptor: CallDescriptor) -> httpx.URL:
    """
    Assemble the full request URL.

    Path placeholders are replaced literally by their parameter value. The
    query string holds the remaining own parameters, then the additional
    parameters, then alt=json.
    """
    url = base_url + descriptor.path
    query: List[Tuple[str, str]] = []
    for name, value in descriptor.params:
        placeholder = "{" + name + "}"
        if placeholder in url:
            url = url.replace(placeholder, value)
        else:
            query.append((name, value))

    query.extend(descriptor.additional_params)
    query.append(("alt", "json"))
    return httpx.URL(url, params=query)


def serialize_request(request: Optional[Schema]) -> Optional[bytes]:
    """Encode a request value as compact JSON with null members removed."""
    if request is None:
        return None
    return request.to_json()


def _parse_json(text: str) -> Tuple[bool, Any]:
    """Return (parsed, value); a JSON null body parses to (True, None)."""
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def execute(
    hub: "Testing",
    descriptor: CallDescriptor,
    response_type: Type[T],
    delegate: Optional[Delegate] = None,
) -> Tuple[httpx.Response, T]:
    """
    Perform an API call and decode its response.

    Args:
        hub: Provides the HTTP client, authenticator, user agent and base URL
        descriptor: The call to perform
        response_type: Schema the success body is decoded into
        delegate: Observer consulted at each checkpoint. A fresh
                  DefaultDelegate is used if None.

    Returns:
        Tuple of (response, decoded value)

    Raises:
        FieldClash: An additional parameter uses a reserved name
        MissingToken: No token and no substitute from the delegate
        HttpError: Request failure the delegate did not retry
        BadRequest: Non-success status with a JSON body
        Failure: Non-success status without a JSON body
        JsonDecodeError: Success body does not match response_type
    """
    dlg = delegate if delegate is not None else DefaultDelegate()
    dlg.begin(descriptor.method_info)

    clash = descriptor.clashing_field()
    if clash is not None:
        dlg.finished(False)
        raise FieldClash(clash)

    url = build_url(hub.base_url, descriptor)
    scopes = descriptor.effective_scopes()
    body = serialize_request(descriptor.request)

    while True:
        try:
            token = hub.auth.token(scopes)
        except TokenError as e:
            substitute = dlg.token_failure(e)
            if substitute is None:
                dlg.finished(False)
                raise MissingToken(e) from e
            token = substitute

        dlg.pre_request()
        headers: Dict[str, str] = {
            "User-Agent": hub.user_agent,
            "Authorization": f"Bearer {token}",
        }
        if body is not None:
            headers["Content-Type"] = JSON_MIME_TYPE
            headers["Content-Length"] = str(len(body))

        request = hub.client.build_request(
            descriptor.http_method,
            url,
            headers=headers,
            content=body,
        )
        logger.debug(f"{descriptor.http_method} {url.host}{url.path} ({descriptor.id})")

        try:
            response = hub.client.send(request)
        except httpx.RequestError as e:
            retry = dlg.transport_failure(e)
            if retry.should_retry:
                logger.debug(f"{descriptor.id}: transport error, retrying in {retry.delay}s")
                time.sleep(retry.delay)
                continue
            dlg.finished(False)
            raise HttpError(e) from e

        text = response.text

        if not response.is_success:
            parsed, value = _parse_json(text)
            retry = dlg.http_failure(response, value)
            if retry.should_retry:
                logger.debug(
                    f"{descriptor.id}: HTTP {response.status_code}, retrying in {retry.delay}s"
                )
                time.sleep(retry.delay)
                continue

            dlg.finished(False)
            if parsed:
                raise BadRequest(value)
            raise Failure(response)

        try:
            decoded = response_type.from_json(text)
        except (ValueError, TypeError) as e:
            dlg.decode_failure(text, e)
            dlg.finished(False)
            raise JsonDecodeError(text, e) from e

        dlg.finished(True)
        return response, decoded


__all__ = [
    "CallDescriptor",
    "build_url",
    "serialize_request",
    "execute",
]
