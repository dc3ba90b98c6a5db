"""
================================================================================
Authenticators
================================================================================

Bearer token providers used by the Testing hub.

    - Authenticator: the protocol the request pipeline depends on
    - StaticTokenAuthenticator: a fixed, externally obtained access token
    - TokenManager: OAuth2 refresh-token grant with expiry-aware caching,
      shared across processes through a file cache guarded by filelock

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
import math
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx
from filelock import FileLock, Timeout
from loguru import logger

from .config_loader import ConfigLoader


DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_CACHE_DIR = Path(".token_cache")
CACHE_FILE_NAME = "cache.json"
LOCK_FILE_NAME = "cache.lock"

# Default token TTL when the token endpoint omits expires_in (seconds)
DEFAULT_TOKEN_TTL = 3600

# Refresh token when less than this many seconds remain
TOKEN_REFRESH_BUFFER = 300  # 5 minutes

# Seconds to wait for another process holding the cache lock
CACHE_LOCK_TIMEOUT = 30


class TokenError(Exception):
    """Raised when a bearer token cannot be obtained."""


class Authenticator(Protocol):
    """Anything able to exchange a set of OAuth2 scopes for a bearer token."""

    def token(self, scopes: Sequence[str]) -> str:
        ...


class StaticTokenAuthenticator:
    """Authenticator returning the same access token for every scope set."""

    def __init__(self, access_token: str) -> None:
        if not access_token:
            raise ValueError("access_token must not be empty")
        self._access_token = access_token

    def token(self, scopes: Sequence[str]) -> str:
        return self._access_token


class TokenManager:
    """
    OAuth2 token manager with automatic refresh and cross-process caching.

    Tokens are obtained with the refresh-token grant and cached per scope
    set, first in memory and then in a JSON file shared between processes.
    A token is refreshed when less than TOKEN_REFRESH_BUFFER seconds of its
    lifetime remain.

    Configuration keys:
        - auth.token_uri (default: https://oauth2.googleapis.com/token)
        - auth.client_id, auth.client_secret, auth.refresh_token
        - auth.cache_dir (default: .token_cache)

    Usage:
        >>> manager = TokenManager(ConfigLoader())
        >>> manager.token([Scope.CLOUD_PLATFORM.value])
        'ya29....'
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        cache_dir: Optional[Path] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize token manager.

        Args:
            config: Configuration loader. Creates one if None.
            cache_dir: Directory for the shared token cache.
                       Defaults to auth.cache_dir.
            http_client: Client used to reach the token endpoint.
                         A short-lived client is created per refresh if None.
        """
        self.config = config if config is not None else ConfigLoader()
        self.token_uri = self.config.get("auth.token_uri", DEFAULT_TOKEN_URI)
        self._http_client = http_client

        cache_dir = Path(cache_dir or self.config.get("auth.cache_dir", DEFAULT_CACHE_DIR))
        self.cache_file = cache_dir / CACHE_FILE_NAME
        self.lock_file = cache_dir / LOCK_FILE_NAME

        self._tokens: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def token(self, scopes: Sequence[str]) -> str:
        """
        Return a valid access token for the given scopes.

        Raises:
            TokenError: If the token endpoint fails or is misconfigured.
        """
        key = self._cache_key(scopes)
        with self._lock:
            entry = self._tokens.get(key)
            if self._is_fresh(entry):
                return entry["token"]

            entry = self._load_cached_token(key)
            if not self._is_fresh(entry):
                entry = self._fetch_token(key, scopes)
            self._tokens[key] = entry
            return entry["token"]

    def _fetch_token(self, key: str, scopes: Sequence[str]) -> Dict[str, Any]:
        """
        Fetch a new token while holding the cross-process file lock.

        Another process may have refreshed the token while we waited for
        the lock, so the file cache is checked again first.
        """
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(str(self.lock_file), timeout=CACHE_LOCK_TIMEOUT):
                cached = self._load_cached_token(key)
                if self._is_fresh(cached):
                    return cached

                token_data = self._request_new_token(scopes)
                entry = {
                    "token": token_data["access_token"],
                    "expires_at": time.time() + self._token_ttl(token_data),
                }
                self._save_token_to_cache(key, entry)
        except (Timeout, OSError) as e:
            raise TokenError(f"Token cache at {self.lock_file.parent} is unavailable: {e}") from e

        logger.info(f"Access token refreshed for scopes: {key}")
        return entry

    def _request_new_token(self, scopes: Sequence[str]) -> Dict[str, Any]:
        """
        Exchange the configured refresh token for an access token.

        Returns:
            The token endpoint payload, containing at least access_token.
        """
        client_id = self.config.get("auth.client_id")
        client_secret = self.config.get("auth.client_secret")
        refresh_token = self.config.get("auth.refresh_token")
        if not client_id or not refresh_token:
            raise TokenError(
                "auth.client_id and auth.refresh_token must be configured "
                "to refresh access tokens"
            )

        form = {
            "grant_type": "refresh_token",
            "client_id": client_id,
            "refresh_token": refresh_token,
            "scope": " ".join(scopes),
        }
        if client_secret:
            form["client_secret"] = client_secret

        try:
            if self._http_client is not None:
                response = self._http_client.post(self.token_uri, data=form)
            else:
                with httpx.Client(timeout=30.0) as client:
                    response = client.post(self.token_uri, data=form)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise TokenError(f"Failed to fetch token: {e}") from e
        except ValueError as e:
            raise TokenError(f"Token endpoint returned invalid JSON: {e}") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise TokenError("Token endpoint response has no access_token")
        return payload

    @staticmethod
    def _token_ttl(token_data: Dict[str, Any]) -> float:
        """Lifetime in seconds from expires_in, DEFAULT_TOKEN_TTL when absent."""
        raw = token_data.get("expires_in")
        if raw is None or raw == "":
            return float(DEFAULT_TOKEN_TTL)
        try:
            ttl = float(raw)
        except (TypeError, ValueError) as e:
            raise TokenError(f"Token endpoint returned invalid expires_in: {raw!r}") from e
        if not math.isfinite(ttl) or ttl <= 0:
            raise TokenError(f"Token endpoint returned invalid expires_in: {raw!r}")
        return ttl

    def _load_cached_token(self, key: str) -> Optional[Dict[str, Any]]:
        """Load the token for a scope set from the file cache."""
        if not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                entry = json.load(f).get(key)
        except (json.JSONDecodeError, AttributeError, OSError):
            return None
        if not isinstance(entry, dict) or not isinstance(entry.get("expires_at"), (int, float)):
            return None
        return entry

    def _save_token_to_cache(self, key: str, entry: Dict[str, Any]) -> None:
        """Merge a token into the file cache."""
        cache: Dict[str, Any] = {}
        try:
            if self.cache_file.exists():
                with open(self.cache_file, "r", encoding="utf-8") as f:
                    cache = json.load(f)
        except (json.JSONDecodeError, OSError):
            cache = {}
        if not isinstance(cache, dict):
            cache = {}

        cache[key] = entry
        try:
            with open(self.cache_file, "w", encoding="utf-8") as f:
                json.dump(cache, f)
        except OSError as e:
            logger.warning(f"Failed to cache token: {e}")

    def invalidate(self) -> None:
        """Drop all cached tokens, forcing the next call to refresh."""
        with self._lock:
            self._tokens.clear()
            if self.cache_file.exists():
                self.cache_file.unlink()

    @staticmethod
    def _cache_key(scopes: Sequence[str]) -> str:
        return " ".join(sorted(set(scopes)))

    @staticmethod
    def _is_fresh(entry: Optional[Dict[str, Any]]) -> bool:
        return bool(
            entry
            and entry.get("token")
            and entry.get("expires_at", 0) > time.time() + TOKEN_REFRESH_BUFFER
        )


def authenticator_from_config(config: Optional[ConfigLoader] = None) -> Authenticator:
    """
    Pick an authenticator from configuration.

    A configured auth.access_token wins; otherwise tokens are refreshed
    with the OAuth2 refresh-token grant.
    """
    if config is None:
        config = ConfigLoader()

    access_token = config.get("auth.access_token")
    if access_token:
        logger.debug("Using static access token from configuration")
        return StaticTokenAuthenticator(access_token)
    return TokenManager(config)


__all__ = [
    "Authenticator",
    "StaticTokenAuthenticator",
    "TokenManager",
    "TokenError",
    "authenticator_from_config",
]
