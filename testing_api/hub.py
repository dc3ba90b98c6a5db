"""
================================================================================
Testing Hub
================================================================================

Central object giving access to every resource of the Cloud Testing API.

The hub owns the HTTP client and the authenticator shared by all calls,
along with the user agent and the base/root URLs requests are sent to.
Calls may run concurrently against one hub; httpx.Client and the bundled
authenticators tolerate concurrent use.

Usage:
    >>> with Testing.from_config() as hub:
    ...     response, matrix = hub.projects().test_matrices_get("my-project", "matrix-1").doit()
    ...     print(matrix.state)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from . import __version__
from .auth import Authenticator, authenticator_from_config
from .config_loader import ConfigLoader
from .resources import (
    ApplicationDetailServiceMethods,
    ProjectMethods,
    TestEnvironmentCatalogMethods,
)


DEFAULT_USER_AGENT = f"testing-api-python/{__version__}"
DEFAULT_BASE_URL = "https://testing.googleapis.com/"
DEFAULT_ROOT_URL = "https://testing.googleapis.com/"
DEFAULT_TIMEOUT = 30


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


class Testing:
    """
    Hub holding the HTTP client and authenticator for the Testing API.

    Args:
        client: HTTP client used to send every request
        auth: Authenticator providing bearer tokens per scope set
    """

    __test__ = False

    def __init__(self, client: httpx.Client, auth: Authenticator) -> None:
        self.client = client
        self.auth = auth
        self._user_agent = DEFAULT_USER_AGENT
        self._base_url = DEFAULT_BASE_URL
        self._root_url = DEFAULT_ROOT_URL
        self._owns_client = False

    @classmethod
    def from_config(
        cls,
        config: Optional[ConfigLoader] = None,
        auth: Optional[Authenticator] = None,
    ) -> "Testing":
        """
        Build a hub from configuration.

        Reads api.base_url, api.root_url, api.user_agent and api.timeout.
        The authenticator is derived from the auth.* keys unless given.
        The created HTTP client is closed with the hub.
        """
        if config is None:
            config = ConfigLoader()

        client = httpx.Client(
            timeout=httpx.Timeout(float(config.get("api.timeout", DEFAULT_TIMEOUT)))
        )
        hub = cls(client, auth if auth is not None else authenticator_from_config(config))
        hub._owns_client = True
        hub.set_base_url(config.get("api.base_url", DEFAULT_BASE_URL))
        hub.set_root_url(config.get("api.root_url", DEFAULT_ROOT_URL))
        hub.set_user_agent(config.get("api.user_agent", DEFAULT_USER_AGENT))
        logger.debug(f"Testing hub configured for {hub.base_url}")
        return hub

    def __enter__(self) -> "Testing":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if the hub created it."""
        if self._owns_client:
            self.client.close()

    # Resources

    def application_detail_service(self) -> ApplicationDetailServiceMethods:
        return ApplicationDetailServiceMethods(self)

    def projects(self) -> ProjectMethods:
        return ProjectMethods(self)

    def test_environment_catalog(self) -> TestEnvironmentCatalogMethods:
        return TestEnvironmentCatalogMethods(self)

    # Settings

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def root_url(self) -> str:
        return self._root_url

    def set_user_agent(self, agent_name: str) -> str:
        """Set the User-Agent sent with every request. Returns the previous one."""
        previous, self._user_agent = self._user_agent, agent_name
        return previous

    def set_base_url(self, new_base_url: str) -> str:
        """Set the URL request paths are appended to. Returns the previous one."""
        previous, self._base_url = self._base_url, _with_trailing_slash(new_base_url)
        return previous

    def set_root_url(self, new_root_url: str) -> str:
        """Set the service root URL. Returns the previous one."""
        previous, self._root_url = self._root_url, _with_trailing_slash(new_root_url)
        return previous


__all__ = [
    "Testing",
    "DEFAULT_USER_AGENT",
    "DEFAULT_BASE_URL",
    "DEFAULT_ROOT_URL",
]
