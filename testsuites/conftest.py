"""
================================================================================
Test Suite Pytest Configuration
================================================================================

Shared fixtures for the client test suite.

Fixtures:
    - make_hub: Testing hub factory backed by httpx.MockTransport
    - auth: Authenticator double counting token requests
    - recording_delegate: Delegate recording every checkpoint
    - sleeps: Captures retry sleeps instead of sleeping

================================================================================
"""

from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from testing_api import ConfigLoader, Testing
from testsuites.doubles import CountingAuthenticator, RecordingDelegate


def pytest_configure(config):
    """Register project-wide custom markers."""
    config.addinivalue_line("markers", "pipeline: Request execution pipeline tests")
    config.addinivalue_line("markers", "builders: Hub and call builder tests")
    config.addinivalue_line("markers", "auth: Tests related to authentication")


@pytest.fixture(autouse=True)
def _fresh_config_loader():
    """Make sure no test sees a configuration singleton left by another."""
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


@pytest.fixture
def auth() -> CountingAuthenticator:
    return CountingAuthenticator()


@pytest.fixture
def recording_delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    """Record retry delays without sleeping."""
    recorded: List[float] = []
    monkeypatch.setattr("testing_api.pipeline.time.sleep", recorded.append)
    return recorded


@pytest.fixture
def make_hub(auth: CountingAuthenticator):
    """
    Build a hub whose transport is the given handler.

    The handler receives each httpx.Request; every request it sees is also
    appended to ``hub.sent``.
    """
    clients: List[httpx.Client] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], authenticator=None) -> Testing:
        sent: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(recording_handler))
        clients.append(client)
        hub = Testing(client, authenticator if authenticator is not None else auth)
        hub.sent = sent
        return hub

    yield factory

    for client in clients:
        client.close()
