"""
Repository-level pytest configuration.

Why this exists:
  - Keep test runs independent of any local config/config.yaml credentials
  - Expose Loguru records to tests, since Loguru bypasses pytest's caplog
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, List

import pytest
from loguru import logger


# Environment overrides that would leak real credentials into tests
_CREDENTIAL_ENV_VARS = (
    "AUTH_ACCESS_TOKEN",
    "AUTH_CLIENT_ID",
    "AUTH_CLIENT_SECRET",
    "AUTH_REFRESH_TOKEN",
    "API_BASE_URL",
)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch) -> None:
    """Drop credential overrides inherited from the developer's shell or CI."""
    for name in _CREDENTIAL_ENV_VARS:
        if name in os.environ:
            monkeypatch.delenv(name)


@pytest.fixture
def loguru_records() -> Generator[List[dict], None, None]:
    """Collect Loguru records emitted during a test."""
    records: List[dict] = []
    handler_id = logger.add(
        lambda message: records.append(message.record),
        level="DEBUG",
        format="{message}",
    )
    yield records
    logger.remove(handler_id)
