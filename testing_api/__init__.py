"""
================================================================================
Cloud Testing API Client
================================================================================

Python client for the Cloud Testing API (mobile application testing).

Modules:
    - hub: Testing hub holding the HTTP client and authenticator
    - resources: Resource method builders and per-method call builders
    - pipeline: Request execution (auth, retry delegation, decoding)
    - delegate: Call observers (default, logging, backoff retry)
    - auth: Bearer token providers (static, OAuth2 refresh with caching)
    - schemas: Request/response values and OAuth2 scopes
    - errors: Error taxonomy raised by calls
    - config_loader: YAML configuration management
    - log_setup: Loguru sink configuration

Example:
    from testing_api import BackoffDelegate, Testing

    with Testing.from_config() as hub:
        response, catalog = (
            hub.test_environment_catalog()
            .get("ANDROID")
            .delegate(BackoffDelegate())
            .doit()
        )

Author: Automation Team
License: MIT
================================================================================
"""

__version__ = "1.0.0"

from .auth import (
    Authenticator,
    StaticTokenAuthenticator,
    TokenError,
    TokenManager,
    authenticator_from_config,
)
from .config_loader import ConfigLoader, ConfigurationError
from .delegate import (
    BackoffDelegate,
    DefaultDelegate,
    Delegate,
    LoggingDelegate,
    MethodInfo,
    Retry,
)
from .errors import (
    BadRequest,
    Failure,
    FieldClash,
    HttpError,
    JsonDecodeError,
    MissingToken,
    TestingApiError,
)
from .hub import Testing
from .log_setup import init_logger
from .pipeline import CallDescriptor, execute
from .schemas import (
    CancelTestMatrixResponse,
    FileReference,
    GetApkDetailsResponse,
    Scope,
    TestEnvironmentCatalog,
    TestMatrix,
)

__all__ = [
    "Authenticator",
    "StaticTokenAuthenticator",
    "TokenError",
    "TokenManager",
    "authenticator_from_config",
    "ConfigLoader",
    "ConfigurationError",
    "BackoffDelegate",
    "DefaultDelegate",
    "Delegate",
    "LoggingDelegate",
    "MethodInfo",
    "Retry",
    "BadRequest",
    "Failure",
    "FieldClash",
    "HttpError",
    "JsonDecodeError",
    "MissingToken",
    "TestingApiError",
    "Testing",
    "init_logger",
    "CallDescriptor",
    "execute",
    "CancelTestMatrixResponse",
    "FileReference",
    "GetApkDetailsResponse",
    "Scope",
    "TestEnvironmentCatalog",
    "TestMatrix",
]
