"""
================================================================================
Request and Response Schemas
================================================================================

Data models for the values exchanged with the Cloud Testing API.

Only the top-level request/response values are modelled as dataclasses.
Nested parts (device catalogs, test specifications, result storage, ...)
are kept as the plain JSON values the service returns.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar


S = TypeVar("S", bound="Schema")


class Scope(str, Enum):
    """OAuth2 authorization scopes understood by the Testing API."""

    # See, edit, configure, and delete your Google Cloud data
    CLOUD_PLATFORM = "https://www.googleapis.com/auth/cloud-platform"
    # View your data across Google Cloud services
    CLOUD_PLATFORM_READ_ONLY = "https://www.googleapis.com/auth/cloud-platform.read-only"

    @classmethod
    def default(cls) -> "Scope":
        return cls.CLOUD_PLATFORM


def remove_json_null_values(value: Any) -> Any:
    """
    Return a copy of a JSON value with all nulls removed.

    Null members are dropped from objects and null items from arrays,
    recursively. Scalars are returned unchanged.
    """
    if isinstance(value, dict):
        return {
            key: remove_json_null_values(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, list):
        return [remove_json_null_values(item) for item in value if item is not None]
    return value


def _wire(name: str, kind: Optional[type] = None) -> Any:
    """Declare an optional field with its JSON member name and scalar kind."""
    return field(default=None, metadata={"json": name, "kind": kind})


def _matches_kind(value: Any, kind: type) -> bool:
    # bool is an int subclass, but JSON booleans are not numbers
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, kind)


@dataclass
class Schema:
    """
    Base class for wire schemas.

    Subclasses declare their members with ``_wire("camelName", kind)``.
    Serialization skips unset members; parsing ignores unknown members
    and rejects members whose JSON type does not match ``kind``.
    """

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[f.metadata.get("json", f.name)] = remove_json_null_values(value)
        return result

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_dict(cls: Type[S], value: Any) -> S:
        """
        Build an instance from a decoded JSON value.

        Raises:
            TypeError: If ``value`` is not an object or a member has the wrong type.
        """
        if not isinstance(value, dict):
            raise TypeError(
                f"expected a JSON object for {cls.__name__}, got {type(value).__name__}"
            )

        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = f.metadata.get("json", f.name)
            item = value.get(key)
            if item is None:
                continue
            kind = f.metadata.get("kind")
            if kind is not None and not _matches_kind(item, kind):
                raise TypeError(
                    f"{cls.__name__}.{key}: expected {kind.__name__}, "
                    f"got {type(item).__name__}"
                )
            kwargs[f.name] = item
        return cls(**kwargs)

    @classmethod
    def from_json(cls: Type[S], text: str) -> S:
        """Parse a JSON document. Raises ValueError or TypeError on mismatch."""
        return cls.from_dict(json.loads(text))


@dataclass
class FileReference(Schema):
    """A reference to a file, used for user inputs."""

    # gs:// path, percent-encoded
    gcs_path: Optional[str] = _wire("gcsPath", str)


@dataclass
class GetApkDetailsResponse(Schema):
    """Response containing the details of the specified Android application APK."""

    apk_detail: Optional[Dict[str, Any]] = _wire("apkDetail", dict)


@dataclass
class CancelTestMatrixResponse(Schema):
    """Response containing the current state of the specified test matrix."""

    test_state: Optional[str] = _wire("testState", str)


@dataclass
class TestMatrix(Schema):
    """
    All details about a test: environment configuration, test specification,
    test executions and overall state and outcome.
    """

    __test__ = False

    client_info: Optional[Dict[str, Any]] = _wire("clientInfo", dict)
    environment_matrix: Optional[Dict[str, Any]] = _wire("environmentMatrix", dict)
    fail_fast: Optional[bool] = _wire("failFast", bool)
    flaky_test_attempts: Optional[int] = _wire("flakyTestAttempts", int)
    invalid_matrix_details: Optional[str] = _wire("invalidMatrixDetails", str)
    outcome_summary: Optional[str] = _wire("outcomeSummary", str)
    project_id: Optional[str] = _wire("projectId", str)
    result_storage: Optional[Dict[str, Any]] = _wire("resultStorage", dict)
    state: Optional[str] = _wire("state", str)
    test_executions: Optional[List[Dict[str, Any]]] = _wire("testExecutions", list)
    test_matrix_id: Optional[str] = _wire("testMatrixId", str)
    test_specification: Optional[Dict[str, Any]] = _wire("testSpecification", dict)
    timestamp: Optional[str] = _wire("timestamp", str)


@dataclass
class TestEnvironmentCatalog(Schema):
    """A description of a test environment."""

    __test__ = False

    android_device_catalog: Optional[Dict[str, Any]] = _wire("androidDeviceCatalog", dict)
    device_ip_block_catalog: Optional[Dict[str, Any]] = _wire("deviceIpBlockCatalog", dict)
    ios_device_catalog: Optional[Dict[str, Any]] = _wire("iosDeviceCatalog", dict)
    network_configuration_catalog: Optional[Dict[str, Any]] = _wire(
        "networkConfigurationCatalog", dict
    )
    software_catalog: Optional[Dict[str, Any]] = _wire("softwareCatalog", dict)


__all__ = [
    "Scope",
    "Schema",
    "FileReference",
    "GetApkDetailsResponse",
    "CancelTestMatrixResponse",
    "TestMatrix",
    "TestEnvironmentCatalog",
    "remove_json_null_values",
]
