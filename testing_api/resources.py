"""
================================================================================
Resource Methods and Call Builders
================================================================================

Resource method builders are obtained from the Testing hub and create one
call builder per API method. A call builder collects the method's
parameters, optional extra query parameters, scopes and a delegate, and
performs the request with ``doit()``.

Usage:
    >>> call = hub.projects().test_matrices_create(TestMatrix(), "my-project")
    >>> response, matrix = call.request_id("req-1").delegate(BackoffDelegate()).doit()

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Generic, List, Optional, Tuple, Type, TypeVar, Union

import httpx

from .delegate import Delegate
from .pipeline import CallDescriptor, execute
from .schemas import (
    CancelTestMatrixResponse,
    FileReference,
    GetApkDetailsResponse,
    Schema,
    Scope,
    TestEnvironmentCatalog,
    TestMatrix,
)

if TYPE_CHECKING:
    from .hub import Testing


R = TypeVar("R", bound=Schema)
B = TypeVar("B", bound="CallBuilder")


class CallBuilder(Generic[R]):
    """
    Base class for all call builders.

    Subclasses define the method id, HTTP verb, path template, the names
    of their own parameters and the response schema, and return their
    parameter values from ``_params``.
    """

    _id: str = ""
    _http_method: str = "GET"
    _path: str = ""
    _reserved: Tuple[str, ...] = ()
    _response_type: Type[R]

    def __init__(self, hub: "Testing") -> None:
        self._hub = hub
        self._delegate: Optional[Delegate] = None
        self._additional_params: Dict[str, str] = {}
        self._scopes: Dict[str, None] = {}

    def delegate(self: B, new_value: Delegate) -> B:
        """
        Set the delegate consulted for progress and failures of this call.

        It should be used to observe the call and to implement a certain
        level of resilience, e.g. BackoffDelegate.
        """
        self._delegate = new_value
        return self

    def param(self: B, name: str, value: str) -> B:
        """
        Set an additional query parameter.

        Parameters the call defines itself (and ``alt``) must not be set
        here; doing so makes the call fail with FieldClash.

        Common additional parameters: ``$.xgafv``, ``access_token``,
        ``callback``, ``fields``, ``key``, ``oauth_token``, ``prettyPrint``,
        ``quotaUser``, ``uploadType``, ``upload_protocol``.
        """
        self._additional_params[str(name)] = str(value)
        return self

    def add_scope(self: B, scope: Union[Scope, str, None]) -> B:
        """
        Add an OAuth2 scope to request the token for.

        Without any scope the default scope (Scope.CLOUD_PLATFORM) is used.
        None is ignored.
        """
        if scope is None:
            return self
        value = scope.value if isinstance(scope, Scope) else str(scope)
        self._scopes[value] = None
        return self

    def _params(self) -> List[Tuple[str, str]]:
        return []

    def _request_value(self) -> Optional[Schema]:
        return None

    def descriptor(self) -> CallDescriptor:
        """Freeze the builder's current state into a call descriptor."""
        return CallDescriptor(
            id=self._id,
            http_method=self._http_method,
            path=self._path,
            params=tuple(self._params()),
            reserved=self._reserved,
            additional_params=tuple(self._additional_params.items()),
            scopes=tuple(self._scopes),
            request=self._request_value(),
        )

    def doit(self) -> Tuple[httpx.Response, R]:
        """Perform the operation built so far."""
        return execute(self._hub, self.descriptor(), self._response_type, self._delegate)


# =============================================================================
# applicationDetailService
# =============================================================================

class ApplicationDetailServiceGetApkDetailsCall(CallBuilder[GetApkDetailsResponse]):
    """Gets the details of an Android application APK."""

    _id = "testing.applicationDetailService.getApkDetails"
    _http_method = "POST"
    _path = "v1/applicationDetailService/getApkDetails"
    _response_type = GetApkDetailsResponse

    def __init__(self, hub: "Testing", request: FileReference) -> None:
        super().__init__(hub)
        self._request = request

    def request(self, new_value: FileReference) -> "ApplicationDetailServiceGetApkDetailsCall":
        self._request = new_value
        return self

    def _request_value(self) -> Optional[Schema]:
        return self._request


class ApplicationDetailServiceMethods:
    """Methods of the applicationDetailService resource."""

    def __init__(self, hub: "Testing") -> None:
        self._hub = hub

    def get_apk_details(self, request: FileReference) -> ApplicationDetailServiceGetApkDetailsCall:
        return ApplicationDetailServiceGetApkDetailsCall(self._hub, request)


# =============================================================================
# projects.testMatrices
# =============================================================================

class ProjectTestMatricesCancelCall(CallBuilder[CancelTestMatrixResponse]):
    """
    Cancels unfinished test executions in a test matrix.

    This call returns immediately; cancellation proceeds asynchronously on
    the service side. If the matrix is already final, this has no effect.
    """

    _id = "testing.projects.testMatrices.cancel"
    _http_method = "POST"
    _path = "v1/projects/{projectId}/testMatrices/{testMatrixId}:cancel"
    _reserved = ("projectId", "testMatrixId")
    _response_type = CancelTestMatrixResponse

    def __init__(self, hub: "Testing", project_id: str, test_matrix_id: str) -> None:
        super().__init__(hub)
        self._project_id = project_id
        self._test_matrix_id = test_matrix_id

    def project_id(self, new_value: str) -> "ProjectTestMatricesCancelCall":
        """Cloud project that owns the test."""
        self._project_id = new_value
        return self

    def test_matrix_id(self, new_value: str) -> "ProjectTestMatricesCancelCall":
        """Test matrix that will be canceled."""
        self._test_matrix_id = new_value
        return self

    def _params(self) -> List[Tuple[str, str]]:
        return [("projectId", self._project_id), ("testMatrixId", self._test_matrix_id)]


class ProjectTestMatricesCreateCall(CallBuilder[TestMatrix]):
    """Creates and runs a matrix of tests according to the given specifications."""

    _id = "testing.projects.testMatrices.create"
    _http_method = "POST"
    _path = "v1/projects/{projectId}/testMatrices"
    _reserved = ("projectId", "requestId")
    _response_type = TestMatrix

    def __init__(self, hub: "Testing", request: TestMatrix, project_id: str) -> None:
        super().__init__(hub)
        self._request = request
        self._project_id = project_id
        self._request_id: Optional[str] = None

    def request(self, new_value: TestMatrix) -> "ProjectTestMatricesCreateCall":
        self._request = new_value
        return self

    def project_id(self, new_value: str) -> "ProjectTestMatricesCreateCall":
        """The GCE project under which this job will run."""
        self._project_id = new_value
        return self

    def request_id(self, new_value: str) -> "ProjectTestMatricesCreateCall":
        """
        A string id used to detect duplicated requests.

        Ids are automatically scoped to a project, so users should ensure
        the id is unique per-project.
        """
        self._request_id = new_value
        return self

    def _params(self) -> List[Tuple[str, str]]:
        params = [("projectId", self._project_id)]
        if self._request_id is not None:
            params.append(("requestId", self._request_id))
        return params

    def _request_value(self) -> Optional[Schema]:
        return self._request


class ProjectTestMatricesGetCall(CallBuilder[TestMatrix]):
    """Checks the status of a test matrix and the executions once they are created."""

    _id = "testing.projects.testMatrices.get"
    _http_method = "GET"
    _path = "v1/projects/{projectId}/testMatrices/{testMatrixId}"
    _reserved = ("projectId", "testMatrixId")
    _response_type = TestMatrix

    def __init__(self, hub: "Testing", project_id: str, test_matrix_id: str) -> None:
        super().__init__(hub)
        self._project_id = project_id
        self._test_matrix_id = test_matrix_id

    def project_id(self, new_value: str) -> "ProjectTestMatricesGetCall":
        """Cloud project that owns the test matrix."""
        self._project_id = new_value
        return self

    def test_matrix_id(self, new_value: str) -> "ProjectTestMatricesGetCall":
        """Unique test matrix id which was assigned by the service."""
        self._test_matrix_id = new_value
        return self

    def _params(self) -> List[Tuple[str, str]]:
        return [("projectId", self._project_id), ("testMatrixId", self._test_matrix_id)]


class ProjectMethods:
    """Methods of the projects resource."""

    def __init__(self, hub: "Testing") -> None:
        self._hub = hub

    def test_matrices_cancel(self, project_id: str, test_matrix_id: str) -> ProjectTestMatricesCancelCall:
        return ProjectTestMatricesCancelCall(self._hub, project_id, test_matrix_id)

    def test_matrices_create(self, request: TestMatrix, project_id: str) -> ProjectTestMatricesCreateCall:
        return ProjectTestMatricesCreateCall(self._hub, request, project_id)

    def test_matrices_get(self, project_id: str, test_matrix_id: str) -> ProjectTestMatricesGetCall:
        return ProjectTestMatricesGetCall(self._hub, project_id, test_matrix_id)


# =============================================================================
# testEnvironmentCatalog
# =============================================================================

class TestEnvironmentCatalogGetCall(CallBuilder[TestEnvironmentCatalog]):
    """Gets the catalog of supported test environments."""

    __test__ = False

    _id = "testing.testEnvironmentCatalog.get"
    _http_method = "GET"
    _path = "v1/testEnvironmentCatalog/{environmentType}"
    _reserved = ("environmentType", "projectId")
    _response_type = TestEnvironmentCatalog

    def __init__(self, hub: "Testing", environment_type: str) -> None:
        super().__init__(hub)
        self._environment_type = environment_type
        self._project_id: Optional[str] = None

    def environment_type(self, new_value: str) -> "TestEnvironmentCatalogGetCall":
        """The type of environment that should be listed, e.g. ANDROID."""
        self._environment_type = new_value
        return self

    def project_id(self, new_value: str) -> "TestEnvironmentCatalogGetCall":
        """For authorization, the cloud project requesting the catalog."""
        self._project_id = new_value
        return self

    def _params(self) -> List[Tuple[str, str]]:
        params = [("environmentType", self._environment_type)]
        if self._project_id is not None:
            params.append(("projectId", self._project_id))
        return params


class TestEnvironmentCatalogMethods:
    """Methods of the testEnvironmentCatalog resource."""

    __test__ = False

    def __init__(self, hub: "Testing") -> None:
        self._hub = hub

    def get(self, environment_type: str) -> TestEnvironmentCatalogGetCall:
        return TestEnvironmentCatalogGetCall(self._hub, environment_type)


__all__ = [
    "CallBuilder",
    "ApplicationDetailServiceMethods",
    "ApplicationDetailServiceGetApkDetailsCall",
    "ProjectMethods",
    "ProjectTestMatricesCancelCall",
    "ProjectTestMatricesCreateCall",
    "ProjectTestMatricesGetCall",
    "TestEnvironmentCatalogMethods",
    "TestEnvironmentCatalogGetCall",
]
