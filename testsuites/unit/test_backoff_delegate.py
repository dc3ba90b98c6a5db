from datetime import timedelta

import httpx
import pytest
import yaml

from testing_api import BackoffDelegate, BadRequest, ConfigLoader, HttpError, MethodInfo, Retry


def response(status, headers=None):
    return httpx.Response(
        status,
        headers=headers,
        json={"error": {"code": status}},
        request=httpx.Request("GET", "https://testing.googleapis.com/v1/x"),
    )


def test_retry_constructors():
    assert Retry.abort().should_retry is False
    assert Retry.after(2).delay == 2.0
    assert Retry.after(timedelta(milliseconds=1500)).delay == 1.5
    with pytest.raises(ValueError):
        Retry.after(-1)
    with pytest.raises(ValueError):
        Retry.after(float("nan"))


def test_exponential_backoff_is_capped():
    delegate = BackoffDelegate(max_retries=10, backoff=0.5, max_wait=3.0)
    error = httpx.ConnectError("refused")

    delays = [delegate.transport_failure(error).delay for _ in range(5)]

    assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_retry_budget_is_enforced_and_reset_on_begin():
    delegate = BackoffDelegate(max_retries=2, backoff=0.1)
    error = httpx.ReadTimeout("slow")

    assert delegate.transport_failure(error).should_retry
    assert delegate.transport_failure(error).should_retry
    assert delegate.transport_failure(error) == Retry.abort()

    delegate.begin(MethodInfo("testing.projects.testMatrices.get", "GET"))
    assert delegate.retries == 0
    assert delegate.transport_failure(error).should_retry


def test_client_errors_are_not_retried():
    delegate = BackoffDelegate()

    assert delegate.http_failure(response(400), None) == Retry.abort()
    assert delegate.http_failure(response(404), None) == Retry.abort()
    assert delegate.retries == 0


def test_retry_after_header_is_honoured_and_capped():
    delegate = BackoffDelegate(max_retries=5, backoff=0.5, max_wait=5.0)

    assert delegate.http_failure(response(429, {"Retry-After": "2"}), None).delay == 2.0
    assert delegate.http_failure(response(503, {"Retry-After": "120"}), None).delay == 5.0
    # HTTP-date values fall back to exponential backoff (third retry)
    assert delegate.http_failure(
        response(429, {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}), None
    ).delay == 2.0
    assert delegate.http_failure(response(500), None).delay == 4.0


def test_from_config_reads_retry_section(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.dump({"retry": {"max_retries": 7, "backoff": 0.25, "max_wait": 9}}),
        encoding="utf-8",
    )

    delegate = BackoffDelegate.from_config(ConfigLoader(config_path=config_path))

    assert delegate.max_retries == 7
    assert delegate.backoff == 0.25
    assert delegate.max_wait == 9.0


def test_pipeline_recovers_from_transient_errors(make_hub, sleeps):
    outcomes = iter(
        [
            httpx.ConnectError("refused"),
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"testMatrixId": "matrix-1", "state": "RUNNING"}),
        ]
    )

    def handler(request):
        outcome = next(outcomes)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    hub = make_hub(handler)

    _, matrix = (
        hub.projects()
        .test_matrices_get("demo-project", "matrix-1")
        .delegate(BackoffDelegate(max_retries=3, backoff=0.5))
        .doit()
    )

    assert matrix.state == "RUNNING"
    assert len(hub.sent) == 3
    assert sleeps == [0.5, 1.0]


def test_pipeline_gives_up_after_budget(make_hub, sleeps):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    hub = make_hub(handler)

    with pytest.raises(HttpError):
        (
            hub.projects()
            .test_matrices_get("demo-project", "matrix-1")
            .delegate(BackoffDelegate(max_retries=2, backoff=0.5))
            .doit()
        )

    assert len(hub.sent) == 3
    assert sleeps == [0.5, 1.0]


def test_persistent_server_error_surfaces_as_bad_request(make_hub, sleeps):
    hub = make_hub(lambda request: httpx.Response(500, json={"error": {"code": 500}}))

    with pytest.raises(BadRequest) as exc_info:
        (
            hub.projects()
            .test_matrices_get("demo-project", "matrix-1")
            .delegate(BackoffDelegate(max_retries=1, backoff=0.5))
            .doit()
        )

    assert exc_info.value.value == {"error": {"code": 500}}
    assert len(hub.sent) == 2
    assert sleeps == [0.5]


@pytest.mark.parametrize("header", ["nan", "inf", "-inf"])
def test_non_finite_retry_after_falls_back_to_backoff(header):
    delegate = BackoffDelegate(max_retries=3, backoff=0.5, max_wait=5.0)

    retry = delegate.http_failure(response(503, {"Retry-After": header}), None)

    assert retry.delay == 0.5


def test_nan_retry_after_does_not_break_the_call(make_hub, sleeps):
    hub = make_hub(
        lambda request: httpx.Response(503, headers={"Retry-After": "nan"}, json={"error": {"code": 503}})
    )

    with pytest.raises(BadRequest):
        (
            hub.projects()
            .test_matrices_get("demo-project", "matrix-1")
            .delegate(BackoffDelegate(max_retries=1, backoff=0.5))
            .doit()
        )

    assert len(hub.sent) == 2
    assert sleeps == [0.5]
