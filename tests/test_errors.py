import httpx
import pytest

from starling_roundup.core.errors import (
    DomainError,
    ErrorKind,
    HTTP_STATUS_BY_KIND,
    classify_failure,
    error_for_status,
    is_retryable,
)


@pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 429, 499])
def test_4xx_is_client_error(status):
    err = error_for_status(status)
    assert err.kind is ErrorKind.DOWNSTREAM_CLIENT_ERROR
    assert err.status_code == status
    assert not is_retryable(err)


@pytest.mark.parametrize("status", [500, 502, 503, 504, 599])
def test_5xx_is_server_error(status):
    err = error_for_status(status)
    assert err.kind is ErrorKind.DOWNSTREAM_SERVER_ERROR
    assert is_retryable(err)


@pytest.mark.parametrize("status", [200, 201, 204, 302, 600])
def test_other_statuses_are_not_errors(status):
    assert error_for_status(status) is None


def test_detail_is_kept_in_message():
    err = error_for_status(503, "maintenance")
    assert err.message == "Downstream 5xx error: 503. Response: maintenance"


def test_classify_httpx_status_error():
    request = httpx.Request("GET", "https://example.test")
    response = httpx.Response(502, request=request)
    exc = httpx.HTTPStatusError("bad gateway", request=request, response=response)

    err = classify_failure(exc)
    assert err.kind is ErrorKind.DOWNSTREAM_SERVER_ERROR
    assert err.status_code == 502


def test_unknown_exceptions_are_unclassified():
    assert classify_failure(ValueError("x")) is None
    assert not is_retryable(ValueError("x"))


def test_connection_level_failures_are_retryable():
    request = httpx.Request("GET", "https://example.test")
    assert is_retryable(httpx.ConnectError("dns failure", request=request))
    assert is_retryable(httpx.PoolTimeout("pool", request=request))
    assert is_retryable(TimeoutError())
    assert is_retryable(httpx.RemoteProtocolError("Server disconnected", request=request))


def test_every_kind_has_a_transport_status():
    assert set(HTTP_STATUS_BY_KIND) == set(ErrorKind)
    assert DomainError(ErrorKind.ACCOUNT_NOT_FOUND, "x").http_status == 404
    assert DomainError(ErrorKind.INSUFFICIENT_BALANCE, "x").http_status == 422
    assert DomainError(ErrorKind.INVALID_ACCOUNT_DATA, "x").http_status == 500
    assert DomainError(ErrorKind.DOWNSTREAM_CLIENT_ERROR, "x").http_status == 502


def test_payload_and_kind_from_string():
    err = DomainError("InsufficientBalance", "Insufficient balance to round up")
    assert err.kind is ErrorKind.INSUFFICIENT_BALANCE
    assert err.to_payload() == {
        "code": "InsufficientBalance",
        "message": "Insufficient balance to round up",
    }
    assert str(err) == "Insufficient balance to round up"
