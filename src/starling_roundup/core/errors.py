"""
Closed error taxonomy for the round-up workflow.

Every failure that leaves the workflow is a DomainError carrying one of the
ErrorKind values below. Transport failures are first classified by HTTP status
range; anything else is folded into INVALID_ACCOUNT_DATA by the retry policy.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    INVALID_ACCOUNT_DATA = "InvalidAccountData"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    DOWNSTREAM_CLIENT_ERROR = "DownstreamClientError"
    DOWNSTREAM_SERVER_ERROR = "DownstreamServerError"


# Status a request handler should answer with for each kind.
HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
    ErrorKind.INVALID_ACCOUNT_DATA: 500,
    ErrorKind.INSUFFICIENT_BALANCE: 422,
    ErrorKind.DOWNSTREAM_CLIENT_ERROR: 502,
    ErrorKind.DOWNSTREAM_SERVER_ERROR: 502,
}


class DomainError(Exception):
    def __init__(self, kind: ErrorKind, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"DomainError(kind={self.kind.value!r}, message={self.message!r})"

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.kind.value, "message": self.message}


def account_not_found(message: str = "Account not found") -> DomainError:
    return DomainError(ErrorKind.ACCOUNT_NOT_FOUND, message)


def invalid_account_data(message: str) -> DomainError:
    return DomainError(ErrorKind.INVALID_ACCOUNT_DATA, message)


def insufficient_balance(message: str = "Insufficient balance to round up") -> DomainError:
    return DomainError(ErrorKind.INSUFFICIENT_BALANCE, message)


def error_for_status(status_code: int, detail: str = "") -> DomainError | None:
    """Map a non-2xx HTTP status to its downstream error kind, or None for anything else."""
    suffix = f". Response: {detail}" if detail else ""
    if 400 <= status_code <= 499:
        return DomainError(
            ErrorKind.DOWNSTREAM_CLIENT_ERROR,
            f"Downstream 4xx error: {status_code}{suffix}",
            status_code=status_code,
        )
    if 500 <= status_code <= 599:
        return DomainError(
            ErrorKind.DOWNSTREAM_SERVER_ERROR,
            f"Downstream 5xx error: {status_code}{suffix}",
            status_code=status_code,
        )
    return None


def classify_failure(exc: BaseException) -> DomainError | None:
    if isinstance(exc, DomainError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return error_for_status(exc.response.status_code, exc.response.reason_phrase)
    return None


def is_connection_failure(exc: BaseException) -> bool:
    """Timeouts, refused or dropped connections and DNS failures."""
    return isinstance(
        exc,
        (
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
            ConnectionError,
            TimeoutError,
        ),
    )


def is_retryable(exc: BaseException) -> bool:
    classified = classify_failure(exc)
    if classified is not None:
        return classified.kind is ErrorKind.DOWNSTREAM_SERVER_ERROR
    return is_connection_failure(exc)
