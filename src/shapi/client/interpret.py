from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol, assert_never

from shapi.api.response import (
    ApiResponse,
    Err,
    HttpError,
    NetworkError,
    Ok,
    RequestErr,
    TransportError,
)


class OutcomeStatus(Enum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"        # the designated structured-error status
    OTHER_ERROR = "other_error"
    NETWORK_FAILURE = "network_failure"  # no response was received


class DecodeError(ValueError):
    """The body does not have the shape of the requested type."""


class TransportOutcome(Protocol):
    @property
    def status(self) -> OutcomeStatus: ...

    @property
    def status_code(self) -> Optional[int]: ...

    @property
    def text(self) -> str: ...

    def decode(self, type_: Any) -> Any: ...


def interpret(outcome: TransportOutcome, result_type: Any, error_type: Any) -> ApiResponse[Any, Any]:
    """
    Map a transport outcome to exactly one ApiResponse variant.

    A designated-error response whose body does not decode as the error
    type is a TransportError, never a RequestErr.
    """
    status = outcome.status
    match status:
        case OutcomeStatus.SUCCESS:
            try:
                return Ok(outcome.decode(result_type))
            except DecodeError as exc:
                return Err(TransportError(f"cannot decode result: {exc}"))
        case OutcomeStatus.CLIENT_ERROR:
            try:
                return RequestErr(outcome.decode(error_type))
            except DecodeError as exc:
                return Err(
                    TransportError(f"status {outcome.status_code} body is not a valid error value: {exc}")
                )
        case OutcomeStatus.OTHER_ERROR:
            return Err(HttpError(status=outcome.status_code or 0, message=outcome.text))
        case OutcomeStatus.NETWORK_FAILURE:
            return Err(NetworkError())
        case _:
            assert_never(status)
