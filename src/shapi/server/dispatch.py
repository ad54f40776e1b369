from __future__ import annotations

from dataclasses import dataclass
from typing import Any, assert_never

from pydantic import TypeAdapter

from shapi.api.response import ApiResponse, Err, Ok, RequestErr

SUCCESS_STATUS = 200
ERROR_STATUS = 400


class ServerContractViolation(RuntimeError):
    """Server logic produced `Err`, which only exists on the client side."""


@dataclass(frozen=True)
class Reply:
    status_code: int
    body: Any  # JSON-compatible python value


def dispatch(
    response: ApiResponse[Any, Any],
    result_type: Any = Any,
    error_type: Any = Any,
    *,
    error_status: int = ERROR_STATUS,
) -> Reply:
    """Turn a server-side ApiResponse into a status and a JSON-ready body."""
    match response:
        case Ok(value=value):
            return Reply(SUCCESS_STATUS, _jsonable(value, result_type))
        case RequestErr(err=error):
            return Reply(error_status, _jsonable(error, error_type))
        case Err():
            raise ServerContractViolation("Err must not be constructed by server logic")
        case _:
            assert_never(response)


def _jsonable(value: Any, type_: Any) -> Any:
    return TypeAdapter(type_).dump_python(value, mode="json")
