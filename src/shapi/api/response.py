from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class ApiResponseError(RuntimeError):
    """Raised by `result()` when the response is not `Ok`."""

    def __init__(self, message: str, response: Any) -> None:
        super().__init__(message)
        self.response = response


# ----------------------------
# Other errors (outside the API's own error vocabulary)
# ----------------------------


@dataclass(frozen=True)
class NetworkError:
    """No response was obtained at all."""

    def __repr__(self) -> str:
        return "NetworkError"

    __str__ = __repr__


@dataclass(frozen=True)
class HttpError:
    """Unexpected status outside the API's error convention."""

    status: int
    message: str


@dataclass(frozen=True)
class TransportError:
    """Serialization or transport failure not classified above."""

    message: str


OtherErr = Union[NetworkError, HttpError, TransportError]


# ----------------------------
# ApiResponse variants
# ----------------------------


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome. The payload lives in `value` since `result()` is the accessor."""

    value: T

    def result(self) -> T:
        return self.value

    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class RequestErr(Generic[E]):
    """The remote side rejected the request with a structured error value."""

    err: E

    def result(self) -> NoReturn:
        raise ApiResponseError(f"Request was answered with error: {self.err!r}", self)

    def is_ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    """Client-observed failure. Server code must never construct this."""

    other: OtherErr

    def result(self) -> NoReturn:
        raise ApiResponseError(f"Request failed: {self.other!r}", self)

    def is_ok(self) -> bool:
        return False


ApiResponse = Union[Ok[T], RequestErr[E], Err]
