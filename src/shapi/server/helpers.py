"""Shortcuts for building responses in server implementations."""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from shapi.api.response import Ok, RequestErr

T = TypeVar("T")
E = TypeVar("E")


def ok(value: T = None) -> Ok[T]:  # type: ignore[assignment]
    return Ok(value)


def err(error: E) -> RequestErr[E]:
    return RequestErr(error)


def ok_or_err(value: Optional[T], make_error: Callable[[], E]) -> Ok[T] | RequestErr[E]:
    """`Ok(value)`, or `RequestErr(make_error())` when value is None."""
    if value is None:
        return RequestErr(make_error())
    return Ok(value)
