"""
Default transport module for generated clients.

Generated code imports `get` / `post` from here; install a transport once
at startup:

    install(HttpxTransport(httpx.AsyncClient(base_url="http://127.0.0.1:3000")))
"""

from __future__ import annotations

from typing import Optional, TypeVar

from shapi.api.response import ApiResponse
from shapi.client.httpx_transport import HttpxTransport

R = TypeVar("R")
P = TypeVar("P")
T = TypeVar("T")
E = TypeVar("E")

_installed: Optional[HttpxTransport] = None


def install(transport: Optional[HttpxTransport]) -> None:
    global _installed
    _installed = transport


def installed() -> HttpxTransport:
    if _installed is None:
        raise RuntimeError("no transport installed; call shapi.client.transport.install() first")
    return _installed


async def get(node: R, node_type: type[R], result_type: type[T], error_type: type[E]) -> ApiResponse[T, E]:
    return await installed().get(node, node_type, result_type, error_type)


async def post(
    node: R,
    param: P,
    node_type: type[R],
    param_type: type[P],
    result_type: type[T],
    error_type: type[E],
) -> ApiResponse[T, E]:
    return await installed().post(node, param, node_type, param_type, result_type, error_type)
