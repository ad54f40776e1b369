from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

import httpx
from pydantic import PydanticUserError, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from shapi.api.resources import query_params, resource_path
from shapi.api.response import ApiResponse, Err, NetworkError, TransportError
from shapi.client.interpret import DecodeError, OutcomeStatus, interpret

logger = logging.getLogger(__name__)

R = TypeVar("R")
P = TypeVar("P")
T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class HttpxOutcome:
    status: OutcomeStatus
    status_code: Optional[int] = None
    text: str = ""

    def decode(self, type_: Any) -> Any:
        try:
            return TypeAdapter(type_).validate_json(self.text)
        except (ValidationError, PydanticUserError) as exc:
            raise DecodeError(str(exc)) from exc


def classify(status_code: int, error_status: int = 400) -> OutcomeStatus:
    if 200 <= status_code < 300:
        return OutcomeStatus.SUCCESS
    if status_code == error_status:
        return OutcomeStatus.CLIENT_ERROR
    return OutcomeStatus.OTHER_ERROR


class HttpxTransport:
    """
    Transport primitives over an `httpx.AsyncClient`.

    Routes come from the node itself (`resource_path` + `query_params`);
    bodies are JSON via pydantic. Every call ends as exactly one
    ApiResponse variant. Task cancellation is not swallowed.
    """

    def __init__(self, client: httpx.AsyncClient, error_status: int = 400) -> None:
        self.client = client
        self.error_status = error_status

    async def get(
        self,
        node: R,
        node_type: type[R],
        result_type: type[T],
        error_type: type[E],
    ) -> ApiResponse[T, E]:
        return await self._request("GET", node, node_type, result_type, error_type)

    async def post(
        self,
        node: R,
        param: P,
        node_type: type[R],
        param_type: type[P],
        result_type: type[T],
        error_type: type[E],
    ) -> ApiResponse[T, E]:
        try:
            body = TypeAdapter(param_type).dump_json(param)
        except (PydanticSerializationError, PydanticUserError) as exc:
            return Err(TransportError(f"cannot encode request body: {exc}"))
        return await self._request("POST", node, node_type, result_type, error_type, body=body)

    async def _request(
        self,
        method: str,
        node: Any,
        node_type: type,
        result_type: Any,
        error_type: Any,
        body: Optional[bytes] = None,
    ) -> ApiResponse[Any, Any]:
        if not isinstance(node, node_type):
            raise TypeError(f"expected a {node_type.__qualname__} node, got {type(node).__qualname__}")

        url = resource_path(node)
        headers = {"Content-Type": "application/json"} if body is not None else None
        logger.debug("%s %s", method, url)

        try:
            response = await self.client.request(
                method, url, params=query_params(node), content=body, headers=headers
            )
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            logger.debug("%s %s failed before a response: %r", method, url, exc)
            return Err(NetworkError())
        except httpx.HTTPError as exc:
            return Err(TransportError(f"{type(exc).__name__}: {exc}"))

        outcome = HttpxOutcome(
            status=classify(response.status_code, self.error_status),
            status_code=response.status_code,
            text=response.text,
        )
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return interpret(outcome, result_type, error_type)
