"""
Capability contracts.

A capability is declared by a class nested in a resource that directly
extends exactly one of these contracts:

    class Get(GET["OrdersApi.ListOrders", list[Order], None]): ...
    class Post(POST["OrdersApi.New", Order, int, NewOrderError]): ...

Type arguments are read positionally by the generator; the slot layout
below is the only place that defines the order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from shapi.api.response import ApiResponse

R = TypeVar("R")
P = TypeVar("P")
T = TypeVar("T")
E = TypeVar("E")

GET_SLOTS = ("node", "result", "error")
POST_SLOTS = ("node", "param", "result", "error")


class GET(ABC, Generic[R, T, E]):
    """Implemented by the server with real logic and by generated clients with a forwarding call."""

    @abstractmethod
    async def get(self, node: R) -> ApiResponse[T, E]:
        raise NotImplementedError


class POST(ABC, Generic[R, P, T, E]):
    """Like `GET`, with a request body of type `P`."""

    @abstractmethod
    async def post(self, node: R, param: P) -> ApiResponse[T, E]:
        raise NotImplementedError


@dataclass(frozen=True)
class ContractSpec:
    verb: str
    slots: tuple[str, ...]

    @property
    def arity(self) -> int:
        return len(self.slots)


def _qualified(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


CONTRACTS: dict[str, ContractSpec] = {
    _qualified(GET): ContractSpec(verb="GET", slots=GET_SLOTS),
    _qualified(POST): ContractSpec(verb="POST", slots=POST_SLOTS),
}
