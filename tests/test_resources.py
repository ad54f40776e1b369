from __future__ import annotations

from typing import Optional

import pytest

from descriptors.orders_api import OrdersApi
from shapi.api.contracts import GET
from shapi.api.resources import (
    capability,
    iter_capabilities,
    iter_children,
    parent,
    parent_of,
    query_params,
    resource,
    resource_path,
)


def test_resource_path_is_rebuilt_from_parents():
    node = OrdersApi.Id.Update.Customer(p=OrdersApi.Id.Update(p=OrdersApi.Id(p=OrdersApi(), id=7)))
    assert resource_path(node) == "/orders/7/update/customer"


def test_root_path():
    assert resource_path(OrdersApi()) == "/orders"


def test_non_path_fields_become_query_params():
    node = OrdersApi.ListOrders(p=OrdersApi(), customer_id=42, category_id=None)
    assert resource_path(node) == "/orders/list"
    assert query_params(node) == [("customer_id", "42")]


def test_placeholder_fields_are_not_query_params():
    node = OrdersApi.Id.GetAmount(p=OrdersApi.Id(p=OrdersApi(), id=3))
    assert query_params(node) == []


def test_missing_parent_is_a_construction_error():
    with pytest.raises(TypeError):
        OrdersApi.ListOrders(customer_id=1)  # type: ignore[call-arg]


def test_missing_required_field_is_a_construction_error():
    with pytest.raises(TypeError):
        OrdersApi.Id(p=OrdersApi())  # type: ignore[call-arg]


def test_wrong_parent_type_is_rejected():
    with pytest.raises(TypeError, match="must be a"):
        OrdersApi.Id.GetAmount(p=OrdersApi())  # type: ignore[arg-type]


def test_nodes_are_frozen():
    node = OrdersApi.Id(p=OrdersApi(), id=1)
    with pytest.raises(AttributeError):
        node.id = 2  # type: ignore[misc]


def test_structural_enumeration_in_declaration_order():
    assert [c.__name__ for c in iter_children(OrdersApi)] == ["ListOrders", "New", "Id"]
    assert [c.__name__ for c in iter_children(OrdersApi.Id)] == ["GetAmount", "Delete", "Update"]
    assert [c.__name__ for c in iter_capabilities(OrdersApi.Id)] == ["Get"]
    assert list(iter_capabilities(OrdersApi)) == []
    assert parent_of(OrdersApi.Id.Update) is OrdersApi.Id
    assert parent_of(OrdersApi) is None


def test_nested_resource_without_parent_field_fails_at_definition():
    with pytest.raises(TypeError, match="no parent"):

        @resource("/things")
        class Things:
            @resource("{id}")
            class One:
                id: int


def test_marked_capability_is_enumerated():
    @resource("/a")
    class A:
        @capability
        class Broken:
            pass

        class Get(GET["A", int, None]):
            pass

    assert [c.__name__ for c in iter_capabilities(A)] == ["Broken", "Get"]


def test_query_params_render_lists_and_bools():
    @resource("/search")
    class Search:
        tags: Optional[list[str]] = None
        exact: bool = False

    node = Search(tags=["a", "b"], exact=True)
    assert query_params(node) == [("tags", "a"), ("tags", "b"), ("exact", "true")]


def test_placeholder_values_are_quoted():
    @resource("/files")
    class Files:
        @resource("{name}")
        class Named:
            p: Files = parent()
            name: str

    node = Files.Named(p=Files(), name="a b/c")
    assert resource_path(node) == "/files/a%20b%2Fc"


def test_recursive_walk_visits_every_node_once():
    def walk(cls):
        yield cls.__qualname__
        for child in iter_children(cls):
            yield from walk(child)

    assert list(walk(OrdersApi)) == [
        "OrdersApi",
        "OrdersApi.ListOrders",
        "OrdersApi.New",
        "OrdersApi.Id",
        "OrdersApi.Id.GetAmount",
        "OrdersApi.Id.Delete",
        "OrdersApi.Id.Update",
        "OrdersApi.Id.Update.Customer",
        "OrdersApi.Id.Update.AddItem",
    ]
    assert OrdersApi not in list(iter_children(OrdersApi.Id))
