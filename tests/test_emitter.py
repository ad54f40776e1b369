from textwrap import dedent, indent

from conftest import DESCRIPTORS_ROOT
from shapi.compiler.tree import compile_roots
from shapi.domain.diagnostics import Diagnostics
from shapi.emitter.python import emit_client_module
from shapi.extractors.descriptors import extract_descriptors_from_file, extract_descriptors_from_source

TRANSPORT = "shapi.client.transport"


def emit_source(src: str, root: str, module: str = "app.api"):
    diags = Diagnostics()
    desc = extract_descriptors_from_source(dedent(src), module, diags)
    (compiled,) = compile_roots([(desc.root(root), desc.scope)], diags)
    return emit_client_module(compiled, TRANSPORT), diags


def emit_orders():
    diags = Diagnostics()
    desc = extract_descriptors_from_file(DESCRIPTORS_ROOT / "descriptors" / "orders_api.py", "descriptors.orders_api", diags)
    (compiled,) = compile_roots([(desc.root("OrdersApi"), desc.scope)], diags)
    return emit_client_module(compiled, TRANSPORT)


def test_small_module_snapshot():
    emitted, diags = emit_source(
        """
        from pydantic import BaseModel
        from shapi.api.contracts import GET, POST
        from shapi.api.resources import parent, resource

        class Order(BaseModel):
            id: int

        @resource("/orders")
        class Orders:
            @resource("{id}")
            class Id:
                p: Orders = parent()
                id: int

                class Get(GET["Orders.Id", Order, None]):
                    pass

                class Delete(POST["Orders.Id", None, bool, str]):
                    pass
        """,
        "Orders",
    )
    assert not diags.has_errors
    assert emitted.filename == "orders_client.py"
    assert emitted.class_name == "OrdersClient"
    assert emitted.source == dedent(
        '''\
        # Code generated by shapi from app.api. DO NOT EDIT.
        from __future__ import annotations

        from app.api import Order, Orders
        from shapi.api.response import ApiResponse
        from shapi.client.transport import get as _get, post as _post


        class OrdersClient:
            """/orders"""

            class Id(Orders.Id.Get, Orders.Id.Delete):
                """/orders/{id}"""

                async def get(self, node: Orders.Id) -> ApiResponse[Order, None]:
                    return await _get(node, Orders.Id, Order, None)

                async def post(self, node: Orders.Id, param: None) -> ApiResponse[bool, str]:
                    return await _post(node, param, Orders.Id, None, bool, str)
        '''
    )


def block(text: str, pad: int) -> str:
    return indent(dedent(text), " " * pad)


def test_get_forwarding_for_list_result():
    source = emit_orders().source
    assert "    class ListOrders(OrdersApi.ListOrders.Get):" in source
    assert block(
        """\
        async def get(
            self,
            node: OrdersApi.ListOrders,
        ) -> ApiResponse[list[Order], None]:
            return await _get(node, OrdersApi.ListOrders, list[Order], None)
        """,
        8,
    ) in source


def test_post_forwarding_with_union_error():
    source = emit_orders().source
    assert block(
        """\
        async def post(
            self,
            node: OrdersApi.New,
            param: Order,
        ) -> ApiResponse[int, NewOrderError]:
            return await _post(node, param, OrdersApi.New, Order, int, NewOrderError)
        """,
        8,
    ) in source


def test_long_forwarding_calls_are_wrapped():
    source = emit_orders().source
    assert all(len(line) <= 88 for line in source.splitlines())
    assert block(
        """\
        return await _post(
            node,
            param,
            OrdersApi.Id.Update.AddItem,
            OrderItem,
            None,
            OrderNotExists,
        )
        """,
        20,
    ) in source


def test_long_import_lines_are_wrapped():
    source = emit_orders().source
    assert dedent(
        """\
        from descriptors.orders_api import (
            NewOrderError,
            Order,
            OrderItem,
            OrderNotExists,
            OrdersApi,
        )
        """
    ) in source


def test_counts_and_intermediate_units():
    emitted = emit_orders()
    assert emitted.operations == 7
    assert emitted.units == 9
    # Update has no capability of its own but keeps its children
    assert "        class Update:\n" in emitted.source
    assert '                """/orders/{id}/update/customer"""' in emitted.source


def test_emission_is_idempotent():
    assert emit_orders().source == emit_orders().source


def test_only_used_primitives_are_imported():
    emitted, _ = emit_source(
        """
        from shapi.api.contracts import GET
        from shapi.api.resources import resource

        @resource("/ping")
        class Ping:
            class Get(GET["Ping", str, None]):
                pass
        """,
        "Ping",
    )
    assert "from shapi.client.transport import get as _get\n" in emitted.source
    assert "_post" not in emitted.source


def test_imported_and_module_names_are_reimported_from_origin():
    emitted, _ = emit_source(
        """
        import datetime
        import app.models as m
        from app.errors import NotFound as Missing
        from shapi.api.contracts import GET
        from shapi.api.resources import resource

        @resource("/clock")
        class Clock:
            class Get(GET["Clock", datetime.datetime, Missing]):
                pass
        """,
        "Clock",
    )
    source = emitted.source
    assert "import datetime\n" in source
    assert "from app.errors import NotFound as Missing\n" in source
    assert "app.models" not in source


def test_root_without_bindings_is_an_empty_client():
    emitted, _ = emit_source(
        """
        from shapi.api.resources import resource

        @resource("/nothing")
        class Nothing:
            pass
        """,
        "Nothing",
    )
    assert emitted.source.endswith('class NothingClient:\n    """/nothing"""\n')
    assert emitted.operations == 0
