from textwrap import dedent

from conftest import DESCRIPTORS_ROOT
from shapi.compiler.tree import compile_roots, compile_tree, output_module_name
from shapi.domain.diagnostics import Diagnostics
from shapi.extractors.descriptors import extract_descriptors_from_file, extract_descriptors_from_source

HEADER = """
from shapi.api.contracts import GET, POST
from shapi.api.resources import parent, resource
"""


def extract(src: str, module: str = "app.api"):
    diags = Diagnostics()
    desc = extract_descriptors_from_source(HEADER + dedent(src), module, diags)
    return desc, diags


def orders():
    diags = Diagnostics()
    desc = extract_descriptors_from_file(DESCRIPTORS_ROOT / "descriptors" / "orders_api.py", "descriptors.orders_api", diags)
    return desc, diags


def test_output_module_name():
    assert output_module_name("OrdersApi") == "orders_api_client"
    assert output_module_name("HTTPStatusApi") == "http_status_api_client"
    assert output_module_name("Users") == "users_client"


def test_orders_tree_counts():
    desc, diags = orders()
    compiled = compile_tree(desc.root("OrdersApi"), desc.scope, diags)

    assert not diags.has_errors
    nodes = list(compiled.walk())
    assert len(nodes) == 9
    assert sum(len(n.bindings) for n in nodes) == 7
    assert [n.qualname for n in nodes] == [
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


def test_nodes_without_bindings_are_pruned():
    desc, diags = extract(
        """
        @resource("/a")
        class A:
            @resource("empty")
            class Empty:
                p: A = parent()

                @resource("deeper")
                class Deeper:
                    p: A.Empty = parent()

            @resource("via")
            class Via:
                p: A = parent()

                @resource("leaf")
                class Leaf:
                    p: A.Via = parent()

                    class Get(GET["A.Via.Leaf", int, None]):
                        pass
        """
    )
    compiled = compile_tree(desc.root("A"), desc.scope, diags)
    assert [n.qualname for n in compiled.walk()] == ["A", "A.Via", "A.Via.Leaf"]


def test_root_without_bindings_is_kept():
    desc, diags = extract(
        """
        @resource("/a")
        class A:
            pass
        """
    )
    compiled = compile_tree(desc.root("A"), desc.scope, diags)
    assert compiled is not None
    assert not compiled.has_output()


def test_sibling_name_collision_skips_the_parent_subtree():
    desc, diags = extract(
        """
        @resource("/a")
        class A:
            @resource("b")
            class B:
                p: A = parent()

                @resource("x")
                class Get:
                    p: A.B = parent()

                class Get(GET["A.B", int, None]):
                    pass

            @resource("c")
            class C:
                p: A = parent()

                class Get(GET["A.C", int, None]):
                    pass
        """
    )
    compiled = compile_tree(desc.root("A"), desc.scope, diags)

    assert [n.qualname for n in compiled.walk()] == ["A", "A.C"]
    (d,) = diags.errors
    assert d.location == "app.api:A.B"
    assert "duplicate nested name 'Get'" in d.message


def test_second_capability_with_same_verb_is_skipped():
    desc, diags = extract(
        """
        @resource("/a")
        class A:
            class First(GET["A", int, None]):
                pass

            class Second(GET["A", str, None]):
                pass

            class Create(POST["A", str, int, None]):
                pass
        """
    )
    compiled = compile_tree(desc.root("A"), desc.scope, diags)

    assert [b.capability for b in compiled.bindings] == ["A.First", "A.Create"]
    (d,) = diags.errors
    assert d.location == "app.api:A.Second"


def test_nested_resource_without_parent_is_skipped():
    desc, diags = extract(
        """
        @resource("/a")
        class A:
            @resource("b")
            class B:
                class Get(GET["A.B", int, None]):
                    pass
        """
    )
    compiled = compile_tree(desc.root("A"), desc.scope, diags)
    assert compiled.children == ()
    assert "no parent() field" in diags.errors[0].message


def test_root_collision_rejects_both_roots():
    first, diags = extract(
        """
        @resource("/a")
        class Users:
            class Get(GET["Users", int, None]):
                pass
        """,
        module="app.one",
    )
    second, _ = extract(
        """
        @resource("/b")
        class Users:
            class Get(GET["Users", int, None]):
                pass

        @resource("/c")
        class Teams:
            class Get(GET["Teams", int, None]):
                pass
        """,
        module="app.two",
    )
    compiled = compile_roots(
        [(first.root("Users"), first.scope), (second.root("Users"), second.scope), (second.root("Teams"), second.scope)],
        diags,
    )

    assert [c.root.name for c in compiled] == ["Teams"]
    assert [d.location for d in diags.errors] == ["app.one:Users", "app.two:Users"]
    assert "app.two:Users" in diags.errors[0].message


def test_compilation_is_deterministic():
    desc, diags = orders()
    first = compile_tree(desc.root("OrdersApi"), desc.scope, diags)
    desc2, diags2 = orders()
    second = compile_tree(desc2.root("OrdersApi"), desc2.scope, diags2)
    assert first == second
