from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shapi.compiler.tree import output_module_name
from shapi.domain.models import CapabilityBinding, CompiledNode, CompiledRoot, ModuleScope

RESPONSE_MODULE = "shapi.api.response"
INDENT = "    "
MAX_LINE = 88

_PRIMITIVES = {"GET": ("get", "_get"), "POST": ("post", "_post")}


@dataclass(frozen=True)
class EmittedModule:
    module: str          # descriptor module the root was read from
    root: str            # root resource class name
    module_name: str     # e.g. orders_api_client
    class_name: str      # e.g. OrdersApiClient
    source: str
    operations: int
    units: int

    @property
    def filename(self) -> str:
        return f"{self.module_name}.py"


def emit_client_module(compiled: CompiledRoot, transport_module: str) -> EmittedModule:
    """
    Render one client module for a compiled root.

    Output depends only on the compiled tree and `transport_module`, so
    re-running over an unchanged descriptor gives byte-identical text.
    """
    root = compiled.root
    class_name = f"{root.name}Client"
    bindings = [b for n in root.walk() for b in n.bindings]

    lines: list[str] = [
        f"# Code generated by shapi from {compiled.module}. DO NOT EDIT.",
        "from __future__ import annotations",
        "",
    ]
    lines.extend(_import_lines(compiled.scope, root.name, bindings, transport_module))
    lines.append("")
    lines.append("")
    lines.extend(_class_lines(root, class_name, depth=0, route=""))

    return EmittedModule(
        module=compiled.module,
        root=root.name,
        module_name=output_module_name(root.name),
        class_name=class_name,
        source="\n".join(lines) + "\n",
        operations=len(bindings),
        units=sum(1 for _ in root.walk()),
    )


# ----------------------------
# Imports
# ----------------------------


def _import_lines(
    scope: ModuleScope,
    root_name: str,
    bindings: list[CapabilityBinding],
    transport_module: str,
) -> list[str]:
    plain: set[str] = set()
    from_imports: dict[str, set[str]] = {}

    def add_from(module: str, item: str) -> None:
        from_imports.setdefault(module, set()).add(item)

    add_from(RESPONSE_MODULE, "ApiResponse")
    for verb in sorted({b.verb for b in bindings}):
        name, alias = _PRIMITIVES[verb]
        add_from(transport_module, f"{name} as {alias}")

    names = {root_name}
    for b in bindings:
        names.update(b.names)

    for name in sorted(names):
        binding = scope.lookup(name)
        if binding is None:
            continue  # builtin
        if binding.kind == "module":
            if name == binding.origin_module.split(".")[0]:
                plain.add(f"import {binding.origin_module}")
            else:
                plain.add(f"import {binding.origin_module} as {name}")
        elif binding.kind == "import":
            item = binding.origin_name if binding.origin_name == name else f"{binding.origin_name} as {name}"
            add_from(binding.origin_module, item)
        else:
            add_from(scope.module, name)

    out = sorted(plain)
    for module in sorted(from_imports):
        out.extend(_from_line(module, sorted(from_imports[module])))
    return out


def _from_line(module: str, items: list[str]) -> list[str]:
    line = f"from {module} import {', '.join(items)}"
    if len(line) <= MAX_LINE:
        return [line]
    return [f"from {module} import ("] + [f"{INDENT}{item}," for item in items] + [")"]


# ----------------------------
# Classes
# ----------------------------


def _class_lines(node: CompiledNode, class_name: str, depth: int, route: str) -> list[str]:
    pad = INDENT * depth
    route = _join_route(route, node.segment)

    bases = ", ".join(b.capability for b in node.bindings)
    header = f"{pad}class {class_name}({bases}):" if bases else f"{pad}class {class_name}:"
    lines = [header, f'{pad}{INDENT}"""{route}"""']

    for b in node.bindings:
        lines.append("")
        lines.extend(_method_lines(b, depth + 1))

    for child in node.children:
        lines.append("")
        lines.extend(_class_lines(child, child.name, depth + 1, route))

    return lines


def _method_lines(b: CapabilityBinding, depth: int) -> list[str]:
    pad = INDENT * depth
    name, primitive = _PRIMITIVES[b.verb]
    returns = f"ApiResponse[{b.result_type}, {b.error_type}]"

    if b.verb == "GET":
        params = ["self", f"node: {b.request_type}"]
        call_args = ["node", b.request_type, b.result_type, b.error_type]
    else:
        param_type = _required(b.param_type)
        params = ["self", f"node: {b.request_type}", f"param: {param_type}"]
        call_args = ["node", "param", b.request_type, param_type, b.result_type, b.error_type]

    lines = _wrapped(pad, f"async def {name}", params, f" -> {returns}:")
    lines.extend(_wrapped(pad + INDENT, f"return await {primitive}", call_args, ""))
    return lines


def _wrapped(pad: str, head: str, args: list[str], tail: str) -> list[str]:
    # one argument per line once the line is longer than MAX_LINE
    line = f"{pad}{head}({', '.join(args)}){tail}"
    if len(line) <= MAX_LINE:
        return [line]
    return [f"{pad}{head}("] + [f"{pad}{INDENT}{arg}," for arg in args] + [f"{pad}){tail}"]


def _required(value: Optional[str]) -> str:
    if value is None:
        raise ValueError("POST binding without a param type")
    return value


def _join_route(prefix: str, segment: str) -> str:
    parts = [p for p in (prefix.strip("/"), segment.strip("/")) if p]
    return "/" + "/".join(parts)
