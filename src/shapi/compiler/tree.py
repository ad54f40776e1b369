from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Iterable, Optional

from shapi.domain.diagnostics import Diagnostics
from shapi.domain.models import (
    CapabilityBinding,
    CompiledNode,
    CompiledRoot,
    EndpointNode,
    ModuleScope,
)
from shapi.resolver.capabilities import resolve_capability

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def output_module_name(root_name: str) -> str:
    # OrdersApi -> orders_api_client
    return _CAMEL_BOUNDARY.sub("_", root_name).lower() + "_client"


def compile_tree(
    root: EndpointNode,
    scope: ModuleScope,
    diagnostics: Diagnostics,
) -> Optional[CompiledNode]:
    """
    Walk a root resource depth-first in declaration order and resolve every
    capability found on the way.

    Returns None when the root's own subtree is fatally misconfigured.
    Problems below the root only drop the affected subtree or capability.
    """
    return _visit(root, scope, diagnostics, is_root=True)


def _visit(
    node: EndpointNode,
    scope: ModuleScope,
    diagnostics: Diagnostics,
    is_root: bool = False,
) -> Optional[CompiledNode]:
    location = f"{scope.module}:{node.qualname}"

    # sibling collisions are checked before anything in this subtree is resolved
    collisions = _sibling_collisions(node)
    if collisions:
        for name in collisions:
            diagnostics.error(
                "configuration",
                location,
                f"duplicate nested name {name!r}; subtree skipped",
                line=node.line,
            )
        return None

    if not is_root and node.parent_field is None:
        diagnostics.error(
            "configuration",
            location,
            "nested resource declares no parent() field; subtree skipped",
            line=node.line,
        )
        return None

    bindings: list[CapabilityBinding] = []
    seen_verbs: dict[str, str] = {}
    for cap in node.capabilities:
        binding = resolve_capability(cap, node, scope, diagnostics)
        if binding is None:
            continue
        if binding.verb in seen_verbs:
            diagnostics.error(
                "configuration",
                f"{scope.module}:{cap.qualname}",
                f"{node.qualname} already declares a {binding.verb} capability "
                f"({seen_verbs[binding.verb]}); capability skipped",
                line=cap.line,
            )
            continue
        seen_verbs[binding.verb] = cap.qualname
        bindings.append(binding)

    children: list[CompiledNode] = []
    for child in node.children:
        compiled = _visit(child, scope, diagnostics)
        if compiled is not None and compiled.has_output():
            children.append(compiled)

    return CompiledNode(
        name=node.name,
        qualname=node.qualname,
        segment=node.segment,
        bindings=tuple(bindings),
        children=tuple(children),
    )


def _sibling_collisions(node: EndpointNode) -> list[str]:
    names = [c.name for c in node.children] + [c.name for c in node.capabilities]
    counts = Counter(names)
    return sorted(name for name, n in counts.items() if n > 1)


def compile_roots(
    roots: Iterable[tuple[EndpointNode, ModuleScope]],
    diagnostics: Diagnostics,
) -> list[CompiledRoot]:
    """
    Compile several roots into one output namespace.

    Roots whose output module names collide are all rejected; the rest
    compile independently.
    """
    roots = list(roots)
    by_output: dict[str, list[int]] = {}
    for index, (node, _) in enumerate(roots):
        by_output.setdefault(output_module_name(node.name), []).append(index)

    out: list[CompiledRoot] = []
    for index, (node, scope) in enumerate(roots):
        group = by_output[output_module_name(node.name)]
        if len(group) > 1:
            others = ", ".join(
                f"{roots[i][1].module}:{roots[i][0].qualname}" for i in group if i != index
            )
            diagnostics.error(
                "configuration",
                f"{scope.module}:{node.qualname}",
                f"root name collides with {others} in the same output namespace",
                line=node.line,
            )
            continue

        compiled = compile_tree(node, scope, diagnostics)
        if compiled is None:
            continue
        logger.info(
            "compiled %s:%s (%d node(s), %d operation(s))",
            scope.module,
            node.name,
            sum(1 for _ in compiled.walk()),
            sum(len(n.bindings) for n in compiled.walk()),
        )
        out.append(CompiledRoot(module=scope.module, root=compiled, scope=scope))
    return out
