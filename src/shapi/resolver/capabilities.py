from __future__ import annotations

import builtins
import logging
from typing import Optional

from shapi.api.contracts import CONTRACTS, ContractSpec
from shapi.domain.diagnostics import Diagnostics
from shapi.domain.models import (
    CapabilityBinding,
    CapabilityDeclaration,
    EndpointNode,
    ModuleScope,
    TypeArg,
)

logger = logging.getLogger(__name__)

_BUILTIN_NAMES = frozenset(dir(builtins))


def resolve_capability(
    cap: CapabilityDeclaration,
    node: EndpointNode,
    scope: ModuleScope,
    diagnostics: Diagnostics,
) -> Optional[CapabilityBinding]:
    """
    Resolve one capability declaration into a binding.

    Type arguments are looked up by position in the contract's slot list,
    never by name. Any problem is recorded in `diagnostics` and the
    capability is skipped (None); siblings are unaffected.
    """
    location = f"{scope.module}:{cap.qualname}"

    if not cap.supertypes:
        diagnostics.error(
            "configuration",
            location,
            "capability extends no supertype; exactly one of GET or POST expected",
            line=cap.line,
        )
        return None
    if len(cap.supertypes) > 1:
        listed = ", ".join(s.display for s in cap.supertypes)
        diagnostics.error(
            "configuration",
            location,
            f"capability extends {len(cap.supertypes)} supertypes ({listed}); "
            "exactly one contract expected",
            line=cap.line,
        )
        return None

    base = cap.supertypes[0]
    contract = CONTRACTS.get(base.target or "")
    if contract is None:
        diagnostics.error(
            "configuration",
            location,
            f"supertype {base.display} is not a recognized contract (GET or POST)",
            line=cap.line,
        )
        return None

    args = base.args or ()
    resolved: list[TypeArg] = []
    for index, slot in enumerate(contract.slots):
        arg = _slot_arg(args, index)
        if arg is None:
            diagnostics.error(
                "resolution",
                location,
                f"{contract.verb} is missing the type argument for slot {index} ({slot})",
                line=cap.line,
                slot=index,
            )
            return None
        problem = _unresolved(arg, scope)
        if problem is not None:
            diagnostics.error(
                "resolution",
                location,
                f"unresolved type argument at slot {index} ({slot}): {problem}",
                line=cap.line,
                slot=index,
            )
            return None
        resolved.append(arg)

    if len(args) > contract.arity:
        diagnostics.error(
            "resolution",
            location,
            f"unexpected type argument at slot {contract.arity}: "
            f"{contract.verb} takes {contract.arity}",
            line=cap.line,
            slot=contract.arity,
        )
        return None

    request = resolved[0]
    if request.source != node.qualname:
        diagnostics.error(
            "resolution",
            location,
            f"type argument at slot 0 (node) is {request.source}, "
            f"expected the owning node {node.qualname}",
            line=cap.line,
            slot=0,
        )
        return None

    binding = _binding(cap, node, contract, resolved)
    logger.debug("resolved %s -> %s %s", location, binding.verb, binding.result_type)
    return binding


def _slot_arg(args: tuple[TypeArg, ...], index: int) -> Optional[TypeArg]:
    # explicit bounds check: a short argument list means the slot is missing
    if index < 0 or index >= len(args):
        return None
    return args[index]


def _unresolved(arg: TypeArg, scope: ModuleScope) -> Optional[str]:
    if arg.problem:
        return arg.problem
    for name in arg.names:
        b = scope.lookup(name)
        if b is None:
            if name in _BUILTIN_NAMES:
                continue
            return f"name {name!r} is not defined at module level of {scope.module}"
        if b.kind == "typevar":
            return f"{name!r} is a type variable"
    return None


def _binding(
    cap: CapabilityDeclaration,
    node: EndpointNode,
    contract: ContractSpec,
    args: list[TypeArg],
) -> CapabilityBinding:
    by_slot = dict(zip(contract.slots, args))
    names = sorted({n for a in args for n in a.names})
    param = by_slot.get("param")
    return CapabilityBinding(
        node=node.qualname,
        capability=cap.qualname,
        verb=contract.verb,  # type: ignore[arg-type]
        request_type=by_slot["node"].source,
        param_type=param.source if param is not None else None,
        result_type=by_slot["result"].source,
        error_type=by_slot["error"].source,
        names=tuple(names),
    )
