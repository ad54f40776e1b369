from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from shapi.api.contracts import CONTRACTS
from shapi.domain.diagnostics import Diagnostics
from shapi.domain.models import (
    CapabilityDeclaration,
    EndpointNode,
    FieldDecl,
    ModuleBinding,
    ModuleScope,
    SupertypeRef,
    TypeArg,
)

logger = logging.getLogger(__name__)

RESOURCE_MARKER = "shapi.api.resources.resource"
PARENT_MARKER = "shapi.api.resources.parent"
CAPABILITY_MARKER = "shapi.api.resources.capability"

_LITERAL_NAMES = {"typing.Literal", "typing_extensions.Literal"}
_CLASSVAR_NAMES = {"typing.ClassVar", "ClassVar"}


@dataclass(frozen=True)
class DescriptorModule:
    module: str
    scope: ModuleScope
    roots: tuple[EndpointNode, ...]

    def root(self, name: str) -> Optional[EndpointNode]:
        for r in self.roots:
            if r.name == name:
                return r
        return None


def extract_descriptors_from_source(
    source: str,
    module: str,
    diagnostics: Diagnostics,
    is_package: bool = False,
) -> Optional[DescriptorModule]:
    """
    Read resource classes from descriptor source.
    Uses ast only; the module is never imported or executed.
    """
    try:
        tree = ast.parse(source)
    except SyntaxError as exc:
        diagnostics.error(
            "configuration",
            module,
            f"descriptor source does not parse: {exc.msg}",
            line=exc.lineno,
        )
        return None

    scope = _build_scope(tree, module, is_package)
    reader = _Reader(scope, diagnostics)

    roots: list[EndpointNode] = []
    for stmt in tree.body:
        if isinstance(stmt, ast.ClassDef) and reader.resource_decorator(stmt) is not None:
            node = reader.read_node(stmt, prefix="")
            if node is not None:
                roots.append(node)

    logger.debug("extracted %d root resource(s) from %s", len(roots), module)
    return DescriptorModule(module=module, scope=scope, roots=tuple(roots))


def extract_descriptors_from_file(
    path: Path,
    module: str,
    diagnostics: Diagnostics,
    is_package: bool = False,
) -> Optional[DescriptorModule]:
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        diagnostics.error("configuration", module, f"cannot read {path}: {exc}")
        return None
    return extract_descriptors_from_source(source, module, diagnostics, is_package=is_package)


# ----------------------------
# Module scope / import table
# ----------------------------


def _build_scope(tree: ast.Module, module: str, is_package: bool) -> ModuleScope:
    bindings: dict[str, ModuleBinding] = {}

    def bind(name: str, kind: str, origin_module: str, origin_name: Optional[str]) -> None:
        bindings[name] = ModuleBinding(
            name=name, kind=kind, origin_module=origin_module, origin_name=origin_name
        )

    for stmt in tree.body:
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                if alias.asname:
                    bind(alias.asname, "module", alias.name, None)
                else:
                    # `import a.b` binds `a`; keep the full import so `a.b` stays loaded
                    bind(alias.name.split(".")[0], "module", alias.name, None)
        elif isinstance(stmt, ast.ImportFrom):
            base = _absolute_module(stmt, module, is_package)
            if base is None:
                continue
            for alias in stmt.names:
                if alias.name == "*":
                    continue
                bind(alias.asname or alias.name, "import", base, alias.name)
        elif isinstance(stmt, ast.ClassDef):
            bind(stmt.name, "class", module, stmt.name)
        elif isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            bind(stmt.name, "function", module, stmt.name)
        elif isinstance(stmt, (ast.Assign, ast.AnnAssign)):
            targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
            kind = "typevar" if _is_typevar_call(stmt.value) else "assign"
            for t in targets:
                if isinstance(t, ast.Name):
                    bind(t.id, kind, module, t.id)

    return ModuleScope(module=module, bindings=bindings)


def _absolute_module(stmt: ast.ImportFrom, module: str, is_package: bool) -> Optional[str]:
    if not stmt.level:
        return stmt.module
    parts = module.split(".")
    if not is_package:
        parts = parts[:-1]
    drop = stmt.level - 1
    if drop > len(parts):
        return None
    if drop:
        parts = parts[:-drop]
    if stmt.module:
        parts.append(stmt.module)
    return ".".join(parts) or None


def _is_typevar_call(value: Optional[ast.expr]) -> bool:
    if not isinstance(value, ast.Call):
        return False
    func = value.func
    if isinstance(func, ast.Name):
        return func.id in ("TypeVar", "ParamSpec", "TypeVarTuple")
    if isinstance(func, ast.Attribute):
        return func.attr in ("TypeVar", "ParamSpec", "TypeVarTuple")
    return False


# ----------------------------
# Tree reader
# ----------------------------


class _Reader:
    def __init__(self, scope: ModuleScope, diagnostics: Diagnostics) -> None:
        self.scope = scope
        self.diagnostics = diagnostics

    def qualify(self, expr: ast.AST) -> Optional[str]:
        """Best-effort qualified name of a Name/Attribute/Call expression."""
        if isinstance(expr, ast.Name):
            b = self.scope.lookup(expr.id)
            if b is None:
                return None
            if b.kind == "module":
                # `import a.b` binds `a`; `import a.b as c` binds `c` -> a.b
                return b.origin_module if b.name != b.origin_module.split(".")[0] else b.name
            return f"{b.origin_module}.{b.origin_name}"
        if isinstance(expr, ast.Attribute):
            base = self.qualify(expr.value)
            return f"{base}.{expr.attr}" if base else None
        if isinstance(expr, ast.Call):
            return self.qualify(expr.func)
        return None

    # ---- resources ----

    def resource_decorator(self, cls: ast.ClassDef) -> Optional[ast.expr]:
        for dec in cls.decorator_list:
            if self.qualify(dec) == RESOURCE_MARKER:
                return dec
        return None

    def read_node(self, cls: ast.ClassDef, prefix: str) -> Optional[EndpointNode]:
        qualname = f"{prefix}{cls.name}"
        location = f"{self.scope.module}:{qualname}"
        dec = self.resource_decorator(cls)
        if dec is None:
            raise ValueError(f"{qualname} is not decorated with resource()")

        segment = _resource_segment(dec)
        if segment is None:
            self.diagnostics.error(
                "configuration",
                location,
                "resource path must be a string literal; subtree skipped",
                line=cls.lineno,
            )
            return None

        fields: list[FieldDecl] = []
        children: list[EndpointNode] = []
        capabilities: list[CapabilityDeclaration] = []

        for stmt in cls.body:
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                f = self._read_field(stmt)
                if f is not None:
                    fields.append(f)
            elif isinstance(stmt, ast.ClassDef):
                if self.resource_decorator(stmt) is not None:
                    child = self.read_node(stmt, prefix=f"{qualname}.")
                    if child is not None:
                        children.append(child)
                else:
                    cap = self._read_capability(stmt, prefix=f"{qualname}.")
                    if cap is not None:
                        capabilities.append(cap)

        parents = [f.name for f in fields if f.is_parent]
        if len(parents) > 1:
            self.diagnostics.error(
                "configuration",
                location,
                f"more than one parent() field: {', '.join(parents)}",
                line=cls.lineno,
            )

        return EndpointNode(
            name=cls.name,
            qualname=qualname,
            segment=segment,
            fields=tuple(fields),
            children=tuple(children),
            capabilities=tuple(capabilities),
            line=cls.lineno,
        )

    def _read_field(self, stmt: ast.AnnAssign) -> Optional[FieldDecl]:
        annotation = ast.unparse(stmt.annotation)
        head = stmt.annotation.value if isinstance(stmt.annotation, ast.Subscript) else stmt.annotation
        if self.qualify(head) in _CLASSVAR_NAMES or annotation.startswith("ClassVar"):
            return None
        is_parent = isinstance(stmt.value, ast.Call) and self.qualify(stmt.value.func) == PARENT_MARKER
        return FieldDecl(
            name=stmt.target.id,  # type: ignore[union-attr]
            annotation=annotation,
            is_parent=is_parent,
            has_default=stmt.value is not None and not is_parent,
        )

    # ---- capabilities ----

    def _read_capability(self, cls: ast.ClassDef, prefix: str) -> Optional[CapabilityDeclaration]:
        marked = any(self.qualify(d) == CAPABILITY_MARKER for d in cls.decorator_list)
        supertypes = tuple(self._read_supertype(b) for b in cls.bases)
        if not marked and not any(s.target in CONTRACTS for s in supertypes):
            return None  # plain nested type (error classes, models, ...)
        return CapabilityDeclaration(
            name=cls.name,
            qualname=f"{prefix}{cls.name}",
            supertypes=supertypes,
            marked=marked,
            line=cls.lineno,
        )

    def _read_supertype(self, base: ast.expr) -> SupertypeRef:
        display = ast.unparse(base)
        if isinstance(base, ast.Subscript):
            target = self.qualify(base.value)
            elts: Iterable[ast.expr]
            if isinstance(base.slice, ast.Tuple):
                elts = base.slice.elts
            else:
                elts = [base.slice]
            args = tuple(self._type_arg(e) for e in elts)
            return SupertypeRef(display=display, target=target, args=args)
        return SupertypeRef(display=display, target=self.qualify(base), args=None)

    def _type_arg(self, expr: ast.expr) -> TypeArg:
        inliner = _ForwardRefInliner(self)
        try:
            inlined = inliner.visit(_copy(expr))
        except SyntaxError as exc:
            return TypeArg(source=ast.unparse(expr), problem=f"forward reference is not an expression: {exc.text!r}")
        names = sorted({n.id for n in ast.walk(inlined) if isinstance(n, ast.Name)})
        return TypeArg(source=ast.unparse(inlined), names=tuple(names))


class _ForwardRefInliner(ast.NodeTransformer):
    """Replace string forward references with the expressions they spell."""

    def __init__(self, reader: _Reader) -> None:
        self.reader = reader

    def visit_Subscript(self, node: ast.Subscript) -> ast.AST:
        if self.reader.qualify(node.value) in _LITERAL_NAMES:
            return node  # Literal["a"] holds values, not references
        if self.reader.qualify(node.value) in ("typing.Annotated", "typing_extensions.Annotated"):
            # only the first argument is a type; metadata stays as written
            if isinstance(node.slice, ast.Tuple) and node.slice.elts:
                node.slice.elts[0] = self.visit(node.slice.elts[0])
            return node
        return self.generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> ast.AST:
        if isinstance(node.value, str):
            parsed = ast.parse(node.value.strip(), mode="eval").body
            return self.visit(parsed)
        return node


def _copy(expr: ast.expr) -> ast.expr:
    return ast.parse(ast.unparse(expr), mode="eval").body


def _resource_segment(dec: ast.expr) -> Optional[str]:
    if not isinstance(dec, ast.Call):
        return None
    if dec.args:
        return _const_str(dec.args[0])
    for kw in dec.keywords or []:
        if kw.arg == "path":
            return _const_str(kw.value)
    return None


def _const_str(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value.strip()
    return None
