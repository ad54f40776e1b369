from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Verb = Literal["GET", "POST"]
BindingKind = Literal["class", "function", "assign", "typevar", "import", "module"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ----------------------------
# Descriptor module scope
# ----------------------------


class ModuleBinding(_Frozen):
    """A module-level name of a descriptor module and where it comes from."""

    name: str
    kind: BindingKind
    origin_module: str            # module to import the name from
    origin_name: Optional[str] = None  # None for `import a.b [as c]`


class ModuleScope(_Frozen):
    module: str
    bindings: dict[str, ModuleBinding] = Field(default_factory=dict)

    def lookup(self, name: str) -> Optional[ModuleBinding]:
        return self.bindings.get(name)


# ----------------------------
# Descriptor tree (as read from source)
# ----------------------------


class TypeArg(_Frozen):
    """One type argument of a contract, with string forward references inlined."""

    source: str
    names: tuple[str, ...] = ()
    problem: Optional[str] = None


class SupertypeRef(_Frozen):
    display: str                       # the base expression as written
    target: Optional[str] = None       # qualified name of the base, when it could be resolved
    args: Optional[tuple[TypeArg, ...]] = None  # None when the base is not subscripted


class CapabilityDeclaration(_Frozen):
    name: str
    qualname: str
    supertypes: tuple[SupertypeRef, ...] = ()
    marked: bool = False
    line: int = 0


class FieldDecl(_Frozen):
    name: str
    annotation: str
    is_parent: bool = False
    has_default: bool = False


class EndpointNode(_Frozen):
    name: str
    qualname: str
    segment: str
    fields: tuple[FieldDecl, ...] = ()
    children: tuple[EndpointNode, ...] = ()
    capabilities: tuple[CapabilityDeclaration, ...] = ()
    line: int = 0

    @property
    def parent_field(self) -> Optional[FieldDecl]:
        for f in self.fields:
            if f.is_parent:
                return f
        return None


# ----------------------------
# Compiler output
# ----------------------------


class CapabilityBinding(_Frozen):
    node: str                 # qualname of the owning node
    capability: str           # qualname of the capability declaration
    verb: Verb
    request_type: str
    param_type: Optional[str] = None  # POST only
    result_type: str
    error_type: str
    names: tuple[str, ...] = ()       # module-level names the types refer to


class CompiledNode(_Frozen):
    name: str
    qualname: str
    segment: str
    bindings: tuple[CapabilityBinding, ...] = ()
    children: tuple[CompiledNode, ...] = ()

    def has_output(self) -> bool:
        return bool(self.bindings or self.children)

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


class CompiledRoot(_Frozen):
    module: str
    root: CompiledNode
    scope: ModuleScope

    @property
    def operation_count(self) -> int:
        return sum(len(n.bindings) for n in self.root.walk())
