"""
Descriptor authoring surface.

A resource is a class carrying a path segment. Nested resources extend the
route of the class they are nested in and hold an explicit back-reference
to a constructed parent:

    @resource("/orders")
    class OrdersApi:

        @resource("{id}")
        class Id:
            p: OrdersApi = parent()
            id: int

Descriptor modules should use `from __future__ import annotations` so that
field annotations may name enclosing classes.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Callable, Iterator, TypeVar
from urllib.parse import quote

_C = TypeVar("_C", bound=type)

_SEGMENT_ATTR = "__resource_segment__"
_PARENT_ATTR = "__resource_parent__"
_CAPABILITY_ATTR = "__resource_capability__"
_PARENT_META = "shapi_parent"

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def parent() -> Any:
    """Declare the back-reference field. No default: a child cannot be built without its parent."""
    return dataclasses.field(metadata={_PARENT_META: True})


def capability(cls: _C) -> _C:
    """Optional marker for a nested class meant as a capability declaration."""
    setattr(cls, _CAPABILITY_ATTR, True)
    return cls


def resource(path: str) -> Callable[[_C], _C]:
    """Mark a class as a routable node with the given path segment."""

    def decorate(cls: _C) -> _C:
        _install_parent_check(cls)
        node_cls = dataclasses.dataclass(frozen=True, kw_only=True)(cls)
        setattr(node_cls, _SEGMENT_ATTR, path)

        for child in iter_children(node_cls):
            if _parent_field(child) is None:
                raise TypeError(
                    f"resource {child.__qualname__} is nested in {node_cls.__qualname__} "
                    "but declares no parent() field"
                )
            setattr(child, _PARENT_ATTR, node_cls)
        return node_cls

    return decorate


def _install_parent_check(cls: type) -> None:
    own_post_init = cls.__dict__.get("__post_init__")

    def __post_init__(self: Any) -> None:
        expected = type(self).__dict__.get(_PARENT_ATTR)
        pf = _parent_field(type(self))
        if expected is not None and pf is not None:
            value = getattr(self, pf.name)
            if not isinstance(value, expected):
                raise TypeError(
                    f"{type(self).__qualname__}.{pf.name} must be a {expected.__qualname__}, "
                    f"got {type(value).__qualname__}"
                )
        if own_post_init is not None:
            own_post_init(self)

    cls.__post_init__ = __post_init__  # type: ignore[attr-defined]


# ----------------------------
# Structural queries
# ----------------------------


def is_resource(obj: Any) -> bool:
    return isinstance(obj, type) and _SEGMENT_ATTR in obj.__dict__


def segment_of(cls: type) -> str:
    return cls.__dict__[_SEGMENT_ATTR]


def parent_of(cls: type) -> type | None:
    return cls.__dict__.get(_PARENT_ATTR)


def iter_children(cls: type) -> Iterator[type]:
    """Nested resource classes in declaration order. The parent link is not a child."""
    for name, value in list(cls.__dict__.items()):
        if name.startswith("__"):
            continue
        if is_resource(value):
            yield value


def iter_capabilities(cls: type) -> Iterator[type]:
    """Nested classes extending a contract (or carrying the marker), in declaration order."""
    from shapi.api.contracts import GET, POST

    for name, value in list(cls.__dict__.items()):
        if name.startswith("__") or not isinstance(value, type) or is_resource(value):
            continue
        if issubclass(value, (GET, POST)) or value.__dict__.get(_CAPABILITY_ATTR, False):
            yield value


def _parent_field(cls: type) -> dataclasses.Field | None:
    for f in dataclasses.fields(cls):
        if f.metadata.get(_PARENT_META):
            return f
    return None


# ----------------------------
# Routes
# ----------------------------


def resource_path(node: Any) -> str:
    """Full route of a constructed node, rebuilt bottom-up from parent back-references."""
    cls = type(node)
    if not is_resource(cls):
        raise TypeError(f"{cls.__qualname__} is not a resource")

    segment = _fill_placeholders(segment_of(cls), node)
    pf = _parent_field(cls)
    prefix = resource_path(getattr(node, pf.name)) if pf is not None else ""
    return _join(prefix, segment)


def query_params(node: Any) -> list[tuple[str, str]]:
    """Fields of the node chain that are neither parents nor path placeholders, root first."""
    chain: list[Any] = []
    current: Any = node
    while current is not None:
        chain.append(current)
        pf = _parent_field(type(current))
        current = getattr(current, pf.name) if pf is not None else None

    out: list[tuple[str, str]] = []
    for item in reversed(chain):
        cls = type(item)
        used = set(_PLACEHOLDER.findall(segment_of(cls)))
        for f in dataclasses.fields(cls):
            if f.metadata.get(_PARENT_META) or f.name in used:
                continue
            value = getattr(item, f.name)
            if value is None:
                continue
            if isinstance(value, (list, tuple, set, frozenset)):
                out.extend((f.name, _render(v)) for v in value)
            else:
                out.append((f.name, _render(value)))
    return out


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill_placeholders(segment: str, node: Any) -> str:
    def sub(m: re.Match[str]) -> str:
        name = m.group(1)
        if not hasattr(node, name):
            raise ValueError(
                f"path segment {segment!r} of {type(node).__qualname__} has no field {name!r}"
            )
        return quote(_render(getattr(node, name)), safe="")

    return _PLACEHOLDER.sub(sub, segment)


def _join(prefix: str, segment: str) -> str:
    parts = [p for p in (prefix.strip("/"), segment.strip("/")) if p]
    return "/" + "/".join(parts)
