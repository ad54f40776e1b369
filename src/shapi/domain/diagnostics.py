from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Optional

Severity = Literal["error", "warning"]
DiagnosticKind = Literal["configuration", "resolution"]


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    kind: DiagnosticKind
    location: str              # "<module>:<qualname>"
    message: str
    line: Optional[int] = None
    slot: Optional[int] = None

    def render(self) -> str:
        where = self.location if self.line is None else f"{self.location} (line {self.line})"
        return f"{self.severity}: {self.kind}: {where}: {self.message}"


@dataclass
class Diagnostics:
    """Accumulates generation problems so a single run reports all of them."""

    items: list[Diagnostic] = field(default_factory=list)

    def error(
        self,
        kind: DiagnosticKind,
        location: str,
        message: str,
        *,
        line: Optional[int] = None,
        slot: Optional[int] = None,
    ) -> None:
        self.items.append(Diagnostic("error", kind, location, message, line=line, slot=slot))

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity == "error"]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == "error" for d in self.items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
