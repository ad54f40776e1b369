from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

from shapi.compiler.tree import compile_roots
from shapi.config import Settings, get_settings
from shapi.domain.diagnostics import Diagnostics
from shapi.domain.models import CompiledRoot, EndpointNode, ModuleScope
from shapi.emitter.python import EmittedModule, emit_client_module
from shapi.extractors.descriptors import DescriptorModule, extract_descriptors_from_file
from shapi.repo.scanner import find_module_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootSpec:
    module: str
    name: str

    @property
    def label(self) -> str:
        return f"{self.module}:{self.name}"


def parse_root_spec(text: str) -> RootSpec:
    """'package.module:RootClass' -> RootSpec"""
    module, sep, name = text.strip().partition(":")
    valid = (
        sep
        and name.isidentifier()
        and module
        and all(part.isidentifier() for part in module.split("."))
    )
    if not valid:
        raise ValueError(f"root must look like 'package.module:RootClass', got {text!r}")
    return RootSpec(module=module, name=name)


@dataclass(frozen=True)
class GenerateResult:
    roots: list[str]
    outputs: list[EmittedModule]
    written: list[str]
    unchanged: list[str]
    failed_roots: list[str]
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    out_dir: Optional[str] = None
    mode: str = "write"  # "write" | "check"

    @property
    def ok(self) -> bool:
        return not self.diagnostics.has_errors


def run_generate(
    roots: Sequence[str],
    out_dir: Optional[Path] = None,
    source_roots: Optional[Iterable[Path]] = None,
    transport_module: Optional[str] = None,
    write: bool = True,
    settings: Optional[Settings] = None,
) -> GenerateResult:
    """
    Generate one client module per root.

    Every problem is collected into `diagnostics`; affected roots (or
    capabilities) are skipped and everything else is still produced.
    """
    settings = settings or get_settings()
    transport_module = transport_module or settings.transport_module
    search = [Path(p) for p in (source_roots if source_roots is not None else settings.source_roots)]
    out_path = Path(out_dir).expanduser() if out_dir is not None else None
    if write and out_path is None:
        raise ValueError("out_dir is required when writing output")

    diagnostics = Diagnostics()
    failed: list[str] = []

    specs: list[RootSpec] = []
    for text in roots:
        try:
            spec = parse_root_spec(text)
        except ValueError as exc:
            diagnostics.error("configuration", text, str(exc))
            failed.append(text)
            continue
        if spec not in specs:
            specs.append(spec)

    modules: dict[str, Optional[DescriptorModule]] = {}
    pairs: list[tuple[EndpointNode, ModuleScope]] = []
    pair_labels: list[str] = []

    for spec in specs:
        if spec.module not in modules:
            modules[spec.module] = _load_module(spec.module, search, diagnostics)
        desc = modules[spec.module]
        if desc is None:
            failed.append(spec.label)
            continue

        node = desc.root(spec.name)
        if node is None:
            diagnostics.error(
                "configuration",
                spec.label,
                f"{spec.name} is not a top-level resource class in {spec.module}",
            )
            failed.append(spec.label)
            continue

        pairs.append((node, desc.scope))
        pair_labels.append(spec.label)

    compiled = compile_roots(pairs, diagnostics)
    compiled_labels = {f"{c.module}:{c.root.name}" for c in compiled}
    failed.extend(label for label in pair_labels if label not in compiled_labels)

    outputs = [emit_client_module(c, transport_module) for c in compiled]

    written: list[str] = []
    unchanged: list[str] = []
    if write and out_path is not None:
        out_path.mkdir(parents=True, exist_ok=True)
        for emitted in outputs:
            path = out_path / emitted.filename
            if path.is_file() and path.read_text(encoding="utf-8") == emitted.source:
                unchanged.append(str(path))
                continue
            path.write_text(emitted.source, encoding="utf-8")
            written.append(str(path))
            logger.info("wrote %s (%d operation(s))", path, emitted.operations)

    logger.info(
        "generate: %d root(s), %d output(s), %d written, %d unchanged, %d failed, %d diagnostic(s)",
        len(specs),
        len(outputs),
        len(written),
        len(unchanged),
        len(failed),
        len(diagnostics),
    )

    return GenerateResult(
        roots=[s.label for s in specs],
        outputs=outputs,
        written=written,
        unchanged=unchanged,
        failed_roots=failed,
        diagnostics=diagnostics,
        out_dir=str(out_path) if out_path is not None else None,
        mode="write" if write else "check",
    )


def _load_module(
    module: str,
    search: list[Path],
    diagnostics: Diagnostics,
) -> Optional[DescriptorModule]:
    source = find_module_source(module, search)
    if source is None:
        where = ", ".join(str(p) for p in search) or "<none>"
        diagnostics.error("configuration", module, f"module not found in source roots: {where}")
        return None
    logger.info("reading descriptors from %s", source.path)
    return extract_descriptors_from_file(source.path, module, diagnostics, is_package=source.is_package)


def run_compile(
    root: str,
    source_roots: Optional[Iterable[Path]] = None,
    settings: Optional[Settings] = None,
) -> tuple[Optional[CompiledRoot], Diagnostics]:
    """Compile a single root without emitting anything."""
    settings = settings or get_settings()
    search = [Path(p) for p in (source_roots if source_roots is not None else settings.source_roots)]
    diagnostics = Diagnostics()

    try:
        spec = parse_root_spec(root)
    except ValueError as exc:
        diagnostics.error("configuration", root, str(exc))
        return None, diagnostics

    desc = _load_module(spec.module, search, diagnostics)
    if desc is None:
        return None, diagnostics
    node = desc.root(spec.name)
    if node is None:
        diagnostics.error(
            "configuration",
            spec.label,
            f"{spec.name} is not a top-level resource class in {spec.module}",
        )
        return None, diagnostics

    compiled = compile_roots([(node, desc.scope)], diagnostics)
    return (compiled[0] if compiled else None), diagnostics
