from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional


@dataclass(frozen=True)
class ModuleSource:
    module: str
    path: Path
    is_package: bool


def find_module_source(module: str, search_paths: Iterable[Path]) -> Optional[ModuleSource]:
    """
    Locate the source file of a dotted module name without importing anything.
    First match wins, in `search_paths` order: `a/b.py` before `a/b/__init__.py`.
    """
    parts = module.split(".")
    if not all(p.isidentifier() for p in parts):
        return None

    for base in search_paths:
        base = Path(base).expanduser().resolve()
        as_file = base.joinpath(*parts[:-1], f"{parts[-1]}.py")
        if as_file.is_file():
            return ModuleSource(module=module, path=as_file, is_package=False)
        as_package = base.joinpath(*parts, "__init__.py")
        if as_package.is_file():
            return ModuleSource(module=module, path=as_package, is_package=True)
    return None
