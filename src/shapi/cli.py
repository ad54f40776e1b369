from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from shapi.config import get_settings
from shapi.domain.diagnostics import Diagnostics
from shapi.domain.models import CompiledNode
from shapi.logging_config import setup_logging
from shapi.orchestrator.pipeline import GenerateResult, run_compile, run_generate


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()
err_console = Console(stderr=True)


@app.callback()
def main_options(
    log_level: Optional[str] = typer.Option(None, help="Log level (default from SHAPI_LOG_LEVEL)"),
) -> None:
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_format)


def _source_roots(src: Optional[list[str]]) -> list[Path]:
    paths = [Path(p).expanduser().resolve() for p in (src or get_settings().source_roots)]
    for p in paths:
        if not p.is_dir():
            raise typer.BadParameter(f"Source root is not a directory: {p}")
    return paths


@app.command()
def generate(
    roots: list[str] = typer.Argument(..., help="Root resources as package.module:RootClass"),
    out: str = typer.Option(..., "--out", "-o", help="Output directory for client modules"),
    src: Optional[list[str]] = typer.Option(None, "--src", help="Source root to search (repeatable)"),
    transport: Optional[str] = typer.Option(None, help="Module providing get/post transport primitives"),
) -> None:
    out_path = Path(out).expanduser().resolve()
    if out_path.exists() and not out_path.is_dir():
        raise typer.BadParameter(f"Output path is not a directory: {out_path}")

    result = run_generate(
        roots,
        out_dir=out_path,
        source_roots=_source_roots(src),
        transport_module=transport,
        write=True,
    )

    console.print(f"[bold green]shapi[/bold green] generate -> {out_path}")
    _print_outputs(result)
    _print_diagnostics(result.diagnostics)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def check(
    roots: list[str] = typer.Argument(..., help="Root resources as package.module:RootClass"),
    src: Optional[list[str]] = typer.Option(None, "--src", help="Source root to search (repeatable)"),
) -> None:
    """Run the generator without writing anything."""
    result = run_generate(roots, source_roots=_source_roots(src), write=False)

    console.print(f"[bold green]shapi[/bold green] check: {len(result.roots)} root(s)")
    _print_outputs(result)
    _print_diagnostics(result.diagnostics)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def tree(
    root: str = typer.Argument(..., help="Root resource as package.module:RootClass"),
    src: Optional[list[str]] = typer.Option(None, "--src", help="Source root to search (repeatable)"),
    format: str = typer.Option("tree", help="Output format: tree|json"),
) -> None:
    """Show the compiled hierarchy of one root with its bindings."""
    fmt = format.lower().strip()
    if fmt not in ("tree", "json"):
        raise typer.BadParameter("format must be one of: tree, json")

    compiled, diagnostics = run_compile(root, source_roots=_source_roots(src))

    if compiled is not None:
        if fmt == "json":
            console.print_json(json.dumps(compiled.root.model_dump(mode="json")))
        else:
            console.print(_render_tree(compiled.root))

    _print_diagnostics(diagnostics)
    if diagnostics.has_errors:
        raise typer.Exit(code=1)


# ----------------------------
# Rendering
# ----------------------------


def _print_outputs(result: GenerateResult) -> None:
    written = set(result.written)
    unchanged = set(result.unchanged)

    table = Table(show_header=True, header_style="bold")
    table.add_column("ROOT", no_wrap=True)
    table.add_column("MODULE")
    table.add_column("UNITS", justify="right")
    table.add_column("OPS", justify="right")
    table.add_column("STATUS", no_wrap=True)

    for o in result.outputs:
        path = str(Path(result.out_dir) / o.filename) if result.out_dir else ""
        if path in written:
            status = "[green]written[/green]"
        elif path in unchanged:
            status = "unchanged"
        else:
            status = "checked"
        table.add_row(f"{o.module}:{o.root}", o.module_name, str(o.units), str(o.operations), status)
    for label in result.failed_roots:
        table.add_row(label, "-", "-", "-", "[red]failed[/red]")

    console.print(table)


def _print_diagnostics(diagnostics: Diagnostics) -> None:
    if not len(diagnostics):
        return
    err_console.print("")
    err_console.print(f"[bold]Diagnostics:[/bold] {len(diagnostics)}")
    for d in diagnostics:
        color = "red" if d.severity == "error" else "yellow"
        err_console.print(f"  [{color}]{escape(d.render())}[/{color}]", highlight=False)


def _render_tree(node: CompiledNode, parent: Optional[Tree] = None) -> Tree:
    label = f"[bold]{node.name}[/bold]  [dim]{escape(node.segment)}[/dim]"
    branch = Tree(label) if parent is None else parent.add(label)
    for b in node.bindings:
        if b.verb == "GET":
            sig = f"GET -> ApiResponse[{b.result_type}, {b.error_type}]"
        else:
            sig = f"POST({b.param_type}) -> ApiResponse[{b.result_type}, {b.error_type}]"
        branch.add(f"[cyan]{escape(sig)}[/cyan]")
    for child in node.children:
        _render_tree(child, branch)
    return branch


def main() -> None:
    app()


if __name__ == "__main__":
    main()
