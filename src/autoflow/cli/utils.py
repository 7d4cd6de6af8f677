"""
CLI utility helpers — context construction and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

import click
import typer
from rich.console import Console
from rich.table import Table

from autoflow.core.logging import configure_logging
from autoflow.core.settings import AutomationSettings, get_settings
from autoflow.ops.context import OperationContext
from autoflow.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Context helper ───────────────────────────────────────────────────────


def make_context(
    *,
    verbose: bool = False,
    as_json: bool = False,
    settings: AutomationSettings | None = None,
) -> OperationContext:
    """Configure logging and build an ``OperationContext`` for a CLI command.

    Progress lines go to stdout, or to stderr when ``--json`` keeps stdout
    for the payload.
    """
    settings = settings or get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
    )
    sink = err_console if as_json else console

    def report(message: str) -> None:
        sink.print(message, markup=False, highlight=False)

    return OperationContext(settings=settings, caller="cli", reporter=report)


# ── Entry point ──────────────────────────────────────────────────────────


def run_app(app: typer.Typer) -> None:
    """Run *app* as a console script.

    Click exits 2 on usage errors; every failure here exits 1, the same
    code a failed operation uses.
    """
    try:
        code = app(standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(1) from None
    except click.exceptions.Abort:
        err_console.print("Aborted.")
        raise SystemExit(1) from None
    raise SystemExit(code if isinstance(code, int) else 0)


# ── Rendering ────────────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Flatten a payload into a dict for key/value rendering."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
    render: Callable[[Any], None] | None = None,
) -> None:
    """Render an ``OperationResult`` to the terminal.

    Failures print in red on stderr and exit with status 1. A failed result
    that still carries data (a failed run report) is rendered first.
    """
    data = result.data

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        if not result.success:
            raise typer.Exit(code=1)
        return

    if data is not None:
        if render is not None:
            render(data)
        elif isinstance(data, list):
            if not data:
                console.print("[dim]No items.[/dim]")
            else:
                _print_table(data, title=title)
        else:
            _print_dict(_to_dict(data), title=title)

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning}")

    if not result.success:
        err = result.error
        msg = err.message if err else "Unknown error"
        code = err.code if err else "ERROR"
        err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
        raise typer.Exit(code=1)


def fail(message: str, code: str = "VALIDATION_FAILED") -> None:
    """Report a usage problem detected in the CLI layer and exit 1."""
    err_console.print(f"[bold red]Error[/bold red] ({code}): {message}")
    raise typer.Exit(code=1)


def parse_assignments(pairs: list[str] | None) -> dict[str, str]:
    """``["K=V", ...]`` → ``{"K": "V"}``."""
    variables: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            fail(f"Expected KEY=VALUE, got {pair!r}")
        variables[key] = value
    return variables


# ── Printers ─────────────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """One row per item; columns come from the first item."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Print *data* as an indented ``key: value`` listing."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
