"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Only the ``plan`` and ``update`` ops exist.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from modrollout.output.console import create_console, get_output, style_for_reason

if TYPE_CHECKING:
    from rich.console import Console

    from modrollout.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS[result.op]
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"
    if result.op == "update":
        return f"OK: update {result.data.get('updated_count', 0)}"
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="mr.ok")
    op = Text(f"  {result.op}", style="mr.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="mr.key")
    console.print(k, Text(str(value)), sep="", end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 60_000:
        style = "bold red"
    elif duration > 1000:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>10.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _version(value: Any) -> str:
    return "-" if value is None else str(value)


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="mr.error")
    op = Text(f"  {result.op}", style="mr.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))

    if err and err.code == "UNSATISFIABLE_DEPENDENCIES":
        for name, deps in err.detail.get("stuck", {}).items():
            console.print(f"  [mr.module]{name}[/mr.module] waits on {', '.join(deps)}")
        for cycle in err.detail.get("cycles", []):
            console.print(f"  cycle: {' -> '.join([*cycle, cycle[0]])}")

    if "updated_count" in result.data:
        _field(console, "updated_before_abort", result.data["updated_count"])

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Plan renderer ─────────────────────────────────────────────────────


def _render_plan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the layer sequence as a table, one row per module."""
    d = result.data
    _status_line(console, result)
    _field(console, "installed", d.get("installed_count", 0))
    _field(console, "layers", d.get("layer_count", 0))
    _field(console, "dependency_edges", d.get("dependency_edges", 0))

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Layer", style="mr.layer", justify="right")
    table.add_column("Module", style="mr.module", no_wrap=True)
    table.add_column("Installed", style="mr.version")
    table.add_column("Latest", style="mr.version")
    table.add_column("Action")

    for layer in d.get("layers", []):
        for module in layer.get("modules", []):
            if module.get("up_to_date"):
                action = Text("up to date", style="mr.reason.up-to-date")
            elif module.get("latest_version") is None:
                action = Text("skip", style="mr.reason.unresolved")
            else:
                action = Text("update")
            table.add_row(
                str(layer.get("index", "")),
                str(module.get("name", "")),
                _version(module.get("installed_version")),
                _version(module.get("latest_version")),
                action,
            )
    console.print()
    console.print(table)

    for name in d.get("excluded", []):
        console.print(f"  [mr.warning]excluded[/mr.warning] {name}")
    if verbose:
        _render_meta(console, result)


# ── Update renderer ───────────────────────────────────────────────────


def _render_update(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the rollout summary plus the per-module changes."""
    d = result.data
    _status_line(console, result)
    _field(console, "updated_count", d.get("updated_count", 0))
    _field(console, "skipped", len(d.get("skipped", [])))
    _field(console, "batches", d.get("batches", 0))
    if d.get("dry_run"):
        _field(console, "dry_run", True)

    changes = d.get("planned") if d.get("dry_run") else d.get("updated")
    if changes:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Module", style="mr.module", no_wrap=True)
        table.add_column("From", style="mr.version")
        table.add_column("To", style="mr.version")
        table.add_column("State")
        for change in changes:
            table.add_row(
                str(change.get("name", "")),
                _version(change.get("from_version")),
                _version(change.get("to_version")),
                str(change.get("state", "planned")),
            )
        console.print()
        console.print(table)

    if verbose:
        for skip in d.get("skipped", []):
            reason = str(skip.get("reason", ""))
            style = style_for_reason(reason)
            tag = f"[{style}]{reason}[/{style}]" if style else reason
            console.print(f"  skipped {skip.get('name')} ({tag})")
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "plan": _render_plan,
    "update": _render_update,
}
