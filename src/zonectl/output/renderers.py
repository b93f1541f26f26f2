"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from zonectl.output.console import create_console, get_output, style_for_kind

if TYPE_CHECKING:
    from rich.console import Console

    from zonectl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    zones = result.data.get("zones")
    if isinstance(zones, list):
        return "\n".join(str(z.get("id", "")) for z in zones)
    zone = result.data.get("zone")
    if isinstance(zone, dict) and "id" in zone:
        return str(zone["id"])
    if "balance" in result.data:
        return str(result.data["balance"])
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _fmt_num(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _fmt_point(point: dict[str, Any]) -> str:
    return ", ".join(_fmt_num(point[axis]) for axis in ("x", "y", "z") if axis in point)


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="zone.ok"), Text(f"  {result.op}", style="zone.op"), sep="")


def _field(console: Console, key: str, value: Any, style: str = "") -> None:
    k = Text(f"  {key}: ", style="zone.key")
    if not style and (key == "id" or key.endswith("_id")):
        style = "zone.id"
    console.print(k, Text(str(value), style=style), sep="")


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


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    prefix = " " * indent
    duration = span_data.get("duration_ms", 0.0)
    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {span_data.get('name', '?')}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{k}={v}" for k, v in annotations.items()) + ")"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _render_warnings(console: Console, result: ServiceResult) -> None:
    for warning in result.warnings:
        console.print(Text("  warning: ", style="zone.warning"), Text(warning), sep="")


def _zone_fields(console: Console, zone: dict[str, Any]) -> None:
    _field(console, "id", zone.get("id", ""))
    _field(console, "name", zone.get("name", ""), "zone.name")
    _field(console, "owner", zone.get("owner_group_id", ""))
    center = zone.get("center")
    if isinstance(center, dict):
        _field(console, "center", _fmt_point(center), "zone.coords")
    corners = zone.get("corners") or []
    if len(corners) == 4:
        x_range = f"{_fmt_num(corners[0]['x'])}..{_fmt_num(corners[1]['x'])}"
        z_range = f"{_fmt_num(corners[0]['z'])}..{_fmt_num(corners[2]['z'])}"
        _field(console, "bounds", f"x {x_range}, z {z_range}", "zone.coords")
    if zone.get("description"):
        _field(console, "description", zone["description"])
    if zone.get("for_sale"):
        _field(console, "price", zone.get("price", 0), "zone.price")


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(
        Text("ERROR", style="zone.error"),
        Text(f"  {result.op}", style="zone.op"),
        Text(" — "),
        Text(msg),
        sep="",
    )
    zone = result.data.get("zone")
    if isinstance(zone, dict):
        _field(console, "committed", zone.get("id", ""))
    if err and err.code == "RECONCILIATION_FAILED" and err.detail:
        _field(console, "applied", err.detail.get("applied", 0))
        _field(console, "failed_at", err.detail.get("label", ""))
    _render_warnings(console, result)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Zone renderers ────────────────────────────────────────────────────


def _render_zone(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render create_zone / zone_info / modify_zone."""
    _status_line(console, result)
    d = result.data
    _zone_fields(console, d.get("zone", {}))
    for key in ("team", "balance", "primitives", "field", "value"):
        if key in d:
            _field(console, key, d[key])
    zone = d.get("zone", {})
    if verbose and zone:
        _field(console, "created", f"{zone.get('created_at')} by {zone.get('created_by')}")
    if verbose:
        _render_meta(console, result)


def _render_zone_table(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list_zones / all_zones as a table."""
    zones = result.data.get("zones", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="zone.id", no_wrap=True)
    table.add_column("Name", style="zone.name")
    table.add_column("Owner")
    table.add_column("Center", style="zone.coords")
    table.add_column("Price", style="zone.price", justify="right")
    if verbose:
        table.add_column("Created", style="dim")

    for zone in zones:
        row = [
            str(zone.get("id", "")),
            str(zone.get("name", "")),
            str(zone.get("owner_group_id", "")),
            _fmt_point(zone.get("center", {})),
            str(zone.get("price", 0)) if zone.get("for_sale") else "-",
        ]
        if verbose:
            row.append(str(zone.get("created_at", "")))
        table.add_row(*row)

    console.print(table)
    console.print(f"\n{result.data.get('count', len(zones))} zones")
    if verbose:
        _render_meta(console, result)


def _primitive_table(title: str, primitives: list[dict[str, Any]]) -> Table:
    table = Table(title=title, show_header=True, pad_edge=False, expand=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Kind")
    table.add_column("Label")
    table.add_column("Command", overflow="fold")
    for n, p in enumerate(primitives):
        kind = str(p.get("kind", ""))
        table.add_row(
            str(n),
            Text(kind, style=style_for_kind(kind)),
            str(p.get("label", "")),
            str(p.get("command", "")),
        )
    return table


def _render_plan(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _field(console, "zone_id", result.data.get("zone_id", ""))
    console.print(_primitive_table("apply", result.data.get("apply", [])))
    console.print(_primitive_table("teardown", result.data.get("teardown", [])))


def _render_deletion(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render request_delete / confirm_delete."""
    _status_line(console, result)
    d = result.data
    for key in ("zone_id", "name", "expires_at", "primitives_removed"):
        if key in d:
            _field(console, key, d[key])
    if result.op == "request_delete":
        console.print(
            Text(
                f"  Confirm within {_fmt_num(d.get('window_seconds', ''))}s: "
                f"zonectl zones confirm-delete {d.get('zone_id', '')}",
                style="zone.warning",
            )
        )
    if verbose:
        _render_meta(console, result)


def _render_team(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    team = result.data.get("team", {})
    _field(console, "id", team.get("id", ""))
    _field(console, "name", team.get("name", ""), "zone.name")
    _field(console, "leader", team.get("leader", ""))
    members = [m for m in team.get("members", []) if m != team.get("leader")]
    _field(console, "members", ", ".join(members) if members else "-")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "create_zone": _render_zone,
    "zone_info": _render_zone,
    "modify_zone": _render_zone,
    "list_zones": _render_zone_table,
    "all_zones": _render_zone_table,
    "plan": _render_plan,
    "request_delete": _render_deletion,
    "confirm_delete": _render_deletion,
    "register_team": _render_team,
    "team_info": _render_team,
}
