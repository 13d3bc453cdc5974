from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from workgraph_view.core.config.ui_state import UiStateStore, storage_key
from workgraph_view.core.config.view_config import ViewConfig, load_view_config, merged_config
from workgraph_view.core.errors import GraphError, GraphLoadError, GraphValidationError, ViewConfigError
from workgraph_view.core.index.graph_index import build_index
from workgraph_view.core.io.load_graph import load_graph
from workgraph_view.core.lint.lint_graph import lint_graph
from workgraph_view.core.model import GraphSnapshot, Row
from workgraph_view.core.progress.rollup import initiative_progress, rollup_progress
from workgraph_view.core.queue.reorder import QueueOrderState
from workgraph_view.core.reach.reachability import connected_highlight, focus_scope
from workgraph_view.core.rows.dependency_map import LEVELS, dependency_map
from workgraph_view.core.rows.grouping import filter_initiatives, group_initiatives
from workgraph_view.core.rows.visibility import compute_rows, default_expanded_ids, visible_row_ids
from workgraph_view.core.selection.bulk import build_bulk_request
from workgraph_view.core.selection.range_select import RangeSelection, prune_selection
from workgraph_view.core.status import format_status
from workgraph_view.core.validate.parse_graph import parse_graph

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

FORMATS = ("text", "json")


@app.callback()
def _callback() -> None:
    """Work graph view CLI."""
    return


def _check_format(format: str) -> None:
    if format not in FORMATS:
        _print_errors(
            [
                GraphValidationError(
                    code="E_CLI_UNKNOWN_FORMAT",
                    message=f"unknown format: {format} (choose one of: text, json)",
                    file=None,
                    path="format",
                )
            ]
        )
        raise typer.Exit(code=2)


def _load_snapshot(path: str) -> GraphSnapshot:
    try:
        doc = load_graph(path)
    except GraphLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    graph, errors = parse_graph(doc)
    if errors or graph is None:
        _print_errors(list(errors))
        raise typer.Exit(code=2)
    return graph


def _config_error(e: ViewConfigError, path: str) -> None:
    _print_errors([GraphValidationError(code="E_VIEW_CONFIG", message=str(e), file=None, path=path)])
    raise typer.Exit(code=2)


def _emit(command: str, body: dict[str, Any]) -> None:
    payload = {"tool": "workgraph", "command": command, "ok": True}
    payload.update(body)
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _row_item(row: Row, progress: dict[str, int]) -> dict[str, Any]:
    return {
        "id": row.node.id,
        "type": row.node.type,
        "title": row.node.title,
        "status": row.node.status,
        "depth": row.depth,
        "canCollapse": row.can_collapse,
        "progress": progress.get(row.node.id),
    }


@app.command("rows")
def rows_cmd(
    path: str = typer.Argument(..., help="Path to a graph document (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    search: Optional[str] = typer.Option(None, "--search", help="Title/assignee substring"),
    status: Optional[list[str]] = typer.Option(None, "--status", help="Status filter (repeatable)"),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort field: title|status|priority|eta"),
    direction: Optional[str] = typer.Option(None, "--direction", help="Sort direction: asc|desc"),
    config: Optional[str] = typer.Option(None, "--config", help="YAML view config file"),
    state_file: Optional[str] = typer.Option(
        None, "--state-file", help="YAML file holding expand/selection state"
    ),
    scope: Optional[str] = typer.Option(None, "--scope", help="State key scope (e.g. initiative id)"),
    collapse: Optional[list[str]] = typer.Option(None, "--collapse", help="Collapse this row id"),
    expand: Optional[list[str]] = typer.Option(None, "--expand", help="Expand this row id"),
) -> None:
    """Print the filtered, ordered, depth-tagged hierarchy rows."""
    _check_format(format)
    graph = _load_snapshot(path)

    try:
        base = load_view_config(config) if config else ViewConfig()
        cfg = merged_config(
            base,
            search_query=search,
            status_filters=status or None,
            sort_field=sort,
            sort_direction=direction,
        )
    except FileNotFoundError:
        _print_errors(
            [
                GraphLoadError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config}",
                    file=None,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=1)
    except ViewConfigError as e:
        _config_error(e, "config")

    try:
        store = UiStateStore(state_file) if state_file else None
    except ViewConfigError as e:
        _config_error(e, "state_file")
    expanded_key = storage_key("expanded", scope)
    selected_key = storage_key("selected", scope)

    expanded = cfg.expanded_ids
    if store is not None and store.get(expanded_key) is not None:
        expanded = store.get(expanded_key)
    if expanded is None:
        expanded = default_expanded_ids(graph.nodes)
    expanded = (set(expanded) | set(expand or [])) - set(collapse or [])
    cfg = merged_config(cfg, expanded_ids=expanded)

    index = build_index(graph.nodes)
    rows = compute_rows(graph.nodes, graph.edges, cfg, index=index)
    progress = rollup_progress(graph.nodes, index=index)

    selected = cfg.selected_ids
    if store is not None and store.get(selected_key) is not None:
        selected = store.get(selected_key)
    pruned = prune_selection(selected, set(visible_row_ids(rows)))

    if store is not None:
        store.put(expanded_key, expanded)
        store.put(selected_key, set(pruned))
        store.save()

    if format == "json":
        _emit(
            "rows",
            {
                "row_count": len(rows),
                "rows": [_row_item(r, progress) for r in rows],
                "selected": sorted(pruned),
            },
        )
        return

    table = Table(title=f"rows ({len(rows)})")
    table.add_column("Item")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Progress")
    table.add_column("Priority")
    for r in rows:
        marker = ("- " if r.node.id in expanded else "+ ") if r.can_collapse else "  "
        pct = progress.get(r.node.id)
        table.add_row(
            "  " * r.depth + marker + r.node.title,
            r.node.type,
            format_status(r.node.status),
            f"{pct}%" if pct is not None else "",
            str(r.node.priority_num),
        )
    console.print(table)


@app.command("highlight")
def highlight_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    node_id: str = typer.Argument(..., help="Selected node id"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """List every node connected to NODE_ID through dependencies, either direction."""
    _check_format(format)
    graph = _load_snapshot(path)
    ids = connected_highlight(node_id, graph.nodes)

    if format == "json":
        _emit("highlight", {"selected": node_id, "highlighted": sorted(ids)})
        return
    for nid in sorted(ids):
        node = graph.nodes_by_id.get(nid)
        typer.echo(f"{nid}\t{node.title if node else '(unknown)'}")


@app.command("focus")
def focus_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    workstream_id: Optional[str] = typer.Argument(None, help="Focused workstream id"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """List node ids visible while WORKSTREAM_ID is focused (all nodes when omitted)."""
    _check_format(format)
    graph = _load_snapshot(path)
    ids = focus_scope(workstream_id, graph.nodes, graph.edges)

    if format == "json":
        _emit("focus", {"focused": workstream_id, "visible": sorted(ids)})
        return
    for nid in sorted(ids):
        typer.echo(nid)


@app.command("depmap")
def depmap_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    focus: Optional[str] = typer.Option(None, "--focus", help="Focused workstream id"),
    select: Optional[str] = typer.Option(None, "--select", help="Selected node id"),
    related_only: bool = typer.Option(False, "--related-only", help="Only the selection and its neighbours"),
    query: str = typer.Option("", "--query", help="Title substring"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Dependency map: nodes by level plus the edges between them."""
    _check_format(format)
    graph = _load_snapshot(path)
    dm = dependency_map(
        graph.nodes,
        graph.edges,
        focused_workstream_id=focus,
        selected_id=select,
        related_only=related_only,
        query=query,
    )

    if format == "json":
        _emit(
            "depmap",
            {
                "levels": {lvl: [n.id for n in dm.nodes_by_level[lvl]] for lvl in LEVELS},
                "edges": [{"from": e.from_id, "to": e.to_id} for e in dm.edges],
                "related": sorted(dm.related_ids),
            },
        )
        return
    for lvl in LEVELS:
        typer.echo(f"{lvl}: {', '.join(n.title for n in dm.nodes_by_level[lvl])}")
    typer.echo(f"edges: {len(dm.edges)}")


@app.command("progress")
def progress_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    health: Optional[float] = typer.Option(None, "--health", help="Fallback initiative health percent"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Roll-up completion for milestones, workstreams and the initiative."""
    _check_format(format)
    graph = _load_snapshot(path)
    progress = rollup_progress(graph.nodes)
    overall = initiative_progress(graph.nodes, health)

    if format == "json":
        _emit("progress", {"progress": progress, "initiative": overall})
        return
    for nid in sorted(progress):
        typer.echo(f"{graph.nodes_by_id[nid].title}: {progress[nid]}%")
    typer.echo(f"Initiative: {overall}%")


@app.command("groups")
def groups_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    by: str = typer.Option("status", "--by", help="Group by: status|category|date|none"),
    search: str = typer.Option("", "--search", help="Initiative search tokens"),
    status: Optional[list[str]] = typer.Option(None, "--status", help="Status filter (repeatable)"),
    date_field: str = typer.Option("target", "--date-field", help="target|created|updated"),
    date_preset: str = typer.Option("any", "--date-preset", help="any|missing|overdue|today|..."),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (ISO-8601); default: now"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Group initiatives by status, category or target-date bucket."""
    _check_format(format)
    graph = _load_snapshot(path)

    ref: Optional[datetime] = None
    if now:
        try:
            ref = datetime.fromisoformat(now)
        except ValueError:
            _config_error(ViewConfigError(f"invalid --now timestamp: {now}"), "now")

    try:
        initiatives = filter_initiatives(
            graph.nodes,
            search_query=search,
            status_filters=status or [],
            date_field=date_field,
            date_preset=date_preset,
            now=ref,
        )
        groups = group_initiatives(initiatives, by, now=ref)
    except ViewConfigError as e:
        _config_error(e, "by")

    if format == "json":
        _emit(
            "groups",
            {
                "group_by": by,
                "groups": [
                    {"key": g.key, "label": g.label, "count": g.count, "ids": [n.id for n in g.nodes]}
                    for g in groups
                ],
            },
        )
        return
    for g in groups:
        typer.echo(f"{g.label} ({g.count}): {', '.join(n.title for n in g.nodes)}")


@app.command("select")
def select_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    click: list[str] = typer.Option(
        ..., "--click", help="Click a row: ID, +ID (shift-click), !ID (uncheck), !+ID"
    ),
    search: Optional[str] = typer.Option(None, "--search", help="Title/assignee substring"),
    bulk_status: Optional[str] = typer.Option(
        None, "--bulk-status", help="Also print the bulk update request for this status"
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Replay row clicks (with shift ranges) over the visible rows."""
    _check_format(format)
    graph = _load_snapshot(path)
    cfg = merged_config(ViewConfig(), search_query=search)
    visible = visible_row_ids(compute_rows(graph.nodes, graph.edges, cfg))

    selection = RangeSelection()
    selected: set[str] = set()
    for token in click:
        checked = not token.startswith("!")
        token = token.lstrip("!")
        shift = token.startswith("+")
        selected = selection.handle_select(visible, selected, token.lstrip("+"), checked, shift)
    selected = set(prune_selection(selected, set(visible)))
    ordered = [nid for nid in visible if nid in selected]

    body: dict[str, Any] = {"selected": ordered}
    if bulk_status:
        intent = build_bulk_request(
            ordered, mode="update", nodes_by_id=graph.nodes_by_id, updates={"status": bulk_status}
        )
        body["bulk"] = intent.to_payload()

    if format == "json":
        _emit("select", body)
        return
    typer.echo(f"Selected ({len(ordered)}): {', '.join(ordered)}")
    if "bulk" in body:
        typer.echo(json.dumps(body["bulk"], sort_keys=True))


@app.command("reorder")
def reorder_cmd(
    path: str = typer.Argument(..., help="Path to a graph document with a queue"),
    order: Optional[str] = typer.Option(
        None, "--order", help="Remembered order: comma-separated initiativeId:workstreamId keys"
    ),
    move: Optional[str] = typer.Option(None, "--move", help="Queue key to drag"),
    to: int = typer.Option(0, "--to", help="Drop index for --move"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Reconcile a remembered queue order with the document's queue, optionally applying a drag."""
    _check_format(format)
    graph = _load_snapshot(path)

    state = QueueOrderState(keys=[k.strip() for k in (order or "").split(",") if k.strip()])
    state.sync(graph.queue)
    intent = state.drop(move, to) if move else None

    if format == "json":
        _emit(
            "reorder",
            {
                "order": list(state.keys),
                "intent": {"type": intent.type, "order": intent.order} if intent else None,
            },
        )
        return
    for i, item in enumerate(state.items()):
        pin = " (pinned)" if item.is_pinned else ""
        typer.echo(f"{i + 1}. {item.title or item.workstream_id}{pin}")


@app.command("lint")
def lint_cmd(
    path: str = typer.Argument(..., help="Path to a graph document"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Report dangling references and dependency cycles (the engine tolerates both)."""
    _check_format(format)

    def _emit_json(ok: bool, errors: list[GraphError], exit_code: int) -> None:
        payload = {
            "tool": "workgraph",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [e.to_item() for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_graph(path)
    except GraphLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    graph, v_errors = parse_graph(doc)
    errors: list[GraphError] = list(v_errors)
    if graph is not None:
        errors.extend(lint_graph(graph, file=doc.get("__file__")))

    if format == "json":
        _emit_json(not errors, errors, 2 if errors else 0)
    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


def _print_errors(errors: list[GraphError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="workgraph")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
