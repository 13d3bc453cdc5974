import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from workgraph_view.cli import app


runner = CliRunner()


def _json(r):
    assert r.exit_code == 0, r.output
    payload = json.loads(r.stdout)
    assert payload["tool"] == "workgraph"
    assert payload["ok"] is True
    return payload


def test_cli_rows_json():
    r = runner.invoke(app, ["rows", "examples/basic-graph.yaml", "--format", "json"])
    payload = _json(r)
    assert payload["command"] == "rows"
    assert payload["row_count"] == 9
    first = payload["rows"][0]
    assert first == {
        "id": "ws-a",
        "type": "workstream",
        "title": "Platform",
        "status": "active",
        "depth": 0,
        "canCollapse": True,
        "progress": 33,
    }


def test_cli_rows_filters_and_collapse():
    r = runner.invoke(
        app,
        ["rows", "examples/basic-graph.yaml", "--status", "done", "--collapse", "m-1", "--format", "json"],
    )
    payload = _json(r)
    assert [row["id"] for row in payload["rows"]] == ["ws-a", "m-1"]


def test_cli_rows_config_file():
    r = runner.invoke(
        app, ["rows", "examples/basic-graph.yaml", "--config", "examples/view-config.yaml", "--format", "json"]
    )
    payload = _json(r)
    assert [row["id"] for row in payload["rows"]] == ["ws-a", "m-1", "t-1"]


def test_cli_rows_state_file_persists_and_prunes(tmp_path: Path):
    state = tmp_path / "ui.yaml"
    state.write_text(yaml.safe_dump({"selected:init-1": ["t-1", "t-4"]}), encoding="utf-8")
    r = runner.invoke(
        app,
        [
            "rows",
            "examples/basic-graph.yaml",
            "--state-file",
            str(state),
            "--scope",
            "init-1",
            "--collapse",
            "ws-b",
            "--format",
            "json",
        ],
    )
    payload = _json(r)
    assert payload["selected"] == ["t-1"]

    saved = yaml.safe_load(state.read_text(encoding="utf-8"))
    assert saved["selected:init-1"] == ["t-1"]
    assert saved["expanded:init-1"] == ["m-1", "m-2", "ws-a"]


def test_cli_rows_text_table():
    r = runner.invoke(app, ["rows", "examples/basic-graph.yaml"])
    assert r.exit_code == 0, r.output
    assert "rows (9)" in r.stdout


def test_cli_rows_bad_sort():
    r = runner.invoke(app, ["rows", "examples/basic-graph.yaml", "--sort", "deadline"])
    assert r.exit_code == 2
    assert "E_VIEW_CONFIG" in r.output


def test_cli_unknown_format():
    r = runner.invoke(app, ["rows", "examples/basic-graph.yaml", "--format", "xml"])
    assert r.exit_code == 2
    assert "E_CLI_UNKNOWN_FORMAT" in r.output


def test_cli_missing_file():
    r = runner.invoke(app, ["rows", "examples/nope.yaml"])
    assert r.exit_code == 1
    assert "E_FILE_NOT_FOUND" in r.output


def test_cli_invalid_graph():
    r = runner.invoke(app, ["rows", "examples/invalid-duplicate-id.yaml"])
    assert r.exit_code == 2
    assert "E_DUPLICATE_ID" in r.output


def test_cli_highlight_and_focus():
    payload = _json(runner.invoke(app, ["highlight", "examples/basic-graph.yaml", "t-4", "--format", "json"]))
    assert payload["highlighted"] == ["t-1", "t-2", "t-4"]

    payload = _json(runner.invoke(app, ["focus", "examples/focus-graph.json", "W", "--format", "json"]))
    assert "W2" in payload["visible"]
    assert "W3" not in payload["visible"]


def test_cli_depmap_related_only():
    r = runner.invoke(
        app,
        ["depmap", "examples/basic-graph.yaml", "--select", "t-1", "--related-only", "--format", "json"],
    )
    payload = _json(r)
    assert payload["levels"]["task"] == ["t-1", "t-2"]
    assert payload["edges"] == [{"from": "t-2", "to": "t-1"}]


def test_cli_progress():
    payload = _json(runner.invoke(app, ["progress", "examples/basic-graph.yaml", "--format", "json"]))
    assert payload["progress"]["ws-a"] == 33
    assert payload["initiative"] == 20

    r = runner.invoke(app, ["progress", "examples/basic-graph.yaml"])
    assert "Initiative: 20%" in r.stdout


def test_cli_groups():
    r = runner.invoke(
        app,
        ["groups", "examples/basic-graph.yaml", "--by", "date", "--now", "2026-06-01T09:00:00", "--format", "json"],
    )
    payload = _json(r)
    assert payload["groups"] == [{"key": "this_month", "label": "This Month", "count": 1, "ids": ["init-1"]}]

    r = runner.invoke(app, ["groups", "examples/basic-graph.yaml", "--by", "owner"])
    assert r.exit_code == 2


def test_cli_select_range_and_bulk():
    r = runner.invoke(
        app,
        [
            "select",
            "examples/basic-graph.yaml",
            "--click",
            "m-1",
            "--click",
            "+t-3",
            "--click",
            "!t-2",
            "--bulk-status",
            "done",
            "--format",
            "json",
        ],
    )
    payload = _json(r)
    assert payload["selected"] == ["m-1", "t-1", "t-3"]
    assert payload["bulk"]["mode"] == "update"
    assert payload["bulk"]["items"][0] == {"type": "milestone", "id": "m-1"}


def test_cli_reorder():
    r = runner.invoke(
        app,
        [
            "reorder",
            "examples/basic-graph.yaml",
            "--order",
            "init-1:gone,init-1:ws-b",
            "--format",
            "json",
        ],
    )
    payload = _json(r)
    assert payload["order"] == ["init-1:ws-b", "init-1:ws-a"]
    assert payload["intent"] is None

    r = runner.invoke(
        app, ["reorder", "examples/basic-graph.yaml", "--move", "init-1:ws-b", "--to", "0", "--format", "json"]
    )
    payload = _json(r)
    assert payload["intent"]["type"] == "reorder"
    assert payload["intent"]["order"][0] == {"initiativeId": "init-1", "workstreamId": "ws-b"}


def test_cli_lint_success():
    r = runner.invoke(app, ["lint", "examples/basic-graph.yaml"])
    assert r.exit_code == 0
    assert "OK:" in r.stdout


def test_cli_lint_json_failure_contains_codes():
    r = runner.invoke(app, ["lint", "examples/cycle-graph.yaml", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["errors"][0]["code"] == "L_CYCLE_DETECTED"
    assert payload["errors"][0]["severity"] == "warning"


def test_cli_lint_json_load_error():
    r = runner.invoke(app, ["lint", "examples/nope.yaml", "--format", "json"])
    assert r.exit_code == 1
    payload = json.loads(r.stdout)
    assert payload["errors"][0]["source"] == "load"
