from workgraph_view.core.errors import GraphLoadError, GraphValidationError


def test_load_error_item():
    e = GraphLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file="g.yaml")
    assert e.to_item() == {
        "code": "E_FILE_NOT_FOUND",
        "message": "file does not exist",
        "file": "g.yaml",
        "path": None,
        "severity": "error",
        "source": "load",
    }


def test_lint_codes_are_warnings():
    lint = GraphValidationError(code="L_CYCLE_DETECTED", message="cycle", path="nodes[1]")
    shape = GraphValidationError(code="E_DUPLICATE_ID", message="dup", path="nodes[1].id")
    assert (lint.source, lint.severity) == ("lint", "warning")
    assert (shape.source, shape.severity) == ("validate", "error")
    assert str(lint) == "nodes[1]: L_CYCLE_DETECTED: cycle"
