"""Tests for tool-parameter validation."""

import json

import pytest

from drawio_model import server
from drawio_model.validation import (
    ValidationError,
    validate_action,
    validate_assignment_dict,
    validate_bool,
    validate_cell_dict,
    validate_cell_type,
    validate_edit_dict,
    validate_group_dict,
    validate_int,
    validate_list,
    validate_non_empty_string,
    validate_number,
    validate_shape_assignment_dict,
    validate_shape_cell_dict,
    validate_string,
    _CELLS_ACTIONS,
    _DIAGRAM_ACTIONS,
)


def setup_function() -> None:
    server.reset_document()


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

class TestPrimitives:
    def test_non_empty_string(self) -> None:
        assert validate_non_empty_string("  abc ", "f") == "abc"
        with pytest.raises(ValidationError, match="'f' must be a non-empty string"):
            validate_non_empty_string("   ", "f")
        with pytest.raises(ValidationError):
            validate_non_empty_string(5, "f")

    def test_string(self) -> None:
        assert validate_string("", "f") == ""
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_string(" ", "f", allow_empty=False)
        with pytest.raises(ValidationError, match="got int"):
            validate_string(1, "f")

    def test_number(self) -> None:
        assert validate_number(3.5, "n") == 3.5
        with pytest.raises(ValidationError, match="must be a number"):
            validate_number("3", "n")
        with pytest.raises(ValidationError, match="must be a number"):
            validate_number(True, "n")
        with pytest.raises(ValidationError, match=">= 1"):
            validate_number(0, "n", min_val=1)

    def test_int(self) -> None:
        assert validate_int(5, "i", min_val=0, max_val=10) == 5
        with pytest.raises(ValidationError, match="must be an integer"):
            validate_int(1.5, "i")
        with pytest.raises(ValidationError, match="<= 10"):
            validate_int(11, "i", max_val=10)

    def test_bool(self) -> None:
        assert validate_bool(False, "b") is False
        with pytest.raises(ValidationError, match="must be a boolean"):
            validate_bool("true", "b")

    def test_list(self) -> None:
        assert validate_list([1], "l", min_length=1) == [1]
        with pytest.raises(ValidationError, match="must be a list"):
            validate_list(None, "l")
        with pytest.raises(ValidationError, match="at least 1 item"):
            validate_list([], "l", min_length=1)


class TestAction:
    def test_normalizes_case(self) -> None:
        assert validate_action(" Export ", "diagram", _DIAGRAM_ACTIONS) == "export"

    def test_missing(self) -> None:
        with pytest.raises(ValidationError, match="requires an 'action'"):
            validate_action("", "diagram", _DIAGRAM_ACTIONS)

    def test_unknown_lists_choices(self) -> None:
        with pytest.raises(ValidationError, match="Valid actions: add, delete"):
            validate_action("explode", "cells", _CELLS_ACTIONS)


def test_cell_type() -> None:
    assert validate_cell_type("edge") == "edge"
    with pytest.raises(ValidationError, match="cell_type"):
        validate_cell_type("layer")


# ---------------------------------------------------------------------------
# Item validators
# ---------------------------------------------------------------------------

class TestCellDict:
    def test_vertex_ok(self) -> None:
        validate_cell_dict({"text": "A", "x": 1, "width": 2.5, "temp_id": "a"}, 0)

    def test_not_a_dict(self) -> None:
        with pytest.raises(ValidationError, match="index 0 must be a dict"):
            validate_cell_dict("vertex", 0)

    def test_bad_type(self) -> None:
        with pytest.raises(ValidationError, match="'type' must be 'vertex' or 'edge'"):
            validate_cell_dict({"type": "blob"}, 2)

    def test_non_numeric_geometry(self) -> None:
        with pytest.raises(ValidationError, match="'x' must be a number"):
            validate_cell_dict({"x": "10"}, 0)

    def test_geometry_error_names_index_and_type(self) -> None:
        with pytest.raises(ValidationError, match=r"Cell at index 3: 'width' must be a number, got bool"):
            validate_cell_dict({"width": True}, 3)

    def test_non_string_text(self) -> None:
        with pytest.raises(ValidationError, match="'text' must be a string"):
            validate_cell_dict({"text": 5}, 0)

    def test_none_values_allowed(self) -> None:
        validate_cell_dict({"x": None, "text": None}, 0)

    def test_edge_requires_endpoints(self) -> None:
        with pytest.raises(ValidationError, match="missing required key 'source_id'"):
            validate_cell_dict({"type": "edge", "target_id": "b"}, 1)
        with pytest.raises(ValidationError, match="missing required key 'target_id'"):
            validate_cell_dict({"type": "edge", "source_id": "a"}, 1)


def test_edit_dict() -> None:
    validate_edit_dict({"cell_id": "cell-2", "text": "x"}, 0)
    with pytest.raises(ValidationError, match="missing required key 'cell_id'"):
        validate_edit_dict({"text": "x"}, 0)
    with pytest.raises(ValidationError, match="'cell_id' must be a string"):
        validate_edit_dict({"cell_id": 2}, 0)


def test_group_dict() -> None:
    validate_group_dict({"text": "G", "width": 10}, 0)
    with pytest.raises(ValidationError, match="'height' must be a number"):
        validate_group_dict({"height": "tall"}, 0)


def test_assignment_dict() -> None:
    validate_assignment_dict({"cell_id": "a", "group_id": "g"}, 0)
    with pytest.raises(ValidationError, match="missing required key 'group_id'"):
        validate_assignment_dict({"cell_id": "a"}, 0)


def test_shape_cell_dict() -> None:
    validate_shape_cell_dict({"shape_name": "rectangle", "x": 5, "temp_id": "r"}, 0)
    with pytest.raises(ValidationError, match="'shape_name' must be a non-empty string"):
        validate_shape_cell_dict({"x": 5}, 0)
    with pytest.raises(ValidationError, match="'y' must be a number"):
        validate_shape_cell_dict({"shape_name": "end", "y": "top"}, 1)


def test_shape_assignment_dict() -> None:
    validate_shape_assignment_dict({"cell_id": "cell-2", "shape_name": "end"}, 0)
    with pytest.raises(ValidationError, match="missing required key 'shape_name'"):
        validate_shape_assignment_dict({"cell_id": "cell-2"}, 0)
    with pytest.raises(ValidationError, match="'cell_id' must be a string"):
        validate_shape_assignment_dict({"cell_id": 2, "shape_name": "end"}, 0)


# ---------------------------------------------------------------------------
# Tools surface validation failures as INVALID_INPUT
# ---------------------------------------------------------------------------

def _error(result: str) -> dict:
    data = json.loads(result)
    assert data["success"] is False
    return data["error"]


def test_tool_rejects_unknown_action() -> None:
    err = _error(server.diagram(action="explode"))
    assert err["code"] == "INVALID_INPUT"
    assert "Valid actions" in err["message"]


def test_tool_rejects_bad_cell_item() -> None:
    err = _error(server.cells(action="add", cells=[{"type": "edge"}]))
    assert err["code"] == "INVALID_INPUT"
    assert "source_id" in err["message"]


def test_tool_rejects_empty_batch() -> None:
    assert _error(server.cells(action="add", cells=[]))["code"] == "INVALID_INPUT"


def test_tool_rejects_bad_page_size() -> None:
    err = _error(server.cells(action="list", page_size=0))
    assert err["code"] == "INVALID_INPUT"


def test_tool_requires_names() -> None:
    assert _error(server.layer(action="create"))["code"] == "INVALID_INPUT"
    assert _error(server.page(action="rename", page_id="page-1"))["code"] == "INVALID_INPUT"
    assert _error(server.group(action="list_children"))["code"] == "INVALID_INPUT"
