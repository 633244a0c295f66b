"""
Input validation for drawio-model tool parameters.

Provides reusable validators that produce clear error messages for
arguments received from MCP callers before they reach the document.
"""

from __future__ import annotations

from typing import Any


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_string(value: Any, field_name: str, *, allow_empty: bool = True) -> str:
    """Ensure *value* is a string (optionally non-empty)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {type(value).__name__}.")
    if not allow_empty and not value.strip():
        raise ValidationError(f"'{field_name}' must not be empty.")
    return value


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
) -> float:
    """Validate a numeric value and optional lower bound."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    return value


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    """Validate an integer value and optional range."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be an integer, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_bool(value: Any, field_name: str) -> bool:
    """Ensure *value* is a boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a boolean, got {type(value).__name__}."
        )
    return value


def validate_list(value: Any, field_name: str, *, min_length: int = 0) -> list:
    """Ensure *value* is a list with at least *min_length* items."""
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list, got {type(value).__name__}."
        )
    if len(value) < min_length:
        raise ValidationError(
            f"'{field_name}' must have at least {min_length} item(s), got {len(value)}."
        )
    return value


# ---------------------------------------------------------------------------
# Action validation
# ---------------------------------------------------------------------------

_DIAGRAM_ACTIONS = {"EXPORT", "IMPORT", "CLEAR", "STATS"}
_CELLS_ACTIONS = {"ADD", "EDIT", "EDIT_EDGE", "DELETE", "DELETE_EDGE", "GET", "LIST"}
_LAYER_ACTIONS = {"LIST", "CREATE", "GET_ACTIVE", "SET_ACTIVE", "MOVE_CELL", "RENAME", "DELETE"}
_PAGE_ACTIONS = {"LIST", "CREATE", "GET_ACTIVE", "SET_ACTIVE", "RENAME", "DELETE"}
_GROUP_ACTIONS = {"CREATE", "ADD_CELLS", "REMOVE_CELL", "LIST_CHILDREN"}
_SHAPE_ACTIONS = {"GET", "CATEGORIES", "ADD", "SET", "PRESETS"}

_CELL_TYPES = {"vertex", "edge"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_cell_type(value: Any) -> str:
    if not isinstance(value, str) or value not in _CELL_TYPES:
        raise ValidationError(
            f"'cell_type' must be one of [edge, vertex], got {value!r}."
        )
    return value


# ---------------------------------------------------------------------------
# Item validators (one dict of a batch list)
# ---------------------------------------------------------------------------

def _check_optional(item: dict, index: int, what: str, key: str) -> None:
    if key in item and item[key] is not None:
        if not isinstance(item[key], str):
            raise ValidationError(f"{what} at index {index}: '{key}' must be a string.")


def _check_geometry(item: dict, index: int, what: str) -> None:
    for key in ("x", "y", "width", "height"):
        if item.get(key) is not None:
            try:
                validate_number(item[key], key)
            except ValidationError as exc:
                raise ValidationError(f"{what} at index {index}: {exc.message}") from exc
    for key in ("text", "style"):
        _check_optional(item, index, what, key)


def validate_cell_dict(c: Any, index: int) -> None:
    """Validate one item of a ``cells(action='add')`` list."""
    if not isinstance(c, dict):
        raise ValidationError(f"Cell at index {index} must be a dict/object.")
    kind = c.get("type", "vertex")
    if kind not in _CELL_TYPES:
        raise ValidationError(
            f"Cell at index {index}: 'type' must be 'vertex' or 'edge', got {kind!r}."
        )
    _check_geometry(c, index, "Cell")
    _check_optional(c, index, "Cell", "temp_id")
    if kind == "edge":
        if "source_id" not in c:
            raise ValidationError(f"Edge at index {index} missing required key 'source_id'.")
        if "target_id" not in c:
            raise ValidationError(f"Edge at index {index} missing required key 'target_id'.")
        _check_optional(c, index, "Edge", "source_id")
        _check_optional(c, index, "Edge", "target_id")


def validate_edit_dict(u: Any, index: int) -> None:
    """Validate one item of a ``cells(action='edit')`` list."""
    if not isinstance(u, dict):
        raise ValidationError(f"Edit at index {index} must be a dict/object.")
    if "cell_id" not in u:
        raise ValidationError(f"Edit at index {index} missing required key 'cell_id'.")
    if not isinstance(u["cell_id"], str):
        raise ValidationError(f"Edit at index {index}: 'cell_id' must be a string.")
    _check_geometry(u, index, "Edit")


def validate_group_dict(g: Any, index: int) -> None:
    """Validate one item of a ``group(action='create')`` list."""
    if not isinstance(g, dict):
        raise ValidationError(f"Group at index {index} must be a dict/object.")
    _check_geometry(g, index, "Group")
    _check_optional(g, index, "Group", "temp_id")


def validate_assignment_dict(a: Any, index: int) -> None:
    """Validate one ``{cell_id, group_id}`` pair of ``group(action='add_cells')``."""
    if not isinstance(a, dict):
        raise ValidationError(f"Assignment at index {index} must be a dict/object.")
    for key in ("cell_id", "group_id"):
        if key not in a:
            raise ValidationError(f"Assignment at index {index} missing required key '{key}'.")
        if not isinstance(a[key], str):
            raise ValidationError(f"Assignment at index {index}: '{key}' must be a string.")


def validate_shape_cell_dict(s: Any, index: int) -> None:
    """Validate one item of a ``shape(action='add')`` list."""
    if not isinstance(s, dict):
        raise ValidationError(f"Shape cell at index {index} must be a dict/object.")
    if not isinstance(s.get("shape_name"), str) or not s["shape_name"].strip():
        raise ValidationError(
            f"Shape cell at index {index}: 'shape_name' must be a non-empty string."
        )
    _check_geometry(s, index, "Shape cell")
    _check_optional(s, index, "Shape cell", "temp_id")


def validate_shape_assignment_dict(a: Any, index: int) -> None:
    """Validate one ``{cell_id, shape_name}`` pair of ``shape(action='set')``."""
    if not isinstance(a, dict):
        raise ValidationError(f"Shape assignment at index {index} must be a dict/object.")
    for key in ("cell_id", "shape_name"):
        if key not in a:
            raise ValidationError(
                f"Shape assignment at index {index} missing required key '{key}'."
            )
        if not isinstance(a[key], str):
            raise ValidationError(
                f"Shape assignment at index {index}: '{key}' must be a string."
            )
