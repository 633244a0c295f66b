"""
Structured error results returned by document operations.

Document operations never raise for domain failures; they return a
:class:`ModelError` carrying a stable code so callers can branch on
``isinstance(result, ModelError)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    """Stable error code strings."""
    CELL_NOT_FOUND = "CELL_NOT_FOUND"
    WRONG_CELL_TYPE = "WRONG_CELL_TYPE"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    NOT_A_GROUP = "NOT_A_GROUP"
    SELF_REFERENCE = "SELF_REFERENCE"
    NOT_IN_GROUP = "NOT_IN_GROUP"
    LAYER_NOT_FOUND = "LAYER_NOT_FOUND"
    CANNOT_DELETE_DEFAULT_LAYER = "CANNOT_DELETE_DEFAULT_LAYER"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    CANNOT_DELETE_LAST_PAGE = "CANNOT_DELETE_LAST_PAGE"
    EMPTY_XML = "EMPTY_XML"
    INVALID_XML = "INVALID_XML"
    INVALID_SOURCE = "INVALID_SOURCE"
    INVALID_TARGET = "INVALID_TARGET"
    SHAPE_NOT_FOUND = "SHAPE_NOT_FOUND"
    # Tool layer only
    INVALID_INPUT = "INVALID_INPUT"
    NOT_AN_EDGE = "NOT_AN_EDGE"


@dataclass(frozen=True)
class ModelError:
    """A failed operation: stable *code*, readable *message*, extra details."""
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        data.update(self.details)
        return data


def error(code: str, message: str, **details: Any) -> ModelError:
    return ModelError(code=code, message=message, details=details)


def cell_not_found(cell_id: str) -> ModelError:
    return error(ErrorCode.CELL_NOT_FOUND, f"Cell '{cell_id}' not found", cell_id=cell_id)


def layer_not_found(layer_id: str) -> ModelError:
    return error(ErrorCode.LAYER_NOT_FOUND, f"Layer '{layer_id}' not found", layer_id=layer_id)


def page_not_found(page_id: str) -> ModelError:
    return error(ErrorCode.PAGE_NOT_FOUND, f"Page '{page_id}' not found", page_id=page_id)


def group_not_found(group_id: str) -> ModelError:
    return error(ErrorCode.GROUP_NOT_FOUND, f"Group '{group_id}' not found", group_id=group_id)


def not_a_group(group_id: str) -> ModelError:
    return error(ErrorCode.NOT_A_GROUP, f"Cell '{group_id}' is not a group", group_id=group_id)


def shape_not_found(shape_name: str) -> ModelError:
    return error(ErrorCode.SHAPE_NOT_FOUND, f"Unknown shape '{shape_name}'",
                 shape_name=shape_name)
