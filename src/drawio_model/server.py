"""
drawio-model MCP server - build draw.io diagrams through structured edits.

Exposes 6 tools over one shared in-memory :class:`DiagramDocument`.

Tools:
  1. diagram - document: export, import, clear, stats
  2. cells   - content:  add (batch, temp ids, dry run), edit, edit_edge,
                         delete, delete_edge, get, list
  3. layer   - layers:   list, create, get_active, set_active, move_cell,
                         rename, delete
  4. page    - pages:    list, create, get_active, set_active, rename, delete
  5. group   - groups:   create, add_cells, remove_cell, list_children
  6. shape   - shapes:   get, categories, add, set, presets

Every tool returns a JSON envelope: ``{"success": true, "data": ...}`` or
``{"success": false, "error": {"code": ..., "message": ...}}``.
"""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from drawio_model.config import ServerConfig, build_parser, load_config
from drawio_model.document import DiagramDocument
from drawio_model.errors import ErrorCode, ModelError, error, shape_not_found
from drawio_model.models import EDGE, DeleteResult, EdgePatch
from drawio_model.shapes import (
    BASIC_SHAPE_CATEGORIES,
    STYLE_PRESETS,
    get_basic_shape,
    shapes_in_category,
)
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
    validate_shape_assignment_dict,
    validate_shape_cell_dict,
    validate_string,
    _CELLS_ACTIONS,
    _DIAGRAM_ACTIONS,
    _GROUP_ACTIONS,
    _LAYER_ACTIONS,
    _PAGE_ACTIONS,
    _SHAPE_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging - keep routine FastMCP INFO chatter off stderr.
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("drawio-model")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "drawio-model",
    instructions=(
        "MCP server holding one draw.io diagram document in memory.\n\n"
        "=== ONLY 6 TOOLS - use the 'action' parameter to pick the operation ===\n\n"
        "1. diagram(action, ...) - export, import, clear, stats.\n"
        "2. cells(action, ...) - add, edit, edit_edge, delete, delete_edge,\n"
        "   get, list.\n"
        "3. layer(action, ...) - list, create, get_active, set_active,\n"
        "   move_cell, rename, delete.\n"
        "4. page(action, ...) - list, create, get_active, set_active, rename,\n"
        "   delete.\n"
        "5. group(action, ...) - create, add_cells, remove_cell, list_children.\n"
        "6. shape(action, ...) - get, categories, add, set, presets.\n\n"
        "=== RULES ===\n"
        "- Cell operations act on the ACTIVE page; new cells go to the ACTIVE layer.\n"
        "- cells(action='add') takes a list; give items a temp_id and refer to it\n"
        "  from edges in the same call. Use dry_run=true to check a batch first.\n"
        "- Deleting a vertex also deletes every edge attached to it.\n"
        "- diagram(action='export', compress=true) emits the compressed draw.io\n"
        "  format (deflate-raw + base64).\n"
    ),
)

# The shared document, guarded by _document_lock for thread-safety.
_document = DiagramDocument()
_document_lock = threading.Lock()

_MAX_PAGE_SIZE = 1000


# ===================================================================
# Envelope helpers
# ===================================================================

def _ok(data: Any) -> str:
    return json.dumps({"success": True, "data": data}, indent=2)


def _fail(err: ModelError) -> str:
    return json.dumps({"success": False, "error": err.to_dict()}, indent=2)


def _invalid(exc: ValidationError) -> str:
    return _fail(error(ErrorCode.INVALID_INPUT, exc.message))


def _cell_result(result: Any) -> str:
    if isinstance(result, ModelError):
        return _fail(result)
    return _ok({"cell": result.to_dict()})


def _delete_result(result: DeleteResult) -> str:
    if result.error is not None:
        return json.dumps({"success": False, **result.to_dict()}, indent=2)
    return _ok(result.to_dict())


def reset_document() -> None:
    """Replace the shared document with a fresh one."""
    global _document
    with _document_lock:
        _document = DiagramDocument()


# ===================================================================
# TOOL 1: diagram - document lifecycle and serialisation
# ===================================================================

@mcp.tool()
def diagram(action: str, xml: str = "", compress: bool = False) -> str:
    """Whole-document operations.

    Actions:
      export - Serialise all pages to draw.io XML. Params: compress.
      import - Replace the document with parsed XML. Params: xml.
      clear  - Discard everything; one empty page remains.
      stats  - Counts, per-layer totals and bounds of the active page.

    Args:
        action: One of: export, import, clear, stats.
        xml: draw.io XML (``<mxfile>`` or ``<mxGraphModel>``) for import.
        compress: Emit compressed diagram payloads on export.
    """
    try:
        action = validate_action(action, "diagram", _DIAGRAM_ACTIONS)
    except ValidationError as exc:
        return _invalid(exc)

    if action == "export":
        try:
            validate_bool(compress, "compress")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            text = _document.to_xml(compress=compress)
            plain = _document.to_xml() if compress else text
            stats = _document.get_stats().to_dict()
        if compress:
            plain_size = len(plain.encode("utf-8"))
            packed_size = len(text.encode("utf-8"))
            logger.debug("Exporting XML, original size: %.1f KB", plain_size / 1024)
            if plain_size:
                logger.debug(
                    "Compression reduced size by %.1f%% (%d → %d bytes)",
                    100.0 * (plain_size - packed_size) / plain_size,
                    plain_size, packed_size,
                )
        return _ok({
            "xml": text,
            "stats": stats,
            "compression": {
                "enabled": compress,
                "algorithm": "deflate-raw" if compress else None,
                "encoding": "base64" if compress else None,
            },
        })

    elif action == "import":
        with _document_lock:
            result = _document.import_xml(xml if isinstance(xml, str) else "")
        if isinstance(result, ModelError):
            return _fail(result)
        return _ok(result.to_dict())

    elif action == "clear":
        with _document_lock:
            summary = _document.clear()
        return _ok(summary.to_dict())

    else:  # stats
        with _document_lock:
            stats = _document.get_stats()
        return _ok(stats.to_dict())


# ===================================================================
# TOOL 2: cells - vertices and edges on the active page
# ===================================================================

@mcp.tool()
def cells(
    action: str,
    cells: Optional[list[dict[str, Any]]] = None,
    dry_run: bool = False,
    cell_id: str = "",
    text: Optional[str] = None,
    source_id: Optional[str] = None,
    target_id: Optional[str] = None,
    style: Optional[str] = None,
    page: int = 0,
    page_size: int = 50,
    cell_type: str = "",
) -> str:
    """Create, edit, inspect and delete cells.

    Actions:
      add         - Batch create. Params: cells, dry_run. Each item:
                    {"type": "vertex"|"edge", "temp_id"?, "text"?, "style"?,
                    "x"?, "y"?, "width"?, "height"?, "source_id"?, "target_id"?}.
                    Edges may name a temp_id from the same list.
      edit        - Batch vertex edit. Params: cells, each {"cell_id", ...fields}.
      edit_edge   - Edit one edge. Params: cell_id, text, source_id, target_id, style.
      delete      - Delete any cell (vertices cascade to their edges). Params: cell_id.
      delete_edge - Delete a cell only if it is an edge. Params: cell_id.
      get         - One cell. Params: cell_id.
      list        - Paged list. Params: page (zero-based), page_size, cell_type.

    Args:
        action: One of: add, edit, edit_edge, delete, delete_edge, get, list.
        cells: Items for add / edit.
        dry_run: Validate an add batch without committing it.
        cell_id: Target cell for edit_edge / delete / delete_edge / get.
        text: New label (edit_edge).
        source_id: New source terminal (edit_edge).
        target_id: New target terminal (edit_edge).
        style: New style string (edit_edge).
        page: Zero-based page number of the listing.
        page_size: Cells per listing page (1..1000).
        cell_type: "vertex" or "edge" to filter the listing.
    """
    try:
        action = validate_action(action, "cells", _CELLS_ACTIONS)
    except ValidationError as exc:
        return _invalid(exc)

    if action == "add":
        try:
            items = validate_list(cells, "cells", min_length=1)
            for i, item in enumerate(items):
                validate_cell_dict(item, i)
            validate_bool(dry_run, "dry_run")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.batch_add_cells(items, dry_run=dry_run)
        return _ok({
            "dry_run": dry_run,
            "results": [r.to_dict() for r in results],
            "created": sum(1 for r in results if r.success),
            "failed": sum(1 for r in results if not r.success),
        })

    elif action == "edit":
        try:
            items = validate_list(cells, "cells", min_length=1)
            for i, item in enumerate(items):
                validate_edit_dict(item, i)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.batch_edit_cells(items)
        return _ok({"results": [r.to_dict() for r in results]})

    elif action == "edit_edge":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
            for value, name in ((text, "text"), (source_id, "source_id"),
                                (target_id, "target_id"), (style, "style")):
                if value is not None:
                    validate_string(value, name)
        except ValidationError as exc:
            return _invalid(exc)
        patch = EdgePatch(text=text, source_id=source_id, target_id=target_id, style=style)
        with _document_lock:
            result = _document.edit_edge(cell_id, patch)
        return _cell_result(result)

    elif action in ("delete", "delete_edge"):
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            if action == "delete_edge":
                target = _document.get_cell(cell_id)
                if target is not None and target.kind != EDGE:
                    return _fail(error(
                        ErrorCode.NOT_AN_EDGE,
                        f"Cell '{cell_id}' is not an edge", cell_id=cell_id,
                    ))
            result = _document.delete_cell(cell_id)
        return _delete_result(result)

    elif action == "get":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            cell = _document.get_cell(cell_id)
        if cell is None:
            return _fail(error(ErrorCode.CELL_NOT_FOUND,
                               f"Cell '{cell_id}' not found", cell_id=cell_id))
        return _ok({"cell": cell.to_dict()})

    else:  # list
        try:
            page = validate_int(page, "page", min_val=0)
            page_size = validate_int(page_size, "page_size", min_val=1, max_val=_MAX_PAGE_SIZE)
            if cell_type:
                validate_cell_type(cell_type)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            listing = _document.list_cells(cell_type or None)
            active_page = _document.get_active_page().to_dict()
            active_layer = _document.get_active_layer().to_dict()
        start = page * page_size
        return _ok({
            "page": page,
            "page_size": page_size,
            "total_cells": len(listing),
            "total_pages": math.ceil(len(listing) / page_size),
            "active_page": active_page,
            "active_layer": active_layer,
            "cells": [c.to_dict() for c in listing[start:start + page_size]],
        })


# ===================================================================
# TOOL 3: layer - layers of the active page
# ===================================================================

@mcp.tool()
def layer(action: str, layer_id: str = "", name: str = "", cell_id: str = "") -> str:
    """Manage layers of the active page.

    Actions:
      list       - All layers plus the active layer id.
      create     - New layer. Params: name.
      get_active - The layer new cells go into.
      set_active - Params: layer_id.
      move_cell  - Reparent a cell onto a layer. Params: cell_id, layer_id.
      rename     - Params: layer_id, name.
      delete     - Cells move to the default layer. Params: layer_id.
    """
    try:
        action = validate_action(action, "layer", _LAYER_ACTIONS)
        if action in ("create", "rename"):
            name = validate_non_empty_string(name, "name")
        if action in ("set_active", "move_cell", "rename", "delete"):
            layer_id = validate_non_empty_string(layer_id, "layer_id")
        if action == "move_cell":
            cell_id = validate_non_empty_string(cell_id, "cell_id")
    except ValidationError as exc:
        return _invalid(exc)

    with _document_lock:
        if action == "list":
            return _ok({
                "layers": [lyr.to_dict() for lyr in _document.list_layers()],
                "active_layer_id": _document.get_active_layer().id,
            })
        elif action == "create":
            return _ok({"layer": _document.create_layer(name).to_dict()})
        elif action == "get_active":
            return _ok({"layer": _document.get_active_layer().to_dict()})
        elif action == "set_active":
            result = _document.set_active_layer(layer_id)
        elif action == "move_cell":
            return _cell_result(_document.move_cell_to_layer(cell_id, layer_id))
        elif action == "rename":
            result = _document.rename_layer(layer_id, name)
        else:  # delete
            return _delete_result(_document.delete_layer(layer_id))

    if isinstance(result, ModelError):
        return _fail(result)
    return _ok({"layer": result.to_dict()})


# ===================================================================
# TOOL 4: page - document pages
# ===================================================================

@mcp.tool()
def page(action: str, page_id: str = "", name: str = "") -> str:
    """Manage pages.

    Actions:
      list       - All pages plus the active page id.
      create     - New page (does not become active). Params: name.
      get_active - The page cell operations act on.
      set_active - Params: page_id.
      rename     - Params: page_id, name.
      delete     - The last page cannot be deleted. Params: page_id.
    """
    try:
        action = validate_action(action, "page", _PAGE_ACTIONS)
        if action in ("create", "rename"):
            name = validate_non_empty_string(name, "name")
        if action in ("set_active", "rename", "delete"):
            page_id = validate_non_empty_string(page_id, "page_id")
    except ValidationError as exc:
        return _invalid(exc)

    with _document_lock:
        if action == "list":
            return _ok({
                "pages": [p.to_dict() for p in _document.list_pages()],
                "active_page_id": _document.get_active_page().id,
            })
        elif action == "create":
            return _ok({"page": _document.create_page(name).to_dict()})
        elif action == "get_active":
            return _ok({"page": _document.get_active_page().to_dict()})
        elif action == "set_active":
            result = _document.set_active_page(page_id)
        elif action == "rename":
            result = _document.rename_page(page_id, name)
        else:  # delete
            return _delete_result(_document.delete_page(page_id))

    if isinstance(result, ModelError):
        return _fail(result)
    return _ok({"page": result.to_dict()})


# ===================================================================
# TOOL 5: group - container vertices
# ===================================================================

@mcp.tool()
def group(
    action: str,
    groups: Optional[list[dict[str, Any]]] = None,
    assignments: Optional[list[dict[str, str]]] = None,
    cell_id: str = "",
    group_id: str = "",
) -> str:
    """Manage groups (container vertices).

    Actions:
      create        - Batch create. Params: groups, each {"text"?, "style"?, "x"?,
                      "y"?, "width"?, "height"?, "temp_id"?}.
      add_cells     - Batch reparent. Params: assignments, each {"cell_id", "group_id"}.
      remove_cell   - Move a cell back to the active layer. Params: cell_id.
      list_children - Params: group_id.
    """
    try:
        action = validate_action(action, "group", _GROUP_ACTIONS)
    except ValidationError as exc:
        return _invalid(exc)

    if action == "create":
        try:
            items = validate_list(groups, "groups", min_length=1)
            for i, item in enumerate(items):
                validate_group_dict(item, i)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.batch_create_groups(items)
        return _ok({"results": [r.to_dict() for r in results]})

    elif action == "add_cells":
        try:
            items = validate_list(assignments, "assignments", min_length=1)
            for i, item in enumerate(items):
                validate_assignment_dict(item, i)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.batch_add_cells_to_group(items)
        return _ok({"results": [r.to_dict() for r in results]})

    elif action == "remove_cell":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            result = _document.remove_cell_from_group(cell_id)
        return _cell_result(result)

    else:  # list_children
        try:
            group_id = validate_non_empty_string(group_id, "group_id")
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            children = _document.list_group_children(group_id)
        if isinstance(children, ModelError):
            return _fail(children)
        return _ok({"group_id": group_id, "children": [c.to_dict() for c in children]})


# ===================================================================
# TOOL 6: shape - basic shape catalog and style presets
# ===================================================================

def _summary(results: list) -> dict[str, int]:
    succeeded = sum(1 for r in results if r.success)
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}


@mcp.tool()
def shape(
    action: str,
    cells: Optional[list[dict[str, Any]]] = None,
    shape_name: str = "",
) -> str:
    """Basic shapes and style presets.

    Actions:
      get        - Look up one shape by exact name (case-insensitive). Params: shape_name.
      categories - Shapes grouped by category.
      add        - Batch create vertices from shapes. Params: cells, each
                   {"shape_name", "temp_id"?, "text"?, "style"?, "x"?, "y"?,
                   "width"?, "height"?}. Explicit size and style win.
      set        - Batch restyle vertices. Params: cells, each {"cell_id", "shape_name"}.
      presets    - Ready-made style strings by theme.

    Args:
        action: One of: get, categories, add, set, presets.
        cells: Items for add / set.
        shape_name: Shape to look up (get).
    """
    try:
        action = validate_action(action, "shape", _SHAPE_ACTIONS)
    except ValidationError as exc:
        return _invalid(exc)

    if action == "get":
        try:
            shape_name = validate_non_empty_string(shape_name, "shape_name")
        except ValidationError as exc:
            return _invalid(exc)
        found = get_basic_shape(shape_name)
        if found is None:
            return _fail(shape_not_found(shape_name))
        return _ok({"shape": found.to_dict()})

    elif action == "categories":
        return _ok({"categories": {
            name: [s.to_dict() for s in shapes_in_category(name)]
            for name in BASIC_SHAPE_CATEGORIES
        }})

    elif action == "presets":
        return _ok({"presets": STYLE_PRESETS})

    elif action == "add":
        try:
            items = validate_list(cells, "cells", min_length=1)
            for i, item in enumerate(items):
                validate_shape_cell_dict(item, i)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.add_cells_of_shape(items)
        summary = _summary(results)
        return _ok({
            "success": summary["failed"] == 0,
            "summary": summary,
            "results": [r.to_dict() for r in results],
        })

    else:  # set
        try:
            items = validate_list(cells, "cells", min_length=1)
            for i, item in enumerate(items):
                validate_shape_assignment_dict(item, i)
        except ValidationError as exc:
            return _invalid(exc)
        with _document_lock:
            results = _document.set_cell_shape(items)
        return _ok({
            "summary": _summary(results),
            "results": [r.to_dict() for r in results],
        })


# ===================================================================
# Entry point
# ===================================================================

def configure_logging(config: ServerConfig) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=config.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.setLevel(config.log_level_value)


def main(argv: Optional[list[str]] = None) -> None:
    """Run the MCP server."""
    try:
        config = load_config(sys.argv[1:] if argv is None else argv)
    except ValueError as exc:
        build_parser().error(str(exc))
        return
    configure_logging(config)
    mcp.settings.host = config.host
    mcp.settings.port = config.port
    logger.info("Starting drawio-model (%s transport)", config.transport)
    mcp.run(transport=config.transport)


if __name__ == "__main__":
    main()
