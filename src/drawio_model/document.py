"""
The diagram document model.

A :class:`DiagramDocument` owns one or more pages, each an independent slice
of the entity graph.  Every mutation goes through this class so that the
graph invariants hold between calls:

- edge terminals reference live cells when set, and terminals left stale by
  a deletion are removed or cleared, never left dangling;
- a group's ``children`` and each child's ``parent`` agree;
- ids are never reissued within their namespace until :meth:`clear`.

Domain failures are returned as :class:`~drawio_model.errors.ModelError`
values, never raised.  The model is single-writer and synchronous; hosts
that share one instance between requests must serialise access.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from drawio_model import codec
from drawio_model.errors import (
    ErrorCode,
    ModelError,
    cell_not_found,
    error,
    group_not_found,
    layer_not_found,
    not_a_group,
    page_not_found,
    shape_not_found,
)
from drawio_model.ids import IdAllocator
from drawio_model.models import (
    DEFAULT_EDGE_STYLE,
    DEFAULT_GROUP_HEIGHT,
    DEFAULT_GROUP_STYLE,
    DEFAULT_GROUP_WIDTH,
    DEFAULT_HEIGHT,
    DEFAULT_LAYER_ID,
    DEFAULT_VERTEX_STYLE,
    DEFAULT_WIDTH,
    EDGE,
    LAYER_ID_PREFIX,
    PAGE_ID_PREFIX,
    VERTEX,
    BatchResult,
    Bounds,
    Cell,
    CellSpec,
    ClearSummary,
    DeleteResult,
    DiagramStats,
    EdgePatch,
    Geometry,
    GroupSpec,
    ImportSummary,
    Layer,
    Page,
    VertexPatch,
    clamp_size,
    ensure_container_style,
)
from drawio_model.shapes import get_basic_shape

logger = logging.getLogger(__name__)

CellResult = Union[Cell, ModelError]


class DiagramDocument:
    """In-memory multi-page diagram with layers, groups and batch editing."""

    def __init__(self) -> None:
        self._page_ids = IdAllocator(PAGE_ID_PREFIX, start=1)
        self._layer_ids = IdAllocator(LAYER_ID_PREFIX)
        self._pages: list[Page] = []
        self._active: Page
        self._reset()

    def _reset(self) -> None:
        self._page_ids.reset()
        self._layer_ids.reset()
        first = Page(id=self._page_ids.next())
        self._pages = [first]
        self._active = first

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def page(self) -> Page:
        """The active page."""
        return self._active

    def get_cell(self, cell_id: str) -> Optional[Cell]:
        return self._active.cells.get(cell_id)

    def list_cells(self, cell_type: Optional[str] = None) -> list[Cell]:
        cells = list(self._active.cells.values())
        if cell_type in (VERTEX, EDGE):
            cells = [c for c in cells if c.kind == cell_type]
        return cells

    def _is_parent_slot(self, parent_id: str) -> bool:
        if self._active.get_layer(parent_id) is not None:
            return True
        cell = self._active.cells.get(parent_id)
        return cell is not None and cell.is_group

    # ------------------------------------------------------------------
    # Vertices and edges
    # ------------------------------------------------------------------

    def _build_vertex(
        self,
        cell_id: str,
        text: Optional[str],
        x: Optional[float],
        y: Optional[float],
        width: Optional[float],
        height: Optional[float],
        style: Optional[str],
        parent: str,
    ) -> Cell:
        return Cell(
            id=cell_id,
            kind=VERTEX,
            value=text if text is not None else "",
            style=style if style is not None else DEFAULT_VERTEX_STYLE,
            parent=parent,
            geometry=Geometry(
                x=x if x is not None else 0,
                y=y if y is not None else 0,
                width=clamp_size(width, DEFAULT_WIDTH),
                height=clamp_size(height, DEFAULT_HEIGHT),
            ),
        )

    def _build_edge(
        self,
        cell_id: str,
        source_id: Optional[str],
        target_id: Optional[str],
        text: Optional[str],
        style: Optional[str],
    ) -> Cell:
        return Cell(
            id=cell_id,
            kind=EDGE,
            value=text if text is not None else "",
            style=style if style is not None else DEFAULT_EDGE_STYLE,
            parent=self._active.active_layer_id,
            source_id=source_id,
            target_id=target_id,
        )

    def _insert(self, cell: Cell) -> Cell:
        self._active.cells[cell.id] = cell
        group = self._active.cells.get(cell.parent)
        if group is not None and group.is_group and cell.id not in group.children:
            group.children.append(cell.id)
        return cell

    def _next_cell_id(self) -> str:
        return self._active.ids.next(self._active.has_id)

    def add_vertex(
        self,
        text: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        style: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> CellResult:
        """Create a vertex in the active layer, or in *parent* (layer or group)."""
        parent_id = parent or self._active.active_layer_id
        if not self._is_parent_slot(parent_id):
            return layer_not_found(parent_id)
        cell = self._build_vertex(
            self._next_cell_id(), text, x, y, width, height, style, parent_id,
        )
        return self._insert(cell)

    def add_edge(
        self,
        source_id: str,
        target_id: str,
        text: Optional[str] = None,
        style: Optional[str] = None,
    ) -> CellResult:
        if source_id not in self._active.cells:
            return error(ErrorCode.SOURCE_NOT_FOUND,
                         f"Source cell '{source_id}' not found", source_id=source_id)
        if target_id not in self._active.cells:
            return error(ErrorCode.TARGET_NOT_FOUND,
                         f"Target cell '{target_id}' not found", target_id=target_id)
        cell = self._build_edge(self._next_cell_id(), source_id, target_id, text, style)
        return self._insert(cell)

    def edit_cell(self, cell_id: str, patch: VertexPatch) -> CellResult:
        """Apply the fields present in *patch* to a vertex."""
        cell = self._active.cells.get(cell_id)
        if cell is None:
            return cell_not_found(cell_id)
        if not cell.is_vertex:
            return error(ErrorCode.WRONG_CELL_TYPE,
                         f"Cell '{cell_id}' is an edge; use edit_edge",
                         cell_id=cell_id, cell_type=cell.kind)
        if cell.geometry is None:
            cell.geometry = Geometry()
        if patch.text is not None:
            cell.value = patch.text
        if patch.style is not None:
            cell.style = patch.style
        if patch.x is not None:
            cell.geometry.x = patch.x
        if patch.y is not None:
            cell.geometry.y = patch.y
        if patch.width is not None:
            cell.geometry.width = clamp_size(patch.width, DEFAULT_WIDTH)
        if patch.height is not None:
            cell.geometry.height = clamp_size(patch.height, DEFAULT_HEIGHT)
        return cell

    def edit_edge(self, cell_id: str, patch: EdgePatch) -> CellResult:
        """Apply the fields present in *patch* to an edge.

        Terminals are reassigned source first.  A rejected target does not
        undo an already-applied source change.
        """
        cell = self._active.cells.get(cell_id)
        if cell is None:
            return cell_not_found(cell_id)
        if not cell.is_edge:
            return error(ErrorCode.WRONG_CELL_TYPE,
                         f"Cell '{cell_id}' is a vertex; use edit_cell",
                         cell_id=cell_id, cell_type=cell.kind)
        if patch.source_id is not None:
            if patch.source_id not in self._active.cells:
                return error(ErrorCode.SOURCE_NOT_FOUND,
                             f"Source cell '{patch.source_id}' not found",
                             source_id=patch.source_id)
            cell.source_id = patch.source_id
        if patch.target_id is not None:
            if patch.target_id not in self._active.cells:
                return error(ErrorCode.TARGET_NOT_FOUND,
                             f"Target cell '{patch.target_id}' not found",
                             target_id=patch.target_id)
            cell.target_id = patch.target_id
        if patch.text is not None:
            cell.value = patch.text
        if patch.style is not None:
            cell.style = patch.style
        return cell

    def delete_cell(self, cell_id: str) -> DeleteResult:
        """Remove a cell; deleting a vertex also removes every edge touching it.

        Deleting a group leaves its children in place, still parented to the
        group's former id.
        """
        page = self._active
        cell = page.cells.get(cell_id)
        if cell is None:
            return DeleteResult(deleted=False, error=cell_not_found(cell_id))

        cascaded: list[str] = []
        if cell.is_vertex:
            cascaded = [
                c.id for c in page.cells.values()
                if c.is_edge and cell_id in (c.source_id, c.target_id)
            ]
        for eid in cascaded:
            self._detach(page.cells.pop(eid))
        self._detach(page.cells.pop(cell_id))

        # Edges may terminate on the removed edges; unhook them.
        removed = set(cascaded) | {cell_id}
        for other in page.cells.values():
            if other.is_edge:
                if other.source_id in removed:
                    other.source_id = None
                if other.target_id in removed:
                    other.target_id = None

        if cascaded:
            logger.debug("Deleted %s with %d connected edge(s)", cell_id, len(cascaded))
        return DeleteResult(deleted=True, cascaded_edge_ids=cascaded)

    def _detach(self, cell: Cell) -> None:
        group = self._active.cells.get(cell.parent)
        if group is not None and cell.id in group.children:
            group.children.remove(cell.id)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(
        self,
        text: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        style: Optional[str] = None,
    ) -> Cell:
        cell = self._build_vertex(
            self._next_cell_id(),
            text, x, y,
            width if width is not None else DEFAULT_GROUP_WIDTH,
            height if height is not None else DEFAULT_GROUP_HEIGHT,
            ensure_container_style(style if style is not None else DEFAULT_GROUP_STYLE),
            self._active.active_layer_id,
        )
        cell.is_group = True
        return self._insert(cell)

    def _lookup_group(self, group_id: str) -> Union[Cell, ModelError]:
        group = self._active.cells.get(group_id)
        if group is None:
            return group_not_found(group_id)
        if not group.is_group:
            return not_a_group(group_id)
        return group

    def add_cell_to_group(self, cell_id: str, group_id: str) -> CellResult:
        cell = self._active.cells.get(cell_id)
        if cell is None:
            return cell_not_found(cell_id)
        group = self._lookup_group(group_id)
        if isinstance(group, ModelError):
            return group
        if cell_id == group_id:
            return error(ErrorCode.SELF_REFERENCE,
                         f"Cell '{cell_id}' cannot be added to itself", cell_id=cell_id)
        if cell.parent != group_id:
            self._detach(cell)
            cell.parent = group_id
        if cell_id not in group.children:
            group.children.append(cell_id)
        return cell

    def remove_cell_from_group(self, cell_id: str) -> CellResult:
        cell = self._active.cells.get(cell_id)
        if cell is None:
            return cell_not_found(cell_id)
        group = self._active.cells.get(cell.parent)
        if group is None or not group.is_group:
            return error(ErrorCode.NOT_IN_GROUP,
                         f"Cell '{cell_id}' is not in a group", cell_id=cell_id)
        self._detach(cell)
        cell.parent = self._active.active_layer_id
        return cell

    def list_group_children(self, group_id: str) -> Union[list[Cell], ModelError]:
        group = self._lookup_group(group_id)
        if isinstance(group, ModelError):
            return group
        return [self._active.cells[c] for c in group.children if c in self._active.cells]

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def batch_add_cells(
        self,
        items: list[Union[CellSpec, dict[str, Any]]],
        dry_run: bool = False,
    ) -> list[BatchResult]:
        """Create many cells at once, resolving ``temp_id`` references.

        Every item is assigned the id it will receive up front, so an edge
        may name any other item of the batch (vertex or edge, before or
        after it) by temp id.  Items fail independently.  With *dry_run*
        the results are computed but nothing is committed.
        """
        specs = [i if isinstance(i, CellSpec) else CellSpec.from_dict(i) for i in items]
        page = self._active

        planned: list[str] = []
        offset = 0
        for _ in specs:
            candidate = page.ids.peek(offset)
            while page.has_id(candidate):
                offset += 1
                candidate = page.ids.peek(offset)
            planned.append(candidate)
            offset += 1

        temp_map: dict[str, int] = {}
        for index, spec in enumerate(specs):
            if spec.temp_id:
                temp_map[spec.temp_id] = index

        def resolve(ref: Optional[str]) -> tuple[Optional[str], Optional[int]]:
            """Map a reference to (real id, batch index or None)."""
            if ref is None:
                return None, None
            if ref in temp_map:
                return planned[temp_map[ref]], temp_map[ref]
            return ref, None

        def usable(ref: Optional[str], bad: set[int]) -> bool:
            real, dep = resolve(ref)
            if real is None:
                return False
            return real in page.cells if dep is None else dep not in bad

        # Edges may depend on other batch edges; settle validity to a fixpoint.
        bad: set[int] = set()
        changed = True
        while changed:
            changed = False
            for index, spec in enumerate(specs):
                if spec.kind != EDGE or index in bad:
                    continue
                if not (usable(spec.source_id, bad) and usable(spec.target_id, bad)):
                    bad.add(index)
                    changed = True

        failures: dict[int, ModelError] = {}
        for index in bad:
            spec = specs[index]
            if not usable(spec.source_id, bad - {index}):
                ref, code, role = spec.source_id, ErrorCode.INVALID_SOURCE, "source"
            else:
                ref, code, role = spec.target_id, ErrorCode.INVALID_TARGET, "target"
            failures[index] = error(
                code,
                f"Edge {role} '{ref}' is neither an existing cell "
                f"nor a temp_id in this batch",
                **{f"{role}_id": ref},
            )

        results: list[BatchResult] = []
        for index, spec in enumerate(specs):
            if index in failures:
                results.append(BatchResult(
                    success=False, temp_id=spec.temp_id, error=failures[index],
                ))
                continue
            if spec.kind == EDGE:
                cell = self._build_edge(
                    planned[index],
                    resolve(spec.source_id)[0],
                    resolve(spec.target_id)[0],
                    spec.text, spec.style,
                )
            else:
                cell = self._build_vertex(
                    planned[index], spec.text, spec.x, spec.y,
                    spec.width, spec.height, spec.style, page.active_layer_id,
                )
            if not dry_run:
                self._insert(cell)
            results.append(BatchResult(success=True, cell=cell, temp_id=spec.temp_id))

        if not dry_run:
            page.ids.skip(offset)
        logger.debug(
            "Batch add: %d item(s), %d failed%s",
            len(specs), len(failures), " (dry run)" if dry_run else "",
        )
        return results

    def batch_edit_cells(
        self, items: list[Union[dict[str, Any], tuple[str, VertexPatch]]],
    ) -> list[BatchResult]:
        results: list[BatchResult] = []
        for item in items:
            if isinstance(item, tuple):
                cell_id, patch = item
            else:
                cell_id, patch = item.get("cell_id", ""), VertexPatch.from_dict(item)
            result = self.edit_cell(cell_id, patch)
            if isinstance(result, ModelError):
                results.append(BatchResult(success=False, cell_id=cell_id, error=result))
            else:
                results.append(BatchResult(success=True, cell_id=cell_id, cell=result))
        return results

    def batch_create_groups(
        self, items: list[Union[GroupSpec, dict[str, Any]]],
    ) -> list[BatchResult]:
        results: list[BatchResult] = []
        for item in items:
            spec = item if isinstance(item, GroupSpec) else GroupSpec.from_dict(item)
            group = self.create_group(
                text=spec.text, x=spec.x, y=spec.y,
                width=spec.width, height=spec.height, style=spec.style,
            )
            results.append(BatchResult(success=True, cell=group, temp_id=spec.temp_id))
        return results

    def batch_add_cells_to_group(
        self, items: list[dict[str, str]],
    ) -> list[BatchResult]:
        results: list[BatchResult] = []
        for item in items:
            cell_id, group_id = item.get("cell_id", ""), item.get("group_id", "")
            result = self.add_cell_to_group(cell_id, group_id)
            if isinstance(result, ModelError):
                results.append(BatchResult(
                    success=False, cell_id=cell_id, group_id=group_id, error=result,
                ))
            else:
                results.append(BatchResult(
                    success=True, cell_id=cell_id, group_id=group_id, cell=result,
                ))
        return results

    # ------------------------------------------------------------------
    # Basic shapes
    # ------------------------------------------------------------------

    def add_cells_of_shape(self, items: list[dict[str, Any]]) -> list[BatchResult]:
        """Create one vertex per item from a named basic shape.

        Explicit ``width``/``height``/``style`` override the shape's own;
        the label defaults to empty.  Unknown names fail that item only.
        """
        results: list[BatchResult] = []
        for item in items:
            name = item.get("shape_name", "")
            temp_id = item.get("temp_id")
            shape = get_basic_shape(name)
            if shape is None:
                results.append(BatchResult(
                    success=False, temp_id=temp_id, shape_name=name,
                    error=shape_not_found(name),
                ))
                continue
            width, height, style = item.get("width"), item.get("height"), item.get("style")
            result = self.add_vertex(
                text=item.get("text"),
                x=item.get("x"),
                y=item.get("y"),
                width=shape.default_width if width is None else width,
                height=shape.default_height if height is None else height,
                style=shape.style if style is None else style,
            )
            if isinstance(result, ModelError):
                results.append(BatchResult(
                    success=False, temp_id=temp_id, shape_name=name, error=result,
                ))
            else:
                results.append(BatchResult(
                    success=True, temp_id=temp_id, shape_name=name, cell=result,
                ))
        return results

    def set_cell_shape(self, items: list[dict[str, str]]) -> list[BatchResult]:
        """Restyle each ``{cell_id, shape_name}`` vertex to the shape's style."""
        results: list[BatchResult] = []
        for item in items:
            cell_id, name = item.get("cell_id", ""), item.get("shape_name", "")
            shape = get_basic_shape(name)
            if shape is None:
                result: CellResult = shape_not_found(name)
            else:
                result = self.edit_cell(cell_id, VertexPatch(style=shape.style))
            if isinstance(result, ModelError):
                results.append(BatchResult(
                    success=False, cell_id=cell_id, shape_name=name, error=result,
                ))
            else:
                results.append(BatchResult(
                    success=True, cell_id=cell_id, shape_name=name, cell=result,
                ))
        return results

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def list_layers(self) -> list[Layer]:
        return list(self._active.layers)

    def get_active_layer(self) -> Layer:
        return self._active.active_layer

    def create_layer(self, name: str) -> Layer:
        layer = Layer(self._layer_ids.next(self._active.has_id), name)
        self._active.layers.append(layer)
        logger.debug("Created layer %s (%s) on %s", layer.id, name, self._active.id)
        return layer

    def set_active_layer(self, layer_id: str) -> Union[Layer, ModelError]:
        layer = self._active.get_layer(layer_id)
        if layer is None:
            return layer_not_found(layer_id)
        self._active.active_layer_id = layer_id
        return layer

    def rename_layer(self, layer_id: str, name: str) -> Union[Layer, ModelError]:
        layer = self._active.get_layer(layer_id)
        if layer is None:
            return layer_not_found(layer_id)
        layer.name = name
        return layer

    def delete_layer(self, layer_id: str) -> DeleteResult:
        """Delete a custom layer; its cells move to the default layer."""
        if layer_id == DEFAULT_LAYER_ID:
            return DeleteResult(deleted=False, error=error(
                ErrorCode.CANNOT_DELETE_DEFAULT_LAYER,
                "The default layer cannot be deleted", layer_id=layer_id,
            ))
        layer = self._active.get_layer(layer_id)
        if layer is None:
            return DeleteResult(deleted=False, error=layer_not_found(layer_id))
        for cell in self._active.cells.values():
            if cell.parent == layer_id:
                cell.parent = DEFAULT_LAYER_ID
        self._active.layers.remove(layer)
        if self._active.active_layer_id == layer_id:
            self._active.active_layer_id = DEFAULT_LAYER_ID
        return DeleteResult(deleted=True)

    def move_cell_to_layer(self, cell_id: str, layer_id: str) -> CellResult:
        cell = self._active.cells.get(cell_id)
        if cell is None:
            return cell_not_found(cell_id)
        if self._active.get_layer(layer_id) is None:
            return layer_not_found(layer_id)
        self._detach(cell)
        cell.parent = layer_id
        return cell

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _find_page(self, page_id: str) -> Optional[Page]:
        for page in self._pages:
            if page.id == page_id:
                return page
        return None

    def list_pages(self) -> list[Page]:
        return list(self._pages)

    def get_active_page(self) -> Page:
        return self._active

    def create_page(self, name: str) -> Page:
        taken = {p.id for p in self._pages}
        page = Page(id=self._page_ids.next(taken.__contains__), name=name)
        self._pages.append(page)
        logger.debug("Created page %s (%s)", page.id, name)
        return page

    def set_active_page(self, page_id: str) -> Union[Page, ModelError]:
        page = self._find_page(page_id)
        if page is None:
            return page_not_found(page_id)
        self._active = page
        return page

    def rename_page(self, page_id: str, name: str) -> Union[Page, ModelError]:
        page = self._find_page(page_id)
        if page is None:
            return page_not_found(page_id)
        page.name = name
        return page

    def delete_page(self, page_id: str) -> DeleteResult:
        page = self._find_page(page_id)
        if page is None:
            return DeleteResult(deleted=False, error=page_not_found(page_id))
        if len(self._pages) == 1:
            return DeleteResult(deleted=False, error=error(
                ErrorCode.CANNOT_DELETE_LAST_PAGE,
                "Cannot delete the last remaining page", page_id=page_id,
            ))
        self._pages.remove(page)
        if self._active is page:
            self._active = self._pages[0]
        logger.debug("Deleted page %s; active page is %s", page_id, self._active.id)
        return DeleteResult(deleted=True)

    # ------------------------------------------------------------------
    # Lifecycle / serialisation
    # ------------------------------------------------------------------

    def clear(self) -> ClearSummary:
        """Discard every page and start over with one empty page."""
        vertices = sum(1 for p in self._pages for c in p.cells.values() if c.is_vertex)
        edges = sum(1 for p in self._pages for c in p.cells.values() if c.is_edge)
        self._reset()
        return ClearSummary(vertices=vertices, edges=edges)

    def to_xml(self, compress: bool = False) -> str:
        return codec.render_document(self._pages, compress=compress)

    @staticmethod
    def compress_xml(xml: str) -> str:
        return codec.compress_xml(xml)

    @staticmethod
    def decompress_xml(payload: str) -> str:
        """Inflate a draw.io payload; raises ``XmlFormatError`` if it is corrupt."""
        return codec.decompress_xml(payload)

    def import_xml(self, xml: str) -> Union[ImportSummary, ModelError]:
        """Replace the whole document with the contents of *xml*.

        Nothing is modified unless the input parses structurally.
        """
        if not xml or not xml.strip():
            return error(ErrorCode.EMPTY_XML, "XML input is empty")
        try:
            pages = codec.parse_document(xml.strip())
        except codec.XmlFormatError as exc:
            logger.debug("Rejected import: %s", exc)
            return error(ErrorCode.INVALID_XML, str(exc))

        self._reset()
        self._pages = pages
        self._active = pages[0]
        self._page_ids.advance_past(p.id for p in pages)
        self._layer_ids.advance_past(
            layer.id for p in pages for layer in p.layers
        )
        summary = ImportSummary(
            pages=len(pages),
            cells=sum(len(p.cells) for p in pages),
            layers=sum(len(p.layers) for p in pages),
        )
        logger.debug("Imported %d page(s), %d cell(s)", summary.pages, summary.cells)
        return summary

    def get_stats(self) -> DiagramStats:
        page = self._active
        cells = list(page.cells.values())
        vertices = [c for c in cells if c.is_vertex]

        by_layer = {layer.id: 0 for layer in page.layers}
        for cell in cells:
            layer_id = self._owning_layer(cell)
            if layer_id is not None:
                by_layer[layer_id] += 1

        positioned = [c.geometry for c in vertices if c.geometry is not None]
        bounds = None
        if positioned:
            bounds = Bounds(
                min_x=min(g.x for g in positioned),
                min_y=min(g.y for g in positioned),
                max_x=max(g.x + g.width for g in positioned),
                max_y=max(g.y + g.height for g in positioned),
            )
        with_text = sum(1 for c in cells if c.value)
        return DiagramStats(
            total_cells=len(cells),
            vertices=len(vertices),
            edges=len(cells) - len(vertices),
            groups=sum(1 for c in vertices if c.is_group),
            layers=len(page.layers),
            cells_by_layer=by_layer,
            cells_with_text=with_text,
            cells_without_text=len(cells) - with_text,
            bounds=bounds,
            pages=len(self._pages),
            active_page=page.id,
        )

    def _owning_layer(self, cell: Cell) -> Optional[str]:
        """Walk up through groups to the layer holding *cell*."""
        seen: set[str] = set()
        parent = cell.parent
        while parent not in seen:
            if self._active.get_layer(parent) is not None:
                return parent
            seen.add(parent)
            holder = self._active.cells.get(parent)
            if holder is None:
                return None
            parent = holder.parent
        return None
