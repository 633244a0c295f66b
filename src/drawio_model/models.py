"""
Entity classes for the diagram document model.

Cells, layers and pages are plain dataclasses; each page owns its own slice
of the entity graph (cells, layers, cell id allocator).  The classes know
how to describe themselves as mxGraph XML elements and as JSON-ready dicts,
while all cross-entity rules live in :mod:`drawio_model.document`.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Optional

from drawio_model.errors import ModelError
from drawio_model.ids import IdAllocator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ROOT_ID = "0"
DEFAULT_LAYER_ID = "1"
DEFAULT_LAYER_NAME = "Default"
DEFAULT_PAGE_NAME = "Page-1"

CELL_ID_PREFIX = "cell-"
LAYER_ID_PREFIX = "layer-"
PAGE_ID_PREFIX = "page-"

VERTEX = "vertex"
EDGE = "edge"

CONTAINER_TOKEN = "container=1"

DEFAULT_VERTEX_STYLE = "whiteSpace=wrap;html=1;"
DEFAULT_EDGE_STYLE = "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;"
DEFAULT_GROUP_STYLE = "rounded=1;whiteSpace=wrap;html=1;container=1;collapsible=0;"

DEFAULT_WIDTH = 200
DEFAULT_HEIGHT = 100
DEFAULT_GROUP_WIDTH = 400
DEFAULT_GROUP_HEIGHT = 300


# ---------------------------------------------------------------------------
# Graph entities
# ---------------------------------------------------------------------------

@dataclass
class Geometry:
    """Absolute bounds of a vertex."""
    x: float = 0
    y: float = 0
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT

    def to_element(self) -> ET.Element:
        return ET.Element("mxGeometry", attrib={
            "x": _num(self.x),
            "y": _num(self.y),
            "width": _num(self.width),
            "height": _num(self.height),
            "as": "geometry",
        })


@dataclass
class Cell:
    """A vertex or an edge.

    Vertices carry a :class:`Geometry`; edges carry optional terminal ids
    and no geometry of their own.  A vertex with ``is_group`` set keeps the
    ordered ids of the cells reparented to it in ``children``.
    """
    id: str
    kind: str = VERTEX
    value: str = ""
    style: str = ""
    parent: str = DEFAULT_LAYER_ID
    geometry: Optional[Geometry] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    is_group: bool = False
    children: list[str] = field(default_factory=list)

    @property
    def is_vertex(self) -> bool:
        return self.kind == VERTEX

    @property
    def is_edge(self) -> bool:
        return self.kind == EDGE

    def to_element(self) -> ET.Element:
        attrib: dict[str, str] = {
            "id": self.id,
            "value": self.value,
            "style": self.style,
        }
        if self.is_edge:
            attrib["edge"] = "1"
        else:
            attrib["vertex"] = "1"
        if self.is_group:
            attrib["connectable"] = "0"
        attrib["parent"] = self.parent
        if self.is_edge:
            if self.source_id:
                attrib["source"] = self.source_id
            if self.target_id:
                attrib["target"] = self.target_id
        el = ET.Element("mxCell", attrib=attrib)
        if self.geometry is not None:
            el.append(self.geometry.to_element())
        else:
            ET.SubElement(el, "mxGeometry", attrib={"relative": "1", "as": "geometry"})
        return el

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "value": self.value,
            "style": self.style,
            "parent": self.parent,
        }
        if self.geometry is not None:
            data.update(x=self.geometry.x, y=self.geometry.y,
                        width=self.geometry.width, height=self.geometry.height)
        if self.is_edge:
            data["source_id"] = self.source_id
            data["target_id"] = self.target_id
        if self.is_group:
            data["is_group"] = True
            data["children"] = list(self.children)
        return data


@dataclass
class Layer:
    """A named partition of a page; rendered as an mxCell parented to the root."""
    id: str
    name: str

    def to_element(self) -> ET.Element:
        return ET.Element("mxCell", attrib={
            "id": self.id,
            "value": self.name,
            "style": "",
            "parent": ROOT_ID,
        })

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class Page:
    """One diagram page: an independent slice of the entity graph."""
    id: str
    name: str = DEFAULT_PAGE_NAME
    cells: dict[str, Cell] = field(default_factory=dict)
    layers: list[Layer] = field(default_factory=list)
    active_layer_id: str = DEFAULT_LAYER_ID
    ids: IdAllocator = field(
        default_factory=lambda: IdAllocator(CELL_ID_PREFIX), repr=False,
    )

    def __post_init__(self) -> None:
        if not any(layer.id == DEFAULT_LAYER_ID for layer in self.layers):
            self.layers.insert(0, Layer(DEFAULT_LAYER_ID, DEFAULT_LAYER_NAME))

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    @property
    def active_layer(self) -> Layer:
        return self.get_layer(self.active_layer_id) or self.layers[0]

    def has_id(self, identifier: str) -> bool:
        """Whether *identifier* names a cell, a layer or a structural cell."""
        return (
            identifier in self.cells
            or identifier == ROOT_ID
            or self.get_layer(identifier) is not None
        )

    def to_element(self) -> ET.Element:
        """Render ``<diagram><mxGraphModel><root>…`` for this page."""
        diagram = ET.Element("diagram", attrib={"id": self.id, "name": self.name})
        model = ET.SubElement(diagram, "mxGraphModel")
        root = ET.SubElement(model, "root")
        ET.SubElement(root, "mxCell", attrib={"id": ROOT_ID})
        default = ET.SubElement(root, "mxCell", attrib={"id": DEFAULT_LAYER_ID})
        if self.layers[0].name != DEFAULT_LAYER_NAME:
            default.set("value", self.layers[0].name)
        default.set("parent", ROOT_ID)
        for layer in self.layers:
            if layer.id != DEFAULT_LAYER_ID:
                root.append(layer.to_element())
        for cell in self._render_order():
            root.append(cell.to_element())
        return diagram

    def _render_order(self) -> list[Cell]:
        """Cells in insertion order, each group followed by its members in
        ``children`` order so that parsing rebuilds the same list."""
        ordered: list[Cell] = []
        seen: set[str] = set()

        def visit(cell: Cell) -> None:
            if cell.id in seen:
                return
            seen.add(cell.id)
            ordered.append(cell)
            for child_id in cell.children:
                child = self.cells.get(child_id)
                if child is not None:
                    visit(child)

        for cell in self.cells.values():
            owner = self.cells.get(cell.parent)
            if owner is None or not owner.is_group or cell.id not in owner.children:
                visit(cell)
        # membership cycles leave cells unreached from the top level
        for cell in self.cells.values():
            visit(cell)
        return ordered

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


# ---------------------------------------------------------------------------
# Edit patches
# ---------------------------------------------------------------------------

@dataclass
class VertexPatch:
    """Fields to change on a vertex; ``None`` means "leave as is"."""
    text: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    style: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VertexPatch:
        return cls(
            text=data.get("text"),
            x=data.get("x"),
            y=data.get("y"),
            width=data.get("width"),
            height=data.get("height"),
            style=data.get("style"),
        )


@dataclass
class EdgePatch:
    """Fields to change on an edge; ``None`` means "leave as is"."""
    text: Optional[str] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    style: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EdgePatch:
        return cls(
            text=data.get("text"),
            source_id=data.get("source_id"),
            target_id=data.get("target_id"),
            style=data.get("style"),
        )


# ---------------------------------------------------------------------------
# Batch records
# ---------------------------------------------------------------------------

@dataclass
class CellSpec:
    """One creation request in a ``batch_add_cells`` call."""
    kind: str = VERTEX
    text: Optional[str] = None
    style: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    temp_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CellSpec:
        return cls(
            kind=data.get("type", VERTEX),
            text=data.get("text"),
            style=data.get("style"),
            x=data.get("x"),
            y=data.get("y"),
            width=data.get("width"),
            height=data.get("height"),
            source_id=data.get("source_id"),
            target_id=data.get("target_id"),
            temp_id=data.get("temp_id"),
        )


@dataclass
class GroupSpec:
    """One creation request in a ``batch_create_groups`` call."""
    text: Optional[str] = None
    style: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    temp_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GroupSpec:
        return cls(
            text=data.get("text"),
            style=data.get("style"),
            x=data.get("x"),
            y=data.get("y"),
            width=data.get("width"),
            height=data.get("height"),
            temp_id=data.get("temp_id"),
        )


@dataclass
class BatchResult:
    """Outcome of one item of a batch call."""
    success: bool
    cell: Optional[Cell] = None
    temp_id: Optional[str] = None
    cell_id: Optional[str] = None
    group_id: Optional[str] = None
    shape_name: Optional[str] = None
    error: Optional[ModelError] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.temp_id is not None:
            data["temp_id"] = self.temp_id
        if self.cell_id is not None:
            data["cell_id"] = self.cell_id
        if self.group_id is not None:
            data["group_id"] = self.group_id
        if self.shape_name is not None:
            data["shape_name"] = self.shape_name
        if self.cell is not None:
            data["cell"] = self.cell.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


# ---------------------------------------------------------------------------
# Operation summaries
# ---------------------------------------------------------------------------

@dataclass
class DeleteResult:
    deleted: bool
    cascaded_edge_ids: list[str] = field(default_factory=list)
    error: Optional[ModelError] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"deleted": self.deleted}
        if self.cascaded_edge_ids:
            data["cascaded_edge_ids"] = list(self.cascaded_edge_ids)
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class ImportSummary:
    pages: int
    cells: int
    layers: int

    def to_dict(self) -> dict[str, Any]:
        return {"pages": self.pages, "cells": self.cells, "layers": self.layers}


@dataclass
class ClearSummary:
    vertices: int
    edges: int

    def to_dict(self) -> dict[str, Any]:
        return {"vertices": self.vertices, "edges": self.edges}


@dataclass
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def to_dict(self) -> dict[str, float]:
        return {"min_x": self.min_x, "min_y": self.min_y,
                "max_x": self.max_x, "max_y": self.max_y}


@dataclass
class DiagramStats:
    """Snapshot of the active page, computed on demand."""
    total_cells: int
    vertices: int
    edges: int
    groups: int
    layers: int
    cells_by_layer: dict[str, int]
    cells_with_text: int
    cells_without_text: int
    bounds: Optional[Bounds]
    pages: int
    active_page: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_cells": self.total_cells,
            "vertices": self.vertices,
            "edges": self.edges,
            "groups": self.groups,
            "layers": self.layers,
            "cells_by_layer": dict(self.cells_by_layer),
            "cells_with_text": self.cells_with_text,
            "cells_without_text": self.cells_without_text,
            "bounds": self.bounds.to_dict() if self.bounds else None,
            "pages": self.pages,
            "active_page": self.active_page,
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _num(value: float) -> str:
    """Format a coordinate without a trailing ``.0`` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clamp_size(value: Optional[float], default: float) -> float:
    """Width/height must be at least 1; missing values take *default*."""
    if value is None:
        return default
    return value if value >= 1 else 1


def ensure_container_style(style: str) -> str:
    """Return *style* with exactly one ``container=1`` token present."""
    tokens = [t.strip() for t in style.split(";")]
    if CONTAINER_TOKEN in tokens:
        return style
    if style and not style.endswith(";"):
        style += ";"
    return f"{style}{CONTAINER_TOKEN};"
