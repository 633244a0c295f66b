"""
XML codec for the draw.io / mxGraph interchange format.

Rendering walks the pages and emits ``<mxfile>`` with one ``<diagram>`` per
page.  Parsing accepts an ``<mxfile>`` or a bare ``<mxGraphModel>``,
inflates compressed diagram payloads, and folds the ``<UserObject>`` /
``<object>`` wrapper form into the same flat record as a plain ``<mxCell>``
before any cell is built.
"""

from __future__ import annotations

import base64
import binascii
import datetime
import xml.etree.ElementTree as ET
import zlib
from typing import Any, NamedTuple, Optional
from urllib.parse import quote, unquote

from drawio_model.models import (
    CONTAINER_TOKEN,
    DEFAULT_HEIGHT,
    DEFAULT_LAYER_ID,
    DEFAULT_WIDTH,
    EDGE,
    PAGE_ID_PREFIX,
    ROOT_ID,
    VERTEX,
    Cell,
    Geometry,
    Layer,
    Page,
)

HOST = "drawio-model"
AGENT = "drawio-model/1.0"
VERSION = "24.7.17"

_WRAPPER_TAGS = ("UserObject", "object")
_CELL_TAGS = ("mxCell",) + _WRAPPER_TAGS

# encodeURIComponent leaves these unescaped in addition to alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*'()"

_ENTITIES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
    "\n": "&#10;",
    "\r": "&#13;",
    "\t": "&#9;",
})


class XmlFormatError(ValueError):
    """Raised when input is not a structurally valid draw.io document."""


# ---------------------------------------------------------------------------
# Escaping / serialisation
# ---------------------------------------------------------------------------

def escape_xml(text: str) -> str:
    """Entity-escape the five reserved XML characters (plus line breaks)."""
    return text.translate(_ENTITIES)


def serialize(el: ET.Element, pretty: bool = False) -> str:
    """Serialise an element tree with full entity escaping.

    ``xml.etree`` leaves apostrophes unescaped in attribute values, which
    the draw.io desktop application escapes, so the writer is our own.
    """
    lines: list[str] = []
    _write(el, lines, pretty, 0)
    return ("\n" if pretty else "").join(lines)


def _write(el: ET.Element, out: list[str], pretty: bool, depth: int) -> None:
    pad = "  " * depth if pretty else ""
    attrs = "".join(f' {k}="{escape_xml(v)}"' for k, v in el.attrib.items())
    children = list(el)
    if not children and not el.text:
        out.append(f"{pad}<{el.tag}{attrs}/>")
    elif not children:
        out.append(f"{pad}<{el.tag}{attrs}>{escape_xml(el.text)}</{el.tag}>")
    else:
        out.append(f"{pad}<{el.tag}{attrs}>")
        for child in children:
            _write(child, out, pretty, depth + 1)
        out.append(f"{pad}</{el.tag}>")


# ---------------------------------------------------------------------------
# Compression (draw.io desktop format)
# ---------------------------------------------------------------------------

def compress_xml(xml: str) -> str:
    """URI-encode, raw-deflate and base64-encode *xml*."""
    encoded = quote(xml, safe=_URI_COMPONENT_SAFE).encode("utf-8")
    deflater = zlib.compressobj(9, zlib.DEFLATED, -15)
    raw = deflater.compress(encoded) + deflater.flush()
    return base64.b64encode(raw).decode("ascii")


def decompress_xml(payload: str) -> str:
    """Inverse of :func:`compress_xml`."""
    compact = "".join(payload.split())
    try:
        raw = base64.b64decode(compact, validate=True)
        inflated = zlib.decompress(raw, -15).decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeDecodeError) as exc:
        raise XmlFormatError(f"Cannot decode compressed diagram: {exc}") from exc
    return unquote(inflated)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_document(pages: list[Page], compress: bool = False) -> str:
    """Render all *pages* as an ``<mxfile>`` string."""
    mxfile = ET.Element("mxfile", attrib={
        "host": HOST,
        "modified": datetime.datetime.now(datetime.timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%S.000Z"
        ),
        "agent": AGENT,
        "version": VERSION,
        "type": "device",
        "compressed": "true" if compress else "false",
    })
    for page in pages:
        diagram = page.to_element()
        if compress:
            model = diagram.find("mxGraphModel")
            diagram.remove(model)
            diagram.text = compress_xml(serialize(model))
        mxfile.append(diagram)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + serialize(mxfile, pretty=True)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class CellRecord(NamedTuple):
    """Flat attribute view of one cell element, wrapper form resolved."""
    attrs: dict[str, str]
    geometry: Optional[ET.Element]


def normalize_cell(el: ET.Element) -> CellRecord:
    """Fold a ``<UserObject>``/``<object>`` wrapper and its inner ``<mxCell>``.

    Attributes on the wrapper win; the inner cell fills in whatever the
    wrapper lacks.  The wrapper's ``label`` is the cell value.
    """
    attrs = dict(el.attrib)
    inner = el
    if el.tag in _WRAPPER_TAGS:
        if "label" in attrs:
            label = attrs.pop("label")
            attrs.setdefault("value", label)
        found = el.find("mxCell")
        if found is not None:
            inner = found
            for key, value in found.attrib.items():
                attrs.setdefault(key, value)
    return CellRecord(attrs, inner.find("mxGeometry"))


def parse_document(xml_text: str) -> list[Page]:
    """Parse *xml_text* into fresh pages without touching any document.

    Raises :class:`XmlFormatError` on anything structurally unusable;
    individual malformed cells are tolerated.
    """
    try:
        root = ET.fromstring(xml_text.encode("utf-8"))
    except ET.ParseError as exc:
        raise XmlFormatError(f"Malformed XML: {exc}") from exc

    if root.tag == "mxfile":
        sources: list[tuple[Optional[ET.Element], Optional[ET.Element]]] = [
            (diag, _diagram_model(diag)) for diag in root.findall("diagram")
        ]
        if not sources:
            sources = [(None, None)]
    elif root.tag == "mxGraphModel":
        sources = [(None, root)]
    else:
        raise XmlFormatError(
            f"Expected <mxfile> or <mxGraphModel> root element, got <{root.tag}>"
        )

    pages: list[Page] = []
    for index, (diag, model) in enumerate(sources):
        name = diag.get("name") if diag is not None else None
        page = Page(id=f"{PAGE_ID_PREFIX}{index + 1}", name=name or f"Page-{index + 1}")
        root_el = model.find("root") if model is not None else None
        anonymous: list[Cell] = []
        if root_el is not None:
            records = [normalize_cell(el) for el in root_el if el.tag in _CELL_TAGS]
            anonymous = _populate_page(page, records)
        page.ids.advance_past(_referenced_ids(page, anonymous))
        for cell in anonymous:
            cell.id = page.ids.next(page.has_id)
            page.cells[cell.id] = cell
            group = page.cells.get(cell.parent)
            if group is not None and group.is_group:
                group.children.append(cell.id)
        pages.append(page)
    return pages


def _referenced_ids(page: Page, anonymous: list[Cell]) -> list[str]:
    """Every id *page* names, including dangling parent and terminal references."""
    ids = list(page.cells) + [layer.id for layer in page.layers]
    for cell in list(page.cells.values()) + anonymous:
        ids.extend(ref for ref in (cell.parent, cell.source_id, cell.target_id) if ref)
    return ids


def _diagram_model(diag: ET.Element) -> Optional[ET.Element]:
    model = diag.find("mxGraphModel")
    if model is not None:
        return model
    payload = (diag.text or "").strip()
    if not payload:
        return None
    try:
        return ET.fromstring(decompress_xml(payload).encode("utf-8"))
    except ET.ParseError as exc:
        raise XmlFormatError(f"Compressed diagram is not valid XML: {exc}") from exc


def _populate_page(page: Page, records: list[CellRecord]) -> list[Cell]:
    """Fill *page* from *records*; cells lacking an id are returned unplaced."""
    anonymous: list[Cell] = []
    for rec in records:
        attrs = rec.attrs
        cid = attrs.get("id", "")
        is_vertex = attrs.get("vertex") == "1"
        is_edge = attrs.get("edge") == "1"

        if not is_vertex and not is_edge:
            if cid == ROOT_ID:
                continue
            if cid == DEFAULT_LAYER_ID:
                if attrs.get("value"):
                    page.layers[0].name = attrs["value"]
            elif cid and attrs.get("parent") == ROOT_ID:
                page.layers.append(Layer(cid, attrs.get("value") or cid))
            continue

        style = attrs.get("style", "")
        cell = Cell(
            id=cid,
            kind=EDGE if is_edge else VERTEX,
            value=attrs.get("value", ""),
            style=style,
            parent=attrs.get("parent") or DEFAULT_LAYER_ID,
        )
        if is_edge:
            cell.source_id = attrs.get("source") or None
            cell.target_id = attrs.get("target") or None
        else:
            cell.geometry = _parse_geometry(rec.geometry)
            cell.is_group = CONTAINER_TOKEN in [t.strip() for t in style.split(";")]
        if cid:
            page.cells[cid] = cell
        else:
            anonymous.append(cell)

    for cell in page.cells.values():
        group = page.cells.get(cell.parent)
        if group is not None and group.is_group and cell.id not in group.children:
            group.children.append(cell.id)
    return anonymous


def _parse_geometry(el: Optional[ET.Element]) -> Geometry:
    if el is None:
        return Geometry()
    return Geometry(
        x=_number(el.get("x"), 0),
        y=_number(el.get("y"), 0),
        width=_number(el.get("width"), DEFAULT_WIDTH),
        height=_number(el.get("height"), DEFAULT_HEIGHT),
    )


def _number(raw: Optional[str], default: float) -> Any:
    if raw is None:
        return default
    try:
        val = float(raw)
    except ValueError:
        return default
    return int(val) if val.is_integer() else val
