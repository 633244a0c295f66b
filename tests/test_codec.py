"""Tests for XML export, import and draw.io compression."""

import base64
import xml.etree.ElementTree as ET
import zlib

import pytest

from drawio_model.codec import (
    XmlFormatError,
    compress_xml,
    decompress_xml,
    escape_xml,
    normalize_cell,
    parse_document,
)
from drawio_model.document import DiagramDocument
from drawio_model.errors import ModelError


def _wrap(cells: str, name: str = "Page") -> str:
    return (
        '<mxfile host="test"><diagram id="d1" name="%s"><mxGraphModel><root>'
        '<mxCell id="0"/><mxCell id="1" parent="0"/>%s'
        "</root></mxGraphModel></diagram></mxfile>" % (name, cells)
    )


@pytest.fixture
def doc() -> DiagramDocument:
    return DiagramDocument()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class TestExport:
    def test_minimal_document(self, doc: DiagramDocument) -> None:
        xml = doc.to_xml()
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "<mxfile" in xml
        assert 'compressed="false"' in xml
        assert '<mxCell id="0"/>' in xml
        assert '<mxCell id="1" parent="0"/>' in xml
        assert '<diagram id="page-1" name="Page-1">' in xml

    def test_output_is_well_formed(self, doc: DiagramDocument) -> None:
        a = doc.add_vertex(text="A")
        b = doc.add_vertex(text="B")
        doc.add_edge(a.id, b.id)
        root = ET.fromstring(doc.to_xml().encode("utf-8"))
        assert root.tag == "mxfile"
        cells = root.findall("./diagram/mxGraphModel/root/mxCell")
        assert [c.get("id") for c in cells] == ["0", "1", a.id, b.id, "cell-4"]

    def test_values_are_escaped(self, doc: DiagramDocument) -> None:
        doc.add_vertex(text="<b>Tom & \"Jerry's\"</b>")
        xml = doc.to_xml()
        assert 'value="&lt;b&gt;Tom &amp; &quot;Jerry&apos;s&quot;&lt;/b&gt;"' in xml

    def test_escape_xml(self) -> None:
        assert escape_xml("a<b>&'\"") == "a&lt;b&gt;&amp;&apos;&quot;"
        assert escape_xml("line\nbreak") == "line&#10;break"

    def test_compressed_export(self, doc: DiagramDocument) -> None:
        doc.add_vertex(text="Hello")
        xml = doc.to_xml(compress=True)
        assert 'compressed="true"' in xml
        assert "<mxGraphModel" not in xml
        root = ET.fromstring(xml.encode("utf-8"))
        payload = root.find("diagram").text
        inner = decompress_xml(payload)
        assert inner.startswith("<mxGraphModel>")
        assert 'value="Hello"' in inner


# ---------------------------------------------------------------------------
# Compression
# ---------------------------------------------------------------------------

class TestCompression:
    def test_round_trip(self) -> None:
        text = '<mxGraphModel><root><mxCell id="0"/></root></mxGraphModel>'
        assert decompress_xml(compress_xml(text)) == text

    def test_round_trip_unicode(self) -> None:
        text = "<a>Grüße → 東京 (ok)!</a>"
        assert decompress_xml(compress_xml(text)) == text

    def test_format_is_uri_encoded_raw_deflate(self) -> None:
        payload = compress_xml("<a b='1'>x y</a>")
        raw = zlib.decompress(base64.b64decode(payload), -15).decode("ascii")
        assert raw == "%3Ca%20b%3D'1'%3Ex%20y%3C%2Fa%3E"

    def test_output_is_base64(self) -> None:
        payload = compress_xml("<root/>" * 50)
        base64.b64decode(payload, validate=True)

    def test_whitespace_in_payload_tolerated(self) -> None:
        payload = compress_xml("<x/>")
        spaced = "\n  ".join(payload[i:i + 4] for i in range(0, len(payload), 4))
        assert decompress_xml(spaced) == "<x/>"

    def test_garbage_rejected(self) -> None:
        with pytest.raises(XmlFormatError):
            decompress_xml("not base64 at all!!")

    def test_non_deflate_rejected(self) -> None:
        with pytest.raises(XmlFormatError):
            decompress_xml(base64.b64encode(b"plain bytes").decode("ascii"))

    def test_document_passthroughs(self) -> None:
        assert DiagramDocument.compress_xml("<x/>") == compress_xml("<x/>")
        assert DiagramDocument.decompress_xml(compress_xml("<x/>")) == "<x/>"


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

class TestImport:
    def test_empty_input(self, doc: DiagramDocument) -> None:
        for text in ("", "   \n"):
            result = doc.import_xml(text)
            assert isinstance(result, ModelError)
            assert result.code == "EMPTY_XML"

    def test_malformed_input_leaves_document_untouched(self, doc: DiagramDocument) -> None:
        cell = doc.add_vertex(text="keep me")
        result = doc.import_xml("<mxfile><diagram>")
        assert isinstance(result, ModelError)
        assert result.code == "INVALID_XML"
        assert doc.get_cell(cell.id) is cell

    def test_wrong_root_rejected(self, doc: DiagramDocument) -> None:
        assert doc.import_xml("<html><body/></html>").code == "INVALID_XML"

    def test_basic_import(self, doc: DiagramDocument) -> None:
        xml = _wrap(
            '<mxCell id="2" value="A" style="rounded=1;" vertex="1" parent="1">'
            '<mxGeometry x="10" y="20" width="120" height="60" as="geometry"/></mxCell>'
            '<mxCell id="3" value="B" vertex="1" parent="1">'
            '<mxGeometry x="200" y="20" width="120" height="60" as="geometry"/></mxCell>'
            '<mxCell id="4" edge="1" source="2" target="3" parent="1">'
            '<mxGeometry relative="1" as="geometry"/></mxCell>'
        )
        summary = doc.import_xml(xml)
        assert summary.to_dict() == {"pages": 1, "cells": 3, "layers": 1}
        a = doc.get_cell("2")
        assert a.value == "A"
        assert a.style == "rounded=1;"
        assert (a.geometry.x, a.geometry.y, a.geometry.width, a.geometry.height) == (10, 20, 120, 60)
        edge = doc.get_cell("4")
        assert edge.kind == "edge"
        assert (edge.source_id, edge.target_id) == ("2", "3")

    def test_import_replaces_existing_content(self, doc: DiagramDocument) -> None:
        doc.add_vertex(text="old")
        doc.create_page("old page")
        doc.import_xml(_wrap('<mxCell id="9" vertex="1" parent="1"/>'))
        assert [p.id for p in doc.list_pages()] == ["page-1"]
        assert [c.id for c in doc.list_cells()] == ["9"]

    def test_vertex_without_geometry_gets_defaults(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap('<mxCell id="5" vertex="1" parent="1"/>'))
        geo = doc.get_cell("5").geometry
        assert (geo.x, geo.y, geo.width, geo.height) == (0, 0, 200, 100)

    def test_missing_parent_defaults_to_default_layer(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap('<mxCell id="5" vertex="1"/>'))
        assert doc.get_cell("5").parent == "1"

    def test_allocator_advances_past_imported_ids(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<mxCell id="cell-7" vertex="1" parent="1"/>'
            '<mxCell id="12" vertex="1" parent="1"/>'
        ))
        assert doc.add_vertex().id == "cell-13"

    def test_custom_layers(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<mxCell id="layer-5" value="Notes" parent="0"/>'
            '<mxCell id="L2" parent="0"/>'
            '<mxCell id="7" vertex="1" parent="layer-5"/>'
        ))
        layers = doc.list_layers()
        assert [(layer.id, layer.name) for layer in layers] == [
            ("1", "Default"), ("layer-5", "Notes"), ("L2", "L2"),
        ]
        assert doc.get_cell("7").parent == "layer-5"
        assert doc.create_layer("next").id == "layer-6"

    def test_groups_rebuilt_from_style(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<mxCell id="g" style="container=1;" vertex="1" parent="1"/>'
            '<mxCell id="c1" vertex="1" parent="g"/>'
            '<mxCell id="c2" vertex="1" parent="g"/>'
        ))
        group = doc.get_cell("g")
        assert group.is_group
        assert group.children == ["c1", "c2"]
        assert [c.id for c in doc.list_group_children("g")] == ["c1", "c2"]

    def test_multiple_pages_renumbered(self, doc: DiagramDocument) -> None:
        xml = (
            '<mxfile><diagram id="abc" name="First"><mxGraphModel><root>'
            '<mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<mxCell id="2" vertex="1" parent="1"/></root></mxGraphModel></diagram>'
            '<diagram id="xyz"><mxGraphModel><root>'
            '<mxCell id="0"/><mxCell id="1" parent="0"/></root></mxGraphModel></diagram>'
            "</mxfile>"
        )
        summary = doc.import_xml(xml)
        assert summary.pages == 2
        pages = doc.list_pages()
        assert [(p.id, p.name) for p in pages] == [("page-1", "First"), ("page-2", "Page-2")]
        assert doc.get_active_page().id == "page-1"
        assert doc.create_page("more").id == "page-3"

    def test_mxfile_without_diagrams(self, doc: DiagramDocument) -> None:
        summary = doc.import_xml("<mxfile/>")
        assert summary.to_dict() == {"pages": 1, "cells": 0, "layers": 1}

    def test_diagram_without_root(self, doc: DiagramDocument) -> None:
        summary = doc.import_xml('<mxfile><diagram name="Blank"/></mxfile>')
        assert summary.cells == 0
        assert doc.list_pages()[0].name == "Blank"

    def test_bare_graph_model(self, doc: DiagramDocument) -> None:
        summary = doc.import_xml(
            '<mxGraphModel><root><mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<mxCell id="2" value="solo" vertex="1" parent="1"/></root></mxGraphModel>'
        )
        assert summary.pages == 1
        assert doc.get_cell("2").value == "solo"

    def test_compressed_diagram(self, doc: DiagramDocument) -> None:
        model = (
            '<mxGraphModel><root><mxCell id="0"/><mxCell id="1" parent="0"/>'
            '<mxCell id="2" value="packed" vertex="1" parent="1"/></root></mxGraphModel>'
        )
        xml = f'<mxfile compressed="true"><diagram name="Z">{compress_xml(model)}</diagram></mxfile>'
        summary = doc.import_xml(xml)
        assert summary.cells == 1
        assert doc.get_cell("2").value == "packed"

    def test_corrupt_compressed_diagram(self, doc: DiagramDocument) -> None:
        result = doc.import_xml('<mxfile><diagram name="Z">@@@@</diagram></mxfile>')
        assert result.code == "INVALID_XML"

    def test_cells_without_id_tolerated(self, doc: DiagramDocument) -> None:
        summary = doc.import_xml(_wrap(
            '<mxCell id="4" vertex="1" parent="1"/>'
            '<mxCell value="a" vertex="1" parent="1"/>'
            '<mxCell value="b" vertex="1" parent="1"/>'
        ))
        assert summary.cells == 3
        assert [c.id for c in doc.list_cells()] == ["4", "cell-5", "cell-6"]
        assert doc.get_cell("cell-6").value == "b"

    def test_entities_decoded(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap('<mxCell id="2" value="a &amp; b &lt;c&gt;" vertex="1" parent="1"/>'))
        assert doc.get_cell("2").value == "a & b <c>"


class TestWrappedCells:
    def test_user_object(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<UserObject id="u1" value="Custom Data" style="fillColor=#dae8fc;" vertex="1" parent="1">'
            '<mxCell><mxGeometry x="50" y="50" width="150" height="80" as="geometry"/></mxCell>'
            "</UserObject>"
        ))
        cell = doc.get_cell("u1")
        assert cell.value == "Custom Data"
        assert cell.style == "fillColor=#dae8fc;"
        assert (cell.geometry.x, cell.geometry.width) == (50, 150)

    def test_empty_user_object(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap('<UserObject id="u2" value="Empty" style="" vertex="1" parent="1"></UserObject>'))
        geo = doc.get_cell("u2").geometry
        assert (geo.x, geo.y, geo.width, geo.height) == (0, 0, 200, 100)

    def test_inner_attributes_fill_gaps(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<UserObject id="u3" label="Merged">'
            '<mxCell style="fillColor=#f0f0f0;" vertex="1" parent="1">'
            '<mxGeometry x="10" y="20" width="130" height="70" as="geometry"/></mxCell>'
            "</UserObject>"
        ))
        cell = doc.get_cell("u3")
        assert cell.value == "Merged"
        assert cell.style == "fillColor=#f0f0f0;"
        assert cell.kind == "vertex"
        assert cell.geometry.height == 70

    def test_outer_attributes_win(self) -> None:
        el = ET.fromstring(
            '<object id="o1" style="outer;" label="L">'
            '<mxCell id="inner" style="inner;" edge="1" parent="1"/></object>'
        )
        record = normalize_cell(el)
        assert record.attrs["id"] == "o1"
        assert record.attrs["style"] == "outer;"
        assert record.attrs["value"] == "L"
        assert record.attrs["edge"] == "1"
        assert "label" not in record.attrs

    def test_object_edge(self, doc: DiagramDocument) -> None:
        doc.import_xml(_wrap(
            '<mxCell id="a" vertex="1" parent="1"/><mxCell id="b" vertex="1" parent="1"/>'
            '<object id="e" label="wire"><mxCell edge="1" source="a" target="b" parent="1">'
            '<mxGeometry relative="1" as="geometry"/></mxCell></object>'
        ))
        edge = doc.get_cell("e")
        assert edge.is_edge
        assert edge.value == "wire"
        assert (edge.source_id, edge.target_id) == ("a", "b")


def test_parse_document_does_not_need_a_document() -> None:
    pages = parse_document(_wrap('<mxCell id="2" vertex="1" parent="1"/>', name="Solo"))
    assert len(pages) == 1
    assert pages[0].name == "Solo"
    assert "2" in pages[0].cells


def test_parse_rejects_malformed() -> None:
    with pytest.raises(XmlFormatError, match="Malformed"):
        parse_document("<mxfile")


class TestRoundTrip:
    def test_export_import_preserves_graph(self, doc: DiagramDocument) -> None:
        layer = doc.create_layer("Top")
        a = doc.add_vertex(text="A & B", x=1.5, y=2, width=30, height=40, style="shape=ellipse;")
        b = doc.add_vertex(text="B", x=100, y=2)
        doc.set_active_layer(layer.id)
        edge = doc.add_edge(a.id, b.id, text="it's")
        group = doc.create_group(text="G")
        doc.add_cell_to_group(b.id, group.id)
        second = doc.create_page("Second")
        doc.set_active_page(second.id)
        doc.add_vertex(text="on two")

        for compress in (False, True):
            copy = DiagramDocument()
            copy.import_xml(doc.to_xml(compress=compress))
            assert [(p.id, p.name) for p in copy.list_pages()] == [
                ("page-1", "Page-1"), ("page-2", "Second"),
            ]
            assert [(lyr.id, lyr.name) for lyr in copy.list_layers()] == [
                ("1", "Default"), (layer.id, "Top"),
            ]
            ca = copy.get_cell(a.id)
            assert ca.value == "A & B"
            assert ca.style == "shape=ellipse;"
            assert (ca.geometry.x, ca.geometry.width) == (1.5, 30)
            ce = copy.get_cell(edge.id)
            assert (ce.source_id, ce.target_id, ce.value) == (a.id, b.id, "it's")
            assert ce.parent == layer.id
            cg = copy.get_cell(group.id)
            assert cg.is_group
            assert cg.children == [b.id]
            assert copy.get_cell(b.id).parent == group.id
            copy.set_active_page("page-2")
            assert [c.value for c in copy.list_cells()] == ["on two"]

    def test_group_children_order_survives(self, doc: DiagramDocument) -> None:
        group = doc.create_group()
        a, b = doc.add_vertex(text="a"), doc.add_vertex(text="b")
        doc.add_cell_to_group(b.id, group.id)
        doc.add_cell_to_group(a.id, group.id)

        copy = DiagramDocument()
        copy.import_xml(doc.to_xml())
        assert copy.get_cell(group.id).children == [b.id, a.id]

    def test_group_renders_before_its_members(self, doc: DiagramDocument) -> None:
        a = doc.add_vertex()
        group = doc.create_group()
        doc.add_cell_to_group(a.id, group.id)
        xml = doc.to_xml()
        assert xml.index(f'id="{group.id}"') < xml.index(f'id="{a.id}"')


class TestIdsAfterImport:
    def test_dangling_parent_not_reissued(self, doc: DiagramDocument) -> None:
        orphan = doc.add_vertex()
        group = doc.create_group()
        doc.add_cell_to_group(orphan.id, group.id)
        doc.delete_cell(group.id)

        doc.import_xml(doc.to_xml())
        fresh = doc.create_group()
        assert fresh.id != group.id
        assert doc.get_cell(orphan.id).parent == group.id
        assert fresh.children == []

    def test_dangling_terminals_not_reissued(self) -> None:
        pages = parse_document(_wrap(
            '<mxCell id="cell-2" vertex="1" parent="1"/>'
            '<mxCell id="cell-3" edge="1" parent="1" source="cell-2" target="cell-9"/>'
        ))
        assert pages[0].ids.peek() == "cell-10"
