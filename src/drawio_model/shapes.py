"""
Basic shape catalog and style presets for draw.io cells.

Shapes are looked up by exact name, ignoring case; there is no partial
matching, so ``"rect"`` does not resolve to ``rectangle``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class BasicShape:
    """A named vertex style with its default size."""
    name: str
    style: str
    default_width: int
    default_height: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "style": self.style,
            "width": self.default_width,
            "height": self.default_height,
        }


BASIC_SHAPES: dict[str, BasicShape] = {
    s.name: s for s in (
        BasicShape("rectangle", "rounded=0;whiteSpace=wrap;html=1;", 120, 60),
        BasicShape("rounded", "rounded=1;whiteSpace=wrap;html=1;", 120, 60),
        BasicShape("ellipse", "ellipse;whiteSpace=wrap;html=1;", 120, 80),
        BasicShape("diamond", "rhombus;whiteSpace=wrap;html=1;", 80, 80),
        BasicShape("circle", "ellipse;whiteSpace=wrap;html=1;aspect=fixed;", 80, 80),
        BasicShape(
            "process",
            "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;", 120, 60,
        ),
        BasicShape(
            "decision",
            "rhombus;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;", 100, 100,
        ),
        BasicShape(
            "start",
            "ellipse;whiteSpace=wrap;html=1;fillColor=#d5e8d4;strokeColor=#82b366;", 120, 60,
        ),
        BasicShape(
            "end",
            "ellipse;whiteSpace=wrap;html=1;fillColor=#f8cecc;strokeColor=#b85450;", 120, 60,
        ),
        BasicShape(
            "parallelogram",
            "shape=parallelogram;perimeter=parallelogramPerimeter;whiteSpace=wrap;html=1;",
            120, 60,
        ),
        BasicShape(
            "hexagon",
            "shape=hexagon;perimeter=hexagonPerimeter;whiteSpace=wrap;html=1;", 120, 80,
        ),
        BasicShape(
            "cylinder",
            "shape=cylinder3;whiteSpace=wrap;html=1;boundedLbl=1;backgroundOutline=1;size=15;",
            60, 80,
        ),
        BasicShape(
            "triangle",
            "shape=triangle;perimeter=trianglePerimeter;whiteSpace=wrap;html=1;", 60, 80,
        ),
    )
}

BASIC_SHAPE_CATEGORIES: dict[str, list[str]] = {
    "general": [
        "rectangle", "rounded", "ellipse", "diamond", "circle",
        "parallelogram", "hexagon", "cylinder", "triangle",
    ],
    "flowchart": ["process", "decision", "start", "end", "parallelogram"],
}


def get_basic_shape(name: str) -> Optional[BasicShape]:
    """Exact, case-insensitive lookup; ``None`` when *name* is unknown."""
    if not isinstance(name, str):
        return None
    return BASIC_SHAPES.get(name.lower())


def shapes_in_category(category: str) -> Optional[list[BasicShape]]:
    names = BASIC_SHAPE_CATEGORIES.get(category.lower())
    if names is None:
        return None
    return [BASIC_SHAPES[n] for n in names]


# ---------------------------------------------------------------------------
# Style presets
# ---------------------------------------------------------------------------

STYLE_PRESETS: dict[str, dict[str, str]] = {
    "azure": {
        "primary": "fillColor=#0078D4;strokeColor=#0078D4;fontColor=#ffffff;",
        "secondary": "fillColor=#50E6FF;strokeColor=#0078D4;fontColor=#000000;",
        "container": "fillColor=#E6F2FA;strokeColor=#0078D4;rounded=1;dashed=1;",
    },
    "flowchart": {
        "process": "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;",
        "decision": "rhombus;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;",
        "start": "ellipse;whiteSpace=wrap;html=1;fillColor=#d5e8d4;strokeColor=#82b366;",
        "end": "ellipse;whiteSpace=wrap;html=1;fillColor=#f8cecc;strokeColor=#b85450;",
        "data": "shape=parallelogram;whiteSpace=wrap;html=1;fillColor=#e1d5e7;strokeColor=#9673a6;",
    },
    "general": {
        "blue": "fillColor=#dae8fc;strokeColor=#6c8ebf;",
        "green": "fillColor=#d5e8d4;strokeColor=#82b366;",
        "orange": "fillColor=#ffe6cc;strokeColor=#d79b00;",
        "red": "fillColor=#f8cecc;strokeColor=#b85450;",
        "purple": "fillColor=#e1d5e7;strokeColor=#9673a6;",
        "yellow": "fillColor=#fff2cc;strokeColor=#d6b656;",
        "gray": "fillColor=#f5f5f5;strokeColor=#666666;",
    },
    "edges": {
        "solid": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;",
        "dashed": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;dashed=1;",
        "curved": "edgeStyle=orthogonalEdgeStyle;rounded=1;html=1;",
        "arrow": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;endArrow=block;endFill=1;",
    },
}
