# azza_erp/services/document_renderer.py
"""
2-D page primitives the document layouts are written against.

Coordinates are millimetres with the origin at the TOP-left of an A4 page,
y growing downwards; text y is the baseline. Colours are 0-255 RGB tuples.

Two surfaces:
- ReportLabSurface: draws a real PDF (canvas + platypus Table).
- RecordingSurface: keeps every call as a DrawOp, for inspection.
Both measure tables with the same ReportLab table builder, so the y cursor a
layout sees is identical on either surface.
"""

from __future__ import annotations

import io
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]
BLACK: RGB = (0, 0, 0)

_FONTS = {
    ("times", "normal"): "Times-Roman",
    ("times", "bold"): "Times-Bold",
    ("times", "italic"): "Times-Italic",
    ("times", "bolditalic"): "Times-BoldItalic",
    ("helvetica", "normal"): "Helvetica",
    ("helvetica", "bold"): "Helvetica-Bold",
    ("helvetica", "italic"): "Helvetica-Oblique",
    ("helvetica", "bolditalic"): "Helvetica-BoldOblique",
}

_ALIGN = {"left": TA_LEFT, "center": TA_CENTER, "right": TA_RIGHT}

LINE_HEIGHT_FACTOR = 1.15


def font_name(family: str = "times", style: str = "normal") -> str:
    return _FONTS.get((family, style), "Times-Roman")


def _color(rgb: RGB | None):
    if rgb is None:
        return None
    r, g, b = rgb
    return colors.Color(r / 255.0, g / 255.0, b / 255.0)


# =========================================================
# Table description
# =========================================================
@dataclass(frozen=True)
class CellStyle:
    family: str = "times"
    style: str = "normal"  # normal | bold | italic | bolditalic
    size: float = 8
    align: str = "left"  # left | center | right
    valign: str = "middle"  # top | middle | bottom
    fill: RGB | None = None
    text_color: RGB = BLACK
    line_width: float | None = None  # per-cell border override (mm)


@dataclass
class TableSpec:
    """
    Bordered table with head / body / foot sections.

    Style precedence (lowest to highest): base, section style,
    column style (body rows only), cell style keyed by (section, row, col).
    """

    col_widths: Sequence[float]
    head: list[list[str]] = field(default_factory=list)
    body: list[list[str]] = field(default_factory=list)
    foot: list[list[str]] = field(default_factory=list)
    base: CellStyle = field(default_factory=CellStyle)
    head_style: dict[str, Any] = field(default_factory=dict)
    body_style: dict[str, Any] = field(default_factory=dict)
    foot_style: dict[str, Any] = field(default_factory=dict)
    column_styles: dict[int, dict[str, Any]] = field(default_factory=dict)
    cell_styles: dict[tuple[str, int, int], dict[str, Any]] = field(default_factory=dict)
    line_width: float = 0.5
    line_color: RGB = BLACK
    padding: float = 2

    @property
    def width(self) -> float:
        return float(sum(self.col_widths))

    def style_for(self, section: str, row: int, col: int) -> CellStyle:
        st = replace(self.base, **getattr(self, f"{section}_style"))
        if section == "body" and col in self.column_styles:
            st = replace(st, **self.column_styles[col])
        override = self.cell_styles.get((section, row, col))
        if override:
            st = replace(st, **override)
        return st

    def sections(self):
        yield "head", self.head
        yield "body", self.body
        yield "foot", self.foot


def _markup(value: Any) -> str:
    return escape("" if value is None else str(value)).replace("\n", "<br/>")


def build_table(spec: TableSpec) -> Table | None:
    rows: list[list[Paragraph]] = []
    commands: list[tuple] = []
    r = 0
    for section, section_rows in spec.sections():
        for i, row in enumerate(section_rows):
            cells = []
            for c, value in enumerate(row):
                st = spec.style_for(section, i, c)
                pstyle = ParagraphStyle(
                    f"{section}-{i}-{c}",
                    fontName=font_name(st.family, st.style),
                    fontSize=st.size,
                    leading=st.size * LINE_HEIGHT_FACTOR,
                    alignment=_ALIGN.get(st.align, TA_LEFT),
                    textColor=_color(st.text_color),
                )
                cells.append(Paragraph(_markup(value), pstyle))
                commands.append(("VALIGN", (c, r), (c, r), st.valign.upper()))
                if st.fill is not None:
                    commands.append(("BACKGROUND", (c, r), (c, r), _color(st.fill)))
                if st.line_width is not None:
                    commands.append(("BOX", (c, r), (c, r), st.line_width * mm, _color(spec.line_color)))
            rows.append(cells)
            r += 1

    if not rows:
        return None

    pad = spec.padding * mm
    style = [
        ("GRID", (0, 0), (-1, -1), spec.line_width * mm, _color(spec.line_color)),
        ("LEFTPADDING", (0, 0), (-1, -1), pad),
        ("RIGHTPADDING", (0, 0), (-1, -1), pad),
        ("TOPPADDING", (0, 0), (-1, -1), pad),
        ("BOTTOMPADDING", (0, 0), (-1, -1), pad),
    ] + commands

    table = Table(
        rows,
        colWidths=[w * mm for w in spec.col_widths],
        repeatRows=len(spec.head),
        hAlign="LEFT",
    )
    table.setStyle(TableStyle(style))
    return table


# =========================================================
# Surfaces
# =========================================================
class PageSurface(ABC):
    page_width: float = A4[0] / mm
    page_height: float = A4[1] / mm
    margin: float = 15

    def split_text(self, value: str, width: float, *, family: str = "times", style: str = "normal", size: float = 10) -> list[str]:
        """Word-wrap value to width (mm) for the given font."""
        lines = simpleSplit(value or "", font_name(family, style), size, width * mm)
        return lines or [""]

    def measure_table(self, spec: TableSpec) -> float:
        table = build_table(spec)
        if table is None:
            return 0.0
        _, h = table.wrap(spec.width * mm, self.page_height * mm)
        return h / mm

    @abstractmethod
    def text(self, x: float, y: float, value: str, *, family: str = "times", style: str = "normal",
             size: float = 10, align: str = "left", color: RGB = BLACK) -> None: ...

    @abstractmethod
    def rect(self, x: float, y: float, w: float, h: float, *, line_width: float = 0.5) -> None: ...

    @abstractmethod
    def line(self, x1: float, y1: float, x2: float, y2: float, *, line_width: float = 0.5) -> None: ...

    @abstractmethod
    def image(self, path: str | None, x: float, y: float, w: float, h: float) -> bool:
        """Place an image; returns False (and draws nothing) when it can't be loaded."""

    @abstractmethod
    def table(self, spec: TableSpec, *, x: float, y: float) -> float:
        """Draw spec with its top-left at (x, y); returns the y just below it."""

    @abstractmethod
    def finish(self) -> bytes: ...


class ReportLabSurface(PageSurface):
    def __init__(self, title: str | None = None):
        self._buf = io.BytesIO()
        self.canvas = canvas.Canvas(self._buf, pagesize=A4)
        if title:
            self.canvas.setTitle(title)
        self.pages = 1

    def _y(self, y: float) -> float:
        return (self.page_height - y) * mm

    def text(self, x, y, value, *, family="times", style="normal", size=10, align="left", color=BLACK):
        c = self.canvas
        c.setFont(font_name(family, style), size)
        c.setFillColor(_color(color))
        if align == "right":
            c.drawRightString(x * mm, self._y(y), value)
        elif align == "center":
            c.drawCentredString(x * mm, self._y(y), value)
        else:
            c.drawString(x * mm, self._y(y), value)

    def rect(self, x, y, w, h, *, line_width=0.5):
        c = self.canvas
        c.setStrokeColor(colors.black)
        c.setLineWidth(line_width * mm)
        c.rect(x * mm, self._y(y + h), w * mm, h * mm, stroke=1, fill=0)

    def line(self, x1, y1, x2, y2, *, line_width=0.5):
        c = self.canvas
        c.setStrokeColor(colors.black)
        c.setLineWidth(line_width * mm)
        c.line(x1 * mm, self._y(y1), x2 * mm, self._y(y2))

    def image(self, path, x, y, w, h):
        if not path or not os.path.exists(path):
            return False
        try:
            self.canvas.drawImage(
                path, x * mm, self._y(y + h), w * mm, h * mm,
                mask="auto", preserveAspectRatio=True,
            )
        except Exception:
            # A broken asset must not block the document
            logger.info("Image could not be placed: %s", path, exc_info=True)
            return False
        return True

    def new_page(self) -> None:
        self.canvas.showPage()
        self.pages += 1

    def table(self, spec, *, x, y):
        t = build_table(spec)
        if t is None:
            return y

        avail_w = spec.width * mm
        while True:
            avail_h = (self.page_height - self.margin - y) * mm
            _, h = t.wrapOn(self.canvas, avail_w, avail_h)
            if h <= avail_h:
                t.drawOn(self.canvas, x * mm, self._y(y) - h)
                return y + h / mm

            parts = t.split(avail_w, avail_h)
            if len(parts) < 2:
                if y <= self.margin:
                    # Taller than a whole page and unsplittable: draw and let it clip
                    t.drawOn(self.canvas, x * mm, self._y(y) - h)
                    return y + h / mm
                self.new_page()
                y = self.margin
                continue

            first, t = parts[0], parts[1]
            _, fh = first.wrapOn(self.canvas, avail_w, avail_h)
            first.drawOn(self.canvas, x * mm, self._y(y) - fh)
            self.new_page()
            y = self.margin

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        pdf = self._buf.getvalue()
        self._buf.close()
        return pdf


@dataclass(frozen=True)
class DrawOp:
    kind: str  # text | rect | line | image | table
    x: float
    y: float
    payload: dict


class RecordingSurface(PageSurface):
    def __init__(self):
        self.ops: list[DrawOp] = []

    def text(self, x, y, value, *, family="times", style="normal", size=10, align="left", color=BLACK):
        self.ops.append(DrawOp("text", x, y, {
            "value": value, "family": family, "style": style, "size": size, "align": align, "color": color,
        }))

    def rect(self, x, y, w, h, *, line_width=0.5):
        self.ops.append(DrawOp("rect", x, y, {"w": w, "h": h, "line_width": line_width}))

    def line(self, x1, y1, x2, y2, *, line_width=0.5):
        self.ops.append(DrawOp("line", x1, y1, {"x2": x2, "y2": y2, "line_width": line_width}))

    def image(self, path, x, y, w, h):
        placed = bool(path) and os.path.exists(path)
        self.ops.append(DrawOp("image", x, y, {"path": path, "w": w, "h": h, "placed": placed}))
        return placed

    def table(self, spec, *, x, y):
        height = self.measure_table(spec)
        self.ops.append(DrawOp("table", x, y, {"spec": spec, "height": height}))
        return y + height

    def finish(self) -> bytes:
        return b""

    # -----------------------------
    # Inspection helpers
    # -----------------------------
    def texts(self) -> list[str]:
        return [op.payload["value"] for op in self.ops if op.kind == "text"]

    def text_ops(self, startswith: str = "") -> list[DrawOp]:
        return [op for op in self.ops if op.kind == "text" and op.payload["value"].startswith(startswith)]

    def tables(self) -> list[TableSpec]:
        return [op.payload["spec"] for op in self.ops if op.kind == "table"]
