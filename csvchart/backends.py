"""Render backends.

A backend turns a :class:`~csvchart.models.ChartEncoding` into output for a
mount point. Each render gets its own surface, so chart instances never share
drawing state. Two backends are provided: :class:`SvgBackend` (inline SVG for
the browser) and :class:`MatplotlibBackend` (PNG through the Agg canvas).
"""

from __future__ import annotations

import html
import io
import logging
import math
from typing import Any, Dict, List, Protocol, Sequence, Tuple
from xml.etree import ElementTree as ET

import matplotlib
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Wedge

from .config import AXIS_TICK_SIZE
from .models import ArcShape, AxisEncoding, ChartEncoding, LegendEntry, LineShape, TextMark
from .shapes import fmt_number

matplotlib.use("Agg")

matplotlib.rcParams["font.sans-serif"] = [
    "Noto Sans CJK SC",
    "Arial Unicode MS",
    "DejaVu Sans",
]
matplotlib.rcParams["axes.unicode_minus"] = False

logger = logging.getLogger(__name__)


class Surface(Protocol):
    media_type: str

    def draw_axis(self, axis: AxisEncoding) -> None: ...

    def draw_shape(self, shape: LineShape | ArcShape, *, visible: bool = True) -> Any: ...

    def update_shape(self, handle: Any, shape: LineShape, *, visible: bool) -> None: ...

    def draw_text(self, mark: TextMark) -> Any: ...

    def set_text_visible(self, handle: Any, visible: bool) -> None: ...

    def render(self) -> str | bytes: ...


class RenderBackend(Protocol):
    name: str

    def new_surface(self, encoding: ChartEncoding) -> Surface: ...

    def draw_legend(self, entries: Sequence[LegendEntry]) -> str: ...

    def draw_message(self, text: str, color: str) -> str: ...


class _HtmlFragments:
    """Legend and inline messages are page markup for every backend."""

    def draw_legend(self, entries: Sequence[LegendEntry]) -> str:
        return "".join(
            f'<div style="color: {html.escape(entry.color)}">{html.escape(entry.text)}</div>' for entry in entries
        )

    def draw_message(self, text: str, color: str) -> str:
        return f'<p style="color: {html.escape(color)}">{html.escape(text)}</p>'


# ----------------------------------------------------------------------
# SVG
# ----------------------------------------------------------------------
_HOVER_CSS = ".arc:hover text.hover-label{visibility:visible}"


class SvgSurface:
    media_type = "image/svg+xml"

    def __init__(self, encoding: ChartEncoding) -> None:
        self.encoding = encoding
        self.root = ET.Element(
            "svg",
            {
                "xmlns": "http://www.w3.org/2000/svg",
                "width": str(encoding.width),
                "height": str(encoding.height),
            },
        )
        if encoding.hover_labels:
            ET.SubElement(self.root, "style").text = _HOVER_CSS
        ox, oy = encoding.origin
        self.group = ET.SubElement(self.root, "g", {"transform": f"translate({fmt_number(ox)},{fmt_number(oy)})"})
        self._arc_groups: Dict[int, ET.Element] = {}

    def draw_axis(self, axis: AxisEncoding) -> None:
        dx, dy = axis.offset
        g = ET.SubElement(
            self.group,
            "g",
            {
                "class": "x-axis" if axis.orient == "bottom" else "y-axis",
                "transform": f"translate({fmt_number(dx)},{fmt_number(dy)})",
                "font-size": "10",
                "font-family": "sans-serif",
            },
        )
        lo, hi = axis.extent
        if axis.orient == "bottom":
            domain_path = f"M{fmt_number(lo)},{AXIS_TICK_SIZE}V0H{fmt_number(hi)}V{AXIS_TICK_SIZE}"
        else:
            domain_path = f"M-{AXIS_TICK_SIZE},{fmt_number(lo)}H0V{fmt_number(hi)}H-{AXIS_TICK_SIZE}"
        ET.SubElement(g, "path", {"class": "domain", "stroke": "currentColor", "fill": "none", "d": domain_path})
        for tick in axis.ticks:
            if axis.orient == "bottom":
                tg = ET.SubElement(g, "g", {"class": "tick", "transform": f"translate({fmt_number(tick.position)},0)"})
                ET.SubElement(tg, "line", {"stroke": "currentColor", "y2": str(AXIS_TICK_SIZE)})
                text = ET.SubElement(
                    tg, "text", {"fill": "currentColor", "y": str(AXIS_TICK_SIZE + 3), "dy": "0.71em", "text-anchor": "middle"}
                )
            else:
                tg = ET.SubElement(g, "g", {"class": "tick", "transform": f"translate(0,{fmt_number(tick.position)})"})
                ET.SubElement(tg, "line", {"stroke": "currentColor", "x2": str(-AXIS_TICK_SIZE)})
                text = ET.SubElement(
                    tg, "text", {"fill": "currentColor", "x": str(-(AXIS_TICK_SIZE + 3)), "dy": "0.32em", "text-anchor": "end"}
                )
            text.text = tick.label

    def draw_shape(self, shape: LineShape | ArcShape, *, visible: bool = True) -> ET.Element:
        if isinstance(shape, ArcShape):
            g = ET.SubElement(self.group, "g", {"class": "arc"})
            self._arc_groups[shape.slice.index] = g
            return ET.SubElement(g, "path", {"d": shape.path, "style": f"fill: {shape.color};"})
        path = ET.SubElement(self.group, "path", {"class": "line", "fill": "none"})
        self.update_shape(path, shape, visible=visible)
        return path

    def update_shape(self, handle: ET.Element, shape: LineShape, *, visible: bool) -> None:
        handle.set("d", shape.path)
        style = f"stroke: {shape.color};"
        if not visible:
            style += " display: none;"
        handle.set("style", style)

    def draw_text(self, mark: TextMark) -> ET.Element:
        parent = self._arc_groups.get(mark.group, self.group) if mark.group is not None else self.group
        attrs = {
            "transform": f"translate({fmt_number(mark.x)},{fmt_number(mark.y)})",
            "dy": ".35em",
            "style": f"text-anchor: {mark.anchor};",
        }
        if mark.hidden:
            attrs["class"] = "hover-label"
            attrs["visibility"] = "hidden"
        text = ET.SubElement(parent, "text", attrs)
        text.text = mark.text
        return text

    def set_text_visible(self, handle: ET.Element, visible: bool) -> None:
        handle.set("visibility", "visible" if visible else "hidden")

    def render(self) -> str:
        return ET.tostring(self.root, encoding="unicode")


class SvgBackend(_HtmlFragments):
    name = "svg"

    def new_surface(self, encoding: ChartEncoding) -> SvgSurface:
        return SvgSurface(encoding)


# ----------------------------------------------------------------------
# Matplotlib
# ----------------------------------------------------------------------
_ANCHORS = {"start": "left", "middle": "center", "end": "right"}


class MatplotlibSurface:
    media_type = "image/png"

    def __init__(self, encoding: ChartEncoding, dpi: int = 100) -> None:
        self.encoding = encoding
        self.dpi = dpi
        self.figure = Figure(figsize=(encoding.width / dpi, encoding.height / dpi), dpi=dpi)
        FigureCanvasAgg(self.figure)
        self.ax = self.figure.add_axes((0, 0, 1, 1))
        # Pixel space with y pointing down, like the SVG surface.
        self.ax.set_xlim(0, encoding.width)
        self.ax.set_ylim(encoding.height, 0)
        self.ax.axis("off")
        self.ox, self.oy = encoding.origin

    def draw_axis(self, axis: AxisEncoding) -> None:
        dx, dy = self.ox + axis.offset[0], self.oy + axis.offset[1]
        lo, hi = axis.extent
        kw = {"color": "black", "linewidth": 1.0}
        if axis.orient == "bottom":
            self.ax.plot([dx + lo, dx + hi], [dy, dy], **kw)
            for tick in axis.ticks:
                x = dx + tick.position
                self.ax.plot([x, x], [dy, dy + AXIS_TICK_SIZE], **kw)
                self.ax.text(x, dy + AXIS_TICK_SIZE + 3, tick.label, ha="center", va="top", fontsize=8)
        else:
            self.ax.plot([dx, dx], [dy + lo, dy + hi], **kw)
            for tick in axis.ticks:
                y = dy + tick.position
                self.ax.plot([dx - AXIS_TICK_SIZE, dx], [y, y], **kw)
                self.ax.text(dx - AXIS_TICK_SIZE - 3, y, tick.label, ha="right", va="center", fontsize=8)

    def draw_shape(self, shape: LineShape | ArcShape, *, visible: bool = True) -> Any:
        if isinstance(shape, ArcShape):
            arc = shape.slice
            theta1 = math.degrees(arc.start_angle) - 90
            theta2 = math.degrees(arc.end_angle) - 90
            width = shape.outer_radius - shape.inner_radius if shape.inner_radius > 0 else None
            wedge = Wedge((self.ox, self.oy), shape.outer_radius, theta1, theta2, width=width, facecolor=shape.color)
            wedge.set_visible(arc.span > 0)
            self.ax.add_patch(wedge)
            return wedge
        (line,) = self.ax.plot([], [], linewidth=1.5)
        self.update_shape(line, shape, visible=visible)
        return line

    def update_shape(self, handle: Any, shape: LineShape, *, visible: bool) -> None:
        xs = [self.ox + x for x, _ in shape.points]
        ys = [self.oy + y for _, y in shape.points]
        handle.set_data(xs, ys)
        handle.set_color(shape.color)
        handle.set_visible(visible)

    def draw_text(self, mark: TextMark) -> Any:
        return self.ax.text(
            self.ox + mark.x,
            self.oy + mark.y,
            mark.text,
            ha=_ANCHORS[mark.anchor],
            va="center",
            fontsize=9,
            visible=not mark.hidden,
        )

    def set_text_visible(self, handle: Any, visible: bool) -> None:
        handle.set_visible(visible)

    def render(self) -> bytes:
        buffer = io.BytesIO()
        self.figure.savefig(buffer, format="png", dpi=self.dpi, facecolor="white")
        return buffer.getvalue()


class MatplotlibBackend(_HtmlFragments):
    name = "png"

    def __init__(self, dpi: int = 100) -> None:
        self.dpi = dpi

    def new_surface(self, encoding: ChartEncoding) -> MatplotlibSurface:
        return MatplotlibSurface(encoding, dpi=self.dpi)


def get_backend(name: str) -> RenderBackend:
    backends: Dict[str, RenderBackend] = {"svg": SvgBackend(), "png": MatplotlibBackend()}
    try:
        return backends[name]
    except KeyError as exc:
        raise ValueError(f"unknown backend {name!r}; expected one of {sorted(backends)}") from exc


def draw_encoding(surface: Surface, encoding: ChartEncoding) -> Tuple[List[Any], List[Any]]:
    """Draw axes, shapes and labels; return (shape handles, text handles) in encoding order."""

    for axis in encoding.axes:
        surface.draw_axis(axis)
    shapes = [surface.draw_shape(arc) for arc in encoding.arcs]
    shapes += [surface.draw_shape(line) for line in encoding.lines]
    texts = [surface.draw_text(mark) for mark in encoding.labels]
    logger.debug("drew %s chart: %d lines, %d arcs", encoding.kind, len(encoding.lines), len(encoding.arcs))
    return shapes, texts
