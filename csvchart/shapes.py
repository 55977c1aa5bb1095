"""Pure geometry: line paths, pie layout and arc sectors as SVG path data.

Angles follow the usual pie convention: 0 at twelve o'clock, growing
clockwise, with the pie centered on the origin and y pointing down.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

from .models import ArcSlice

TAU = 2 * math.pi
_EPSILON = 1e-9

Point = Tuple[float, float]


def fmt_number(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _pt(x: float, y: float) -> str:
    return f"{fmt_number(x)},{fmt_number(y)}"


def _defined(point: Point) -> bool:
    return math.isfinite(point[0]) and math.isfinite(point[1])


def line_segments(points: Iterable[Point]) -> List[List[Point]]:
    """Split points into runs of defined coordinates, keeping source order."""

    segments: List[List[Point]] = []
    current: List[Point] = []
    for point in points:
        if _defined(point):
            current.append(point)
        elif current:
            segments.append(current)
            current = []
    if current:
        segments.append(current)
    return segments


def line_path(points: Iterable[Point]) -> str:
    """Straight segments between consecutive points; NaN points leave a gap."""

    parts: List[str] = []
    for segment in line_segments(points):
        parts.append("M" + _pt(*segment[0]))
        parts.extend("L" + _pt(*point) for point in segment[1:])
    return "".join(parts)


def pie(values: Sequence[float], keys: Sequence[str] | None = None) -> List[ArcSlice]:
    """Lay values out around the circle in sequence order.

    Each positive value gets ``value / total`` of a full turn. Zero, negative
    and NaN values get an empty span at the current angle, so the spans of a
    chart with a positive total always add up to exactly ``2 * pi``.
    """

    keys = list(keys) if keys is not None else [str(i) for i in range(len(values))]
    if len(keys) != len(values):
        raise ValueError("keys and values must have the same length")

    positive = [v if (v is not None and v > 0) else 0.0 for v in values]
    total = math.fsum(positive)
    last_positive = max((i for i, v in enumerate(positive) if v > 0), default=-1)

    slices: List[ArcSlice] = []
    angle = 0.0
    running = 0.0
    for idx, (key, value) in enumerate(zip(keys, values)):
        start = angle
        if total > 0 and positive[idx] > 0:
            running += positive[idx]
            end = TAU if idx == last_positive else running / total * TAU
        else:
            end = start
        slices.append(ArcSlice(index=idx, key=key, value=value, start_angle=start, end_angle=end))
        angle = end
    return slices


def polar(radius: float, angle: float) -> Point:
    return (radius * math.sin(angle), -radius * math.cos(angle))


def arc_path(arc: ArcSlice, inner_radius: float, outer_radius: float) -> str:
    """SVG path for a filled sector; ``inner_radius > 0`` draws a donut segment."""

    span = arc.span
    if span <= _EPSILON or outer_radius <= 0:
        return ""
    r0, r1 = sorted((max(inner_radius, 0.0), outer_radius))

    if span >= TAU - _EPSILON:
        top, bottom = _pt(0, -r1), _pt(0, r1)
        path = f"M{top}A{fmt_number(r1)},{fmt_number(r1)},0,1,1,{bottom}A{fmt_number(r1)},{fmt_number(r1)},0,1,1,{top}Z"
        if r0 > 0:
            itop, ibottom = _pt(0, -r0), _pt(0, r0)
            path += f"M{itop}A{fmt_number(r0)},{fmt_number(r0)},0,1,0,{ibottom}A{fmt_number(r0)},{fmt_number(r0)},0,1,0,{itop}Z"
        return path

    large = 1 if span > math.pi else 0
    outer_start = _pt(*polar(r1, arc.start_angle))
    outer_end = _pt(*polar(r1, arc.end_angle))
    path = f"M{outer_start}A{fmt_number(r1)},{fmt_number(r1)},0,{large},1,{outer_end}"
    if r0 > 0:
        inner_end = _pt(*polar(r0, arc.end_angle))
        inner_start = _pt(*polar(r0, arc.start_angle))
        path += f"L{inner_end}A{fmt_number(r0)},{fmt_number(r0)},0,{large},0,{inner_start}Z"
    else:
        path += "L0,0Z"
    return path


def arc_centroid(arc: ArcSlice, inner_radius: float, outer_radius: float) -> Point:
    """Midpoint of the sector: mean radius at the mean angle."""

    radius = (inner_radius + outer_radius) / 2
    return polar(radius, (arc.start_angle + arc.end_angle) / 2)
