"""Turn typed records into pixel-space chart encodings.

Nothing here touches a display surface; the output is a :class:`ChartEncoding`
that any backend in :mod:`csvchart.backends` can draw.
"""

from __future__ import annotations

import math
from typing import Dict, List, Sequence

from .coercion import aggregate_columns
from .config import (
    AGGREGATED_LABEL_INNER_OUTSET,
    AGGREGATED_LABEL_OUTER_INSET,
    AXIS_TICK_COUNT,
    CATEGORY10,
    PIE_LABEL_INSET,
    PIE_OUTER_INSET,
    SET3,
)
from .models import (
    ArcShape,
    AxisEncoding,
    ChartEncoding,
    LegendEntry,
    LineShape,
    Margin,
    ScalePolicy,
    SeriesSpec,
    TextMark,
    TypedRecord,
)
from .palette import OrdinalColors, color_at
from .scales import LinearScale, build_scale
from .shapes import arc_centroid, arc_path, line_path, pie


def format_value(value: float) -> str:
    if value is None or math.isnan(value):
        return "NaN"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def series_points(
    records: Sequence[TypedRecord],
    x_field: str,
    y_field: str,
    x_scale: LinearScale,
    y_scale: LinearScale,
) -> tuple:
    return tuple((x_scale(r.number(x_field)), y_scale(r.number(y_field))) for r in records)


def _axes(
    x_scale: LinearScale,
    y_scale: LinearScale,
    width: int,
    height: int,
    *,
    show_x_axis: bool,
    show_y_axis: bool,
    x_tick_count: int,
) -> List[AxisEncoding]:
    axes: List[AxisEncoding] = []
    if show_x_axis:
        axes.append(
            AxisEncoding(
                orient="bottom",
                ticks=x_scale.axis_ticks(x_tick_count),
                offset=(0.0, float(height)),
                extent=(0.0, float(width)),
            )
        )
    if show_y_axis:
        axes.append(
            AxisEncoding(
                orient="left",
                ticks=y_scale.axis_ticks(AXIS_TICK_COUNT),
                offset=(0.0, 0.0),
                extent=(float(height), 0.0),
            )
        )
    return axes


def encode_line_chart(
    records: Sequence[TypedRecord],
    x_field: str,
    y_field: str,
    width: int,
    height: int,
    margin: Margin,
    *,
    show_x_axis: bool = True,
    show_y_axis: bool = True,
    x_policy: ScalePolicy = "extent",
    y_policy: ScalePolicy = "zero",
    color: str = "black",
) -> ChartEncoding:
    """One series drawn as a single path, points kept in record order."""

    x_scale = build_scale(records, x_field, (0, width), x_policy)
    y_scale = build_scale(records, y_field, (height, 0), y_policy)
    points = series_points(records, x_field, y_field, x_scale, y_scale)
    return ChartEncoding(
        kind="line",
        width=width + margin.left + margin.right,
        height=height + margin.top + margin.bottom,
        origin=(float(margin.left), float(margin.top)),
        lines=[LineShape(points=points, path=line_path(points), color=color, key=y_field)],
        axes=_axes(
            x_scale,
            y_scale,
            width,
            height,
            show_x_axis=show_x_axis,
            show_y_axis=show_y_axis,
            x_tick_count=AXIS_TICK_COUNT,
        ),
        domains={"x": x_scale.domain, "y": y_scale.domain},
    )


def encode_multi_line_chart(
    records: Sequence[TypedRecord],
    x_field: str,
    series: Sequence[SeriesSpec],
    width: int,
    height: int,
    margin: Margin,
    *,
    show_x_axis: bool = True,
    show_y_axis: bool = True,
    x_policy: ScalePolicy = "extent",
    y_policy: ScalePolicy = "zero",
) -> ChartEncoding:
    """Every series shares one x scale and one y scale spanning all of them."""

    x_scale = build_scale(records, x_field, (0, width), x_policy)
    y_scale = build_scale(records, [spec.field for spec in series], (height, 0), y_policy)
    lines = []
    for spec in series:
        points = series_points(records, x_field, spec.field, x_scale, y_scale)
        lines.append(LineShape(points=points, path=line_path(points), color=spec.color, key=spec.field))
    return ChartEncoding(
        kind="multi-line",
        width=width + margin.left + margin.right,
        height=height + margin.top + margin.bottom,
        origin=(float(margin.left), float(margin.top)),
        lines=lines,
        axes=_axes(
            x_scale,
            y_scale,
            width,
            height,
            show_x_axis=show_x_axis,
            show_y_axis=show_y_axis,
            x_tick_count=max(len(records), 1),
        ),
        legend=[LegendEntry(text=spec.label, color=spec.color) for spec in series],
        domains={"x": x_scale.domain, "y": y_scale.domain},
    )


def encode_pie_chart(
    records: Sequence[TypedRecord],
    category_field: str,
    value_field: str,
    width: int,
    height: int,
    margin: Margin,
) -> ChartEncoding:
    """One slice per record, labelled and listed in a legend."""

    radius = min(width, height) / 2
    outer = max(radius - PIE_OUTER_INSET, 0)
    label_radius = max(radius - PIE_LABEL_INSET, 0)
    color = OrdinalColors(CATEGORY10)

    keys = [record.text(category_field).strip() for record in records]
    values = [record.number(value_field) for record in records]
    arcs, labels, legend = [], [], []
    for arc in pie(values, keys):
        fill = color(arc.key)
        arcs.append(ArcShape(slice=arc, inner_radius=0.0, outer_radius=outer, path=arc_path(arc, 0.0, outer), color=fill))
        x, y = arc_centroid(arc, label_radius, label_radius)
        labels.append(TextMark(x=x, y=y, text=f"W{arc.key}: {format_value(arc.value)}", anchor="middle"))
        legend.append(LegendEntry(text=f"Week {arc.key}: {format_value(arc.value)}", color=fill))

    return ChartEncoding(
        kind="pie",
        width=width + margin.left + margin.right,
        height=height + margin.top + margin.bottom,
        origin=(margin.left + width / 2, margin.top + height / 2),
        arcs=arcs,
        labels=labels,
        legend=legend,
    )


def encode_aggregated_pie_chart(
    records: Sequence[TypedRecord],
    columns: Sequence[str],
    width: int,
    height: int,
) -> ChartEncoding:
    """One slice per column holding that column's total; labels appear on hover."""

    sums: Dict[str, float] = aggregate_columns(records, columns)
    radius = min(width, height) / 2
    outer = max(radius - PIE_OUTER_INSET, 0)

    arcs, labels = [], []
    for arc in pie([sums[name] for name in columns], list(columns)):
        arcs.append(
            ArcShape(
                slice=arc,
                inner_radius=0.0,
                outer_radius=outer,
                path=arc_path(arc, 0.0, outer),
                color=color_at(arc.index, SET3),
            )
        )
        x, y = arc_centroid(arc, radius + AGGREGATED_LABEL_INNER_OUTSET, radius - AGGREGATED_LABEL_OUTER_INSET)
        labels.append(
            TextMark(
                x=x,
                y=y,
                text=f"{arc.key}: {format_value(arc.value)}",
                anchor="end",
                hidden=True,
                group=arc.index,
            )
        )

    return ChartEncoding(
        kind="pie-aggregated",
        width=width,
        height=height,
        origin=(width / 2, height / 2),
        arcs=arcs,
        labels=labels,
        hover_labels=True,
    )
