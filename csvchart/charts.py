"""The chart functions: load a CSV, encode it, attach the drawing to a mount.

Each function is a coroutine. The fetch is the only await; everything after
it runs synchronously, and output reaches the mount in a single attach so a
partially drawn chart is never visible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence

from .backends import RenderBackend, SvgBackend, Surface, draw_encoding
from .coercion import CoercionReport, coerce_records, columns_after
from .config import DEFAULT_COERCION_POLICY, DEFAULT_MARGIN, LOAD_ERROR_COLOR, LOAD_ERROR_MESSAGE
from .encoding import (
    encode_aggregated_pie_chart,
    encode_line_chart,
    encode_multi_line_chart,
    encode_pie_chart,
)
from .errors import DataLoadError
from .loader import CancelToken, load_records_async
from .models import ChartEncoding, CoercionPolicy, Margin, Record, ScalePolicy, SeriesSpec, TypedRecord
from .page import CheckboxGroup, Fragment, Mount, Page, VisibilityQuery, resolve_mount

logger = logging.getLogger(__name__)

DEFAULT_SERIES: tuple[SeriesSpec, ...] = (
    SeriesSpec(label="amount1", color="blue", field="amount1"),
    SeriesSpec(label="amount2", color="red", field="amount2"),
    SeriesSpec(label="amount3", color="green", field="amount3"),
)


@dataclass(slots=True)
class RenderedChart:
    """What a chart call produced; ``error`` is set when the data never loaded."""

    mount: Mount
    encoding: ChartEncoding | None = None
    fragment: Fragment | None = None
    surface: Surface | None = None
    report: CoercionReport | None = None
    error: str | None = None
    shape_handles: List[Any] = field(default_factory=list)
    text_handles: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def refresh(self) -> None:
        if self.fragment is not None and self.surface is not None:
            self.fragment.content = self.surface.render()


@dataclass(slots=True)
class MultiLineChart(RenderedChart):
    series: Sequence[SeriesSpec] = ()
    visibility: VisibilityQuery | None = None
    unsubscribe: Callable[[], None] | None = None

    def is_visible(self, spec: SeriesSpec) -> bool:
        return True if self.visibility is None else bool(self.visibility(spec))

    def update(self) -> None:
        """Re-apply visibility to every series path from the current query."""

        if self.encoding is None or self.surface is None:
            return
        for spec, line, handle in zip(self.series, self.encoding.lines, self.shape_handles):
            self.surface.update_shape(handle, line, visible=self.is_visible(spec))
        self.refresh()

    def detach(self) -> None:
        """Stop following checkbox changes, e.g. once the chart is replaced."""

        if self.unsubscribe is not None:
            self.unsubscribe()
            self.unsubscribe = None

    def visible_paths(self) -> dict:
        if self.encoding is None:
            return {}
        return {
            spec.field: line.path
            for spec, line in zip(self.series, self.encoding.lines)
            if self.is_visible(spec)
        }


@dataclass(slots=True)
class AggregatedPieChart(RenderedChart):
    hovered: set = field(default_factory=set)

    def pointer_enter(self, index: int) -> None:
        self._set_label(index, True)

    def pointer_leave(self, index: int) -> None:
        self._set_label(index, False)

    def _set_label(self, index: int, visible: bool) -> None:
        if self.surface is None or not 0 <= index < len(self.text_handles):
            return
        self.surface.set_text_visible(self.text_handles[index], visible)
        if visible:
            self.hovered.add(index)
        else:
            self.hovered.discard(index)
        self.refresh()


async def _load_typed(
    source: str,
    fields: Sequence[str] | Callable[[Sequence[Record]], Sequence[str]],
    policy: CoercionPolicy,
    cancel_token: CancelToken | None,
) -> tuple[List[TypedRecord], CoercionReport, List[str]]:
    records = await load_records_async(source, cancel_token)
    names = list(fields(records) if callable(fields) else fields)
    typed, report = coerce_records(records, names, policy)
    return typed, report, names


def _fail(result: RenderedChart, exc: DataLoadError, backend: RenderBackend, show_errors: bool) -> RenderedChart:
    logger.exception("Error loading or parsing data: %s", exc)
    result.error = str(exc)
    if show_errors:
        result.mount.attach(Fragment("text/html", backend.draw_message(LOAD_ERROR_MESSAGE, LOAD_ERROR_COLOR)))
    return result


def _attach(
    result: RenderedChart,
    encoding: ChartEncoding,
    backend: RenderBackend,
    cancel_token: CancelToken | None,
) -> RenderedChart:
    surface = backend.new_surface(encoding)
    result.shape_handles, result.text_handles = draw_encoding(surface, encoding)
    result.encoding = encoding
    result.surface = surface
    if isinstance(result, MultiLineChart):
        for spec, line, handle in zip(result.series, encoding.lines, result.shape_handles):
            surface.update_shape(handle, line, visible=result.is_visible(spec))
    fragment = Fragment(surface.media_type, surface.render())
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    result.fragment = result.mount.attach(fragment)
    return result


async def simple_line_chart(
    source: str,
    x_axis_label: str,
    y_axis_label: str,
    chart_location: Mount | str,
    width: int,
    height: int,
    margin: Margin | None = None,
    show_x_axis: bool = True,
    show_y_axis: bool = True,
    *,
    backend: RenderBackend | None = None,
    page: Page | None = None,
    x_policy: ScalePolicy = "extent",
    y_policy: ScalePolicy = "zero",
    coercion: CoercionPolicy = DEFAULT_COERCION_POLICY,
    cancel_token: CancelToken | None = None,
    show_errors: bool = False,
) -> RenderedChart:
    """Draw ``y_axis_label`` against ``x_axis_label`` as one black line.

    Args:
        source: CSV path or URL, e.g. ``docs/data/simple-line-chart.csv``.
        x_axis_label: Column for the x position, e.g. ``"week"``.
        y_axis_label: Column for the y magnitude, e.g. ``"amount"``.
        chart_location: Mount point or its selector.
        width: Plot width in pixels, margins excluded.
        height: Plot height in pixels, margins excluded.
        margin: Padding around the plot so axes fit inside the drawing.
        show_x_axis: Draw the bottom axis.
        show_y_axis: Draw the left axis.
    """

    backend = backend or SvgBackend()
    margin = margin or DEFAULT_MARGIN
    result = RenderedChart(mount=resolve_mount(chart_location, page))
    try:
        typed, report, _ = await _load_typed(source, [x_axis_label, y_axis_label], coercion, cancel_token)
    except DataLoadError as exc:
        return _fail(result, exc, backend, show_errors)
    result.report = report
    encoding = encode_line_chart(
        typed,
        x_axis_label,
        y_axis_label,
        width,
        height,
        margin,
        show_x_axis=show_x_axis,
        show_y_axis=show_y_axis,
        x_policy=x_policy,
        y_policy=y_policy,
    )
    return _attach(result, encoding, backend, cancel_token)


async def multiple_line_chart(
    source: str,
    chart_location: Mount | str,
    width: int,
    height: int,
    margin: Margin | None = None,
    show_x_axis: bool = True,
    show_y_axis: bool = True,
    *,
    series: Sequence[SeriesSpec] = DEFAULT_SERIES,
    x_field: str = "week",
    visibility: VisibilityQuery | None = None,
    checkboxes: CheckboxGroup | None = None,
    backend: RenderBackend | None = None,
    page: Page | None = None,
    x_policy: ScalePolicy = "extent",
    y_policy: ScalePolicy = "zero",
    coercion: CoercionPolicy = DEFAULT_COERCION_POLICY,
    cancel_token: CancelToken | None = None,
    show_errors: bool = False,
) -> MultiLineChart:
    """Several series on a shared scale pair, each shown or hidden on demand.

    Visibility comes from ``visibility`` (a callable taking a
    :class:`SeriesSpec`) or from ``checkboxes``; with checkboxes, every change
    event re-evaluates all series and redraws only their paths until
    :meth:`MultiLineChart.detach` is called.
    """

    backend = backend or SvgBackend()
    margin = margin or DEFAULT_MARGIN
    if visibility is None and checkboxes is not None:
        visibility = checkboxes.query
    result = MultiLineChart(mount=resolve_mount(chart_location, page), series=tuple(series), visibility=visibility)
    try:
        typed, report, _ = await _load_typed(
            source, [x_field, *(spec.field for spec in series)], coercion, cancel_token
        )
    except DataLoadError as exc:
        return _fail(result, exc, backend, show_errors)
    result.report = report
    encoding = encode_multi_line_chart(
        typed,
        x_field,
        series,
        width,
        height,
        margin,
        show_x_axis=show_x_axis,
        show_y_axis=show_y_axis,
        x_policy=x_policy,
        y_policy=y_policy,
    )
    _attach(result, encoding, backend, cancel_token)
    if checkboxes is not None:
        result.unsubscribe = checkboxes.on_change(result.update)
    return result


async def simple_pie_chart(
    source: str,
    x_axis_label: str,
    y_axis_label: str,
    chart_location: Mount | str,
    width: int,
    height: int,
    margin: Margin | None = None,
    *,
    legend_location: Mount | str | None = None,
    backend: RenderBackend | None = None,
    page: Page | None = None,
    coercion: CoercionPolicy = DEFAULT_COERCION_POLICY,
    cancel_token: CancelToken | None = None,
    show_errors: bool = False,
) -> RenderedChart:
    """One slice per row: ``x_axis_label`` names the slice, ``y_axis_label`` sizes it.

    When ``legend_location`` is given, every row is also listed there.
    """

    backend = backend or SvgBackend()
    margin = margin or DEFAULT_MARGIN
    result = RenderedChart(mount=resolve_mount(chart_location, page))
    try:
        typed, report, _ = await _load_typed(source, [y_axis_label], coercion, cancel_token)
    except DataLoadError as exc:
        return _fail(result, exc, backend, show_errors)
    result.report = report
    encoding = encode_pie_chart(typed, x_axis_label, y_axis_label, width, height, margin)
    _attach(result, encoding, backend, cancel_token)
    if legend_location is not None:
        legend = resolve_mount(legend_location, page)
        legend.attach(Fragment("text/html", backend.draw_legend(encoding.legend)))
    return result


async def multiple_amounts_pie_chart(
    source: str,
    chart_location: Mount | str,
    width: int,
    height: int,
    *,
    columns: Sequence[str] | None = None,
    backend: RenderBackend | None = None,
    page: Page | None = None,
    coercion: CoercionPolicy = DEFAULT_COERCION_POLICY,
    cancel_token: CancelToken | None = None,
    show_errors: bool = True,
) -> AggregatedPieChart:
    """Sum each amount column over all rows and draw one slice per column.

    Without ``columns`` every column after the first one is summed. Slice
    labels stay hidden until the pointer is over their slice. A load failure
    leaves ``Failed to load data.`` in the mount.
    """

    backend = backend or SvgBackend()
    result = AggregatedPieChart(mount=resolve_mount(chart_location, page))
    fields = list(columns) if columns is not None else columns_after
    try:
        typed, report, names = await _load_typed(source, fields, coercion, cancel_token)
    except DataLoadError as exc:
        return _fail(result, exc, backend, show_errors)
    result.report = report
    encoding = encode_aggregated_pie_chart(typed, names, width, height)
    return _attach(result, encoding, backend, cancel_token)
