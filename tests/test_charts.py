from __future__ import annotations

from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd
import pytest

from csvchart.backends import MatplotlibBackend
from csvchart.charts import (
    DEFAULT_SERIES,
    multiple_amounts_pie_chart,
    multiple_line_chart,
    simple_line_chart,
    simple_pie_chart,
)
from csvchart.errors import RenderCancelled
from csvchart.loader import CancelToken
from csvchart.models import Margin
from csvchart.page import CheckboxGroup, Mount, Page
from csvchart.shapes import TAU


@pytest.fixture()
def weekly_csv(tmp_path: Path) -> Path:
    path = tmp_path / "simple-line-chart.csv"
    pd.DataFrame({"week": [1, 2, 3], "amount": [10, 30, 20]}).to_csv(path, index=False)
    return path


@pytest.fixture()
def multi_csv(tmp_path: Path) -> Path:
    path = tmp_path / "line-chart-multiple-lines.csv"
    pd.DataFrame(
        {
            "week": [1, 2, 3],
            "amount1": [10, 30, 20],
            "amount2": [5, 15, 40],
            "amount3": [25, 10, 30],
        }
    ).to_csv(path, index=False)
    return path


@pytest.fixture()
def amounts_csv(tmp_path: Path) -> Path:
    path = tmp_path / "amounts.csv"
    pd.DataFrame({"id": [1, 2], "a": [1, 2], "b": [3, 1]}).to_csv(path, index=False)
    return path


@pytest.mark.asyncio
async def test_simple_line_chart_end_to_end(weekly_csv: Path) -> None:
    mount = Mount(id="chart")
    result = await simple_line_chart(str(weekly_csv), "week", "amount", mount, 460, 300, Margin.zero())

    assert result.ok
    assert result.encoding.domains["y"] == (0.0, 30.0)
    assert result.encoding.domains["x"] == (1.0, 3.0)
    assert result.encoding.lines[0].path == "M0,200L230,0L460,100"
    assert len(mount.children) == 1
    svg = mount.markup()
    assert svg.startswith("<svg")
    assert 'd="M0,200L230,0L460,100"' in svg
    assert 'class="x-axis"' in svg and 'class="y-axis"' in svg


@pytest.mark.asyncio
async def test_axes_can_be_hidden_and_margins_applied(weekly_csv: Path) -> None:
    mount = Mount(id="chart")
    await simple_line_chart(
        str(weekly_csv), "week", "amount", mount, 460, 300, Margin(10, 20, 30, 40), show_x_axis=False
    )

    svg = mount.markup()
    assert 'class="x-axis"' not in svg
    assert 'class="y-axis"' in svg
    assert 'width="520"' in svg and 'height="340"' in svg
    assert 'transform="translate(40,10)"' in svg


@pytest.mark.asyncio
async def test_malformed_row_does_not_raise(tmp_path: Path) -> None:
    source = tmp_path / "bad.csv"
    source.write_text("week,amount\n1,10\n2,abc\n3,20\n", encoding="utf-8")
    mount = Mount(id="chart")

    result = await simple_line_chart(str(source), "week", "amount", mount, 460, 300, Margin.zero())

    assert result.ok
    assert result.report.flagged_rows == [1]
    assert result.encoding.domains["y"] == (0.0, 20.0)
    assert result.encoding.lines[0].path == "M0,150M460,0"
    assert "nan" not in mount.markup().lower()


@pytest.mark.asyncio
async def test_line_chart_load_failure_leaves_mount_empty(tmp_path: Path) -> None:
    mount = Mount(id="chart")
    result = await simple_line_chart(str(tmp_path / "missing.csv"), "week", "amount", mount, 460, 300)

    assert not result.ok
    assert "missing.csv" in result.error
    assert mount.empty


@pytest.mark.asyncio
async def test_cancelled_render_attaches_nothing(weekly_csv: Path) -> None:
    token = CancelToken()
    token.cancel()
    mount = Mount(id="chart")

    with pytest.raises(RenderCancelled):
        await simple_line_chart(str(weekly_csv), "week", "amount", mount, 460, 300, cancel_token=token)
    assert mount.empty


@pytest.mark.asyncio
async def test_multi_line_shares_y_scale_across_series(multi_csv: Path) -> None:
    result = await multiple_line_chart(str(multi_csv), Mount(id="chart"), 460, 300, Margin.zero())

    assert result.encoding.domains["y"] == (0.0, 40.0)
    assert [line.key for line in result.encoding.lines] == ["amount1", "amount2", "amount3"]
    assert [line.color for line in result.encoding.lines] == ["blue", "red", "green"]
    assert set(result.visible_paths()) == {"amount1", "amount2", "amount3"}


@pytest.mark.asyncio
async def test_checkbox_toggle_restores_identical_path(multi_csv: Path) -> None:
    checkboxes = CheckboxGroup.for_series(DEFAULT_SERIES)
    mount = Mount(id="chart")
    chart = await multiple_line_chart(str(multi_csv), mount, 460, 300, Margin.zero(), checkboxes=checkboxes)

    before_paths = chart.visible_paths()
    before_svg = mount.markup()
    assert "display: none" not in before_svg

    checkboxes.set("amount2", False)
    assert "amount2" not in chart.visible_paths()
    assert mount.markup().count("display: none") == 1

    checkboxes.set("amount2", True)
    assert chart.visible_paths() == before_paths
    assert mount.markup() == before_svg
    assert len(mount.children) == 1


@pytest.mark.asyncio
async def test_visibility_query_is_evaluated_for_every_series(multi_csv: Path) -> None:
    hidden = {"amount3"}
    chart = await multiple_line_chart(
        str(multi_csv), Mount(id="chart"), 460, 300, visibility=lambda spec: spec.field not in hidden
    )
    assert set(chart.visible_paths()) == {"amount1", "amount2"}

    hidden.clear()
    chart.update()
    assert set(chart.visible_paths()) == {"amount1", "amount2", "amount3"}


@pytest.mark.asyncio
async def test_simple_pie_chart_with_legend(weekly_csv: Path) -> None:
    page = Page(["chart", "legend"])
    result = await simple_pie_chart(
        str(weekly_csv), "week", "amount", "#chart", 300, 300, Margin.zero(), legend_location="#legend", page=page
    )

    spans = [arc.slice.span for arc in result.encoding.arcs]
    assert sum(spans) == pytest.approx(TAU)
    assert spans[1] == pytest.approx(TAU / 2)
    assert result.encoding.arcs[0].color == "#1f77b4"
    assert [label.text for label in result.encoding.labels] == ["W1: 10", "W2: 30", "W3: 20"]

    legend = page["legend"].markup()
    assert "Week 1: 10" in legend and "Week 3: 20" in legend
    assert page["chart"].markup().count('class="arc"') == 3


@pytest.mark.asyncio
async def test_aggregated_pie_sums_columns(amounts_csv: Path) -> None:
    mount = Mount(id="chart")
    chart = await multiple_amounts_pie_chart(str(amounts_csv), mount, 400, 400)

    arcs = chart.encoding.arcs
    assert [(arc.slice.key, arc.slice.value) for arc in arcs] == [("a", 3.0), ("b", 4.0)]
    assert arcs[0].slice.span == pytest.approx(TAU * 3 / 7)
    assert arcs[1].slice.span == pytest.approx(TAU * 4 / 7)
    assert sum(arc.slice.span for arc in arcs) == pytest.approx(TAU)
    assert [arc.color for arc in arcs] == ["#8dd3c7", "#ffffb3"]
    assert all(label.hidden for label in chart.encoding.labels)


@pytest.mark.asyncio
async def test_aggregated_pie_labels_show_on_hover(amounts_csv: Path) -> None:
    mount = Mount(id="chart")
    chart = await multiple_amounts_pie_chart(str(amounts_csv), mount, 400, 400)

    assert 'visibility="visible"' not in mount.markup()
    chart.pointer_enter(1)
    assert mount.markup().count('visibility="visible"') == 1
    assert chart.hovered == {1}
    chart.pointer_leave(1)
    assert 'visibility="visible"' not in mount.markup()
    assert chart.hovered == set()


@pytest.mark.asyncio
async def test_aggregated_pie_shows_inline_error(tmp_path: Path) -> None:
    mount = Mount(id="chart")
    chart = await multiple_amounts_pie_chart(str(tmp_path / "missing.csv"), mount, 400, 400)

    assert not chart.ok
    assert mount.markup() == '<p style="color: red">Failed to load data.</p>'


@pytest.mark.asyncio
async def test_png_backend_renders_bytes(weekly_csv: Path, amounts_csv: Path) -> None:
    line_mount, pie_mount = Mount(id="line"), Mount(id="pie")
    backend = MatplotlibBackend(dpi=72)

    await simple_line_chart(str(weekly_csv), "week", "amount", line_mount, 200, 120, backend=backend)
    chart = await multiple_amounts_pie_chart(str(amounts_csv), pie_mount, 200, 200, backend=backend)
    before = pie_mount.children[0].content
    chart.pointer_enter(0)

    assert line_mount.children[0].content.startswith(b"\x89PNG")
    assert before.startswith(b"\x89PNG")
    assert pie_mount.children[0].media_type == "image/png"
    assert pie_mount.markup() == ""


@pytest.mark.asyncio
async def test_line_chart_handles_tiny_magnitudes(tmp_path: Path) -> None:
    path = tmp_path / "tiny.csv"
    path.write_text("week,amount\n1,0\n2,1e-310\n", encoding="utf-8")
    mount = Mount(id="chart")

    result = await simple_line_chart(str(path), "week", "amount", mount, 460, 300, Margin.zero())

    assert result.ok
    assert 0 < result.encoding.domains["y"][1] < 1e-300
    assert result.encoding.lines[0].path == "M0,300L460,0"
    assert 'class="y-axis"' in mount.markup()


@pytest.mark.asyncio
async def test_detached_chart_ignores_checkbox_changes(multi_csv: Path) -> None:
    checkboxes = CheckboxGroup.for_series(DEFAULT_SERIES)
    old_mount, new_mount = Mount(id="old"), Mount(id="new")
    old = await multiple_line_chart(str(multi_csv), old_mount, 460, 300, checkboxes=checkboxes)
    await multiple_line_chart(str(multi_csv), new_mount, 460, 300, checkboxes=checkboxes)
    old_svg = old_mount.markup()

    old.detach()
    checkboxes.set("amount1", False)

    assert old_mount.markup() == old_svg
    assert new_mount.markup().count("display: none") == 1
