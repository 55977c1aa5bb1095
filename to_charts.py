#!/usr/bin/env python3
"""
Render the sample charts to files.

Usage:
uv run python to_charts.py [--data-dir docs/data] [--output-dir docs/charts] [--format svg --format png]

For every entry of CHART_CONFIG whose CSV exists in the data directory, the
chart is rendered with each requested backend and written to
``<output-dir>/<type>/<csv stem>.<format>``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Sequence

from tqdm import tqdm

from csvchart.backends import get_backend
from csvchart.charts import (
    multiple_amounts_pie_chart,
    multiple_line_chart,
    simple_line_chart,
    simple_pie_chart,
)
from csvchart.config import DOCS_DIR, SAMPLE_DATA_DIR
from csvchart.models import Margin
from csvchart.page import Mount

logger = logging.getLogger("to_charts")

OUTPUT_DIR = DOCS_DIR / "charts"
FORMATS = ("svg", "png")

CHART_CONFIG: List[Dict[str, object]] = [
    {
        "type": "line",
        "source": "simple-line-chart.csv",
        "width": 460,
        "height": 300,
        "x_axis_label": "week",
        "y_axis_label": "amount",
    },
    {
        "type": "multi-line",
        "source": "line-chart-multiple-lines.csv",
        "width": 460,
        "height": 300,
    },
    {
        "type": "pie",
        "source": "simple-pie-chart.csv",
        "width": 300,
        "height": 300,
        "x_axis_label": "week",
        "y_axis_label": "amount",
    },
    {
        "type": "pie-aggregated",
        "source": "pie-chart-multiple-amount-aggregated.csv",
        "width": 400,
        "height": 400,
    },
]


async def render_chart(config: Dict[str, object], source: Path, mount: Mount, backend_name: str, **kwargs):
    """Render one CHART_CONFIG entry into ``mount`` and return the chart result."""

    backend = get_backend(backend_name)
    chart_type = config["type"]
    width, height = int(config["width"]), int(config["height"])
    if chart_type == "line":
        return await simple_line_chart(
            str(source),
            str(config["x_axis_label"]),
            str(config["y_axis_label"]),
            mount,
            width,
            height,
            Margin(),
            backend=backend,
            **kwargs,
        )
    if chart_type == "multi-line":
        return await multiple_line_chart(str(source), mount, width, height, Margin(), backend=backend, **kwargs)
    if chart_type == "pie":
        return await simple_pie_chart(
            str(source),
            str(config["x_axis_label"]),
            str(config["y_axis_label"]),
            mount,
            width,
            height,
            Margin.zero(),
            backend=backend,
            **kwargs,
        )
    if chart_type == "pie-aggregated":
        return await multiple_amounts_pie_chart(str(source), mount, width, height, backend=backend, **kwargs)
    raise ValueError(f"unsupported chart type: {chart_type}")


def render_samples(
    data_dir: Path = SAMPLE_DATA_DIR,
    output_dir: Path = OUTPUT_DIR,
    formats: Sequence[str] = FORMATS,
    *,
    progress: bool = False,
) -> List[Path]:
    """Render every configured chart whose CSV exists; return the written files."""

    written: List[Path] = []
    jobs = [(config, fmt) for config in CHART_CONFIG for fmt in formats]
    for config, fmt in tqdm(jobs, desc="Rendering charts", disable=not progress):
        source = data_dir / str(config["source"])
        if not source.exists():
            logger.warning("data file %s not found, skipping chart '%s'", source, config["type"])
            continue

        mount = Mount(id=str(config["type"]))
        result = asyncio.run(render_chart(config, source, mount, fmt))
        if not result.ok or result.fragment is None:
            logger.error("chart %s failed: %s", config["type"], result.error)
            continue

        target_dir = output_dir / str(config["type"])
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / f"{source.stem}.{fmt}"
        content = result.fragment.content
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
        written.append(target)
    return written


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Render the sample CSV charts to SVG/PNG files.")
    parser.add_argument("--data-dir", type=Path, default=SAMPLE_DATA_DIR)
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    parser.add_argument("--format", dest="formats", action="append", choices=FORMATS)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("Rendering sample charts...")
    if not args.data_dir.exists():
        print(f"Error: input directory {args.data_dir} does not exist")
        return 1

    written = render_samples(args.data_dir, args.output_dir, args.formats or FORMATS, progress=True)

    print("\nDone!")
    print(f"Charts written: {len(written)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
