from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from .models import CoercionPolicy, Margin

DEFAULT_MARGIN = Margin(top=20, right=30, bottom=30, left=40)

DEFAULT_COERCION_POLICY: CoercionPolicy = "propagate"

CSV_ENCODINGS: Iterable[str] = ("utf-8", "utf-8-sig", "gbk")

# Pie geometry, in pixels relative to min(width, height) / 2.
PIE_OUTER_INSET = 10
PIE_LABEL_INSET = 40
AGGREGATED_LABEL_OUTER_INSET = 12
AGGREGATED_LABEL_INNER_OUTSET = 2

AXIS_TICK_COUNT = 10
AXIS_TICK_SIZE = 6

LOAD_ERROR_MESSAGE = "Failed to load data."
LOAD_ERROR_COLOR = "red"

CATEGORY10: List[str] = [
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
]

SET3: List[str] = [
    "#8dd3c7",
    "#ffffb3",
    "#bebada",
    "#fb8072",
    "#80b1d3",
    "#fdb462",
    "#b3de69",
    "#fccde5",
    "#d9d9d9",
    "#bc80bd",
    "#ccebc5",
    "#ffed6f",
]

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DOCS_DIR = PROJECT_ROOT / "docs"
SAMPLE_DATA_DIR = DOCS_DIR / "data"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
