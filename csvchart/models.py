from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Literal, Mapping, Tuple

ScalePolicy = Literal["extent", "zero"]
CoercionPolicy = Literal["propagate", "drop", "zero"]


@dataclass(frozen=True, slots=True)
class Record:
    """One parsed CSV row, column name to raw string."""

    values: Mapping[str, str]

    @classmethod
    def from_dict(cls, row: Dict[str, str]) -> "Record":
        return cls(values=MappingProxyType(dict(row)))

    def __getitem__(self, key: str) -> str:
        return self.values[key]

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self.values)


@dataclass(frozen=True, slots=True)
class TypedRecord:
    """A record whose selected fields were coerced to float."""

    raw: Record
    numbers: Mapping[str, float]

    def number(self, key: str) -> float:
        return self.numbers.get(key, math.nan)

    def text(self, key: str) -> str:
        return self.raw.get(key, "") or ""


@dataclass(frozen=True, slots=True)
class Margin:
    top: int = 20
    right: int = 30
    bottom: int = 30
    left: int = 40

    @classmethod
    def zero(cls) -> "Margin":
        return cls(0, 0, 0, 0)


@dataclass(frozen=True, slots=True)
class SeriesSpec:
    """A line in a multi-series chart: legend label, stroke color, numeric column."""

    label: str
    color: str
    field: str


@dataclass(frozen=True, slots=True)
class ArcSlice:
    index: int
    key: str
    value: float
    start_angle: float
    end_angle: float

    @property
    def span(self) -> float:
        return self.end_angle - self.start_angle


@dataclass(frozen=True, slots=True)
class Tick:
    value: float
    position: float
    label: str


@dataclass(frozen=True, slots=True)
class AxisEncoding:
    orient: Literal["bottom", "left"]
    ticks: Tuple[Tick, ...]
    offset: Tuple[float, float]
    extent: Tuple[float, float]


@dataclass(frozen=True, slots=True)
class LineShape:
    points: Tuple[Tuple[float, float], ...]
    path: str
    color: str
    key: str = ""


@dataclass(frozen=True, slots=True)
class ArcShape:
    slice: ArcSlice
    inner_radius: float
    outer_radius: float
    path: str
    color: str


@dataclass(frozen=True, slots=True)
class TextMark:
    x: float
    y: float
    text: str
    anchor: Literal["start", "middle", "end"] = "middle"
    hidden: bool = False
    group: int | None = None


@dataclass(frozen=True, slots=True)
class LegendEntry:
    text: str
    color: str


@dataclass(slots=True)
class ChartEncoding:
    """Everything a backend needs to draw one chart, in pixel space."""

    kind: Literal["line", "multi-line", "pie", "pie-aggregated"]
    width: int
    height: int
    origin: Tuple[float, float]
    lines: List[LineShape] = field(default_factory=list)
    arcs: List[ArcShape] = field(default_factory=list)
    labels: List[TextMark] = field(default_factory=list)
    axes: List[AxisEncoding] = field(default_factory=list)
    legend: List[LegendEntry] = field(default_factory=list)
    hover_labels: bool = False
    domains: Dict[str, Tuple[float, float]] = field(default_factory=dict)
