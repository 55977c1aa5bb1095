from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np
from matplotlib.ticker import MaxNLocator, StrMethodFormatter

from .models import ScalePolicy, Tick, TypedRecord

NICE_STEPS = [1, 2, 5, 10]


@dataclass(frozen=True, slots=True)
class LinearScale:
    """Monotonic map from a data domain onto a pixel range."""

    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        if value is None or math.isnan(value):
            return math.nan
        d0, d1 = self.domain
        r0, r1 = self.range
        if d0 == d1:
            return (r0 + r1) / 2
        t = (value - d0) / (d1 - d0)
        return r0 + t * (r1 - r0)

    def ticks(self, count: int = 10) -> List[float]:
        lo, hi = sorted(self.domain)
        return tick_values(lo, hi, count)

    def tick_format(self, count: int = 10) -> StrMethodFormatter:
        lo, hi = sorted(self.domain)
        step = tick_step(lo, hi, count)
        # Enough decimals to tell neighbouring ticks apart.
        precision = max(0, -math.floor(round(math.log10(step), 6))) if step > 0 else 0
        return StrMethodFormatter(f"{{x:,.{precision}f}}")

    def axis_ticks(self, count: int = 10) -> Tuple[Tick, ...]:
        fmt = self.tick_format(count)
        return tuple(Tick(value=v, position=self(v), label=fmt(v)) for v in self.ticks(count))


def tick_values(start: float, stop: float, count: int = 10) -> List[float]:
    """At most ``count + 1`` round ticks (1, 2 or 5 times a power of ten) within [start, stop]."""

    if not (math.isfinite(start) and math.isfinite(stop)) or count <= 0:
        return []
    if start == stop:
        return [float(start)]
    lo, hi = min(start, stop), max(start, stop)
    locator = MaxNLocator(nbins=count, steps=NICE_STEPS)
    slack = (hi - lo) * 1e-9
    return [float(v) for v in locator.tick_values(lo, hi) if lo - slack <= v <= hi + slack]


def tick_step(start: float, stop: float, count: int = 10) -> float:
    ticks = tick_values(start, stop, count)
    if len(ticks) < 2:
        return 0.0
    return (ticks[-1] - ticks[0]) / (len(ticks) - 1)


def field_values(records: Sequence[TypedRecord], fields: Iterable[str]) -> np.ndarray:
    names = list(fields)
    return np.array([record.number(name) for record in records for name in names], dtype=float)


def compute_domain(values: np.ndarray, policy: ScalePolicy) -> Tuple[float, float]:
    """Domain of the finite values: ``extent`` is [min, max], ``zero`` is [0, max]."""

    if policy not in ("extent", "zero"):
        raise ValueError(f"unknown scale policy: {policy!r}")
    finite = values[np.isfinite(values)] if values.size else values
    if finite.size == 0:
        return (0.0, 0.0)
    hi = float(finite.max())
    if policy == "zero":
        return (0.0, hi)
    return (float(finite.min()), hi)


def build_scale(
    records: Sequence[TypedRecord],
    fields: str | Iterable[str],
    pixel_range: Tuple[float, float],
    policy: ScalePolicy = "extent",
) -> LinearScale:
    if isinstance(fields, str):
        fields = [fields]
    domain = compute_domain(field_values(records, fields), policy)
    return LinearScale(domain=domain, range=(float(pixel_range[0]), float(pixel_range[1])))
