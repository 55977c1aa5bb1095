from __future__ import annotations

from pathlib import Path
import math
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import numpy as np
import pytest

from csvchart.coercion import coerce_records
from csvchart.models import Record
from csvchart.scales import LinearScale, build_scale, compute_domain, tick_values


def _typed(rows):
    records = [Record.from_dict(row) for row in rows]
    typed, _ = coerce_records(records, ["week", "amount"])
    return typed


@pytest.fixture()
def weekly():
    return _typed(
        [
            {"week": "1", "amount": "10"},
            {"week": "2", "amount": "30"},
            {"week": "3", "amount": "20"},
        ]
    )


def test_magnitude_scale_maps_zero_and_max_to_range_ends(weekly) -> None:
    y = build_scale(weekly, "amount", (300, 0), "zero")

    assert y.domain == (0.0, 30.0)
    assert y(30) == pytest.approx(0.0)
    assert y(0) == pytest.approx(300.0)


def test_extent_scale_uses_observed_min_and_max(weekly) -> None:
    x = build_scale(weekly, "week", (0, 460), "extent")

    assert x.domain == (1.0, 3.0)
    assert x(1) == 0
    assert x(2) == pytest.approx(230)
    assert x(3) == pytest.approx(460)


def test_domain_ignores_nan_values() -> None:
    assert compute_domain(np.array([1.0, math.nan, 5.0]), "extent") == (1.0, 5.0)
    assert compute_domain(np.array([math.nan]), "zero") == (0.0, 0.0)
    assert compute_domain(np.array([]), "extent") == (0.0, 0.0)


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_domain(np.array([1.0]), "log")


def test_degenerate_domain_maps_to_range_midpoint() -> None:
    scale = LinearScale(domain=(2.0, 2.0), range=(0.0, 100.0))
    assert scale(2) == 50
    assert scale(7) == 50


def test_nan_input_stays_nan() -> None:
    scale = LinearScale(domain=(0.0, 10.0), range=(0.0, 100.0))
    assert math.isnan(scale(math.nan))


def test_multi_field_domain_spans_all_fields() -> None:
    records = [Record.from_dict({"a": "5", "b": "12"}), Record.from_dict({"a": "40", "b": "1"})]
    typed, _ = coerce_records(records, ["a", "b"])

    scale = build_scale(typed, ["a", "b"], (200, 0), "zero")
    assert scale.domain == (0.0, 40.0)


def test_ticks_are_round_numbers() -> None:
    assert tick_values(0, 30, 10) == [float(v) for v in range(0, 31, 5)]
    assert tick_values(0, 1, 10) == pytest.approx([i / 10 for i in range(11)])
    assert tick_values(1, 5, 5) == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert tick_values(3, 3, 10) == [3.0]
    assert tick_values(math.nan, 3, 10) == []


def test_ticks_stay_inside_tiny_domains() -> None:
    ticks = tick_values(0, 1e-310, 10)

    assert all(0 <= value <= 1e-310 for value in ticks)
    scale = LinearScale((0.0, 1e-310), (300.0, 0.0))
    assert all(tick.position == pytest.approx(300) for tick in scale.axis_ticks(10))


def test_tick_format_precision_follows_step() -> None:
    assert LinearScale((0.0, 1.0), (0.0, 1.0)).tick_format(10)(0.5) == "0.5"
    assert LinearScale((0.0, 3000.0), (0.0, 1.0)).tick_format(10)(1000) == "1,000"


def test_axis_ticks_carry_pixel_positions(weekly) -> None:
    y = build_scale(weekly, "amount", (300, 0), "zero")
    ticks = y.axis_ticks(10)

    assert ticks[0].label == "0"
    assert ticks[0].position == pytest.approx(300)
    assert ticks[-1].value == 30
    assert ticks[-1].position == pytest.approx(0)
