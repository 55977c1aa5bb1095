from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import DEFAULT_COERCION_POLICY
from .models import CoercionPolicy, Record, TypedRecord

logger = logging.getLogger(__name__)

_POLICIES = {"propagate", "drop", "zero"}


@dataclass(slots=True)
class CoercionReport:
    """Which (row, field) pairs did not hold a finite number."""

    policy: CoercionPolicy
    invalid: List[Tuple[int, str]] = field(default_factory=list)
    dropped_rows: List[int] = field(default_factory=list)

    @property
    def flagged_rows(self) -> List[int]:
        return sorted({row for row, _ in self.invalid})

    @property
    def clean(self) -> bool:
        return not self.invalid


def _numeric_column(records: Sequence[Record], name: str) -> np.ndarray:
    raw = pd.Series([(record.get(name) or "").strip() for record in records], dtype="object")
    numbers = np.array(pd.to_numeric(raw, errors="coerce"), dtype=float)
    numbers[~np.isfinite(numbers)] = np.nan
    return numbers


def coerce_records(
    records: Sequence[Record],
    fields: Iterable[str],
    policy: CoercionPolicy = DEFAULT_COERCION_POLICY,
) -> Tuple[List[TypedRecord], CoercionReport]:
    """Convert the named fields of every record to floats.

    Non-numeric, empty, infinite or missing values become NaN. What happens to
    those rows is decided by ``policy``:

    * ``propagate`` keeps NaN in place and flags the row in the report,
    * ``drop`` removes the row,
    * ``zero`` replaces the value with ``0.0``.
    """

    if policy not in _POLICIES:
        raise ValueError(f"unknown coercion policy: {policy!r}")

    names = list(dict.fromkeys(fields))
    columns: Dict[str, np.ndarray] = {name: _numeric_column(records, name) for name in names}
    report = CoercionReport(policy=policy)

    typed: List[TypedRecord] = []
    for idx, record in enumerate(records):
        numbers: Dict[str, float] = {}
        bad = False
        for name in names:
            value = float(columns[name][idx])
            if np.isnan(value):
                report.invalid.append((idx, name))
                bad = True
                if policy == "zero":
                    value = 0.0
            numbers[name] = value
        if bad and policy == "drop":
            report.dropped_rows.append(idx)
            continue
        typed.append(TypedRecord(raw=record, numbers=MappingProxyType(numbers)))

    if report.invalid:
        logger.warning(
            "%d non-numeric value(s) in %d row(s) for fields %s (policy=%s)",
            len(report.invalid),
            len(report.flagged_rows),
            names,
            policy,
        )
    return typed, report


def columns_after(records: Sequence[Record], first: int = 1) -> List[str]:
    """Column names of the source, skipping the leading key column(s)."""

    if not records:
        return []
    return list(records[0].columns[first:])


def aggregate_columns(records: Sequence[TypedRecord], columns: Sequence[str]) -> Dict[str, float]:
    """Sum each column over all records; NaN entries are skipped."""

    sums: Dict[str, float] = {}
    for name in columns:
        values = np.array([record.number(name) for record in records], dtype=float)
        sums[name] = float(np.nansum(values)) if values.size else 0.0
    return sums
