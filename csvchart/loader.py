from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Tuple

import pandas as pd

from .config import CSV_ENCODINGS
from .errors import DataLoadError, RenderCancelled
from .models import Record

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag checked before a chart is attached."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RenderCancelled("render cancelled before attach")


def _read_frame(source: str) -> pd.DataFrame:
    last_error: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return pd.read_csv(source, dtype=str, keep_default_na=False, encoding=encoding)
        except UnicodeDecodeError as exc:
            last_error = exc
            continue
        except (OSError, ValueError) as exc:
            raise DataLoadError(source, str(exc)) from exc
    raise DataLoadError(source, f"unsupported encoding ({last_error})")


def load_records(source: str | Path) -> Tuple[Record, ...]:
    """Read a CSV path or URL into records, keeping header names and row order.

    Every cell stays a raw string; numeric interpretation happens later in
    :func:`csvchart.coercion.coerce_records`.
    """

    source = str(source)
    frame = _read_frame(source)
    records = tuple(Record.from_dict(row) for row in frame.to_dict(orient="records"))
    logger.debug("loaded %d rows from %s", len(records), source)
    return records


async def load_records_async(
    source: str | Path,
    cancel_token: CancelToken | None = None,
) -> Tuple[Record, ...]:
    records = await asyncio.to_thread(load_records, source)
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    return records
