from __future__ import annotations


class ChartError(Exception):
    """Base class for chart rendering failures."""


class DataLoadError(ChartError):
    """The CSV source could not be fetched or parsed."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Cannot load {source}: {reason}")
        self.source = source
        self.reason = reason


class RenderCancelled(ChartError):
    """The render was cancelled before it was attached to its mount point."""
