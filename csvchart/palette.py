from __future__ import annotations

from typing import Dict, Sequence

from .config import CATEGORY10, SET3


class OrdinalColors:
    """Assign palette colors to category keys in first-seen order, cycling."""

    def __init__(self, palette: Sequence[str] = CATEGORY10) -> None:
        if not palette:
            raise ValueError("palette must not be empty")
        self.palette = list(palette)
        self._assigned: Dict[str, str] = {}

    def __call__(self, key: str) -> str:
        color = self._assigned.get(key)
        if color is None:
            color = self.palette[len(self._assigned) % len(self.palette)]
            self._assigned[key] = color
        return color


def color_at(index: int, palette: Sequence[str] = SET3) -> str:
    return palette[index % len(palette)]
