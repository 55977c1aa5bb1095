from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

from .models import SeriesSpec

VisibilityQuery = Callable[[SeriesSpec], bool]


@dataclass(slots=True)
class Fragment:
    """Output attached to a mount point: an SVG/HTML string or PNG bytes."""

    media_type: str
    content: str | bytes

    @property
    def is_markup(self) -> bool:
        return isinstance(self.content, str)


@dataclass(slots=True)
class Mount:
    """A page element charts attach their output to."""

    id: str
    children: List[Fragment] = field(default_factory=list)

    def attach(self, fragment: Fragment) -> Fragment:
        self.children.append(fragment)
        return fragment

    @property
    def empty(self) -> bool:
        return not self.children

    def markup(self) -> str:
        return "".join(child.content for child in self.children if child.is_markup)


class Page:
    """Mount points addressed by id (``"chart"`` or ``"#chart"``)."""

    def __init__(self, mount_ids: Iterable[str] = ()) -> None:
        self._mounts: Dict[str, Mount] = {}
        for mount_id in mount_ids:
            self.mount(mount_id)

    def mount(self, selector: str) -> Mount:
        key = selector.lstrip("#")
        if key not in self._mounts:
            self._mounts[key] = Mount(id=key)
        return self._mounts[key]

    def __getitem__(self, selector: str) -> Mount:
        return self._mounts[selector.lstrip("#")]


def resolve_mount(target: Mount | str, page: Page | None = None) -> Mount:
    if isinstance(target, Mount):
        return target
    if isinstance(target, str):
        return (page or Page()).mount(target)
    raise TypeError(f"expected a Mount or a selector string, got {type(target).__name__}")


class CheckboxGroup:
    """Checked state per series field plus change listeners.

    ``query`` is the visibility query handed to multi-line charts; ``set``
    plays the role of a checkbox change event.
    """

    def __init__(self, checked: Dict[str, bool] | None = None) -> None:
        self._checked: Dict[str, bool] = dict(checked or {})
        self._listeners: List[Callable[[], None]] = []

    @classmethod
    def for_series(cls, series: Iterable[SeriesSpec], checked: bool = True) -> "CheckboxGroup":
        return cls({spec.field: checked for spec in series})

    def query(self, spec: SeriesSpec) -> bool:
        return self._checked.get(spec.field, False)

    def on_change(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set(self, field_name: str, checked: bool) -> None:
        self._checked[field_name] = checked
        for listener in list(self._listeners):
            listener()

    def checked(self) -> Dict[str, bool]:
        return dict(self._checked)
