# -*- coding: utf-8 -*-
"""
Capability interfaces between the merge logic and whatever owns the page
geometry (a live InDesign document or the preview layout).

The merge never reaches into host objects directly: it sizes FitTargets,
asks a RenderSurface whether it overflows and asks the LayoutCollaborator for
new surfaces and frame breaks.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, runtime_checkable

from records import RenderGroup


class MeasurementError(RuntimeError):
    """A line/paragraph could not be measured (overset or no longer valid)."""


class BreakInsertionError(RuntimeError):
    """A frame break could not be inserted at the requested position."""


class HostUnavailableError(RuntimeError):
    """The publishing host could not be reached."""


@runtime_checkable
class SupportsOverflowQuery(Protocol):
    def overflows(self) -> bool: ...


@runtime_checkable
class SupportsEmptyQuery(Protocol):
    def is_empty(self) -> bool: ...


@runtime_checkable
class SupportsLineCount(Protocol):
    def line_count(self) -> int: ...


@runtime_checkable
class SupportsLineContents(Protocol):
    def first_line_contents(self) -> str: ...


@runtime_checkable
class FitTarget(SupportsLineCount, Protocol):
    """A styled paragraph whose point size the fit search may change."""

    style: str

    @property
    def point_size(self) -> float: ...

    @point_size.setter
    def point_size(self, size: float) -> None: ...


RenderSurface = SupportsOverflowQuery


@dataclass
class Placement:
    """A group after it was inserted into the story."""

    index: int
    group: RenderGroup
    targets: Dict[str, FitTarget] = field(default_factory=dict)
    surface_index: int = 0
    # None until a frame break was attempted in front of the group, then whether it went in
    break_inserted: Optional[bool] = None

    def target(self, style: str) -> Optional[FitTarget]:
        return self.targets.get(style)


class LayoutCollaborator(Protocol):
    @property
    def surface(self) -> RenderSurface: ...

    @property
    def surface_count(self) -> int: ...

    def place(self, index: int, group: RenderGroup, nonbreaking_names: bool = False) -> Placement: ...

    def add_spacer(self) -> None: ...

    def new_surface(self) -> RenderSurface: ...

    def insert_break(self, placement: Placement) -> None: ...

    def starts_surface(self, placement: Placement) -> bool: ...

    def save(self, checkpoint: bool = False) -> None: ...


def supports_overflow_query(obj) -> bool:
    return isinstance(obj, SupportsOverflowQuery)


def supports_line_count(obj) -> bool:
    return isinstance(obj, SupportsLineCount)


def supports_line_contents(obj) -> bool:
    return isinstance(obj, SupportsLineContents)


def surface_is_empty(surface) -> bool:
    """True only when the surface can tell it holds no text at all."""
    if not isinstance(surface, SupportsEmptyQuery):
        return False
    try:
        return bool(surface.is_empty())
    except MeasurementError:
        return False


def measured_line_count(target) -> Optional[int]:
    """Line count of `target`, or None when it cannot be measured (overset)."""
    if not supports_line_count(target):
        return None
    try:
        return target.line_count()
    except MeasurementError:
        return None


def measured_first_line(target) -> Optional[str]:
    if not supports_line_contents(target):
        return None
    try:
        return target.first_line_contents()
    except MeasurementError:
        return None


def surface_overflows(surface) -> bool:
    """Overflow predicate; surfaces without the capability never overflow."""
    if not supports_overflow_query(surface):
        return False
    try:
        return bool(surface.overflows())
    except MeasurementError:
        return True
