# -*- coding: utf-8 -*-
"""
Overflow-driven pagination.

Groups are appended to one threaded story, each one after a spacer
paragraph. When the current surface overflows, the layout adds the next
surface and a frame break is put in front of the overflowing group (it takes
the place of the spacer) so the whole group, and everything after it,
continues on the new surface. A group gets at most one break; if it still
does not land, surfaces are added until it does. Nothing is truncated; a
failed break is logged and the run goes on.

A group whose growth was stopped by the end of the frame rather than by its
own line width is moved first and sized again on the new surface, so equal
records end up at equal sizes wherever they fall on the page.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from autofit import FitResult, fit_group
from layout_config import LayoutConfig
from records import RenderGroup
from surfaces import (
    BreakInsertionError,
    LayoutCollaborator,
    MeasurementError,
    Placement,
    surface_is_empty,
    surface_overflows,
)

logger = logging.getLogger(__name__)

# surfaces added for a single group before the run is declared stalled
MAX_EXTRA_SURFACES = 10


class PaginationState(enum.Enum):
    PLACING = "placing"
    OVERFLOWED = "overflowed"
    ADVANCING = "advancing"
    DONE = "done"


@dataclass
class RunReport:
    groups_total: int = 0
    groups_placed: int = 0
    surfaces_created: int = 0
    checkpoints: int = 0
    break_failures: List[int] = field(default_factory=list)
    oversized: List[int] = field(default_factory=list)
    # groups placed after the story stalled; they sit in overset
    overset: List[int] = field(default_factory=list)
    stalled_at: Optional[int] = None
    fits: List[Optional[FitResult]] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"groups={self.groups_placed}/{self.groups_total} "
            f"surfacesAdded={self.surfaces_created} checkpoints={self.checkpoints} "
            f"breakFailures={len(self.break_failures)} oversized={len(self.oversized)} "
            f"overset={len(self.overset)}"
        )


class Paginator:
    """
    Drives the PLACING -> OVERFLOWED -> ADVANCING -> PLACING cycle for every
    group, then DONE. `event` receives diagnostic messages (break failures,
    oversized groups, stalls, checkpoints).
    """

    def __init__(
        self,
        layout: LayoutCollaborator,
        config: LayoutConfig,
        event: Optional[Callable[[str], None]] = None,
        progress: Optional[Callable[[int, int], None]] = None,
    ):
        self.layout = layout
        self.config = config
        self.state = PaginationState.PLACING
        self.stalled = False
        self._event = event or (lambda message: logger.info("%s", message))
        self._progress = progress
        self.report = RunReport()

    def _transition(self, state: PaginationState):
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _overflows(self) -> bool:
        return surface_overflows(self.layout.surface)

    def _new_surface(self):
        self.layout.new_surface()
        self.report.surfaces_created += 1

    def _stall(self, placement: Placement, added: int):
        self.stalled = True
        self.report.stalled_at = placement.index
        self._event(
            f"[OVERSET] group={placement.index} still overset after {added} new surfaces; "
            f"later groups are left in overset: {' / '.join(placement.group.lines)}"
        )

    def _add_surfaces_until(self, landed: Callable[[], bool], placement: Placement) -> bool:
        added = 0
        while not landed():
            if added >= MAX_EXTRA_SURFACES:
                self._stall(placement, added)
                return False
            self._new_surface()
            added += 1
            if surface_is_empty(self.layout.surface) and not landed():
                self._stall(placement, added)
                return False
        return True

    def _landed(self, placement: Placement) -> bool:
        if not self._overflows():
            return True
        return bool(placement.break_inserted) and self.layout.starts_surface(placement)

    def _advance(self, placement: Placement):
        self._transition(PaginationState.OVERFLOWED)
        self._transition(PaginationState.ADVANCING)
        if placement.break_inserted is None:
            self._new_surface()
            try:
                self.layout.insert_break(placement)
            except BreakInsertionError as exc:
                placement.break_inserted = False
                self.report.break_failures.append(placement.index)
                contents = " / ".join(placement.group.lines)
                self._event(f"[BREAK][ERR] group={placement.index} {exc}: {contents}")
            else:
                placement.break_inserted = True
        self._add_surfaces_until(lambda: self._landed(placement), placement)
        placement.surface_index = self.layout.surface_count - 1
        self._transition(PaginationState.PLACING)

    def _checkpoint(self):
        self.layout.save(checkpoint=True)
        self.report.checkpoints += 1
        self._event(f"[CHECKPOINT] saved after {self.report.groups_placed} groups")

    @staticmethod
    def _sizes(placement: Placement) -> Dict[str, float]:
        sizes = {}
        for style, target in placement.targets.items():
            try:
                sizes[style] = float(target.point_size)
            except MeasurementError:
                continue
        return sizes

    @staticmethod
    def _restore(placement: Placement, sizes: Dict[str, float]):
        for style, size in sizes.items():
            placement.targets[style].point_size = size

    def _fit(self, placement: Placement) -> Optional[FitResult]:
        starts = self._sizes(placement)
        result = fit_group(placement, self.layout.surface, self.config)
        if (
            result is not None
            and result.overflow_bound
            and placement.break_inserted is None
            and not self.layout.starts_surface(placement)
        ):
            logger.debug("group %d stopped at the frame end at %.2fpt; moving it", placement.index, result.size)
            self._restore(placement, starts)
            self._advance(placement)
            result = fit_group(placement, self.layout.surface, self.config)
        return result

    def place_group(self, index: int, group: RenderGroup) -> Placement:
        self._transition(PaginationState.PLACING)
        if self.report.groups_placed:
            self.layout.add_spacer()
        placement = self.layout.place(index, group, nonbreaking_names=self.config.nonbreaking_names)
        if self.stalled:
            self.report.overset.append(index)
            self.report.fits.append(None)
            return placement

        if self._overflows() and not self.layout.starts_surface(placement):
            self._advance(placement)

        self.report.fits.append(self._fit(placement))

        if self._overflows() and not self.stalled:
            if self.layout.starts_surface(placement):
                self.report.oversized.append(index)
                self._event(f"[OVERSIZE] group={index} does not fit an empty frame: {' / '.join(group.lines)}")
                self._add_surfaces_until(lambda: not self._overflows(), placement)
            else:
                self._advance(placement)
        return placement

    def run(self, groups: Sequence[RenderGroup]) -> RunReport:
        self.report = RunReport(groups_total=len(groups))
        interval = self.config.checkpoint_interval
        for index, group in enumerate(groups):
            if not group.lines:
                logger.debug("group %d has no lines; skipped", index)
                continue
            self.place_group(index, group)
            self.report.groups_placed += 1
            if interval and self.report.groups_placed % interval == 0:
                self._checkpoint()
            if self._progress:
                self._progress(index + 1, len(groups))
        self.layout.save(checkpoint=False)
        self._transition(PaginationState.DONE)
        return self.report


def paginate(groups: Sequence[RenderGroup], layout: LayoutCollaborator, config: LayoutConfig,
             event: Optional[Callable[[str], None]] = None) -> RunReport:
    return Paginator(layout, config, event=event).run(groups)
