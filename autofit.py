# -*- coding: utf-8 -*-
"""
Auto-fit sizing.

A group's sizing line is grown until it would wrap (or the frame would
overflow), then stepped back to the last size that still fit. Two searches
are available:

- fine:   +fine_increment per step, back one step on the first violation.
- coarse: +coarse_increment per step, then -fine_increment until it fits again.

Both stay on the fine grid anchored at the starting size and never exceed
max_point_size, so for a monotone fit predicate the coarse result can never
exceed the fine one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from layout_config import LayoutConfig
from records import STYLE_DEMOGRAPHIC, STYLE_DISEASE
from surfaces import (
    FitTarget,
    Placement,
    measured_first_line,
    measured_line_count,
    supports_line_count,
    surface_overflows,
)

logger = logging.getLogger(__name__)

EPS = 1e-9

FitPredicate = Callable[[FitTarget, object], bool]


@dataclass(frozen=True)
class FitResult:
    size: float
    start: float
    strategy: str
    steps: int = 0
    violated: bool = False
    corrected: bool = False
    # growth stopped because the surface overflowed, not because the line wrapped
    overflow_bound: bool = False


def wraps_lines(target, surface=None) -> bool:
    """Violation when the target spans more than one line (or is overset)."""
    count = measured_line_count(target)
    return count is None or count > 1


class ContentsChanged:
    """Violation when the target's first line no longer reads as it did at capture time."""

    def __init__(self, target):
        self.baseline = measured_first_line(target)

    def __call__(self, target, surface=None) -> bool:
        current = measured_first_line(target)
        return current is None or current != self.baseline


def make_predicate(kind: str, target) -> FitPredicate:
    if kind == "contents":
        return ContentsChanged(target)
    return wraps_lines


VIOLATION = "fit"
OVERFLOW = "overflow"


def _violation(predicate, target, surface) -> Optional[str]:
    """VIOLATION when the line breaks the fit predicate, OVERFLOW when only the surface overflows."""
    if predicate(target, surface):
        return VIOLATION
    if surface_overflows(surface):
        return OVERFLOW
    return None


def _set(target, size: float) -> float:
    size = round(size, 6)
    target.point_size = size
    return size


def fine_step_search(target, surface, config: LayoutConfig,
                     predicate: Optional[FitPredicate] = None) -> FitResult:
    predicate = predicate or make_predicate(config.fit_check, target)
    start = float(target.point_size)
    cause = _violation(predicate, target, surface)
    if cause:
        return FitResult(start, start, "fine", 0, violated=True, overflow_bound=cause == OVERFLOW)

    ceiling = config.search_ceiling(start)
    size, steps = start, 0
    while size < ceiling - EPS:
        nxt = _set(target, size + config.fine_increment)
        steps += 1
        cause = _violation(predicate, target, surface)
        if cause:
            _set(target, size)
            break
        size = nxt
    return FitResult(size, start, "fine", steps, cause is not None, overflow_bound=cause == OVERFLOW)


def coarse_then_fine_search(target, surface, config: LayoutConfig,
                            predicate: Optional[FitPredicate] = None) -> FitResult:
    predicate = predicate or make_predicate(config.fit_check, target)
    start = float(target.point_size)
    cause = _violation(predicate, target, surface)
    if cause:
        return FitResult(start, start, "coarse", 0, violated=True, overflow_bound=cause == OVERFLOW)

    ceiling = config.search_ceiling(start)
    size, steps = start, 0
    while size < ceiling - EPS:
        nxt = _set(target, min(size + config.coarse_increment, ceiling))
        steps += 1
        cause = _violation(predicate, target, surface)
        if not cause:
            size = nxt
            continue
        # cause always describes the size one fine step above the result
        probe = nxt
        while True:
            probe = round(probe - config.fine_increment, 6)
            if probe <= size + EPS:
                _set(target, size)
                break
            _set(target, probe)
            steps += 1
            probe_cause = _violation(predicate, target, surface)
            if not probe_cause:
                size = probe
                break
            cause = probe_cause
        break
    return FitResult(size, start, "coarse", steps, cause is not None, overflow_bound=cause == OVERFLOW)


SEARCHES = {
    "fine": fine_step_search,
    "coarse": coarse_then_fine_search,
}


def search(target, surface, config: LayoutConfig, predicate: Optional[FitPredicate] = None) -> FitResult:
    return SEARCHES[config.search_strategy](target, surface, config, predicate)


def fit_coupled(primary, secondary, surface, config: LayoutConfig,
                predicate: Optional[FitPredicate] = None) -> FitResult:
    """
    Size `primary`, give `secondary` the same size, and if that makes the
    secondary wrap, shrink it back to one line and copy its size to the
    primary. The shrink stops at min_point_size.
    """
    result = search(primary, surface, config, predicate)
    if secondary is None:
        return result

    size = _set(secondary, float(primary.point_size))
    if not supports_line_count(secondary) or not wraps_lines(secondary):
        return result

    while wraps_lines(secondary):
        nxt = round(size - config.fine_increment, 6)
        if nxt < config.min_point_size - EPS:
            logger.warning(
                "secondary line still wraps at %.2fpt (min %.2fpt): %r",
                size, config.min_point_size, getattr(secondary, "text", ""),
            )
            break
        size = _set(secondary, nxt)
    _set(primary, size)
    return replace(result, size=size, corrected=True)


def fit_group(placement: Placement, surface, config: LayoutConfig) -> Optional[FitResult]:
    """
    The disease line drives the size when present and the demographic line
    follows it; otherwise the demographic line is sized on its own. Names
    lines keep their style size.
    """
    demographic = placement.target(STYLE_DEMOGRAPHIC)
    disease = placement.target(STYLE_DISEASE)
    if disease is not None:
        result = fit_coupled(disease, demographic, surface, config)
    elif demographic is not None:
        result = search(demographic, surface, config)
    else:
        return None
    logger.debug(
        "group %d sized %s %.2f -> %.2fpt steps=%d corrected=%s",
        placement.index, result.strategy, result.start, result.size, result.steps, result.corrected,
    )
    return result
