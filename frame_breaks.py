# -*- coding: utf-8 -*-
"""
Frame-end repair pass.

Walks every frame but the last and makes sure none of them ends in the
middle of a record group: a frame may only end on a spacer paragraph or on a
names paragraph that finishes in that frame. Otherwise a frame break goes in
front of the group (the paragraph right after the previous spacer). A spacer
left at the top of a frame is dropped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol

from records import STYLE_DEMOGRAPHIC, STYLE_DISEASE, STYLE_NAMES, STYLE_SPACER
from surfaces import BreakInsertionError

logger = logging.getLogger(__name__)


@dataclass
class FrameParagraph:
    handle: Any
    style: str
    text: str
    completes_in_frame: bool
    is_break: bool = False


class SupportsFrameRepair(Protocol):
    def frame_count(self) -> int: ...

    def frame_paragraphs(self, frame: int) -> List[FrameParagraph]: ...

    def remove_paragraph(self, handle) -> None: ...

    def insert_break_before(self, handle) -> None: ...

    def last_frame_overflows(self) -> bool: ...

    def add_frame(self) -> None: ...


def valid_last_paragraph(par: FrameParagraph) -> bool:
    if par.style == STYLE_SPACER:
        return True
    if par.style in (STYLE_DEMOGRAPHIC, STYLE_DISEASE):
        return False
    if par.style == STYLE_NAMES:
        return par.completes_in_frame
    return True


def _break_position(paras: List[FrameParagraph]) -> Optional[int]:
    """Index of the paragraph following the last spacer before the frame end."""
    for idx in range(len(paras) - 1, 0, -1):
        if paras[idx - 1].style == STYLE_SPACER:
            return idx
    return None


def repair_frame_ends(layout: SupportsFrameRepair,
                      event: Optional[Callable[[str], None]] = None) -> int:
    """Returns the number of frame breaks inserted."""
    event = event or (lambda message: logger.warning("%s", message))
    inserted = 0
    frame = 0
    while frame < layout.frame_count() - 1:
        paras = layout.frame_paragraphs(frame)
        if paras and paras[0].style == STYLE_SPACER and not paras[0].is_break:
            layout.remove_paragraph(paras[0].handle)
            paras = layout.frame_paragraphs(frame)
        if not paras or valid_last_paragraph(paras[-1]):
            frame += 1
            continue

        pos = _break_position(paras)
        if pos is None:
            logger.debug("frame %d holds a single unfinished group; left as is", frame)
            frame += 1
            continue
        try:
            layout.insert_break_before(paras[pos].handle)
            inserted += 1
        except BreakInsertionError as exc:
            event(f"[BREAK][ERR] frame={frame} {exc}: {paras[pos].text}")
        if layout.last_frame_overflows():
            layout.add_frame()
        frame += 1
    return inserted
