# -*- coding: utf-8 -*-
"""
Preview layout: a small, deterministic stand-in for an InDesign story
threaded through one text frame per page.

Text is measured with a uniform glyph advance (0.5em), wrapped greedily on
regular spaces (U+00A0 never breaks) and stacked at 1.2x leading. A run with
no breakable space that is wider than the frame is cut at the frame edge, the
way InDesign's composer forces a break. A line taller than an empty frame is
shown clipped and everything after it is overset. It is only meant to show
where groups land and how big their sizing lines get; it is not a typesetter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from frame_breaks import FrameParagraph
from records import STYLE_SPACER, RenderGroup
from surfaces import MeasurementError, Placement

logger = logging.getLogger(__name__)

GLYPH_ADVANCE = 0.5
LEADING = 1.2
EPS = 1e-6

DEFAULT_STYLE_SIZES = {
    "age-population-sex": 16.0,
    "disease": 16.0,
    "names": 10.0,
}


def text_width(text: str, point_size: float) -> float:
    return len(text) * GLYPH_ADVANCE * point_size


def _force_break(line: str, point_size: float, width: float) -> List[str]:
    per_line = max(1, int((width + EPS) // (GLYPH_ADVANCE * point_size)))
    return [line[i:i + per_line] for i in range(0, len(line), per_line)]


def wrap_text(text: str, point_size: float, width: float) -> List[str]:
    """Greedy wrap on regular spaces; an over-long word is cut at the frame edge."""
    words = text.split(" ")
    lines: List[str] = []
    current = None
    for word in words:
        candidate = word if current is None else f"{current} {word}"
        if current is not None and text_width(candidate, point_size) > width + EPS:
            lines.append(current)
            current = word
        else:
            current = candidate
    lines.append(current or "")
    out: List[str] = []
    for line in lines:
        if text_width(line, point_size) > width + EPS:
            out.extend(_force_break(line, point_size, width))
        else:
            out.append(line)
    return out


class PreviewParagraph:
    """One story paragraph; also a FitTarget for the sizing search."""

    def __init__(self, layout: "PreviewLayout", style: str, text: str, point_size: float, kind: str = "text"):
        self._layout = layout
        self.style = style
        self.text = text
        self.kind = kind
        self._point_size = float(point_size)
        self.removed = False

    @property
    def point_size(self) -> float:
        return self._point_size

    @point_size.setter
    def point_size(self, size: float) -> None:
        self._point_size = float(size)

    def _check(self):
        if self.removed:
            raise MeasurementError(f"paragraph no longer in story: {self.text!r}")

    def lines(self) -> List[str]:
        self._check()
        if self.kind != "text":
            return [""]
        return wrap_text(self.text, self._point_size, self._layout.frame_width)

    def line_count(self) -> int:
        return len(self.lines())

    def first_line_contents(self) -> str:
        return self.lines()[0]

    def height_of_line(self) -> float:
        if self.kind == "spacer":
            return self._layout.spacing
        if self.kind == "break":
            return 0.0
        return self._point_size * LEADING

    def __repr__(self):
        return f"<PreviewParagraph {self.style} {self._point_size}pt {self.text!r}>"


@dataclass
class _Slot:
    frame: Optional[int]
    top: float
    clipped: bool = False


@dataclass
class PreviewSurface:
    layout: "PreviewLayout"
    index: int
    page: int

    def overflows(self) -> bool:
        return self.layout.story_overflows()

    def is_empty(self) -> bool:
        return not any(s.frame == self.index for lines in self.layout._flow().values() for s in lines)


@dataclass
class PreviewLayout:
    frame_width: float = 540.0
    frame_height: float = 720.0
    spacing: float = 15.0
    pages: int = 1
    style_sizes: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_STYLE_SIZES))

    def __post_init__(self):
        self.story: List[PreviewParagraph] = []
        self.frames: List[PreviewSurface] = [PreviewSurface(self, 0, 0)]
        self.saves: List[bool] = []

    # ---------- flow ----------
    def _flow(self) -> Dict[int, List[_Slot]]:
        """Frame and top offset for every line of every paragraph (frame None = overset)."""
        slots: Dict[int, List[_Slot]] = {}
        frame, y = 0, 0.0
        total = len(self.frames)
        blocked = False
        for para in self.story:
            if para.kind == "break":
                slots[id(para)] = [_Slot(frame if frame < total and not blocked else None, y)]
                frame, y = frame + 1, 0.0
                continue
            para_slots = []
            for _ in para.lines():
                h = para.height_of_line()
                if blocked:
                    para_slots.append(_Slot(None, y))
                    continue
                if y > 0 and y + h > self.frame_height + EPS:
                    frame, y = frame + 1, 0.0
                slot_frame = frame if frame < total else None
                if h > self.frame_height + EPS:
                    para_slots.append(_Slot(slot_frame, y, clipped=slot_frame is not None))
                    blocked = True
                    continue
                para_slots.append(_Slot(slot_frame, y))
                y += h
            slots[id(para)] = para_slots
        return slots

    def story_overflows(self) -> bool:
        return any(s.frame is None or s.clipped for lines in self._flow().values() for s in lines)

    def frame_of(self, para: PreviewParagraph) -> Optional[int]:
        """Frame holding the paragraph's first line."""
        return self._flow()[id(para)][0].frame

    # ---------- collaborator ----------
    @property
    def surface(self) -> PreviewSurface:
        return self.frames[-1]

    @property
    def surface_count(self) -> int:
        return len(self.frames)

    def _append(self, style: str, text: str, kind: str = "text") -> PreviewParagraph:
        size = self.style_sizes.get(style, 12.0)
        para = PreviewParagraph(self, style, text, size, kind=kind)
        self.story.append(para)
        return para

    def place(self, index: int, group: RenderGroup, nonbreaking_names: bool = False) -> Placement:
        targets = {}
        first = None
        for style, text in group.paragraphs(nonbreaking_names):
            para = self._append(style, text)
            targets[style] = para
            first = first or para
        frame = self.frame_of(first) if first is not None else None
        return Placement(index, group, targets, frame if frame is not None else len(self.frames) - 1)

    def add_spacer(self) -> None:
        self._append(STYLE_SPACER, "", kind="spacer")

    def new_surface(self) -> PreviewSurface:
        current_page = self.frames[-1].page
        if current_page == self.pages - 1:
            self.pages += 1
        surface = PreviewSurface(self, len(self.frames), current_page + 1)
        self.frames.append(surface)
        logger.debug("preview: frame %d on page %d", surface.index, surface.page)
        return surface

    def _first_paragraph(self, placement: Placement) -> PreviewParagraph:
        paras = [p for p in self.story if p in placement.targets.values()]
        if not paras:
            raise MeasurementError(f"group {placement.index} has no paragraphs in the story")
        return paras[0]

    def insert_break(self, placement: Placement) -> None:
        self.insert_break_before(self._first_paragraph(placement))

    def starts_surface(self, placement: Placement) -> bool:
        try:
            first = self._first_paragraph(placement)
        except MeasurementError:
            return False
        slot = self._flow()[id(first)][0]
        return slot.frame is not None and slot.top <= EPS

    def save(self, checkpoint: bool = False) -> None:
        self.saves.append(checkpoint)

    # ---------- frame repair ----------
    def frame_count(self) -> int:
        return len(self.frames)

    def frame_paragraphs(self, frame: int) -> List[FrameParagraph]:
        flow = self._flow()
        out = []
        for para in self.story:
            frames = [s.frame for s in flow[id(para)]]
            if frame in frames:
                out.append(FrameParagraph(para, para.style, para.text, frames[-1] == frame,
                                          is_break=para.kind == "break"))
        return out

    def remove_paragraph(self, handle: PreviewParagraph) -> None:
        self.story.remove(handle)
        handle.removed = True

    def insert_break_before(self, handle: PreviewParagraph) -> None:
        pos = self.story.index(handle)
        if pos > 0 and self.story[pos - 1].kind == "spacer":
            # the break goes into the spacer in front of the group
            self.story[pos - 1].kind = "break"
            return
        self.story.insert(pos, PreviewParagraph(self, STYLE_SPACER, "", 0, kind="break"))

    def last_frame_overflows(self) -> bool:
        return self.story_overflows()

    def add_frame(self) -> None:
        self.new_surface()

    # ---------- proof ----------
    def surfaces_text(self) -> List[List[Tuple[str, float, str]]]:
        """Per frame: (style, point size, line text) for every rendered line; overset last."""
        flow = self._flow()
        frames: List[List[Tuple[str, float, str]]] = [[] for _ in self.frames]
        overset: List[Tuple[str, float, str]] = []
        for para in self.story:
            if para.kind != "text":
                continue
            for slot, line in zip(flow[id(para)], para.lines()):
                entry = (para.style, para.point_size, line)
                if slot.frame is None:
                    overset.append(entry)
                else:
                    frames[slot.frame].append(entry)
        if overset:
            frames.append(overset)
        return frames

    def render_proof(self) -> str:
        chunks = []
        surfaces = self.surfaces_text()
        for idx, lines in enumerate(surfaces):
            overset = idx >= len(self.frames)
            chunks.append(f"=== {'overset' if overset else f'frame {idx + 1}'} ===")
            for style, size, text in lines:
                chunks.append(f"[{style} {size:g}pt] {text}")
        return "\n".join(chunks) + "\n"
