# -*- coding: utf-8 -*-
"""
Layout collaborator backed by a live InDesign document over COM (Windows).

One story is threaded through one margin-filling text frame per page. Groups
are appended at the end of the story, frame breaks are inserted right before
a group's first paragraph, and InDesign's own `overflows` / `lines` answer
the fit questions.
"""
from __future__ import annotations

import os
import logging
from typing import Any, List, Optional

from frame_breaks import FrameParagraph
from records import PARAGRAPH_STYLES, STYLE_SPACER, RenderGroup
from surfaces import BreakInsertionError, HostUnavailableError, MeasurementError, Placement

logger = logging.getLogger(__name__)

WIN_PROGIDS = [
    "InDesign.Application.2025",
    "InDesign.Application.2024",
    "InDesign.Application.2023",
    "InDesign.Application.2020",
    "InDesign.Application.CC.2020",
    "InDesign.Application.2019",
    "InDesign.Application.CC.2019",
    "InDesign.Application",
]
SCRIPT_LANGUAGE_JAVASCRIPT = 1246973031


def connect_indesign():
    try:
        import win32com.client  # pip install pywin32
    except ImportError as e:
        raise HostUnavailableError(f"pywin32 is not installed: {e}") from e

    for pid in WIN_PROGIDS:
        try:
            app = win32com.client.Dispatch(pid)
            logger.info("connected to InDesign: %s", pid)
            return app
        except Exception:
            continue
    raise HostUnavailableError("no InDesign COM interface found")


class ComParagraph:
    """A story paragraph as a FitTarget."""

    def __init__(self, paragraph, style: str, text: str):
        self._par = paragraph
        self.style = style
        self.text = text

    @property
    def point_size(self) -> float:
        try:
            return float(self._par.TextStyleRanges.Item(1).PointSize)
        except Exception as exc:
            raise MeasurementError(f"cannot read point size of {self.text!r}: {exc}") from exc

    @point_size.setter
    def point_size(self, size: float) -> None:
        self._par.PointSize = size

    def line_count(self) -> int:
        try:
            return int(self._par.Lines.Count)
        except Exception as exc:
            raise MeasurementError(f"cannot count lines of {self.text!r}: {exc}") from exc

    def first_line_contents(self) -> str:
        try:
            return str(self._par.Lines.Item(1).Contents)
        except Exception as exc:
            raise MeasurementError(f"cannot read first line of {self.text!r}: {exc}") from exc

    @property
    def first_index(self) -> int:
        return int(self._par.Characters.Item(1).Index)


class ComFrame:
    def __init__(self, frame, page):
        self.frame = frame
        self.page = page

    def overflows(self) -> bool:
        try:
            return bool(self.frame.Overflows)
        except Exception as exc:
            raise MeasurementError(f"cannot query overflow: {exc}") from exc

    def is_empty(self) -> bool:
        try:
            return int(self.frame.Characters.Count) == 0
        except Exception as exc:
            raise MeasurementError(f"cannot count frame characters: {exc}") from exc


class InDesignLayout:
    def __init__(self, app, template_path: str, output_path: Optional[str] = None, spacing: float = 15):
        self.app = app
        self.template_path = os.path.abspath(template_path)
        self.output_path = os.path.abspath(output_path) if output_path else None
        self.spacing = spacing
        self._enums = {}

        self.doc = app.Open(self.template_path)
        points = self._enum("MeasurementUnits.POINTS")
        self.doc.ViewPreferences.HorizontalMeasurementUnits = points
        self.doc.ViewPreferences.VerticalMeasurementUnits = points

        self.styles = {}
        for name in PARAGRAPH_STYLES:
            style = self.doc.ParagraphStyles.Item(name)
            if not style.IsValid:
                raise HostUnavailableError(f"template has no paragraph style {name!r}")
            self.styles[name] = style

        page = self.doc.Pages.FirstItem()
        self.frames: List[ComFrame] = [ComFrame(self._make_text_frame(page), page)]
        self.story = self.frames[0].frame.ParentStory

    @classmethod
    def open(cls, template_path: str, output_path: Optional[str] = None, spacing: float = 15):
        return cls(connect_indesign(), template_path, output_path=output_path, spacing=spacing)

    def _enum(self, expr: str):
        """Resolve an InDesign scripting enum (e.g. SpecialCharacters.FRAME_BREAK) by evaluating it."""
        if expr not in self._enums:
            self._enums[expr] = self.app.DoScript(expr, SCRIPT_LANGUAGE_JAVASCRIPT)
        return self._enums[expr]

    def _make_text_frame(self, page):
        """Text frame that fills the page margins."""
        margins = page.MarginPreferences
        bounds = page.Bounds
        y1 = margins.Top
        y2 = bounds[2] - margins.Bottom
        side = page.Side
        if side == self._enum("PageSideOptions.LEFT_HAND"):
            x1 = margins.Right
            x2 = bounds[3] - margins.Left
        elif side == self._enum("PageSideOptions.RIGHT_HAND"):
            x1 = margins.Left + bounds[1]
            x2 = bounds[3] - margins.Right
        else:
            x1 = margins.Left
            x2 = bounds[3] - margins.Right
        frame = page.TextFrames.Add()
        frame.GeometricBounds = [y1, x1, y2, x2]
        # top of the caps of the first line aligns with the top of the frame
        frame.TextFramePreferences.FirstBaselineOffset = self._enum("FirstBaseline.CAP_HEIGHT")
        return frame

    # ---------- collaborator ----------
    @property
    def surface(self) -> ComFrame:
        return self.frames[-1]

    @property
    def surface_count(self) -> int:
        return len(self.frames)

    def _append_paragraph(self, style: str, text: str):
        start = int(self.story.Characters.Count)
        self.story.InsertionPoints.LastItem().Contents = text + "\r"
        paragraph = self.story.Characters.Item(start + 1).Paragraphs.FirstItem()
        paragraph.AppliedParagraphStyle = self.styles[style]
        return paragraph

    def place(self, index: int, group: RenderGroup, nonbreaking_names: bool = False) -> Placement:
        targets = {}
        for style, text in group.paragraphs(nonbreaking_names):
            targets[style] = ComParagraph(self._append_paragraph(style, text), style, text)
        return Placement(index, group, targets, len(self.frames) - 1)

    def add_spacer(self) -> None:
        self._append_paragraph(STYLE_SPACER, "")

    def new_surface(self) -> ComFrame:
        current = self.frames[-1].page
        if current.Id == self.doc.Pages.LastItem().Id:
            page = self.doc.Pages.Add()
        else:
            page = self.doc.Pages.NextItem(current)
        frame = self._make_text_frame(page)
        self.frames[-1].frame.NextTextFrame = frame
        self.frames.append(ComFrame(frame, page))
        logger.debug("new text frame on page %s", page.Name)
        return self.frames[-1]

    def _insert_break_at(self, char_index: int) -> None:
        # the break goes before the preceding paragraph return, so it lives in the spacer paragraph
        ip = self.story.InsertionPoints.Item(max(char_index, 1))
        ip.Contents = self._enum("SpecialCharacters.FRAME_BREAK")
        ip.Paragraphs.FirstItem().AppliedParagraphStyle = self.styles[STYLE_SPACER]

    def insert_break(self, placement: Placement) -> None:
        first = next(iter(placement.targets.values()), None)
        if first is None:
            raise BreakInsertionError(f"group {placement.index} has no paragraphs")
        try:
            self._insert_break_at(first.first_index)
        except Exception as exc:
            raise BreakInsertionError(str(exc)) from exc

    def starts_surface(self, placement: Placement) -> bool:
        first = next(iter(placement.targets.values()), None)
        if first is None:
            return False
        try:
            frames = first._par.ParentTextFrames
            if not frames.Count:
                return False
            return int(frames.Item(1).Characters.Item(1).Index) == first.first_index
        except Exception:
            return False

    def save(self, checkpoint: bool = False) -> None:
        if self.output_path:
            self.doc.Save(self.output_path)
        else:
            self.doc.Save()
        logger.debug("document saved (checkpoint=%s)", checkpoint)

    def close(self) -> None:
        self.doc.Close(self._enum("SaveOptions.NO"))

    # ---------- frame repair ----------
    def frame_count(self) -> int:
        return len(self.frames)

    def frame_paragraphs(self, frame: int) -> List[FrameParagraph]:
        tf = self.frames[frame].frame
        out = []
        for i in range(1, int(tf.Paragraphs.Count) + 1):
            par = tf.Paragraphs.Item(i)
            contents: Any = par.Contents
            completes = False
            try:
                completes = par.Lines.LastItem().ParentTextFrames.Item(1).Id == tf.Id
            except Exception:
                completes = False
            out.append(FrameParagraph(
                par,
                str(par.AppliedParagraphStyle.Name),
                contents if isinstance(contents, str) else "",
                completes,
                is_break=not isinstance(contents, str),
            ))
        return out

    def remove_paragraph(self, handle) -> None:
        handle.Delete()

    def insert_break_before(self, handle) -> None:
        try:
            self._insert_break_at(int(handle.Characters.Item(1).Index))
        except Exception as exc:
            raise BreakInsertionError(str(exc)) from exc

    def last_frame_overflows(self) -> bool:
        return bool(self.frames[-1].frame.Overflows)

    def add_frame(self) -> None:
        self.new_surface()
