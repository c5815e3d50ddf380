# -*- coding: utf-8 -*-
"""
Paragraph style lookup for .idml templates.

Reads Resources/Styles.xml from the IDML package and resolves the point size
of each paragraph style, following BasedOn chains for inherited values. Used
to check the template carries the four merge styles before the host is
started and to seed the preview layout with the template's sizes.
"""
from __future__ import annotations

import os
import zipfile
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from lxml import etree

from records import PARAGRAPH_STYLES

logger = logging.getLogger(__name__)

STYLES_PART = "Resources/Styles.xml"
SELF_PREFIX = "ParagraphStyle/"


class TemplateError(RuntimeError):
    """The template could not be read as an IDML package."""


@dataclass(frozen=True)
class ParagraphStyleInfo:
    name: str
    point_size: Optional[float]
    based_on: Optional[str] = None


def _local(tag) -> str:
    return tag.split("}", 1)[-1] if isinstance(tag, str) else ""


def _float_or_none(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_styles(data: bytes) -> Dict[str, ParagraphStyleInfo]:
    root = etree.fromstring(data)
    raw: Dict[str, ParagraphStyleInfo] = {}
    for node in root.iter():
        if _local(node.tag) != "ParagraphStyle":
            continue
        self_id = node.get("Self") or ""
        name = node.get("Name") or self_id[len(SELF_PREFIX):]
        based_on = None
        for child in node.iter():
            if _local(child.tag) == "BasedOn" and child.text:
                based_on = child.text.strip()
                break
        raw[self_id] = ParagraphStyleInfo(name, _float_or_none(node.get("PointSize")), based_on)

    resolved: Dict[str, ParagraphStyleInfo] = {}
    for self_id, info in raw.items():
        size, seen, parent = info.point_size, {self_id}, info.based_on
        while size is None and parent and parent in raw and parent not in seen:
            seen.add(parent)
            size = raw[parent].point_size
            parent = raw[parent].based_on
        resolved[info.name] = ParagraphStyleInfo(info.name, size, info.based_on)
    return resolved


def read_paragraph_styles(template_path: str) -> Dict[str, ParagraphStyleInfo]:
    if not os.path.exists(template_path):
        raise TemplateError(f"template not found: {template_path}")
    try:
        with zipfile.ZipFile(template_path) as zf:
            data = zf.read(STYLES_PART)
    except (zipfile.BadZipFile, KeyError) as exc:
        raise TemplateError(f"not an IDML package ({STYLES_PART} missing): {template_path}") from exc
    try:
        styles = _parse_styles(data)
    except etree.XMLSyntaxError as exc:
        raise TemplateError(f"cannot parse {STYLES_PART} in {template_path}: {exc}") from exc
    logger.debug("template %s: %d paragraph styles", template_path, len(styles))
    return styles


def missing_styles(styles: Dict[str, ParagraphStyleInfo],
                   required: Iterable[str] = PARAGRAPH_STYLES) -> List[str]:
    return [name for name in required if name not in styles]


def style_sizes(styles: Dict[str, ParagraphStyleInfo]) -> Dict[str, float]:
    return {name: info.point_size for name, info in styles.items() if info.point_size is not None}


def is_idml(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == ".idml"
