# -*- coding: utf-8 -*-
"""
TSV records -> render groups.

Each data row carries seven optional fields. A row becomes a RenderGroup of at
most three paragraphs:

    {age} {population} {sex}                 -> "age-population-sex"
    with {disease}                           -> "disease"
    {name}; {synonyms}; {tissueOfOrigin}     -> "names"

Absent fields drop out together with their separator; a paragraph with no
present field is absent (None), never an empty string.
"""
from __future__ import annotations

import re
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

STYLE_DEMOGRAPHIC = "age-population-sex"
STYLE_DISEASE = "disease"
STYLE_NAMES = "names"
STYLE_SPACER = "space between"

PARAGRAPH_STYLES = (STYLE_DEMOGRAPHIC, STYLE_DISEASE, STYLE_NAMES, STYLE_SPACER)

FIELDS = ("age", "population", "sex", "disease", "name", "synonyms", "tissue_of_origin")

NBSP = "\u00a0"
_BREAKABLE_NAME_SPACE_RE = re.compile(r"(?<!;) ")


class DataFileError(RuntimeError):
    """The data file could not be opened or read."""


@dataclass(frozen=True)
class Record:
    age: Optional[str] = None
    population: Optional[str] = None
    sex: Optional[str] = None
    disease: Optional[str] = None
    name: Optional[str] = None
    synonyms: Optional[str] = None
    tissue_of_origin: Optional[str] = None

    @classmethod
    def from_row(cls, cells):
        values = [(c or None) for c in list(cells)[: len(FIELDS)]]
        values += [None] * (len(FIELDS) - len(values))
        return cls(*values)


@dataclass(frozen=True)
class RenderGroup:
    demographic: Optional[str] = None
    disease: Optional[str] = None
    names: Optional[str] = None

    @property
    def lines(self) -> List[str]:
        return [t for t in (self.demographic, self.disease, self.names) if t is not None]

    def paragraphs(self, nonbreaking_names: bool = False) -> List[Tuple[str, str]]:
        """(style, text) pairs for the present lines, in display order."""
        out = []
        if self.demographic is not None:
            out.append((STYLE_DEMOGRAPHIC, self.demographic))
        if self.disease is not None:
            out.append((STYLE_DISEASE, self.disease))
        if self.names is not None:
            names = protect_name_spaces(self.names) if nonbreaking_names else self.names
            out.append((STYLE_NAMES, names))
        return out

    def __len__(self):
        return len(self.lines)


def _join_present(parts, sep: str) -> Optional[str]:
    present = [p for p in parts if p]
    if not present:
        return None
    return sep.join(present)


def compose_group(record: Record) -> RenderGroup:
    demographic = _join_present((record.age, record.population, record.sex), " ")
    disease = f"with {record.disease}" if record.disease else None
    names = _join_present((record.name, record.synonyms, record.tissue_of_origin), "; ")
    return RenderGroup(demographic=demographic, disease=disease, names=names)


def compose_groups(records: Iterable[Record]) -> List[RenderGroup]:
    groups = [compose_group(r) for r in records]
    logger.debug("composed %d groups", len(groups))
    return groups


def protect_name_spaces(text: str) -> str:
    """Turn every space not following a semicolon into a non-breaking space."""
    return _BREAKABLE_NAME_SPACE_RE.sub(NBSP, text)


def _iter_rows(fh) -> Iterator[List[str]]:
    fh.readline()  # header
    for raw in fh:
        line = raw.rstrip("\r\n")
        if not line:
            break
        yield line.split("\t")


def read_records(path: str, limit: Optional[int] = None) -> List[Record]:
    """
    Read tab-separated rows into Records. The header row is discarded and
    reading stops at the first empty line or once `limit` rows were read
    (None or 0 reads everything).
    """
    try:
        fh = open(path, "r", encoding="utf-8-sig", newline="")
    except OSError as exc:
        raise DataFileError(f"cannot open data file {path}: {exc}") from exc

    records = []
    with fh:
        try:
            for cells in _iter_rows(fh):
                records.append(Record.from_row(cells))
                if limit and len(records) >= limit:
                    break
        except UnicodeDecodeError as exc:
            raise DataFileError(f"cannot decode data file {path}: {exc}") from exc
    logger.debug("read %d records from %s (limit=%s)", len(records), path, limit)
    return records
