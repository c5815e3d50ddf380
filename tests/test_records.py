from __future__ import annotations

from pathlib import Path

import pytest

from records import (
    NBSP,
    STYLE_DEMOGRAPHIC,
    STYLE_DISEASE,
    STYLE_NAMES,
    DataFileError,
    Record,
    RenderGroup,
    compose_group,
    compose_groups,
    protect_name_spaces,
    read_records,
)

HEADER = "age\tpopulation\tsex\tdisease\tname\tsynonyms\ttissue\n"


def test_all_empty_record_has_no_lines() -> None:
    group = compose_group(Record())
    assert group.lines == []
    assert group.paragraphs() == []
    assert len(group) == 0


@pytest.mark.parametrize("field", ["age", "population", "sex"])
def test_single_demographic_field_has_no_separator(field: str) -> None:
    group = compose_group(Record(**{field: "X"}))
    assert group.demographic == "X"
    assert group.disease is None
    assert group.names is None


def test_names_line_skips_empty_middle_field() -> None:
    group = compose_group(Record(name="A", synonyms="", tissue_of_origin="C"))
    assert group.names == "A; C"


def test_names_line_without_name() -> None:
    group = compose_group(Record(synonyms="B", tissue_of_origin="C"))
    assert group.names == "B; C"


def test_example_row() -> None:
    record = Record.from_row(["72", "1", "F", "lung cancer", "PATIENT-1", "", "lung"])
    group = compose_group(record)
    assert group.demographic == "72 1 F"
    assert group.disease == "with lung cancer"
    assert group.names == "PATIENT-1; lung"


def test_age_and_sex_only() -> None:
    group = compose_group(Record(age="5", sex="M"))
    assert group.demographic == "5 M"


def test_paragraph_order_and_styles() -> None:
    group = RenderGroup(demographic="1 2 F", disease="with x", names="a b; c")
    assert group.paragraphs() == [
        (STYLE_DEMOGRAPHIC, "1 2 F"),
        (STYLE_DISEASE, "with x"),
        (STYLE_NAMES, "a b; c"),
    ]
    assert group.paragraphs(nonbreaking_names=True)[-1] == (STYLE_NAMES, f"a{NBSP}b; c")


def test_protect_name_spaces_keeps_space_after_semicolon() -> None:
    assert protect_name_spaces("HeLa S3; cervix uteri") == f"HeLa{NBSP}S3; cervix{NBSP}uteri"


def test_compose_groups_preserves_order() -> None:
    groups = compose_groups([Record(age=str(i)) for i in range(4)])
    assert [g.demographic for g in groups] == ["0", "1", "2", "3"]


def test_read_records_discards_header_and_pads(tmp_path: Path) -> None:
    data = tmp_path / "data.tsv"
    data.write_text(HEADER + "72\t1\tF\tlung cancer\tPATIENT-1\t\tlung\n" + "3\t\tM\n", encoding="utf-8")
    records = read_records(str(data))
    assert len(records) == 2
    assert records[0] == Record("72", "1", "F", "lung cancer", "PATIENT-1", None, "lung")
    assert records[1] == Record(age="3", sex="M")


def test_read_records_limit_and_blank_line(tmp_path: Path) -> None:
    data = tmp_path / "data.tsv"
    rows = "".join(f"{i}\t\t\t\t\t\t\n" for i in range(10))
    data.write_text(HEADER + rows + "\n" + "99\t\t\t\t\t\t\n", encoding="utf-8")
    assert len(read_records(str(data), limit=3)) == 3
    everything = read_records(str(data))
    assert len(everything) == 10
    assert everything[-1].age == "9"


def test_read_records_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataFileError):
        read_records(str(tmp_path / "missing.tsv"))
