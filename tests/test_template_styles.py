from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from records import STYLE_DEMOGRAPHIC, STYLE_DISEASE, STYLE_NAMES, STYLE_SPACER
from template_styles import (
    TemplateError,
    is_idml,
    missing_styles,
    read_paragraph_styles,
    style_sizes,
)

STYLES_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<idPkg:Styles xmlns:idPkg="http://ns.adobe.com/AdobeInDesign/idml/1.0/packaging" DOMVersion="18.0">
  <RootParagraphStyleGroup Self="u79">
    <ParagraphStyle Self="ParagraphStyle/$ID/[No paragraph style]" Name="$ID/[No paragraph style]" PointSize="12"/>
    <ParagraphStyle Self="ParagraphStyle/age-population-sex" Name="age-population-sex" PointSize="16">
      <Properties><BasedOn type="string">$ID/[No paragraph style]</BasedOn></Properties>
    </ParagraphStyle>
    <ParagraphStyle Self="ParagraphStyle/disease" Name="disease">
      <Properties><BasedOn type="object">ParagraphStyle/age-population-sex</BasedOn></Properties>
    </ParagraphStyle>
    <ParagraphStyle Self="ParagraphStyle/names" Name="names" PointSize="10"/>
  </RootParagraphStyleGroup>
</idPkg:Styles>
"""


def make_idml(path: Path, styles_xml: str = STYLES_XML) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/vnd.adobe.indesign-idml-package")
        zf.writestr("Resources/Styles.xml", styles_xml)
    return path


def test_sizes_follow_based_on(tmp_path: Path) -> None:
    styles = read_paragraph_styles(str(make_idml(tmp_path / "template.idml")))
    sizes = style_sizes(styles)
    assert sizes[STYLE_DEMOGRAPHIC] == 16.0
    assert sizes[STYLE_DISEASE] == 16.0
    assert sizes[STYLE_NAMES] == 10.0
    assert styles[STYLE_DISEASE].based_on == "ParagraphStyle/age-population-sex"


def test_missing_merge_styles_are_listed(tmp_path: Path) -> None:
    styles = read_paragraph_styles(str(make_idml(tmp_path / "template.idml")))
    assert missing_styles(styles) == [STYLE_SPACER]


def test_not_a_zip_raises(tmp_path: Path) -> None:
    bogus = tmp_path / "template.idml"
    bogus.write_text("not a package", encoding="utf-8")
    with pytest.raises(TemplateError):
        read_paragraph_styles(str(bogus))


def test_broken_styles_xml_raises(tmp_path: Path) -> None:
    path = make_idml(tmp_path / "template.idml", "<idPkg:Styles")
    with pytest.raises(TemplateError):
        read_paragraph_styles(str(path))


def test_missing_template_raises(tmp_path: Path) -> None:
    with pytest.raises(TemplateError):
        read_paragraph_styles(str(tmp_path / "absent.idml"))


def test_is_idml() -> None:
    assert is_idml("a/b/Template.IDML")
    assert not is_idml("template.indt")
