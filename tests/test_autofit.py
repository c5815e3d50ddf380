from __future__ import annotations

import logging

import pytest

from autofit import (
    ContentsChanged,
    coarse_then_fine_search,
    fine_step_search,
    fit_coupled,
    fit_group,
    search,
    wraps_lines,
)
from layout_config import LayoutConfig
from preview_layout import PreviewLayout
from records import STYLE_DEMOGRAPHIC, STYLE_DISEASE, STYLE_NAMES, RenderGroup
from surfaces import MeasurementError, Placement


class FakeLine:
    """Single-line target that wraps once its size passes `limit`."""

    def __init__(self, text: str, limit: float, size: float = 16.0, style: str = STYLE_DISEASE,
                 broken_above: float = None):
        self.text = text
        self.limit = limit
        self.point_size = size
        self.style = style
        self.broken_above = broken_above

    def _fits(self) -> bool:
        return self.point_size <= self.limit + 1e-9

    def line_count(self) -> int:
        if self.broken_above is not None and self.point_size > self.broken_above:
            raise MeasurementError("overset")
        return 1 if self._fits() else 2

    def first_line_contents(self) -> str:
        return self.text if self._fits() else self.text.split(" ")[0]


class FakeSurface:
    def __init__(self, target=None, overflow_above: float = None):
        self.target = target
        self.overflow_above = overflow_above

    def overflows(self) -> bool:
        if self.overflow_above is None:
            return False
        return self.target.point_size > self.overflow_above


CFG = LayoutConfig()


def test_fine_step_stops_below_first_wrap() -> None:
    line = FakeLine("with lung cancer", limit=30.6)
    result = fine_step_search(line, FakeSurface(), CFG)
    assert result.size == 30.5
    assert line.point_size == 30.5
    assert result.violated


def test_fine_step_is_idempotent() -> None:
    line = FakeLine("with lung cancer", limit=27.3)
    first = fine_step_search(line, FakeSurface(), CFG)
    second = fine_step_search(line, FakeSurface(), CFG)
    assert first.size == second.size == 27.25
    assert line.point_size == 27.25


@pytest.mark.parametrize("limit", [16.0, 18.0, 22.4, 30.6, 31.9, 47.9, 100.0])
def test_coarse_never_exceeds_fine(limit: float) -> None:
    fine = fine_step_search(FakeLine("a b", limit), FakeSurface(), CFG)
    coarse = coarse_then_fine_search(FakeLine("a b", limit), FakeSurface(), CFG)
    assert coarse.size <= fine.size
    assert coarse.size >= 16.0


def test_searches_capped_at_max() -> None:
    for search in (fine_step_search, coarse_then_fine_search):
        line = FakeLine("x", limit=1000)
        result = search(line, FakeSurface(), CFG)
        assert result.size == 48.0
        assert not result.violated


def test_ceiling_respects_fine_grid() -> None:
    line = FakeLine("x", limit=1000, size=16.1)
    assert fine_step_search(line, FakeSurface(), CFG).size == pytest.approx(47.85)


def test_already_wrapping_target_is_left_alone() -> None:
    line = FakeLine("x y", limit=10.0, size=16.0)
    result = fine_step_search(line, FakeSurface(), CFG)
    assert result.size == 16.0
    assert result.steps == 0
    assert result.violated


def test_surface_overflow_counts_as_violation() -> None:
    line = FakeLine("x", limit=1000)
    result = fine_step_search(line, FakeSurface(line, overflow_above=20.0), CFG)
    assert result.size == 20.0


@pytest.mark.parametrize("strategy", ["fine", "coarse"])
def test_overflow_bound_only_when_the_frame_stops_growth(strategy: str) -> None:
    cfg = CFG.with_overrides(search_strategy=strategy)
    by_frame = FakeLine("with lung cancer", limit=30.0)
    result = search(by_frame, FakeSurface(by_frame, overflow_above=20.0), cfg)
    assert (result.size, result.overflow_bound) == (20.0, True)

    by_width = FakeLine("with lung cancer", limit=20.0)
    result = search(by_width, FakeSurface(by_width, overflow_above=30.0), cfg)
    assert (result.size, result.overflow_bound) == (20.0, False)


def test_overflow_at_start_is_overflow_bound() -> None:
    line = FakeLine("x", limit=1000)
    result = fine_step_search(line, FakeSurface(line, overflow_above=10.0), CFG)
    assert result.violated and result.overflow_bound
    assert result.size == 16.0


def test_measurement_failure_counts_as_overset() -> None:
    line = FakeLine("x", limit=1000, broken_above=25.0)
    assert fine_step_search(line, FakeSurface(), CFG).size == 25.0


def test_contents_predicate() -> None:
    line = FakeLine("with lung cancer", limit=21.1)
    cfg = CFG.with_overrides(fit_check="contents")
    result = fine_step_search(line, FakeSurface(), cfg)
    assert result.size == 21.0


def test_contents_changed_baseline() -> None:
    line = FakeLine("with lung cancer", limit=20.0)
    predicate = ContentsChanged(line)
    assert not predicate(line)
    line.point_size = 24.0
    assert predicate(line)


def test_wraps_lines_without_capability() -> None:
    assert wraps_lines(object())


def test_coupled_secondary_shrinks_primary() -> None:
    disease = FakeLine("with x", limit=30.0)
    demographic = FakeLine("72 1 F", limit=24.1, style=STYLE_DEMOGRAPHIC)
    result = fit_coupled(disease, demographic, FakeSurface(), CFG)
    assert result.corrected
    assert result.size == 24.0
    assert disease.point_size == demographic.point_size == 24.0


def test_coupled_secondary_follows_when_it_fits() -> None:
    disease = FakeLine("with x", limit=30.0)
    demographic = FakeLine("72 1 F", limit=40.0, style=STYLE_DEMOGRAPHIC)
    result = fit_coupled(disease, demographic, FakeSurface(), CFG)
    assert not result.corrected
    assert disease.point_size == demographic.point_size == 30.0


def test_coupled_correction_stops_at_min(caplog) -> None:
    disease = FakeLine("with x", limit=30.0)
    demographic = FakeLine("72 1 F", limit=10.0, style=STYLE_DEMOGRAPHIC)
    with caplog.at_level(logging.WARNING, logger="autofit"):
        result = fit_coupled(disease, demographic, FakeSurface(), CFG)
    assert result.size == 16.0
    assert demographic.point_size == 16.0
    assert "still wraps" in caplog.text


def test_fit_group_without_disease_sizes_demographic() -> None:
    demographic = FakeLine("72 1 F", limit=33.3, style=STYLE_DEMOGRAPHIC)
    names = FakeLine("a; b", limit=1.0, size=10.0, style=STYLE_NAMES)
    placement = Placement(0, RenderGroup(demographic="72 1 F", names="a; b"),
                          {STYLE_DEMOGRAPHIC: demographic, STYLE_NAMES: names})
    result = fit_group(placement, FakeSurface(), CFG)
    assert result.size == 33.25
    assert names.point_size == 10.0


def test_fit_group_names_only() -> None:
    names = FakeLine("a; b", limit=1.0, size=10.0, style=STYLE_NAMES)
    placement = Placement(0, RenderGroup(names="a; b"), {STYLE_NAMES: names})
    assert fit_group(placement, FakeSurface(), CFG) is None


def test_fit_group_on_preview_layout() -> None:
    layout = PreviewLayout(frame_width=200.0)
    group = RenderGroup(demographic="72 1 F", disease="with lung cancer", names="PATIENT-1; lung")
    placement = layout.place(0, group)
    result = fit_group(placement, layout.surface, CFG)
    # 16 glyphs * 0.5em must stay within 200pt
    assert result.size == 25.0
    assert placement.target(STYLE_DISEASE).point_size == 25.0
    assert placement.target(STYLE_DEMOGRAPHIC).point_size == 25.0
    assert placement.target(STYLE_NAMES).point_size == 10.0
