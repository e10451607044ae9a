"""
Time Scale Tests

INVARIANTS:
===========
- Domain covers every activity timestamp and every draft endpoint
- to_x is monotonic non-decreasing
- Empty or single-instant input maps to a finite midpoint
- Zoom changes the output range, never min/max
"""

import math
from datetime import timedelta

import numpy as np
import pytest
from hypothesis import given, strategies as st

from timeline_engine.contracts import EPOCH, MAX_INSTANT, MIN_INSTANT, ErrorCode
from timeline_engine.layout import build_time_scale
from tests.fixtures import NOW, T0, activities, instants, make_activity, make_draft, utc


def _two_point_scale(**kwargs):
    acts = [make_activity("a", T0), make_activity("b", T0 + timedelta(days=10))]
    kwargs.setdefault("viewport_width", 1000)
    kwargs.setdefault("padding_ratio", 0.0)
    return build_time_scale(acts, **kwargs)


class TestDomain:
    def test_min_max_cover_activities(self):
        scale = _two_point_scale()
        assert scale.min == T0
        assert scale.max == T0 + timedelta(days=10)
        assert scale.span == timedelta(days=10)

    def test_draft_endpoints_widen_domain(self):
        acts = [make_activity("a", T0)]
        draft = make_draft("d", T0 - timedelta(days=3), T0 + timedelta(days=4))
        scale = build_time_scale(acts, [draft], padding_ratio=0.0)
        assert scale.min == draft.start
        assert scale.max == draft.end

    def test_padding_ratio_widens_mapped_domain_only(self):
        scale = _two_point_scale(padding_ratio=0.1)
        assert scale.min == T0
        assert scale.domain_start == T0 - timedelta(days=1)
        assert scale.domain_end == T0 + timedelta(days=11)
        assert 0 < scale.to_x(scale.min) < scale.to_x(scale.max) < 1000

    def test_missing_timestamp_excluded_and_reported(self):
        acts = [
            make_activity("a", T0),
            make_activity("bad", None),
            make_activity("b", T0 + timedelta(days=2)),
        ]
        scale = build_time_scale(acts, padding_ratio=0.0)
        assert scale.min == T0
        assert scale.max == T0 + timedelta(days=2)
        assert scale.excluded_ids == ("bad",)
        assert scale.excluded[0].code == ErrorCode.INVALID_TIMESTAMP


class TestMapping:
    def test_endpoints_map_to_range(self):
        scale = _two_point_scale()
        assert scale.to_x(T0) == pytest.approx(0.0)
        assert scale.to_x(T0 + timedelta(days=10)) == pytest.approx(1000.0)
        assert scale.to_x(T0 + timedelta(days=5)) == pytest.approx(500.0)

    def test_pixel_padding_insets_range(self):
        scale = _two_point_scale(padding_left=100, padding_right=100)
        assert scale.to_x(T0) == pytest.approx(100.0)
        assert scale.to_x(T0 + timedelta(days=10)) == pytest.approx(900.0)

    def test_oversized_padding_collapses_instead_of_inverting(self):
        scale = _two_point_scale(padding_left=800, padding_right=800)
        assert scale.range_end == scale.range_start
        assert scale.to_x(T0) == scale.to_x(T0 + timedelta(days=10))

    def test_project_matches_to_x(self):
        scale = _two_point_scale(padding_ratio=0.02)
        points = [T0 + timedelta(hours=h) for h in range(0, 240, 17)]
        projected = scale.project(points)
        assert isinstance(projected, np.ndarray)
        for instant, x in zip(points, projected):
            assert x == pytest.approx(scale.to_x(instant))

    def test_span_x_applies_min_width(self):
        scale = _two_point_scale()
        x_start, x_end = scale.span_x(T0, T0, min_width=40)
        assert x_start == pytest.approx(0.0)
        assert x_end == pytest.approx(40.0)

        x_start, x_end = scale.span_x(T0, T0 + timedelta(days=5), min_width=40)
        assert x_end - x_start == pytest.approx(500.0)

    def test_clamp_and_contains(self):
        scale = _two_point_scale()
        assert scale.clamp(T0 - timedelta(days=1)) == T0
        assert scale.clamp(T0 + timedelta(days=20)) == T0 + timedelta(days=10)
        assert scale.contains(T0 + timedelta(days=1))
        assert not scale.contains(T0 - timedelta(seconds=1))


class TestDegenerate:
    def test_empty_input_spans_reference(self):
        scale = build_time_scale([], viewport_width=1200, reference=NOW)
        assert scale.min == scale.max == NOW
        assert scale.is_degenerate
        assert scale.to_x(NOW) == pytest.approx(600.0)
        assert scale.to_x(NOW + timedelta(days=400)) == pytest.approx(600.0)

    def test_empty_input_without_reference_uses_epoch(self):
        scale = build_time_scale([])
        assert scale.min == EPOCH
        x = scale.to_x(NOW)
        assert math.isfinite(x)

    def test_single_activity_maps_to_midpoint(self):
        scale = build_time_scale([make_activity("a", T0)], viewport_width=800)
        assert scale.to_x(T0) == pytest.approx(400.0)
        assert not np.isnan(scale.project([T0, NOW])).any()

    def test_invalid_viewport_rejected(self):
        with pytest.raises(ValueError):
            build_time_scale([], viewport_width=0)
        with pytest.raises(ValueError):
            build_time_scale([], zoom=-1)


class TestZoom:
    def test_zoom_scales_output_not_domain(self):
        scale = _two_point_scale()
        zoomed = scale.at_zoom(2.0)
        assert zoomed.min == scale.min
        assert zoomed.max == scale.max
        assert zoomed.to_x(T0 + timedelta(days=10)) == pytest.approx(2000.0)
        assert zoomed.to_x(T0 + timedelta(days=5)) == pytest.approx(2 * scale.to_x(T0 + timedelta(days=5)))

    def test_with_viewport_keeps_domain(self):
        scale = _two_point_scale()
        wider = scale.with_viewport(2000)
        assert (wider.domain_start, wider.domain_end) == (scale.domain_start, scale.domain_end)
        assert wider.zoom == scale.zoom
        assert wider.to_x(T0 + timedelta(days=10)) == pytest.approx(2000.0)

    def test_zoom_must_be_positive(self):
        with pytest.raises(ValueError):
            _two_point_scale().at_zoom(0)

    @pytest.mark.parametrize("zoom", [math.inf, math.nan, -math.inf])
    def test_zoom_must_be_finite(self, zoom):
        with pytest.raises(ValueError):
            _two_point_scale().at_zoom(zoom)
        with pytest.raises(ValueError):
            _two_point_scale(zoom=zoom)

    @pytest.mark.parametrize("width", [math.inf, math.nan])
    def test_viewport_must_be_finite(self, width):
        with pytest.raises(ValueError):
            _two_point_scale().with_viewport(width)
        with pytest.raises(ValueError):
            _two_point_scale(viewport_width=width)


class TestExtremeInstants:
    def test_padding_saturates_at_max_instant(self):
        acts = [make_activity("a", utc(2020, 1, 1)), make_activity("b", utc(9999, 12, 30))]
        scale = build_time_scale(acts, viewport_width=1000)
        assert scale.max == utc(9999, 12, 30)
        assert scale.domain_end == MAX_INSTANT
        xs = [scale.to_x(a.timestamp) for a in acts]
        assert all(math.isfinite(x) for x in xs)
        assert 0.0 <= xs[0] < xs[1] <= 1000.0

    def test_padding_saturates_at_min_instant(self):
        acts = [make_activity("a", utc(1, 1, 2)), make_activity("b", utc(2020, 1, 1))]
        scale = build_time_scale(acts, viewport_width=1000)
        assert scale.domain_start == MIN_INSTANT
        assert all(math.isfinite(x) for x in scale.project(a.timestamp for a in acts))

    def test_markers_near_min_instant(self):
        scale = build_time_scale([make_activity("a", MIN_INSTANT)], reference=MIN_INSTANT)
        assert [m.label for m in scale.relative_markers(MIN_INSTANT)] == ["Now"]


class TestMarkers:
    def test_relative_markers_inside_span(self):
        acts = [make_activity("old", NOW - timedelta(days=30)), make_activity("now", NOW)]
        scale = build_time_scale(acts, viewport_width=1000, padding_ratio=0.0)
        markers = scale.relative_markers(NOW)
        assert [m.label for m in markers] == ["Now", "1d ago", "3d ago", "1w ago", "2w ago", "3w ago"]
        assert markers[0].x == pytest.approx(1000.0)
        xs = [m.x for m in markers]
        assert xs == sorted(xs, reverse=True)

    def test_markers_outside_span_are_dropped(self):
        acts = [make_activity("a", NOW - timedelta(days=2)), make_activity("b", NOW)]
        scale = build_time_scale(acts, padding_ratio=0.0)
        assert [m.label for m in scale.relative_markers(NOW)] == ["Now", "1d ago"]


# =============================================================================
# PROPERTIES
# =============================================================================

@given(activities(max_size=20, allow_missing=True), st.floats(min_value=0.1, max_value=8.0))
def test_to_x_monotonic_non_decreasing(acts, zoom):
    scale = build_time_scale(acts, viewport_width=1200, zoom=zoom)
    ordered = sorted(a.timestamp for a in acts if a.timestamp is not None)
    xs = [scale.to_x(t) for t in ordered]
    assert all(math.isfinite(x) for x in xs)
    assert all(x1 <= x2 for x1, x2 in zip(xs, xs[1:]))


@given(activities(max_size=20, allow_missing=True))
def test_domain_covers_every_placeable_timestamp(acts):
    scale = build_time_scale(acts, reference=NOW)
    for activity in acts:
        if activity.timestamp is not None:
            assert scale.min <= activity.timestamp <= scale.max
            assert 0.0 <= scale.to_x(activity.timestamp) <= 1200.0 + 1e-6


@given(instants())
def test_empty_scale_never_nan(instant):
    scale = build_time_scale([], reference=instant)
    assert math.isfinite(scale.to_x(instant))
