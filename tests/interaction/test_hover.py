"""
Hover Highlight Tests

INVARIANTS:
===========
- No hover: every flag is neutral
- Active hover: dimmed == not highlighted
- Hover state targets at most one item
"""

import pytest
from hypothesis import given, strategies as st

from timeline_engine.association import AssociationIndex
from timeline_engine.interaction import (
    HighlightResolver, HoverState, HoverTarget, NO_HIGHLIGHT, resolve,
)
from tests.fixtures import (
    make_overlapping_drafts_scenario, make_single_draft_scenario,
    make_transitive_highlight_scenario, snapshots,
)


def _flags(highlight, index):
    activities = {k: (f.highlighted, f.dimmed) for k, f in highlight.activity_flags(index.activity_ids).items()}
    drafts = {k: (f.highlighted, f.dimmed) for k, f in highlight.draft_flags(index.draft_ids).items()}
    return activities, drafts


class TestHoverState:
    def test_single_valued(self):
        with pytest.raises(ValueError):
            HoverState(activity_id="a", draft_id="d")

    def test_activating_one_clears_the_other(self):
        state = HoverState.on_draft("d").hover_activity("a")
        assert state.draft_id is None
        assert state.target is HoverTarget.ACTIVITY
        state = state.hover_draft("d")
        assert state.activity_id is None
        assert state.target is HoverTarget.DRAFT

    def test_clear(self):
        assert not HoverState.on_activity("a").clear().is_active
        assert HoverState.none().target is HoverTarget.NONE


class TestResolveScenarios:
    def test_no_hover_is_neutral(self):
        index = AssociationIndex.from_snapshot(make_overlapping_drafts_scenario())
        highlight = resolve(HoverState.none(), index)
        assert highlight is NO_HIGHLIGHT
        activities, drafts = _flags(highlight, index)
        assert set(activities.values()) == {(False, False)}
        assert set(drafts.values()) == {(False, False)}
        assert resolve(None, index) is NO_HIGHLIGHT

    def test_hover_draft_with_no_unrelated_items(self):
        index = AssociationIndex.from_snapshot(make_single_draft_scenario())
        activities, drafts = _flags(resolve(HoverState.on_draft("D1"), index), index)
        assert activities == {"A1": (True, False), "A2": (True, False)}
        assert drafts == {"D1": (True, False)}

    def test_hover_activity_is_transitive_through_shared_draft(self):
        index = AssociationIndex.from_snapshot(make_transitive_highlight_scenario())
        highlight = resolve(HoverState.on_activity("A2"), index)
        assert highlight.activity_ids == frozenset({"A1", "A2", "A5"})
        assert highlight.draft_ids == frozenset({"D1", "D2"})
        assert highlight.activity_flag("A9").dimmed
        assert highlight.draft_flag("D3").dimmed

    def test_hover_draft_highlights_drafts_sharing_an_activity(self):
        index = AssociationIndex.from_snapshot(make_overlapping_drafts_scenario())
        highlight = resolve(HoverState.on_draft("D1"), index)
        assert highlight.activity_ids == frozenset({"A1", "A2"})
        assert highlight.draft_ids == frozenset({"D1", "D2"})
        # A5 is only in D2, which is highlighted but not hovered
        assert highlight.activity_flag("A5").dimmed

    def test_hover_unlinked_activity_dims_everything_else(self):
        index = AssociationIndex.from_snapshot(make_overlapping_drafts_scenario())
        highlight = resolve(HoverState.on_activity("A9"), index)
        assert highlight.activity_ids == frozenset({"A9"})
        assert highlight.draft_ids == frozenset({"D3"})
        assert highlight.activity_flag("A1").dimmed

    def test_unknown_id_does_not_raise(self):
        index = AssociationIndex.from_snapshot(make_overlapping_drafts_scenario())
        highlight = resolve(HoverState.on_draft("ghost"), index)
        assert highlight.activity_ids == frozenset()
        assert all(f.dimmed for f in highlight.activity_flags(index.activity_ids).values())


class TestResolver:
    def test_repeated_hover_reuses_result(self):
        index = AssociationIndex.from_snapshot(make_overlapping_drafts_scenario())
        resolver = HighlightResolver(index)
        first = resolver.resolve(HoverState.on_activity("A2"))
        assert resolver.resolve(HoverState.on_activity("A2")) is first
        assert resolver.resolve(HoverState.on_activity("A1")) is not first
        assert resolver.resolve(None) is NO_HIGHLIGHT


# =============================================================================
# PROPERTIES
# =============================================================================

@given(snapshots(allow_missing=True, asymmetric=True), st.data())
def test_flags_never_both_true(snapshot, data):
    index = AssociationIndex.from_snapshot(snapshot)
    choices = [HoverState.none()]
    choices += [HoverState.on_activity(i) for i in index.activity_ids]
    choices += [HoverState.on_draft(i) for i in index.draft_ids]
    hover = data.draw(st.sampled_from(choices))

    highlight = resolve(hover, index)
    activities, drafts = _flags(highlight, index)
    for highlighted, dimmed in list(activities.values()) + list(drafts.values()):
        if hover.is_active:
            assert dimmed == (not highlighted)
        else:
            assert (highlighted, dimmed) == (False, False)


@given(snapshots(asymmetric=True), st.data())
def test_hover_activity_rule(snapshot, data):
    index = AssociationIndex.from_snapshot(snapshot)
    if not index.activity_ids:
        return
    hovered = data.draw(st.sampled_from(index.activity_ids))
    highlight = resolve(HoverState.on_activity(hovered), index)
    hovered_drafts = index.drafts_of(hovered)
    for activity_id in index.activity_ids:
        shares = activity_id == hovered or bool(hovered_drafts & index.drafts_of(activity_id))
        assert highlight.activity_flag(activity_id).highlighted == shares
    for draft_id in index.draft_ids:
        assert highlight.draft_flag(draft_id).highlighted == (draft_id in hovered_drafts)
