"""
Layout Fixtures

Explicit snapshot scenarios and hypothesis strategies shared by the suite.

RULES:
======
1. Scenario fixtures are EXPLICIT, not random
2. Each scenario documents the outcome it expects
3. Strategies only generate structurally valid records
"""

from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Sequence, Tuple

from hypothesis import strategies as st
from hypothesis.strategies import composite

from timeline_engine.contracts import (
    Activity, ActivitySource, DateRange, DraftStory, Snapshot,
)


# Thursday, mid-morning UTC
NOW = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)
T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


# =============================================================================
# FACTORIES
# =============================================================================

def make_activity(
    activity_id: str,
    timestamp: Optional[datetime],
    source: ActivitySource = ActivitySource.GITHUB,
    title: Optional[str] = None,
) -> Activity:
    return Activity(
        id=activity_id,
        source=source,
        timestamp=timestamp,
        title=title or f"Activity {activity_id}",
    )


def make_draft(
    draft_id: str,
    start: datetime,
    end: datetime,
    tools: Iterable[ActivitySource] = (ActivitySource.GITHUB,),
) -> DraftStory:
    return DraftStory(
        id=draft_id,
        title=f"Draft {draft_id}",
        date_range=DateRange(start=start, end=end),
        tools=frozenset(tools),
    )


def symmetric_relation(
    pairs: Iterable[Tuple[str, str]]
) -> Tuple[Dict[str, Tuple[str, ...]], Dict[str, Tuple[str, ...]]]:
    """(draft_id, activity_id) pairs -> both directions of the relation."""
    draft_activities: Dict[str, list] = {}
    activity_drafts: Dict[str, list] = {}
    for draft_id, activity_id in pairs:
        draft_activities.setdefault(draft_id, []).append(activity_id)
        activity_drafts.setdefault(activity_id, []).append(draft_id)
    return (
        {k: tuple(v) for k, v in draft_activities.items()},
        {k: tuple(v) for k, v in activity_drafts.items()},
    )


def make_snapshot(
    activities: Sequence[Activity],
    drafts: Sequence[DraftStory] = (),
    pairs: Iterable[Tuple[str, str]] = (),
    now: datetime = NOW,
    version: Optional[str] = None,
) -> Snapshot:
    draft_activities, activity_drafts = symmetric_relation(pairs)
    return Snapshot(
        activities=tuple(activities),
        drafts=tuple(drafts),
        reference_time=now,
        draft_activities=draft_activities,
        activity_drafts=activity_drafts,
        version=version,
    )


# =============================================================================
# SCENARIOS
# =============================================================================

def make_single_draft_scenario() -> Snapshot:
    """
    A1 (t0, github), A2 (t0+1d, jira); D1 spans [t0, t0+1d] over {A1, A2}.

    EXPECTED: hovering D1 highlights A1, A2 and D1 and dims nothing.
    """
    a1 = make_activity("A1", T0, ActivitySource.GITHUB)
    a2 = make_activity("A2", T0 + timedelta(days=1), ActivitySource.JIRA)
    d1 = make_draft("D1", T0, T0 + timedelta(days=1), (ActivitySource.GITHUB, ActivitySource.JIRA))
    return make_snapshot([a1, a2], [d1], [("D1", "A1"), ("D1", "A2")])


def make_overlapping_drafts_scenario() -> Snapshot:
    """
    D1 [Jan 1, Jan 5], D2 [Jan 3, Jan 7], D3 [Jan 10, Jan 12].

    EXPECTED: D1 -> lane 0, D2 -> lane 1, D3 -> lane 0.
    """
    drafts = [
        make_draft("D1", utc(2026, 1, 1), utc(2026, 1, 5)),
        make_draft("D2", utc(2026, 1, 3), utc(2026, 1, 7)),
        make_draft("D3", utc(2026, 1, 10), utc(2026, 1, 12)),
    ]
    activities = [
        make_activity("A1", utc(2026, 1, 2, 12)),
        make_activity("A2", utc(2026, 1, 4, 12)),
        make_activity("A5", utc(2026, 1, 6, 12), ActivitySource.SLACK),
        make_activity("A9", utc(2026, 1, 11, 12), ActivitySource.FIGMA),
    ]
    pairs = [
        ("D1", "A1"), ("D1", "A2"),
        ("D2", "A2"), ("D2", "A5"),
        ("D3", "A9"),
    ]
    return make_snapshot(activities, drafts, pairs)


def make_transitive_highlight_scenario() -> Snapshot:
    """
    A2 belongs to D1 and D2; D2 also holds A5; A1 is only in D1.

    EXPECTED: hovering A2 highlights A5 through D2 and A1 through D1,
    while unrelated A9 and D3 are dimmed.
    """
    return make_overlapping_drafts_scenario()


# =============================================================================
# STRATEGIES
# =============================================================================

def instants(
    min_value: datetime = datetime(2020, 1, 1),
    max_value: datetime = datetime(2030, 1, 1),
):
    return st.datetimes(min_value=min_value, max_value=max_value, timezones=st.just(timezone.utc))


@composite
def activities(draw, min_size: int = 0, max_size: int = 30, allow_missing: bool = False):
    """Activities with unique ids; optionally some without a timestamp."""
    count = draw(st.integers(min_value=min_size, max_value=max_size))
    result = []
    for i in range(count):
        if allow_missing and draw(st.booleans()) and draw(st.booleans()):
            timestamp = None
        else:
            timestamp = draw(instants())
        result.append(make_activity(
            f"a{i}",
            timestamp,
            draw(st.sampled_from(list(ActivitySource))),
        ))
    return result


@composite
def drafts(draw, min_size: int = 0, max_size: int = 12):
    """Drafts with unique ids and valid date ranges."""
    count = draw(st.integers(min_value=min_size, max_value=max_size))
    result = []
    for i in range(count):
        start = draw(instants())
        length = draw(st.timedeltas(min_value=timedelta(0), max_value=timedelta(days=45)))
        result.append(make_draft(f"d{i}", start, start + length))
    return result


@composite
def snapshots(draw, allow_missing: bool = False, asymmetric: bool = False):
    """
    Snapshots with an arbitrary relation between generated ids.

    With `asymmetric`, each pair is stated by only one side at random.
    """
    acts = draw(activities(allow_missing=allow_missing, max_size=15))
    drs = draw(drafts(max_size=8))
    pairs = []
    if acts and drs:
        pairs = draw(st.lists(
            st.tuples(st.sampled_from([d.id for d in drs]), st.sampled_from([a.id for a in acts])),
            max_size=30,
            unique=True,
        ))
    if not asymmetric:
        return make_snapshot(acts, drs, pairs, now=draw(instants()))

    draft_activities: Dict[str, list] = {}
    activity_drafts: Dict[str, list] = {}
    for draft_id, activity_id in pairs:
        if draw(st.booleans()):
            draft_activities.setdefault(draft_id, []).append(activity_id)
        else:
            activity_drafts.setdefault(activity_id, []).append(draft_id)
    return Snapshot(
        activities=tuple(acts),
        drafts=tuple(drs),
        reference_time=draw(instants()),
        draft_activities=draft_activities,
        activity_drafts=activity_drafts,
    )
