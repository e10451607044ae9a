"""
Temporal Bucketing
==================

Partition activities into ordered, non-overlapping time buckets.

MODES:
======
1. Relative: Today / Yesterday / This Week / Last Week / Older,
   on UTC calendar-day boundaries against a reference instant
2. Calendar: Monday-aligned grid, one cell per day keyed YYYY-MM-DD
3. Period: rolling This Week / Last Week, then calendar quarters

INVARIANTS:
- Every placeable activity lands in exactly one bucket
- Buckets are ordered most-recent first
- Within a bucket, activities are reverse-chronological and stable
- Same input + same reference instant = identical buckets
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from types import MappingProxyType
import logging

from ..contracts import (
    Activity, DraftStory, Error, ErrorCode, ensure_utc, instant_after, instant_before,
    monday_of, shift_day, utc_date,
)

logger = logging.getLogger(__name__)


RELATIVE_BUCKETS: Tuple[Tuple[str, str], ...] = (
    ("today", "Today"),
    ("yesterday", "Yesterday"),
    ("this_week", "This Week"),
    ("last_week", "Last Week"),
    ("older", "Older"),
)

MONTH_NAMES = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

THIS_WEEK_SORT_KEY = 999999
LAST_WEEK_SORT_KEY = 999998


@dataclass(frozen=True)
class TemporalBucket:
    """A named partition of activities."""
    key: str
    label: str
    sort_key: int
    activities: Tuple[Activity, ...] = field(default_factory=tuple)

    @property
    def activity_ids(self) -> Tuple[str, ...]:
        return tuple(a.id for a in self.activities)

    def __len__(self) -> int:
        return len(self.activities)


@dataclass(frozen=True)
class Bucketing:
    """
    Result of one bucketing pass.

    `excluded` lists activities left out because they have no usable
    timestamp; every other activity appears in exactly one bucket.
    """
    mode: str
    buckets: Tuple[TemporalBucket, ...]
    excluded: Tuple[Error, ...] = field(default_factory=tuple)
    key_by_activity: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not self.key_by_activity:
            index = {}
            for bucket in self.buckets:
                for activity in bucket.activities:
                    index[activity.id] = bucket.key
            object.__setattr__(self, 'key_by_activity', MappingProxyType(index))

    def bucket_key_of(self, activity_id: str) -> Optional[str]:
        return self.key_by_activity.get(activity_id)

    def bucket(self, key: str) -> Optional[TemporalBucket]:
        for bucket in self.buckets:
            if bucket.key == key:
                return bucket
        return None

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(b.key for b in self.buckets)

    @property
    def activity_count(self) -> int:
        return sum(len(b) for b in self.buckets)


# =============================================================================
# SHARED PARTITIONING
# =============================================================================

def _split_placeable(activities: Sequence[Activity]) -> Tuple[List[Activity], Tuple[Error, ...]]:
    placeable: List[Activity] = []
    excluded: List[Error] = []
    for activity in activities:
        if activity.timestamp is None:
            logger.warning("Excluding activity %s from bucketing: no usable timestamp", activity.id)
            excluded.append(Error(
                code=ErrorCode.INVALID_TIMESTAMP,
                message="Activity has no usable timestamp",
                subject_id=activity.id,
            ))
            continue
        placeable.append(activity)
    return placeable, tuple(excluded)


def _newest_first(activities: Sequence[Activity]) -> Tuple[Activity, ...]:
    # reverse=True keeps equal timestamps in input order
    return tuple(sorted(activities, key=lambda a: a.timestamp, reverse=True))


def _partition(
    activities: Sequence[Activity],
    classify: Callable[[datetime], Tuple[str, str, int]],
) -> Dict[str, Tuple[str, int, List[Activity]]]:
    groups: Dict[str, Tuple[str, int, List[Activity]]] = {}
    for activity in activities:
        key, label, sort_key = classify(activity.timestamp)
        if key not in groups:
            groups[key] = (label, sort_key, [])
        groups[key][2].append(activity)
    return groups


# =============================================================================
# RELATIVE BUCKETS
# =============================================================================

def relative_bucket_key(instant: datetime, now: datetime) -> str:
    """
    Classify an instant against `now` on UTC calendar days.

    Future instants count as today.
    """
    day = utc_date(instant)
    today = utc_date(now)
    if day >= today:
        return "today"
    if day == shift_day(today, -1):
        return "yesterday"
    this_monday = monday_of(today)
    if day >= this_monday:
        return "this_week"
    if day >= shift_day(this_monday, -7):
        return "last_week"
    return "older"


def bucket_relative(activities: Sequence[Activity], now: datetime) -> Bucketing:
    """Bucket into the fixed relative sequence; empty buckets are kept."""
    placeable, excluded = _split_placeable(activities)
    order = {key: len(RELATIVE_BUCKETS) - i for i, (key, _) in enumerate(RELATIVE_BUCKETS)}
    labels = dict(RELATIVE_BUCKETS)

    groups = _partition(placeable, lambda ts: (relative_bucket_key(ts, now), "", 0))

    buckets = tuple(
        TemporalBucket(
            key=key,
            label=labels[key],
            sort_key=order[key],
            activities=_newest_first(groups[key][2]) if key in groups else (),
        )
        for key, _ in RELATIVE_BUCKETS
    )
    return Bucketing(mode="relative", buckets=buckets, excluded=excluded)


# =============================================================================
# PERIOD BUCKETS (rolling weeks, then quarters)
# =============================================================================

def period_of(instant: datetime, now: datetime) -> Tuple[str, str, int]:
    """
    Return (key, label, sort_key) of the period containing `instant`.

    Rolling 7-day windows measured back from the end of the reference
    day; anything older falls into its calendar quarter.
    """
    instant = ensure_utc(instant)
    today = utc_date(now)
    start_of_today = datetime(today.year, today.month, today.day, tzinfo=timezone.utc)
    end_of_today = instant_after(start_of_today, timedelta(days=1))
    if instant >= instant_before(end_of_today, timedelta(days=7)):
        return "this_week", "This Week", THIS_WEEK_SORT_KEY
    if instant >= instant_before(end_of_today, timedelta(days=14)):
        return "last_week", "Last Week", LAST_WEEK_SORT_KEY
    quarter = (instant.month - 1) // 3 + 1
    return f"q{instant.year}-{quarter}", f"Q{quarter} {instant.year}", instant.year * 100 + quarter


def bucket_by_period(activities: Sequence[Activity], now: datetime) -> Bucketing:
    """
    Bucket into This Week / Last Week / quarters.

    The two rolling weeks are always present; quarters only when non-empty.
    """
    placeable, excluded = _split_placeable(activities)
    groups = _partition(placeable, lambda ts: period_of(ts, now))
    groups.setdefault("this_week", ("This Week", THIS_WEEK_SORT_KEY, []))
    groups.setdefault("last_week", ("Last Week", LAST_WEEK_SORT_KEY, []))

    buckets = sorted(
        (
            TemporalBucket(key=key, label=label, sort_key=sort_key, activities=_newest_first(members))
            for key, (label, sort_key, members) in groups.items()
        ),
        key=lambda b: b.sort_key,
        reverse=True,
    )
    return Bucketing(mode="period", buckets=tuple(buckets), excluded=excluded)


@dataclass(frozen=True)
class DraftPeriodGroup:
    key: str
    label: str
    sort_key: int
    drafts: Tuple[DraftStory, ...]


def group_drafts_by_period(drafts: Sequence[DraftStory], now: datetime) -> Tuple[DraftPeriodGroup, ...]:
    """
    Group drafts by the period of their date-range midpoint.

    Groups come back most-recent first, drafts newest-first within a group.
    """
    groups: Dict[str, Tuple[str, int, List[DraftStory]]] = {}
    for draft in drafts:
        key, label, sort_key = period_of(draft.date_range.midpoint, now)
        if key not in groups:
            groups[key] = (label, sort_key, [])
        groups[key][2].append(draft)

    result = [
        DraftPeriodGroup(
            key=key,
            label=label,
            sort_key=sort_key,
            drafts=tuple(sorted(members, key=lambda d: d.date_range.midpoint, reverse=True)),
        )
        for key, (label, sort_key, members) in groups.items()
    ]
    result.sort(key=lambda g: g.sort_key, reverse=True)
    return tuple(result)


# =============================================================================
# CALENDAR GRID
# =============================================================================

@dataclass(frozen=True)
class CalendarDay:
    """One cell of the Monday-aligned grid."""
    key: str                    # YYYY-MM-DD
    date: date
    day_of_month: int
    is_today: bool
    week_index: int             # row in the grid
    day_of_week_index: int      # 0=Mon ... 6=Sun
    month_label: Optional[str]  # set on the 1st and on the first visible day of a month
    activities: Tuple[Activity, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CalendarGrid:
    """
    Monday-aligned sequence of whole weeks covering the activity span.

    Every day in [grid_start, grid_end] appears exactly once, including
    days with no activities. An empty input yields an empty grid.
    """
    days: Tuple[CalendarDay, ...]
    grid_start: Optional[date]
    grid_end: Optional[date]
    excluded: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def week_count(self) -> int:
        # The last row is partial only when the grid stops at date.max
        return -(-len(self.days) // 7)

    @property
    def is_empty(self) -> bool:
        return not self.days

    def day(self, key: str) -> Optional[CalendarDay]:
        if self.grid_start is None:
            return None
        try:
            offset = (date.fromisoformat(key) - self.grid_start).days
        except ValueError:
            return None
        if 0 <= offset < len(self.days):
            return self.days[offset]
        return None

    def offset_of(self, day: date) -> int:
        """Days from grid_start to `day` (may be outside the grid)."""
        if self.grid_start is None:
            raise ValueError("Empty calendar grid has no offsets")
        return (day - self.grid_start).days

    def weeks(self) -> Tuple[Tuple[CalendarDay, ...], ...]:
        return tuple(self.days[i:i + 7] for i in range(0, len(self.days), 7))

    def bucketing(self) -> Bucketing:
        """Day cells as buckets, most-recent first."""
        buckets = tuple(
            TemporalBucket(
                key=day.key,
                label=f"{MONTH_NAMES[day.date.month - 1]} {day.day_of_month}",
                sort_key=day.date.toordinal(),
                activities=day.activities,
            )
            for day in reversed(self.days)
        )
        return Bucketing(mode="calendar", buckets=buckets, excluded=self.excluded)


def build_calendar_grid(
    activities: Sequence[Activity],
    now: datetime,
    drafts: Sequence[DraftStory] = (),
    include_drafts: bool = False,
) -> CalendarGrid:
    """
    Build the calendar grid for the span of the activities.

    With `include_drafts`, draft date ranges also widen the span.
    """
    placeable, excluded = _split_placeable(activities)

    span_days = [utc_date(a.timestamp) for a in placeable]
    if include_drafts:
        for draft in drafts:
            span_days.append(utc_date(draft.start))
            span_days.append(utc_date(draft.end))
    if not span_days:
        return CalendarGrid(days=(), grid_start=None, grid_end=None, excluded=excluded)

    grid_start = monday_of(min(span_days))
    grid_end = shift_day(monday_of(max(span_days)), 6)
    today = utc_date(now)

    by_day: Dict[date, List[Activity]] = {}
    for activity in placeable:
        by_day.setdefault(utc_date(activity.timestamp), []).append(activity)

    days: List[CalendarDay] = []
    seen_months = set()
    for ordinal in range(grid_start.toordinal(), grid_end.toordinal() + 1):
        current = date.fromordinal(ordinal)
        offset = (current - grid_start).days
        month_key = (current.year, current.month)
        month_label = None
        if month_key not in seen_months or current.day == 1:
            month_label = MONTH_NAMES[current.month - 1]
            seen_months.add(month_key)
        days.append(CalendarDay(
            key=current.isoformat(),
            date=current,
            day_of_month=current.day,
            is_today=current == today,
            week_index=offset // 7,
            day_of_week_index=offset % 7,
            month_label=month_label,
            activities=_newest_first(by_day.get(current, ())),
        ))

    return CalendarGrid(days=tuple(days), grid_start=grid_start, grid_end=grid_end, excluded=excluded)


def bucket_calendar(
    activities: Sequence[Activity],
    now: datetime,
    drafts: Sequence[DraftStory] = (),
    include_drafts: bool = False,
) -> Bucketing:
    return build_calendar_grid(activities, now, drafts, include_drafts).bucketing()
