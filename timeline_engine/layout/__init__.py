"""
Layout Layer

Pure, deterministic derivations from a snapshot:
- scale:   instants -> rendering coordinate
- buckets: activities -> ordered time buckets / calendar grid
- lanes:   draft spans -> non-overlapping lanes
"""

from .scale import TimeScale, AxisMarker, build_time_scale, collect_instants
from .buckets import (
    TemporalBucket, Bucketing, CalendarDay, CalendarGrid, DraftPeriodGroup,
    RELATIVE_BUCKETS, relative_bucket_key, bucket_relative, period_of,
    bucket_by_period, group_drafts_by_period, build_calendar_grid, bucket_calendar,
)
from .lanes import (
    LaneSpan, LaneAssignment, BarSegment, CalendarBar, CalendarBarLayout,
    pack, clamp_span, draft_spans, calendar_bars,
)

__all__ = [
    'TimeScale', 'AxisMarker', 'build_time_scale', 'collect_instants',
    'TemporalBucket', 'Bucketing', 'CalendarDay', 'CalendarGrid', 'DraftPeriodGroup',
    'RELATIVE_BUCKETS', 'relative_bucket_key', 'bucket_relative', 'period_of',
    'bucket_by_period', 'group_drafts_by_period', 'build_calendar_grid', 'bucket_calendar',
    'LaneSpan', 'LaneAssignment', 'BarSegment', 'CalendarBar', 'CalendarBarLayout',
    'pack', 'clamp_span', 'draft_spans', 'calendar_bars',
]
