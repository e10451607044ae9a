"""
Engine Orchestration Module

Coordinates the layout components for one snapshot at a time.

LAYER FLOW:
===========
1. AssociationIndex: snapshot relation -> deduplicated, repaired index
2. TimeScale: activities + draft endpoints -> coordinate mapping
3. Bucketing: activities + reference time -> ordered buckets
4. Lanes: draft spans (clamped to the scale bounds) -> lane per draft
5. HighlightResolver: hover state -> highlight flags (per interaction)

MEMOISATION:
============
Steps 1-4 run once per snapshot, keyed on the snapshot's version stamp
or, without one, on the snapshot object itself. Rendering at a new zoom or
viewport only re-projects coordinates; hover changes only re-run step 5.
"""

from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import AbstractSet, Hashable, Optional, Tuple
import logging

from .association import AssociationIndex
from .config import EngineConfig
from .contracts import Activity, ActivitySource, DraftStory, Error, Snapshot
from .interaction import HighlightMap, HighlightResolver, HoverState
from .layout import (
    Bucketing, CalendarBarLayout, CalendarGrid, LaneAssignment, TimeScale,
    bucket_by_period, bucket_relative, build_calendar_grid, build_time_scale,
    calendar_bars, draft_spans, pack,
)
from .presentation import FeedItem, build_feed
from .visualization import (
    ActivityView, DraftView, TimeAxis, TimelineView, compute_view_id,
)

logger = logging.getLogger(__name__)


# Snapshots kept prepared at once; older ones are evicted first
MAX_PREPARED_SNAPSHOTS = 8


@dataclass(frozen=True)
class PreparedLayout:
    """
    Everything derived from one snapshot that does not depend on hover,
    viewport width or zoom.
    """
    snapshot: Snapshot
    activities: Tuple[Activity, ...]
    drafts: Tuple[DraftStory, ...]
    index: AssociationIndex
    scale: TimeScale
    bucketing: Bucketing
    lanes: LaneAssignment
    calendar: Optional[CalendarGrid] = None
    calendar_bars: Optional[CalendarBarLayout] = None
    errors: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def lane_count(self) -> int:
        return self.lanes.lane_count


class TimelineEngine:
    """
    Layout engine for activity timelines.

    Not thread-safe: one engine serves one session, as the snapshot does.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._prepared: "OrderedDict[Hashable, PreparedLayout]" = OrderedDict()
        self._resolvers = {}

    @property
    def config(self) -> EngineConfig:
        return self._config

    # =========================================================================
    # PREPARE (once per snapshot)
    # =========================================================================

    @staticmethod
    def _memo_key(snapshot: Snapshot) -> Hashable:
        if snapshot.version is not None:
            return ("version", snapshot.version)
        return ("identity", id(snapshot))

    def prepare(self, snapshot: Snapshot) -> PreparedLayout:
        """Return the derived layout for a snapshot, computing it at most once."""
        key = self._memo_key(snapshot)
        cached = self._prepared.get(key)
        # An identity key is only valid while the cached entry holds that same object
        if cached is not None and (key[0] == "version" or cached.snapshot is snapshot):
            logger.debug("Reusing prepared layout for %s", key)
            self._prepared.move_to_end(key)
            return cached

        logger.debug("Preparing layout for %s", key)
        prepared = self._build(snapshot)
        self._prepared[key] = prepared
        self._resolvers[key] = HighlightResolver(prepared.index)
        while len(self._prepared) > MAX_PREPARED_SNAPSHOTS:
            evicted, _ = self._prepared.popitem(last=False)
            self._resolvers.pop(evicted, None)
            logger.debug("Evicted prepared layout for %s", evicted)
        return prepared

    def _build(self, snapshot: Snapshot) -> PreparedLayout:
        scale_config = self._config.scale
        bucket_config = self._config.buckets
        now = snapshot.reference_time

        index = AssociationIndex.from_snapshot(snapshot)
        # Downstream components see each id once, first occurrence kept
        activities = tuple(index.activity(i) for i in index.activity_ids)
        drafts = tuple(index.draft(i) for i in index.draft_ids)

        scale = build_time_scale(
            activities,
            drafts,
            viewport_width=scale_config.viewport_width,
            zoom=scale_config.zoom,
            padding_ratio=scale_config.padding_ratio,
            padding_left=scale_config.padding_left,
            padding_right=scale_config.padding_right,
            reference=now,
        )

        calendar = None
        bars = None
        if bucket_config.mode == "calendar":
            calendar = build_calendar_grid(
                activities, now, drafts, include_drafts=bucket_config.calendar_include_drafts
            )
            bucketing = calendar.bucketing()
            bars = calendar_bars(drafts, calendar)
        elif bucket_config.mode == "period":
            bucketing = bucket_by_period(activities, now)
        else:
            bucketing = bucket_relative(activities, now)

        bounds = (scale.min, scale.max) if self._config.lanes.clamp_to_bounds else None
        lanes = pack(draft_spans(drafts), bounds=bounds)

        report = index.report
        errors = (
            report.duplicates + report.dangling + report.repaired
            + scale.excluded + lanes.clamped
        )
        if bars is not None:
            errors += bars.assignment.clamped

        logger.info(
            "Prepared layout: %d activities, %d drafts, %d lanes, %d %s buckets, %d issues",
            len(activities), len(drafts), lanes.lane_count,
            len(bucketing.buckets), bucketing.mode, len(errors),
        )
        return PreparedLayout(
            snapshot=snapshot,
            activities=activities,
            drafts=drafts,
            index=index,
            scale=scale,
            bucketing=bucketing,
            lanes=lanes,
            calendar=calendar,
            calendar_bars=bars,
            errors=errors,
        )

    def invalidate(self, snapshot: Optional[Snapshot] = None) -> None:
        """Forget one prepared snapshot, or all of them."""
        if snapshot is None:
            self._prepared.clear()
            self._resolvers.clear()
            return
        key = self._memo_key(snapshot)
        self._prepared.pop(key, None)
        self._resolvers.pop(key, None)

    # =========================================================================
    # PER-INTERACTION
    # =========================================================================

    def highlight(self, snapshot: Snapshot, hover: Optional[HoverState]) -> HighlightMap:
        """Highlight flags for a hover state; the only per-pointer-event step."""
        self.prepare(snapshot)
        return self._resolvers[self._memo_key(snapshot)].resolve(hover)

    def feed(
        self,
        snapshot: Snapshot,
        sources: Optional[AbstractSet[ActivitySource]] = None,
        collapsed: AbstractSet[str] = frozenset(),
    ) -> Tuple[FeedItem, ...]:
        prepared = self.prepare(snapshot)
        return build_feed(prepared.bucketing.buckets, prepared.index, sources=sources, collapsed=collapsed)

    def render(
        self,
        snapshot: Snapshot,
        hover: Optional[HoverState] = None,
        viewport_width: Optional[float] = None,
        zoom: Optional[float] = None,
    ) -> TimelineView:
        """
        Produce the render-ready view.

        `viewport_width` and `zoom` default to the configured values.
        """
        prepared = self.prepare(snapshot)
        scale = prepared.scale
        if viewport_width is not None or zoom is not None:
            scale = scale.with_viewport(
                scale.viewport_width if viewport_width is None else viewport_width,
                zoom,
            )
        highlight = self.highlight(snapshot, hover)

        placeable = [a for a in prepared.activities if a.timestamp is not None]
        xs = scale.project(a.timestamp for a in placeable)
        x_by_id = {a.id: float(x) for a, x in zip(placeable, xs)}

        activity_views = []
        for activity in prepared.activities:
            flag = highlight.activity_flag(activity.id)
            activity_views.append(ActivityView(
                activity_id=activity.id,
                source=activity.source,
                x=x_by_id.get(activity.id),
                bucket_key=prepared.bucketing.bucket_key_of(activity.id),
                highlighted=flag.highlighted,
                dimmed=flag.dimmed,
            ))

        min_width = self._config.scale.min_bar_width
        draft_views = []
        for draft in prepared.drafts:
            flag = highlight.draft_flag(draft.id)
            x_start, x_end = scale.span_x(
                scale.clamp(draft.start), scale.clamp(draft.end), min_width=min_width
            )
            draft_views.append(DraftView(
                draft_id=draft.id,
                lane_index=prepared.lanes.lanes[draft.id],
                x_start=float(x_start),
                x_end=float(x_end),
                highlighted=flag.highlighted,
                dimmed=flag.dimmed,
            ))

        axis = TimeAxis(
            start_time=scale.min,
            end_time=scale.max,
            x_start=scale.range_start,
            x_end=scale.range_end,
            markers=scale.relative_markers(prepared.snapshot.reference_time),
        )
        activities = tuple(activity_views)
        drafts = tuple(draft_views)
        return TimelineView(
            view_id=compute_view_id(activities, drafts, axis),
            activities=activities,
            drafts=drafts,
            axis=axis,
            lane_count=prepared.lane_count,
            bucket_mode=prepared.bucketing.mode,
            bucket_keys=prepared.bucketing.keys,
            errors=prepared.errors,
        )
