"""
Lane Packing
============

Deterministic greedy interval colouring for draft story spans.

ALGORITHM:
==========
1. Clamp each span to the overall bounds (never drop it)
2. Sort by start, ties broken by original input position (never by id)
3. For each span, take the smallest lane not used by any already-placed
   span whose CLOSED interval intersects it (touching endpoints overlap)

INVARIANT: two overlapping spans never share a lane.
O(n^2) in the number of spans; story counts are tens, not thousands.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from types import MappingProxyType
import logging

from ..contracts import DraftStory, Error, ErrorCode, utc_date
from .buckets import CalendarGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaneSpan:
    """A closed interval to be packed. Endpoints only need to be comparable."""
    id: str
    start: Any
    end: Any

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"LaneSpan {self.id!r}: start must be before or equal to end")

    def intersects(self, other: LaneSpan) -> bool:
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True)
class LaneAssignment:
    """
    Lane per span id.

    `max_lane` is -1 when nothing was packed; `lane_count` is what callers
    reserve vertical space for.
    """
    lanes: Mapping[str, int]
    max_lane: int = -1
    order: Tuple[str, ...] = field(default_factory=tuple)
    clamped: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def lane_count(self) -> int:
        return self.max_lane + 1

    def lane_of(self, span_id: str) -> Optional[int]:
        return self.lanes.get(span_id)

    def __len__(self) -> int:
        return len(self.lanes)


def _clamp(value: Any, lo: Any, hi: Any) -> Any:
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


def clamp_span(span: LaneSpan, bounds: Tuple[Any, Any]) -> LaneSpan:
    lo, hi = bounds
    return LaneSpan(id=span.id, start=_clamp(span.start, lo, hi), end=_clamp(span.end, lo, hi))


def pack(
    spans: Sequence[LaneSpan],
    bounds: Optional[Tuple[Any, Any]] = None,
) -> LaneAssignment:
    """
    Assign each span the smallest lane free of intersecting spans.

    Same input in the same order always yields the same lanes.
    """
    seen = set()
    for span in spans:
        if span.id in seen:
            raise ValueError(f"Duplicate span id in one packing pass: {span.id!r}")
        seen.add(span.id)

    clamped_errors: List[Error] = []
    prepared: List[LaneSpan] = []
    for span in spans:
        if bounds is not None:
            fitted = clamp_span(span, bounds)
            if fitted != span:
                logger.debug("Clamped span %s to bounds %s..%s", span.id, bounds[0], bounds[1])
                clamped_errors.append(Error(
                    code=ErrorCode.SPAN_CLAMPED,
                    message="Span extends beyond bounds and was clamped",
                    subject_id=span.id,
                ))
            span = fitted
        prepared.append(span)

    ordered = sorted(enumerate(prepared), key=lambda pair: (pair[1].start, pair[0]))

    lanes: Dict[str, int] = {}
    placed: List[Tuple[LaneSpan, int]] = []
    max_lane = -1
    for _, span in ordered:
        used = {lane for other, lane in placed if other.intersects(span)}
        lane = 0
        while lane in used:
            lane += 1
        lanes[span.id] = lane
        placed.append((span, lane))
        if lane > max_lane:
            max_lane = lane

    return LaneAssignment(
        lanes=MappingProxyType(lanes),
        max_lane=max_lane,
        order=tuple(span.id for _, span in ordered),
        clamped=tuple(clamped_errors),
    )


def draft_spans(drafts: Iterable[DraftStory]) -> Tuple[LaneSpan, ...]:
    return tuple(LaneSpan(id=d.id, start=d.start, end=d.end) for d in drafts)


# =============================================================================
# CALENDAR BARS
# =============================================================================

@dataclass(frozen=True)
class BarSegment:
    """The part of a calendar bar that falls in one week row."""
    draft_id: str
    row: int
    start_col: int
    end_col: int
    lane: int
    is_first_row: bool

    @property
    def col_span(self) -> int:
        return self.end_col - self.start_col + 1


@dataclass(frozen=True)
class CalendarBar:
    draft_id: str
    start_offset: int   # days from grid start, clamped to the grid
    end_offset: int
    lane: int
    segments: Tuple[BarSegment, ...]

    @property
    def span_days(self) -> int:
        return self.end_offset - self.start_offset + 1

    @property
    def start_row(self) -> int:
        return self.start_offset // 7

    @property
    def end_row(self) -> int:
        return self.end_offset // 7


@dataclass(frozen=True)
class CalendarBarLayout:
    bars: Tuple[CalendarBar, ...]
    assignment: LaneAssignment

    @property
    def lane_count(self) -> int:
        return self.assignment.lane_count

    def bar(self, draft_id: str) -> Optional[CalendarBar]:
        for bar in self.bars:
            if bar.draft_id == draft_id:
                return bar
        return None


def _segments(draft_id: str, start_offset: int, end_offset: int, lane: int) -> Tuple[BarSegment, ...]:
    start_row, start_col = divmod(start_offset, 7)
    end_row, end_col = divmod(end_offset, 7)
    segments = []
    for row in range(start_row, end_row + 1):
        segments.append(BarSegment(
            draft_id=draft_id,
            row=row,
            start_col=start_col if row == start_row else 0,
            end_col=end_col if row == end_row else 6,
            lane=lane,
            is_first_row=row == start_row,
        ))
    return tuple(segments)


def calendar_bars(drafts: Sequence[DraftStory], grid: CalendarGrid) -> CalendarBarLayout:
    """
    Lay draft stories over a calendar grid at day granularity.

    Ranges are clamped to the grid; bars spanning several weeks are split
    into one segment per row.
    """
    if grid.is_empty:
        return CalendarBarLayout(bars=(), assignment=pack(()))

    last = len(grid.days) - 1
    spans = tuple(
        LaneSpan(
            id=d.id,
            start=grid.offset_of(utc_date(d.start)),
            end=grid.offset_of(utc_date(d.end)),
        )
        for d in drafts
    )
    assignment = pack(spans, bounds=(0, last))

    by_id = {span.id: clamp_span(span, (0, last)) for span in spans}
    bars = []
    for draft_id in assignment.order:
        span = by_id[draft_id]
        lane = assignment.lanes[draft_id]
        bars.append(CalendarBar(
            draft_id=draft_id,
            start_offset=span.start,
            end_offset=span.end,
            lane=lane,
            segments=_segments(draft_id, span.start, span.end, lane),
        ))
    return CalendarBarLayout(bars=tuple(bars), assignment=assignment)
