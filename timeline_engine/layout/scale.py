"""
Time Scale
==========

Linear mapping from instants to a one-dimensional rendering coordinate.

GUARANTEES:
- Domain covers every activity timestamp AND every draft endpoint
- to_x is monotonic non-decreasing
- Degenerate span (single instant / empty input) maps to the midpoint,
  never divides by zero, never returns NaN
- Zoom scales only the output range; the domain is never recomputed
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..contracts import (
    Activity, DraftStory, Error, ErrorCode, EPOCH, ensure_utc, instant_after, instant_before,
    to_epoch_seconds,
)
from ..config import require_non_negative, require_positive

logger = logging.getLogger(__name__)


# Offsets (days before "now") labelled on the axis
RELATIVE_MARKER_OFFSETS: Tuple[Tuple[str, int], ...] = (
    ("Now", 0),
    ("1d ago", 1),
    ("3d ago", 3),
    ("1w ago", 7),
    ("2w ago", 14),
    ("3w ago", 21),
)


@dataclass(frozen=True)
class AxisMarker:
    """A labelled position on the time axis."""
    label: str
    instant: datetime
    x: float


@dataclass(frozen=True)
class TimeScale:
    """
    Immutable time-to-coordinate mapping.

    `min`/`max` are the raw extents of the data. The mapped domain is
    widened symmetrically by `padding_ratio` of the span so boundary items
    are not clipped; `padding_left`/`padding_right` inset the output range.
    """
    min: datetime
    max: datetime
    domain_start: datetime
    domain_end: datetime
    viewport_width: float
    zoom: float = 1.0
    padding_left: float = 0.0
    padding_right: float = 0.0
    excluded: Tuple[Error, ...] = ()

    @property
    def span(self) -> timedelta:
        return self.max - self.min

    @property
    def is_degenerate(self) -> bool:
        return self.max <= self.min

    @property
    def range_start(self) -> float:
        return float(self.padding_left)

    @property
    def range_end(self) -> float:
        # Oversized padding collapses the range instead of inverting it
        return max(self.range_start, self.viewport_width * self.zoom - self.padding_right)

    @property
    def midpoint_x(self) -> float:
        return (self.range_start + self.range_end) / 2.0

    @property
    def excluded_ids(self) -> Tuple[str, ...]:
        return tuple(e.subject_id for e in self.excluded if e.subject_id is not None)

    def _domain_seconds(self) -> Tuple[float, float]:
        lo = to_epoch_seconds(self.domain_start)
        return lo, to_epoch_seconds(self.domain_end) - lo

    def to_x(self, instant: datetime) -> float:
        """Map one instant to the output range."""
        if self.is_degenerate:
            return self.midpoint_x
        lo, width_s = self._domain_seconds()
        fraction = (to_epoch_seconds(instant) - lo) / width_s
        return self.range_start + fraction * (self.range_end - self.range_start)

    def project(self, instants: Iterable[datetime]) -> np.ndarray:
        """Vectorised to_x over many instants."""
        seconds = np.asarray([to_epoch_seconds(t) for t in instants], dtype=float)
        if self.is_degenerate:
            return np.full(seconds.shape, self.midpoint_x, dtype=float)
        lo, width_s = self._domain_seconds()
        return self.range_start + ((seconds - lo) / width_s) * (self.range_end - self.range_start)

    def span_x(
        self,
        start: datetime,
        end: datetime,
        min_width: float = 0.0
    ) -> Tuple[float, float]:
        """Pixel extent of a bar, widened to at least `min_width`."""
        x1 = self.to_x(start)
        x2 = self.to_x(end)
        x_start = min(x1, x2)
        width = max(abs(x2 - x1), min_width)
        return x_start, x_start + width

    def contains(self, instant: datetime) -> bool:
        return self.min <= ensure_utc(instant) <= self.max

    def clamp(self, instant: datetime) -> datetime:
        instant = ensure_utc(instant)
        if instant < self.min:
            return self.min
        if instant > self.max:
            return self.max
        return instant

    def at_zoom(self, zoom: float) -> TimeScale:
        """Same domain, output range scaled by a new zoom."""
        require_positive("zoom", zoom)
        return replace(self, zoom=float(zoom))

    def with_viewport(self, viewport_width: float, zoom: Optional[float] = None) -> TimeScale:
        require_positive("viewport_width", viewport_width)
        zoom = self.zoom if zoom is None else zoom
        require_positive("zoom", zoom)
        return replace(self, viewport_width=float(viewport_width), zoom=float(zoom))

    def relative_markers(self, now: datetime) -> Tuple[AxisMarker, ...]:
        """Axis markers relative to `now`, kept only inside [min, max]."""
        now = ensure_utc(now)
        markers: List[AxisMarker] = []
        for label, days in RELATIVE_MARKER_OFFSETS:
            try:
                instant = now - timedelta(days=days)
            except OverflowError:
                break
            if self.contains(instant):
                markers.append(AxisMarker(label=label, instant=instant, x=self.to_x(instant)))
        return tuple(markers)


def collect_instants(
    activities: Sequence[Activity],
    drafts: Sequence[DraftStory]
) -> Tuple[List[datetime], Tuple[Error, ...]]:
    """
    Gather every usable instant from activities and draft endpoints.

    Activities without a timestamp are reported, not fatal, and never
    influence the extents of the remaining data.
    """
    instants: List[datetime] = []
    excluded: List[Error] = []
    for activity in activities:
        if activity.timestamp is None:
            logger.warning("Excluding activity %s from time scale: no usable timestamp", activity.id)
            excluded.append(Error(
                code=ErrorCode.INVALID_TIMESTAMP,
                message="Activity has no usable timestamp",
                subject_id=activity.id,
            ))
            continue
        instants.append(activity.timestamp)
    for draft in drafts:
        instants.append(draft.start)
        instants.append(draft.end)
    return instants, tuple(excluded)


def build_time_scale(
    activities: Sequence[Activity],
    drafts: Sequence[DraftStory] = (),
    viewport_width: float = 1200.0,
    zoom: float = 1.0,
    *,
    padding_ratio: float = 0.02,
    padding_left: float = 0.0,
    padding_right: float = 0.0,
    reference: Optional[datetime] = None,
) -> TimeScale:
    """
    Build a time scale over activities and draft date ranges.

    Empty input spans the single point `reference` (or the epoch).
    """
    require_positive("viewport_width", viewport_width)
    require_positive("zoom", zoom)
    require_non_negative("padding_ratio", padding_ratio)

    instants, excluded = collect_instants(activities, drafts)

    if instants:
        lo = min(instants)
        hi = max(instants)
    else:
        lo = hi = ensure_utc(reference) if reference is not None else EPOCH

    try:
        pad = (hi - lo) * padding_ratio
    except OverflowError:
        pad = timedelta.max
    return TimeScale(
        min=lo,
        max=hi,
        domain_start=instant_before(lo, pad),
        domain_end=instant_after(hi, pad),
        viewport_width=float(viewport_width),
        zoom=float(zoom),
        padding_left=float(padding_left),
        padding_right=float(padding_right),
        excluded=excluded,
    )
