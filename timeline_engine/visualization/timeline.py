"""
Timeline View Contracts

Responsibility:
Render-ready output of the layout engine.
Input: snapshot + hover + viewport -> Output: TimelineView

DETERMINISTIC:
Same snapshot + same hover + same viewport = identical view (and view_id).
Renderers choose their own visual encoding; no layout logic happens there.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple
import hashlib

from ..contracts import ActivitySource, Error
from ..layout import AxisMarker


@dataclass(frozen=True)
class ActivityView:
    """
    One activity ready for rendering.

    `x` and `bucket_key` are None for activities excluded for lack of a
    usable timestamp; their highlight flags are still meaningful.
    """
    activity_id: str
    source: ActivitySource
    x: Optional[float]
    bucket_key: Optional[str]
    highlighted: bool
    dimmed: bool

    def to_dict(self) -> dict:
        return {
            'id': self.activity_id,
            'source': self.source.value,
            'x': self.x,
            'bucketKey': self.bucket_key,
            'highlighted': self.highlighted,
            'dimmed': self.dimmed,
        }


@dataclass(frozen=True)
class DraftView:
    """One draft story bar ready for rendering."""
    draft_id: str
    lane_index: int
    x_start: float
    x_end: float
    highlighted: bool
    dimmed: bool

    @property
    def width(self) -> float:
        return self.x_end - self.x_start

    def to_dict(self) -> dict:
        return {
            'id': self.draft_id,
            'laneIndex': self.lane_index,
            'xStart': self.x_start,
            'xEnd': self.x_end,
            'highlighted': self.highlighted,
            'dimmed': self.dimmed,
        }


@dataclass(frozen=True)
class TimeAxis:
    """The rendered time axis."""
    start_time: datetime
    end_time: datetime
    x_start: float
    x_end: float
    markers: Tuple[AxisMarker, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            'start': self.start_time.isoformat(),
            'end': self.end_time.isoformat(),
            'xStart': self.x_start,
            'xEnd': self.x_end,
            'markers': [{'label': m.label, 'x': m.x} for m in self.markers],
        }


@dataclass(frozen=True)
class TimelineView:
    """
    Fully calculated timeline.

    Activities keep snapshot order; drafts keep snapshot order.
    """
    view_id: str
    activities: Tuple[ActivityView, ...]
    drafts: Tuple[DraftView, ...]
    axis: TimeAxis
    lane_count: int
    bucket_mode: str
    bucket_keys: Tuple[str, ...]
    errors: Tuple[Error, ...] = field(default_factory=tuple)

    def activity(self, activity_id: str) -> Optional[ActivityView]:
        return self._activity_lookup().get(activity_id)

    def draft(self, draft_id: str) -> Optional[DraftView]:
        for view in self.drafts:
            if view.draft_id == draft_id:
                return view
        return None

    def _activity_lookup(self) -> Dict[str, ActivityView]:
        return {view.activity_id: view for view in self.activities}

    def to_dict(self) -> dict:
        return {
            'viewId': self.view_id,
            'bucketMode': self.bucket_mode,
            'bucketKeys': list(self.bucket_keys),
            'laneCount': self.lane_count,
            'axis': self.axis.to_dict(),
            'activities': [a.to_dict() for a in self.activities],
            'drafts': [d.to_dict() for d in self.drafts],
            'errors': [e.to_dict() for e in self.errors],
        }


def compute_view_id(
    activities: Tuple[ActivityView, ...],
    drafts: Tuple[DraftView, ...],
    axis: TimeAxis,
) -> str:
    """Deterministic id over the rendered content."""
    parts = [f"axis|{axis.start_time.isoformat()}|{axis.end_time.isoformat()}|{axis.x_start!r}|{axis.x_end!r}"]
    for a in activities:
        parts.append(f"a|{a.activity_id}|{a.x!r}|{a.bucket_key}|{int(a.highlighted)}{int(a.dimmed)}")
    for d in drafts:
        parts.append(f"d|{d.draft_id}|{d.lane_index}|{d.x_start!r}|{d.x_end!r}|{int(d.highlighted)}{int(d.dimmed)}")
    digest = hashlib.sha256("\n".join(parts).encode('utf-8')).hexdigest()
    return f"view_{digest[:16]}"
