"""
Snapshot Records

Immutable records for one user session snapshot.

LIFECYCLE:
==========
Activities and draft stories appear in a snapshot and never change.
A new snapshot replaces the old one wholesale; nothing is patched.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, FrozenSet, Mapping, Optional, Tuple
from enum import Enum
from types import MappingProxyType

from .base import DateRange, ensure_utc


class ActivitySource(Enum):
    """Origin systems an activity can be ingested from."""
    JIRA = "jira"
    GITHUB = "github"
    CONFLUENCE = "confluence"
    FIGMA = "figma"
    SLACK = "slack"
    OUTLOOK = "outlook"
    GOOGLE = "google"
    GOOGLE_CALENDAR = "google-calendar"
    GOOGLE_DOCS = "google-docs"
    GOOGLE_DRIVE = "google-drive"
    GOOGLE_MEET = "google-meet"
    GOOGLE_SHEETS = "google-sheets"
    GENERIC = "generic"


class DominantRole(Enum):
    """Role the user played across a draft story."""
    LED = "Led"
    CONTRIBUTED = "Contributed"
    PARTICIPATED = "Participated"


@dataclass(frozen=True)
class Activity:
    """
    An immutable fact ingested from an external connector.

    `timestamp` is None when the connector delivered an unusable instant.
    Such an activity still takes part in associations but is excluded
    from the time scale and from bucketing.
    """
    id: str
    source: ActivitySource
    timestamp: Optional[datetime]
    title: str
    description: Optional[str] = None
    raw_data: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Activity id must be a non-empty string")
        if self.timestamp is not None:
            object.__setattr__(self, 'timestamp', ensure_utc(self.timestamp))
        object.__setattr__(self, 'raw_data', MappingProxyType(dict(self.raw_data)))

    @property
    def is_placeable(self) -> bool:
        return self.timestamp is not None


@dataclass(frozen=True)
class DraftStory:
    """A derived candidate narrative spanning a contiguous date range."""
    id: str
    title: str
    date_range: DateRange
    description: str = ""
    tools: FrozenSet[ActivitySource] = field(default_factory=frozenset)
    topics: Tuple[str, ...] = field(default_factory=tuple)
    activity_count: int = 0
    dominant_role: DominantRole = DominantRole.PARTICIPATED

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ValueError("DraftStory id must be a non-empty string")
        if self.activity_count < 0:
            raise ValueError("activity_count must be non-negative")
        object.__setattr__(self, 'tools', frozenset(self.tools))
        object.__setattr__(self, 'topics', tuple(self.topics))

    @property
    def start(self) -> datetime:
        return self.date_range.start

    @property
    def end(self) -> datetime:
        return self.date_range.end


def _freeze_relation(relation: Optional[Mapping[str, Any]]) -> Mapping[str, Tuple[str, ...]]:
    frozen = {}
    for key, ids in (relation or {}).items():
        frozen[key] = tuple(ids or ())
    return MappingProxyType(frozen)


@dataclass(frozen=True, eq=False)
class Snapshot:
    """
    Already-fetched, in-memory data for one user session.

    The association relation is supplied in both directions, exactly as
    upstream produced it. Consistency is repaired by the association index,
    not here.

    `version` is an optional explicit stamp. When present, derived layouts
    are memoised on it; otherwise on the identity of this object.
    """
    activities: Tuple[Activity, ...]
    drafts: Tuple[DraftStory, ...]
    reference_time: datetime
    draft_activities: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    activity_drafts: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    version: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'activities', tuple(self.activities))
        object.__setattr__(self, 'drafts', tuple(self.drafts))
        object.__setattr__(self, 'reference_time', ensure_utc(self.reference_time))
        object.__setattr__(self, 'draft_activities', _freeze_relation(self.draft_activities))
        object.__setattr__(self, 'activity_drafts', _freeze_relation(self.activity_drafts))
