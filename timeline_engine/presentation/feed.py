"""
Interleaved Feed

Flattens time buckets into a single scrollable feed in which each draft
story card appears exactly once, immediately before the most recent of its
activities to be shown.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import AbstractSet, Iterable, List, Optional, Tuple

from ..association import AssociationIndex
from ..contracts import ActivitySource
from ..layout import TemporalBucket


class FeedItemKind(Enum):
    GROUP_HEADER = "group-header"
    DRAFT = "draft"
    ACTIVITY = "activity"


@dataclass(frozen=True)
class FeedItem:
    kind: FeedItemKind
    bucket_key: str
    label: Optional[str] = None
    activity_id: Optional[str] = None
    draft_id: Optional[str] = None
    # Header: visible activity count. Draft: contributing activity ids.
    count: int = 0
    activity_ids: Tuple[str, ...] = field(default_factory=tuple)


def build_feed(
    buckets: Iterable[TemporalBucket],
    index: AssociationIndex,
    sources: Optional[AbstractSet[ActivitySource]] = None,
    collapsed: AbstractSet[str] = frozenset(),
) -> Tuple[FeedItem, ...]:
    """
    Build the interleaved feed.

    `sources` hides activities from other sources; a draft is shown only
    when one of its tools is visible. Collapsed buckets contribute their
    header only.
    """
    def visible(source: ActivitySource) -> bool:
        return sources is None or source in sources

    items: List[FeedItem] = []
    inserted = set()
    for bucket in buckets:
        shown = [a for a in bucket.activities if visible(a.source)]
        items.append(FeedItem(
            kind=FeedItemKind.GROUP_HEADER,
            bucket_key=bucket.key,
            label=bucket.label,
            count=len(shown),
        ))
        if bucket.key in collapsed:
            continue

        for activity in shown:
            for draft_id in index.ordered_drafts_of(activity.id):
                if draft_id in inserted:
                    continue
                inserted.add(draft_id)
                draft = index.draft(draft_id)
                if sources is not None and not any(tool in sources for tool in draft.tools):
                    continue
                contributing = tuple(
                    a.id for a in index.activities_of(draft_id) if visible(a.source)
                )
                items.append(FeedItem(
                    kind=FeedItemKind.DRAFT,
                    bucket_key=bucket.key,
                    label=draft.title,
                    draft_id=draft_id,
                    count=len(contributing),
                    activity_ids=contributing,
                ))
            items.append(FeedItem(
                kind=FeedItemKind.ACTIVITY,
                bucket_key=bucket.key,
                label=activity.title,
                activity_id=activity.id,
            ))
    return tuple(items)
