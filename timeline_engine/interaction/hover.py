"""
Hover Interaction
=================

Single-valued hover state and the pure highlight derivation.

RULES:
======
- No hover: nothing highlighted, nothing dimmed
- Hover activity A: A, every draft containing A, and every activity sharing
  one of those drafts are highlighted; everything else is dimmed
- Hover draft D: D, its activities, and every draft sharing one of those
  activities are highlighted; everything else is dimmed
- While a hover is active, dimmed == not highlighted; never both true

COST:
=====
resolve() touches only the hovered item's direct associations.
Flags for the rest of the dataset are answered lazily by membership test.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional

from ..association import AssociationIndex


class HoverTarget(Enum):
    NONE = "none"
    ACTIVITY = "activity"
    DRAFT = "draft"


@dataclass(frozen=True)
class HoverState:
    """
    At most one hovered item.

    Activating an activity clears the draft and vice versa.
    """
    activity_id: Optional[str] = None
    draft_id: Optional[str] = None

    def __post_init__(self):
        if self.activity_id is not None and self.draft_id is not None:
            raise ValueError("HoverState cannot target an activity and a draft at once")

    @classmethod
    def none(cls) -> 'HoverState':
        return cls()

    @classmethod
    def on_activity(cls, activity_id: str) -> 'HoverState':
        return cls(activity_id=activity_id)

    @classmethod
    def on_draft(cls, draft_id: str) -> 'HoverState':
        return cls(draft_id=draft_id)

    def hover_activity(self, activity_id: Optional[str]) -> 'HoverState':
        return HoverState(activity_id=activity_id)

    def hover_draft(self, draft_id: Optional[str]) -> 'HoverState':
        return HoverState(draft_id=draft_id)

    def clear(self) -> 'HoverState':
        return HoverState()

    @property
    def target(self) -> HoverTarget:
        if self.activity_id is not None:
            return HoverTarget.ACTIVITY
        if self.draft_id is not None:
            return HoverTarget.DRAFT
        return HoverTarget.NONE

    @property
    def is_active(self) -> bool:
        return self.target is not HoverTarget.NONE


@dataclass(frozen=True)
class HighlightFlag:
    highlighted: bool = False
    dimmed: bool = False


NEUTRAL = HighlightFlag(highlighted=False, dimmed=False)
HIGHLIGHTED = HighlightFlag(highlighted=True, dimmed=False)
DIMMED = HighlightFlag(highlighted=False, dimmed=True)


@dataclass(frozen=True)
class HighlightMap:
    """
    Highlight result for one hover state.

    Holds only the highlighted sets; a flag for any id is derived on demand.
    """
    active: bool
    activity_ids: FrozenSet[str] = field(default_factory=frozenset)
    draft_ids: FrozenSet[str] = field(default_factory=frozenset)

    def activity_flag(self, activity_id: str) -> HighlightFlag:
        if not self.active:
            return NEUTRAL
        return HIGHLIGHTED if activity_id in self.activity_ids else DIMMED

    def draft_flag(self, draft_id: str) -> HighlightFlag:
        if not self.active:
            return NEUTRAL
        return HIGHLIGHTED if draft_id in self.draft_ids else DIMMED

    def activity_flags(self, activity_ids: Iterable[str]) -> Dict[str, HighlightFlag]:
        return {activity_id: self.activity_flag(activity_id) for activity_id in activity_ids}

    def draft_flags(self, draft_ids: Iterable[str]) -> Dict[str, HighlightFlag]:
        return {draft_id: self.draft_flag(draft_id) for draft_id in draft_ids}


NO_HIGHLIGHT = HighlightMap(active=False)


def resolve(hover: Optional[HoverState], index: AssociationIndex) -> HighlightMap:
    """Derive the highlight sets for a hover state."""
    if hover is None or not hover.is_active:
        return NO_HIGHLIGHT

    if hover.target is HoverTarget.ACTIVITY:
        activity_id = hover.activity_id
        draft_ids = index.drafts_of(activity_id)
        activity_ids = {activity_id}
        for draft_id in draft_ids:
            activity_ids.update(index.activity_ids_of(draft_id))
        return HighlightMap(
            active=True,
            activity_ids=frozenset(activity_ids),
            draft_ids=draft_ids,
        )

    draft_id = hover.draft_id
    activity_ids = frozenset(index.activity_ids_of(draft_id))
    draft_ids = {draft_id}
    for activity_id in activity_ids:
        draft_ids.update(index.ordered_drafts_of(activity_id))
    return HighlightMap(
        active=True,
        activity_ids=activity_ids,
        draft_ids=frozenset(draft_ids),
    )


class HighlightResolver:
    """
    Resolver bound to one association index.

    Remembers the last hover state so repeated pointer events on the same
    target reuse the previous result.
    """

    def __init__(self, index: AssociationIndex):
        self._index = index
        self._last_hover: Optional[HoverState] = None
        self._last_result: HighlightMap = NO_HIGHLIGHT

    @property
    def index(self) -> AssociationIndex:
        return self._index

    def resolve(self, hover: Optional[HoverState]) -> HighlightMap:
        hover = hover or HoverState.none()
        if hover == self._last_hover:
            return self._last_result
        result = resolve(hover, self._index)
        self._last_hover = hover
        self._last_result = result
        return result
