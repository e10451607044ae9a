"""
Association Index
=================

Bidirectional many-to-many relation between activities and draft stories.

REPRESENTATION:
===============
Records live in id-keyed arenas; the relation is two parallel adjacency
tables (draft -> activity ids, activity -> draft ids). No record holds a
reference to another record.

REPAIR RULES:
=============
- The relation is supplied in both directions; the index is built from
  the UNION of both, so a pair missing on one side is restored, never dropped
- Pairs naming an id that is not in the snapshot are dropped and reported
- Lookups for unknown ids return empty collections, never raise
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

import networkx as nx

from ..contracts import Activity, ActivitySource, DraftStory, Error, ErrorCode, Snapshot

logger = logging.getLogger(__name__)


ACTIVITY_NODE = "activity"
DRAFT_NODE = "draft"


@dataclass(frozen=True)
class AssociationReport:
    """What the build step had to repair or drop."""
    repaired: Tuple[Error, ...] = field(default_factory=tuple)
    dangling: Tuple[Error, ...] = field(default_factory=tuple)
    duplicates: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not (self.repaired or self.dangling or self.duplicates)


class AssociationIndex:
    """
    Read-only lookup structure between activities and drafts.

    Built once per snapshot. Every accessor is a dictionary lookup, so
    per-hover queries cost only the size of the direct associations.
    """

    def __init__(
        self,
        activities: Sequence[Activity],
        drafts: Sequence[DraftStory],
        draft_activities: Optional[Mapping[str, Iterable[str]]] = None,
        activity_drafts: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        duplicates: List[Error] = []
        self._activities: Dict[str, Activity] = {}
        self._activity_position: Dict[str, int] = {}
        for activity in activities:
            if activity.id in self._activities:
                duplicates.append(self._duplicate(activity.id, ACTIVITY_NODE))
                continue
            self._activity_position[activity.id] = len(self._activities)
            self._activities[activity.id] = activity

        self._drafts: Dict[str, DraftStory] = {}
        self._draft_position: Dict[str, int] = {}
        for draft in drafts:
            if draft.id in self._drafts:
                duplicates.append(self._duplicate(draft.id, DRAFT_NODE))
                continue
            self._draft_position[draft.id] = len(self._drafts)
            self._drafts[draft.id] = draft

        graph, repaired, dangling = self._build_graph(
            draft_activities or {}, activity_drafts or {}
        )
        self._graph = nx.freeze(graph)
        self._report = AssociationReport(
            repaired=tuple(repaired),
            dangling=tuple(dangling),
            duplicates=tuple(duplicates),
        )

        # Materialise the adjacency tables once
        self._activity_ids_by_draft: Dict[str, Tuple[str, ...]] = {}
        for draft_id in self._drafts:
            linked = [node_id for _, node_id in graph.neighbors((DRAFT_NODE, draft_id))]
            self._activity_ids_by_draft[draft_id] = tuple(sorted(linked, key=self._chronological_key))

        self._draft_ids_by_activity: Dict[str, Tuple[str, ...]] = {}
        for activity_id in self._activities:
            linked = [node_id for _, node_id in graph.neighbors((ACTIVITY_NODE, activity_id))]
            self._draft_ids_by_activity[activity_id] = tuple(
                sorted(linked, key=self._draft_position.__getitem__)
            )

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> 'AssociationIndex':
        return cls(
            activities=snapshot.activities,
            drafts=snapshot.drafts,
            draft_activities=snapshot.draft_activities,
            activity_drafts=snapshot.activity_drafts,
        )

    # =========================================================================
    # BUILD
    # =========================================================================

    @staticmethod
    def _duplicate(record_id: str, kind: str) -> Error:
        logger.warning("Ignoring duplicate %s id %s; first occurrence wins", kind, record_id)
        return Error(
            code=ErrorCode.DUPLICATE_ID,
            message=f"Duplicate {kind} id; first occurrence kept",
            subject_id=record_id,
        )

    def _build_graph(
        self,
        draft_activities: Mapping[str, Iterable[str]],
        activity_drafts: Mapping[str, Iterable[str]],
    ) -> Tuple[nx.Graph, List[Error], List[Error]]:
        graph = nx.Graph()
        for activity_id in self._activities:
            graph.add_node((ACTIVITY_NODE, activity_id), bipartite=0)
        for draft_id in self._drafts:
            graph.add_node((DRAFT_NODE, draft_id), bipartite=1)

        # (activity_id, draft_id) pairs as stated by each side
        from_drafts = [(a, d) for d, ids in draft_activities.items() for a in ids]
        from_activities = [(a, d) for a, ids in activity_drafts.items() for d in ids]
        stated_by_drafts = set(from_drafts)
        stated_by_activities = set(from_activities)

        repaired: List[Error] = []
        dangling: List[Error] = []
        handled = set()
        for activity_id, draft_id in from_drafts + from_activities:
            pair = (activity_id, draft_id)
            if pair in handled:
                continue
            handled.add(pair)

            if activity_id not in self._activities or draft_id not in self._drafts:
                missing = activity_id if activity_id not in self._activities else draft_id
                logger.warning(
                    "Dropping association %s <-> %s: %s is not in the snapshot",
                    activity_id, draft_id, missing,
                )
                dangling.append(Error(
                    code=ErrorCode.DANGLING_REFERENCE,
                    message="Association references an id missing from the snapshot",
                    subject_id=missing,
                ).with_context("activity_id", activity_id).with_context("draft_id", draft_id))
                continue

            if pair not in stated_by_drafts or pair not in stated_by_activities:
                side = "draft" if pair not in stated_by_drafts else "activity"
                logger.info(
                    "Repairing association %s <-> %s missing from the %s side",
                    activity_id, draft_id, side,
                )
                repaired.append(Error(
                    code=ErrorCode.ASYMMETRIC_ASSOCIATION,
                    message=f"Pair missing from the {side} side; restored by union",
                    subject_id=activity_id,
                ).with_context("draft_id", draft_id))

            graph.add_edge((ACTIVITY_NODE, activity_id), (DRAFT_NODE, draft_id))

        return graph, repaired, dangling

    def _chronological_key(self, activity_id: str):
        activity = self._activities[activity_id]
        # Activities without a timestamp sort last, in snapshot order
        if activity.timestamp is None:
            return (1, 0.0, self._activity_position[activity_id])
        return (0, activity.timestamp.timestamp(), self._activity_position[activity_id])

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @property
    def report(self) -> AssociationReport:
        return self._report

    @property
    def graph(self) -> nx.Graph:
        """Frozen bipartite graph; nodes are (kind, id) tuples."""
        return self._graph

    @property
    def activity_ids(self) -> Tuple[str, ...]:
        return tuple(self._activities)

    @property
    def draft_ids(self) -> Tuple[str, ...]:
        return tuple(self._drafts)

    def activity(self, activity_id: str) -> Optional[Activity]:
        return self._activities.get(activity_id)

    def draft(self, draft_id: str) -> Optional[DraftStory]:
        return self._drafts.get(draft_id)

    def activity_ids_of(self, draft_id: str) -> Tuple[str, ...]:
        """Activity ids of a draft, chronological."""
        return self._activity_ids_by_draft.get(draft_id, ())

    def activities_of(self, draft_id: str) -> Tuple[Activity, ...]:
        """Activities of a draft, chronological, no duplicates."""
        return tuple(self._activities[a] for a in self.activity_ids_of(draft_id))

    def ordered_drafts_of(self, activity_id: str) -> Tuple[str, ...]:
        """Draft ids containing an activity, in snapshot draft order."""
        return self._draft_ids_by_activity.get(activity_id, ())

    def drafts_of(self, activity_id: str) -> FrozenSet[str]:
        return frozenset(self.ordered_drafts_of(activity_id))

    def linked_draft_ids(self, draft_id: str) -> FrozenSet[str]:
        """Other drafts sharing at least one activity with `draft_id`."""
        linked = set()
        for activity_id in self.activity_ids_of(draft_id):
            linked.update(self._draft_ids_by_activity[activity_id])
        linked.discard(draft_id)
        return frozenset(linked)

    def co_linked_activity_ids(self, activity_id: str) -> FrozenSet[str]:
        """Other activities sharing at least one draft with `activity_id`."""
        linked = set()
        for draft_id in self.ordered_drafts_of(activity_id):
            linked.update(self._activity_ids_by_draft[draft_id])
        linked.discard(activity_id)
        return frozenset(linked)

    def unlinked_activities(self) -> Tuple[Activity, ...]:
        """Activities that belong to no draft, in snapshot order."""
        return tuple(
            activity for activity_id, activity in self._activities.items()
            if not self._draft_ids_by_activity[activity_id]
        )

    def pair_count(self) -> int:
        return self._graph.number_of_edges()

    def __repr__(self) -> str:
        return (
            f"AssociationIndex(activities={len(self._activities)}, "
            f"drafts={len(self._drafts)}, pairs={self.pair_count()})"
        )


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================

def group_by_source(activities: Iterable[Activity]) -> Dict[ActivitySource, List[Activity]]:
    """Group activities by source, keeping input order inside each group."""
    groups: Dict[ActivitySource, List[Activity]] = {}
    for activity in activities:
        groups.setdefault(activity.source, []).append(activity)
    return groups


def source_counts(activities: Iterable[Activity]) -> Dict[ActivitySource, int]:
    """Count per source; every known source is present, zero if unused."""
    counts = {source: 0 for source in ActivitySource}
    for activity in activities:
        counts[activity.source] += 1
    return counts
