"""
Raw Record Mapper

Converts already-fetched connector payloads into immutable snapshot records.

MAPPING BOUNDARY:
=================
This is the ONLY place where raw dictionaries become contracts.

MAPPING RULES:
==============
1. An unusable activity timestamp never drops the activity; it becomes
   None and is reported
2. A draft without a usable date range is skipped and reported
3. Unknown sources map to GENERIC and are reported
4. Input ordering is preserved
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple
import logging

from .contracts import (
    Activity, ActivitySource, DateRange, DominantRole, DraftStory, Error,
    ErrorCode, Snapshot, parse_instant,
)

logger = logging.getLogger(__name__)


class TimelineEngineError(Exception):
    """Base error for the layout engine boundary."""
    pass


class SnapshotMappingError(TimelineEngineError):
    """Raised when a snapshot payload does not have the expected shape at all."""
    pass


@dataclass
class MappingReport:
    """
    Report of one mapping pass.

    Every input record results in exactly one of:
    - a mapped record (possibly with entries in `errors`)
    - an entry in `skipped`
    """
    activity_count: int = 0
    draft_count: int = 0
    errors: List[Error] = field(default_factory=list)
    skipped: List[Error] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.errors and not self.skipped

    def to_dict(self) -> dict:
        return {
            'activity_count': self.activity_count,
            'draft_count': self.draft_count,
            'errors': [e.to_dict() for e in self.errors],
            'skipped': [e.to_dict() for e in self.skipped],
        }


def _first(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


class SnapshotMapper:
    """
    Maps raw camelCase or snake_case records to contracts.

    One mapper instance accumulates one MappingReport.
    """

    def __init__(self):
        self.report = MappingReport()

    # =========================================================================
    # ACTIVITY MAPPING
    # =========================================================================

    def map_activity(self, raw: Mapping[str, Any]) -> Optional[Activity]:
        """Map one activity record; None only when it has no usable id."""
        activity_id = raw.get('id') if isinstance(raw, Mapping) else None
        if not activity_id or not isinstance(activity_id, str):
            logger.warning("Skipping activity record without an id")
            self.report.skipped.append(Error(
                code=ErrorCode.MALFORMED_RECORD,
                message="Activity record has no string id",
            ))
            return None

        raw_timestamp = raw.get('timestamp')
        timestamp = parse_instant(raw_timestamp)
        if timestamp is None:
            logger.warning("Activity %s has unusable timestamp %r", activity_id, raw_timestamp)
            self.report.errors.append(Error(
                code=ErrorCode.INVALID_TIMESTAMP,
                message="Unparsable or missing timestamp",
                subject_id=activity_id,
            ).with_context("raw", repr(raw_timestamp)))

        raw_data = _first(raw, 'rawData', 'raw_data', default=None) or {}
        if not isinstance(raw_data, Mapping):
            raw_data = {}

        self.report.activity_count += 1
        return Activity(
            id=activity_id,
            source=self._map_source(raw.get('source'), activity_id),
            timestamp=timestamp,
            title=str(raw.get('title') or ""),
            description=raw.get('description'),
            raw_data=raw_data,
        )

    def _map_source(self, value: Any, subject_id: str) -> ActivitySource:
        if isinstance(value, ActivitySource):
            return value
        try:
            return ActivitySource(str(value).strip().lower())
        except ValueError:
            logger.warning("Activity %s has unknown source %r; using generic", subject_id, value)
            self.report.errors.append(Error(
                code=ErrorCode.INVALID_SOURCE,
                message="Unknown source mapped to generic",
                subject_id=subject_id,
            ).with_context("raw", repr(value)))
            return ActivitySource.GENERIC

    # =========================================================================
    # DRAFT MAPPING
    # =========================================================================

    def map_draft(self, raw: Mapping[str, Any]) -> Optional[DraftStory]:
        """Map one draft record; None when it cannot be placed in time."""
        draft_id = raw.get('id') if isinstance(raw, Mapping) else None
        if not draft_id or not isinstance(draft_id, str):
            logger.warning("Skipping draft record without an id")
            self.report.skipped.append(Error(
                code=ErrorCode.MALFORMED_RECORD,
                message="Draft record has no string id",
            ))
            return None

        date_range = self._map_date_range(_first(raw, 'dateRange', 'date_range'), draft_id)
        if date_range is None:
            return None

        tools = []
        for tool in raw.get('tools') or ():
            tools.append(self._map_source(tool, draft_id))

        self.report.draft_count += 1
        return DraftStory(
            id=draft_id,
            title=str(raw.get('title') or ""),
            description=str(raw.get('description') or ""),
            date_range=date_range,
            tools=frozenset(tools),
            topics=tuple(str(t) for t in raw.get('topics') or ()),
            activity_count=self._map_count(_first(raw, 'activityCount', 'activity_count')),
            dominant_role=self._map_role(_first(raw, 'dominantRole', 'dominant_role')),
        )

    def _map_date_range(self, value: Any, draft_id: str) -> Optional[DateRange]:
        start = end = None
        if isinstance(value, Mapping):
            start = parse_instant(value.get('start'))
            end = parse_instant(value.get('end'))
        if start is None or end is None or start > end:
            logger.warning("Skipping draft %s: unusable date range %r", draft_id, value)
            self.report.skipped.append(Error(
                code=ErrorCode.INVALID_TIME_RANGE,
                message="Missing, unparsable or inverted date range",
                subject_id=draft_id,
            ).with_context("raw", repr(value)))
            return None
        return DateRange(start=start, end=end)

    @staticmethod
    def _map_count(value: Any) -> int:
        try:
            return max(0, int(value or 0))
        except (TypeError, ValueError):
            return 0

    @staticmethod
    def _map_role(value: Any) -> DominantRole:
        if isinstance(value, DominantRole):
            return value
        for role in DominantRole:
            if str(value).strip().lower() == role.value.lower():
                return role
        return DominantRole.PARTICIPATED

    # =========================================================================
    # SNAPSHOT MAPPING
    # =========================================================================

    def map_snapshot(
        self,
        payload: Mapping[str, Any],
        reference_time: Optional[datetime] = None,
    ) -> Snapshot:
        """
        Map a whole snapshot payload.

        Keys: activities, draftStories (or drafts), draftActivityMap,
        activityDraftMap, now, version. `reference_time` overrides `now`.
        """
        if not isinstance(payload, Mapping):
            raise SnapshotMappingError("Snapshot payload must be a JSON object")

        raw_activities = payload.get('activities') or []
        raw_drafts = _first(payload, 'draftStories', 'drafts', default=None) or []
        if not isinstance(raw_activities, list) or not isinstance(raw_drafts, list):
            raise SnapshotMappingError("activities and draftStories must be lists")

        activities = self._map_all(raw_activities, self.map_activity)
        drafts = self._map_all(raw_drafts, self.map_draft)

        now = reference_time or parse_instant(payload.get('now'))
        if now is None:
            raise SnapshotMappingError("Snapshot needs a reference time ('now')")

        version = payload.get('version')
        return Snapshot(
            activities=activities,
            drafts=drafts,
            reference_time=now,
            draft_activities=self._map_relation(_first(payload, 'draftActivityMap', 'draft_activities')),
            activity_drafts=self._map_relation(_first(payload, 'activityDraftMap', 'activity_drafts')),
            version=None if version is None else str(version),
        )

    @staticmethod
    def _map_all(records: Iterable[Any], map_one) -> Tuple:
        mapped = []
        for record in records:
            if not isinstance(record, Mapping):
                record = {}
            result = map_one(record)
            if result is not None:
                mapped.append(result)
        return tuple(mapped)

    @staticmethod
    def _map_relation(value: Any) -> Mapping[str, Tuple[str, ...]]:
        if not isinstance(value, Mapping):
            return {}
        relation = {}
        for key, ids in value.items():
            if isinstance(ids, (list, tuple)):
                relation[str(key)] = tuple(str(i) for i in ids)
        return relation
