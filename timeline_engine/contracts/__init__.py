"""
Contracts Layer

Immutable records and error types shared by every layout component.
Components import types from here, never from each other's internals.
"""

from .base import (
    ErrorCode, Error, DateRange, EPOCH, MIN_INSTANT, MAX_INSTANT,
    ensure_utc, parse_instant, to_epoch_seconds, utc_date, monday_of,
    instant_after, instant_before, shift_day,
)
from .records import (
    ActivitySource, DominantRole, Activity, DraftStory, Snapshot,
)

__all__ = [
    'ErrorCode', 'Error', 'DateRange', 'EPOCH', 'MIN_INSTANT', 'MAX_INSTANT',
    'ensure_utc', 'parse_instant', 'to_epoch_seconds', 'utc_date', 'monday_of',
    'instant_after', 'instant_before', 'shift_day',
    'ActivitySource', 'DominantRole', 'Activity', 'DraftStory', 'Snapshot',
]
