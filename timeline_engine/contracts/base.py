"""
Base Contracts and Shared Types

Foundational types used across every layout component.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- Errors are data records, never exceptions, so they can be reported
- All instants are timezone-aware UTC, never local time
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple, Union
from enum import Enum, auto


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MIN_INSTANT = datetime.min.replace(tzinfo=timezone.utc)
MAX_INSTANT = datetime.max.replace(tzinfo=timezone.utc)


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for recoverable data problems.
    Every exclusion, skip and repair is enumerated here.
    """
    # Record errors
    INVALID_TIMESTAMP = auto()
    INVALID_TIME_RANGE = auto()
    INVALID_SOURCE = auto()
    MALFORMED_RECORD = auto()
    DUPLICATE_ID = auto()

    # Association errors
    DANGLING_REFERENCE = auto()
    ASYMMETRIC_ASSOCIATION = auto()

    # Layout errors
    SPAN_CLAMPED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    subject_id: Optional[str] = None
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            subject_id=self.subject_id,
            context=self.context + ((key, value),)
        )

    def to_dict(self) -> dict:
        return {
            'code': self.code.name,
            'message': self.message,
            'subject_id': self.subject_id,
            'context': dict(self.context),
        }


# =============================================================================
# TEMPORAL HELPERS
# =============================================================================

def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Union[str, datetime, date, int, float, None]) -> Optional[datetime]:
    """
    Parse an instant from the shapes connectors hand us.

    Accepts aware/naive datetimes, dates (midnight UTC), epoch milliseconds
    and ISO-8601 strings (a trailing 'Z' is accepted).
    Returns None for anything unparsable instead of raising.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        try:
            return EPOCH + timedelta(milliseconds=value)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(text.replace('Z', '+00:00')))
        except (ValueError, OverflowError):
            # Offsets can push an instant past the UTC range
            return None
    return None


def to_epoch_seconds(value: datetime) -> float:
    return (ensure_utc(value) - EPOCH).total_seconds()


def utc_date(value: datetime) -> date:
    """Calendar day of an instant, truncated in UTC."""
    return ensure_utc(value).date()


def monday_of(day: date) -> date:
    """The Monday that starts the week containing `day`."""
    return day - timedelta(days=day.weekday())


def instant_after(value: datetime, delta: timedelta) -> datetime:
    """value + delta (delta >= 0), saturating at MAX_INSTANT."""
    try:
        return value + delta
    except OverflowError:
        return MAX_INSTANT


def instant_before(value: datetime, delta: timedelta) -> datetime:
    """value - delta (delta >= 0), saturating at MIN_INSTANT."""
    try:
        return value - delta
    except OverflowError:
        return MIN_INSTANT


def shift_day(day: date, days: int) -> date:
    """Calendar arithmetic saturating at date.min / date.max."""
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return date.max if days > 0 else date.min


@dataclass(frozen=True)
class DateRange:
    """Closed instant range [start, end]."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, 'start', ensure_utc(self.start))
        object.__setattr__(self, 'end', ensure_utc(self.end))
        if self.start > self.end:
            raise ValueError("DateRange start must be before or equal to end")

    @property
    def midpoint(self) -> datetime:
        return self.start + (self.end - self.start) / 2

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) <= self.end

    def overlaps(self, other: DateRange) -> bool:
        """Closed-interval overlap; touching endpoints overlap."""
        return self.start <= other.end and other.start <= self.end
