"""Closed date intervals and first-match overlap detection."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Generic, TypeVar
from uuid import UUID

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class BoundedInterval:
    """Inclusive range `[start, end]`; a single day has `start == end`."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            msg = f"Interval end {self.end} precedes start {self.start}"
            raise ValueError(msg)

    def overlaps(self, other: Interval) -> bool:
        if isinstance(other, OngoingInterval):
            return other.start <= self.end
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True)
class OngoingInterval:
    """Range starting at `start` with no end."""

    start: date

    def overlaps(self, other: Interval) -> bool:
        if isinstance(other, OngoingInterval):
            return True
        return self.start <= other.end


Interval = BoundedInterval | OngoingInterval


def interval_for(start: date, end: date | None) -> Interval:
    """Build the interval variant matching an optional end date."""
    if end is None:
        return OngoingInterval(start)
    return BoundedInterval(start, end)


@dataclass(frozen=True)
class ScheduledRecord(Generic[RecordT]):
    """A stored record paired with the interval it occupies."""

    id: UUID
    interval: Interval
    record: RecordT


def find_overlap(
    candidate: Interval,
    existing: Iterable[ScheduledRecord[RecordT]],
    *,
    exclude_id: UUID | None = None,
) -> ScheduledRecord[RecordT] | None:
    """Return the first record whose interval overlaps `candidate`.

    `exclude_id` skips the record being updated so it never conflicts with
    its own previous dates.
    """
    for item in existing:
        if exclude_id is not None and item.id == exclude_id:
            continue
        if candidate.overlaps(item.interval):
            return item
    return None


def overlaps(
    candidate: Interval,
    existing: Iterable[ScheduledRecord[RecordT]],
    *,
    exclude_id: UUID | None = None,
) -> bool:
    return find_overlap(candidate, existing, exclude_id=exclude_id) is not None
