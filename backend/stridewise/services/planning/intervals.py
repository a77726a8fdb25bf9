"""Half-open time interval primitives used by the planning engine."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A ``[start, end)`` range of naive local datetimes."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"interval start {self.start.isoformat()} must precede end {self.end.isoformat()}")

    @classmethod
    def of_minutes(cls, start: datetime, minutes: int) -> "TimeInterval":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self, other)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def covers(self, other: "TimeInterval") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(first: TimeInterval, second: TimeInterval) -> bool:
    """True when the two intervals share any instant (touching ends do not overlap)."""
    return first.start < second.end and second.start < first.end


def gap_between(first: TimeInterval, second: TimeInterval) -> timedelta:
    """Free time between two intervals in either order; zero when they overlap or touch."""
    earlier, later = sorted((first, second))
    return max(timedelta(0), later.start - earlier.end)


def clamp(interval: TimeInterval, window: TimeInterval) -> Optional[TimeInterval]:
    start = max(interval.start, window.start)
    end = min(interval.end, window.end)
    if start >= end:
        return None
    return TimeInterval(start, end)


def merge_intervals(intervals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """Union overlapping or touching intervals into a sorted, disjoint list."""
    merged: List[TimeInterval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(last.start, interval.end)
            continue
        merged.append(interval)
    return merged


def total_minutes(intervals: Iterable[TimeInterval]) -> int:
    """Minutes covered by the union of ``intervals``."""
    return sum(interval.duration_minutes for interval in merge_intervals(intervals))
