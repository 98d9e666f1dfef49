"""Timeline aggregation and selection state.

The timeline expands each record's ``publish_dates`` into one point per
date, keeps the points from the trailing window (365 days by default),
and groups them into day, week or month buckets.  Filtering is layered
and conjunctive: alignment, directorate, division and a case-insensitive
title search, each one unrestricted while empty.

Hover and click handling is modelled by :class:`TimelineSelection`, a
small immutable state machine (idle, hovering, locked) so the UI only
has to swap one value per pointer event.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .aggregate import Bucket, group_and_count
from .config import DEFAULT_GRANULARITY, TIMELINE_WINDOW_DAYS, Granularity
from .records import Publication, naive_utc

GRANULARITIES: Tuple[str, ...] = ("day", "week", "month")

FILTER_FIELDS: Dict[str, str] = {
    "alignments": "alignment",
    "directorates": "directorate",
    "divisions": "division",
}


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelinePoint:
    date: datetime
    publication: Publication


def expand_points(
    records: Iterable[Publication],
    now: Optional[datetime] = None,
    window_days: int = TIMELINE_WINDOW_DAYS,
) -> List[TimelinePoint]:
    """One point per publish date on or after ``now - window_days``."""
    now = naive_utc(now)
    cutoff = now - timedelta(days=window_days)
    points: List[TimelinePoint] = []
    for rec in records:
        for date in rec.dates():
            if date >= cutoff:
                points.append(TimelinePoint(date=date, publication=rec))
    return points


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimelineFilters:
    alignments: FrozenSet[str] = frozenset()
    directorates: FrozenSet[str] = frozenset()
    divisions: FrozenSet[str] = frozenset()
    search: str = ""

    @classmethod
    def build(
        cls,
        alignments: Iterable[str] = (),
        directorates: Iterable[str] = (),
        divisions: Iterable[str] = (),
        search: Optional[str] = "",
    ) -> "TimelineFilters":
        return cls(
            alignments=frozenset(alignments or ()),
            directorates=frozenset(directorates or ()),
            divisions=frozenset(divisions or ()),
            search=search or "",
        )

    @property
    def active_count(self) -> int:
        return (
            len(self.alignments)
            + len(self.directorates)
            + len(self.divisions)
            + (1 if self.search else 0)
        )

    @property
    def is_active(self) -> bool:
        return self.active_count > 0

    def cleared(self) -> "TimelineFilters":
        return TimelineFilters()

    def toggled(self, kind: str, value: str) -> "TimelineFilters":
        """Add ``value`` to the ``kind`` selection, or remove it if present."""
        if kind not in FILTER_FIELDS:
            raise ValueError(f"Unknown filter kind: {kind!r}")
        current: FrozenSet[str] = getattr(self, kind)
        updated = current - {value} if value in current else current | {value}
        return replace(self, **{kind: updated})

    def matches(self, publication: Publication) -> bool:
        for kind, name in FILTER_FIELDS.items():
            selected: FrozenSet[str] = getattr(self, kind)
            if selected and publication.category(name) not in selected:
                return False
        if self.search:
            title = publication.title or ""
            if self.search.lower() not in title.lower():
                return False
        return True


def filter_publications(
    records: Iterable[Publication], filters: Optional[TimelineFilters] = None
) -> List[Publication]:
    """Records passing every active filter; idempotent by construction."""
    if filters is None or not filters.is_active:
        return list(records)
    return [rec for rec in records if filters.matches(rec)]


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------


def _check_granularity(granularity: str) -> None:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity: {granularity!r}")


def week_start(date: datetime) -> datetime:
    """Monday of the week containing ``date``, at midnight."""
    day = date - timedelta(days=date.weekday())
    return day.replace(hour=0, minute=0, second=0, microsecond=0)


def bucket_key(date: datetime, granularity: Granularity) -> str:
    _check_granularity(granularity)
    if granularity == "day":
        return date.strftime("%Y-%m-%d")
    if granularity == "week":
        return week_start(date).strftime("%Y-%m-%d")
    return date.strftime("%Y-%m")


def bucket_label(date: datetime, granularity: Granularity) -> str:
    _check_granularity(granularity)
    if granularity == "day":
        return f"{date:%B} {date.day}, {date.year}"
    if granularity == "week":
        start = week_start(date)
        end = start + timedelta(days=6)
        return f"Week of {start:%b} {start.day} - {end:%b} {end.day}, {end.year}"
    return f"{date:%B} {date.year}"


@dataclass(frozen=True)
class TimelineBucket:
    key: str
    label: str
    date: datetime
    points: Tuple[TimelinePoint, ...] = field(default_factory=tuple)


def group_points(
    points: Sequence[TimelinePoint],
    granularity: Granularity = DEFAULT_GRANULARITY,
    ascending: bool = False,
) -> List[TimelineBucket]:
    """Group points into buckets ordered by each bucket's earliest date."""
    _check_granularity(granularity)
    ordered = sorted(points, key=lambda p: p.date, reverse=not ascending)

    groups: Dict[str, List[TimelinePoint]] = {}
    for point in ordered:
        groups.setdefault(bucket_key(point.date, granularity), []).append(point)

    buckets = []
    for key, members in groups.items():
        earliest = min(p.date for p in members)
        buckets.append(
            TimelineBucket(
                key=key,
                label=bucket_label(earliest, granularity),
                date=earliest,
                points=tuple(members),
            )
        )
    return sorted(buckets, key=lambda b: b.date, reverse=not ascending)


def build_timeline(
    records: Sequence[Publication],
    filters: Optional[TimelineFilters] = None,
    granularity: Granularity = DEFAULT_GRANULARITY,
    ascending: bool = False,
    now: Optional[datetime] = None,
) -> List[TimelineBucket]:
    """Filter, expand and bucket in one pass; the whole timeline view."""
    matching = filter_publications(records, filters)
    return group_points(expand_points(matching, now=now), granularity, ascending)


def count_points(buckets: Iterable[TimelineBucket]) -> int:
    return sum(len(bucket.points) for bucket in buckets)


@dataclass(frozen=True)
class BucketStatistics:
    alignments: List[Bucket]
    directorates: List[Bucket]


def bucket_statistics(
    points: Iterable[TimelinePoint], colors: Optional[Mapping[str, str]] = None
) -> BucketStatistics:
    """Alignment and directorate tallies for one bucket's points."""
    pubs = [point.publication for point in points]
    return BucketStatistics(
        alignments=group_and_count(pubs, "alignment", colors=colors),
        directorates=group_and_count(pubs, "directorate"),
    )


# ---------------------------------------------------------------------------
# Selection state machine
# ---------------------------------------------------------------------------

IDLE = "idle"
HOVERING = "hovering"
LOCKED = "locked"


@dataclass(frozen=True)
class TimelineSelection:
    """Hover/lock state for timeline points.

    ``hover`` and ``leave`` only matter while nothing is locked.  ``click``
    locks a point; clicking the locked point again releases it (the pointer
    is still over it, so the state falls back to hovering).
    """

    state: str = IDLE
    point: Optional[TimelinePoint] = None

    @property
    def active(self) -> Optional[TimelinePoint]:
        return self.point

    @property
    def is_locked(self) -> bool:
        return self.state == LOCKED

    def hover(self, point: TimelinePoint) -> "TimelineSelection":
        if self.is_locked:
            return self
        return TimelineSelection(HOVERING, point)

    def leave(self) -> "TimelineSelection":
        if self.is_locked:
            return self
        return TimelineSelection()

    def click(self, point: TimelinePoint) -> "TimelineSelection":
        if self.is_locked and self.point == point:
            return TimelineSelection(HOVERING, point)
        return TimelineSelection(LOCKED, point)

    def clear(self) -> "TimelineSelection":
        return TimelineSelection()
