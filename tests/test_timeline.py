"""Tests for timeline expansion, filtering, bucketing and selection."""

from datetime import datetime, timedelta, timezone

import pytest

from pubdash.records import Publication
from pubdash.timeline import (
    HOVERING,
    IDLE,
    LOCKED,
    TimelineFilters,
    TimelinePoint,
    TimelineSelection,
    bucket_key,
    bucket_label,
    bucket_statistics,
    build_timeline,
    count_points,
    expand_points,
    filter_publications,
    group_points,
)


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2024, 6, 1), 2),
        (datetime(2025, 1, 20), 1),
        (datetime(2026, 10, 19), 0),
    ],
)
def test_expand_points_trailing_window(now, expected):
    pub = Publication(title="A", publish_dates="2024-01-01;2024-02-15")
    assert len(expand_points([pub], now=now)) == expected


def test_expand_points_compares_on_the_utc_clock():
    # 01:00 at UTC+2 is 23:00 UTC the day before
    pub = Publication(title="A", publish_dates="2025-10-19T23:30:00+00:00")
    local_now = datetime(2026, 10, 20, 1, 0, tzinfo=timezone(timedelta(hours=2)))
    assert len(expand_points([pub], now=local_now)) == 1
    assert len(expand_points([pub], now=local_now + timedelta(hours=1))) == 0


def test_expand_points_skips_records_without_dates(publications, now):
    points = expand_points(publications, now=now)
    assert len(points) == 6
    assert {p.publication.title for p in points} == {
        "Labour market overview",
        "GDP first estimate",
        "GDP monthly estimate",
        "Population estimates",
        "Annual business survey",
    }


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def test_empty_filters_do_not_restrict(publications):
    filters = TimelineFilters()
    assert not filters.is_active
    assert filter_publications(publications, filters) == publications


def test_alignment_filter(publications):
    filters = TimelineFilters.build(alignments=["GDP"])
    titles = [p.title for p in filter_publications(publications, filters)]
    assert titles == ["GDP first estimate", "GDP monthly estimate"]


def test_directorate_filter_is_case_sensitive(publications):
    filters = TimelineFilters.build(directorates=["Economic"])
    assert len(filter_publications(publications, filters)) == 3


def test_unknown_division_filter(publications):
    filters = TimelineFilters.build(divisions=["Unknown"])
    assert [p.title for p in filter_publications(publications, filters)] == [
        "Population estimates"
    ]


def test_search_is_case_insensitive_substring(publications):
    filters = TimelineFilters.build(search="ESTIMATE")
    assert len(filter_publications(publications, filters)) == 3


def test_filters_are_conjunctive(publications):
    filters = TimelineFilters.build(alignments=["GDP"], search="first")
    assert [p.title for p in filter_publications(publications, filters)] == [
        "GDP first estimate"
    ]
    assert filters.active_count == 2


def test_filtering_is_idempotent(publications):
    filters = TimelineFilters.build(alignments=["GDP", "Employment"], search="e")
    once = filter_publications(publications, filters)
    assert filter_publications(once, filters) == once


def test_clearing_filters_restores_initial_view(publications, now):
    initial = build_timeline(publications, TimelineFilters(), now=now)
    filters = TimelineFilters().toggled("alignments", "GDP")
    filtered = build_timeline(publications, filters, now=now)
    assert count_points(filtered) == 2

    restored = build_timeline(publications, filters.toggled("alignments", "GDP"), now=now)
    assert restored == initial
    assert build_timeline(publications, filters.cleared(), now=now) == initial


def test_toggled_rejects_unknown_kind():
    with pytest.raises(ValueError):
        TimelineFilters().toggled("titles", "x")


# ---------------------------------------------------------------------------
# Buckets
# ---------------------------------------------------------------------------


def test_bucket_keys():
    date = datetime(2026, 10, 14, 9, 30)
    assert bucket_key(date, "day") == "2026-10-14"
    assert bucket_key(date, "week") == "2026-10-12"
    assert bucket_key(date, "month") == "2026-10"
    with pytest.raises(ValueError):
        bucket_key(date, "year")


def test_bucket_labels():
    date = datetime(2026, 10, 14)
    assert bucket_label(date, "day") == "October 14, 2026"
    assert bucket_label(date, "week") == "Week of Oct 12 - Oct 18, 2026"
    assert bucket_label(date, "month") == "October 2026"


def test_week_label_spanning_years():
    assert bucket_label(datetime(2025, 12, 31), "week") == "Week of Dec 29 - Jan 4, 2026"


def test_group_by_day_newest_first(publications, now):
    buckets = build_timeline(publications, granularity="day", now=now)
    assert [b.key for b in buckets] == [
        "2026-10-14",
        "2026-10-13",
        "2026-09-15",
        "2026-08-12",
        "2026-06-30",
        "2025-11-03",
    ]
    assert count_points(buckets) == 6


def test_group_by_week_merges_same_week(publications, now):
    buckets = build_timeline(publications, granularity="week", now=now)
    assert buckets[0].key == "2026-10-12"
    assert len(buckets[0].points) == 2
    assert buckets[0].date == datetime(2026, 10, 13)
    assert buckets[1].key == "2026-09-14"


def test_group_by_month_oldest_first(publications, now):
    buckets = build_timeline(publications, granularity="month", ascending=True, now=now)
    assert [b.key for b in buckets] == [
        "2025-11",
        "2026-06",
        "2026-08",
        "2026-09",
        "2026-10",
    ]
    assert [p.date.day for p in buckets[-1].points] == [13, 14]
    assert buckets[-1].label == "October 2026"


def test_group_points_empty():
    assert group_points([], "day") == []


def test_bucket_statistics(publications, now):
    (october,) = [
        b for b in build_timeline(publications, granularity="month", now=now)
        if b.key == "2026-10"
    ]
    stats = bucket_statistics(october.points)
    assert {b.name: b.value for b in stats.alignments} == {"GDP": 1, "Employment": 1}
    assert {b.name: b.value for b in stats.directorates} == {"Economic": 2}


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


@pytest.fixture
def points():
    a = TimelinePoint(datetime(2026, 10, 1), Publication(title="A"))
    b = TimelinePoint(datetime(2026, 10, 2), Publication(title="B"))
    return a, b


def test_hover_and_leave(points):
    a, _ = points
    sel = TimelineSelection().hover(a)
    assert sel.state == HOVERING
    assert sel.active == a
    assert sel.leave().state == IDLE
    assert sel.leave().active is None


def test_lock_overrides_hover(points):
    a, b = points
    sel = TimelineSelection().hover(a).click(a)
    assert sel.state == LOCKED
    assert sel.hover(b).active == a
    assert sel.leave().active == a


def test_click_locked_point_releases(points):
    a, _ = points
    sel = TimelineSelection().click(a).click(a)
    assert not sel.is_locked
    assert sel.state == HOVERING


def test_click_other_point_moves_lock(points):
    a, b = points
    sel = TimelineSelection().click(a).click(b)
    assert sel.is_locked
    assert sel.active == b


def test_clear(points):
    a, _ = points
    assert TimelineSelection().click(a).clear() == TimelineSelection()
