"""Tests for the formatting, sorting and bucketing helpers."""
from datetime import date, datetime, timedelta, timezone

import pytest

from formatting import (
    bucket_by_date,
    effective_end_date,
    escape_html,
    format_competition_range,
    format_date_short,
    format_day,
    format_month,
    format_post_date,
    format_time,
    local_time,
    sort_by_order,
)
from schemas import CompetitionEvent


# -----------------------------------------------------------------------------
# format_time
# -----------------------------------------------------------------------------

class TestFormatTime:

    @pytest.mark.parametrize("hhmm,expected", [
        ("00:00", "12:00 AM"),
        ("00:05", "12:05 AM"),
        ("09:30", "9:30 AM"),
        ("11:59", "11:59 AM"),
        ("12:00", "12:00 PM"),
        ("13:07", "1:07 PM"),
        ("20:00", "8:00 PM"),
        ("23:45", "11:45 PM"),
    ])
    def test_converts_to_twelve_hour(self, hhmm, expected):
        assert format_time(hhmm) == expected

    def test_every_hour_has_right_suffix_and_padded_minutes(self):
        for hour in range(24):
            out = format_time(f"{hour:02d}:07")
            assert out.endswith("AM" if hour < 12 else "PM")
            assert out.split(" ")[0].split(":")[1] == "07"

    @pytest.mark.parametrize("empty", ["", None])
    def test_empty_input_gives_empty_string(self, empty):
        assert format_time(empty) == ""


# -----------------------------------------------------------------------------
# escape_html
# -----------------------------------------------------------------------------

class TestEscapeHtml:

    def test_escapes_reserved_characters(self):
        assert escape_html("<a href=\"x\">Tom & Jerry's</a>") == (
            "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&#39;s&lt;/a&gt;"
        )

    def test_plain_text_unchanged(self):
        assert escape_html("Practice at 8pm") == "Practice at 8pm"

    def test_each_reserved_character_maps_to_distinct_entity(self):
        outputs = {escape_html(c) for c in "&<>\"'"}
        assert len(outputs) == 5

    @pytest.mark.parametrize("text", ["&", "<b>", "\"q\"", "it's"])
    def test_double_escaping_differs(self, text):
        once = escape_html(text)
        assert escape_html(once) != once

    def test_none_is_empty(self):
        assert escape_html(None) == ""


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------

class TestDateFormatting:

    def test_short_date(self):
        assert format_date_short("2025-06-01") == "Jun 1, 2025"

    def test_short_date_accepts_datetime(self):
        assert format_date_short(datetime(2025, 12, 24, 18, 30)) == "Dec 24, 2025"

    def test_month_and_day(self):
        assert format_month("2025-06-01") == "JUN"
        assert format_day("2025-06-09") == "9"

    def test_post_date_long_form(self):
        assert format_post_date(datetime(2025, 6, 1, 10, 0)) == "June 1, 2025"
        assert format_post_date(None) == ""

    def test_post_date_uses_local_calendar_day(self):
        eastern = timezone(timedelta(hours=-5))
        late_evening = datetime(2025, 6, 2, 1, 0, tzinfo=timezone.utc)
        assert format_post_date(late_evening, tz=eastern) == "June 1, 2025"
        assert format_post_date(late_evening, tz=timezone.utc) == "June 2, 2025"

    def test_local_time_leaves_naive_values_alone(self):
        naive = datetime(2025, 6, 2, 1, 0)
        assert local_time(naive, tz=timezone(timedelta(hours=-5))) is naive

    def test_short_date_converts_aware_timestamp(self):
        stamp = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)
        assert format_date_short(stamp) == format_date_short(stamp.astimezone().date())

    def test_range_single_day(self):
        assert format_competition_range("2025-06-01", "2025-06-01") == format_competition_range("2025-06-01", None)
        assert format_competition_range("2025-06-01") == "Jun 1, 2025"

    def test_range_multi_day_uses_en_dash(self):
        out = format_competition_range("2025-06-01", "2025-06-03")
        assert out == "Jun 1, 2025 – Jun 3, 2025"
        start, end = out.split(" – ")
        assert start != end


# -----------------------------------------------------------------------------
# sort_by_order
# -----------------------------------------------------------------------------

class TestSortByOrder:

    def test_ascending(self):
        records = [{"name": "b", "order": 2}, {"name": "a", "order": 0}, {"name": "c", "order": 5}]
        assert [r["name"] for r in sort_by_order(records)] == ["a", "b", "c"]

    def test_stable_for_ties(self):
        records = [
            {"name": "first", "order": 1},
            {"name": "zero", "order": 0},
            {"name": "second", "order": 1},
            {"name": "third", "order": 1},
        ]
        assert [r["name"] for r in sort_by_order(records)] == ["zero", "first", "second", "third"]

    def test_does_not_mutate_input(self):
        records = [{"order": 2}, {"order": 1}]
        sort_by_order(records)
        assert records == [{"order": 2}, {"order": 1}]


# -----------------------------------------------------------------------------
# bucket_by_date
# -----------------------------------------------------------------------------

def _event(name, start, end=None):
    return CompetitionEvent(name=name, date=start, endDate=end)


class TestBucketByDate:

    def test_single_day_event_is_upcoming_on_its_day(self):
        buckets = bucket_by_date([_event("Open", "2025-06-01")], date(2025, 6, 1))
        assert [e.name for e in buckets.upcoming] == ["Open"]
        assert buckets.past == []

    def test_single_day_event_is_past_next_day(self):
        buckets = bucket_by_date([_event("Open", "2025-06-01")], date(2025, 6, 2))
        assert buckets.upcoming == []
        assert [e.name for e in buckets.past] == ["Open"]

    def test_multi_day_event_uses_effective_end_date(self):
        event = _event("Classic", "2025-06-01", "2025-06-03")
        assert effective_end_date(event) == date(2025, 6, 3)
        buckets = bucket_by_date([event], date(2025, 6, 2))
        assert [e.name for e in buckets.upcoming] == ["Classic"]

    def test_time_of_day_is_ignored(self):
        buckets = bucket_by_date([_event("Open", "2025-06-01")], datetime(2025, 6, 1, 23, 59))
        assert len(buckets.upcoming) == 1

    def test_past_is_most_recent_first(self):
        events = [
            _event("Winter", "2025-01-10"),
            _event("Spring", "2025-04-01", "2025-04-02"),
            _event("March", "2025-03-15"),
        ]
        buckets = bucket_by_date(events, date(2025, 6, 1))
        assert [e.name for e in buckets.past] == ["Spring", "March", "Winter"]

    def test_upcoming_is_soonest_first(self):
        events = [_event("Late", "2025-09-01"), _event("Soon", "2025-06-10")]
        buckets = bucket_by_date(events, date(2025, 6, 1))
        assert [e.name for e in buckets.upcoming] == ["Soon", "Late"]

    def test_accepts_plain_dicts(self):
        buckets = bucket_by_date([{"name": "x", "date": "2025-06-01", "endDate": "2025-06-05"}], date(2025, 6, 4))
        assert len(buckets.upcoming) == 1
