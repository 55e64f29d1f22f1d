"""Tests for directory queries (hemis_bot/services/directory.py)."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from hemis_bot.services.directory import (
    SEARCH_RESULT_LIMIT,
    UNKNOWN_NAME,
    employee_full_name,
    find_birthdays,
    format_employee_short,
    format_numbered,
    make_type_list_text,
    paginate,
    search_employees,
)
from tests.fixtures.factories import create_employee, unix_seconds

UTC_TZ = ZoneInfo("UTC")
TASHKENT = ZoneInfo("Asia/Tashkent")


def teachers(n):
    return [create_employee(i, f"Teacher {i}", type="teacher") for i in range(1, n + 1)]


class TestFormatting:
    def test_full_name_preferred(self):
        assert employee_full_name({"full_name": "Aliyev Vali", "first_name": "X"}) == "Aliyev Vali"

    def test_name_parts_joined(self):
        record = {"last_name": "Aliyev", "first_name": "Vali", "middle_name": "Karimovich"}
        assert employee_full_name(record) == "Aliyev Vali Karimovich"

    def test_short_format_with_all_parts(self):
        record = create_employee(
            1,
            "Aliyev Vali",
            login="vali",
            position={"name": "Dotsent"},
            department={"name": "Matematika"},
            type="teacher",
        )

        assert format_employee_short(record) == (
            "Aliyev Vali (vali) — Dotsent | Matematika | type=teacher"
        )

    def test_short_format_omits_empty_parts(self):
        assert format_employee_short(create_employee(1, "Aliyev Vali")) == "Aliyev Vali"

    def test_unknown_name(self):
        assert format_employee_short({"id": 5}) == UNKNOWN_NAME

    def test_numbered_lines_continue_from_start(self):
        text = format_numbered(teachers(2), start=15)
        assert text.splitlines() == [
            "16) Teacher 1 | type=teacher",
            "17) Teacher 2 | type=teacher",
        ]


class TestTypeList:
    def test_three_teachers_single_page(self):
        text = make_type_list_text("teacher", teachers(3), 1, 15, 3)

        assert text.startswith("Ro'yxat: teacher (sahifa 1/1)\n\n1) Teacher 1")
        assert "3) Teacher 3" in text
        assert "Ko'rsatildi: 1-3/3\n" in text
        assert "API count" not in text
        assert text.endswith("Keyingi sahifa: /list teacher 1")

    def test_second_page(self):
        text = make_type_list_text("teacher", teachers(20), 2, 15)

        assert "(sahifa 2/2)" in text
        assert "16) Teacher 16" in text
        assert "Ko'rsatildi: 16-20/20" in text
        assert text.endswith("/list teacher 2")

    def test_next_page_hint_on_first_of_many(self):
        assert make_type_list_text("teacher", teachers(40), 1, 15).endswith("/list teacher 2")

    @pytest.mark.parametrize("requested", [0, -3, 99])
    def test_page_is_clamped(self, requested):
        chunk = paginate(teachers(20), requested, 15)

        assert 1 <= chunk.page <= 2
        assert chunk.page == (1 if requested < 1 else 2)

    def test_page_beyond_range_shows_last_page(self):
        """Requesting ceil(N/S)+5 shows the last page."""
        text = make_type_list_text("teacher", teachers(31), 3 + 5, 15)

        assert "(sahifa 3/3)" in text
        assert "Ko'rsatildi: 31-31/31" in text

    def test_api_count_shown_when_different(self):
        text = make_type_list_text("teacher", teachers(3), 1, 15, 5)

        assert "Ko'rsatildi: 1-3/3 | API count=5" in text

    def test_empty_list(self):
        assert make_type_list_text("staff", [], 1, 15) == "staff bo'yicha hodim topilmadi."


class TestSearch:
    def test_case_insensitive_substring(self):
        people = [create_employee(1, "Aliyev Vali"), create_employee(2, "Karimov Anvar")]

        assert search_employees(people, "ali") == [people[0]]

    def test_searches_nested_values(self):
        people = [create_employee(1, "X", department={"name": "Fizika kafedrasi"})]

        assert search_employees(people, "FIZIKA") == people

    def test_results_capped_and_ordered(self):
        people = [create_employee(i, f"Ali {i}") for i in range(40)]

        found = search_employees(people, "ali")

        assert len(found) == SEARCH_RESULT_LIMIT
        assert [e["id"] for e in found] == list(range(SEARCH_RESULT_LIMIT))

    @pytest.mark.parametrize("query", ["", "   ", "__"])
    def test_empty_query_matches_nothing(self, query):
        assert search_employees([create_employee(1)], query) == []


class TestBirthdays:
    def test_matches_month_and_day(self):
        people = [
            create_employee(1, "Born today", birth_date=unix_seconds(1990, 3, 15)),
            create_employee(2, "Other day", birth_date=unix_seconds(1985, 3, 16)),
            create_employee(3, "No date"),
        ]

        matches = find_birthdays(people, datetime(2024, 3, 15, 9, tzinfo=UTC), UTC_TZ)

        assert matches.month_day == "03-15"
        assert matches.any_birth_date is True
        assert [e["id"] for e in matches.people] == [1]

    def test_milliseconds_and_alternative_keys(self):
        people = [{"id": 1, "birthDate": unix_seconds(2005, 3, 15) * 1000}]

        matches = find_birthdays(people, datetime(2024, 3, 15, tzinfo=UTC), UTC_TZ)

        assert len(matches.people) == 1

    def test_pre_2001_milliseconds_are_not_birth_dates(self):
        """Below 1e12 a value is seconds; 1990 in milliseconds overflows and is skipped."""
        people = [{"id": 1, "birthDate": unix_seconds(1990, 3, 15) * 1000}]

        matches = find_birthdays(people, datetime(2024, 3, 15, tzinfo=UTC), UTC_TZ)

        assert matches.people == []
        assert matches.any_birth_date is False

    def test_no_birth_dates_at_all(self):
        matches = find_birthdays(
            [create_employee(1), create_employee(2, birth_date="")],
            datetime(2024, 3, 15, tzinfo=UTC),
            UTC_TZ,
        )

        assert matches.any_birth_date is False
        assert matches.people == []

    def test_compared_in_configured_timezone(self):
        """21:00 UTC on Mar 14 is already Mar 15 in Tashkent (UTC+5)."""
        born = int(datetime(1990, 3, 14, 21, 0, tzinfo=UTC).timestamp())
        people = [create_employee(1, birth_date=born)]

        today = datetime(2024, 3, 15, 4, 0, tzinfo=UTC)

        assert len(find_birthdays(people, today, TASHKENT).people) == 1
        assert find_birthdays(people, today, UTC_TZ).people == []
