"""Directory queries over the cached employees: paged lists, search, birthdays."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from hemis_bot.utils.text import (
    employee_search_text,
    normalize_text,
    pick,
    to_text_or_name,
)
from hemis_bot.utils.time import month_day_tz, parse_hemis_timestamp

UNKNOWN_NAME = "Noma'lum"
SEARCH_RESULT_LIMIT = 15

FULL_NAME_KEYS = ("full_name", "fio")
LAST_NAME_KEYS = ("last_name", "surname", "family_name")
FIRST_NAME_KEYS = ("first_name", "name", "given_name")
MIDDLE_NAME_KEYS = ("middle_name", "patronymic")
LOGIN_KEYS = ("login", "username", "user_login", "employee_login")
POSITION_KEYS = ("position", "job_title", "staff_position", "post", "staffPosition")
DEPARTMENT_KEYS = (
    "department",
    "department_name",
    "department_title",
    "faculty",
    "faculty_name",
)
TYPE_KEYS = ("type", "employee_type", "employeeType")
BIRTH_DATE_KEYS = (
    "birth_date",
    "birthDate",
    "birthday",
    "birth_day",
    "date_of_birth",
    "dob",
    "birthdate",
)


def employee_full_name(employee: Any) -> str:
    full_name = to_text_or_name(pick(employee, FULL_NAME_KEYS))
    if full_name:
        return full_name
    parts = (
        to_text_or_name(pick(employee, LAST_NAME_KEYS)),
        to_text_or_name(pick(employee, FIRST_NAME_KEYS)),
        to_text_or_name(pick(employee, MIDDLE_NAME_KEYS)),
    )
    return " ".join(p for p in parts if p).strip()


def format_employee_short(employee: Any) -> str:
    """
    One-line description of an employee.

    Format: `Name (login) — position | department | type=teacher`, where
    every part except the name is omitted when empty.
    """
    name = employee_full_name(employee) or UNKNOWN_NAME
    login = to_text_or_name(pick(employee, LOGIN_KEYS))
    position = to_text_or_name(pick(employee, POSITION_KEYS))
    department = to_text_or_name(pick(employee, DEPARTMENT_KEYS))
    employee_type = to_text_or_name(pick(employee, TYPE_KEYS))

    text = name
    if login:
        text += f" ({login})"
    if position:
        text += f" — {position}"
    if department:
        text += f" | {department}"
    if employee_type:
        text += f" | type={employee_type}"
    return text


def format_numbered(employees: list[Any], start: int = 0) -> str:
    return "\n".join(
        f"{start + i + 1}) {format_employee_short(e)}" for i, e in enumerate(employees)
    )


# --------------------------------------------------------------------------
# Paged type lists
# --------------------------------------------------------------------------


@dataclass
class TypeListPage:
    """One clamped page of a type list."""

    page: int
    page_count: int
    start: int
    rows: list[Any]
    total: int

    @property
    def next_page(self) -> int:
        """Next page number; stays on the last page instead of wrapping."""
        return self.page + 1 if self.page < self.page_count else self.page_count


def paginate(people: list[Any], page: int, page_size: int) -> TypeListPage:
    """Slice `people` for a 1-based page, clamping the page into range."""
    page_count = max(1, math.ceil(len(people) / page_size))
    safe_page = min(max(1, page), page_count)
    start = (safe_page - 1) * page_size
    return TypeListPage(
        page=safe_page,
        page_count=page_count,
        start=start,
        rows=people[start : start + page_size],
        total=len(people),
    )


def make_type_list_text(
    employee_type: str,
    people: list[Any],
    page: int,
    page_size: int,
    total_api_count: int | None = None,
) -> str:
    """
    Render one page of a type list for chat.

    Args:
        employee_type: Canonical type name
        people: Deduplicated employees of that type
        page: Requested 1-based page (clamped)
        page_size: Rows per page
        total_api_count: Raw upstream row count, shown when it differs

    Returns:
        Reply text with rows, counters and the next-page hint
    """
    if not people:
        return f"{employee_type} bo'yicha hodim topilmadi."

    chunk = paginate(people, page, page_size)
    lines = format_numbered(chunk.rows, chunk.start)

    shown_from = chunk.start + 1
    shown_to = chunk.start + len(chunk.rows)
    count_line = f"Ko'rsatildi: {shown_from}-{shown_to}/{chunk.total}"
    if total_api_count is not None and total_api_count != chunk.total:
        count_line += f" | API count={total_api_count}"

    return (
        f"Ro'yxat: {employee_type} (sahifa {chunk.page}/{chunk.page_count})\n\n"
        f"{lines}\n\n"
        f"{count_line}\n"
        f"Keyingi sahifa: /list {employee_type} {chunk.next_page}"
    )


# --------------------------------------------------------------------------
# Search
# --------------------------------------------------------------------------


def search_employees(
    employees: list[Any], query: str, limit: int = SEARCH_RESULT_LIMIT
) -> list[Any]:
    """
    Case-insensitive substring search over every leaf value of each record.

    Results keep cache order and scanning stops once `limit` is reached.
    An empty (normalized) query matches nothing; callers show usage instead.
    """
    needle = normalize_text(query)
    if not needle:
        return []

    found: list[Any] = []
    for employee in employees:
        if needle in employee_search_text(employee):
            found.append(employee)
            if len(found) >= limit:
                break
    return found


# --------------------------------------------------------------------------
# Birthdays
# --------------------------------------------------------------------------


def get_birth_date(employee: Any) -> datetime | None:
    return parse_hemis_timestamp(pick(employee, BIRTH_DATE_KEYS))


@dataclass
class BirthdayMatches:
    """Employees whose birthday falls on `month_day`."""

    month_day: str
    people: list[Any] = field(default_factory=list)
    # False when no cached record has a parseable birth date at all
    any_birth_date: bool = False


def find_birthdays(employees: list[Any], today: datetime, tz: ZoneInfo) -> BirthdayMatches:
    """
    Match employees born on today's month and day in `tz`.

    Records without a parseable birth date are skipped. If none of the
    records has one, `any_birth_date` is False: HEMIS is not exposing the
    field, which is reported differently from "nobody today".
    """
    matches = BirthdayMatches(month_day=month_day_tz(today, tz))

    for employee in employees:
        born = get_birth_date(employee)
        if born is None:
            continue
        matches.any_birth_date = True
        if month_day_tz(born, tz) == matches.month_day:
            matches.people.append(employee)

    return matches
