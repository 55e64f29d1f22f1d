"""Type definitions for HEMIS API payloads and persisted documents.

Employee records are not schema-checked: HEMIS returns different field sets
per deployment, so records stay plain dicts and are read through candidate
key lists (see hemis_bot.utils.text.pick).
"""

from typing import Any, NotRequired, TypedDict


class PaginationTD(TypedDict):
    """`data.pagination` block of an employee-list response."""

    pageCount: NotRequired[int]
    totalCount: NotRequired[int]
    pageSize: NotRequired[int]
    page: NotRequired[int]


class CacheSnapshotTD(TypedDict):
    """Persisted employees cache document (employees_cache.json)."""

    updatedAt: int  # epoch milliseconds, 0 when never synced
    types: list[str]
    counts: dict[str, int]  # raw upstream rows per type, before dedup
    byType: dict[str, list[Any]]
    items: list[Any]


class NotificationStateTD(TypedDict):
    """Persisted notification state document (state.json)."""

    targetChatId: str
    lastSentDate: str  # YYYY-MM-DD in the configured timezone, "" when never sent
