"""Employee aggregation across HEMIS types and pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from structlog import get_logger

from hemis_bot.clients.hemis import HemisClient
from hemis_bot.core.errors import service_boundary
from hemis_bot.utils.text import employee_key

logger = get_logger()

DEFAULT_PAGE_LIMIT = 200


@dataclass
class AggregateResult:
    """Merged employees of all types."""

    merged: list[Any] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, list[Any]] = field(default_factory=dict)


def tag_with_type(record: Any, employee_type: str) -> Any:
    """Copy a record with its `type` set; non-dict rows pass through unchanged."""
    if isinstance(record, dict):
        return {**record, "type": employee_type}
    return record


@service_boundary
async def fetch_all_employees_by_types(
    client: HemisClient,
    types: list[str],
    limit: int = DEFAULT_PAGE_LIMIT,
) -> AggregateResult:
    """
    Fetch every page of every configured employee type and deduplicate.

    Pages are requested from 1 while page < pageCount; a missing or zero
    pageCount means the first page was the only one. A malformed page stops
    paging for that type. Records are deduplicated by identity key twice:
    within the type (by_type) and globally (merged), where the first type
    that produced a record keeps it.

    Args:
        client: HEMIS API client
        types: Employee types to fetch, in priority order
        limit: Page size requested from HEMIS

    Returns:
        Merged list, raw per-type row counts and per-type lists

    Raises:
        UpstreamError: If any page request fails (nothing partial is returned)
    """
    result = AggregateResult()
    seen: set[Any] = set()

    for employee_type in types:
        page = 1
        total_for_type = 0
        list_for_type: list[Any] = []
        seen_in_type: set[Any] = set()

        while True:
            employee_page = await client.fetch_employee_page(employee_type, page, limit)
            if employee_page.malformed:
                logger.warning(
                    "employee_paging_stopped_unexpected_format",
                    employee_type=employee_type,
                    page=page,
                )
                break

            for raw in employee_page.items:
                item = tag_with_type(raw, employee_type)
                key = employee_key(item)

                if key not in seen_in_type:
                    seen_in_type.add(key)
                    list_for_type.append(item)

                if key not in seen:
                    seen.add(key)
                    result.merged.append(item)

                total_for_type += 1

            page_count = employee_page.page_count
            if not page_count or page >= page_count:
                break
            page += 1

        result.counts[employee_type] = total_for_type
        result.by_type[employee_type] = list_for_type

        logger.info(
            "employee_type_fetched",
            employee_type=employee_type,
            pages=page,
            rows=total_for_type,
            unique=len(list_for_type),
        )

    logger.info("employees_aggregated", types=types, total=len(result.merged))
    return result
