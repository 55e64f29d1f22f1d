"""Tests for employee aggregation (hemis_bot/services/aggregator.py)."""

import aiohttp
import pytest

from hemis_bot.core.errors import UpstreamError
from hemis_bot.services.aggregator import fetch_all_employees_by_types, tag_with_type
from tests.fixtures.factories import create_employee, create_page


@pytest.mark.asyncio
async def test_fetches_pages_up_to_page_count(mock_hemis):
    """Pages 1..pageCount are requested, no more."""
    mock_hemis.fetch_employee_page.side_effect = [
        create_page([create_employee(1)], page_count=3),
        create_page([create_employee(2)], page_count=3),
        create_page([create_employee(3)], page_count=3),
    ]

    result = await fetch_all_employees_by_types(mock_hemis, ["teacher"], limit=200)

    pages = [c.args[1] for c in mock_hemis.fetch_employee_page.call_args_list]
    assert pages == [1, 2, 3]
    assert [e["id"] for e in result.merged] == [1, 2, 3]
    assert result.counts == {"teacher": 3}


@pytest.mark.asyncio
@pytest.mark.parametrize("page_count", [None, 0])
async def test_missing_page_count_means_single_page(mock_hemis, page_count):
    mock_hemis.fetch_employee_page.return_value = create_page(
        [create_employee(1)], page_count=page_count
    )

    result = await fetch_all_employees_by_types(mock_hemis, ["staff"])

    assert mock_hemis.fetch_employee_page.await_count == 1
    assert len(result.by_type["staff"]) == 1


@pytest.mark.asyncio
async def test_records_are_tagged_with_their_type(mock_hemis):
    mock_hemis.fetch_employee_page.return_value = create_page([create_employee(1)])

    result = await fetch_all_employees_by_types(mock_hemis, ["teacher"])

    assert result.merged[0]["type"] == "teacher"
    assert result.by_type["teacher"][0]["type"] == "teacher"


@pytest.mark.asyncio
async def test_duplicates_within_type_are_counted_but_listed_once(mock_hemis):
    """counts hold raw rows; by_type is deduplicated."""
    mock_hemis.fetch_employee_page.side_effect = [
        create_page([create_employee(1), create_employee(2)], page_count=2),
        create_page([create_employee(2), create_employee(3)], page_count=2),
    ]

    result = await fetch_all_employees_by_types(mock_hemis, ["teacher"])

    assert result.counts == {"teacher": 4}
    assert [e["id"] for e in result.by_type["teacher"]] == [1, 2, 3]


@pytest.mark.asyncio
async def test_first_type_wins_in_merged_list(mock_hemis):
    """A person present in two types appears once in merged, under the first type."""

    async def fetch(employee_type, page, limit):
        if employee_type == "staff":
            return create_page([create_employee(7, "Karimov Anvar")])
        return create_page([create_employee(7, "Karimov Anvar"), create_employee(8)])

    mock_hemis.fetch_employee_page.side_effect = fetch

    result = await fetch_all_employees_by_types(mock_hemis, ["staff", "teacher"])

    assert [e["id"] for e in result.merged] == [7, 8]
    assert result.merged[0]["type"] == "staff"
    assert [e["id"] for e in result.by_type["teacher"]] == [7, 8]
    assert result.by_type["teacher"][0]["type"] == "teacher"
    assert result.counts == {"staff": 1, "teacher": 2}


@pytest.mark.asyncio
async def test_malformed_page_stops_paging_for_that_type_only(mock_hemis):
    malformed = create_page([], page_count=None)
    malformed.malformed = True

    async def fetch(employee_type, page, limit):
        if employee_type == "staff":
            if page == 1:
                return create_page([create_employee(1)], page_count=5)
            return malformed
        return create_page([create_employee(2)])

    mock_hemis.fetch_employee_page.side_effect = fetch

    result = await fetch_all_employees_by_types(mock_hemis, ["staff", "teacher"])

    assert result.counts == {"staff": 1, "teacher": 1}
    assert mock_hemis.fetch_employee_page.await_count == 3


@pytest.mark.asyncio
async def test_upstream_error_aborts_whole_aggregation(mock_hemis):
    mock_hemis.fetch_employee_page.side_effect = [
        create_page([create_employee(1)], page_count=2),
        UpstreamError("HEMIS API returned 500", status=500),
    ]

    with pytest.raises(UpstreamError) as exc_info:
        await fetch_all_employees_by_types(mock_hemis, ["staff", "teacher"])

    assert exc_info.value.status == 500


@pytest.mark.asyncio
async def test_client_errors_are_converted_at_service_boundary(mock_hemis):
    mock_hemis.fetch_employee_page.side_effect = aiohttp.ClientConnectionError("reset")

    with pytest.raises(UpstreamError):
        await fetch_all_employees_by_types(mock_hemis, ["staff"])


@pytest.mark.asyncio
async def test_records_without_id_use_login(mock_hemis):
    rows = [
        {"login": "vali", "full_name": "Aliyev Vali"},
        {"login": "vali", "full_name": "Aliyev Vali (dup)"},
    ]
    mock_hemis.fetch_employee_page.return_value = create_page(rows)

    result = await fetch_all_employees_by_types(mock_hemis, ["staff"])

    assert len(result.merged) == 1
    assert result.counts["staff"] == 2


def test_tag_with_type_does_not_mutate_input():
    record = create_employee(1)
    tagged = tag_with_type(record, "teacher")

    assert tagged["type"] == "teacher"
    assert "type" not in record


def test_tag_with_type_passes_non_dict_through():
    assert tag_with_type("raw", "teacher") == "raw"
