"""HEMIS REST API client for the employee directory."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, cast

import aiohttp
from structlog import get_logger

from hemis_bot.core.config import Settings
from hemis_bot.core.errors import UpstreamError
from hemis_bot.types.hemis import PaginationTD

logger = get_logger()

EMPLOYEE_LIST_ENDPOINT = "v1/data/employee-list"
RESPONSE_LANGUAGE = "uz-UZ"
# Logged body prefix on non-2xx responses
ERROR_BODY_PREVIEW = 500


@dataclass
class EmployeePage:
    """One page of the employee-list endpoint."""

    items: list[Any] = field(default_factory=list)
    pagination: PaginationTD | None = None
    # Set when data.items was missing or not a list
    malformed: bool = False

    @property
    def page_count(self) -> int:
        """Upstream pageCount, 0 when absent or unusable."""
        if not self.pagination:
            return 0
        try:
            return int(self.pagination.get("pageCount") or 0)
        except (TypeError, ValueError):
            return 0


class HemisClient:
    """HTTP client for the HEMIS API with bearer-token auth."""

    def __init__(self, base_url: str, token: str, timeout_seconds: float = 25.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> HemisClient:
        return cls(
            base_url=settings.hemis_base,
            token=settings.hemis_token,
            timeout_seconds=settings.hemis_timeout_seconds,
        )

    async def get(self, endpoint: str, params: dict[str, str]) -> Any:
        """
        Make GET request to the HEMIS API.

        Args:
            endpoint: Path relative to the base URL (e.g. "v1/data/employee-list")
            params: Query string parameters

        Returns:
            Decoded JSON payload

        Raises:
            UpstreamError: On network error, timeout, non-2xx status or non-JSON body
        """
        url = f"{self.base_url}/{endpoint}"

        logger.debug("hemis_api_request", endpoint=endpoint, params=params)

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(url, params=params, headers=self.headers) as response:
                    if response.status >= 400:
                        body = await response.text()
                        logger.error(
                            "hemis_api_error",
                            endpoint=endpoint,
                            status=response.status,
                            body=body[:ERROR_BODY_PREVIEW],
                        )
                        raise UpstreamError(
                            f"HEMIS API request failed ({endpoint}): HTTP {response.status}",
                            status=response.status,
                            context={"endpoint": endpoint, "body": body[:ERROR_BODY_PREVIEW]},
                        )

                    try:
                        return await response.json(content_type=None)
                    except (json.JSONDecodeError, UnicodeDecodeError) as e:
                        logger.error("hemis_api_invalid_json", endpoint=endpoint)
                        raise UpstreamError(
                            f"HEMIS API returned a non-JSON body ({endpoint})",
                            status=response.status,
                            context={"endpoint": endpoint},
                        ) from e
        except TimeoutError as e:
            logger.error("hemis_api_timeout", endpoint=endpoint, timeout=self.timeout.total)
            raise UpstreamError(
                f"HEMIS API request timed out ({endpoint})",
                context={"endpoint": endpoint, "timeout": self.timeout.total},
            ) from e
        except aiohttp.ClientError as e:
            logger.error("hemis_api_network_error", endpoint=endpoint, error=str(e))
            raise UpstreamError(
                f"HEMIS API request failed ({endpoint}): {e}",
                context={"endpoint": endpoint},
            ) from e

    async def fetch_employee_page(self, employee_type: str, page: int, limit: int) -> EmployeePage:
        """
        Fetch one page of employees of a given type.

        A payload without a `data.items` list is not fatal: it yields an empty
        page flagged as malformed and the caller decides whether to stop.

        Args:
            employee_type: HEMIS employee type (staff, teacher, ...)
            page: 1-based page number
            limit: Page size

        Returns:
            Items and pagination block of the page

        Raises:
            UpstreamError: If the request itself fails
        """
        payload = await self.get(
            EMPLOYEE_LIST_ENDPOINT,
            {
                "type": employee_type,
                "page": str(page),
                "limit": str(limit),
                "l": RESPONSE_LANGUAGE,
            },
        )

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            data = {}

        raw_pagination = data.get("pagination")
        pagination = (
            cast(PaginationTD, raw_pagination) if isinstance(raw_pagination, dict) else None
        )

        items = data.get("items")
        if not isinstance(items, list):
            logger.warning(
                "hemis_unexpected_page_format",
                employee_type=employee_type,
                page=page,
                payload_preview=str(payload)[:200],
            )
            return EmployeePage(items=[], pagination=pagination, malformed=True)

        return EmployeePage(items=items, pagination=pagination)
