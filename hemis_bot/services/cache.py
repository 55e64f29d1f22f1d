"""Employee cache persisted as a JSON snapshot."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from structlog import get_logger

from hemis_bot.clients.hemis import HemisClient
from hemis_bot.core.storage import load_json_safe, save_json_atomic
from hemis_bot.services.aggregator import DEFAULT_PAGE_LIMIT, fetch_all_employees_by_types
from hemis_bot.types.hemis import CacheSnapshotTD
from hemis_bot.utils.text import resolve_employee_type
from hemis_bot.utils.time import epoch_ms

logger = get_logger()

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=6)


def empty_snapshot() -> CacheSnapshotTD:
    return {"updatedAt": 0, "types": [], "counts": {}, "byType": {}, "items": []}


def _coerce_snapshot(raw: Any) -> CacheSnapshotTD:
    """Repair a loaded document so every field has the expected container type."""
    if not isinstance(raw, dict):
        return empty_snapshot()

    snapshot = empty_snapshot()
    updated_at = raw.get("updatedAt")
    if isinstance(updated_at, (int, float)) and not isinstance(updated_at, bool):
        snapshot["updatedAt"] = int(updated_at)
    if isinstance(raw.get("types"), list):
        snapshot["types"] = raw["types"]
    if isinstance(raw.get("counts"), dict):
        snapshot["counts"] = raw["counts"]
    if isinstance(raw.get("byType"), dict):
        snapshot["byType"] = raw["byType"]
    if isinstance(raw.get("items"), list):
        snapshot["items"] = raw["items"]
    return snapshot


class EmployeeCache:
    """
    Cache of the HEMIS employee directory.

    The snapshot is replaced wholesale on every refresh. Refreshes are
    serialized with an asyncio.Lock and freshness is re-checked once the lock
    is held, so concurrent callers that all saw a stale cache fetch once.
    """

    def __init__(
        self,
        path: Path,
        client: HemisClient,
        types: list[str],
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        self.path = path
        self.client = client
        self.types = list(types)
        self.freshness_window = freshness_window
        self.page_limit = page_limit
        self._lock = asyncio.Lock()

    def load(self) -> CacheSnapshotTD:
        """Read the persisted snapshot; missing or corrupt files give an empty one."""
        return _coerce_snapshot(load_json_safe(self.path, empty_snapshot()))

    def is_fresh(self, snapshot: CacheSnapshotTD, now: datetime | None = None) -> bool:
        """
        Whether `snapshot` can be served without refetching.

        Requires a non-zero updatedAt within the freshness window, at least one
        item, and a byType list for every currently configured type.
        """
        if not snapshot["updatedAt"] or not snapshot["items"]:
            return False
        now_ms = epoch_ms(now or datetime.now(UTC))
        age_ms = now_ms - snapshot["updatedAt"]
        if age_ms >= self.freshness_window.total_seconds() * 1000:
            return False
        by_type = snapshot["byType"]
        return all(isinstance(by_type.get(t), list) for t in self.types)

    async def refresh(self, force: bool = False, now: datetime | None = None) -> CacheSnapshotTD:
        """
        Return a snapshot, fetching from HEMIS when needed.

        Args:
            force: Refetch even if the cached snapshot is fresh
            now: Clock override for the freshness check and updatedAt

        Returns:
            The cached snapshot when fresh, otherwise a newly persisted one

        Raises:
            UpstreamError: If fetching fails; the persisted cache is left untouched
        """
        if not force:
            cached = self.load()
            if self.is_fresh(cached, now):
                return cached

        async with self._lock:
            if not force:
                cached = self.load()
                if self.is_fresh(cached, now):
                    logger.debug("employee_cache_refreshed_by_concurrent_caller")
                    return cached

            logger.info("employee_cache_refresh_started", force=force, types=self.types)
            result = await fetch_all_employees_by_types(
                self.client, self.types, limit=self.page_limit
            )

            snapshot: CacheSnapshotTD = {
                "updatedAt": epoch_ms(now or datetime.now(UTC)),
                "types": list(self.types),
                "counts": result.counts,
                "byType": result.by_type,
                "items": result.merged,
            }
            save_json_atomic(self.path, snapshot)

            logger.info(
                "employee_cache_refresh_completed",
                total=len(snapshot["items"]),
                counts=snapshot["counts"],
            )
            return snapshot


def employees_by_type(snapshot: CacheSnapshotTD, employee_type: str, types: list[str]) -> list[Any]:
    """
    Employees of one type from a snapshot.

    Uses the per-type list when present; older snapshots without it are
    filtered from the merged items by their `type` field.
    """
    listed = snapshot["byType"].get(employee_type)
    if isinstance(listed, list):
        return listed
    return [
        e
        for e in snapshot["items"]
        if isinstance(e, dict) and resolve_employee_type(e.get("type"), types) == employee_type
    ]
