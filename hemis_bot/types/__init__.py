"""Type definitions for external API responses and persisted documents."""

from hemis_bot.types.hemis import (
    CacheSnapshotTD,
    NotificationStateTD,
    PaginationTD,
)

__all__ = [
    "CacheSnapshotTD",
    "NotificationStateTD",
    "PaginationTD",
]
