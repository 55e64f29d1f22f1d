"""Service container built once per application lifespan."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from structlog import get_logger

from hemis_bot.clients.hemis import HemisClient
from hemis_bot.clients.slack import SlackClient
from hemis_bot.core.config import Settings
from hemis_bot.services.cache import EmployeeCache
from hemis_bot.services.state import NotificationStateStore

logger = get_logger()


@dataclass
class BotServices:
    """Everything commands and scheduled jobs need, passed explicitly."""

    settings: Settings
    hemis: HemisClient
    cache: EmployeeCache
    state: NotificationStateStore
    slack: SlackClient

    @property
    def types(self) -> list[str]:
        return self.settings.employee_type_list


def build_services(settings: Settings) -> BotServices:
    """
    Wire clients and stores from settings.

    Args:
        settings: Application settings

    Returns:
        Ready-to-use service container
    """
    hemis = HemisClient.from_settings(settings)
    cache = EmployeeCache(
        path=settings.cache_path,
        client=hemis,
        types=settings.employee_type_list,
        freshness_window=timedelta(hours=settings.cache_ttl_hours),
        page_limit=settings.hemis_page_limit,
    )
    state = NotificationStateStore(
        path=settings.state_path,
        default_target_chat_id=settings.target_chat_id,
    )
    services = BotServices(
        settings=settings,
        hemis=hemis,
        cache=cache,
        state=state,
        slack=SlackClient(settings.slack_bot_token),
    )

    snapshot = cache.load()
    logger.info(
        "services_initialized",
        types=services.types,
        cached_employees=len(snapshot["items"]),
        cache_updated_at=snapshot["updatedAt"],
    )
    return services
