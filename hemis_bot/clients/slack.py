"""Slack Web API client for posting bot replies."""

from __future__ import annotations

from typing import Any

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient
from structlog import get_logger

from hemis_bot.core.errors import DomainError

logger = get_logger()


class SlackClient:
    """Thin wrapper over AsyncWebClient with logging."""

    def __init__(self, token: str) -> None:
        self.client = AsyncWebClient(token=token)

    async def chat_postMessage(  # noqa: N802 - mirrors the Slack method name
        self,
        channel: str,
        text: str,
        blocks: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """
        Post a message to a channel.

        Args:
            channel: Slack channel ID
            text: Message text (also the notification fallback for blocks)
            blocks: Optional Block Kit blocks

        Returns:
            Slack API response data

        Raises:
            DomainError: If Slack rejects the message
        """
        try:
            response = await self.client.chat_postMessage(
                channel=channel, text=text, blocks=blocks
            )
        except SlackApiError as e:
            error = e.response.get("error") if e.response is not None else str(e)
            logger.error("slack_post_message_failed", channel=channel, error=error)
            raise DomainError(
                f"Slack chat.postMessage failed: {error}", context={"channel": channel}
            ) from e

        logger.info("slack_message_posted", channel=channel, length=len(text))
        return dict(response.data) if isinstance(response.data, dict) else {}
