"""Persisted notification state (target chat and last sent date)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from structlog import get_logger

from hemis_bot.core.storage import load_json_safe, save_json_atomic
from hemis_bot.types.hemis import NotificationStateTD

logger = get_logger()


class NotificationStateStore:
    """
    Single-document store backed by state.json.

    `lock` serializes the birthday job: the lastSentDate check, the post and
    mark_sent run under it so one day is never dispatched twice.
    """

    def __init__(self, path: Path, default_target_chat_id: str = "") -> None:
        self.path = path
        self.default_target_chat_id = default_target_chat_id
        self.lock = asyncio.Lock()

    def _default(self) -> NotificationStateTD:
        return {"targetChatId": self.default_target_chat_id, "lastSentDate": ""}

    def load(self) -> NotificationStateTD:
        raw: Any = load_json_safe(self.path, None)
        state = self._default()
        if not isinstance(raw, dict):
            return state
        if raw.get("targetChatId"):
            state["targetChatId"] = str(raw["targetChatId"])
        if raw.get("lastSentDate"):
            state["lastSentDate"] = str(raw["lastSentDate"])
        return state

    def save(self, state: NotificationStateTD) -> None:
        save_json_atomic(self.path, state)

    def set_target_chat(self, chat_id: str) -> NotificationStateTD:
        state = self.load()
        state["targetChatId"] = str(chat_id)
        self.save(state)
        logger.info("notification_target_chat_set", chat_id=state["targetChatId"])
        return state

    def mark_sent(self, date_str: str) -> NotificationStateTD:
        state = self.load()
        state["lastSentDate"] = date_str
        self.save(state)
        return state
