"""Application configuration."""

import re
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(env_file=".env")

    # Slack
    slack_bot_token: str
    slack_signing_secret: str

    # HEMIS
    hemis_token: str
    hemis_base: str = "https://student.sies.uz/rest"
    hemis_page_limit: int = 200
    hemis_timeout_seconds: float = 25.0
    employee_types: str = "staff"

    # Cache and persisted state
    data_dir: Path = Path(".")
    cache_file_name: str = "employees_cache.json"
    state_file_name: str = "state.json"
    cache_ttl_hours: float = 6.0

    # Birthday notifications
    timezone: str = "Asia/Tashkent"
    cron_time: str = "0 9 * * *"
    target_chat_id: str = ""

    # Chat commands
    admin_ids: str = ""
    type_list_page_size: int = 15

    # Application
    log_level: str = "INFO"

    @property
    def employee_type_list(self) -> list[str]:
        """Parse configured employee types from comma-separated env var."""
        return [t.strip() for t in self.employee_types.split(",") if t.strip()]

    @property
    def admin_id_list(self) -> list[str]:
        """Parse admin user IDs from comma-separated env var."""
        return [x.strip() for x in self.admin_ids.split(",") if x.strip()]

    @property
    def cache_path(self) -> Path:
        return self.data_dir / self.cache_file_name

    @property
    def state_path(self) -> Path:
        return self.data_dir / self.state_file_name

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @field_validator("hemis_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("employee_types")
    @classmethod
    def validate_employee_types(cls, v: str) -> str:
        """At least one employee type must be configured."""
        if not any(t.strip() for t in v.split(",")):
            raise ValueError("EMPLOYEE_TYPES must list at least one type (e.g. staff,teacher)")
        return v

    @field_validator("type_list_page_size", mode="before")
    @classmethod
    def clamp_page_size(cls, v: Any) -> int:
        """Keep list pages between 5 and 25 rows. Zero or a non-number means 15."""
        match = re.match(r"\s*([+-]?\d+)", str(v))
        size = int(match.group(1)) if match else 0
        return max(5, min(25, size or 15))

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Timezone must be a valid IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown TIMEZONE: {v!r}") from e
        return v

    @field_validator("cron_time")
    @classmethod
    def validate_cron_time(cls, v: str) -> str:
        """CRON_TIME must be a standard 5-field crontab expression."""
        try:
            CronTrigger.from_crontab(v)
        except ValueError as e:
            raise ValueError(f"Invalid CRON_TIME: {v!r} ({e})") from e
        return v


settings = Settings()
