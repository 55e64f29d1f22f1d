"""Daily birthday greetings job."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from structlog import get_logger

from hemis_bot.services.container import BotServices
from hemis_bot.services.directory import find_birthdays, format_employee_short
from hemis_bot.utils.time import format_date_tz

logger = get_logger()

MAX_GREETINGS = 30


class BirthdayRunOutcome(StrEnum):
    """Result of one birthday job invocation."""

    NO_TARGET = "no_target"
    ALREADY_SENT = "already_sent"
    FIELD_MISSING = "field_missing"
    NOBODY_TODAY = "nobody_today"
    SENT = "sent"


def build_field_missing_text(today: str) -> str:
    return (
        "⚠️ API hodimlarda tug‘ilgan sana (birth_date) maydonini qaytarmayapti.\n"
        "Shu sabab tabrik avtomat ishlamaydi.\n"
        f"({today})"
    )


def build_nobody_text(today: str) -> str:
    return f"Bugun tug‘ilgan hodim topilmadi. 📅 ({today})"


def build_greetings_text(today: str, people: list) -> str:
    lines = [
        f"🎉 {format_employee_short(e)} — Tug‘ilgan kun muborak!"
        for e in people[:MAX_GREETINGS]
    ]
    text = f"🎂 Bugungi tug‘ilgan kunlar ({today}):\n\n" + "\n".join(lines)
    if len(people) > MAX_GREETINGS:
        text += f"\n\n(+{len(people) - MAX_GREETINGS} ta yana bor)"
    return text


async def send_birthday_greetings(
    services: BotServices, now: datetime | None = None
) -> BirthdayRunOutcome:
    """
    Post today's birthday summary to the target chat, at most once per day.

    The lastSentDate check runs first. After a refresh of the cache
    (non-forced), exactly one of three messages is posted: field missing,
    nobody today, or the greetings. Each of them marks the day as sent.
    Errors propagate before the state is touched, so the next trigger retries.
    Runs hold the state store lock, so overlapping /run and cron triggers
    post once.

    Args:
        services: Service container
        now: Clock override

    Returns:
        What the run did

    Raises:
        UpstreamError: If the cache refresh fails
        DomainError: If posting to Slack fails
    """
    now = now or datetime.now(UTC)
    async with services.state.lock:
        return await _dispatch_birthday_summary(services, now)


async def _dispatch_birthday_summary(services: BotServices, now: datetime) -> BirthdayRunOutcome:
    tz = services.settings.tz
    today = format_date_tz(now, tz)

    state = services.state.load()
    target = state["targetChatId"]
    if not target:
        logger.warning("birthday_target_chat_missing", hint="use /setchat")
        return BirthdayRunOutcome.NO_TARGET

    if state["lastSentDate"] == today:
        logger.info("birthday_already_sent", date=today)
        return BirthdayRunOutcome.ALREADY_SENT

    snapshot = await services.cache.refresh(force=False, now=now)
    matches = find_birthdays(snapshot["items"], now, tz)

    if not matches.any_birth_date:
        logger.warning("birthday_field_missing", employees=len(snapshot["items"]))
        outcome = BirthdayRunOutcome.FIELD_MISSING
        text = build_field_missing_text(today)
    elif not matches.people:
        outcome = BirthdayRunOutcome.NOBODY_TODAY
        text = build_nobody_text(today)
    else:
        outcome = BirthdayRunOutcome.SENT
        text = build_greetings_text(today, matches.people)

    await services.slack.chat_postMessage(channel=target, text=text)
    services.state.mark_sent(today)

    logger.info(
        "birthday_run_completed",
        date=today,
        outcome=outcome.value,
        matches=len(matches.people),
    )
    return outcome


async def run_scheduled_birthday_greetings(services: BotServices) -> None:
    """Scheduler entry point: same job as /run, with errors logged instead of raised."""
    logger.info("birthday_cron_triggered")
    try:
        await send_birthday_greetings(services)
    except Exception:
        logger.exception("birthday_cron_failed")
