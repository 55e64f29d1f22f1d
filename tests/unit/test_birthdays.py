"""Tests for the birthday greetings job (hemis_bot/services/birthdays.py)."""

import asyncio
import json
from datetime import UTC, datetime

import pytest

from hemis_bot.core.errors import UpstreamError
from hemis_bot.services.birthdays import (
    MAX_GREETINGS,
    BirthdayRunOutcome,
    build_greetings_text,
    run_scheduled_birthday_greetings,
    send_birthday_greetings,
)
from tests.fixtures.factories import create_employee, create_snapshot, unix_seconds

NOW = datetime(2024, 3, 15, 9, 0, tzinfo=UTC)
TYPES = ["staff", "teacher", "employee"]


def seed_cache(services, people):
    snapshot = create_snapshot({"staff": people, "teacher": [], "employee": []}, updated_at=NOW)
    services.settings.cache_path.write_text(json.dumps(snapshot), encoding="utf-8")


def posted_text(services):
    return services.slack.chat_postMessage.call_args.kwargs["text"]


@pytest.mark.asyncio
async def test_no_target_chat_does_nothing(services):
    seed_cache(services, [create_employee(1, birth_date=unix_seconds(1990, 3, 15))])

    outcome = await send_birthday_greetings(services, now=NOW)

    assert outcome == BirthdayRunOutcome.NO_TARGET
    services.slack.chat_postMessage.assert_not_called()
    services.hemis.fetch_employee_page.assert_not_called()


@pytest.mark.asyncio
async def test_sends_greetings_and_marks_day(services):
    services.state.set_target_chat("C123")
    seed_cache(
        services,
        [
            create_employee(1, "Aliyev Vali", birth_date=unix_seconds(1990, 3, 15)),
            create_employee(2, "Karimov Anvar", birth_date=unix_seconds(1991, 7, 1)),
        ],
    )

    outcome = await send_birthday_greetings(services, now=NOW)

    assert outcome == BirthdayRunOutcome.SENT
    services.slack.chat_postMessage.assert_awaited_once()
    assert services.slack.chat_postMessage.call_args.kwargs["channel"] == "C123"
    text = posted_text(services)
    assert text.startswith("🎂 Bugungi tug‘ilgan kunlar (2024-03-15):")
    assert "🎉 Aliyev Vali" in text
    assert "Karimov" not in text
    assert services.state.load()["lastSentDate"] == "2024-03-15"


@pytest.mark.asyncio
async def test_second_run_same_day_is_skipped(services):
    services.state.set_target_chat("C123")
    seed_cache(services, [create_employee(1, birth_date=unix_seconds(1990, 3, 15))])

    first = await send_birthday_greetings(services, now=NOW)
    second = await send_birthday_greetings(services, now=NOW)

    assert first == BirthdayRunOutcome.SENT
    assert second == BirthdayRunOutcome.ALREADY_SENT
    assert services.slack.chat_postMessage.await_count == 1


@pytest.mark.asyncio
async def test_overlapping_runs_post_once(services):
    """A manual /run overlapping the cron trigger must not post twice."""
    services.state.set_target_chat("C123")
    seed_cache(services, [create_employee(1, birth_date=unix_seconds(1990, 3, 15))])

    async def slow_post(channel, text):
        await asyncio.sleep(0.01)
        return {"ok": True}

    services.slack.chat_postMessage.side_effect = slow_post

    outcomes = await asyncio.gather(
        send_birthday_greetings(services, now=NOW),
        send_birthday_greetings(services, now=NOW),
    )

    assert sorted(outcomes) == sorted([BirthdayRunOutcome.SENT, BirthdayRunOutcome.ALREADY_SENT])
    assert services.slack.chat_postMessage.await_count == 1


@pytest.mark.asyncio
async def test_nobody_today(services):
    services.state.set_target_chat("C123")
    seed_cache(services, [create_employee(1, birth_date=unix_seconds(1990, 1, 2))])

    outcome = await send_birthday_greetings(services, now=NOW)

    assert outcome == BirthdayRunOutcome.NOBODY_TODAY
    assert posted_text(services) == "Bugun tug‘ilgan hodim topilmadi. 📅 (2024-03-15)"
    assert services.state.load()["lastSentDate"] == "2024-03-15"


@pytest.mark.asyncio
async def test_birth_date_field_missing(services):
    services.state.set_target_chat("C123")
    seed_cache(services, [create_employee(1), create_employee(2)])

    outcome = await send_birthday_greetings(services, now=NOW)

    assert outcome == BirthdayRunOutcome.FIELD_MISSING
    assert "birth_date" in posted_text(services)
    assert services.state.load()["lastSentDate"] == "2024-03-15"


@pytest.mark.asyncio
async def test_refresh_failure_leaves_state_untouched(services):
    """A failed run is retried on the next trigger."""
    services.state.set_target_chat("C123")
    services.hemis.fetch_employee_page.side_effect = UpstreamError("HEMIS down", status=502)

    with pytest.raises(UpstreamError):
        await send_birthday_greetings(services, now=NOW)

    assert services.state.load()["lastSentDate"] == ""
    services.slack.chat_postMessage.assert_not_called()


@pytest.mark.asyncio
async def test_scheduled_run_logs_instead_of_raising(services):
    services.state.set_target_chat("C123")
    services.hemis.fetch_employee_page.side_effect = UpstreamError("HEMIS down", status=502)

    await run_scheduled_birthday_greetings(services)

    services.slack.chat_postMessage.assert_not_called()


def test_greetings_are_capped():
    people = [create_employee(i, f"Person {i}") for i in range(MAX_GREETINGS + 4)]

    text = build_greetings_text("2024-03-15", people)

    assert text.count("🎉") == MAX_GREETINGS
    assert text.endswith("(+4 ta yana bor)")
