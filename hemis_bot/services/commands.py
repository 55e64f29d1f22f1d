"""Chat command handlers.

Every handler takes the service container and the parsed invocation and
returns the reply text; delivery is the transport's job. Upstream failures
are caught here, logged with status/body detail, and turned into a generic
failure reply.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from structlog import get_logger

from hemis_bot.core.errors import DomainError, UpstreamError
from hemis_bot.services.birthdays import BirthdayRunOutcome, send_birthday_greetings
from hemis_bot.services.cache import employees_by_type
from hemis_bot.services.container import BotServices
from hemis_bot.services.directory import (
    format_numbered,
    make_type_list_text,
    search_employees,
)
from hemis_bot.types.hemis import CacheSnapshotTD
from hemis_bot.utils.text import normalize_text, parse_positive_int, resolve_employee_type
from hemis_bot.utils.time import from_epoch_ms

logger = get_logger()

NOT_ADMIN_TEXT = "❌ Ruxsat yo‘q (admin emas)."
SAMPLE_SIZE = 10


@dataclass
class CommandInvocation:
    """A parsed chat command."""

    name: str  # without the leading slash, lower-case
    text: str  # everything after the command name
    user_id: str
    chat_id: str

    @property
    def args(self) -> list[str]:
        return self.text.split()


Handler = Callable[[BotServices, CommandInvocation], Awaitable[str]]


def normalize_command_name(raw: str) -> str:
    """`/List@bot` -> `list`."""
    return raw.strip().lower().lstrip("/").split("@")[0]


def is_admin(services: BotServices, user_id: str) -> bool:
    """Everyone is an admin when ADMIN_IDS is empty."""
    admins = services.settings.admin_id_list
    return not admins or str(user_id) in admins


def format_counts(counts: dict[str, int]) -> str:
    return ", ".join(f"{k}={v}" for k, v in counts.items())


def build_type_list_usage(types: list[str]) -> str:
    return (
        "Foydalanish:\n"
        "/list &lt;type&gt; [page]\n"
        "Masalan: /list teacher 1\n"
        f"Type: {', '.join(types)}"
    )


HELP_TEXT = (
    "Salom!\n\n"
    "✅ /employees — 10 ta hodim (test)\n"
    "✅ /list &lt;type&gt; [page] — type bo‘yicha ro‘yxat\n"
    "✅ /teachers [page] — teacher ro‘yxati\n"
    "✅ /staffs [page] — staff ro‘yxati\n"
    "✅ /employees_all [page] — employee ro‘yxati\n"
    "✅ /search &lt;ism/login&gt; — hodim qidirish\n"
    "✅ /sync — cache yangilash (admin)\n"
    "✅ /types — qaysi type nechta kelayapti (admin)\n"
    "✅ /setchat — tabrik yuboriladigan chatni saqlash (admin)\n"
    "✅ /run — tabrikni qo‘lda ishga tushirish (admin)\n"
    "✅ /status — holat (admin)"
)

SEARCH_USAGE = "Masalan: /search ali\nMasalan: /search avalov\nMasalan: /search azizbek"

SEARCH_NOT_FOUND = (
    "Topilmadi ❌\n\n"
    "Eslatma: Agar siz talaba bo‘lsangiz, bu employee-listda chiqmaydi.\n"
    "Agar siz hodim bo‘lsangiz ham chiqmasa, ehtimol type boshqa yoki inactive.\n"
    "Admin bo‘lsangiz: /types ni ko‘ring."
)


# --------------------------------------------------------------------------
# Directory commands
# --------------------------------------------------------------------------


async def handle_help(services: BotServices, cmd: CommandInvocation) -> str:
    return HELP_TEXT


async def handle_employees(services: BotServices, cmd: CommandInvocation) -> str:
    """Sample of the first cached employees."""
    snapshot = await services.cache.refresh(force=False)
    items = snapshot["items"]
    sample = items[:SAMPLE_SIZE]
    if not sample:
        return "Hodimlar topilmadi."

    return (
        f"📋 Hodimlar (namuna):\n\n{format_numbered(sample)}\n\n"
        f"📌 Cache: {len(items)} ta | Types: {', '.join(services.types)}"
    )


async def reply_type_list(
    services: BotServices, cmd: CommandInvocation, forced_type: str = ""
) -> str:
    """
    Paged list of one employee type.

    `/list <type> [page]`, or `/<alias> [page]` when the command fixes the type.
    Unknown types get the usage text; bad page numbers fall back to 1 and
    out-of-range pages are clamped.
    """
    args = cmd.args
    raw_type = forced_type or (args[0] if args else "")
    if forced_type:
        raw_page = args[0] if args else None
    else:
        raw_page = args[1] if len(args) > 1 else None

    employee_type = resolve_employee_type(raw_type, services.types)
    if not employee_type:
        return build_type_list_usage(services.types)

    page = parse_positive_int(raw_page, 1)
    snapshot = await services.cache.refresh(force=False)
    people = employees_by_type(snapshot, employee_type, services.types)
    return make_type_list_text(
        employee_type,
        people,
        page,
        services.settings.type_list_page_size,
        snapshot["counts"].get(employee_type),
    )


async def handle_list(services: BotServices, cmd: CommandInvocation) -> str:
    return await reply_type_list(services, cmd)


async def handle_teachers(services: BotServices, cmd: CommandInvocation) -> str:
    return await reply_type_list(services, cmd, forced_type="teacher")


async def handle_staffs(services: BotServices, cmd: CommandInvocation) -> str:
    return await reply_type_list(services, cmd, forced_type="staff")


async def handle_employees_all(services: BotServices, cmd: CommandInvocation) -> str:
    return await reply_type_list(services, cmd, forced_type="employee")


async def handle_search(services: BotServices, cmd: CommandInvocation) -> str:
    """Substring search across all fields, capped at 15 results."""
    if not normalize_text(cmd.text):
        return SEARCH_USAGE

    snapshot = await services.cache.refresh(force=False)
    found = search_employees(snapshot["items"], cmd.text)
    if not found:
        return SEARCH_NOT_FOUND
    return "✅ Topildi:\n\n" + format_numbered(found)


# --------------------------------------------------------------------------
# Admin commands
# --------------------------------------------------------------------------


async def handle_sync(services: BotServices, cmd: CommandInvocation) -> str:
    snapshot = await services.cache.refresh(force=True)
    return (
        "✅ Sync tayyor.\n"
        f"Hodimlar: {len(snapshot['items'])}\n"
        f"Types: {', '.join(snapshot['types'])}\n"
        f"Counts: {format_counts(snapshot['counts'])}"
    )


def cache_by_type_line(services: BotServices, snapshot: CacheSnapshotTD) -> str:
    return ", ".join(
        f"{t}={len(employees_by_type(snapshot, t, services.types))}"
        for t in services.types
    )


async def handle_types(services: BotServices, cmd: CommandInvocation) -> str:
    snapshot = await services.cache.refresh(force=False)
    return (
        f"EMPLOYEE_TYPES = {', '.join(services.types)}\n"
        f"Counts: {format_counts(snapshot['counts'])}\n"
        f"Cache byType: {cache_by_type_line(services, snapshot)}\n"
        f"Cache total: {len(snapshot['items'])}\n"
        "Ro'yxat: /list teacher 1"
    )


async def handle_setchat(services: BotServices, cmd: CommandInvocation) -> str:
    state = services.state.set_target_chat(cmd.chat_id)
    return f"✅ TARGET_CHAT_ID saqlandi: {state['targetChatId']}"


async def handle_status(services: BotServices, cmd: CommandInvocation) -> str:
    """Configuration and cache summary; reads the cache without refreshing it."""
    settings = services.settings
    state = services.state.load()
    snapshot = services.cache.load()
    updated = (
        from_epoch_ms(snapshot["updatedAt"], settings.tz).strftime("%Y-%m-%d %H:%M:%S")
        if snapshot["updatedAt"]
        else "(yo‘q)"
    )
    return (
        "⚙️ Status:\n"
        f"EMPLOYEE_TYPES = {', '.join(services.types)}\n"
        f"TZ = {settings.timezone}\n"
        f"CRON_TIME = {settings.cron_time}\n"
        f"TARGET_CHAT_ID = {state['targetChatId'] or '(yo‘q)'}\n"
        f"lastSentDate = {state['lastSentDate'] or '(yo‘q)'}\n"
        f"cacheUpdated = {updated}\n"
        f"cacheByType = {cache_by_type_line(services, snapshot)}\n"
        f"cacheCount = {len(snapshot['items'])}"
    )


RUN_OUTCOME_TEXT = {
    BirthdayRunOutcome.NO_TARGET: "⚠️ TARGET_CHAT_ID yo‘q. /setchat bilan o‘rnating.",
    BirthdayRunOutcome.ALREADY_SENT: "✅ Bugun allaqachon yuborilgan.",
}


async def handle_run(services: BotServices, cmd: CommandInvocation) -> str:
    outcome = await send_birthday_greetings(services)
    return RUN_OUTCOME_TEXT.get(outcome, "✅ Tayyor.")


# --------------------------------------------------------------------------
# Routing
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandSpec:
    handler: Handler
    admin_only: bool = False
    failure_text: str = "❌ Xatolik. Konsol logini tekshiring."
    # Immediate acknowledgement for slow commands
    ack_text: str | None = None


COMMANDS: dict[str, CommandSpec] = {
    "start": CommandSpec(handle_help),
    "help": CommandSpec(handle_help),
    "employees": CommandSpec(handle_employees),
    "list": CommandSpec(
        handle_list,
        failure_text="❌ Type ro'yxatini olishda xatolik. Konsol logini tekshiring.",
    ),
    "teachers": CommandSpec(
        handle_teachers,
        failure_text="❌ Teacher ro'yxatini olishda xatolik. Konsol logini tekshiring.",
    ),
    "staffs": CommandSpec(
        handle_staffs,
        failure_text="❌ Staff ro'yxatini olishda xatolik. Konsol logini tekshiring.",
    ),
    "employees_all": CommandSpec(
        handle_employees_all,
        failure_text="❌ Employee ro'yxatini olishda xatolik. Konsol logini tekshiring.",
    ),
    "search": CommandSpec(
        handle_search, failure_text="❌ Qidiruvda xatolik. Konsol logini tekshiring."
    ),
    "sync": CommandSpec(
        handle_sync,
        admin_only=True,
        failure_text="❌ Sync xatolik. Konsolni tekshiring.",
        ack_text="⏳ Sync qilinyapti...",
    ),
    "types": CommandSpec(handle_types, admin_only=True, failure_text="❌ Xatolik."),
    "setchat": CommandSpec(handle_setchat, admin_only=True),
    "status": CommandSpec(handle_status, admin_only=True),
    "run": CommandSpec(
        handle_run,
        admin_only=True,
        ack_text="⏳ Tabrik ishga tushyapti...",
    ),
}


def get_command(name: str) -> CommandSpec | None:
    return COMMANDS.get(normalize_command_name(name))


async def dispatch_command(services: BotServices, cmd: CommandInvocation) -> str:
    """
    Run a command and return its reply.

    Args:
        services: Service container
        cmd: Parsed invocation

    Returns:
        Reply text (usage, permission and failure texts included)
    """
    spec = get_command(cmd.name)
    if spec is None:
        return f"Noma'lum buyruq: /{cmd.name}\n\n{HELP_TEXT}"

    if spec.admin_only and not is_admin(services, cmd.user_id):
        logger.info("command_denied_not_admin", command=cmd.name, user_id=cmd.user_id)
        return NOT_ADMIN_TEXT

    try:
        return await spec.handler(services, cmd)
    except UpstreamError as e:
        logger.error(
            "command_upstream_failed",
            command=cmd.name,
            status=e.status,
            body=e.context.get("body"),
            error=e.message,
        )
        return spec.failure_text
    except DomainError as e:
        logger.error("command_failed", command=cmd.name, code=e.code, error=e.message)
        return spec.failure_text
    except Exception:
        logger.exception("command_crashed", command=cmd.name)
        return spec.failure_text
