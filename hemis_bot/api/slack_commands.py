"""Slack slash-command endpoint."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from structlog import get_logger

from hemis_bot.services.commands import CommandInvocation, dispatch_command, get_command
from hemis_bot.services.container import BotServices
from hemis_bot.utils.security import verify_slack_signature

logger = get_logger()
router = APIRouter()

# Strong references to in-flight command tasks
_command_tasks: set[asyncio.Task[None]] = set()


def get_services(request: Request) -> BotServices:
    services: BotServices | None = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Bot services not initialized")
    return services


@router.post("/slack/commands")
async def handle_slack_command(request: Request) -> Response:
    """
    Receive a Slack slash command.

    Slack expects an answer within 3 seconds, while list/search/sync may need
    a HEMIS round trip. The command is therefore submitted as a background
    task whose reply is posted to the channel with chat.postMessage; the HTTP
    response only carries an optional acknowledgement.
    """
    services = get_services(request)

    body = (await request.body()).decode("utf-8")
    if not verify_slack_signature(
        services.settings.slack_signing_secret,
        body,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
    ):
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    form = await request.form()
    command = str(form.get("command") or "")
    if not command:
        return Response(status_code=400)

    invocation = CommandInvocation(
        name=command.lstrip("/").lower(),
        text=str(form.get("text") or "").strip(),
        user_id=str(form.get("user_id") or ""),
        chat_id=str(form.get("channel_id") or ""),
    )

    logger.info(
        "slack_command_received",
        command=invocation.name,
        user_id=invocation.user_id,
        channel_id=invocation.chat_id,
    )

    submit_command(services, invocation)

    spec = get_command(invocation.name)
    if spec is not None and spec.ack_text:
        return JSONResponse({"response_type": "in_channel", "text": spec.ack_text})
    return Response(status_code=200)


def submit_command(services: BotServices, invocation: CommandInvocation) -> asyncio.Task[None]:
    """Schedule a command as a tracked background task."""
    task = asyncio.create_task(run_command(services, invocation))
    _command_tasks.add(task)
    task.add_done_callback(_command_tasks.discard)
    return task


async def run_command(services: BotServices, invocation: CommandInvocation) -> None:
    """
    Execute a command and post its reply to the invoking channel.

    Args:
        services: Service container
        invocation: Parsed slash command
    """
    structlog.contextvars.bind_contextvars(command=invocation.name)
    try:
        reply = await dispatch_command(services, invocation)
        await services.slack.chat_postMessage(channel=invocation.chat_id, text=reply)
    except Exception as e:
        logger.exception("slack_command_failed", command=invocation.name, error=str(e))


async def wait_for_pending_commands() -> list[Any]:
    """Let in-flight command tasks finish (used on shutdown)."""
    if not _command_tasks:
        return []
    return await asyncio.gather(*_command_tasks, return_exceptions=True)
