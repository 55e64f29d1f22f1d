"""Domain exceptions and service boundary decorator."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

import aiohttp
from structlog import get_logger

logger = get_logger()

P = ParamSpec("P")
T = TypeVar("T")


class DomainError(Exception):
    """Base exception for all domain errors."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class UpstreamError(DomainError):
    """HEMIS API call failed: network, timeout, non-2xx or malformed payload."""

    code = "UPSTREAM_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        if status is not None:
            ctx["status"] = status
        super().__init__(message, ctx)
        self.status = status


class PersistenceError(DomainError):
    """Local JSON file could not be read or written."""

    code = "PERSISTENCE_ERROR"


def service_boundary(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[T]]:
    """
    Convert native HTTP client exceptions to domain exceptions at service entry points.

    Usage:
        @service_boundary
        async def fetch_everything():
            await client.get(...)  # ClientError / TimeoutError -> UpstreamError

    Args:
        func: Async service function to wrap

    Returns:
        Wrapped function that converts exceptions
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except DomainError:
            raise
        except TimeoutError as e:
            logger.error("upstream_timeout", function=func.__name__)
            raise UpstreamError(
                "HEMIS API request timed out", context={"function": func.__name__}
            ) from e
        except aiohttp.ClientError as e:
            logger.error("upstream_client_error", function=func.__name__, error=str(e))
            raise UpstreamError(str(e), context={"function": func.__name__}) from e

    return wrapper
