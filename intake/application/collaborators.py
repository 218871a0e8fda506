"""Timeout-bounded calls into ports, folded into ``Result`` values."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from intake.application.ports.assignment_repo import ConcurrentUpdateError
from intake.domain.value_objects.enums import ErrorKind
from intake.domain.value_objects.result import Result

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


async def call(
    operation: str,
    awaitable: Awaitable[Any],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Result:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    Any exception raised by the collaborator, and the timeout itself, becomes
    a ``downstream_failure`` result. Version conflicts keep their own kind so
    callers can retry them.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout=timeout)
    except ConcurrentUpdateError as exc:
        logger.warning("%s: concurrent update (%s)", operation, exc)
        return Result.failure(f"{operation}: {exc}", kind=ErrorKind.CONCURRENT_UPDATE)
    except asyncio.TimeoutError:
        logger.error("%s timed out after %.1fs", operation, timeout)
        return Result.failure(f"{operation} timed out after {timeout:.1f}s")
    except Exception as exc:
        logger.exception("%s failed", operation)
        return Result.failure(f"{operation} failed: {exc}")
    return Result.success(value)
