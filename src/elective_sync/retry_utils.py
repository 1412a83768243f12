# SPDX-License-Identifier: MIT
"""Retry helper for Record Store reads."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .logging_config import get_detail_logger


detail_logger = get_detail_logger()

T = TypeVar("T")


async def call_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 2,
    initial_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """Await ``operation`` and retry it with exponential backoff.

    Only exceptions listed in ``retry_on`` are retried; anything else
    propagates immediately. Mutations must not be passed here since a
    retried write may apply twice.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        max_retries: Retry attempts after the first call
        initial_delay: Delay before the first retry in seconds
        max_delay: Upper bound for a single delay in seconds
        exponential_base: Multiplier applied to the delay after each retry
        retry_on: Exception types that trigger a retry
        description: Label used in log messages

    Returns:
        The operation's result

    Example:
        >>> rows = await call_with_backoff(
        ...     lambda: store.select("groups"), retry_on=(ConnectionError,)
        ... )
    """
    delay = initial_delay
    attempt = 0

    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_retries:
                detail_logger.debug(
                    f"{description} failed after {max_retries} retries: {e}"
                )
                raise

            attempt += 1
            detail_logger.debug(
                f"{description} failed (attempt {attempt}/{max_retries}): {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
            delay = min(delay * exponential_base, max_delay)
