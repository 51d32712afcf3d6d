"""Pacing helpers: random waits between transactions and the cycle countdown."""

import asyncio
import random
import sys
from typing import Optional

import structlog

from ..config import DelayConfig


async def add_random_delay(
    delay: Optional[DelayConfig] = None,
    logger=None,
    message: str = "next transaction",
) -> int:
    """Sleep a random whole number of seconds within the configured range.

    Returns the number of seconds waited.
    """
    delay = delay or DelayConfig()
    logger = logger or structlog.get_logger(__name__)

    low, high = sorted((delay.min_seconds, delay.max_seconds))
    seconds = random.randint(low, high)

    logger.info(f"Waiting {seconds} seconds before {message}...")
    await asyncio.sleep(seconds)
    return seconds


async def wait_between_wallets(logger=None, min_seconds: int = 5, max_seconds: int = 15) -> int:
    logger = logger or structlog.get_logger(__name__)
    seconds = random.randint(min_seconds, max_seconds)
    logger.warning(f"Waiting {seconds} seconds before next wallet...")
    await asyncio.sleep(seconds)
    return seconds


def format_remaining(seconds: int) -> str:
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


async def countdown(hours: float, logger=None, stream=None) -> None:
    """Count down ``hours`` on a single, rewritten console line."""
    logger = logger or structlog.get_logger(__name__)
    stream = stream or sys.stdout
    remaining = int(hours * 3600)

    while remaining > 0:
        stream.write(f"\rNext cycle in: {format_remaining(remaining)}")
        stream.flush()
        await asyncio.sleep(1)
        remaining -= 1

    stream.write("\r" + " " * 40 + "\r")
    stream.flush()
    logger.info("Countdown completed!")
