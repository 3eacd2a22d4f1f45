"""Observation of the bridged balance on the destination chain."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


async def observe_settled_balance(
    read: Callable[[], Awaitable[int]],
    *,
    attempts: int = 1,
    interval: float = 15.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log: Optional[logging.Logger] = None,
) -> int:
    """Read the balance until two consecutive non-zero reads agree.

    With ``attempts == 1`` this is a single read. Otherwise the last value read
    is returned once the attempt budget is spent, even if it never stabilised.
    """

    log = log or logger
    current = await read()
    if attempts <= 1:
        return current

    for attempt in range(2, attempts + 1):
        await sleep(interval)
        previous, current = current, await read()
        log.info("Destination balance read %s/%s: %s", attempt, attempts, current)
        if current > 0 and current == previous:
            return current

    log.warning("Destination balance did not stabilise after %s reads; using %s", attempts, current)
    return current
