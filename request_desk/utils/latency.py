"""Modeled backend latency for asynchronous commands"""

import asyncio
from typing import Optional


async def simulate_latency(seconds: float, timeout: Optional[float] = None) -> None:
    """
    Wait for the modeled round trip.

    Raises asyncio.TimeoutError when ``timeout`` elapses first. Callers
    mutate state only after this returns, so a timeout or a cancelled task
    leaves everything untouched.
    """
    if timeout is None:
        await asyncio.sleep(seconds)
        return
    await asyncio.wait_for(asyncio.sleep(seconds), timeout=timeout)
