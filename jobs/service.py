from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from misc.discord_timestamps import seconds_until_next_local_midnight


async def resolve_channel(client, channel_id: int):
    if int(channel_id or 0) <= 0:
        return None
    ch = client.get_channel(int(channel_id))
    if ch is not None:
        return ch
    try:
        return await client.fetch_channel(int(channel_id))
    except Exception as e:
        print(f"[Jobs] could not fetch channel {channel_id}: {e}")
        return None


async def fixed_interval_loop(
    *,
    name: str,
    tick: Callable[[], Awaitable[object]],
    interval_seconds: int,
    min_interval_seconds: int = 10,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    max_ticks: int | None = None,
) -> None:
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        try:
            await tick()
        except Exception as e:
            print(f"[{name}] loop error: {e}")
        ticks += 1
        if max_ticks is not None and ticks >= max_ticks:
            break
        await sleep(max(min_interval_seconds, int(interval_seconds)))


async def midnight_loop(
    *,
    name: str,
    tick: Callable[[], Awaitable[object]],
    timezone_name: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    max_ticks: int | None = None,
) -> None:
    """Runs tick once right away, then shortly after every local midnight."""
    ticks = 0
    while max_ticks is None or ticks < max_ticks:
        try:
            await tick()
        except Exception as e:
            print(f"[{name}] loop error: {e}")
        ticks += 1
        if max_ticks is not None and ticks >= max_ticks:
            break
        # +1s so the wake-up lands on the new local date
        await sleep(seconds_until_next_local_midnight(timezone_name) + 1)
