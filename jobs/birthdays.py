from __future__ import annotations

import asyncio
from datetime import date

from community.birthdays_store import take_due_birthdays_sync
from config.defaults import BIRTHDAY_MESSAGE
from jobs.service import resolve_channel
from misc.discord_format import user_mention
from misc.discord_timestamps import local_today


async def congratulate_birthdays(
    *,
    client,
    db_lock,
    db_conn,
    event_channel_per_guild: dict[int, int],
    timezone_name: str,
    today: date | None = None,
) -> int:
    """Post one birthday message per guild. Returns how many guild messages went out."""
    if today is None:
        today = local_today(timezone_name)
    async with db_lock:
        due = await asyncio.to_thread(take_due_birthdays_sync, db_conn, today)
    if not due:
        return 0

    by_guild: dict[int, list[int]] = {}
    for guild_id, user_id in due:
        by_guild.setdefault(guild_id, []).append(user_id)

    sent = 0
    for guild_id, user_ids in by_guild.items():
        channel_id = event_channel_per_guild.get(guild_id)
        if not channel_id:
            print(f"[Birthdays] no event channel configured for guild={guild_id}; skipped {len(user_ids)} wishes")
            continue
        try:
            channel = await resolve_channel(client, channel_id)
            if channel is None:
                raise RuntimeError(f"channel {channel_id} not found")
            mentions = ", ".join(user_mention(u) for u in user_ids)
            await channel.send(BIRTHDAY_MESSAGE.format(mentions=mentions))
            sent += 1
        except Exception as e:
            print(f"[Birthdays] failed congratulating guild={guild_id} channel={channel_id}: {e}")
    print(f"[Birthdays] congratulated {len(due)} users in {sent} guilds")
    return sent
