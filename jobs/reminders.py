from __future__ import annotations

import asyncio
import time

import discord

from community.reminders_store import take_due_reminders_sync
from jobs.service import resolve_channel
from misc.discord_format import user_mention


USERS_ONLY = discord.AllowedMentions(everyone=False, roles=False, users=True)


async def send_due_reminders(*, client, db_lock, db_conn, now_ts: int | None = None) -> int:
    """Consume every due reminder and post it. Returns the number delivered."""
    if now_ts is None:
        now_ts = int(time.time())
    async with db_lock:
        due = await asyncio.to_thread(take_due_reminders_sync, db_conn, now_ts)
    if not due:
        return 0

    delivered = 0
    for reminder in due:
        try:
            channel = await resolve_channel(client, reminder["channel_id"])
            if channel is None:
                raise RuntimeError(f"channel {reminder['channel_id']} not found")
            await channel.send(
                f"Reminder for {reminder['content']} | {user_mention(reminder['user_id'])}",
                reference=discord.MessageReference(
                    message_id=reminder["message_id"],
                    channel_id=reminder["channel_id"],
                    fail_if_not_exists=False,
                ),
                allowed_mentions=USERS_ONLY,
            )
            delivered += 1
        except Exception as e:
            print(
                f"[Reminders] failed sending reminder id={reminder['id']} user={reminder['user_id']} "
                f"channel={reminder['channel_id']}: {e}"
            )
    print(f"[Reminders] sent {delivered}/{len(due)} due reminders")
    return delivered
