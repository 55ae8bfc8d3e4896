from __future__ import annotations

import asyncio
import time

import discord

from community.activity_store import active_user_ids_sync
from community.activity_store import touch_activity_sync
from config.feature_config import AccessConfig
from jobs.service import resolve_channel


def next_lower_role(member_role_ids: set[int], descending_roles: list[int]) -> tuple[int, int] | None:
    """(current, lower) for the highest ladder role the member holds; the lowest rung never demotes."""
    for i, role_id in enumerate(descending_roles[:-1]):
        if role_id in member_role_ids:
            return role_id, descending_roles[i + 1]
    return None


async def demote_inactive_members(
    *,
    client,
    db_lock,
    db_conn,
    access: dict[int, AccessConfig],
    now_ts: int | None = None,
) -> int:
    if now_ts is None:
        now_ts = int(time.time())

    total = 0
    for guild_id, cfg in access.items():
        if len(cfg.descending_roles) < 2:
            print(f"[Access] guild={guild_id} needs at least 2 descending roles; skipped")
            continue
        guild = client.get_guild(int(guild_id))
        if guild is None:
            print(f"[Access] guild={guild_id} not available; skipped")
            continue

        since_ts = now_ts - int(cfg.active_days) * 86400
        async with db_lock:
            active = await asyncio.to_thread(active_user_ids_sync, db_conn, guild_id=guild_id, since_ts=since_ts)

        count = 0
        try:
            async for member in guild.fetch_members(limit=None):
                if getattr(member, "bot", False) or int(member.id) in active:
                    continue
                step = next_lower_role({int(r.id) for r in member.roles}, cfg.descending_roles)
                if step is None:
                    continue
                current, lower = step
                print(f"[Access] demoting user={member.id} guild={guild_id} role={current} -> {lower}")
                # restart the clock so the next sweep does not demote again right away
                async with db_lock:
                    await asyncio.to_thread(
                        touch_activity_sync,
                        db_conn,
                        user_id=int(member.id),
                        guild_id=int(guild_id),
                        now_ts=now_ts,
                    )
                try:
                    await member.add_roles(discord.Object(id=lower), reason="Inactive")
                    await member.remove_roles(discord.Object(id=current), reason="Inactive")
                except discord.HTTPException as e:
                    print(f"[Access] failed demoting user={member.id} guild={guild_id}: {e}")
                    continue
                count += 1
        except discord.HTTPException as e:
            print(f"[Access] member listing failed for guild={guild_id}: {e}")

        if count and cfg.log_channel_id:
            channel = await resolve_channel(client, cfg.log_channel_id)
            if channel is not None:
                try:
                    await channel.send(f"{count} users were demoted for being inactive")
                except discord.HTTPException as e:
                    print(f"[Access] failed logging demotions guild={guild_id} channel={cfg.log_channel_id}: {e}")
        total += count
    print(f"[Access] checked {len(access)} guilds, demoted {total}")
    return total
