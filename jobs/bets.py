from __future__ import annotations

import asyncio
import time

import discord

from community.bets_store import take_expired_bets_sync
from jobs.service import resolve_channel
from misc.discord_format import user_mention
from misc.discord_timestamps import format_unix_timestamp


def build_expired_bet_message(bet: dict) -> tuple[str, discord.Embed]:
    participants = bet.get("participants") or []
    joined = [user_mention(p["user_id"]) for p in participants if not p["watching"]]
    embed = discord.Embed(
        title=f"Bet #{bet['id']} is over!",
        description=bet["description"],
        colour=discord.Colour.gold(),
    )
    embed.add_field(name="Created at", value=format_unix_timestamp(bet["created_ts"], "R"), inline=True)
    embed.add_field(name="Participants", value=", ".join(joined) or "No participants", inline=False)
    # ping participants and watchers
    content = ", ".join(user_mention(p["user_id"]) for p in participants)
    return content, embed


async def announce_expired_bets(*, client, db_lock, db_conn, now_ts: int | None = None) -> int:
    if now_ts is None:
        now_ts = int(time.time())
    async with db_lock:
        expired = await asyncio.to_thread(take_expired_bets_sync, db_conn, now_ts)
    if not expired:
        return 0

    announced = 0
    for bet in expired:
        try:
            channel = await resolve_channel(client, bet["channel_id"])
            if channel is None:
                raise RuntimeError(f"channel {bet['channel_id']} not found")
            content, embed = build_expired_bet_message(bet)
            reference = None
            if bet["message_id"]:
                reference = discord.MessageReference(
                    message_id=bet["message_id"],
                    channel_id=bet["channel_id"],
                    fail_if_not_exists=False,
                )
            await channel.send(
                content or None,
                embed=embed,
                reference=reference,
                allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            )
            announced += 1
        except Exception as e:
            print(f"[Bets] failed announcing expired bet id={bet['id']} channel={bet['channel_id']}: {e}")
    print(f"[Bets] announced {announced}/{len(expired)} expired bets")
    return announced
