from __future__ import annotations

import asyncio
import random
import sqlite3
import time

import discord

from community.bets_store import create_bet_sync
from community.bets_store import fetch_bet_sync
from community.bets_store import fetch_latest_bet_in_channel_sync
from community.bets_store import fetch_participation_sync
from community.bets_store import join_bet_sync
from community.bets_store import list_bets_sync
from community.bets_store import list_participants_sync
from community.bets_store import set_bet_message_sync
from community.bets_store import watch_bet_sync
from jobs.service import resolve_channel
from misc.discord_format import message_link
from misc.discord_format import user_mention
from misc.discord_timestamps import format_unix_timestamp
from misc.errors import UserError


def random_colour() -> discord.Colour:
    return discord.Colour(random.randint(0, 0xFFFFFF))


def build_bet_embed(bet: dict, participants: list[dict], *, prefix: str = "!") -> discord.Embed:
    accepted = [user_mention(p["user_id"]) for p in participants if not p["watching"]]
    watching = [user_mention(p["user_id"]) for p in participants if p["watching"]]
    embed = discord.Embed(
        title=f"Bet #{bet['id']}",
        description=bet["description"],
        colour=random_colour(),
    )
    embed.add_field(name="Expires", value=format_unix_timestamp(bet["expiry_ts"], "R"), inline=True)
    embed.add_field(name="Participants", value=", ".join(accepted) or "No one yet", inline=False)
    if watching:
        embed.add_field(name="Watching", value=", ".join(watching), inline=False)
    embed.set_footer(text=f"Use {prefix}bet join {bet['id']} (or just {prefix}bet join)")
    return embed


class BetService:
    def __init__(self, *, db_lock: asyncio.Lock, db_conn: sqlite3.Connection, prefix: str = "!"):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.prefix = prefix

    async def create(self, *, guild_id: int, channel_id: int, author_id: int, description: str, expiry_ts: int) -> dict:
        async with self.db_lock:
            bet_id = await asyncio.to_thread(
                create_bet_sync,
                self.db_conn,
                guild_id=guild_id,
                channel_id=channel_id,
                author_id=author_id,
                description=description,
                expiry_ts=expiry_ts,
                created_ts=int(time.time()),
            )
            bet = await asyncio.to_thread(fetch_bet_sync, self.db_conn, bet_id, guild_id)
        print(f"[Bets] created bet id={bet_id} guild={guild_id} author={author_id} expiry_ts={expiry_ts}")
        return bet

    async def attach_message(self, bet_id: int, message_id: int) -> None:
        async with self.db_lock:
            await asyncio.to_thread(set_bet_message_sync, self.db_conn, bet_id, message_id)

    async def resolve(self, bet_id: int | None, *, guild_id: int, channel_id: int) -> dict:
        """The bet with this id in this guild, or the newest bet in the channel when no id is given."""
        async with self.db_lock:
            if bet_id is not None:
                bet = await asyncio.to_thread(fetch_bet_sync, self.db_conn, bet_id, guild_id)
            else:
                bet = await asyncio.to_thread(fetch_latest_bet_in_channel_sync, self.db_conn, channel_id)
        if bet is None:
            raise UserError("Bet not found" if bet_id is not None else "No active bets found in this channel")
        return bet

    async def participants(self, bet_id: int) -> list[dict]:
        async with self.db_lock:
            return await asyncio.to_thread(list_participants_sync, self.db_conn, bet_id)

    async def join(self, bet: dict, user_id: int) -> None:
        async with self.db_lock:
            current = await asyncio.to_thread(fetch_participation_sync, self.db_conn, bet["id"], user_id)
            if current is not None and not current["watching"]:
                raise UserError("You have already joined this bet!")
            await asyncio.to_thread(join_bet_sync, self.db_conn, bet["id"], user_id)

    async def watch(self, bet: dict, user_id: int) -> None:
        async with self.db_lock:
            try:
                await asyncio.to_thread(watch_bet_sync, self.db_conn, bet["id"], user_id)
            except sqlite3.IntegrityError:
                raise UserError("You are already participating in this bet!") from None

    async def list_for_guild(self, guild_id: int) -> list[dict]:
        async with self.db_lock:
            return await asyncio.to_thread(list_bets_sync, self.db_conn, guild_id)

    async def embed_for(self, bet: dict, *, with_link: bool = False) -> discord.Embed:
        embed = build_bet_embed(bet, await self.participants(bet["id"]), prefix=self.prefix)
        if with_link and bet["message_id"]:
            link = message_link(bet["guild_id"], bet["channel_id"], bet["message_id"])
            embed.add_field(name="Original Message", value=f"[Jump to Bet]({link})", inline=False)
        return embed

    async def refresh_message(self, client, bet: dict) -> None:
        """Re-render the bet's own message; failures are logged only."""
        if not bet["message_id"]:
            return
        try:
            channel = await resolve_channel(client, bet["channel_id"])
            if channel is None:
                raise RuntimeError(f"channel {bet['channel_id']} not found")
            message = await channel.fetch_message(bet["message_id"])
            await message.edit(embed=await self.embed_for(bet))
        except Exception as e:
            print(f"[Bets] failed to update bet message id={bet['id']}: {e}")
