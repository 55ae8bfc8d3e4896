from __future__ import annotations

import asyncio

from discord.ext import commands

from community.birthdays_store import delete_birthday_sync
from community.birthdays_store import upsert_birthday_sync
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_timestamps import parse_birthday
from misc.errors import UserError


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.group(name="birthday", invoke_without_command=True)
    @commands.guild_only()
    async def birthday(ctx: commands.Context):
        p = deps.command_prefix
        await ctx.send(f"Usage: `{p}birthday add <YYYY-MM-DD|DD.MM.YYYY>`, `{p}birthday delete`")

    @birthday.command(name="add")
    @commands.guild_only()
    async def birthday_add(ctx: commands.Context, date: str):
        try:
            day = parse_birthday(date)
        except ValueError as e:
            raise UserError(str(e)) from None
        async with deps.db_lock:
            await asyncio.to_thread(
                upsert_birthday_sync,
                deps.db_conn,
                user_id=int(ctx.author.id),
                guild_id=int(ctx.guild.id),
                birthday=day,
            )
        print(f"[Birthdays] user={ctx.author.id} guild={ctx.guild.id} set birthday")
        await ctx.reply(f"Added your birthday on {day.strftime('%d.%m.')}", mention_author=False)

    @birthday.command(name="delete")
    async def birthday_delete(ctx: commands.Context):
        async with deps.db_lock:
            await asyncio.to_thread(delete_birthday_sync, deps.db_conn, int(ctx.author.id))
        await ctx.reply("No more congratulations :(", mention_author=False)
