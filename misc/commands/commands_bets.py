from __future__ import annotations

import discord
from discord.ext import commands

from interactive.paging import paginate_lines
from interactive.paging import show_text_pages
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_timestamps import format_unix_timestamp
from misc.discord_timestamps import parse_duration_or_date
from misc.errors import UserError

MAX_DESCRIPTION_CHARS = 4096


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    bets = deps.bet_service

    @bot.group(name="bet", invoke_without_command=True)
    @commands.guild_only()
    async def bet(ctx: commands.Context):
        p = deps.command_prefix
        await ctx.send(
            f"Usage: `{p}bet create <end> <description>`, `{p}bet join [id]`, `{p}bet watch [id]`, "
            f"`{p}bet status [id]`, `{p}bet list`"
        )

    @bet.command(name="create")
    @commands.guild_only()
    async def bet_create(ctx: commands.Context, end: str, *, description: str):
        description = description.strip()
        if not description or len(description) > MAX_DESCRIPTION_CHARS:
            raise UserError(f"The description must be 1-{MAX_DESCRIPTION_CHARS} characters.")
        try:
            expiry = parse_duration_or_date(end, timezone_name=deps.timezone_name)
        except ValueError as e:
            raise UserError(str(e)) from None

        created = await bets.create(
            guild_id=int(ctx.guild.id),
            channel_id=int(ctx.channel.id),
            author_id=int(ctx.author.id),
            description=description,
            expiry_ts=int(expiry.timestamp()),
        )
        message = await ctx.reply(
            embed=await bets.embed_for(created),
            mention_author=False,
            allowed_mentions=discord.AllowedMentions.none(),
        )
        await bets.attach_message(created["id"], message.id)

    @bet.command(name="join")
    @commands.guild_only()
    async def bet_join(ctx: commands.Context, bet_id: int | None = None):
        target = await bets.resolve(bet_id, guild_id=int(ctx.guild.id), channel_id=int(ctx.channel.id))
        await bets.join(target, int(ctx.author.id))
        await bets.refresh_message(deps.client, target)
        await ctx.send(
            embed=discord.Embed(
                title="Joined Bet",
                description=f"You joined the bet #{target['id']}: **{target['description']}**",
                colour=discord.Colour.dark_green(),
            )
        )

    @bet.command(name="watch")
    @commands.guild_only()
    async def bet_watch(ctx: commands.Context, bet_id: int | None = None):
        target = await bets.resolve(bet_id, guild_id=int(ctx.guild.id), channel_id=int(ctx.channel.id))
        await bets.watch(target, int(ctx.author.id))
        await bets.refresh_message(deps.client, target)
        await ctx.send(
            embed=discord.Embed(
                title="Watching Bet",
                description=f"You are now watching the bet #{target['id']}: **{target['description']}**",
                colour=discord.Colour.blue(),
            )
        )

    @bet.command(name="status")
    @commands.guild_only()
    async def bet_status(ctx: commands.Context, bet_id: int | None = None):
        target = await bets.resolve(bet_id, guild_id=int(ctx.guild.id), channel_id=int(ctx.channel.id))
        await ctx.send(
            embed=await bets.embed_for(target, with_link=True),
            allowed_mentions=discord.AllowedMentions.none(),
        )

    @bet.command(name="list")
    @commands.guild_only()
    async def bet_list(ctx: commands.Context):
        rows = await bets.list_for_guild(int(ctx.guild.id))
        if not rows:
            await ctx.send("No active bets found on this server.")
            return
        lines = ["**Active Bets**"]
        for row in rows:
            lines.append(f"ID: {row['id']} {row['description']} (Ends {format_unix_timestamp(row['expiry_ts'], 'R')})")
        await show_text_pages(ctx, paginate_lines(lines), wait_for=deps.wait_for, timeout=deps.collector_timeout)
