from __future__ import annotations

import asyncio

import discord
from discord.ext import commands

from interactive.paging import paginate_lines
from interactive.paging import show_text_pages
from jobs.service import resolve_channel
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates

TIMEOUT_REPLY = "Timeout :(, try again"


async def wait_for_pick_reaction(deps: CommandDeps, ctx: commands.Context):
    """The next reaction the invoking user adds anywhere in this guild, or None on timeout."""
    guild_id = int(ctx.guild.id)
    user_id = int(ctx.author.id)

    def check(payload) -> bool:
        return int(payload.guild_id or 0) == guild_id and int(payload.user_id) == user_id

    try:
        return await deps.wait_for("raw_reaction_add", check=check, timeout=deps.reaction_pick_timeout)
    except asyncio.TimeoutError:
        return None


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.group(name="reaction_role", invoke_without_command=True)
    @commands.guild_only()
    async def reaction_role(ctx: commands.Context):
        p = deps.command_prefix
        await ctx.send(
            f"Usage: `{p}reaction_role add <role> <message> <emoji>`, `{p}reaction_role add_easy <role>`, "
            f"`{p}reaction_role remove`, `{p}reaction_role list`"
        )

    @reaction_role.command(name="add")
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def reaction_role_add(ctx: commands.Context, role: discord.Role, message: discord.Message, emoji: str):
        reply = await deps.reaction_roles.add_binding(
            guild=ctx.guild,
            role_id=role.id,
            message=message,
            emoji=discord.PartialEmoji.from_str(emoji),
        )
        await ctx.reply(reply, mention_author=False)

    @reaction_role.command(name="add_easy")
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def reaction_role_add_easy(ctx: commands.Context, role: discord.Role):
        await ctx.send("React to the message with the emoji")
        payload = await wait_for_pick_reaction(deps, ctx)
        if payload is None:
            await ctx.reply(TIMEOUT_REPLY, mention_author=False)
            return

        channel = await resolve_channel(deps.client, payload.channel_id)
        if channel is None:
            await ctx.reply("I can't see that channel.", mention_author=False)
            return
        message = await channel.fetch_message(payload.message_id)
        try:
            await message.remove_reaction(payload.emoji, ctx.author)
        except discord.HTTPException as e:
            print(f"[ReactionRoles] could not remove pick reaction on message={message.id}: {e}")

        reply = await deps.reaction_roles.add_binding(
            guild=ctx.guild,
            role_id=role.id,
            message=message,
            emoji=payload.emoji,
        )
        await ctx.reply(reply, mention_author=False)

    @reaction_role.command(name="remove")
    @commands.guild_only()
    @commands.has_permissions(manage_roles=True)
    async def reaction_role_remove(ctx: commands.Context):
        await ctx.send("React to the message")
        payload = await wait_for_pick_reaction(deps, ctx)
        if payload is None:
            await ctx.send(TIMEOUT_REPLY)
            return

        channel = await resolve_channel(deps.client, payload.channel_id)
        if channel is not None:
            try:
                await channel.get_partial_message(payload.message_id).clear_reaction(payload.emoji)
            except discord.NotFound:
                pass  # already gone
            except discord.HTTPException as e:
                print(f"[ReactionRoles] could not clear {payload.emoji} on message={payload.message_id}: {e}")

        removed = await deps.reaction_roles.remove_binding(message_id=payload.message_id, emoji=payload.emoji)
        print(
            f"[ReactionRoles] remove message={payload.message_id} emoji={payload.emoji} "
            f"binding_deleted={removed}"
        )
        await ctx.send("Done✅")

    @reaction_role.command(name="list")
    @commands.guild_only()
    async def reaction_role_list(ctx: commands.Context):
        all_guilds = gates.user_is_owner(ctx.author)
        lines = await deps.reaction_roles.list_binding_lines(
            guild=ctx.guild,
            all_guilds=all_guilds,
            client=deps.client,
        )
        if not lines:
            await ctx.send("No reaction roles yet.")
            return
        pages = paginate_lines(["**Message | Emoji | Role**", *lines])
        await show_text_pages(ctx, pages, wait_for=deps.wait_for, timeout=deps.collector_timeout)

    @bot.command(name="emoji_usage", aliases=["emojis"])
    @commands.guild_only()
    async def emoji_usage(ctx: commands.Context):
        lines = await deps.reaction_roles.emoji_usage_lines(ctx.guild)
        if not lines:
            await ctx.reply("No emoji usage recorded yet.", mention_author=False)
            return
        pages = paginate_lines(["**Emoji | Usage Count**", *lines])
        await show_text_pages(ctx, pages, wait_for=deps.wait_for, timeout=deps.collector_timeout)
