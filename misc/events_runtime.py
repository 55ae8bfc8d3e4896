from __future__ import annotations

import asyncio

import discord
from discord.ext import commands

from misc.errors import UserError
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps

GENERIC_ERROR_REPLY = "Something went wrong :("


def describe_command_error(error: Exception) -> str | None:
    """User-facing reply for a command error, or None when it should stay silent."""
    if isinstance(error, commands.CommandInvokeError) and error.original is not None:
        error = error.original
    if isinstance(error, commands.CommandNotFound):
        return None
    if isinstance(error, UserError):
        return str(error)
    if isinstance(error, commands.MissingPermissions):
        return "You don't have the permissions to do that."
    if isinstance(error, commands.NoPrivateMessage):
        return "This command only works in a server."
    if isinstance(error, commands.UserInputError):
        return f"{error}"
    if isinstance(error, commands.CheckFailure):
        return "You can't use that command here."
    return GENERIC_ERROR_REPLY


def _start_task(bot: commands.Bot, attr: str, factory, label: str) -> None:
    if getattr(bot, attr, None):
        return
    setattr(bot, attr, asyncio.create_task(factory()))
    print(f"[{label}] loop started")


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"Ferris is online as {bot.user}")
        try:
            loaded = await deps.reaction_roles.load_index()
            print(f"[ReactionRoles] index loaded with {loaded} messages")
        except Exception as e:
            print(f"[ReactionRoles] failed loading index: {e}")

        _start_task(bot, "_reminder_task", boot.reminder_loop_func, "Reminders")
        _start_task(bot, "_bet_task", boot.bet_loop_func, "Bets")
        _start_task(bot, "_birthday_task", boot.birthday_loop_func, "Birthdays")
        if boot.access_enabled and boot.access_loop_func is not None:
            _start_task(bot, "_access_task", boot.access_loop_func, "Access")

    @bot.event
    async def on_raw_reaction_add(payload: discord.RawReactionActionEvent):
        try:
            await deps.reaction_roles.on_reaction(bot, payload, added=True)
        except Exception as e:
            print(f"[ReactionRoles] add handler failed message={payload.message_id} emoji={payload.emoji}: {e}")

        member = getattr(payload, "member", None)
        if member is not None and getattr(member, "bot", False):
            return
        await deps.reaction_roles.track_emoji_usage(payload)
        try:
            await deps.activity.record(guild_id=payload.guild_id, user_id=int(payload.user_id))
        except Exception as e:
            print(f"[Activity] reaction activity failed user={payload.user_id}: {e}")

    @bot.event
    async def on_raw_reaction_remove(payload: discord.RawReactionActionEvent):
        try:
            await deps.reaction_roles.on_reaction(bot, payload, added=False)
        except Exception as e:
            print(f"[ReactionRoles] remove handler failed message={payload.message_id} emoji={payload.emoji}: {e}")

    @bot.event
    async def on_message(message: discord.Message):
        if message.author.bot:
            return

        guild_id = message.guild.id if message.guild is not None else None
        try:
            await deps.activity.record(guild_id=guild_id, user_id=int(message.author.id), message=True)
        except Exception as e:
            print(f"[Activity] message activity failed user={message.author.id}: {e}")

        await bot.process_commands(message)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: Exception):
        reply = describe_command_error(error)
        if reply is None:
            return
        if reply == GENERIC_ERROR_REPLY:
            original = getattr(error, "original", error)
            print(f"[Commands] {ctx.command} by user={ctx.author.id} failed: {original!r}")
        else:
            print(f"[Commands] {ctx.command} by user={ctx.author.id}: {reply}")
        try:
            await ctx.reply(reply, mention_author=False)
        except discord.HTTPException as e:
            print(f"[Commands] could not send error reply: {e}")
