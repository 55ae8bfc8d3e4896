from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import discord
from discord.ext import commands

from community.reminders_store import delete_reminders_by_prefix_sync
from community.reminders_store import insert_reminder_sync
from community.reminders_store import list_reminders_sync
from config.defaults import DEFAULT_REMINDER_DELAY_SECONDS
from interactive.paging import paginate_lines
from interactive.paging import show_text_pages
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_format import user_mention
from misc.discord_timestamps import format_unix_timestamp
from misc.discord_timestamps import parse_duration_or_date
from misc.errors import UserError


def split_when_and_text(raw: str, *, timezone_name: str, now: datetime | None = None) -> tuple[int, str]:
    """
    Split "[when] <text>" into (due unix ts, text).

    The longest leading prefix of up to two tokens that parses as a duration
    or date wins; without one the reminder is due in one hour.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    tokens = str(raw or "").split()
    if not tokens:
        raise UserError("What should I remind you of?")
    for take in (2, 1):
        if len(tokens) <= take:
            continue
        head = " ".join(tokens[:take])
        try:
            due = parse_duration_or_date(head, timezone_name=timezone_name, now=now)
        except ValueError:
            continue
        if due <= now:
            raise UserError("That time is in the past.")
        return int(due.timestamp()), " ".join(tokens[take:])
    return int(now.timestamp()) + DEFAULT_REMINDER_DELAY_SECONDS, " ".join(tokens)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.group(name="reminder", invoke_without_command=True)
    async def reminder(ctx: commands.Context):
        p = deps.command_prefix
        await ctx.send(
            f"Usage: `{p}reminder add [when] <text>`, `{p}reminder list [@user]`, "
            f"`{p}reminder delete \"<start of text>\" [all]`"
        )

    @reminder.command(name="add")
    async def reminder_add(ctx: commands.Context, *, text: str):
        due_ts, content = split_when_and_text(text, timezone_name=deps.timezone_name)
        reply = await ctx.send(f"Reminder set for {format_unix_timestamp(due_ts, 'f')}")
        async with deps.db_lock:
            reminder_id = await asyncio.to_thread(
                insert_reminder_sync,
                deps.db_conn,
                channel_id=int(ctx.channel.id),
                message_id=int(reply.id),
                user_id=int(ctx.author.id),
                content=content,
                due_ts=due_ts,
            )
        print(f"[Reminders] added id={reminder_id} user={ctx.author.id} due_ts={due_ts}")

    @reminder.command(name="list")
    async def reminder_list(ctx: commands.Context, user: discord.User | None = None):
        async with deps.db_lock:
            rows = await asyncio.to_thread(
                list_reminders_sync,
                deps.db_conn,
                int(user.id) if user is not None else None,
            )
        if not rows:
            await ctx.send("No reminders.")
            return
        title = f"**Reminders for {user.name}**" if user is not None else "**Reminders**"
        lines = [title]
        for r in rows:
            lines.append(f"{format_unix_timestamp(r['due_ts'], 'f')} {r['content']} ~ {user_mention(r['user_id'])}")
        await show_text_pages(ctx, paginate_lines(lines), wait_for=deps.wait_for, timeout=deps.collector_timeout)

    @reminder.command(name="delete")
    async def reminder_delete(ctx: commands.Context, prefix: str, everyone: str = ""):
        delete_all = everyone.strip().lower() in ("all", "true", "yes") and gates.user_is_owner(ctx.author)
        async with deps.db_lock:
            deleted = await asyncio.to_thread(
                delete_reminders_by_prefix_sync,
                deps.db_conn,
                prefix=prefix,
                user_id=None if delete_all else int(ctx.author.id),
            )
        print(f"[Reminders] user={ctx.author.id} deleted {deleted} (all={delete_all}) prefix={prefix!r}")
        await ctx.reply(f"Deleted {deleted} reminder(s)", mention_author=False)
