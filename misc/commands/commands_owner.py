from __future__ import annotations

import asyncio
from datetime import datetime

from discord.ext import commands

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.discord_timestamps import format_discord_timestamp

MIGRATION_LIST_MAX = 200


def format_migration_line(version: str, name: str, applied_at_utc: str) -> str:
    try:
        applied = format_discord_timestamp(datetime.fromisoformat(applied_at_utc), style="R")
    except ValueError:
        applied = applied_at_utc
    return f"`{version}` {name} (applied {applied})"


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="dbmigrations")
    async def cmd_dbmigrations(ctx: commands.Context, limit: int = 30):
        gates.require_owner(ctx.author)

        lim = max(1, min(int(limit or 30), MIGRATION_LIST_MAX))
        async with deps.db_lock:
            rows = await asyncio.to_thread(deps.list_schema_migrations_sync, deps.db_conn, lim)

        if not rows:
            await ctx.send("No schema migrations found.")
            return

        lines = [f"**Schema migrations** (latest {len(rows)})"]
        lines.extend(format_migration_line(str(v), str(n), str(a)) for v, n, a in rows)
        await deps.send_chunked(ctx.channel, "\n".join(lines))
