from __future__ import annotations

import asyncio
import sqlite3
import time
from datetime import datetime, timezone

import discord
from discord.ext import commands

from community.features_store import Feature
from community.features_store import FeatureState
from community.features_store import add_feature_sync
from community.features_store import count_features_sync
from community.features_store import delete_feature_sync
from community.features_store import list_features_sync
from community.features_store import update_feature_state_sync
from config.defaults import FEATURES_PER_PAGE
from interactive.collector import CONTINUE
from interactive.collector import Collector
from interactive.collector import Recognized
from interactive.collector import build_view
from interactive.collector import interaction_values
from interactive.collector import run_collector
from interactive.paging import FILTER
from interactive.paging import NEXT
from interactive.paging import PREV
from interactive.paging import REFRESH
from interactive.paging import Pager
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.errors import UserError


def feature_embeds(features: list[Feature], state: FeatureState) -> list[discord.Embed]:
    if not features:
        return [discord.Embed(title="No features found", description="No features found")]
    embeds = []
    for feature in features:
        embed = discord.Embed(
            title=feature.name,
            colour=discord.Colour(feature.state.colour),
            timestamp=datetime.fromtimestamp(feature.created_ts, tz=timezone.utc),
        )
        if state == FeatureState.ALL:
            embed.description = feature.state.label
        embeds.append(embed)
    return embeds


def feature_page_content(state: FeatureState, offset: int, total: int) -> str:
    if state == FeatureState.ALL:
        return f"**All** Features {offset}/{total}"
    return f"**{state.label}** {offset}/{total}"


def state_select_options() -> list[discord.SelectOption]:
    return [
        discord.SelectOption(label=state.label, value=str(int(state)), emoji=state.emoji)
        for state in FeatureState
    ]


class FeatureBrowser:
    """State of one paged feature listing: current filter, pager and visible page."""

    def __init__(self, *, db_lock: asyncio.Lock, db_conn: sqlite3.Connection, per_page: int = FEATURES_PER_PAGE):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.state = FeatureState.ALL
        self.pager = Pager(total=0, page_size=per_page)
        self.features: list[Feature] = []

    async def recount(self) -> None:
        async with self.db_lock:
            total = await asyncio.to_thread(count_features_sync, self.db_conn, self.state)
        self.pager.total = total

    async def load_page(self) -> None:
        async with self.db_lock:
            self.features = await asyncio.to_thread(
                list_features_sync,
                self.db_conn,
                state=self.state,
                offset=self.pager.offset,
                limit=self.pager.page_size,
            )

    def render(self) -> dict:
        return {
            "content": feature_page_content(self.state, self.pager.offset, self.pager.total),
            "embeds": feature_embeds(self.features, self.state),
        }

    async def on_control(self, outcome: Recognized) -> bool:
        interaction = outcome.interaction
        if outcome.role == NEXT:
            self.pager.next()
        elif outcome.role == PREV:
            self.pager.prev()
        elif outcome.role == REFRESH:
            await self.recount()
            self.pager.clamp()
        elif outcome.role == FILTER:
            values = interaction_values(interaction)
            try:
                new_state = FeatureState(int(values[0]))
            except (IndexError, ValueError):
                new_state = FeatureState.ALL
            if new_state == self.state:
                await interaction.response.send_message("Already showing that state", ephemeral=True)
                return CONTINUE
            self.state = new_state
            self.pager.reset()
            await self.recount()

        await self.load_page()
        await interaction.response.edit_message(**self.render())
        return CONTINUE


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.group(name="features", invoke_without_command=True)
    async def features(ctx: commands.Context):
        p = deps.command_prefix
        await ctx.send(
            f"Usage: `{p}features list`, `{p}features add <name>`, "
            f"`{p}features update <name> <state>`, `{p}features delete <name>`"
        )

    @features.command(name="add")
    async def features_add(ctx: commands.Context, *, name: str):
        name = name.strip()
        if not name:
            raise UserError("A feature needs a name.")
        try:
            async with deps.db_lock:
                await asyncio.to_thread(add_feature_sync, deps.db_conn, name=name, created_ts=int(time.time()))
        except sqlite3.IntegrityError:
            raise UserError(f"There already is a feature named {name}") from None
        print(f"[Features] {ctx.author} added feature {name!r}")
        await ctx.send(f"Added feature {name}")

    @features.command(name="update")
    async def features_update(ctx: commands.Context, name: str, state: str):
        gates.require_owner(ctx.author)
        try:
            new_state = FeatureState.parse(state)
        except ValueError as e:
            raise UserError(str(e)) from None
        if new_state == FeatureState.ALL:
            raise UserError("Pick a concrete state, not All.")
        async with deps.db_lock:
            updated = await asyncio.to_thread(update_feature_state_sync, deps.db_conn, name=name, state=new_state)
        if updated == 0:
            await ctx.send(f"No feature named {name}")
            return
        await ctx.send(f"Updated feature {name}")

    @features.command(name="delete")
    async def features_delete(ctx: commands.Context, *, name: str):
        gates.require_owner(ctx.author)
        async with deps.db_lock:
            await asyncio.to_thread(delete_feature_sync, deps.db_conn, name.strip())
        await ctx.send(f"Deleted feature {name.strip()}")

    @features.command(name="list")
    async def features_list(ctx: commands.Context):
        browser = FeatureBrowser(db_lock=deps.db_lock, db_conn=deps.db_conn)
        await browser.recount()
        await browser.load_page()

        collector = Collector(
            wait_for=deps.wait_for,
            correlation=ctx.message.id,
            roles=(PREV, REFRESH, NEXT, FILTER),
            channel_id=ctx.channel.id,
            timeout=deps.collector_timeout,
        )
        view = build_view(
            collector,
            buttons=[
                (PREV, {"emoji": "◀", "style": discord.ButtonStyle.secondary}),
                (REFRESH, {"emoji": "🔄", "style": discord.ButtonStyle.secondary}),
                (NEXT, {"emoji": "▶", "style": discord.ButtonStyle.secondary}),
            ],
            select=(FILTER, state_select_options(), "Select a state"),
        )
        message = await ctx.send(view=view, **browser.render())
        await run_collector(collector, message=message, on_control=browser.on_control, view=view)
