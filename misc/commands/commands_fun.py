from __future__ import annotations

import asyncio

import discord
from discord.ext import commands

from interactive.collector import CONTINUE
from interactive.collector import Collector
from interactive.collector import Recognized
from interactive.collector import build_view
from interactive.collector import run_collector
from interactive.paging import show_text_pages
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.errors import UserError
from misc.man_pages import parse_man_args
from misc.man_pages import split_man_pages

BOOP = "boop"


class BoopCounter:
    def __init__(self) -> None:
        self.count = 0
        self.final_edit: dict = {"content": "Total boops: 0"}

    async def on_control(self, outcome: Recognized) -> bool:
        self.count += 1
        self.final_edit["content"] = f"Total boops: {self.count}"
        await outcome.interaction.response.edit_message(content=f"Boop count: {self.count}")
        return CONTINUE


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="boop")
    async def boop(ctx: commands.Context):
        collector = Collector(
            wait_for=deps.wait_for,
            correlation=ctx.message.id,
            roles=(BOOP,),
            channel_id=ctx.channel.id,
            timeout=deps.boop_timeout,
        )
        view = build_view(collector, buttons=[(BOOP, {"label": "Boop me!", "style": discord.ButtonStyle.primary})])
        message = await ctx.send("I want some boops!", view=view)
        counter = BoopCounter()
        await run_collector(
            collector,
            message=message,
            on_control=counter.on_control,
            view=view,
            final_edit=counter.final_edit,
        )

    @bot.command(name="man")
    async def man(ctx: commands.Context, *, text: str):
        try:
            args = parse_man_args(text)
        except ValueError as e:
            raise UserError(str(e)) from None
        output = await asyncio.to_thread(deps.read_man_page, args)
        pages = split_man_pages(output)
        await show_text_pages(
            ctx,
            pages,
            wait_for=deps.wait_for,
            code_block=True,
            timeout=deps.collector_timeout,
        )
