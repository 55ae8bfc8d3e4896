from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import discord

from interactive.collector import CONTINUE
from interactive.collector import STOP
from interactive.collector import DEFAULT_IDLE_TIMEOUT_SECONDS
from interactive.collector import Collector
from interactive.collector import Recognized
from interactive.collector import build_view
from interactive.collector import run_collector


PAGE_MAX_CHARS = 2000 - 25  # room for the page header
PREV = "prev"
NEXT = "next"
REFRESH = "refresh"
FILTER = "filter"
CANCEL = "cancel"


@dataclass(slots=True)
class Pager:
    total: int
    page_size: int
    offset: int = 0

    def __post_init__(self) -> None:
        if int(self.page_size) <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        self.total = max(0, int(self.total))

    def next(self) -> int:
        self.offset += self.page_size
        if self.offset >= self.total:
            self.offset = 0
        return self.offset

    def prev(self) -> int:
        if self.offset >= self.page_size:
            self.offset -= self.page_size
        else:
            # an exact multiple lands past the last row; the view renders that page as empty
            self.offset = (self.total // self.page_size) * self.page_size
        return self.offset

    def last_filled_offset(self) -> int:
        if self.total <= 0:
            return 0
        return ((self.total - 1) // self.page_size) * self.page_size

    def reset(self, total: int | None = None) -> None:
        if total is not None:
            self.total = max(0, int(total))
        self.offset = 0

    def clamp(self) -> None:
        if self.offset >= self.total:
            self.offset = self.last_filled_offset()


def paginate_lines(lines: list[str], max_chars: int = PAGE_MAX_CHARS) -> list[str]:
    pages: list[str] = []
    buf = ""
    for line in lines:
        if len(line) + 1 > max_chars:
            line = line[: max_chars - 2] + "…"
        if buf and len(buf) + len(line) + 1 > max_chars:
            pages.append(buf)
            buf = ""
        buf += line + "\n"
    if buf or not pages:
        pages.append(buf)
    return pages


def render_page(pages: list[str], index: int, *, code_block: bool = False) -> str:
    header = f"**Page {index + 1}/{len(pages)}**"
    if code_block:
        return f"{header}```{pages[index]}```"
    return f"{header}\n{pages[index]}"


async def show_text_pages(
    ctx,
    pages: list[str],
    *,
    wait_for: Callable[..., Any],
    code_block: bool = False,
    timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
    allowed_mentions: discord.AllowedMentions | None = None,
) -> int:
    """Send ``pages`` with prev/next buttons; returns the final page index.

    Mentions are not pinged unless ``allowed_mentions`` says otherwise.
    """
    if allowed_mentions is None:
        allowed_mentions = discord.AllowedMentions.none()
    if not pages:
        pages = [""]
    if len(pages) == 1:
        await ctx.send(render_page(pages, 0, code_block=code_block), allowed_mentions=allowed_mentions)
        return 0

    collector = Collector(
        wait_for=wait_for,
        correlation=ctx.message.id,
        roles=(PREV, NEXT, CANCEL),
        channel_id=ctx.channel.id,
        timeout=timeout,
    )
    view = build_view(
        collector,
        buttons=[
            (PREV, {"emoji": "◀", "style": discord.ButtonStyle.secondary}),
            (NEXT, {"emoji": "▶", "style": discord.ButtonStyle.secondary}),
            (CANCEL, {"emoji": "✖", "style": discord.ButtonStyle.danger}),
        ],
    )
    index = 0
    message = await ctx.send(
        render_page(pages, 0, code_block=code_block),
        view=view,
        allowed_mentions=allowed_mentions,
    )

    async def on_control(outcome: Recognized) -> bool:
        nonlocal index
        if outcome.role == CANCEL:
            await outcome.interaction.response.edit_message(view=None)
            return STOP
        if outcome.role == NEXT:
            index = (index + 1) % len(pages)
        else:
            index = (index - 1) % len(pages)
        await outcome.interaction.response.edit_message(
            content=render_page(pages, index, code_block=code_block),
        )
        return CONTINUE

    await run_collector(collector, message=message, on_control=on_control, view=view)
    return index
