"""Correlated component collectors.

A collector owns one bot message whose components all carry custom ids of
the form ``<correlation>:<role>``. It awaits interactions for that
correlation one at a time; every received interaction restarts the idle
timeout. On exit the components are stripped and the last rendered content
and embeds stay on the message.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

import discord


DEFAULT_IDLE_TIMEOUT_SECONDS = 10 * 60
CONTROL_SEPARATOR = ":"

CONTINUE = True
STOP = False


@dataclass(frozen=True, slots=True)
class ControlId:
    correlation: str
    role: str

    def custom_id(self) -> str:
        return f"{self.correlation}{CONTROL_SEPARATOR}{self.role}"


def parse_control_id(custom_id: str | None) -> ControlId | None:
    raw = str(custom_id or "")
    correlation, sep, role = raw.partition(CONTROL_SEPARATOR)
    if not sep or not correlation or not role:
        return None
    return ControlId(correlation=correlation, role=role)


@dataclass(frozen=True, slots=True)
class CollectorTimeout:
    pass


@dataclass(frozen=True, slots=True)
class Recognized:
    role: str
    interaction: Any


@dataclass(frozen=True, slots=True)
class Unrelated:
    interaction: Any


CollectorOutcome = CollectorTimeout | Recognized | Unrelated


def interaction_custom_id(interaction) -> str | None:
    data = getattr(interaction, "data", None) or {}
    value = data.get("custom_id")
    return str(value) if value is not None else None


def interaction_values(interaction) -> list[str]:
    data = getattr(interaction, "data", None) or {}
    return [str(v) for v in (data.get("values") or [])]


class Collector:
    def __init__(
        self,
        *,
        wait_for: Callable[..., Awaitable[Any]],
        correlation: int | str,
        roles: Iterable[str],
        channel_id: int,
        user_id: int | None = None,
        timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
    ):
        self._wait_for = wait_for
        self.correlation = str(correlation)
        self.roles = frozenset(roles)
        self.channel_id = int(channel_id)
        self.user_id = int(user_id) if user_id is not None else None
        self.timeout = float(timeout)

    def control(self, role: str) -> str:
        return ControlId(self.correlation, role).custom_id()

    def matches(self, interaction) -> bool:
        custom_id = interaction_custom_id(interaction)
        if custom_id is None:
            return False
        if not custom_id.startswith(f"{self.correlation}{CONTROL_SEPARATOR}"):
            return False
        if int(getattr(interaction, "channel_id", 0) or 0) != self.channel_id:
            return False
        if self.user_id is not None:
            user = getattr(interaction, "user", None)
            if int(getattr(user, "id", 0) or 0) != self.user_id:
                return False
        return True

    async def next(self) -> CollectorOutcome:
        try:
            interaction = await self._wait_for("interaction", check=self.matches, timeout=self.timeout)
        except asyncio.TimeoutError:
            return CollectorTimeout()

        control = parse_control_id(interaction_custom_id(interaction))
        if control is None or control.role not in self.roles:
            print(
                f"[Collector] unrelated component interaction with same correlation "
                f"id={self.correlation} custom_id={interaction_custom_id(interaction)!r}"
            )
            return Unrelated(interaction)
        return Recognized(role=control.role, interaction=interaction)


async def strip_components(message, view: discord.ui.View | None = None, **edit_kwargs) -> None:
    if view is not None:
        view.stop()
    try:
        await message.edit(view=None, **edit_kwargs)
    except discord.HTTPException as e:
        print(f"[Collector] failed to strip components from message={getattr(message, 'id', '?')}: {e}")


async def run_collector(
    collector: Collector,
    *,
    message,
    on_control: Callable[[Recognized], Awaitable[bool]],
    view: discord.ui.View | None = None,
    final_edit: dict | None = None,
) -> int:
    """Drives ``collector`` until timeout or until ``on_control`` returns STOP.

    Returns the number of recognized interactions handled.
    """
    handled = 0
    try:
        while True:
            outcome = await collector.next()
            if isinstance(outcome, CollectorTimeout):
                break
            if isinstance(outcome, Unrelated):
                continue
            handled += 1
            keep_going = await on_control(outcome)
            if keep_going is STOP:
                break
    finally:
        await strip_components(message, view, **(final_edit or {}))
    return handled


def build_view(
    collector: Collector,
    *,
    buttons: Iterable[tuple[str, dict]] = (),
    select: tuple[str, list[discord.SelectOption], str] | None = None,
) -> discord.ui.View:
    """buttons: (role, Button kwargs). select: (role, options, placeholder)."""
    view = discord.ui.View(timeout=None)
    for role, kwargs in buttons:
        view.add_item(discord.ui.Button(custom_id=collector.control(role), row=0, **kwargs))
    if select is not None:
        role, options, placeholder = select
        view.add_item(
            discord.ui.Select(
                custom_id=collector.control(role),
                options=options,
                placeholder=placeholder,
                min_values=1,
                max_values=1,
                row=1,
            )
        )
    return view
