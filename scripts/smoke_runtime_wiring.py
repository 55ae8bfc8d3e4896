from __future__ import annotations

import asyncio
import importlib
from types import SimpleNamespace


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install dependencies and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from discord.ext import commands
    from misc.runtime_wiring import wire_bot_runtime

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)

    wire_bot_runtime(
        bot,
        db_lock=asyncio.Lock(),
        db_conn=object(),
        user_is_owner=lambda user: True,
        send_chunked=_noop_async,
        list_schema_migrations_sync=lambda conn, limit: [],
        read_man_page=lambda args: "",
        command_prefix="!",
        timezone_name="UTC",
        reaction_roles=SimpleNamespace(load_index=_noop_async),
        bet_service=SimpleNamespace(),
        activity=SimpleNamespace(record=_noop_async),
        reminder_loop_func=_noop_async,
        bet_loop_func=_noop_async,
        birthday_loop_func=_noop_async,
        access_enabled=False,
        access_loop_func=None,
    )

    expected_commands = {
        "dbmigrations",
        "reaction_role.add",
        "reaction_role.add_easy",
        "reaction_role.remove",
        "reaction_role.list",
        "emoji_usage",
        "reminder.add",
        "reminder.list",
        "reminder.delete",
        "bet.create",
        "bet.join",
        "bet.watch",
        "bet.status",
        "bet.list",
        "birthday.add",
        "birthday.delete",
        "features.add",
        "features.update",
        "features.delete",
        "features.list",
        "boop",
        "man",
    }
    missing = sorted(name for name in expected_commands if bot.get_command(name.replace(".", " ")) is None)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    handlers = vars(bot)
    for event in ("on_ready", "on_message", "on_raw_reaction_add", "on_raw_reaction_remove", "on_command_error"):
        if event not in handlers:
            raise RuntimeError(f"Runtime event {event} was not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
