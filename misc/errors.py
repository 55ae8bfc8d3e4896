from __future__ import annotations

from discord.ext import commands


class UserError(commands.CommandError):
    """A problem with what the user asked for. The message is shown to them as-is."""
