from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Callable

from config.defaults import BOOP_IDLE_TIMEOUT_SECONDS
from config.defaults import COLLECTOR_IDLE_TIMEOUT_SECONDS
from config.defaults import DEFAULT_COMMAND_PREFIX
from config.defaults import DEFAULT_TIMEZONE
from config.defaults import REACTION_PICK_TIMEOUT_SECONDS
from misc.errors import UserError

OWNER_ONLY_REPLY = "Only the bot owner can do that."


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    db_lock: Any = None
    db_conn: Any = None
    send_chunked: Callable | None = None
    wait_for: Callable | None = None
    client: Any = None
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    timezone_name: str = DEFAULT_TIMEZONE

    # Timeouts
    reaction_pick_timeout: float = REACTION_PICK_TIMEOUT_SECONDS
    collector_timeout: float = COLLECTOR_IDLE_TIMEOUT_SECONDS
    boop_timeout: float = BOOP_IDLE_TIMEOUT_SECONDS

    # Store/service functions
    list_schema_migrations_sync: Callable | None = None
    read_man_page: Callable | None = None

    # Services
    reaction_roles: Any = None
    bet_service: Any = None


@dataclass(frozen=True)
class CommandGates:
    user_is_owner: Callable[[Any], bool] = _default_false

    def require_owner(self, user) -> None:
        if not self.user_is_owner(user):
            raise UserError(OWNER_ONLY_REPLY)
