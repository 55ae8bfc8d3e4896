from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    db_lock: Any
    db_conn: Any
    user_is_owner: Callable

    # services
    reaction_roles: Any
    activity: Any


@dataclass(frozen=True)
class RuntimeBootDeps:
    reminder_loop_func: Callable
    bet_loop_func: Callable
    birthday_loop_func: Callable
    access_enabled: bool
    access_loop_func: Callable | None = None
