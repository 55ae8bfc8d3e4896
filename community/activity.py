from __future__ import annotations

import asyncio
import time

from community.activity_store import increment_message_count_sync
from community.activity_store import touch_activity_sync
from config.defaults import ACTIVITY_DEBOUNCE_SECONDS


class ActivityTracker:
    """Records member activity for configured guilds, writing last-active at most once per debounce window."""

    def __init__(
        self,
        *,
        db_lock: asyncio.Lock,
        db_conn,
        active_guilds: set[int],
        debounce_seconds: int = ACTIVITY_DEBOUNCE_SECONDS,
        clock=time.time,
    ):
        self.db_lock = db_lock
        self.db_conn = db_conn
        self.active_guilds = set(active_guilds)
        self.debounce_seconds = int(debounce_seconds)
        self._clock = clock
        self._last_touch: dict[tuple[int, int], float] = {}

    def tracks(self, guild_id: int | None) -> bool:
        return guild_id is not None and int(guild_id) in self.active_guilds

    async def record(self, *, guild_id: int | None, user_id: int, message: bool = False) -> bool:
        """Returns True when last-active was written."""
        if not self.tracks(guild_id):
            return False
        now = self._clock()
        key = (int(guild_id), int(user_id))
        last = self._last_touch.get(key)
        touch = last is None or now - last >= self.debounce_seconds
        try:
            async with self.db_lock:
                if message:
                    await asyncio.to_thread(
                        increment_message_count_sync,
                        self.db_conn,
                        user_id=int(user_id),
                        guild_id=int(guild_id),
                        now_ts=int(now),
                    )
                if touch:
                    await asyncio.to_thread(
                        touch_activity_sync,
                        self.db_conn,
                        user_id=int(user_id),
                        guild_id=int(guild_id),
                        now_ts=int(now),
                    )
        except Exception as e:
            print(f"[Activity] failed to update activity user={user_id} guild={guild_id}: {e}")
            return False
        if touch:
            self._last_touch[key] = now
        return touch
