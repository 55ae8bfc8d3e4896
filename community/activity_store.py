from __future__ import annotations

import sqlite3


def touch_activity_sync(conn: sqlite3.Connection, *, user_id: int, guild_id: int, now_ts: int) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO activity (user_id, guild_id, last_active_ts, message_count)
        VALUES (?, ?, ?, 0)
        ON CONFLICT(user_id, guild_id) DO UPDATE SET last_active_ts = excluded.last_active_ts
        """,
        (int(user_id), int(guild_id), int(now_ts)),
    )
    conn.commit()


def increment_message_count_sync(conn: sqlite3.Connection, *, user_id: int, guild_id: int, now_ts: int) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO activity (user_id, guild_id, last_active_ts, message_count)
        VALUES (?, ?, ?, 1)
        ON CONFLICT(user_id, guild_id) DO UPDATE SET message_count = activity.message_count + 1
        """,
        (int(user_id), int(guild_id), int(now_ts)),
    )
    conn.commit()


def active_user_ids_sync(conn: sqlite3.Connection, *, guild_id: int, since_ts: int) -> set[int]:
    cur = conn.cursor()
    cur.execute(
        "SELECT user_id FROM activity WHERE guild_id = ? AND last_active_ts >= ?",
        (int(guild_id), int(since_ts)),
    )
    return {int(r[0]) for r in cur.fetchall()}


def fetch_activity_sync(conn: sqlite3.Connection, *, user_id: int, guild_id: int) -> dict | None:
    cur = conn.cursor()
    cur.execute(
        "SELECT last_active_ts, message_count FROM activity WHERE user_id = ? AND guild_id = ?",
        (int(user_id), int(guild_id)),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return {"last_active_ts": int(row[0]), "message_count": int(row[1])}
