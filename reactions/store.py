from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_BINDING_COLS = ("message_id", "channel_id", "guild_id", "role_id", "emoji_id")


def _row_to_binding(row) -> dict[str, Any] | None:
    if row is None:
        return None
    return {col: int(row[idx]) for idx, col in enumerate(_BINDING_COLS)}


def insert_binding_sync(conn: sqlite3.Connection, payload: dict) -> None:
    """Raises sqlite3.IntegrityError when (message_id, emoji_id) is already bound."""
    cur = conn.cursor()
    try:
        cur.execute(
            """
            INSERT INTO reaction_roles (
                message_id, channel_id, guild_id, role_id, emoji_id, created_at_utc
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                int(payload["message_id"]),
                int(payload["channel_id"]),
                int(payload["guild_id"]),
                int(payload["role_id"]),
                int(payload["emoji_id"]),
                _utc_now_iso(),
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise


def fetch_binding_sync(conn: sqlite3.Connection, message_id: int, emoji_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT message_id, channel_id, guild_id, role_id, emoji_id
        FROM reaction_roles
        WHERE message_id = ? AND emoji_id = ?
        LIMIT 1
        """,
        (int(message_id), int(emoji_id)),
    )
    return _row_to_binding(cur.fetchone())


def delete_binding_sync(conn: sqlite3.Connection, message_id: int, emoji_id: int) -> tuple[int, int]:
    """Returns (deleted_rows, bindings_left_on_message)."""
    cur = conn.cursor()
    cur.execute(
        "DELETE FROM reaction_roles WHERE message_id = ? AND emoji_id = ?",
        (int(message_id), int(emoji_id)),
    )
    deleted = int(cur.rowcount or 0)
    cur.execute("SELECT COUNT(*) FROM reaction_roles WHERE message_id = ?", (int(message_id),))
    remaining = int(cur.fetchone()[0])
    conn.commit()
    return deleted, remaining


def list_bindings_sync(conn: sqlite3.Connection, guild_id: int | None = None) -> list[dict[str, Any]]:
    cur = conn.cursor()
    if guild_id is None:
        cur.execute(
            """
            SELECT message_id, channel_id, guild_id, role_id, emoji_id
            FROM reaction_roles
            ORDER BY guild_id, message_id, rowid
            """
        )
    else:
        cur.execute(
            """
            SELECT message_id, channel_id, guild_id, role_id, emoji_id
            FROM reaction_roles
            WHERE guild_id = ?
            ORDER BY message_id, rowid
            """,
            (int(guild_id),),
        )
    return [_row_to_binding(r) for r in cur.fetchall()]


def list_bound_message_ids_sync(conn: sqlite3.Connection) -> list[int]:
    cur = conn.cursor()
    cur.execute("SELECT DISTINCT message_id FROM reaction_roles")
    return [int(r[0]) for r in cur.fetchall()]


def increment_emoji_usage_sync(conn: sqlite3.Connection, guild_id: int, emoji_id: int) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO emoji_usage (guild_id, emoji_id, count)
        VALUES (?, ?, 1)
        ON CONFLICT(guild_id, emoji_id) DO UPDATE SET count = emoji_usage.count + 1
        """,
        (int(guild_id), int(emoji_id)),
    )
    conn.commit()


def list_emoji_usage_sync(conn: sqlite3.Connection, guild_id: int) -> list[tuple[int, int]]:
    cur = conn.cursor()
    cur.execute(
        "SELECT emoji_id, count FROM emoji_usage WHERE guild_id = ? ORDER BY count DESC, emoji_id",
        (int(guild_id),),
    )
    return [(int(emoji_id), int(count)) for emoji_id, count in cur.fetchall()]
