from __future__ import annotations

import sqlite3
from typing import Any


_REMINDER_COLS = ("id", "channel_id", "message_id", "user_id", "content", "due_ts")


def _row_to_reminder(row) -> dict[str, Any]:
    out = {col: row[idx] for idx, col in enumerate(_REMINDER_COLS)}
    for k in ("id", "channel_id", "message_id", "user_id", "due_ts"):
        out[k] = int(out[k])
    out["content"] = str(out["content"] or "")
    return out


def insert_reminder_sync(
    conn: sqlite3.Connection,
    *,
    channel_id: int,
    message_id: int,
    user_id: int,
    content: str,
    due_ts: int,
) -> int:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO reminders (channel_id, message_id, user_id, content, due_ts)
        VALUES (?, ?, ?, ?, ?)
        """,
        (int(channel_id), int(message_id), int(user_id), str(content), int(due_ts)),
    )
    conn.commit()
    return int(cur.lastrowid)


def list_reminders_sync(conn: sqlite3.Connection, user_id: int | None = None) -> list[dict[str, Any]]:
    cur = conn.cursor()
    if user_id is None:
        cur.execute(
            """
            SELECT id, channel_id, message_id, user_id, content, due_ts
            FROM reminders
            ORDER BY due_ts, id
            """
        )
    else:
        cur.execute(
            """
            SELECT id, channel_id, message_id, user_id, content, due_ts
            FROM reminders
            WHERE user_id = ?
            ORDER BY due_ts, id
            """,
            (int(user_id),),
        )
    return [_row_to_reminder(r) for r in cur.fetchall()]


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def delete_reminders_by_prefix_sync(
    conn: sqlite3.Connection,
    *,
    prefix: str,
    user_id: int | None,
) -> int:
    """Case-insensitive prefix match on content. user_id=None deletes for everyone."""
    pattern = _escape_like(str(prefix or "")) + "%"
    cur = conn.cursor()
    if user_id is None:
        cur.execute(
            "DELETE FROM reminders WHERE content LIKE ? ESCAPE '\\'",
            (pattern,),
        )
    else:
        cur.execute(
            "DELETE FROM reminders WHERE content LIKE ? ESCAPE '\\' AND user_id = ?",
            (pattern, int(user_id)),
        )
    deleted = int(cur.rowcount or 0)
    conn.commit()
    return deleted


def take_due_reminders_sync(conn: sqlite3.Connection, now_ts: int) -> list[dict[str, Any]]:
    """Delete and return every reminder due at or before now_ts in one statement."""
    cur = conn.cursor()
    cur.execute(
        """
        DELETE FROM reminders
        WHERE due_ts <= ?
        RETURNING id, channel_id, message_id, user_id, content, due_ts
        """,
        (int(now_ts),),
    )
    rows = cur.fetchall()
    conn.commit()
    return sorted((_row_to_reminder(r) for r in rows), key=lambda r: (r["due_ts"], r["id"]))
