from __future__ import annotations

import sqlite3
from typing import Any


_BET_COLS = ("id", "guild_id", "channel_id", "message_id", "author_id", "description", "expiry_ts", "created_ts")


def _row_to_bet(row) -> dict[str, Any] | None:
    if row is None:
        return None
    out = {col: row[idx] for idx, col in enumerate(_BET_COLS)}
    for k in _BET_COLS:
        if k != "description":
            out[k] = int(out[k])
    out["description"] = str(out["description"] or "")
    return out


def create_bet_sync(
    conn: sqlite3.Connection,
    *,
    guild_id: int,
    channel_id: int,
    author_id: int,
    description: str,
    expiry_ts: int,
    created_ts: int,
) -> int:
    """Insert the bet and its author as first participant in one transaction."""
    cur = conn.cursor()
    try:
        cur.execute(
            """
            INSERT INTO bets (guild_id, channel_id, message_id, author_id, description, expiry_ts, created_ts)
            VALUES (?, ?, 0, ?, ?, ?, ?)
            """,
            (int(guild_id), int(channel_id), int(author_id), str(description), int(expiry_ts), int(created_ts)),
        )
        bet_id = int(cur.lastrowid)
        cur.execute(
            "INSERT INTO bet_participants (bet_id, user_id, watching) VALUES (?, ?, 0)",
            (bet_id, int(author_id)),
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return bet_id


def set_bet_message_sync(conn: sqlite3.Connection, bet_id: int, message_id: int) -> None:
    cur = conn.cursor()
    cur.execute("UPDATE bets SET message_id = ? WHERE id = ?", (int(message_id), int(bet_id)))
    conn.commit()


def fetch_bet_sync(conn: sqlite3.Connection, bet_id: int, guild_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, guild_id, channel_id, message_id, author_id, description, expiry_ts, created_ts
        FROM bets
        WHERE id = ? AND guild_id = ?
        """,
        (int(bet_id), int(guild_id)),
    )
    return _row_to_bet(cur.fetchone())


def fetch_latest_bet_in_channel_sync(conn: sqlite3.Connection, channel_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, guild_id, channel_id, message_id, author_id, description, expiry_ts, created_ts
        FROM bets
        WHERE channel_id = ?
        ORDER BY created_ts DESC, id DESC
        LIMIT 1
        """,
        (int(channel_id),),
    )
    return _row_to_bet(cur.fetchone())


def list_bets_sync(conn: sqlite3.Connection, guild_id: int) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, guild_id, channel_id, message_id, author_id, description, expiry_ts, created_ts
        FROM bets
        WHERE guild_id = ?
        ORDER BY expiry_ts ASC, id ASC
        """,
        (int(guild_id),),
    )
    return [_row_to_bet(r) for r in cur.fetchall()]


def list_participants_sync(conn: sqlite3.Connection, bet_id: int) -> list[dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT user_id, watching
        FROM bet_participants
        WHERE bet_id = ?
        ORDER BY watching, user_id
        """,
        (int(bet_id),),
    )
    return [{"user_id": int(u), "watching": bool(w)} for u, w in cur.fetchall()]


def fetch_participation_sync(conn: sqlite3.Connection, bet_id: int, user_id: int) -> dict[str, Any] | None:
    cur = conn.cursor()
    cur.execute(
        "SELECT user_id, watching FROM bet_participants WHERE bet_id = ? AND user_id = ?",
        (int(bet_id), int(user_id)),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return {"user_id": int(row[0]), "watching": bool(row[1])}


def join_bet_sync(conn: sqlite3.Connection, bet_id: int, user_id: int) -> None:
    """Join as participant; a watcher joining is promoted."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO bet_participants (bet_id, user_id, watching) VALUES (?, ?, 0)
        ON CONFLICT(bet_id, user_id) DO UPDATE SET watching = 0
        """,
        (int(bet_id), int(user_id)),
    )
    conn.commit()


def watch_bet_sync(conn: sqlite3.Connection, bet_id: int, user_id: int) -> None:
    """Raises sqlite3.IntegrityError when the user is already on the bet."""
    cur = conn.cursor()
    try:
        cur.execute(
            "INSERT INTO bet_participants (bet_id, user_id, watching) VALUES (?, ?, 1)",
            (int(bet_id), int(user_id)),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise


def take_expired_bets_sync(conn: sqlite3.Connection, now_ts: int) -> list[dict[str, Any]]:
    """Delete every expired bet with its participants and return them, participants attached."""
    cur = conn.cursor()
    try:
        cur.execute(
            """
            DELETE FROM bets
            WHERE expiry_ts <= ?
            RETURNING id, guild_id, channel_id, message_id, author_id, description, expiry_ts, created_ts
            """,
            (int(now_ts),),
        )
        bets = [_row_to_bet(r) for r in cur.fetchall()]
        for bet in bets:
            cur.execute(
                """
                DELETE FROM bet_participants
                WHERE bet_id = ?
                RETURNING user_id, watching
                """,
                (bet["id"],),
            )
            bet["participants"] = sorted(
                ({"user_id": int(u), "watching": bool(w)} for u, w in cur.fetchall()),
                key=lambda p: (p["watching"], p["user_id"]),
            )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    bets.sort(key=lambda b: (b["expiry_ts"], b["id"]))
    return bets
