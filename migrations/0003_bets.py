from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS bets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            guild_id INTEGER NOT NULL,
            channel_id INTEGER NOT NULL,
            message_id INTEGER NOT NULL DEFAULT 0,
            author_id INTEGER NOT NULL,
            description TEXT NOT NULL,
            expiry_ts INTEGER NOT NULL,
            created_ts INTEGER NOT NULL
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS bet_participants (
            bet_id INTEGER NOT NULL REFERENCES bets(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL,
            watching INTEGER NOT NULL DEFAULT 0,
            UNIQUE (bet_id, user_id)
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_bets_expiry_ts ON bets(expiry_ts)")
    cur.execute("CREATE INDEX IF NOT EXISTS idx_bets_channel_created ON bets(channel_id, created_ts)")
    conn.commit()
