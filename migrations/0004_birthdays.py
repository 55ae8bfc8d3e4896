from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS birthdays (
            user_id INTEGER PRIMARY KEY,
            guild_id INTEGER NOT NULL,
            birthday TEXT NOT NULL,
            last_congratulated TEXT
        )
        """
    )
    conn.commit()
