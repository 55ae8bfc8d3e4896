from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS emoji_surrogates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            grapheme TEXT NOT NULL UNIQUE
        )
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS reaction_roles (
            message_id INTEGER NOT NULL,
            channel_id INTEGER NOT NULL,
            guild_id INTEGER NOT NULL,
            role_id INTEGER NOT NULL,
            emoji_id INTEGER NOT NULL,
            created_at_utc TEXT,
            UNIQUE (message_id, emoji_id)
        )
        """
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_reaction_roles_guild_id ON reaction_roles(guild_id)")
    conn.commit()
