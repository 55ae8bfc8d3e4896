from __future__ import annotations

import sqlite3
from datetime import date


def upsert_birthday_sync(conn: sqlite3.Connection, *, user_id: int, guild_id: int, birthday: date) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO birthdays (user_id, guild_id, birthday)
        VALUES (?, ?, ?)
        ON CONFLICT(user_id) DO UPDATE SET
            guild_id = excluded.guild_id,
            birthday = excluded.birthday
        """,
        (int(user_id), int(guild_id), birthday.isoformat()),
    )
    conn.commit()


def delete_birthday_sync(conn: sqlite3.Connection, user_id: int) -> int:
    cur = conn.cursor()
    cur.execute("DELETE FROM birthdays WHERE user_id = ?", (int(user_id),))
    deleted = int(cur.rowcount or 0)
    conn.commit()
    return deleted


def take_due_birthdays_sync(conn: sqlite3.Connection, today: date) -> list[tuple[int, int]]:
    """
    Flag every birthday falling on today's month-day as congratulated and
    return (guild_id, user_id) pairs. Already congratulated today means skipped.

    29 February birthdays are celebrated on 28 February in non-leap years.
    """
    month_day = today.strftime("%m-%d")
    extra = ""
    params: list = [today.isoformat(), month_day]
    if month_day == "02-28" and not _is_leap(today.year):
        extra = " OR substr(birthday, 6, 5) = '02-29'"
    cur = conn.cursor()
    cur.execute(
        f"""
        UPDATE birthdays
        SET last_congratulated = ?
        WHERE (substr(birthday, 6, 5) = ?{extra})
          AND (last_congratulated IS NULL OR last_congratulated < ?)
        RETURNING guild_id, user_id
        """,
        (*params, today.isoformat()),
    )
    rows = [(int(g), int(u)) for g, u in cur.fetchall()]
    conn.commit()
    return sorted(rows)


def _is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)
