from __future__ import annotations

import asyncio
import io
import sqlite3
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import discord

from community.reminders_store import delete_reminders_by_prefix_sync
from community.reminders_store import insert_reminder_sync
from community.reminders_store import list_reminders_sync
from community.reminders_store import take_due_reminders_sync
from db.migrate import apply_sqlite_migrations
from jobs.reminders import send_due_reminders
from misc.commands.commands_reminders import split_when_and_text
from misc.errors import UserError


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _migrations_dir() -> str:
    return str(Path(__file__).resolve().parents[1] / "migrations")


class _FakeChannel:
    def __init__(self, channel_id: int):
        self.id = channel_id
        self.sent: list[tuple[str, dict]] = []

    async def send(self, content=None, **kwargs):
        self.sent.append((content, kwargs))
        return SimpleNamespace(id=len(self.sent))


class _FakeClient:
    def __init__(self, channels):
        self.channels = {c.id: c for c in channels}

    def get_channel(self, channel_id: int):
        return self.channels.get(int(channel_id))

    async def fetch_channel(self, channel_id: int):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel")


class SplitWhenAndTextTests(unittest.TestCase):
    def test_duration_prefix(self):
        due, text = split_when_and_text("1h30m stretch your legs", timezone_name="UTC", now=NOW)
        self.assertEqual(due, int(NOW.timestamp()) + 5400)
        self.assertEqual(text, "stretch your legs")

    def test_two_token_date_time_prefix(self):
        due, text = split_when_and_text("2026-03-11 08:15 dentist", timezone_name="UTC", now=NOW)
        self.assertEqual(due, int(datetime(2026, 3, 11, 8, 15, tzinfo=timezone.utc).timestamp()))
        self.assertEqual(text, "dentist")

    def test_no_time_defaults_to_one_hour(self):
        due, text = split_when_and_text("water the plants", timezone_name="UTC", now=NOW)
        self.assertEqual(due, int(NOW.timestamp()) + 3600)
        self.assertEqual(text, "water the plants")

    def test_lone_duration_is_the_text(self):
        due, text = split_when_and_text("2d", timezone_name="UTC", now=NOW)
        self.assertEqual(text, "2d")
        self.assertEqual(due, int(NOW.timestamp()) + 3600)

    def test_errors(self):
        with self.assertRaises(UserError):
            split_when_and_text("   ", timezone_name="UTC", now=NOW)
        with self.assertRaises(UserError):
            split_when_and_text("2020-01-01 too late", timezone_name="UTC", now=NOW)


class ReminderStoreTests(unittest.TestCase):
    def setUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)

    def tearDown(self):
        self.conn.close()

    def _add(self, user_id: int, content: str, due_ts: int = 100) -> int:
        return insert_reminder_sync(
            self.conn, channel_id=1, message_id=2, user_id=user_id, content=content, due_ts=due_ts
        )

    def test_prefix_delete_scoped_to_user(self):
        self._add(1, "buy milk")
        self._add(1, "buy bread")
        self._add(2, "buy milk too")
        self._add(1, "100%_done")

        self.assertEqual(delete_reminders_by_prefix_sync(self.conn, prefix="buy", user_id=1), 2)
        self.assertEqual([r["content"] for r in list_reminders_sync(self.conn, 2)], ["buy milk too"])
        self.assertEqual(delete_reminders_by_prefix_sync(self.conn, prefix="100%_", user_id=None), 1)
        self.assertEqual(delete_reminders_by_prefix_sync(self.conn, prefix="1000", user_id=None), 0)

    def test_take_due_consumes_only_due_rows(self):
        self._add(1, "later", due_ts=500)
        self._add(1, "first", due_ts=50)
        self._add(1, "second", due_ts=100)
        due = take_due_reminders_sync(self.conn, 100)
        self.assertEqual([r["content"] for r in due], ["first", "second"])
        self.assertEqual(take_due_reminders_sync(self.conn, 100), [])
        self.assertEqual([r["content"] for r in list_reminders_sync(self.conn)], ["later"])


class ReminderSweepTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)

    async def asyncTearDown(self):
        self.conn.close()

    async def test_missing_channel_is_logged_and_row_still_consumed(self):
        insert_reminder_sync(self.conn, channel_id=10, message_id=11, user_id=7, content="stand up", due_ts=90)
        insert_reminder_sync(self.conn, channel_id=20, message_id=21, user_id=8, content="sit down", due_ts=95)
        good = _FakeChannel(10)
        client = _FakeClient([good])

        out = io.StringIO()
        with redirect_stdout(out):
            delivered = await send_due_reminders(client=client, db_lock=asyncio.Lock(), db_conn=self.conn, now_ts=100)

        self.assertEqual(delivered, 1)
        self.assertEqual(list_reminders_sync(self.conn), [])
        self.assertEqual(len(good.sent), 1)
        content, kwargs = good.sent[0]
        self.assertEqual(content, "Reminder for stand up | <@7>")
        self.assertEqual(kwargs["reference"].message_id, 11)
        self.assertFalse(kwargs["allowed_mentions"].everyone)
        errors = [line for line in out.getvalue().splitlines() if "failed sending reminder" in line]
        self.assertEqual(len(errors), 1)
        self.assertIn("channel=20", errors[0])

    async def test_nothing_due(self):
        insert_reminder_sync(self.conn, channel_id=10, message_id=11, user_id=7, content="later", due_ts=500)
        delivered = await send_due_reminders(client=_FakeClient([]), db_lock=asyncio.Lock(), db_conn=self.conn, now_ts=100)
        self.assertEqual(delivered, 0)
        self.assertEqual(len(list_reminders_sync(self.conn)), 1)


if __name__ == "__main__":
    unittest.main()
