from __future__ import annotations

import asyncio
import io
import sqlite3
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from types import SimpleNamespace

import discord

from community.activity import ActivityTracker
from community.activity_store import fetch_activity_sync
from community.activity_store import touch_activity_sync
from config.feature_config import AccessConfig
from db.migrate import apply_sqlite_migrations
from jobs.access import demote_inactive_members
from jobs.access import next_lower_role


GUILD_ID = 500
TOP, MID, LOW = 3, 2, 1
DAY = 86400


def _migrations_dir() -> str:
    return str(Path(__file__).resolve().parents[1] / "migrations")


class _Clock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FakeMember:
    def __init__(self, member_id: int, role_ids, *, bot: bool = False):
        self.id = member_id
        self.bot = bot
        self.roles = [SimpleNamespace(id=r) for r in role_ids]
        self.added: list[int] = []
        self.removed: list[int] = []

    async def add_roles(self, role, *, reason=None):
        self.added.append(role.id)

    async def remove_roles(self, role, *, reason=None):
        self.removed.append(role.id)


class _FakeGuild:
    def __init__(self, members, guild_id: int = GUILD_ID):
        self.id = guild_id
        self.members = members

    async def fetch_members(self, *, limit=None):
        for m in self.members:
            yield m


class _FakeChannel:
    def __init__(self, channel_id: int, *, fail: bool = False):
        self.id = channel_id
        self.fail = fail
        self.sent: list[str] = []

    async def send(self, content):
        if self.fail:
            raise discord.Forbidden(SimpleNamespace(status=403, reason="Forbidden"), "Missing Access")
        self.sent.append(content)


class _FakeClient:
    def __init__(self, guilds, *channels):
        if not isinstance(guilds, list):
            guilds = [guilds]
        self.guilds = {g.id: g for g in guilds}
        self.channels = {c.id: c for c in channels}

    def get_guild(self, guild_id: int):
        return self.guilds.get(int(guild_id))

    def get_channel(self, channel_id: int):
        return self.channels.get(int(channel_id))

    async def fetch_channel(self, channel_id: int):
        return None


class ActivityTrackerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)
        self.clock = _Clock(1000.0)
        self.tracker = ActivityTracker(
            db_lock=asyncio.Lock(),
            db_conn=self.conn,
            active_guilds={GUILD_ID},
            debounce_seconds=60,
            clock=self.clock,
        )

    async def asyncTearDown(self):
        self.conn.close()

    async def test_debounces_last_active(self):
        self.assertTrue(await self.tracker.record(guild_id=GUILD_ID, user_id=1))
        self.clock.now = 1030.0
        self.assertFalse(await self.tracker.record(guild_id=GUILD_ID, user_id=1))
        self.assertEqual(fetch_activity_sync(self.conn, user_id=1, guild_id=GUILD_ID)["last_active_ts"], 1000)
        self.clock.now = 1060.0
        self.assertTrue(await self.tracker.record(guild_id=GUILD_ID, user_id=1))
        self.assertEqual(fetch_activity_sync(self.conn, user_id=1, guild_id=GUILD_ID)["last_active_ts"], 1060)

    async def test_untracked_guild_and_dm_write_nothing(self):
        self.assertFalse(await self.tracker.record(guild_id=999, user_id=1, message=True))
        self.assertFalse(await self.tracker.record(guild_id=None, user_id=1, message=True))
        self.assertIsNone(fetch_activity_sync(self.conn, user_id=1, guild_id=999))

    async def test_messages_always_counted(self):
        for _ in range(3):
            await self.tracker.record(guild_id=GUILD_ID, user_id=2, message=True)
        row = fetch_activity_sync(self.conn, user_id=2, guild_id=GUILD_ID)
        self.assertEqual(row["message_count"], 3)


class NextLowerRoleTests(unittest.TestCase):
    def test_highest_held_role_steps_down(self):
        ladder = [TOP, MID, LOW]
        self.assertEqual(next_lower_role({TOP, LOW}, ladder), (TOP, MID))
        self.assertEqual(next_lower_role({MID}, ladder), (MID, LOW))
        self.assertIsNone(next_lower_role({LOW}, ladder))
        self.assertIsNone(next_lower_role({42}, ladder))


class DemotionSweepTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)

    async def asyncTearDown(self):
        self.conn.close()

    async def test_demotes_inactive_members_one_step(self):
        now = 100 * DAY
        touch_activity_sync(self.conn, user_id=1, guild_id=GUILD_ID, now_ts=now - DAY)
        touch_activity_sync(self.conn, user_id=2, guild_id=GUILD_ID, now_ts=now - 40 * DAY)
        active = _FakeMember(1, [TOP])
        stale = _FakeMember(2, [TOP])
        never_seen = _FakeMember(3, [MID])
        bottom = _FakeMember(4, [LOW])
        bot_member = _FakeMember(5, [TOP], bot=True)
        log = _FakeChannel(77)

        demoted = await demote_inactive_members(
            client=_FakeClient(_FakeGuild([active, stale, never_seen, bottom, bot_member]), log),
            db_lock=asyncio.Lock(),
            db_conn=self.conn,
            access={
                GUILD_ID: AccessConfig(
                    guild_id=GUILD_ID, descending_roles=[TOP, MID, LOW], active_days=30, log_channel_id=77
                )
            },
            now_ts=now,
        )

        self.assertEqual(demoted, 2)
        self.assertEqual((stale.added, stale.removed), ([MID], [TOP]))
        self.assertEqual((never_seen.added, never_seen.removed), ([LOW], [MID]))
        self.assertEqual(active.added + bottom.added + bot_member.added, [])
        self.assertEqual(log.sent, ["2 users were demoted for being inactive"])
        # demoted members count as active again
        self.assertEqual(fetch_activity_sync(self.conn, user_id=2, guild_id=GUILD_ID)["last_active_ts"], now)

    async def test_log_channel_failure_does_not_skip_later_guilds(self):
        other_guild_id = 600
        first = _FakeMember(1, [TOP])
        second = _FakeMember(2, [TOP])
        broken_log = _FakeChannel(77, fail=True)
        good_log = _FakeChannel(88)
        ladder = [TOP, MID, LOW]

        out = io.StringIO()
        with redirect_stdout(out):
            demoted = await demote_inactive_members(
                client=_FakeClient(
                    [_FakeGuild([first]), _FakeGuild([second], guild_id=other_guild_id)],
                    broken_log,
                    good_log,
                ),
                db_lock=asyncio.Lock(),
                db_conn=self.conn,
                access={
                    GUILD_ID: AccessConfig(guild_id=GUILD_ID, descending_roles=ladder, log_channel_id=77),
                    other_guild_id: AccessConfig(guild_id=other_guild_id, descending_roles=ladder, log_channel_id=88),
                },
                now_ts=100 * DAY,
            )

        self.assertEqual(demoted, 2)
        self.assertEqual(second.added, [MID])
        self.assertEqual(good_log.sent, ["1 users were demoted for being inactive"])
        errors = [line for line in out.getvalue().splitlines() if "failed logging demotions" in line]
        self.assertEqual(len(errors), 1)
        self.assertIn(f"guild={GUILD_ID}", errors[0])
        self.assertIn("channel=77", errors[0])

    async def test_short_ladder_is_skipped(self):
        demoted = await demote_inactive_members(
            client=_FakeClient(_FakeGuild([_FakeMember(1, [TOP])])),
            db_lock=asyncio.Lock(),
            db_conn=self.conn,
            access={GUILD_ID: AccessConfig(guild_id=GUILD_ID, descending_roles=[TOP])},
            now_ts=100 * DAY,
        )
        self.assertEqual(demoted, 0)


if __name__ == "__main__":
    unittest.main()
