from __future__ import annotations

import asyncio
import sqlite3
import unittest
from pathlib import Path

from community.bets_service import BetService
from community.bets_service import build_bet_embed
from community.bets_store import list_bets_sync
from community.bets_store import list_participants_sync
from db.migrate import apply_sqlite_migrations
from jobs.bets import announce_expired_bets
from jobs.bets import build_expired_bet_message
from misc.errors import UserError


GUILD_ID = 1
CHANNEL_ID = 2
AUTHOR_ID = 3


def _migrations_dir() -> str:
    return str(Path(__file__).resolve().parents[1] / "migrations")


class _FakeMessage:
    def __init__(self, message_id: int):
        self.id = message_id
        self.edits: list[dict] = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class _FakeChannel:
    def __init__(self, channel_id: int):
        self.id = channel_id
        self.sent: list[tuple] = []
        self.messages: dict[int, _FakeMessage] = {}

    async def send(self, content=None, **kwargs):
        self.sent.append((content, kwargs))

    async def fetch_message(self, message_id: int):
        return self.messages.setdefault(message_id, _FakeMessage(message_id))


class _FakeClient:
    def __init__(self, *channels):
        self.channels = {c.id: c for c in channels}

    def get_channel(self, channel_id: int):
        return self.channels.get(int(channel_id))

    async def fetch_channel(self, channel_id: int):
        return None


class BetServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)
        self.service = BetService(db_lock=asyncio.Lock(), db_conn=self.conn, prefix="!")

    async def asyncTearDown(self):
        self.conn.close()

    async def _create(self, description: str = "It rains tomorrow", expiry_ts: int = 10_000) -> dict:
        return await self.service.create(
            guild_id=GUILD_ID,
            channel_id=CHANNEL_ID,
            author_id=AUTHOR_ID,
            description=description,
            expiry_ts=expiry_ts,
        )

    async def test_author_is_first_participant(self):
        bet = await self._create()
        self.assertEqual(await self.service.participants(bet["id"]), [{"user_id": AUTHOR_ID, "watching": False}])

    async def test_join_twice_is_user_error(self):
        bet = await self._create()
        await self.service.join(bet, 10)
        with self.assertRaises(UserError) as cm:
            await self.service.join(bet, 10)
        self.assertIn("already joined", str(cm.exception))

    async def test_watch_when_participating_is_user_error(self):
        bet = await self._create()
        with self.assertRaises(UserError):
            await self.service.watch(bet, AUTHOR_ID)
        await self.service.watch(bet, 11)
        with self.assertRaises(UserError):
            await self.service.watch(bet, 11)

    async def test_watcher_can_join(self):
        bet = await self._create()
        await self.service.watch(bet, 11)
        await self.service.join(bet, 11)
        participants = await self.service.participants(bet["id"])
        self.assertIn({"user_id": 11, "watching": False}, participants)

    async def test_resolve_latest_in_channel_and_missing(self):
        await self._create("first")
        second = await self._create("second")
        latest = await self.service.resolve(None, guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        self.assertEqual(latest["id"], second["id"])
        with self.assertRaises(UserError):
            await self.service.resolve(None, guild_id=GUILD_ID, channel_id=999)
        with self.assertRaises(UserError):
            await self.service.resolve(12345, guild_id=GUILD_ID, channel_id=CHANNEL_ID)

    async def test_bet_id_from_another_guild_is_not_found(self):
        bet = await self._create()
        with self.assertRaises(UserError) as cm:
            await self.service.resolve(bet["id"], guild_id=GUILD_ID + 1, channel_id=CHANNEL_ID + 1)
        self.assertEqual(str(cm.exception), "Bet not found")
        self.assertEqual(list_participants_sync(self.conn, bet["id"]), [{"user_id": AUTHOR_ID, "watching": False}])

    async def test_embed_lists_participants_and_watchers(self):
        bet = await self._create()
        await self.service.watch(bet, 11)
        await self.service.attach_message(bet["id"], 555)
        bet = await self.service.resolve(bet["id"], guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        embed = await self.service.embed_for(bet, with_link=True)
        fields = {f.name: f.value for f in embed.fields}
        self.assertEqual(fields["Participants"], f"<@{AUTHOR_ID}>")
        self.assertEqual(fields["Watching"], "<@11>")
        self.assertIn("/555)", fields["Original Message"])

    async def test_refresh_message_edits_bet_message(self):
        bet = await self._create()
        await self.service.attach_message(bet["id"], 555)
        bet = await self.service.resolve(bet["id"], guild_id=GUILD_ID, channel_id=CHANNEL_ID)
        channel = _FakeChannel(CHANNEL_ID)
        await self.service.refresh_message(_FakeClient(channel), bet)
        self.assertEqual(len(channel.messages[555].edits), 1)


class BetSweepTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.conn = sqlite3.connect(":memory:", check_same_thread=False)
        apply_sqlite_migrations(self.conn, _migrations_dir(), verbose=False)
        self.service = BetService(db_lock=asyncio.Lock(), db_conn=self.conn)

    async def asyncTearDown(self):
        self.conn.close()

    async def test_expired_bets_are_announced_and_deleted(self):
        expired = await self.service.create(
            guild_id=GUILD_ID, channel_id=CHANNEL_ID, author_id=AUTHOR_ID, description="old", expiry_ts=50
        )
        await self.service.watch(expired, 11)
        await self.service.attach_message(expired["id"], 777)
        await self.service.create(
            guild_id=GUILD_ID, channel_id=CHANNEL_ID, author_id=AUTHOR_ID, description="new", expiry_ts=500
        )

        channel = _FakeChannel(CHANNEL_ID)
        announced = await announce_expired_bets(
            client=_FakeClient(channel),
            db_lock=asyncio.Lock(),
            db_conn=self.conn,
            now_ts=100,
        )
        self.assertEqual(announced, 1)
        self.assertEqual([b["description"] for b in list_bets_sync(self.conn, GUILD_ID)], ["new"])
        self.assertEqual(list_participants_sync(self.conn, expired["id"]), [])

        content, kwargs = channel.sent[0]
        self.assertEqual(content, f"<@{AUTHOR_ID}>, <@11>")
        self.assertEqual(kwargs["reference"].message_id, 777)
        self.assertEqual(kwargs["embed"].title, f"Bet #{expired['id']} is over!")

    def test_message_without_participants(self):
        bet = {"id": 4, "description": "d", "created_ts": 0, "participants": []}
        content, embed = build_expired_bet_message(bet)
        self.assertEqual(content, "")
        self.assertEqual(embed.fields[1].value, "No participants")


class BetEmbedFooterTests(unittest.TestCase):
    def test_footer_uses_prefix(self):
        embed = build_bet_embed({"id": 9, "description": "x", "expiry_ts": 0}, [], prefix="?")
        self.assertEqual(embed.footer.text, "Use ?bet join 9 (or just ?bet join)")


if __name__ == "__main__":
    unittest.main()
