from __future__ import annotations

import io
import unittest
from contextlib import redirect_stdout
from types import SimpleNamespace

from jobs.service import fixed_interval_loop
from jobs.service import midnight_loop
from jobs.service import resolve_channel


class _SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class _FlakyTick:
    def __init__(self, fail_on: set[int]):
        self.fail_on = fail_on
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls in self.fail_on:
            raise RuntimeError(f"boom {self.calls}")


class LoopTests(unittest.IsolatedAsyncioTestCase):
    async def test_fixed_interval_survives_tick_errors(self):
        sleep = _SleepRecorder()
        tick = _FlakyTick({2})
        out = io.StringIO()
        with redirect_stdout(out):
            await fixed_interval_loop(name="Reminders", tick=tick, interval_seconds=60, sleep=sleep, max_ticks=3)
        self.assertEqual(tick.calls, 3)
        self.assertEqual(sleep.calls, [60, 60])
        self.assertIn("[Reminders] loop error: boom 2", out.getvalue())

    async def test_fixed_interval_has_a_floor(self):
        sleep = _SleepRecorder()
        await fixed_interval_loop(name="Bets", tick=_FlakyTick(set()), interval_seconds=1, sleep=sleep, max_ticks=2)
        self.assertEqual(sleep.calls, [10])

    async def test_midnight_loop_sleeps_past_midnight(self):
        sleep = _SleepRecorder()
        tick = _FlakyTick(set())
        await midnight_loop(name="Birthdays", tick=tick, timezone_name="UTC", sleep=sleep, max_ticks=2)
        self.assertEqual(tick.calls, 2)
        self.assertEqual(len(sleep.calls), 1)
        self.assertGreater(sleep.calls[0], 0)
        self.assertLessEqual(sleep.calls[0], 86401)


class ResolveChannelTests(unittest.IsolatedAsyncioTestCase):
    async def test_cache_then_fetch_then_none(self):
        cached = SimpleNamespace(id=1)
        fetched = SimpleNamespace(id=2)

        class _Client:
            def get_channel(self, channel_id):
                return cached if channel_id == 1 else None

            async def fetch_channel(self, channel_id):
                if channel_id == 2:
                    return fetched
                raise RuntimeError("unknown channel")

        client = _Client()
        self.assertIs(await resolve_channel(client, 1), cached)
        self.assertIs(await resolve_channel(client, 2), fetched)
        with redirect_stdout(io.StringIO()):
            self.assertIsNone(await resolve_channel(client, 3))
        self.assertIsNone(await resolve_channel(client, 0))


if __name__ == "__main__":
    unittest.main()
