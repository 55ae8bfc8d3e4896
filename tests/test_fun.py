from __future__ import annotations

import unittest
from types import SimpleNamespace

from interactive.collector import CONTINUE
from interactive.collector import Recognized
from misc.commands.commands_fun import BOOP
from misc.commands.commands_fun import BoopCounter


class _FakeResponse:
    def __init__(self):
        self.edits: list[dict] = []

    async def edit_message(self, **kwargs):
        self.edits.append(kwargs)


class BoopCounterTests(unittest.IsolatedAsyncioTestCase):
    async def test_counts_and_tracks_final_text(self):
        counter = BoopCounter()
        self.assertEqual(counter.final_edit, {"content": "Total boops: 0"})

        responses = []
        for _ in range(3):
            response = _FakeResponse()
            responses.append(response)
            outcome = Recognized(role=BOOP, interaction=SimpleNamespace(response=response))
            self.assertIs(await counter.on_control(outcome), CONTINUE)

        self.assertEqual(counter.count, 3)
        self.assertEqual([r.edits[0]["content"] for r in responses], ["Boop count: 1", "Boop count: 2", "Boop count: 3"])
        self.assertEqual(counter.final_edit, {"content": "Total boops: 3"})


if __name__ == "__main__":
    unittest.main()
