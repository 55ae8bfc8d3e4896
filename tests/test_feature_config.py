from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from config.defaults import DEFAULT_ACTIVE_DAYS
from config.feature_config import load_feature_config
from config.feature_config import parse_id_set


class FeatureConfigTests(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        path = Path(tmp.name) / "ferris.yml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_missing_file_uses_defaults(self):
        config, warning = load_feature_config("/nonexistent/ferris.yml")
        self.assertIn("not found", warning)
        self.assertEqual(config.event_channel_per_guild, {})
        self.assertEqual(config.access, {})

        config, warning = load_feature_config(None)
        self.assertIn("missing", warning)

    def test_valid_file(self):
        path = self._write(
            """
event_channel_per_guild:
  111: 222
  333: not-a-channel
active_guilds: [111, -5, 444]
access:
  111:
    descending_roles: [30, 20, 10]
    active_days: 14
    log_channel_id: 555
  444:
    descending_roles: [7, 6]
"""
        )
        config, warning = load_feature_config(path)
        self.assertIsNone(warning)
        self.assertEqual(config.event_channel_per_guild, {111: 222})
        self.assertEqual(config.active_guilds, {111, 444})
        self.assertEqual(config.access[111].descending_roles, [30, 20, 10])
        self.assertEqual(config.access[111].active_days, 14)
        self.assertEqual(config.access[111].log_channel_id, 555)
        self.assertEqual(config.access[444].active_days, DEFAULT_ACTIVE_DAYS)
        self.assertEqual(config.access[444].log_channel_id, 0)

    def test_empty_and_invalid_files(self):
        config, warning = load_feature_config(self._write(""))
        self.assertIsNone(warning)
        self.assertEqual(config.active_guilds, set())

        config, warning = load_feature_config(self._write("- just\n- a list\n"))
        self.assertIn("Invalid feature config format", warning)

        config, warning = load_feature_config(self._write("key: [unclosed\n"))
        self.assertIn("Failed to read", warning)

    def test_parse_id_set(self):
        self.assertEqual(parse_id_set("123456789012345678, 234567890123456789"), {123456789012345678, 234567890123456789})
        self.assertEqual(parse_id_set("12 abc 123456789012"), {123456789012})
        self.assertEqual(parse_id_set(None), set())


if __name__ == "__main__":
    unittest.main()
