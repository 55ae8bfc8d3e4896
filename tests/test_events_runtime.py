from __future__ import annotations

import unittest

from discord.ext import commands

from misc.errors import UserError
from misc.events_runtime import GENERIC_ERROR_REPLY
from misc.events_runtime import describe_command_error


class DescribeCommandErrorTests(unittest.TestCase):
    def test_user_error_text_is_shown_even_when_wrapped(self):
        self.assertEqual(describe_command_error(UserError("No bet found")), "No bet found")
        wrapped = commands.CommandInvokeError(UserError("Description too long"))
        self.assertEqual(describe_command_error(wrapped), "Description too long")

    def test_unknown_command_is_silent(self):
        self.assertIsNone(describe_command_error(commands.CommandNotFound('Command "nope" is not found')))

    def test_permission_and_context_failures(self):
        self.assertEqual(
            describe_command_error(commands.MissingPermissions(["manage_roles"])),
            "You don't have the permissions to do that.",
        )
        self.assertEqual(describe_command_error(commands.NoPrivateMessage()), "This command only works in a server.")
        self.assertEqual(describe_command_error(commands.CheckFailure()), "You can't use that command here.")

    def test_bad_input_echoes_parser_message(self):
        self.assertEqual(describe_command_error(commands.BadArgument("Converting to int failed")), "Converting to int failed")

    def test_unexpected_errors_get_generic_reply(self):
        self.assertEqual(describe_command_error(commands.CommandInvokeError(KeyError("x"))), GENERIC_ERROR_REPLY)
        self.assertEqual(describe_command_error(RuntimeError("x")), GENERIC_ERROR_REPLY)


if __name__ == "__main__":
    unittest.main()
