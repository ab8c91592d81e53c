# Copyright 2024 Canonical Ltd.
# See LICENSE file for licensing details.

import subprocess
import unittest
from unittest.mock import patch

from imagebuilder import command
from imagebuilder.errors import ExternalCommandError


class TestRunCommand(unittest.TestCase):
    @patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(
            ["gpg", "--export", "--armor", "ABCD1234"], returncode=0, stdout="key material"
        ),
    )
    def test_returns_stdout(self, mock_run):
        self.assertEqual(
            command.run_command(["gpg", "--export", "--armor", "ABCD1234"]), "key material"
        )
        self.assertEqual(mock_run.call_args.args[0], ["gpg", "--export", "--armor", "ABCD1234"])

    @patch("subprocess.run")
    def test_extra_environment(self, mock_run):
        command.run_command(["apt-get", "update"], env={"DEBIAN_FRONTEND": "noninteractive"})
        self.assertEqual(mock_run.call_args.kwargs["env"]["DEBIAN_FRONTEND"], "noninteractive")

    @patch("subprocess.run")
    def test_input_is_passed(self, mock_run):
        command.run_command(["gpg", "--dearmor"], input="key")
        self.assertEqual(mock_run.call_args.kwargs["input"], "key")

    @patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            2,
            ["gpg", "--recv-keys", "ABCD1234"],
            output="",
            stderr="gpg: keyserver receive failed: No data",
        ),
    )
    def test_failure_raises(self, _):
        with self.assertRaises(ExternalCommandError) as ctx:
            command.run_command(["gpg", "--recv-keys", "ABCD1234"])
        self.assertEqual(ctx.exception.cmd, ["gpg", "--recv-keys", "ABCD1234"])
        self.assertEqual(ctx.exception.returncode, 2)
        self.assertEqual(ctx.exception.stderr, "gpg: keyserver receive failed: No data")
        self.assertIn("keyserver receive failed", ctx.exception.message)

    @patch(
        "subprocess.run",
        side_effect=FileNotFoundError("[Errno 2] No such file or directory: 'gpg'"),
    )
    def test_missing_executable_raises(self, _):
        with self.assertRaises(ExternalCommandError) as ctx:
            command.run_command(["gpg", "--recv-keys", "ABCD1234"])
        self.assertIsNone(ctx.exception.returncode)
        self.assertTrue(ctx.exception.message.startswith("gpg not found on PATH"))

    @patch(
        "subprocess.run",
        side_effect=PermissionError(13, "Permission denied", "/usr/bin/gpg"),
    )
    def test_spawn_failure_raises(self, _):
        with self.assertRaises(ExternalCommandError) as ctx:
            command.run_command(["gpg", "--recv-keys", "ABCD1234"])
        self.assertEqual(ctx.exception.cmd, ["gpg", "--recv-keys", "ABCD1234"])
        self.assertIsNone(ctx.exception.returncode)
        self.assertIn("Permission denied", ctx.exception.message)
        self.assertIsInstance(ctx.exception.__cause__, PermissionError)
