"""Tests for external command execution."""

from __future__ import annotations

import os
import subprocess
import unittest
from unittest import mock

from clustermenu.executor import FORCED_COLOR_ENV, CommandExecutor, CommandResult
from clustermenu.runtime.signals import HANDLED_SIGNALS, SignalListener


class CommandExecutorTests(unittest.TestCase):
    def test_capture_merges_output_and_forces_colors(self) -> None:
        completed = subprocess.CompletedProcess(args=["systemctl"], returncode=0, stdout="out and err")
        with mock.patch("clustermenu.executor.subprocess.run", return_value=completed) as run_mock:
            result = CommandExecutor().capture("systemctl", "list-jobs")

        self.assertEqual(result, CommandResult(("systemctl", "list-jobs"), 0, "out and err"))
        kwargs = run_mock.call_args.kwargs
        self.assertEqual(run_mock.call_args.args, (["systemctl", "list-jobs"],))
        self.assertIs(kwargs["stderr"], subprocess.STDOUT)
        self.assertEqual(kwargs["env"]["SYSTEMD_COLORS"], FORCED_COLOR_ENV["SYSTEMD_COLORS"])
        self.assertNotIn("timeout", kwargs)
        self.assertIsNotNone(kwargs["preexec_fn"])

    def test_missing_binary_yields_empty_output(self) -> None:
        with mock.patch("clustermenu.executor.subprocess.run", side_effect=FileNotFoundError("nope")):
            result = CommandExecutor().capture("drbdsetup", "events2")

        self.assertIsNone(result.returncode)
        self.assertFalse(result.ok)
        self.assertEqual(result.output, "")
        self.assertEqual(result.summary(), "drbdsetup events2: could not start")

    @unittest.skipUnless(os.path.exists("/proc/self/status"), "needs procfs")
    def test_child_runs_with_console_signals_unblocked(self) -> None:
        listener = SignalListener(on_resize=lambda: None, on_terminate=lambda: None)
        listener.block()
        try:
            output = CommandExecutor().run("grep", "SigBlk", "/proc/self/status")
        finally:
            listener.restore()

        blocked_mask = int(output.split()[-1], 16)
        still_blocked = {sig.name for sig in HANDLED_SIGNALS if blocked_mask & (1 << (sig - 1))}
        self.assertEqual(still_blocked, set())

    def test_failed_child_setup_yields_empty_output(self) -> None:
        with mock.patch(
            "clustermenu.executor.subprocess.run", side_effect=subprocess.SubprocessError("preexec failed")
        ):
            result = CommandExecutor().capture("systemctl", "list-jobs")

        self.assertIsNone(result.returncode)
        self.assertEqual(result.output, "")

    def test_run_returns_output_of_failed_command(self) -> None:
        completed = subprocess.CompletedProcess(args=["x"], returncode=3, stdout="partial")
        with mock.patch("clustermenu.executor.subprocess.run", return_value=completed):
            self.assertEqual(CommandExecutor().run("x"), "partial")

    def test_spawn_records_last_result(self) -> None:
        executor = CommandExecutor()
        completed = subprocess.CompletedProcess(args=["sudo"], returncode=1, stdout="denied")
        with mock.patch("clustermenu.executor.subprocess.run", return_value=completed):
            waiter = executor.spawn(["sudo", "systemctl", "reboot"])
            waiter.join(timeout=5)

        self.assertEqual(executor.last_result.summary(), "sudo systemctl reboot: exit 1")
        self.assertFalse(executor.last_result.ok)

    def test_spawn_ignores_empty_command(self) -> None:
        executor = CommandExecutor()

        self.assertIsNone(executor.spawn(()))
        self.assertIsNone(executor.last_result)


if __name__ == "__main__":
    unittest.main()
