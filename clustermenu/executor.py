"""External process invocation for status queries and operator actions.

Status queries run synchronously with stdout and stderr merged and colors
forced on. Operator actions are fire-and-forget: a daemon thread waits for the
process and records its outcome so the menu can show it later.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FORCED_COLOR_ENV = {"SYSTEMD_COLORS": "1"}


def _clear_signal_mask() -> None:
    # Runs in the child between fork and exec.
    signal.pthread_sigmask(signal.SIG_SETMASK, set())


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished external command."""

    argv: tuple[str, ...]
    returncode: int | None
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def summary(self) -> str:
        command = " ".join(self.argv)
        if self.returncode is None:
            return f"{command}: could not start"
        return f"{command}: exit {self.returncode}"


class CommandExecutor:
    """Run external commands without ever raising into the console."""

    def __init__(self, env_overrides: Mapping[str, str] | None = None) -> None:
        self._env_overrides = dict(FORCED_COLOR_ENV if env_overrides is None else env_overrides)
        self._lock = threading.Lock()
        self._last_result: CommandResult | None = None

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self._env_overrides)
        return env

    def capture(self, *argv: str) -> CommandResult:
        """Run ``argv`` to completion and return merged output and status.

        A command that cannot be started yields ``returncode=None`` and empty
        output. No timeout is applied. The child starts with an empty signal
        mask so termination signals reach it.
        """
        try:
            proc = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=self._environment(),
                preexec_fn=_clear_signal_mask,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("cannot run %s: %s", " ".join(argv), exc)
            return CommandResult(argv=tuple(argv), returncode=None, output="")
        if proc.returncode != 0:
            logger.debug("%s exited with %d", " ".join(argv), proc.returncode)
        return CommandResult(argv=tuple(argv), returncode=proc.returncode, output=proc.stdout)

    def run(self, *argv: str) -> str:
        """Return the merged output of ``argv``; failures give whatever was captured."""
        return self.capture(*argv).output

    def spawn(self, argv: Sequence[str]) -> threading.Thread | None:
        """Start ``argv`` in the background and return the waiting thread.

        Empty commands are ignored. The finished result is logged and kept as
        :attr:`last_result`.
        """
        if not argv:
            return None
        command = tuple(argv)
        logger.info("executing %s", " ".join(command))
        waiter = threading.Thread(
            target=self._wait_for,
            args=(command,),
            name="clustermenu-command",
            daemon=True,
        )
        waiter.start()
        return waiter

    def _wait_for(self, command: tuple[str, ...]) -> None:
        result = self.capture(*command)
        if result.ok:
            logger.info("%s", result.summary())
        else:
            logger.warning("%s; output: %s", result.summary(), result.output.strip())
        with self._lock:
            self._last_result = result

    @property
    def last_result(self) -> CommandResult | None:
        with self._lock:
            return self._last_result
