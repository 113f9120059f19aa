"""
Synchronous execution of external commands.

Every invocation returns a ``CommandOutcome``: ``CommandOk`` carrying stdout
or ``CommandErr`` carrying the most useful captured text. Callers branch on
the variant with ``isinstance`` and never probe for attributes.

Spawned commands always run with ``LC_ALL``/``LANG`` pinned so that the
tables and assignments they print parse the same regardless of the user's
locale.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

__all__ = ["CommandOk", "CommandErr", "CommandOutcome", "CommandRunner"]


@dataclass(frozen=True)
class CommandOk:
    """The command exited with status 0."""
    stdout: str
    stderr: str = ""


@dataclass(frozen=True)
class CommandErr:
    """The command exited non-zero or could not be spawned."""
    message: str
    returncode: Optional[int] = None


CommandOutcome = Union[CommandOk, CommandErr]


class CommandRunner:
    """Run commands to completion and normalize the result."""

    def __init__(self, locale: str = "en_US.UTF-8", echo: Optional[Callable[[str], None]] = None) -> None:
        self.locale = locale
        self.echo = echo

    def build_env(self, overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        env = dict(os.environ)
        env["LC_ALL"] = self.locale
        env["LANG"] = self.locale
        if overrides:
            env.update(overrides)
        return env

    def run(
        self,
        argv: List[str],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
    ) -> CommandOutcome:
        """
        Run ``argv`` and block until it exits.

        There is no timeout: provisioning commands can legitimately wait on
        the network for a long time and the user can interrupt.

        Args:
            argv: Command and arguments
            env: Extra environment variables for this invocation
            cwd: Working directory

        Returns:
            CommandOk on exit status 0, CommandErr otherwise
        """
        if self.echo is not None:
            self.echo(" ".join(argv))
        logger.debug("Running: %s", " ".join(argv))

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                env=self.build_env(env),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (FileNotFoundError, PermissionError) as e:
            return CommandErr(message=f"Cannot run {argv[0]}: {e}")
        except OSError as e:
            return CommandErr(message=str(e))

        if result.returncode == 0:
            return CommandOk(stdout=result.stdout, stderr=result.stderr)

        logger.debug("Command failed with exit code %s", result.returncode)
        # Some tools print their diagnostics on stdout even when failing
        message = result.stdout or result.stderr or f"exit code {result.returncode}"
        if result.stdout and result.stderr:
            message = f"{result.stdout.rstrip()}\n{result.stderr}"
        return CommandErr(message=message, returncode=result.returncode)
