"""
Command runner — the provisioner's only door to external processes.

Package managers, git, and probe commands all go through a
``CommandRunner``.  Runners never raise: a missing binary, a timeout
or a non-zero exit all come back as a ``CommandResult`` the caller
must check.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Output tails kept on a result (package managers are chatty)
_OUTPUT_TAIL = 2000


class CommandResult(BaseModel):
    """Exit status and captured output of one external command."""

    command: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    error: str | None = None    # set when the process could not run at all

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def summary(self) -> str:
        """One-line description of a failure."""
        if self.error:
            return self.error
        stderr = self.stderr.strip()
        if stderr:
            return stderr.splitlines()[-1]
        return f"exit {self.returncode}"


class CommandRunner(ABC):
    """Abstract runner for external commands."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Runner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def run(
        self,
        cmd: list[str],
        *,
        timeout: int | None = None,
        cwd: Path | str | None = None,
        env_overrides: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a command and return its result.

        MUST never raise.  Failures are captured in the result.
        """

    def which(self, binary: str) -> str | None:
        """Locate an executable on the search path."""
        return shutil.which(binary)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class SubprocessRunner(CommandRunner):
    """Run commands with ``subprocess.run`` and capture their output."""

    @property
    def name(self) -> str:
        return "subprocess"

    def run(
        self,
        cmd: list[str],
        *,
        timeout: int | None = None,
        cwd: Path | str | None = None,
        env_overrides: dict[str, str] | None = None,
    ) -> CommandResult:
        env = None
        if env_overrides:
            env = os.environ.copy()
            env.update(env_overrides)

        logger.debug("Executing: %s (cwd=%s)", " ".join(cmd), cwd)
        start = time.monotonic()

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=cwd,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=cmd,
                returncode=-1,
                duration_ms=_elapsed_ms(start),
                error=f"Command timed out after {timeout}s",
            )
        except FileNotFoundError:
            return CommandResult(
                command=cmd,
                returncode=127,
                duration_ms=_elapsed_ms(start),
                error=f"Command not found: {cmd[0]}",
            )
        except OSError as e:
            return CommandResult(
                command=cmd,
                returncode=-1,
                duration_ms=_elapsed_ms(start),
                error=f"Command execution error: {e}",
            )

        return CommandResult(
            command=cmd,
            returncode=proc.returncode,
            stdout=proc.stdout[-_OUTPUT_TAIL:] if proc.stdout else "",
            stderr=proc.stderr[-_OUTPUT_TAIL:] if proc.stderr else "",
            duration_ms=_elapsed_ms(start),
        )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
