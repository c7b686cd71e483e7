"""
Mock command runner — universal test double for external commands.

Used by ``provision run --mock`` and by the test suite to simulate
package managers without touching the host.  Responses are matched
by command prefix, longest prefix wins.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from provisioner.adapters.shell.command import CommandResult, CommandRunner


class MockCommandRunner(CommandRunner):
    """Command runner that records calls and returns canned results.

    By default every command succeeds.  ``available`` lists the
    binaries ``which()`` should report as installed.
    """

    def __init__(
        self,
        available: Iterable[str] = (),
        default_output: str = "[mock] executed",
    ):
        self._available = set(available)
        self._default_output = default_output
        self._responses: dict[tuple[str, ...], CommandResult] = {}
        self._call_log: list[list[str]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[list[str]]:
        """Every command this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_starting_with(self, *prefix: str) -> list[list[str]]:
        """Recorded commands that begin with ``prefix``."""
        return [c for c in self._call_log if tuple(c[: len(prefix)]) == prefix]

    def set_available(self, *binaries: str) -> None:
        self._available.update(binaries)

    def set_response(self, prefix: Iterable[str], result: CommandResult) -> None:
        """Return ``result`` for any command starting with ``prefix``."""
        self._responses[tuple(prefix)] = result

    def set_failure(
        self,
        prefix: Iterable[str],
        stderr: str = "Mock failure",
        returncode: int = 1,
    ) -> None:
        """Make commands starting with ``prefix`` fail."""
        key = tuple(prefix)
        self._responses[key] = CommandResult(
            command=list(key), returncode=returncode, stderr=stderr,
        )

    def which(self, binary: str) -> str | None:
        return f"/usr/bin/{binary}" if binary in self._available else None

    def run(
        self,
        cmd: list[str],
        *,
        timeout: int | None = None,
        cwd: Path | str | None = None,
        env_overrides: dict[str, str] | None = None,
    ) -> CommandResult:
        self._call_log.append(list(cmd))

        match: tuple[str, ...] | None = None
        for prefix in self._responses:
            if tuple(cmd[: len(prefix)]) == prefix and (
                match is None or len(prefix) > len(match)
            ):
                match = prefix

        if match is not None:
            canned = self._responses[match]
            return canned.model_copy(update={"command": list(cmd)})

        return CommandResult(command=list(cmd), stdout=self._default_output)

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
