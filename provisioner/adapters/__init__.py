"""
Adapters — how the provisioner talks to the outside world.

The core only ever needs "run an external command, capture exit
status and output".  ``SubprocessRunner`` does it for real,
``MockCommandRunner`` simulates it.
"""

from provisioner.adapters.mock import MockCommandRunner
from provisioner.adapters.shell.command import (
    CommandResult,
    CommandRunner,
    SubprocessRunner,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "MockCommandRunner",
    "SubprocessRunner",
]
