"""
Audit ledgers — append-only NDJSON logs.

Two ledgers are kept:

- the run ledger (``<state_dir>/runs.ndjson``): one structured
  manifest per real (non-dry) run — platform, switches, per-recipe
  results;
- the backup ledger (``<backup_root>/backups.ndjson``): one line per
  backup the Mutation Guard captured.

Both are append-only: entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from provisioner.core.models.result import BackupRecord

logger = logging.getLogger(__name__)

RUN_LEDGER_FILE = "runs.ndjson"
BACKUP_LEDGER_FILE = "backups.ndjson"

EntryT = TypeVar("EntryT", bound=BaseModel)


class RunEntry(BaseModel):
    """Manifest of a single provisioning run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    state: str = ""               # completed, aborted_on_critical_failure
    exit_code: int = 0
    duration_ms: int = 0

    # Switches
    dry_run: bool = False
    force_install: bool = False
    filter: str | None = None

    platform: dict[str, Any] = Field(default_factory=dict)
    outcomes: list[dict[str, Any]] = Field(default_factory=list)
    filtered: list[str] = Field(default_factory=list)
    backups: list[dict[str, Any]] = Field(default_factory=list)


class NdjsonLedger(Generic[EntryT]):
    """Append-only ledger of pydantic entries, one JSON object per line."""

    entry_model: type[BaseModel] = BaseModel

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: EntryT) -> None:
        """Append an entry.  I/O errors are logged, not raised."""
        data = entry.model_dump(mode="json")
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Ledger entry written to %s", self._path)
        except OSError as e:
            logger.error("Failed to write ledger entry to %s: %s", self._path, e)

    def read_all(self) -> list[EntryT]:
        """Read all entries, oldest first.  Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries: list[EntryT] = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(self.entry_model.model_validate(json.loads(line)))  # type: ignore[arg-type]
                    except (json.JSONDecodeError, ValueError) as e:
                        logger.warning(
                            "Skipping corrupt entry at %s:%d: %s", self._path, line_num, e,
                        )
        except OSError as e:
            logger.error("Failed to read ledger %s: %s", self._path, e)

        return entries

    def read_recent(self, n: int = 20) -> list[EntryT]:
        """Read the most recent N entries."""
        return self.read_all()[-n:]

    def entry_count(self) -> int:
        """Count entries without validating them."""
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0


class RunLedger(NdjsonLedger[RunEntry]):
    """Per-run manifests under the state directory."""

    entry_model = RunEntry

    @classmethod
    def for_state_dir(cls, state_dir: Path) -> RunLedger:
        return cls(state_dir / RUN_LEDGER_FILE)


class BackupLedger(NdjsonLedger[BackupRecord]):
    """Every backup taken before a mutation."""

    entry_model = BackupRecord

    @classmethod
    def for_backup_root(cls, backup_root: Path) -> BackupLedger:
        return cls(backup_root / BACKUP_LEDGER_FILE)
