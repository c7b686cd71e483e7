"""
Tests for persistence — run and backup ledgers.
"""

import json
from pathlib import Path

from provisioner.core.models.result import BackupRecord
from provisioner.core.persistence.audit import BackupLedger, RunEntry, RunLedger


class TestRunLedger:
    def test_append_and_read(self, tmp_state_dir: Path):
        ledger = RunLedger.for_state_dir(tmp_state_dir)
        ledger.append(RunEntry(run_id="run-1", state="completed"))
        ledger.append(RunEntry(run_id="run-2", state="aborted_on_critical_failure", exit_code=1))

        entries = ledger.read_all()
        assert [e.run_id for e in entries] == ["run-1", "run-2"]
        assert entries[1].exit_code == 1
        assert ledger.path == tmp_state_dir / "runs.ndjson"

    def test_ndjson_format(self, tmp_state_dir: Path):
        ledger = RunLedger.for_state_dir(tmp_state_dir)
        ledger.append(RunEntry(run_id="run-1", outcomes=[{"name": "libs", "status": "success"}]))
        lines = ledger.path.read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["outcomes"][0]["name"] == "libs"

    def test_read_recent(self, tmp_state_dir: Path):
        ledger = RunLedger.for_state_dir(tmp_state_dir)
        for i in range(5):
            ledger.append(RunEntry(run_id=f"run-{i}"))
        assert [e.run_id for e in ledger.read_recent(2)] == ["run-3", "run-4"]
        assert ledger.entry_count() == 5

    def test_missing_file(self, tmp_path: Path):
        ledger = RunLedger(tmp_path / "nope.ndjson")
        assert ledger.read_all() == []
        assert ledger.entry_count() == 0

    def test_corrupt_line_skipped(self, tmp_state_dir: Path):
        ledger = RunLedger.for_state_dir(tmp_state_dir)
        ledger.append(RunEntry(run_id="run-1"))
        with ledger.path.open("a") as f:
            f.write("not json {{{\n")
        ledger.append(RunEntry(run_id="run-2"))
        assert [e.run_id for e in ledger.read_all()] == ["run-1", "run-2"]

    def test_creates_directories(self, tmp_path: Path):
        ledger = RunLedger(tmp_path / "deep" / "nested" / "runs.ndjson")
        ledger.append(RunEntry(run_id="run-1"))
        assert ledger.path.is_file()


class TestBackupLedger:
    def test_records(self, tmp_path: Path):
        ledger = BackupLedger.for_backup_root(tmp_path)
        ledger.append(BackupRecord(original_path="/h/.zshrc", backup_path="/b/.zshrc.1", scope="zsh"))
        [record] = ledger.read_all()
        assert record.scope == "zsh"
        assert record.timestamp
        assert ledger.path == tmp_path / "backups.ndjson"
