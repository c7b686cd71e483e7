"""
Result models — what an install attempt or a guarded mutation produced.

Like adapter receipts, these are values, not exceptions: the installer
and the mutation guard never raise for an ordinary failure, they hand
back one of these and let the caller decide.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

InstallStatus = Literal[
    "success",
    "skipped_already_installed",
    "failed_fallback_exhausted",
    "failed_fatal",
]

MutationStatus = Literal["changed", "unchanged", "dry_run", "failed"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class InstallResult(BaseModel):
    """Outcome of an install attempt or of a whole recipe."""

    model_config = ConfigDict(frozen=True)

    status: InstallStatus
    reason: str = ""
    manager: str | None = None              # manager that succeeded
    attempts: tuple[str, ...] = ()          # managers tried, in order
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.status in ("success", "skipped_already_installed")

    @property
    def failed(self) -> bool:
        return not self.ok

    @property
    def skipped(self) -> bool:
        return self.status == "skipped_already_installed"

    @property
    def fatal(self) -> bool:
        return self.status == "failed_fatal"

    @classmethod
    def success(cls, manager: str | None = None, **kwargs: Any) -> InstallResult:
        return cls(status="success", manager=manager, **kwargs)

    @classmethod
    def skip(cls, reason: str = "already installed", **kwargs: Any) -> InstallResult:
        return cls(status="skipped_already_installed", reason=reason, **kwargs)

    @classmethod
    def exhausted(cls, reason: str, **kwargs: Any) -> InstallResult:
        return cls(status="failed_fallback_exhausted", reason=reason, **kwargs)

    @classmethod
    def failure(cls, reason: str, **kwargs: Any) -> InstallResult:
        return cls(status="failed_fatal", reason=reason, **kwargs)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class BackupRecord(BaseModel):
    """Where a pre-existing file was copied before it was replaced.

    Audit trail only; nothing in the provisioner restores from it.
    """

    original_path: str
    backup_path: str
    timestamp: str = Field(default_factory=_now_iso)
    scope: str = ""     # recipe that captured the backup


class MutationResult(BaseModel):
    """Outcome of a single Mutation Guard operation."""

    status: MutationStatus
    path: str
    message: str = ""
    backup: BackupRecord | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @property
    def changed(self) -> bool:
        """Whether this operation changed (or, in dry-run, would change) anything."""
        return self.status in ("changed", "dry_run")

    @classmethod
    def applied(cls, path: str, message: str, backup: BackupRecord | None = None) -> MutationResult:
        return cls(status="changed", path=path, message=message, backup=backup)

    @classmethod
    def unchanged(cls, path: str, message: str = "already in desired state") -> MutationResult:
        return cls(status="unchanged", path=path, message=message)

    @classmethod
    def planned(cls, path: str, message: str) -> MutationResult:
        return cls(status="dry_run", path=path, message=message)

    @classmethod
    def failure(cls, path: str, message: str, backup: BackupRecord | None = None) -> MutationResult:
        return cls(status="failed", path=path, message=message, backup=backup)
