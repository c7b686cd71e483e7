"""
Engine executor — the central provisioning loop.

Takes the recipe registry and a detected platform, runs every selected
recipe in order, one at a time, and collects one result per recipe.

Flow:
    platform check → order recipes → filter → execute → escalate → report

Failure policy: a failed critical recipe aborts the run immediately;
a failed non-critical recipe is logged and the run continues.  The
engine has no retries.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from provisioner.core.engine.registry import RecipeRegistry
from provisioner.core.errors import (
    CriticalRecipeFailed,
    NonCriticalRecipeFailed,
    PlatformUnsupported,
    ProvisionError,
)
from provisioner.core.models.context import ExecutionContext
from provisioner.core.models.platform import PlatformInfo
from provisioner.core.models.recipe import Recipe
from provisioner.core.models.result import InstallResult
from provisioner.core.observability.logging_config import SUCCESS

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CRITICAL_FAILURE = 1
EXIT_UNSUPPORTED_PLATFORM = 2


class RunState(str, Enum):
    """Engine lifecycle: NOT_STARTED → RUNNING → COMPLETED | ABORTED."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted_on_critical_failure"


@dataclass
class RecipeOutcome:
    """What one recipe produced."""

    name: str
    result: InstallResult
    critical: bool = False
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "critical": self.critical,
            "duration_ms": self.duration_ms,
            **self.result.to_dict(),
        }


@dataclass
class RunReport:
    """Ordered results of one run, truncated at an abort."""

    run_id: str = ""
    state: RunState = RunState.NOT_STARTED
    outcomes: list[RecipeOutcome] = field(default_factory=list)
    filtered: list[str] = field(default_factory=list)
    aborted_by: str | None = None
    duration_ms: int = 0

    @property
    def results(self) -> list[tuple[str, InstallResult]]:
        return [(o.name, o.result) for o in self.outcomes]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.result.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.result.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.result.skipped)

    @property
    def exit_code(self) -> int:
        return EXIT_CRITICAL_FAILURE if self.state is RunState.ABORTED else EXIT_OK

    @property
    def status(self) -> str:
        if self.state is RunState.ABORTED:
            return "aborted"
        if self.failed == 0:
            return "ok"
        return "partial"

    def raise_for_status(self) -> None:
        """Raise ``CriticalRecipeFailed`` if the run was aborted."""
        if self.state is RunState.ABORTED and self.outcomes:
            last = self.outcomes[-1]
            raise CriticalRecipeFailed(last.name, last.result)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "status": self.status,
            "exit_code": self.exit_code,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "aborted_by": self.aborted_by,
            "filtered": list(self.filtered),
            "duration_ms": self.duration_ms,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class Engine:
    """Sequential recipe runner."""

    def __init__(self, registry: RecipeRegistry, platform: PlatformInfo):
        self.registry = registry
        self.platform = platform
        self.state = RunState.NOT_STARTED

    def run(self, context: ExecutionContext) -> RunReport:
        """Run every recipe that passes the context filter.

        Raises:
            PlatformUnsupported: Before any recipe runs, if the host OS
                is neither Darwin nor Linux.
            RecipeOrderError: If recipe dependencies are unknown or cyclic.
        """
        if not self.platform.supported:
            logger.error("Unsupported platform: %s", self.platform.system or "unknown")
            raise PlatformUnsupported(self.platform.system)

        recipes = self.registry.ordered()
        report = RunReport(run_id=context.run_id)
        self.state = report.state = RunState.RUNNING
        start = time.monotonic()

        mode = " (dry run)" if context.dry_run else ""
        logger.info(
            "Provisioning %s/%s with %d recipes%s",
            self.platform.os.value, self.platform.arch.value, len(recipes), mode,
        )

        for recipe in recipes:
            if not context.matches(recipe.name):
                logger.info("Filtered: %s", recipe.name)
                report.filtered.append(recipe.name)
                continue

            outcome = self._execute(recipe, context)
            report.outcomes.append(outcome)

            try:
                _escalate(recipe, outcome.result)
            except CriticalRecipeFailed as e:
                logger.error("%s — aborting run", e)
                report.aborted_by = recipe.name
                self.state = report.state = RunState.ABORTED
                break
            except NonCriticalRecipeFailed as e:
                logger.warning("%s — continuing", e)
        else:
            self.state = report.state = RunState.COMPLETED

        report.duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Run %s: %d/%d recipes ok, %d failed, %d filtered",
            report.state.value, report.succeeded, report.total, report.failed,
            len(report.filtered),
        )
        return report

    def _execute(self, recipe: Recipe, context: ExecutionContext) -> RecipeOutcome:
        logger.info("Running recipe %s%s", recipe.name, " (critical)" if recipe.critical else "")
        start = time.monotonic()

        try:
            result = recipe.action(self.platform, context)
        except ProvisionError as e:
            result = InstallResult.failure(str(e))
        except Exception as e:
            # Recipes should return results, but never let one crash the run
            logger.exception("Recipe %s raised", recipe.name)
            result = InstallResult.failure(f"Unexpected error: {e}")

        if not isinstance(result, InstallResult):
            result = InstallResult.failure(
                f"Recipe returned {type(result).__name__}, expected InstallResult",
            )

        if result.ok:
            marker = "already provisioned" if result.skipped else "done"
            logger.log(SUCCESS, "Recipe %s: %s", recipe.name, marker)

        return RecipeOutcome(
            name=recipe.name,
            result=result,
            critical=recipe.critical,
            duration_ms=int((time.monotonic() - start) * 1000),
        )


def _escalate(recipe: Recipe, result: InstallResult) -> None:
    """Translate a failed result into the critical/non-critical taxonomy."""
    if result.ok:
        return
    if recipe.critical:
        raise CriticalRecipeFailed(recipe.name, result)
    raise NonCriticalRecipeFailed(recipe.name, result)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"
