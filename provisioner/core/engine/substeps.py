"""
Sub-step fan-out within a single recipe.

Recipes run strictly one after another.  Inside one recipe, sub-steps
that touch unrelated paths may run on a thread pool; every sub-step is
joined before the recipe reports, and every failure ends up in the
combined result.
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Callable, Mapping

from provisioner.core.models.result import InstallResult

logger = logging.getLogger(__name__)

SubStep = Callable[[], InstallResult]


def run_substeps(
    steps: Mapping[str, SubStep],
    *,
    max_workers: int | None = None,
) -> InstallResult:
    """Run independent sub-steps concurrently and aggregate their results.

    Args:
        steps: Sub-step label → callable returning an ``InstallResult``.
        max_workers: Thread pool size (default: one per step).

    Returns:
        ``failed_fatal`` if any sub-step was fatal or raised,
        ``failed_fallback_exhausted`` if any other sub-step failed,
        ``skipped_already_installed`` if all were skipped,
        ``success`` otherwise.
    """
    if not steps:
        return InstallResult.skip("nothing to do")

    results: dict[str, InstallResult] = {}
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers or len(steps),
    ) as pool:
        futures = {pool.submit(fn): label for label, fn in steps.items()}
        for future in concurrent.futures.as_completed(futures):
            label = futures[future]
            try:
                results[label] = future.result()
            except Exception as e:
                logger.error("Sub-step %s raised: %s", label, e)
                results[label] = InstallResult.failure(str(e))

    # Report in declaration order, not completion order
    failures = [(label, results[label]) for label in steps if results[label].failed]
    if failures:
        reason = "; ".join(f"{label}: {r.reason or r.status}" for label, r in failures)
        if any(r.fatal for _, r in failures):
            return InstallResult.failure(reason)
        return InstallResult.exhausted(reason)

    if all(results[label].skipped for label in steps):
        return InstallResult.skip()

    return InstallResult.success(dry_run=any(r.dry_run for r in results.values()))
