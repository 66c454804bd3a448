"""
timetable/telemetry/collector.py
────────────────────────────────
RunCollector: the standard ColonyObserver.

What this is
─────────────
The colony core never logs. It hands an IterationSample to its observer at
every iteration boundary and a RunWarning whenever it works around a problem.
RunCollector is that observer:

  - every sample is appended to a RunProfile (timetable/shared/telemetry.py)
  - every `log_every`-th iteration, and the last one, is logged at INFO
  - every warning is counted in the profile and the most recent ones are
    kept (RunProfile.max_warnings); the first `max_logged_warnings` of each
    kind are logged at WARNING, the rest are only counted (a 500-ant run
    can emit the same fallback thousands of times)

Integration contract
─────────────────────
    collector = RunCollector(log_every=10)
    colony    = Colony(model, config, observer=collector)
    colony.run(rng)
    collector.profile.best_fitness_history   # convergence curve
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from timetable.shared.telemetry import IterationSample, RunProfile, RunWarning

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────────

LOG_EVERY: int = 10
"""Log one progress line every LOG_EVERY iterations."""

MAX_LOGGED_WARNINGS: int = 5
"""Per warning kind, how many are written to the log before going quiet."""


class RunCollector:
    """Records colony events into a RunProfile and logs progress."""

    def __init__(
        self,
        run_name: str = "run",
        log_every: int = LOG_EVERY,
        max_logged_warnings: int = MAX_LOGGED_WARNINGS,
        profile: Optional[RunProfile] = None,
    ) -> None:
        if log_every < 1:
            raise ValueError(f"log_every must be >= 1, got {log_every}")
        self._log_every = log_every
        self._max_logged_warnings = max_logged_warnings
        self.profile = profile or RunProfile(run_name=run_name)

    # ── ColonyObserver ─────────────────────────────────────────────────────────

    def on_iteration(self, sample: IterationSample) -> None:
        self.profile.add_sample(sample)
        if sample.iteration % self._log_every == 0 or sample.iteration == sample.n_iterations:
            logger.info(
                "Iteration %d/%d - Best fitness: %s (iteration best %s, mean %.2f, %d depositing)",
                sample.iteration, sample.n_iterations, sample.best_fitness,
                sample.iteration_best, sample.iteration_mean, sample.depositing_ants,
            )

    def on_warning(self, warning: RunWarning) -> None:
        self.profile.add_warning(warning)
        count = self.profile.warning_counts[warning.kind]
        if count <= self._max_logged_warnings:
            logger.warning("[%s] %s", warning.kind, warning.message)
            if count == self._max_logged_warnings:
                logger.warning(
                    "Further %r warnings for this run are recorded but not logged.",
                    warning.kind,
                )

    # ── Introspection ──────────────────────────────────────────────────────────

    @property
    def warning_counts(self) -> Dict[str, int]:
        return dict(self.profile.warning_counts)

    def __repr__(self) -> str:
        return (
            f"RunCollector(run={self.profile.run_name!r}, "
            f"iterations={self.profile.sample_count}, "
            f"warnings={sum(self.profile.warning_counts.values())})"
        )
