"""
timetable/shared/telemetry.py
─────────────────────────────
RunProfile: what one optimisation run looked like, iteration by iteration.

Why this is a separate file from models.py
------------------------------------------
models.py defines the problem and its solutions (what is being scheduled).
telemetry.py defines what we *observe* while the colony searches.

  models.py    → "What are we scheduling?"
  telemetry.py → "How did the search go?"

The colony never writes these records itself. It hands events to an
observer (see exam_aco/colony.py, ColonyObserver); the RunCollector in
timetable/telemetry/collector.py is the observer that keeps them.

Event kinds
-----------
  IterationSample → emitted once per iteration boundary.
  RunWarning      → emitted when the search does something it would rather
                    not: a degenerate selection fallback, an exam dropped
                    because no room was free anywhere, an early stop.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


WARNING_DEGENERATE_FALLBACK = "degenerate_fallback"
WARNING_EXAM_DROPPED = "exam_dropped"
WARNING_STOPPED_EARLY = "stopped_early"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IterationSample(BaseModel):
    """
    The state of the colony at the end of one iteration.

    Fields:
        iteration         → 1-based iteration number.
        n_iterations      → configured iteration budget.
        best_fitness      → best-ever fitness after this iteration.
        iteration_best    → best fitness among this iteration's ants.
        iteration_mean    → mean fitness among this iteration's ants.
        depositing_ants   → how many ants passed the deposit threshold.
        improved          → True if this iteration set a new best.
        elapsed_ms        → wall-clock time since the run started.
    """
    iteration: int = Field(..., ge=1)
    n_iterations: int = Field(..., ge=1)
    best_fitness: float = Field(..., ge=0.0)
    iteration_best: float = Field(..., ge=0.0)
    iteration_mean: float = Field(..., ge=0.0)
    depositing_ants: int = Field(0, ge=0)
    improved: bool = False
    elapsed_ms: float = Field(0.0, ge=0.0)
    timestamp: datetime = Field(default_factory=_utcnow)


class RunWarning(BaseModel):
    """Something the search worked around rather than solved."""
    kind: str
    message: str
    iteration: Optional[int] = Field(None, ge=1)
    exam_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class RunProfile(BaseModel):
    """
    Rolling record of one run.

    add_sample() appends and updates the summary fields; the raw samples are
    kept (bounded by max_samples, oldest dropped first) so callers can plot
    convergence afterwards.

    Warnings are bounded the same way by max_warnings. warning_counts keeps
    the exact per-kind totals, including warnings no longer retained.
    """
    run_name: str = "run"
    samples: List[IterationSample] = Field(default_factory=list)
    warnings: List[RunWarning] = Field(default_factory=list)
    max_samples: int = Field(10_000, ge=1)
    max_warnings: int = Field(1_000, ge=1)
    warning_counts: Dict[str, int] = Field(default_factory=dict)

    sample_count: int = 0
    improvement_count: int = 0
    best_fitness: Optional[float] = None
    last_updated: Optional[datetime] = None

    def add_sample(self, sample: IterationSample) -> None:
        self.samples.append(sample)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        self.sample_count += 1
        if sample.improved:
            self.improvement_count += 1
        self.best_fitness = sample.best_fitness
        self.last_updated = _utcnow()

    def add_warning(self, warning: RunWarning) -> None:
        self.warnings.append(warning)
        if len(self.warnings) > self.max_warnings:
            self.warnings = self.warnings[-self.max_warnings:]
        self.warning_counts[warning.kind] = self.warning_counts.get(warning.kind, 0) + 1
        self.last_updated = _utcnow()

    def warnings_of_kind(self, kind: str) -> List[RunWarning]:
        """Retained warnings of `kind`; see warning_counts for the full total."""
        return [w for w in self.warnings if w.kind == kind]

    @property
    def best_fitness_history(self) -> List[float]:
        """Best-ever fitness after each recorded iteration (oldest first)."""
        return [s.best_fitness for s in self.samples]
