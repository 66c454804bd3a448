"""
timetable/control_plane/scheduler.py
────────────────────────────────────
The scheduling layer: turns a validated ScheduleModel into a timetable.

schedule_exams() is what the CLI (and any other caller) uses. It wraps the
colony with everything the colony itself leaves out:

  1. Admission  → admit_problem(): reject broken instances, collect
                  capacity warnings.
  2. Generator  → build a numpy Generator from `seed` unless the caller
                  passed one.
  3. Colony     → Colony(model, config, observer=RunCollector).run(rng).
  4. Analysis   → analyse_schedule() on the best schedule.
  5. Logging    → one INFO line for the run, WARNINGs from the collector,
                  and one WARNING per room conflict left in the best
                  schedule.

Error handling contract
────────────────────────
  ProblemRejectedError: from admission. Propagates; the caller decides how
                        to report it (the CLI exits with status 1).
  Everything inside the colony is handled by penalties; a run always
  produces a schedule, even if it is a poor one.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import numpy as np
from pydantic import BaseModel, Field

from exam_aco import Colony, ColonyConfig, ColonyResult
from timetable.control_plane.admission import admit_problem
from timetable.control_plane.analysis import ScheduleAnalysis, analyse_schedule
from timetable.shared.models import ScheduleModel, ScheduleOutput
from timetable.shared.telemetry import RunProfile
from timetable.telemetry.collector import RunCollector

logger = logging.getLogger(__name__)


class ScheduleRun(BaseModel):
    """Everything one call to schedule_exams() produced."""

    result: ColonyResult
    analysis: ScheduleAnalysis
    profile: RunProfile
    admission_warnings: List[str] = Field(default_factory=list)
    seed: Optional[int] = None

    @property
    def output(self) -> ScheduleOutput:
        return self.result.to_output()


def schedule_exams(
    model: ScheduleModel,
    config: Optional[ColonyConfig] = None,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    collector: Optional[RunCollector] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> ScheduleRun:
    """
    Admit, optimise and analyse one problem instance.

    Args:
        model:       The loaded problem.
        config:      Colony tunables. Defaults when None.
        seed:        Seed for a fresh numpy Generator. Ignored if `rng` given.
                     None with no `rng` → an OS-entropy seeded generator.
        rng:         Explicit generator, for callers that manage their own.
        collector:   Observer to report to. A fresh RunCollector when None.
        should_stop: Cooperative cancellation, polled between iterations.

    Returns:
        ScheduleRun with the colony result, analysis and run profile.

    Raises:
        ProblemRejectedError: if admission control rejects the instance.
    """
    config = config or ColonyConfig()
    admission_warnings = admit_problem(model)

    if rng is None:
        rng = np.random.default_rng(seed)
    collector = collector or RunCollector()

    logger.info(
        "schedule_exams: %r with %d ants x %d iterations (seed=%s)",
        model, config.n_ants, config.n_iterations, seed,
    )

    colony = Colony(model, config, observer=collector)
    result = colony.run(rng, should_stop=should_stop)
    analysis = analyse_schedule(model, result.schedule, config.weights)

    logger.info(
        "schedule_exams: best fitness %s after %d iteration(s) in %.1fms "
        "(%d assignments, %d/%d exams placed%s)",
        result.fitness, result.iterations_run, result.elapsed_ms,
        analysis.assignment_count, analysis.exams_placed, analysis.exam_count,
        ", stopped early" if result.stopped_early else "",
    )
    for timeslot, room_id in analysis.conflicting_rooms:
        logger.warning(
            "schedule_exams: room conflict, %r hosts more than one exam in %r",
            room_id, timeslot,
        )

    return ScheduleRun(
        result=result,
        analysis=analysis,
        profile=collector.profile,
        admission_warnings=admission_warnings,
        seed=seed,
    )
