"""
exam_aco/colony.py
──────────────────
The Colony: orchestrates all ants across all iterations.

How the colony works
─────────────────────
  1. Builds a PheromoneModel for the ScheduleModel (τ = 1.0 everywhere,
     η fixed from room utilisation and timeslot preference).
  2. For each of n_iterations:
       a. n_ants ants each build and score a complete schedule, reading the
          pheromone grid but never writing it.
       b. The best-ever schedule is replaced when an ant scores STRICTLY lower.
       c. Barrier: only after every ant has finished, the grid evaporates
          and each ant whose fitness is below
          best_fitness × deposit_threshold_ratio deposits
          deposit_constant / (1 + fitness) on every cell it used.
  3. Returns the best schedule seen in ANY iteration.

There is no convergence test: the full iteration budget always runs unless a
deadline (config.time_limit_s) or the caller's should_stop() ends it early
at an iteration boundary.

Observability
──────────────
The colony does no I/O. It reports through an optional ColonyObserver:
  on_iteration(IterationSample) once per iteration,
  on_warning(RunWarning) for fallbacks, dropped exams and early stops.
timetable.telemetry.collector.RunCollector is the standard observer.

Determinism
────────────
Every random draw comes from the numpy Generator passed to run(). Two runs
with generators built from the same seed, on the same model and config,
return identical schedules and fitness.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional, Protocol, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from exam_aco.ant import ALPHA, BETA, TIMESLOT_BIAS_BASE, Ant
from exam_aco.fitness import FitnessEvaluator, PenaltyWeights
from exam_aco.pheromone import DEPOSIT_CONSTANT, EVAPORATION_RATE, PheromoneModel
from timetable.shared.models import Assignment, CandidateSchedule, ScheduleModel, ScheduleOutput
from timetable.shared.telemetry import (
    WARNING_STOPPED_EARLY,
    IterationSample,
    RunWarning,
)

# ── Colony hyperparameters ─────────────────────────────────────────────────────

N_ANTS: int = 20
"""Default number of ants per iteration."""

N_ITERATIONS: int = 50
"""Default iteration budget."""

DEPOSIT_THRESHOLD_RATIO: float = 1.5
"""An ant deposits only if its fitness < best_fitness × this ratio."""


class ColonyConfig(BaseModel):
    """Every tunable of one optimisation run."""
    model_config = ConfigDict(frozen=True)

    n_ants: int = Field(N_ANTS, ge=1)
    n_iterations: int = Field(N_ITERATIONS, ge=1)
    alpha: float = Field(ALPHA, ge=0.0)
    beta: float = Field(BETA, ge=0.0)
    evaporation_rate: float = Field(EVAPORATION_RATE, ge=0.0, le=1.0)
    deposit_constant: float = Field(DEPOSIT_CONSTANT, ge=0.0)
    deposit_threshold_ratio: float = Field(DEPOSIT_THRESHOLD_RATIO, gt=0.0)
    timeslot_bias_base: float = Field(TIMESLOT_BIAS_BASE, gt=0.0)
    time_limit_s: Optional[float] = Field(
        None, gt=0.0,
        description="Wall-clock budget, checked between iterations. None = no limit.",
    )
    weights: PenaltyWeights = Field(default_factory=PenaltyWeights)


class ColonyObserver(Protocol):
    """Hook the colony reports to. Both methods must return quickly."""

    def on_iteration(self, sample: IterationSample) -> None: ...

    def on_warning(self, warning: RunWarning) -> None: ...


class ColonyResult(BaseModel):
    """Best schedule of a run plus how the run ended."""

    schedule: List[Assignment] = Field(default_factory=list)
    fitness: float = Field(..., ge=0.0)
    iterations_run: int = Field(0, ge=0)
    stopped_early: bool = False
    elapsed_ms: float = Field(0.0, ge=0.0)

    def to_output(self) -> ScheduleOutput:
        return ScheduleOutput(schedule=list(self.schedule), fitness=self.fitness)


class Colony:
    """
    Runs the full ACO loop over one ScheduleModel.

    Usage:
        colony = Colony(model, ColonyConfig(n_ants=50, n_iterations=100))
        result = colony.run(np.random.default_rng(42))

    After run():
        colony.pheromone    → the grid in its final state.
        colony.last_run_ms  → wall-clock time of the last run() call.
    """

    def __init__(
        self,
        model: ScheduleModel,
        config: Optional[ColonyConfig] = None,
        observer: Optional[ColonyObserver] = None,
    ) -> None:
        self._model = model
        self._config = config or ColonyConfig()
        self._observer = observer
        self._evaluator = FitnessEvaluator(model, self._config.weights)
        self._capacities = np.array([r.capacity for r in model.rooms], dtype=np.int64)

        self.pheromone: Optional[PheromoneModel] = None
        self.last_run_ms: float = 0.0

    @property
    def config(self) -> ColonyConfig:
        return self._config

    @property
    def evaluator(self) -> FitnessEvaluator:
        return self._evaluator

    # ── Main colony loop ───────────────────────────────────────────────────────

    def run(
        self,
        rng: np.random.Generator,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> ColonyResult:
        """
        Execute the colony and return the best schedule found.

        Args:
            rng:         Generator for every random draw in the run.
            should_stop: Polled before each iteration after the first;
                         returning True ends the run with the best so far.

        Returns:
            ColonyResult with the best-ever schedule and its fitness.
        """
        cfg = self._config
        start = time.perf_counter()
        deadline = start + cfg.time_limit_s if cfg.time_limit_s is not None else None

        pheromone = PheromoneModel(
            self._model,
            evaporation_rate=cfg.evaporation_rate,
            deposit_constant=cfg.deposit_constant,
        )
        self.pheromone = pheromone

        best_solution: CandidateSchedule = []
        best_fitness: float = float("inf")
        iterations_run = 0
        stopped_early = False

        for iteration in range(1, cfg.n_iterations + 1):
            if iteration > 1 and self._should_stop(should_stop, deadline):
                stopped_early = True
                self._warn(RunWarning(
                    kind=WARNING_STOPPED_EARLY,
                    message=(
                        f"Stopped after {iterations_run}/{cfg.n_iterations} "
                        f"iterations with best fitness {best_fitness}"
                    ),
                    iteration=iterations_run,
                ))
                break

            ants = self._construct_iteration(pheromone, rng, iteration)

            improved = False
            for ant in ants:
                if ant.fitness < best_fitness:
                    best_fitness = ant.fitness
                    best_solution = list(ant.solution)
                    improved = True

            # Barrier: every ant above has finished reading the grid.
            depositing = self._update_pheromone(pheromone, ants, best_fitness)
            iterations_run = iteration

            if self._observer is not None:
                scores = [a.fitness for a in ants]
                self._observer.on_iteration(IterationSample(
                    iteration=iteration,
                    n_iterations=cfg.n_iterations,
                    best_fitness=best_fitness,
                    iteration_best=min(scores),
                    iteration_mean=float(np.mean(scores)),
                    depositing_ants=depositing,
                    improved=improved,
                    elapsed_ms=(time.perf_counter() - start) * 1000.0,
                ))

        self.last_run_ms = (time.perf_counter() - start) * 1000.0

        return ColonyResult(
            schedule=best_solution,
            fitness=best_fitness,
            iterations_run=iterations_run,
            stopped_early=stopped_early,
            elapsed_ms=self.last_run_ms,
        )

    def _construct_iteration(
        self,
        pheromone: PheromoneModel,
        rng: np.random.Generator,
        iteration: int,
    ) -> List[Ant]:
        cfg = self._config
        on_warning = self._observer.on_warning if self._observer is not None else None
        ants = [
            Ant(
                self._model, pheromone, self._evaluator, rng,
                alpha=cfg.alpha,
                beta=cfg.beta,
                timeslot_bias_base=cfg.timeslot_bias_base,
                capacities=self._capacities,
                on_warning=on_warning,
                iteration=iteration,
            )
            for _ in range(cfg.n_ants)
        ]
        for ant in ants:
            ant.construct()
        return ants

    def _update_pheromone(
        self,
        pheromone: PheromoneModel,
        ants: List[Ant],
        best_fitness: float,
    ) -> int:
        """
        Evaporate, then deposit for every ant under the threshold.

        Returns:
            Number of ants that deposited.
        """
        pheromone.evaporate()

        threshold = best_fitness * self._config.deposit_threshold_ratio
        depositing = 0
        for ant in ants:
            if ant.fitness < threshold:
                pheromone.deposit_solution(ant.solution, ant.fitness)
                depositing += 1
        return depositing

    @staticmethod
    def _should_stop(
        should_stop: Optional[Callable[[], bool]],
        deadline: Optional[float],
    ) -> bool:
        if deadline is not None and time.perf_counter() >= deadline:
            return True
        return should_stop is not None and bool(should_stop())

    def _warn(self, warning: RunWarning) -> None:
        if self._observer is not None:
            self._observer.on_warning(warning)

    def __repr__(self) -> str:
        return (
            f"Colony(exams={self._model.num_exams}, "
            f"timeslots={self._model.num_timeslots}, rooms={self._model.num_rooms}, "
            f"ants={self._config.n_ants}, iterations={self._config.n_iterations}, "
            f"last_run_ms={self.last_run_ms:.2f})"
        )


def optimize(
    model: ScheduleModel,
    num_ants: int,
    max_iterations: int,
    rng: np.random.Generator,
    config: Optional[ColonyConfig] = None,
    observer: Optional[ColonyObserver] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Tuple[CandidateSchedule, float]:
    """
    Core entry point: best (assignments, fitness) after the full run.

    num_ants and max_iterations override the matching fields of `config`;
    every other tunable comes from `config` (defaults when None).
    """
    base = config or ColonyConfig()
    cfg = ColonyConfig(**{
        **base.model_dump(),
        "n_ants": num_ants,
        "n_iterations": max_iterations,
    })

    result = Colony(model, cfg, observer).run(rng, should_stop=should_stop)
    return result.schedule, result.fitness
