"""
exam_aco/ant.py
───────────────
One ant: builds one complete candidate schedule for every exam.

What does an ant do?
─────────────────────
It shuffles the exams, then walks them in that order and, for each one,
samples a (timeslot, room) pair from the roulette wheel. Exams that come
early in the shuffle get first pick of the rooms; the shuffle is what makes
20 ants produce 20 different schedules.

State carried through one walk: a boolean grid used[t][r], True once room r
has been taken at timeslot t.

The selection weight
─────────────────────
For every pair (t, r) where r is still free at t and the exam fits in r:

    w(t, r) = τ[i][t][r]^α × η[i][t][r]^β × BIAS^(n_timeslots − t)

BIAS = 10. The exponential term makes timeslot order dominate: a later slot
is chosen essentially only when nothing earlier has any weight. Because
roulette-wheel selection only depends on weight RATIOS, the bias is applied
relative to the earliest slot with positive weight, 10^(t_first − t), which
keeps every weight finite however many timeslots there are.

Fallbacks
──────────
  1. No pair has positive weight (nothing fits, nothing free, or the
     pheromone on every fitting pair has evaporated to 0):
       → first free (t, r) in timeslot-then-room order, ignoring capacity.
  2. No room free at any timeslot:
       → (0, 0), reported as a degenerate_fallback warning. The exam may then
         collide with whatever already sits in room 0 at timeslot 0; the
         room-conflict penalty prices that in.

Oversized exams
────────────────
If the chosen room is too small, the ant hands the exam to the splitter with
every room still free at the chosen timeslot (or, if that timeslot is full,
at the first timeslot that has a free room). If no timeslot has a free room
the exam is dropped and reported as exam_dropped; the unassigned-exam
penalty accounts for it.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import numpy as np

from exam_aco.fitness import FitnessEvaluator
from exam_aco.pheromone import PheromoneModel
from exam_aco.splitter import split_exam_into_rooms
from timetable.shared.models import Assignment, CandidateSchedule, ScheduleModel
from timetable.shared.telemetry import (
    WARNING_DEGENERATE_FALLBACK,
    WARNING_EXAM_DROPPED,
    RunWarning,
)

# ── ACO hyperparameters ────────────────────────────────────────────────────────

ALPHA: float = 0.5
"""Pheromone influence exponent (τ^ALPHA)."""

BETA: float = 1.0
"""Heuristic influence exponent (η^BETA)."""

TIMESLOT_BIAS_BASE: float = 10.0
"""Base of the exponential earlier-timeslot bias."""

WarningSink = Callable[[RunWarning], None]


class Ant:
    """
    Constructs one candidate schedule from the pheromone model.

    Lifecycle:
        1. __init__()  → bind to the model, pheromone grid and generator.
        2. construct() → build the schedule and score it.
        3. Read:       ant.solution, ant.fitness.

    Single-use: create a new Ant for each construction.

    Attributes:
        solution : CandidateSchedule — placements in construction order.
        fitness  : float            — evaluator score of `solution`.
        dropped  : List[str]        — exams that got no room at all.
    """

    def __init__(
        self,
        model: ScheduleModel,
        pheromone: PheromoneModel,
        evaluator: FitnessEvaluator,
        rng: np.random.Generator,
        alpha: float = ALPHA,
        beta: float = BETA,
        timeslot_bias_base: float = TIMESLOT_BIAS_BASE,
        capacities: Optional[np.ndarray] = None,
        on_warning: Optional[WarningSink] = None,
        iteration: Optional[int] = None,
    ) -> None:
        """
        Args:
            model:              The problem instance (read-only).
            pheromone:          Shared pheromone model (read-only for the ant).
            evaluator:          Scores the finished schedule.
            rng:                The only source of randomness the ant uses.
            alpha, beta:        Selection exponents.
            timeslot_bias_base: Base of the earlier-timeslot bias.
            capacities:         Optional pre-built room capacity vector
                                (Colony shares one across all ants).
            on_warning:         Receives RunWarning events; None discards them.
            iteration:          Stamped on warnings for context.
        """
        self._model = model
        self._pheromone = pheromone
        self._evaluator = evaluator
        self._rng = rng
        self._alpha = alpha
        self._beta = beta
        self._bias_base = timeslot_bias_base
        self._capacities: np.ndarray = (
            capacities if capacities is not None
            else np.array([r.capacity for r in model.rooms], dtype=np.int64)
        )
        self._on_warning = on_warning
        self._iteration = iteration

        self.solution: CandidateSchedule = []
        self.fitness: float = float("inf")
        self.dropped: List[str] = []

    # ── Selection ──────────────────────────────────────────────────────────────

    def _select_placement(self, exam_idx: int, used: np.ndarray) -> Tuple[int, int]:
        """
        Roulette-wheel selection of a (timeslot_idx, room_idx) for one exam.

        Args:
            exam_idx: Row in the pheromone grid.
            used:     (n_timeslots, n_rooms) bool grid of rooms already taken.

        Returns:
            (timeslot_idx, room_idx). See the module docstring for the
            fallbacks when the wheel is empty.
        """
        size = self._model.exams[exam_idx].student_count
        valid = ~used & (self._capacities >= size)[None, :]

        t_idx, r_idx = np.nonzero(valid)
        if t_idx.size:
            tau = self._pheromone.pheromone_view(exam_idx)[t_idx, r_idx]
            eta = self._pheromone.heuristic_view(exam_idx)[t_idx, r_idx]
            base_weights = np.power(tau, self._alpha) * np.power(eta, self._beta)

            positive = np.flatnonzero(base_weights > 0.0)
            if positive.size:
                first_t = t_idx[positive[0]]
                bias = np.power(self._bias_base, (first_t - t_idx).astype(np.float64))
                weights = base_weights * bias
                total = float(weights.sum())

                # np.nonzero walks row-major, so cumsum order is
                # timeslot-then-room, the same order the wheel is laid out in.
                spin = self._rng.random() * total
                chosen = int(np.searchsorted(np.cumsum(weights), spin, side="left"))
                chosen = min(chosen, weights.size - 1)
                return int(t_idx[chosen]), int(r_idx[chosen])

        free = np.argwhere(~used)
        if free.size:
            return int(free[0, 0]), int(free[0, 1])

        self._warn(
            WARNING_DEGENERATE_FALLBACK,
            f"No free room at any timeslot for exam "
            f"{self._model.exams[exam_idx].id!r}; defaulting to "
            f"({self._model.timeslots[0]!r}, {self._model.rooms[0].id!r})",
            self._model.exams[exam_idx].id,
        )
        return 0, 0

    # ── Construction ───────────────────────────────────────────────────────────

    def construct(self) -> CandidateSchedule:
        """
        Build and score a full schedule.

        Returns:
            self.solution (also stored on the ant).
        """
        model = self._model
        used = np.zeros((model.num_timeslots, model.num_rooms), dtype=bool)

        for exam_idx in self._rng.permutation(model.num_exams):
            exam = model.exams[int(exam_idx)]
            t, r = self._select_placement(int(exam_idx), used)
            room = model.rooms[r]

            if exam.student_count <= room.capacity:
                self.solution.append(Assignment(
                    exam_id=exam.id,
                    timeslot=model.timeslots[t],
                    room_id=room.id,
                    student_count=exam.student_count,
                ))
                used[t, r] = True
                continue

            free_rooms = [model.rooms[k] for k in np.flatnonzero(~used[t])]
            if not free_rooms:
                for alt_t in range(model.num_timeslots):
                    free_rooms = [model.rooms[k] for k in np.flatnonzero(~used[alt_t])]
                    if free_rooms:
                        t = alt_t
                        break

            if not free_rooms:
                self.dropped.append(exam.id)
                self._warn(
                    WARNING_EXAM_DROPPED,
                    f"Exam {exam.id!r} ({exam.student_count} students) dropped: "
                    f"no free room at any timeslot",
                    exam.id,
                )
                continue

            parts = split_exam_into_rooms(exam, model.timeslots[t], free_rooms)
            for part in parts:
                used[t, model.room_index(part.room_id)] = True
            self.solution.extend(parts)

        self.fitness = self._evaluator.evaluate(self.solution)
        return self.solution

    def _warn(self, kind: str, message: str, exam_id: Optional[str] = None) -> None:
        if self._on_warning is None:
            return
        self._on_warning(RunWarning(
            kind=kind, message=message,
            iteration=self._iteration, exam_id=exam_id,
        ))

    def __repr__(self) -> str:
        placed = len({a.exam_id for a in self.solution})
        return (
            f"Ant(placed={placed}/{self._model.num_exams}, "
            f"assignments={len(self.solution)}, fitness={self.fitness:.2f})"
        )
