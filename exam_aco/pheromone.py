"""
exam_aco/pheromone.py
─────────────────────
The pheromone model: the colony's shared, persistent memory, plus the static
heuristic it is always weighed against.

In this scheduler:
  • "Path"   = placing exam i in room k during timeslot j.
  • "Better" = lower fitness (fewer conflicts, earlier timeslots).
  • τ[i][j][k] = pheromone on that placement.
  • η[i][j][k] = heuristic desirability of that placement.

Grid layout
───────────
  Shape : (n_exams, n_timeslots, n_rooms)
  Indices are list positions in the ScheduleModel. The grids know nothing
  about exam or room identifiers; translating ids to indices happens in
  deposit_solution(), the one place a solution crosses into index space.

Heuristic
─────────
  η[i][j][k] = 0                                    if exam i > capacity(k)
             = (size_i / capacity_k) × pref_j       otherwise

  pref_j = (n_timeslots − j) / n_timeslots × 2.0

  Tight fits score high (utilisation close to 1.0) and earlier timeslots
  score higher than later ones. η is computed once and never touched again.

Evaporation at ρ = 1.0
──────────────────────
The default evaporation rate wipes the pheromone grid completely before each
deposit, so only the current iteration's good ants leave any trail. The
search then behaves more like repeated heuristic-biased restarts than
classical reinforcement. The default is kept for compatibility with existing
runs; lower it through ColonyConfig to get real accumulation.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
from numpy.typing import NDArray

from timetable.shared.models import Assignment, ScheduleModel

# ── Pheromone constants ────────────────────────────────────────────────────────

TAU_INITIAL: float = 1.0
"""Starting pheromone on every (exam, timeslot, room) cell."""

EVAPORATION_RATE: float = 1.0
"""ρ (rho): fraction of pheromone that evaporates each iteration.

τ_new = τ_old × (1 − ρ). At 1.0 every cell is zeroed before deposit.
"""

DEPOSIT_CONSTANT: float = 0.1
"""Scale applied to every deposit: Δτ = DEPOSIT_CONSTANT / (1 + fitness)."""

TIMESLOT_PREFERENCE_SCALE: float = 2.0
"""Upper bound of the timeslot preference factor (reached at index 0)."""


class PheromoneModel:
    """
    Two parallel 3-D float64 grids: `pheromone` (mutable) and `heuristic`
    (fixed at construction).

    Used by:
        Ant._select_placement() → reads pheromone_view() and heuristic.
        Colony.run()            → calls evaporate() and deposit_solution().

    Thread safety:
        Not thread-safe. Ants only read; all writes happen between iterations
        after every ant of the iteration has finished.
    """

    def __init__(
        self,
        model: ScheduleModel,
        evaporation_rate: float = EVAPORATION_RATE,
        deposit_constant: float = DEPOSIT_CONSTANT,
    ) -> None:
        """
        Build both grids for the given ScheduleModel.

        Args:
            model:            The problem instance. Its list order defines
                              the grid axes.
            evaporation_rate: ρ in [0, 1].
            deposit_constant: Multiplier on every deposit.

        Raises:
            ValueError: if evaporation_rate is outside [0, 1] or
                        deposit_constant is negative.
        """
        if not 0.0 <= evaporation_rate <= 1.0:
            raise ValueError(
                f"evaporation_rate must be within [0, 1], got {evaporation_rate}"
            )
        if deposit_constant < 0.0:
            raise ValueError(
                f"deposit_constant must be non-negative, got {deposit_constant}"
            )

        self._model = model
        self._evaporation_rate = evaporation_rate
        self._deposit_constant = deposit_constant
        self._shape: Tuple[int, int, int] = (
            model.num_exams, model.num_timeslots, model.num_rooms,
        )

        self._pheromone: NDArray[np.float64] = np.full(
            self._shape, TAU_INITIAL, dtype=np.float64
        )
        self._heuristic: NDArray[np.float64] = self._compute_heuristic(model)
        self._heuristic.setflags(write=False)

    @staticmethod
    def _compute_heuristic(model: ScheduleModel) -> NDArray[np.float64]:
        """
        η as an outer product of a (exam × room) utilisation table and a
        per-timeslot preference vector.

        Infeasible single-room placements (exam bigger than the room) are
        zeroed so the roulette wheel never picks them.
        """
        sizes = np.array([e.student_count for e in model.exams], dtype=np.float64)
        capacities = np.array([r.capacity for r in model.rooms], dtype=np.float64)

        utilisation = sizes[:, None] / capacities[None, :]
        utilisation[sizes[:, None] > capacities[None, :]] = 0.0

        n_t = model.num_timeslots
        preference = (n_t - np.arange(n_t, dtype=np.float64)) / n_t * TIMESLOT_PREFERENCE_SCALE

        return utilisation[:, None, :] * preference[None, :, None]

    # ── Core operations ────────────────────────────────────────────────────────

    def evaporate(self) -> None:
        """τ ← τ × (1 − ρ) for every cell, in place."""
        self._pheromone *= (1.0 - self._evaporation_rate)

    def deposit(self, exam_idx: int, timeslot_idx: int, room_idx: int, amount: float) -> None:
        """Add `amount` to a single cell."""
        self._pheromone[exam_idx, timeslot_idx, room_idx] += amount

    def deposit_amount(self, fitness: float) -> float:
        """Δτ for a solution of the given fitness: deposit_constant / (1 + fitness)."""
        return (1.0 / (1.0 + fitness)) * self._deposit_constant

    def deposit_solution(self, assignments: Iterable[Assignment], fitness: float) -> int:
        """
        Reinforce every placement in one ant's solution.

        Each Assignment adds deposit_amount(fitness) to its cell, so an exam
        split across three rooms reinforces three cells. Assignments whose
        exam, timeslot or room is unknown to the model are skipped.

        Returns:
            Number of cells reinforced.
        """
        amount = self.deposit_amount(fitness)
        reinforced = 0
        for assignment in assignments:
            i = self._model.exam_index(assignment.exam_id)
            j = self._model.timeslot_index(assignment.timeslot)
            k = self._model.room_index(assignment.room_id)
            if i is None or j is None or k is None:
                continue
            self._pheromone[i, j, k] += amount
            reinforced += 1
        return reinforced

    # ── Read access ────────────────────────────────────────────────────────────

    def pheromone_view(self, exam_idx: int) -> NDArray[np.float64]:
        """
        τ[exam_idx] as a (n_timeslots, n_rooms) VIEW into the live grid.

        Callers must not write to it.
        """
        return self._pheromone[exam_idx]

    def heuristic_view(self, exam_idx: int) -> NDArray[np.float64]:
        """η[exam_idx], read-only."""
        return self._heuristic[exam_idx]

    @property
    def heuristic(self) -> NDArray[np.float64]:
        return self._heuristic

    def snapshot(self) -> NDArray[np.float64]:
        """Deep copy of the pheromone grid, for tests and diagnostics."""
        return self._pheromone.copy()

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self._shape

    @property
    def evaporation_rate(self) -> float:
        return self._evaporation_rate

    @property
    def deposit_constant(self) -> float:
        return self._deposit_constant

    def __repr__(self) -> str:
        return (
            f"PheromoneModel(shape={self._shape}, "
            f"min={self._pheromone.min():.4f}, max={self._pheromone.max():.4f}, "
            f"mean={self._pheromone.mean():.4f})"
        )
