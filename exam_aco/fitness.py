"""
exam_aco/fitness.py
───────────────────
The fitness evaluator: scores one candidate schedule. Lower is better,
0 is the floor.

Penalty terms
─────────────
  capacity           1000 × Σ max(0, seated − capacity)       per assignment
  student conflict    500 × (n_exams − 1)   per (student, timeslot) with ≥2 exams
  unassigned exam     100                   per exam with no assignment at all
  room conflict      2000 × (n_exams − 1)   per (timeslot, room) with ≥2 exams
  timeslot usage      −10                   per distinct timeslot used
  efficiency          200 × count_j × (j − i)
                      for every timeslot i holding fewer than n_rooms
                      assignments and every later timeslot j holding any

  score = max(0, Σ terms)

The usage bonus and the efficiency penalty pull in opposite directions:
spreading out earns a little, leaving an early slot under-full while
a later one is busy costs a lot.

The evaluator is a pure function of (assignments, model, weights). It keeps
no state between calls; calling it twice on the same input gives the same
score.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field

from timetable.shared.models import Assignment, ScheduleModel

# ── Penalty weights ────────────────────────────────────────────────────────────

CAPACITY_VIOLATION_PENALTY: float = 1000.0
STUDENT_CONFLICT_PENALTY: float = 500.0
UNASSIGNED_EXAM_PENALTY: float = 100.0
ROOM_CONFLICT_PENALTY: float = 2000.0
TIMESLOT_USAGE_BONUS: float = 10.0
TIMESLOT_EFFICIENCY_PENALTY: float = 200.0


class PenaltyWeights(BaseModel):
    """Per-term weights. Defaults reproduce the reference scoring exactly."""
    model_config = ConfigDict(frozen=True)

    capacity_violation: float = Field(CAPACITY_VIOLATION_PENALTY, ge=0.0)
    student_conflict: float = Field(STUDENT_CONFLICT_PENALTY, ge=0.0)
    unassigned_exam: float = Field(UNASSIGNED_EXAM_PENALTY, ge=0.0)
    room_conflict: float = Field(ROOM_CONFLICT_PENALTY, ge=0.0)
    timeslot_usage_bonus: float = Field(TIMESLOT_USAGE_BONUS, ge=0.0)
    timeslot_efficiency: float = Field(TIMESLOT_EFFICIENCY_PENALTY, ge=0.0)


class FitnessBreakdown(BaseModel):
    """
    Every term of one evaluation, before and after the floor.

    `raw` can be negative (a clean schedule earns the usage bonus and nothing
    else); `score` is what the colony compares.
    """
    capacity: float = 0.0
    student_conflicts: float = 0.0
    unassigned: float = 0.0
    room_conflicts: float = 0.0
    timeslot_bonus: float = 0.0
    timeslot_efficiency: float = 0.0

    conflicting_rooms: List[Tuple[str, str]] = Field(default_factory=list)
    unassigned_exams: List[str] = Field(default_factory=list)
    timeslots_used: int = 0

    @property
    def raw(self) -> float:
        return (
            self.capacity
            + self.student_conflicts
            + self.unassigned
            + self.room_conflicts
            - self.timeslot_bonus
            + self.timeslot_efficiency
        )

    @property
    def score(self) -> float:
        return max(0.0, self.raw)


class FitnessEvaluator:
    """
    Scores candidate schedules against one ScheduleModel.

    Usage:
        evaluator = FitnessEvaluator(model)
        score     = evaluator.evaluate(assignments)
        details   = evaluator.breakdown(assignments)
    """

    def __init__(self, model: ScheduleModel, weights: Optional[PenaltyWeights] = None) -> None:
        self._model = model
        self._weights = weights or PenaltyWeights()

    @property
    def weights(self) -> PenaltyWeights:
        return self._weights

    def evaluate(self, assignments: Sequence[Assignment]) -> float:
        """Non-negative fitness of `assignments`."""
        return self.breakdown(assignments).score

    def breakdown(self, assignments: Sequence[Assignment]) -> FitnessBreakdown:
        w = self._weights
        conflicting_rooms, room_penalty = self._room_conflicts(assignments)
        unassigned = self._unassigned_exams(assignments)
        timeslots_used = len({a.timeslot for a in assignments})

        return FitnessBreakdown(
            capacity=w.capacity_violation * self._capacity_overflow(assignments),
            student_conflicts=w.student_conflict * self._student_conflicts(assignments),
            unassigned=w.unassigned_exam * len(unassigned),
            room_conflicts=w.room_conflict * room_penalty,
            timeslot_bonus=w.timeslot_usage_bonus * timeslots_used,
            timeslot_efficiency=w.timeslot_efficiency * self._efficiency_units(assignments),
            conflicting_rooms=conflicting_rooms,
            unassigned_exams=unassigned,
            timeslots_used=timeslots_used,
        )

    # ── Individual terms (unweighted) ─────────────────────────────────────────

    def _capacity_overflow(self, assignments: Sequence[Assignment]) -> int:
        """Total seats over capacity. Unknown rooms are ignored."""
        overflow = 0
        for a in assignments:
            room = self._model.room_by_id(a.room_id)
            if room is not None and a.student_count > room.capacity:
                overflow += a.student_count - room.capacity
        return overflow

    def _student_conflicts(self, assignments: Sequence[Assignment]) -> int:
        """
        Σ (distinct exams − 1) over every (student, timeslot) that has more
        than one exam. Split parts of the same exam count once.
        """
        exams_at: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        seen: Set[Tuple[str, str]] = set()
        for a in assignments:
            if (a.exam_id, a.timeslot) in seen:
                continue
            seen.add((a.exam_id, a.timeslot))
            exam = self._model.exam_by_id(a.exam_id)
            if exam is None:
                continue
            for student_id in exam.students:
                exams_at[(student_id, a.timeslot)].add(exam.id)

        return sum(len(ids) - 1 for ids in exams_at.values() if len(ids) > 1)

    @staticmethod
    def _room_conflicts(assignments: Sequence[Assignment]) -> Tuple[List[Tuple[str, str]], int]:
        """
        (conflicting (timeslot, room) pairs, Σ (distinct exams − 1)) over every
        pair hosting more than one exam.
        """
        exams_in: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        for a in assignments:
            exams_in[(a.timeslot, a.room_id)].add(a.exam_id)

        conflicting = sorted(key for key, ids in exams_in.items() if len(ids) > 1)
        units = sum(len(exams_in[key]) - 1 for key in conflicting)
        return conflicting, units

    def _unassigned_exams(self, assignments: Sequence[Assignment]) -> List[str]:
        placed = {a.exam_id for a in assignments}
        return [e.id for e in self._model.exams if e.id not in placed]

    def _efficiency_units(self, assignments: Sequence[Assignment]) -> int:
        """
        Σ count_j × (j − i) over timeslot pairs i < j where slot i is
        under-full (fewer assignments than rooms) and slot j is in use.
        """
        per_slot = Counter(a.timeslot for a in assignments)
        counts = [per_slot.get(t, 0) for t in self._model.timeslots]
        n_rooms = self._model.num_rooms

        units = 0
        for i, count_i in enumerate(counts):
            if count_i >= n_rooms:
                continue
            for j in range(i + 1, len(counts)):
                if counts[j] > 0:
                    units += counts[j] * (j - i)
        return units
