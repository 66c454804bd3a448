"""
timetable/control_plane/analysis.py
───────────────────────────────────
Schedule analysis: a human-readable summary of one schedule.

Where fitness answers "how good is it?" with a single number, the analysis
answers "what does it look like?":

  - how many assignments vs how many exams
  - how many timeslots are used vs available, and the load of each
  - how many (timeslot, room) pairs host more than one exam
  - how many students are actually seated vs required, per exam

Nothing here feeds back into the search.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, Field

from exam_aco.fitness import FitnessEvaluator, PenaltyWeights
from timetable.shared.models import Assignment, ScheduleModel


class ExamCoverage(BaseModel):
    """Seated vs enrolled students for one exam."""
    exam_id: str
    required: int = Field(..., ge=0)
    seated: int = Field(..., ge=0)
    rooms: int = Field(0, ge=0)

    @property
    def shortfall(self) -> int:
        return max(0, self.required - self.seated)


class ScheduleAnalysis(BaseModel):
    fitness: float
    raw_fitness: float
    assignment_count: int
    exam_count: int
    exams_placed: int
    timeslots_used: int
    timeslots_available: int
    timeslot_load: Dict[str, int] = Field(default_factory=dict)
    room_conflicts: int = 0
    conflicting_rooms: List[Tuple[str, str]] = Field(default_factory=list)
    students_required: int = 0
    students_seated: int = 0
    coverage: List[ExamCoverage] = Field(default_factory=list)

    @property
    def split_exams(self) -> List[str]:
        return [c.exam_id for c in self.coverage if c.rooms > 1]

    @property
    def short_exams(self) -> List[ExamCoverage]:
        return [c for c in self.coverage if c.shortfall > 0]

    def summary_lines(self) -> List[str]:
        return [
            f"Total fitness score: {self.fitness}",
            f"Assignments: {self.assignment_count} / {self.exam_count} exams "
            f"({self.exams_placed} placed)",
            f"Timeslots used: {self.timeslots_used} / {self.timeslots_available}",
            f"Timeslot distribution: {self.timeslot_load}",
            f"Room conflicts: {self.room_conflicts}",
            f"Students seated: {self.students_seated} / {self.students_required}",
        ]


def analyse_schedule(
    model: ScheduleModel,
    assignments: Sequence[Assignment],
    weights: Optional[PenaltyWeights] = None,
) -> ScheduleAnalysis:
    """Summarise `assignments` against `model`."""
    breakdown = FitnessEvaluator(model, weights).breakdown(assignments)

    load = Counter(a.timeslot for a in assignments)
    timeslot_load = {t: load[t] for t in model.timeslots if load[t]}
    for t, n in load.items():
        if t not in timeslot_load:
            timeslot_load[t] = n

    seated: Dict[str, int] = defaultdict(int)
    rooms_of: Dict[str, Set[Tuple[str, str]]] = defaultdict(set)
    for a in assignments:
        seated[a.exam_id] += a.student_count
        rooms_of[a.exam_id].add((a.timeslot, a.room_id))

    coverage = [
        ExamCoverage(
            exam_id=e.id,
            required=e.student_count,
            seated=seated.get(e.id, 0),
            rooms=len(rooms_of.get(e.id, ())),
        )
        for e in model.exams
    ]

    return ScheduleAnalysis(
        fitness=breakdown.score,
        raw_fitness=breakdown.raw,
        assignment_count=len(assignments),
        exam_count=model.num_exams,
        exams_placed=sum(1 for c in coverage if c.rooms > 0),
        timeslots_used=breakdown.timeslots_used,
        timeslots_available=model.num_timeslots,
        timeslot_load=timeslot_load,
        room_conflicts=len(breakdown.conflicting_rooms),
        conflicting_rooms=list(breakdown.conflicting_rooms),
        students_required=model.total_students,
        students_seated=sum(c.seated for c in coverage),
        coverage=coverage,
    )
