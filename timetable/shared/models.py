"""
timetable/shared/models.py
──────────────────────────
The single source of truth for every data structure in the exam scheduler.

Design philosophy
-----------------
Every model answers one question: "What does the optimiser *need to know*
about this thing in order to place an exam?"

  Exam      → who sits it (the student list) and therefore how big it is.
  Room      → how many students it can seat.
  Timeslot  → a plain string, but its POSITION in the timeslot list matters:
              index 0 is the most preferred slot.
  Assignment→ one (exam, timeslot, room, head-count) placement. An exam that
              does not fit in one room produces several of these.

ScheduleModel aggregates the lists and owns the id ↔ index maps the
pheromone grid is addressed with. Those maps are built once, in the
validator, and never rebuilt for the lifetime of the model.

Reading guide
-------------
Read top-to-bottom. Each model builds on the ones above it.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 1: INPUT RECORDS
# Immutable after load.
# ─────────────────────────────────────────────────────────────────────────────

class Student(BaseModel):
    """A registered student. Only the identifier is used by the optimiser."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique student identifier")


class Exam(BaseModel):
    """
    One exam and the students enrolled in it.

    The order of `students` carries no meaning. `student_count` is what the
    heuristic, the selection gate and the splitter all work from.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique exam identifier")
    students: List[str] = Field(
        ..., description="Identifiers of the students sitting this exam (may be empty)",
    )

    @property
    def student_count(self) -> int:
        return len(self.students)


class Room(BaseModel):
    """An exam room. Capacity is a hard seat count, strictly positive."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique room identifier")
    capacity: int = Field(..., gt=0, description="Number of seats")


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 2: SOLUTION RECORDS
# Produced by the colony, consumed by the fitness evaluator and the writers.
# ─────────────────────────────────────────────────────────────────────────────

class Assignment(BaseModel):
    """
    One placement: `student_count` students of `exam_id` sit in `room_id`
    during `timeslot`.

    Several Assignments may share an exam_id when the exam was split across
    rooms. Their student_counts should add up to the exam's size, but a tight
    split can leave a shortfall (the fitness function, not the model, deals
    with that).
    """
    model_config = ConfigDict(frozen=True)

    exam_id: str
    timeslot: str
    room_id: str
    student_count: int = Field(..., ge=0)

    def to_document(self) -> Dict[str, object]:
        """Render in the output-document shape: exam / room / timeslot / students."""
        return {
            "exam": self.exam_id,
            "room": self.room_id,
            "timeslot": self.timeslot,
            "students": self.student_count,
        }


class ScheduleOutput(BaseModel):
    """The best schedule found by a run and its fitness (lower is better)."""

    schedule: List[Assignment] = Field(default_factory=list)
    fitness: float = Field(..., ge=0.0)

    def to_document(self) -> Dict[str, object]:
        return {
            "schedule": [a.to_document() for a in self.schedule],
            "fitness": self.fitness,
        }


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 3: SCHEDULE MODEL
# The read-only problem instance handed to the optimiser.
# ─────────────────────────────────────────────────────────────────────────────

class ScheduleModel(BaseModel):
    """
    Exams, students, rooms and the ordered timeslot sequence for one run.

    Index space:
        exams[i]      ↔ row i of the pheromone / heuristic grids
        timeslots[j]  ↔ depth j (and j is the preference rank, 0 = best)
        rooms[k]      ↔ column k

    The mapping is fixed for the lifetime of the instance. Nothing in the
    optimiser is allowed to reorder these lists; the model is not frozen only
    because pydantic private attributes need a mutable instance to be set.

    Raises (pydantic ValidationError) on:
        • duplicate exam, room or timeslot identifiers
        • empty exam, room or timeslot lists
        • a missing "students" key, on the model or on any exam
          (an explicit [] is fine)
    """

    exams: List[Exam] = Field(..., min_length=1)
    students: List[Student] = Field(
        ..., description="Student register; [] disables the registration check",
    )
    rooms: List[Room] = Field(..., min_length=1)
    timeslots: List[str] = Field(..., min_length=1)

    _exam_index: Dict[str, int] = PrivateAttr(default_factory=dict)
    _room_index: Dict[str, int] = PrivateAttr(default_factory=dict)
    _timeslot_index: Dict[str, int] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _build_indices(self) -> "ScheduleModel":
        self._exam_index = _unique_index("exam", [e.id for e in self.exams])
        self._room_index = _unique_index("room", [r.id for r in self.rooms])
        self._timeslot_index = _unique_index("timeslot", list(self.timeslots))
        return self

    # ── Dimensions ────────────────────────────────────────────────────────────

    @property
    def num_exams(self) -> int:
        return len(self.exams)

    @property
    def num_rooms(self) -> int:
        return len(self.rooms)

    @property
    def num_timeslots(self) -> int:
        return len(self.timeslots)

    # ── Lookups ───────────────────────────────────────────────────────────────

    def exam_by_id(self, exam_id: str) -> Optional[Exam]:
        idx = self._exam_index.get(exam_id)
        return None if idx is None else self.exams[idx]

    def room_by_id(self, room_id: str) -> Optional[Room]:
        idx = self._room_index.get(room_id)
        return None if idx is None else self.rooms[idx]

    def exam_index(self, exam_id: str) -> Optional[int]:
        return self._exam_index.get(exam_id)

    def room_index(self, room_id: str) -> Optional[int]:
        return self._room_index.get(room_id)

    def timeslot_index(self, timeslot: str) -> Optional[int]:
        return self._timeslot_index.get(timeslot)

    @property
    def total_students(self) -> int:
        """Seats needed across all exams (a student in two exams counts twice)."""
        return sum(e.student_count for e in self.exams)

    def __repr__(self) -> str:
        return (
            f"ScheduleModel(exams={self.num_exams}, students={len(self.students)}, "
            f"rooms={self.num_rooms}, timeslots={self.num_timeslots})"
        )


def _unique_index(kind: str, ids: List[str]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for position, item_id in enumerate(ids):
        if item_id in index:
            raise ValueError(f"duplicate {kind} id {item_id!r}")
        index[item_id] = position
    return index


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 4: CONVENIENCE TYPE ALIASES
# ─────────────────────────────────────────────────────────────────────────────

# One ant's candidate solution, in construction order.
CandidateSchedule = List[Assignment]
