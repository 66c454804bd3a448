"""
exam_aco/splitter.py
────────────────────
Room splitting: seat one oversized exam across several rooms of a timeslot.

The ant calls split_exam_into_rooms() when the room it picked cannot hold the
whole exam. The splitter works only with identifiers and capacities; it has
no idea the pheromone grid exists.

Algorithm
─────────
  1. Sort the candidate rooms by capacity, largest first (stable, so equal
     capacities keep their input order).
  2. If the largest room holds everyone → one Assignment there.
  3. Otherwise take the first ceil(size / largest) rooms (fewer if that many
     are not free) and spread the students evenly:
        base  = size // n_used
        extra = size %  n_used
     The first `extra` rooms get base + 1, the rest get base.
  4. Clamp every share to its room's capacity. When capacities are tight the
     total seated can fall short of the exam size; that is a partial
     placement, not an error.
  5. Emit one Assignment per room with a positive share.

Guarantees: no Assignment with a count ≤ 0, no Assignment above its room's
capacity.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from timetable.shared.models import Assignment, Exam, Room


def split_exam_into_rooms(
    exam: Exam,
    timeslot: str,
    available_rooms: Sequence[Room],
) -> List[Assignment]:
    """
    Partition `exam` across the rooms in `available_rooms` at `timeslot`.

    Args:
        exam:            The exam to seat.
        timeslot:        Timeslot identifier written into every Assignment.
        available_rooms: Rooms currently free at that timeslot.

    Returns:
        Zero or more Assignments for this exam. Empty when no rooms were
        offered or the exam has no students.
    """
    total = exam.student_count
    if not available_rooms or total <= 0:
        return []

    ranked = sorted(available_rooms, key=lambda r: r.capacity, reverse=True)
    largest = ranked[0]

    if total <= largest.capacity:
        return [Assignment(
            exam_id=exam.id, timeslot=timeslot,
            room_id=largest.id, student_count=total,
        )]

    min_rooms_needed = -(-total // largest.capacity)
    used = ranked[:min_rooms_needed]

    base, extra = divmod(total, len(used))

    assignments: List[Assignment] = []
    for position, room in enumerate(used):
        share = base + (1 if position < extra else 0)
        share = min(share, room.capacity)
        if share > 0:
            assignments.append(Assignment(
                exam_id=exam.id, timeslot=timeslot,
                room_id=room.id, student_count=share,
            ))
    return assignments


def total_capacity(rooms: Iterable[Room]) -> int:
    """Seats available in one timeslot if every room is used."""
    return sum(r.capacity for r in rooms)


def can_fit_all_exams(exams: Iterable[Exam], rooms: Iterable[Room]) -> bool:
    """True if all exams together would fit in the rooms of a single timeslot."""
    return total_capacity(rooms) >= sum(e.student_count for e in exams)
