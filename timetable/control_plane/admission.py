"""
timetable/control_plane/admission.py
────────────────────────────────────
Admission control: semantic validation before scheduling.

Runs AFTER pydantic validation (schema correctness, unique ids, positive
capacities) and BEFORE the colony.

What it rejects
────────────────
  1. An exam that lists the same student twice. The student would be
     counted as two seats and as a conflict with themself.
  2. An exam that lists a student who is not registered, when a student
     register was supplied at all. An empty register disables this check.

What it only warns about
─────────────────────────
Capacity shortfalls. An exam bigger than every room of a timeslot put
together, or more seats needed than the whole timetable offers, cannot be
fully placed. That is not fatal: the colony places what it can and the
penalty terms record the rest. The warnings are returned (and logged) so the
caller can surface them.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List

from exam_aco.splitter import total_capacity
from timetable.shared.models import ScheduleModel

logger = logging.getLogger(__name__)


class ProblemRejectedError(Exception):
    """
    Raised when a problem instance fails admission control.

    Attributes:
        reason: Human-readable explanation of why it was rejected.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


def admit_problem(model: ScheduleModel) -> List[str]:
    """
    Run all admission checks on a ScheduleModel.

    Returns:
        Capacity warnings (possibly empty). Each one has also been logged.

    Raises:
        ProblemRejectedError: with a descriptive reason string.
    """
    _check_duplicate_enrolments(model)
    _check_registered_students(model)

    warnings = _capacity_warnings(model)
    for message in warnings:
        logger.warning("admission: %s", message)
    return warnings


# ── Individual checks ─────────────────────────────────────────────────────────

def _check_duplicate_enrolments(model: ScheduleModel) -> None:
    for exam in model.exams:
        repeated = sorted(s for s, n in Counter(exam.students).items() if n > 1)
        if repeated:
            raise ProblemRejectedError(
                f"Exam {exam.id!r} lists student(s) {repeated} more than once."
            )


def _check_registered_students(model: ScheduleModel) -> None:
    if not model.students:
        return
    registered = {s.id for s in model.students}
    for exam in model.exams:
        unknown = sorted(set(exam.students) - registered)
        if unknown:
            raise ProblemRejectedError(
                f"Exam {exam.id!r} lists unregistered student(s) {unknown[:5]}"
                f"{' ...' if len(unknown) > 5 else ''}."
            )


def _capacity_warnings(model: ScheduleModel) -> List[str]:
    per_slot = total_capacity(model.rooms)
    warnings: List[str] = []

    for exam in model.exams:
        if exam.student_count > per_slot:
            warnings.append(
                f"Exam {exam.id!r} has {exam.student_count} students but a "
                f"timeslot seats at most {per_slot}; it cannot be fully placed."
            )

    overall = per_slot * model.num_timeslots
    if model.total_students > overall:
        warnings.append(
            f"{model.total_students} seats needed across all exams but the "
            f"timetable offers {overall}; some students will not be placed."
        )
    return warnings
