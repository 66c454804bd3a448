"""
timetable/data_plane/printer.py
───────────────────────────────
Console rendering of a schedule: one row per assignment, sorted by
(timeslot position, exam id), followed by totals.
"""

from __future__ import annotations

import sys
from typing import List, Optional, Sequence, TextIO

from timetable.shared.models import Assignment, ScheduleModel

HEADERS = ("Exam", "Students", "Timeslot", "Room")
MIN_WIDTHS = (18, 10, 16, 13)


def render_schedule_table(
    assignments: Sequence[Assignment],
    model: Optional[ScheduleModel] = None,
) -> str:
    """
    Render `assignments` as a box-drawn table.

    With a model, rows follow the timeslot preference order; without one
    they sort by timeslot id.
    """
    if not assignments:
        return "No schedule available.\n"

    def slot_key(a: Assignment):
        if model is not None:
            idx = model.timeslot_index(a.timeslot)
            if idx is not None:
                return (0, idx, "")
        return (1, 0, a.timeslot)

    rows = sorted(assignments, key=lambda a: (slot_key(a), a.exam_id, a.room_id))
    cells = [(a.exam_id, str(a.student_count), a.timeslot, a.room_id) for a in rows]

    widths = [
        max(MIN_WIDTHS[c], len(HEADERS[c]), *(len(row[c]) for row in cells))
        for c in range(len(HEADERS))
    ]

    def line(left: str, mid: str, right: str) -> str:
        return left + mid.join("─" * (w + 2) for w in widths) + right

    def row(values) -> str:
        return "│" + "│".join(f" {v:<{w}} " for v, w in zip(values, widths)) + "│"

    out: List[str] = [line("┌", "┬", "┐"), row(HEADERS), line("├", "┼", "┤")]
    out.extend(row(c) for c in cells)
    out.append(line("└", "┴", "┘"))

    out.append("")
    out.append("Statistics:")
    out.append(f"  - Assignments: {len(rows)}")
    out.append(f"  - Exams: {len({a.exam_id for a in rows})}")
    out.append(f"  - Students seated: {sum(a.student_count for a in rows)}")
    out.append(f"  - Timeslots used: {len({a.timeslot for a in rows})}")
    out.append(f"  - Rooms used: {len({a.room_id for a in rows})}")
    return "\n".join(out) + "\n"


def print_schedule_table(
    assignments: Sequence[Assignment],
    model: Optional[ScheduleModel] = None,
    stream: Optional[TextIO] = None,
) -> None:
    (stream or sys.stdout).write(render_schedule_table(assignments, model))
