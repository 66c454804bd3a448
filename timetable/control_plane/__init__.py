"""
timetable/control_plane — admission, scheduling and analysis.

Public API:
    schedule_exams()      — admit → colony → analyse, the service entry point
    ScheduleRun           — what schedule_exams() returns
    admit_problem()       — semantic pre-flight checks
    ProblemRejectedError  — raised by admission control
    analyse_schedule()    — human-readable summary of a schedule
    ScheduleAnalysis      — what analyse_schedule() returns
"""

from timetable.control_plane.admission import ProblemRejectedError, admit_problem
from timetable.control_plane.analysis import (
    ExamCoverage,
    ScheduleAnalysis,
    analyse_schedule,
)
from timetable.control_plane.scheduler import ScheduleRun, schedule_exams

__all__ = [
    "ProblemRejectedError",
    "admit_problem",
    "ExamCoverage",
    "ScheduleAnalysis",
    "analyse_schedule",
    "ScheduleRun",
    "schedule_exams",
]
