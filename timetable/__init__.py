"""
timetable — exam timetabling service built on the exam_aco colony.

Subpackages:
    shared         — data model and run telemetry records
    control_plane  — admission checks, the scheduling entry point, analysis
    data_plane     — JSON loading/writing and console rendering
    telemetry      — the run observer

Command line: ``python -m timetable --help``.
"""
