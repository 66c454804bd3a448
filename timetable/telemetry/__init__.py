"""
timetable/telemetry — observing optimisation runs.

Public API:
    RunCollector  — ColonyObserver that records a RunProfile and logs progress
"""

from timetable.telemetry.collector import RunCollector

__all__ = ["RunCollector"]
