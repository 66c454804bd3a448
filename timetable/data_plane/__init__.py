"""
timetable/data_plane — getting data in and out.

Public API:
    load_from_json / load_from_document — input document → ScheduleModel
    DataLoadError                       — any load failure
    write_output_json                   — ScheduleOutput → output document
    render_schedule_table / print_schedule_table — console table
"""

from timetable.data_plane.loader import DataLoadError, load_from_document, load_from_json
from timetable.data_plane.printer import print_schedule_table, render_schedule_table
from timetable.data_plane.writer import write_output_json

__all__ = [
    "DataLoadError",
    "load_from_document",
    "load_from_json",
    "print_schedule_table",
    "render_schedule_table",
    "write_output_json",
]
