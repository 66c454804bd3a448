"""
timetable/data_plane/writer.py
──────────────────────────────
ScheduleOutput → output document on disk.

    {
      "schedule": [{"exam": str, "room": str, "timeslot": str, "students": int}, ...],
      "fitness": number
    }

Parent directories are created as needed; the file is UTF-8 JSON with a
two-space indent.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Union

from timetable.shared.models import ScheduleOutput

logger = logging.getLogger(__name__)


def write_output_json(output: ScheduleOutput, path: Union[str, "os.PathLike[str]"]) -> Path:
    """
    Write `output` to `path`.

    Returns:
        The resolved Path written.

    Raises:
        OSError: if the directory cannot be created or the file written.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(output.to_document(), f, indent=2, ensure_ascii=False)
        f.write("\n")

    logger.info("Output written to %s (%d assignments)", target, len(output.schedule))
    return target
