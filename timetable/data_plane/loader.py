"""
timetable/data_plane/loader.py
──────────────────────────────
Input document → ScheduleModel.

Document shape:
    {
      "exams":     [{"id": str, "students": [str, ...]}, ...],
      "students":  [{"id": str}, ...],
      "rooms":     [{"id": str, "capacity": int}, ...],
      "timeslots": [str, ...]            # order = preference order
    }

Everything is validated by pydantic when the ScheduleModel is built. Any
failure (unreadable or non-UTF-8 file, bad JSON, missing or mistyped
field, duplicate id) comes out as a DataLoadError, so the optimiser never
sees a half-built model.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Mapping, Union

from pydantic import ValidationError

from timetable.shared.models import ScheduleModel

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class DataLoadError(Exception):
    """
    Raised when an input document cannot be turned into a ScheduleModel.

    Attributes:
        source: Path (or "<document>") the data came from.
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


def load_from_document(document: Mapping[str, Any], source: str = "<document>") -> ScheduleModel:
    """
    Validate an already-parsed input document.

    Raises:
        DataLoadError: wrapping the pydantic ValidationError.
    """
    if not isinstance(document, Mapping):
        raise DataLoadError(source, f"expected a JSON object, got {type(document).__name__}")

    try:
        model = ScheduleModel.model_validate(document)
    except ValidationError as exc:
        raise DataLoadError(source, f"invalid schedule data ({exc.error_count()} error(s)): {exc}") from exc

    logger.info(
        "Loaded %d exams, %d students, %d rooms, %d timeslots from %s",
        model.num_exams, len(model.students), model.num_rooms, model.num_timeslots, source,
    )
    return model


def load_from_json(path: PathLike) -> ScheduleModel:
    """
    Read and validate an input document from disk (UTF-8).

    Raises:
        DataLoadError: if the file cannot be read, is not UTF-8, is not
                       valid JSON, or does not validate.
    """
    source = os.fspath(path)
    try:
        with open(source, "r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as exc:
        raise DataLoadError(source, f"cannot read file: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise DataLoadError(source, f"not UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DataLoadError(source, f"invalid JSON: {exc}") from exc

    return load_from_document(document, source)
