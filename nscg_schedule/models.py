"""Timetable and exam timetable models as synced from the phone."""

from typing import Optional

import pydantic
from pydantic.alias_generators import to_camel

from .logging import get_logger

log = get_logger(__name__)


class SourceModel(pydantic.BaseModel):
    """Immutable model that loads from and dumps to the phone's camelCase JSON."""

    model_config = pydantic.ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_string(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json_string(cls, json_string: str):
        """
        Load a model from a JSON document.

        Returns:
            The model, or None when the document is not valid JSON or does not
            match the model
        """
        try:
            return cls.model_validate_json(json_string)
        except pydantic.ValidationError as e:
            log.warning("json_payload_rejected", model=cls.__name__, errors=e.error_count())
            return None


class Lesson(SourceModel):
    teachers: tuple[str, ...] = ()
    course: str = ""
    group: str = ""
    name: str = ""
    start_time: str = ""
    end_time: str = ""
    room: str = ""


class DaySchedule(SourceModel):
    day: str = ""
    lessons: tuple[Lesson, ...] = ()

    @property
    def day_name(self) -> str:
        """Weekday part of the label, e.g. "Monday" for "Monday 09/12/2025"."""
        parts = self.day.split()
        return parts[0] if parts else self.day


class Timetable(SourceModel):
    days: tuple[DaySchedule, ...] = ()

    @classmethod
    def empty(cls) -> 'Timetable':
        return cls()


class StudentInfo(SourceModel):
    ref_no: str = ""
    name: str = ""
    date_of_birth: str = ""
    uln: str = ""
    candidate_no: str = ""


class Exam(SourceModel):
    date: str = ""
    board_code: str = ""
    paper: str = ""
    start_time: str = ""
    finish_time: str = ""
    subject_description: str = ""
    pre_room: str = ""
    exam_room: str = ""
    seat_number: str = ""
    additional: str = ""


class ExamTimetable(SourceModel):
    has_exams: bool = False
    student_info: Optional[StudentInfo] = None
    exams: tuple[Exam, ...] = ()
    warning_message: Optional[str] = None

    @classmethod
    def empty(cls) -> 'ExamTimetable':
        return cls()
