"""Lesson and exam timetable merge engine for watch display surfaces."""

from .merger import (
    Event,
    EventKind,
    Pick,
    DisplaySegment,
    build_events,
    pick,
    pick_current,
    pick_next_after,
    sort_events,
    build_display_segments,
    merge_consecutive_segments,
    render_timeline
)
from .models import (
    Lesson,
    DaySchedule,
    Timetable,
    StudentInfo,
    Exam,
    ExamTimetable
)
from .repository import DataRepository

__all__ = [
    'Event',
    'EventKind',
    'Pick',
    'DisplaySegment',
    'build_events',
    'pick',
    'pick_current',
    'pick_next_after',
    'sort_events',
    'build_display_segments',
    'merge_consecutive_segments',
    'render_timeline',
    'Lesson',
    'DaySchedule',
    'Timetable',
    'StudentInfo',
    'Exam',
    'ExamTimetable',
    'DataRepository'
]
