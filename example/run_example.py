#!/usr/bin/env python3
"""
Simple example demonstrating the schedule merge engine.
A Monday lesson overlapped by an exam, as shown on the watch tile.
"""

from datetime import datetime, timedelta
import sys
import os

# Add parent directory to path so we can import nscg_schedule
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nscg_schedule import (
    DaySchedule,
    Exam,
    ExamTimetable,
    Lesson,
    Timetable,
    build_events,
    pick,
    render_timeline
)
from nscg_schedule.config import get_settings
from nscg_schedule.logging import setup_logging
import json


def describe(event):
    if event is None:
        return "-"
    if event.lesson is not None:
        return f"{event.lesson.name} ({event.lesson.room})"
    return f"EXAM {event.exam.subject_description} ({event.exam.exam_room})"


def main():
    settings = get_settings()
    setup_logging(json_output=settings.log_json, log_level=settings.log_level)
    zone = settings.zone
    grace = timedelta(minutes=settings.grace_minutes)

    # Maths 9:00-10:00 and Physics 10:30-11:45 on Monday 15 September 2025
    timetable = Timetable(days=[
        DaySchedule(day="Monday 15/09/2025", lessons=[
            Lesson(teachers=["J Smith"], course="MAT3", group="A", name="Maths",
                   start_time="9:00AM", end_time="10:00AM", room="TG00"),
            Lesson(teachers=["K Jones"], course="PHY3", group="B", name="Physics",
                   start_time="10:30AM", end_time="11:45AM", room="B123 1st Floor"),
        ])
    ])

    # Chemistry exam 9:30-10:30 the same morning overrides the end of Maths
    exam_timetable = ExamTimetable(has_exams=True, exams=[
        Exam(date="15-09-2025", board_code="AQA", paper="7405/1", start_time="09:30",
             finish_time="10:30", subject_description="Chemistry Paper 1",
             exam_room="Sports Hall", seat_number="42"),
    ])

    now = datetime(2025, 9, 15, 9, 45, tzinfo=zone)

    events = build_events(timetable, exam_timetable, now, zone,
                          horizon_days=settings.horizon_days, grace=grace)
    current, following = pick(events, now)
    print(f"At {now.strftime('%a %d %b %H:%M')}: showing {describe(current)}, next {describe(following)}")

    segments = render_timeline(timetable, exam_timetable, now, zone, horizon_days=settings.horizon_days,
                               window_days=settings.timeline_window_days, grace=grace)

    output = []
    for segment in segments:
        output.append({
            'start': segment.start.astimezone(zone).strftime('%Y-%m-%dT%H:%M'),
            'end': segment.end.astimezone(zone).strftime('%Y-%m-%dT%H:%M'),
            'display': describe(segment.display),
            'active': segment.is_display_active,
            'next': describe(segment.next)
        })

    print(json.dumps(output, indent=2))


if __name__ == '__main__':
    main()
