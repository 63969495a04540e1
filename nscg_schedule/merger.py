"""Merge lessons and exams into one ordered event stream and decide what to display."""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import NamedTuple, Optional

import pydantic

from .logging import get_logger
from .models import DaySchedule, Exam, ExamTimetable, Lesson, Timetable
from .parsing import parse_exam_date, parse_time, resolve_day_date

log = get_logger(__name__)

DEFAULT_HORIZON_DAYS = 14
DEFAULT_GRACE = timedelta(minutes=6)
DEFAULT_WINDOW_DAYS = 2


class EventKind(str, Enum):
    LESSON = 'lesson'
    EXAM = 'exam'


class Event(pydantic.BaseModel):
    """
    A lesson or exam pinned to absolute start and end instants.

    Instants are stored in UTC; ``end`` is exclusive.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    kind: EventKind
    start: datetime
    end: datetime
    lesson: Optional[Lesson] = None
    exam: Optional[Exam] = None
    source_label: str = ''

    @pydantic.field_validator('start', 'end')
    @classmethod
    def validate_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError('event instants must be timezone-aware')
        return v.astimezone(timezone.utc)

    @pydantic.model_validator(mode='after')
    def validate_event(self) -> 'Event':
        if self.end <= self.start:
            raise ValueError('end must be after start')
        if self.kind is EventKind.LESSON and (self.lesson is None or self.exam is not None):
            raise ValueError('a lesson event must carry a lesson and no exam')
        if self.kind is EventKind.EXAM and (self.exam is None or self.lesson is not None):
            raise ValueError('an exam event must carry an exam and no lesson')
        return self

    @property
    def priority(self) -> int:
        # Exams outrank lessons whenever both are candidates
        return 2 if self.kind is EventKind.EXAM else 1

    def is_active_at(self, instant: datetime) -> bool:
        return self.start <= to_instant(instant) < self.end


class Pick(NamedTuple):
    current: Optional[Event]
    next: Optional[Event]


class DisplaySegment(pydantic.BaseModel):
    """A sub-range of a window over which the displayed event and its successor are constant."""

    model_config = pydantic.ConfigDict(frozen=True)

    start: datetime
    end: datetime
    display: Optional[Event] = None
    next: Optional[Event] = None
    is_display_active: bool = False


def to_instant(value: datetime) -> datetime:
    """Normalize ``value`` to a UTC instant; a naive value is read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _combine(day: date, clock: time, zone: tzinfo) -> datetime:
    # Local times inside a DST gap resolve with the pre-transition offset,
    # which moves them forward by the length of the gap.
    return datetime.combine(day, clock, tzinfo=zone).astimezone(timezone.utc)


def _event_order(event: Event) -> tuple:
    return (event.start, -event.priority, event.end)


def sort_events(events: list[Event]) -> list[Event]:
    """Canonical order: start ascending, exams before lessons on ties, then end ascending."""
    return sorted(events, key=_event_order)


def _lesson_events(
    day_schedule: DaySchedule,
    today: date,
    horizon_end: date,
    cutoff: datetime,
    zone: tzinfo,
) -> list[Event]:
    day = resolve_day_date(day_schedule.day, today)
    if day is None:
        log.debug("day_skipped_no_date", day=day_schedule.day)
        return []
    if day > horizon_end:
        return []

    events = []
    for lesson in day_schedule.lessons:
        start_clock = parse_time(lesson.start_time)
        end_clock = parse_time(lesson.end_time)
        if start_clock is None or end_clock is None:
            log.debug(
                "lesson_time_parse_failed",
                name=lesson.name,
                raw_start=lesson.start_time,
                raw_end=lesson.end_time,
                day=day_schedule.day,
            )
            continue
        if end_clock <= start_clock:
            log.debug("lesson_invalid_interval", name=lesson.name, start=str(start_clock), end=str(end_clock), day=str(day))
            continue

        start = _combine(day, start_clock, zone)
        end = _combine(day, end_clock, zone)
        if end <= start:
            log.debug("lesson_invalid_interval", name=lesson.name, start=start.isoformat(), end=end.isoformat())
            continue
        # Keep items that ended moments ago so an in-progress lesson still resolves
        if end < cutoff:
            continue

        events.append(Event(
            kind=EventKind.LESSON,
            start=start,
            end=end,
            lesson=lesson,
            source_label=f"lesson:{day_schedule.day}",
        ))
    return events


def _exam_event(exam: Exam, horizon_end: date, cutoff: datetime, zone: tzinfo) -> Optional[Event]:
    day = parse_exam_date(exam.date)
    start_clock = parse_time(exam.start_time)
    finish_clock = parse_time(exam.finish_time)
    if day is None or start_clock is None or finish_clock is None:
        log.debug(
            "exam_parse_failed",
            subject=exam.subject_description,
            raw_date=exam.date,
            raw_start=exam.start_time,
            raw_finish=exam.finish_time,
        )
        return None
    if day > horizon_end:
        return None
    if finish_clock <= start_clock:
        log.debug("exam_invalid_interval", subject=exam.subject_description, start=str(start_clock), finish=str(finish_clock))
        return None

    start = _combine(day, start_clock, zone)
    end = _combine(day, finish_clock, zone)
    if end <= start or end < cutoff:
        return None

    return Event(
        kind=EventKind.EXAM,
        start=start,
        end=end,
        exam=exam,
        source_label=f"exam:{exam.date}",
    )


def build_events(
    timetable: Optional[Timetable],
    exam_timetable: Optional[ExamTimetable],
    now: datetime,
    zone: tzinfo,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    grace: timedelta = DEFAULT_GRACE,
) -> list[Event]:
    """
    Build the unified, sorted event list from a timetable and an exam timetable.

    Lessons take their date from the day label ("Monday 09/12/2025") or, when it
    carries none, from the next occurrence of the named weekday. Anything that
    fails to parse, has a non-positive interval, starts on a date after the
    horizon or ended more than ``grace`` before ``now`` is left out.

    Args:
        timetable: Weekly lesson timetable, or None
        exam_timetable: Exam timetable, or None
        now: Reference instant; a naive value is read as UTC, as in pick()
        zone: Time zone the timetable's dates and times are expressed in
        horizon_days: Days after today's date for which events are built
        grace: How long after its end an event is still kept

    Returns:
        Events in canonical order
    """
    now = to_instant(now)
    today = now.astimezone(zone).date()
    horizon_end = today + timedelta(days=horizon_days)
    cutoff = now - grace

    events = []

    if timetable is not None:
        for day_schedule in timetable.days:
            events.extend(_lesson_events(day_schedule, today, horizon_end, cutoff, zone))

    if exam_timetable is not None:
        for exam in exam_timetable.exams:
            event = _exam_event(exam, horizon_end, cutoff, zone)
            if event is not None:
                events.append(event)

    sorted_events = sort_events(events)
    log.debug("events_built", count=len(sorted_events), now=now.isoformat())
    return sorted_events


def pick_current(events: list[Event], instant: datetime) -> Optional[Event]:
    """Highest priority active event; earliest start, then earliest end, on ties."""
    instant = to_instant(instant)
    active = [e for e in events if e.is_active_at(instant)]
    if not active:
        return None
    return min(active, key=lambda e: (-e.priority, e.start, e.end))


def pick_next_after(events: list[Event], threshold: datetime) -> Optional[Event]:
    """First event in canonical order starting at or after ``threshold``."""
    threshold = to_instant(threshold)
    upcoming = [e for e in events if e.start >= threshold]
    return min(upcoming, key=_event_order, default=None)


def pick(events: list[Event], now: datetime) -> Pick:
    """
    Pick what to show at ``now`` and what follows it.

    ``next`` is measured from the end of the current event, not from ``now``,
    so the display never falls back to an item the current one has superseded.
    """
    current = pick_current(events, now)
    if current is not None:
        following = pick_next_after(events, current.end)
    else:
        following = pick_next_after(events, now)
    return Pick(current=current, next=following)


def build_display_segments(events: list[Event], window_start: datetime, window_end: datetime) -> list[DisplaySegment]:
    """
    Partition ``[window_start, window_end)`` into segments with a constant display.

    Algorithm:
    1. Collect boundaries: both window edges and every event start/end inside the window
    2. Sort them, keeping duplicates (zero-width spans are never emitted)
    3. For each span, display the active event, or the next one during gaps
    4. Merge consecutive spans showing the same thing

    Args:
        events: Events in canonical order
        window_start: Start of the window (inclusive)
        window_end: End of the window (exclusive)

    Returns:
        Segments tiling the window, empty when the window is empty
    """
    window_start = to_instant(window_start)
    window_end = to_instant(window_end)
    if window_end <= window_start:
        return []

    # Step 1 & 2: boundaries
    bounds = [window_start, window_end]
    for event in events:
        if window_start <= event.start <= window_end:
            bounds.append(event.start)
        if window_start <= event.end <= window_end:
            bounds.append(event.end)
    points = sorted(bounds)

    # Step 3: one segment per non-empty span
    segments = []
    for a, b in zip(points, points[1:]):
        if a >= b:
            continue

        display = pick_current(events, a)
        if display is None:
            display = pick_next_after(events, a)
        if display is not None:
            is_display_active = display.is_active_at(a)
            following = pick_next_after(events, display.end)
        else:
            is_display_active = False
            following = None

        segments.append(DisplaySegment(
            start=a,
            end=b,
            display=display,
            next=following,
            is_display_active=is_display_active,
        ))

    # Step 4: collapse
    collapsed = merge_consecutive_segments(segments)
    log.debug(
        "display_segments_built",
        count=len(collapsed),
        window_start=window_start.isoformat(),
        window_end=window_end.isoformat(),
    )
    return collapsed


def merge_consecutive_segments(segments: list[DisplaySegment]) -> list[DisplaySegment]:
    """
    Merge contiguous segments that show the same display, next and active flag.

    Args:
        segments: Segments in time order

    Returns:
        Merged segments
    """
    if not segments:
        return []

    merged = []
    current_merged = segments[0]

    for segment in segments[1:]:
        if (
            segment.display == current_merged.display
            and segment.next == current_merged.next
            and segment.is_display_active == current_merged.is_display_active
            and segment.start == current_merged.end
        ):
            current_merged = current_merged.model_copy(update={'end': segment.end})
        else:
            merged.append(current_merged)
            current_merged = segment

    merged.append(current_merged)

    return merged


def render_timeline(
    timetable: Optional[Timetable],
    exam_timetable: Optional[ExamTimetable],
    now: datetime,
    zone: tzinfo,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    window_days: int = DEFAULT_WINDOW_DAYS,
    grace: timedelta = DEFAULT_GRACE,
) -> list[DisplaySegment]:
    """
    Build display segments from local midnight today through ``window_days`` days.

    Algorithm:
    1. Build the event list for ``now``
    2. Segment the window [today 00:00, today + window_days 00:00) in ``zone``
    """
    # Step 1
    events = build_events(timetable, exam_timetable, now, zone, horizon_days=horizon_days, grace=grace)

    # Step 2
    today = to_instant(now).astimezone(zone).date()
    window_start = _combine(today, time.min, zone)
    window_end = _combine(today + timedelta(days=window_days), time.min, zone)
    return build_display_segments(events, window_start, window_end)
