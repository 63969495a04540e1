"""
Cache of the last timetable and exam timetable received from the phone.

Files kept in the cache directory:

    timetable.json        last synced Timetable (camelCase JSON)
    exam_timetable.json   last synced ExamTimetable
    sync.json             {"timetable": <stamp>, "exam": <stamp>}

A missing or unreadable file is treated as "no data yet"; the merge engine
then simply produces no events.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .config import ScheduleSettings
from .logging import get_logger
from .models import ExamTimetable, Timetable

log = get_logger(__name__)

TIMETABLE_FILE = "timetable.json"
EXAM_TIMETABLE_FILE = "exam_timetable.json"
SYNC_FILE = "sync.json"

Listener = Callable[['DataRepository'], None]


class DataRepository:
    """Persisted, observable copy of the synced schedule data."""

    def __init__(self, cache_dir: str | Path) -> None:
        self.cache_dir = Path(cache_dir)
        self._timetable: Optional[Timetable] = None
        self._exam_timetable: Optional[ExamTimetable] = None
        self._sync: dict[str, Optional[str]] = {"timetable": None, "exam": None}
        self._listeners: list[Listener] = []
        self._load_cached_data()

    @classmethod
    def from_settings(cls, settings: ScheduleSettings) -> 'DataRepository':
        return cls(settings.cache_dir)

    def _read(self, filename: str) -> Optional[str]:
        path = self.cache_dir / filename
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("cache_read_failed", path=str(path), error=str(e))
            return None

    def _load_cached_data(self) -> None:
        raw = self._read(TIMETABLE_FILE)
        if raw is not None:
            self._timetable = Timetable.from_json_string(raw)

        raw = self._read(EXAM_TIMETABLE_FILE)
        if raw is not None:
            self._exam_timetable = ExamTimetable.from_json_string(raw)

        raw = self._read(SYNC_FILE)
        if raw is not None:
            try:
                stamps = json.loads(raw)
            except json.JSONDecodeError:
                stamps = {}
            if isinstance(stamps, dict):
                for key in self._sync:
                    value = stamps.get(key)
                    self._sync[key] = value if isinstance(value, str) else None

        log.debug(
            "cache_loaded",
            cache_dir=str(self.cache_dir),
            has_timetable=self._timetable is not None,
            has_exam_timetable=self._exam_timetable is not None,
        )

    def _write(self, filename: str, content: str) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        (self.cache_dir / filename).write_text(content, encoding="utf-8")

    def _write_sync(self) -> None:
        self._write(SYNC_FILE, json.dumps(self._sync, indent=2))

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @staticmethod
    def _stamp(updated: Optional[str]) -> str:
        # The phone sends an empty string when it has no stamp of its own
        if updated:
            return str(updated)
        return datetime.now().replace(microsecond=0).isoformat()

    def get_current_timetable(self) -> Optional[Timetable]:
        return self._timetable

    def get_current_exam_timetable(self) -> Optional[ExamTimetable]:
        return self._exam_timetable

    @property
    def last_timetable_sync(self) -> Optional[str]:
        return self._sync["timetable"]

    @property
    def last_exam_sync(self) -> Optional[str]:
        return self._sync["exam"]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with this repository after every change.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def save_timetable(self, timetable: Timetable, updated: Optional[str] = None) -> None:
        self._write(TIMETABLE_FILE, timetable.to_json_string())
        self._timetable = timetable
        self._sync["timetable"] = self._stamp(updated)
        self._write_sync()
        log.info("timetable_saved", days=len(timetable.days), updated=self._sync["timetable"])
        self._notify()

    def save_exam_timetable(self, exam_timetable: ExamTimetable, updated: Optional[str] = None) -> None:
        self._write(EXAM_TIMETABLE_FILE, exam_timetable.to_json_string())
        self._exam_timetable = exam_timetable
        self._sync["exam"] = self._stamp(updated)
        self._write_sync()
        log.info("exam_timetable_saved", exams=len(exam_timetable.exams), updated=self._sync["exam"])
        self._notify()

    def process_payload(self, json_string: str) -> bool:
        """
        Apply a sync payload from the phone.

        The payload may hold ``timetable`` / ``timetableUpdated`` and
        ``examTimetable`` / ``examUpdated``; either half may be absent.

        Returns:
            True if at least one timetable was saved
        """
        try:
            payload = json.loads(json_string)
        except json.JSONDecodeError as e:
            log.warning("sync_payload_invalid_json", error=str(e))
            return False
        if not isinstance(payload, dict):
            log.warning("sync_payload_not_an_object")
            return False

        saved = False

        if "timetable" in payload:
            timetable = Timetable.from_json_string(json.dumps(payload["timetable"]))
            if timetable is not None:
                self.save_timetable(timetable, payload.get("timetableUpdated"))
                saved = True

        if "examTimetable" in payload:
            exam_timetable = ExamTimetable.from_json_string(json.dumps(payload["examTimetable"]))
            if exam_timetable is not None:
                self.save_exam_timetable(exam_timetable, payload.get("examUpdated"))
                saved = True

        return saved

    def clear_cache(self) -> None:
        for filename in (TIMETABLE_FILE, EXAM_TIMETABLE_FILE, SYNC_FILE):
            (self.cache_dir / filename).unlink(missing_ok=True)
        self._timetable = None
        self._exam_timetable = None
        self._sync = {"timetable": None, "exam": None}
        log.info("cache_cleared", cache_dir=str(self.cache_dir))
        self._notify()
