"""Running group reminders: cron schedules, timer persistence and the clock itself."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from .schedule import next_wake_time, should_fire
from .timerspec import Timer

log = logging.getLogger(__name__)

Segment = Dict[str, object]
Sender = Callable[[int, int, List[Segment]], object]

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_DOW_NAMES = {
    name: number
    for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}
_SEARCH_YEARS = 5


class CronSyntaxError(ValueError):
    """Raised for a cron expression that cannot be parsed."""


def _parse_value(text: str, names: Dict[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    if not text.isascii() or not text.isdigit():
        raise CronSyntaxError(f"failed to parse int from {text!r}")
    return int(text)


def _parse_field(
    text: str, low: int, high: int, names: Dict[str, int]
) -> tuple[FrozenSet[int], bool]:
    values: set[int] = set()
    star = False
    for part in text.split(","):
        if not part:
            raise CronSyntaxError(f"empty list item in {text!r}")
        span, has_step, step_text = part.partition("/")
        if span in ("*", "?"):
            start, end = low, high
            part_star = True
        else:
            first, has_range, last = span.partition("-")
            start = _parse_value(first, names)
            end = _parse_value(last, names) if has_range else start
            part_star = False
        step = 1
        if has_step:
            step = _parse_value(step_text, {})
            if step == 0:
                raise CronSyntaxError(f"step of range should be a positive number: {part!r}")
            if span not in ("*", "?") and "-" not in span:
                end = high
        if part_star and step == 1:
            star = True
        if start < low:
            raise CronSyntaxError(f"beginning of range ({start}) below minimum ({low}): {part!r}")
        if end > high:
            raise CronSyntaxError(f"end of range ({end}) above maximum ({high}): {part!r}")
        if start > end:
            raise CronSyntaxError(f"beginning of range ({start}) beyond end of range ({end}): {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values), star


def _sunday_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class CronSchedule:
    """A standard five-field cron schedule (minute hour day month weekday)."""

    minutes: FrozenSet[int]
    hours: FrozenSet[int]
    days: FrozenSet[int]
    months: FrozenSet[int]
    weekdays: FrozenSet[int]
    any_day: bool = False
    any_weekday: bool = False

    @classmethod
    def parse(cls, expr: str) -> "CronSchedule":
        text = expr.strip()
        if not text:
            raise CronSyntaxError("empty spec string")
        if text.startswith("@"):
            try:
                text = _DESCRIPTORS[text.lower()]
            except KeyError:
                raise CronSyntaxError(f"unrecognized descriptor: {text!r}") from None
        fields = text.split()
        if len(fields) != 5:
            raise CronSyntaxError(f"expected exactly 5 fields, found {len(fields)}: {expr!r}")
        minutes, _ = _parse_field(fields[0], 0, 59, {})
        hours, _ = _parse_field(fields[1], 0, 23, {})
        days, any_day = _parse_field(fields[2], 1, 31, {})
        months, _ = _parse_field(fields[3], 1, 12, _MONTH_NAMES)
        weekdays, any_weekday = _parse_field(fields[4], 0, 6, _DOW_NAMES)
        return cls(minutes, hours, days, months, weekdays, any_day, any_weekday)

    def _day_matches(self, moment: datetime) -> bool:
        day_ok = moment.day in self.days
        weekday_ok = _sunday_weekday(moment) in self.weekdays
        if self.any_day or self.any_weekday:
            return day_ok and weekday_ok
        return day_ok or weekday_ok

    def matches(self, moment: datetime) -> bool:
        """Whether the minute containing ``moment`` is part of the schedule."""
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.month in self.months
            and self._day_matches(moment)
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first scheduled minute strictly after ``moment``."""
        current = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit_year = moment.year + _SEARCH_YEARS
        while current.year <= limit_year:
            if current.month not in self.months:
                year, month = divmod(current.year * 12 + current.month, 12)
                current = datetime(year, month + 1, 1, tzinfo=current.tzinfo)
            elif not self._day_matches(current):
                current = current.replace(hour=0, minute=0) + timedelta(days=1)
            elif current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
            elif current.minute not in self.minutes:
                current += timedelta(minutes=1)
            else:
                return current
        raise ValueError(f"schedule never fires within {_SEARCH_YEARS} years")


class TimerStore:
    """Timers persisted in an SQLite table."""

    def __init__(self, path: Union[str, Path]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS timer ("
                "id INTEGER PRIMARY KEY, emdwhm INTEGER NOT NULL, sid INTEGER NOT NULL, "
                "gid INTEGER NOT NULL, alert TEXT NOT NULL, cron TEXT NOT NULL, url TEXT NOT NULL)"
            )

    def insert(self, timer: Timer) -> None:
        """Store ``timer``, replacing any row with the same id."""
        with self._lock, self._conn:
            self._conn.execute(
                "REPLACE INTO timer (id, emdwhm, sid, gid, alert, cron, url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (timer.id, timer.packed, timer.self_id, timer.group_id,
                 timer.alert, timer.cron, timer.url),
            )

    def delete(self, key: int) -> bool:
        """Remove the timer with id ``key``; true if a row was removed."""
        with self._lock, self._conn:
            cursor = self._conn.execute("DELETE FROM timer WHERE id = ?", (key,))
        return cursor.rowcount > 0

    def load(self) -> List[Timer]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, emdwhm, sid, gid, alert, cron, url FROM timer ORDER BY rowid"
            ).fetchall()
        return [
            Timer(id=r[0], packed=r[1], self_id=r[2], group_id=r[3], alert=r[4], cron=r[5], url=r[6])
            for r in rows
        ]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def alert_message(timer: Timer) -> List[Segment]:
    """Message segments sent when ``timer`` goes off: @all, the alert, and an image if set."""
    segments: List[Segment] = [
        {"type": "at", "data": {"qq": "all"}},
        {"type": "text", "data": {"text": timer.alert}},
    ]
    if timer.url:
        segments.append({"type": "image", "data": {"file": timer.url, "cache": "0"}})
    return segments


class Clock:
    """Keeps registered timers, runs them in background threads and persists them.

    ``sender`` is called as ``sender(self_id, group_id, segments)`` when a timer goes off.
    Timers already in ``store`` are registered on construction.
    """

    def __init__(self, store: TimerStore, sender: Sender) -> None:
        self._store = store
        self._sender = sender
        self._lock = threading.RLock()
        self._timers: Dict[int, Timer] = {}
        self._jobs: Dict[int, threading.Event] = {}
        for timer in store.load():
            try:
                self.register(timer, save=False)
            except ValueError as err:
                timer.alert = str(err)
                log.warning("[群管]无法加载计时器 %08x: %s", timer.id, err)

    def _send(self, timer: Timer) -> None:
        try:
            self._sender(timer.self_id, timer.group_id, alert_message(timer))
        except Exception:  # a failing send must not stop the timer
            log.exception("[群管]计时器 %08x 发送失败", timer.id)

    def _start(self, key: int, target: Callable[[threading.Event], None]) -> None:
        stop = threading.Event()
        with self._lock:
            self._jobs[key] = stop
        threading.Thread(target=target, args=(stop,), daemon=True, name=f"timer-{key:08x}").start()

    def _run_cron(self, timer: Timer, schedule: CronSchedule, stop: threading.Event) -> None:
        while not stop.is_set():
            try:
                wake = schedule.next_after(datetime.now())
            except ValueError:
                return
            if stop.wait(max((wake - datetime.now()).total_seconds(), 0)):
                return
            self._send(timer)

    def _run_date(self, timer: Timer, stop: threading.Event) -> None:
        while timer.enabled() and not stop.is_set():
            wake = next_wake_time(timer)
            seconds = max((wake - datetime.now()).total_seconds(), 0)
            log.info("[群管]计时器%08x将睡眠%ds", timer.id, int(seconds))
            if stop.wait(seconds):
                return
            if should_fire(timer, datetime.now()):
                self._send(timer)

    def register(self, timer: Timer, save: bool = True) -> bool:
        """Register ``timer`` and start it; with ``save`` its id is derived and it is stored.

        A timer already registered under the same id is disabled and replaced.
        Raises :class:`CronSyntaxError` for an unparsable cron expression.
        """
        if save:
            timer.id = timer.timer_id()
        key = timer.id
        schedule = CronSchedule.parse(timer.cron) if timer.cron else None
        with self._lock:
            old = self._timers.get(key)
            old_job = self._jobs.pop(key, None)
        if old is not None and old is not timer:
            old._set_enabled(False)
        if old_job is not None:
            old_job.set()
        log.info("[群管]注册计时器 %d", key)
        if save:
            self.add_to_store(timer)
        self.add_to_map(timer)
        if schedule is not None:
            self._start(key, lambda stop: self._run_cron(timer, schedule, stop))
        elif timer.enabled():
            self._start(key, lambda stop: self._run_date(timer, stop))
        return True

    def cancel(self, key: int) -> bool:
        """Stop and forget the timer with id ``key``; false if there is none."""
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is None:
                return False
            job = self._jobs.pop(key, None)
        if not timer.cron:
            timer._set_enabled(False)
        if job is not None:
            job.set()
        self._store.delete(key)
        return True

    def list_timers(self, group_id: int) -> List[str]:
        """Human-readable descriptions of the timers of one group."""
        with self._lock:
            timers = list(self._timers.values())
        lines = []
        for timer in timers:
            if timer.group_id != group_id:
                continue
            info = timer.info()
            text = info[info.index("]") + 1:] + "\n"
            text = text.replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            lines.append(text)
        return lines

    def get(self, key: int) -> Optional[Timer]:
        with self._lock:
            return self._timers.get(key)

    def add_to_store(self, timer: Timer) -> None:
        with self._lock:
            self._store.insert(timer)

    def add_to_map(self, timer: Timer) -> None:
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        """Stop every running timer; the store stays open."""
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for job in jobs:
            job.set()