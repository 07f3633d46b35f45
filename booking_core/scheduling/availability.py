# booking_core/scheduling/availability.py
"""
Pure slot computation for the booking widget.

Nothing here touches the database: callers hand in the clinic schedule, its
time zone, the start instants that are already booked and (optionally) "now".
Every day is cut into fixed-size units inside [open, close) in the clinic's
zone; units that are already booked or not strictly in the future are dropped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

logger = logging.getLogger(__name__)

UTC = dt_timezone.utc

# date.weekday() order
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Used only when a clinic has no schedule at all (fresh signup)
DEFAULT_WORKING_HOURS = {day: {"open": "09:00", "close": "17:00"} for day in WEEKDAYS[:6]}

DEFAULT_DAYS_WITH_SLOTS = 5


@dataclass(frozen=True)
class Slot:
    label: str
    start: datetime
    end: datetime

    def as_dict(self) -> dict:
        return {"label": self.label, "start": iso_utc(self.start), "end": iso_utc(self.end)}


@dataclass(frozen=True)
class DayOption:
    date: date
    label: str

    def as_dict(self) -> dict:
        return {"date": self.date.isoformat(), "label": self.label}


def iso_utc(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_zone(name: Optional[str]) -> ZoneInfo:
    fallback = getattr(settings, "BOOKING_DEFAULT_TIMEZONE", "America/New_York")
    candidate = (name or "").strip() or fallback
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown time zone %r, using %s", candidate, fallback)
        return ZoneInfo(fallback)


def _parse_hhmm(value) -> Optional[time]:
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def parse_schedule(working_hours: Optional[dict]) -> dict[int, tuple[time, time]]:
    """
    {"Monday": {"open": "09:00", "close": "17:00"}, ...} -> {0: (09:00, 17:00), ...}

    Day names are case-insensitive. A day that is missing, malformed or whose
    close is not after its open is closed. An empty schedule means the clinic
    never configured one and gets DEFAULT_WORKING_HOURS.
    """
    if not isinstance(working_hours, dict) or not working_hours:
        working_hours = DEFAULT_WORKING_HOURS

    by_name = {name.lower(): idx for idx, name in enumerate(WEEKDAYS)}
    schedule: dict[int, tuple[time, time]] = {}

    for day_name, hours in working_hours.items():
        idx = by_name.get(str(day_name).strip().lower())
        if idx is None or not isinstance(hours, dict):
            continue
        opens = _parse_hhmm(hours.get("open"))
        closes = _parse_hhmm(hours.get("close"))
        if opens is None or closes is None or closes <= opens:
            continue
        schedule[idx] = (opens, closes)

    return schedule


def parse_instant(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value or "").strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        dt = parse_datetime(raw)
    if dt is None:
        return None
    if timezone.is_naive(dt):
        dt = dt.replace(tzinfo=UTC)
    return dt


def _minute_key(value: datetime) -> datetime:
    return value.astimezone(UTC).replace(second=0, microsecond=0)


def format_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


@dataclass
class AvailabilityCalculator:
    working_hours: Optional[dict]
    timezone_name: Optional[str]
    booked_starts: Iterable = ()
    now: Optional[datetime] = None
    slot_minutes: Optional[int] = None
    horizon_days: Optional[int] = None

    zone: ZoneInfo = field(init=False)
    schedule: dict = field(init=False)
    booked: set = field(init=False)

    def __post_init__(self):
        self.zone = get_zone(self.timezone_name)
        self.schedule = parse_schedule(self.working_hours)
        self.now = self.now or timezone.now()
        if self.slot_minutes is None:
            self.slot_minutes = int(getattr(settings, "BOOKING_SLOT_MINUTES", 30))
        if self.horizon_days is None:
            self.horizon_days = int(getattr(settings, "BOOKING_HORIZON_DAYS", 14))

        booked = set()
        for raw in self.booked_starts or ():
            instant = parse_instant(raw)
            if instant is not None:
                booked.add(_minute_key(instant))
        self.booked = booked

    # -------------------------
    # Calendar helpers
    # -------------------------
    @property
    def today(self) -> date:
        return self.now.astimezone(self.zone).date()

    def local_date(self, instant: datetime) -> date:
        return instant.astimezone(self.zone).date()

    def window_for(self, day: date) -> Optional[tuple[datetime, datetime]]:
        """[open, close) of ``day`` as aware datetimes in the clinic zone, or None if closed."""
        hours = self.schedule.get(day.weekday())
        if hours is None:
            return None
        opens, closes = hours
        return (
            datetime.combine(day, opens, tzinfo=self.zone),
            datetime.combine(day, closes, tzinfo=self.zone),
        )

    def fits_working_hours(self, start: datetime, end: datetime) -> bool:
        if start >= end:
            return False
        window = self.window_for(self.local_date(start))
        if window is None:
            return False
        opens, closes = window
        return opens <= start and end <= closes

    def is_slot(self, start: datetime, end: datetime) -> bool:
        """
        True when [start, end) is exactly one unit of the day's grid: it starts a
        whole number of units after the open time and lasts one unit.
        """
        step = timedelta(minutes=self.slot_minutes)
        if end - start != step:
            return False
        window = self.window_for(self.local_date(start))
        if window is None:
            return False
        offset = start.astimezone(UTC) - window[0].astimezone(UTC)
        return offset >= timedelta(0) and offset % step == timedelta(0)

    def horizon_dates(self) -> list[date]:
        return [self.today + timedelta(days=d) for d in range(self.horizon_days)]

    # -------------------------
    # Slot generation
    # -------------------------
    def _label(self, start: datetime, time_only: bool) -> str:
        local = start.astimezone(self.zone)
        clock = format_time(local)
        if time_only:
            return clock
        if local.date() == self.today:
            return f"Today {clock}"
        if local.date() == self.today + timedelta(days=1):
            return f"Tomorrow {clock}"
        return f"{WEEKDAYS[local.weekday()]} {clock}"

    def _units(self, day: date, *, time_only: bool = False):
        window = self.window_for(day)
        if window is None:
            return

        step = timedelta(minutes=self.slot_minutes)
        # walk in UTC so DST transitions inside the window don't skew units
        cursor = window[0].astimezone(UTC)
        closes = window[1].astimezone(UTC)

        while cursor + step <= closes:
            end = cursor + step
            if cursor > self.now and _minute_key(cursor) not in self.booked:
                yield Slot(label=self._label(cursor, time_only), start=cursor, end=end)
            cursor = end

    def slots_for_date(self, day: date, *, time_only: bool = True) -> list[Slot]:
        return list(self._units(day, time_only=time_only))

    def next_slots(self, count: int) -> list[Slot]:
        out: list[Slot] = []
        for day in self.horizon_dates():
            for slot in self._units(day):
                out.append(slot)
                if len(out) >= count:
                    return out
        return out

    def next_days_with_slots(self, count: int = DEFAULT_DAYS_WITH_SLOTS) -> list[DayOption]:
        out: list[DayOption] = []
        for day in self.horizon_dates():
            if len(out) >= count:
                break
            if next(self._units(day), None) is not None:
                out.append(DayOption(date=day, label=day.strftime("%d")))
        return out

    def has_slots_today(self) -> bool:
        return next(self._units(self.today), None) is not None
