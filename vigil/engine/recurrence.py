"""
Recurrence Resolution

Turns a watcher's trigger schedule into an APScheduler trigger.

Supported recurrence phrases:
- "every 30 seconds", "every 5 minutes", "every hour", "every 2 days"
- "at 10:15 am", "at 18:00 on mon, wed", "every weekday at 9am"
- five-field crontab expressions such as "*/5 * * * *"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from vigil.engine.errors import RecurrenceError
from vigil.engine.models import ScheduleSpec


TIMEZONE = "UTC"

_UNITS: dict[str, str] = {
    "sec": "seconds",
    "second": "seconds",
    "min": "minutes",
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
}

_WEEKDAYS: dict[str, str] = {
    "mon": "mon", "monday": "mon",
    "tue": "tue", "tues": "tue", "tuesday": "tue",
    "wed": "wed", "wednesday": "wed",
    "thu": "thu", "thur": "thu", "thurs": "thu", "thursday": "thu",
    "fri": "fri", "friday": "fri",
    "sat": "sat", "saturday": "sat",
    "sun": "sun", "sunday": "sun",
}

_EVERY_RE = re.compile(r"^every\s+(?:(\d+)\s+)?(sec|second|min|minute|hour|day|week)s?$")
_AT_RE = re.compile(r"\bat\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?(?=\s|,|$)")
_SEPARATOR_RE = re.compile(r"[\s,]+")
_FILLER_WORDS = {"on", "and", "every", "each"}


@dataclass
class Recurrence:
    """A resolved schedule: the trigger to install and its readable form."""

    trigger: BaseTrigger
    interval: str | int  # The phrase, or the number of seconds


def resolve_recurrence(schedule: ScheduleSpec) -> Recurrence | None:
    """
    Resolve a watcher schedule into a recurrence.

    The recurrence phrase wins over the numeric interval. A numeric interval
    must be a whole, positive number of seconds.

    Args:
        schedule: The watcher's trigger schedule

    Returns:
        The recurrence, or None if the schedule yields no timer

    Raises:
        RecurrenceError: If the recurrence phrase cannot be parsed
    """
    if schedule.later:
        return Recurrence(trigger=parse_text(schedule.later), interval=schedule.later)

    seconds = schedule.interval
    if seconds is None or isinstance(seconds, bool):
        return None
    if isinstance(seconds, float) and not seconds.is_integer():
        return None

    seconds = int(seconds)
    if seconds <= 0:
        return None

    return Recurrence(trigger=every_seconds(seconds), interval=seconds)


def every_seconds(seconds: int) -> IntervalTrigger:
    """Fixed-interval trigger firing every N seconds."""
    return IntervalTrigger(seconds=seconds, timezone=TIMEZONE)


def parse_text(phrase: str) -> BaseTrigger:
    """
    Parse a human-readable recurrence phrase.

    Args:
        phrase: Recurrence text, e.g. "every 5 minutes"

    Returns:
        The matching APScheduler trigger

    Raises:
        RecurrenceError: If the phrase is not understood
    """
    text = " ".join(phrase.lower().split())
    if not text:
        raise RecurrenceError("Empty recurrence phrase")

    match = _EVERY_RE.match(text)
    if match:
        count = int(match.group(1) or 1)
        if count <= 0:
            raise RecurrenceError(f"Recurrence must be positive: {phrase!r}")
        return IntervalTrigger(timezone=TIMEZONE, **{_UNITS[match.group(2)]: count})

    at_match = _AT_RE.search(text)
    if at_match:
        return _parse_calendar(text, at_match, phrase)

    try:
        return CronTrigger.from_crontab(text, timezone=TIMEZONE)
    except ValueError as e:
        raise RecurrenceError(f"Unrecognized recurrence {phrase!r}: {e}") from e


def _parse_calendar(text: str, match: re.Match[str], phrase: str) -> CronTrigger:
    """Parse an "at <time> [on <days>]" phrase into a cron trigger."""
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = match.group(3)

    if meridiem:
        if not 1 <= hour <= 12:
            raise RecurrenceError(f"Invalid hour in {phrase!r}")
        hour = hour % 12 + (12 if meridiem == "pm" else 0)

    if hour > 23 or minute > 59:
        raise RecurrenceError(f"Invalid time in {phrase!r}")

    rest = f"{text[:match.start()]} {text[match.end():]}"
    day_of_week = _parse_days(rest, phrase)

    return CronTrigger(
        day_of_week=day_of_week,
        hour=hour,
        minute=minute,
        second=0,
        timezone=TIMEZONE,
    )


def _parse_days(text: str, phrase: str) -> str:
    """Parse the day qualifier of a calendar phrase into a cron day_of_week."""
    words = [w for w in _SEPARATOR_RE.split(text) if w and w not in _FILLER_WORDS]

    if not words or words == ["day"]:
        return "*"
    if words == ["weekday"]:
        return "mon-fri"
    if words == ["weekend"]:
        return "sat,sun"

    days = []
    for word in words:
        day = _WEEKDAYS.get(word) or _WEEKDAYS.get(word.rstrip("s"))
        if day is None:
            raise RecurrenceError(f"Unknown day {word!r} in {phrase!r}")
        if day not in days:
            days.append(day)

    return ",".join(days)
