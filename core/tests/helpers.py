import json
import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from io import StringIO
from zoneinfo import ZoneInfo

from django.utils import timezone

from bookit_backend.logging_utils import JSONFormatter

PR = ZoneInfo("America/Puerto_Rico")

# 2024-01-08 is a Monday; "now" for engine tests sits a week earlier
MONDAY = date(2024, 1, 8)
NOW = datetime(2024, 1, 1, 8, 0, tzinfo=PR)


def local(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=PR)


def next_weekday(weekday: int, min_days_ahead: int = 2) -> date:
    """Next local date with Python weekday `weekday` (0 = Monday)."""
    day = timezone.now().astimezone(PR).date() + timedelta(days=min_days_ahead)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


@contextmanager
def json_logs(logger_name: str):
    """
    Collects the records of one logger as parsed JSON lines. The project
    loggers don't propagate, so the handler goes on the logger itself.
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    target = logging.getLogger(logger_name)
    previous_level = target.level
    target.addHandler(handler)
    target.setLevel(logging.INFO)
    records: list[dict] = []
    try:
        yield records
    finally:
        target.removeHandler(handler)
        target.setLevel(previous_level)
        records.extend(
            json.loads(line) for line in stream.getvalue().splitlines() if line
        )
