"""Pure recurrence rules deciding when a template is due for a new instance.

All arithmetic is on naive calendar dates. Callers convert "now" to a date in
the configured lifecycle timezone before asking these questions.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from app.models.tasks import ScheduleType

if TYPE_CHECKING:
    from app.models.tasks import Task


def as_calendar_date(value: date | datetime) -> date:
    """Drop any time-of-day component."""
    if isinstance(value, datetime):
        return value.date()
    return value


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(value: date, months: int) -> date:
    """Shift by whole calendar months, clamping to the target month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(value.day, last_day_of_month(year, month)))


def calendar_months_between(start: date, end: date) -> int:
    """Count of month boundaries crossed from `start` to `end` (Jan 31 -> Feb 28 is 1)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def monthly_target_day(start_date: date, as_of: date) -> int:
    """Anchor day-of-month, clamped to the length of `as_of`'s month."""
    return min(start_date.day, last_day_of_month(as_of.year, as_of.month))


def watermark(template: Task) -> date | None:
    """Last generation date, falling back to the template's start date."""
    return template.last_generated_at or template.start_date


def is_within_window(template: Task, as_of: date | datetime) -> bool:
    """True when `as_of` falls inside the template's recurrence window (inclusive)."""
    day = as_calendar_date(as_of)
    if template.start_date is None or template.start_date > day:
        return False
    return template.end_date is None or day <= template.end_date


def should_generate(template: Task, as_of: date | datetime) -> bool:
    """Decide whether `template` is due to spawn an instance on `as_of`."""
    day = as_calendar_date(as_of)
    if not is_within_window(template, day):
        return False
    frequency = template.schedule_frequency
    last = watermark(template)
    if frequency < 1 or last is None or template.start_date is None:
        return False

    elapsed_days = (day - last).days
    schedule = template.schedule_type
    if schedule == ScheduleType.DAILY:
        return elapsed_days >= frequency
    if schedule == ScheduleType.WEEKLY:
        if day.weekday() != template.start_date.weekday():
            return False
        return elapsed_days // 7 >= frequency
    if schedule == ScheduleType.MONTHLY:
        if day.day != monthly_target_day(template.start_date, day):
            return False
        return calendar_months_between(last, day) >= frequency
    return False


def compute_instance_end_date(template: Task, as_of: date | datetime) -> date:
    """Deadline for the instance generated on `as_of`: one interval later."""
    day = as_calendar_date(as_of)
    frequency = max(1, template.schedule_frequency)
    schedule = template.schedule_type
    if schedule == ScheduleType.DAILY:
        return day + timedelta(days=frequency)
    if schedule == ScheduleType.WEEKLY:
        return day + timedelta(weeks=frequency)
    if schedule == ScheduleType.MONTHLY:
        return add_months(day, frequency)
    msg = f"Template {template.id} has non-recurring schedule_type={schedule!r}"
    raise ValueError(msg)
