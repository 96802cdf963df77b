"""Date buckets and relative date texts for note listings."""

import datetime
from typing import Optional

from notewell.i18n import Translator
from notewell.models.schema import NoteDateFormatResult, ensure_timezone_aware

# Average month length in days, as used by calendar duration arithmetic
DAYS_PER_MONTH = 146097 / 4800

_default_translator = Translator()


def local_date(value: datetime.datetime) -> datetime.date:
    """Calendar day of a timestamp in the local timezone."""
    return ensure_timezone_aware(value).astimezone().date()


def days_between(modification_date: datetime.datetime, now: datetime.datetime) -> int:
    """Whole calendar days from the modification day to today."""
    return (local_date(now) - local_date(modification_date)).days


def format_exact_date(value: datetime.datetime) -> str:
    """Absolute date as "Month D, YYYY" in local time."""
    local = ensure_timezone_aware(value).astimezone()
    return f"{local:%B} {local.day}, {local.year}"


def format_note_date(
    modification_date: datetime.datetime,
    use_exact_dates: bool = False,
    now: Optional[datetime.datetime] = None,
    translator: Optional[Translator] = None,
) -> NoteDateFormatResult:
    """Classify a modification date into display text and bucket flags.

    Thresholds are checked from least to most recent on the calendar-day
    difference: 12 months or more is "long ago", then 11..1 months ago,
    3 and 2 weeks ago, last week (8+ days), then 7..2 days ago, yesterday
    and today. Days 0 through 7 also count as this week.

    With use_exact_dates the text becomes an absolute date, but the bucket
    flags are still computed from the relative thresholds.
    """
    translator = translator or _default_translator
    now = ensure_timezone_aware(now) if now is not None else datetime.datetime.now().astimezone()
    days = days_between(modification_date, now)
    months = days / DAYS_PER_MONTH
    result = NoteDateFormatResult()

    if months >= 12:
        result.date_text = translator.get("NoteDates.LongAgo")
    elif months >= 1:
        result.date_text = translator.get("NoteDates.MonthsAgo", count=int(months))
    elif days >= 21:
        result.date_text = translator.get("NoteDates.WeeksAgo", count=3)
    elif days >= 14:
        result.date_text = translator.get("NoteDates.WeeksAgo", count=2)
    elif days >= 8:
        result.date_text = translator.get("NoteDates.LastWeek")
    elif days >= 2:
        result.date_text = translator.get("NoteDates.DaysAgo", count=days)
        result.is_this_week_note = True
    elif days == 1:
        result.date_text = translator.get("NoteDates.Yesterday")
        result.is_yesterday_note = True
        result.is_this_week_note = True
    elif days == 0:
        result.date_text = translator.get("NoteDates.Today")
        result.is_today_note = True
        result.is_this_week_note = True
    else:
        # Modified "in the future" (clock skew): no bucket, absolute text
        result.date_text = format_exact_date(modification_date)

    if use_exact_dates:
        result.date_text = format_exact_date(modification_date)

    return result
