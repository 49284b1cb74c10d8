"""
Age & classification rules.

Pure functions deriving age, member type and occupation defaults from a
date of birth. Every calculation is anchored on one canonical timezone
(settings.registry.timezone, Asia/Kolkata by default) so day boundaries do
not depend on the server locale.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytz

from church_bms.config import settings
from church_bms.errors import ValidationError


DateLike = Union[date, datetime, str]

CHILD_MAX_AGE = 12          # Child below 13
YOUTH_MAX_AGE = 30
ADULT_AGE = 18
INFANT_MAX_AGE = 5          # occupation forced to Child
DEFAULT_OCCUPATION = "Non-Worker"


class InvalidDate(ValidationError):
    """Raised when a value cannot be read as a calendar date."""


def _zone(tz: Optional[str] = None):
    return pytz.timezone(tz or settings.registry.timezone)


def now(tz: Optional[str] = None) -> datetime:
    """Current time in the canonical timezone."""
    return datetime.now(_zone(tz))


def today(tz: Optional[str] = None) -> date:
    """Current calendar date in the canonical timezone."""
    return now(tz).date()


def parse_date(value: DateLike, tz: Optional[str] = None) -> date:
    """
    Read a calendar date.

    Accepts date objects, datetimes (aware ones are converted to the
    canonical timezone first) and ISO strings ("1990-05-17",
    "1990-05-16T18:30:00Z").
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_zone(tz))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return parse_date(datetime.fromisoformat(text), tz)
        except ValueError:
            pass
    raise InvalidDate(f"Invalid date: {value!r}", field="date")


def age(dob: DateLike, as_of: Optional[DateLike] = None, tz: Optional[str] = None) -> int:
    """Completed years between dob and as_of (today by default)."""
    born = parse_date(dob, tz)
    ref = parse_date(as_of, tz) if as_of is not None else today(tz)
    return ref.year - born.year - ((ref.month, ref.day) < (born.month, born.day))


def classify_member_type(age_years: int, marital_status: Optional[str]) -> str:
    """Suggest Child / Youth / Member from age and marital status."""
    if age_years <= CHILD_MAX_AGE:
        return "Child"
    if age_years <= YOUTH_MAX_AGE and marital_status == "Single":
        return "Youth"
    return "Member"


def resolve_occupation(age_years: int, provided: Optional[str] = None) -> str:
    """Infants are always Child; otherwise keep what was given."""
    if age_years <= INFANT_MAX_AGE:
        return "Child"
    return provided or DEFAULT_OCCUPATION


def _on_year(value: date, year: int) -> date:
    try:
        return value.replace(year=year)
    except ValueError:
        # Feb 29 in a non-leap year
        return value.replace(year=year, day=28)


def is_recurring_date_within_days(
    value: DateLike,
    days: int,
    now: Optional[DateLike] = None,
    tz: Optional[str] = None,
) -> bool:
    """
    Check whether a yearly date (birthday, anniversary) falls within the next
    `days` days, today included. Handles the Dec -> Jan wrap.
    """
    start = parse_date(now, tz) if now is not None else today(tz)
    end = start + timedelta(days=days)
    original = parse_date(value, tz)
    recurring = _on_year(original, start.year)
    if recurring < start:
        recurring = _on_year(original, start.year + 1)
    return start <= recurring <= end


def is_in_current_month(
    value: DateLike,
    now: Optional[DateLike] = None,
    tz: Optional[str] = None,
) -> bool:
    """Check whether a yearly date falls in the current calendar month."""
    ref = parse_date(now, tz) if now is not None else today(tz)
    return parse_date(value, tz).month == ref.month
