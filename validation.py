# Orange Tools input validation
# Fail fast at the boundary. The calculators below this line trust their inputs.

import math
import re
from datetime import date, datetime, timezone


class ValidationError(ValueError):
    """Caller supplied an amount, rate, anchor day or option we cannot use."""


class DateParseError(ValidationError):
    """A date string that is not a real ``YYYY-MM-DD`` calendar date."""


class ArithmeticInvariantViolation(ArithmeticError):
    """A computed quantity broke an invariant that valid inputs guarantee."""


_ISO_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")


def require_amount(value, label="amount"):
    """Return ``value`` as a float if it is a finite, non-negative number."""
    if value is None:
        raise ValidationError(f"{label} is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{label} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be finite")
    if value < 0:
        raise ValidationError(f"{label} must be non-negative")
    return value


def require_rate(value, label="vat_rate"):
    return require_amount(value, label)


def validate_anchor_day(anchor_day):
    """Anchor days are whole numbers 1..31; clamping to short months happens later."""
    if isinstance(anchor_day, bool) or not isinstance(anchor_day, int):
        raise ValidationError(f"anchor_day must be an integer, got {anchor_day!r}")
    if not 1 <= anchor_day <= 31:
        raise ValidationError(f"anchor_day must be between 1 and 31, got {anchor_day}")
    return anchor_day


def parse_date(value, label="date") -> date:
    """Normalize a date-ish input to a plain calendar date.

    Strings must be ``YYYY-MM-DD``. Aware datetimes are converted to UTC
    before the date is taken; naive datetimes are read as UTC already.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise DateParseError(f"{label} must be a YYYY-MM-DD string, got {value!r}")

    m = _ISO_DATE_RE.match(value.strip())
    if not m:
        raise DateParseError(f"{label} must be a YYYY-MM-DD string, got {value!r}")
    year, month, day = (int(g) for g in m.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise DateParseError(f"{label} {value!r} is not a calendar date: {e}") from e


def require_choice(value, choices, label):
    if value not in choices:
        allowed = ", ".join(sorted(choices))
        raise ValidationError(f"{label} must be one of: {allowed} (got {value!r})")
    return value
