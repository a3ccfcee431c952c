# Orange Tools Pro-Rata Engine
# Anchor-day billing cycles and the prorated share of a monthly amount.
#
# A cycle runs from the anchor day of one month to the anchor day of the next,
# the anchor being clamped to the month length (anchor 31 lands on Feb 28/29).
# Cycle start is inclusive, cycle end exclusive: a pivot on an anchor date
# belongs to the cycle that starts there.
#
# Everything here is pure. No clock, no I/O, no logging.

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from billing import net_from_gross
from config import DEFAULT_ANCHOR_DAY, DEFAULT_VAT_RATE
from validation import (
    ArithmeticInvariantViolation,
    ValidationError,
    parse_date,
    require_amount,
    require_rate,
    validate_anchor_day,
)


class ProrateMode(str, Enum):
    REMAINING = "remaining"   # pivot is an activation date; bill until the next anchor
    ELAPSED = "elapsed"       # pivot is "today"; measure consumption so far


@dataclass(frozen=True)
class BillingCycle:
    start: date
    end: date
    length_days: int

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "lengthDays": self.length_days,
        }


@dataclass(frozen=True)
class ProrateResult:
    """One prorated share of a monthly amount.

    ``value`` is unrounded; renderers show it with 3 decimals. ``monthly_net``
    and ``gross_echo`` are only set when the caller started from a
    VAT-inclusive invoice amount.
    """
    start: date
    end: date
    total_days: int
    used_days: int
    ratio: float
    value: float
    anchor_day: int = DEFAULT_ANCHOR_DAY
    mode: ProrateMode = ProrateMode.REMAINING
    pivot: Optional[date] = None
    monthly_net: Optional[float] = None
    gross_echo: Optional[float] = None
    vat_rate: Optional[float] = None

    @property
    def remaining_days(self) -> int:
        return self.total_days - self.used_days

    def to_dict(self) -> dict:
        d = {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "totalDays": self.total_days,
            "usedDays": self.used_days,
            "ratio": self.ratio,
            "value": self.value,
            "anchorDay": self.anchor_day,
            "mode": self.mode.value,
        }
        if self.pivot is not None:
            d["pivot"] = self.pivot.isoformat()
        if self.gross_echo is not None:
            d["monthlyNet"] = self.monthly_net
            d["grossEcho"] = self.gross_echo
            d["vatRate"] = self.vat_rate
        return d


# ── Calendar helpers ──────────────────────────────────────────────────


def days_between(a: date, b: date) -> int:
    """Whole days from ``a`` to ``b`` (negative when ``b`` is earlier)."""
    return (b - a).days


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def resolve_anchor_day_of_month(year: int, month: int, anchor_day: int) -> int:
    """Clamp ``anchor_day`` into the days that exist in ``year``/``month``."""
    last_day = calendar.monthrange(year, month)[1]
    return max(1, min(anchor_day, last_day))


def anchor_date(year: int, month: int, anchor_day: int) -> date:
    return date(year, month, resolve_anchor_day_of_month(year, month, anchor_day))


def _anchor_months_away(day: date, anchor_day: int, delta: int) -> date:
    year, month = _shift_month(day.year, day.month, delta)
    return anchor_date(year, month, anchor_day)


# ── Cycle resolution ─────────────────────────────────────────────────


def _cycle(start: date, end: date) -> BillingCycle:
    length = days_between(start, end)
    if length < 0:
        raise ArithmeticInvariantViolation(f"cycle {start} -> {end} has negative length {length}")
    return BillingCycle(start=start, end=end, length_days=length)


def cycle_containing(pivot: date, anchor_day: int) -> BillingCycle:
    """The cycle with ``start <= pivot < end``."""
    this_anchor = anchor_date(pivot.year, pivot.month, anchor_day)
    if pivot < this_anchor:
        return _cycle(_anchor_months_away(pivot, anchor_day, -1), this_anchor)
    return _cycle(this_anchor, _anchor_months_away(pivot, anchor_day, 1))


def first_anchor_at_or_after(activation: date, anchor_day: int) -> date:
    """Next invoice date for a subscription activated on ``activation``.

    Activating exactly on the anchor date returns that same date: the regular
    invoice issued that day already covers the new cycle.
    """
    same_month = anchor_date(activation.year, activation.month, anchor_day)
    if same_month >= activation:
        return same_month
    return _anchor_months_away(activation, anchor_day, 1)


def cycle_ending_at(end: date, anchor_day: int) -> BillingCycle:
    return _cycle(_anchor_months_away(end, anchor_day, -1), end)


def next_anchor_after(anchor: date, anchor_day: int) -> date:
    """Coverage-until date: the anchor one month after ``anchor``."""
    return _anchor_months_away(anchor, anchor_day, 1)


# ── Public boundary ──────────────────────────────────────────────────


def resolve_cycle(pivot, anchor_day: int = DEFAULT_ANCHOR_DAY) -> dict:
    """Validate, resolve and serialize the cycle around ``pivot``."""
    anchor_day = validate_anchor_day(anchor_day)
    pivot = parse_date(pivot, "pivot")
    return cycle_containing(pivot, anchor_day).to_dict()


def _coerce_mode(mode) -> ProrateMode:
    if isinstance(mode, ProrateMode):
        return mode
    try:
        return ProrateMode(mode)
    except ValueError:
        raise ValidationError(f"mode must be 'remaining' or 'elapsed', got {mode!r}") from None


def _share(monthly: float, cycle: BillingCycle, used_days: int):
    total_days = cycle.length_days
    used_days = max(0, min(total_days, used_days))
    ratio = used_days / total_days if total_days > 0 else 0.0
    return used_days, ratio, monthly * ratio


def prorate(monthly, pivot, anchor_day: int = DEFAULT_ANCHOR_DAY,
            mode=ProrateMode.REMAINING) -> ProrateResult:
    """Prorate ``monthly`` over the cycle containing ``pivot``.

    remaining: days from pivot to cycle end (activation-style).
    elapsed:   days from cycle start to pivot ("so far this cycle").
    """
    monthly = require_amount(monthly, "monthly")
    anchor_day = validate_anchor_day(anchor_day)
    pivot = parse_date(pivot, "pivot")
    mode = _coerce_mode(mode)

    cycle = cycle_containing(pivot, anchor_day)
    if mode is ProrateMode.ELAPSED:
        raw_used = days_between(cycle.start, pivot)
    else:
        raw_used = days_between(pivot, cycle.end)
    used_days, ratio, value = _share(monthly, cycle, raw_used)

    return ProrateResult(
        start=cycle.start,
        end=cycle.end,
        total_days=cycle.length_days,
        used_days=used_days,
        ratio=ratio,
        value=value,
        anchor_day=anchor_day,
        mode=mode,
        pivot=pivot,
    )


def _activation_result(monthly: float, activation: date, anchor_day: int, **extra) -> ProrateResult:
    first_anchor = first_anchor_at_or_after(activation, anchor_day)
    cycle = cycle_ending_at(first_anchor, anchor_day)
    used_days, ratio, value = _share(monthly, cycle, days_between(activation, first_anchor))
    return ProrateResult(
        start=cycle.start,
        end=cycle.end,
        total_days=cycle.length_days,
        used_days=used_days,
        ratio=ratio,
        value=value,
        anchor_day=anchor_day,
        mode=ProrateMode.REMAINING,
        pivot=activation,
        **extra,
    )


def prorate_activation(monthly, activation, anchor_day: int = DEFAULT_ANCHOR_DAY) -> ProrateResult:
    """Single-invoice activation: bill from activation to the first anchor on or after it.

    The cycle is the one that ends at that first anchor, so its length is the
    month the customer was activated into.
    """
    monthly = require_amount(monthly, "monthly")
    anchor_day = validate_anchor_day(anchor_day)
    activation = parse_date(activation, "activation")
    return _activation_result(monthly, activation, anchor_day)


def prorate_from_gross(gross, pivot, anchor_day: int = DEFAULT_ANCHOR_DAY,
                       vat_rate=DEFAULT_VAT_RATE) -> ProrateResult:
    """Activation proration from a VAT-inclusive full invoice amount.

    The monthly net is backed out of ``gross`` first; the gross figure is
    echoed on the result for display only.
    """
    gross = require_amount(gross, "gross")
    vat_rate = require_rate(vat_rate)
    anchor_day = validate_anchor_day(anchor_day)
    activation = parse_date(pivot, "pivot")

    monthly_net = net_from_gross(gross, vat_rate)
    return _activation_result(
        monthly_net, activation, anchor_day,
        monthly_net=monthly_net, gross_echo=gross, vat_rate=vat_rate,
    )


def monthly_amount(result: ProrateResult, monthly=None) -> float:
    """The monthly net a result was computed from, for renderers."""
    if monthly is not None:
        return require_amount(monthly, "monthly")
    if result.monthly_net is not None:
        return result.monthly_net
    raise ValidationError("monthly amount is required to render this result")
