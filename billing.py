# Orange Tools VAT & Currency
# Jordanian Dinar, three decimals, one general sales tax rate.
#   - Gross-up: net -> vat -> gross
#   - Back-calculation: gross -> net (invoice amounts are quoted VAT-inclusive)
#   - Per-unit / per-quantity VAT quotes for the chat assistant

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from config import DEFAULT_VAT_RATE
from validation import require_amount, require_rate


# ── Currency ─────────────────────────────────────────────────────────

CURRENCY = "JOD"
CURRENCY_SYMBOL = {"en": "JD", "ar": "دينار"}

# The dinar is divided into 1000 fils, so every figure shows 3 decimals.
CURRENCY_DECIMALS = 3
_JD_QUANTUM = Decimal(1).scaleb(-CURRENCY_DECIMALS)


def round_jd(value: float) -> float:
    """Round half-up to whole fils.

    ``round()`` is banker's rounding on a binary float; invoices are not.
    """
    return float(Decimal(repr(float(value))).quantize(_JD_QUANTUM, rounding=ROUND_HALF_UP))


def format_jd(value: float) -> str:
    return f"{round_jd(value):.{CURRENCY_DECIMALS}f}"


def format_money(value: float, language: str = "en") -> str:
    """``JD 1.000`` in English, ``1.000 دينار`` in Arabic."""
    amount = format_jd(value)
    if language == "ar":
        return f"{amount} {CURRENCY_SYMBOL['ar']}"
    return f"{CURRENCY_SYMBOL['en']} {amount}"


def format_rate_pct(rate: float) -> str:
    """0.16 -> ``16%``; 0.075 -> ``7.5%``."""
    pct = f"{rate * 100:.2f}".rstrip("0").rstrip(".")
    return f"{pct}%"


# ── VAT ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VatBreakdown:
    """Net / VAT / gross triple at a given rate. Unrounded; render with format_jd."""
    net: float
    vat: float
    gross: float
    rate: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class VatQuote:
    """VAT quote for ``quantity`` units of one net price."""
    unit_net: float
    unit_vat: float
    unit_gross: float
    quantity: float
    subtotal: float
    total_vat: float
    total_due: float
    rate: float

    def to_dict(self) -> dict:
        return asdict(self)


def vat_amount(net, rate=DEFAULT_VAT_RATE) -> float:
    net = require_amount(net, "net")
    rate = require_rate(rate)
    return net * rate


def gross_from_net(net, rate=DEFAULT_VAT_RATE) -> float:
    net = require_amount(net, "net")
    rate = require_rate(rate)
    return net + net * rate


def net_from_gross(gross, rate=DEFAULT_VAT_RATE) -> float:
    gross = require_amount(gross, "gross")
    rate = require_rate(rate)
    return gross / (1 + rate)


def vat_breakdown(net, rate=DEFAULT_VAT_RATE) -> VatBreakdown:
    net = require_amount(net, "net")
    rate = require_rate(rate)
    vat = net * rate
    return VatBreakdown(net=net, vat=vat, gross=net + vat, rate=rate)


def vat_breakdown_from_gross(gross, rate=DEFAULT_VAT_RATE) -> VatBreakdown:
    """Split a VAT-inclusive amount. ``vat`` is ``gross - net`` so the triple adds up exactly."""
    gross = require_amount(gross, "gross")
    net = net_from_gross(gross, rate)
    return VatBreakdown(net=net, vat=gross - net, gross=gross, rate=float(rate))


def vat_quote(unit_amount, quantity=1, rate=DEFAULT_VAT_RATE) -> VatQuote:
    unit_net = require_amount(unit_amount, "unit_amount")
    quantity = require_amount(quantity, "quantity")
    rate = require_rate(rate)
    unit_vat = unit_net * rate
    unit_gross = unit_net + unit_vat
    return VatQuote(
        unit_net=unit_net,
        unit_vat=unit_vat,
        unit_gross=unit_gross,
        quantity=quantity,
        subtotal=unit_net * quantity,
        total_vat=unit_vat * quantity,
        total_due=unit_gross * quantity,
        rate=rate,
    )
