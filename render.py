# Orange Tools bilingual rendering
# Same numbers, two languages. Rendering never recomputes anything but the VAT view.

from datetime import date

from billing import format_money, format_rate_pct, vat_breakdown
from config import DEFAULT_VAT_RATE
from prorata import ProrateResult, monthly_amount, next_anchor_after
from validation import require_choice, require_rate

LANGUAGES = {"ar", "en"}
VIEWS = {"script", "totals", "vat", "narrative"}

BULLET = "•"
ARROW = "→"

STR = {
    "script": {
        "en": {
            "period": "Period",
            "pro_days": "Pro-days",
            "prorata": "Pro-rata value",
            "monthly": "Monthly (net)",
            "issue": "Invoice issue date: {issue}, coverage in advance until {until}",
            "gross": "Full invoice (gross)",
        },
        "ar": {
            "period": "الفترة",
            "pro_days": "أيام البروراتا",
            "prorata": "قيمة البروراتا",
            "monthly": "قيمة الاشتراك الشهري",
            "issue": "تاريخ إصدار الفاتورة: {issue}، وتغطي الخدمة مقدّمًا حتى {until}",
            "gross": "قيمة الفاتورة الكلّية",
        },
    },
    "totals": {
        "en": {"monthly": "Monthly", "prorata": "Pro-rata"},
        "ar": {"monthly": "شهري", "prorata": "بروراتا"},
    },
    "vat": {
        "en": {"net": "Net", "vat": "VAT ({rate})", "gross": "Gross"},
        "ar": {"net": "الصافي", "vat": "ضريبة {rate}", "gross": "الإجمالي"},
    },
}

MONTH_NAMES = {
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
    "ar": [
        "يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو",
        "يوليو", "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر",
    ],
}


def iso(d: date) -> str:
    return d.isoformat()


def long_date(d: date, language: str) -> str:
    """``14 October 2025`` / ``14 أكتوبر 2025``."""
    return f"{d.day:02d} {MONTH_NAMES[language][d.month - 1]} {d.year}"


def pct(ratio: float) -> str:
    return f"{ratio * 100:.2f}%"


def _script(result: ProrateResult, monthly: float, lang: str) -> str:
    s = STR["script"][lang]
    issue = result.end
    until = next_anchor_after(issue, result.anchor_day)
    days = f"{result.used_days} / {result.total_days} ({pct(result.ratio)})"
    lines = [
        f"{s['period']}: {iso(result.start)} {ARROW} {iso(result.end)}",
        f"{s['pro_days']}: {days}",
        f"{BULLET} {s['prorata']}: {format_money(result.value, lang)}",
        f"{BULLET} {s['monthly']}: {format_money(monthly, lang)}",
        f"{BULLET} " + s["issue"].format(issue=iso(issue), until=iso(until)),
    ]
    if result.gross_echo is not None:
        lines.append(f"{BULLET} {s['gross']}: {format_money(result.gross_echo, lang)}")
    return "\n".join(lines)


def _totals(result: ProrateResult, monthly: float, lang: str) -> str:
    s = STR["totals"][lang]
    return "\n".join([
        f"{s['monthly']}: {format_money(monthly, lang)}",
        f"{s['prorata']}: {format_money(result.value, lang)}",
    ])


def _vat(result: ProrateResult, monthly: float, lang: str, rate: float) -> str:
    s = STR["vat"][lang]
    b = vat_breakdown(monthly + result.value, rate)
    return "\n".join([
        f"{s['net']}: {format_money(b.net, lang)}",
        f"{s['vat'].format(rate=format_rate_pct(b.rate))}: {format_money(b.vat, lang)}",
        f"{s['gross']}: {format_money(b.gross, lang)}",
    ])


def _narrative(result: ProrateResult, monthly: float, lang: str) -> str:
    pivot = result.pivot or result.start
    until = next_anchor_after(result.end, result.anchor_day)
    if lang == "ar":
        return (
            f"يغطي هذا الاحتساب الفترة من {long_date(result.start, lang)} حتى {long_date(result.end, lang)}"
            f" (تاريخ الاحتساب {long_date(pivot, lang)})، أي {result.used_days} يوم من أصل"
            f" {result.total_days} يوم ({pct(result.ratio)}). بناءً على الاشتراك الشهري"
            f" ({format_money(monthly, lang)})، فإن قيمة البروراتا المستحقة هي"
            f" {format_money(result.value, lang)}. تصدر الفاتورة في {long_date(result.end, lang)}"
            f" وتغطي الخدمة حتى {long_date(until, lang)}."
        )
    return (
        f"This calculation covers the cycle from {long_date(result.start, lang)} to"
        f" {long_date(result.end, lang)} (calculated on {long_date(pivot, lang)}):"
        f" {result.used_days} of {result.total_days} days ({pct(result.ratio)})."
        f" Based on the monthly subscription ({format_money(monthly, lang)}), the pro-rata"
        f" amount due is {format_money(result.value, lang)}. The invoice is issued on"
        f" {long_date(result.end, lang)} and covers service until {long_date(until, lang)}."
    )


def format_result(result: ProrateResult, monthly=None, language: str = "ar",
                  view: str = "script", vat_rate=None) -> str:
    """Render ``result`` in one of the views.

    ``monthly`` may be omitted for results built from a gross amount; the
    backed-out monthly net is used then. ``vat_rate`` defaults to the rate the
    result carries, else the configured rate.
    """
    require_choice(language, LANGUAGES, "language")
    require_choice(view, VIEWS, "view")
    monthly = monthly_amount(result, monthly)

    if view == "script":
        return _script(result, monthly, language)
    if view == "totals":
        return _totals(result, monthly, language)
    if view == "vat":
        if vat_rate is None:
            vat_rate = result.vat_rate if result.vat_rate is not None else DEFAULT_VAT_RATE
        return _vat(result, monthly, language, require_rate(vat_rate))
    return _narrative(result, monthly, language)


def bilingual(locale: str, ar: str, en: str) -> str:
    """Both languages, the caller's first."""
    return f"{ar}\n{en}" if locale == "ar" else f"{en}\n{ar}"
