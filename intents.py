# Orange Tools chat intents
# Best-effort parsing of free text in Arabic or English. Returns None, never raises.

import math
import re
from dataclasses import dataclass
from typing import Optional

from docs import ARABIC_CHAR_RE, DocEntry, slugify_title

ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩", "0123456789")

_NUMBER = r"([0-9]+(?:\.[0-9]+)?)"
_DATE_RE = re.compile(r"(20\d{2}-\d{2}-\d{2})")
_GROSS_RE = re.compile(r"(gross|فاتورة|invoice|كاملة|اجمالي|إجمالي)[^0-9]*" + _NUMBER, re.IGNORECASE)
_MONTHLY_RE = re.compile(r"(monthly|شهري|اشتراك|net|صافي|شهرية)[^0-9]*" + _NUMBER, re.IGNORECASE)

VAT_KEYWORDS_RE = re.compile(
    r"(?:ضريبة|شامل|vat|ضريبه|tax|مع الضريبة|includes vat|include vat|with vat)", re.IGNORECASE
)
_QUANTITY_RE = re.compile(
    r"(?<![a-z])(?:عدد|qty|quantity|pieces|بطاقات|كروت|شرائح|lines|x|×)\s*" + _NUMBER, re.IGNORECASE
)
_ANY_NUMBER_RE = re.compile(_NUMBER)

# \b is unreliable next to Arabic letters, so word edges are spelled out.
NAVIGATION_TRIGGERS_RE = re.compile(
    r"(?<!\w)(افتح|فتح|افتحي|open|show|اذهب|navigate|شغل|عرض|روح)(?!\w)", re.IGNORECASE
)
_NAV_PUNCT_RE = re.compile(r"[\"'،,؛:!?]")

NAVIGATION_MIN_SCORE = 0.45


@dataclass(frozen=True)
class ProrataIntent:
    activation_date: str
    mode: str                 # "gross" or "monthly"
    amount: float


@dataclass(frozen=True)
class VatIntent:
    amount: float
    quantity: float = 1.0


def normalize_digits(text: str) -> str:
    return text.translate(ARABIC_DIGITS)


def detect_locale(text: Optional[str], default: str = "en") -> str:
    if not text:
        return default
    return "ar" if ARABIC_CHAR_RE.search(text) else "en"


def _amount(match) -> Optional[float]:
    if not match:
        return None
    value = float(match.group(2))
    return value if math.isfinite(value) else None


def parse_prorata_intent(message: str) -> Optional[ProrataIntent]:
    """``2025-10-14 monthly 30`` / ``تفعيل 2025-10-14 فاتورة 34.8``."""
    normalized = re.sub(r"[،,]", " ", normalize_digits(message or ""))
    date_match = _DATE_RE.search(normalized)
    if not date_match:
        return None
    activation = date_match.group(1)

    gross_match = _GROSS_RE.search(normalized)
    monthly_match = _MONTHLY_RE.search(normalized)
    gross = _amount(gross_match)
    monthly = _amount(monthly_match)
    if gross is None and monthly is None:
        return None

    if gross is not None and (monthly is None or gross_match.start() >= monthly_match.start()):
        return ProrataIntent(activation_date=activation, mode="gross", amount=gross)
    return ProrataIntent(activation_date=activation, mode="monthly", amount=monthly)


def parse_vat_intent(message: str) -> Optional[VatIntent]:
    """``100 with vat x 3`` / ``كم 25 مع الضريبة عدد 4``."""
    normalized = normalize_digits(message or "")
    if not VAT_KEYWORDS_RE.search(normalized):
        return None
    first = _ANY_NUMBER_RE.search(normalized)
    if not first:
        return None
    amount = float(first.group(1))
    if not math.isfinite(amount) or amount <= 0:
        return None

    quantity = 1.0
    m = _QUANTITY_RE.search(normalized)
    if m:
        q = float(m.group(1))
        if math.isfinite(q) and q > 0:
            quantity = q
    return VatIntent(amount=amount, quantity=quantity)


def _tokens(slug: str) -> list[str]:
    return [t for t in slug.split("-") if t]


def detect_doc_navigation(message: str, docs: list[DocEntry]) -> Optional[DocEntry]:
    """``open max it`` -> the best-matching doc when the token overlap is good enough."""
    if not message or not NAVIGATION_TRIGGERS_RE.search(message):
        return None
    cleaned = NAVIGATION_TRIGGERS_RE.sub(" ", normalize_digits(message))
    cleaned = _NAV_PUNCT_RE.sub(" ", cleaned).strip()
    tokens = _tokens(slugify_title(cleaned or message))

    best, best_score = None, 0.0
    for doc in docs:
        doc_tokens = _tokens(doc.id or slugify_title(doc.title))
        if not doc_tokens:
            continue
        hits = sum(
            1 for t in tokens
            if any(dt.startswith(t) or t.startswith(dt) for dt in doc_tokens)
        )
        score = hits / max(len(tokens), len(doc_tokens))
        if score > NAVIGATION_MIN_SCORE and score > best_score:
            best, best_score = doc, score
    return best
