# Orange Tools Price Calculator
# One base price A, four package variants. Formulas are fixed by the tariff sheet.

from dataclasses import asdict, dataclass

from validation import require_amount

# Uplift applied to voice packages on top of 16% sales tax.
VOICE_UPLIFT = 0.4616
SALES_TAX = 0.16

FORMULAS = {
    "base": "A",
    "nos_b_nos": "A + (A/2 × 0.4616) + (A/2 × 0.16)",
    "voice_calls_only": "A × 1.4616",
    "data_only": "A × 1.16",
}

LABELS = {
    "en": {
        "base": "Base",
        "nos_b_nos": "Nos_b_Nos",
        "voice_calls_only": "Voice Calls Only",
        "data_only": "Data Only",
    },
    "ar": {
        "base": "السعر الأساسي",
        "nos_b_nos": "نص بنص",
        "voice_calls_only": "مكالمات صوتية فقط",
        "data_only": "بيانات فقط",
    },
}


@dataclass(frozen=True)
class PricingResult:
    base: float
    nos_b_nos: float
    voice_calls_only: float
    data_only: float

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_pricing(base_price) -> PricingResult:
    """Price every package variant for base price ``A`` (2-decimal display)."""
    a = require_amount(base_price, "base_price")
    half = a / 2
    return PricingResult(
        base=round(a, 2),
        nos_b_nos=round(a + half * VOICE_UPLIFT + half * SALES_TAX, 2),
        voice_calls_only=round(a * (1 + VOICE_UPLIFT), 2),
        data_only=round(a * (1 + SALES_TAX), 2),
    )


def format_pricing(result: PricingResult, language: str = "en") -> str:
    labels = LABELS["ar" if language == "ar" else "en"]
    return "\n".join(
        f"{labels[key]}: {value:.2f}" for key, value in result.to_dict().items()
    )
