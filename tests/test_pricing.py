"""Tests for the Orange package price calculator."""

import pytest

from pricing import FORMULAS, calculate_pricing, format_pricing
from validation import ValidationError


class TestCalculatePricing:

    def test_base_ten(self):
        result = calculate_pricing(10)
        assert result.base == 10.0
        assert result.nos_b_nos == 13.11
        assert result.voice_calls_only == 14.62
        assert result.data_only == 11.6

    def test_zero_base(self):
        result = calculate_pricing(0)
        assert result.to_dict() == {
            "base": 0.0,
            "nos_b_nos": 0.0,
            "voice_calls_only": 0.0,
            "data_only": 0.0,
        }

    def test_ordering_of_variants(self):
        result = calculate_pricing(7.5)
        assert result.base < result.data_only < result.nos_b_nos < result.voice_calls_only

    @pytest.mark.parametrize("bad", [-1, float("nan"), None, "10"])
    def test_bad_base_rejected(self, bad):
        with pytest.raises(ValidationError):
            calculate_pricing(bad)

    def test_formulas_cover_every_variant(self):
        assert set(FORMULAS) == set(calculate_pricing(1).to_dict())


class TestFormatPricing:

    def test_english_labels(self):
        text = format_pricing(calculate_pricing(10), "en")
        assert text.splitlines() == [
            "Base: 10.00",
            "Nos_b_Nos: 13.11",
            "Voice Calls Only: 14.62",
            "Data Only: 11.60",
        ]

    def test_arabic_labels(self):
        text = format_pricing(calculate_pricing(10), "ar")
        assert "بيانات فقط: 11.60" in text
