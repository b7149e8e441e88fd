"""
Tests for token amount conversion.

Covers:
- Exact conversion at token decimals
- Truncation to storage scale
- uint256-sized values
- Negative input rejection
"""

from decimal import Decimal

import pytest

from app.utils.amounts import from_base_units, to_base_units


class TestFromBaseUnits:
    """Tests for from_base_units."""

    def test_whole_tokens(self):
        """1_000_000 base units at 6 decimals is exactly 1 token."""
        assert from_base_units(1_000_000, 6) == Decimal("1")

    def test_smallest_unit(self):
        """A single base unit survives conversion."""
        assert from_base_units(1, 6) == Decimal("0.000001")

    def test_zero(self):
        """Zero converts to zero."""
        assert from_base_units(0, 6) == Decimal("0")

    def test_fractional_amount_is_exact(self):
        """No float rounding for awkward fractions."""
        assert from_base_units(123_456_789, 6) == Decimal("123.456789")

    def test_truncates_to_storage_scale(self):
        """18-decimal amounts are truncated toward zero at 8 places."""
        raw = 1_234_567_891_234_567_899
        assert from_base_units(raw, 18, 8) == Decimal("1.23456789")

    def test_max_places_above_decimals_keeps_all_digits(self):
        """Scale larger than decimals does not pad precision away."""
        assert from_base_units(1_500_000, 6, 8) == Decimal("1.5")

    def test_uint256_max(self):
        """Largest on-chain value converts without overflow."""
        raw = 2**256 - 1
        result = from_base_units(raw, 6)
        assert to_base_units(result, 6) == raw

    def test_negative_rejected(self):
        """Negative amounts are invalid."""
        with pytest.raises(ValueError):
            from_base_units(-1, 6)

    def test_negative_decimals_rejected(self):
        """Negative decimals are invalid."""
        with pytest.raises(ValueError):
            from_base_units(1, -1)


class TestToBaseUnits:
    """Tests for to_base_units."""

    def test_whole_tokens(self):
        assert to_base_units(Decimal("100"), 6) == 100_000_000

    def test_truncates_extra_digits(self):
        """Digits beyond token decimals are dropped."""
        assert to_base_units(Decimal("1.0000019"), 6) == 1_000_001

    def test_inverse_of_from_base_units(self):
        raw = 987_654_321
        assert to_base_units(from_base_units(raw, 6), 6) == raw
