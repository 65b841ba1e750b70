"""Tests for the line item calculator."""

import pytest

from billing.engine import price_line_item
from billing.exceptions import InvalidPrice, InvalidQuantity, InvalidRate
from billing.models import ServiceReference

from factories import BANDAGE, BLOOD_TEST, CONSULTATION


class TestPricing:
    """Tests for price_line_item() amounts."""

    def test_consultation_with_tax(self):
        """500.00 x 1 at 18% tax, no discount: tax 90.00, total 590.00."""
        item = price_line_item(CONSULTATION, quantity=1, discount_rate_bps=0)

        assert item.line_subtotal_cents == 50000
        assert item.discount_amount_cents == 0
        assert item.taxable_amount_cents == 50000
        assert item.tax_amount_cents == 9000
        assert item.total_amount_cents == 59000

    def test_copies_catalog_fields(self):
        item = price_line_item(CONSULTATION, quantity=2, description="Follow-up")

        assert item.service_id == CONSULTATION.service_id
        assert item.service_name == "General Consultation"
        assert item.service_type == "CONSULTATION"
        assert item.unit_price_cents == 50000
        assert item.tax_rate_bps == 1800
        assert item.quantity == 2
        assert item.description == "Follow-up"

    def test_discount_applies_before_tax(self):
        """Tax is charged on the discounted amount, not the gross subtotal."""
        item = price_line_item(CONSULTATION, quantity=1, discount_rate_bps=1000)

        assert item.discount_amount_cents == 5000
        assert item.taxable_amount_cents == 45000
        assert item.tax_amount_cents == 8100  # 18% of 450.00, not of 500.00
        assert item.total_amount_cents == 53100

    def test_tax_rounds_half_up_once(self):
        """3 x 333.33 at 12.5%: tax 124.99875 rounds to 125.00."""
        item = price_line_item(BLOOD_TEST, quantity=3)

        assert item.line_subtotal_cents == 99999
        assert item.tax_amount_cents == 12500
        assert item.total_amount_cents == 112499

    def test_catalog_discount_used_when_none_requested(self):
        """4 x 19.99 with the catalog's 10% discount and 5% tax."""
        item = price_line_item(BANDAGE, quantity=4)

        assert item.discount_rate_bps == 1000
        assert item.line_subtotal_cents == 7996
        assert item.discount_amount_cents == 800
        assert item.taxable_amount_cents == 7196
        assert item.tax_amount_cents == 360
        assert item.total_amount_cents == 7556

    def test_requested_discount_overrides_catalog(self):
        item = price_line_item(BANDAGE, quantity=1, discount_rate_bps=0)

        assert item.discount_rate_bps == 0
        assert item.discount_amount_cents == 0

    def test_free_service(self):
        free = CONSULTATION.model_copy(update={"unit_price_cents": 0})
        item = price_line_item(free, quantity=5)

        assert item.total_amount_cents == 0

    def test_full_discount_leaves_nothing_to_tax(self):
        item = price_line_item(CONSULTATION, quantity=1, discount_rate_bps=10000)

        assert item.taxable_amount_cents == 0
        assert item.tax_amount_cents == 0
        assert item.total_amount_cents == 0


class TestPricingValidation:
    """Tests for price_line_item() input checks."""

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_rejects_quantity_below_one(self, quantity):
        with pytest.raises(InvalidQuantity):
            price_line_item(CONSULTATION, quantity=quantity)

    @pytest.mark.parametrize("discount", [-1, 10001])
    def test_rejects_discount_out_of_range(self, discount):
        with pytest.raises(InvalidRate, match="discount_rate_bps"):
            price_line_item(CONSULTATION, quantity=1, discount_rate_bps=discount)

    def test_rejects_tax_out_of_range(self):
        bad = CONSULTATION.model_copy(update={"tax_rate_bps": 10001})

        with pytest.raises(InvalidRate, match="tax_rate_bps"):
            price_line_item(bad, quantity=1)

    def test_rejects_negative_price(self):
        bad = ServiceReference(
            service_id=CONSULTATION.service_id,
            service_name="Broken",
            service_type="OTHER",
            unit_price_cents=-100,
        )

        with pytest.raises(InvalidPrice):
            price_line_item(bad, quantity=1)

    def test_validation_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            price_line_item(CONSULTATION, quantity=0)
