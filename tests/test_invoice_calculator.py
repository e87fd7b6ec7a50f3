"""
Tests for the ITBIS invoice arithmetic and document numbering.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import pytest
from hypothesis import given, settings, strategies as st

from criollo_api.services.billing import (
    InvoiceLine,
    compute_invoice_totals,
    line_subtotal,
    next_sequence_number,
)

RATE = Decimal("0.18")

cents = st.integers(min_value=0, max_value=5_000_000).map(lambda c: Decimal(c) / 100)


class TestComputeInvoiceTotals:

    def test_documented_example(self):
        """subtotal 1000, discount 50, tip 100 -> tax 171, total 1221."""
        totals = compute_invoice_totals(
            [InvoiceLine(1, Decimal("1000.00"))],
            discount=Decimal("50.00"),
            tip=Decimal("100.00"),
            rate=RATE,
        )
        assert totals.subtotal == Decimal("1000.00")
        assert totals.taxable_base == Decimal("950.00")
        assert totals.tax == Decimal("171.00")
        assert totals.total == Decimal("1221.00")

    def test_tip_percentage_applies_to_taxable_base(self):
        totals = compute_invoice_totals(
            [InvoiceLine(2, Decimal("350.00"))],
            tip_percentage=Decimal("10"),
            rate=RATE,
        )
        assert totals.subtotal == Decimal("700.00")
        assert totals.tax == Decimal("126.00")
        assert totals.tip == Decimal("70.00")
        assert totals.total == Decimal("896.00")

    def test_line_discount_reduces_subtotal(self):
        totals = compute_invoice_totals(
            [InvoiceLine(3, Decimal("150.00"), Decimal("50.00")), InvoiceLine(1, Decimal("100.00"))],
            rate=RATE,
        )
        assert totals.subtotal == Decimal("500.00")

    def test_tax_rounds_half_up(self):
        # 0.25 * 0.18 = 0.045 -> 0.05
        totals = compute_invoice_totals([InvoiceLine(1, Decimal("0.25"))], rate=RATE)
        assert totals.tax == Decimal("0.05")

    def test_discount_larger_than_subtotal_is_rejected(self):
        with pytest.raises(ValueError):
            compute_invoice_totals([InvoiceLine(1, Decimal("100.00"))], discount=Decimal("100.01"), rate=RATE)

    def test_negative_discount_is_rejected(self):
        with pytest.raises(ValueError):
            compute_invoice_totals([InvoiceLine(1, Decimal("100.00"))], discount=Decimal("-1"), rate=RATE)

    def test_empty_order_totals_zero(self):
        totals = compute_invoice_totals([], rate=RATE)
        assert totals.total == Decimal("0.00")

    @given(
        prices=st.lists(st.tuples(st.integers(min_value=1, max_value=20), cents), min_size=1, max_size=8),
        discount_share=st.integers(min_value=0, max_value=100),
        tip=cents,
    )
    @settings(max_examples=100)
    def test_total_identity(self, prices, discount_share, tip):
        """Property: total = subtotal - discount + round(0.18 * (subtotal - discount), 2) + tip."""
        lines = [InvoiceLine(qty, price) for qty, price in prices]
        subtotal = sum((line_subtotal(l.quantity, l.unit_price) for l in lines), Decimal("0"))
        discount = (subtotal * discount_share / 100).quantize(Decimal("0.01"))

        totals = compute_invoice_totals(lines, discount=discount, tip=tip, rate=RATE)

        base = subtotal - discount
        expected_tax = (base * RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert totals.subtotal == subtotal
        assert totals.tax == expected_tax
        assert totals.total == base + expected_tax + tip
        assert totals.total >= totals.tip


class TestSequenceNumbers:

    def test_first_number_of_the_day(self):
        assert next_sequence_number("ORD", date(2026, 3, 14), None) == "ORD-20260314-0001"

    def test_increments_last_number(self):
        assert next_sequence_number("FACT", date(2026, 3, 14), "FACT-20260314-0041") == "FACT-20260314-0042"

    def test_restarts_on_a_new_day(self):
        assert next_sequence_number("ORD", date(2026, 3, 15), "ORD-20260314-0009") == "ORD-20260315-0001"
