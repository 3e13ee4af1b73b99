"""
Unit tests for the quotation totals calculator.
"""

from decimal import Decimal

from qms.services.totals_service import compute_totals, line_total, compute_subtotal


class TestLineTotal:
    """Tests for line_total."""

    def test_quantity_times_unit_price(self):
        assert line_total(3, Decimal('19.99')) == Decimal('59.97')

    def test_rounds_half_up(self):
        assert line_total(1, Decimal('0.005')) == Decimal('0.01')


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_two_items_with_tax(self):
        items = [
            {'quantity': 1, 'unit_price': 5000},
            {'quantity': 1, 'unit_price': 1500},
        ]
        totals = compute_totals(items, Decimal('0.18'))

        assert totals.subtotal == Decimal('6500.00')
        assert totals.tax_amount == Decimal('1170.00')
        assert totals.discount == Decimal('0.00')
        assert totals.total == Decimal('7670.00')

    def test_discount_is_subtracted_after_tax(self):
        totals = compute_totals([{'quantity': 1, 'unit_price': 8000}], Decimal('0.18'), 500)

        assert totals.subtotal == Decimal('8000.00')
        assert totals.tax_amount == Decimal('1440.00')
        assert totals.total == Decimal('8940.00')

    def test_empty_items_give_negative_discount(self):
        totals = compute_totals([], Decimal('0.18'), 50)

        assert totals.subtotal == Decimal('0.00')
        assert totals.tax_amount == Decimal('0.00')
        assert totals.total == Decimal('-50.00')

    def test_tax_amount_rounded_half_up(self):
        # 10.05 * 0.05 = 0.5025 -> 0.50; 10.10 * 0.05 = 0.505 -> 0.51
        assert compute_totals([{'quantity': 1, 'unit_price': '10.05'}], '0.05').tax_amount == Decimal('0.50')
        assert compute_totals([{'quantity': 1, 'unit_price': '10.10'}], '0.05').tax_amount == Decimal('0.51')

    def test_float_inputs_do_not_leak_binary_noise(self):
        totals = compute_totals([{'quantity': 3, 'unit_price': 0.1}], 0.1)

        assert totals.subtotal == Decimal('0.30')
        assert totals.tax_amount == Decimal('0.03')
        assert totals.total == Decimal('0.33')

    def test_subtotal_rounded_once(self):
        items = [{'quantity': 1, 'unit_price': '0.005'}, {'quantity': 1, 'unit_price': '0.005'}]

        assert compute_subtotal(items) == Decimal('0.01')
        assert compute_totals(items, 0).total == Decimal('0.01')

    def test_camel_case_item_keys(self):
        assert compute_subtotal([{'qty': 2, 'unitPrice': 12.5}]) == Decimal('25.00')

    def test_total_invariant(self):
        totals = compute_totals(
            [{'quantity': 7, 'unit_price': '13.37'}, {'quantity': 2, 'unit_price': '0.99'}],
            Decimal('0.16'),
            '4.20'
        )
        assert totals.total == totals.subtotal + totals.tax_amount - totals.discount
