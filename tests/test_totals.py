#!/usr/bin/env python3
"""Tests for visit total calculations."""

import pytest

from garage.totals import calc_labor, calc_parts_total, calc_tax, compute_totals
from garage.visit import PartLine, ServiceLine, Visit


class TestCalcLabor:
    """Tests for calc_labor."""

    def test_sums_service_costs(self):
        services = [ServiceLine("Oil change", 50), ServiceLine("Inspection", 30)]
        assert calc_labor(services) == 80

    def test_empty_is_zero(self):
        assert calc_labor([]) == 0


class TestCalcPartsTotal:
    """Tests for calc_parts_total."""

    def test_multiplies_price_by_qty(self):
        parts = [PartLine(part_id=1, name="Filter", price=10, qty=3)]
        assert calc_parts_total(parts) == 30

    def test_sums_lines(self):
        parts = [
            PartLine(part_id=1, name="Filter", price=10, qty=3),
            PartLine(part_id=2, name="Plug", price=2.5, qty=4),
        ]
        assert calc_parts_total(parts) == 40


class TestCalcTax:
    """Tests for calc_tax."""

    def test_disabled_is_zero(self):
        assert calc_tax(100, False, 0.15) == 0

    def test_enabled_applies_rate(self):
        assert calc_tax(100, True, 0.15) == pytest.approx(15)


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_worked_example(self):
        totals = compute_totals(
            services=[ServiceLine("Labor A", 50), ServiceLine("Labor B", 30)],
            parts=[PartLine(part_id=1, name="Filter", price=10, qty=3)],
            discount=5,
            tax_enabled=True,
            tax_rate=0.15,
        )
        assert totals.labor == 80
        assert totals.parts_total == 30
        assert totals.subtotal == 110
        assert totals.tax == pytest.approx(16.5)
        assert totals.final_total == pytest.approx(121.5)

    def test_tax_is_before_discount(self):
        totals = compute_totals([ServiceLine("Labor", 100)], [], 50, True, 0.15)
        assert totals.tax == pytest.approx(15)
        assert totals.final_total == pytest.approx(65)

    def test_final_total_not_clamped(self):
        totals = compute_totals([ServiceLine("Labor", 10)], [], 25, False, 0.15)
        assert totals.final_total == -15

    def test_none_discount_is_zero(self):
        totals = compute_totals([ServiceLine("Labor", 10)], [], None, False, 0.15)
        assert totals.discount == 0
        assert totals.final_total == 10


class TestVisitSubtotals:
    """Tests for Visit labor and parts_total."""

    def test_visit_exposes_subtotals(self):
        visit = Visit(
            customer_id=1,
            vehicle_id=1,
            services=[ServiceLine("Labor", 50)],
            parts=[PartLine(part_id=1, name="Filter", price=10, qty=2)],
        )
        assert visit.labor == 50
        assert visit.parts_total == 20
