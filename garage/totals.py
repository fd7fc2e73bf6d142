"""Helper functions for visit total calculations."""

from dataclasses import dataclass
from typing import Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from .visit import PartLine, ServiceLine


@dataclass
class VisitTotals:
    """Calculated money totals for a visit."""

    labor: float
    parts_total: float
    subtotal: float
    tax: float
    discount: float
    final_total: float


def calc_labor(services: Iterable["ServiceLine"]) -> float:
    """Sum of service line costs."""
    return sum(float(s.cost) for s in services)


def calc_parts_total(parts: Iterable["PartLine"]) -> float:
    """Sum of price * qty over part lines."""
    return sum(float(p.price) * p.qty for p in parts)


def calc_tax(subtotal: float, tax_enabled: bool, tax_rate: float) -> float:
    """Flat tax on the subtotal, or zero when tax is off."""
    return subtotal * tax_rate if tax_enabled else 0.0


def compute_totals(
    services: Iterable["ServiceLine"],
    parts: Iterable["PartLine"],
    discount: float,
    tax_enabled: bool,
    tax_rate: float,
) -> VisitTotals:
    """
    Compute visit totals.

    - subtotal = labor + parts
    - tax applies to the subtotal before discount
    - final = subtotal + tax - discount, never clamped at zero
    """
    labor = calc_labor(services)
    parts_total = calc_parts_total(parts)
    subtotal = labor + parts_total
    tax = calc_tax(subtotal, tax_enabled, tax_rate)
    discount = float(discount or 0)
    return VisitTotals(
        labor=labor,
        parts_total=parts_total,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        final_total=subtotal + tax - discount,
    )
