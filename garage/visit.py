"""Visit class and its line items."""

from dataclasses import dataclass
from typing import Any, List, Optional

from .status import VisitStatus
from .totals import calc_labor, calc_parts_total


@dataclass
class ServiceLine:
    """A labor line on a visit."""

    name: str
    cost: float


@dataclass
class PartLine:
    """A part line. name and price are copied from the part when added."""

    part_id: Any
    name: str
    price: float
    qty: int = 1

    @property
    def line_total(self) -> float:
        return self.price * self.qty


@dataclass
class NextVisit:
    """A follow-up visit scheduled from this one."""

    date: str
    service: str
    notes: Optional[str] = None


class Visit:
    """A service visit: labor and parts for one vehicle, billed as one invoice."""

    def __init__(
        self,
        customer_id: Any,
        vehicle_id: Any,
        status: VisitStatus = VisitStatus.DRAFT,
        services: Optional[List[ServiceLine]] = None,
        parts: Optional[List[PartLine]] = None,
        discount: float = 0,
        notes: str = "",
        technician: Optional[str] = None,
        payment_method: Optional[str] = None,
        mileage: Optional[float] = None,
        tax_enabled: bool = False,
        total_cost: float = 0,
        tax: float = 0,
        final_total: float = 0,
        next_visit: Optional[NextVisit] = None,
        id: Optional[str] = None,
        created_at: Optional[str] = None,
        completed_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.customer_id = customer_id
        self.vehicle_id = vehicle_id
        self.status = status
        self.services = services or []
        self.parts = parts or []
        self.discount = discount
        self.notes = notes
        self.technician = technician
        self.payment_method = payment_method
        self.mileage = mileage
        self.tax_enabled = tax_enabled
        self.total_cost = total_cost
        self.tax = tax
        self.final_total = final_total
        self.next_visit = next_visit
        self.created_at = created_at
        self.completed_at = completed_at
        self.updated_at = updated_at

    @property
    def is_completed(self) -> bool:
        return self.status == VisitStatus.COMPLETED

    @property
    def labor(self) -> float:
        return calc_labor(self.services)

    @property
    def parts_total(self) -> float:
        return calc_parts_total(self.parts)

    @property
    def service_date(self) -> Optional[str]:
        """Date the visit counts as serviced: completion, else creation."""
        return self.completed_at or self.created_at

    def find_part_line(self, part_id: Any) -> Optional[PartLine]:
        """Find the part line for a part id."""
        for line in self.parts:
            if str(line.part_id) == str(part_id):
                return line
        return None
