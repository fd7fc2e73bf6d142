"""
Visit workflow: build a visit as a Draft, then complete it.

A VisitEditor holds one visit being edited. Line edits, totals and
scheduling only change the editor's copy; save() persists it without
touching stock; complete() checks live stock and commits the Completed
visit together with every stock debit, in one transaction.

Rejections raise ValidationError or NotFoundError and leave both the
editor and the store as they were. Store failures make save(),
complete() and delete() return False.
"""

import copy
import logging
from datetime import date
from typing import Any, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .config import Config
from .customer import Customer
from .directory import ShopRecords
from .errors import NotFoundError, Reason, ValidationError
from .ledger import InventoryLedger, parse_int, parse_number
from .records import find_record
from .spare_part import SparePart
from .status import VisitStatus
from .store import SPARE_PARTS
from .time_utils import parse_date, to_utc_z
from .totals import VisitTotals, compute_totals
from .vehicle import Vehicle
from .visit import NextVisit, PartLine, ServiceLine, Visit

logger = logging.getLogger(__name__)


class VisitEditor:
    """Mutable state of one visit while it is being worked on."""

    def __init__(self, workflow: "VisitWorkflow", visit: Visit):
        self.workflow = workflow
        self.visit = visit

    @property
    def tax_rate(self) -> float:
        return self.workflow.config.tax_rate

    def _require_draft(self) -> None:
        if self.visit.is_completed:
            raise ValidationError(
                Reason.VISIT_COMPLETED,
                f"Visit {self.visit.id} is completed and can no longer be changed",
                self.visit.id,
            )

    # =========================================================================
    # Line edits
    # =========================================================================

    def add_service(self, name: str, cost: Any) -> ServiceLine:
        """Add a labor line. cost may be given as text."""
        self._require_draft()
        name = (name or "").strip()
        if not name:
            raise ValidationError(Reason.MISSING_FIELD, "Service name is required", "name")
        line = ServiceLine(name=name, cost=parse_number(cost, "cost"))
        self.visit.services.append(line)
        self.recompute()
        return line

    def remove_service(self, index: int) -> ServiceLine:
        self._require_draft()
        try:
            line = self.visit.services.pop(index)
        except IndexError:
            raise IndexError(
                f"Service index {index} out of range (0..{len(self.visit.services) - 1})"
            )
        self.recompute()
        return line

    def add_part(self, part: SparePart, qty: int = 1) -> PartLine:
        """
        Add a part, or raise the quantity of its existing line.

        Checks use the stock on the given part object as it was read, with
        no re-fetch. The part's name and price are copied onto the line.

        Raises:
            ValidationError: OUT_OF_STOCK when the part has no stock,
                STOCK_LIMIT when the line would exceed the stock
        """
        self._require_draft()
        qty = parse_int(qty, "qty")
        stock = part.stock or 0
        if qty < 1:
            raise ValidationError(Reason.INVALID_NUMBER, "Quantity must be at least 1", "qty")
        if stock <= 0:
            raise ValidationError(
                Reason.OUT_OF_STOCK, f"{part.name} is out of stock", part.name
            )

        line = self.visit.find_part_line(part.id)
        current = line.qty if line else 0
        if current + qty > stock:
            raise ValidationError(
                Reason.STOCK_LIMIT,
                f"Only {stock} of {part.name} in stock",
                part.name,
            )

        if line:
            line.qty += qty
        else:
            line = PartLine(part_id=part.id, name=part.name, price=float(part.price), qty=qty)
            self.visit.parts.append(line)
        self.recompute()
        return line

    def add_part_by_id(self, part_id: Any, qty: int = 1) -> PartLine:
        """Look the part up in the ledger, then add_part."""
        part = self.workflow.ledger.get_part(part_id)
        if part is None:
            raise NotFoundError(Reason.PART_NOT_FOUND, f"Part {part_id} not found", str(part_id))
        return self.add_part(part, qty)

    def remove_part(self, index: int) -> PartLine:
        self._require_draft()
        try:
            line = self.visit.parts.pop(index)
        except IndexError:
            raise IndexError(
                f"Part index {index} out of range (0..{len(self.visit.parts) - 1})"
            )
        self.recompute()
        return line

    def set_discount(self, discount: Any) -> None:
        self._require_draft()
        self.visit.discount = parse_number(discount or 0, "discount")
        self.recompute()

    def set_tax_enabled(self, enabled: bool) -> None:
        self._require_draft()
        self.visit.tax_enabled = bool(enabled)
        self.recompute()

    def schedule_next_visit(
        self,
        service: str,
        on: Optional[date] = None,
        after_months: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> NextVisit:
        """
        Schedule a follow-up visit.

        Give either an explicit date (on) or a number of months from today.
        Fractional months become days, 30 per month.
        """
        service = (service or "").strip()
        if not service:
            raise ValidationError(Reason.MISSING_FIELD, "Next visit service is required", "service")
        if on is None:
            if after_months is None:
                raise ValidationError(
                    Reason.MISSING_FIELD, "Next visit needs a date or months", "date"
                )
            months = int(after_months)
            days = int((after_months - months) * 30)
            on = self.workflow.clock().date() + relativedelta(months=months, days=days)
        else:
            on = parse_date(on)
        self.visit.next_visit = NextVisit(date=on.isoformat(), service=service, notes=notes or None)
        return self.visit.next_visit

    def clear_next_visit(self) -> None:
        self.visit.next_visit = None

    # =========================================================================
    # Totals
    # =========================================================================

    @property
    def totals(self) -> VisitTotals:
        return compute_totals(
            self.visit.services,
            self.visit.parts,
            self.visit.discount,
            self.visit.tax_enabled,
            self.tax_rate,
        )

    def recompute(self) -> VisitTotals:
        """Copy freshly computed totals onto the visit."""
        totals = self.totals
        self.visit.total_cost = totals.subtotal
        self.visit.tax = totals.tax
        self.visit.final_total = totals.final_total
        return totals

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> bool:
        """Persist the visit as it is. The first save assigns its number."""
        self.recompute()
        saved = self.workflow.records.save_visit(self.visit)
        if saved:
            logger.info("Saved visit %s (%s)", self.visit.id, self.visit.status.value)
        return saved

    def check_stock(self, parts: List[dict]) -> None:
        """
        Verify every part line against live stock records.

        Raises:
            NotFoundError: a line's part no longer exists
            ValidationError: INSUFFICIENT_STOCK naming the first short part
        """
        for line in self.visit.parts:
            record = find_record(parts, line.part_id)
            if record is None:
                raise NotFoundError(
                    Reason.PART_NOT_FOUND, f"Part no longer exists: {line.name}", line.name
                )
            stock = int(record.get("stock") or 0)
            if stock < line.qty:
                raise ValidationError(
                    Reason.INSUFFICIENT_STOCK,
                    f"Not enough stock for {line.name}: need {line.qty}, have {stock}",
                    line.name,
                )

    def complete(self) -> bool:
        """
        Finish the visit and take its parts out of stock.

        Confirmation is the caller's job. The stock check, the Completed
        visit and every debit happen under one store lock and one commit,
        so a completed visit is debited exactly once or not at all.

        Raises:
            ValidationError: already completed, or stock is short
                (completion is checked against the stored visit too)
            NotFoundError: a part on the visit was deleted
        """
        self._require_draft()
        ledger = self.workflow.ledger
        before = copy.deepcopy(self.visit)

        with self.workflow.store.transaction() as txn:
            self.workflow.records.require_draft(txn, self.visit.id)
            self.check_stock(txn.get(SPARE_PARTS))

            self.visit.status = VisitStatus.COMPLETED
            self.visit.completed_at = to_utc_z(self.workflow.clock())
            self.recompute()
            self.workflow.records.stage_visit(txn, self.visit)
            for line in self.visit.parts:
                ledger.stage_stock_delta(txn, line.part_id, -line.qty)

            if not ledger.commit(txn):
                self.visit = before
                return False

        logger.info(
            "Completed visit %s: %d part lines, total %.2f",
            self.visit.id,
            len(self.visit.parts),
            self.visit.final_total,
        )
        return True

    def delete(self) -> bool:
        """
        Delete a Draft visit. Drafts hold no stock, so nothing is returned.

        Completed visits are refused: removing one would leave stock
        debited for a visit that no longer exists.
        """
        self._require_draft()
        if self.visit.id is None:
            return True
        deleted = self.workflow.records.delete_visit(self.visit.id)
        if deleted:
            logger.info("Deleted draft visit %s", self.visit.id)
        return deleted


class VisitWorkflow:
    """Starts, reopens and lists visits."""

    def __init__(
        self,
        records: ShopRecords,
        ledger: InventoryLedger,
        config: Optional[Config] = None,
    ):
        self.records = records
        self.ledger = ledger
        self.config = config or records.config
        self.store = records.store
        self.clock = records.clock

    def start_visit(self, customer_id: Any, vehicle_id: Any) -> VisitEditor:
        """Begin a Draft visit for a customer and vehicle."""
        if customer_id in (None, "") or vehicle_id in (None, ""):
            raise ValidationError(
                Reason.INCOMPLETE_SELECTION, "Select a customer and a vehicle first"
            )
        visit = Visit(
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            status=VisitStatus.DRAFT,
            created_at=to_utc_z(self.clock()),
        )
        return VisitEditor(self, visit)

    def open_visit(self, visit_id: Any) -> VisitEditor:
        """Edit an existing visit. The editor works on its own copy."""
        visit = self.records.get_visit(visit_id)
        if visit is None:
            raise NotFoundError(Reason.VISIT_NOT_FOUND, f"Visit {visit_id} not found", str(visit_id))
        return VisitEditor(self, copy.deepcopy(visit))

    def delete_visit(self, visit_id: Any) -> bool:
        return self.open_visit(visit_id).delete()

    def complete_visit(self, visit_id: Any) -> bool:
        return self.open_visit(visit_id).complete()

    def open_visits(self) -> List[Tuple[Visit, Customer, Vehicle]]:
        """Visits not yet completed, newest first, with owner and vehicle."""
        visits = [v for v in self.records.get_visits() if not v.is_completed]
        visits.sort(key=lambda v: v.created_at or "", reverse=True)
        return [
            (
                v,
                self.records.resolve_customer(v.customer_id),
                self.records.resolve_vehicle(v.vehicle_id),
            )
            for v in visits
        ]
