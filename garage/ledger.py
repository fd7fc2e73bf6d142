"""
Inventory ledger: spare part stock and vendor credit.

Stock only changes through stage_stock_delta and vendor credit only
through stage_credit_delta. Everything else (restock on create, visit
completion, stock counts, payments) goes through those two, so they are
the single point where quantities and balances move.

Each public mutation runs in one store transaction: either every
collection it touches is written, or none is.
"""

import logging
from typing import Any, Dict, List, Optional

from .config import Config
from .errors import ConsistencyError, PersistenceError, Reason, ValidationError
from .records import (
    find_index,
    find_record,
    next_int_id,
    parse_part,
    parse_payment,
    part_to_dict,
    payment_to_dict,
    same_id,
)
from .spare_part import SparePart
from .store import SPARE_PARTS, VENDOR_PAYMENTS, VENDORS, Records, RecordStore, Transaction
from .time_utils import Clock, to_utc_z, utcnow
from .vendor import VendorPayment

logger = logging.getLogger(__name__)


class PartsCache:
    """Last known spare_parts collection. Owned by one ledger."""

    def __init__(self):
        self._records: Optional[Records] = None

    def get(self) -> Optional[Records]:
        return self._records

    def set(self, records: Records) -> None:
        self._records = [dict(r) for r in records]

    def invalidate(self) -> None:
        self._records = None


def parse_number(value: Any, field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            Reason.INVALID_NUMBER, f"{field} must be a number, got {value!r}", field
        )


def parse_int(value: Any, field: str) -> int:
    number = parse_number(value, field)
    if number != int(number):
        raise ValidationError(
            Reason.INVALID_NUMBER, f"{field} must be a whole number, got {value!r}", field
        )
    return int(number)


class InventoryLedger:
    """Owns part stock, vendor credit and the vendor payment log."""

    def __init__(
        self,
        store: RecordStore,
        config: Optional[Config] = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.config = config or Config()
        self.clock = clock
        self.cache = PartsCache()

    def _now(self) -> str:
        return to_utc_z(self.clock())

    def commit(self, txn: Transaction) -> bool:
        """
        Commit a transaction and keep the parts cache in step.

        On success the cache holds what was written; on failure it is
        dropped so the next read goes back to the store.
        """
        parts = txn.get(SPARE_PARTS) if SPARE_PARTS in txn.staged else None
        try:
            txn.commit()
        except PersistenceError as e:
            logger.error("Ledger commit failed: %s", e)
            self.cache.invalidate()
            return False
        except ConsistencyError:
            self.cache.invalidate()
            raise
        if parts is not None:
            self.cache.set(parts)
        return True

    # =========================================================================
    # Reads
    # =========================================================================

    def _part_records(self) -> Records:
        records = self.cache.get()
        if records is None:
            records = self.store.get(SPARE_PARTS)
            self.cache.set(records)
        return records

    def get_parts(self) -> List[SparePart]:
        """All spare parts, served from the ledger's cache."""
        return [parse_part(r) for r in self._part_records()]

    def get_part(self, part_id: Any) -> Optional[SparePart]:
        record = find_record(self._part_records(), part_id)
        return parse_part(record) if record else None

    def search_parts(self, term: Optional[str] = None, limit: Optional[int] = None) -> List[SparePart]:
        """Parts whose name or part number contains term, up to limit."""
        limit = limit or self.config.search_limit
        term = (term or "").strip().lower()
        results = []
        for part in self.get_parts():
            if len(results) >= limit:
                break
            if not term or term in part.name.lower() or term in part.part_number.lower():
                results.append(part)
        return results

    def get_vendor_payments(self, vendor_id: Any = None) -> List[VendorPayment]:
        payments = [parse_payment(r) for r in self.store.get(VENDOR_PAYMENTS)]
        if vendor_id is not None:
            return [p for p in payments if same_id(p.vendor_id, vendor_id)]
        return payments

    # =========================================================================
    # Staged deltas (the only places stock and credit change)
    # =========================================================================

    def stage_stock_delta(self, txn: Transaction, part_id: Any, delta: int) -> bool:
        """
        Stage stock += delta for a part. False if the part does not exist.

        No floor is enforced; callers check quantities first.
        """
        parts = txn.get(SPARE_PARTS)
        index = find_index(parts, part_id)
        if index < 0:
            logger.warning("Stock change for unknown part %s ignored", part_id)
            return False
        part = parts[index]
        before = int(part.get("stock") or 0)
        part["stock"] = before + int(delta)
        if delta > 0:
            part["lastRestockDate"] = self._now()
        txn.put(SPARE_PARTS, parts)
        logger.info(
            "Stock %s (%s): %d -> %d", part_id, part.get("partNumber"), before, part["stock"]
        )
        return True

    def stage_credit_delta(self, txn: Transaction, vendor_id: Any, amount: float) -> bool:
        """Stage credit += amount for a vendor. False if the vendor does not exist."""
        vendors = txn.get(VENDORS)
        index = find_index(vendors, vendor_id)
        if index < 0:
            logger.warning("Credit change for unknown vendor %s ignored", vendor_id)
            return False
        vendor = vendors[index]
        before = float(vendor.get("credit") or 0)
        vendor["credit"] = before + float(amount)
        vendor["updatedAt"] = self._now()
        txn.put(VENDORS, vendors)
        logger.info("Vendor %s credit: %.2f -> %.2f", vendor_id, before, vendor["credit"])
        return True

    # =========================================================================
    # Stock and credit operations
    # =========================================================================

    def adjust_stock(self, part_id: Any, delta: int) -> bool:
        """Add delta (negative to consume) to a part's stock and persist."""
        delta = parse_int(delta, "delta")
        with self.store.transaction() as txn:
            if not self.stage_stock_delta(txn, part_id, delta):
                return False
            return self.commit(txn)

    def adjust_vendor_credit(self, vendor_id: Any, amount: float) -> bool:
        """Add amount to what the shop owes a vendor (negative pays it down)."""
        amount = parse_number(amount, "amount")
        with self.store.transaction() as txn:
            if not self.stage_credit_delta(txn, vendor_id, amount):
                return False
            return self.commit(txn)

    def record_vendor_payment(self, vendor_id: Any, amount: float, notes: str = "") -> bool:
        """
        Log a payment to a vendor and reduce their credit by the amount.

        Both writes commit together; an unknown vendor records nothing.
        """
        amount = parse_number(amount, "amount")
        if amount <= 0:
            raise ValidationError(
                Reason.INVALID_NUMBER, "Payment amount must be positive", "amount"
            )
        with self.store.transaction() as txn:
            if not self.stage_credit_delta(txn, vendor_id, -amount):
                return False
            payments = txn.get(VENDOR_PAYMENTS)
            payment = VendorPayment(
                vendor_id=vendor_id,
                amount=amount,
                notes=notes or "",
                date=self._now(),
                id=next_int_id(payments),
            )
            payments.append(payment_to_dict(payment))
            txn.put(VENDOR_PAYMENTS, payments)
            return self.commit(txn)

    def apply_stock_count(self, counts: Dict[Any, int]) -> Dict[Any, int]:
        """
        Bring stock in line with a physical count.

        counts maps part id -> counted quantity. Each difference is applied
        as a stock delta, all in one write. Returns part id -> difference
        (counted - recorded) for the parts that changed. Unknown ids are
        skipped. Returns {} if nothing changed or the write failed.
        """
        with self.store.transaction() as txn:
            diffs: Dict[Any, int] = {}
            for part_id, counted in counts.items():
                counted = parse_int(counted, "count")
                record = find_record(txn.get(SPARE_PARTS), part_id)
                if record is None:
                    logger.warning("Stock count for unknown part %s skipped", part_id)
                    continue
                diff = counted - int(record.get("stock") or 0)
                if diff and self.stage_stock_delta(txn, part_id, diff):
                    diffs[part_id] = diff
            if not diffs:
                return {}
            return diffs if self.commit(txn) else {}

    # =========================================================================
    # Parts
    # =========================================================================

    def _validate_part(self, part: SparePart, parts: Records) -> None:
        if not part.part_number or not str(part.part_number).strip():
            raise ValidationError(Reason.MISSING_FIELD, "Part number is required", "partNumber")
        if not part.name or not str(part.name).strip():
            raise ValidationError(Reason.MISSING_FIELD, "Part name is required", "name")
        part.part_number = str(part.part_number).strip()
        part.name = str(part.name).strip()
        part.price = parse_number(part.price, "price")
        if part.cost is not None:
            part.cost = parse_number(part.cost, "cost")
        if part.stock is not None:
            part.stock = parse_int(part.stock, "stock")

        for record in parts:
            if record.get("partNumber") == part.part_number and not same_id(
                record.get("id"), part.id
            ):
                raise ValidationError(
                    Reason.DUPLICATE_PART_NUMBER,
                    f"Part number '{part.part_number}' already exists",
                    part.part_number,
                )

    def save_part(self, part: SparePart) -> bool:
        """
        Insert or update a spare part.

        New part: gets the next integer id and an initialStock snapshot. If
        it arrives with stock from a vendor, cost * stock is added to that
        vendor's credit (bought on credit) in the same commit.

        Existing part: fields are merged and updatedAt bumped. A changed
        stock is applied as a delta, never written over. cost or stock
        left as None keeps the stored value.

        Raises:
            ValidationError: missing number/name, non-numeric price or a
                part number already used by another part
        """
        with self.store.transaction() as txn:
            parts = txn.get(SPARE_PARTS)
            self._validate_part(part, parts)
            index = find_index(parts, part.id) if part.id is not None else -1

            if index < 0:
                return self._create_part(txn, parts, part)

            stored = parts[index]
            current = int(stored.get("stock") or 0)
            delta = part.stock - current if part.stock is not None else 0
            fields = part_to_dict(part)
            for key in ("id", "stock", "initialStock", "createdAt", "updatedAt"):
                fields.pop(key, None)
            if "lastRestockDate" in stored:
                fields.pop("lastRestockDate", None)
            stored.update(fields)
            stored["updatedAt"] = self._now()
            txn.put(SPARE_PARTS, parts)
            if delta:
                self.stage_stock_delta(txn, part.id, delta)
            if part.stock is None:
                part.stock = current
            if part.cost is None:
                part.cost = stored.get("cost", 0)
            return self.commit(txn)

    def _create_part(self, txn: Transaction, parts: Records, part: SparePart) -> bool:
        stock = part.stock or 0
        if part.cost is None:
            part.cost = 0
        if part.id is None:
            part.id = next_int_id(parts)
        part.initial_stock = stock
        part.created_at = self._now()
        part.last_restock_date = part.created_at
        part.stock = 0

        parts.append(part_to_dict(part))
        txn.put(SPARE_PARTS, parts)
        if stock:
            self.stage_stock_delta(txn, part.id, stock)
        part.stock = stock

        if part.vendor_id is not None and stock > 0:
            purchase = float(part.cost) * stock
            if not self.stage_credit_delta(txn, part.vendor_id, purchase):
                logger.warning(
                    "Part %s bought from unknown vendor %s, no credit recorded",
                    part.part_number,
                    part.vendor_id,
                )
        return self.commit(txn)

    def delete_part(self, part_id: Any) -> bool:
        """Remove a part. Visits that used it keep their copied name and price."""
        with self.store.transaction() as txn:
            parts = txn.get(SPARE_PARTS)
            remaining = [p for p in parts if not same_id(p.get("id"), part_id)]
            if len(remaining) == len(parts):
                return False
            txn.put(SPARE_PARTS, remaining)
            return self.commit(txn)
