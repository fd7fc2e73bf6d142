"""
Shop records: customers, vehicles, vendors and visits.

Upserts merge into the stored record and stamp createdAt/updatedAt.
References between records are by id only; resolve_customer and
resolve_vehicle return placeholders for ids that no longer exist.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .config import Config
from .customer import Customer
from .errors import PersistenceError, Reason, ValidationError
from .records import (
    customer_to_dict,
    find_index,
    find_record,
    next_int_id,
    parse_customer,
    parse_vehicle,
    parse_vendor,
    parse_visit,
    same_id,
    vehicle_to_dict,
    vendor_to_dict,
    visit_to_dict,
)
from .status import VisitStatus
from .store import (
    CUSTOMERS,
    SEQUENCES,
    VEHICLES,
    VENDORS,
    VISITS,
    RecordStore,
    Transaction,
)
from .time_utils import Clock, to_utc_z, utcnow
from .vehicle import Vehicle
from .vendor import Vendor
from .visit import Visit

logger = logging.getLogger(__name__)

VISIT_SEQUENCE = "visits"


class ShopRecords:
    """Data access for everything except parts and vendor balances."""

    def __init__(
        self,
        store: RecordStore,
        config: Optional[Config] = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.config = config or Config()
        self.clock = clock

    def _now(self) -> str:
        return to_utc_z(self.clock())

    def _upsert(self, collection: str, record: Dict[str, Any]) -> Tuple[bool, Any]:
        """Merge or append a record. Returns (saved, id)."""
        with self.store.transaction() as txn:
            records = txn.get(collection)
            index = find_index(records, record.get("id"))
            if index >= 0:
                merged = dict(records[index])
                merged.update(record)
                merged["updatedAt"] = self._now()
                records[index] = merged
                record_id = merged["id"]
            else:
                record = dict(record)
                if record.get("id") is None:
                    record["id"] = next_int_id(records)
                record["createdAt"] = self._now()
                records.append(record)
                record_id = record["id"]
            txn.put(collection, records)
            return self._commit(txn), record_id

    def _delete(self, collection: str, record_id: Any) -> bool:
        with self.store.transaction() as txn:
            records = txn.get(collection)
            remaining = [r for r in records if not same_id(r.get("id"), record_id)]
            txn.put(collection, remaining)
            return self._commit(txn)

    @staticmethod
    def _commit(txn: Transaction) -> bool:
        try:
            txn.commit()
        except PersistenceError as e:
            logger.error("Save failed: %s", e)
            return False
        return True

    # =========================================================================
    # Customers
    # =========================================================================

    def get_customers(self) -> List[Customer]:
        return [parse_customer(r) for r in self.store.get(CUSTOMERS)]

    def get_customer(self, customer_id: Any) -> Optional[Customer]:
        record = find_record(self.store.get(CUSTOMERS), customer_id)
        return parse_customer(record) if record else None

    def save_customer(self, customer: Customer) -> bool:
        """Insert or update a customer. Assigns customer.id on insert."""
        record = customer_to_dict(customer)
        record.pop("createdAt", None)
        record.pop("updatedAt", None)
        saved, customer.id = self._upsert(CUSTOMERS, record)
        return saved

    def delete_customer(self, customer_id: Any) -> bool:
        """Remove a customer. Their vehicles and visits are left as they are."""
        return self._delete(CUSTOMERS, customer_id)

    def resolve_customer(self, customer_id: Any) -> Customer:
        return self.get_customer(customer_id) or Customer.unknown(customer_id)

    # =========================================================================
    # Vehicles
    # =========================================================================

    def get_vehicles(self, customer_id: Any = None) -> List[Vehicle]:
        vehicles = [parse_vehicle(r) for r in self.store.get(VEHICLES)]
        if customer_id is not None:
            return [v for v in vehicles if same_id(v.customer_id, customer_id)]
        return vehicles

    def get_vehicle(self, vehicle_id: Any) -> Optional[Vehicle]:
        record = find_record(self.store.get(VEHICLES), vehicle_id)
        return parse_vehicle(record) if record else None

    def save_vehicle(self, vehicle: Vehicle) -> bool:
        """Insert or update a vehicle. The owner is not checked."""
        record = vehicle_to_dict(vehicle)
        record.pop("createdAt", None)
        record.pop("updatedAt", None)
        saved, vehicle.id = self._upsert(VEHICLES, record)
        return saved

    def delete_vehicle(self, vehicle_id: Any) -> bool:
        return self._delete(VEHICLES, vehicle_id)

    def resolve_vehicle(self, vehicle_id: Any) -> Vehicle:
        return self.get_vehicle(vehicle_id) or Vehicle.unknown(vehicle_id)

    def search_vehicles(
        self, term: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Tuple[Customer, Vehicle]]:
        """
        Find (customer, vehicle) pairs for starting a visit.

        A customer name match lists all of that customer's vehicles; a plate
        match lists just that vehicle. Results stop at limit.
        """
        limit = limit or self.config.search_limit
        term = (term or "").strip().lower()

        by_customer: Dict[str, List[Vehicle]] = {}
        for vehicle in self.get_vehicles():
            by_customer.setdefault(str(vehicle.customer_id), []).append(vehicle)

        results = []
        for customer in self.get_customers():
            customer_matches = not term or term in customer.name.lower()
            for vehicle in by_customer.get(str(customer.id), []):
                if len(results) >= limit:
                    return results
                if customer_matches or term in vehicle.plate_number.lower():
                    results.append((customer, vehicle))
        return results

    # =========================================================================
    # Vendors (balances change only through the ledger)
    # =========================================================================

    def get_vendors(self) -> List[Vendor]:
        return [parse_vendor(r) for r in self.store.get(VENDORS)]

    def get_vendor(self, vendor_id: Any) -> Optional[Vendor]:
        record = find_record(self.store.get(VENDORS), vendor_id)
        return parse_vendor(record) if record else None

    def save_vendor(self, vendor: Vendor) -> bool:
        """
        Insert or update a vendor.

        A new vendor starts at the given credit (default 0). On update the
        stored credit is kept; use InventoryLedger.adjust_vendor_credit.
        """
        record = vendor_to_dict(vendor)
        record.pop("createdAt", None)
        record.pop("updatedAt", None)
        existing = vendor.id is not None and self.get_vendor(vendor.id) is not None
        if existing:
            record.pop("credit", None)
        else:
            record["credit"] = float(vendor.credit or 0)
        saved, vendor.id = self._upsert(VENDORS, record)
        return saved

    def delete_vendor(self, vendor_id: Any) -> bool:
        return self._delete(VENDORS, vendor_id)

    # =========================================================================
    # Visits
    # =========================================================================

    def get_visits(self) -> List[Visit]:
        return [parse_visit(r) for r in self.store.get(VISITS)]

    def get_visit(self, visit_id: Any) -> Optional[Visit]:
        record = find_record(self.store.get(VISITS), visit_id)
        return parse_visit(record) if record else None

    def next_visit_id(self, txn: Transaction) -> str:
        """
        Take the next visit number from the persisted counter.

        The counter is seeded once from the highest existing numeric id and
        only ever goes up, so ids of deleted visits are never handed out
        again. Ids keep their zero padding; past the width they just grow.
        """
        sequences = txn.get(SEQUENCES)
        counter = find_record(sequences, VISIT_SEQUENCE)
        if counter is None:
            counter = {"id": VISIT_SEQUENCE, "value": next_int_id(txn.get(VISITS)) - 1}
            sequences.append(counter)
        counter["value"] += 1
        txn.put(SEQUENCES, sequences)
        return str(counter["value"]).zfill(self.config.visit_id_width)

    def require_draft(self, txn: Transaction, visit_id: Any) -> None:
        """
        Refuse to touch a visit whose stored record is already Completed.

        Checks the store, not the caller's copy, so an editor opened before
        another one completed the visit cannot write over it.
        """
        if visit_id is None:
            return
        record = find_record(txn.get(VISITS), visit_id)
        if record and record.get("status") == VisitStatus.COMPLETED.value:
            raise ValidationError(
                Reason.VISIT_COMPLETED,
                f"Visit {visit_id} is completed and can no longer be changed",
                str(visit_id),
            )

    def stage_visit(self, txn: Transaction, visit: Visit) -> None:
        """
        Stage a visit upsert in a transaction.

        A visit without an id gets the next number and a createdAt stamp;
        an existing one gets updatedAt. The visit object is updated in place.

        Raises:
            ValidationError: VISIT_COMPLETED if the stored visit is completed
        """
        self.require_draft(txn, visit.id)
        visits = txn.get(VISITS)
        index = find_index(visits, visit.id) if visit.id is not None else -1
        if index >= 0:
            visit.updated_at = self._now()
            visits[index] = visit_to_dict(visit)
        else:
            if visit.id is None:
                visit.id = self.next_visit_id(txn)
            if visit.created_at is None:
                visit.created_at = self._now()
            visits.append(visit_to_dict(visit))
        txn.put(VISITS, visits)

    def save_visit(self, visit: Visit) -> bool:
        """Persist a visit as-is. Never touches inventory."""
        with self.store.transaction() as txn:
            snapshot = (visit.id, visit.created_at, visit.updated_at)
            self.stage_visit(txn, visit)
            if self._commit(txn):
                return True
            visit.id, visit.created_at, visit.updated_at = snapshot
            return False

    def delete_visit(self, visit_id: Any) -> bool:
        """Remove a Draft visit. A stored Completed visit is refused."""
        with self.store.transaction() as txn:
            self.require_draft(txn, visit_id)
            visits = txn.get(VISITS)
            txn.put(VISITS, [v for v in visits if not same_id(v.get("id"), visit_id)])
            return self._commit(txn)
