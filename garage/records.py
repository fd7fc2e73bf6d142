"""Conversion between stored records (camelCase dicts) and model objects."""

from typing import Any, Dict, Iterable, List, Optional

from .customer import Customer
from .spare_part import SparePart
from .status import VisitStatus
from .vehicle import Vehicle
from .vendor import Vendor, VendorPayment
from .visit import NextVisit, PartLine, ServiceLine, Visit


def same_id(a: Any, b: Any) -> bool:
    """Compare record ids loosely, so 7 and '7' match (ids arrive as text)."""
    if a is None or b is None:
        return False
    return str(a) == str(b)


def find_index(records: List[Dict[str, Any]], record_id: Any) -> int:
    """Index of the record with the given id, or -1."""
    for i, record in enumerate(records):
        if same_id(record.get("id"), record_id):
            return i
    return -1


def find_record(records: Iterable[Dict[str, Any]], record_id: Any) -> Optional[Dict[str, Any]]:
    """The record with the given id, or None."""
    for record in records:
        if same_id(record.get("id"), record_id):
            return record
    return None


def next_int_id(records: Iterable[Dict[str, Any]]) -> int:
    """max(integer ids) + 1, starting at 1. Non-numeric ids are skipped."""
    highest = 0
    for record in records:
        try:
            value = int(record.get("id"))
        except (TypeError, ValueError):
            continue
        highest = max(highest, value)
    return highest + 1


def _put(d: Dict[str, Any], key: str, value: Any) -> None:
    """Set key only when value is not None, for cleaner YAML."""
    if value is not None:
        d[key] = value


# =============================================================================
# Customers
# =============================================================================

_CUSTOMER_KEYS = {"id", "name", "mobile", "createdAt", "updatedAt"}


def parse_customer(dct: Dict[str, Any]) -> Customer:
    return Customer(
        name=dct.get("name", ""),
        mobile=dct.get("mobile"),
        id=dct.get("id"),
        extra={k: v for k, v in dct.items() if k not in _CUSTOMER_KEYS},
        created_at=dct.get("createdAt"),
        updated_at=dct.get("updatedAt"),
    )


def customer_to_dict(customer: Customer) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    _put(d, "id", customer.id)
    d["name"] = customer.name
    _put(d, "mobile", customer.mobile)
    for key, value in customer.extra.items():
        if key not in _CUSTOMER_KEYS:
            d[key] = value
    _put(d, "createdAt", customer.created_at)
    _put(d, "updatedAt", customer.updated_at)
    return d


# =============================================================================
# Vehicles
# =============================================================================


def parse_vehicle(dct: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        customer_id=dct.get("customerId"),
        brand=dct.get("brand", ""),
        model=dct.get("model", ""),
        plate_number=dct.get("plateNumber", ""),
        year=dct.get("year"),
        id=dct.get("id"),
        created_at=dct.get("createdAt"),
        updated_at=dct.get("updatedAt"),
    )


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    _put(d, "id", vehicle.id)
    d["customerId"] = vehicle.customer_id
    d["brand"] = vehicle.brand
    d["model"] = vehicle.model
    _put(d, "year", vehicle.year)
    d["plateNumber"] = vehicle.plate_number
    _put(d, "createdAt", vehicle.created_at)
    _put(d, "updatedAt", vehicle.updated_at)
    return d


# =============================================================================
# Spare parts
# =============================================================================


def parse_part(dct: Dict[str, Any]) -> SparePart:
    return SparePart(
        part_number=dct.get("partNumber", ""),
        name=dct.get("name", ""),
        price=dct.get("price", 0),
        cost=dct.get("cost", 0),
        stock=int(dct.get("stock") or 0),
        category=dct.get("category"),
        vendor_id=dct.get("vendorId"),
        barcode=dct.get("barcode"),
        id=dct.get("id"),
        initial_stock=dct.get("initialStock"),
        last_restock_date=dct.get("lastRestockDate"),
        created_at=dct.get("createdAt"),
        updated_at=dct.get("updatedAt"),
    )


def part_to_dict(part: SparePart) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    _put(d, "id", part.id)
    d["partNumber"] = part.part_number
    d["name"] = part.name
    _put(d, "category", part.category)
    _put(d, "vendorId", part.vendor_id)
    _put(d, "barcode", part.barcode)
    d["price"] = part.price
    _put(d, "cost", part.cost)
    _put(d, "stock", part.stock)
    _put(d, "initialStock", part.initial_stock)
    _put(d, "lastRestockDate", part.last_restock_date)
    _put(d, "createdAt", part.created_at)
    _put(d, "updatedAt", part.updated_at)
    return d


# =============================================================================
# Vendors and payments
# =============================================================================


def parse_vendor(dct: Dict[str, Any]) -> Vendor:
    return Vendor(
        name=dct.get("name", ""),
        credit=float(dct.get("credit") or 0),
        phone=dct.get("phone"),
        notes=dct.get("notes"),
        id=dct.get("id"),
        created_at=dct.get("createdAt"),
        updated_at=dct.get("updatedAt"),
    )


def vendor_to_dict(vendor: Vendor) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    _put(d, "id", vendor.id)
    d["name"] = vendor.name
    d["credit"] = vendor.credit
    _put(d, "phone", vendor.phone)
    _put(d, "notes", vendor.notes)
    _put(d, "createdAt", vendor.created_at)
    _put(d, "updatedAt", vendor.updated_at)
    return d


def parse_payment(dct: Dict[str, Any]) -> VendorPayment:
    return VendorPayment(
        vendor_id=dct.get("vendorId"),
        amount=float(dct.get("amount") or 0),
        date=dct.get("date", ""),
        notes=dct.get("notes") or "",
        id=dct.get("id"),
    )


def payment_to_dict(payment: VendorPayment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "vendorId": payment.vendor_id,
        "amount": payment.amount,
        "notes": payment.notes,
        "date": payment.date,
    }


# =============================================================================
# Visits
# =============================================================================


def parse_visit(dct: Dict[str, Any]) -> Visit:
    next_visit = None
    nv = dct.get("nextVisit")
    if nv and nv.get("date"):
        next_visit = NextVisit(
            date=str(nv["date"]), service=nv.get("service", ""), notes=nv.get("notes")
        )
    return Visit(
        customer_id=dct.get("customerId"),
        vehicle_id=dct.get("vehicleId"),
        status=VisitStatus(dct.get("status", VisitStatus.DRAFT.value)),
        services=[
            ServiceLine(name=s.get("name", ""), cost=float(s.get("cost") or 0))
            for s in dct.get("services") or []
        ],
        parts=[
            PartLine(
                part_id=p.get("partId"),
                name=p.get("name", ""),
                price=float(p.get("price") or 0),
                qty=int(p.get("qty") or 1),
            )
            for p in dct.get("parts") or []
        ],
        discount=float(dct.get("discount") or 0),
        notes=dct.get("notes") or "",
        technician=dct.get("technician"),
        payment_method=dct.get("paymentMethod"),
        mileage=dct.get("mileage"),
        tax_enabled=bool(dct.get("taxEnabled", False)),
        total_cost=float(dct.get("totalCost") or 0),
        tax=float(dct.get("tax") or 0),
        final_total=float(dct.get("finalTotal") or 0),
        next_visit=next_visit,
        id=dct.get("id"),
        created_at=dct.get("createdAt"),
        completed_at=dct.get("completedAt"),
        updated_at=dct.get("updatedAt"),
    )


def visit_to_dict(visit: Visit) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    _put(d, "id", visit.id)
    d["customerId"] = visit.customer_id
    d["vehicleId"] = visit.vehicle_id
    d["status"] = visit.status.value
    d["services"] = [{"name": s.name, "cost": s.cost} for s in visit.services]
    d["parts"] = [
        {"partId": p.part_id, "name": p.name, "price": p.price, "qty": p.qty}
        for p in visit.parts
    ]
    d["discount"] = visit.discount
    d["notes"] = visit.notes
    _put(d, "technician", visit.technician)
    _put(d, "paymentMethod", visit.payment_method)
    _put(d, "mileage", visit.mileage)
    d["totalCost"] = visit.total_cost
    d["tax"] = visit.tax
    d["taxEnabled"] = visit.tax_enabled
    d["finalTotal"] = visit.final_total
    if visit.next_visit is not None:
        nv: Dict[str, Any] = {
            "date": visit.next_visit.date,
            "service": visit.next_visit.service,
        }
        _put(nv, "notes", visit.next_visit.notes)
        d["nextVisit"] = nv
    _put(d, "createdAt", visit.created_at)
    _put(d, "completedAt", visit.completed_at)
    _put(d, "updatedAt", visit.updated_at)
    return d
