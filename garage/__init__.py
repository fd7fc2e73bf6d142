"""
Service shop records, inventory and visit workflow.

This package provides:
- Customer, Vehicle, SparePart, Vendor, VendorPayment, Visit: records
- RecordStore, MemoryStore, YamlStore: whole-collection persistence
- ShopRecords: customers, vehicles, vendors and visits
- InventoryLedger: part stock, vendor credit and payments
- VisitWorkflow / VisitEditor: Draft -> Completed visits
- derive_reminders, upcoming_visits: read-side views of visit history
"""

from .config import Config, load_config
from .customer import Customer
from .directory import ShopRecords
from .errors import (
    ConsistencyError,
    NotFoundError,
    PersistenceError,
    Reason,
    RejectedError,
    ShopError,
    ValidationError,
)
from .ledger import InventoryLedger
from .reminders import Reminder, UpcomingVisit, derive_reminders, upcoming_visits
from .services import Services, build_services
from .spare_part import SparePart
from .status import VisitStatus
from .store import MemoryStore, RecordStore, Transaction, YamlStore
from .totals import VisitTotals, compute_totals
from .vehicle import Vehicle
from .vendor import Vendor, VendorPayment
from .visit import NextVisit, PartLine, ServiceLine, Visit
from .workflow import VisitEditor, VisitWorkflow

__all__ = [
    "Config",
    "load_config",
    "Customer",
    "Vehicle",
    "SparePart",
    "Vendor",
    "VendorPayment",
    "Visit",
    "ServiceLine",
    "PartLine",
    "NextVisit",
    "VisitStatus",
    "VisitTotals",
    "compute_totals",
    "RecordStore",
    "MemoryStore",
    "YamlStore",
    "Transaction",
    "ShopRecords",
    "InventoryLedger",
    "VisitWorkflow",
    "VisitEditor",
    "Reminder",
    "UpcomingVisit",
    "derive_reminders",
    "upcoming_visits",
    "Services",
    "build_services",
    "ShopError",
    "RejectedError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "ConsistencyError",
    "Reason",
]
