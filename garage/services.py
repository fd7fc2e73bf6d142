"""Wiring: one store shared by the records, ledger and visit workflow."""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from .config import Config
from .directory import ShopRecords
from .ledger import InventoryLedger
from .reminders import Reminder, UpcomingVisit, derive_reminders, upcoming_visits
from .store import RecordStore, YamlStore
from .time_utils import Clock, utcnow
from .workflow import VisitWorkflow


@dataclass
class Services:
    """Services sharing one store."""

    config: Config
    store: RecordStore
    records: ShopRecords
    ledger: InventoryLedger
    workflow: VisitWorkflow

    def reminders(self) -> List[Reminder]:
        return derive_reminders(
            self.records.get_visits(),
            self.records.get_vehicles(),
            self.records.get_customers(),
            now=self.records.clock(),
            threshold_days=self.config.reminder_threshold_days,
        )

    def upcoming(
        self,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        window: str = "all",
    ) -> List[UpcomingVisit]:
        return upcoming_visits(
            self.records.get_visits(),
            self.records.get_customers(),
            self.records.get_vehicles(),
            today=self.records.clock().date(),
            from_date=from_date,
            to_date=to_date,
            window=window,
        )


def build_services(
    config: Config,
    store: Optional[RecordStore] = None,
    clock: Clock = utcnow,
) -> Services:
    """Build services over store, or a YamlStore in config.data_dir."""
    if store is None:
        store = YamlStore(config.data_dir)
    records = ShopRecords(store, config, clock)
    ledger = InventoryLedger(store, config, clock)
    workflow = VisitWorkflow(records, ledger, config)
    return Services(
        config=config, store=store, records=records, ledger=ledger, workflow=workflow
    )
