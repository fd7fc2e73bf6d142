#!/usr/bin/env python3
"""Shared fixtures: in-memory store, a settable clock and wired services."""

from datetime import datetime, timedelta, timezone

import pytest

from garage import (
    Config,
    Customer,
    MemoryStore,
    SparePart,
    Vehicle,
    Vendor,
    build_services,
)


class FixedClock:
    """Clock that stays put until advanced."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FailingStore(MemoryStore):
    """MemoryStore whose puts to chosen collections fail."""

    def __init__(self, data=None):
        super().__init__(data)
        self.fail_on = set()
        self.fail_all_after = None
        self.puts = []

    def put(self, collection, records):
        self.puts.append(collection)
        if self.fail_all_after is not None and len(self.puts) > self.fail_all_after:
            return False
        if collection in self.fail_on:
            return False
        return super().put(collection, records)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def config(tmp_path):
    return Config(data_dir=tmp_path / "data")


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def services(config, store, clock):
    return build_services(config, store=store, clock=clock)


@pytest.fixture
def shop(services):
    """Services with one customer, one vehicle, one vendor and two parts."""
    services.records.save_customer(Customer(name="Alice", mobile="0500000001"))
    services.records.save_vehicle(
        Vehicle(customer_id=1, brand="Toyota", model="Corolla", plate_number="ABC-123")
    )
    services.records.save_vendor(Vendor(name="Parts Co"))
    services.ledger.save_part(
        SparePart(part_number="OF-1", name="Oil filter", price=12.5, cost=5, stock=10, vendor_id=1)
    )
    services.ledger.save_part(
        SparePart(part_number="BP-1", name="Brake pads", price=40, cost=25, stock=2, vendor_id=1)
    )
    return services
