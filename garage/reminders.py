"""
Read-side views over visit history: maintenance reminders and upcoming
scheduled visits. Nothing here writes to the store.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .customer import Customer
from .time_utils import parse_date, parse_timestamp
from .vehicle import Vehicle
from .visit import Visit

REMINDER_THRESHOLD_DAYS = 90

WINDOWS = ("all", "overdue", "today", "tomorrow", "week")


@dataclass
class Reminder:
    """A vehicle that has gone too long since its last completed visit."""

    vehicle_id: Any
    customer_id: Any
    customer_name: str
    mobile: str
    vehicle: str
    last_service_date: str
    days_since: int

    @property
    def message(self) -> str:
        return f"{self.days_since} days since last service"


@dataclass
class UpcomingVisit:
    """A follow-up visit scheduled on an earlier visit."""

    visit_id: Any
    date: date
    service: str
    notes: Optional[str]
    customer: Customer
    vehicle: Vehicle
    days_until: int

    @property
    def label(self) -> str:
        if self.days_until < 0:
            return f"overdue ({abs(self.days_until)} days)"
        if self.days_until == 0:
            return "today"
        if self.days_until == 1:
            return "tomorrow"
        if self.days_until <= 7:
            return "this week"
        return "upcoming"


def _index(items: Iterable[Any]) -> Dict[str, Any]:
    return {str(item.id): item for item in items}


def last_completed_visits(visits: Iterable[Visit]) -> Dict[str, Visit]:
    """Most recent completed visit per vehicle id (completedAt, else createdAt)."""
    latest: Dict[str, Visit] = {}
    latest_at: Dict[str, datetime] = {}
    for visit in visits:
        if not visit.is_completed:
            continue
        when = parse_timestamp(visit.service_date)
        if when is None:
            continue
        key = str(visit.vehicle_id)
        if key not in latest or when > latest_at[key]:
            latest[key] = visit
            latest_at[key] = when
    return latest


def derive_reminders(
    visits: Iterable[Visit],
    vehicles: Iterable[Vehicle],
    customers: Iterable[Customer],
    now: datetime,
    threshold_days: int = REMINDER_THRESHOLD_DAYS,
) -> List[Reminder]:
    """
    Reminders for vehicles whose last completed visit is over threshold_days old.

    days_since is whole days, rounded down. Output follows the order of
    vehicles, not urgency; sort it yourself if needed.
    """
    latest = last_completed_visits(visits)
    by_customer = _index(customers)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    reminders = []
    for vehicle in vehicles:
        visit = latest.get(str(vehicle.id))
        if visit is None:
            continue
        last = parse_timestamp(visit.service_date)
        days_since = (now - last).days
        if days_since <= threshold_days:
            continue
        customer = by_customer.get(str(vehicle.customer_id)) or Customer.unknown(
            vehicle.customer_id
        )
        reminders.append(
            Reminder(
                vehicle_id=vehicle.id,
                customer_id=vehicle.customer_id,
                customer_name=customer.name or "Unknown",
                mobile=customer.mobile or "",
                vehicle=vehicle.label,
                last_service_date=last.date().isoformat(),
                days_since=days_since,
            )
        )
    return reminders


def _in_window(days_until: int, window: str) -> bool:
    if window == "overdue":
        return days_until < 0
    if window == "today":
        return days_until == 0
    if window == "tomorrow":
        return days_until == 1
    if window == "week":
        return 0 <= days_until <= 7
    return True


def upcoming_visits(
    visits: Iterable[Visit],
    customers: Iterable[Customer],
    vehicles: Iterable[Vehicle],
    today: date,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    window: str = "all",
) -> List[UpcomingVisit]:
    """
    Scheduled follow-ups, soonest first.

    from_date/to_date bound the scheduled date (inclusive). window is one
    of 'all', 'overdue', 'today', 'tomorrow' or 'week' (today..7 days).
    """
    if window not in WINDOWS:
        raise ValueError(f"Unknown window '{window}', expected one of {', '.join(WINDOWS)}")

    by_customer = _index(customers)
    by_vehicle = _index(vehicles)

    result = []
    for visit in visits:
        if visit.next_visit is None or not visit.next_visit.date:
            continue
        when = parse_date(visit.next_visit.date)
        if from_date and when < from_date:
            continue
        if to_date and when > to_date:
            continue
        days_until = (when - today).days
        if not _in_window(days_until, window):
            continue
        result.append(
            UpcomingVisit(
                visit_id=visit.id,
                date=when,
                service=visit.next_visit.service,
                notes=visit.next_visit.notes,
                customer=by_customer.get(str(visit.customer_id))
                or Customer.unknown(visit.customer_id),
                vehicle=by_vehicle.get(str(visit.vehicle_id))
                or Vehicle.unknown(visit.vehicle_id),
                days_until=days_until,
            )
        )

    result.sort(key=lambda u: u.date)
    return result
